"""Exception taxonomy of the command layer.

Every failure of `run`, `prove` or `verify` surfaces as a `TritonCliError`
subclass carrying an `ErrorCode` and the exit status the CLI reports. A
rejected proof is not an error; see `VerifyResult.accepted`.
"""

from pathlib import Path
from typing import Optional, Union

from triton_cli.codes import ErrorCode, ExitStatus


class TritonCliError(Exception):
    """Base class for all command failures. Subclasses set `code`."""
    code: ErrorCode
    exit_status: ExitStatus = ExitStatus.FAILURE


class UsageError(TritonCliError, ValueError):
    """Conflicting or missing arguments; raised before any file I/O."""
    code = ErrorCode.USAGE_ERROR
    exit_status = ExitStatus.USAGE


class InputFileError(TritonCliError):
    """A file named by an argument is missing, unreadable or unwritable.

    `argument` names the logical input the path came from, e.g. "program",
    "input file", "non-determinism", "initial state", "claim" or "proof".
    """
    code = ErrorCode.IO_ERROR

    def __init__(self, argument: str, path: Union[str, Path], cause: Optional[BaseException] = None):
        self.argument = argument
        self.path = Path(path)
        self.cause = cause
        reason = cause.strerror if isinstance(cause, OSError) and cause.strerror else cause
        message = f"cannot access {argument} '{self.path}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)

    def __str__(self) -> str:
        return self.args[0]


class ParseError(TritonCliError, ValueError):
    """Program text or a numeric input token failed to parse."""
    code = ErrorCode.PARSE_ERROR


class RangeError(TritonCliError, ValueError):
    """An input value lies outside of the field."""
    code = ErrorCode.RANGE_ERROR


class DeserializationError(TritonCliError, ValueError):
    """A structured document or binary artifact is malformed."""
    code = ErrorCode.DESERIALIZATION_ERROR


class EngineFault(TritonCliError):
    """The program terminated abnormally, or proof generation failed."""
    code = ErrorCode.ENGINE_FAULT
