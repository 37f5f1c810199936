"""Input resolution: command-line arguments -> one validated execution request.

A `run` or `prove` invocation describes the VM's initial state in exactly
one of two shapes:

* `InitialStateArgs`: a single JSON document with program, public input and
  secret input;
* `SeparateFilesArgs`: a program file, optional public input (inline or from
  a file) and an optional non-determinism file.

`run_args_from_namespace` builds the shape and rejects conflicting or
missing arguments before any file is touched. `resolve` then reads and
parses everything, and either returns a complete `ExecutionRequest` or
raises.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple, Union

from triton_cli.errors import (
    DeserializationError,
    InputFileError,
    ParseError,
    RangeError,
    UsageError,
)
from triton_cli.kernel.engine import VMEngine
from triton_cli.kernel.field import FieldRangeError, parse_field_elements
from triton_cli.kernel.nondeterminism import NonDeterminism
from triton_cli.kernel.program import Program, ProgramParseError

from .schemas import InitialStateDocument, parse_initial_state, parse_non_determinism


logger = logging.getLogger(__name__)

PROGRAM_REQUIRED_MESSAGE = (
    "the argument '--program <file>' is required unless "
    "'--initial-state <json file>' is given"
)


@dataclass(frozen=True)
class InlineInput:
    """Public input given on the command line, e.g. `--input "1, 2, 3"`."""
    text: str


@dataclass(frozen=True)
class InputFile:
    """Public input read from a file with the same comma-separated format."""
    path: Path


PublicInputArgs = Union[InlineInput, InputFile]


@dataclass(frozen=True)
class InitialStateArgs:
    path: Path


@dataclass(frozen=True)
class SeparateFilesArgs:
    program: Path
    public_input: Optional[PublicInputArgs] = None
    non_determinism: Optional[Path] = None


RunArgs = Union[InitialStateArgs, SeparateFilesArgs]


@dataclass(frozen=True)
class ExecutionRequest:
    """A fully specified initial state of the VM."""
    program: Program
    public_input: Tuple[int, ...]
    non_determinism: NonDeterminism

    def to_initial_state(self) -> InitialStateDocument:
        """The equivalent initial-state document."""
        nd = self.non_determinism
        return InitialStateDocument(
            program=self.program.to_source(),
            public_input=list(self.public_input),
            secret_individual_tokens=list(nd.individual_tokens),
            secret_digests=list(nd.digests),
            ram=dict(nd.ram),
        )


def _flag_conflict(first: str, second: str) -> UsageError:
    return UsageError(f"the argument '{first}' cannot be used with '{second}'")


def run_args_from_namespace(ns) -> RunArgs:
    """
    Build the argument shape from a parsed argparse namespace.

    The namespace needs `initial_state`, `program`, `input`, `input_file` and
    `non_determinism` attributes, each None when absent.

    Raises:
        UsageError: conflicting arguments, or neither shape given
    """
    initial_state = getattr(ns, "initial_state", None)
    program = getattr(ns, "program", None)
    inline = getattr(ns, "input", None)
    input_file = getattr(ns, "input_file", None)
    non_determinism = getattr(ns, "non_determinism", None)

    if initial_state is not None:
        others = [
            ("--program <file>", program),
            ("--input <list>", inline),
            ("--input-file <file>", input_file),
            ("--non-determinism <json file>", non_determinism),
        ]
        for flag, value in others:
            if value is not None:
                raise _flag_conflict("--initial-state <json file>", flag)
        return InitialStateArgs(path=Path(initial_state))

    if inline is not None and input_file is not None:
        raise _flag_conflict("--input <list>", "--input-file <file>")
    if program is None:
        raise UsageError(PROGRAM_REQUIRED_MESSAGE)

    public_input = None
    if inline is not None:
        public_input = InlineInput(text=inline)
    elif input_file is not None:
        public_input = InputFile(path=Path(input_file))

    return SeparateFilesArgs(
        program=Path(program),
        public_input=public_input,
        non_determinism=Path(non_determinism) if non_determinism is not None else None,
    )


def _read_text(argument: str, path: Path) -> str:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise InputFileError(argument, path, e) from e


def _read_json(argument: str, path: Path):
    text = _read_text(argument, path)
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise DeserializationError(f"{argument} file '{path}' is not valid JSON: {e}") from e


def _parse_program(engine: VMEngine, source: str, origin: str) -> Program:
    try:
        return engine.parse_program(source)
    except ProgramParseError as e:
        raise ParseError(f"cannot parse program from {origin}: {e}") from e


def parse_public_input(text: str, origin: str = "--input") -> Tuple[int, ...]:
    """
    Parse comma-separated signed integers into field elements.

    Raises:
        ParseError: a token is not an integer
        RangeError: an integer is outside of the field's range
    """
    try:
        return tuple(parse_field_elements(text))
    except FieldRangeError as e:
        raise RangeError(f"public input from {origin}: {e}") from e
    except ValueError as e:
        raise ParseError(f"public input from {origin}: {e}") from e


def _resolve_initial_state(args: InitialStateArgs, engine: VMEngine) -> ExecutionRequest:
    obj = _read_json("initial state", args.path)
    try:
        document = parse_initial_state(obj)
    except ValueError as e:
        raise DeserializationError(f"invalid initial state file '{args.path}': {e}") from e
    program = _parse_program(engine, document.program_source(), f"initial state file '{args.path}'")
    return ExecutionRequest(
        program=program,
        public_input=tuple(document.public_input),
        non_determinism=document.non_determinism(),
    )


def _resolve_separate_files(args: SeparateFilesArgs, engine: VMEngine) -> ExecutionRequest:
    source = _read_text("program", args.program)
    program = _parse_program(engine, source, f"'{args.program}'")

    if isinstance(args.public_input, InlineInput):
        public_input = parse_public_input(args.public_input.text)
    elif isinstance(args.public_input, InputFile):
        text = _read_text("input file", args.public_input.path)
        public_input = parse_public_input(text, f"'{args.public_input.path}'")
    else:
        public_input = ()

    if args.non_determinism is None:
        non_determinism = NonDeterminism()
    else:
        obj = _read_json("non-determinism", args.non_determinism)
        try:
            non_determinism = parse_non_determinism(obj)
        except ValueError as e:
            raise DeserializationError(
                f"invalid non-determinism file '{args.non_determinism}': {e}"
            ) from e

    return ExecutionRequest(
        program=program,
        public_input=public_input,
        non_determinism=non_determinism,
    )


def resolve(args: RunArgs, engine: VMEngine) -> ExecutionRequest:
    """
    Read and validate every input the argument shape names.

    Raises:
        InputFileError: a named file is missing or unreadable
        ParseError: program text or a public input token does not parse
        RangeError: a public input value is outside of the field
        DeserializationError: a JSON document is malformed
    """
    if isinstance(args, InitialStateArgs):
        logger.debug("resolving initial state from %s", args.path)
        request = _resolve_initial_state(args, engine)
    elif isinstance(args, SeparateFilesArgs):
        logger.debug("resolving program %s", args.program)
        request = _resolve_separate_files(args, engine)
    else:
        raise TypeError(f"unsupported argument shape: {type(args).__name__}")

    logger.info(
        "resolved program of %d words, %d public input element(s)",
        len(request.program),
        len(request.public_input),
    )
    return request
