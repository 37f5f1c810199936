"""triton-cli: run, prove and verify Triton VM programs from the command line."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("triton-cli")
except PackageNotFoundError:
    __version__ = "dev"

# Public API exports
from triton_cli.api import run, prove, verify, RunResult, ProveResult, VerifyResult
from triton_cli.codes import ErrorCode, ExitStatus
from triton_cli.errors import TritonCliError

__all__ = [
    "__version__",
    "run",
    "prove",
    "verify",
    "RunResult",
    "ProveResult",
    "VerifyResult",
    "ErrorCode",
    "ExitStatus",
    "TritonCliError",
]
