"""Error code and exit status constants for triton_cli.

These constants prevent stringly-typed error codes and keep the mapping
from failures to process exit statuses in one place.
"""

from enum import Enum, IntEnum


class ErrorCode(str, Enum):
    """Error codes carried by every `TritonCliError`."""

    # Detected before any file is touched
    USAGE_ERROR = "USAGE_ERROR"

    # Input and artifact files
    IO_ERROR = "IO_ERROR"
    PARSE_ERROR = "PARSE_ERROR"
    RANGE_ERROR = "RANGE_ERROR"
    DESERIALIZATION_ERROR = "DESERIALIZATION_ERROR"

    # Reported by the VM engine
    ENGINE_FAULT = "ENGINE_FAULT"


class ExitStatus(IntEnum):
    """Process exit statuses."""
    SUCCESS = 0
    FAILURE = 1
    USAGE = 2
    # Verification completed and the claim was not accepted.
    REJECTED = 3
