"""Test public API surface - ensure imports work correctly and no side effects.

This test verifies:
- triton_cli exposes run, prove, verify and their result types
- The command functions are plain functions, not modules
- Every error carries an error code and an exit status
"""

import types


def test_api_exports_core_functions():
    """Test that triton_cli.api exports run, prove, verify."""
    from triton_cli.api import run, prove, verify

    for func in (run, prove, verify):
        assert isinstance(func, types.FunctionType)


def test_root_exports():
    import triton_cli

    for name in ["run", "prove", "verify", "RunResult", "ProveResult", "VerifyResult", "ExitStatus"]:
        assert name in triton_cli.__all__
        assert hasattr(triton_cli, name)

    from triton_cli.api import run
    assert triton_cli.run is run


def test_version_string():
    import triton_cli

    assert isinstance(triton_cli.__version__, str)
    assert triton_cli.__version__


def test_exit_statuses():
    from triton_cli import ExitStatus

    assert [int(s) for s in ExitStatus] == [0, 1, 2, 3]


def test_every_error_has_a_code_and_exit_status():
    from triton_cli import errors
    from triton_cli.codes import ErrorCode, ExitStatus

    classes = [
        errors.UsageError,
        errors.InputFileError,
        errors.ParseError,
        errors.RangeError,
        errors.DeserializationError,
        errors.EngineFault,
    ]
    assert sorted(c.code.value for c in classes) == sorted(c.value for c in ErrorCode)
    assert "code" not in vars(errors.TritonCliError)
    assert all("code" in vars(c) for c in classes)
    assert errors.UsageError.exit_status is ExitStatus.USAGE
    for cls in classes[1:]:
        assert cls.exit_status is ExitStatus.FAILURE

