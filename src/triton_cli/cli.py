"""triton-cli: run, prove and verify programs of the Triton VM."""

import argparse
import logging
import sys
from importlib.metadata import version as get_version, PackageNotFoundError
from pathlib import Path

from triton_cli.codes import ExitStatus
from triton_cli.config import DEFAULT_CLAIM_FILE, DEFAULT_PROOF_FILE, setup_logging
from triton_cli.errors import TritonCliError, UsageError


logger = logging.getLogger(__name__)


def _add_input_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--initial-state",
        metavar="<json file>",
        default=None,
        help="JSON file with program, public input and secret input. "
             "Cannot be combined with the other input arguments."
    )
    parser.add_argument(
        "--program",
        metavar="<file>",
        default=None,
        help="Path to the program's assembly"
    )
    parser.add_argument(
        "--input",
        metavar="<list>",
        default=None,
        help='Public input, comma separated, e.g. "1, 2, -3"'
    )
    parser.add_argument(
        "--input-file",
        metavar="<file>",
        default=None,
        help="File holding the public input in the same format as --input"
    )
    parser.add_argument(
        "--non-determinism",
        metavar="<json file>",
        default=None,
        help='JSON file with secret input: {"individual_tokens": [...], "digests": [...], "ram": {...}}'
    )


def _add_artifact_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--claim",
        type=Path,
        metavar="<file>",
        default=Path(DEFAULT_CLAIM_FILE),
        help=f"Path to the claim file (defaults to '{DEFAULT_CLAIM_FILE}')"
    )
    parser.add_argument(
        "--proof",
        type=Path,
        metavar="<file>",
        default=Path(DEFAULT_PROOF_FILE),
        help=f"Path to the proof file (defaults to '{DEFAULT_PROOF_FILE}')"
    )


def build_parser() -> argparse.ArgumentParser:
    try:
        triton_cli_version = get_version("triton-cli")
    except PackageNotFoundError:
        triton_cli_version = "dev"

    parser = argparse.ArgumentParser(
        prog="triton-cli",
        description="Run, prove and verify programs of the Triton VM"
    )
    parser.add_argument("--version", action="version", version=f"triton-cli {triton_cli_version}")

    # Common arguments
    parent_parser = argparse.ArgumentParser(add_help=False)
    parent_parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Log progress to stderr; repeat for debug output."
    )
    parent_parser.add_argument(
        "--profile",
        action="store_true",
        help="Print a timing and table size report."
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    run_parser = subparsers.add_parser(
        "run",
        help="Execute a program and print its public output",
        parents=[parent_parser]
    )
    _add_input_arguments(run_parser)

    prove_parser = subparsers.add_parser(
        "prove",
        help="Execute a program and write a claim and a proof of the execution",
        parents=[parent_parser]
    )
    _add_input_arguments(prove_parser)
    _add_artifact_arguments(prove_parser)

    verify_parser = subparsers.add_parser(
        "verify",
        help="Check a claim against its proof",
        parents=[parent_parser]
    )
    _add_artifact_arguments(verify_parser)

    parser.subcommand_parsers = {
        "run": run_parser,
        "prove": prove_parser,
        "verify": verify_parser,
    }
    return parser


def _run_command(args) -> ExitStatus:
    from .api import run
    from ._internal.profiling import render_execution_profile
    from ._internal.resolve import run_args_from_namespace

    result = run(run_args_from_namespace(args), profile=args.profile)
    line = result.format_output()
    if line:
        print(line)
    if result.profile is not None:
        print(render_execution_profile(result.profile))
    return ExitStatus.SUCCESS


def _prove_command(args) -> ExitStatus:
    from .api import prove
    from ._internal.io.artifacts import ProofArtifacts
    from ._internal.profiling import render_proof_profile
    from ._internal.resolve import run_args_from_namespace

    run_args = run_args_from_namespace(args)
    artifacts = ProofArtifacts(claim=args.claim, proof=args.proof)
    result = prove(run_args, artifacts, profile=args.profile)
    if result.profile is not None:
        print(render_proof_profile(result.profile))
    return ExitStatus.SUCCESS


def _verify_command(args) -> ExitStatus:
    from .api import verify
    from ._internal.io.artifacts import ProofArtifacts
    from ._internal.profiling import render_verification_profile

    artifacts = ProofArtifacts(claim=args.claim, proof=args.proof)
    result = verify(artifacts, profile=args.profile)
    if result.profile is not None:
        print(render_verification_profile(result.profile))
    if not result.accepted:
        logger.info("verification rejected: %s", "; ".join(result.reasons))
        return ExitStatus.REJECTED
    return ExitStatus.SUCCESS


_COMMANDS = {
    "run": _run_command,
    "prove": _prove_command,
    "verify": _verify_command,
}


def main():
    """Main CLI entry point for triton-cli commands."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(ExitStatus.USAGE)

    setup_logging(args.verbose)
    logger.debug("command: %s", args.command)

    try:
        status = _COMMANDS[args.command](args)
    except UsageError as e:
        # Exits with status 2 after printing the usage line.
        parser.subcommand_parsers[args.command].error(str(e))
    except TritonCliError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(e.exit_status)
    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        import traceback
        traceback.print_exc()
        sys.exit(ExitStatus.FAILURE)

    if status != ExitStatus.SUCCESS:
        sys.exit(status)


if __name__ == "__main__":
    main()
