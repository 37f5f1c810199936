"""Reading and writing the claim (JSON) and proof (binary) artifact files."""

import json
import logging
import os
import stat
import tempfile
from pathlib import Path
from typing import Tuple

from pydantic import BaseModel, ConfigDict, ValidationError

from triton_cli.config import DEFAULT_CLAIM_FILE, DEFAULT_PROOF_FILE
from triton_cli.errors import DeserializationError, InputFileError
from triton_cli.kernel.claim import Claim
from triton_cli.kernel.stark import Proof, ProofFormatError

from ..schemas import format_validation_error


logger = logging.getLogger(__name__)


class ProofArtifacts(BaseModel):
    """Locations of the claim and proof files of one proof."""
    claim: Path = Path(DEFAULT_CLAIM_FILE)
    proof: Path = Path(DEFAULT_PROOF_FILE)

    model_config = ConfigDict(frozen=True)


def _target_mode(path: Path) -> int:
    """Mode for the written file: that of the file it replaces, else 0o666 minus the umask."""
    try:
        return stat.S_IMODE(os.stat(path).st_mode)
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask


def _write_atomic(argument: str, path: Path, data: bytes) -> None:
    """Write to a temp file next to `path`, fsync, then move into place."""
    try:
        fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
    except OSError as e:
        raise InputFileError(argument, path, e) from e
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        os.chmod(tmp, _target_mode(path))
        os.replace(tmp, str(path))
    except OSError as e:
        raise InputFileError(argument, path, e) from e
    finally:
        if os.path.exists(tmp):
            os.remove(tmp)


def encode_claim(claim: Claim) -> bytes:
    text = json.dumps(claim.model_dump(mode="json"), indent=2, sort_keys=True, ensure_ascii=False)
    return (text + "\n").encode("utf-8")


def decode_claim(data: bytes, path: Path) -> Claim:
    try:
        obj = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise DeserializationError(f"claim file '{path}' is not valid JSON: {e}") from e
    if not isinstance(obj, dict):
        raise DeserializationError(f"claim file '{path}' must hold a JSON object")
    try:
        return Claim.model_validate(obj)
    except ValidationError as e:
        raise DeserializationError(
            f"invalid claim file '{path}': {format_validation_error(e)}"
        ) from e


def decode_proof(data: bytes, path: Path) -> Proof:
    try:
        return Proof.from_bytes(data)
    except ProofFormatError as e:
        raise DeserializationError(f"invalid proof file '{path}': {e}") from e


def write_artifacts(claim: Claim, proof: Proof, artifacts: ProofArtifacts) -> None:
    """
    Persist claim and proof, each file created or replaced atomically.

    The two files are written one after the other; a failure between them
    leaves a new claim next to an old proof, which `verify` rejects.

    Raises:
        InputFileError: a file cannot be written
    """
    _write_atomic("claim", artifacts.claim, encode_claim(claim))
    _write_atomic("proof", artifacts.proof, proof.to_bytes())
    logger.info("wrote claim to %s and proof to %s", artifacts.claim, artifacts.proof)


def _read_bytes(argument: str, path: Path) -> bytes:
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as e:
        raise InputFileError(argument, path, e) from e


def read_artifacts(artifacts: ProofArtifacts) -> Tuple[Claim, Proof]:
    """
    Load claim and proof.

    Raises:
        InputFileError: a file is missing or unreadable
        DeserializationError: a file is malformed
    """
    claim_bytes = _read_bytes("claim", artifacts.claim)
    proof_bytes = _read_bytes("proof", artifacts.proof)
    claim = decode_claim(claim_bytes, artifacts.claim)
    proof = decode_proof(proof_bytes, artifacts.proof)
    logger.debug("read claim %s and proof %s (%d bytes)", artifacts.claim, artifacts.proof, len(proof_bytes))
    return claim, proof
