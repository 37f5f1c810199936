"""Generate JSON schemas from Pydantic models and save to schemas/ directory."""

import json
from pathlib import Path

from triton_cli.kernel.claim import Claim
from triton_cli.kernel.nondeterminism import NonDeterminism
from triton_cli._internal.schemas import InitialStateDocument


SCHEMAS = {
    "claim.schema.json": Claim,
    "non_determinism.schema.json": NonDeterminism,
    "initial_state.schema.json": InitialStateDocument,
}


def generate_schemas(schemas_dir: Path = None):
    """Generate JSON schemas for all documents the CLI reads or writes."""
    schemas_dir = schemas_dir or Path(__file__).parent.parent / "schemas"
    schemas_dir.mkdir(exist_ok=True)

    for filename, model in SCHEMAS.items():
        schema_path = schemas_dir / filename
        with open(schema_path, 'w', encoding='utf-8') as f:
            json.dump(model.model_json_schema(), f, indent=2, ensure_ascii=False)
        print(f"Generated: {schema_path}")

    print("\nSchema generation complete!")


if __name__ == "__main__":
    generate_schemas()
