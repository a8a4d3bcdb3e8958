"""Export JSON schemas for the host-facing contracts."""

import json
from pathlib import Path

from pydantic import BaseModel

from backend.app.models import (
    ConversationSnapshot,
    DashboardRecord,
    DataAnalysis,
    ElementSelectedMessage,
)

EXPORTED_MODELS: list[type[BaseModel]] = [
    ConversationSnapshot,
    DataAnalysis,
    ElementSelectedMessage,
    DashboardRecord,
]


def export_schemas(schemas_dir: Path) -> list[Path]:
    """Write one ``<Model>.schema.json`` per contract model; return the paths."""
    schemas_dir.mkdir(parents=True, exist_ok=True)

    paths = []
    for model in EXPORTED_MODELS:
        path = schemas_dir / f"{model.__name__}.schema.json"
        with open(path, "w") as f:
            json.dump(model.model_json_schema(by_alias=True), f, indent=2)
        paths.append(path)
    return paths


def main() -> None:
    """Export schemas to docs/schemas/."""
    for path in export_schemas(Path("docs/schemas")):
        print(f"Exported schema to {path}")


if __name__ == "__main__":
    main()
