"""JSON export of deployment outputs.

Why JSON:
- Later stages (key vault, database, app service scripts) read the file
  with `jq`/`json.load`, keyed by template output name.
- Stable formatting keeps re-runs byte-identical when outputs don't change.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from core.domain.models import DeploymentOutputs


def export_outputs_json(*, outputs: DeploymentOutputs, output_path: Path) -> Path:
    """Write `DeploymentOutputs` as UTF-8 JSON, replacing any previous file."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    payload = outputs.to_document()
    output_path.write_text(
        json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True) + "\n",
        encoding="utf-8",
    )
    return output_path


def load_outputs_json(path: Path) -> dict[str, Any]:
    raw = path.read_text(encoding="utf-8")
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError(f"Outputs file {path} does not contain a JSON object.")
    return data
