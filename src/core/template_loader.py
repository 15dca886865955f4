"""Template and parameters file handling.

This module lives in `core/` because:
- it decides *which* files a deployment uses (base vs. environment overlay)
  without knowing how they are submitted;
- the parameter merge order is part of the workflow contract, not of the
  provider CLI.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping

from core.config import AppSettings
from core.domain.errors import NotFoundError
from core.domain.models import DeploymentRequest, TemplateReference


def overlay_filename(base_filename: str, environment: str) -> str:
    """`network.parameters.json` + `prod` -> `network.parameters.prod.json`."""

    path = Path(base_filename)
    return f"{path.stem}.{environment}{path.suffix or '.json'}"


def resolve_templates(*, settings: AppSettings, environment: str) -> TemplateReference:
    """Locate the template and parameters files under `settings.templates_dir`.

    Parameters lookup order:
    1) `<stem>.<environment>.json` (environment overlay)
    2) the base parameters file
    """

    templates_dir = settings.templates_dir
    template_path = templates_dir / settings.template_file
    if not template_path.is_file():
        raise NotFoundError(f"Template file not found: {template_path}")

    candidates = [
        templates_dir / overlay_filename(settings.parameters_file, environment),
        templates_dir / settings.parameters_file,
    ]
    for candidate in candidates:
        if candidate.is_file():
            return TemplateReference(template_path=template_path, parameters_path=candidate)

    raise NotFoundError(
        "Parameters file not found: " + " or ".join(str(c) for c in candidates)
    )


def load_parameters(path: Path) -> dict[str, dict[str, Any]]:
    """Read an ARM parameters file and return its `parameters` object.

    Accepts the deployment-parameters document (`{"parameters": {...}}`) or a
    bare mapping. Bare values are wrapped as `{"value": v}`.
    """

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise NotFoundError(f"Parameters file {path} could not be read: {exc}") from exc
    except UnicodeDecodeError as exc:
        raise NotFoundError(f"Parameters file {path} is not UTF-8: {exc}") from exc
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise NotFoundError(f"Parameters file {path} is not valid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise NotFoundError(f"Parameters file {path} must contain a JSON object.")

    if "parameters" in data:
        raw = data["parameters"]
    else:
        raw = {k: v for k, v in data.items() if not k.startswith("$") and k != "contentVersion"}
    if not isinstance(raw, dict):
        raise NotFoundError(f"`parameters` in {path} must be a JSON object.")

    return {name: _as_parameter(value) for name, value in raw.items()}


def _as_parameter(value: Any) -> dict[str, Any]:
    if isinstance(value, dict) and ("value" in value or "reference" in value):
        return dict(value)
    return {"value": value}


def merge_parameters(
    file_parameters: Mapping[str, dict[str, Any]],
    *overrides: Mapping[str, Any],
) -> dict[str, dict[str, Any]]:
    """Last writer wins: each override mapping replaces earlier keys."""

    merged: dict[str, dict[str, Any]] = {k: dict(v) for k, v in file_parameters.items()}
    for layer in overrides:
        for name, value in layer.items():
            merged[name] = _as_parameter(value)
    return merged


def build_parameters(*, request: DeploymentRequest, parameters_path: Path) -> dict[str, dict[str, Any]]:
    """File values, then request overrides, then `environmentName`/`location`."""

    return merge_parameters(
        load_parameters(parameters_path),
        request.parameter_overrides,
        {"environmentName": request.environment, "location": request.location},
    )
