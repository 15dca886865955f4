from __future__ import annotations

import json
from pathlib import Path

import pytest

from core.config import AppSettings
from core.domain.errors import NotFoundError
from core.domain.models import DeploymentRequest
from core.template_loader import (
    build_parameters,
    load_parameters,
    merge_parameters,
    overlay_filename,
    resolve_templates,
)


def test_overlay_filename_inserts_environment_before_suffix():
    assert overlay_filename("network.parameters.json", "prod") == "network.parameters.prod.json"


def test_resolve_uses_base_parameters_when_no_overlay(settings: AppSettings, templates_dir: Path):
    ref = resolve_templates(settings=settings, environment="dev")

    assert ref.template_path == templates_dir / "network.json"
    assert ref.parameters_path == templates_dir / "network.parameters.json"


def test_resolve_prefers_environment_overlay(settings: AppSettings, templates_dir: Path):
    overlay = templates_dir / "network.parameters.prod.json"
    overlay.write_text(json.dumps({"parameters": {}}), encoding="utf-8")

    ref = resolve_templates(settings=settings, environment="prod")

    assert ref.parameters_path == overlay


def test_resolve_missing_template_raises_not_found(settings: AppSettings, templates_dir: Path):
    (templates_dir / "network.json").unlink()

    with pytest.raises(NotFoundError, match="Template file not found"):
        resolve_templates(settings=settings, environment="dev")


def test_resolve_missing_parameters_raises_not_found(settings: AppSettings, templates_dir: Path):
    (templates_dir / "network.parameters.json").unlink()

    with pytest.raises(NotFoundError, match="Parameters file not found"):
        resolve_templates(settings=settings, environment="dev")


def test_load_parameters_wraps_bare_values(tmp_path: Path):
    path = tmp_path / "params.json"
    path.write_text(json.dumps({"$schema": "x", "vnetAddressSpace": "10.1.0.0/16"}), encoding="utf-8")

    assert load_parameters(path) == {"vnetAddressSpace": {"value": "10.1.0.0/16"}}


def test_load_parameters_keeps_key_vault_references(tmp_path: Path):
    reference = {"reference": {"keyVault": {"id": "/kv"}, "secretName": "pw"}}
    path = tmp_path / "params.json"
    path.write_text(json.dumps({"parameters": {"adminPassword": reference}}), encoding="utf-8")

    assert load_parameters(path) == {"adminPassword": reference}


def test_load_parameters_rejects_invalid_json(tmp_path: Path):
    path = tmp_path / "params.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(NotFoundError, match="not valid JSON"):
        load_parameters(path)


def test_load_parameters_rejects_non_utf8(tmp_path: Path):
    path = tmp_path / "params.json"
    path.write_bytes(b'{"parameters": {"atmSubnetName": {"value": "\xff"}}}')

    with pytest.raises(NotFoundError, match="not UTF-8"):
        load_parameters(path)


def test_merge_is_last_writer_wins():
    merged = merge_parameters(
        {"a": {"value": 1}, "b": {"value": 2}},
        {"b": 20, "c": 30},
        {"c": 300},
    )

    assert merged == {"a": {"value": 1}, "b": {"value": 20}, "c": {"value": 300}}


def test_build_parameters_inline_environment_and_location_win(templates_dir: Path):
    request = DeploymentRequest(
        resource_group_name="bank-atm-rg",
        location="East US",
        environment="dev",
        parameter_overrides={"vnetAddressSpace": "10.5.0.0/16", "location": "ignored"},
    )

    params = build_parameters(request=request, parameters_path=templates_dir / "network.parameters.json")

    assert params["environmentName"] == {"value": "dev"}
    assert params["location"] == {"value": "East US"}
    assert params["vnetAddressSpace"] == {"value": "10.5.0.0/16"}
