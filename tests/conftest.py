from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from core.config import AppSettings
from core.domain.errors import ProviderCommandError
from core.domain.models import DeploymentRequest, ProviderSession, ResourceKind


def make_outputs(env: str = "dev") -> dict[str, Any]:
    return {
        "vnetName": {"type": "String", "value": f"vnet-bank-atm-{env}"},
        "vnetAddressSpace": {"type": "String", "value": "10.0.0.0/16"},
        "frontendSubnet": {
            "type": "Object",
            "value": {"name": "snet-frontend", "addressPrefix": "10.0.1.0/24"},
        },
        "backendSubnet": {
            "type": "Object",
            "value": {"name": "snet-backend", "addressPrefix": "10.0.2.0/24"},
        },
        "frontendNsgName": {"type": "String", "value": f"nsg-frontend-{env}"},
        "backendNsgName": {"type": "String", "value": f"nsg-backend-{env}"},
    }


class FakeProvider:
    """In-memory provider that records every call.

    `resources` maps (kind, name) to the describe payload; a missing entry
    makes the describe call fail like `az ... show` on a 404.
    """

    def __init__(
        self,
        *,
        logged_in: bool = True,
        groups: set[str] | None = None,
        apply_response: dict[str, Any] | None = None,
        apply_error: str | None = None,
        validate_response: dict[str, Any] | None = None,
        validate_error: str | None = None,
        resources: dict[tuple[ResourceKind, str], Any] | None = None,
    ) -> None:
        self.logged_in = logged_in
        self.groups = groups if groups is not None else {"bank-atm-rg"}
        self.apply_response = apply_response if apply_response is not None else {
            "properties": {"provisioningState": "Succeeded", "outputs": make_outputs()}
        }
        self.apply_error = apply_error
        self.validate_response = validate_response if validate_response is not None else {
            "properties": {
                "provisioningState": "Succeeded",
                "validatedResources": [
                    {"id": "/subscriptions/x/resourceGroups/bank-atm-rg/providers/Microsoft.Network/virtualNetworks/vnet-bank-atm-dev"}
                ],
            }
        }
        self.validate_error = validate_error
        self.resources = resources if resources is not None else default_resources()
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def get_identity(self) -> ProviderSession | None:
        self.calls.append(("get_identity", {}))
        if not self.logged_in:
            return None
        return ProviderSession.model_validate(
            {
                "id": "00000000-0000-0000-0000-000000000000",
                "name": "Demo Subscription",
                "tenantId": "tenant",
                "user": {"name": "operator@example.com", "type": "user"},
            }
        )

    def resource_group_exists(self, name: str) -> bool:
        self.calls.append(("resource_group_exists", {"name": name}))
        return name in self.groups

    def validate_template(self, *, resource_group: str, template_path: Path, parameters: dict[str, Any]) -> dict[str, Any]:
        self.calls.append(
            ("validate_template", {"resource_group": resource_group, "template_path": template_path, "parameters": parameters})
        )
        if self.validate_error:
            raise ProviderCommandError("az deployment group validate", 1, self.validate_error)
        return self.validate_response

    def apply_template(
        self,
        *,
        resource_group: str,
        deployment_name: str,
        template_path: Path,
        parameters: dict[str, Any],
    ) -> dict[str, Any]:
        self.calls.append(
            (
                "apply_template",
                {
                    "resource_group": resource_group,
                    "deployment_name": deployment_name,
                    "template_path": template_path,
                    "parameters": parameters,
                },
            )
        )
        if self.apply_error:
            raise ProviderCommandError("az deployment group create", 1, self.apply_error)
        return self.apply_response

    def describe_resource(self, *, kind: ResourceKind, name: str, resource_group: str) -> Any:
        self.calls.append(("describe_resource", {"kind": kind, "name": name, "resource_group": resource_group}))
        key = (kind, name)
        if key not in self.resources:
            raise ProviderCommandError(f"az describe {kind.value} {name}", 3, f"ResourceNotFound: {name}")
        return self.resources[key]


def default_resources(env: str = "dev") -> dict[tuple[ResourceKind, str], Any]:
    return {
        (ResourceKind.VIRTUAL_NETWORK, f"vnet-bank-atm-{env}"): {
            "name": f"vnet-bank-atm-{env}",
            "addressSpace": {"addressPrefixes": ["10.0.0.0/16"]},
        },
        (ResourceKind.SUBNETS, f"vnet-bank-atm-{env}"): [
            {"name": "snet-frontend", "addressPrefix": "10.0.1.0/24"},
            {"name": "snet-backend", "addressPrefix": "10.0.2.0/24"},
        ],
        (ResourceKind.NETWORK_SECURITY_GROUP, f"nsg-frontend-{env}"): {
            "name": f"nsg-frontend-{env}",
            "securityRules": [{"name": "AllowHttpsInbound"}],
        },
        (ResourceKind.NETWORK_SECURITY_GROUP, f"nsg-backend-{env}"): {
            "name": f"nsg-backend-{env}",
            "securityRules": [{"name": "AllowFrontendSubnetInbound"}, {"name": "DenyInternetInbound"}],
        },
    }


@pytest.fixture
def templates_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "templates"
    directory.mkdir()
    (directory / "network.json").write_text(
        json.dumps({"$schema": "x", "contentVersion": "1.0.0.0", "resources": []}),
        encoding="utf-8",
    )
    (directory / "network.parameters.json").write_text(
        json.dumps(
            {
                "$schema": "x",
                "contentVersion": "1.0.0.0",
                "parameters": {
                    "environmentName": {"value": "file-env"},
                    "location": {"value": "West Europe"},
                    "vnetAddressSpace": {"value": "10.0.0.0/16"},
                },
            }
        ),
        encoding="utf-8",
    )
    return directory


@pytest.fixture
def settings(tmp_path: Path, templates_dir: Path) -> AppSettings:
    outputs_dir = tmp_path / "outputs"
    return AppSettings(templates_dir=templates_dir, outputs_dir=outputs_dir, _env_file=None)


@pytest.fixture
def request_dev() -> DeploymentRequest:
    return DeploymentRequest(resource_group_name="bank-atm-rg", location="East US", environment="dev")
