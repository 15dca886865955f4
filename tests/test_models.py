from __future__ import annotations

import pytest
from pydantic import ValidationError

from conftest import make_outputs
from core.domain.models import DeploymentOutputs, DeploymentRequest, ProviderSession, ValidationReport


def test_request_defaults_environment_and_strips():
    req = DeploymentRequest(resource_group_name="  bank-atm-rg ", location=" East US ")

    assert req.environment == "dev"
    assert req.resource_group_name == "bank-atm-rg"
    assert req.location == "East US"
    assert req.validate_only is False


def test_request_blank_environment_falls_back_to_default():
    req = DeploymentRequest(resource_group_name="rg", location="eastus", environment="  ")

    assert req.environment == "dev"


@pytest.mark.parametrize("field", ["resource_group_name", "location"])
def test_request_rejects_empty_required_fields(field: str):
    values = {"resource_group_name": "rg", "location": "eastus"}
    values[field] = "   "

    with pytest.raises(ValidationError):
        DeploymentRequest(**values)


def test_request_rejects_environment_unsafe_for_filenames():
    with pytest.raises(ValidationError):
        DeploymentRequest(resource_group_name="rg", location="eastus", environment="../prod")


def test_request_is_immutable():
    req = DeploymentRequest(resource_group_name="rg", location="eastus")

    with pytest.raises(ValidationError):
        req.environment = "prod"


def test_outputs_document_has_exactly_the_six_template_keys():
    raw = make_outputs()
    raw["extraOutput"] = {"type": "String", "value": "ignored"}

    outputs = DeploymentOutputs.model_validate(raw)
    document = outputs.to_document()

    assert set(document) == set(DeploymentOutputs.REQUIRED_KEYS)
    assert document["frontendSubnet"]["value"] == {"name": "snet-frontend", "addressPrefix": "10.0.1.0/24"}
    assert outputs.nsg_names() == ["nsg-frontend-dev", "nsg-backend-dev"]


def test_outputs_missing_keys_lists_absent_names():
    raw = make_outputs()
    del raw["backendNsgName"]
    del raw["vnetAddressSpace"]

    assert DeploymentOutputs.missing_keys(raw) == ["vnetAddressSpace", "backendNsgName"]


def test_provider_session_reads_account_show_payload():
    session = ProviderSession.model_validate(
        {"id": "sub-1", "name": "Demo", "tenantId": "t", "user": {"name": "op", "type": "user"}, "state": "Enabled"}
    )

    assert session.subscription_id == "sub-1"
    assert session.user.name == "op"


def test_validation_report_collects_resource_ids():
    report = ValidationReport.from_payload(
        {"properties": {"provisioningState": "Succeeded", "validatedResources": [{"id": "a"}, {"id": "b"}, {}]}}
    )

    assert report.provisioning_state == "Succeeded"
    assert report.validated_resources == ["a", "b"]
