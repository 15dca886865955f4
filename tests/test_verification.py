from __future__ import annotations

from conftest import FakeProvider, make_outputs
from core.domain.models import DeploymentOutputs, ResourceKind
from core.services.verification import verify_network


def _outputs() -> DeploymentOutputs:
    return DeploymentOutputs.model_validate(make_outputs())


def test_all_resources_present_and_matching():
    client = FakeProvider()

    report = verify_network(client=client, resource_group="bank-atm-rg", outputs=_outputs())

    assert report.ok
    assert [r.kind for r in report.results] == [
        ResourceKind.VIRTUAL_NETWORK,
        ResourceKind.SUBNETS,
        ResourceKind.SUBNETS,
        ResourceKind.NETWORK_SECURITY_GROUP,
        ResourceKind.NETWORK_SECURITY_GROUP,
    ]
    describes = [c for c in client.calls if c[0] == "describe_resource"]
    assert len(describes) == 4


def test_missing_subnet_and_wrong_prefix_are_warnings():
    client = FakeProvider()
    client.resources[(ResourceKind.SUBNETS, "vnet-bank-atm-dev")] = [
        {"name": "snet-frontend", "addressPrefixes": ["10.0.99.0/24"]},
    ]

    report = verify_network(client=client, resource_group="bank-atm-rg", outputs=_outputs())

    subnets = {r.name: r for r in report.results if r.kind is ResourceKind.SUBNETS}
    assert subnets["snet-frontend"].exists and not subnets["snet-frontend"].shape_matches
    assert not subnets["snet-backend"].exists
    assert len(report.warnings) == 2
    assert not report.ok


def test_one_failed_nsg_query_does_not_stop_the_others():
    client = FakeProvider()
    del client.resources[(ResourceKind.NETWORK_SECURITY_GROUP, "nsg-frontend-dev")]

    report = verify_network(client=client, resource_group="bank-atm-rg", outputs=_outputs())

    nsgs = {r.name: r for r in report.results if r.kind is ResourceKind.NETWORK_SECURITY_GROUP}
    assert not nsgs["nsg-frontend-dev"].exists
    assert nsgs["nsg-backend-dev"].exists and nsgs["nsg-backend-dev"].detail == "2 security rule(s)"
    assert [w.resource for w in report.warnings] == ["NSG nsg-frontend-dev"]
    assert "ResourceNotFound" in report.warnings[0].message
