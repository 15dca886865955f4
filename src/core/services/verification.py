"""Post-deployment verification.

After an apply succeeds, each created resource is described once and
compared with the outputs the template reported:

- virtual network: exists and its address space contains `vnetAddressSpace`
- subnets: both listed under the vnet with the expected address prefix
- NSGs: each one exists under its reported name

Verification is best-effort. Query failures become `VerificationWarning`s
and never abort the run.
"""

from __future__ import annotations

import logging
from typing import Any

from core.domain.errors import ProviderCommandError
from core.domain.models import (
    DeploymentOutputs,
    ResourceKind,
    SubnetValue,
    VerificationResult,
    VerificationWarning,
)
from core.interfaces.provider import ProviderClient

logger = logging.getLogger(__name__)


class VerificationReport:
    """Accumulates per-resource results and warnings."""

    def __init__(self) -> None:
        self.results: list[VerificationResult] = []
        self.warnings: list[VerificationWarning] = []

    @property
    def ok(self) -> bool:
        return not self.warnings and all(r.exists and r.shape_matches for r in self.results)

    def add(self, result: VerificationResult, warning: str | None = None) -> None:
        self.results.append(result)
        if warning:
            resource = f"{result.kind.label()} {result.name}"
            self.warnings.append(VerificationWarning(resource=resource, message=warning))
            logger.warning("Verification: %s: %s", resource, warning)


def _address_prefixes(item: dict[str, Any]) -> list[str]:
    prefixes: list[str] = []
    single = item.get("addressPrefix")
    if isinstance(single, str):
        prefixes.append(single)
    many = item.get("addressPrefixes")
    if isinstance(many, list):
        prefixes.extend(p for p in many if isinstance(p, str))
    return prefixes


def _verify_vnet(
    report: VerificationReport,
    *,
    client: ProviderClient,
    resource_group: str,
    outputs: DeploymentOutputs,
) -> None:
    name = outputs.vnet_name.value
    expected = outputs.vnet_address_space.value
    try:
        payload = client.describe_resource(
            kind=ResourceKind.VIRTUAL_NETWORK, name=name, resource_group=resource_group
        )
    except ProviderCommandError as exc:
        report.add(
            VerificationResult(kind=ResourceKind.VIRTUAL_NETWORK, name=name, detail="query failed"),
            warning=str(exc),
        )
        return

    if not isinstance(payload, dict):
        report.add(
            VerificationResult(kind=ResourceKind.VIRTUAL_NETWORK, name=name, detail="empty response"),
            warning="describe returned no virtual network",
        )
        return

    address_space = payload.get("addressSpace")
    prefixes = _address_prefixes(address_space) if isinstance(address_space, dict) else []
    matches = expected in prefixes
    report.add(
        VerificationResult(
            kind=ResourceKind.VIRTUAL_NETWORK,
            name=name,
            exists=True,
            shape_matches=matches,
            detail=", ".join(prefixes) or "no address prefixes",
        ),
        warning=None if matches else f"address space {prefixes} does not contain {expected}",
    )


def _verify_subnets(
    report: VerificationReport,
    *,
    client: ProviderClient,
    resource_group: str,
    outputs: DeploymentOutputs,
) -> None:
    vnet_name = outputs.vnet_name.value
    expected: list[SubnetValue] = outputs.subnets()
    try:
        payload = client.describe_resource(
            kind=ResourceKind.SUBNETS, name=vnet_name, resource_group=resource_group
        )
    except ProviderCommandError as exc:
        for subnet in expected:
            report.add(
                VerificationResult(kind=ResourceKind.SUBNETS, name=subnet.name, detail="query failed")
            )
        report.warnings.append(
            VerificationWarning(resource=f"Subnets of {vnet_name}", message=str(exc))
        )
        logger.warning("Verification: subnet list for %s failed: %s", vnet_name, exc)
        return

    listed = {
        str(item.get("name")): item
        for item in (payload if isinstance(payload, list) else [])
        if isinstance(item, dict) and item.get("name")
    }

    for subnet in expected:
        item = listed.get(subnet.name)
        if item is None:
            report.add(
                VerificationResult(kind=ResourceKind.SUBNETS, name=subnet.name, detail="not listed"),
                warning=f"subnet not found in {vnet_name}",
            )
            continue
        prefixes = _address_prefixes(item)
        matches = subnet.address_prefix in prefixes
        report.add(
            VerificationResult(
                kind=ResourceKind.SUBNETS,
                name=subnet.name,
                exists=True,
                shape_matches=matches,
                detail=", ".join(prefixes) or "no address prefix",
            ),
            warning=None if matches else f"prefix {prefixes} does not contain {subnet.address_prefix}",
        )


def _verify_nsg(
    report: VerificationReport,
    *,
    client: ProviderClient,
    resource_group: str,
    name: str,
) -> None:
    try:
        payload = client.describe_resource(
            kind=ResourceKind.NETWORK_SECURITY_GROUP, name=name, resource_group=resource_group
        )
    except ProviderCommandError as exc:
        report.add(
            VerificationResult(
                kind=ResourceKind.NETWORK_SECURITY_GROUP, name=name, detail="query failed"
            ),
            warning=str(exc),
        )
        return

    if not isinstance(payload, dict) or not payload:
        report.add(
            VerificationResult(
                kind=ResourceKind.NETWORK_SECURITY_GROUP, name=name, detail="empty response"
            ),
            warning="describe returned no security group",
        )
        return

    rules = payload.get("securityRules")
    rule_count = len(rules) if isinstance(rules, list) else 0
    matches = payload.get("name", name) == name
    report.add(
        VerificationResult(
            kind=ResourceKind.NETWORK_SECURITY_GROUP,
            name=name,
            exists=True,
            shape_matches=matches,
            detail=f"{rule_count} security rule(s)",
        ),
        warning=None if matches else f"describe returned {payload.get('name')!r}",
    )


def verify_network(
    *,
    client: ProviderClient,
    resource_group: str,
    outputs: DeploymentOutputs,
) -> VerificationReport:
    """Describe the vnet, its subnets and both NSGs. Never raises on query errors."""

    report = VerificationReport()
    _verify_vnet(report, client=client, resource_group=resource_group, outputs=outputs)
    _verify_subnets(report, client=client, resource_group=resource_group, outputs=outputs)
    for nsg_name in outputs.nsg_names():
        _verify_nsg(report, client=client, resource_group=resource_group, name=nsg_name)
    return report
