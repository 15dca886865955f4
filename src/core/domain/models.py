"""Domain models (Pydantic v2).

Why Pydantic in the domain:
- Strict validation at the edges (invocation parameters, provider JSON)
  without coupling the core to the CLI or to subprocess details.
- The same models serialize the outputs document consumed by later stages.

These models describe *what* a deployment is, not *how* it is submitted.
"""

from __future__ import annotations

import re
from enum import Enum
from pathlib import Path
from typing import Any, ClassVar

from pydantic import BaseModel, Field, field_validator
from pydantic.config import ConfigDict

_ENVIRONMENT_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]*$")

DEFAULT_ENVIRONMENT = "dev"


class DeploymentState(str, Enum):
    """Orchestrator states, in the order a successful run visits them."""

    INIT = "init"
    AUTHENTICATING = "authenticating"
    CHECKING_PRECONDITION = "checking_precondition"
    RESOLVING = "resolving"
    DISPATCHING = "dispatching"
    VALIDATED = "validated"
    DEPLOYED = "deployed"
    VERIFYING = "verifying"
    DONE = "done"
    ABORTED = "aborted"


class ResourceKind(str, Enum):
    """Resource shapes the provider client can describe."""

    VIRTUAL_NETWORK = "virtual_network"
    SUBNETS = "subnets"
    NETWORK_SECURITY_GROUP = "network_security_group"

    def label(self) -> str:
        return {
            ResourceKind.VIRTUAL_NETWORK: "VNet",
            ResourceKind.SUBNETS: "Subnets",
            ResourceKind.NETWORK_SECURITY_GROUP: "NSG",
        }[self]


class DeploymentRequest(BaseModel):
    """Invocation parameters for one run. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    resource_group_name: str = Field(
        ...,
        min_length=1,
        description="Target resource group for every network resource.",
    )
    location: str = Field(
        ...,
        min_length=1,
        description="Azure region passed to the template (e.g. 'East US').",
    )
    environment: str = Field(
        default=DEFAULT_ENVIRONMENT,
        min_length=1,
        max_length=64,
        description="Selects the parameters overlay and the outputs filename suffix.",
    )
    validate_only: bool = Field(
        default=False,
        description="Dry-run: validate the template without materializing resources.",
    )
    parameter_overrides: dict[str, Any] = Field(
        default_factory=dict,
        description="Extra inline template parameters (win over the parameters file).",
    )

    @field_validator("resource_group_name", "location", mode="before")
    @classmethod
    def _strip(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("environment", mode="before")
    @classmethod
    def _default_environment(cls, value: object) -> object:
        if value is None:
            return DEFAULT_ENVIRONMENT
        if isinstance(value, str):
            value = value.strip() or DEFAULT_ENVIRONMENT
        return value

    @field_validator("environment")
    @classmethod
    def _filename_safe(cls, value: str) -> str:
        if not _ENVIRONMENT_RE.match(value):
            raise ValueError(
                "environment must start with a letter or digit and contain only "
                "letters, digits, '-' or '_'"
            )
        return value


class TemplateReference(BaseModel):
    """Resolved template and parameters files."""

    model_config = ConfigDict(frozen=True)

    template_path: Path
    parameters_path: Path


class ProviderUser(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = ""
    type: str = ""


class ProviderSession(BaseModel):
    """Authenticated identity as reported by `az account show`."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    subscription_id: str = Field(default="", alias="id")
    subscription_name: str = Field(default="", alias="name")
    tenant_id: str = Field(default="", alias="tenantId")
    user: ProviderUser = Field(default_factory=ProviderUser)


class StringOutput(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: str = "String"
    value: str = Field(..., min_length=1)


class SubnetValue(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: str = Field(..., min_length=1)
    address_prefix: str = Field(..., min_length=1, alias="addressPrefix")


class SubnetOutput(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: str = "Object"
    value: SubnetValue


class DeploymentOutputs(BaseModel):
    """The six outputs a successful network apply must produce.

    Field aliases are the template output names, so `model_dump(by_alias=True)`
    mirrors the provider's `properties.outputs` object for these keys.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    REQUIRED_KEYS: ClassVar[tuple[str, ...]] = (
        "vnetName",
        "vnetAddressSpace",
        "frontendSubnet",
        "backendSubnet",
        "frontendNsgName",
        "backendNsgName",
    )

    vnet_name: StringOutput = Field(..., alias="vnetName")
    vnet_address_space: StringOutput = Field(..., alias="vnetAddressSpace")
    frontend_subnet: SubnetOutput = Field(..., alias="frontendSubnet")
    backend_subnet: SubnetOutput = Field(..., alias="backendSubnet")
    frontend_nsg_name: StringOutput = Field(..., alias="frontendNsgName")
    backend_nsg_name: StringOutput = Field(..., alias="backendNsgName")

    @classmethod
    def missing_keys(cls, outputs: dict[str, Any]) -> list[str]:
        return [key for key in cls.REQUIRED_KEYS if key not in outputs]

    def to_document(self) -> dict[str, Any]:
        """JSON-ready mapping keyed by output name."""

        return self.model_dump(mode="json", by_alias=True)

    def nsg_names(self) -> list[str]:
        return [self.frontend_nsg_name.value, self.backend_nsg_name.value]

    def subnets(self) -> list[SubnetValue]:
        return [self.frontend_subnet.value, self.backend_subnet.value]


class ValidationReport(BaseModel):
    """Diagnostics returned by a dry-run validation."""

    provisioning_state: str | None = None
    validated_resources: list[str] = Field(default_factory=list)
    raw: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "ValidationReport":
        properties = payload.get("properties") if isinstance(payload, dict) else None
        properties = properties if isinstance(properties, dict) else {}
        resources = properties.get("validatedResources") or []
        ids = [
            str(item.get("id"))
            for item in resources
            if isinstance(item, dict) and item.get("id")
        ]
        return cls(
            provisioning_state=properties.get("provisioningState"),
            validated_resources=ids,
            raw=payload if isinstance(payload, dict) else {},
        )


class VerificationResult(BaseModel):
    """Outcome of one post-deployment describe query."""

    kind: ResourceKind
    name: str
    exists: bool = False
    shape_matches: bool = False
    detail: str = ""


class VerificationWarning(BaseModel):
    """Non-fatal issue found while verifying; reported, never raised."""

    resource: str
    message: str
