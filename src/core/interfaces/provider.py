"""Cloud provider client contract.

Why Protocol:
- The orchestrator never shells out directly; it talks to this structural
  contract, and the Azure CLI adapter is one implementation of it.
- Tests pass an in-memory fake instead of a logged-in `az`.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from core.domain.models import ProviderSession, ResourceKind


@runtime_checkable
class ProviderClient(Protocol):
    """Minimal set of provider calls the network deployment needs.

    Every method is a blocking round-trip. Command failures raise
    `ProviderCommandError`; timeouts and retries belong to the provider tool.
    """

    def get_identity(self) -> ProviderSession | None:
        """Return the current session, or `None` when nobody is logged in."""

        ...

    def resource_group_exists(self, name: str) -> bool:
        ...

    def validate_template(
        self,
        *,
        resource_group: str,
        template_path: Path,
        parameters: dict[str, Any],
    ) -> dict[str, Any]:
        """Dry-run the template and return the provider's JSON response."""

        ...

    def apply_template(
        self,
        *,
        resource_group: str,
        deployment_name: str,
        template_path: Path,
        parameters: dict[str, Any],
    ) -> dict[str, Any]:
        """Submit the template and return the provider's JSON response."""

        ...

    def describe_resource(
        self,
        *,
        kind: ResourceKind,
        name: str,
        resource_group: str,
    ) -> Any:
        """Read-only lookup. `SUBNETS` takes the vnet name and returns a list."""

        ...
