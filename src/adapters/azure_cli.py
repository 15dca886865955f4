"""Azure CLI implementation of `ProviderClient`.

Usage:
    client = AzureCliClient(settings)
    session = client.get_identity()
    client.apply_template(resource_group="bank-atm-rg", ...)

Every call runs `az <args> --output json` and parses stdout as JSON.
Non-zero exits raise `ProviderCommandError` with stderr verbatim.
"""

from __future__ import annotations

import json
import logging
import subprocess
from pathlib import Path
from typing import Any

from core.config import AppSettings
from core.domain.errors import ProviderCommandError
from core.domain.models import ProviderSession, ResourceKind
from core.interfaces.provider import ProviderClient

logger = logging.getLogger(__name__)

# Conventional "command not found" status, reused when the executable is missing.
EXIT_NOT_FOUND = 127


class AzureCliClient(ProviderClient):
    """Wraps the `az` commands used by the network deployment."""

    def __init__(self, settings: AppSettings | None = None) -> None:
        self._settings = settings or AppSettings()
        self._az = self._settings.az_path

    def _display(self, args: list[str]) -> str:
        shown: list[str] = [self._az]
        hide_next = False
        for arg in args:
            if hide_next:
                shown.append("<inline-json>")
                hide_next = False
                continue
            shown.append(arg)
            hide_next = arg == "--parameters"
        return " ".join(shown)

    def _execute(self, args: list[str]) -> subprocess.CompletedProcess[str]:
        cmd = [self._az, *args, "--output", "json"]
        display = self._display([*args, "--output", "json"])
        logger.debug("Running: %s", display)
        try:
            return subprocess.run(cmd, capture_output=True, text=True, check=False)
        except FileNotFoundError as exc:
            raise ProviderCommandError(
                display,
                EXIT_NOT_FOUND,
                f"Azure CLI executable not found: {self._az} ({exc})",
            ) from exc

    def _run(self, args: list[str]) -> Any:
        result = self._execute(args)
        if result.returncode != 0:
            raise ProviderCommandError(self._display(args), result.returncode, result.stderr or "")

        stdout = (result.stdout or "").strip()
        if not stdout:
            return None
        try:
            return json.loads(stdout)
        except json.JSONDecodeError as exc:
            raise ProviderCommandError(
                self._display(args),
                result.returncode,
                f"Could not parse JSON output: {exc}",
            ) from exc

    def get_identity(self) -> ProviderSession | None:
        result = self._execute(["account", "show"])
        if result.returncode != 0:
            logger.debug("az account show failed: %s", (result.stderr or "").strip())
            return None
        try:
            payload = json.loads(result.stdout or "{}")
        except json.JSONDecodeError:
            return None
        if not isinstance(payload, dict) or not payload:
            return None
        return ProviderSession.model_validate(payload)

    def resource_group_exists(self, name: str) -> bool:
        payload = self._run(["group", "exists", "--name", name])
        if isinstance(payload, bool):
            return payload
        return str(payload).strip().lower() == "true"

    def _deployment_args(
        self,
        action: str,
        *,
        resource_group: str,
        template_path: Path,
        parameters: dict[str, Any],
        deployment_name: str | None = None,
    ) -> list[str]:
        args = ["deployment", "group", action]
        if deployment_name:
            args += ["--name", deployment_name]
        args += [
            "--resource-group",
            resource_group,
            "--template-file",
            str(template_path),
            "--parameters",
            json.dumps(parameters, sort_keys=True),
        ]
        return args

    def validate_template(
        self,
        *,
        resource_group: str,
        template_path: Path,
        parameters: dict[str, Any],
    ) -> dict[str, Any]:
        payload = self._run(
            self._deployment_args(
                "validate",
                resource_group=resource_group,
                template_path=template_path,
                parameters=parameters,
            )
        )
        return payload if isinstance(payload, dict) else {}

    def apply_template(
        self,
        *,
        resource_group: str,
        deployment_name: str,
        template_path: Path,
        parameters: dict[str, Any],
    ) -> dict[str, Any]:
        logger.info("Submitting deployment %s to %s", deployment_name, resource_group)
        payload = self._run(
            self._deployment_args(
                "create",
                resource_group=resource_group,
                template_path=template_path,
                parameters=parameters,
                deployment_name=deployment_name,
            )
        )
        return payload if isinstance(payload, dict) else {}

    def describe_resource(
        self,
        *,
        kind: ResourceKind,
        name: str,
        resource_group: str,
    ) -> Any:
        if kind is ResourceKind.VIRTUAL_NETWORK:
            args = ["network", "vnet", "show", "--resource-group", resource_group, "--name", name]
        elif kind is ResourceKind.SUBNETS:
            args = [
                "network",
                "vnet",
                "subnet",
                "list",
                "--resource-group",
                resource_group,
                "--vnet-name",
                name,
            ]
        elif kind is ResourceKind.NETWORK_SECURITY_GROUP:
            args = ["network", "nsg", "show", "--resource-group", resource_group, "--name", name]
        else:  # pragma: no cover
            raise ValueError(f"Unsupported resource kind: {kind}")
        return self._run(args)


def build_provider_client(settings: AppSettings | None = None) -> ProviderClient:
    """Factory used by the CLI; tests replace it with a fake."""

    return AzureCliClient(settings)
