"""Network deployment orchestration.

The whole workflow is one linear pipeline:

    init -> authenticating -> checking_precondition -> resolving -> dispatching
         -> validated -> done
         -> deployed -> verifying -> done

Any fatal error moves the run to `aborted` and re-raises the categorized
exception. The CLI (or any other entry-point) owns printing and exit codes;
this module only reports progress through `PipelineHooks`.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

from pydantic import ValidationError

from adapters.json_exporter import export_outputs_json
from core.config import AppSettings
from core.domain.errors import (
    AuthError,
    DeploymentError,
    DeploymentWorkflowError,
    MalformedResponseError,
    PersistenceError,
    PreconditionError,
    ProviderCommandError,
)
from core.domain.models import (
    DeploymentOutputs,
    DeploymentRequest,
    DeploymentState,
    ProviderSession,
    TemplateReference,
    ValidationReport,
    VerificationResult,
    VerificationWarning,
)
from core.interfaces.provider import ProviderClient
from core.services.verification import verify_network
from core.template_loader import build_parameters, resolve_templates

logger = logging.getLogger(__name__)

# Azure Resource Manager limit for deployment names.
MAX_DEPLOYMENT_NAME = 64


@dataclass
class PipelineHooks:
    """Optional callbacks for UI layers (progress, warnings)."""

    state_changed: Callable[[DeploymentState], None] | None = None
    warning: Callable[[VerificationWarning], None] | None = None


@dataclass
class DeploymentResult:
    """Output of a successful pipeline invocation."""

    state: DeploymentState
    request: DeploymentRequest
    session: ProviderSession
    templates: TemplateReference
    parameters: dict[str, dict[str, Any]]
    deployment_name: str | None = None
    outputs: DeploymentOutputs | None = None
    output_path: Path | None = None
    validation: ValidationReport | None = None
    verification: list[VerificationResult] = field(default_factory=list)
    warnings: list[VerificationWarning] = field(default_factory=list)
    states: list[DeploymentState] = field(default_factory=list)


class _StateTracker:
    def __init__(self, hooks: PipelineHooks) -> None:
        self._hooks = hooks
        self.history: list[DeploymentState] = [DeploymentState.INIT]

    @property
    def current(self) -> DeploymentState:
        return self.history[-1]

    def enter(self, state: DeploymentState) -> None:
        logger.debug("State %s -> %s", self.current.value, state.value)
        self.history.append(state)
        if self._hooks.state_changed:
            self._hooks.state_changed(state)


def make_deployment_name(prefix: str, environment: str, *, now: datetime | None = None) -> str:
    """`<prefix>-<environment>-<UTC yyyymmddHHMMSS>`, clipped to the ARM limit."""

    stamp = (now or datetime.now(timezone.utc)).strftime("%Y%m%d%H%M%S")
    head = f"{prefix}-{environment}"[: MAX_DEPLOYMENT_NAME - len(stamp) - 1]
    return f"{head}-{stamp}"


def _authenticate(client: ProviderClient) -> ProviderSession:
    try:
        session = client.get_identity()
    except ProviderCommandError as exc:
        raise AuthError("Could not query the provider session.", provider_message=exc.stderr) from exc
    if session is None:
        raise AuthError("No authenticated provider session. Run `az login` first.")
    logger.info(
        "Authenticated as %s (subscription %s)",
        session.user.name or "<unknown>",
        session.subscription_name or session.subscription_id,
    )
    return session


def _check_resource_group(client: ProviderClient, name: str) -> None:
    try:
        exists = client.resource_group_exists(name)
    except ProviderCommandError as exc:
        raise PreconditionError(
            f"Could not check resource group '{name}'.", provider_message=exc.stderr
        ) from exc
    if not exists:
        raise PreconditionError(
            f"Resource group '{name}' does not exist. Create it before deploying the network."
        )


def _provider_error_text(payload: dict[str, Any]) -> str | None:
    error = payload.get("error")
    if not error:
        return None
    return json.dumps(error, indent=2, sort_keys=True)


def extract_outputs(response: dict[str, Any]) -> DeploymentOutputs:
    """Pull the required outputs out of a `deployment group create` response."""

    properties = response.get("properties") if isinstance(response, dict) else None
    outputs = properties.get("outputs") if isinstance(properties, dict) else None
    if not isinstance(outputs, dict):
        raise MalformedResponseError("Deployment response has no `properties.outputs` object.")

    missing = DeploymentOutputs.missing_keys(outputs)
    if missing:
        raise MalformedResponseError(
            "Deployment response is missing required outputs: " + ", ".join(missing)
        )

    try:
        return DeploymentOutputs.model_validate(outputs)
    except ValidationError as exc:
        raise MalformedResponseError(
            "Deployment outputs have an unexpected shape.", provider_message=str(exc)
        ) from exc


def _validate(
    *,
    client: ProviderClient,
    request: DeploymentRequest,
    templates: TemplateReference,
    parameters: dict[str, dict[str, Any]],
) -> ValidationReport:
    try:
        payload = client.validate_template(
            resource_group=request.resource_group_name,
            template_path=templates.template_path,
            parameters=parameters,
        )
    except ProviderCommandError as exc:
        raise DeploymentError("Template validation failed.", provider_message=exc.stderr) from exc

    error_text = _provider_error_text(payload)
    if error_text:
        raise DeploymentError("Template validation failed.", provider_message=error_text)
    return ValidationReport.from_payload(payload)


def _apply(
    *,
    client: ProviderClient,
    request: DeploymentRequest,
    templates: TemplateReference,
    parameters: dict[str, dict[str, Any]],
    deployment_name: str,
) -> dict[str, Any]:
    try:
        payload = client.apply_template(
            resource_group=request.resource_group_name,
            deployment_name=deployment_name,
            template_path=templates.template_path,
            parameters=parameters,
        )
    except ProviderCommandError as exc:
        raise DeploymentError(
            f"Deployment '{deployment_name}' failed.", provider_message=exc.stderr
        ) from exc

    error_text = _provider_error_text(payload)
    if error_text:
        raise DeploymentError(f"Deployment '{deployment_name}' failed.", provider_message=error_text)

    properties = payload.get("properties") if isinstance(payload, dict) else None
    state = properties.get("provisioningState") if isinstance(properties, dict) else None
    if state and state != "Succeeded":
        raise DeploymentError(
            f"Deployment '{deployment_name}' finished with provisioning state '{state}'."
        )
    return payload


def run_deployment(
    *,
    settings: AppSettings,
    request: DeploymentRequest,
    client: ProviderClient,
    hooks: PipelineHooks | None = None,
    now: datetime | None = None,
) -> DeploymentResult:
    """Run the network deployment workflow end to end.

    Raises a `DeploymentWorkflowError` subclass on the first fatal error.
    Verification problems are returned as warnings on the result.
    """

    hooks = hooks or PipelineHooks()
    tracker = _StateTracker(hooks)

    try:
        tracker.enter(DeploymentState.AUTHENTICATING)
        session = _authenticate(client)

        tracker.enter(DeploymentState.CHECKING_PRECONDITION)
        _check_resource_group(client, request.resource_group_name)

        tracker.enter(DeploymentState.RESOLVING)
        templates = resolve_templates(settings=settings, environment=request.environment)
        parameters = build_parameters(request=request, parameters_path=templates.parameters_path)
        logger.info(
            "Using template %s with parameters %s",
            templates.template_path,
            templates.parameters_path,
        )

        tracker.enter(DeploymentState.DISPATCHING)
        if request.validate_only:
            validation = _validate(
                client=client, request=request, templates=templates, parameters=parameters
            )
            tracker.enter(DeploymentState.VALIDATED)
            tracker.enter(DeploymentState.DONE)
            return DeploymentResult(
                state=DeploymentState.VALIDATED,
                request=request,
                session=session,
                templates=templates,
                parameters=parameters,
                validation=validation,
                states=list(tracker.history),
            )

        deployment_name = make_deployment_name(
            settings.deployment_name_prefix, request.environment, now=now
        )
        response = _apply(
            client=client,
            request=request,
            templates=templates,
            parameters=parameters,
            deployment_name=deployment_name,
        )
        outputs = extract_outputs(response)
        tracker.enter(DeploymentState.DEPLOYED)

        target = settings.outputs_path_for(request.environment)
        try:
            output_path = export_outputs_json(outputs=outputs, output_path=target)
        except OSError as exc:
            raise PersistenceError(
                f"Could not write deployment outputs to {target}.", provider_message=str(exc)
            ) from exc
        logger.info("Deployment outputs written to %s", output_path)
    except DeploymentWorkflowError as exc:
        logger.debug("Aborting in state %s: %s", tracker.current.value, exc.category)
        tracker.enter(DeploymentState.ABORTED)
        raise

    tracker.enter(DeploymentState.VERIFYING)
    report = verify_network(
        client=client,
        resource_group=request.resource_group_name,
        outputs=outputs,
    )
    if hooks.warning:
        for warning in report.warnings:
            hooks.warning(warning)
    tracker.enter(DeploymentState.DONE)

    return DeploymentResult(
        state=DeploymentState.DEPLOYED,
        request=request,
        session=session,
        templates=templates,
        parameters=parameters,
        deployment_name=deployment_name,
        outputs=outputs,
        output_path=output_path,
        verification=report.results,
        warnings=report.warnings,
        states=list(tracker.history),
    )
