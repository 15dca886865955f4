"""`atm-deploy` command line.

Commands:
- `deploy`  validate or apply the network template, store outputs, verify
- `outputs` print a stored outputs file
- `doctor`  environment diagnostics and configuration
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, List, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from adapters.azure_cli import build_provider_client
from adapters.json_exporter import load_outputs_json
from cli import doctor
from cli.ui_components import build_outputs_table, print_banner, print_result
from core.config import AppSettings
from core.domain.errors import DeploymentWorkflowError, NotFoundError, PersistenceError
from core.domain.models import DEFAULT_ENVIRONMENT, DeploymentRequest, DeploymentState, VerificationWarning
from core.logger import setup_logger
from core.services.deployment_pipeline import PipelineHooks, run_deployment

app = typer.Typer(
    no_args_is_help=True,
    help="Deploy the ATM banking demo network (VNet, subnets, NSGs) to Azure.",
)
app.add_typer(doctor.app, name="doctor")

_console = Console(highlight=False)
_err_console = Console(stderr=True, highlight=False)


def parse_parameter(raw: str) -> tuple[str, Any]:
    """`key=value`; the value is decoded as JSON when it parses, else kept as text."""

    if "=" not in raw:
        raise typer.BadParameter(f"expected key=value, got {raw!r}", param_hint="--parameter")
    key, value = raw.split("=", 1)
    key = key.strip()
    if not key:
        raise typer.BadParameter(f"missing parameter name in {raw!r}", param_hint="--parameter")
    try:
        return key, json.loads(value)
    except json.JSONDecodeError:
        return key, value


def _settings_with(**overrides: Any) -> AppSettings:
    settings = AppSettings()
    update = {k: v for k, v in overrides.items() if v is not None}
    return settings.model_copy(update=update) if update else settings


@app.command()
def deploy(
    resource_group: str = typer.Option(..., "--resource-group", "-g", help="Existing resource group."),
    location: str = typer.Option(..., "--location", "-l", help="Azure region, e.g. 'East US'."),
    environment: str = typer.Option(
        DEFAULT_ENVIRONMENT, "--environment", "-e", help="Parameters overlay and outputs file suffix."
    ),
    validate_only: bool = typer.Option(
        False, "--validate-only", help="Dry-run validation; nothing is created or written."
    ),
    parameter: Optional[List[str]] = typer.Option(
        None, "--parameter", "-p", help="Extra template parameter as key=value (repeatable)."
    ),
    templates_dir: Optional[Path] = typer.Option(None, "--templates-dir", help="Override templates directory."),
    outputs_dir: Optional[Path] = typer.Option(None, "--outputs-dir", help="Override outputs directory."),
    debug: bool = typer.Option(False, "--debug", help="Verbose logging."),
    no_banner: bool = typer.Option(False, "--no-banner", help="Skip the banner."),
) -> None:
    """Validate or deploy the network template."""

    settings = _settings_with(
        templates_dir=templates_dir,
        outputs_dir=outputs_dir,
        debug=True if debug else None,
    )
    setup_logger(debug=settings.debug)

    overrides = dict(parse_parameter(raw) for raw in parameter or [])
    try:
        request = DeploymentRequest(
            resource_group_name=resource_group,
            location=location,
            environment=environment,
            validate_only=validate_only,
            parameter_overrides=overrides,
        )
    except ValidationError as exc:
        messages = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        raise typer.BadParameter(messages) from exc

    if not no_banner:
        print_banner(_console)

    def on_state(state: DeploymentState) -> None:
        _console.print(f"[dim]-> {state.value}[/dim]")

    def on_warning(warning: VerificationWarning) -> None:
        _err_console.print(
            f"[yellow]{escape('[VerificationWarning]')}[/yellow] "
            f"{escape(warning.resource)}: {escape(warning.message)}"
        )

    client = build_provider_client(settings)
    try:
        result = run_deployment(
            settings=settings,
            request=request,
            client=client,
            hooks=PipelineHooks(state_changed=on_state, warning=on_warning),
        )
    except DeploymentWorkflowError as exc:
        _err_console.print(f"[red]{escape(exc.describe())}[/red]")
        raise typer.Exit(code=exc.exit_code) from exc

    print_result(_console, result)
    status = "Validated" if result.state is DeploymentState.VALIDATED else "Deployed"
    _console.print(f"[bold green]{status}[/bold green] environment '{escape(request.environment)}'.")


@app.command()
def outputs(
    environment: str = typer.Option(DEFAULT_ENVIRONMENT, "--environment", "-e"),
    outputs_dir: Optional[Path] = typer.Option(None, "--outputs-dir"),
    raw: bool = typer.Option(False, "--json", help="Print the file as JSON."),
) -> None:
    """Print the stored outputs of a previous deployment."""

    settings = _settings_with(outputs_dir=outputs_dir)
    path = settings.outputs_path_for(environment)
    if not path.is_file():
        error = NotFoundError(f"No outputs stored for environment '{environment}': {path}")
        _err_console.print(f"[red]{escape(error.describe())}[/red]")
        raise typer.Exit(code=error.exit_code)

    try:
        document = load_outputs_json(path)
    except (OSError, ValueError) as exc:
        error = PersistenceError(f"Stored outputs file {path} is unreadable.", provider_message=str(exc))
        _err_console.print(f"[red]{escape(error.describe())}[/red]")
        raise typer.Exit(code=error.exit_code) from exc
    if raw:
        typer.echo(json.dumps(document, indent=2, sort_keys=True))
        return
    _console.print(build_outputs_table(document, title=f"Outputs ({environment})"))


def run() -> None:
    app()
