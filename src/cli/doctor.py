"""Doctor command for environment diagnostics."""

from __future__ import annotations

import os
import shutil
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from adapters.azure_cli import build_provider_client
from core.config import AppSettings, save_user_settings
from core.domain.errors import NotFoundError, ProviderCommandError
from core.domain.models import DEFAULT_ENVIRONMENT
from core.template_loader import resolve_templates

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


def _check_az(settings: AppSettings) -> tuple[bool, str]:
    located = shutil.which(settings.az_path)
    if located:
        return True, located
    return False, f"'{settings.az_path}' not found on PATH"


def _check_session(settings: AppSettings) -> tuple[bool, str]:
    client = build_provider_client(settings)
    try:
        session = client.get_identity()
    except ProviderCommandError as exc:
        return False, exc.stderr.strip() or str(exc)
    if session is None:
        return False, "Not logged in -> run `az login`"
    return True, f"{session.user.name or '<unknown>'} @ {session.subscription_name or session.subscription_id}"


def _check_outputs_dir(path: Path) -> tuple[bool, str]:
    target = path if path.exists() else path.parent
    if target.exists() and os.access(target, os.W_OK):
        return True, str(path)
    return False, f"{path} is not writable"


@app.command()
def run(
    environment: str = typer.Option(
        DEFAULT_ENVIRONMENT, "--environment", "-e", help="Environment whose parameters overlay to check."
    ),
) -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = AppSettings()

    table = Table(title="ATM-DEPLOY Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    ok_az, detail_az = _check_az(settings)
    table.add_row("Azure CLI", "OK" if ok_az else "FAIL", escape(detail_az))

    # Only ask for a session when the CLI can actually run.
    if ok_az:
        ok_session, detail_session = _check_session(settings)
        table.add_row("Session", "OK" if ok_session else "FAIL", escape(detail_session))
    else:
        table.add_row("Session", "SKIPPED", "Azure CLI unavailable")

    templates_dir = settings.templates_dir
    table.add_row(
        "Templates dir",
        "OK" if templates_dir.is_dir() else "FAIL",
        escape(str(templates_dir)),
    )

    try:
        templates = resolve_templates(settings=settings, environment=environment)
        table.add_row("Template", "OK", escape(str(templates.template_path)))
        table.add_row("Parameters", "OK", escape(str(templates.parameters_path)))
    except NotFoundError as exc:
        table.add_row("Template files", "FAIL", escape(exc.message))

    ok_out, detail_out = _check_outputs_dir(settings.outputs_dir)
    table.add_row("Outputs dir", "OK" if ok_out else "FAIL", escape(detail_out))

    _console.print(table)

    if not ok_az:
        _console.print(
            "\n[yellow]Note:[/yellow] install the Azure CLI or set ATM_DEPLOY_AZ_PATH to its location."
        )


@app.command()
def configure() -> None:
    """Interactive setup (stores answers in the per-user settings file)."""

    current = AppSettings()

    az_path = typer.prompt("Azure CLI executable", default=current.az_path, show_default=True).strip()
    templates_dir = typer.prompt(
        "Templates directory", default=str(current.templates_dir), show_default=True
    ).strip()
    outputs_dir = typer.prompt(
        "Outputs directory", default=str(current.outputs_dir), show_default=True
    ).strip()

    if not az_path or not templates_dir or not outputs_dir:
        raise typer.BadParameter("az path, templates directory and outputs directory are required")

    try:
        env_path = save_user_settings(
            {"az_path": az_path, "templates_dir": templates_dir, "outputs_dir": outputs_dir}
        )
    except ValidationError as exc:
        raise typer.BadParameter(str(exc)) from exc

    _console.print(f"[green]Saved config to:[/green] {escape(str(env_path))}")
