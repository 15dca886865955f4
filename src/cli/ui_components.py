"""Rich UI components for the CLI.

Why separate components:
- Keeps command logic apart from presentation details.
- The same tables render fresh results (`deploy`) and stored ones (`outputs`).
"""

from __future__ import annotations

from typing import Any

from rich.align import Align
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.domain.models import ValidationReport, VerificationResult, VerificationWarning
from core.services.deployment_pipeline import DeploymentResult


def print_banner(console: Console) -> None:
    """Welcome banner. Skipped with `--no-banner` for pipelines."""

    title = Text("ATM-DEPLOY", style="bold cyan")
    subtitle = Text("Bank ATM demo • Azure network layer", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def _render_value(value: Any) -> str:
    if isinstance(value, dict):
        if "name" in value and "addressPrefix" in value:
            return f"{value['name']} ({value['addressPrefix']})"
        return ", ".join(f"{k}={v}" for k, v in sorted(value.items()))
    return str(value)


def build_outputs_table(document: dict[str, Any], *, title: str = "Deployment Outputs") -> Table:
    """Table for an outputs document keyed by template output name."""

    table = Table(title=title)
    table.add_column("Output", style="cyan", no_wrap=True)
    table.add_column("Type", style="dim")
    table.add_column("Value", style="white")
    for name in sorted(document):
        entry = document[name]
        if isinstance(entry, dict) and "value" in entry:
            table.add_row(name, str(entry.get("type", "")), escape(_render_value(entry["value"])))
        else:
            table.add_row(name, "", escape(_render_value(entry)))
    return table


def build_verification_table(results: list[VerificationResult]) -> Table:
    table = Table(title="Post-deployment Verification")
    table.add_column("Resource", style="cyan", no_wrap=True)
    table.add_column("Name", style="white")
    table.add_column("Exists", style="green")
    table.add_column("Shape", style="green")
    table.add_column("Details", style="dim")
    for result in results:
        table.add_row(
            result.kind.label(),
            escape(result.name),
            "yes" if result.exists else "[red]no[/red]",
            "ok" if result.shape_matches else "[yellow]mismatch[/yellow]",
            escape(result.detail),
        )
    return table


def build_validation_panel(report: ValidationReport) -> Panel:
    """Dry-run diagnostics."""

    body = Text()
    body.append(f"Provisioning state: {report.provisioning_state or 'unknown'}\n")
    body.append(f"Validated resources: {len(report.validated_resources)}\n")
    for resource_id in report.validated_resources:
        body.append(f"- {resource_id}\n", style="dim")
    return Panel(body, title=Text("Validated", style="bold green"), border_style="green")


def build_warnings_panel(warnings: list[VerificationWarning]) -> Panel:
    body = Text()
    for warning in warnings:
        body.append(f"- {warning.resource}: ", style="bold")
        body.append(f"{warning.message}\n")
    return Panel(
        body,
        title=Text(f"VerificationWarning ({len(warnings)})", style="bold yellow"),
        border_style="yellow",
    )


def print_result(console: Console, result: DeploymentResult) -> None:
    if result.validation is not None:
        console.print(build_validation_panel(result.validation))
        return

    if result.outputs is not None:
        console.print(build_outputs_table(result.outputs.to_document()))
    if result.verification:
        console.print(build_verification_table(result.verification))
    if result.warnings:
        console.print(build_warnings_panel(result.warnings))
    if result.output_path is not None:
        console.print(f"[green]Outputs written to:[/green] {escape(str(result.output_path))}")
