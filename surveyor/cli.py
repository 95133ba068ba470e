"""Typer CLI — headless scanning and planning commands."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

import typer
import yaml
from rich.console import Console
from rich.table import Table

from surveyor import __version__
from surveyor.models.errors import ConfigError, RuleSetError

app = typer.Typer(
    name="surveyor",
    help="Surveyor — tenant system scanner and onboarding action planner",
    no_args_is_help=True,
)
console = Console()

STATUS_STYLE = {"ok": "green", "failed": "red", "skipped": "yellow"}


def _setup_logging(verbose: bool = False, config_level: str | None = None) -> None:
    if verbose:
        level = logging.DEBUG
    elif config_level:
        level = getattr(logging, config_level.upper(), logging.INFO)
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _read_document(path: Path) -> Any:
    """Read a JSON or YAML file (YAML is a superset of JSON)."""
    try:
        with open(path, encoding="utf-8") as f:
            return yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        console.print(f"[red]Cannot read {path}: {e}[/]")
        raise typer.Exit(2) from e


def _load_ruleset(rules_file: Path | None, settings: Any):
    from surveyor.rules.loader import default_ruleset, load_ruleset

    path = rules_file or settings.rules.path
    try:
        return load_ruleset(path) if path else default_ruleset()
    except RuleSetError as e:
        console.print(f"[red]Invalid rule set:[/] {e}")
        raise typer.Exit(3) from e


def _print_plan(plan) -> None:
    table = Table(title=f"Action Plan ({plan.count} actions)")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Action", style="cyan")
    table.add_column("Type", style="green")
    table.add_column("Priority", justify="right")
    table.add_column("Features")
    table.add_column("Depends On", style="dim")
    for i, action in enumerate(plan.actions, 1):
        table.add_row(
            str(i), action.id, action.type, str(action.priority),
            ", ".join(sorted(action.target_feature_ids)),
            ", ".join(sorted(action.depends_on_action_ids)),
        )
    console.print(table)
    for d in plan.dropped:
        extra = f" by {d.conflicting_with}" if d.conflicting_with else ""
        console.print(f"  [dim]dropped {d.action_id}: {d.reason}{extra}[/]")


@app.command()
def scan(
    config_file: Path = typer.Argument(help="Scan config (JSON or YAML)"),
    settings_file: Path | None = typer.Option(None, "--settings", help="Path to settings YAML"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write the result as JSON"),
    plan: bool = typer.Option(False, "--plan", help="Also generate the action plan"),
    rules_file: Path | None = typer.Option(None, "--rules", help="Rule set YAML"),
    verbose: bool = typer.Option(False, "-v", "--verbose"),
):
    """Scan a tenant and print detected features."""
    from surveyor.config import Settings
    from surveyor.core.scanner import SystemScanner

    settings = Settings.load(settings_file)
    _setup_logging(verbose, settings.log_level if settings_file else None)

    payload = _read_document(config_file)
    scanner = SystemScanner(settings=settings)
    try:
        result = asyncio.run(scanner.scan(payload))
    except ConfigError as e:
        console.print(f"[red]{e}[/]")
        raise typer.Exit(2) from e

    console.print(
        f"[bold blue]Surveyor v{__version__}[/] — {result.tenant_id} ({result.industry}) "
        f"in {result.duration_ms:.0f}ms{' [red](timed out)[/]' if result.timed_out else ''}"
    )

    table = Table(title="Features")
    table.add_column("Feature", style="cyan")
    table.add_column("Category", style="green")
    table.add_column("Confidence", justify="right")
    table.add_column("Probe", style="dim")
    for f in result.features.values():
        table.add_row(f.id, f.category.value, f"{f.confidence:.2f}", f.source_probe)
    console.print(table)

    probes = Table(title="Probes")
    probes.add_column("Probe", style="cyan")
    probes.add_column("Status")
    probes.add_column("Duration", justify="right")
    probes.add_column("Error", style="dim")
    for d in result.diagnostics:
        style = STATUS_STYLE.get(d.status, "white")
        probes.add_row(d.probe_id, f"[{style}]{d.status}[/]", f"{d.duration_ms:.0f}ms", d.error or "")
    console.print(probes)

    body = result.to_payload()
    if plan:
        from surveyor.engine.generator import ActionGenerator

        action_plan = ActionGenerator(_load_ruleset(rules_file, settings)).generate_actions(
            result.features,
        )
        _print_plan(action_plan)
        body["plan"] = action_plan.to_payload()

    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(json.dumps(body, indent=2), encoding="utf-8")
        console.print(f"  Result: {output}")


@app.command(name="plan")
def plan_actions(
    features_file: Path = typer.Argument(help="Features (JSON or YAML): scan result or feature map"),
    rules_file: Path | None = typer.Option(None, "--rules", help="Rule set YAML"),
    as_json: bool = typer.Option(False, "--json", help="Print the plan as JSON"),
    verbose: bool = typer.Option(False, "-v", "--verbose"),
):
    """Generate the onboarding action plan for a set of features."""
    from surveyor.config import Settings
    from surveyor.engine.generator import ActionGenerator
    from surveyor.models.feature import FeatureSet

    _setup_logging(verbose)
    settings = Settings.load()
    try:
        features = FeatureSet.from_payload(_read_document(features_file) or {})
    except (TypeError, ValueError) as e:
        console.print(f"[red]Invalid features: {e}[/]")
        raise typer.Exit(2) from e

    action_plan = ActionGenerator(_load_ruleset(rules_file, settings)).generate_actions(features)
    if as_json:
        console.print_json(json.dumps(action_plan.to_payload()))
    else:
        _print_plan(action_plan)


@app.command(name="probes")
def list_probes(
    channel: str | None = typer.Option(None, help="Filter by channel tag"),
    integration: str | None = typer.Option(None, help="Filter by integration tag"),
):
    """List available probes."""
    from surveyor.core.registry import default_registry

    registry = default_registry()
    if channel:
        probes = registry.by_channel(channel)
    elif integration:
        probes = registry.by_integration(integration)
    else:
        probes = registry.all()

    table = Table(title="Surveyor Probes")
    table.add_column("Name", style="cyan")
    table.add_column("Category", style="green")
    table.add_column("Description")
    table.add_column("Scope", style="yellow")
    table.add_column("Requires", style="dim")

    for p in probes:
        scope = sorted(p.meta.channels | p.meta.integrations) or ["tenant"]
        table.add_row(
            p.meta.name,
            p.meta.category.value,
            p.meta.description or p.meta.display_name,
            ", ".join(scope),
            ", ".join(p.meta.requires),
        )

    console.print(table)


@app.command()
def rules(
    rules_file: Path | None = typer.Option(None, "--rules", help="Rule set YAML to validate"),
):
    """Validate and list a rule set."""
    from surveyor.config import Settings

    ruleset = _load_ruleset(rules_file, Settings.load())

    table = Table(title=f"Rules ({len(ruleset)})")
    table.add_column("Rule", style="cyan")
    table.add_column("Priority", justify="right")
    table.add_column("Action", style="green")
    table.add_column("Depends On", style="dim")
    table.add_column("Excludes", style="red")
    for rule in ruleset:
        table.add_row(
            rule.id, str(rule.priority), rule.produces.id,
            ", ".join(sorted(rule.depends_on)), ", ".join(sorted(rule.excludes)),
        )
    console.print(table)


@app.command()
def version():
    """Show version."""
    console.print(f"Surveyor v{__version__}")


def main() -> None:
    app()
