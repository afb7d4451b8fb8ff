"""CLI for portfolio-ai: inspect specialty catalogs and score drafts."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from portfolio_ai.analysis.lifecycle import ArtefactLifecycle
from portfolio_ai.analysis.templates import TemplateEngine
from portfolio_ai.core.config import AppSettings, ObservabilityConfig
from portfolio_ai.exceptions import ConfigError
from portfolio_ai.hooks.logging_config import setup_logging
from portfolio_ai.specialties.catalog import SpecialtyCatalog, build_catalog

app = typer.Typer(name="portfolio-ai", help="Clinical training portfolio artefact tooling")
catalog_app = typer.Typer(help="Specialty catalog commands")
app.add_typer(catalog_app, name="catalog")
console = Console()


@app.callback()
def main(
    log_level: str = typer.Option("WARNING", "--log-level", help="Log level"),
    json_logs: Optional[bool] = typer.Option(
        None,
        "--json-logs/--console-logs",
        help="Log renderer; auto-detected from the terminal when omitted",
    ),
) -> None:
    setup_logging(ObservabilityConfig(log_level=log_level, json_logs=json_logs))


def _load_catalog(extra: Optional[Path]) -> SpecialtyCatalog:
    settings = AppSettings()
    paths = list(settings.catalog.specialty_paths)
    if extra is not None:
        paths.append(extra)
    try:
        return build_catalog(
            auto_discover=settings.catalog.auto_discover,
            paths=paths,
            weight_tolerance=settings.catalog.weight_tolerance,
        )
    except ConfigError as e:
        console.print(f"[red]Invalid specialty config:[/red] {e}")
        raise typer.Exit(code=1) from e


@catalog_app.command("validate")
def validate(
    path: Path = typer.Argument(..., help="YAML/JSON specialty file or directory"),
) -> None:
    """Load and validate specialty config files without registering them anywhere."""
    catalog = SpecialtyCatalog()
    try:
        loaded = catalog.load_path(path)
    except ConfigError as e:
        console.print(f"[red]INVALID[/red] {e}")
        raise typer.Exit(code=1) from e

    if not loaded:
        console.print(f"[yellow]No specialty files found under {path}[/yellow]")
        raise typer.Exit(code=1)
    for specialty_id in loaded:
        config = catalog.get(specialty_id)
        console.print(
            f"[green]OK[/green] {config.id} ({config.name}): "
            f"{len(config.entry_types)} entry types, {len(config.templates)} templates, "
            f"{len(config.capabilities)} capabilities"
        )


@catalog_app.command("show")
def show(
    specialty: str = typer.Argument("gp", help="Specialty id"),
    config_path: Optional[Path] = typer.Option(None, "--config", help="Extra specialty file or directory"),
) -> None:
    """Show a specialty's entry types, templates and capabilities."""
    catalog = _load_catalog(config_path)
    try:
        config = catalog.get(specialty)
    except KeyError as e:
        console.print(f"[red]{e.args[0]}[/red]")
        raise typer.Exit(code=1) from e

    console.print(f"[bold]{config.name}[/bold] ({config.id})")

    entries = Table(title="Entry types")
    entries.add_column("Code", style="cyan")
    entries.add_column("Label")
    entries.add_column("Template")
    entries.add_column("Sections", justify="right")
    for entry in config.entry_types:
        template = config.templates[config.entry_type_to_template[entry.code]]
        entries.add_row(entry.code, entry.label, template.id, str(len(template.sections)))
    console.print(entries)

    capabilities = Table(title="Capabilities")
    capabilities.add_column("Code", style="cyan")
    capabilities.add_column("Name")
    capabilities.add_column("Domain")
    for capability in config.capabilities:
        capabilities.add_row(capability.code, capability.name, capability.domain_name or "")
    console.print(capabilities)


@app.command()
def score(
    specialty: str = typer.Argument(..., help="Specialty id"),
    entry_type: str = typer.Argument(..., help="Entry type code"),
    draft_file: Path = typer.Argument(..., help="JSON object of section id -> content"),
    threshold: Optional[float] = typer.Option(None, help="High-confidence threshold override"),
    config_path: Optional[Path] = typer.Option(None, "--config", help="Extra specialty file or directory"),
) -> None:
    """Score a draft against its template and show the status it would earn."""
    catalog = _load_catalog(config_path)
    try:
        template = catalog.template_for_entry_type(specialty, entry_type)
    except KeyError as e:
        console.print(f"[red]{e.args[0]}[/red]")
        raise typer.Exit(code=1) from e

    content = json.loads(draft_file.read_text(encoding="utf-8"))
    if not isinstance(content, dict):
        raise typer.BadParameter(f"Expected a JSON object in {draft_file}")
    content = {str(k): str(v) for k, v in content.items()}

    engine = TemplateEngine()
    result = engine.score(template, content)
    words, word_status = engine.word_count_status(template, content)
    if threshold is None:
        threshold = AppSettings().analysis.high_confidence_threshold
    status = ArtefactLifecycle(threshold, engine).evaluate(template, content)

    table = Table(title=f"{template.name} ({template.id})")
    table.add_column("Section", style="cyan")
    table.add_column("Required")
    table.add_column("Weight", justify="right")
    table.add_column("Filled")
    for section in template.sections:
        filled = bool(content.get(section.id, "").strip())
        table.add_row(
            section.id,
            "yes" if section.required else "",
            f"{section.weight:.2f}",
            "[green]yes[/green]" if filled else "[red]no[/red]",
        )
    console.print(table)
    console.print(f"Completeness: [bold]{result.completeness:.2f}[/bold]")
    if result.missing_required:
        console.print(f"Missing required: {', '.join(result.missing_required)}")
    word_range = template.word_count_range
    console.print(f"Words: {words} ({word_status} {word_range.min}-{word_range.max})")
    console.print(f"Status: [bold]{status.value}[/bold] ({status.label})")


if __name__ == "__main__":
    app()
