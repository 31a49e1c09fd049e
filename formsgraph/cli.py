"""Typer-based CLI for FormsGraph Oracle Forms migration analysis."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, NoReturn, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from . import __version__, config
from .config_manager import DEFAULT_ANALYSIS_CONFIG, load_analysis_config, save_analysis_config
from .errors import FormsGraphError
from .export import export_dot, export_json, export_sql
from .forms_xml import load_form_module
from .models import ExtractedUnit, FormAnalysis, HierarchyNode
from .orchestrator import AnalysisOrchestrator
from .parser import iter_source_files, units_by_name
from .triggers import trigger_label

console = Console()

app = typer.Typer(
    help="🧭 FormsGraph: Oracle Forms PL/SQL analysis and APEX migration planning.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(help="⚙️  Show or change analysis settings", no_args_is_help=True)
app.add_typer(config_app, name="config")

_IMPACT_COLORS = {"high": "red", "medium": "yellow", "low": "green"}
_SEVERITY_COLORS = {"CRITICAL": "red", "IMPORTANT": "yellow", "INFO": "cyan"}
_SUPPORT_COLORS = {"full": "green", "partial": "yellow", "manual": "red"}


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"FormsGraph v{__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    log = logging.getLogger("formsgraph")
    log.setLevel(logging.DEBUG if verbose else logging.WARNING)
    if not any(isinstance(handler, RichHandler) for handler in log.handlers):
        log.addHandler(RichHandler(console=Console(stderr=True), show_path=False))


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
):
    """FormsGraph: find program units, triggers, risks, and a migration plan."""
    _configure_logging(verbose)


def _fail(message: str) -> NoReturn:
    console.print(message, style="red", markup=False)
    raise typer.Exit(code=1)


def _is_form_xml(path: Path) -> bool:
    return path.suffix.lower() in config.FORM_EXTENSIONS


def _load_units(orchestrator: AnalysisOrchestrator, path: Path) -> List[ExtractedUnit]:
    """Extract units from a source file, exiting on failure."""
    result = orchestrator.process_file(path)
    if not result.ok:
        _fail(result.error)
    if not result.units:
        console.print(result.message, style="yellow", markup=False)
        raise typer.Exit(code=0)
    return result.units


def _analyze_form(orchestrator: AnalysisOrchestrator, path: Path) -> FormAnalysis:
    if not _is_form_xml(path):
        return orchestrator.analyze_units_as_form(_load_units(orchestrator, path), path.stem)
    try:
        return orchestrator.analyze_form_xml(path)
    except FormsGraphError as exc:
        _fail(str(exc))


def _colored(value: str, colors: dict) -> str:
    color = colors.get(value, "white")
    return f"[{color}]{value}[/{color}]"


def _print_units(title: str, units: List[ExtractedUnit]) -> None:
    table = Table(title=f"Program units in {title}", show_header=True)
    table.add_column("Name", style="cyan")
    table.add_column("Type")
    table.add_column("Lines", justify="right")
    table.add_column("Tables")
    table.add_column("Built-ins", justify="right")
    table.add_column("Patterns", justify="right")

    for unit in units:
        patterns = unit.semantic_patterns.patterns if unit.semantic_patterns else []
        table.add_row(
            unit.name,
            unit.type,
            f"{unit.start_line}-{unit.end_line}",
            ", ".join(unit.dependencies.tables) or "-",
            str(len(unit.commented_builtins)),
            str(len(patterns)),
        )
    console.print(table)


@app.command("units")
def list_units(
    source: Path = typer.Argument(..., exists=True, help="PL/SQL source file or directory."),
):
    """List the procedures and functions found in a PL/SQL file or directory tree."""
    orchestrator = AnalysisOrchestrator.from_config()
    if not source.is_dir():
        units = _load_units(orchestrator, source)
        _print_units(source.name, units)
        typer.echo(f"{len(units)} unit(s) found.")
        return

    files = list(iter_source_files(source, config.SUPPORTED_EXTENSIONS))
    if not files:
        console.print(f"No PL/SQL files found under {source}", style="yellow", markup=False)
        return

    total = 0
    for path in files:
        result = orchestrator.process_file(path)
        if not result.ok:
            console.print(result.error, style="red", markup=False)
        elif not result.units:
            console.print(result.message, style="yellow", markup=False)
        else:
            _print_units(str(path.relative_to(source)), result.units)
            total += len(result.units)
    typer.echo(f"{total} unit(s) found in {len(files)} file(s).")


@app.command("patterns")
def show_patterns(
    source: Path = typer.Argument(..., exists=True, dir_okay=False, help="PL/SQL source file."),
    unit_name: Optional[str] = typer.Option(None, "--unit", "-u", help="Only this unit."),
):
    """Show semantic migration-risk patterns per unit."""
    orchestrator = AnalysisOrchestrator.from_config()
    units = _load_units(orchestrator, source)
    if unit_name:
        unit = units_by_name(units).get(unit_name.upper())
        if unit is None:
            _fail(f"Unit '{unit_name}' not found in {source.name}.")
        units = [unit]

    for unit in units:
        result = unit.semantic_patterns
        if result is None or not result.patterns:
            console.print(f"[bold]{unit.name}[/bold]: [green]no patterns detected[/green]")
            continue

        table = Table(title=f"{unit.name} ({unit.type})", show_header=True)
        table.add_column("Pattern", style="cyan")
        table.add_column("Severity")
        table.add_column("Lines")
        table.add_column("APEX consideration")
        for pattern in result.patterns:
            table.add_row(
                pattern.label,
                _colored(pattern.severity, _SEVERITY_COLORS),
                ", ".join(str(n) for n in pattern.line_numbers),
                pattern.apex_consideration,
            )
        console.print(table)
        summary = result.summary
        typer.echo(
            f"  critical: {summary['critical']}, important: {summary['important']}, info: {summary['info']}"
        )


@app.command("form")
def show_form(
    source: Path = typer.Argument(..., exists=True, dir_okay=False, help="Forms XML export or PL/SQL library."),
):
    """Classify program units and map triggers to APEX."""
    analysis = _analyze_form(AnalysisOrchestrator.from_config(), source)

    units = Table(title=f"Program units of {analysis.form_name}", show_header=True)
    units.add_column("Name", style="cyan")
    units.add_column("Classification")
    units.add_column("Impact")
    units.add_column("Complexity", justify="right")
    units.add_column("Main")
    for unit in analysis.program_units:
        units.add_row(
            unit.name,
            unit.classification,
            _colored(unit.impact_score, _IMPACT_COLORS),
            str(unit.complexity),
            "★" if unit.is_main_function else "",
        )
    console.print(units)

    if not analysis.triggers:
        typer.echo("No triggers.")
        return

    triggers = Table(title="Trigger mapping", show_header=True)
    triggers.add_column("Trigger", style="cyan")
    triggers.add_column("Classification")
    triggers.add_column("APEX target")
    triggers.add_column("Point")
    triggers.add_column("Support")
    for trigger in analysis.triggers:
        triggers.add_row(
            trigger_label(trigger.name, trigger.block_name, trigger.item_name),
            trigger.classification,
            trigger.apex_target.type,
            trigger.apex_target.point or "-",
            _colored(trigger.apex_target.support_level, _SUPPORT_COLORS),
        )
    console.print(triggers)


def _add_nodes(branch: Tree, nodes: List[HierarchyNode]) -> None:
    for node in nodes:
        icon = "⚡" if node.type == "trigger" else "📦"
        color = _IMPACT_COLORS.get(node.impact_score, "white")
        child = branch.add(
            f"{icon} [bold]{node.name}[/bold] [dim]{node.classification}[/dim] [{color}]{node.impact_score}[/{color}]"
        )
        _add_nodes(child, node.children)


@app.command("hierarchy")
def show_hierarchy(
    source: Path = typer.Argument(..., exists=True, dir_okay=False, help="Forms XML export or PL/SQL library."),
):
    """Render the form logic hierarchy as a tree."""
    analysis = _analyze_form(AnalysisOrchestrator.from_config(), source)
    hierarchy = analysis.hierarchy

    root = Tree(f"[bold]{analysis.form_name}[/bold]")
    for title, nodes in (
        ("Entry Points", hierarchy.entry_points),
        ("Core Business Controllers", hierarchy.core_business_controllers),
        ("Supporting Utilities", hierarchy.supporting_utilities),
        ("UI Glue Logic", hierarchy.ui_glue_logic),
    ):
        branch = root.add(f"[cyan]{title}[/cyan] ({len(nodes)})")
        _add_nodes(branch, nodes)
    console.print(root)


@app.command("readiness")
def show_readiness(
    source: Path = typer.Argument(..., exists=True, dir_okay=False, help="Forms XML export or PL/SQL library."),
):
    """Summarize migration complexity, critical risks, and priorities."""
    analysis = _analyze_form(AnalysisOrchestrator.from_config(), source)
    readiness = analysis.readiness

    console.print(
        Panel.fit(
            f"Overall complexity: [bold]{readiness.overall_complexity}/10[/bold]\n"
            f"Program units: {readiness.total_program_units} "
            f"(high {readiness.high_complexity_units}, "
            f"medium {readiness.medium_complexity_units}, "
            f"low {readiness.low_complexity_units})\n"
            f"Estimated effort: [bold]{readiness.estimated_effort}[/bold]",
            title=f"[bold]Migration readiness: {analysis.form_name}[/bold]",
            border_style="cyan",
        )
    )

    if readiness.critical_risks:
        risks = Table(title="Critical risks", show_header=True)
        risks.add_column("Unit", style="cyan")
        risks.add_column("Risk")
        risks.add_column("Severity")
        risks.add_column("Description")
        for risk in readiness.critical_risks:
            risks.add_row(risk.unit_name, risk.risk_type, _colored(risk.severity, _IMPACT_COLORS), risk.description)
        console.print(risks)

    if readiness.priority_list:
        plan = Table(title="Priority list", show_header=True)
        plan.add_column("#", justify="right")
        plan.add_column("Unit", style="cyan")
        plan.add_column("Hours", justify="right")
        plan.add_column("Reason")
        for item in readiness.priority_list:
            plan.add_row(str(item.priority), item.unit_name, str(item.estimated_hours), item.reason)
        console.print(plan)


@app.command("export")
def export(
    source: Path = typer.Argument(..., exists=True, dir_okay=False, help="Forms XML export or PL/SQL file."),
    format: str = typer.Option("json", "--format", "-f", help="json, dot, or sql."),
    output: Path = typer.Option(..., "--output", "-o", help="Output file path."),
):
    """Export analysis results to JSON, Graphviz DOT, or APEX-safe SQL."""
    fmt = format.lower()
    if fmt not in {"json", "dot", "sql"}:
        raise typer.BadParameter("--format must be one of: json, dot, sql")

    orchestrator = AnalysisOrchestrator.from_config()
    output.parent.mkdir(parents=True, exist_ok=True)

    if fmt == "sql":
        if _is_form_xml(source):
            try:
                module = load_form_module(source)
            except FormsGraphError as exc:
                _fail(str(exc))
            units = orchestrator.parse_source("\n".join(pu.text for pu in module.program_units), source.name)
        else:
            units = _load_units(orchestrator, source)
        export_sql(units, output)
    elif fmt == "dot":
        export_dot(_analyze_form(orchestrator, source).hierarchy, output)
    elif _is_form_xml(source):
        export_json(_analyze_form(orchestrator, source), output)
    else:
        export_json(_load_units(orchestrator, source), output)

    typer.echo(f"Exported {fmt.upper()} to {output}")


@config_app.command("show")
def config_show():
    """Show the effective analysis settings."""
    settings = load_analysis_config(config.CONFIG_FILE)
    table = Table(title=f"Analysis settings ({config.CONFIG_FILE})", show_header=True)
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    table.add_column("Default", style="dim")
    for key, value in settings.items():
        table.add_row(key, str(value), str(DEFAULT_ANALYSIS_CONFIG[key]))
    console.print(table)


@config_app.command("set")
def config_set(
    key: str = typer.Argument(..., help="Setting name, e.g. priority_limit."),
    value: str = typer.Argument(..., help="New value."),
):
    """Persist one analysis setting to config.toml."""
    try:
        section = save_analysis_config(config.CONFIG_FILE, key, value)
    except FormsGraphError as exc:
        _fail(str(exc))
    typer.echo(f"Set {key} = {section[key]}")


if __name__ == "__main__":
    app()
