"""DialogForge CLI - typer application entry point."""

from __future__ import annotations

import atexit
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table
from rich.text import Text

from dialogforge.observability import close_file_logging, configure_logging, get_logger

if TYPE_CHECKING:
    from dialogforge.config import ProjectConfig
    from dialogforge.models.dialog import DialogGraph

# Load environment variables from .env file
load_dotenv()

app = typer.Typer(
    name="dialogforge",
    help="DialogForge: branching NPC dialogs compiled to Ren'Py scripts.",
    no_args_is_help=True,
)
console = Console()
log = get_logger(__name__)

_SEVERITY_STYLE = {
    "pass": "[green]✓[/green]",
    "warn": "[yellow]![/yellow]",
    "fail": "[red]✗[/red]",
}

# Global state for logging flags (set by callback, used by commands)
_verbose: int = 0
_log_enabled: bool = False


@app.callback()
def main(
    verbose: Annotated[
        int,
        typer.Option(
            "-v",
            "--verbose",
            count=True,
            help="Increase verbosity: -v for INFO, -vv for DEBUG.",
        ),
    ] = 0,
    log: Annotated[
        bool,
        typer.Option("--log", help="Enable file logging to {project}/logs/debug.jsonl."),
    ] = False,
) -> None:
    """DialogForge: branching NPC dialogs compiled to Ren'Py scripts."""
    global _verbose, _log_enabled
    _verbose = verbose
    _log_enabled = log

    # Console logging only; file logging is configured once the project is known
    configure_logging(verbosity=verbose)


def _configure_project_logging(project_path: Path) -> None:
    """Configure file logging if --log flag was set."""
    if _log_enabled:
        configure_logging(verbosity=_verbose, log_to_file=True, log_dir=project_path)
        atexit.register(close_file_logging)


def _load_config(project_path: Path) -> ProjectConfig:
    """Load dialogforge.yaml, or defaults when the directory has none."""
    from dialogforge.config import (
        CONFIG_FILENAME,
        ProjectConfigError,
        create_default_config,
        load_project_config,
    )

    if not (project_path / CONFIG_FILENAME).exists():
        return create_default_config(project_path.absolute().name)
    try:
        return load_project_config(project_path)
    except ProjectConfigError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None


def _load_graph(dialog_file: Path) -> DialogGraph:
    """Read a dialog file and apply root repair."""
    from dialogforge.graph.store import repair_root
    from dialogforge.storage import DialogFileError, load_dialog

    try:
        graph = load_dialog(dialog_file)
    except DialogFileError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None

    repair_root(graph)
    return graph


ProjectOption = Annotated[
    Path,
    typer.Option("--project", "-p", help="Project directory (default: current directory)."),
]


# =============================================================================
# Commands
# =============================================================================


@app.command()
def version() -> None:
    """Show version information."""
    from dialogforge import __version__

    console.print(f"DialogForge v{__version__}")


@app.command()
def init(
    path: Annotated[Path, typer.Argument(help="Project directory to create or initialize")],
    dialog_id: Annotated[
        str | None,
        typer.Option("--dialog-id", help="ID of the starter dialog (default: generated)."),
    ] = None,
) -> None:
    """Initialize a dialog project.

    Creates the project structure:
    - dialogforge.yaml: Project configuration
    - <records_dir>/: Character and scene records
    - dialogs/: Dialog files, starting with one empty dialog
    """
    from dialogforge.config import CONFIG_FILENAME, create_default_config, write_project_config
    from dialogforge.models.dialog import new_dialog
    from dialogforge.storage import dialog_file_path, save_dialog

    if (path / CONFIG_FILENAME).exists():
        console.print(f"[red]Error:[/red] '{path / CONFIG_FILENAME}' already exists")
        raise typer.Exit(1)

    path.mkdir(parents=True, exist_ok=True)
    config = create_default_config(path.absolute().name)
    write_project_config(config, path)
    config.resolve(path, config.records_dir).mkdir(parents=True, exist_ok=True)

    dialog = new_dialog(dialog_id=dialog_id)
    dialog_file = save_dialog(dialog, dialog_file_path(path / "dialogs", dialog.id))

    console.print(f"[green]✓[/green] Initialized project: [bold]{config.name}[/bold]")
    console.print(f"  Location: {path.absolute()}")
    console.print(f"  Dialog: {dialog_file}")


@app.command("compile")
def compile_dialog(
    dialog_file: Annotated[Path, typer.Argument(help="Dialog JSON file")],
    export_format: Annotated[
        str,
        typer.Option("--format", "-f", help="Export format: renpy or json."),
    ] = "renpy",
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Output directory (default: output_dir from config)."),
    ] = None,
    project: ProjectOption = Path(),
) -> None:
    """Compile a dialog to a script (or re-export it as JSON)."""
    from dialogforge.export import ExportContext, get_exporter
    from dialogforge.storage import DirectoryRecords

    _configure_project_logging(project)
    config = _load_config(project)

    try:
        exporter = get_exporter(export_format)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None

    graph = _load_graph(dialog_file)
    records = DirectoryRecords(config.resolve(project, config.records_dir))
    output_dir = output if output is not None else config.resolve(project, config.output_dir)

    context = ExportContext(graph=graph, records=records, compiler=config.compiler)
    output_file = exporter.export(context, output_dir)

    console.print(f"[green]✓[/green] Exported {len(graph.nodes)} nodes as {exporter.format_name}")
    console.print(f"  Output: {output_file}")


@app.command()
def inspect(
    dialog_file: Annotated[Path, typer.Argument(help="Dialog JSON file")],
    node_id: Annotated[str, typer.Argument(help="Node to inspect")],
    project: ProjectOption = Path(),
) -> None:
    """Show the path, variables and context that lead to a node."""
    from dialogforge.graph.context import build_prompt_context
    from dialogforge.graph.errors import NodeNotFoundError
    from dialogforge.graph.paths import get_node_path
    from dialogforge.storage import DirectoryRecords

    _configure_project_logging(project)
    config = _load_config(project)
    graph = _load_graph(dialog_file)

    if node_id not in graph.nodes:
        error = NodeNotFoundError(node_id, operation="inspect", available=list(graph.nodes))
        console.print(f"[red]Error:[/red] {error}")
        raise typer.Exit(1)

    path = get_node_path(graph, graph.root_node_id, node_id)
    records = DirectoryRecords(config.resolve(project, config.records_dir))
    context = build_prompt_context(graph, node_id, records)

    table = Table(title=Text(f"Path to {node_id}"))
    table.add_column("#", style="dim", justify="right")
    table.add_column("Node", style="cyan")
    table.add_column("Kind")
    table.add_column("Content")
    for index, node in enumerate(path, 1):
        content = getattr(node, "text", "") or getattr(node, "name", "")
        table.add_row(str(index), Text(node.id), node.kind, Text(content))
    if path:
        console.print(table)
    else:
        console.print(Text(f"No path from root to {node_id}", style="yellow"))

    console.print()
    console.print(context.format_state(), markup=False)
    if context.transcript:
        console.print()
        console.print("[bold]Transcript[/bold]")
        console.print(context.transcript, markup=False)


@app.command()
def validate(
    dialog_file: Annotated[Path, typer.Argument(help="Dialog JSON file")],
) -> None:
    """Check a dialog's structure. Exits with 1 if any check fails."""
    from dialogforge.graph.validation import validate_dialog
    from dialogforge.storage import DialogFileError, load_dialog

    try:
        graph = load_dialog(dialog_file)
    except DialogFileError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None

    report = validate_dialog(graph)
    table = Table(title=f"Validation: {graph.id}")
    table.add_column("", width=1)
    table.add_column("Check", style="cyan")
    table.add_column("Result")
    for check in report.checks:
        table.add_row(_SEVERITY_STYLE[check.severity], check.name, check.message)
    console.print(table)
    console.print(report.summary)

    log.debug("dialog_validated", dialog=graph.id, summary=report.summary)
    if report.has_failures:
        raise typer.Exit(1)
