"""Test CLI commands."""

from __future__ import annotations

from typing import TYPE_CHECKING

from typer.testing import CliRunner

from dialogforge import __version__
from dialogforge.cli import app
from dialogforge.config import CONFIG_FILENAME
from dialogforge.models import DialogueNode, Speaker
from dialogforge.observability import close_file_logging
from dialogforge.storage import load_dialog, save_dialog

if TYPE_CHECKING:
    from pathlib import Path

    from dialogforge.models import DialogGraph
    from tests.conftest import BuildDialog

runner = CliRunner()


def flat(output: str) -> str:
    """Collapse Rich's soft wrapping so assertions don't depend on terminal width."""
    return " ".join(output.split())


def write_dialog(graph: DialogGraph, directory: Path) -> Path:
    return save_dialog(graph, directory / "dialogs" / f"{graph.id}.dialog.json")


def test_version_command() -> None:
    """Test dialogforge version command."""
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert f"v{__version__}" in result.output


def test_no_args_shows_help() -> None:
    """no_args_is_help=True returns exit code 2 (not 0 like --help)."""
    result = runner.invoke(app, [])
    assert result.exit_code == 2
    assert "DialogForge" in result.output


def test_verbose_flag_before_command() -> None:
    result = runner.invoke(app, ["-vv", "version"])
    assert result.exit_code == 0


# --- Init Command Tests ---


def test_init_creates_project(tmp_path: Path) -> None:
    """Init writes config, records dir and a starter dialog."""
    project = tmp_path / "tavern"

    result = runner.invoke(app, ["init", str(project), "--dialog-id", "intro"])

    assert result.exit_code == 0
    assert "Initialized project" in result.output
    assert (project / CONFIG_FILENAME).exists()
    assert (project / "characters").is_dir()
    starter = load_dialog(project / "dialogs" / "intro.dialog.json")
    assert starter.nodes == {}
    assert starter.root_node_id is None


def test_init_refuses_existing_project(tmp_path: Path) -> None:
    runner.invoke(app, ["init", str(tmp_path)])

    result = runner.invoke(app, ["init", str(tmp_path)])

    assert result.exit_code == 1
    assert "already exists" in flat(result.output)


# --- Compile Command Tests ---


def test_compile_writes_renpy_script(tmp_path: Path, linear_dialog: DialogGraph) -> None:
    dialog_file = write_dialog(linear_dialog, tmp_path)

    result = runner.invoke(app, ["compile", str(dialog_file), "--project", str(tmp_path)])

    assert result.exit_code == 0
    assert "Exported 3 nodes as renpy" in flat(result.output)
    script = (tmp_path / "game" / "script.rpy").read_text()
    assert '    "Hi there"' in script


def test_compile_json_to_output_dir(tmp_path: Path, linear_dialog: DialogGraph) -> None:
    dialog_file = write_dialog(linear_dialog, tmp_path)
    out = tmp_path / "export"

    result = runner.invoke(
        app,
        ["compile", str(dialog_file), "-f", "json", "-o", str(out), "-p", str(tmp_path)],
    )

    assert result.exit_code == 0
    assert (out / "test_dialog.dialog.json").exists()


def test_compile_uses_project_config(tmp_path: Path, linear_dialog: DialogGraph) -> None:
    (tmp_path / CONFIG_FILENAME).write_text(
        "name: t\noutput_dir: build\ncompiler:\n  sprite_zoom: 2\n"
    )
    dialog_file = write_dialog(linear_dialog, tmp_path)

    result = runner.invoke(app, ["compile", str(dialog_file), "-p", str(tmp_path)])

    assert result.exit_code == 0
    assert "    zoom 2" in (tmp_path / "build" / "script.rpy").read_text()


def test_compile_repairs_missing_root(tmp_path: Path, linear_dialog: DialogGraph) -> None:
    linear_dialog.root_node_id = "deleted"
    dialog_file = write_dialog(linear_dialog, tmp_path)

    result = runner.invoke(app, ["compile", str(dialog_file), "-p", str(tmp_path)])

    assert result.exit_code == 0
    assert '    "Hello"' in (tmp_path / "game" / "script.rpy").read_text()


def test_compile_unknown_format(tmp_path: Path, linear_dialog: DialogGraph) -> None:
    dialog_file = write_dialog(linear_dialog, tmp_path)

    result = runner.invoke(app, ["compile", str(dialog_file), "-f", "twee", "-p", str(tmp_path)])

    assert result.exit_code == 1
    assert "Unknown export format 'twee'" in flat(result.output)


def test_compile_missing_dialog(tmp_path: Path) -> None:
    missing = tmp_path / "nope.dialog.json"

    result = runner.invoke(app, ["compile", str(missing), "-p", str(tmp_path)])

    assert result.exit_code == 1
    assert "File not found" in flat(result.output)


def test_compile_bad_config(tmp_path: Path, linear_dialog: DialogGraph) -> None:
    (tmp_path / CONFIG_FILENAME).write_text("name: t\nhistory_limit: 0\n")
    dialog_file = write_dialog(linear_dialog, tmp_path)

    result = runner.invoke(app, ["compile", str(dialog_file), "-p", str(tmp_path)])

    assert result.exit_code == 1
    assert "history_limit" in flat(result.output)


# --- Inspect Command Tests ---


def test_inspect_shows_path_and_transcript(tmp_path: Path, linear_dialog: DialogGraph) -> None:
    dialog_file = write_dialog(linear_dialog, tmp_path)

    result = runner.invoke(app, ["inspect", str(dialog_file), "bye", "-p", str(tmp_path)])

    output = flat(result.output)
    assert result.exit_code == 0
    assert "Path to bye" in output
    assert "(No variables set)" in output
    assert "NPC: Hello Player: Hi there NPC: Goodbye" in output


def test_inspect_unknown_node_suggests(tmp_path: Path, linear_dialog: DialogGraph) -> None:
    dialog_file = write_dialog(linear_dialog, tmp_path)

    result = runner.invoke(app, ["inspect", str(dialog_file), "byee", "-p", str(tmp_path)])

    assert result.exit_code == 1
    assert "did you mean: bye" in flat(result.output)


def test_inspect_shows_bracketed_text_literally(
    tmp_path: Path, build_dialog: BuildDialog
) -> None:
    """Dialogue that looks like rich markup is printed as written."""
    graph = build_dialog([DialogueNode(id="a", speaker=Speaker.NPC, text="[/bold] oops [red]")])
    dialog_file = write_dialog(graph, tmp_path)

    result = runner.invoke(app, ["inspect", str(dialog_file), "a", "-p", str(tmp_path)])

    assert result.exit_code == 0
    assert "[/bold] oops [red]" in flat(result.output)


def test_inspect_with_log_flag_writes_log_file(tmp_path: Path, linear_dialog: DialogGraph) -> None:
    dialog_file = write_dialog(linear_dialog, tmp_path)

    result = runner.invoke(app, ["--log", "inspect", str(dialog_file), "bye", "-p", str(tmp_path)])
    close_file_logging()

    assert result.exit_code == 0
    assert (tmp_path / "logs" / "debug.jsonl").exists()


# --- Validate Command Tests ---


def test_validate_clean_dialog(tmp_path: Path, linear_dialog: DialogGraph) -> None:
    dialog_file = write_dialog(linear_dialog, tmp_path)

    result = runner.invoke(app, ["validate", str(dialog_file)])

    assert result.exit_code == 0
    assert "5 passed" in flat(result.output)


def test_validate_reports_failures(tmp_path: Path, linear_dialog: DialogGraph) -> None:
    linear_dialog.nodes["bye"].parent_node_ids = []
    dialog_file = write_dialog(linear_dialog, tmp_path)

    result = runner.invoke(app, ["validate", str(dialog_file)])

    assert result.exit_code == 1
    assert "1 failed" in flat(result.output)
