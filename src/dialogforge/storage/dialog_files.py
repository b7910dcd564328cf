"""Dialog graph persistence as JSON files."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from pydantic import ValidationError

from dialogforge.models.dialog import DialogGraph
from dialogforge.observability.logging import get_logger

if TYPE_CHECKING:
    from pathlib import Path

log = get_logger(__name__)

DIALOG_SUFFIX = ".dialog.json"


class DialogFileError(Exception):
    """Raised when a dialog file can't be read or written."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Dialog file error at {path}: {reason}")


def dialog_file_path(directory: Path, dialog_id: str) -> Path:
    """Conventional file name for a dialog inside *directory*."""
    return directory / f"{dialog_id}{DIALOG_SUFFIX}"


def load_dialog(path: Path) -> DialogGraph:
    """Read and validate a dialog graph.

    The graph is returned as stored. Root repair happens when it is handed
    to :meth:`DialogStore.load`, not here.

    Args:
        path: Path to the JSON file.

    Returns:
        The parsed graph.

    Raises:
        DialogFileError: If the file is missing, not JSON, or not a dialog.
    """
    if not path.exists():
        raise DialogFileError(path, "File not found")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise DialogFileError(path, str(e)) from e
    if not isinstance(data, dict):
        raise DialogFileError(path, "Expected a JSON object")
    try:
        graph = DialogGraph.from_dict(data)
    except ValidationError as e:
        raise DialogFileError(path, f"Invalid dialog: {e.error_count()} error(s)") from e
    log.debug("dialog_file_loaded", path=str(path), nodes=len(graph.nodes))
    return graph


def save_dialog(graph: DialogGraph, path: Path) -> Path:
    """Write a dialog graph atomically.

    Writes to a sibling temp file first and replaces the target, so a failed
    write never leaves a truncated dialog behind.

    Returns:
        The path written.

    Raises:
        DialogFileError: If the file can't be written.
    """
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path.write_text(
            json.dumps(graph.to_dict(), indent=2, ensure_ascii=False) + "\n",
            encoding="utf-8",
        )
        tmp_path.replace(path)
    except OSError as e:
        if tmp_path.exists():
            tmp_path.unlink()
        raise DialogFileError(path, str(e)) from e
    log.debug("dialog_file_saved", path=str(path), nodes=len(graph.nodes))
    return path
