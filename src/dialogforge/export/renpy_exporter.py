"""Ren'Py export format.

Writes the compiled script as ``script.rpy``, the file a Ren'Py project's
``game/`` directory starts from.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from dialogforge.export.renpy_compiler import compile_to_renpy
from dialogforge.observability.logging import get_logger

if TYPE_CHECKING:
    from pathlib import Path

    from dialogforge.export.base import ExportContext

log = get_logger(__name__)


class RenPyExporter:
    """Export a dialog as a Ren'Py script."""

    format_name = "renpy"

    def export(self, context: ExportContext, output_dir: Path) -> Path:
        """Write the dialog as script.rpy.

        Args:
            context: Dialog and lookup data.
            output_dir: Directory to write output files.

        Returns:
            Path to the generated script.rpy file.
        """
        output_dir.mkdir(parents=True, exist_ok=True)
        output_file = output_dir / "script.rpy"

        script = compile_to_renpy(context.graph, context.records, context.compiler)
        output_file.write_text(script + "\n", encoding="utf-8")

        log.info("renpy_export_complete", path=str(output_file), dialog=context.graph.id)
        return output_file
