"""JSON export format.

Writes the dialog in its persistence format, suitable for re-import, external
tools or programmatic analysis.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from dialogforge.observability.logging import get_logger
from dialogforge.storage.dialog_files import dialog_file_path, save_dialog

if TYPE_CHECKING:
    from pathlib import Path

    from dialogforge.export.base import ExportContext

log = get_logger(__name__)


class JsonExporter:
    """Export a dialog as JSON."""

    format_name = "json"

    def export(self, context: ExportContext, output_dir: Path) -> Path:
        """Write the dialog as ``<dialog id>.dialog.json``.

        Args:
            context: Dialog and lookup data.
            output_dir: Directory to write output files.

        Returns:
            Path to the generated file.
        """
        output_file = save_dialog(context.graph, dialog_file_path(output_dir, context.graph.id))
        log.info("json_export_complete", path=str(output_file), dialog=context.graph.id)
        return output_file
