"""Export context and Exporter protocol.

Defines the bundle every exporter consumes, plus the Exporter protocol
they must implement.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from dialogforge.config import CompilerConfig

if TYPE_CHECKING:
    from pathlib import Path

    from dialogforge.models.dialog import DialogGraph
    from dialogforge.storage.records import RecordLookup


@dataclass
class ExportContext:
    """All data needed by exporters.

    Attributes:
        graph: The dialog to export. Exporters only read it.
        records: Character/scene lookup, if available.
        compiler: Options for script output.
    """

    graph: DialogGraph
    records: RecordLookup | None = None
    compiler: CompilerConfig = field(default_factory=CompilerConfig)


class Exporter(Protocol):
    """Protocol for dialog export format handlers."""

    format_name: str

    def export(self, context: ExportContext, output_dir: Path) -> Path:
        """Export the dialog to the given output directory.

        Args:
            context: Dialog and lookup data.
            output_dir: Directory to write output files.

        Returns:
            Path to the main output file.
        """
        ...
