"""Export format handlers (Ren'Py, JSON)."""

from __future__ import annotations

from dialogforge.export.base import ExportContext, Exporter
from dialogforge.export.json_exporter import JsonExporter
from dialogforge.export.renpy_compiler import RenPyCompiler, compile_to_renpy
from dialogforge.export.renpy_exporter import RenPyExporter

_EXPORTERS: dict[str, type[JsonExporter | RenPyExporter]] = {
    "json": JsonExporter,
    "renpy": RenPyExporter,
}


def get_exporter(format_name: str) -> JsonExporter | RenPyExporter:
    """Get an exporter instance by format name.

    Args:
        format_name: Export format ("renpy" or "json").

    Returns:
        Exporter instance.

    Raises:
        ValueError: If the format is not supported.
    """
    cls = _EXPORTERS.get(format_name)
    if cls is None:
        supported = ", ".join(sorted(_EXPORTERS))
        msg = f"Unknown export format '{format_name}'. Supported: {supported}"
        raise ValueError(msg)
    return cls()


def supported_formats() -> list[str]:
    return sorted(_EXPORTERS)


__all__ = [
    "ExportContext",
    "Exporter",
    "JsonExporter",
    "RenPyCompiler",
    "RenPyExporter",
    "compile_to_renpy",
    "get_exporter",
    "supported_formats",
]
