"""Persistence for dialogs and lookup of character/scene records."""

from __future__ import annotations

from dialogforge.storage.dialog_files import (
    DIALOG_SUFFIX,
    DialogFileError,
    dialog_file_path,
    load_dialog,
    save_dialog,
)
from dialogforge.storage.records import DirectoryRecords, InMemoryRecords, RecordLookup

__all__ = [
    "DIALOG_SUFFIX",
    "DialogFileError",
    "DirectoryRecords",
    "InMemoryRecords",
    "RecordLookup",
    "dialog_file_path",
    "load_dialog",
    "save_dialog",
]
