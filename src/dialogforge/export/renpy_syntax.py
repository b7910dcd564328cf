"""Ren'Py lexical helpers: identifiers, string literals, values."""

from __future__ import annotations

import keyword
import re
from typing import Any

from dialogforge.graph.paths import as_number

INDENT = "    "

_NON_IDENT = re.compile(r"[^a-z0-9_]")
_REPEATED_UNDERSCORES = re.compile(r"_+")
_WHITESPACE = re.compile(r"\s+")
_NEWLINES = re.compile(r"\r\n|\r|\n")

# Ren'Py statement keywords and engine-owned store names. A speaker or
# variable with one of these names would not parse or would shadow the engine.
RENPY_RESERVED = frozenset(
    {
        "at", "behind", "call", "camera", "character", "config", "default",
        "define", "expression", "gui", "half_size", "hide", "image", "init",
        "jump", "label", "layeredimage", "menu", "nvl", "onlayer", "pause",
        "persistent", "play", "python", "queue", "renpy", "return", "scene",
        "screen", "show", "stop", "store", "style", "transform", "translate",
        "voice", "window", "zorder",
    }
)  # fmt: skip


def pad(indent: int) -> str:
    return INDENT * indent


def sanitize_identifier(name: str, fallback: str = "character") -> str:
    """Turn an arbitrary name into a safe Ren'Py/Python identifier.

    Lowercases, replaces anything outside ``[a-z0-9_]`` with ``_``, collapses
    repeated underscores, trims them from the ends and prefixes a leading
    digit. Returns *fallback* if nothing is left. Python keywords and
    :data:`RENPY_RESERVED` names get a trailing ``_``.

    >>> sanitize_identifier("Old Man Jenkins")
    'old_man_jenkins'
    >>> sanitize_identifier("3 coins")
    '_3_coins'
    >>> sanitize_identifier("If")
    'if_'
    """
    ident = _REPEATED_UNDERSCORES.sub("_", _NON_IDENT.sub("_", name.lower())).strip("_")
    if not ident:
        ident = fallback
    elif ident[0].isdigit():
        ident = f"_{ident}"
    if is_reserved(ident):
        ident += "_"
    return ident


def is_reserved(name: str) -> bool:
    """True if *name* can't be used as a variable or character name."""
    return keyword.iskeyword(name) or keyword.issoftkeyword(name) or name in RENPY_RESERVED


def label_base(node_id: str) -> str:
    """Label name for a node before de-duplication."""
    return "node_" + _NON_IDENT.sub("_", node_id.lower())


def escape_text(text: str, *, text_tags: bool = True) -> str:
    """Escape text for a double-quoted Ren'Py string on one line.

    With *text_tags*, ``[`` and ``{`` are doubled so Ren'Py shows them
    literally instead of interpolating or reading a text tag. Comments and
    file names pass ``text_tags=False``.
    """
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    if text_tags:
        escaped = escaped.replace("[", "[[").replace("{", "{{")
    return _NEWLINES.sub(" ", escaped)


def quote(text: str, *, text_tags: bool = True) -> str:
    return f'"{escape_text(text, text_tags=text_tags)}"'


def emotion_tag(emotion: str) -> str:
    """Image attribute for an emotion (``"Very Happy"`` -> ``very_happy``)."""
    return _WHITESPACE.sub("_", emotion.strip()).lower()


def background_tag(image: str) -> str:
    """Image tag for a background, adding the ``bg`` prefix if missing."""
    name = image.strip()
    return name if name.startswith("bg ") else f"bg {name}"


def format_number(value: int | float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_value(value: Any) -> str:
    """Render a variable or condition value as a Ren'Py literal.

    Booleans and the strings ``"true"``/``"false"`` become ``True``/``False``,
    numbers and numeric strings become numeric literals, anything else a
    quoted string. ``None`` renders as an empty string literal.
    """
    if isinstance(value, bool):
        return "True" if value else "False"
    if value is None:
        return '""'
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return "True" if value.strip().lower() == "true" else "False"
    number = as_number(value)
    if number is not None:
        return format_number(number)
    return quote(str(value), text_tags=False)


def is_statement(line: str) -> bool:
    """True for a line that is neither blank nor a comment."""
    stripped = line.strip()
    return bool(stripped) and not stripped.startswith("#")
