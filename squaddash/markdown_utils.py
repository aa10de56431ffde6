"""Shared markdown helpers for the squad file parsers.

Every parser normalizes line endings first, then uses these helpers so
section lookup, bullet extraction and slugging behave the same way across
logs, decisions and the roster.
"""
from __future__ import annotations

import re

_BULLET_PATTERN = re.compile(r"^\s*[-*]\s+(.+)$")
_NUMBERED_PATTERN = re.compile(r"^\s*\d+\.\s+(.+)$")
_SEPARATOR_CELL_PATTERN = re.compile(r"^[-:]+$")
_TRAILING_PAREN_PATTERN = re.compile(r"\s*\(.*?\)\s*$")


def normalize_eol(text: str) -> str:
    """Normalize CRLF and lone CR line endings to LF."""
    return text.replace("\r\n", "\n").replace("\r", "\n")


def extract_section(content: str, name: str, level: int = 2) -> str | None:
    """Return the trimmed body of a `## {name}` section, or None.

    The body runs until the next heading of the same level or the end of the
    document. Matching on the name is case-insensitive.
    """
    hashes = "#" * level
    pattern = re.compile(
        rf"{hashes}\s+{re.escape(name)}\s*\n([\s\S]*?)(?=\n{hashes}\s|$)",
        re.IGNORECASE,
    )
    match = pattern.search(content)
    if not match:
        return None
    return match.group(1).strip()


def extract_list_items(content: str) -> list[str]:
    """Return `-`, `*` and numbered list items in order."""
    items: list[str] = []
    for line in content.split("\n"):
        match = _BULLET_PATTERN.match(line) or _NUMBERED_PATTERN.match(line)
        if match:
            items.append(match.group(1).strip())
    return items


def split_table_cells(line: str) -> list[str]:
    """Split a `| a | b |` row into trimmed cells (outer pipes dropped)."""
    trimmed = line.strip()
    if trimmed.startswith("|"):
        trimmed = trimmed[1:]
    if trimmed.endswith("|"):
        trimmed = trimmed[:-1]
    return [cell.strip() for cell in trimmed.split("|")]


def is_separator_row(cells: list[str]) -> bool:
    return bool(cells) and all(_SEPARATOR_CELL_PATTERN.match(cell) for cell in cells)


def strip_trailing_parenthetical(name: str) -> str:
    """'Rusty (WI-01/02)' -> 'Rusty'."""
    return _TRAILING_PAREN_PATTERN.sub("", name).strip()


def slugify(text: str) -> str:
    """'Danny O'Brien' -> 'danny-o-brien'."""
    return re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")


def split_names(value: str) -> list[str]:
    """Split a comma/semicolon separated declaration into trimmed names."""
    return [part.strip() for part in re.split(r"[,;]", value) if part.strip()]
