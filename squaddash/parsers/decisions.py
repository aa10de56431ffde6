"""Parse the decisions ledger and the decisions directory into DecisionEntry models."""
from __future__ import annotations

import logging
import re
import time
from pathlib import Path
from typing import Optional

from squaddash.date_utils import file_created_date, first_iso_date
from squaddash.markdown_utils import normalize_eol
from squaddash.models import DecisionEntry
from squaddash.observability import record_ingestion, record_parser_failure, start_span

logger = logging.getLogger("squaddash.parsers")

LEDGER_FILENAME = "decisions.md"
DECISIONS_DIRNAME = "decisions"
METADATA_WINDOW = 20
UNTITLED = "Untitled Decision"

# Structural subsection titles that are never decisions in their own right
SUBSECTION_TITLES = frozenset({
    "context", "decision", "decisions", "rationale", "impact",
    "alternatives considered", "implementation details", "implementation",
    "members", "alumni", "@copilot", "location", "action required",
    "open questions", "open questions / risks", "related issues",
    "success metrics", "scope decision", "directive",
    "problem statement", "data flow analysis", "root cause",
    "the design gap", "what should happen", "recommended fix",
    "test cases to add", "files to modify", "for linus",
    "implementation phases", "sprint goal", "context & opportunity",
    "work items", "risks & open questions", "next steps", "outcome",
    "success criteria", "vision", "core features", "overview",
    "goals", "non-goals", "assumptions", "constraints",
    "background", "summary", "appendix", "references",
    "changelog", "history", "todo", "notes",
})
_SUBSECTION_PREFIXES = ("items deferred",)

_HASHES_PATTERN = re.compile(r"^(#+)")
_H1_DECISION_PATTERN = re.compile(r"^#\s+Decision:\s+(.+)$", re.IGNORECASE)
_H1_PATTERN = re.compile(r"^#\s+")
_DATED_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}")
_HEADING_DATE_PATTERN = re.compile(r"^(\d{4}-\d{2}-\d{2})(?:/\d+)?[:/]?\s*")
_STRAY_HASH_PATTERN = re.compile(r"^#\s+")
_DIRECTIVE_PREFIX_PATTERN = re.compile(r"^User directive\s*[—–\-]\s*", re.IGNORECASE)
_DECISION_PREFIX_PATTERN = re.compile(r"^Decision:\s*", re.IGNORECASE)
_FILE_TITLE_PREFIX_PATTERN = re.compile(
    r"^(?:Design Decision|Decision|Feature Summary|Context|Summary):\s*", re.IGNORECASE
)

_DATE_META_PATTERN = re.compile(r"\*\*Date:\*\*\s*(.+)")
_AUTHOR_META_PATTERN = re.compile(r"\*\*Author:\*\*\s*(.+)")
_BY_META_PATTERN = re.compile(r"\*\*By:\*\*\s*(.+)")

_FILE_H1_PATTERN = re.compile(r"^#\s+(?!#)(.+)$", re.MULTILINE)
_FILE_H2_H3_PATTERN = re.compile(r"^###?\s+(.+)$", re.MULTILINE)
_FILE_AUTHOR_PATTERN = re.compile(r"\*\*(?:Author|By):\*\*\s*(.+)$", re.MULTILINE)
_FILE_DATE_PATTERN = re.compile(r"\*\*Date:\*\*\s*(.+)$", re.MULTILINE)


def _hash_count(line: str) -> int:
    match = _HASHES_PATTERN.match(line)
    return len(match.group(1)) if match else 0


def is_subsection_title(title: str) -> bool:
    lowered = title.strip().lower()
    return lowered in SUBSECTION_TITLES or lowered.startswith(_SUBSECTION_PREFIXES)


def split_heading_date(title: str) -> tuple[Optional[str], str]:
    """'2026-02-14/15: Parser Rewrite' -> ('2026-02-14', 'Parser Rewrite')."""
    match = _HEADING_DATE_PATTERN.match(title)
    if not match:
        return None, title
    return match.group(1), title[match.end():]


def clean_ledger_title(heading_text: str) -> tuple[Optional[str], str]:
    title = _STRAY_HASH_PATTERN.sub("", heading_text.strip())
    date_key, title = split_heading_date(title)
    title = _DIRECTIVE_PREFIX_PATTERN.sub("", title)
    title = _DECISION_PREFIX_PATTERN.sub("", title)
    return date_key, title.strip()


def _extract_metadata(
    lines: list[str],
    start: int,
    end: int,
    date_key: Optional[str],
) -> tuple[Optional[str], Optional[str]]:
    author: Optional[str] = None
    by: Optional[str] = None
    for line in lines[start:end]:
        meta = line.strip()
        date_match = _DATE_META_PATTERN.search(meta)
        if date_match:
            found = first_iso_date(date_match.group(1))
            if found:
                date_key = found
        author_match = _AUTHOR_META_PATTERN.search(meta)
        if author_match:
            author = author_match.group(1).strip()
        by_match = _BY_META_PATTERN.search(meta)
        if by_match and by is None:
            by = by_match.group(1).strip()
    return date_key, author or by


def _section_end(lines: list[str], start: int, level: int) -> int:
    for j in range(start + 1, len(lines)):
        next_level = _hash_count(lines[j].strip())
        if 0 < next_level <= level:
            return j
    return len(lines)


def _h1_section_end(lines: list[str], start: int) -> int:
    for j in range(start + 1, len(lines)):
        if _H1_PATTERN.match(lines[j].strip()):
            return j
    return len(lines)


def parse_decisions_ledger(content: str, file_path: str) -> list[DecisionEntry]:
    """Parse a decisions ledger into entries in document order.

    `##` headings are always candidate decisions. `###` headings count only
    when they start with a YYYY-MM-DD prefix, which is how merged dated
    entries are distinguished from structural subsections.
    """
    lines = normalize_eol(content).split("\n")
    decisions: list[DecisionEntry] = []

    i = 0
    while i < len(lines):
        line = lines[i].strip()
        level = _hash_count(line)

        if level == 1:
            h1 = _H1_DECISION_PATTERN.match(line)
            if not h1:
                i += 1
                continue
            end = _h1_section_end(lines, i)
            date_key, author = _extract_metadata(lines, i + 1, min(i + METADATA_WINDOW, end), None)
            decisions.append(DecisionEntry(
                title=h1.group(1).strip(),
                date=date_key,
                author=author,
                content="\n".join(lines[i:end]),
                filePath=file_path,
                lineNumber=i,
            ))
            i = end
            continue

        heading_text: Optional[str] = None
        if level in (2, 3) and line[level:level + 1].isspace():
            heading_text = line[level:].strip()
            if level == 3 and not _DATED_PATTERN.match(heading_text):
                heading_text = None

        if heading_text:
            date_key, title = clean_ledger_title(heading_text)
            if title and not is_subsection_title(title):
                end = _section_end(lines, i, level)
                date_key, author = _extract_metadata(
                    lines, i + 1, min(i + METADATA_WINDOW, end), date_key
                )
                decisions.append(DecisionEntry(
                    title=title,
                    date=date_key,
                    author=author,
                    content="\n".join(lines[i:end]),
                    filePath=file_path,
                    lineNumber=i,
                ))

        i += 1

    return decisions


def parse_decision_file(path: Path) -> DecisionEntry:
    """Parse one standalone decision file. Raises OSError on read failure."""
    content = normalize_eol(path.read_text(encoding="utf-8"))
    title = UNTITLED
    date_key: Optional[str] = None
    author: Optional[str] = None

    heading = _FILE_H1_PATTERN.search(content) or _FILE_H2_H3_PATTERN.search(content)
    if heading:
        date_key, title = split_heading_date(heading.group(1).strip())
        title = _DIRECTIVE_PREFIX_PATTERN.sub("", title)
        title = _FILE_TITLE_PREFIX_PATTERN.sub("", title).strip() or UNTITLED

    author_match = _FILE_AUTHOR_PATTERN.search(content)
    if author_match:
        author = author_match.group(1).strip()

    date_match = _FILE_DATE_PATTERN.search(content)
    if date_match:
        date_key = first_iso_date(date_match.group(1)) or date_key

    if not date_key:
        date_key = file_created_date(path) or None

    return DecisionEntry(
        title=title,
        date=date_key,
        author=author,
        content=content,
        filePath=str(path),
        lineNumber=0,
    )


def scan_decision_files(decisions_dir: Path) -> list[DecisionEntry]:
    entries: list[DecisionEntry] = []
    if not decisions_dir.is_dir():
        return entries

    for path in sorted(decisions_dir.rglob("*.md")):
        if not path.is_file():
            continue
        try:
            entries.append(parse_decision_file(path))
        except (OSError, UnicodeDecodeError, ValueError) as exc:
            logger.warning(f"Failed to parse decision file {path}: {exc}")
            record_parser_failure("decisions")
    return entries


def get_decisions(squad_dir: Path) -> list[DecisionEntry]:
    """All decisions from the ledger and the decisions directory, newest first."""
    started = time.monotonic()
    decisions: list[DecisionEntry] = []

    with start_span("squaddash.parse_decisions", {"squad_dir": str(squad_dir)}):
        ledger = squad_dir / LEDGER_FILENAME
        if ledger.is_file():
            try:
                text = ledger.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                logger.warning(f"Failed to read decisions ledger {ledger}: {exc}")
                record_parser_failure("decisions")
            else:
                decisions.extend(parse_decisions_ledger(text, str(ledger)))

        decisions.extend(scan_decision_files(squad_dir / DECISIONS_DIRNAME))

    # Dateless entries compare as "" and therefore sort last
    decisions.sort(key=lambda entry: entry.date or "", reverse=True)
    record_ingestion("decisions", "success", (time.monotonic() - started) * 1000)
    return decisions
