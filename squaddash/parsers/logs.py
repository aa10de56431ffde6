"""Parse squad session/orchestration log files into LogEntry models.

Log files live in `{squad}/log/` and `{squad}/orchestration-log/` and are
named `YYYY-MM-DD-topic.md` or `YYYY-MM-DDThhmm-topic.md`. Their bodies
follow whatever convention the writing agent used at the time, so every
field is resolved through an ordered chain of extractors; the first
extractor that returns a value wins.

`orchestration-log/` records active work and feeds member status and
tasks. `log/` holds narrative session history and is display-only.
"""
from __future__ import annotations

import logging
import re
import time
from pathlib import Path
from typing import Callable, Optional, Sequence

from squaddash.date_utils import midnight_timestamp, today_key
from squaddash.markdown_utils import (
    extract_list_items,
    extract_section,
    normalize_eol,
    split_names,
    strip_trailing_parenthetical,
)
from squaddash.models import LogEntry, WorkItem
from squaddash.observability import record_ingestion, record_parser_failure, start_span

logger = logging.getLogger("squaddash.parsers")

NO_SUMMARY = "No summary available"
ORCHESTRATION_LOG_DIRECTORY = "orchestration-log"
LOG_DIRECTORIES = (ORCHESTRATION_LOG_DIRECTORY, "log")

_FILENAME_PATTERN = re.compile(r"^(\d{4}-\d{2}-\d{2})(?:T\d{4})?-(.+)\.md$")
_CONTENT_DATE_PATTERN = re.compile(r"\*\*Date:\*\*\s*(\d{4}-\d{2}-\d{2})", re.IGNORECASE)
_TIMESTAMP_PATTERN = re.compile(r"\*\*(?:Timestamp|Time):\*\*\s*(.+)", re.IGNORECASE)
_H1_PATTERN = re.compile(r"^#\s+(.+)$", re.MULTILINE)
_ISSUE_REF_PATTERN = re.compile(r"#\d+")

_PARTICIPANTS_PATTERN = re.compile(r"\*\*Participants?:\*\*\s*(.+)", re.IGNORECASE)
_WHO_WORKED_PATTERN = re.compile(r"\*\*Who worked:\*\*\s*(.+)", re.IGNORECASE)
_AGENT_ROUTED_PATTERN = re.compile(r"\*\*Agent routed\*\*\s*\|\s*(.+)", re.IGNORECASE)
_INLINE_WORK_LABEL_PATTERN = re.compile(
    r"\*\*(?:Work done|What happened|What was done):\*\*\s*\n([\s\S]*?)(?=\n\*\*|\n##\s|$)",
    re.IGNORECASE,
)

_TABLE_SEPARATOR_PATTERN = re.compile(r"^\|[\s-]+\|")
_TABLE_HEADER_CELL_PATTERN = re.compile(r"^(agent|name|member|who)$", re.IGNORECASE)
_BOLD_AGENT_BULLET_PATTERN = re.compile(r"^\s*[-*]\s+\*\*(.+?):?\*\*:?\s")
_BOLD_NAME_BULLET_PATTERN = re.compile(r"^\s*[-*]\s+\*\*(.+?)\*\*\s")
_PLAIN_NAME_BULLET_PATTERN = re.compile(r"^\s*[-*]\s+([A-Z][a-z]+)\s+")
_BOLD_SINGLE_NAME_BULLET_PATTERN = re.compile(r"^\s*[-*]\s+\*\*([A-Z][a-z]+)\*\*\s")
_PAREN_PATTERN = re.compile(r"\s*\(.*?\)\s*")

_WORK_ITEM_BOLD_PATTERN = re.compile(r"^\s*[-*]\s+\*\*(.+?):?\*\*:?\s*(.+?)$")
_WORK_ITEM_PLAIN_PATTERN = re.compile(r"^\s*[-*]\s+([A-Z][a-z]+)\s+(.+?)$")

_OUTCOME_ROW_PATTERN = re.compile(r"\|\s*\*\*Outcome\*\*\s*\|\s*(.+?)\s*\|", re.IGNORECASE)
_HEADING_DASH_PATTERN = re.compile(r"^#{1,6}\s+.+?\s*—\s*(.+)$", re.MULTILINE)
_HEADING_PATTERN = re.compile(r"^#{1,6}\s+(.+)$", re.MULTILINE)

Extractor = Callable[[str], Optional[list[str]]]


def _first(chain: Sequence[Callable[[str], Optional[object]]], content: str):
    for extractor in chain:
        value = extractor(content)
        if value:
            return value
    return None


def _append_unique(names: list[str], name: str) -> None:
    if name and name not in names:
        names.append(name)


# ── Participant extractors ─────────────────────────────────────────

def _participants_from_line(content: str) -> Optional[list[str]]:
    match = _PARTICIPANTS_PATTERN.search(content)
    return split_names(match.group(1)) if match else None


def _participants_from_who_worked_line(content: str) -> Optional[list[str]]:
    match = _WHO_WORKED_PATTERN.search(content)
    return split_names(match.group(1)) if match else None


def _participants_from_agent_routed(content: str) -> Optional[list[str]]:
    match = _AGENT_ROUTED_PATTERN.search(content)
    if not match:
        return None
    names: list[str] = []
    for part in re.split(r"[,;]", match.group(1)):
        name = _PAREN_PATTERN.sub("", part).replace("|", "").strip()
        if name:
            names.append(name)
    return names


def _table_first_column(section: str) -> list[str]:
    names: list[str] = []
    for line in section.split("\n"):
        trimmed = line.strip()
        if not trimmed.startswith("|") or _TABLE_SEPARATOR_PATTERN.match(trimmed):
            continue
        cells = [cell.strip() for cell in trimmed.split("|") if cell.strip()]
        if not cells:
            continue
        name = cells[0]
        if _TABLE_HEADER_CELL_PATTERN.match(name):
            continue
        if name.startswith("-") or name.startswith("*"):
            continue
        names.append(name)
    return names


def _participants_from_who_worked_table(content: str) -> Optional[list[str]]:
    section = extract_section(content, "Who Worked")
    if not section:
        return None
    return _table_first_column(section) or None


def _participants_from_who_worked_list(content: str) -> Optional[list[str]]:
    section = extract_section(content, "Who Worked")
    if not section:
        return None
    return extract_list_items(section) or None


def _participants_from_action_section(content: str) -> Optional[list[str]]:
    section = extract_section(content, "What Happened")
    if section is None:
        section = extract_section(content, "What Was Done")
    if not section:
        return None
    agents: list[str] = []
    for line in section.split("\n"):
        match = _BOLD_AGENT_BULLET_PATTERN.match(line)
        if match:
            _append_unique(agents, strip_trailing_parenthetical(match.group(1)))
    return agents or None


def _participants_from_inline_label(content: str) -> Optional[list[str]]:
    match = _INLINE_WORK_LABEL_PATTERN.search(content)
    if not match:
        return None
    agents: list[str] = []
    for line in match.group(1).split("\n"):
        bold = _BOLD_NAME_BULLET_PATTERN.match(line)
        if bold:
            _append_unique(agents, strip_trailing_parenthetical(bold.group(1)))
            continue
        plain = _PLAIN_NAME_BULLET_PATTERN.match(line)
        if plain:
            _append_unique(agents, plain.group(1))
    return agents or None


def _participants_from_any_bold_bullet(content: str) -> Optional[list[str]]:
    agents: list[str] = []
    for line in content.split("\n"):
        match = _BOLD_SINGLE_NAME_BULLET_PATTERN.match(line)
        if match:
            _append_unique(agents, match.group(1))
    return agents or None


PARTICIPANT_EXTRACTORS: tuple[Extractor, ...] = (
    _participants_from_line,
    _participants_from_who_worked_line,
    _participants_from_agent_routed,
    _participants_from_who_worked_table,
    _participants_from_who_worked_list,
    _participants_from_action_section,
    _participants_from_inline_label,
    _participants_from_any_bold_bullet,
)


def extract_participants(content: str) -> list[str]:
    return _first(PARTICIPANT_EXTRACTORS, content) or []


# ── Summary extractors ─────────────────────────────────────────────

def _summary_from_section(content: str) -> Optional[str]:
    return extract_section(content, "Summary") or None


def _summary_from_outcome_row(content: str) -> Optional[str]:
    match = _OUTCOME_ROW_PATTERN.search(content)
    if not match:
        return None
    return match.group(1).replace("**", "").replace("`", "").strip() or None


def _summary_from_heading_dash(content: str) -> Optional[str]:
    match = _HEADING_DASH_PATTERN.search(content)
    return match.group(1).strip() if match else None


def _summary_from_first_paragraph(content: str) -> Optional[str]:
    paragraph: list[str] = []
    for line in content.split("\n"):
        trimmed = line.strip()
        # Title, metadata and table lines never count as prose
        if trimmed.startswith("#") or trimmed.startswith("**") or trimmed.startswith("|"):
            continue
        if trimmed:
            paragraph.append(trimmed)
        elif paragraph:
            break
    return " ".join(paragraph) or None


def _summary_from_heading(content: str) -> Optional[str]:
    match = _HEADING_PATTERN.search(content)
    return match.group(1).strip() if match else None


SUMMARY_EXTRACTORS: tuple[Callable[[str], Optional[str]], ...] = (
    _summary_from_section,
    _summary_from_outcome_row,
    _summary_from_heading_dash,
    _summary_from_first_paragraph,
    _summary_from_heading,
)


def extract_summary(content: str) -> str:
    return _first(SUMMARY_EXTRACTORS, content) or NO_SUMMARY


# ── Other fields ───────────────────────────────────────────────────

def extract_what_was_done(content: str) -> Optional[list[WorkItem]]:
    """Parse per-agent work bullets (`- **Agent:** description`)."""
    section = None
    for name in ("What Was Done", "Summary", "What Happened"):
        section = extract_section(content, name)
        if section is not None:
            break
    if not section:
        inline = _INLINE_WORK_LABEL_PATTERN.search(content)
        if inline:
            section = inline.group(1)
    if not section:
        return None

    items: list[WorkItem] = []
    for line in section.split("\n"):
        bold = _WORK_ITEM_BOLD_PATTERN.match(line)
        if bold:
            items.append(WorkItem(
                agent=strip_trailing_parenthetical(bold.group(1)),
                description=bold.group(2).strip(),
            ))
            continue
        plain = _WORK_ITEM_PLAIN_PATTERN.match(line)
        if plain:
            items.append(WorkItem(agent=plain.group(1), description=plain.group(2).strip()))
    return items or None


def extract_related_issues(content: str) -> Optional[list[str]]:
    refs: list[str] = []
    section = extract_section(content, "Related Issues")
    if section:
        refs = _ISSUE_REF_PATTERN.findall(section)
    if not refs:
        refs = _ISSUE_REF_PATTERN.findall(content)
    return list(dict.fromkeys(refs)) or None


def extract_list_section(content: str, name: str) -> Optional[list[str]]:
    section = extract_section(content, name)
    if not section:
        return None
    return extract_list_items(section) or None


def _slug_from_title(content: str) -> Optional[str]:
    match = _H1_PATTERN.search(content)
    if not match:
        return None
    slug = re.sub(r"[^a-z0-9\s-]", "", match.group(1).lower())
    slug = re.sub(r"\s+", "-", slug)[:50]
    return slug or None


def _extract_timestamp(content: str, date_key: str) -> str:
    match = _TIMESTAMP_PATTERN.search(content)
    if match:
        return match.group(1).strip()
    return midnight_timestamp(date_key)


def parse_log_content(content: str, filename: str, file_path: str = "") -> LogEntry:
    """Parse raw log markdown into a LogEntry. Never raises for odd content."""
    content = normalize_eol(content)
    name_match = _FILENAME_PATTERN.match(filename)
    if name_match:
        date_key, topic = name_match.group(1), name_match.group(2)
    else:
        content_date = _CONTENT_DATE_PATTERN.search(content)
        date_key = content_date.group(1) if content_date else today_key()
        topic = _slug_from_title(content) or "unknown"

    return LogEntry(
        date=date_key,
        topic=topic,
        timestamp=_extract_timestamp(content, date_key),
        participants=extract_participants(content),
        summary=extract_summary(content),
        decisions=extract_list_section(content, "Decisions"),
        outcomes=extract_list_section(content, "Outcomes"),
        relatedIssues=extract_related_issues(content),
        whatWasDone=extract_what_was_done(content),
        filePath=file_path,
    )


def parse_log_file(path: Path) -> LogEntry:
    """Parse one log file. Raises OSError/UnicodeDecodeError on read failure."""
    text = path.read_text(encoding="utf-8")
    return parse_log_content(text, path.name, str(path))


def _discover_in(squad_dir: Path, dir_names: Sequence[str]) -> list[Path]:
    files: list[Path] = []
    for dir_name in dir_names:
        log_dir = squad_dir / dir_name
        if not log_dir.is_dir():
            continue
        try:
            children = list(log_dir.iterdir())
        except OSError:
            continue
        for path in children:
            if path.suffix != ".md" or path.name.lower().startswith("readme"):
                continue
            if path.is_file():
                files.append(path)
    return sorted(files, key=str)


def discover_log_files(squad_dir: Path) -> list[Path]:
    """Union of markdown files across every log directory, sorted lexically."""
    return _discover_in(squad_dir, LOG_DIRECTORIES)


def discover_orchestration_log_files(squad_dir: Path) -> list[Path]:
    """Markdown files under `orchestration-log/` only; `log/` is narrative history."""
    return _discover_in(squad_dir, (ORCHESTRATION_LOG_DIRECTORY,))


def _scan(squad_dir: Path, paths: list[Path], source: str) -> list[LogEntry]:
    started = time.monotonic()
    entries: list[LogEntry] = []
    with start_span("squaddash.parse_logs", {"squad_dir": str(squad_dir), "source": source}):
        for path in paths:
            try:
                entries.append(parse_log_file(path))
            except (OSError, UnicodeDecodeError, ValueError) as exc:
                logger.warning(f"Failed to parse log file {path}: {exc}")
                record_parser_failure(source)

    entries.sort(key=lambda entry: entry.date, reverse=True)
    record_ingestion(source, "success", (time.monotonic() - started) * 1000)
    return entries


def scan_logs(squad_dir: Path) -> list[LogEntry]:
    """Parse every discovered log file, newest date first."""
    return _scan(squad_dir, discover_log_files(squad_dir), "logs")


def scan_orchestration_logs(squad_dir: Path) -> list[LogEntry]:
    """Parse only orchestration-log entries, newest date first.

    These are the only entries allowed to drive member status and tasks.
    """
    return _scan(squad_dir, discover_orchestration_log_files(squad_dir), "orchestration_logs")
