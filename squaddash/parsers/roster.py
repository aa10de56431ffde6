"""Parse the team roster (`team.md`) into a TeamRoster model."""
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Optional

from squaddash.markdown_utils import (
    extract_section,
    is_separator_row,
    normalize_eol,
    split_table_cells,
)
from squaddash.models import (
    CopilotCapabilities,
    IssueSourceConfig,
    MemberStatus,
    SquadMember,
    TeamRoster,
)

logger = logging.getLogger("squaddash.parsers")

ROSTER_FILENAME = "team.md"
MEMBER_SECTIONS = ("Members", "Roster")
COORDINATOR_ROLE = "coordinator"

_GOOD_FIT = "🟢"
_NEEDS_REVIEW = "🟡"
_NOT_SUITABLE = "🔴"
_CAPABILITY_MARKERS = (_GOOD_FIT, _NEEDS_REVIEW, _NOT_SUITABLE)

_REPOSITORY_CELL_PATTERN = re.compile(r"\*\*Repository\*\*\s*\|\s*([^\n|]+)", re.IGNORECASE)
_REPOSITORY_LINE_PATTERN = re.compile(r"\*\*Repository:\*\*\s*(.+)", re.IGNORECASE)
_OWNER_PATTERN = re.compile(r"\*\*Owner:\*\*\s*([^(\n]+)", re.IGNORECASE)
_AUTO_ASSIGN_PATTERN = re.compile(r"<!--\s*copilot-auto-assign:\s*(true|false)\s*-->", re.IGNORECASE)
_INLINE_CAPABILITY_PATTERNS = {
    "goodFit": re.compile(r"🟢\s*Good fit[^:]*:\s*([^\n]+)", re.IGNORECASE),
    "needsReview": re.compile(r"🟡\s*Needs review[^:]*:\s*([^\n]+)", re.IGNORECASE),
    "notSuitable": re.compile(r"🔴\s*Not suitable[^:]*:\s*([^\n]+)", re.IGNORECASE),
}
_LIST_ITEM_PATTERN = re.compile(r"^[-*]\s+(.+)$")


class RosterParseError(ValueError):
    """Raised when the Members table is too malformed to map any column."""


def _table_cell(content: str, field: str) -> Optional[str]:
    match = re.search(rf"\*\*{re.escape(field)}\*\*\s*\|\s*([^\n|]+)", content, re.IGNORECASE)
    if not match:
        return None
    return match.group(1).strip() or None


def _split_csv(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


def parse_markdown_table(section: str) -> list[dict[str, str]]:
    """Parse a markdown table into dicts keyed by lowercased header names.

    The first table line is the header; separator rows are skipped.
    """
    rows: list[dict[str, str]] = []
    headers: Optional[list[str]] = None

    for line in section.split("\n"):
        trimmed = line.strip()
        if not trimmed.startswith("|"):
            continue
        cells = split_table_cells(trimmed)
        if headers is None:
            if is_separator_row(cells):
                raise RosterParseError("Members table has no header row")
            headers = [cell.lower() for cell in cells]
            continue
        if is_separator_row(cells):
            continue
        row = {headers[i]: cells[i] for i in range(min(len(headers), len(cells)))}
        if row:
            rows.append(row)
    return rows


def parse_status_badge(status_text: str) -> MemberStatus:
    """Roster badges describe configuration, not runtime; only 'working'/🔨 count."""
    text = (status_text or "").lower()
    if "working" in text or "🔨" in text:
        return "working"
    return "idle"


def _member_from_row(row: dict[str, str]) -> Optional[SquadMember]:
    name = row.get("name", "").strip()
    role = row.get("role", "").strip()
    if not name or not role:
        return None
    if role.lower() == COORDINATOR_ROLE:
        return None
    return SquadMember(name=name, role=role, status=parse_status_badge(row.get("status", "")))


def parse_members(content: str) -> list[SquadMember]:
    section = None
    for name in MEMBER_SECTIONS:
        section = extract_section(content, name)
        if section:
            break
    if not section:
        return []

    members: list[SquadMember] = []
    for row in parse_markdown_table(section):
        member = _member_from_row(row)
        if member:
            members.append(member)
    return members


def extract_repository(content: str) -> Optional[str]:
    match = _REPOSITORY_CELL_PATTERN.search(content) or _REPOSITORY_LINE_PATTERN.search(content)
    if match:
        return match.group(1).strip() or None
    return None


def extract_owner(content: str) -> Optional[str]:
    match = _OWNER_PATTERN.search(content)
    if match:
        return match.group(1).strip() or None
    return None


def _extract_member_aliases(content: str) -> Optional[dict[str, str]]:
    section = extract_section(content, "Member Aliases")
    if not section:
        return None
    aliases: dict[str, str] = {}
    header_seen = False
    for line in section.split("\n"):
        if not line.strip().startswith("|"):
            continue
        cells = split_table_cells(line)
        if is_separator_row(cells):
            continue
        if not header_seen:
            header_seen = True
            continue
        if len(cells) >= 2 and cells[0] and cells[1]:
            aliases[cells[0].lower()] = cells[1].lstrip("@")
    return aliases or None


def extract_issue_source(content: str, repository: Optional[str]) -> Optional[IssueSourceConfig]:
    """Build the issue-tracker coordinates from `owner/repo` or `host/owner/repo`."""
    if not repository:
        return None
    parts = [part for part in repository.strip().rstrip("/").split("/") if part]
    if len(parts) < 2:
        return None
    owner, repo = parts[-2], parts[-1]
    if repo.endswith(".git"):
        repo = repo[:-4]

    matching = _table_cell(content, "Matching")
    return IssueSourceConfig(
        repository=f"{owner}/{repo}",
        owner=owner,
        repo=repo,
        filters=_table_cell(content, "Filters"),
        matching=[m.lower() for m in _split_csv(matching)] if matching else None,
        memberAliases=_extract_member_aliases(content),
        upstream=_table_cell(content, "Upstream"),
    )


def _extract_capability_list(block: str, marker: str) -> Optional[list[str]]:
    items: list[str] = []
    in_section = False
    for line in block.split("\n"):
        trimmed = line.strip()
        if marker in trimmed:
            in_section = True
            colon = trimmed.find(":")
            if colon != -1:
                items.extend(_split_csv(trimmed[colon + 1:]))
            continue
        if in_section and any(other in trimmed for other in _CAPABILITY_MARKERS):
            break
        if in_section:
            match = _LIST_ITEM_PATTERN.match(trimmed)
            if match:
                items.append(match.group(1).strip())
    return items or None


def _extract_inline_capabilities(content: str) -> Optional[dict[str, list[str]]]:
    found: dict[str, list[str]] = {}
    for key, pattern in _INLINE_CAPABILITY_PATTERNS.items():
        match = pattern.search(content)
        if match:
            found[key] = _split_csv(match.group(1))
    return found or None


def extract_copilot_capabilities(content: str) -> Optional[CopilotCapabilities]:
    auto_assign = _AUTO_ASSIGN_PATTERN.search(content)
    coding_agent = extract_section(content, "Coding Agent")
    if coding_agent:
        block = extract_section(coding_agent, "Capabilities", level=3)
    else:
        block = extract_section(content, "@copilot Capabilities")
    inline = _extract_inline_capabilities(content)

    if not block and not inline and not auto_assign:
        return None

    capabilities = CopilotCapabilities(
        autoAssign=bool(auto_assign) and auto_assign.group(1).lower() == "true",
    )
    if block:
        capabilities.goodFit = _extract_capability_list(block, _GOOD_FIT)
        capabilities.needsReview = _extract_capability_list(block, _NEEDS_REVIEW)
        capabilities.notSuitable = _extract_capability_list(block, _NOT_SUITABLE)
    elif inline:
        capabilities.goodFit = inline.get("goodFit")
        capabilities.needsReview = inline.get("needsReview")
        capabilities.notSuitable = inline.get("notSuitable")
    return capabilities


def parse_roster_content(content: str) -> TeamRoster:
    """Parse team.md markdown. Raises RosterParseError on a headerless Members table."""
    content = normalize_eol(content)
    repository = extract_repository(content)
    return TeamRoster(
        members=parse_members(content),
        repository=repository,
        owner=extract_owner(content),
        copilotCapabilities=extract_copilot_capabilities(content),
        issueSource=extract_issue_source(content, repository),
    )


def parse_roster(squad_dir: Path) -> Optional[TeamRoster]:
    """Parse `{squad_dir}/team.md`; None when the file does not exist."""
    path = squad_dir / ROSTER_FILENAME
    if not path.is_file():
        return None
    text = path.read_text(encoding="utf-8")
    return parse_roster_content(text)
