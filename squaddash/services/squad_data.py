"""Aggregate roster, log and decision data into the dashboard's read API.

Member resolution order:
1. team.md Members table (authoritative roster)
2. `{squad}/agents/*/` folders with charter.md roles
3. Log participants (legacy fallback)

Whichever tier wins, status and current task are overlaid from the
orchestration log only. Narrative `log/` entries are display-only.
"""
from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from squaddash import config
from squaddash.models import (
    DecisionEntry,
    LogEntry,
    MemberStatus,
    SquadMember,
    Task,
    TeamRoster,
    WorkDetails,
)
from squaddash.parsers.decisions import get_decisions as parse_decisions
from squaddash.parsers.logs import scan_logs, scan_orchestration_logs
from squaddash.parsers.roster import ROSTER_FILENAME, RosterParseError, parse_roster
from squaddash.services.activity import get_active_tasks, get_member_states
from squaddash.squad_folder import get_squad_folder_name

logger = logging.getLogger("squaddash")

DEFAULT_ROLE = "Squad Member"
PLACEHOLDER_ROLE = "Team Member"
SKIPPED_AGENT_FOLDERS = frozenset({"_alumni", "scribe"})

_CHARTER_ROLE_PATTERN = re.compile(r"-\s*\*\*Role:\*\*\s*(.+)", re.IGNORECASE)


@dataclass
class _CacheSlots:
    log_entries: Optional[list[LogEntry]] = None
    orchestration_entries: Optional[list[LogEntry]] = None
    members: Optional[list[SquadMember]] = None
    tasks: Optional[list[Task]] = None
    decisions: Optional[list[DecisionEntry]] = None


class SquadDataProvider:
    """Cached, lazily populated view over one workspace's squad folder."""

    def __init__(
        self,
        team_root: Path,
        squad_folder: Optional[str] = None,
        retry_delay_seconds: Optional[float] = None,
    ):
        self.team_root = Path(team_root)
        self.squad_folder = squad_folder or get_squad_folder_name(self.team_root)
        self.retry_delay_seconds = (
            config.ROSTER_RETRY_DELAY_SECONDS if retry_delay_seconds is None else retry_delay_seconds
        )
        self._cache = _CacheSlots()

    @property
    def squad_dir(self) -> Path:
        return self.team_root / self.squad_folder

    def refresh(self) -> None:
        """Invalidate every cache slot together."""
        self._cache = _CacheSlots()
        logger.debug(f"Squad data cache invalidated for {self.squad_dir}")

    # ── Cached reads ───────────────────────────────────────────────

    async def get_log_entries(self) -> list[LogEntry]:
        if self._cache.log_entries is None:
            self._cache.log_entries = scan_logs(self.squad_dir)
        return self._cache.log_entries

    async def get_orchestration_entries(self) -> list[LogEntry]:
        if self._cache.orchestration_entries is None:
            self._cache.orchestration_entries = scan_orchestration_logs(self.squad_dir)
        return self._cache.orchestration_entries

    async def get_tasks(self) -> list[Task]:
        cache = self._cache
        if cache.tasks is None:
            entries = await self.get_orchestration_entries()
            cache.tasks = get_active_tasks(entries)
        return cache.tasks

    async def get_decisions(self) -> list[DecisionEntry]:
        if self._cache.decisions is None:
            self._cache.decisions = parse_decisions(self.squad_dir)
        return self._cache.decisions

    async def get_squad_members(self) -> list[SquadMember]:
        # refresh() may swap the cache during the roster retry sleep
        cache = self._cache
        if cache.members is not None:
            return cache.members

        states = get_member_states(await self.get_orchestration_entries())
        tasks = await self.get_tasks()

        roster = await self._resolve_roster()
        if roster is not None and roster.members:
            base = roster.members
        else:
            base = self.discover_members_from_agents_folder()
            if not base:
                base = self._members_from_participants(await self.get_log_entries())

        members = [self._overlay(member, states, tasks) for member in base]
        cache.members = members
        return members

    async def get_tasks_for_member(self, name: str) -> list[Task]:
        tasks = await self.get_tasks()
        return [task for task in tasks if task.assignee == name]

    async def get_work_details(self, task_id: str) -> Optional[WorkDetails]:
        tasks = await self.get_tasks()
        task = next((t for t in tasks if t.id == task_id), None)
        if task is None:
            return None

        members = await self.get_squad_members()
        assignee = (task.assignee or "").lower()
        member = next((m for m in members if m.name.lower() == assignee), None)
        if member is None:
            placeholder = SquadMember(name=task.assignee or "Unknown", role=PLACEHOLDER_ROLE)
            return WorkDetails(task=task, member=placeholder)

        entries = await self.get_log_entries()
        related = [
            entry for entry in entries
            if any(task_id in issue for issue in entry.relatedIssues or [])
        ]
        return WorkDetails(task=task, member=member, logEntries=related or None)

    async def get_roster(self) -> Optional[TeamRoster]:
        """The full roster (members, issue source, capabilities), uncached."""
        return parse_roster(self.squad_dir)

    # ── Member resolution ──────────────────────────────────────────

    async def _resolve_roster(self) -> Optional[TeamRoster]:
        """Parse team.md, retrying once when it exists but has no usable rows yet."""
        try:
            roster = parse_roster(self.squad_dir)
        except RosterParseError as exc:
            logger.warning(f"Roster table malformed, retrying: {exc}")
            roster = None
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning(f"Failed to read roster: {exc}")
            return None
        if roster is not None and roster.members:
            return roster

        roster_path = self.squad_dir / ROSTER_FILENAME
        if not roster_path.is_file():
            return roster

        # An initializer may have created team.md without finishing the table
        await asyncio.sleep(self.retry_delay_seconds)
        try:
            return parse_roster(self.squad_dir)
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning(f"Failed to read roster on retry: {exc}")
            return None

    def discover_members_from_agents_folder(self) -> list[SquadMember]:
        agents_dir = self.squad_dir / "agents"
        if not agents_dir.is_dir():
            return []
        try:
            folders = sorted(p for p in agents_dir.iterdir() if p.is_dir())
        except OSError:
            return []

        members: list[SquadMember] = []
        for folder in folders:
            if folder.name in SKIPPED_AGENT_FOLDERS:
                continue
            role = DEFAULT_ROLE
            try:
                charter = (folder / "charter.md").read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError):
                charter = ""
            match = _CHARTER_ROLE_PATTERN.search(charter)
            if match:
                role = match.group(1).strip()
            display_name = folder.name[:1].upper() + folder.name[1:]
            members.append(SquadMember(name=display_name, role=role))
        return members

    @staticmethod
    def _members_from_participants(entries: list[LogEntry]) -> list[SquadMember]:
        names: dict[str, None] = {}
        for entry in entries:
            for participant in entry.participants:
                names.setdefault(participant, None)
        return [SquadMember(name=name, role=DEFAULT_ROLE) for name in names]

    @staticmethod
    def _overlay(
        member: SquadMember,
        states: dict[str, MemberStatus],
        tasks: list[Task],
    ) -> SquadMember:
        log_status = states.get(member.name, "idle")
        current = next(
            (t for t in tasks if t.assignee == member.name and t.status == "in_progress"),
            None,
        )
        status: MemberStatus = "idle" if log_status == "working" and current is None else log_status
        return SquadMember(name=member.name, role=member.role, status=status, currentTask=current)
