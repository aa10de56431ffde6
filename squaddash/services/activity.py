"""Derive member activity and tasks from parsed log entries.

Tasks are never written down directly; they are inferred from issue
references and per-agent prose in the logs. Derivation is two-pass:
issue-linked tasks first, then prose tasks only for sessions that linked no
issue, so one session's output is not counted twice.
"""
from __future__ import annotations

import re
from typing import Iterable

from squaddash.markdown_utils import slugify
from squaddash.models import LogEntry, MemberStatus, Task

COMPLETION_SIGNALS = ("completed", "done", "✅", "pass", "succeeds")
TITLE_MAX_LENGTH = 60

_ISSUE_NUMBER_PATTERN = re.compile(r"#(\d+)")


def is_completion_signal(text: str) -> bool:
    lowered = (text or "").lower()
    return any(signal in lowered for signal in COMPLETION_SIGNALS)


def prose_task_id(date_key: str, agent: str) -> str:
    """'2026-02-10', 'Banner' -> '2026-02-10-banner'."""
    return f"{date_key}-{slugify(agent)}"


def truncate_title(text: str, max_length: int = TITLE_MAX_LENGTH) -> str:
    if len(text) <= max_length:
        return text
    truncated = text[:max_length]
    last_space = truncated.rfind(" ")
    if last_space > max_length * 0.5:
        truncated = truncated[:last_space]
    return truncated + "…"


def _newest_first(entries: Iterable[LogEntry]) -> list[LogEntry]:
    # sorted() is stable, so equal dates keep their input order
    return sorted(entries, key=lambda entry: entry.date, reverse=True)


def get_member_states(entries: list[LogEntry]) -> dict[str, MemberStatus]:
    """Participants of the most recent entry are working; everyone else is idle."""
    states: dict[str, MemberStatus] = {}
    if not entries:
        return states

    most_recent = _newest_first(entries)[0]
    working = set(most_recent.participants)
    for entry in entries:
        for participant in entry.participants:
            states[participant] = "working" if participant in working else "idle"
    return states


def _issue_tasks(entry: LogEntry, seen: set[str]) -> list[Task]:
    tasks: list[Task] = []
    assignee = entry.participants[0] if entry.participants else "unknown"

    for ref in entry.relatedIssues or []:
        task_id = ref.replace("#", "").strip()
        if not task_id or task_id in seen:
            continue
        seen.add(task_id)
        tasks.append(Task(
            id=task_id,
            title=f"Issue #{task_id}",
            description=entry.summary,
            status="in_progress",
            assignee=assignee,
            startedAt=entry.date,
        ))

    for outcome in entry.outcomes or []:
        completed = is_completion_signal(outcome)
        for task_id in _ISSUE_NUMBER_PATTERN.findall(outcome):
            if task_id in seen:
                continue
            seen.add(task_id)
            tasks.append(Task(
                id=task_id,
                title=f"Issue #{task_id}",
                description=outcome,
                status="completed" if completed else "in_progress",
                assignee=assignee,
                startedAt=entry.date,
                completedAt=entry.date if completed else None,
            ))
    return tasks


def get_active_tasks(entries: list[LogEntry]) -> list[Task]:
    """Derive a deduplicated task list; the newest entry wins for a given id."""
    tasks: list[Task] = []
    seen: set[str] = set()
    prose_entries: list[LogEntry] = []

    for entry in _newest_first(entries):
        issue_tasks = _issue_tasks(entry, seen)
        tasks.extend(issue_tasks)
        if not issue_tasks and entry.participants:
            prose_entries.append(entry)

    # Per-agent "What Was Done" items outrank synthetic summary tasks
    for entry in prose_entries:
        for item in entry.whatWasDone or []:
            task_id = prose_task_id(entry.date, item.agent)
            if task_id in seen:
                continue
            seen.add(task_id)
            tasks.append(Task(
                id=task_id,
                title=truncate_title(item.description),
                description=item.description,
                status="completed",
                assignee=item.agent,
                startedAt=entry.date,
                completedAt=entry.date,
            ))

    for entry in prose_entries:
        if entry.whatWasDone or not entry.summary:
            continue
        assignee = entry.participants[0]
        task_id = prose_task_id(entry.date, assignee)
        if task_id in seen:
            continue
        seen.add(task_id)
        combined = " ".join([entry.summary, " ".join(entry.outcomes or [])])
        completed = is_completion_signal(combined)
        tasks.append(Task(
            id=task_id,
            title=truncate_title(entry.summary),
            description=entry.summary,
            status="completed" if completed else "in_progress",
            assignee=assignee,
            startedAt=entry.date,
            completedAt=entry.date if completed else None,
        ))

    return tasks
