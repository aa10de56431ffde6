"""Build daily/weekly standup reports.

Issues are supplied by the caller (the tracker client lives outside this
package); decisions and log entries come from the squad folder. A report
covers the trailing 24 hours or 7 days ending at `now`.
"""
from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from typing import Optional

from squaddash.models import (
    DecisionEntry,
    GitHubIssue,
    LogEntry,
    StandupPeriod,
    StandupReport,
    StandupSummary,
)

BLOCKING_LABELS = frozenset({"blocked", "blocker", "blocking", "impediment"})
PRIORITY_ORDER = {
    "p0": 0,
    "priority:critical": 0,
    "urgent": 0,
    "p1": 1,
    "priority:high": 1,
    "high": 1,
    "p2": 2,
    "priority:medium": 2,
    "medium": 2,
    "p3": 3,
    "priority:low": 3,
    "low": 3,
}
UNPRIORITIZED = 99
MAX_NEXT_STEPS = 5
PERIOD_LENGTHS = {"day": timedelta(days=1), "week": timedelta(days=7)}

_DATE_KEY_PATTERN = re.compile(r"(\d{4})-(\d{2})-(\d{2})")


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp ('Z' suffix allowed); naive values are UTC."""
    if not value:
        return None
    token = value.strip()
    if token.endswith("Z"):
        token = token[:-1] + "+00:00"
    try:
        return _as_utc(datetime.fromisoformat(token))
    except ValueError:
        return None


def parse_report_date(value: Optional[str]) -> Optional[datetime]:
    """Loose date parse for decision and log dates.

    An embedded YYYY-MM-DD wins and maps to midnight UTC, so
    '2026-02-14/15' and '2026-02-14T10:00:00Z' both land on Feb 14.
    """
    if not value:
        return None
    match = _DATE_KEY_PATTERN.search(value)
    if match:
        try:
            return datetime(int(match.group(1)), int(match.group(2)), int(match.group(3)), tzinfo=timezone.utc)
        except ValueError:
            return None
    return parse_timestamp(value)


def is_blocking(issue: GitHubIssue) -> bool:
    return any(label.name.lower() in BLOCKING_LABELS for label in issue.labels)


def issue_priority(issue: GitHubIssue) -> int:
    """Rank of the first label with a known priority; unlabelled issues sort last."""
    for label in issue.labels:
        rank = PRIORITY_ORDER.get(label.name.lower())
        if rank is not None:
            return rank
    return UNPRIORITIZED


def _within(moment: Optional[datetime], start: datetime, end: datetime) -> bool:
    return moment is not None and start <= moment <= end


def generate_report(
    open_issues: list[GitHubIssue],
    closed_issues: list[GitHubIssue],
    decisions: list[DecisionEntry],
    log_entries: list[LogEntry],
    period: StandupPeriod = "day",
    now: Optional[datetime] = None,
) -> StandupReport:
    end = _as_utc(now) if now is not None else datetime.now(timezone.utc)
    start = end - PERIOD_LENGTHS[period]

    closed_in_period = [i for i in closed_issues if _within(parse_timestamp(i.closedAt), start, end)]
    new_in_period = [i for i in open_issues if _within(parse_timestamp(i.createdAt), start, end)]
    blocking = [i for i in open_issues if is_blocking(i)]

    recent_decisions = []
    for decision in decisions:
        decided = parse_report_date(decision.date)
        if decided is not None and decided >= start:
            recent_decisions.append(decision)

    recent_logs = []
    for entry in log_entries:
        logged = parse_report_date(entry.date)
        if logged is not None and logged >= start:
            recent_logs.append(entry)

    # sorted() is stable, so equal priorities keep tracker order
    next_steps = sorted((i for i in open_issues if not is_blocking(i)), key=issue_priority)[:MAX_NEXT_STEPS]

    report = StandupReport(
        period=period,
        summary=StandupSummary(
            closedCount=len(closed_in_period),
            newCount=len(new_in_period),
            blockingCount=len(blocking),
            periodStart=start.isoformat(),
            periodEnd=end.isoformat(),
        ),
        closedIssues=closed_in_period,
        newIssues=new_in_period,
        blockingIssues=blocking,
        recentDecisions=recent_decisions,
        suggestedNextSteps=next_steps,
        recentLogs=recent_logs,
    )
    report.markdown = format_as_markdown(report)
    return report


def _display_date(iso_value: str) -> str:
    moment = parse_timestamp(iso_value)
    if moment is None:
        return iso_value
    return f"{moment:%a}, {moment:%b} {moment.day}, {moment.year}"


def _issue_lines(heading: str, issues: list[GitHubIssue]) -> list[str]:
    if not issues:
        return []
    lines = [heading, ""]
    lines.extend(f"- **#{issue.number}**: {issue.title}" for issue in issues)
    lines.append("")
    return lines


def format_as_markdown(report: StandupReport) -> str:
    """Render a report as markdown; empty sections are omitted."""
    summary = report.summary
    label = "Daily" if report.period == "day" else "Weekly"
    lines = [
        f"# {label} Standup Report",
        "",
        f"**Period:** {_display_date(summary.periodStart)} – {_display_date(summary.periodEnd)}",
        "",
        "## Summary",
        "",
        "| Metric | Count |",
        "|--------|-------|",
        f"| ✅ Issues Closed | {summary.closedCount} |",
        f"| 📋 New Issues | {summary.newCount} |",
        f"| 🚫 Blockers | {summary.blockingCount} |",
        "",
    ]

    lines.extend(_issue_lines("## ✅ Closed Issues", report.closedIssues))
    lines.extend(_issue_lines("## 📋 New Issues", report.newIssues))

    if report.blockingIssues:
        lines.extend(["## 🚫 Blockers", ""])
        for issue in report.blockingIssues:
            labels = ", ".join(label.name for label in issue.labels)
            lines.append(f"- **#{issue.number}**: {issue.title} ({labels})")
        lines.append("")

    if report.suggestedNextSteps:
        lines.extend(["## 🎯 Suggested Next Steps", ""])
        for issue in report.suggestedNextSteps:
            assignee = f" @{issue.assignee}" if issue.assignee else ""
            lines.append(f"- **#{issue.number}**: {issue.title}{assignee}")
        lines.append("")

    if report.recentDecisions:
        lines.extend(["## 📌 Recent Decisions", ""])
        for decision in report.recentDecisions:
            author = f" ({decision.author})" if decision.author else ""
            lines.append(f"- **{decision.title}**{author}")
        lines.append("")

    return "\n".join(lines)
