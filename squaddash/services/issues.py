"""Join issue-tracker issues to squad members.

Issues arrive already fetched (the HTTP client lives outside this package);
this module only decides which member each issue belongs to.
"""
from __future__ import annotations

from typing import Optional

from squaddash.models import GitHubIssue, IssueSourceConfig, TeamRoster

SQUAD_LABEL_PREFIX = "squad:"
DEFAULT_MATCHING = ("labels",)


def parse_issue_source(roster: Optional[TeamRoster]) -> Optional[IssueSourceConfig]:
    if roster is None:
        return None
    return roster.issueSource


def _label_members(issue: GitHubIssue) -> list[str]:
    members: list[str] = []
    for label in issue.labels:
        name = label.name.strip()
        if name.lower().startswith(SQUAD_LABEL_PREFIX):
            member = name[len(SQUAD_LABEL_PREFIX):].strip().lower()
            if member:
                members.append(member)
    return members


def _assignee_members(issue: GitHubIssue, aliases: dict[str, str]) -> list[str]:
    if not issue.assignee:
        return []
    login = issue.assignee.lower()
    return [member.lower() for member, alias in aliases.items() if alias.lower() == login]


def map_issues_to_members(
    issues: list[GitHubIssue],
    config: Optional[IssueSourceConfig] = None,
) -> dict[str, list[GitHubIssue]]:
    """Map lowercased member names to their issues; an issue appears once per member."""
    strategies = set((config.matching if config and config.matching else DEFAULT_MATCHING))
    aliases = (config.memberAliases if config else None) or {}
    by_member: dict[str, list[GitHubIssue]] = {}

    for issue in issues:
        members: list[str] = []
        if "labels" in strategies:
            members.extend(_label_members(issue))
        if "assignees" in strategies:
            members.extend(_assignee_members(issue, aliases))
        for member in dict.fromkeys(members):
            by_member.setdefault(member, []).append(issue)

    return by_member


def issues_for_member(
    issues: list[GitHubIssue],
    member_name: str,
    config: Optional[IssueSourceConfig] = None,
) -> list[GitHubIssue]:
    return map_issues_to_members(issues, config).get(member_name.lower(), [])
