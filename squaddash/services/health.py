"""Diagnostic checks over a squad folder's configuration.

Each check returns a HealthCheckResult instead of raising, so one broken
file never hides the state of the others.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Mapping, Optional

from squaddash.models import HealthCheckResult
from squaddash.parsers.logs import LOG_DIRECTORIES, discover_log_files, parse_log_file
from squaddash.parsers.roster import ROSTER_FILENAME, RosterParseError, parse_roster

logger = logging.getLogger("squaddash")

TOKEN_ENV_VARS = ("GITHUB_TOKEN", "GH_TOKEN")
CHARTER_FILENAME = "charter.md"

_STATUS_ICONS = {"pass": "✅", "warn": "⚠️", "fail": "❌"}


def check_team_md(squad_dir: Path) -> HealthCheckResult:
    folder = squad_dir.name
    if not (squad_dir / ROSTER_FILENAME).is_file():
        return HealthCheckResult(
            name=ROSTER_FILENAME,
            status="fail",
            message=f"team.md not found at {folder}/team.md",
            fix=f"Create a team.md file in the {folder}/ directory.",
        )

    try:
        roster = parse_roster(squad_dir)
    except (RosterParseError, OSError, UnicodeDecodeError) as exc:
        return HealthCheckResult(
            name=ROSTER_FILENAME,
            status="fail",
            message=f"team.md parse error: {exc}",
            fix="Check team.md for malformed markdown tables.",
        )

    if roster is None or not roster.members:
        return HealthCheckResult(
            name=ROSTER_FILENAME,
            status="warn",
            message="team.md parsed but no members found",
            fix="Add a Members or Roster table with at least one team member row.",
        )
    return HealthCheckResult(
        name=ROSTER_FILENAME,
        status="pass",
        message=f"team.md OK, {len(roster.members)} member(s) found",
    )


def check_agent_charters(squad_dir: Path) -> HealthCheckResult:
    name = "Agent Charters"
    folder = squad_dir.name
    agents_dir = squad_dir / "agents"
    if not agents_dir.is_dir():
        return HealthCheckResult(
            name=name,
            status="warn",
            message=f"No agents/ directory found at {folder}/agents/",
            fix="Create one folder per agent under agents/, each with a charter.md.",
        )

    try:
        agent_dirs = sorted(p for p in agents_dir.iterdir() if p.is_dir() and not p.name.startswith("_"))
    except OSError as exc:
        return HealthCheckResult(name=name, status="fail", message=f"Error scanning agents/: {exc}")

    if not agent_dirs:
        return HealthCheckResult(
            name=name,
            status="warn",
            message="agents/ directory exists but contains no agent folders",
            fix="Add agent subdirectories with charter.md files.",
        )

    missing = [p.name for p in agent_dirs if not (p / CHARTER_FILENAME).is_file()]
    if missing:
        return HealthCheckResult(
            name=name,
            status="fail",
            message=f"Missing charter.md in: {', '.join(missing)}",
            fix="Create charter.md files in: " + ", ".join(f"{folder}/agents/{m}/" for m in missing),
        )
    return HealthCheckResult(name=name, status="pass", message=f"All {len(agent_dirs)} agent(s) have charter.md")


def check_orchestration_logs(squad_dir: Path) -> HealthCheckResult:
    name = "Orchestration Logs"
    files = discover_log_files(squad_dir)
    if not files:
        locations = " or ".join(f"{squad_dir.name}/{d}/" for d in LOG_DIRECTORIES)
        return HealthCheckResult(
            name=name,
            status="warn",
            message="No orchestration log files found",
            fix=f"Create .md log files in {locations}.",
        )

    failed: list[str] = []
    for path in files:
        try:
            parse_log_file(path)
        except (OSError, UnicodeDecodeError, ValueError) as exc:
            logger.warning(f"Health check could not parse {path}: {exc}")
            failed.append(path.name)

    if failed:
        return HealthCheckResult(
            name=name,
            status="fail",
            message=f"{len(failed)} log file(s) failed to parse: {', '.join(failed)}",
            fix="Check the listed files for malformed markdown structure.",
        )
    return HealthCheckResult(name=name, status="pass", message=f"All {len(files)} log file(s) parsed successfully")


def check_issue_tracker_config(squad_dir: Path, environ: Optional[Mapping[str, str]] = None) -> HealthCheckResult:
    """Warn when issue integration is unconfigured; it is optional."""
    name = "Issue Tracker Config"
    env = os.environ if environ is None else environ
    if not any(env.get(var) for var in TOKEN_ENV_VARS):
        return HealthCheckResult(
            name=name,
            status="warn",
            message="No GitHub token found (GITHUB_TOKEN or GH_TOKEN)",
            fix="Set GITHUB_TOKEN or GH_TOKEN to enable issue integration.",
        )

    try:
        roster = parse_roster(squad_dir)
    except (RosterParseError, OSError, UnicodeDecodeError):
        roster = None
    if roster is None or roster.issueSource is None:
        return HealthCheckResult(
            name=name,
            status="warn",
            message="GitHub token is configured but team.md names no issue source",
            fix="Add a **Repository:** line (owner/repo) to team.md.",
        )
    return HealthCheckResult(
        name=name,
        status="pass",
        message=f"GitHub token is configured for {roster.issueSource.repository}",
    )


def run_all(squad_dir: Path, environ: Optional[Mapping[str, str]] = None) -> list[HealthCheckResult]:
    return [
        check_team_md(squad_dir),
        check_agent_charters(squad_dir),
        check_orchestration_logs(squad_dir),
        check_issue_tracker_config(squad_dir, environ),
    ]


def format_results(results: list[HealthCheckResult]) -> str:
    lines = ["Squad Health Check Results", "═" * 40, ""]
    for result in results:
        lines.append(f"{_STATUS_ICONS[result.status]} {result.name}: {result.message}")
        if result.fix:
            lines.append(f"   Fix: {result.fix}")

    counts = {status: sum(1 for r in results if r.status == status) for status in _STATUS_ICONS}
    lines.append("")
    lines.append(f"Summary: {counts['pass']} passed, {counts['warn']} warning(s), {counts['fail']} failed")
    return "\n".join(lines)
