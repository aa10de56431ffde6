"""Pydantic models served by the squad dashboard API."""
from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

MemberStatus = Literal["working", "idle"]
TaskStatus = Literal["pending", "in_progress", "completed"]


# ── Log-related models ──────────────────────────────────────────────

class WorkItem(BaseModel):
    agent: str
    description: str


class LogEntry(BaseModel):
    date: str  # YYYY-MM-DD
    topic: str
    timestamp: str
    participants: list[str] = Field(default_factory=list)
    summary: str = "No summary available"
    decisions: Optional[list[str]] = None  # "## Decisions" bullets
    outcomes: Optional[list[str]] = None  # "## Outcomes" bullets
    relatedIssues: Optional[list[str]] = None  # "#123" refs, deduplicated
    whatWasDone: Optional[list[WorkItem]] = None  # per-agent "- **Agent:** ..." bullets
    filePath: str = ""


# ── Task / member models ───────────────────────────────────────────

class Task(BaseModel):
    id: str  # issue number or "{date}-{agent-slug}"
    title: str
    description: str = ""
    status: TaskStatus = "pending"
    assignee: str = "unknown"
    startedAt: str = ""
    completedAt: Optional[str] = None


class SquadMember(BaseModel):
    name: str
    role: str
    status: MemberStatus = "idle"
    currentTask: Optional[Task] = None


class WorkDetails(BaseModel):
    task: Task
    member: SquadMember
    logEntries: Optional[list[LogEntry]] = None


# ── Decision models ────────────────────────────────────────────────

class DecisionEntry(BaseModel):
    title: str
    date: Optional[str] = None
    author: Optional[str] = None
    content: str = ""
    filePath: str
    lineNumber: int = 0  # 0-based heading line within the ledger


class DecisionSearchCriteria(BaseModel):
    query: Optional[str] = None
    startDate: Optional[str] = None  # inclusive, YYYY-MM-DD
    endDate: Optional[str] = None  # inclusive, YYYY-MM-DD
    author: Optional[str] = None


# ── Roster models ──────────────────────────────────────────────────

class CopilotCapabilities(BaseModel):
    autoAssign: bool = False
    goodFit: Optional[list[str]] = None
    needsReview: Optional[list[str]] = None
    notSuitable: Optional[list[str]] = None


class IssueSourceConfig(BaseModel):
    repository: str  # "owner/repo"
    owner: str
    repo: str
    filters: Optional[str] = None
    matching: Optional[list[str]] = None  # "labels" | "assignees"
    memberAliases: Optional[dict[str, str]] = None  # member name -> tracker login
    upstream: Optional[str] = None


class TeamRoster(BaseModel):
    members: list[SquadMember] = Field(default_factory=list)
    repository: Optional[str] = None
    owner: Optional[str] = None
    copilotCapabilities: Optional[CopilotCapabilities] = None
    issueSource: Optional[IssueSourceConfig] = None


# ── Issue tracker shapes (consumed, not fetched) ───────────────────

class GitHubLabel(BaseModel):
    name: str
    color: Optional[str] = None


class GitHubMilestone(BaseModel):
    number: int
    title: str
    state: Literal["open", "closed"] = "open"
    openIssues: int = 0
    closedIssues: int = 0
    dueOn: Optional[str] = None
    createdAt: str = ""


class GitHubIssue(BaseModel):
    number: int
    title: str
    body: Optional[str] = None
    state: Literal["open", "closed"] = "open"
    labels: list[GitHubLabel] = Field(default_factory=list)
    assignee: Optional[str] = None
    htmlUrl: str = ""
    createdAt: str = ""
    updatedAt: str = ""
    closedAt: Optional[str] = None
    milestone: Optional[GitHubMilestone] = None


class IssueMatchRequest(BaseModel):
    issues: list[GitHubIssue] = Field(default_factory=list)
    config: Optional[IssueSourceConfig] = None  # defaults to the roster's issue source


# ── Standup / health models ────────────────────────────────────────

StandupPeriod = Literal["day", "week"]
HealthStatus = Literal["pass", "warn", "fail"]


class StandupSummary(BaseModel):
    closedCount: int = 0
    newCount: int = 0
    blockingCount: int = 0
    periodStart: str  # ISO 8601, UTC
    periodEnd: str


class StandupReport(BaseModel):
    period: StandupPeriod = "day"
    summary: StandupSummary
    closedIssues: list[GitHubIssue] = Field(default_factory=list)
    newIssues: list[GitHubIssue] = Field(default_factory=list)
    blockingIssues: list[GitHubIssue] = Field(default_factory=list)
    recentDecisions: list[DecisionEntry] = Field(default_factory=list)
    suggestedNextSteps: list[GitHubIssue] = Field(default_factory=list)
    recentLogs: list[LogEntry] = Field(default_factory=list)
    markdown: str = ""


class StandupRequest(BaseModel):
    period: StandupPeriod = "day"
    openIssues: list[GitHubIssue] = Field(default_factory=list)
    closedIssues: list[GitHubIssue] = Field(default_factory=list)


class HealthCheckResult(BaseModel):
    name: str
    status: HealthStatus
    message: str
    fix: Optional[str] = None
