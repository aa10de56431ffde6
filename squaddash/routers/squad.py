"""Squad dashboard API router."""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request

from squaddash.models import (
    DecisionEntry,
    DecisionSearchCriteria,
    GitHubIssue,
    HealthCheckResult,
    IssueMatchRequest,
    LogEntry,
    SquadMember,
    StandupReport,
    StandupRequest,
    Task,
    TeamRoster,
    WorkDetails,
)
from squaddash.observability import record_cache_refresh
from squaddash.parsers.roster import RosterParseError
from squaddash.services import health, standup
from squaddash.services.decision_search import DecisionSearchService
from squaddash.services.issues import map_issues_to_members, parse_issue_source

logger = logging.getLogger("squaddash")

squad_router = APIRouter(prefix="/api/squad", tags=["squad"])

decision_search = DecisionSearchService()


def _get_provider(request: Request):
    provider = getattr(request.app.state, "squad_provider", None)
    if not provider:
        raise HTTPException(status_code=503, detail="Squad data provider not initialized")
    return provider


@squad_router.get("/members", response_model=list[SquadMember])
async def list_members(request: Request):
    provider = _get_provider(request)
    try:
        return await provider.get_squad_members()
    except RosterParseError as exc:
        logger.warning(f"Roster parse failed: {exc}")
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@squad_router.get("/members/{name}/tasks", response_model=list[Task])
async def list_member_tasks(name: str, request: Request):
    provider = _get_provider(request)
    return await provider.get_tasks_for_member(name)


@squad_router.get("/tasks/{task_id}", response_model=WorkDetails)
async def get_work_details(task_id: str, request: Request):
    provider = _get_provider(request)
    try:
        details = await provider.get_work_details(task_id)
    except RosterParseError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    if details is None:
        raise HTTPException(status_code=404, detail=f"Task not found: {task_id}")
    return details


@squad_router.get("/decisions", response_model=list[DecisionEntry])
async def list_decisions(
    request: Request,
    q: Optional[str] = Query(None, description="Free-text relevance query"),
    startDate: Optional[str] = Query(None, description="Inclusive YYYY-MM-DD lower bound"),
    endDate: Optional[str] = Query(None, description="Inclusive YYYY-MM-DD upper bound"),
    author: Optional[str] = Query(None, description="Case-insensitive author substring"),
):
    provider = _get_provider(request)
    decisions = await provider.get_decisions()
    criteria = DecisionSearchCriteria(query=q, startDate=startDate, endDate=endDate, author=author)
    return decision_search.filter(decisions, criteria)


@squad_router.get("/logs", response_model=list[LogEntry])
async def list_logs(request: Request):
    provider = _get_provider(request)
    return await provider.get_log_entries()


@squad_router.get("/roster", response_model=TeamRoster)
async def get_roster(request: Request):
    provider = _get_provider(request)
    try:
        roster = await provider.get_roster()
    except RosterParseError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    if roster is None:
        raise HTTPException(status_code=404, detail="No team roster found")
    return roster


@squad_router.post("/refresh")
async def refresh(request: Request):
    provider = _get_provider(request)
    provider.refresh()
    record_cache_refresh("api")
    return {"status": "ok", "squadDir": str(provider.squad_dir)}


@squad_router.get("/health", response_model=list[HealthCheckResult])
async def run_health_checks(request: Request):
    provider = _get_provider(request)
    results = health.run_all(provider.squad_dir)
    failed = [r.name for r in results if r.status == "fail"]
    if failed:
        logger.warning(f"Squad health checks failed: {', '.join(failed)}")
    return results


@squad_router.post("/standup", response_model=StandupReport)
async def build_standup(body: StandupRequest, request: Request):
    provider = _get_provider(request)
    return standup.generate_report(
        body.openIssues,
        body.closedIssues,
        await provider.get_decisions(),
        await provider.get_log_entries(),
        period=body.period,
    )


@squad_router.post("/issues/match", response_model=dict[str, list[GitHubIssue]])
async def match_issues(body: IssueMatchRequest, request: Request):
    """Group supplied issues by member; the roster's issue source applies when no config is sent."""
    provider = _get_provider(request)
    config = body.config
    if config is None:
        try:
            config = parse_issue_source(await provider.get_roster())
        except RosterParseError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
    return map_issues_to_members(body.issues, config)
