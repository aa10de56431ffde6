"""Search and filter parsed decisions.

Pure service layer over DecisionEntry lists, no file I/O. Ranking is
title match > author match > body match.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Union

from squaddash.date_utils import date_range_bounds, to_date_key
from squaddash.models import DecisionEntry, DecisionSearchCriteria

TITLE_WEIGHT = 10
CONTENT_WEIGHT = 3
AUTHOR_WEIGHT = 5

DateLike = Union[date, str]


@dataclass
class ScoredDecision:
    decision: DecisionEntry
    score: int


class DecisionSearchService:
    """Relevance search plus composable date/author filters."""

    def search(self, decisions: list[DecisionEntry], query: str) -> list[DecisionEntry]:
        """Rank by relevance; an empty query returns the input unchanged."""
        trimmed = (query or "").strip()
        if not trimmed:
            return decisions
        scored = [s for s in self.score_decisions(decisions, trimmed) if s.score > 0]
        scored.sort(key=lambda s: s.score, reverse=True)
        return [s.decision for s in scored]

    def filter_by_date(
        self,
        decisions: list[DecisionEntry],
        start: DateLike,
        end: DateLike,
    ) -> list[DecisionEntry]:
        """Inclusive date range; decisions without a date are excluded."""
        start_key, end_key = date_range_bounds(to_date_key(start), to_date_key(end))
        return [d for d in decisions if d.date and start_key <= d.date <= end_key]

    def filter_by_author(self, decisions: list[DecisionEntry], author: str) -> list[DecisionEntry]:
        needle = (author or "").strip().lower()
        if not needle:
            return decisions
        return [d for d in decisions if d.author and needle in d.author.lower()]

    def filter(self, decisions: list[DecisionEntry], criteria: DecisionSearchCriteria) -> list[DecisionEntry]:
        """Search first (keeps rank order), then narrow by date range and author."""
        results = decisions
        if criteria.query and criteria.query.strip():
            results = self.search(results, criteria.query)
        if criteria.startDate or criteria.endDate:
            results = self.filter_by_date(results, criteria.startDate or "", criteria.endDate or "")
        if criteria.author and criteria.author.strip():
            results = self.filter_by_author(results, criteria.author)
        return results

    def score_decisions(self, decisions: list[DecisionEntry], query: str) -> list[ScoredDecision]:
        terms = [term for term in query.lower().split() if term]
        scored: list[ScoredDecision] = []
        for decision in decisions:
            title = (decision.title or "").lower()
            content = (decision.content or "").lower()
            author = (decision.author or "").lower()
            score = 0
            for term in terms:
                if term in title:
                    score += TITLE_WEIGHT
                if term in content:
                    score += CONTENT_WEIGHT
                if term in author:
                    score += AUTHOR_WEIGHT
            scored.append(ScoredDecision(decision=decision, score=score))
        return scored
