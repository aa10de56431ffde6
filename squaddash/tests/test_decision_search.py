import unittest
from datetime import date

from squaddash.models import DecisionEntry, DecisionSearchCriteria
from squaddash.services.decision_search import DecisionSearchService


def _decision(title: str, content: str = "", day: str | None = None, author: str | None = None) -> DecisionEntry:
    return DecisionEntry(title=title, content=content, date=day, author=author, filePath="decisions.md")


class DecisionSearchTests(unittest.TestCase):
    def setUp(self) -> None:
        self.service = DecisionSearchService()
        self.catalog = _decision("Fix Three Skill Catalog Bugs", "Patched the loader.", "2026-02-10", "Rusty")
        self.mention = _decision("Roster retry", "Mentions skill once.", "2026-02-01", "Linus Caldwell")
        self.unrelated = _decision("Adopt FastAPI", "Web layer.", None, None)
        self.decisions = [self.mention, self.unrelated, self.catalog]

    def test_title_matches_outrank_body_matches(self) -> None:
        results = self.service.search(self.decisions, "skill catalog")
        self.assertEqual(results, [self.catalog, self.mention])

    def test_scores_are_weighted(self) -> None:
        scored = {s.decision.title: s.score for s in self.service.score_decisions(self.decisions, "skill rusty")}
        self.assertEqual(scored["Fix Three Skill Catalog Bugs"], 10 + 5)
        self.assertEqual(scored["Roster retry"], 3)
        self.assertEqual(scored["Adopt FastAPI"], 0)

    def test_blank_query_returns_input(self) -> None:
        self.assertIs(self.service.search(self.decisions, "   "), self.decisions)

    def test_date_filter_is_inclusive_and_drops_undated(self) -> None:
        results = self.service.filter_by_date(self.decisions, "2026-02-01", "2026-02-10")
        self.assertEqual(results, [self.mention, self.catalog])

        results = self.service.filter_by_date(self.decisions, date(2026, 2, 5), "")
        self.assertEqual(results, [self.catalog])

    def test_author_filter(self) -> None:
        self.assertEqual(self.service.filter_by_author(self.decisions, "caldwell"), [self.mention])
        self.assertIs(self.service.filter_by_author(self.decisions, ""), self.decisions)

    def test_combined_filter_keeps_rank_order(self) -> None:
        criteria = DecisionSearchCriteria(query="skill", startDate="2026-01-01", author="")
        results = self.service.filter(self.decisions, criteria)
        self.assertEqual(results, [self.catalog, self.mention])

        criteria = DecisionSearchCriteria(query="skill", author="linus")
        self.assertEqual(self.service.filter(self.decisions, criteria), [self.mention])

    def test_empty_criteria_returns_everything(self) -> None:
        self.assertEqual(self.service.filter(self.decisions, DecisionSearchCriteria()), self.decisions)


if __name__ == "__main__":
    unittest.main()
