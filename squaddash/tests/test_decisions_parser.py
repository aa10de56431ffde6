import re
import tempfile
import unittest
from pathlib import Path

from squaddash.parsers.decisions import (
    SUBSECTION_TITLES,
    clean_ledger_title,
    get_decisions,
    is_subsection_title,
    parse_decision_file,
    parse_decisions_ledger,
)


class DecisionLedgerTests(unittest.TestCase):
    def test_dated_heading_with_author(self) -> None:
        content = "# Decisions\n\n## 2026-02-14: Fix bug\n\n**Author:** Rusty\n\nBody.\n"
        decisions = parse_decisions_ledger(content, "/tmp/decisions.md")

        self.assertEqual(len(decisions), 1)
        decision = decisions[0]
        self.assertEqual(decision.title, "Fix bug")
        self.assertEqual(decision.date, "2026-02-14")
        self.assertEqual(decision.author, "Rusty")
        self.assertEqual(decision.filePath, "/tmp/decisions.md")
        self.assertEqual(decision.lineNumber, 2)
        self.assertIn("Body.", decision.content)

    def test_crlf_ledger(self) -> None:
        content = "## 2026-02-14: Fix bug\r\n\r\n**Author:** Rusty\r\n"
        decisions = parse_decisions_ledger(content, "decisions.md")
        self.assertEqual([(d.title, d.date, d.author) for d in decisions], [("Fix bug", "2026-02-14", "Rusty")])

    def test_structural_subsections_are_not_decisions(self) -> None:
        content = (
            "## Context\n\nBackground.\n\n"
            "## Decision\n\nWe agreed.\n\n"
            "## Decision: Use SQLite\n\n### Rationale\n\nSmall.\n\n"
            "## Items deferred to v2\n\n- stuff\n\n"
            "## Summary\n\nDone.\n"
        )
        decisions = parse_decisions_ledger(content, "decisions.md")
        self.assertEqual([d.title for d in decisions], ["Use SQLite"])
        for decision in decisions:
            self.assertNotIn(decision.title.lower(), SUBSECTION_TITLES)

    def test_denylist_is_case_insensitive(self) -> None:
        self.assertTrue(is_subsection_title("Open Questions / Risks"))
        self.assertTrue(is_subsection_title("ITEMS DEFERRED (later)"))
        self.assertFalse(is_subsection_title("Adopt watchfiles"))

    def test_only_dated_level_three_headings_count(self) -> None:
        content = (
            "## Sprint 3\n\n"
            "### 2026-02-10: Merge logs\n**By:** Linus\n\n"
            "### Notes\n\nNothing.\n"
        )
        decisions = parse_decisions_ledger(content, "decisions.md")
        self.assertEqual([d.title for d in decisions], ["Sprint 3", "Merge logs"])
        self.assertEqual(decisions[1].date, "2026-02-10")
        self.assertEqual(decisions[1].author, "Linus")

    def test_title_cleaning(self) -> None:
        self.assertEqual(clean_ledger_title("2026-02-14/15: Parser Rewrite"), ("2026-02-14", "Parser Rewrite"))
        self.assertEqual(clean_ledger_title("2026-02-01: User directive — always squash"), ("2026-02-01", "always squash"))
        self.assertEqual(clean_ledger_title("# Broken Heading"), (None, "Broken Heading"))
        self.assertEqual(clean_ledger_title("Decision: Keep Python"), (None, "Keep Python"))

    def test_stray_hash_heading(self) -> None:
        decisions = parse_decisions_ledger("## # Broken Heading\n\nText\n", "decisions.md")
        self.assertEqual([d.title for d in decisions], ["Broken Heading"])

    def test_date_metadata_overrides_heading_date(self) -> None:
        content = "## 2026-01-01: Thing\n**Date:** 2026-01-05 (approved)\n"
        decisions = parse_decisions_ledger(content, "decisions.md")
        self.assertEqual(decisions[0].date, "2026-01-05")

    def test_author_beats_by(self) -> None:
        content = "## Pick a queue\n**By:** Alpha\n**Author:** Beta\n"
        decisions = parse_decisions_ledger(content, "decisions.md")
        self.assertEqual(decisions[0].author, "Beta")

    def test_metadata_window_is_bounded(self) -> None:
        filler = "\n".join(f"line {i}" for i in range(25))
        content = f"## Late metadata\n{filler}\n**Author:** Nobody\n"
        decisions = parse_decisions_ledger(content, "decisions.md")
        self.assertIsNone(decisions[0].author)

    def test_h1_decision_block(self) -> None:
        content = (
            "# Decision: Adopt FastAPI\n"
            "**Date:** 2026-03-03\n"
            "**Author:** Basher\n\n"
            "## Context\nWhy.\n\n"
            "# Other\n"
        )
        decisions = parse_decisions_ledger(content, "decisions.md")
        self.assertEqual(len(decisions), 1)
        self.assertEqual(decisions[0].title, "Adopt FastAPI")
        self.assertEqual(decisions[0].date, "2026-03-03")
        self.assertEqual(decisions[0].author, "Basher")
        self.assertNotIn("# Other", decisions[0].content)


class DecisionDirectoryTests(unittest.TestCase):
    def test_decision_files_and_combined_ordering(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            squad_dir = Path(tmpdir)
            nested = squad_dir / "decisions" / "inbox"
            nested.mkdir(parents=True)
            (nested / "watchfiles.md").write_text(
                "# Design Decision: Use watchfiles\n\n**By:** Rusty\n**Date:** 2026-04-01\n",
                encoding="utf-8",
            )
            (squad_dir / "decisions" / "retry.md").write_text(
                "## 2026-05-02: Roster Retry\n\nWait once.\n", encoding="utf-8"
            )
            (squad_dir / "decisions.md").write_text(
                "## 2026-01-01: Ledger entry\n\n## Undated entry\n", encoding="utf-8"
            )

            decisions = get_decisions(squad_dir)

            self.assertEqual(
                [(d.title, d.date) for d in decisions],
                [
                    ("Roster Retry", "2026-05-02"),
                    ("Use watchfiles", "2026-04-01"),
                    ("Ledger entry", "2026-01-01"),
                    ("Undated entry", None),
                ],
            )
            self.assertEqual(decisions[1].author, "Rusty")

    def test_file_without_heading_or_date(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "loose.md"
            path.write_text("Just some text.\n", encoding="utf-8")
            decision = parse_decision_file(path)

            self.assertEqual(decision.title, "Untitled Decision")
            self.assertIsNotNone(decision.date)
            assert decision.date is not None
            self.assertRegex(decision.date, re.compile(r"^\d{4}-\d{2}-\d{2}$"))

    def test_unreadable_decision_file_is_skipped(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            squad_dir = Path(tmpdir)
            (squad_dir / "decisions").mkdir()
            (squad_dir / "decisions" / "bad.md").write_bytes(b"\xff\xfe\xfa")
            (squad_dir / "decisions" / "good.md").write_text("# Keep it\n", encoding="utf-8")

            with self.assertLogs("squaddash.parsers", level="WARNING"):
                decisions = get_decisions(squad_dir)

            self.assertEqual([d.title for d in decisions], ["Keep it"])

    def test_missing_sources_yield_nothing(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            self.assertEqual(get_decisions(Path(tmpdir)), [])


if __name__ == "__main__":
    unittest.main()
