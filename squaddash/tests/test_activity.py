import unittest

from squaddash.models import LogEntry, WorkItem
from squaddash.services.activity import (
    get_active_tasks,
    get_member_states,
    is_completion_signal,
    prose_task_id,
    truncate_title,
)


def _entry(date: str, participants: list[str], **fields) -> LogEntry:
    return LogEntry(
        date=date,
        topic=fields.pop("topic", "session"),
        timestamp=f"{date}T00:00:00Z",
        participants=participants,
        **fields,
    )


class MemberStateTests(unittest.TestCase):
    def test_empty_input_returns_empty_map(self) -> None:
        self.assertEqual(get_member_states([]), {})

    def test_latest_entry_participants_are_working(self) -> None:
        entries = [
            _entry("2026-01-01", ["Rusty", "Linus"]),
            _entry("2026-01-02", ["Basher"]),
        ]
        self.assertEqual(
            get_member_states(entries),
            {"Rusty": "idle", "Linus": "idle", "Basher": "working"},
        )

    def test_every_participant_has_a_state(self) -> None:
        entries = [
            _entry("2026-01-03", ["A"]),
            _entry("2026-01-01", ["B", "C"]),
            _entry("2026-01-02", ["C", "D"]),
        ]
        states = get_member_states(entries)
        self.assertEqual(set(states), {"A", "B", "C", "D"})

    def test_same_date_tie_goes_to_first_entry_in_input_order(self) -> None:
        entries = [_entry("2026-01-05", ["A"]), _entry("2026-01-05", ["B"])]
        self.assertEqual(get_member_states(entries), {"A": "working", "B": "idle"})


class ActiveTaskTests(unittest.TestCase):
    def test_newest_entry_wins_for_a_repeated_issue(self) -> None:
        entries = [
            _entry("2026-01-01", ["Linus"], relatedIssues=["#5"]),
            _entry("2026-01-02", ["Rusty"], relatedIssues=["#5"]),
        ]
        tasks = get_active_tasks(entries)
        self.assertEqual(len(tasks), 1)
        self.assertEqual(tasks[0].id, "5")
        self.assertEqual(tasks[0].assignee, "Rusty")
        self.assertEqual(tasks[0].title, "Issue #5")
        self.assertEqual(tasks[0].startedAt, "2026-01-02")

    def test_outcome_issue_status_follows_completion_signal(self) -> None:
        entry = _entry("2026-01-02", ["Rusty"], outcomes=["Closed #7 ✅", "Started #8"])
        tasks = {task.id: task for task in get_active_tasks([entry])}

        self.assertEqual(tasks["7"].status, "completed")
        self.assertEqual(tasks["7"].completedAt, "2026-01-02")
        self.assertEqual(tasks["8"].status, "in_progress")
        self.assertIsNone(tasks["8"].completedAt)

    def test_issue_without_participants_is_unassigned(self) -> None:
        tasks = get_active_tasks([_entry("2026-01-02", [], relatedIssues=["#9"])])
        self.assertEqual(tasks[0].assignee, "unknown")

    def test_work_items_become_completed_tasks(self) -> None:
        entry = _entry(
            "2026-01-03",
            ["Rusty", "Linus"],
            summary="Parser day",
            whatWasDone=[
                WorkItem(agent="Rusty", description="Rewrote the parser"),
                WorkItem(agent="Linus O'Brien", description="Added fixtures"),
            ],
        )
        tasks = get_active_tasks([entry])
        self.assertEqual([t.id for t in tasks], ["2026-01-03-rusty", "2026-01-03-linus-o-brien"])
        self.assertTrue(all(t.status == "completed" for t in tasks))
        self.assertEqual(tasks[1].assignee, "Linus O'Brien")

    def test_entries_with_issue_tasks_produce_no_prose_tasks(self) -> None:
        entry = _entry(
            "2026-01-03",
            ["Rusty"],
            relatedIssues=["#3"],
            whatWasDone=[WorkItem(agent="Rusty", description="Fixed it")],
        )
        self.assertEqual([t.id for t in get_active_tasks([entry])], ["3"])

    def test_summary_task_status(self) -> None:
        working = _entry("2026-01-04", ["Linus"], summary="Working on the watcher")
        finished = _entry("2026-01-05", ["Basher"], summary="Wrap-up", outcomes=["All tests pass"])
        tasks = {task.id: task for task in get_active_tasks([working, finished])}

        self.assertEqual(tasks["2026-01-04-linus"].status, "in_progress")
        self.assertEqual(tasks["2026-01-04-linus"].title, "Working on the watcher")
        self.assertEqual(tasks["2026-01-05-basher"].status, "completed")
        self.assertEqual(tasks["2026-01-05-basher"].completedAt, "2026-01-05")

    def test_task_ids_are_unique(self) -> None:
        entries = [
            _entry("2026-01-03", ["Rusty"], whatWasDone=[WorkItem(agent="Rusty", description="A")]),
            _entry("2026-01-03", ["Rusty"], whatWasDone=[WorkItem(agent="Rusty", description="B")]),
            _entry("2026-01-03", ["Rusty"], summary="Something else"),
            _entry("2026-01-02", ["Linus"], relatedIssues=["#1", "#1"], outcomes=["#1 done"]),
        ]
        ids = [task.id for task in get_active_tasks(entries)]
        self.assertEqual(len(ids), len(set(ids)))
        self.assertEqual(sorted(ids), ["1", "2026-01-03-rusty"])


class TaskHelperTests(unittest.TestCase):
    def test_truncate_title(self) -> None:
        words = " ".join(["word"] * 20)
        self.assertEqual(truncate_title(words), " ".join(["word"] * 12) + "…")
        self.assertEqual(truncate_title("x" * 70), "x" * 60 + "…")
        self.assertEqual(truncate_title("short"), "short")

    def test_completion_signal(self) -> None:
        self.assertTrue(is_completion_signal("Tests PASS"))
        self.assertTrue(is_completion_signal("Completed rollout"))
        self.assertFalse(is_completion_signal("Still blocked"))

    def test_prose_task_id(self) -> None:
        self.assertEqual(prose_task_id("2026-02-10", "Banner"), "2026-02-10-banner")


if __name__ == "__main__":
    unittest.main()
