import unittest

from squaddash.models import GitHubIssue, GitHubLabel, IssueSourceConfig, TeamRoster
from squaddash.services.issues import issues_for_member, map_issues_to_members, parse_issue_source


def _issue(number: int, labels: list[str] = (), assignee: str | None = None) -> GitHubIssue:
    return GitHubIssue(
        number=number,
        title=f"Issue {number}",
        labels=[GitHubLabel(name=name) for name in labels],
        assignee=assignee,
    )


class IssueMatchingTests(unittest.TestCase):
    def test_squad_labels_match_by_default(self) -> None:
        issues = [
            _issue(1, ["squad:Rusty", "bug"]),
            _issue(2, ["SQUAD:linus"]),
            _issue(3, ["enhancement"], assignee="rusty-gh"),
        ]
        mapped = map_issues_to_members(issues)

        self.assertEqual(sorted(mapped), ["linus", "rusty"])
        self.assertEqual([i.number for i in mapped["rusty"]], [1])
        self.assertEqual([i.number for i in mapped["linus"]], [2])

    def test_assignee_strategy_uses_aliases(self) -> None:
        config = IssueSourceConfig(
            repository="acme/widgets",
            owner="acme",
            repo="widgets",
            matching=["assignees"],
            memberAliases={"rusty": "Rusty-GH"},
        )
        issues = [_issue(1, ["squad:linus"]), _issue(3, assignee="rusty-gh")]
        mapped = map_issues_to_members(issues, config)

        self.assertEqual(list(mapped), ["rusty"])
        self.assertEqual([i.number for i in mapped["rusty"]], [3])

    def test_issue_listed_once_per_member(self) -> None:
        config = IssueSourceConfig(
            repository="acme/widgets",
            owner="acme",
            repo="widgets",
            matching=["labels", "assignees"],
            memberAliases={"rusty": "rusty-gh"},
        )
        issues = [_issue(7, ["squad:rusty", "squad:Rusty"], assignee="rusty-gh")]

        self.assertEqual([i.number for i in issues_for_member(issues, "Rusty", config)], [7])

    def test_issues_for_unknown_member(self) -> None:
        self.assertEqual(issues_for_member([_issue(1, ["squad:rusty"])], "Basher"), [])

    def test_parse_issue_source(self) -> None:
        self.assertIsNone(parse_issue_source(None))
        self.assertIsNone(parse_issue_source(TeamRoster()))

        source = IssueSourceConfig(repository="acme/widgets", owner="acme", repo="widgets")
        self.assertEqual(parse_issue_source(TeamRoster(issueSource=source)), source)


if __name__ == "__main__":
    unittest.main()
