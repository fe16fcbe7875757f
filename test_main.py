#!/usr/bin/env python3

import threading
import unittest
from typing import Any, List

import restack.github_fake
import restack.main
import restack.vcs_fake
from restack.errors import CycleError, FetchError, PreflightError
from restack.orchestrator import ExitStatus, Outcome
from restack.records import PullRequest, PullRequestRef
from restack.types import BranchName, GitHubNumber


def gh_pr(number: int, head: str, base: str, state: str = "open") -> PullRequest:
    return PullRequest(
        number=GitHubNumber(number),
        head_ref=BranchName(head),
        base_ref=BranchName(base),
        state=state,
    )


class TestMain(unittest.TestCase):
    def setUp(self) -> None:
        self.vcs = restack.vcs_fake.FakeVersionControl(
            {
                "main": "/repo",
                "feat-c": "/wt/c",
                "feat-a": "/wt/a",
                "feat-b": "/wt/b",
            }
        )
        self.github = restack.github_fake.FakeGitHubEndpoint(
            [
                gh_pr(1, "feat-a", "main"),
                gh_pr(2, "feat-b", "feat-a"),
                gh_pr(3, "feat-c", "feat-b"),
            ]
        )
        self.plans: List[List[PullRequestRef]] = []

    def main(self, *numbers: int, **kwargs: Any) -> restack.main.RunSummary:
        kwargs.setdefault("path_exists", lambda p: True)
        return restack.main.main(
            pr_numbers=numbers,
            vcs=self.vcs,
            github=self.github,
            repo={"owner": "pytorch", "name": "pytorch"},
            on_plan=self.plans.append,
            **kwargs,
        )

    def test_restacks_whole_stack(self) -> None:
        summary = self.main()
        self.assertEqual([p.id for p in self.plans[0]], [1, 2, 3])
        self.assertEqual(
            self.vcs.rebase_targets(),
            [("feat-a", "origin/main"), ("feat-b", "feat-a"), ("feat-c", "feat-b")],
        )
        self.assertEqual(
            [c for c in self.vcs.mutating_calls() if c[0] == "push"],
            [
                ("push", "feat-a", "origin"),
                ("push", "feat-b", "origin"),
                ("push", "feat-c", "origin"),
            ],
        )
        self.assertEqual(summary.exit_status, ExitStatus.SUCCESS)

    def test_explicit_subset(self) -> None:
        summary = self.main(3, 2)
        self.assertEqual([p.id for p in self.plans[0]], [2, 3])
        self.assertEqual(
            self.vcs.rebase_targets(),
            [("feat-b", "origin/feat-a"), ("feat-c", "feat-b")],
        )
        self.assertTrue(summary.succeeded())

    def test_failure_is_partial(self) -> None:
        self.vcs.rebase_failures["feat-b"] = "CONFLICT (content)"
        summary = self.main()
        self.assertEqual(
            [r.outcome for r in summary.results],
            [Outcome.PUSH_SUCCEEDED, Outcome.REBASE_FAILED, Outcome.SKIPPED],
        )
        self.assertEqual(summary.exit_status, ExitStatus.PARTIAL_FAILURE)

    def test_dry_run(self) -> None:
        summary = self.main(dry_run=True)
        self.assertEqual(self.vcs.mutating_calls(), [])
        self.assertTrue(summary.dry_run)
        self.assertTrue(summary.succeeded())

    def test_no_push(self) -> None:
        summary = self.main(push=False)
        self.assertFalse(any(c[0] == "push" for c in self.vcs.calls))
        self.assertEqual({r.outcome for r in summary.results}, {Outcome.REBASED})

    def test_preflight_failure_touches_nothing(self) -> None:
        with self.assertRaises(PreflightError) as cm:
            self.main(path_exists=lambda p: p != "/wt/b")
        self.assertIn("/wt/b", str(cm.exception))
        self.assertEqual(self.plans, [])
        self.assertFalse(any(c[0] == "fetch" for c in self.vcs.calls))
        self.assertEqual(self.vcs.mutating_calls(), [])

    def test_missing_worktree(self) -> None:
        self.github.pull_requests.append(gh_pr(9, "detached-work", "main"))
        with self.assertRaisesRegex(PreflightError, "not checked out in any worktree"):
            self.main(9)
        self.assertEqual(self.vcs.mutating_calls(), [])

    def test_cycle(self) -> None:
        self.github.pull_requests = [gh_pr(1, "feat-a", "feat-b"), gh_pr(2, "feat-b", "feat-a")]
        with self.assertRaises(CycleError):
            self.main()
        self.assertEqual(self.vcs.mutating_calls(), [])

    def test_fetch_failure(self) -> None:
        self.vcs.fetch_failure = "could not resolve host"
        with self.assertRaises(FetchError):
            self.main()
        self.assertEqual(self.vcs.mutating_calls(), [])

    def test_cancelled_before_start(self) -> None:
        cancel = threading.Event()
        cancel.set()
        summary = self.main(cancel=cancel)
        self.assertEqual({r.outcome for r in summary.results}, {Outcome.SKIPPED})
        self.assertEqual(self.vcs.mutating_calls(), [])


if __name__ == "__main__":
    unittest.main()
