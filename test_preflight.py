#!/usr/bin/env python3

import os
import tempfile
import unittest
from typing import Optional

import restack.preflight
from restack.errors import PreflightError
from restack.records import PullRequestRef
from restack.types import BranchName, GitHubNumber


def pr(number: int, head: str, base: str, worktree: Optional[str]) -> PullRequestRef:
    return PullRequestRef(
        id=GitHubNumber(number),
        head_branch=BranchName(head),
        base_branch=BranchName(base),
        worktree_path=worktree,
    )


def exists(path: str) -> bool:
    return not path.startswith("/gone")


class TestPreflight(unittest.TestCase):
    def test_passes(self) -> None:
        plan = [pr(1, "feat-a", "main", "/wt/a"), pr(2, "feat-b", "feat-a", "/wt/b")]
        self.assertEqual(restack.preflight.find_violations(plan, path_exists=exists), [])
        restack.preflight.check(plan, path_exists=exists)

    def test_reports_every_violation_at_once(self) -> None:
        plan = [
            pr(1, "feat-a", "main", "/wt/a"),
            pr(2, "feat-b", "feat-a", None),
            pr(3, "feat-c", "feat-b", "/gone/c"),
            pr(4, "feat-d", "main", None),
        ]
        with self.assertRaises(PreflightError) as cm:
            restack.preflight.check(plan, path_exists=exists)
        self.assertEqual(
            cm.exception.violations,
            [
                "PR #2: branch feat-b is not checked out in any worktree",
                "PR #3: worktree /gone/c for branch feat-c does not exist",
                "PR #4: branch feat-d is not checked out in any worktree",
            ],
        )
        self.assertIn("PR #4", str(cm.exception))

    def test_shared_head_branch(self) -> None:
        plan = [pr(1, "feat-a", "main", "/wt/a"), pr(7, "feat-a", "release", "/wt/a")]
        self.assertEqual(
            restack.preflight.find_violations(plan, path_exists=exists),
            ["branch feat-a is the head of more than one PR (#1, #7)"],
        )

    def test_idempotent(self) -> None:
        plan = [pr(1, "feat-a", "main", None), pr(2, "feat-b", "feat-a", "/gone/b")]
        first = restack.preflight.find_violations(plan, path_exists=exists)
        second = restack.preflight.find_violations(plan, path_exists=exists)
        self.assertEqual(first, second)
        self.assertEqual(len(first), 2)

    def test_checks_the_real_filesystem_by_default(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            plan = [
                pr(1, "feat-a", "main", d),
                pr(2, "feat-b", "feat-a", os.path.join(d, "missing")),
            ]
            self.assertEqual(
                restack.preflight.find_violations(plan),
                [
                    "PR #2: worktree {} for branch feat-b does not exist".format(
                        os.path.join(d, "missing")
                    )
                ],
            )


if __name__ == "__main__":
    unittest.main()
