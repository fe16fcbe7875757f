#!/usr/bin/env python3

import unittest
from typing import List, Optional

import expecttest

import restack.graph
from restack.errors import CycleError, DiscoveryError
from restack.records import PullRequestRef
from restack.types import BranchName, GitHubNumber


def pr(number: int, head: str, base: str, worktree: Optional[str] = None) -> PullRequestRef:
    return PullRequestRef(
        id=GitHubNumber(number),
        head_branch=BranchName(head),
        base_branch=BranchName(base),
        worktree_path=worktree,
    )


def ids(plan: List[PullRequestRef]) -> List[int]:
    return [p.id for p in plan]


def sort(prs: List[PullRequestRef]) -> List[PullRequestRef]:
    return restack.graph.topological_sort(restack.graph.build_graph(prs))


class TestPullRequestRef(unittest.TestCase):
    def test_head_equal_to_base(self) -> None:
        with self.assertRaises(ValueError):
            pr(1, "feat-a", "feat-a")

    def test_empty_branch(self) -> None:
        with self.assertRaises(ValueError):
            pr(1, "", "main")
        with self.assertRaises(ValueError):
            pr(1, "feat-a", "")


class TestBuildGraph(unittest.TestCase):
    def test_tracked_and_external_roots(self) -> None:
        graph = restack.graph.build_graph(
            [pr(2, "feat-b", "feat-a"), pr(1, "feat-a", "main"), pr(4, "fix", "release")]
        )
        self.assertTrue(graph.is_tracked("feat-a"))
        self.assertFalse(graph.is_tracked("main"))
        self.assertEqual(graph.roots(), ["main", "release"])
        self.assertEqual(ids(graph.dependents["main"]), [1])
        self.assertEqual(ids(graph.dependents["feat-a"]), [2])
        self.assertEqual(ids(graph.bases_of(graph.prs[0])), [1])
        self.assertEqual(graph.bases_of(graph.prs[1]), [])

    def test_duplicate_records_are_ignored(self) -> None:
        graph = restack.graph.build_graph([pr(1, "feat-a", "main"), pr(1, "feat-a", "main")])
        self.assertEqual(ids(graph.prs), [1])


class TestTopologicalSort(unittest.TestCase):
    def test_independent_prs_preserve_order(self) -> None:
        self.assertEqual(ids(sort([pr(1, "feat-a", "main"), pr(2, "feat-b", "main")])), [1, 2])
        self.assertEqual(ids(sort([pr(2, "feat-b", "main"), pr(1, "feat-a", "main")])), [2, 1])

    def test_stacked_prs_ordered_by_dependency(self) -> None:
        plan = sort(
            [pr(3, "feat-c", "feat-b"), pr(1, "feat-a", "main"), pr(2, "feat-b", "feat-a")]
        )
        self.assertEqual(ids(plan), [1, 2, 3])

    def test_partial_stack(self) -> None:
        plan = sort([pr(3, "feat-c", "feat-b"), pr(2, "feat-b", "main")])
        self.assertEqual(ids(plan), [2, 3])

    def test_bases_precede_dependents(self) -> None:
        prs = [
            pr(7, "ui-2", "ui-1"),
            pr(5, "api-2", "api-1"),
            pr(9, "ui-3", "ui-2"),
            pr(4, "api-1", "main"),
            pr(6, "ui-1", "api-1"),
            pr(8, "docs", "main"),
            pr(10, "api-3", "api-2"),
        ]
        plan = sort(prs)
        self.assertEqual(sorted(ids(plan)), sorted(ids(prs)))
        position = {p.head_branch: i for i, p in enumerate(plan)}
        for p in plan:
            # Walk all the way down the stack
            base = p.base_branch
            while base in position:
                self.assertLess(position[base], position[p.head_branch])
                base = next(q.base_branch for q in plan if q.head_branch == base)

    def test_deterministic(self) -> None:
        prs = [
            pr(3, "feat-c", "feat-a"),
            pr(2, "feat-b", "main"),
            pr(1, "feat-a", "main"),
            pr(4, "feat-d", "feat-b"),
        ]
        first = sort(prs)
        second = sort(prs)
        self.assertEqual(first, second)
        self.assertEqual(ids(first), [1, 3, 2, 4])

    def test_two_pr_cycle(self) -> None:
        with self.assertRaises(CycleError) as cm:
            sort([pr(1, "feat-a", "feat-b"), pr(2, "feat-b", "feat-a")])
        self.assertEqual(cm.exception.cycle, ["feat-a", "feat-b"])
        self.assertIn("circular dependency", str(cm.exception))

    def test_three_pr_cycle_reports_every_branch(self) -> None:
        with self.assertRaises(CycleError) as cm:
            sort([pr(1, "A", "C"), pr(2, "B", "A"), pr(3, "C", "B")])
        self.assertEqual(set(cm.exception.cycle), {"A", "B", "C"})
        self.assertEqual(cm.exception.cycle, ["A", "B", "C"])
        self.assertEqual(
            str(cm.exception), "circular dependency detected among PRs: A -> B -> C -> A"
        )

    def test_cycle_excludes_branches_hanging_off_it(self) -> None:
        with self.assertRaises(CycleError) as cm:
            sort([pr(4, "D", "A"), pr(1, "A", "C"), pr(2, "B", "A"), pr(3, "C", "B")])
        self.assertEqual(cm.exception.cycle, ["A", "B", "C"])

    def test_selection(self) -> None:
        graph = restack.graph.build_graph(
            [pr(1, "feat-a", "main"), pr(2, "feat-b", "feat-a"), pr(3, "feat-c", "feat-b")]
        )
        plan = restack.graph.topological_sort(
            graph, [GitHubNumber(3), GitHubNumber(2)]
        )
        self.assertEqual(ids(plan), [2, 3])

    def test_selection_of_unknown_pr(self) -> None:
        graph = restack.graph.build_graph([pr(1, "feat-a", "main")])
        with self.assertRaises(DiscoveryError):
            restack.graph.topological_sort(graph, [GitHubNumber(42)])


class TestFormatTree(expecttest.TestCase):
    def test_linear_stack(self) -> None:
        prs = [pr(1, "feat-a", "main"), pr(2, "feat-b", "feat-a"), pr(3, "feat-c", "feat-b")]
        self.assertExpectedInline(
            restack.graph.format_tree(prs),
            """\
main
└─ #1 feat-a
   └─ #2 feat-b
      └─ #3 feat-c
""",
        )

    def test_branching_stack(self) -> None:
        prs = [pr(1, "feat-a", "main"), pr(2, "feat-b", "main"), pr(3, "feat-c", "feat-a")]
        self.assertExpectedInline(
            restack.graph.format_tree(prs),
            """\
main
├─ #1 feat-a
│  └─ #3 feat-c
└─ #2 feat-b
""",
        )

    def test_independent_prs(self) -> None:
        prs = [pr(1, "feat-a", "main"), pr(2, "feat-b", "main")]
        self.assertExpectedInline(
            restack.graph.format_tree(prs),
            """\
main
├─ #1 feat-a
└─ #2 feat-b
""",
        )

    def test_several_roots(self) -> None:
        prs = [pr(5, "hotfix", "release"), pr(1, "feat-a", "main")]
        self.assertExpectedInline(
            restack.graph.format_tree(prs),
            """\
main
└─ #1 feat-a
release
└─ #5 hotfix
""",
        )

    def test_styling(self) -> None:
        prs = [pr(1, "feat-a", "main")]
        self.assertEqual(
            restack.graph.format_tree(
                prs, style_branch=lambda s: s.upper(), style_dim=lambda s: "<{}>".format(s)
            ),
            "MAIN\n<><└─> #1 FEAT-A\n",
        )


if __name__ == "__main__":
    unittest.main()
