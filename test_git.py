#!/usr/bin/env python3

import unittest

import restack.git
from restack.records import WorktreeInfo


class TestParseWorktreeList(unittest.TestCase):
    def test_branches(self) -> None:
        output = """\
worktree /Users/raine/code/myrepo
HEAD 3f72e04eeabcc7e77f127d3e7baf2f5ccdb148ee
branch refs/heads/main

worktree /Users/raine/code/myrepo__worktrees/feat-a
HEAD 0a1b2c3d4e5f60718293a4b5c6d7e8f901234567
branch refs/heads/feat-a

worktree /Users/raine/code/myrepo__worktrees/feat-b
HEAD 89abcdef0123456789abcdef0123456789abcdef
branch refs/heads/feature/feat-b
"""
        worktrees = restack.git.parse_worktree_list(output)
        self.assertEqual(
            worktrees,
            [
                WorktreeInfo(branch="main", path="/Users/raine/code/myrepo"),
                WorktreeInfo(
                    branch="feat-a", path="/Users/raine/code/myrepo__worktrees/feat-a"
                ),
                WorktreeInfo(
                    branch="feature/feat-b",
                    path="/Users/raine/code/myrepo__worktrees/feat-b",
                ),
            ],
        )
        self.assertEqual(
            restack.git.worktree_map(worktrees)["feature/feat-b"],
            "/Users/raine/code/myrepo__worktrees/feat-b",
        )

    def test_detached_and_bare_are_skipped(self) -> None:
        output = """\
worktree /srv/repo.git
bare

worktree /srv/checkouts/bisect
HEAD 3f72e04eeabcc7e77f127d3e7baf2f5ccdb148ee
detached

worktree /srv/checkouts/feat-a
HEAD 0a1b2c3d4e5f60718293a4b5c6d7e8f901234567
branch refs/heads/feat-a
locked
"""
        self.assertEqual(
            restack.git.parse_worktree_list(output),
            [WorktreeInfo(branch="feat-a", path="/srv/checkouts/feat-a")],
        )

    def test_path_with_spaces(self) -> None:
        output = "worktree /home/me/my repo\nbranch refs/heads/feat-a\n"
        self.assertEqual(
            restack.git.parse_worktree_list(output),
            [WorktreeInfo(branch="feat-a", path="/home/me/my repo")],
        )

    def test_empty(self) -> None:
        self.assertEqual(restack.git.parse_worktree_list(""), [])


if __name__ == "__main__":
    unittest.main()
