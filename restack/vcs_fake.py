#!/usr/bin/env python3

# An in-memory stand-in for a git repository, for tests.  Branches
# "exist" if they are checked out in a worktree or listed in
# extra_branches; failures are scripted per branch.

from typing import Dict, Iterable, List, Optional, Set, Tuple

import restack.vcs
from restack.errors import FetchError, PushError, RebaseError
from restack.records import WorktreeInfo
from restack.types import BranchName

MUTATING_OPERATIONS = ("rebase", "abort_rebase", "push")


class FakeVersionControl(restack.vcs.VersionControl):
    worktrees: List[WorktreeInfo]
    local_branches: Set[str]

    # If set, fetch_remote raises FetchError with this message
    fetch_failure: Optional[str]

    # branch -> error message
    rebase_failures: Dict[str, str]
    push_failures: Dict[str, str]
    abort_failures: Dict[str, str]

    # Every call made, in order, as (operation, *args)
    calls: List[Tuple[str, ...]]

    def __init__(
        self,
        worktrees: Optional[Dict[str, str]] = None,
        extra_branches: Iterable[str] = (),
    ) -> None:
        """
        Args:
            worktrees: branch -> worktree path, in inventory order
            extra_branches: local branches which are not checked out
        """
        self.worktrees = [
            WorktreeInfo(branch=BranchName(b), path=p)
            for b, p in (worktrees or {}).items()
        ]
        self.local_branches = {w.branch for w in self.worktrees} | set(extra_branches)
        self.fetch_failure = None
        self.rebase_failures = {}
        self.push_failures = {}
        self.abort_failures = {}
        self.calls = []

    def _branch_at(self, worktree_path: str) -> str:
        for w in self.worktrees:
            if w.path == worktree_path:
                return w.branch
        raise RuntimeError("no worktree at {}".format(worktree_path))

    def mutating_calls(self) -> List[Tuple[str, ...]]:
        return [c for c in self.calls if c[0] in MUTATING_OPERATIONS]

    def rebase_targets(self) -> List[Tuple[str, str]]:
        """
        (branch, upstream) for every rebase attempted, in order.
        """
        return [
            (self._branch_at(c[1]), c[2]) for c in self.calls if c[0] == "rebase"
        ]

    def list_worktrees(self) -> List[WorktreeInfo]:
        self.calls.append(("list_worktrees",))
        return list(self.worktrees)

    def fetch_remote(self, remote: str) -> None:
        self.calls.append(("fetch", remote))
        if self.fetch_failure is not None:
            raise FetchError(self.fetch_failure)

    def rebase_branch(self, worktree_path: str, upstream: str, autostash: bool) -> None:
        self.calls.append(("rebase", worktree_path, upstream))
        branch = self._branch_at(worktree_path)
        if branch in self.rebase_failures:
            raise RebaseError(self.rebase_failures[branch])

    def abort_rebase(self, worktree_path: str) -> None:
        self.calls.append(("abort_rebase", worktree_path))
        branch = self._branch_at(worktree_path)
        if branch in self.abort_failures:
            raise RebaseError(self.abort_failures[branch])

    def push_with_lease(self, worktree_path: str, branch: str, remote: str) -> None:
        self.calls.append(("push", branch, remote))
        if branch in self.push_failures:
            raise PushError(self.push_failures[branch])

    def local_ref_exists(self, branch: str) -> bool:
        self.calls.append(("local_ref_exists", branch))
        return branch in self.local_branches
