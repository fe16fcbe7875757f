#!/usr/bin/env python3

import logging
from abc import ABCMeta, abstractmethod
from typing import List, Tuple

from restack.records import WorktreeInfo


class VersionControl(metaclass=ABCMeta):
    """
    The version control primitives restack is built from.  The
    orchestrator only ever talks to the repository through this
    interface, so a dry run and a real run execute the exact same
    logic against different implementations.
    """

    @abstractmethod
    def list_worktrees(self) -> List[WorktreeInfo]:
        """
        Returns: every worktree of the repository that has a branch
        checked out, in the order git lists them.
        """
        pass

    @abstractmethod
    def fetch_remote(self, remote: str) -> None:
        """
        Update the remote-tracking refs for remote.

        Raises: FetchError
        """
        pass

    @abstractmethod
    def rebase_branch(self, worktree_path: str, upstream: str, autostash: bool) -> None:
        """
        Rebase the branch checked out at worktree_path onto upstream.

        Args:
            worktree_path: the worktree to run the rebase in
            upstream: a local branch or remote-tracking ref
            autostash: stash uncommitted changes before the rebase and
                restore them afterwards

        Raises: RebaseError, including on conflicts.  The worktree is
            left however git left it.
        """
        pass

    @abstractmethod
    def abort_rebase(self, worktree_path: str) -> None:
        """
        Abandon an in-progress rebase, restoring the pre-rebase state.

        Raises: RebaseError
        """
        pass

    @abstractmethod
    def push_with_lease(self, worktree_path: str, branch: str, remote: str) -> None:
        """
        Force push branch to remote, but only if the remote branch is
        still where our last fetch saw it.

        Raises: PushError, including on lease rejection
        """
        pass

    @abstractmethod
    def local_ref_exists(self, branch: str) -> bool:
        """
        Returns: whether refs/heads/<branch> exists in the repository
        """
        pass


class DryRunVersionControl(VersionControl):
    """
    Wraps another VersionControl, letting reads and the fetch through
    but replacing every operation that rewrites or publishes a branch
    with a no-op that reports success.  Because it answers exactly as a
    successful real run would, everything downstream of a rebase (in
    particular which upstream each dependent gets rebased onto) comes
    out the same as it would for real.
    """

    inner: VersionControl

    # Mutating calls we swallowed, in order, as (operation, *args)
    recorded: List[Tuple[str, ...]]

    def __init__(self, inner: VersionControl) -> None:
        self.inner = inner
        self.recorded = []

    def list_worktrees(self) -> List[WorktreeInfo]:
        return self.inner.list_worktrees()

    def fetch_remote(self, remote: str) -> None:
        self.inner.fetch_remote(remote)

    def rebase_branch(self, worktree_path: str, upstream: str, autostash: bool) -> None:
        logging.info(
            "(dry run) would rebase {} onto {}{}".format(
                worktree_path, upstream, " with autostash" if autostash else ""
            )
        )
        self.recorded.append(("rebase", worktree_path, upstream))

    def abort_rebase(self, worktree_path: str) -> None:
        logging.info("(dry run) would abort rebase in {}".format(worktree_path))
        self.recorded.append(("abort_rebase", worktree_path))

    def push_with_lease(self, worktree_path: str, branch: str, remote: str) -> None:
        logging.info("(dry run) would push {} to {}".format(branch, remote))
        self.recorded.append(("push", branch, remote))

    def local_ref_exists(self, branch: str) -> bool:
        return self.inner.local_ref_exists(branch)
