#!/usr/bin/env python3

from dataclasses import dataclass
from typing import Optional

from restack.types import BranchName, GitHubNumber


@dataclass(frozen=True)
class PullRequest:
    """
    A pull request as reported by the hosting service.
    """

    number: GitHubNumber

    # headRefName / baseRefName
    head_ref: BranchName
    base_ref: BranchName

    # "open", "closed" (GitHub reports merged PRs as closed)
    state: str = "open"

    @property
    def is_open(self) -> bool:
        return self.state.lower() == "open"


@dataclass(frozen=True)
class WorktreeInfo:
    """
    One entry of `git worktree list`, restricted to worktrees that have
    a branch checked out.
    """

    branch: BranchName
    path: str


@dataclass(frozen=True)
class PullRequestRef:
    """
    A pull request selected for restacking, together with the worktree
    its head branch is checked out in.
    """

    id: GitHubNumber
    head_branch: BranchName
    base_branch: BranchName

    # None until the worktree inventory has been consulted; preflight
    # refuses to run with any of these still unset.
    worktree_path: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.head_branch or not self.base_branch:
            raise ValueError(
                "PR #{} has an empty branch name (head={!r}, base={!r})".format(
                    self.id, self.head_branch, self.base_branch
                )
            )
        if self.head_branch == self.base_branch:
            raise ValueError(
                "PR #{} has {} as both its head and base branch".format(
                    self.id, self.head_branch
                )
            )

    @staticmethod
    def from_pull_request(
        pr: PullRequest, worktree_path: Optional[str] = None
    ) -> "PullRequestRef":
        return PullRequestRef(
            id=pr.number,
            head_branch=pr.head_ref,
            base_branch=pr.base_ref,
            worktree_path=worktree_path,
        )

    def describe(self) -> str:
        return "#{} {}".format(self.id, self.head_branch)
