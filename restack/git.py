#!/usr/bin/env python3

import re
from typing import Dict, List, Optional, Sequence

from restack.records import WorktreeInfo
from restack.types import BranchName

RE_WORKTREE_LINE = re.compile(r"^worktree (?P<path>.+)$")
RE_BRANCH_LINE = re.compile(r"^branch refs/heads/(?P<branch>.+)$")


def parse_worktree_list(output: str) -> List[WorktreeInfo]:
    """
    Parse the output of `git worktree list --porcelain`.

    Each worktree is a stanza of "key value" lines separated by a blank
    line.  Worktrees with a detached HEAD (or a bare repository) have no
    branch line and are skipped.  Returned in the order git lists them,
    which puts the main worktree first.
    """
    worktrees: List[WorktreeInfo] = []
    current_path: Optional[str] = None

    for line in output.splitlines():
        m = RE_WORKTREE_LINE.match(line)
        if m:
            current_path = m.group("path")
            continue
        m = RE_BRANCH_LINE.match(line)
        if m:
            if current_path is not None:
                worktrees.append(
                    WorktreeInfo(branch=BranchName(m.group("branch")), path=current_path)
                )
                current_path = None
            continue
        if not line.strip():
            current_path = None

    return worktrees


def worktree_map(worktrees: Sequence[WorktreeInfo]) -> Dict[BranchName, str]:
    # A branch can only be checked out in one worktree at a time, so
    # this never loses information on a healthy repository.
    return {w.branch: w.path for w in worktrees}
