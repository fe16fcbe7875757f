#!/usr/bin/env python3

import logging
import os
from typing import Callable, Dict, List, Sequence

from restack.errors import PreflightError
from restack.records import PullRequestRef


def find_violations(
    plan: Sequence[PullRequestRef],
    path_exists: Callable[[str], bool] = os.path.isdir,
) -> List[str]:
    """
    Check that every PR in the plan can be rebased in place.  Reports
    every problem at once, in plan order; an empty list means the plan
    is good to go.  Looks at the filesystem but never changes it, so
    asking twice gives the same answer.
    """
    violations: List[str] = []
    owners: Dict[str, List[PullRequestRef]] = {}
    for pr in plan:
        owners.setdefault(pr.head_branch, []).append(pr)

    for pr in plan:
        if pr.worktree_path is None:
            violations.append(
                "PR #{}: branch {} is not checked out in any worktree".format(
                    pr.id, pr.head_branch
                )
            )
        elif not path_exists(pr.worktree_path):
            violations.append(
                "PR #{}: worktree {} for branch {} does not exist".format(
                    pr.id, pr.worktree_path, pr.head_branch
                )
            )

    for branch, prs in owners.items():
        if len(prs) > 1:
            violations.append(
                "branch {} is the head of more than one PR ({})".format(
                    branch, ", ".join("#{}".format(pr.id) for pr in prs)
                )
            )

    return violations


def check(
    plan: Sequence[PullRequestRef],
    path_exists: Callable[[str], bool] = os.path.isdir,
) -> None:
    """
    Raises: PreflightError listing every violation, if there are any
    """
    violations = find_violations(plan, path_exists=path_exists)
    if violations:
        raise PreflightError(violations)
    logging.debug("Preflight passed for {} PRs".format(len(plan)))
