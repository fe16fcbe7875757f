#!/usr/bin/env python3

import asyncio
import logging
from typing import Dict, List, Sequence, Tuple

import requests

import restack.git
import restack.github
import restack.github_utils
import restack.vcs
from restack.errors import DiscoveryError, RestackError
from restack.records import PullRequest, PullRequestRef, WorktreeInfo
from restack.types import BranchName


def dedupe(numbers: Sequence[int]) -> List[int]:
    seen = set()
    r = []
    for n in numbers:
        if n not in seen:
            seen.add(n)
            r.append(n)
    return r


async def _gather(
    *,
    vcs: restack.vcs.VersionControl,
    github: restack.github.GitHubEndpoint,
    owner: str,
    name: str,
    pr_numbers: Sequence[int],
    limit: int,
) -> Tuple[List[WorktreeInfo], List[PullRequest]]:
    # Both sides are read only, so ask git and GitHub at the same time
    worktrees = asyncio.to_thread(vcs.list_worktrees)
    if pr_numbers:

        async def fetch_each() -> List[PullRequest]:
            return list(
                await asyncio.gather(
                    *(
                        asyncio.to_thread(
                            restack.github_utils.get_pull_request,
                            github=github,
                            owner=owner,
                            name=name,
                            number=n,
                        )
                        for n in pr_numbers
                    )
                )
            )

        prs = fetch_each()
    else:
        prs = asyncio.to_thread(
            restack.github_utils.list_open_pull_requests,
            github=github,
            owner=owner,
            name=name,
            limit=limit,
        )
    return await asyncio.gather(worktrees, prs)


def discover(
    *,
    vcs: restack.vcs.VersionControl,
    github: restack.github.GitHubEndpoint,
    owner: str,
    name: str,
    pr_numbers: Sequence[int] = (),
    limit: int = 100,
) -> List[PullRequestRef]:
    """
    Work out which PRs to restack, in discovery order.

    With explicit PR numbers, those PRs (each of which must be open) in
    the order given.  Otherwise, every open PR whose head branch is
    checked out in some worktree, in worktree order.

    Either way each PR comes back with the worktree of its head branch
    attached, if there is one.
    """
    pr_numbers = dedupe(pr_numbers)
    try:
        worktrees, prs = asyncio.run(
            _gather(
                vcs=vcs,
                github=github,
                owner=owner,
                name=name,
                pr_numbers=pr_numbers,
                limit=limit,
            )
        )
    except RestackError:
        raise
    except (RuntimeError, OSError, requests.RequestException) as e:
        raise DiscoveryError("failed to discover PRs: {}".format(e)) from e

    paths = restack.git.worktree_map(worktrees)
    logging.debug(
        "Worktrees: {}".format(", ".join("{}={}".format(w.branch, w.path) for w in worktrees))
    )

    if pr_numbers:
        selected = []
        for pr in prs:
            if not pr.is_open:
                raise DiscoveryError(
                    "PR #{} is {}, not open".format(pr.number, pr.state.lower())
                )
            selected.append(pr)
    else:
        open_by_head: Dict[BranchName, PullRequest] = {}
        for pr in prs:
            open_by_head.setdefault(pr.head_ref, pr)
        seen = set()
        selected = []
        for w in worktrees:
            pr = open_by_head.get(w.branch)
            if pr is not None and pr.number not in seen:
                seen.add(pr.number)
                selected.append(pr)
        if not selected:
            raise DiscoveryError("no open PRs found for checked-out worktree branches")

    try:
        return [
            PullRequestRef.from_pull_request(pr, paths.get(pr.head_ref))
            for pr in selected
        ]
    except ValueError as e:
        raise DiscoveryError(str(e)) from e
