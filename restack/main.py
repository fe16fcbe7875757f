#!/usr/bin/env python3

import logging
import os
import threading
from typing import Callable, List, Optional, Sequence

import restack.discover
import restack.github
import restack.github_utils
import restack.graph
import restack.orchestrator
import restack.preflight
import restack.shell
import restack.vcs
from restack.errors import DiscoveryError
from restack.orchestrator import ConflictPolicy, RunSummary
from restack.records import PullRequestRef


def main(
    *,
    pr_numbers: Sequence[int],
    vcs: restack.vcs.VersionControl,
    github: restack.github.GitHubEndpoint,
    sh: Optional[restack.shell.Shell] = None,
    repo: Optional[restack.github_utils.GitHubRepoNameWithOwner] = None,
    github_url: str = "github.com",
    remote_name: str = "origin",
    dry_run: bool = False,
    push: bool = True,
    autostash: bool = True,
    on_conflict: ConflictPolicy = "leave",
    limit: int = 100,
    cancel: Optional[threading.Event] = None,
    path_exists: Callable[[str], bool] = os.path.isdir,
    on_plan: Optional[Callable[[List[PullRequestRef]], None]] = None,
) -> RunSummary:
    """
    Restack the given PRs (or, with no PR numbers, every open PR checked
    out in a worktree).

    Everything that can go wrong before the first rebase (discovery,
    a dependency cycle, a PR with no worktree, the fetch) raises, and
    in that case no branch has been touched.  Past that point failures
    are per branch and reported in the returned summary.
    """

    if repo is None:
        if sh is None:
            sh = restack.shell.Shell()
        try:
            repo = restack.github_utils.get_github_repo_name_with_owner(
                sh=sh, github_url=github_url, remote_name=remote_name
            )
        except RuntimeError as e:
            raise DiscoveryError(str(e)) from e

    prs = restack.discover.discover(
        vcs=vcs,
        github=github,
        owner=repo["owner"],
        name=repo["name"],
        pr_numbers=pr_numbers,
        limit=limit,
    )
    logging.debug("Discovered {}".format(", ".join(pr.describe() for pr in prs)))

    graph = restack.graph.build_graph(prs)
    plan = restack.graph.topological_sort(graph)
    restack.preflight.check(plan, path_exists=path_exists)

    if on_plan is not None:
        on_plan(plan)

    orchestrator = restack.orchestrator.Orchestrator(
        vcs,
        remote=remote_name,
        push=push,
        dry_run=dry_run,
        autostash=autostash,
        on_conflict=on_conflict,
        cancel=cancel,
    )
    return orchestrator.run(plan)
