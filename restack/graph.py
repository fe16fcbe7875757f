#!/usr/bin/env python3

import logging
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from restack.errors import CycleError, DiscoveryError
from restack.records import PullRequestRef
from restack.types import BranchName, GitHubNumber


class DependencyGraph(object):
    """
    The stacking relationship among a set of pull requests, keyed by
    branch name.  There is an edge base -> head for every PR; a base
    branch which is not the head of any tracked PR (typically main) is
    an external root and is never rebased itself.
    """

    # The PRs the graph was built from, in discovery order.  This order
    # is the tie-break for everything else computed from the graph.
    prs: List[PullRequestRef]

    # head branch -> PRs whose head is that branch.  Normally a list of
    # one; more than one means two PRs share a head, which preflight
    # rejects.
    heads: Dict[BranchName, List[PullRequestRef]]

    # base branch -> PRs based on it, whether or not the base is tracked
    dependents: Dict[BranchName, List[PullRequestRef]]

    def __init__(self, prs: Iterable[PullRequestRef]) -> None:
        self.prs = []
        self.heads = {}
        self.dependents = {}
        seen = set()
        for pr in prs:
            if pr.id in seen:
                logging.debug("Ignoring duplicate record for PR #{}".format(pr.id))
                continue
            seen.add(pr.id)
            self.prs.append(pr)
            self.heads.setdefault(pr.head_branch, []).append(pr)
            self.dependents.setdefault(pr.base_branch, []).append(pr)

    def is_tracked(self, branch: str) -> bool:
        return branch in self.heads

    def bases_of(self, pr: PullRequestRef) -> List[PullRequestRef]:
        """
        The tracked PRs that must be restacked before this one.  Empty
        if this PR sits directly on an external root.
        """
        return self.heads.get(pr.base_branch, [])

    def dependents_of(self, pr: PullRequestRef) -> List[PullRequestRef]:
        return self.dependents.get(pr.head_branch, [])

    def roots(self) -> List[BranchName]:
        return sorted(
            {pr.base_branch for pr in self.prs if not self.is_tracked(pr.base_branch)}
        )

    def restrict(self, ids: Sequence[GitHubNumber]) -> "DependencyGraph":
        """
        The subgraph containing only the given PRs.  Discovery order is
        preserved; a tracked base which is not selected becomes an
        external root of the subgraph.
        """
        by_id = {pr.id: pr for pr in self.prs}
        missing = [i for i in ids if i not in by_id]
        if missing:
            raise DiscoveryError(
                "PR {} not among the discovered PRs".format(
                    ", ".join("#{}".format(i) for i in missing)
                )
            )
        wanted = set(ids)
        return DependencyGraph(pr for pr in self.prs if pr.id in wanted)


def build_graph(prs: Iterable[PullRequestRef]) -> DependencyGraph:
    return DependencyGraph(prs)


# Node colors for the depth first search in topological_sort
_UNVISITED = 0
_IN_PROGRESS = 1
_DONE = 2


def topological_sort(
    graph: DependencyGraph, selection: Optional[Sequence[GitHubNumber]] = None
) -> List[PullRequestRef]:
    """
    Order the PRs of the graph (or of the selected subset of it) so that
    every PR comes after the PR its base branch belongs to.

    Independent PRs keep their discovery order: we walk the PRs in
    discovery order and emit each one as soon as everything below it
    has been emitted.  Raises CycleError naming every branch on the
    loop if the PRs are stacked on each other in a circle.
    """
    if selection is not None:
        graph = graph.restrict(selection)

    color: Dict[GitHubNumber, int] = {pr.id: _UNVISITED for pr in graph.prs}
    position = {pr.id: i for i, pr in enumerate(graph.prs)}
    plan: List[PullRequestRef] = []

    for start in graph.prs:
        if color[start.id] != _UNVISITED:
            continue
        color[start.id] = _IN_PROGRESS
        # Explicit stack of (node, remaining bases to visit)
        stack: List[Tuple[PullRequestRef, Iterator[PullRequestRef]]] = [
            (start, iter(graph.bases_of(start)))
        ]
        while stack:
            node, bases = stack[-1]
            base = next(bases, None)
            if base is None:
                stack.pop()
                color[node.id] = _DONE
                plan.append(node)
            elif color[base.id] == _UNVISITED:
                color[base.id] = _IN_PROGRESS
                stack.append((base, iter(graph.bases_of(base))))
            elif color[base.id] == _IN_PROGRESS:
                path = [n for n, _ in stack]
                loop = path[path.index(base) :]
                # The stack runs from dependent to base; report the
                # loop base first, starting from the earliest
                # discovered PR so the message is stable.
                loop.reverse()
                first = min(range(len(loop)), key=lambda i: position[loop[i].id])
                loop = loop[first:] + loop[:first]
                raise CycleError([pr.head_branch for pr in loop])

    logging.debug(
        "Execution plan: {}".format(", ".join(pr.describe() for pr in plan))
    )
    return plan


def format_tree(
    prs: Sequence[PullRequestRef],
    style_branch: Optional[Callable[[str], str]] = None,
    style_dim: Optional[Callable[[str], str]] = None,
) -> str:
    """
    Render the PRs as a forest hanging off their external roots, e.g.

        main
        ├─ #1 feat-a
        │  └─ #3 feat-c
        └─ #2 feat-b

    Children are listed in the order they appear in prs.
    """

    def plain(s: str) -> str:
        return s

    branch = style_branch or plain
    dim = style_dim or plain

    graph = build_graph(prs)
    out: List[str] = []

    def children(prefix: str, nodes: List[PullRequestRef]) -> None:
        for i, pr in enumerate(nodes):
            is_last = i == len(nodes) - 1
            connector = "└─" if is_last else "├─"
            child_prefix = "   " if is_last else "│  "
            out.append(
                "{}{} #{} {}\n".format(
                    dim(prefix), dim(connector), pr.id, branch(pr.head_branch)
                )
            )
            children(prefix + child_prefix, graph.dependents_of(pr))

    for root in graph.roots():
        out.append("{}\n".format(branch(root)))
        children("", graph.dependents.get(root, []))

    return "".join(out)
