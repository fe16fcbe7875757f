#!/usr/bin/env python3

import enum
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from typing_extensions import Literal

import restack.vcs
from restack.errors import PushError, RebaseError
from restack.records import PullRequestRef
from restack.types import BranchName, UpstreamRef

ConflictPolicy = Literal["leave", "abort"]


class Outcome(enum.Enum):
    PENDING = "pending"
    REBASED = "rebased"
    REBASE_FAILED = "rebase_failed"
    PUSH_SUCCEEDED = "push_succeeded"
    PUSH_FAILED = "push_failed"
    SKIPPED = "skipped"


# A branch in one of these states is in its final shape locally, so
# its dependents should be rebased onto the local branch.
SUCCESS_OUTCOMES = frozenset({Outcome.REBASED, Outcome.PUSH_SUCCEEDED})

_TRANSITIONS = {
    Outcome.PENDING: frozenset(
        {Outcome.REBASED, Outcome.REBASE_FAILED, Outcome.SKIPPED}
    ),
    Outcome.REBASED: frozenset({Outcome.PUSH_SUCCEEDED, Outcome.PUSH_FAILED}),
}

_LABELS = {
    Outcome.PENDING: "pending",
    Outcome.REBASED: "rebased",
    Outcome.REBASE_FAILED: "rebase failed",
    Outcome.PUSH_SUCCEEDED: "rebased and pushed",
    Outcome.PUSH_FAILED: "push failed",
    Outcome.SKIPPED: "skipped",
}

# Nothing is changed in a dry run, so success reads as what would happen
_DRY_RUN_LABELS = {
    Outcome.REBASED: "would rebase",
    Outcome.PUSH_SUCCEEDED: "would rebase and push",
}


class ExitStatus(enum.IntEnum):
    SUCCESS = 0
    PARTIAL_FAILURE = 1
    FATAL = 2


@dataclass
class BranchResult:
    pr: PullRequestRef
    outcome: Outcome = Outcome.PENDING

    # What the branch was (or would have been) rebased onto; None if we
    # never got as far as deciding
    upstream: Optional[UpstreamRef] = None

    error_detail: Optional[str] = None

    def transition(self, outcome: Outcome, error_detail: Optional[str] = None) -> None:
        if outcome not in _TRANSITIONS.get(self.outcome, frozenset()):
            raise RuntimeError(
                "PR #{}: illegal outcome transition {} -> {}".format(
                    self.pr.id, self.outcome.value, outcome.value
                )
            )
        self.outcome = outcome
        if error_detail is not None:
            self.error_detail = error_detail

    @property
    def label(self) -> str:
        return _LABELS[self.outcome]


@dataclass
class RunSummary:
    # One entry per PR, in plan order
    results: List[BranchResult] = field(default_factory=list)
    push: bool = True
    dry_run: bool = False

    def terminal_outcome(self) -> Outcome:
        return Outcome.PUSH_SUCCEEDED if self.push else Outcome.REBASED

    def succeeded(self) -> bool:
        final = self.terminal_outcome()
        return all(r.outcome == final for r in self.results)

    def label(self, result: BranchResult) -> str:
        if self.dry_run:
            return _DRY_RUN_LABELS.get(result.outcome, result.label)
        return result.label

    @property
    def exit_status(self) -> ExitStatus:
        if self.succeeded():
            return ExitStatus.SUCCESS
        return ExitStatus.PARTIAL_FAILURE

    def as_rows(self) -> List[Dict[str, Any]]:
        return [
            {
                "pr_id": r.pr.id,
                "head_branch": r.pr.head_branch,
                "base_branch": r.pr.base_branch,
                "outcome": r.outcome.value,
                "error_detail": r.error_detail,
            }
            for r in self.results
        ]


class Orchestrator(object):
    """
    Rebases (and pushes) the PRs of an execution plan, one at a time, in
    plan order.

    Every branch is rebased onto the freshest version of its base that
    this run knows about: if the base branch was itself rebased earlier
    in the run we use the local branch, otherwise the remote-tracking
    branch from the single fetch done up front.  A branch whose base did
    not make it is skipped, and so, transitively, is everything stacked
    on it; stacks that do not depend on the failure carry on.
    """

    vcs: restack.vcs.VersionControl
    remote: str
    push: bool
    dry_run: bool
    autostash: bool
    on_conflict: ConflictPolicy

    # Checked between PRs; once set, nothing else is started
    cancel: threading.Event

    def __init__(
        self,
        vcs: restack.vcs.VersionControl,
        *,
        remote: str = "origin",
        push: bool = True,
        dry_run: bool = False,
        autostash: bool = True,
        on_conflict: ConflictPolicy = "leave",
        cancel: Optional[threading.Event] = None,
    ) -> None:
        if dry_run and not isinstance(vcs, restack.vcs.DryRunVersionControl):
            vcs = restack.vcs.DryRunVersionControl(vcs)
        self.vcs = vcs
        self.remote = remote
        self.push = push
        self.dry_run = dry_run
        self.autostash = autostash
        self.on_conflict = on_conflict
        self.cancel = cancel if cancel is not None else threading.Event()

    def run(self, plan: Sequence[PullRequestRef]) -> RunSummary:
        """
        Execute the plan.  Raises FetchError before touching any branch
        if the fetch fails; per branch failures are recorded in the
        returned summary instead.
        """
        summary = RunSummary(
            results=[BranchResult(pr) for pr in plan],
            push=self.push,
            dry_run=self.dry_run,
        )
        by_head: Dict[BranchName, BranchResult] = {
            r.pr.head_branch: r for r in summary.results
        }

        # One fetch for the whole run, so every branch is rebased onto
        # the same snapshot of the remote.
        self.vcs.fetch_remote(self.remote)

        for result in summary.results:
            if self.cancel.is_set():
                result.transition(Outcome.SKIPPED, "run cancelled")
                logging.info("Skipping {}: run cancelled".format(result.pr.describe()))
                continue
            self._restack_one(result, by_head.get(result.pr.base_branch))

        pending = [r.pr.describe() for r in summary.results if r.outcome == Outcome.PENDING]
        assert not pending, "left without an outcome: {}".format(", ".join(pending))
        return summary

    def resolve_upstream(
        self, pr: PullRequestRef, base: Optional[BranchResult]
    ) -> UpstreamRef:
        """
        The ref to rebase pr onto, given the result for its base branch
        (None if the base is not part of this run).
        """
        if (
            base is not None
            and base.outcome in SUCCESS_OUTCOMES
            and self.vcs.local_ref_exists(pr.base_branch)
        ):
            return UpstreamRef(pr.base_branch)
        return UpstreamRef("{}/{}".format(self.remote, pr.base_branch))

    def _restack_one(self, result: BranchResult, base: Optional[BranchResult]) -> None:
        pr = result.pr

        if base is not None:
            if base.outcome == Outcome.PENDING:
                raise RuntimeError(
                    "{} was scheduled before its base {}".format(
                        pr.describe(), base.pr.describe()
                    )
                )
            if base.outcome not in SUCCESS_OUTCOMES:
                detail = "base {} was not restacked ({})".format(
                    base.pr.describe(), base.label
                )
                result.transition(Outcome.SKIPPED, detail)
                logging.warning("Skipping {}: {}".format(pr.describe(), detail))
                return

        upstream = self.resolve_upstream(pr, base)
        result.upstream = upstream
        assert pr.worktree_path is not None, "preflight lets no PR without a worktree through"
        logging.info("Restacking {} onto {}".format(pr.describe(), upstream))

        try:
            self.vcs.rebase_branch(pr.worktree_path, upstream, self.autostash)
        except RebaseError as e:
            detail = str(e)
            if e.in_progress and self.on_conflict == "abort":
                try:
                    self.vcs.abort_rebase(pr.worktree_path)
                except RebaseError as abort_error:
                    detail += "\n" + str(abort_error)
                else:
                    detail += "\nrebase aborted, {} is unchanged".format(pr.head_branch)
            elif e.in_progress:
                detail += "\nresolve conflicts in {} then run: git rebase --continue".format(
                    pr.worktree_path
                )
                if self.push:
                    detail += " && git push --force-with-lease"
            result.transition(Outcome.REBASE_FAILED, detail)
            logging.error("Rebase of {} failed".format(pr.describe()))
            return
        result.transition(Outcome.REBASED)

        if not self.push:
            return

        try:
            self.vcs.push_with_lease(pr.worktree_path, pr.head_branch, self.remote)
        except PushError as e:
            result.transition(Outcome.PUSH_FAILED, str(e))
            logging.error("Push of {} failed".format(pr.describe()))
            return
        result.transition(Outcome.PUSH_SUCCEEDED)


def format_summary(
    summary: RunSummary,
    style_ok: Optional[Callable[[str], str]] = None,
    style_error: Optional[Callable[[str], str]] = None,
) -> str:
    """
    One line per PR, followed by any error detail indented beneath it.
    """

    def plain(s: str) -> str:
        return s

    ok = style_ok or plain
    error = style_error or plain
    final = summary.terminal_outcome()

    out: List[str] = []
    for r in summary.results:
        if r.outcome == final:
            marker = ok("✔")
        elif r.outcome == Outcome.SKIPPED:
            marker = "-"
        else:
            marker = error("✘")
        onto = r.upstream if r.upstream is not None else r.pr.base_branch
        out.append(
            "{} #{} {} → {}: {}\n".format(
                marker, r.pr.id, r.pr.head_branch, onto, summary.label(r)
            )
        )
        if r.error_detail:
            for line in r.error_detail.splitlines():
                out.append("    {}\n".format(line))
    return "".join(out)
