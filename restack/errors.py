#!/usr/bin/env python3

from typing import List, Sequence


class RestackError(RuntimeError):
    """
    Base class for every error restack knows how to report.  The CLI
    prints these without a traceback.
    """

    pass


class ConfigError(RestackError):
    pass


class DiscoveryError(RestackError):
    pass


class CycleError(RestackError):
    # Branch names forming the loop, in dependency order; the first
    # branch is based on the last one.
    cycle: List[str]

    def __init__(self, cycle: Sequence[str]) -> None:
        self.cycle = list(cycle)
        super().__init__(
            "circular dependency detected among PRs: {}".format(
                " -> ".join(self.cycle + self.cycle[:1])
            )
        )


class PreflightError(RestackError):
    violations: List[str]

    def __init__(self, violations: Sequence[str]) -> None:
        self.violations = list(violations)
        super().__init__(
            "cannot restack, fix the following first:\n  {}".format(
                "\n  ".join(self.violations)
            )
        )


class FetchError(RestackError):
    pass


class RebaseError(RestackError):
    # False if the rebase never got going, so the worktree is as it was
    # and there is nothing to continue or abort
    in_progress: bool

    def __init__(self, msg: str, in_progress: bool = True) -> None:
        self.in_progress = in_progress
        super().__init__(msg)


class PushError(RestackError):
    pass
