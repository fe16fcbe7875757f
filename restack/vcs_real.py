#!/usr/bin/env python3

import logging
from typing import List, Optional

import restack.git
import restack.shell
import restack.vcs
from restack.errors import FetchError, PushError, RebaseError
from restack.records import WorktreeInfo


class RealVersionControl(restack.vcs.VersionControl):
    """
    VersionControl backed by the git binary.  Repository wide commands
    run in the shell's directory; branch commands run in the worktree
    the branch is checked out in.

    Besides git failing, git may not start at all (a worktree that has
    gone away since preflight, git missing from PATH); that OSError is
    reported the same way as a git failure, so it only ever costs the
    branch it happened on.
    """

    sh: restack.shell.Shell

    # Seconds to allow a fetch or push to run; local operations are
    # never timed out
    network_timeout: Optional[float]

    def __init__(
        self, sh: restack.shell.Shell, network_timeout: Optional[float] = None
    ) -> None:
        self.sh = sh
        self.network_timeout = network_timeout

    def list_worktrees(self) -> List[WorktreeInfo]:
        return restack.git.parse_worktree_list(
            self.sh.git("worktree", "list", "--porcelain")
        )

    def fetch_remote(self, remote: str) -> None:
        try:
            self.sh.git("fetch", remote, timeout=self.network_timeout)
        except (restack.shell.ShellError, OSError) as e:
            raise FetchError("failed to fetch {}: {}".format(remote, e)) from e

    def rebase_branch(self, worktree_path: str, upstream: str, autostash: bool) -> None:
        args = ["rebase"]
        if autostash:
            args.append("--autostash")
        args.append(upstream)
        try:
            self.sh.in_dir(worktree_path).git(*args, new_session=True)
        except restack.shell.ShellError as e:
            raise RebaseError(str(e)) from e
        except OSError as e:
            # git never ran, so there is no rebase to resolve or abort
            raise RebaseError(
                "could not rebase in {}: {}".format(worktree_path, e),
                in_progress=False,
            ) from e

    def abort_rebase(self, worktree_path: str) -> None:
        try:
            self.sh.in_dir(worktree_path).git("rebase", "--abort", new_session=True)
        except (restack.shell.ShellError, OSError) as e:
            raise RebaseError("failed to abort rebase: {}".format(e)) from e

    def push_with_lease(self, worktree_path: str, branch: str, remote: str) -> None:
        # --force-with-lease=<branch> compares against <remote>/<branch>
        # as of our last fetch, so a branch someone else pushed to since
        # then is rejected rather than overwritten.
        try:
            self.sh.in_dir(worktree_path).git(
                "push",
                "--force-with-lease={}".format(branch),
                remote,
                "{0}:{0}".format(branch),
                timeout=self.network_timeout,
                new_session=True,
            )
        except (restack.shell.ShellError, OSError) as e:
            raise PushError("failed to push {}: {}".format(branch, e)) from e

    def local_ref_exists(self, branch: str) -> bool:
        r = self.sh.git(
            "show-ref", "--verify", "--quiet", "refs/heads/{}".format(branch), exitcode=True
        )
        logging.debug("refs/heads/{} exists: {}".format(branch, r))
        return bool(r)
