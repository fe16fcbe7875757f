import contextlib
import logging
import signal
import sys
import threading
from typing import Any, Dict, Generator, List, Optional, Tuple

import click

import restack
import restack.config
import restack.github_real
import restack.graph
import restack.logs
import restack.main
import restack.orchestrator
import restack.shell
import restack.vcs_real
from restack.errors import RestackError
from restack.orchestrator import ExitStatus, RunSummary
from restack.records import PullRequestRef

BRANCH_PALETTE = ["green", "cyan", "blue", "magenta", "yellow", "red"]


def branch_colors(prs: List[PullRequestRef]) -> Dict[str, str]:
    colors: Dict[str, str] = {}
    for pr in prs:
        for name in (pr.base_branch, pr.head_branch):
            if name not in colors:
                colors[name] = BRANCH_PALETTE[len(colors) % len(BRANCH_PALETTE)]
    return colors


def print_plan(plan: List[PullRequestRef]) -> None:
    colors = branch_colors(plan)

    def style_branch(name: str) -> str:
        return click.style(name, fg=colors.get(name))

    def style_dim(s: str) -> str:
        return click.style(s, dim=True)

    click.echo(
        restack.graph.format_tree(plan, style_branch=style_branch, style_dim=style_dim)
    )


def print_summary(summary: RunSummary) -> None:
    def style_ok(s: str) -> str:
        return click.style(s, fg="green", bold=True)

    def style_error(s: str) -> str:
        return click.style(s, fg="red", bold=True)

    click.echo(restack.orchestrator.format_summary(summary, style_ok, style_error))
    if summary.dry_run:
        click.echo("(dry run, no changes made)")
    elif summary.succeeded():
        click.echo("All PRs restacked successfully.")
    else:
        click.secho("Some PRs were not restacked; see above.", fg="red")


@contextlib.contextmanager
def cancel_on_interrupt() -> Generator[threading.Event, None, None]:
    """
    The first Ctrl-C asks the run to stop once the PR being worked on
    is done; a second one interrupts immediately.
    """
    cancel = threading.Event()

    def handler(signum: int, frame: Any) -> None:
        if cancel.is_set():
            raise KeyboardInterrupt
        cancel.set()
        logging.warning(
            "Stopping after the current PR (press Ctrl-C again to abort now)"
        )

    old_handler = signal.signal(signal.SIGINT, handler)
    try:
        yield cancel
    finally:
        signal.signal(signal.SIGINT, old_handler)


def run(
    prs: Tuple[int, ...],
    dry_run: bool,
    no_push: bool,
    abort_on_conflict: bool,
    remote: Optional[str],
) -> ExitStatus:
    try:
        config = restack.config.read_config()
        remote_name = remote or config.remote_name
        on_conflict = "abort" if abort_on_conflict else config.on_conflict
        sh = restack.shell.Shell()
        vcs = restack.vcs_real.RealVersionControl(
            sh, network_timeout=config.network_timeout
        )
        github = restack.github_real.RealGitHubEndpoint(
            oauth_token=config.github_oauth,
            github_url=config.github_url,
            proxy=config.proxy,
            timeout=config.network_timeout,
        )
        with cancel_on_interrupt() as cancel:
            summary = restack.main.main(
                pr_numbers=prs,
                vcs=vcs,
                github=github,
                sh=sh,
                github_url=config.github_url,
                remote_name=remote_name,
                dry_run=dry_run,
                push=not no_push,
                autostash=config.autostash,
                on_conflict=on_conflict,  # type: ignore[arg-type]
                limit=config.pr_limit,
                cancel=cancel,
                on_plan=print_plan,
            )
    except RestackError as e:
        click.secho(str(e), fg="red", err=True)
        return ExitStatus.FATAL

    print_summary(summary)
    return summary.exit_status


@click.command()
@click.version_option(restack.__version__, "--version", "-V")
@click.option("--debug", is_flag=True, help="Log debug information to stderr")
@click.option(
    "--dry-run", is_flag=True, help="Show what would be done without executing"
)
@click.option("--no-push", is_flag=True, help="Skip pushing branches after rebasing")
@click.option(
    "--abort-on-conflict",
    is_flag=True,
    help="Abort a conflicted rebase instead of leaving it for you to resolve",
)
@click.option("--remote", default=None, help="Remote to rebase onto and push to")
@click.argument("prs", nargs=-1, type=int, metavar="[PR]...")
def main(
    debug: bool,
    dry_run: bool,
    no_push: bool,
    abort_on_conflict: bool,
    remote: Optional[str],
    prs: Tuple[int, ...],
) -> None:
    """
    Rebase stacked PRs onto their current base branches.

    With no PR numbers, restacks every open PR whose branch is checked
    out in a worktree of this repository.
    """
    with restack.logs.manager(debug=debug):
        status = run(prs, dry_run, no_push, abort_on_conflict, remote)
    sys.exit(int(status))
