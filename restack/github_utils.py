#!/usr/bin/env python3

import re
from typing import Any, List

from typing_extensions import TypedDict

import restack.github
import restack.shell
from restack.records import PullRequest
from restack.types import BranchName, GitHubNumber

GitHubRepoNameWithOwner = TypedDict(
    "GitHubRepoNameWithOwner",
    {
        "owner": str,
        "name": str,
    },
)

# GitHub caps per_page at 100
MAX_PAGE_SIZE = 100


def parse_remote_url(remote_url: str, github_url: str) -> GitHubRepoNameWithOwner:
    """
    Extract owner and repository name from a remote URL, in either the
    git@github.com:owner/name.git or https://github.com/owner/name form.
    """
    m = re.match(
        r"^(?:ssh://)?git@{github_url}[:/]([^/]+)/(.+?)(?:\.git)?/?$".format(
            github_url=re.escape(github_url)
        ),
        remote_url,
    )
    if m is None:
        m = re.search(
            r"{github_url}/([^/]+)/(.+?)(?:\.git)?/?$".format(
                github_url=re.escape(github_url)
            ),
            remote_url,
        )
    if m is None:
        raise RuntimeError(
            "Couldn't determine repo owner and name from url: {}".format(remote_url)
        )
    return {"owner": m.group(1), "name": m.group(2)}


def get_github_repo_name_with_owner(
    *,
    sh: restack.shell.Shell,
    github_url: str,
    remote_name: str,
) -> GitHubRepoNameWithOwner:
    # Grovel in remotes to figure it out
    remote_url = sh.git("remote", "get-url", remote_name)
    return parse_remote_url(remote_url, github_url)


def _to_pull_request(r: Any) -> PullRequest:
    return PullRequest(
        number=GitHubNumber(int(r["number"])),
        head_ref=BranchName(r["head"]["ref"]),
        base_ref=BranchName(r["base"]["ref"]),
        state=r["state"],
    )


def list_open_pull_requests(
    *,
    github: restack.github.GitHubEndpoint,
    owner: str,
    name: str,
    limit: int = 100,
) -> List[PullRequest]:
    """
    The first 'limit' open PRs of the repository, in the order GitHub
    lists them (newest first).
    """
    per_page = min(limit, MAX_PAGE_SIZE)
    prs: List[PullRequest] = []
    page = 1
    while len(prs) < limit:
        batch = github.get(
            f"repos/{owner}/{name}/pulls",
            state="open",
            per_page=per_page,
            page=page,
        )
        prs.extend(_to_pull_request(r) for r in batch)
        if len(batch) < per_page:
            break
        page += 1
    return prs[:limit]


def get_pull_request(
    *,
    github: restack.github.GitHubEndpoint,
    owner: str,
    name: str,
    number: int,
) -> PullRequest:
    return _to_pull_request(github.get(f"repos/{owner}/{name}/pulls/{number}"))
