#!/usr/bin/env python3

import configparser
import getpass
import logging
import os
from typing import List, NamedTuple, Optional, Sequence

from restack.errors import ConfigError

CONFIG_SECTION = "restack"

CONFLICT_POLICIES = ("leave", "abort")

Config = NamedTuple(
    "Config",
    [
        # OAuth token to authenticate to GitHub with.  None means
        # anonymous access, which only works on public repositories.
        ("github_oauth", Optional[str]),
        # Host of the GitHub instance (github.com or a GHE hostname)
        ("github_url", str),
        # Remote to fetch from, push to and rebase onto
        ("remote_name", str),
        # Proxy to use when making connections to GitHub
        ("proxy", Optional[str]),
        # What to do with a worktree whose rebase stopped on a conflict:
        # "leave" it mid-rebase for the user, or "abort" the rebase
        ("on_conflict", str),
        # Pass --autostash to git rebase
        ("autostash", bool),
        # Seconds to allow network operations (fetch, push, GitHub
        # requests) before giving up
        ("network_timeout", Optional[float]),
        # Maximum number of open PRs to consider when discovering PRs
        # from worktrees
        ("pr_limit", int),
    ],
)


def default_config_paths() -> List[str]:
    return [".restackrc", os.path.expanduser("~/.restackrc")]


def read_config(
    *,
    request_github_token: bool = True,
    paths: Optional[Sequence[str]] = None,
) -> Config:  # noqa: C901
    config = configparser.ConfigParser()
    if paths is None:
        paths = default_config_paths()
    config.read(paths)

    write_back = False

    if not config.has_section(CONFIG_SECTION):
        config.add_section(CONFIG_SECTION)

    # Environment variable overrides config file
    github_oauth = os.getenv("GITHUB_TOKEN") or os.getenv("OAUTH_TOKEN")
    if github_oauth is None and config.has_option(CONFIG_SECTION, "github_oauth"):
        github_oauth = config.get(CONFIG_SECTION, "github_oauth")
    if github_oauth is None and request_github_token:
        github_oauth = getpass.getpass(
            "GitHub OAuth token (make one at "
            "https://github.com/settings/tokens -- "
            "we need repo permissions): "
        ).strip()
        config.set(CONFIG_SECTION, "github_oauth", github_oauth)
        write_back = True

    github_url = config.get(CONFIG_SECTION, "github_url", fallback="github.com")
    remote_name = config.get(CONFIG_SECTION, "remote_name", fallback="origin")
    proxy = config.get(CONFIG_SECTION, "proxy", fallback=None)

    on_conflict = config.get(CONFIG_SECTION, "on_conflict", fallback="leave")
    if on_conflict not in CONFLICT_POLICIES:
        raise ConfigError(
            "on_conflict must be one of {}, not {!r}".format(
                ", ".join(CONFLICT_POLICIES), on_conflict
            )
        )

    try:
        autostash = config.getboolean(CONFIG_SECTION, "autostash", fallback=True)
        network_timeout: Optional[float] = None
        if config.has_option(CONFIG_SECTION, "network_timeout"):
            network_timeout = config.getfloat(CONFIG_SECTION, "network_timeout")
        pr_limit = config.getint(CONFIG_SECTION, "pr_limit", fallback=100)
    except ValueError as e:
        raise ConfigError("invalid restack configuration: {}".format(e)) from e

    if network_timeout is not None and network_timeout <= 0:
        raise ConfigError("network_timeout must be positive")
    if pr_limit <= 0:
        raise ConfigError("pr_limit must be positive")

    if write_back:
        with open(os.path.expanduser("~/.restackrc"), "w") as f:
            config.write(f)
        logging.info("NB: configuration saved to ~/.restackrc")

    return Config(
        github_oauth=github_oauth,
        github_url=github_url,
        remote_name=remote_name,
        proxy=proxy,
        on_conflict=on_conflict,
        autostash=autostash,
        network_timeout=network_timeout,
        pr_limit=pr_limit,
    )
