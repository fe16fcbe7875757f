#!/usr/bin/env python3

import contextlib
import datetime
import functools
import logging
import os
import re
import shutil
import subprocess
import sys
import uuid
from typing import Iterator, Optional

DATETIME_FORMAT = "%Y-%m-%d_%Hh%Mm%Ss"


RE_LOG_DIRNAME = re.compile(
    r"(\d{4}-\d\d-\d\d_\d\dh\d\dm\d\ds)_"
    r"[0-9a-f]{8}-(?:[0-9a-f]{4}-){3}[0-9a-f]{12}"
)

# Number of runs to keep logs for
KEEP_LOGS = 100


@functools.lru_cache()
def base_dir() -> Optional[str]:
    # Don't use shell here as we are not allowed to log yet!  Use the
    # common dir so that every worktree of a repository shares logs.
    r = subprocess.run(
        ("git", "rev-parse", "--git-common-dir"), capture_output=True
    )
    if r.returncode != 0:
        return None
    git_dir = os.path.abspath(r.stdout.decode("utf-8").rstrip())
    base_dir = os.path.join(git_dir, "restack", "log")
    os.makedirs(base_dir, exist_ok=True)
    return base_dir


@functools.lru_cache()
def run_dir() -> Optional[str]:
    log_base = base_dir()
    if log_base is None:
        return None
    # NB: respects timezone
    cur_dir = os.path.join(
        log_base,
        "{}_{}".format(datetime.datetime.now().strftime(DATETIME_FORMAT), uuid.uuid1()),
    )
    os.makedirs(cur_dir, exist_ok=True)
    return cur_dir


def record_exception(e: BaseException) -> None:
    d = run_dir()
    if d is None:
        return
    with open(os.path.join(d, "exception"), "w") as f:
        f.write(type(e).__name__)


def record_argv() -> None:
    d = run_dir()
    if d is None:
        return
    with open(os.path.join(d, "argv"), "w") as f:
        f.write(subprocess.list2cmdline(sys.argv[1:]))


def rotate() -> None:
    log_base = base_dir()
    if log_base is None:
        return
    old_logs = os.listdir(log_base)
    old_logs.sort(reverse=True)
    for stale_log in old_logs[KEEP_LOGS:]:
        # Sanity check that it looks like a log
        if RE_LOG_DIRNAME.fullmatch(stale_log):
            shutil.rmtree(os.path.join(log_base, stale_log))


@contextlib.contextmanager
def manager(*, debug: bool = False) -> Iterator[None]:
    """
    Set up logging for one restack invocation: messages go to stderr
    (INFO and up, or everything with debug), and everything is also
    written to restack.log in a fresh directory under
    .git/restack/log, along with the command line and, if the run
    dies, the type of exception that killed it.
    """
    root = logging.getLogger()
    old_level = root.level
    root.setLevel(logging.DEBUG)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.DEBUG if debug else logging.INFO)
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(console_handler)

    file_handler: Optional[logging.Handler] = None
    log_dir = run_dir()
    if log_dir is not None:
        file_handler = logging.FileHandler(os.path.join(log_dir, "restack.log"))
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(message)s")
        )
        root.addHandler(file_handler)
        record_argv()
    else:
        logging.debug("Not in a git repository; not writing a log file")

    try:
        yield
    except BaseException as e:
        record_exception(e)
        raise
    finally:
        root.removeHandler(console_handler)
        if file_handler is not None:
            root.removeHandler(file_handler)
            file_handler.close()
        root.setLevel(old_level)
        rotate()
