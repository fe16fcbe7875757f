#!/usr/bin/env python3

import logging
import os
import subprocess
from typing import IO, Any, Dict, Optional, Sequence, TypeVar, Union, overload

# Shell commands generally return str, but with exitcode=True
# they return a bool, and if stdout is piped straight to sys.stdout
# they return None.
_SHELL_RET = Union[bool, str, None]


_HANDLE = Union[None, int, IO[Any]]


def log_command(args: Sequence[str]) -> None:
    """
    Given a command, print it in a both machine and human readable way.

    Args:
        *args: the list of command line arguments you want to run
    """
    cmd = subprocess.list2cmdline(args).replace("\n", "\\n")
    logging.info("$ " + cmd)


K = TypeVar("K")


V = TypeVar("V")


def merge_dicts(x: Dict[K, V], y: Dict[K, V]) -> Dict[K, V]:
    z = x.copy()
    z.update(y)
    return z


class ShellError(RuntimeError):
    """
    A command exited with a nonzero exit code (or did not exit before
    its timeout, in which case returncode is None).
    """

    args_run: Sequence[str]
    returncode: Optional[int]
    stderr: str

    def __init__(
        self, args: Sequence[str], returncode: Optional[int], stderr: str
    ) -> None:
        self.args_run = list(args)
        self.returncode = returncode
        self.stderr = stderr
        if returncode is None:
            what = "timed out"
        else:
            what = "failed with exit code {}".format(returncode)
        msg = "{} {}".format(subprocess.list2cmdline(args), what)
        if stderr:
            msg += ":\n" + stderr
        super().__init__(msg)


class Shell(object):
    """
    An object representing a shell (e.g., the bash prompt in your
    terminal), maintaining a concept of current working directory, and
    also the necessary accoutrements for testing.
    """

    # Current working directory of shell.
    cwd: str

    # Whether or not to suppress printing of command executed.
    quiet: bool

    # Whether or not shell is in testing mode; some commands are made
    # more deterministic in this case.
    testing: bool

    def __init__(
        self, quiet: bool = False, cwd: Optional[str] = None, testing: bool = False
    ):
        """
        Args:
            cwd: Current working directory of the shell.  Pass None to
                initialize to the current cwd of the current process.
            quiet: If True, suppress printing out the command executed
                by the shell.  By default, we print out commands for ease
                of debugging.  Quiet is most useful for non-mutating
                shell commands.
            testing: If True, operate in testing mode.  Testing mode
                sets a number of environment variables for Git so that
                it never opens an editor or pager.
        """
        self.cwd = cwd if cwd else os.getcwd()
        self.quiet = quiet
        self.testing = testing

    def in_dir(self, cwd: str) -> "Shell":
        """
        A shell with the same settings, running commands in cwd.
        """
        return Shell(quiet=self.quiet, cwd=cwd, testing=self.testing)

    def sh(
        self,
        *args: str,
        env: Optional[Dict[str, str]] = None,
        stderr: _HANDLE = subprocess.PIPE,
        input: Optional[str] = None,
        stdin: _HANDLE = None,
        stdout: _HANDLE = subprocess.PIPE,
        exitcode: bool = False,
        timeout: Optional[float] = None,
        new_session: bool = False,
    ) -> _SHELL_RET:
        """
        Run a command specified by args, and return string representing
        the stdout of the run command, raising ShellError if exit code
        was nonzero (unless exitcode kwarg is specified; see below).

        Args:
            *args: the list of command line arguments to run
            env: any extra environment variables to set when running the
                command.  Environment variables set this way are ADDITIVE
                (unlike subprocess default)
            stderr: where to pipe stderr; by default, we capture it so it
                can be logged and reported in ShellError
            input: string value to pass stdin.  This is mutually exclusive
                with stdin
            stdin: where to pipe stdin from.  This is mutually exclusive
                with input
            stdout: where to pipe stdout; by default, we capture the stdout
                and return it
            exitcode: if True, return a bool rather than string, specifying
                whether or not the process successfully returned with exit
                code 0.  We never raise an exception when this is True.
            timeout: seconds to wait for the command before killing it
                and raising ShellError
            new_session: if True, run the command in its own session, so
                that a Ctrl-C at the terminal does not reach it and we
                wait for it to finish on its own
        """
        assert not (stdin and input)
        if input:
            stdin = subprocess.PIPE
        if not self.quiet:
            log_command(args)
        if env is not None:
            env = merge_dicts(dict(os.environ), env)
        p = subprocess.Popen(
            args,
            stdout=stdout,
            stdin=stdin,
            stderr=stderr,
            cwd=self.cwd,
            env=env,
            start_new_session=new_session,
        )
        input_bytes = None
        if input is not None:
            input_bytes = input.encode("utf-8")
        try:
            out, err = p.communicate(input_bytes, timeout=timeout)
        except subprocess.TimeoutExpired:
            p.kill()
            out, err = p.communicate()
            raise ShellError(args, None, _decode(err).rstrip())
        err_text = _decode(err).rstrip()
        if err_text:
            # NB: Not debug; we always want to show this to user.
            logging.info(err_text)
        if exitcode:
            logging.debug("Exit code: {}".format(p.returncode))
            return p.returncode == 0
        if p.returncode != 0:
            raise ShellError(args, p.returncode, err_text)
        if out is not None:
            r = _decode(out)
            logging.debug(r.replace("\0", "\\0"))
            return r
        else:
            return None

    def _maybe_rstrip(self, s: _SHELL_RET) -> _SHELL_RET:
        if isinstance(s, str):
            return s.rstrip()
        else:
            return s

    @overload  # noqa: F811
    def git(self, *args: str) -> str:
        ...

    @overload  # noqa: F811
    def git(self, *args: str, input: str) -> str:
        ...

    @overload  # noqa: F811
    def git(self, *args: str, **kwargs: Any) -> _SHELL_RET:
        ...

    def git(self, *args: str, **kwargs: Any) -> _SHELL_RET:  # noqa: F811
        """
        Run a git command.  The returned stdout has trailing newlines stripped.

        Args:
            *args: Arguments to git
            **kwargs: Any valid kwargs for sh()
        """
        env = kwargs.setdefault("env", {})
        # Rebase must never stop to ask for a commit message
        env.setdefault("GIT_EDITOR", ":")
        if self.testing:
            env.setdefault("EDITOR", ":")
            env.setdefault("GIT_MERGE_AUTOEDIT", "no")
            env.setdefault("LANG", "C")
            env.setdefault("LC_ALL", "C")
            env.setdefault("PAGER", "cat")
            env.setdefault("TZ", "UTC")
            env.setdefault("TERM", "dumb")
            env.setdefault("GIT_AUTHOR_EMAIL", "author@example.com")
            env.setdefault("GIT_AUTHOR_NAME", "A U Thor")
            env.setdefault("GIT_COMMITTER_EMAIL", "committer@example.com")
            env.setdefault("GIT_COMMITTER_NAME", "C O Mitter")

        return self._maybe_rstrip(self.sh(*(("git",) + args), **kwargs))


def _decode(b: Optional[bytes]) -> str:
    if b is None:
        return ""
    return b.decode("utf-8", errors="replace")
