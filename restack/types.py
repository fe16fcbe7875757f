#!/usr/bin/env python3

from typing import NewType

# A bunch of commonly used type definitions.

GitHubNumber = NewType("GitHubNumber", int)  # aka 1234 (as in #1234)

# A local branch name, without the refs/heads/ prefix; aka feat-a
BranchName = NewType("BranchName", str)

# Something git can rebase onto; either a local branch (feat-a) or a
# remote-tracking ref (origin/feat-a)
UpstreamRef = NewType("UpstreamRef", str)
