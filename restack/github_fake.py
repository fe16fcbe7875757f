#!/usr/bin/env python3

import re
from typing import Any, Dict, List, Optional, Sequence, Tuple

import restack.github
from restack.records import PullRequest

RE_PULLS_PATH = re.compile(
    r"^repos/(?P<owner>[^/]+)/(?P<name>[^/]+)/pulls(?:/(?P<number>[0-9]+))?$"
)


class FakeGitHubEndpoint(restack.github.GitHubEndpoint):
    """
    Serves the handful of REST calls restack makes out of an in-memory
    list of pull requests belonging to a single repository.
    """

    owner: str
    name: str
    pull_requests: List[PullRequest]

    # Every request made, as (method, path, kwargs)
    requests: List[Tuple[str, str, Dict[str, Any]]]

    # If set, every request raises RuntimeError with this message
    failure: Optional[str]

    def __init__(
        self,
        pull_requests: Sequence[PullRequest] = (),
        owner: str = "pytorch",
        name: str = "pytorch",
    ) -> None:
        self.owner = owner
        self.name = name
        self.pull_requests = list(pull_requests)
        self.requests = []
        self.failure = None

    def rest(self, method: str, path: str, **kwargs: Any) -> Any:
        self.requests.append((method, path, kwargs))
        if self.failure is not None:
            raise RuntimeError(self.failure)
        m = RE_PULLS_PATH.match(path)
        if method != "get" or m is None:
            raise NotImplementedError("{} {}".format(method, path))
        if (m.group("owner"), m.group("name")) != (self.owner, self.name):
            raise restack.github.NotFoundError(
                "unknown repository {}/{}".format(m.group("owner"), m.group("name"))
            )

        if m.group("number") is not None:
            number = int(m.group("number"))
            for pr in self.pull_requests:
                if pr.number == number:
                    return self._json(pr)
            raise restack.github.NotFoundError("unknown pull request #{}".format(number))

        state = kwargs.get("state", "open")
        per_page = int(kwargs.get("per_page", 30))
        page = int(kwargs.get("page", 1))
        matching = [
            pr for pr in self.pull_requests if state == "all" or pr.state == state
        ]
        start = (page - 1) * per_page
        return [self._json(pr) for pr in matching[start : start + per_page]]

    def _json(self, pr: PullRequest) -> Dict[str, Any]:
        return {
            "number": pr.number,
            "state": pr.state,
            "head": {"ref": pr.head_ref},
            "base": {"ref": pr.base_ref},
        }
