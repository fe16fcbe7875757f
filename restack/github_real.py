#!/usr/bin/env python3

import json
import logging
import time
from typing import Any, Dict, Optional

import requests

import restack.github

MAX_RETRIES = 5
INITIAL_BACKOFF_SECONDS = 60


class RealGitHubEndpoint(restack.github.GitHubEndpoint):
    """
    A class representing a GitHub REST endpoint we can send queries to.
    """

    @property
    def rest_endpoint(self) -> str:
        if self.github_url == "github.com":
            return f"https://api.{self.github_url}"
        else:
            return f"https://{self.github_url}/api/v3"

    # The string OAuth token to authenticate with.  May be None if
    # we're doing public access only.
    oauth_token: Optional[str]

    # The URL of a proxy to use for these connections
    proxy: Optional[str]

    # Seconds to wait for GitHub to answer a request
    timeout: Optional[float]

    def __init__(
        self,
        oauth_token: Optional[str],
        github_url: str,
        proxy: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.oauth_token = oauth_token
        self.proxy = proxy
        self.github_url = github_url
        self.timeout = timeout

    def _proxies(self) -> Dict[str, str]:
        if self.proxy:
            return {"http": self.proxy, "https": self.proxy}
        else:
            return {}

    def rest(self, method: str, path: str, **kwargs: Any) -> Any:
        headers = {
            "Content-Type": "application/json",
            "User-Agent": "restack",
            "Accept": "application/vnd.github.v3+json",
        }
        if self.oauth_token:
            headers["Authorization"] = "token " + self.oauth_token

        url = self.rest_endpoint + "/" + path

        if method == "get":
            payload: Dict[str, Any] = {"params": kwargs}
        else:
            payload = {"json": kwargs}

        backoff_seconds = INITIAL_BACKOFF_SECONDS
        for attempt in range(0, MAX_RETRIES):
            logging.debug("# {} {}".format(method, url))
            logging.debug("Request:\n{}".format(json.dumps(kwargs, indent=1)))

            resp: requests.Response = getattr(requests, method)(
                url,
                headers=headers,
                proxies=self._proxies(),
                timeout=self.timeout,
                **payload,
            )

            logging.debug("Response status: {}".format(resp.status_code))

            try:
                r = resp.json()
            except ValueError:
                logging.debug("Response body:\n{}".format(resp.text))
                raise
            else:
                pretty_json = json.dumps(r, indent=1)
                logging.debug("Response JSON:\n{}".format(pretty_json))

            # https://docs.github.com/en/rest/using-the-rest-api/rate-limits-for-the-rest-api#exceeding-the-rate-limit
            if resp.status_code in (403, 429):
                remaining_count = resp.headers.get("x-ratelimit-remaining")
                reset_time = resp.headers.get("x-ratelimit-reset")

                if remaining_count == "0" and reset_time:
                    sleep_time = max(0, int(reset_time) - int(time.time()))
                    logging.warning(
                        f"Rate limit exceeded. Sleeping until reset in {sleep_time} seconds."
                    )
                    time.sleep(sleep_time)
                    continue
                elif resp.status_code == 429 or resp.headers.get("retry-after"):
                    retry_after_seconds = resp.headers.get("retry-after")
                    if retry_after_seconds:
                        sleep_time = int(retry_after_seconds)
                        logging.warning(
                            f"Secondary rate limit hit. Sleeping for {sleep_time} seconds."
                        )
                    else:
                        sleep_time = backoff_seconds
                        logging.warning(
                            f"Secondary rate limit hit. Sleeping for {sleep_time} seconds (exponential backoff)."
                        )
                        backoff_seconds *= 2
                    time.sleep(sleep_time)
                    continue

            if resp.status_code == 404:
                raise restack.github.NotFoundError(
                    """\
GitHub raised a 404 error on the request for
{url}.
Usually, this doesn't actually mean the page doesn't exist; instead, it
usually means that you didn't configure your OAuth token with enough
permissions.  Please create a new OAuth token at
https://{github_url}/settings/tokens and DOUBLE CHECK that you checked
"repo" for permissions, and update ~/.restackrc with your new
value (or set GITHUB_TOKEN).

Another possible reason for this error is if the repository has moved
to a new location or been renamed. Check that the repository URL is
still correct.
""".format(
                        url=url, github_url=self.github_url
                    )
                )

            try:
                resp.raise_for_status()
            except requests.HTTPError:
                raise RuntimeError(pretty_json)

            return r

        raise RuntimeError("Exceeded maximum retries due to GitHub rate limiting")
