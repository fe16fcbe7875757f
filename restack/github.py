#!/usr/bin/env python3

from abc import ABCMeta, abstractmethod
from typing import Any


class NotFoundError(RuntimeError):
    pass


class GitHubEndpoint(metaclass=ABCMeta):
    def get(self, path: str, **kwargs: Any) -> Any:
        """
        Send a GET request to endpoint 'path'.

        Args:
            path: relative URL path to access on endpoint
            **kwargs: query string parameters

        Returns: parsed JSON response
        """
        return self.rest("get", path, **kwargs)

    @abstractmethod
    def rest(self, method: str, path: str, **kwargs: Any) -> Any:
        """
        Send a 'method' request to endpoint 'path'.

        Args:
            method: 'get', 'post', etc.
            path: relative URL path to access on endpoint
            **kwargs: query string parameters for 'get', JSON payload
                for everything else

        Returns: parsed JSON response
        """
        pass
