#!/usr/bin/env python3
"""Structured exceptions for team synchronization.

Remote failures are classified once, at the client boundary, into
NotFoundError / ForbiddenError / TransportError. Everything downstream
matches on the exception type only.
"""

from __future__ import annotations

from typing import Any, Optional

import requests


class ConfigurationError(Exception):
    """Missing or invalid config. Always fatal."""

    def __init__(self, errors):
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class GitHubAPIError(Exception):
    """Base exception for all GitHub API failures."""

    def __init__(
        self,
        status_code: Optional[int],
        message: str,
        method: str = "",
        url: str = "",
        detail: Any = None,
    ) -> None:
        self.status_code = status_code
        self.message = message
        self.method = method
        self.url = url
        self.detail = detail
        # Partial SyncResult of the run this error aborted, attached by the engine.
        self.result = None
        prefix = f"[{status_code}] " if status_code is not None else ""
        target = f" ({method} {url})" if method else ""
        super().__init__(f"{prefix}{message}{target}")


class NotFoundError(GitHubAPIError):
    """404 Not Found: the entity does not exist."""
    pass


class ForbiddenError(GitHubAPIError):
    """403 Forbidden: the token may not perform this operation."""
    pass


class TransportError(GitHubAPIError):
    """Any other failure: auth, validation, server errors, connection errors."""
    pass


def classify_response(response: requests.Response) -> Optional[GitHubAPIError]:
    """Map a response to its error class, or None for a successful response."""
    if response.status_code < 400:
        return None

    message = f"HTTP {response.status_code}"
    detail = None
    try:
        detail = response.json()
        if isinstance(detail, dict) and detail.get("message"):
            message = detail["message"]
    except ValueError:
        if response.text:
            message = response.text[:200]

    method = response.request.method if response.request is not None else ""
    url = response.url or ""

    if response.status_code == 404:
        cls = NotFoundError
    elif response.status_code == 403:
        cls = ForbiddenError
    else:
        cls = TransportError
    return cls(response.status_code, message, method, url, detail)


def classify_exception(exc: requests.RequestException, method: str = "", url: str = "") -> TransportError:
    """Wrap a connection-level failure; it never reached a status code."""
    return TransportError(None, str(exc) or exc.__class__.__name__, method, url)
