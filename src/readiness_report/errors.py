"""Exception taxonomy for the readiness report.

Upstream failures are mapped onto TrackerError subclasses as close to
the HTTP call as possible so callers can decide which ones to absorb.
"""

from __future__ import annotations

import httpx

HTTP_UNAUTHORIZED = 401
HTTP_FORBIDDEN = 403
HTTP_NOT_FOUND = 404


class ReadinessReportError(Exception):
    """Base class for all readiness report errors."""


class ConfigurationError(ReadinessReportError):
    """Missing or invalid connection settings."""


class TrackerError(ReadinessReportError):
    """An upstream (Jira or Confluence) call did not produce usable data."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TransientNetworkError(TrackerError):
    """Timeout, refused connection or similar transport failure."""


class AuthenticationError(TrackerError):
    """401/403 from an upstream service."""


class NotFoundError(TrackerError):
    """404 from an upstream service."""


class MalformedResponseError(TrackerError):
    """HTML login page where JSON was expected, or missing fields."""


def looks_like_html(response: httpx.Response) -> bool:
    """Return True if the response body is HTML rather than JSON."""
    content_type = response.headers.get("content-type", "").lower()
    if "text/html" in content_type:
        return True
    head = response.text[:200].lstrip().lower()
    return head.startswith("<!doctype html") or head.startswith("<html")


def raise_for_upstream(response: httpx.Response) -> None:
    """Map a non-usable response onto the TrackerError hierarchy.

    A 2xx response with an HTML body counts as malformed: SSO gateways
    answer unauthenticated API calls with a 200 login page.
    """
    status = response.status_code
    if status in (HTTP_UNAUTHORIZED, HTTP_FORBIDDEN):
        raise AuthenticationError(f"HTTP {status} from {response.url}", status)
    if status == HTTP_NOT_FOUND:
        raise NotFoundError(f"HTTP {status} from {response.url}", status)
    if not 200 <= status < 300:
        raise TrackerError(f"HTTP {status} from {response.url}", status)
    if looks_like_html(response):
        raise MalformedResponseError(
            f"HTML body instead of JSON from {response.url}", status
        )


def json_body(response: httpx.Response):
    """Decode a JSON body, raising MalformedResponseError on garbage."""
    try:
        return response.json()
    except ValueError as e:
        raise MalformedResponseError(
            f"Invalid JSON from {response.url}: {e}", response.status_code
        ) from e
