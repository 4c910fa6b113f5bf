"""Pytest configuration and shared test fixtures.

This module provides fixtures for testing the readiness report,
including Jira/Confluence payloads and a fake upstream served through
httpx.MockTransport.
"""

import re
from typing import Any

import httpx
import pytest

from readiness_report.auth import Credential

WIKI = "https://confluence.example.com"
JIRA = "https://jira.example.com"

REMOTELINK_PATH = re.compile(r"/rest/api/2/issue/([^/]+)/remotelink$")
CONTENT_PATH = re.compile(r"/rest/api/content/(\d+)$")
SEARCH_PATH = re.compile(r"/rest/api/2/search$")


def wiki_link(
    url: str, title: str | None = None, relationship: str = "mentioned in"
) -> dict[str, Any]:
    """Build one entry of a Jira remotelink response pointing at the wiki."""
    return {
        "id": 10000,
        "globalId": f"appId=abc&pageId={url.rsplit('/', 1)[-1]}",
        "application": {"type": "com.atlassian.confluence", "name": "Confluence"},
        "relationship": relationship,
        "object": {"url": url, "title": title},
    }


def page_payload(
    page_id: str, title: str, labels: list[str] | None = None, body: str = ""
) -> dict[str, Any]:
    """Build a Confluence /rest/api/content/{id} response."""
    return {
        "id": page_id,
        "type": "page",
        "title": title,
        "version": {"number": 3},
        "metadata": {"labels": {"results": [{"name": n} for n in labels or []]}},
        "body": {"storage": {"value": body, "representation": "storage"}},
    }


class FakeAtlassian:
    """In-memory Jira + Confluence answering through httpx.MockTransport.

    - remote_links: issue key -> payload list, HTTP status, or "timeout"
    - pages: page id -> payload dict or HTML string (login page)
    - wiki_schemes: auth schemes the wiki accepts
    - search_schemes: auth schemes Jira search accepts
    """

    def __init__(self) -> None:
        self.remote_links: dict[str, Any] = {}
        self.pages: dict[str, Any] = {}
        self.wiki_schemes: set[str] = {"Basic", "Bearer"}
        self.search_schemes: set[str] = {"Bearer"}
        self.search_response: Any = {"issues": [], "total": 0}
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        scheme = request.headers.get("Authorization", "").split(" ")[0]

        match = REMOTELINK_PATH.search(path)
        if match:
            outcome = self.remote_links.get(match.group(1), 404)
            if outcome == "timeout":
                raise httpx.ReadTimeout("timed out", request=request)
            if isinstance(outcome, int):
                return httpx.Response(outcome, json={"errorMessages": ["nope"]})
            return httpx.Response(200, json=outcome)

        match = CONTENT_PATH.search(path)
        if match:
            if scheme not in self.wiki_schemes:
                return httpx.Response(401, json={"message": "Unauthorized"})
            page = self.pages.get(match.group(1))
            if page is None:
                return httpx.Response(404, json={"message": "No content"})
            if isinstance(page, str):
                return httpx.Response(
                    200, text=page, headers={"content-type": "text/html"}
                )
            return httpx.Response(200, json=page)

        if SEARCH_PATH.search(path):
            if scheme not in self.search_schemes:
                return httpx.Response(
                    401, json={"errorMessages": ["You are not authenticated"]}
                )
            if isinstance(self.search_response, str):
                return httpx.Response(
                    200,
                    text=self.search_response,
                    headers={"content-type": "text/html"},
                )
            return httpx.Response(200, json=self.search_response)

        return httpx.Response(404)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self.transport)

    def content_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if CONTENT_PATH.search(r.url.path)]

    def requested_page_ids(self) -> list[str]:
        """Page ids looked up, in first-request order."""
        ids = [
            CONTENT_PATH.search(r.url.path).group(1)
            for r in self.content_requests()
        ]
        return list(dict.fromkeys(ids))


@pytest.fixture
def upstream() -> FakeAtlassian:
    """Provide an empty fake Jira/Confluence upstream."""
    return FakeAtlassian()


@pytest.fixture
def credential() -> Credential:
    """Provide a credential usable for both Basic and Bearer auth."""
    return Credential(token="secret-token", identity="me@example.com")


@pytest.fixture
def cg_url() -> str:
    """Provide a CG readiness page URL in path-segment form."""
    return f"{WIKI}/spaces/ED/pages/468276167/NDB-2.10+CG+Readiness"


@pytest.fixture
def pg_url() -> str:
    """Provide a PG readiness page URL in path-segment form."""
    return f"{WIKI}/spaces/ED/pages/460996552/NDB-2.10+PG+Readiness"


@pytest.fixture
def login_page_html() -> str:
    """Provide the HTML an SSO gateway returns instead of JSON.

    Returns:
        A minimal login page.
    """
    return """<!DOCTYPE html>
    <html>
    <head><title>Log in - Example SSO</title></head>
    <body>
        <form action="/login" method="post">
            <input name="username"><input name="password" type="password">
        </form>
    </body>
    </html>
    """
