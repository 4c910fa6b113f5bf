"""Remote-link lookup for Jira work items.

Decodes Jira's `/remotelink` payload into RemoteLink models and keeps the
ones that point at the wiki.
"""

from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from rich.console import Console

from .auth import BearerAuthStrategy, Credential
from .config import (
    WIKI_APPLICATION_TYPES,
    WIKI_HOST_MARKERS,
    WIKI_PATH_MARKERS,
)
from .errors import (
    AuthenticationError,
    MalformedResponseError,
    NotFoundError,
    TransientNetworkError,
    json_body,
    raise_for_upstream,
)
from .models import RemoteLink

console = Console()


class _RawLinkObject(BaseModel):
    model_config = ConfigDict(extra="ignore")

    url: str | None = None
    title: str | None = None


class _RawApplication(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: str | None = None
    name: str | None = None


class _RawRemoteLink(BaseModel):
    """One entry of the remotelink array, as Jira sends it."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    relationship: str | None = None
    global_id: str | None = Field(default=None, alias="globalId")
    object: _RawLinkObject | None = None
    application: _RawApplication | None = None


def decode_remote_links(payload: Any) -> list[RemoteLink]:
    """Decode a remotelink response body.

    Precedence: the target URL is `object.url` and entries without one
    are dropped; the title is `object.title` (blank -> None); the
    relationship and application type are taken as-is.

    Raises:
        MalformedResponseError: If the body is not a JSON array.
    """
    if not isinstance(payload, list):
        raise MalformedResponseError(
            f"Expected a JSON array of remote links, got {type(payload).__name__}"
        )

    links = []
    for entry in payload:
        try:
            raw = _RawRemoteLink.model_validate(entry)
        except ValidationError:
            continue
        if raw.object is None or not raw.object.url:
            continue
        title = raw.object.title.strip() if raw.object.title else None
        links.append(
            RemoteLink(
                url=raw.object.url,
                title=title or None,
                relationship=raw.relationship,
                global_id=raw.global_id,
                application_type=raw.application.type if raw.application else None,
            )
        )
    return links


def is_wiki_url(url: str | None) -> bool:
    """Return True if the URL points at the wiki service."""
    if not url:
        return False
    lowered = url.lower()
    return any(marker in lowered for marker in WIKI_HOST_MARKERS) or any(
        marker in lowered for marker in WIKI_PATH_MARKERS
    )


def is_wiki_link(link: RemoteLink) -> bool:
    """Return True if a remote link is wiki-origin (by URL or application)."""
    app_type = (link.application_type or "").lower()
    if app_type in WIKI_APPLICATION_TYPES:
        return True
    return is_wiki_url(link.url)


def filter_wiki_links(links: list[RemoteLink]) -> list[RemoteLink]:
    """Keep wiki-origin links, preserving order."""
    return [link for link in links if is_wiki_link(link)]


class RemoteLinkFetcher:
    """Fetches the remote links attached to a Jira work item.

    Usage:
        fetcher = RemoteLinkFetcher("https://jira.example.com")
        async with httpx.AsyncClient() as client:
            links = await fetcher.fetch(client, "FEAT-1", credential)
    """

    def __init__(self, jira_base_url: str) -> None:
        """Initialize the fetcher with the Jira base URL."""
        self.jira_base_url = jira_base_url.rstrip("/")
        self._auth = BearerAuthStrategy()

    def remote_link_url(self, work_item_key: str) -> str:
        """Return the remotelink endpoint for a work item."""
        return f"{self.jira_base_url}/rest/api/2/issue/{work_item_key}/remotelink"

    async def fetch(
        self,
        client: httpx.AsyncClient,
        work_item_key: str,
        credential: Credential,
        wiki_only: bool = True,
    ) -> list[RemoteLink]:
        """Fetch the remote links of one work item.

        A 404 means the item has no links and returns an empty list.

        Raises:
            ValueError: If the work item key is empty.
            TransientNetworkError: On timeouts and connection failures.
            AuthenticationError: On 401/403.
            MalformedResponseError: On HTML or non-array bodies.
            TrackerError: On any other non-2xx status.
        """
        if not work_item_key:
            raise ValueError("work item key must not be empty")

        headers = self._auth.headers(credential)
        if headers is None:
            raise AuthenticationError(f"No token available for {work_item_key}")

        url = self.remote_link_url(work_item_key)
        try:
            response = await client.get(url, headers=headers)
        except httpx.TimeoutException as e:
            raise TransientNetworkError(f"Timed out fetching {url}") from e
        except httpx.TransportError as e:
            raise TransientNetworkError(f"Cannot reach {url}: {e}") from e

        try:
            raise_for_upstream(response)
        except NotFoundError:
            console.print(f"[dim]{work_item_key}: no remote links (404)[/]")
            return []

        links = decode_remote_links(json_body(response))
        if wiki_only:
            return filter_wiki_links(links)
        return links
