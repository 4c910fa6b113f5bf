"""Best-effort Confluence page resolution.

Resolves a wiki link to a title and label set by trying each auth
strategy against the content endpoint, falling back to the title encoded
in the URL itself. Nothing in here raises to the caller.
"""

import asyncio
import re
from typing import Any
from urllib.parse import unquote, unquote_plus, urlparse

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError
from rich.console import Console
from rich.markup import escape

from .auth import WIKI_AUTH_STRATEGIES, AuthStrategy, Credential
from .config import SUMMARY_STAGGER_SECONDS
from .errors import (
    MalformedResponseError,
    TrackerError,
    json_body,
    looks_like_html,
    raise_for_upstream,
)
from .models import PageSummary, ResolvedPage
from .parser import StorageParser

console = Console()

LABEL_EXPAND = "version,metadata.labels"
BODY_EXPAND = "body.storage,version"

# Ordered: query-parameter form, then path-segment form (absolute or relative)
PAGE_ID_PATTERNS = [
    re.compile(r"[?&]pageId=(\d+)"),
    re.compile(r"(?:^|/)pages/(\d+)"),
]
PATH_TITLE_PATTERN = re.compile(r"/pages/\d+/([^/?#]+)")
QUERY_TITLE_PATTERN = re.compile(r"[?&]title=([^&#]+)")


def extract_page_id(url: str | None) -> str | None:
    """Extract the numeric Confluence page id from a URL."""
    if not url:
        return None
    for pattern in PAGE_ID_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)
    return None


def extract_title_from_url(url: str | None) -> str | None:
    """Recover a human title from a page URL.

    `.../pages/468276167/NDB-2.10+CG+Readiness` -> `NDB 2.10 CG Readiness`.
    Falls back to a `title=` query parameter (display URLs).
    """
    if not url:
        return None

    match = PATH_TITLE_PATTERN.search(url)
    if match:
        title = unquote(match.group(1))
        title = title.replace("+", " ").replace("-", " ").strip()
        return title or None

    match = QUERY_TITLE_PATTERN.search(url)
    if match:
        title = unquote_plus(match.group(1)).strip()
        return title or None

    return None


class _RawLabel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str | None = None


class _RawLabels(BaseModel):
    model_config = ConfigDict(extra="ignore")

    results: list[_RawLabel] = []


class _RawMetadata(BaseModel):
    model_config = ConfigDict(extra="ignore")

    labels: _RawLabels | None = None


class _RawStorage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    value: str | None = None


class _RawBody(BaseModel):
    model_config = ConfigDict(extra="ignore")

    storage: _RawStorage | None = None


class _RawContent(BaseModel):
    """The parts of a /rest/api/content/{id} response we read."""

    model_config = ConfigDict(extra="ignore")

    id: str | int | None = None
    title: str | None = None
    metadata: _RawMetadata | None = None
    body: _RawBody | None = None

    @property
    def label_names(self) -> frozenset[str]:
        if not self.metadata or not self.metadata.labels:
            return frozenset()
        return frozenset(
            label.name for label in self.metadata.labels.results if label.name
        )

    @property
    def storage_html(self) -> str:
        if self.body and self.body.storage and self.body.storage.value:
            return self.body.storage.value
        return ""


def decode_content(payload: Any) -> _RawContent:
    """Decode a content payload, requiring a title."""
    try:
        content = _RawContent.model_validate(payload)
    except ValidationError as e:
        raise MalformedResponseError(f"Unexpected content payload: {e}") from e
    if not content.title:
        raise MalformedResponseError("Content payload has no title")
    return content


class WikiPageResolver:
    """Resolves wiki links to titles and labels.

    Usage:
        resolver = WikiPageResolver("https://confluence.example.com")
        async with httpx.AsyncClient(timeout=10) as client:
            page = await resolver.resolve(client, url, credential)
    """

    def __init__(
        self,
        base_url: str | None = None,
        strategies: tuple[AuthStrategy, ...] = WIKI_AUTH_STRATEGIES,
        parser: StorageParser | None = None,
    ) -> None:
        """Initialize the resolver.

        Args:
            base_url: Confluence base URL. When None, it is derived from
                each link's own scheme and host.
            strategies: Auth strategies, tried in order.
            parser: HTML parser used for summaries and login pages.
        """
        self.base_url = base_url.rstrip("/") if base_url else None
        self.strategies = strategies
        self.parser = parser or StorageParser()

    def api_base(self, url: str) -> str:
        """Return the REST API root serving the page at `url`."""
        if self.base_url:
            return f"{self.base_url}/rest/api"
        parsed = urlparse(url)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError(f"Cannot derive wiki host from {url!r}")
        prefix = "/wiki" if parsed.path.startswith("/wiki/") else ""
        return f"{parsed.scheme}://{parsed.netloc}{prefix}/rest/api"

    def content_url(self, url: str, page_id: str) -> str:
        """Return the content endpoint for a page id."""
        return f"{self.api_base(url)}/content/{page_id}"

    async def resolve(
        self,
        client: httpx.AsyncClient,
        url: str | None,
        credential: Credential | None,
    ) -> ResolvedPage:
        """Resolve a wiki link to a title and label set.

        Network lookup needs a page id and a credential; otherwise (or if
        every strategy fails) the title comes from the URL and labels are
        empty.
        """
        if not isinstance(url, str) or not url:
            return ResolvedPage()

        page_id = extract_page_id(url)
        if page_id and credential is not None:
            content = await self._fetch_content(
                client, url, page_id, credential, LABEL_EXPAND
            )
            if content is not None:
                return ResolvedPage(
                    page_id=page_id,
                    title=content.title,
                    labels=content.label_names,
                    source="network",
                )

        title = extract_title_from_url(url)
        return ResolvedPage(
            page_id=page_id,
            title=title,
            source="url" if title else None,
        )

    async def resolve_title(
        self,
        client: httpx.AsyncClient,
        url: str | None,
        credential: Credential | None,
    ) -> str | None:
        """Return the best-effort title of a wiki link."""
        page = await self.resolve(client, url, credential)
        return page.title

    async def resolve_labels(
        self,
        client: httpx.AsyncClient,
        url: str | None,
        credential: Credential | None,
    ) -> frozenset[str]:
        """Return the page labels, empty when the page could not be fetched."""
        page = await self.resolve(client, url, credential)
        return page.labels

    async def fetch_summary(
        self,
        client: httpx.AsyncClient,
        url: str,
        credential: Credential | None,
    ) -> PageSummary:
        """Fetch a page body and extract its summary."""
        page_id = extract_page_id(url)
        if not page_id:
            return PageSummary(
                url=url,
                success=False,
                error="Could not extract page ID from wiki URL",
            )
        if credential is None:
            return PageSummary(
                url=url, success=False, error="Wiki token not available"
            )

        content = await self._fetch_content(
            client, url, page_id, credential, BODY_EXPAND
        )
        if content is None:
            return PageSummary(
                url=url,
                success=False,
                title=extract_title_from_url(url),
                error="Unable to access wiki page with the configured token",
            )

        return PageSummary(
            url=url,
            success=True,
            title=content.title,
            summary=self.parser.extract_summary(content.storage_html),
        )

    async def fetch_summaries(
        self,
        client: httpx.AsyncClient,
        urls: list[str],
        credential: Credential | None,
        stagger: float = SUMMARY_STAGGER_SECONDS,
    ) -> dict[str, PageSummary]:
        """Fetch summaries for several pages, staggering request starts."""

        async def _delayed(index: int, url: str) -> PageSummary:
            if stagger > 0:
                await asyncio.sleep(index * stagger)
            return await self.fetch_summary(client, url, credential)

        summaries = await asyncio.gather(
            *(_delayed(i, url) for i, url in enumerate(urls))
        )
        return dict(zip(urls, summaries, strict=True))

    async def _fetch_content(
        self,
        client: httpx.AsyncClient,
        url: str,
        page_id: str,
        credential: Credential,
        expand: str,
    ) -> _RawContent | None:
        """Try each auth strategy in order; return the first usable payload."""
        try:
            endpoint = self.content_url(url, page_id)
        except ValueError as e:
            console.print(f"[yellow]Page {page_id}: {escape(str(e))}[/]")
            return None

        for strategy in self.strategies:
            headers = strategy.headers(credential)
            if headers is None:
                continue
            try:
                response = await client.get(
                    endpoint, headers=headers, params={"expand": expand}
                )
                if response.is_success and looks_like_html(response):
                    description = self.parser.describe_login_page(response.text)
                    raise MalformedResponseError(f"{description} instead of JSON")
                raise_for_upstream(response)
                content = decode_content(json_body(response))
            # ValueError covers tokens httpx cannot encode into a header
            except (
                TrackerError,
                httpx.HTTPError,
                httpx.InvalidURL,
                ValueError,
            ) as e:
                console.print(
                    f"[yellow]Page {page_id}: {strategy.name} auth failed "
                    f"({escape(str(e))})[/]"
                )
                continue
            return content

        console.print(
            f"[yellow]Page {page_id}: all auth strategies failed, "
            "using URL fallback[/]"
        )
        return None
