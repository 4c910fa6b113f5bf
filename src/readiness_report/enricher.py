"""Batch enrichment of work items with CG/PG readiness links.

Features:
- Async HTTP requests with httpx
- Fixed-size batches with concurrent remote-link fetches per batch
- Sequential, paced wiki page resolution
- Per-item fault isolation: one unreachable item never fails the batch
- Progress tracking with Rich
"""

import asyncio
from collections.abc import Iterable, Sequence
from contextlib import nullcontext

import httpx
from rich.console import Console
from rich.markup import escape
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
)

from .auth import Credential
from .classifier import LinkClassifier, meaningful_title
from .config import (
    BATCH_SIZE,
    INTER_BATCH_DELAY_SECONDS,
    INTER_LINK_DELAY_SECONDS,
    REQUEST_TIMEOUT_SECONDS,
)
from .models import (
    Category,
    CategoryLink,
    ClassifiedLink,
    EnrichmentResult,
    RemoteLink,
    WorkItem,
)
from .remote_links import RemoteLinkFetcher
from .wiki import WikiPageResolver

console = Console()


def display_title(classified: ClassifiedLink, position: int) -> str:
    """Title shown for a link.

    The resolved page title, else the title Jira stores on the link, else
    a synthesized `Link N` (N is the 1-based position).
    """
    return (
        meaningful_title(classified.page.title)
        or meaningful_title(classified.link.title)
        or f"Link {position}"
    )


def build_result(
    work_item_key: str, classified: Sequence[ClassifiedLink]
) -> EnrichmentResult:
    """Aggregate classified links into an item's EnrichmentResult.

    Matched links go to their categories only. When the item has wiki
    links but none matched, every wiki link is shown under both
    categories instead.
    """
    if not classified:
        return EnrichmentResult.empty(work_item_key)

    entries = [
        (
            item,
            CategoryLink(
                url=item.link.url,
                title=display_title(item, position),
                page_id=item.page.page_id,
            ),
        )
        for position, item in enumerate(classified, 1)
    ]

    matched: dict[Category, list[CategoryLink]] = {}
    for category in Category:
        links = [link for item, link in entries if category in item.categories]
        if links:
            matched[category] = links

    if matched:
        return EnrichmentResult(
            work_item_key=work_item_key,
            category_links=matched,
            wiki_link_count=len(classified),
        )

    everything = [link for _, link in entries]
    return EnrichmentResult(
        work_item_key=work_item_key,
        category_links={category: list(everything) for category in Category},
        wiki_link_count=len(classified),
        broadcast=True,
    )


class _Pacer:
    """Sleeps between consecutive `wait()` calls, never before the first."""

    def __init__(self, delay: float) -> None:
        self.delay = delay
        self._started = False

    async def wait(self) -> None:
        if self._started and self.delay > 0:
            await asyncio.sleep(self.delay)
        self._started = True


class BatchEnricher:
    """Finds CG/PG readiness pages for a set of work items.

    Usage:
        enricher = BatchEnricher("https://jira.example.com")
        results = await enricher.enrich(work_items, credential)
        results["FEAT-1"].links_for(Category.CG)
    """

    def __init__(
        self,
        jira_base_url: str,
        wiki_base_url: str | None = None,
        batch_size: int = BATCH_SIZE,
        batch_delay: float = INTER_BATCH_DELAY_SECONDS,
        link_delay: float = INTER_LINK_DELAY_SECONDS,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        classifier: LinkClassifier | None = None,
        fetcher: RemoteLinkFetcher | None = None,
        resolver: WikiPageResolver | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        show_progress: bool = False,
    ) -> None:
        """Initialize the enricher with batching and pacing settings."""
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self.link_delay = link_delay
        self.timeout = timeout
        self.classifier = classifier or LinkClassifier()
        self.fetcher = fetcher or RemoteLinkFetcher(jira_base_url)
        self.resolver = resolver or WikiPageResolver(wiki_base_url)
        self.show_progress = show_progress
        self._transport = transport

    async def enrich(
        self,
        work_items: Iterable[WorkItem],
        credential: Credential,
        wiki_credential: Credential | None = None,
    ) -> dict[str, EnrichmentResult]:
        """Enrich every work item; returns results keyed by work item key.

        Args:
            work_items: Items to enrich.
            credential: Jira credential used for remote-link lookups.
            wiki_credential: Wiki credential; defaults to `credential`.

        Raises:
            ValueError: If an entry is not a WorkItem with a key.
        """
        items = self._validate(work_items)
        async with httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
            transport=self._transport,
        ) as client:
            return await self.enrich_with_client(
                client, items, credential, wiki_credential or credential
            )

    async def enrich_with_client(
        self,
        client: httpx.AsyncClient,
        work_items: Sequence[WorkItem],
        credential: Credential,
        wiki_credential: Credential | None,
    ) -> dict[str, EnrichmentResult]:
        """Enrich work items using an existing client."""
        results: dict[str, EnrichmentResult] = {}
        batches = [
            work_items[i : i + self.batch_size]
            for i in range(0, len(work_items), self.batch_size)
        ]
        pacer = _Pacer(self.link_delay)

        progress_ctx = (
            Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                TaskProgressColumn(),
                console=console,
            )
            if self.show_progress
            else nullcontext()
        )

        with progress_ctx as progress:
            task = (
                progress.add_task("Enriching work items...", total=len(work_items))
                if progress is not None
                else None
            )

            for index, batch in enumerate(batches):
                if index > 0 and self.batch_delay > 0:
                    await asyncio.sleep(self.batch_delay)

                for result in await self._enrich_batch(
                    client, batch, credential, wiki_credential, pacer
                ):
                    results[result.work_item_key] = result
                    if progress is not None:
                        progress.advance(task)

        return results

    async def _enrich_batch(
        self,
        client: httpx.AsyncClient,
        batch: Sequence[WorkItem],
        credential: Credential,
        wiki_credential: Credential | None,
        pacer: _Pacer,
    ) -> list[EnrichmentResult]:
        """Fetch links for a batch concurrently, then resolve them in order."""
        outcomes = await asyncio.gather(
            *(self.fetcher.fetch(client, item.key, credential) for item in batch),
            return_exceptions=True,
        )

        results = []
        for item, outcome in zip(batch, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                console.print(
                    f"[red]{item.key}: could not fetch remote links: "
                    f"{escape(str(outcome))}[/]"
                )
                results.append(EnrichmentResult.empty(item.key, error=str(outcome)))
                continue

            classified = await self._classify_links(
                client, outcome, wiki_credential, pacer
            )
            results.append(build_result(item.key, classified))
        return results

    async def _classify_links(
        self,
        client: httpx.AsyncClient,
        links: Sequence[RemoteLink],
        wiki_credential: Credential | None,
        pacer: _Pacer,
    ) -> list[ClassifiedLink]:
        """Resolve and classify links one at a time, in input order."""
        classified = []
        for link in links:
            await pacer.wait()
            page = await self.resolver.resolve(client, link.url, wiki_credential)
            classified.append(self.classifier.classify_link(link, page))
        return classified

    @staticmethod
    def _validate(work_items: Iterable[WorkItem]) -> list[WorkItem]:
        items = list(work_items)
        for item in items:
            if not isinstance(item, WorkItem) or not item.key:
                raise ValueError(f"Not a work item with a key: {item!r}")
        return items


def enrich(
    work_items: Iterable[WorkItem],
    credential: Credential,
    jira_base_url: str,
    wiki_credential: Credential | None = None,
    **options,
) -> dict[str, EnrichmentResult]:
    """Synchronous entry point: enrich work items and wait for the results.

    Keyword options are passed to BatchEnricher.
    """
    enricher = BatchEnricher(jira_base_url, **options)
    return asyncio.run(enricher.enrich(work_items, credential, wiki_credential))
