"""Jira work-item search.

Runs a JQL query and turns the hits into WorkItem models. Auth schemes
are tried in order (token first); transient failures are retried with
exponential backoff.
"""

from typing import Any

import httpx
from rich.console import Console
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .auth import JIRA_AUTH_STRATEGIES, AuthStrategy, Credential
from .config import MAX_RETRIES, SEARCH_MAX_RESULTS, SEARCH_TIMEOUT_SECONDS
from .errors import (
    AuthenticationError,
    MalformedResponseError,
    TrackerError,
    TransientNetworkError,
    json_body,
    looks_like_html,
    raise_for_upstream,
)
from .models import WorkItem

console = Console()


def jira_error_message(response: httpx.Response) -> str | None:
    """Pull Jira's own error text out of an error response, if any."""
    try:
        payload = response.json()
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    messages = payload.get("errorMessages") or []
    if messages:
        return "; ".join(str(m) for m in messages)
    return payload.get("message")


class JiraClient:
    """Minimal Jira REST client for JQL searches.

    Usage:
        jira = JiraClient("https://jira.example.com")
        async with httpx.AsyncClient() as client:
            items = await jira.search_work_items(client, jql, fields, credential)
    """

    def __init__(
        self,
        base_url: str,
        strategies: tuple[AuthStrategy, ...] = JIRA_AUTH_STRATEGIES,
        max_results: int = SEARCH_MAX_RESULTS,
        timeout: float = SEARCH_TIMEOUT_SECONDS,
    ) -> None:
        """Initialize the client with the Jira base URL."""
        self.base_url = base_url.rstrip("/")
        self.strategies = strategies
        self.max_results = max_results
        self.timeout = timeout

    @property
    def search_url(self) -> str:
        """JQL search endpoint."""
        return f"{self.base_url}/rest/api/2/search"

    def browse_url(self, key: str) -> str:
        """Return the browser URL of an issue."""
        return f"{self.base_url}/browse/{key}"

    async def search_work_items(
        self,
        client: httpx.AsyncClient,
        jql: str,
        fields: list[str],
        credential: Credential,
    ) -> list[WorkItem]:
        """Run a JQL search, trying each auth strategy until one is accepted.

        Raises:
            AuthenticationError: If every strategy was rejected.
            MalformedResponseError: If every strategy failed and at least one
                got an HTML (SSO login) page.
            TrackerError: On other upstream failures.
        """
        errors: list[str] = []
        malformed: MalformedResponseError | None = None
        for strategy in self.strategies:
            headers = strategy.headers(credential)
            if headers is None:
                continue
            try:
                payload = await self._search(client, jql, fields, headers)
            except AuthenticationError as e:
                console.print(f"[yellow]Jira search: {strategy.name} auth rejected[/]")
                errors.append(f"{strategy.name}: {e}")
                continue
            except MalformedResponseError as e:
                console.print(
                    f"[yellow]Jira search: {strategy.name} got a login page[/]"
                )
                malformed = e
                continue

            issues = payload.get("issues") or []
            console.print(
                f"[green]Fetched {len(issues)} issue(s) "
                f"(total available: {payload.get('total', len(issues))})[/]"
            )
            return [
                WorkItem.from_search_hit(hit)
                for hit in issues
                if isinstance(hit, dict) and hit.get("key")
            ]

        if malformed is not None:
            raise malformed
        raise AuthenticationError(
            "All authentication methods failed"
            + (f": {errors[-1]}" if errors else " (no usable credential)")
        )

    @retry(
        stop=stop_after_attempt(MAX_RETRIES),
        wait=wait_exponential(multiplier=1, min=2, max=30),
        retry=retry_if_exception_type(TransientNetworkError),
        reraise=True,
    )
    async def _search(
        self,
        client: httpx.AsyncClient,
        jql: str,
        fields: list[str],
        headers: dict[str, str],
    ) -> dict[str, Any]:
        """POST one search request with retry on transient failures."""
        body = {"jql": jql, "maxResults": self.max_results, "fields": fields}
        try:
            response = await client.post(
                self.search_url, json=body, headers=headers, timeout=self.timeout
            )
        except httpx.TimeoutException as e:
            raise TransientNetworkError("Jira search timed out") from e
        except httpx.TransportError as e:
            raise TransientNetworkError(
                f"Cannot connect to {self.base_url}: {e}"
            ) from e

        if response.is_success and looks_like_html(response):
            raise MalformedResponseError(
                "SAML authentication required: Jira returned an HTML page"
            )
        try:
            raise_for_upstream(response)
        except TrackerError as e:
            detail = jira_error_message(response)
            if detail:
                raise type(e)(detail, e.status_code) from e
            raise

        payload = json_body(response)
        if not isinstance(payload, dict):
            raise MalformedResponseError("Search response is not a JSON object")
        return payload
