"""Pydantic models for work items, remote links and enrichment output.

Everything here is request-scoped: built fresh for one report run and
discarded after the report is written.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field


def _utc_now() -> datetime:
    """Return current UTC datetime (timezone-aware)."""
    return datetime.now(UTC)


class Category(str, Enum):
    """Readiness checklist a wiki page can represent."""

    CG = "cg"
    PG = "pg"


class WorkItem(BaseModel):
    """A tracked Jira issue as returned by a JQL search."""

    key: str = Field(min_length=1, description="Issue key (e.g., 'FEAT-18289')")
    fields: dict[str, Any] = Field(
        default_factory=dict, description="Raw Jira field bag"
    )

    @classmethod
    def from_search_hit(cls, hit: dict[str, Any]) -> "WorkItem":
        """Build a work item from one entry of a search response's `issues`."""
        return cls(key=hit.get("key") or "", fields=hit.get("fields") or {})


class RemoteLink(BaseModel):
    """An external resource attached to a work item."""

    model_config = ConfigDict(frozen=True)

    url: str = Field(description="Target URL of the linked object")
    title: str | None = Field(default=None, description="Title stored in Jira")
    relationship: str | None = Field(
        default=None, description="Relationship label (e.g., 'mentioned in')"
    )
    global_id: str | None = Field(default=None, description="Jira globalId")
    application_type: str | None = Field(
        default=None, description="Linked application (e.g., com.atlassian.confluence)"
    )


class ResolvedPage(BaseModel):
    """Best-effort title and labels for a wiki link."""

    model_config = ConfigDict(frozen=True)

    page_id: str | None = None
    title: str | None = None
    labels: frozenset[str] = Field(default_factory=frozenset)
    source: str | None = Field(
        default=None, description="'network', 'url' or None when unresolved"
    )


class ClassifiedLink(BaseModel):
    """A wiki link with the readiness categories it was matched to."""

    model_config = ConfigDict(frozen=True)

    link: RemoteLink
    page: ResolvedPage
    categories: frozenset[Category] = Field(default_factory=frozenset)


class CategoryLink(BaseModel):
    """A link as it appears in a category column of the report."""

    model_config = ConfigDict(frozen=True)

    url: str
    title: str
    page_id: str | None = None


def _empty_category_links() -> dict[Category, list[CategoryLink]]:
    return {Category.CG: [], Category.PG: []}


class EnrichmentResult(BaseModel):
    """Readiness links found for one work item.

    A category missing from `category_links` means the item had wiki links
    but none matched that category.
    """

    model_config = ConfigDict(frozen=True)

    work_item_key: str
    category_links: dict[Category, list[CategoryLink]] = Field(
        default_factory=_empty_category_links
    )
    wiki_link_count: int = 0
    broadcast: bool = Field(
        default=False,
        description="True when no link classified and all wiki links were shown",
    )
    error: str | None = Field(
        default=None, description="Why remote links could not be fetched"
    )

    @classmethod
    def empty(cls, work_item_key: str, error: str | None = None) -> "EnrichmentResult":
        """Result for an item with no wiki links (or an unreachable one)."""
        return cls(work_item_key=work_item_key, error=error)

    def links_for(self, category: Category) -> list[CategoryLink] | None:
        """Return the links for a category, or None if it is absent."""
        return self.category_links.get(category)


class PageSummary(BaseModel):
    """Summary text pulled from a wiki page body."""

    url: str
    success: bool
    title: str | None = None
    summary: str | None = None
    error: str | None = None


class ReportRow(BaseModel):
    """One formatted row of the readiness report."""

    key: str
    url: str
    values: dict[str, str] = Field(default_factory=dict)
    links: dict[str, list[CategoryLink] | None] = Field(default_factory=dict)


class ReadinessReport(BaseModel):
    """The complete report.

    Root model for JSON/JSONL output.
    """

    generated_at: datetime = Field(default_factory=_utc_now)
    jql: str | None = None
    rows: list[ReportRow] = Field(default_factory=list)

    @computed_field
    @property
    def total_rows(self) -> int:
        """Number of work items in the report."""
        return len(self.rows)

    @computed_field
    @property
    def rows_with_cg(self) -> int:
        """Rows showing at least one CG link."""
        return sum(1 for row in self.rows if row.links.get(Category.CG.value))

    @computed_field
    @property
    def rows_with_pg(self) -> int:
        """Rows showing at least one PG link."""
        return sum(1 for row in self.rows if row.links.get(Category.PG.value))

    def to_jsonl_rows(self) -> list[dict]:
        """Export rows as individual self-contained JSONL records."""
        return [
            {
                "type": "row",
                "jql": self.jql,
                "generated_at": self.generated_at,
                **row.model_dump(mode="json"),
            }
            for row in self.rows
        ]
