"""Jira Readiness Report.

Aggregates Jira work items and their linked Confluence pages into a
status report, finding each item's CG and PG readiness checklists.

Usage:
    from readiness_report import BatchEnricher, Credential, WorkItem
    import asyncio

    enricher = BatchEnricher("https://jira.example.com")
    results = asyncio.run(
        enricher.enrich([WorkItem(key="FEAT-1")], Credential("token"))
    )

    # Or the whole pipeline, configured from the environment
    report = asyncio.run(run_report(ReportSettings.from_env()))
"""

from .auth import (
    AuthStrategy,
    BasicAuthStrategy,
    BearerAuthStrategy,
    Credential,
)
from .classifier import LinkClassifier
from .config import ReportSettings
from .enricher import BatchEnricher, enrich
from .errors import (
    AuthenticationError,
    ConfigurationError,
    MalformedResponseError,
    NotFoundError,
    ReadinessReportError,
    TrackerError,
    TransientNetworkError,
)
from .jira import JiraClient
from .models import (
    Category,
    CategoryLink,
    ClassifiedLink,
    EnrichmentResult,
    PageSummary,
    ReadinessReport,
    RemoteLink,
    ReportRow,
    ResolvedPage,
    WorkItem,
)
from .remote_links import RemoteLinkFetcher
from .report import ReportAssembler, run_report
from .wiki import WikiPageResolver

__version__ = "0.1.0"

__all__ = [
    "AuthStrategy",
    "AuthenticationError",
    "BasicAuthStrategy",
    "BatchEnricher",
    "BearerAuthStrategy",
    "Category",
    "CategoryLink",
    "ClassifiedLink",
    "ConfigurationError",
    "Credential",
    "EnrichmentResult",
    "JiraClient",
    "LinkClassifier",
    "MalformedResponseError",
    "NotFoundError",
    "PageSummary",
    "ReadinessReport",
    "ReadinessReportError",
    "RemoteLink",
    "RemoteLinkFetcher",
    "ReportAssembler",
    "ReportRow",
    "ReportSettings",
    "ResolvedPage",
    "TrackerError",
    "TransientNetworkError",
    "WikiPageResolver",
    "WorkItem",
    "enrich",
    "run_report",
]
