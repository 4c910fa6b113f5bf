"""Configuration, tunables and column mappings for the readiness report.

Tunables are module constants; connection settings come from the
environment via ReportSettings.
"""

from dataclasses import dataclass, field
import os

from .errors import ConfigurationError

# Batch pacing
BATCH_SIZE = 10
INTER_BATCH_DELAY_SECONDS = 0.1
INTER_LINK_DELAY_SECONDS = 0.2

# HTTP
REQUEST_TIMEOUT_SECONDS = 10.0
SEARCH_TIMEOUT_SECONDS = 30.0
MAX_RETRIES = 3
SEARCH_MAX_RESULTS = 100

# Page summaries
SUMMARY_STAGGER_SECONDS = 0.1
MAX_SUMMARY_CHARS = 500

DEFAULT_JQL = 'filter = "NDB-StatusUpdates"'

# Wiki-origin detection (matched case-insensitively against the link URL)
WIKI_HOST_MARKERS = ("confluence",)
WIKI_PATH_MARKERS = ("/wiki/",)
WIKI_APPLICATION_TYPES = frozenset(["com.atlassian.confluence"])

# Titles the wiki or tracker hand back when they know nothing better
PLACEHOLDER_TITLES = frozenset(["page", "no title", "untitled"])

# Classification keywords, keyed by category value
CATEGORY_TITLE_PHRASES: dict[str, str] = {
    "cg": "cg readiness",
    "pg": "pg readiness",
}

CATEGORY_URL_PATTERNS: dict[str, tuple[str, ...]] = {
    "cg": ("cg+readiness", "cg-readiness", "cg+checklist", "cg-checklist"),
    "pg": ("pg+readiness", "pg-readiness", "pg+checklist", "pg-checklist"),
}

LABEL_QUALIFIERS = ("readiness", "checklist", "completion")


@dataclass
class ColumnConfig:
    """A single report column."""

    key: str
    label: str
    type: str  # text, badge, link, list, confluence
    jira_field: str


REPORT_COLUMNS: list[ColumnConfig] = [
    ColumnConfig("key", "Key", "link", "key"),
    ColumnConfig("summary", "Summary", "text", "summary"),
    ColumnConfig("status", "Status", "badge", "status.name"),
    ColumnConfig("fixVersions", "Fix Version", "list", "fixVersions"),
    ColumnConfig("labels", "Labels", "list", "labels"),
    ColumnConfig("cg", "CG Completion", "confluence", "cg"),
    ColumnConfig("pg", "PG Completion", "confluence", "pg"),
]


def clean_token(token: str | None) -> str | None:
    """Strip surrounding whitespace and embedded newlines from a token."""
    if token is None:
        return None
    cleaned = token.strip().replace("\r", "").replace("\n", "")
    return cleaned or None


@dataclass
class ReportSettings:
    """Connection settings for the tracker and the wiki."""

    jira_base_url: str = ""
    jira_token: str | None = None
    jira_username: str | None = None
    wiki_base_url: str | None = None
    wiki_token: str | None = None
    wiki_email: str | None = None
    jql: str = DEFAULT_JQL
    extra_fields: list[str] = field(default_factory=list)

    @classmethod
    def from_env(cls) -> "ReportSettings":
        """Build settings from environment variables.

        The wiki token falls back to the Jira token; most deployments
        share one personal access token across both services.
        """
        jira_token = clean_token(os.getenv("JIRA_API_TOKEN"))
        wiki_token = clean_token(os.getenv("CONFLUENCE_API_TOKEN")) or jira_token
        wiki_base_url = os.getenv("CONFLUENCE_BASE_URL") or None

        return cls(
            jira_base_url=os.getenv("JIRA_BASE_URL", "").rstrip("/"),
            jira_token=jira_token,
            jira_username=os.getenv("JIRA_USERNAME") or None,
            wiki_base_url=wiki_base_url.rstrip("/") if wiki_base_url else None,
            wiki_token=wiki_token,
            wiki_email=os.getenv("CONFLUENCE_EMAIL") or None,
            jql=os.getenv("JIRA_JQL") or DEFAULT_JQL,
        )

    def validate(self) -> None:
        """Raise ConfigurationError if the tracker cannot be reached."""
        if not self.jira_base_url:
            raise ConfigurationError("JIRA_BASE_URL is required")
        if not self.jira_token:
            raise ConfigurationError("JIRA_API_TOKEN is required")

    @property
    def search_fields(self) -> list[str]:
        """Jira fields requested by the work-item search."""
        fields = [
            col.jira_field
            for col in REPORT_COLUMNS
            if col.type != "confluence" and col.jira_field != "key"
        ]
        # Dotted paths are resolved locally; Jira only wants the top-level name
        top_level = [f.split(".")[0] for f in fields + self.extra_fields]
        return list(dict.fromkeys(top_level))
