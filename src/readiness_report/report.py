"""Report assembly and output.

Joins work items with their enrichment results into report rows and
writes them as JSON, JSONL or a Markdown table.
"""

import json
from pathlib import Path
from typing import Any

import httpx
from rich.console import Console
from rich.markup import escape

from .auth import Credential
from .classifier import LinkClassifier
from .config import REPORT_COLUMNS, ColumnConfig, ReportSettings
from .enricher import BatchEnricher
from .jira import JiraClient
from .models import (
    Category,
    CategoryLink,
    EnrichmentResult,
    ReadinessReport,
    ReportRow,
    WorkItem,
)

console = Console()

NO_LINK = "No link"


def get_field_value(item: WorkItem, jira_field: str) -> Any:
    """Look up a (possibly dotted) field path such as `status.name`."""
    if jira_field == "key":
        return item.key
    value: Any = item.fields
    for part in jira_field.split("."):
        if isinstance(value, dict):
            value = value.get(part)
        else:
            return None
    return value


def _object_name(value: Any) -> str:
    if isinstance(value, dict):
        for key in ("name", "displayName", "value"):
            if value.get(key):
                return str(value[key])
        return ""
    return str(value)


def format_field_value(value: Any, column_type: str) -> str:
    """Format a raw Jira value for display in a column of the given type."""
    if value is None:
        return "Unknown" if column_type == "badge" else ""
    if isinstance(value, list):
        return ", ".join(name for name in (_object_name(v) for v in value) if name)
    return _object_name(value)


class ReportAssembler:
    """Builds report rows from work items and their enrichment results."""

    def __init__(
        self, browse_base_url: str, columns: list[ColumnConfig] | None = None
    ) -> None:
        self.browse_base_url = browse_base_url.rstrip("/")
        self.columns = columns or REPORT_COLUMNS

    def build_row(self, item: WorkItem, result: EnrichmentResult | None) -> ReportRow:
        """Format one work item, attaching its readiness links."""
        result = result or EnrichmentResult.empty(item.key)
        values: dict[str, str] = {}
        links: dict[str, list[CategoryLink] | None] = {}

        for column in self.columns:
            if column.type == "confluence":
                category_links = result.links_for(Category(column.jira_field))
                links[column.key] = category_links
                values[column.key] = (
                    ", ".join(link.url for link in category_links)
                    if category_links
                    else NO_LINK
                )
            else:
                values[column.key] = format_field_value(
                    get_field_value(item, column.jira_field), column.type
                )

        return ReportRow(
            key=item.key,
            url=f"{self.browse_base_url}/browse/{item.key}",
            values=values,
            links=links,
        )

    def assemble(
        self,
        work_items: list[WorkItem],
        results: dict[str, EnrichmentResult],
        jql: str | None = None,
    ) -> ReadinessReport:
        """Build the full report, preserving work item order."""
        rows = [self.build_row(item, results.get(item.key)) for item in work_items]
        return ReadinessReport(jql=jql, rows=rows)


def save_json(report: ReadinessReport, path: Path) -> None:
    """Save the report as a single JSON file."""
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w", encoding="utf-8") as f:
        json.dump(report.model_dump(mode="json"), f, indent=2)

    console.print(f"[green]Saved JSON to: {path}[/]")


def save_jsonl(report: ReadinessReport, path: Path) -> None:
    """Save the report as JSONL (one record per row)."""
    path.parent.mkdir(parents=True, exist_ok=True)

    records = report.to_jsonl_rows()

    with open(path, "w", encoding="utf-8") as f:
        for record in records:
            json.dump(record, f, default=str)
            f.write("\n")

    console.print(f"[green]Saved JSONL to: {path} ({len(records)} records)[/]")


def _markdown_cell(text: str) -> str:
    return text.replace("|", "\\|").replace("\n", " ")


def render_links(links: list[CategoryLink] | None) -> str:
    """Render readiness links as `[title](url)` joined by ' | '."""
    if not links:
        return NO_LINK
    return " \\| ".join(
        f"[{_markdown_cell(link.title)}]({link.url})" for link in links
    )


def render_markdown(
    report: ReadinessReport, columns: list[ColumnConfig] | None = None
) -> str:
    """Render the report as a Markdown table."""
    columns = columns or REPORT_COLUMNS
    lines = [
        "# Readiness Report",
        "",
        f"*Generated on {report.generated_at.strftime('%Y-%m-%d %H:%M UTC')}*",
    ]
    if report.jql:
        lines.append(f"*JQL: `{report.jql}`*")
    lines.extend([
        "",
        f"- Work items: {report.total_rows}",
        f"- With CG links: {report.rows_with_cg}",
        f"- With PG links: {report.rows_with_pg}",
        "",
        "| " + " | ".join(col.label for col in columns) + " |",
        "|" + "---|" * len(columns),
    ])

    for row in report.rows:
        cells = []
        for column in columns:
            if column.key == "key":
                cells.append(f"[{row.key}]({row.url})")
            elif column.type == "confluence":
                cells.append(render_links(row.links.get(column.key)))
            else:
                cells.append(_markdown_cell(row.values.get(column.key, "")))
        lines.append("| " + " | ".join(cells) + " |")

    return "\n".join(lines) + "\n"


def save_markdown(report: ReadinessReport, path: Path) -> None:
    """Save the report as a Markdown table."""
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w", encoding="utf-8") as f:
        f.write(render_markdown(report))

    console.print(f"[green]Saved Markdown to: {path}[/]")


async def run_report(
    settings: ReportSettings,
    output_dir: Path = Path("output"),
    formats: list[str] | None = None,
    jql: str | None = None,
    enricher_options: dict[str, Any] | None = None,
    use_labels: bool = False,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ReadinessReport:
    """Search work items, enrich them and save the report.

    Args:
        settings: Connection settings (validated here).
        output_dir: Directory for output files
        formats: List of output formats ("json", "jsonl", "markdown")
        jql: Query overriding `settings.jql`
        enricher_options: Extra BatchEnricher keyword arguments
        use_labels: Let page labels count as classification evidence
        transport: Optional httpx transport (used by tests)

    Returns:
        The assembled report
    """
    settings.validate()
    if formats is None:
        formats = ["json", "jsonl"]
    query = jql or settings.jql

    jira_credential = Credential(settings.jira_token, settings.jira_username)
    wiki_credential = Credential(
        settings.wiki_token or settings.jira_token, settings.wiki_email
    )

    console.print("[bold blue]Building readiness report[/]")
    console.print(f"JQL: {escape(query)}")

    jira = JiraClient(settings.jira_base_url)
    async with httpx.AsyncClient(follow_redirects=True, transport=transport) as client:
        work_items = await jira.search_work_items(
            client, query, settings.search_fields, jira_credential
        )

    options = {"show_progress": True, **(enricher_options or {})}
    enricher = BatchEnricher(
        settings.jira_base_url,
        wiki_base_url=settings.wiki_base_url,
        classifier=LinkClassifier(use_labels=use_labels),
        transport=transport,
        **options,
    )
    results = await enricher.enrich(work_items, jira_credential, wiki_credential)

    report = ReportAssembler(settings.jira_base_url).assemble(
        work_items, results, jql=query
    )

    console.print("\n[bold green]✓ Report complete![/]")
    console.print(f"  Work items: {report.total_rows}")
    console.print(f"  With CG links: {report.rows_with_cg}")
    console.print(f"  With PG links: {report.rows_with_pg}")

    output_dir.mkdir(parents=True, exist_ok=True)

    if "json" in formats:
        save_json(report, output_dir / "readiness_report.json")

    if "jsonl" in formats:
        save_jsonl(report, output_dir / "readiness_report.jsonl")

    if "markdown" in formats:
        save_markdown(report, output_dir / "readiness_report.md")

    return report
