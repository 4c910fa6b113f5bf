"""Command-line interface for the readiness report."""

import argparse
import asyncio
from pathlib import Path

from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape

from .config import (
    BATCH_SIZE,
    INTER_BATCH_DELAY_SECONDS,
    INTER_LINK_DELAY_SECONDS,
    ReportSettings,
)
from .errors import ConfigurationError, TrackerError
from .report import run_report

console = Console()


def positive_int(value: str) -> int:
    """argparse type for counts that must be at least 1."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"{value!r} is not an integer") from None
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        description="Build a Jira status report with CG/PG readiness links",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment (or .env file):
  JIRA_BASE_URL, JIRA_API_TOKEN, JIRA_USERNAME, JIRA_JQL
  CONFLUENCE_BASE_URL, CONFLUENCE_API_TOKEN, CONFLUENCE_EMAIL

Examples:
  # Default filter, JSON and JSONL output
  readiness-report

  # Custom query with a Markdown table
  readiness-report --jql "fixVersion = NDB-2.10" --format markdown

  # Count page labels as readiness evidence
  readiness-report --use-labels
        """,
    )

    parser.add_argument(
        "--jql",
        default=None,
        help="JQL query (default: JIRA_JQL or the status-updates filter)",
    )

    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path("output"),
        help="Output directory for report files (default: ./output)",
    )

    parser.add_argument(
        "-f",
        "--format",
        action="append",
        choices=["json", "jsonl", "markdown"],
        dest="formats",
        help="Output format(s). Can be specified multiple times. Default: json, jsonl",
    )

    parser.add_argument(
        "--batch-size",
        type=positive_int,
        default=BATCH_SIZE,
        help=f"Work items fetched concurrently per batch (default: {BATCH_SIZE})",
    )

    parser.add_argument(
        "--batch-delay",
        type=float,
        default=INTER_BATCH_DELAY_SECONDS,
        help=(
            "Delay between batches in seconds "
            f"(default: {INTER_BATCH_DELAY_SECONDS})"
        ),
    )

    parser.add_argument(
        "--link-delay",
        type=float,
        default=INTER_LINK_DELAY_SECONDS,
        help=(
            "Delay between wiki page lookups in seconds "
            f"(default: {INTER_LINK_DELAY_SECONDS})"
        ),
    )

    parser.add_argument(
        "--use-labels",
        action="store_true",
        help="Also classify pages by their wiki labels",
    )

    return parser


def main() -> None:
    """Run the readiness report CLI."""
    load_dotenv()
    args = build_parser().parse_args()

    # Default formats if none specified
    formats = args.formats or ["json", "jsonl"]

    console.print("[bold]Jira Readiness Report[/]")
    console.print(f"Output directory: {args.output}")
    console.print(f"Formats: {', '.join(formats)}")

    try:
        settings = ReportSettings.from_env()
        asyncio.run(
            run_report(
                settings,
                output_dir=args.output,
                formats=formats,
                jql=args.jql,
                enricher_options={
                    "batch_size": args.batch_size,
                    "batch_delay": args.batch_delay,
                    "link_delay": args.link_delay,
                },
                use_labels=args.use_labels,
            )
        )
    except KeyboardInterrupt:
        console.print("\n[yellow]Report interrupted by user[/]")
        raise SystemExit(1) from None
    except ConfigurationError as e:
        console.print(f"\n[red]Configuration error: {escape(str(e))}[/]")
        raise SystemExit(1) from None
    except TrackerError as e:
        console.print(f"\n[red]Jira error: {escape(str(e))}[/]")
        raise SystemExit(1) from None


if __name__ == "__main__":
    main()
