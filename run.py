#!/usr/bin/env python3
"""
Quick-run script for the Jira Readiness Report.

Usage:
    python run.py

    # Or with UV:
    uv run python run.py
"""

import asyncio
from pathlib import Path

# Add src to path for development
import sys
sys.path.insert(0, str(Path(__file__).parent / "src"))

from dotenv import load_dotenv

from readiness_report import ReportSettings, run_report


async def main():
    """Run the report with settings from the environment."""
    load_dotenv()
    report = await run_report(
        ReportSettings.from_env(),
        output_dir=Path("output"),
        formats=["json", "jsonl", "markdown"],
    )

    print(f"\n{'=' * 60}")
    print("REPORT SUMMARY")
    print(f"{'=' * 60}")
    print(f"JQL: {report.jql}")
    print(f"Work items: {report.total_rows}")
    print(f"With CG links: {report.rows_with_cg}")
    print(f"With PG links: {report.rows_with_pg}")
    print(f"\nOutput files saved to: ./output/")


if __name__ == "__main__":
    asyncio.run(main())
