#!/usr/bin/env python3
"""
Show how full each section of the AI teacher's notes is.

Usage:
    python scripts/memory_report.py [options]

Examples:
    # Report on the configured memory file
    python scripts/memory_report.py

    # Report on another file and print the sections too
    python scripts/memory_report.py --memory-file backups/ai-memory.md --show-content
"""
import argparse
import asyncio
import sys
from pathlib import Path

from rich.panel import Panel
from rich.table import Table

from techdeck.core.config import settings
from techdeck.core.logging import console, setup_logging
from techdeck.models.memory import MemorySection, SectionBudgets
from techdeck.utils.memory_manager import MemoryStore, PLACEHOLDERS, section_usage


def parse_arguments() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="AI memory usage report",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--memory-file", "-m",
        type=Path,
        default=Path(settings.MEMORY_FILE_PATH),
        help=f"Path to the memory document (default: {settings.MEMORY_FILE_PATH})"
    )

    parser.add_argument(
        "--show-content",
        action="store_true",
        help="Print each section's text below the table"
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Logging level (default: WARNING)"
    )

    return parser.parse_args()


def usage_style(used: int, budget: int) -> str:
    ratio = used / budget if budget else 0
    if ratio > 1:
        return "bold red"
    if ratio >= 0.8:
        return "yellow"
    return "green"


async def main() -> int:
    """Main entry point."""
    args = parse_arguments()
    setup_logging(args.log_level)

    if not args.memory_file.exists():
        console.print(f"❌ Memory file not found: {args.memory_file}", style="bold red")
        return 1

    budgets = SectionBudgets(
        snapshot=settings.MEMORY_SNAPSHOT_BUDGET,
        recent_activity=settings.MEMORY_RECENT_ACTIVITY_BUDGET,
        history=settings.MEMORY_HISTORY_BUDGET
    )
    document = await MemoryStore(args.memory_file, budgets=budgets).read()

    console.print("📊 AI Memory Report", style="bold blue", justify="center")
    console.print("=" * 50, style="blue")
    console.print(document.header)

    table = Table(title="Section Usage")
    table.add_column("Section", style="cyan", no_wrap=True)
    table.add_column("Used", justify="right")
    table.add_column("Budget", justify="right")
    table.add_column("Usage", justify="right")
    table.add_column("State")

    for section, (used, budget) in section_usage(document, budgets).items():
        state = "placeholder" if document.get(section) == PLACEHOLDERS[section] else "content"
        table.add_row(
            section.heading.lstrip("# "),
            str(used),
            str(budget),
            f"[{usage_style(used, budget)}]{used / budget * 100:.0f}%[/]",
            state
        )

    console.print(table)

    if args.show_content:
        for section in MemorySection:
            console.print(Panel(document.get(section) or "(empty)", title=section.heading.lstrip("# ")))

    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
