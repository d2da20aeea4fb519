#!/usr/bin/env python3
"""
Reset the AI teacher's notes (and optionally stored records).

This is the only tool that deletes the memory document; the pipeline
itself only ever rewrites it.

Usage:
    python scripts/reset_memory.py [options]

Examples:
    # Delete the memory file after confirmation
    python scripts/reset_memory.py

    # Also delete stored challenges, feedback and letters, no prompt
    python scripts/reset_memory.py --records --yes

    # Replace the memory file with a fresh skeleton
    python scripts/reset_memory.py --reinitialize
"""
import argparse
import asyncio
import shutil
import sys
from pathlib import Path
from typing import List

from rich.prompt import Confirm

from techdeck.core.config import settings
from techdeck.core.logging import console, setup_logging
from techdeck.crud.records import RECORD_DIRS
from techdeck.utils.memory_manager import MemoryStore


def parse_arguments() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Reset TechDeck Academy progress",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--memory-file", "-m",
        type=Path,
        default=Path(settings.MEMORY_FILE_PATH),
        help=f"Path to the memory document (default: {settings.MEMORY_FILE_PATH})"
    )

    parser.add_argument(
        "--data-dir",
        type=Path,
        default=Path(settings.DATA_DIR),
        help=f"Record storage directory (default: {settings.DATA_DIR})"
    )

    parser.add_argument(
        "--records",
        action="store_true",
        help="Also delete stored challenges, feedback and letter responses"
    )

    parser.add_argument(
        "--reinitialize",
        action="store_true",
        help="Write a fresh default memory document after deleting"
    )

    parser.add_argument(
        "--yes", "-y",
        action="store_true",
        help="Do not ask for confirmation"
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level (default: INFO)"
    )

    return parser.parse_args()


def items_to_delete(args: argparse.Namespace) -> List[Path]:
    items = [args.memory_file]
    if args.records:
        items += [args.data_dir / directory for directory in RECORD_DIRS.values()]
    return items


def delete_item(path: Path) -> None:
    if path.is_dir():
        shutil.rmtree(path)
        console.print(f"🗑️  Deleted directory: {path}")
    elif path.exists():
        path.unlink()
        console.print(f"🗑️  Deleted file:      {path}")


async def main() -> int:
    """Main entry point."""
    args = parse_arguments()
    setup_logging(args.log_level)

    items = items_to_delete(args)
    console.print("\n⚠️  This will delete the following items:", style="bold yellow")
    for item in items:
        console.print(f"   - {item}")
    console.print("   This action cannot be undone!", style="yellow")

    if settings.is_production:
        console.print("   ENVIRONMENT is production, confirmation is always required.", style="bold red")

    if (settings.is_production or not args.yes) and not Confirm.ask("\nAre you sure you want to continue?", console=console):
        console.print("Reset cancelled.", style="blue")
        return 0

    try:
        for item in items:
            delete_item(item)
    except OSError as e:
        console.print(f"\n❌ Reset failed, some items may not have been deleted: {e}", style="bold red")
        return 1

    if args.reinitialize:
        await MemoryStore(args.memory_file).read_raw()
        console.print(f"📝 Wrote fresh memory document: {args.memory_file}", style="green")

    console.print("\n🎉 Reset complete.", style="bold green")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
