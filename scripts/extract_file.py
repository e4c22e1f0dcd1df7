#!/usr/bin/env python3
"""
Extract knowledge from a local file without uploading it.

Reads the file the same way the upload pipeline does, sends its text to the
configured LLM, and prints the five extracted fields as JSON. Nothing is
written to storage or the database.

Usage:
    # Extract from a text file using the configured gateway
    python scripts/extract_file.py notes.txt

    # Use the canned mock client (no API key needed)
    python scripts/extract_file.py report.pdf --provider mock

    # Extract from inline text
    python scripts/extract_file.py --text "Acme Corp opened an office in Berlin."

    # Show document and knowledge counts
    python scripts/extract_file.py --stats

    # Create tables directly (development databases without migrations)
    python scripts/extract_file.py --init-db

Requirements:
    - LLM_API_KEY configured in .env (for the gateway provider)
    - Database reachable (for --stats and --init-db)
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from sqlalchemy import func, select  # noqa: E402

from src.core.config import settings  # noqa: E402
from src.core.logging import get_logger, setup_logging  # noqa: E402
from src.db import Document, ExtractedKnowledge, get_db_context, init_db  # noqa: E402
from src.services.extraction import extract_from_text  # noqa: E402
from src.services.file_text import file_extension, read_text  # noqa: E402
from src.services.llm_client import LLMError, get_llm_client  # noqa: E402

logger = get_logger(__name__)


async def show_stats() -> dict:
    """Show document counts by status and the number of knowledge rows."""
    async with get_db_context() as db:
        rows = await db.execute(
            select(Document.status, func.count(Document.id)).group_by(Document.status)
        )
        by_status = {status.value: count for status, count in rows.all()}

        knowledge_count = await db.execute(select(func.count(ExtractedKnowledge.id)))
        total_knowledge = knowledge_count.scalar() or 0

    print("\n" + "=" * 50)
    print("DATABASE STATISTICS")
    print("=" * 50)
    for status, count in sorted(by_status.items()):
        print(f"Documents ({status}):".ljust(28) + f"{count:>8}")
    print("Knowledge rows:".ljust(28) + f"{total_knowledge:>8}")
    print("=" * 50 + "\n")

    return {"documents": by_status, "knowledge": total_knowledge}


async def run_extraction(provider: str, text: str, file_type: str) -> int:
    """Extract knowledge from text and print it. Returns an exit code."""
    logger.info("Extracting", provider=provider, file_type=file_type, chars=len(text))
    try:
        result = await extract_from_text(
            text,
            file_type=file_type,
            llm_client=get_llm_client(provider),
        )
    except (LLMError, ValueError) as exc:
        print(f"Extraction failed: {exc}", file=sys.stderr)
        return 1

    print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    return 0


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Extract keywords, entities, insights and relationships from a file",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "path",
        nargs="?",
        type=Path,
        default=None,
        help="File to read (.txt, .csv or .pdf)",
    )

    parser.add_argument(
        "--provider", "-p",
        type=str,
        default=settings.llm_provider,
        choices=["gateway", "mock"],
        help=f"LLM provider to use (default: {settings.llm_provider})",
    )

    parser.add_argument(
        "--text", "-t",
        type=str,
        default=None,
        help="Extract from this text instead of a file",
    )

    parser.add_argument(
        "--stats",
        action="store_true",
        help="Show database statistics only",
    )

    parser.add_argument(
        "--init-db",
        action="store_true",
        help="Create the database tables and exit",
    )

    args = parser.parse_args()
    setup_logging()

    if args.init_db:
        asyncio.run(init_db())
        print("Tables created.")
        return

    if args.stats:
        asyncio.run(show_stats())
        return

    if args.text is not None:
        sys.exit(asyncio.run(run_extraction(args.provider, args.text, "txt")))

    if args.path is None:
        parser.error("a file path or --text is required")
    if not args.path.is_file():
        parser.error(f"file not found: {args.path}")

    try:
        text = read_text(args.path.name, args.path.read_bytes())
    except ValueError as exc:
        parser.error(str(exc))

    sys.exit(asyncio.run(run_extraction(args.provider, text, file_extension(args.path.name))))


if __name__ == "__main__":
    main()
