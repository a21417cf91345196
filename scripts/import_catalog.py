"""Load catalog items from a JSON file into the database.

The file holds a list of objects with ``title``, ``link``, ``category``,
``subcategory`` and optional ``attachments``. Items already present with the
same title, category and subcategory are skipped, so the import can be re-run.

    python scripts/import_catalog.py catalog.json
"""

import argparse
import asyncio
import json
import logging
from collections import Counter
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import ValidationError
from sqlalchemy import select

from preptrack.config import get_settings
from preptrack.db import base
from preptrack.log import configure_logging
from preptrack.models import Category, Item
from preptrack.schemas.items import ItemCreate

logger = logging.getLogger("preptrack.import_catalog")


def load_records(path: Path) -> List[ItemCreate]:
    """Parse and validate every record, reporting all bad entries at once."""
    raw = json.loads(path.read_text())
    if not isinstance(raw, list):
        raise ValueError(f"{path} must contain a JSON list of items")

    records: List[ItemCreate] = []
    errors: List[str] = []
    for index, entry in enumerate(raw):
        try:
            records.append(ItemCreate.model_validate(entry))
        except ValidationError as exc:
            errors.append(f"item {index}: {exc.errors()[0]['msg']}")
    if errors:
        raise ValueError("invalid catalog entries:\n  " + "\n  ".join(errors))
    return records


async def import_catalog(path: Path, session_factory=None) -> Dict[Category, int]:
    """Insert new items from ``path``; returns how many were added per category."""
    if session_factory is None:
        if base.engine is None:
            await base.init_db()
        session_factory = base.AsyncSessionLocal

    records = load_records(path)
    added: Counter = Counter()

    async with session_factory() as session:
        result = await session.execute(
            select(Item.title, Item.category, Item.subcategory)
        )
        existing = {tuple(row) for row in result.all()}

        for record in records:
            key = (record.title.strip(), record.category, record.subcategory.strip())
            if key in existing:
                logger.debug("Skipping existing item %r", record.title)
                continue
            session.add(
                Item(
                    title=key[0],
                    link=record.link.strip(),
                    category=record.category,
                    subcategory=key[2],
                    attachments=record.attachments,
                )
            )
            existing.add(key)
            added[record.category] += 1

        await session.commit()

    logger.info(
        "Imported %s of %s items from %s", sum(added.values()), len(records), path
    )
    return dict(added)


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for catalog import."""
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("path", type=Path, help="JSON file with catalog items")
    args = parser.parse_args(argv)

    configure_logging(get_settings())
    added = asyncio.run(import_catalog(args.path))
    for category in Category:
        logger.info("%-14s +%s", category.value, added.get(category, 0))


if __name__ == "__main__":
    main()
