"""Import a JSON list of ``{id, name}`` channels as review candidates."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path

from curator.db.collections import Channel, ImportSource
from curator.db.init_db import init_models
from curator.db.session import engine, session_scope
from curator.services.channel_registry import ImportResult, backfill_registry, import_channels

logger = logging.getLogger(__name__)


def load_channels(path: Path) -> list[Channel]:
    raw = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(raw, list):
        raise ValueError(f"{path} must contain a JSON list of channels")
    return [Channel(id=item["id"], name=item.get("name") or item["id"]) for item in raw]


async def run_import(path: Path, source: ImportSource = ImportSource.SUBSCRIPTION) -> ImportResult:
    channels = load_channels(path)
    await init_models(engine)
    async with session_scope() as session:
        result = await import_channels(session, channels, source=source)
        backfilled = await backfill_registry(session, source=source)

    logger.info(
        "Import finished",
        extra={"added": len(result.added), "existing": len(result.existing), "backfilled": backfilled},
    )
    print(f"Added {len(result.added)} channels, {len(result.existing)} already imported, {backfilled} backfilled.")
    return result


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)

    if len(sys.argv) not in (2, 3):
        print("Usage: python -m curator.jobs.import_channels <channels.json> [subscription|paste|bookmarks]")
        sys.exit(1)

    source = ImportSource(sys.argv[2]) if len(sys.argv) == 3 else ImportSource.SUBSCRIPTION
    asyncio.run(run_import(Path(sys.argv[1]), source))
