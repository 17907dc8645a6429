"""
Run one freeze sweep pass outside the server, e.g. from cron.

Usage:
    python -m scripts.sweep_frozen [--after ORGANIZATION_ID] [--batch-size N]

Exits non-zero when the pass was interrupted; rerun with the printed cursor.
"""
import argparse
import asyncio
import sys

from app.core.database.engine import AsyncSessionLocal, init_db
from app.features.seats.sweep import sweep_frozen_flags
from app.utils import get_logger


log = get_logger(__name__)


async def main(after=None, batch_size=100) -> int:
    await init_db()
    result = await sweep_frozen_flags(AsyncSessionLocal, after=after, batch_size=batch_size)
    if not result.completed:
        log.error(f"Sweep interrupted; resume with --after {result.cursor}")
        return 1
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Recompute organization freeze flags")
    parser.add_argument("--after", help="Resume after this organization id")
    parser.add_argument("--batch-size", type=int, default=100)
    args = parser.parse_args()
    sys.exit(asyncio.run(main(args.after, args.batch_size)))
