"""
Create the submission tables.

Usage:
    python -m dossier.commands.init_db
    python -m dossier.commands.init_db --database-url sqlite+aiosqlite:///./data/dossier.db
"""

import argparse
import asyncio
import logging
import sys

from ..services.database_service import DatabaseService

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger("dossier.commands.init_db")


async def _init(database_url: str = None) -> bool:
    db = DatabaseService(database_url)
    try:
        await db.init_db()
        health = await db.health_check()
    finally:
        await db.close()
    if not health["connected"]:
        logger.error(f"Database not reachable: {health.get('error')}")
        return False
    logger.info(f"Database ready ({health['database_type']})")
    return True


def main() -> int:
    parser = argparse.ArgumentParser(description="Create the intake dossier database tables")
    parser.add_argument("--database-url", help="Override DATABASE_URL")
    args = parser.parse_args()
    return 0 if asyncio.run(_init(args.database_url)) else 1


if __name__ == "__main__":
    sys.exit(main())
