#!/usr/bin/env python3
"""
Database Initialization Script
Create the field_permissions table (and local copies of the collaborator
tables when running against SQLite)
"""

import asyncio
import sys

from fieldperm.db.session import init_db, close_db
from fieldperm.core.logging import setup_logging, get_logger

setup_logging()
logger = get_logger(__name__)


async def main():
    """Main initialization function"""
    logger.info("Initializing database...")

    try:
        await init_db(create_tables=True)
        logger.info("Database initialized successfully!")
        return 0
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        return 1
    finally:
        await close_db()


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
