#!/usr/bin/env python3
"""
Create the database tables and check the connection.
This script is meant to be run directly, before the first server start.
"""
import asyncio
import logging
import sys
from dotenv import load_dotenv
from sqlalchemy import text

# Load environment variables before importing backoffice
load_dotenv()

from backoffice.base_microservice import Settings, create_engine, create_tables
from backoffice.auth.models import User  # noqa: F401
from backoffice.database.models import Service  # noqa: F401
from backoffice.errors import ConfigError

logger = logging.getLogger("backoffice.db_setup")


async def setup_database(database_url: str):
    """Create missing tables and run a trivial query."""
    engine = create_engine(database_url)
    try:
        await create_tables(engine)
        logger.info("users and services tables created or already exist")

        async with engine.connect() as conn:
            result = await conn.execute(text("SELECT COUNT(*) FROM users"))
            logger.info(f"users table holds {result.scalar()} rows")
    finally:
        await engine.dispose()


def main():
    try:
        settings = Settings.from_env()
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        return 1
    if settings.database_url.startswith("memory://"):
        logger.info("memory:// store needs no setup")
        return 0
    try:
        asyncio.run(setup_database(settings.database_url))
    except Exception as e:
        logger.error(f"Database setup failed: {e}")
        return 1
    logger.info("Database setup complete")
    return 0


if __name__ == "__main__":
    sys.exit(main())
