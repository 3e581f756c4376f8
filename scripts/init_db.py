"""
Create the account tables (optionally dropping them first).

Usage:
    python scripts/init_db.py [--drop]
"""
import argparse
import asyncio

from studyai.app.db import models  # noqa: F401 - import to register models
from studyai.app.db.async_session import close_async_engine
from studyai.app.db.init_db import init_database, verify_connection


async def run(drop_first: bool) -> int:
    if not await verify_connection():
        print("❌ Cannot connect to database")
        return 1
    await init_database(drop_first=drop_first)
    await close_async_engine()
    print("✅ Tables ready")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Initialize the account tables")
    parser.add_argument("--drop", action="store_true", help="Drop existing tables first (destroys data)")
    raise SystemExit(asyncio.run(run(parser.parse_args().drop)))
