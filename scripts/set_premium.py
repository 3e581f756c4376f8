"""
Grant or revoke premium for an account, e.g. after an external checkout completes.

Usage:
    python scripts/set_premium.py <user_id> [--revoke]
"""
import argparse
import asyncio

from studyai.app.db import models  # noqa: F401 - import to register models
from studyai.app.db.async_session import close_async_engine, get_service_session
from studyai.app.db.crud import create_account, get_account, set_premium


async def update_premium(user_id: str, is_premium: bool) -> None:
    async with get_service_session() as session:
        if await get_account(session, user_id) is None:
            await create_account(session, user_id, is_premium=is_premium)
            print(f"{user_id}: created (premium={is_premium})")
        else:
            await set_premium(session, user_id, is_premium)
            print(f"{user_id}: premium={is_premium}")
    await close_async_engine()


def main():
    parser = argparse.ArgumentParser(description="Set the premium flag for an account")
    parser.add_argument("user_id")
    parser.add_argument("--revoke", action="store_true", help="Remove premium instead of granting it")
    args = parser.parse_args()
    asyncio.run(update_premium(args.user_id, not args.revoke))


if __name__ == "__main__":
    main()
