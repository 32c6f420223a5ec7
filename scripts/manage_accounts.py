#!/usr/bin/env python3
"""
Manage the Instagram accounts authorized for mediadisplay.

Tokens are generated in the Meta app dashboard; this script only
stores, lists and removes them.
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from mediadisplay.core.app_service import MediaService
from mediadisplay.storage.database import close_db, init_db
from mediadisplay.utils.logging import setup_logging


def format_account(account: dict) -> str:
    renews = account["token_renews"].strftime("%Y-%m-%d %H:%M:%S") if account.get("token_renews") else "-"
    return (
        f"📸 {account['username']} (id {account['user_id']})\n"
        f"   Type: {account.get('account_type') or '-'}\n"
        f"   Media: {account.get('media_count', 0)}\n"
        f"   Token renews: {renews}"
    )


async def add_account(service: MediaService, username: str, token: str) -> int:
    if await service.add_account(username, token):
        print(f"✅ Added {username}")
        return 0
    print(f"❌ Could not add {username}, check the token and the log")
    return 1


async def remove_account(service: MediaService, username: str) -> int:
    if await service.remove_account(username):
        print(f"✅ Removed {username}")
        return 0
    print(f"❌ {username} is not an authorized user")
    return 1


async def list_accounts(service: MediaService, refresh: bool) -> int:
    accounts = await service.get_accounts(refresh=refresh)
    if not accounts:
        print("📭 No authorized accounts")
        return 0
    for account in accounts.values():
        print(format_account(account))
        print()
    return 0


async def show_profile(service: MediaService, username: str) -> int:
    profile = await service.get_profile(username or None)
    if not profile:
        print("❌ Could not get profile, see the log")
        return 1
    for key, value in profile.items():
        print(f"   {key}: {value}")
    return 0


async def main() -> int:
    parser = argparse.ArgumentParser(description="Manage mediadisplay accounts")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("init", help="Create or migrate the database")

    add = commands.add_parser("add", help="Authorize an account")
    add.add_argument("username")
    add.add_argument("token")

    remove = commands.add_parser("remove", help="Remove an account")
    remove.add_argument("username")

    listing = commands.add_parser("list", help="List accounts")
    listing.add_argument("--refresh", action="store_true", help="Also fetch each profile")

    profile = commands.add_parser("profile", help="Show a profile")
    profile.add_argument("username", nargs="?", default="")

    args = parser.parse_args()
    setup_logging()

    factory = await init_db()
    if args.command == "init":
        print("✅ Database ready")
        await close_db()
        return 0

    async with MediaService(session_factory=factory) as service:
        if args.command == "add":
            code = await add_account(service, args.username, args.token)
        elif args.command == "remove":
            code = await remove_account(service, args.username)
        elif args.command == "list":
            code = await list_accounts(service, args.refresh)
        else:
            code = await show_profile(service, args.username)

    await close_db()
    return code


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
