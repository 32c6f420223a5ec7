#!/usr/bin/env python3
"""
Print a user's recent Instagram media.
"""

import argparse
import asyncio
import sys
from datetime import datetime
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from mediadisplay.core.app_service import MediaService
from mediadisplay.models.data_models import OUTPUT_JSON, RetrievalOptions
from mediadisplay.storage.database import close_db, init_db
from mediadisplay.utils.logging import setup_logging

TYPE_EMOJI = {
    "IMAGE": "🖼️",
    "VIDEO": "🎬",
    "CAROUSEL_ALBUM": "🗂️",
}


def format_created(created) -> str:
    if not created:
        return "-"
    return datetime.fromtimestamp(created).strftime("%Y-%m-%d %H:%M")


async def main() -> int:
    parser = argparse.ArgumentParser(description="View recent media")
    parser.add_argument("username", nargs="?", default=None)
    parser.add_argument("--count", type=int, default=0)
    parser.add_argument("--type", default="", help="image, video or carousel_album")
    parser.add_argument("--tag", default="")
    parser.add_argument("--json", action="store_true", help="Print JSON instead")
    args = parser.parse_args()

    setup_logging()
    factory = await init_db()

    options = RetrievalOptions(count=args.count, type=args.type, tag=args.tag)
    if args.json:
        options.output = OUTPUT_JSON

    async with MediaService(session_factory=factory) as service:
        media = await service.get_media(args.username, options)

    await close_db()

    if args.json:
        print(media)
        return 0

    if not media:
        print("📭 No media found")
        return 0

    print(f"\n📊 {len(media)} item(s)\n")
    print("=" * 80)
    for item in media:
        print(f"{TYPE_EMOJI.get(item.type, '📦')} {item.type} {item.id} ({format_created(item.created)})")
        print(f"   Link: {item.link}")
        if item.tags:
            print(f"   Tags: {', '.join('#' + tag for tag in item.tags)}")
        if item.children:
            print(f"   Children: {len(item.children)}")
        print()
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
