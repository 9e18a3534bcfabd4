#!/usr/bin/env python3
"""
Script to give a player the admin role.

Usage:
    python scripts/promote_admin.py --player-id 1
    python scripts/promote_admin.py --email jane@example.com
"""

import asyncio
import sys
import argparse
from pathlib import Path

# Add the project root to the path so we can import teamhub modules
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from teamhub.database.db import AsyncSessionLocal
from teamhub.services import player_service


async def promote(player_id: int = None, email: str = None):
    """Promote a player, looked up by id or email, to admin."""
    async with AsyncSessionLocal() as session:
        if player_id is None:
            player = await player_service.get_player_by_email(session, email)
            if not player:
                print(f"❌ No player with email {email}")
                return None
            player_id = player["id"]

        promoted = await player_service.promote_to_admin(session, player_id)
        if not promoted:
            print(f"❌ Player {player_id} not found")
            return None
        print(f"✅ Player {promoted['id']} ({promoted['email']}) is now {promoted['role']}")
        return promoted


async def main():
    parser = argparse.ArgumentParser(description="Give a player the admin role")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--player-id", type=int, help="Player ID to promote")
    group.add_argument("--email", type=str, help="Email of the player to promote")

    args = parser.parse_args()

    promoted = await promote(player_id=args.player_id, email=args.email)
    if promoted is None:
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
