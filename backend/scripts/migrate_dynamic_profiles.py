#!/usr/bin/env python3
"""
Migrate existing teacher profiles to the dynamic profile format.

This script:
1. Creates the default dynamic configuration if it doesn't exist
2. Projects each legacy teacher profile into dynamic section data
3. Gives each migrated teacher the default section layout

Existing legacy columns are left untouched. Already migrated teachers are
skipped, so the script can be re-run safely.

Usage:
    python scripts/migrate_dynamic_profiles.py
    python scripts/migrate_dynamic_profiles.py --key demo
"""

import asyncio
import sys
import argparse
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))


async def migrate(key: str) -> int:
    from app.core.database import AsyncSessionLocal, close_db, init_db
    from app.services.dynamic_profile_service import DynamicProfileService

    print("=" * 50)
    print("  TutorHub - Dynamic Profile Migration")
    print("=" * 50)

    try:
        await init_db()
        async with AsyncSessionLocal() as session:
            migrated, failed = await DynamicProfileService(session, config_key=key).migrate_legacy_profiles()
            await session.commit()
    finally:
        await close_db()

    print("\n[Migrate] Summary:")
    print(f"[Migrate] Successfully migrated: {migrated} profiles")
    print(f"[Migrate] Failed migrations: {failed} profiles")
    print(f"[Migrate] Total processed: {migrated + failed} profiles")

    if failed:
        print("\n[Migrate] Completed with errors, check the logs above.")
        return 1

    print("\n[Migrate] Migration completed successfully!")
    return 0


def main():
    from app.core.config import settings

    parser = argparse.ArgumentParser(description="Migrate teacher profiles to dynamic profiles")
    parser.add_argument("--key", default=settings.DEFAULT_CONFIG_KEY, help="Configuration key to migrate against")
    args = parser.parse_args()

    sys.exit(asyncio.run(migrate(args.key)))


if __name__ == "__main__":
    main()
