#!/usr/bin/env python3
"""
Database Initialization Script for TutorHub

This script:
1. Tests database connectivity
2. Creates any missing tables
3. Creates the default dynamic configuration document

Run it once per deployment so the first admin or teacher request does not
have to create the configuration lazily.

Usage:
    python scripts/init_db.py              # Full init
    python scripts/init_db.py --check      # Only check connectivity
    python scripts/init_db.py --tables     # Only create tables
    python scripts/init_db.py --key demo   # Seed a non-default configuration key
"""

import asyncio
import sys
import argparse
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy import inspect, text  # noqa: E402
from sqlalchemy.exc import SQLAlchemyError  # noqa: E402


async def test_connection() -> bool:
    """Test database connectivity"""
    print("\n[InitDB] Testing database connection...")

    from app.core.database import get_database_url, get_engine

    db_url = get_database_url()
    print(f"[InitDB] Connecting to: {db_url.split('@')[1] if '@' in db_url else 'database'}")

    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        print(f"[InitDB] ERROR: Database connection failed: {e}")
        return False

    print("[InitDB] Database connection successful!")
    return True


async def create_tables() -> bool:
    """Create database tables using SQLAlchemy"""
    print("\n[InitDB] Creating/verifying database tables...")

    from app.core.database import init_db

    try:
        await init_db()
    except SQLAlchemyError as e:
        print(f"[InitDB] ERROR: Table creation failed: {e}")
        return False

    print("[InitDB] Database tables created/verified!")
    return True


async def seed_config(key: str) -> bool:
    """Create the default configuration document if it is missing"""
    print(f"\n[InitDB] Ensuring configuration '{key}' exists...")

    from app.db.seed_data import seed_all

    try:
        await seed_all(key)
    except SQLAlchemyError as e:
        print(f"[InitDB] ERROR: Seeding configuration failed: {e}")
        return False

    print("[InitDB] Configuration ready!")
    return True


async def show_table_status():
    """Show current table status"""
    print("\n[InitDB] Database Table Status:")
    print("-" * 50)

    from app.core.database import get_engine

    def collect(sync_conn):
        inspector = inspect(sync_conn)
        return {table: len(inspector.get_columns(table)) for table in inspector.get_table_names()}

    async with get_engine().connect() as conn:
        tables = await conn.run_sync(collect)

    print(f"Total tables: {len(tables)}")
    print("\nTables:")
    for table in sorted(tables):
        print(f"  - {table} ({tables[table]} columns)")


async def main():
    """Main initialization function"""
    from app.core.config import settings
    from app.core.database import close_db

    parser = argparse.ArgumentParser(description="TutorHub Database Initialization")
    parser.add_argument("--check", action="store_true", help="Only check connectivity")
    parser.add_argument("--tables", action="store_true", help="Only create tables")
    parser.add_argument("--key", default=settings.DEFAULT_CONFIG_KEY, help="Configuration key to seed")

    args = parser.parse_args()

    print("=" * 50)
    print("  TutorHub - Database Initialization")
    print("=" * 50)

    try:
        # Always test connection first
        if not await test_connection():
            print("\n[InitDB] FAILED: Cannot connect to database")
            return 1

        if args.check:
            print("\n[InitDB] Connection check completed!")
            return 0

        if not await create_tables():
            print("[InitDB] FAILED: Could not create tables")
            return 1

        if not args.tables and not await seed_config(args.key):
            return 1

        await show_table_status()
    finally:
        await close_db()

    print("\n" + "=" * 50)
    print("  Database initialization completed!")
    print("=" * 50)
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
