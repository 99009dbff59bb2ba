#!/usr/bin/env python3
"""
Database Reset Script
Clears the database and stores a fresh pool built from the current settings
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from shielded_pool.config import configure_logging, get_settings
from shielded_pool.core.state import initialize
from shielded_pool.storage.database import DatabaseManager


def reset_database():
    """Reset database and create an empty pool"""
    settings = get_settings()
    configure_logging()

    print("🔄 Resetting database...")
    print(f"  Database: {settings.database_url}")

    manager = DatabaseManager(settings.database_url)

    # Drop all tables
    print("  ⚠️  Dropping all tables...")
    manager.drop_tables()

    # Create all tables
    print("  ✨ Creating tables...")
    manager.create_tables()

    print("  🌳 Initializing pool...")
    state = initialize(
        height=settings.tree_height,
        deposit_limit=settings.deposit_limit,
        asset_reference=settings.asset_reference,
        admin_identity=settings.admin_identity,
        pool_identity=settings.pool_identity,
        zero_value=settings.zero_value,
    )

    session = manager.get_session()
    try:
        pool_id = manager.save_pool(session, state)
    finally:
        session.close()

    print("\n✅ Database reset complete!")
    print(f"\n📋 Pool {pool_id}:")
    print(f"   • asset: {settings.asset_reference}")
    print(f"   • tree height: {settings.tree_height} ({2 ** settings.tree_height} leaves)")
    print(f"   • deposit limit: {settings.deposit_limit}")
    print(f"   • admin: {settings.admin_identity}")


if __name__ == "__main__":
    try:
        reset_database()
    except KeyboardInterrupt:
        print("\n\n⚠️  Operation cancelled by user")
        sys.exit(1)
    except Exception as e:
        print(f"\n❌ Fatal error: {e}")
        sys.exit(1)
