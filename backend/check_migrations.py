#!/usr/bin/env python3
"""Quick script to check if practice scheduling tables exist in the database"""

import sys

from sqlalchemy import inspect

from app.database import engine

REQUIRED_TABLES = ["members", "bands", "band_members", "members_prefer", "practice_session"]


def check_tables():
    """Check if required practice scheduling tables exist"""
    inspector = inspect(engine)
    existing_tables = inspector.get_table_names()

    print("Checking for required practice scheduling tables...")
    print(f"Database: {engine.url}")
    print()

    missing_tables = []
    for table in REQUIRED_TABLES:
        if table in existing_tables:
            print(f"✓ {table} exists")
        else:
            print(f"✗ {table} MISSING")
            missing_tables.append(table)

    print()
    if missing_tables:
        print("ERROR: Missing tables detected!")
        print("Run migrations with: alembic upgrade head")
        return False
    print("All required tables exist!")
    return True


if __name__ == "__main__":
    try:
        success = check_tables()
    except Exception as e:
        print(f"Error checking tables: {e}")
        raise
    sys.exit(0 if success else 1)
