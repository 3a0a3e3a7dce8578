#!/usr/bin/env python3
"""
Verify the test database configuration.

Tests default to a throwaway SQLite file. Setting TEST_DATABASE_URL runs them
against PostgreSQL instead, and that database is wiped on every test.
"""

import os
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


def main() -> int:
    """Check test database configuration."""
    from dotenv import load_dotenv

    load_dotenv()

    prod_db = os.getenv("DATABASE_URL")
    test_db = os.getenv("TEST_DATABASE_URL")

    print("Test database configuration")
    print(f"   Application DB: {prod_db}")
    print(f"   Test DB:        {test_db or 'sqlite (default)'}")
    print()

    if not test_db:
        print("✅ Tests will use a temporary SQLite database.")
        return 0

    if prod_db and test_db == prod_db:
        print("❌ CRITICAL: TEST_DATABASE_URL equals DATABASE_URL.")
        print("   Tests drop every table; point TEST_DATABASE_URL at a separate database.")
        return 1

    if "test" not in test_db.lower():
        print("⚠️  TEST_DATABASE_URL does not contain 'test'; double-check it is disposable.")

    if test_db.startswith("postgresql://"):
        print("ℹ️  The asyncpg driver is selected automatically for postgresql:// URLs.")

    print("✅ Test database configuration looks good!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
