#!/usr/bin/env python3
"""
Create the GymFlow tables in Snowflake.

Each table keeps the columns the API filters and sorts on, plus the full
record as a VARIANT document.

Usage:
    python scripts/create_tables.py
    python scripts/create_tables.py --dry-run

Requires:
    - .env file with Snowflake credentials
"""

import sys
from pathlib import Path

# Add src to path so we can import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


TABLES = {
    "schedule_templates": """
        CREATE TABLE IF NOT EXISTS schedule_templates (
            template_id VARCHAR(36) PRIMARY KEY,
            gym_id VARCHAR(64) NOT NULL,
            name VARCHAR(100) NOT NULL,
            is_default BOOLEAN DEFAULT FALSE,
            is_active BOOLEAN DEFAULT TRUE,
            document VARIANT,
            created_at TIMESTAMP_NTZ,
            updated_at TIMESTAMP_NTZ
        )
    """,
    "workout_programs": """
        CREATE TABLE IF NOT EXISTS workout_programs (
            program_id VARCHAR(36) PRIMARY KEY,
            gym_id VARCHAR(64) NOT NULL,
            name VARCHAR(100) NOT NULL,
            is_template BOOLEAN DEFAULT FALSE,
            is_active BOOLEAN DEFAULT TRUE,
            version INTEGER DEFAULT 1,
            document VARIANT,
            created_at TIMESTAMP_NTZ,
            updated_at TIMESTAMP_NTZ
        )
    """,
    "activity_templates": """
        CREATE TABLE IF NOT EXISTS activity_templates (
            template_id VARCHAR(36) PRIMARY KEY,
            gym_id VARCHAR(64),
            name VARCHAR(100) NOT NULL,
            activity_group VARCHAR(50) NOT NULL,
            is_active BOOLEAN DEFAULT TRUE,
            document VARIANT,
            created_at TIMESTAMP_NTZ,
            updated_at TIMESTAMP_NTZ
        )
    """,
    "benchmark_templates": """
        CREATE TABLE IF NOT EXISTS benchmark_templates (
            template_id VARCHAR(36) PRIMARY KEY,
            gym_id VARCHAR(64),
            name VARCHAR(100) NOT NULL,
            type VARCHAR(16) NOT NULL,
            unit VARCHAR(16) NOT NULL,
            tags ARRAY,
            is_active BOOLEAN DEFAULT TRUE,
            document VARIANT,
            created_at TIMESTAMP_NTZ,
            updated_at TIMESTAMP_NTZ
        )
    """,
}


def create_tables(dry_run: bool = False) -> bool:
    """Run every CREATE TABLE statement. Returns True when all succeed."""
    if dry_run:
        for name, ddl in TABLES.items():
            print(f"-- {name}")
            print(ddl.strip())
            print()
        return True

    from src.config.settings import get_settings
    from src.infrastructure.snowflake.client import get_snowflake_connection
    from src.infrastructure.snowflake.repositories import SnowflakeConfig

    settings = get_settings()
    config = SnowflakeConfig(
        account=settings.snowflake_account,
        user=settings.snowflake_user,
        password=settings.snowflake_password or None,
        private_key_path=settings.snowflake_private_key_path,
        private_key_base64=settings.snowflake_private_key_base64,
        database=settings.snowflake_database,
        schema=settings.snowflake_schema,
        warehouse=settings.snowflake_warehouse,
        role=settings.snowflake_role,
    )

    try:
        with get_snowflake_connection(config) as conn:
            cursor = conn.cursor()
            try:
                for name, ddl in TABLES.items():
                    cursor.execute(ddl)
                    print(f"  created {name}")
            finally:
                cursor.close()
        return True

    except Exception as e:
        print(f"ERROR creating tables: {e}")
        return False


def main():
    import argparse

    parser = argparse.ArgumentParser(description='Create GymFlow tables in Snowflake')
    parser.add_argument('--dry-run', action='store_true', help='Print the DDL without running it')
    args = parser.parse_args()

    success = create_tables(dry_run=args.dry_run)
    sys.exit(0 if success else 1)


if __name__ == '__main__':
    main()
