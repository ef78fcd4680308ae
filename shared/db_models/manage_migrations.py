#!/usr/bin/env python
import os
import sys
import argparse
from alembic.config import Config
from alembic import command
from alembic.script import ScriptDirectory
from alembic.runtime.migration import MigrationContext
from sqlalchemy import create_engine, text
from services.config_manager_service.config.env_settings import EngineSettings
from shared.common_utils.logger import logger

MIGRATIONS_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "migrations")

ASYNC_DRIVERS = {"+asyncpg": "", "+aiosqlite": ""}


def sync_database_url(database_url: str) -> str:
    """Alembic runs synchronously, so async driver suffixes are swapped for sync ones."""
    for async_driver, sync_driver in ASYNC_DRIVERS.items():
        if async_driver in database_url:
            return database_url.replace(async_driver, sync_driver, 1)
    return database_url


def get_database_url():
    return sync_database_url(EngineSettings().DATABASE_URL)


def get_alembic_config(database_url=None):
    """Get Alembic configuration."""
    config = Config()
    config.set_main_option("script_location", MIGRATIONS_DIR)
    config.set_main_option("sqlalchemy.url", sync_database_url(database_url or get_database_url()))
    return config


def get_current_revision(database_url):
    """Get current database revision."""
    engine = create_engine(database_url)
    with engine.connect() as conn:
        context = MigrationContext.configure(conn)
        return context.get_current_revision()


def get_head_revision(database_url):
    """Get head revision from migrations."""
    script = ScriptDirectory.from_config(get_alembic_config(database_url))
    return script.get_current_head()


def check_database_connection(database_url):
    """Check if database is accessible."""
    try:
        engine = create_engine(database_url)
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Error connecting to database: {e}")
        return False


def create_migration(message, database_url):
    """Create a new migration."""
    if not check_database_connection(database_url):
        return False

    command.revision(get_alembic_config(database_url), message=message, autogenerate=True)
    return True


def upgrade_database(database_url, revision="head"):
    """Upgrade database to specified revision."""
    if not check_database_connection(database_url):
        return False

    command.upgrade(get_alembic_config(database_url), revision)
    return True


def downgrade_database(database_url, revision):
    """Downgrade database to specified revision."""
    if not check_database_connection(database_url):
        return False

    command.downgrade(get_alembic_config(database_url), revision)
    return True


def show_migration_status(database_url):
    """Show current migration status."""
    if not check_database_connection(database_url):
        return False

    current = get_current_revision(database_url)
    head = get_head_revision(database_url)

    print("\nMigration Status:")
    print(f"Current revision: {current}")
    print(f"Head revision: {head}")
    print(f"Status: {'Up to date' if current == head else 'Out of date'}")
    return True


def main():
    parser = argparse.ArgumentParser(description="Manage settings database migrations")
    parser.add_argument("--database-url", default=None, help="Overrides the configured settings database")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    create_parser = subparsers.add_parser("create", help="Create a new migration")
    create_parser.add_argument("message", help="Migration message")

    upgrade_parser = subparsers.add_parser("upgrade", help="Upgrade database")
    upgrade_parser.add_argument("--revision", default="head", help="Target revision")

    downgrade_parser = subparsers.add_parser("downgrade", help="Downgrade database")
    downgrade_parser.add_argument("revision", help="Target revision")

    subparsers.add_parser("status", help="Show migration status")

    args = parser.parse_args()
    database_url = sync_database_url(args.database_url or get_database_url())

    if args.command == "create":
        success = create_migration(args.message, database_url)
    elif args.command == "upgrade":
        success = upgrade_database(database_url, args.revision)
    elif args.command == "downgrade":
        success = downgrade_database(database_url, args.revision)
    elif args.command == "status":
        success = show_migration_status(database_url)
    else:
        parser.print_help()
        sys.exit(1)

    if not success:
        sys.exit(1)


if __name__ == "__main__":
    main()
