from sqlalchemy import create_engine, inspect

from shared.db_models import manage_migrations
from shared.db_models.manage_migrations import (
    get_alembic_config,
    get_current_revision,
    get_head_revision,
    sync_database_url,
    upgrade_database,
    downgrade_database,
)


def test_sync_database_url():
    assert sync_database_url("postgresql+asyncpg://u:p@db/cfg") == "postgresql://u:p@db/cfg"
    assert sync_database_url("sqlite+aiosqlite:///settings.db") == "sqlite:///settings.db"
    assert sync_database_url("sqlite:///settings.db") == "sqlite:///settings.db"


def test_alembic_config_points_at_packaged_migrations():
    config = get_alembic_config("sqlite+aiosqlite:///settings.db")
    assert config.get_main_option("script_location") == manage_migrations.MIGRATIONS_DIR
    assert config.get_main_option("sqlalchemy.url") == "sqlite:///settings.db"


def test_upgrade_and_downgrade(tmp_path):
    database_url = f"sqlite:///{tmp_path / 'migrated.db'}"
    assert upgrade_database(database_url)
    assert get_current_revision(database_url) == get_head_revision(database_url) == "20261019_module_audit_log"

    tables = set(inspect(create_engine(database_url)).get_table_names())
    assert {"site_settings", "modules", "module_settings", "module_audit_log"} <= tables

    assert downgrade_database(database_url, "base")
    tables = set(inspect(create_engine(database_url)).get_table_names())
    assert "module_settings" not in tables


def test_downgrade_one_step_drops_audit_log(tmp_path):
    database_url = f"sqlite:///{tmp_path / 'stepped.db'}"
    assert upgrade_database(database_url)
    assert downgrade_database(database_url, "20261019_initial")
    assert get_current_revision(database_url) == "20261019_initial"
    tables = set(inspect(create_engine(database_url)).get_table_names())
    assert "module_audit_log" not in tables
    assert "module_settings" in tables
