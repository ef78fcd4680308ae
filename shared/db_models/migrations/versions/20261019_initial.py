"""Initial settings schema

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20261019_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Core settings edited at runtime
    op.create_table(
        "site_settings",
        sa.Column("key", sa.String(200), primary_key=True),
        sa.Column("value", sa.Text()),
        sa.Column("last_modified", sa.DateTime(timezone=True), nullable=False),
        sa.Column("modified_by", sa.String(100)),
    )

    # Extension modules
    op.create_table(
        "modules",
        sa.Column("module_id", sa.String(200), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("version", sa.String(50), nullable=False, server_default="1.0.0"),
        sa.Column("enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("configured", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_core", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("load_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    # Module settings
    op.create_table(
        "module_settings",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "module_id",
            sa.String(200),
            sa.ForeignKey("modules.module_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("key", sa.String(200), nullable=False),
        sa.Column("value", sa.Text()),
        sa.Column("is_from_environment", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("environment_variable_name", sa.String(300)),
        sa.Column("is_secret", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("previous_value", sa.Text()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("idx_module_settings_module_key", "module_settings", ["module_id", "key"])


def downgrade() -> None:
    op.drop_index("idx_module_settings_module_key", table_name="module_settings")
    op.drop_table("module_settings")
    op.drop_table("modules")
    op.drop_table("site_settings")
