"""Module audit log

Revision ID: 20261019_module_audit_log
Revises: 20261019_initial
Create Date: 2026-10-19 12:00:00.000000

"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20261019_module_audit_log"
down_revision = "20261019_initial"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "module_audit_log",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("module_id", sa.String(200), nullable=False),
        sa.Column("module_name", sa.String(200), nullable=False),
        sa.Column("operation", sa.String(50), nullable=False),
        sa.Column("username", sa.String(100), nullable=False),
        sa.Column("success", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("changes", sa.Text()),
        sa.Column("error_message", sa.Text()),
        sa.Column("notes", sa.Text()),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "idx_module_audit_log_module_timestamp", "module_audit_log", ["module_id", "timestamp"]
    )


def downgrade() -> None:
    op.drop_index("idx_module_audit_log_module_timestamp", table_name="module_audit_log")
    op.drop_table("module_audit_log")
