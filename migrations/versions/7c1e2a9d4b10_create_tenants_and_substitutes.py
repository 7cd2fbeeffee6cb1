"""create_tenants_and_substitutes

Create `tenants` and tenant-scoped `substitutes` tables.
The transitive substitute is stored as (transitive_state, transitive_user).

Revision ID: 7c1e2a9d4b10
Revises:
Create Date: 2026-10-18 09:30:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "7c1e2a9d4b10"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing_tables = set(inspector.get_table_names())

    if "tenants" not in existing_tables:
        op.create_table(
            "tenants",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("slug", sa.String(length=100), nullable=False),
            sa.Column("is_active", sa.Boolean(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("slug"),
        )

    if "substitutes" not in existing_tables:
        op.create_table(
            "substitutes",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("tenant_id", sa.Integer(), nullable=False),
            sa.Column("user", sa.String(length=255), nullable=False),
            sa.Column("substitute", sa.String(length=255), nullable=False),
            sa.Column("transitive_state", sa.String(length=20), nullable=True),
            sa.Column("transitive_user", sa.String(length=255), nullable=True),
            sa.Column("substitution_start", sa.DateTime(), nullable=False),
            sa.Column("substitution_end", sa.DateTime(), nullable=False),
            sa.Column("enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("tenant_id", "user", name="uq_substitutes_tenant_user"),
            sa.CheckConstraint(
                "(transitive_state IS NULL AND transitive_user IS NULL) "
                "OR (transitive_state IN ('not_applicable', 'undefined') AND transitive_user IS NULL) "
                "OR (transitive_state = 'resolved' AND transitive_user IS NOT NULL)",
                name="ck_substitutes_transitive_state",
            ),
            sa.CheckConstraint(
                "\"user\" <> '' AND substitute <> ''",
                name="ck_substitutes_users_not_empty",
            ),
        )
        op.create_index("ix_substitutes_tenant_id", "substitutes", ["tenant_id"])
        op.create_index(
            "ix_substitutes_tenant_substitute", "substitutes", ["tenant_id", "substitute"],
        )


def downgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing_tables = set(inspector.get_table_names())

    if "substitutes" in existing_tables:
        op.drop_index("ix_substitutes_tenant_substitute", table_name="substitutes")
        op.drop_index("ix_substitutes_tenant_id", table_name="substitutes")
        op.drop_table("substitutes")
    if "tenants" in existing_tables:
        op.drop_table("tenants")
