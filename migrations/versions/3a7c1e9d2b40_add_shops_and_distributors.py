"""add users, audit events, distributors, legacy shop lists and shops

Revision ID: 3a7c1e9d2b40
Revises:
Create Date: 2026-10-18

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision: str = "3a7c1e9d2b40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    bind = op.get_bind()
    insp = inspect(bind)
    existing_tables = set(insp.get_table_names())

    def _has_index(table: str, name: str) -> bool:
        try:
            return any(ix.get("name") == name for ix in insp.get_indexes(table))
        except Exception:
            return False

    if "users" not in existing_tables:
        op.create_table(
            "users",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("email", sa.String(length=320), nullable=False),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(timezone=False), nullable=False, server_default=sa.func.current_timestamp()),
            sa.UniqueConstraint("email", name="uq_users_email"),
        )
        existing_tables.add("users")

    if "audit_events" not in existing_tables:
        op.create_table(
            "audit_events",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=False), nullable=False, server_default=sa.func.current_timestamp()),
            sa.Column("request_id", sa.String(length=64), nullable=True),
            sa.Column("actor_user_id", sa.Integer(), nullable=True),
            sa.Column("actor_user_email", sa.String(length=320), nullable=True),
            sa.Column("action", sa.String(length=128), nullable=False),
            sa.Column("entity_type", sa.String(length=128), nullable=True),
            sa.Column("entity_id", sa.String(length=128), nullable=True),
            sa.Column("client_ip", sa.String(length=64), nullable=True),
            sa.Column("metadata_json", sa.Text(), nullable=True),
            sa.ForeignKeyConstraint(["actor_user_id"], ["users.id"], ondelete="SET NULL"),
        )
        existing_tables.add("audit_events")

    if "distributors" not in existing_tables:
        op.create_table(
            "distributors",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("name", sa.Text(), nullable=False),
            sa.Column("shop_name", sa.Text(), nullable=True),
            sa.Column("contact", sa.Text(), nullable=True),
            sa.Column("phone_number", sa.Text(), nullable=True),
            sa.Column("address", sa.Text(), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("retail_shop_count", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("wholesale_shop_count", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("created_at", sa.DateTime(timezone=False), nullable=False, server_default=sa.func.current_timestamp()),
            sa.Column("updated_at", sa.DateTime(timezone=False), nullable=False, server_default=sa.func.current_timestamp()),
        )
        existing_tables.add("distributors")

    if not _has_index("distributors", "idx_distributors_name"):
        op.create_index("idx_distributors_name", "distributors", ["name"])

    if "distributor_legacy_shops" not in existing_tables:
        op.create_table(
            "distributor_legacy_shops",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("distributor_id", sa.Integer(), nullable=False),
            sa.Column("bucket", sa.String(length=16), nullable=False),
            sa.Column("shop_name", sa.Text(), nullable=False, server_default=""),
            sa.Column("owner_name", sa.Text(), nullable=False, server_default=""),
            sa.Column("address", sa.Text(), nullable=False, server_default=""),
            sa.Column("created_at", sa.DateTime(timezone=False), nullable=False, server_default=sa.func.current_timestamp()),
            sa.ForeignKeyConstraint(["distributor_id"], ["distributors.id"], ondelete="CASCADE"),
        )
        existing_tables.add("distributor_legacy_shops")

    if not _has_index("distributor_legacy_shops", "idx_distributor_legacy_shops_distributor_bucket"):
        op.create_index(
            "idx_distributor_legacy_shops_distributor_bucket",
            "distributor_legacy_shops",
            ["distributor_id", "bucket"],
        )

    if "shops" not in existing_tables:
        op.create_table(
            "shops",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("name", sa.Text(), nullable=False),
            sa.Column("owner_name", sa.Text(), nullable=False),
            sa.Column("address", sa.Text(), nullable=False),
            sa.Column("type", sa.String(length=32), nullable=False),
            sa.Column("distributor_id", sa.Integer(), nullable=False),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(timezone=False), nullable=False, server_default=sa.func.current_timestamp()),
            sa.Column("updated_at", sa.DateTime(timezone=False), nullable=False, server_default=sa.func.current_timestamp()),
            sa.Column("created_by_user_id", sa.Integer(), nullable=True),
            sa.ForeignKeyConstraint(["distributor_id"], ["distributors.id"], ondelete="RESTRICT"),
            sa.ForeignKeyConstraint(["created_by_user_id"], ["users.id"], ondelete="SET NULL"),
        )
        existing_tables.add("shops")

    for idx_name, cols in (
        ("idx_shops_distributor_id", ["distributor_id"]),
        ("idx_shops_type", ["type"]),
        ("idx_shops_distributor_active_name", ["distributor_id", "is_active", "name"]),
    ):
        if not _has_index("shops", idx_name):
            op.create_index(idx_name, "shops", cols)


def downgrade() -> None:
    op.drop_index("idx_shops_distributor_active_name", table_name="shops")
    op.drop_index("idx_shops_type", table_name="shops")
    op.drop_index("idx_shops_distributor_id", table_name="shops")
    op.drop_table("shops")

    op.drop_index("idx_distributor_legacy_shops_distributor_bucket", table_name="distributor_legacy_shops")
    op.drop_table("distributor_legacy_shops")

    op.drop_index("idx_distributors_name", table_name="distributors")
    op.drop_table("distributors")

    op.drop_table("audit_events")
    op.drop_table("users")
