"""initial customs schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 09:12:41.208311

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=False), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=False), nullable=False),
    ]


def upgrade() -> None:
    """Create auth, client, dispatch, document, payment, notification and calendar tables."""
    conn = op.get_bind()
    existing_tables = set(sa.inspect(conn).get_table_names())

    if "users" not in existing_tables:
        op.create_table(
            "users",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("email", sa.String(320), nullable=False, unique=True),
            sa.Column("password_hash", sa.String(255), nullable=False),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(timezone=False), nullable=False),
        )

    if "roles" not in existing_tables:
        op.create_table(
            "roles",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("key", sa.String(64), nullable=False, unique=True),
            sa.Column("name", sa.String(128), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=False), nullable=False),
        )

    if "permissions" not in existing_tables:
        op.create_table(
            "permissions",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("key", sa.String(128), nullable=False, unique=True),
            sa.Column("name", sa.String(128), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=False), nullable=False),
        )

    if "user_roles" not in existing_tables:
        op.create_table(
            "user_roles",
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
            sa.Column("role_id", sa.Integer(), sa.ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
        )

    if "role_permissions" not in existing_tables:
        op.create_table(
            "role_permissions",
            sa.Column("role_id", sa.Integer(), sa.ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
            sa.Column(
                "permission_id", sa.Integer(), sa.ForeignKey("permissions.id", ondelete="CASCADE"), primary_key=True
            ),
        )

    if "profiles" not in existing_tables:
        op.create_table(
            "profiles",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True),
            sa.Column("email", sa.String(320), nullable=False),
            sa.Column("full_name", sa.String(255), nullable=False),
            sa.Column("role", sa.String(16), nullable=False),
            sa.Column("phone", sa.String(64), nullable=True),
            sa.Column("company_name", sa.String(255), nullable=True),
            sa.Column("ruc", sa.String(32), nullable=True),
            sa.Column("address", sa.Text(), nullable=True),
            *_timestamps(),
        )

    if "audit_events" not in existing_tables:
        op.create_table(
            "audit_events",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("created_at", sa.DateTime(timezone=False), nullable=False),
            sa.Column("request_id", sa.String(64), nullable=True),
            sa.Column("client_ip", sa.String(64), nullable=True),
            sa.Column("actor_user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
            sa.Column("actor_user_email", sa.String(320), nullable=True),
            sa.Column("action", sa.String(128), nullable=False),
            sa.Column("entity_type", sa.String(128), nullable=True),
            sa.Column("entity_id", sa.String(128), nullable=True),
            sa.Column("reason", sa.String(512), nullable=True),
            sa.Column("metadata_json", sa.Text(), nullable=True),
            sa.UniqueConstraint("request_id", "id", name="uq_audit_request_id_id"),
        )

    if "clients" not in existing_tables:
        op.create_table(
            "clients",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
            sa.Column("company_name", sa.String(255), nullable=False),
            sa.Column("ruc", sa.String(32), nullable=False),
            sa.Column("email", sa.String(320), nullable=False),
            sa.Column("phone", sa.String(64), nullable=True),
            sa.Column("address", sa.Text(), nullable=True),
            sa.Column("contact_person", sa.String(255), nullable=True),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("created_by", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
            *_timestamps(),
        )
        op.create_index("idx_clients_company_name", "clients", ["company_name"])
        op.create_index("idx_clients_ruc", "clients", ["ruc"])
        op.create_index("idx_clients_user_id", "clients", ["user_id"])

    if "dispatches" not in existing_tables:
        op.create_table(
            "dispatches",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("client_id", sa.Integer(), sa.ForeignKey("clients.id", ondelete="CASCADE"), nullable=False),
            sa.Column("dispatch_number", sa.String(64), nullable=False),
            sa.Column("bl_number", sa.String(64), nullable=True),
            sa.Column("supplier", sa.String(255), nullable=True),
            sa.Column("shipping_line", sa.String(255), nullable=True),
            sa.Column("arrival_date", sa.Date(), nullable=True),
            sa.Column("channel", sa.String(16), nullable=True),
            sa.Column("status", sa.String(64), nullable=False, server_default="pending"),
            sa.Column("container_number", sa.String(64), nullable=True),
            sa.Column("port", sa.String(128), nullable=True),
            sa.Column("weight", sa.Numeric(14, 3), nullable=True),
            sa.Column("value", sa.Numeric(14, 2), nullable=True),
            sa.Column("created_by", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
            *_timestamps(),
        )
        op.create_index("idx_dispatches_client_id", "dispatches", ["client_id"])
        op.create_index("idx_dispatches_dispatch_number", "dispatches", ["dispatch_number"])
        op.create_index("idx_dispatches_status", "dispatches", ["status"])
        op.create_index("idx_dispatches_created_at", "dispatches", ["created_at"])

    if "dispatch_timeline" not in existing_tables:
        op.create_table(
            "dispatch_timeline",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("dispatch_id", sa.Integer(), sa.ForeignKey("dispatches.id", ondelete="CASCADE"), nullable=False),
            sa.Column("status", sa.String(64), nullable=False),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("updated_by", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=False), nullable=False),
        )
        op.create_index("idx_dispatch_timeline_dispatch_id", "dispatch_timeline", ["dispatch_id", "created_at"])

    if "documents" not in existing_tables:
        op.create_table(
            "documents",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("dispatch_id", sa.Integer(), sa.ForeignKey("dispatches.id", ondelete="CASCADE"), nullable=False),
            sa.Column("document_type", sa.String(64), nullable=False),
            sa.Column("file_name", sa.String(255), nullable=False),
            sa.Column("file_path", sa.String(512), nullable=False),
            sa.Column("file_size", sa.Integer(), nullable=True),
            sa.Column("content_type", sa.String(128), nullable=False, server_default="application/octet-stream"),
            sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("uploaded_by", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=False), nullable=False),
        )
        op.create_index("idx_documents_dispatch_id", "documents", ["dispatch_id", "created_at"])

    if "payments" not in existing_tables:
        op.create_table(
            "payments",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("dispatch_id", sa.Integer(), sa.ForeignKey("dispatches.id", ondelete="CASCADE"), nullable=False),
            sa.Column("amount", sa.Numeric(14, 2), nullable=False),
            sa.Column("payment_type", sa.String(64), nullable=False),
            sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
            sa.Column("due_date", sa.Date(), nullable=True),
            sa.Column("paid_date", sa.Date(), nullable=True),
            sa.Column(
                "proof_document_id", sa.Integer(), sa.ForeignKey("documents.id", ondelete="SET NULL"), nullable=True
            ),
            sa.Column("notes", sa.Text(), nullable=True),
            *_timestamps(),
        )
        op.create_index("idx_payments_dispatch_id", "payments", ["dispatch_id", "created_at"])
        op.create_index("idx_payments_status", "payments", ["status"])

    if "notifications" not in existing_tables:
        op.create_table(
            "notifications",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
            sa.Column("dispatch_id", sa.Integer(), sa.ForeignKey("dispatches.id", ondelete="CASCADE"), nullable=True),
            sa.Column("type", sa.String(64), nullable=False),
            sa.Column("title", sa.String(255), nullable=False),
            sa.Column("message", sa.Text(), nullable=False),
            sa.Column("read", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("created_at", sa.DateTime(timezone=False), nullable=False),
        )
        op.create_index("idx_notifications_user_id", "notifications", ["user_id", "created_at"])

    if "calendar_events" not in existing_tables:
        op.create_table(
            "calendar_events",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("dispatch_id", sa.Integer(), sa.ForeignKey("dispatches.id", ondelete="SET NULL"), nullable=True),
            sa.Column("title", sa.String(255), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("event_date", sa.Date(), nullable=False),
            sa.Column("event_type", sa.String(32), nullable=False, server_default="deadline"),
            sa.Column("reminder_sent", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("created_by", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=False), nullable=False),
        )
        op.create_index("idx_calendar_events_event_date", "calendar_events", ["event_date"])


def downgrade() -> None:
    """Drop everything created above, children first."""
    for table in (
        "calendar_events",
        "notifications",
        "payments",
        "documents",
        "dispatch_timeline",
        "dispatches",
        "clients",
        "audit_events",
        "profiles",
        "role_permissions",
        "user_roles",
        "permissions",
        "roles",
        "users",
    ):
        op.drop_table(table)
