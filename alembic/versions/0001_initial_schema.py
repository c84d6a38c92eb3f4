"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19 09:00:00

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

user_role = sa.Enum("ADMIN", "SUPPLIER", name="userrole")
priority = sa.Enum("LOW", "NORMAL", "HIGH", "URGENT", name="priority")
request_status = sa.Enum("DRAFT", "ACTIVE", "CLOSED", "CANCELLED", name="requeststatus")
invitation_status = sa.Enum("INVITED", "VIEWED", "QUOTED", "DECLINED", name="invitationstatus")
quotation_status = sa.Enum(
    "DRAFT", "SUBMITTED", "ACCEPTED", "REJECTED", "EXPIRED", name="quotationstatus"
)
notification_type = sa.Enum(
    "REQUEST", "QUOTATION", "DEADLINE", "APPROVAL", "SYSTEM", name="notificationtype"
)
related_type = sa.Enum("REQUEST", "QUOTATION", "SUPPLIER", "EXCEL_IMPORT", name="relatedtype")
setting_type = sa.Enum("STRING", "NUMBER", "BOOLEAN", "JSON", name="settingtype")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("username", sa.String(50), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("role", user_role, nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("email_verified", sa.Boolean(), nullable=False),
        sa.Column("last_login", sa.DateTime()),
        sa.Column("password_reset_token", sa.String(64)),
        sa.Column("password_reset_expires", sa.DateTime()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime()),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_password_reset_token", "users", ["password_reset_token"])

    op.create_table(
        "suppliers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("company_name", sa.String(200), nullable=False),
        sa.Column("tax_number", sa.String(20)),
        sa.Column("contact_person", sa.String(100)),
        sa.Column("phone", sa.String(30)),
        sa.Column("address", sa.String(500)),
        sa.Column("city", sa.String(50)),
        sa.Column("country", sa.String(50)),
        sa.Column("categories", sa.String(300)),
        sa.Column("rating", sa.Float(), nullable=False),
        sa.Column("total_quotations", sa.Integer(), nullable=False),
        sa.Column("successful_quotations", sa.Integer(), nullable=False),
        sa.Column("is_approved", sa.Boolean(), nullable=False),
        sa.Column("approval_date", sa.DateTime()),
        sa.Column("notes", sa.Text()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime()),
        sa.CheckConstraint(
            "successful_quotations <= total_quotations",
            name="ck_supplier_successful_le_total",
        ),
        sa.CheckConstraint("rating >= 0 AND rating <= 5", name="ck_supplier_rating"),
    )

    op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
        sa.Column("description", sa.Text()),
        sa.Column("parent_id", sa.Integer(), sa.ForeignKey("categories.id")),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "requests",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("request_no", sa.String(32), nullable=False, unique=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("deadline", sa.DateTime()),
        sa.Column("status", request_status, nullable=False),
        sa.Column("priority", priority, nullable=False),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("total_items", sa.Integer(), nullable=False),
        sa.Column("total_suppliers", sa.Integer(), nullable=False),
        sa.Column("winner_supplier_id", sa.Integer(), sa.ForeignKey("suppliers.id")),
        sa.Column("notes", sa.Text()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime()),
        sa.CheckConstraint(
            "(status = 'CLOSED' AND winner_supplier_id IS NOT NULL)"
            " OR (status <> 'CLOSED' AND winner_supplier_id IS NULL)",
            name="ck_request_winner_iff_closed",
        ),
    )
    op.create_index("ix_requests_status", "requests", ["status"])

    op.create_table(
        "request_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "request_id",
            sa.Integer(),
            sa.ForeignKey("requests.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("item_no", sa.Integer(), nullable=False),
        sa.Column("material_code", sa.String(50)),
        sa.Column("material_name", sa.String(255), nullable=False),
        sa.Column("quantity", sa.Numeric(18, 3), nullable=False),
        sa.Column("unit", sa.String(20), nullable=False),
        sa.Column("specifications", sa.Text()),
        sa.Column("category", sa.String(100)),
        sa.Column("priority", priority, nullable=False),
        sa.Column("notes", sa.Text()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("request_id", "item_no", name="uq_request_item_no"),
        sa.CheckConstraint("quantity > 0", name="ck_request_item_quantity"),
    )

    op.create_table(
        "request_suppliers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "request_id",
            sa.Integer(),
            sa.ForeignKey("requests.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("supplier_id", sa.Integer(), sa.ForeignKey("suppliers.id"), nullable=False),
        sa.Column("invitation_sent", sa.Boolean(), nullable=False),
        sa.Column("invitation_date", sa.DateTime()),
        sa.Column("response_received", sa.Boolean(), nullable=False),
        sa.Column("response_date", sa.DateTime()),
        sa.Column("status", invitation_status, nullable=False),
        sa.Column("notes", sa.Text()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("request_id", "supplier_id", name="uq_request_supplier"),
    )

    op.create_table(
        "quotations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("quotation_no", sa.String(32), nullable=False, unique=True),
        sa.Column(
            "request_id",
            sa.Integer(),
            sa.ForeignKey("requests.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("supplier_id", sa.Integer(), sa.ForeignKey("suppliers.id"), nullable=False),
        sa.Column("total_amount", sa.Numeric(18, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False),
        sa.Column("delivery_time", sa.Integer()),
        sa.Column("delivery_location", sa.String(255)),
        sa.Column("validity_days", sa.Integer(), nullable=False),
        sa.Column("payment_terms", sa.String(500)),
        sa.Column("status", quotation_status, nullable=False),
        sa.Column("submission_date", sa.DateTime()),
        sa.Column("notes", sa.Text()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime()),
        sa.UniqueConstraint("request_id", "supplier_id", name="uq_quotation_request_supplier"),
    )
    op.create_index("ix_quotations_status", "quotations", ["status"])

    op.create_table(
        "quotation_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "quotation_id",
            sa.Integer(),
            sa.ForeignKey("quotations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "request_item_id", sa.Integer(), sa.ForeignKey("request_items.id"), nullable=False
        ),
        sa.Column("unit_price", sa.Numeric(18, 2), nullable=False),
        sa.Column("total_price", sa.Numeric(18, 2), nullable=False),
        sa.Column("delivery_time", sa.Integer()),
        sa.Column("brand", sa.String(100)),
        sa.Column("model", sa.String(100)),
        sa.Column("origin_country", sa.String(50)),
        sa.Column("warranty_period", sa.String(50)),
        sa.Column("notes", sa.Text()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint(
            "quotation_id", "request_item_id", name="uq_quotation_item_request_item"
        ),
        sa.CheckConstraint("unit_price > 0", name="ck_quotation_item_unit_price"),
    )

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("type", notification_type, nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("data", sa.JSON()),
        sa.Column("is_read", sa.Boolean(), nullable=False),
        sa.Column("is_email_sent", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_notifications_created_at", "notifications", ["created_at"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL")),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("table_name", sa.String(50)),
        sa.Column("record_id", sa.Integer()),
        sa.Column("old_values", sa.JSON()),
        sa.Column("new_values", sa.JSON()),
        sa.Column("ip_address", sa.String(45)),
        sa.Column("user_agent", sa.String(500)),
        sa.Column("request_id", sa.String(64)),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"])

    op.create_table(
        "files",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("filename", sa.String(255), nullable=False),
        sa.Column("original_name", sa.String(255), nullable=False),
        sa.Column("file_path", sa.String(500), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=False),
        sa.Column("mime_type", sa.String(100)),
        sa.Column("uploaded_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("related_type", related_type),
        sa.Column("related_id", sa.Integer()),
        sa.Column("description", sa.Text()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "settings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("key", sa.String(100), nullable=False, unique=True),
        sa.Column("value", sa.Text()),
        sa.Column("description", sa.Text()),
        sa.Column("type", setting_type, nullable=False),
        sa.Column("updated_by", sa.Integer(), sa.ForeignKey("users.id")),
        sa.Column("updated_at", sa.DateTime()),
    )


def downgrade() -> None:
    for table in (
        "settings",
        "files",
        "audit_logs",
        "notifications",
        "quotation_items",
        "quotations",
        "request_suppliers",
        "request_items",
        "requests",
        "categories",
        "suppliers",
        "users",
    ):
        op.drop_table(table)
