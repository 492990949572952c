"""initial rentify schema

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18

"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


def _money(name, nullable=False, default=None):
    kwargs = {"nullable": nullable}
    if default is not None:
        kwargs["server_default"] = sa.text(default)
    return sa.Column(name, sa.Numeric(10, 2), **kwargs)


def _flag(name):
    return sa.Column(name, sa.Boolean(), server_default=sa.text("0"), nullable=False)


def upgrade():
    bind = op.get_bind()
    tables = set(inspect(bind).get_table_names())

    if "profiles" not in tables:
        op.create_table(
            "profiles",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("email", sa.String(length=255), nullable=False, unique=True),
            sa.Column("password_hash", sa.String(length=255), nullable=False),
            sa.Column("full_name", sa.String(length=200), nullable=False),
            sa.Column("phone", sa.String(length=30), nullable=True),
            sa.Column("location", sa.String(length=255), nullable=True),
            sa.Column("avatar_url", sa.String(length=500), nullable=True),
            sa.Column("account_status", sa.String(length=20), server_default="active", nullable=False),
            sa.Column("rating", sa.Numeric(3, 2), server_default=sa.text("0"), nullable=False),
            sa.Column("total_reviews", sa.Integer(), server_default=sa.text("0"), nullable=False),
            sa.Column("stripe_account_id", sa.String(length=100), nullable=True),
            _flag("stripe_onboarding_complete"),
            sa.Column("telegram_chat_id", sa.String(length=64), nullable=True),
            sa.Column("telegram_username", sa.String(length=100), nullable=True),
            sa.Column("telegram_linked_at", sa.DateTime(), nullable=True),
            sa.Column("telegram_link_token", sa.String(length=64), nullable=True, unique=True),
            sa.Column("created_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
            sa.Column("updated_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        )
        op.create_index("ix_profiles_telegram_chat_id", "profiles", ["telegram_chat_id"], unique=False)

    if "roles" not in tables:
        op.create_table(
            "roles",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("name", sa.String(length=50), nullable=False, unique=True),
        )

    if "profile_roles" not in tables:
        op.create_table(
            "profile_roles",
            sa.Column("profile_id", sa.Integer(), primary_key=True),
            sa.Column("role_id", sa.Integer(), primary_key=True),
            sa.Column("assigned_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
            sa.ForeignKeyConstraint(["profile_id"], ["profiles.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["role_id"], ["roles.id"], ondelete="CASCADE"),
        )

    if "categories" not in tables:
        op.create_table(
            "categories",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("name", sa.String(length=100), nullable=False, unique=True),
            sa.Column("slug", sa.String(length=120), nullable=False, unique=True),
        )

    if "items" not in tables:
        op.create_table(
            "items",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("owner_id", sa.Integer(), nullable=False),
            sa.Column("category_id", sa.Integer(), nullable=True),
            sa.Column("title", sa.String(length=150), nullable=False),
            sa.Column("description", sa.Text(), nullable=False),
            _money("price_per_day"),
            _money("security_deposit", default="0"),
            _money("late_fee_per_day", nullable=True),
            sa.Column("location", sa.String(length=255), nullable=True),
            sa.Column("condition", sa.String(length=50), nullable=True),
            sa.Column("features", sa.JSON(), nullable=True),
            sa.Column("cancellation_policy", sa.Text(), nullable=True),
            sa.Column("damage_policy", sa.Text(), nullable=True),
            sa.Column("is_available", sa.Boolean(), server_default=sa.text("1"), nullable=False),
            sa.Column("status", sa.String(length=20), server_default="published", nullable=False),
            sa.Column("created_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
            sa.Column("updated_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
            sa.ForeignKeyConstraint(["owner_id"], ["profiles.id"], ondelete="RESTRICT"),
            sa.ForeignKeyConstraint(["category_id"], ["categories.id"], ondelete="RESTRICT"),
        )
        op.create_index("ix_items_owner_id", "items", ["owner_id"], unique=False)

    if "item_images" not in tables:
        op.create_table(
            "item_images",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("item_id", sa.Integer(), nullable=False),
            sa.Column("url", sa.String(length=500), nullable=False),
            _flag("is_primary"),
            sa.Column("position", sa.Integer(), server_default=sa.text("0"), nullable=False),
            sa.ForeignKeyConstraint(["item_id"], ["items.id"], ondelete="CASCADE"),
        )

    if "availability_blocks" not in tables:
        op.create_table(
            "availability_blocks",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("item_id", sa.Integer(), nullable=False),
            sa.Column("owner_id", sa.Integer(), nullable=False),
            sa.Column("start_date", sa.Date(), nullable=False),
            sa.Column("end_date", sa.Date(), nullable=False),
            sa.Column("reason", sa.String(length=120), server_default="Maintenance", nullable=False),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
            sa.ForeignKeyConstraint(["item_id"], ["items.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["owner_id"], ["profiles.id"], ondelete="CASCADE"),
        )
        op.create_index("ix_availability_blocks_item_id", "availability_blocks", ["item_id"], unique=False)

    if "rentals" not in tables:
        op.create_table(
            "rentals",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("item_id", sa.Integer(), nullable=False),
            sa.Column("renter_id", sa.Integer(), nullable=False),
            sa.Column("owner_id", sa.Integer(), nullable=False),
            sa.Column("start_date", sa.Date(), nullable=False),
            sa.Column("end_date", sa.Date(), nullable=False),
            _money("price_per_day"),
            sa.Column("total_days", sa.Integer(), nullable=False),
            _money("subtotal"),
            _money("service_fee"),
            _money("insurance_fee"),
            _money("delivery_fee", default="0"),
            _money("total_amount"),
            _money("security_deposit", default="0"),
            sa.Column("late_days", sa.Integer(), server_default=sa.text("0"), nullable=False),
            _money("late_fee_amount", default="0"),
            _money("security_deposit_deduction", default="0"),
            _money("security_deposit_returned", nullable=True),
            sa.Column("security_deposit_reason", sa.Text(), nullable=True),
            sa.Column("status", sa.String(length=20), server_default="pending", nullable=False),
            sa.Column("payment_status", sa.String(length=20), server_default="unpaid", nullable=False),
            sa.Column("stripe_session_id", sa.String(length=255), nullable=True),
            sa.Column("payment_intent_id", sa.String(length=255), nullable=True),
            sa.Column("pickup_confirmed_at", sa.DateTime(), nullable=True),
            sa.Column("pickup_confirmed_by", sa.Integer(), nullable=True),
            sa.Column("pickup_notes", sa.Text(), nullable=True),
            sa.Column("return_initiated_at", sa.DateTime(), nullable=True),
            sa.Column("return_initiated_by", sa.Integer(), nullable=True),
            sa.Column("return_confirmed_at", sa.DateTime(), nullable=True),
            sa.Column("return_confirmed_by", sa.Integer(), nullable=True),
            sa.Column("actual_return_date", sa.Date(), nullable=True),
            _flag("damage_reported"),
            sa.Column("damage_description", sa.Text(), nullable=True),
            sa.Column("delivery_method", sa.String(length=20), server_default="pickup", nullable=False),
            sa.Column("delivery_address", sa.Text(), nullable=True),
            sa.Column("special_instructions", sa.Text(), nullable=True),
            sa.Column("rental_agreement", sa.Text(), nullable=True),
            sa.Column("agreement_generated_at", sa.DateTime(), nullable=True),
            _flag("agreement_accepted_by_owner"),
            _flag("agreement_accepted_by_renter"),
            sa.Column("owner_signature", sa.String(length=300), nullable=True),
            sa.Column("renter_signature", sa.String(length=300), nullable=True),
            sa.Column("agreement_signed_at", sa.DateTime(), nullable=True),
            sa.Column("cancelled_at", sa.DateTime(), nullable=True),
            sa.Column("cancellation_reason", sa.Text(), nullable=True),
            _flag("start_reminder_sent"),
            _flag("return_reminder_sent"),
            _flag("overdue_reminder_sent"),
            sa.Column("created_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
            sa.Column("updated_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
            sa.ForeignKeyConstraint(["item_id"], ["items.id"], ondelete="RESTRICT"),
            sa.ForeignKeyConstraint(["renter_id"], ["profiles.id"], ondelete="RESTRICT"),
            sa.ForeignKeyConstraint(["owner_id"], ["profiles.id"], ondelete="RESTRICT"),
            sa.ForeignKeyConstraint(["pickup_confirmed_by"], ["profiles.id"]),
            sa.ForeignKeyConstraint(["return_initiated_by"], ["profiles.id"]),
            sa.ForeignKeyConstraint(["return_confirmed_by"], ["profiles.id"]),
        )
        op.create_index("ix_rentals_item_id", "rentals", ["item_id"], unique=False)
        op.create_index("ix_rentals_status", "rentals", ["status"], unique=False)
        op.create_index("ix_rentals_stripe_session_id", "rentals", ["stripe_session_id"], unique=False)
        op.create_index("ix_rentals_payment_intent_id", "rentals", ["payment_intent_id"], unique=False)

    if "reviews" not in tables:
        op.create_table(
            "reviews",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("rental_id", sa.Integer(), nullable=False),
            sa.Column("reviewer_id", sa.Integer(), nullable=False),
            sa.Column("reviewee_id", sa.Integer(), nullable=False),
            sa.Column("item_id", sa.Integer(), nullable=False),
            sa.Column("rating", sa.Integer(), nullable=False),
            sa.Column("comment", sa.Text(), nullable=True),
            sa.Column("is_public", sa.Boolean(), server_default=sa.text("1"), nullable=False),
            sa.Column("created_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
            sa.ForeignKeyConstraint(["rental_id"], ["rentals.id"], ondelete="RESTRICT"),
            sa.ForeignKeyConstraint(["reviewer_id"], ["profiles.id"], ondelete="RESTRICT"),
            sa.ForeignKeyConstraint(["reviewee_id"], ["profiles.id"], ondelete="RESTRICT"),
            sa.ForeignKeyConstraint(["item_id"], ["items.id"], ondelete="RESTRICT"),
            sa.UniqueConstraint("rental_id", "reviewer_id", name="uq_reviews_rental_reviewer"),
        )

    if "messages" not in tables:
        op.create_table(
            "messages",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("sender_id", sa.Integer(), nullable=False),
            sa.Column("recipient_id", sa.Integer(), nullable=False),
            sa.Column("item_id", sa.Integer(), nullable=True),
            sa.Column("content", sa.Text(), nullable=False),
            _flag("is_read"),
            sa.Column("created_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
            sa.ForeignKeyConstraint(["sender_id"], ["profiles.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["recipient_id"], ["profiles.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["item_id"], ["items.id"], ondelete="SET NULL"),
        )
        op.create_index("ix_messages_created_at", "messages", ["created_at"], unique=False)

    if "notifications" not in tables:
        op.create_table(
            "notifications",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("user_id", sa.Integer(), nullable=False),
            sa.Column("type", sa.String(length=40), nullable=False),
            sa.Column("title", sa.String(length=200), nullable=False),
            sa.Column("message", sa.Text(), nullable=False),
            sa.Column("related_id", sa.Integer(), nullable=True),
            _flag("is_read"),
            sa.Column("created_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
            sa.ForeignKeyConstraint(["user_id"], ["profiles.id"], ondelete="CASCADE"),
        )
        op.create_index("ix_notifications_user_id", "notifications", ["user_id"], unique=False)
        op.create_index("ix_notifications_is_read", "notifications", ["is_read"], unique=False)
        op.create_index("ix_notifications_created_at", "notifications", ["created_at"], unique=False)

    if "outbox_events" not in tables:
        op.create_table(
            "outbox_events",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("user_id", sa.Integer(), nullable=False),
            sa.Column("rental_id", sa.Integer(), nullable=True),
            sa.Column("kind", sa.String(length=30), server_default="info", nullable=False),
            sa.Column("title", sa.String(length=200), nullable=False),
            sa.Column("message", sa.Text(), nullable=False),
            sa.Column("action_url", sa.String(length=500), nullable=True),
            sa.Column("status", sa.String(length=20), server_default="pending", nullable=False),
            sa.Column("attempts", sa.Integer(), server_default=sa.text("0"), nullable=False),
            sa.Column("last_error", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
            sa.Column("dispatched_at", sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(["user_id"], ["profiles.id"], ondelete="CASCADE"),
        )
        op.create_index("ix_outbox_events_status", "outbox_events", ["status"], unique=False)


def downgrade():
    tables = set(inspect(op.get_bind()).get_table_names())
    for name in (
        "outbox_events",
        "notifications",
        "messages",
        "reviews",
        "rentals",
        "availability_blocks",
        "item_images",
        "items",
        "categories",
        "profile_roles",
        "roles",
        "profiles",
    ):
        if name in tables:
            op.drop_table(name)
