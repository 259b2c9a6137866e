"""t1_token_ledger_core

Revision ID: 3b1e7c2a9d40
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "3b1e7c2a9d40"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None

JSONB = postgresql.JSONB(astext_type=sa.Text())


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("email", sa.Text(), nullable=True),
        sa.Column("balance", sa.Numeric(14, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("subscription_status", sa.String(16), nullable=False, server_default=sa.text("'free'")),
        sa.Column("subscription_expiry", sa.DateTime(timezone=True), nullable=True),
        sa.Column("role", sa.String(16), nullable=False, server_default=sa.text("'user'")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("balance >= 0", name="ck_users_balance_non_negative"),
        sa.CheckConstraint(
            "subscription_status IN ('free','basic','premium','vip')",
            name="ck_users_subscription_status",
        ),
        sa.CheckConstraint("role IN ('user','admin')", name="ck_users_role"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )
    op.create_index("idx_users_subscription_expiry", "users", ["subscription_expiry"])

    op.create_table(
        "personas",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("dominance_level", sa.Integer(), nullable=False),
        sa.Column("lock_message_chance", sa.Float(), nullable=False),
        sa.Column("lock_message_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("is_exclusive", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.CheckConstraint(
            "lock_message_chance >= 0 AND lock_message_chance <= 1",
            name="ck_personas_lock_message_chance",
        ),
        sa.CheckConstraint("lock_message_price > 0", name="ck_personas_lock_message_price_positive"),
    )

    op.create_table(
        "catalog_versions",
        sa.Column("version", sa.Integer(), primary_key=True, autoincrement=False),
        sa.Column("payload", JSONB, nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("published_by_user_id", sa.BigInteger(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["published_by_user_id"], ["users.id"]),
    )
    op.create_index(
        "uq_catalog_versions_single_active",
        "catalog_versions",
        ["is_active"],
        unique=True,
        postgresql_where=sa.text("is_active"),
    )

    op.create_table(
        "payments",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default=sa.text("'USD'")),
        sa.Column("type", sa.String(32), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("source", sa.String(16), nullable=False),
        sa.Column("provider", sa.String(32), nullable=False),
        sa.Column("external_payment_id", sa.String(128), nullable=True),
        sa.Column("package_id", sa.String(32), nullable=True),
        sa.Column("tier_id", sa.String(16), nullable=True),
        sa.Column("payment_method_id", sa.String(128), nullable=True),
        sa.Column("tokens_amount", sa.Integer(), nullable=False),
        sa.Column("bonus_tokens", sa.Integer(), nullable=False),
        sa.Column("checkout_url", sa.Text(), nullable=True),
        sa.Column("raw_provider_payload", JSONB, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "type IN ('credit_purchase','subscription','tip','message_unlock')",
            name="ck_payments_type",
        ),
        sa.CheckConstraint(
            "status IN ('pending','processing','completed','failed')",
            name="ck_payments_status",
        ),
        sa.CheckConstraint("source IN ('user','auto_topup','system')", name="ck_payments_source"),
        sa.CheckConstraint("amount >= 0", name="ck_payments_amount_non_negative"),
        sa.CheckConstraint("tokens_amount >= 0", name="ck_payments_tokens_non_negative"),
        sa.CheckConstraint("bonus_tokens >= 0", name="ck_payments_bonus_non_negative"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.UniqueConstraint("external_payment_id", name="uq_payments_external_payment_id"),
    )
    op.create_index("idx_payments_user_created", "payments", ["user_id", "created_at"])
    op.create_index("idx_payments_status_created", "payments", ["status", "created_at"])
    op.create_index("idx_payments_user_source_status", "payments", ["user_id", "source", "status"])

    op.create_table(
        "subscriptions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("payment_id", sa.Uuid(), nullable=False),
        sa.Column("tier", sa.String(16), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("auto_renew", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("bonus_tokens_granted", sa.Integer(), nullable=False),
        sa.Column("discount_multiplier", sa.Numeric(4, 3), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("tier IN ('basic','premium','vip')", name="ck_subscriptions_tier"),
        sa.CheckConstraint("status IN ('active','cancelled','expired')", name="ck_subscriptions_status"),
        sa.CheckConstraint("end_date > start_date", name="ck_subscriptions_period"),
        sa.CheckConstraint(
            "discount_multiplier > 0 AND discount_multiplier <= 1",
            name="ck_subscriptions_discount_multiplier",
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["payment_id"], ["payments.id"]),
        sa.UniqueConstraint("payment_id", name="uq_subscriptions_payment_id"),
    )
    op.create_index("idx_subscriptions_user_start", "subscriptions", ["user_id", "start_date"])
    op.create_index("idx_subscriptions_status_end", "subscriptions", ["status", "end_date"])

    op.create_table(
        "ledger_entries",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("payment_id", sa.Uuid(), nullable=True),
        sa.Column("subscription_id", sa.Uuid(), nullable=True),
        sa.Column("direction", sa.String(8), nullable=False),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("balance_after", sa.Numeric(14, 2), nullable=False),
        sa.Column("reason", sa.String(32), nullable=False),
        sa.Column("idempotency_key", sa.String(128), nullable=False),
        sa.Column("metadata", JSONB, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("amount > 0", name="ck_ledger_entries_amount_positive"),
        sa.CheckConstraint("balance_after >= 0", name="ck_ledger_entries_balance_after_non_negative"),
        sa.CheckConstraint("direction IN ('CREDIT','DEBIT')", name="ck_ledger_entries_direction"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["payment_id"], ["payments.id"]),
        sa.ForeignKeyConstraint(["subscription_id"], ["subscriptions.id"]),
        sa.UniqueConstraint("idempotency_key", name="uq_ledger_entries_idempotency_key"),
    )
    op.create_index("idx_ledger_user_created", "ledger_entries", ["user_id", "created_at"])
    op.create_index("idx_ledger_payment", "ledger_entries", ["payment_id"])
    op.create_index("idx_ledger_reason", "ledger_entries", ["reason"])
    op.execute(
        """
        CREATE OR REPLACE FUNCTION ledger_entries_append_only()
        RETURNS trigger AS $$
        BEGIN
            RAISE EXCEPTION 'ledger_entries is append-only';
        END;
        $$ LANGUAGE plpgsql;
        """
    )
    op.execute(
        """
        CREATE TRIGGER trg_ledger_entries_append_only
        BEFORE UPDATE OR DELETE ON ledger_entries
        FOR EACH ROW EXECUTE FUNCTION ledger_entries_append_only();
        """
    )

    op.create_table(
        "chats",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("persona_id", sa.BigInteger(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["persona_id"], ["personas.id"]),
    )
    op.create_index("idx_chats_user", "chats", ["user_id"])

    op.create_table(
        "messages",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("chat_id", sa.BigInteger(), nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("role", sa.String(16), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("is_locked", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("unlock_price", sa.Numeric(10, 2), nullable=True),
        sa.Column("unlocked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_free_message", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("token_cost", sa.Numeric(10, 2), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("role IN ('user','assistant')", name="ck_messages_role"),
        sa.CheckConstraint(
            "is_locked = false OR unlock_price IS NOT NULL",
            name="ck_messages_locked_has_price",
        ),
        sa.ForeignKeyConstraint(["chat_id"], ["chats.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
    )
    op.create_index("idx_messages_chat_created", "messages", ["chat_id", "created_at"])
    op.create_index("idx_messages_user_free", "messages", ["user_id", "is_free_message"])

    op.create_table(
        "free_message_usage",
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("used_count", sa.Integer(), nullable=False),
        sa.Column("window_started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("used_count >= 0", name="ck_free_message_usage_used_count_non_negative"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("user_id"),
    )

    op.create_table(
        "auto_topup_settings",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("enabled", sa.Boolean(), nullable=False),
        sa.Column("threshold_amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("package_id", sa.String(32), nullable=False),
        sa.Column("payment_method_id", sa.String(128), nullable=True),
        sa.Column("last_topup_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("threshold_amount >= 0", name="ck_auto_topup_settings_threshold_non_negative"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.UniqueConstraint("user_id", name="uq_auto_topup_settings_user_id"),
    )
    op.create_index("idx_auto_topup_enabled", "auto_topup_settings", ["enabled", "id"])

    op.create_table(
        "reconciliation_runs",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("diff_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("completed_payments_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("credited_payments_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.CheckConstraint("status IN ('OK','DIFF')", name="ck_reconciliation_runs_status"),
    )


def downgrade() -> None:
    op.drop_table("reconciliation_runs")
    op.drop_index("idx_auto_topup_enabled", table_name="auto_topup_settings")
    op.drop_table("auto_topup_settings")
    op.drop_table("free_message_usage")
    op.drop_index("idx_messages_user_free", table_name="messages")
    op.drop_index("idx_messages_chat_created", table_name="messages")
    op.drop_table("messages")
    op.drop_index("idx_chats_user", table_name="chats")
    op.drop_table("chats")
    op.execute("DROP TRIGGER IF EXISTS trg_ledger_entries_append_only ON ledger_entries")
    op.execute("DROP FUNCTION IF EXISTS ledger_entries_append_only()")
    op.drop_index("idx_ledger_reason", table_name="ledger_entries")
    op.drop_index("idx_ledger_payment", table_name="ledger_entries")
    op.drop_index("idx_ledger_user_created", table_name="ledger_entries")
    op.drop_table("ledger_entries")
    op.drop_index("idx_subscriptions_status_end", table_name="subscriptions")
    op.drop_index("idx_subscriptions_user_start", table_name="subscriptions")
    op.drop_table("subscriptions")
    op.drop_index("idx_payments_user_source_status", table_name="payments")
    op.drop_index("idx_payments_status_created", table_name="payments")
    op.drop_index("idx_payments_user_created", table_name="payments")
    op.drop_table("payments")
    op.drop_index("uq_catalog_versions_single_active", table_name="catalog_versions")
    op.drop_table("catalog_versions")
    op.drop_table("personas")
    op.drop_table("users")
