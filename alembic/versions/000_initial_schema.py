"""Initial database schema

Revision ID: 000_initial_schema
Revises:
Create Date: 2026-10-19

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "000_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def _money(name: str, **kwargs):
    return sa.Column(name, sa.Numeric(15, 2), server_default="0", nullable=False, **kwargs)


def upgrade() -> None:
    """Create all initial tables."""

    # Reference entities
    op.create_table(
        "agents",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("commission_rate", sa.Numeric(5, 2), server_default="0", nullable=False),
        sa.Column("status", sa.String(20), server_default="active", nullable=False),
        _money("total_commission"),
        sa.Column("total_trips", sa.Integer(), server_default="0", nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_agents_email", "agents", ["email"])

    op.create_table(
        "staff",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("position", sa.String(100), nullable=False),
        sa.Column("status", sa.String(20), server_default="active", nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "customers",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("agent_id", sa.Integer(), sa.ForeignKey("agents.id", ondelete="SET NULL"), nullable=True),
        sa.Column("status", sa.String(20), server_default="active", nullable=False),
        _money("total_rolling"),
        _money("total_win_loss"),
        _money("total_buy_in"),
        _money("total_buy_out"),
        *_timestamps(),
    )
    op.create_index("ix_customers_name", "customers", ["name"])
    op.create_index("ix_customers_agent_id", "customers", ["agent_id"])

    # Users table
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("username", sa.String(100), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("role", sa.Enum("admin", "staff", "agent", "boss", name="userrole"), nullable=False),
        sa.Column("display_name", sa.String(100), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("last_active_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("agent_id", sa.Integer(), sa.ForeignKey("agents.id", ondelete="SET NULL"), nullable=True),
        sa.Column("staff_id", sa.Integer(), sa.ForeignKey("staff.id", ondelete="SET NULL"), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    # Trips and memberships
    op.create_table(
        "trips",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("trip_name", sa.String(255), nullable=False),
        sa.Column("destination", sa.String(255), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column(
            "status",
            sa.Enum("active", "in-progress", "completed", "cancelled", name="tripstatus"),
            nullable=False,
        ),
        sa.Column("currency", sa.String(10), server_default="HKD", nullable=False),
        sa.Column("check_out_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("check_out_notes", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_trips_status", "trips", ["status"])

    op.create_table(
        "trip_customers",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("trip_id", sa.Integer(), sa.ForeignKey("trips.id", ondelete="CASCADE"), nullable=False),
        sa.Column("customer_id", sa.Integer(), sa.ForeignKey("customers.id", ondelete="CASCADE"), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("trip_id", "customer_id", name="uq_trip_customers_trip_customer"),
    )
    op.create_index("ix_trip_customers_trip_id", "trip_customers", ["trip_id"])
    op.create_index("ix_trip_customers_customer_id", "trip_customers", ["customer_id"])

    op.create_table(
        "trip_agents",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("trip_id", sa.Integer(), sa.ForeignKey("trips.id", ondelete="CASCADE"), nullable=False),
        sa.Column("agent_id", sa.Integer(), sa.ForeignKey("agents.id", ondelete="CASCADE"), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("trip_id", "agent_id", name="uq_trip_agents_trip_agent"),
    )
    op.create_index("ix_trip_agents_trip_id", "trip_agents", ["trip_id"])
    op.create_index("ix_trip_agents_agent_id", "trip_agents", ["agent_id"])

    op.create_table(
        "trip_agent_customers",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("trip_id", sa.Integer(), sa.ForeignKey("trips.id", ondelete="CASCADE"), nullable=False),
        sa.Column("agent_id", sa.Integer(), sa.ForeignKey("agents.id", ondelete="CASCADE"), nullable=False),
        sa.Column("customer_id", sa.Integer(), sa.ForeignKey("customers.id", ondelete="CASCADE"), nullable=False),
        sa.Column("profit_sharing_rate", sa.Numeric(5, 2), server_default="0", nullable=False),
        *_timestamps(),
        sa.UniqueConstraint(
            "trip_id", "agent_id", "customer_id", name="uq_trip_agent_customers_trip_agent_customer"
        ),
    )
    op.create_index("ix_trip_agent_customers_trip_id", "trip_agent_customers", ["trip_id"])
    op.create_index("ix_trip_agent_customers_agent_id", "trip_agent_customers", ["agent_id"])
    op.create_index("ix_trip_agent_customers_customer_id", "trip_agent_customers", ["customer_id"])

    op.create_table(
        "trip_expenses",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("trip_id", sa.Integer(), sa.ForeignKey("trips.id", ondelete="CASCADE"), nullable=False),
        sa.Column("expense_type", sa.String(100), nullable=False),
        sa.Column("amount", sa.Numeric(15, 2), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("expense_date", sa.Date(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_trip_expenses_trip_id", "trip_expenses", ["trip_id"])

    # Ledger facts
    op.create_table(
        "transactions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("trip_id", sa.Integer(), sa.ForeignKey("trips.id", ondelete="CASCADE"), nullable=False),
        sa.Column("customer_id", sa.Integer(), sa.ForeignKey("customers.id"), nullable=False),
        sa.Column("agent_id", sa.Integer(), sa.ForeignKey("agents.id", ondelete="SET NULL"), nullable=True),
        sa.Column("amount", sa.Numeric(15, 2), nullable=False),
        sa.Column("transaction_type", sa.String(50), nullable=False),
        sa.Column("status", sa.String(20), server_default="completed", nullable=False),
        sa.Column("venue", sa.String(255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column(
            "recorded_by_staff_id", sa.Integer(), sa.ForeignKey("staff.id", ondelete="SET NULL"), nullable=True
        ),
        *_timestamps(),
    )
    op.create_index("ix_transactions_trip_id", "transactions", ["trip_id"])
    op.create_index("ix_transactions_customer_id", "transactions", ["customer_id"])
    op.create_index("ix_transactions_agent_id", "transactions", ["agent_id"])
    op.create_index("ix_transactions_status", "transactions", ["status"])

    op.create_table(
        "trip_rolling",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("trip_id", sa.Integer(), sa.ForeignKey("trips.id", ondelete="CASCADE"), nullable=False),
        sa.Column("customer_id", sa.Integer(), sa.ForeignKey("customers.id", ondelete="CASCADE"), nullable=False),
        sa.Column("staff_id", sa.Integer(), sa.ForeignKey("staff.id"), nullable=False),
        sa.Column("game_type", sa.String(100), nullable=False),
        sa.Column("rolling_amount", sa.Numeric(15, 2), nullable=False),
        sa.Column("commission_rate", sa.Numeric(6, 4), nullable=False),
        sa.Column("commission_earned", sa.Numeric(15, 2), nullable=False),
        sa.Column("venue", sa.String(255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_trip_rolling_trip_id", "trip_rolling", ["trip_id"])
    op.create_index("ix_trip_rolling_customer_id", "trip_rolling", ["customer_id"])

    # Derived aggregates
    op.create_table(
        "trip_customer_stats",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("trip_id", sa.Integer(), sa.ForeignKey("trips.id", ondelete="CASCADE"), nullable=False),
        sa.Column("customer_id", sa.Integer(), sa.ForeignKey("customers.id", ondelete="CASCADE"), nullable=False),
        _money("total_buy_in"),
        _money("total_cash_out"),
        _money("total_win_loss"),
        _money("rolling_amount"),
        _money("total_commission_earned"),
        _money("net_result"),
        *_timestamps(),
        sa.UniqueConstraint("trip_id", "customer_id", name="uq_trip_customer_stats_trip_customer"),
    )
    op.create_index("ix_trip_customer_stats_trip_id", "trip_customer_stats", ["trip_id"])
    op.create_index("ix_trip_customer_stats_customer_id", "trip_customer_stats", ["customer_id"])

    op.create_table(
        "trip_sharing",
        sa.Column("trip_id", sa.Integer(), sa.ForeignKey("trips.id", ondelete="CASCADE"), primary_key=True),
        _money("total_win_loss"),
        _money("total_buy_in"),
        _money("total_buy_out"),
        _money("total_rolling"),
        _money("total_expenses"),
        _money("total_rolling_commission"),
        _money("net_cash_flow"),
        _money("net_result"),
        _money("total_agent_share"),
        _money("company_share"),
        sa.Column("agent_share_percentage", sa.Numeric(5, 2), server_default="0", nullable=False),
        sa.Column("company_share_percentage", sa.Numeric(5, 2), server_default="0", nullable=False),
        sa.Column("agent_breakdown", sa.JSON(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "trip_agent_summary",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("trip_id", sa.Integer(), sa.ForeignKey("trips.id", ondelete="CASCADE"), nullable=False),
        sa.Column("agent_id", sa.Integer(), sa.ForeignKey("agents.id", ondelete="CASCADE"), nullable=False),
        sa.Column("customer_count", sa.Integer(), server_default="0", nullable=False),
        _money("total_win_loss"),
        _money("total_profit"),
        _money("total_commission"),
        _money("agent_profit_share"),
        *_timestamps(),
        sa.UniqueConstraint("trip_id", "agent_id", name="uq_trip_agent_summary_trip_agent"),
    )
    op.create_index("ix_trip_agent_summary_trip_id", "trip_agent_summary", ["trip_id"])
    op.create_index("ix_trip_agent_summary_agent_id", "trip_agent_summary", ["agent_id"])

    # Audit log table
    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column(
            "action",
            sa.Enum(
                "login",
                "logout",
                "add_transaction",
                "update_transaction",
                "delete_transaction",
                "add_rolling",
                "update_rolling",
                "delete_rolling",
                "add_expense",
                "update_expense",
                "delete_expense",
                "add_trip_customer",
                "remove_trip_customer",
                "add_trip_agent",
                "remove_trip_agent",
                "update_profit_sharing",
                "complete_trip",
                "recalculate",
                "update_settings",
                name="auditaction",
            ),
            nullable=False,
        ),
        sa.Column("target_type", sa.String(50), nullable=True),
        sa.Column("target_id", sa.Integer(), nullable=True),
        sa.Column("action_metadata", sa.JSON(), nullable=True),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_audit_logs_user_id", "audit_logs", ["user_id"])
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"])

    # System settings table
    op.create_table(
        "system_settings",
        sa.Column("key", sa.String(100), primary_key=True),
        sa.Column("value", sa.JSON(), nullable=False),
    )


def downgrade() -> None:
    """Drop all tables in reverse order."""
    op.drop_table("system_settings")
    op.drop_table("audit_logs")
    op.drop_table("trip_agent_summary")
    op.drop_table("trip_sharing")
    op.drop_table("trip_customer_stats")
    op.drop_table("trip_rolling")
    op.drop_table("transactions")
    op.drop_table("trip_expenses")
    op.drop_table("trip_agent_customers")
    op.drop_table("trip_agents")
    op.drop_table("trip_customers")
    op.drop_table("trips")
    op.drop_table("users")
    op.drop_table("customers")
    op.drop_table("staff")
    op.drop_table("agents")

    sa.Enum(name="auditaction").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="tripstatus").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="userrole").drop(op.get_bind(), checkfirst=True)
