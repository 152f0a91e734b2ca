"""create prize draw tables

Revision ID: 4c1d2a9e7b30
Revises:
Create Date: 2026-02-14 10:02:11.184503

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "4c1d2a9e7b30"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _enum(name: str, *values: str) -> sa.Enum:
    return sa.Enum(*values, name=name, native_enum=False, length=32)


def upgrade() -> None:
    op.create_table(
        "profiles",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("country_code", sa.String(length=2), nullable=False),
        sa.Column(
            "role",
            _enum(
                "profilerole",
                "member",
                "agent",
                "admin",
                "super_admin",
                "banned",
                "suspended",
            ),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )

    op.create_table(
        "country_settings",
        sa.Column("country_code", sa.String(length=2), nullable=False),
        sa.Column("membership_fee_amount", sa.Integer(), nullable=False),
        sa.Column("currency_code", sa.String(length=3), nullable=False),
        sa.PrimaryKeyConstraint("country_code"),
    )

    op.create_table(
        "memberships",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column(
            "status",
            _enum("membershipstatus", "active", "pending", "expired", "cancelled"),
            nullable=False,
        ),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["profiles.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_memberships_user_id", "memberships", ["user_id"])

    op.create_table(
        "prize_draws",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("draw_name", sa.String(length=255), nullable=False),
        sa.Column("country_code", sa.String(length=2), nullable=False),
        sa.Column("draw_date", sa.Date(), nullable=False),
        sa.Column("draw_time", sa.Time(), nullable=False),
        sa.Column(
            "status",
            _enum(
                "drawstatus",
                "draft",
                "announced",
                "active",
                "executing",
                "completed",
                "failed",
            ),
            nullable=False,
        ),
        sa.Column("created_by", sa.String(length=36), nullable=True),
        sa.Column("announced_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("execution_started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("executed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("entry_cutoff_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "fairness_locked", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column("forecast_member_count", sa.Integer(), nullable=True),
        sa.Column("estimated_prize_pool_percentage", sa.Integer(), nullable=False),
        sa.Column("estimated_prize_pool_amount", sa.Integer(), nullable=True),
        sa.Column("estimated_prize_pool_currency", sa.String(length=3), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["created_by"], ["profiles.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_prize_draws_status", "prize_draws", ["status"])

    op.create_table(
        "prize_draw_prizes",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("draw_id", sa.String(length=36), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("prize_type", sa.String(length=50), nullable=False),
        sa.Column(
            "award_type",
            _enum("awardtype", "RANDOM_DRAW", "COMMUNITY_SUPPORT", "FIXED"),
            nullable=False,
        ),
        sa.Column("prize_value_amount", sa.Integer(), nullable=False),
        sa.Column("currency_code", sa.String(length=3), nullable=False),
        sa.Column("number_of_winners", sa.Integer(), nullable=False),
        sa.Column("status", _enum("prizestatus", "active", "inactive"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["draw_id"], ["prize_draws.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_prize_draw_prizes_draw_id", "prize_draw_prizes", ["draw_id"])

    op.create_table(
        "prize_draw_entries",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("prize_draw_id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("membership_id", sa.String(length=36), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["prize_draw_id"], ["prize_draws.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["profiles.id"]),
        sa.ForeignKeyConstraint(["membership_id"], ["memberships.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "prize_draw_id", "user_id", name="uq_prize_draw_entry_user"
        ),
    )
    op.create_index(
        "ix_prize_draw_entries_prize_draw_id", "prize_draw_entries", ["prize_draw_id"]
    )

    op.create_table(
        "prize_draw_winners",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("draw_id", sa.String(length=36), nullable=False),
        sa.Column("prize_id", sa.String(length=36), nullable=False),
        sa.Column("winner_user_id", sa.String(length=36), nullable=False),
        sa.Column("membership_id", sa.String(length=36), nullable=True),
        sa.Column(
            "award_type",
            _enum("awardtype", "RANDOM_DRAW", "COMMUNITY_SUPPORT", "FIXED"),
            nullable=False,
        ),
        sa.Column("selected_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("selected_by_admin_id", sa.String(length=36), nullable=True),
        sa.Column("replaced_winner_id", sa.String(length=36), nullable=True),
        sa.Column(
            "claim_status",
            _enum("claimstatus", "PENDING", "CLAIMED", "EXPIRED"),
            nullable=False,
        ),
        sa.Column("claim_deadline_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("claimed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "claim_method",
            _enum("claimmethod", "wallet_credit", "bank_transfer"),
            nullable=True,
        ),
        sa.Column("expired_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "payout_status",
            _enum("payoutstatus", "PENDING", "PROCESSING", "PAID", "BLOCKED"),
            nullable=False,
        ),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("blocked_reason", sa.String(length=255), nullable=True),
        sa.ForeignKeyConstraint(["draw_id"], ["prize_draws.id"]),
        sa.ForeignKeyConstraint(["prize_id"], ["prize_draw_prizes.id"]),
        sa.ForeignKeyConstraint(["winner_user_id"], ["profiles.id"]),
        sa.ForeignKeyConstraint(["membership_id"], ["memberships.id"]),
        sa.ForeignKeyConstraint(["selected_by_admin_id"], ["profiles.id"]),
        sa.ForeignKeyConstraint(["replaced_winner_id"], ["prize_draw_winners.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_prize_draw_winners_claim",
        "prize_draw_winners",
        ["draw_id", "claim_status", "claim_deadline_at"],
    )
    op.create_index(
        "ix_prize_draw_winners_prize", "prize_draw_winners", ["draw_id", "prize_id"]
    )
    op.create_index(
        "ix_prize_draw_winners_winner_user_id", "prize_draw_winners", ["winner_user_id"]
    )

    op.create_table(
        "prize_draw_reports",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("draw_id", sa.String(length=36), nullable=False),
        sa.Column("total_entries", sa.Integer(), nullable=False),
        sa.Column("total_eligible", sa.Integer(), nullable=False),
        sa.Column("total_prizes", sa.Integer(), nullable=False),
        sa.Column("total_winners", sa.Integer(), nullable=False),
        sa.Column("total_prize_value", sa.Integer(), nullable=False),
        sa.Column("winner_ids", sa.JSON(), nullable=False),
        sa.Column("auto_executed", sa.Boolean(), nullable=False),
        sa.Column("executed_by", sa.String(length=36), nullable=True),
        sa.Column("execution_timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("report_signature", sa.String(length=64), nullable=False),
        sa.ForeignKeyConstraint(["draw_id"], ["prize_draws.id"]),
        sa.ForeignKeyConstraint(["executed_by"], ["profiles.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("draw_id"),
    )

    op.create_table(
        "prize_notification_queue",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("draw_id", sa.String(length=36), nullable=False),
        sa.Column("recipient_user_id", sa.String(length=36), nullable=True),
        sa.Column(
            "notification_type",
            _enum(
                "notificationtype",
                "winner_announcement",
                "redraw_winner",
                "non_winner",
                "admin_summary",
                "next_draw_teaser",
            ),
            nullable=False,
        ),
        sa.Column("template_data", sa.JSON(), nullable=False),
        sa.Column(
            "status",
            _enum("notificationstatus", "pending", "sent", "failed"),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["draw_id"], ["prize_draws.id"]),
        sa.ForeignKeyConstraint(["recipient_user_id"], ["profiles.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_prize_notification_queue_draw_id", "prize_notification_queue", ["draw_id"]
    )
    op.create_index(
        "ix_prize_notification_queue_status", "prize_notification_queue", ["status"]
    )

    op.create_table(
        "identity_verifications",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column(
            "status",
            _enum("kycstatus", "PENDING", "APPROVED", "REJECTED"),
            nullable=False,
        ),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["profiles.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_identity_verifications_user_id", "identity_verifications", ["user_id"]
    )

    op.create_table(
        "member_bank_details",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("bank_name", sa.String(length=255), nullable=False),
        sa.Column("account_holder_name", sa.String(length=255), nullable=False),
        sa.Column("account_number_last4", sa.String(length=4), nullable=False),
        sa.Column("is_verified", sa.Boolean(), nullable=False),
        sa.Column("verified_by", sa.String(length=36), nullable=True),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["profiles.id"]),
        sa.ForeignKeyConstraint(["verified_by"], ["profiles.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id"),
    )

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("action", sa.String(length=64), nullable=False),
        sa.Column("actor_id", sa.String(length=36), nullable=True),
        sa.Column("target_type", sa.String(length=64), nullable=False),
        sa.Column("target_id", sa.String(length=36), nullable=True),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_target_id", "audit_logs", ["target_id"])


def downgrade() -> None:
    op.drop_index("ix_audit_logs_target_id", table_name="audit_logs")
    op.drop_index("ix_audit_logs_action", table_name="audit_logs")
    op.drop_table("audit_logs")
    op.drop_table("member_bank_details")
    op.drop_index(
        "ix_identity_verifications_user_id", table_name="identity_verifications"
    )
    op.drop_table("identity_verifications")
    op.drop_index(
        "ix_prize_notification_queue_status", table_name="prize_notification_queue"
    )
    op.drop_index(
        "ix_prize_notification_queue_draw_id", table_name="prize_notification_queue"
    )
    op.drop_table("prize_notification_queue")
    op.drop_table("prize_draw_reports")
    op.drop_index(
        "ix_prize_draw_winners_winner_user_id", table_name="prize_draw_winners"
    )
    op.drop_index("ix_prize_draw_winners_prize", table_name="prize_draw_winners")
    op.drop_index("ix_prize_draw_winners_claim", table_name="prize_draw_winners")
    op.drop_table("prize_draw_winners")
    op.drop_index(
        "ix_prize_draw_entries_prize_draw_id", table_name="prize_draw_entries"
    )
    op.drop_table("prize_draw_entries")
    op.drop_index("ix_prize_draw_prizes_draw_id", table_name="prize_draw_prizes")
    op.drop_table("prize_draw_prizes")
    op.drop_index("ix_prize_draws_status", table_name="prize_draws")
    op.drop_table("prize_draws")
    op.drop_index("ix_memberships_user_id", table_name="memberships")
    op.drop_table("memberships")
    op.drop_table("country_settings")
    op.drop_table("profiles")
