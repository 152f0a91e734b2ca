import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from prizedraw.database.database import Base
from prizedraw.models.types import (
    AwardType,
    ClaimMethod,
    ClaimStatus,
    PayoutStatus,
    UTCDateTime,
    enum_column,
)


class PrizeDrawWinner(Base):
    __tablename__ = "prize_draw_winners"
    __table_args__ = (
        Index("ix_prize_draw_winners_claim", "draw_id", "claim_status", "claim_deadline_at"),
        Index("ix_prize_draw_winners_prize", "draw_id", "prize_id"),
    )

    id: Mapped[str] = mapped_column(
        String(length=36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    draw_id: Mapped[str] = mapped_column(
        String(length=36), ForeignKey(column="prize_draws.id"), nullable=False
    )
    prize_id: Mapped[str] = mapped_column(
        String(length=36), ForeignKey(column="prize_draw_prizes.id"), nullable=False
    )
    winner_user_id: Mapped[str] = mapped_column(
        String(length=36), ForeignKey(column="profiles.id"), nullable=False, index=True
    )
    membership_id: Mapped[Optional[str]] = mapped_column(
        String(length=36), ForeignKey(column="memberships.id"), nullable=True
    )
    # copied from the prize when selected, later prize edits must not change it
    award_type: Mapped[AwardType] = mapped_column(
        enum_column(AwardType), nullable=False
    )
    selected_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=lambda: datetime.now(timezone.utc)
    )
    selected_by_admin_id: Mapped[Optional[str]] = mapped_column(
        String(length=36), ForeignKey(column="profiles.id"), nullable=True
    )
    replaced_winner_id: Mapped[Optional[str]] = mapped_column(
        String(length=36), ForeignKey(column="prize_draw_winners.id"), nullable=True
    )
    claim_status: Mapped[ClaimStatus] = mapped_column(
        enum_column(ClaimStatus), default=ClaimStatus.PENDING, nullable=False
    )
    claim_deadline_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    claimed_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    claim_method: Mapped[Optional[ClaimMethod]] = mapped_column(
        enum_column(ClaimMethod), nullable=True
    )
    expired_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    payout_status: Mapped[PayoutStatus] = mapped_column(
        enum_column(PayoutStatus), default=PayoutStatus.PENDING, nullable=False
    )
    paid_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    blocked_reason: Mapped[Optional[str]] = mapped_column(
        String(length=255), nullable=True
    )

    def __repr__(self) -> str:
        return f"<PrizeDrawWinner(id={self.id}, draw_id={self.draw_id}, prize_id={self.prize_id}, winner_user_id={self.winner_user_id}, award_type={self.award_type}, claim_status={self.claim_status}, claim_deadline_at={self.claim_deadline_at}, payout_status={self.payout_status})>"
