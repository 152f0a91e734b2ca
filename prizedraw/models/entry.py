import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from prizedraw.database.database import Base
from prizedraw.models.types import UTCDateTime


class PrizeDrawEntry(Base):
    __tablename__ = "prize_draw_entries"
    __table_args__ = (
        UniqueConstraint("prize_draw_id", "user_id", name="uq_prize_draw_entry_user"),
    )

    id: Mapped[str] = mapped_column(
        String(length=36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    prize_draw_id: Mapped[str] = mapped_column(
        String(length=36), ForeignKey(column="prize_draws.id"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(
        String(length=36), ForeignKey(column="profiles.id"), nullable=False
    )
    membership_id: Mapped[Optional[str]] = mapped_column(
        String(length=36), ForeignKey(column="memberships.id"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=lambda: datetime.now(timezone.utc)
    )
