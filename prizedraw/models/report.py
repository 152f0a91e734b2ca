import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import JSON, Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from prizedraw.database.database import Base
from prizedraw.models.types import UTCDateTime


class PrizeDrawReport(Base):
    __tablename__ = "prize_draw_reports"

    id: Mapped[str] = mapped_column(
        String(length=36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    draw_id: Mapped[str] = mapped_column(
        String(length=36), ForeignKey(column="prize_draws.id"), unique=True, nullable=False
    )
    total_entries: Mapped[int] = mapped_column(Integer, default=0)
    total_eligible: Mapped[int] = mapped_column(Integer, default=0)
    total_prizes: Mapped[int] = mapped_column(Integer, default=0)
    total_winners: Mapped[int] = mapped_column(Integer, default=0)
    total_prize_value: Mapped[int] = mapped_column(Integer, default=0)
    winner_ids: Mapped[list] = mapped_column(JSON, default=list)
    auto_executed: Mapped[bool] = mapped_column(Boolean, default=False)
    executed_by: Mapped[Optional[str]] = mapped_column(
        String(length=36), ForeignKey(column="profiles.id"), nullable=True
    )
    execution_timestamp: Mapped[datetime] = mapped_column(
        UTCDateTime, default=lambda: datetime.now(timezone.utc)
    )
    report_signature: Mapped[str] = mapped_column(String(length=64), nullable=False)

    def __repr__(self) -> str:
        return f"<PrizeDrawReport(draw_id={self.draw_id}, total_entries={self.total_entries}, total_winners={self.total_winners}, auto_executed={self.auto_executed})>"
