import uuid
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from sqlalchemy import Boolean, Date, ForeignKey, Integer, String, Text, Time
from sqlalchemy.orm import Mapped, mapped_column

from prizedraw.database.database import Base
from prizedraw.models.types import (
    AwardType,
    DrawStatus,
    PrizeStatus,
    UTCDateTime,
    enum_column,
)


class PrizeDraw(Base):
    __tablename__ = "prize_draws"

    id: Mapped[str] = mapped_column(
        String(length=36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    draw_name: Mapped[str] = mapped_column(String(length=255), nullable=False)
    country_code: Mapped[str] = mapped_column(String(length=2), default="BD")
    draw_date: Mapped[date] = mapped_column(Date, nullable=False)
    draw_time: Mapped[time] = mapped_column(Time, nullable=False)
    status: Mapped[DrawStatus] = mapped_column(
        enum_column(DrawStatus), default=DrawStatus.DRAFT, nullable=False, index=True
    )
    created_by: Mapped[Optional[str]] = mapped_column(
        String(length=36), ForeignKey(column="profiles.id"), nullable=True
    )
    announced_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    execution_started_at: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime, nullable=True
    )
    executed_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    entry_cutoff_time: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime, nullable=True
    )
    fairness_locked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    forecast_member_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    estimated_prize_pool_percentage: Mapped[int] = mapped_column(Integer, default=30)
    estimated_prize_pool_amount: Mapped[Optional[int]] = mapped_column(
        Integer, nullable=True
    )
    estimated_prize_pool_currency: Mapped[Optional[str]] = mapped_column(
        String(length=3), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=lambda: datetime.now(timezone.utc)
    )

    def scheduled_at(self, tz_name: str = "UTC") -> datetime:
        """Draw date and time combined in ``tz_name`` and converted to UTC."""
        local = datetime.combine(self.draw_date, self.draw_time, tzinfo=ZoneInfo(tz_name))
        return local.astimezone(timezone.utc)

    def is_due(self, now: datetime, tz_name: str = "UTC") -> bool:
        return (
            self.status == DrawStatus.ACTIVE
            and self.executed_at is None
            and self.scheduled_at(tz_name) <= now
        )

    def entry_cutoff_at(self, tz_name: str = "UTC", minutes: int = 60) -> datetime:
        """Explicit cutoff if one was set, otherwise ``minutes`` before the draw."""
        if self.entry_cutoff_time:
            return self.entry_cutoff_time
        return self.scheduled_at(tz_name) - timedelta(minutes=minutes)

    def is_entry_locked(
        self, now: datetime, tz_name: str = "UTC", minutes: int = 60
    ) -> bool:
        if self.fairness_locked:
            return True
        return now >= self.entry_cutoff_at(tz_name, minutes)

    def __repr__(self) -> str:
        return f"<PrizeDraw(id={self.id}, draw_name={self.draw_name}, country_code={self.country_code}, status={self.status}, draw_date={self.draw_date}, draw_time={self.draw_time}, executed_at={self.executed_at})>"


class Prize(Base):
    __tablename__ = "prize_draw_prizes"

    id: Mapped[str] = mapped_column(
        String(length=36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    draw_id: Mapped[str] = mapped_column(
        String(length=36), ForeignKey(column="prize_draws.id"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(length=255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    prize_type: Mapped[str] = mapped_column(String(length=50), default="CASH")
    award_type: Mapped[AwardType] = mapped_column(
        enum_column(AwardType), default=AwardType.RANDOM_DRAW, nullable=False
    )
    prize_value_amount: Mapped[int] = mapped_column(Integer, default=0)
    currency_code: Mapped[str] = mapped_column(String(length=3), default="BDT")
    number_of_winners: Mapped[int] = mapped_column(Integer, default=1)
    status: Mapped[PrizeStatus] = mapped_column(
        enum_column(PrizeStatus), default=PrizeStatus.ACTIVE, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=lambda: datetime.now(timezone.utc)
    )

    def __repr__(self) -> str:
        return f"<Prize(id={self.id}, draw_id={self.draw_id}, title={self.title}, award_type={self.award_type}, number_of_winners={self.number_of_winners}, status={self.status})>"
