import enum
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from prizedraw.database.database import Base
from prizedraw.models.types import UTCDateTime


class AuditAction(enum.StrEnum):
    DRAW_CREATED = "draw_created"
    DRAW_ANNOUNCED = "draw_announced"
    DRAW_ACTIVATED = "draw_activated"
    DRAW_EXECUTED = "draw_executed"
    DRAW_FAILED = "draw_failed"
    WINNERS_SELECTED = "winners_selected"
    PRIZES_EXPIRED = "prizes_expired"
    WINNER_REDRAWN = "winner_redrawn"
    PRIZE_CLAIMED = "prize_claimed"
    PAYOUT_PAID = "payout_paid"
    PAYOUT_BLOCKED = "payout_blocked"


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id: Mapped[str] = mapped_column(
        String(length=36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    action: Mapped[str] = mapped_column(String(length=64), nullable=False, index=True)
    actor_id: Mapped[Optional[str]] = mapped_column(String(length=36), nullable=True)
    target_type: Mapped[str] = mapped_column(String(length=64), nullable=False)
    target_id: Mapped[Optional[str]] = mapped_column(
        String(length=36), nullable=True, index=True
    )
    details: Mapped[dict] = mapped_column(JSON, default=dict)
    timestamp: Mapped[datetime] = mapped_column(
        UTCDateTime, default=lambda: datetime.now(timezone.utc)
    )
