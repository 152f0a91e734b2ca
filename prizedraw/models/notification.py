import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import JSON, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from prizedraw.database.database import Base
from prizedraw.models.types import (
    NotificationStatus,
    NotificationType,
    UTCDateTime,
    enum_column,
)


class PrizeNotification(Base):
    __tablename__ = "prize_notification_queue"

    id: Mapped[str] = mapped_column(
        String(length=36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    draw_id: Mapped[str] = mapped_column(
        String(length=36), ForeignKey(column="prize_draws.id"), nullable=False, index=True
    )
    recipient_user_id: Mapped[Optional[str]] = mapped_column(
        String(length=36), ForeignKey(column="profiles.id"), nullable=True
    )
    notification_type: Mapped[NotificationType] = mapped_column(
        enum_column(NotificationType), nullable=False
    )
    template_data: Mapped[dict] = mapped_column(JSON, default=dict)
    status: Mapped[NotificationStatus] = mapped_column(
        enum_column(NotificationStatus),
        default=NotificationStatus.PENDING,
        nullable=False,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=lambda: datetime.now(timezone.utc)
    )
    sent_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    def __repr__(self) -> str:
        return f"<PrizeNotification(id={self.id}, draw_id={self.draw_id}, recipient_user_id={self.recipient_user_id}, notification_type={self.notification_type}, status={self.status})>"
