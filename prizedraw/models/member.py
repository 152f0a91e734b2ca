import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from prizedraw.database.database import Base
from prizedraw.models.types import (
    MembershipStatus,
    ProfileRole,
    UTCDateTime,
    enum_column,
)


class Profile(Base):
    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(
        String(length=36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    full_name: Mapped[Optional[str]] = mapped_column(String(length=255), nullable=True)
    email: Mapped[str] = mapped_column(String(length=255), unique=True, nullable=False)
    country_code: Mapped[str] = mapped_column(String(length=2), default="BD")
    role: Mapped[ProfileRole] = mapped_column(
        enum_column(ProfileRole), default=ProfileRole.MEMBER, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=lambda: datetime.now(timezone.utc)
    )

    def __repr__(self) -> str:
        return f"<Profile(id={self.id}, email={self.email}, country_code={self.country_code}, role={self.role})>"


class Membership(Base):
    __tablename__ = "memberships"

    id: Mapped[str] = mapped_column(
        String(length=36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    user_id: Mapped[str] = mapped_column(
        String(length=36), ForeignKey(column="profiles.id"), nullable=False, index=True
    )
    status: Mapped[MembershipStatus] = mapped_column(
        enum_column(MembershipStatus), default=MembershipStatus.PENDING, nullable=False
    )
    start_date: Mapped[datetime] = mapped_column(
        UTCDateTime, default=lambda: datetime.now(timezone.utc)
    )
    end_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=lambda: datetime.now(timezone.utc)
    )

    def __repr__(self) -> str:
        return f"<Membership(id={self.id}, user_id={self.user_id}, status={self.status}, end_date={self.end_date})>"


class CountrySetting(Base):
    __tablename__ = "country_settings"

    country_code: Mapped[str] = mapped_column(String(length=2), primary_key=True)
    membership_fee_amount: Mapped[int] = mapped_column(Integer, default=0)
    currency_code: Mapped[str] = mapped_column(String(length=3), default="BDT")
