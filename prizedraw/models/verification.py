import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from prizedraw.database.database import Base
from prizedraw.models.types import KycStatus, UTCDateTime, enum_column


class IdentityVerification(Base):
    __tablename__ = "identity_verifications"

    id: Mapped[str] = mapped_column(
        String(length=36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    user_id: Mapped[str] = mapped_column(
        String(length=36), ForeignKey(column="profiles.id"), nullable=False, index=True
    )
    status: Mapped[KycStatus] = mapped_column(
        enum_column(KycStatus), default=KycStatus.PENDING, nullable=False
    )
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=lambda: datetime.now(timezone.utc)
    )


class MemberBankDetails(Base):
    __tablename__ = "member_bank_details"

    id: Mapped[str] = mapped_column(
        String(length=36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    user_id: Mapped[str] = mapped_column(
        String(length=36),
        ForeignKey(column="profiles.id"),
        unique=True,
        nullable=False,
    )
    bank_name: Mapped[str] = mapped_column(String(length=255), nullable=False)
    account_holder_name: Mapped[str] = mapped_column(String(length=255), nullable=False)
    account_number_last4: Mapped[str] = mapped_column(String(length=4), nullable=False)
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False)
    verified_by: Mapped[Optional[str]] = mapped_column(
        String(length=36), ForeignKey(column="profiles.id"), nullable=True
    )
    verified_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
