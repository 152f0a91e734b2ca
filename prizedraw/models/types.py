import enum
from datetime import timezone

from sqlalchemy import Enum
from sqlalchemy.types import DateTime, TypeDecorator


class UTCDateTime(TypeDecorator):
    """A DateTime column that only ever hands out timezone-aware UTC values.

    SQLite drops tzinfo on the way in, so naive values read back are assumed
    to be UTC and naive values written are tagged UTC before conversion.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class DrawStatus(enum.StrEnum):
    DRAFT = "draft"
    ANNOUNCED = "announced"
    ACTIVE = "active"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"


class AwardType(enum.StrEnum):
    RANDOM_DRAW = "RANDOM_DRAW"
    COMMUNITY_SUPPORT = "COMMUNITY_SUPPORT"
    FIXED = "FIXED"

    @property
    def is_redrawable(self) -> bool:
        return self is AwardType.RANDOM_DRAW


class PrizeStatus(enum.StrEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class ClaimStatus(enum.StrEnum):
    PENDING = "PENDING"
    CLAIMED = "CLAIMED"
    EXPIRED = "EXPIRED"


class PayoutStatus(enum.StrEnum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    PAID = "PAID"
    BLOCKED = "BLOCKED"


class ClaimMethod(enum.StrEnum):
    WALLET_CREDIT = "wallet_credit"
    BANK_TRANSFER = "bank_transfer"


class MembershipStatus(enum.StrEnum):
    ACTIVE = "active"
    PENDING = "pending"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class ProfileRole(enum.StrEnum):
    MEMBER = "member"
    AGENT = "agent"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"
    BANNED = "banned"
    SUSPENDED = "suspended"

    @classmethod
    def excluded_from_draws(cls) -> list["ProfileRole"]:
        return [cls.BANNED, cls.SUSPENDED]


class NotificationType(enum.StrEnum):
    WINNER_ANNOUNCEMENT = "winner_announcement"
    REDRAW_WINNER = "redraw_winner"
    NON_WINNER = "non_winner"
    ADMIN_SUMMARY = "admin_summary"
    NEXT_DRAW_TEASER = "next_draw_teaser"


class NotificationStatus(enum.StrEnum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


class KycStatus(enum.StrEnum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


def enum_column(enum_cls: type[enum.Enum]) -> Enum:
    """Non-native enum column persisting member values rather than names."""
    return Enum(
        enum_cls,
        native_enum=False,
        length=32,
        values_callable=lambda members: [member.value for member in members],
    )
