import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from prizedraw.models.member import Membership, Profile
from prizedraw.models.types import MembershipStatus, ProfileRole

logger = logging.getLogger(__name__)


@dataclass
class MembershipFacts:
    membership_id: Optional[str]
    status: Optional[MembershipStatus]
    end_date: Optional[datetime]

    def is_active(self, now: datetime) -> bool:
        return (
            self.status == MembershipStatus.ACTIVE
            and self.end_date is not None
            and self.end_date >= now
        )


class MembershipService:
    """Read-only view over membership and profile standing."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def close(self):
        await self.db.close()

    async def get_membership_facts(self, user_id: str) -> MembershipFacts:
        """Most recent membership for the user, preferring active rows."""
        result = await self.db.execute(
            select(Membership)
            .where(Membership.user_id == user_id)
            .order_by(Membership.end_date.desc())
        )
        memberships = list(result.scalars().all())

        if not memberships:
            return MembershipFacts(None, None, None)

        membership = next(
            (m for m in memberships if m.status == MembershipStatus.ACTIVE),
            memberships[0],
        )
        return MembershipFacts(membership.id, membership.status, membership.end_date)

    async def get_profile_standing(self, user_id: str) -> ProfileRole | None:
        result = await self.db.execute(
            select(Profile.role).where(Profile.id == user_id)
        )
        return result.scalars().first()

    async def count_active_members(self, country_code: str, now: datetime) -> int:
        result = await self.db.execute(
            select(func.count(func.distinct(Membership.user_id)))
            .join(Profile, Profile.id == Membership.user_id)
            .where(
                Profile.country_code == country_code,
                Membership.status == MembershipStatus.ACTIVE,
                Membership.end_date >= now,
            )
        )
        return result.scalar_one() or 0

    async def count_new_members_since(self, country_code: str, since: datetime) -> int:
        result = await self.db.execute(
            select(func.count(Membership.id))
            .join(Profile, Profile.id == Membership.user_id)
            .where(
                Profile.country_code == country_code,
                Membership.status == MembershipStatus.ACTIVE,
                Membership.created_at >= since,
            )
        )
        return result.scalar_one() or 0
