import itertools
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Iterable, Optional
from unittest.mock import AsyncMock, MagicMock, Mock

from prizedraw.database.database import Database
from prizedraw.models.entry import PrizeDrawEntry
from prizedraw.models.member import Membership, Profile
from prizedraw.models.prize_draw import Prize, PrizeDraw
from prizedraw.models.types import (
    AwardType,
    ClaimStatus,
    DrawStatus,
    KycStatus,
    MembershipStatus,
    PayoutStatus,
    PrizeStatus,
    ProfileRole,
)
from prizedraw.models.verification import IdentityVerification, MemberBankDetails
from prizedraw.models.winner import PrizeDrawWinner

VALID_CONFIG = {
    "ENVIRONMENT": "dev",
    "DATABASE_URL": "sqlite+aiosqlite:///:memory:",
    "DRAW_TIMEZONE": "UTC",
    "CLAIM_WINDOW_DAYS": "14",
    "EXTERNAL_CALL_TIMEOUT_SECONDS": "30",
    "DRAW_EXECUTION_INTERVAL_MINUTES": "5",
    "EXPIRY_CHECK_HOUR": "2",
    "STUCK_DRAW_THRESHOLD_MINUTES": "60",
    "ENTRY_CUTOFF_MINUTES": "60",
}

FIXED_NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)

_id_counter = itertools.count(100000)


def next_id(prefix: str) -> str:
    return f"{prefix}-{next(_id_counter)}"


def create_mock_session() -> AsyncMock:
    """AsyncSession stand-in with the sync methods left synchronous."""
    session = AsyncMock()
    session.add = MagicMock()
    session.add_all = MagicMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.flush = AsyncMock()
    session.refresh = AsyncMock()
    session.execute = AsyncMock()
    session.close = AsyncMock()
    return session


def mock_scalars_result(items: Iterable[Any]) -> MagicMock:
    """Result whose .scalars().all() and .scalars().first() return items."""
    items = list(items)
    result = MagicMock()
    scalars = MagicMock()
    scalars.all.return_value = items
    scalars.first.return_value = items[0] if items else None
    result.scalars.return_value = scalars
    return result


def mock_rows_result(rows: Iterable[tuple]) -> MagicMock:
    rows = list(rows)
    result = MagicMock()
    result.all.return_value = rows
    return result


def mock_rowcount_result(rowcount: int) -> MagicMock:
    result = MagicMock()
    result.rowcount = rowcount
    return result


def create_test_winner(
    draw_id: str = "draw-1",
    prize_id: str = "prize-1",
    winner_user_id: str = "user-1",
    claim_status: ClaimStatus = ClaimStatus.PENDING,
    payout_status: PayoutStatus = PayoutStatus.PENDING,
    award_type: AwardType = AwardType.RANDOM_DRAW,
    claim_deadline_at: Optional[datetime] = None,
    **kwargs,
) -> PrizeDrawWinner:
    return PrizeDrawWinner(
        id=kwargs.pop("id", next_id("winner")),
        draw_id=draw_id,
        prize_id=prize_id,
        winner_user_id=winner_user_id,
        award_type=award_type,
        selected_at=kwargs.pop("selected_at", FIXED_NOW - timedelta(days=1)),
        claim_status=claim_status,
        claim_deadline_at=claim_deadline_at or FIXED_NOW + timedelta(days=13),
        payout_status=payout_status,
        **kwargs,
    )


def create_test_draw(
    status: DrawStatus = DrawStatus.ACTIVE,
    draw_date: date = date(2025, 6, 1),
    draw_time: time = time(10, 0),
    **kwargs,
) -> PrizeDraw:
    return PrizeDraw(
        id=kwargs.pop("id", next_id("draw")),
        draw_name=kwargs.pop("draw_name", "June Draw"),
        country_code=kwargs.pop("country_code", "BD"),
        draw_date=draw_date,
        draw_time=draw_time,
        status=status,
        estimated_prize_pool_percentage=kwargs.pop(
            "estimated_prize_pool_percentage", 30
        ),
        **kwargs,
    )


def create_test_prize(
    draw_id: str = "draw-1",
    number_of_winners: int = 1,
    award_type: AwardType = AwardType.RANDOM_DRAW,
    **kwargs,
) -> Prize:
    return Prize(
        id=kwargs.pop("id", next_id("prize")),
        draw_id=draw_id,
        title=kwargs.pop("title", "Cash Prize"),
        prize_type="CASH",
        award_type=award_type,
        prize_value_amount=kwargs.pop("prize_value_amount", 5000),
        currency_code="BDT",
        number_of_winners=number_of_winners,
        status=kwargs.pop("status", PrizeStatus.ACTIVE),
        created_at=kwargs.pop("created_at", FIXED_NOW - timedelta(days=10)),
        **kwargs,
    )


class DatabaseSeeder:
    """Inserts related rows into a real test database."""

    def __init__(self, database: Database, now: datetime = FIXED_NOW):
        self.database = database
        self.now = now

    async def add(self, *rows) -> None:
        async with self.database.get_session() as session:
            session.add_all(rows)
            await session.commit()

    async def member(
        self,
        country_code: str = "BD",
        role: ProfileRole = ProfileRole.MEMBER,
        membership_status: MembershipStatus = MembershipStatus.ACTIVE,
        end_date: Optional[datetime] = None,
        verified: bool = False,
    ) -> tuple[Profile, Membership]:
        profile_id = next_id("user")
        profile = Profile(
            id=profile_id,
            full_name=f"Member {profile_id}",
            email=f"{profile_id}@example.com",
            country_code=country_code,
            role=role,
            created_at=self.now - timedelta(days=90),
        )
        membership = Membership(
            id=next_id("membership"),
            user_id=profile_id,
            status=membership_status,
            start_date=self.now - timedelta(days=60),
            end_date=end_date or self.now + timedelta(days=3650),
            created_at=self.now - timedelta(days=60),
        )
        rows: list = [profile, membership]

        if verified:
            rows.append(
                IdentityVerification(
                    user_id=profile_id,
                    status=KycStatus.APPROVED,
                    reviewed_at=self.now - timedelta(days=30),
                    created_at=self.now - timedelta(days=31),
                )
            )
            rows.append(
                MemberBankDetails(
                    user_id=profile_id,
                    bank_name="City Bank",
                    account_holder_name=profile.full_name,
                    account_number_last4="1234",
                    is_verified=True,
                    verified_at=self.now - timedelta(days=29),
                )
            )

        await self.add(*rows)
        return profile, membership

    async def draw(self, status: DrawStatus = DrawStatus.ACTIVE, **kwargs) -> PrizeDraw:
        draw = create_test_draw(status=status, **kwargs)
        await self.add(draw)
        return draw

    async def prize(self, draw: PrizeDraw, **kwargs) -> Prize:
        prize = create_test_prize(draw_id=draw.id, **kwargs)
        await self.add(prize)
        return prize

    async def entry(self, draw: PrizeDraw, membership: Membership) -> PrizeDrawEntry:
        entry = PrizeDrawEntry(
            id=next_id("entry"),
            prize_draw_id=draw.id,
            user_id=membership.user_id,
            membership_id=membership.id,
            created_at=self.now - timedelta(days=5),
        )
        await self.add(entry)
        return entry

    async def entrants(self, draw: PrizeDraw, count: int, **member_kwargs) -> list[str]:
        user_ids = []
        for _ in range(count):
            profile, membership = await self.member(**member_kwargs)
            await self.entry(draw, membership)
            user_ids.append(profile.id)
        return user_ids


def create_mock_draw(**kwargs) -> Mock:
    draw = Mock(spec=PrizeDraw)
    draw.id = kwargs.get("id", next_id("draw"))
    draw.draw_name = kwargs.get("draw_name", "June Draw")
    draw.created_by = kwargs.get("created_by", "admin-1")
    draw.status = kwargs.get("status", DrawStatus.ACTIVE)
    return draw


def mock_session_context(session: AsyncMock) -> MagicMock:
    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=session)
    context.__aexit__ = AsyncMock(return_value=False)
    return context


def create_mock_database(session: Optional[AsyncMock] = None) -> MagicMock:
    """Stand-in for the module level ``db`` whose get_session yields ``session``."""
    database = MagicMock()
    database.get_session.return_value = mock_session_context(
        session or create_mock_session()
    )
    database.dispose = AsyncMock()
    database.create_all = AsyncMock()
    return database
