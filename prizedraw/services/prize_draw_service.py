import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from prizedraw.common.logging_utils import log_database_operation
from prizedraw.config import CONFIG
from prizedraw.exceptions.draw_exceptions import (
    DrawNotFoundException,
    PrizeDrawServiceException,
)
from prizedraw.models.audit_log import AuditAction
from prizedraw.models.entry import PrizeDrawEntry
from prizedraw.models.member import CountrySetting, Membership
from prizedraw.models.prize_draw import Prize, PrizeDraw
from prizedraw.models.types import (
    AwardType,
    ClaimStatus,
    DrawStatus,
    MembershipStatus,
    PrizeStatus,
)
from prizedraw.models.winner import PrizeDrawWinner
from prizedraw.services.audit_service import AuditService
from prizedraw.services.membership_service import MembershipService

logger = logging.getLogger(__name__)

GROWTH_WINDOW_DAYS = 30
DEFAULT_PRIZE_POOL_PERCENT = 30


@dataclass
class DrawServiceResponse:
    status: bool
    message: str
    draw: Optional[PrizeDraw] = None


@dataclass
class EntryResponse:
    status: bool
    message: str
    entered: bool = False
    entered_at: Optional[datetime] = None


@dataclass
class ForecastResult:
    forecast_member_count: int
    current_member_count: int
    growth_rate: float


@dataclass
class PrizePoolEstimate:
    amount: int
    currency_code: str
    percent: int
    forecast_member_count: int


@dataclass
class DrawExecutionStatus:
    status: str
    executed_at: Optional[datetime] = None
    winners_selected: int = 0
    total_awarded: int = 0


@dataclass
class FairnessLockStatus:
    is_locked: bool
    cutoff_time: datetime
    status: DrawStatus
    can_enter: bool


class PrizeDrawService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.membership_service = MembershipService(db)
        self.audit_service = AuditService(db)

    async def close(self):
        await self.db.close()

    async def get_draw(self, draw_id: str) -> PrizeDraw | None:
        result = await self.db.execute(select(PrizeDraw).where(PrizeDraw.id == draw_id))
        return result.scalars().first()

    async def require_draw(self, draw_id: str) -> PrizeDraw:
        draw = await self.get_draw(draw_id)
        if not draw:
            raise DrawNotFoundException(f"Prize draw {draw_id} not found")
        return draw

    async def get_active_draw(self, country_code: str) -> PrizeDraw | None:
        """Earliest announced or active draw for the country."""
        result = await self.db.execute(
            select(PrizeDraw)
            .where(
                PrizeDraw.country_code == country_code,
                PrizeDraw.status.in_([DrawStatus.ANNOUNCED, DrawStatus.ACTIVE]),
            )
            .order_by(PrizeDraw.draw_date, PrizeDraw.draw_time)
        )
        return result.scalars().first()

    async def create_draw(
        self,
        draw_name: str,
        country_code: str,
        draw_date: date,
        draw_time: time,
        created_by: Optional[str] = None,
    ) -> PrizeDraw:
        if not draw_name.strip():
            raise PrizeDrawServiceException("Draw name is required")

        draw = PrizeDraw(
            draw_name=draw_name.strip(),
            country_code=country_code,
            draw_date=draw_date,
            draw_time=draw_time,
            status=DrawStatus.DRAFT,
            created_by=created_by,
            created_at=datetime.now(timezone.utc),
        )
        self.db.add(draw)
        await self.db.flush()

        self.audit_service.append(
            AuditAction.DRAW_CREATED,
            created_by,
            "prize_draw",
            draw.id,
            {"draw_name": draw.draw_name, "draw_date": draw_date.isoformat()},
        )
        await self.db.commit()

        logger.info(f"Created draft draw {draw.draw_name} for {country_code}")
        return draw

    async def create_prize(
        self,
        draw_id: str,
        title: str,
        prize_value_amount: int,
        number_of_winners: int = 1,
        award_type: AwardType = AwardType.RANDOM_DRAW,
        description: Optional[str] = None,
        prize_type: str = "CASH",
        currency_code: str = "BDT",
    ) -> Prize:
        if number_of_winners < 1:
            raise PrizeDrawServiceException("Number of winners must be a positive integer")

        if prize_value_amount < 0:
            raise PrizeDrawServiceException("Prize value can not be negative")

        await self.require_draw(draw_id)

        prize = Prize(
            draw_id=draw_id,
            title=title,
            description=description,
            prize_type=prize_type,
            award_type=award_type,
            prize_value_amount=prize_value_amount,
            currency_code=currency_code,
            number_of_winners=number_of_winners,
            status=PrizeStatus.ACTIVE,
            created_at=datetime.now(timezone.utc),
        )
        self.db.add(prize)
        await self.db.commit()

        return prize

    async def list_prizes_for_draw(
        self, draw_id: str, active_only: bool = False
    ) -> list[Prize]:
        query = select(Prize).where(Prize.draw_id == draw_id)
        if active_only:
            query = query.where(Prize.status == PrizeStatus.ACTIVE)

        result = await self.db.execute(query.order_by(Prize.created_at.desc()))
        return list(result.scalars().all())

    async def list_active_prizes_for_member_draw(self, country_code: str) -> list[Prize]:
        """Active prizes of the country's current draw, largest first."""
        draw = await self.get_active_draw(country_code)
        if not draw:
            return []

        result = await self.db.execute(
            select(Prize)
            .where(Prize.draw_id == draw.id, Prize.status == PrizeStatus.ACTIVE)
            .order_by(Prize.prize_value_amount.desc(), Prize.created_at)
        )
        return list(result.scalars().all())

    async def calculate_forecast_member_count(
        self, country_code: str, draw_date: date, now: Optional[datetime] = None
    ) -> ForecastResult:
        """Current active members plus the last 30 days' daily growth rate
        projected forward to the draw date."""
        now = now or datetime.now(timezone.utc)
        draw_start = datetime.combine(draw_date, time.min, tzinfo=timezone.utc)
        days_until_draw = math.ceil((draw_start - now).total_seconds() / 86400)

        current = await self.membership_service.count_active_members(country_code, now)
        new_members = await self.membership_service.count_new_members_since(
            country_code, now - timedelta(days=GROWTH_WINDOW_DAYS)
        )

        daily_growth_rate = new_members / GROWTH_WINDOW_DAYS
        expected_growth = max(0, days_until_draw) * daily_growth_rate

        return ForecastResult(
            forecast_member_count=round(current + expected_growth),
            current_member_count=current,
            growth_rate=round(daily_growth_rate, 2),
        )

    async def calculate_estimated_prize_pool(
        self,
        country_code: str,
        draw_date: date,
        percent: int = DEFAULT_PRIZE_POOL_PERCENT,
        now: Optional[datetime] = None,
    ) -> PrizePoolEstimate | None:
        result = await self.db.execute(
            select(CountrySetting).where(CountrySetting.country_code == country_code)
        )
        settings: CountrySetting | None = result.scalars().first()

        if not settings:
            logger.warning(f"No country settings for {country_code}")
            return None

        forecast = await self.calculate_forecast_member_count(country_code, draw_date, now)
        revenue = forecast.forecast_member_count * (settings.membership_fee_amount or 0)

        return PrizePoolEstimate(
            amount=round(revenue * percent / 100),
            currency_code=settings.currency_code or "BDT",
            percent=percent,
            forecast_member_count=forecast.forecast_member_count,
        )

    async def announce_draw(
        self, draw_id: str, admin_id: str, now: Optional[datetime] = None
    ) -> DrawServiceResponse:
        """Move a draft draw to announced and snapshot its forecast.

        The forecast and pool figures are informational, payouts never read them.
        """
        now = now or datetime.now(timezone.utc)

        draw = await self.get_draw(draw_id)
        if not draw:
            return DrawServiceResponse(False, "Draw not found")

        if draw.status != DrawStatus.DRAFT:
            return DrawServiceResponse(
                False, f"Only draft draws can be announced (current: {draw.status})", draw
            )

        estimate = await self.calculate_estimated_prize_pool(
            draw.country_code, draw.draw_date, draw.estimated_prize_pool_percentage, now
        )
        if estimate is None:
            return DrawServiceResponse(False, "Failed to calculate prize pool", draw)

        result = await self.db.execute(
            update(PrizeDraw)
            .where(PrizeDraw.id == draw_id, PrizeDraw.status == DrawStatus.DRAFT)
            .values(
                status=DrawStatus.ANNOUNCED,
                announced_at=now,
                forecast_member_count=estimate.forecast_member_count,
                estimated_prize_pool_amount=estimate.amount,
                estimated_prize_pool_currency=estimate.currency_code,
            )
        )
        if result.rowcount != 1:
            await self.db.rollback()
            return DrawServiceResponse(False, "Failed to announce draw", draw)

        self.audit_service.append(
            AuditAction.DRAW_ANNOUNCED,
            admin_id,
            "prize_draw",
            draw_id,
            {
                "forecast_member_count": estimate.forecast_member_count,
                "estimated_prize_pool_amount": estimate.amount,
            },
        )
        await self.db.commit()

        await self.db.refresh(draw)
        return DrawServiceResponse(True, "Draw announced", draw)

    async def activate_draw(self, draw_id: str, admin_id: str) -> DrawServiceResponse:
        result = await self.db.execute(
            update(PrizeDraw)
            .where(PrizeDraw.id == draw_id, PrizeDraw.status == DrawStatus.ANNOUNCED)
            .values(status=DrawStatus.ACTIVE)
        )
        if result.rowcount != 1:
            await self.db.rollback()
            return DrawServiceResponse(False, "Only announced draws can be activated")

        self.audit_service.append(
            AuditAction.DRAW_ACTIVATED, admin_id, "prize_draw", draw_id
        )
        await self.db.commit()

        return DrawServiceResponse(True, "Draw activated", await self.get_draw(draw_id))

    async def _get_entry(self, draw_id: str, user_id: str) -> PrizeDrawEntry | None:
        result = await self.db.execute(
            select(PrizeDrawEntry).where(
                PrizeDrawEntry.prize_draw_id == draw_id,
                PrizeDrawEntry.user_id == user_id,
            )
        )
        return result.scalars().first()

    async def check_draw_fairness_lock(
        self, draw_id: str, now: Optional[datetime] = None
    ) -> FairnessLockStatus:
        """Entries close at the draw's cutoff or as soon as an admin locks it."""
        now = now or datetime.now(timezone.utc)
        draw = await self.require_draw(draw_id)

        is_locked = draw.is_entry_locked(
            now, CONFIG.DRAW_TIMEZONE, CONFIG.ENTRY_CUTOFF_MINUTES
        )
        return FairnessLockStatus(
            is_locked=is_locked,
            cutoff_time=draw.entry_cutoff_at(
                CONFIG.DRAW_TIMEZONE, CONFIG.ENTRY_CUTOFF_MINUTES
            ),
            status=draw.status,
            can_enter=not is_locked and draw.status == DrawStatus.ACTIVE,
        )

    async def ensure_entry_for_current_draw(
        self, user_id: str, country_code: str, now: Optional[datetime] = None
    ) -> EntryResponse:
        """Opt the member into the current draw. Calling it again returns the
        existing entry, even once entries have closed."""
        now = now or datetime.now(timezone.utc)

        draw = await self.get_active_draw(country_code)
        if not draw:
            return EntryResponse(False, "No active draw found")

        membership_result = await self.db.execute(
            select(Membership)
            .where(
                Membership.user_id == user_id,
                Membership.status == MembershipStatus.ACTIVE,
                Membership.end_date >= now,
            )
            .order_by(Membership.end_date.desc())
        )
        membership: Membership | None = membership_result.scalars().first()
        if not membership:
            return EntryResponse(False, "Active membership required")

        existing = await self._get_entry(draw.id, user_id)
        if existing:
            return EntryResponse(True, "Already entered", True, existing.created_at)

        if draw.is_entry_locked(now, CONFIG.DRAW_TIMEZONE, CONFIG.ENTRY_CUTOFF_MINUTES):
            return EntryResponse(False, "Entries are closed for this draw")

        entry = PrizeDrawEntry(
            prize_draw_id=draw.id,
            user_id=user_id,
            membership_id=membership.id,
            created_at=now,
        )

        try:
            self.db.add(entry)
            await self.db.commit()
        except IntegrityError:
            # lost a race with a concurrent opt-in for the same user
            await self.db.rollback()
            existing = await self._get_entry(draw.id, user_id)
            if not existing:
                raise
            return EntryResponse(True, "Already entered", True, existing.created_at)

        logger.info(f"Entered user {user_id} into draw {draw.id}")
        return EntryResponse(True, "Entered", True, entry.created_at)

    async def get_my_entry_for_current_draw(
        self, user_id: str, country_code: str
    ) -> EntryResponse:
        draw = await self.get_active_draw(country_code)
        if not draw:
            return EntryResponse(True, "No active draw")

        entry = await self._get_entry(draw.id, user_id)
        if not entry:
            return EntryResponse(True, "Not entered")

        return EntryResponse(True, "Entered", True, entry.created_at)

    @log_database_operation()
    async def get_due_draws(
        self, now: Optional[datetime] = None, tz_name: Optional[str] = None
    ) -> list[PrizeDraw]:
        """Active, never executed draws whose scheduled time has passed.

        The schedule comparison is done in Python because draw_date and
        draw_time are local to the configured draw timezone.
        """
        now = now or datetime.now(timezone.utc)
        tz_name = tz_name or CONFIG.DRAW_TIMEZONE

        result = await self.db.execute(
            select(PrizeDraw)
            .where(
                PrizeDraw.status == DrawStatus.ACTIVE,
                PrizeDraw.executed_at.is_(None),
            )
            .order_by(PrizeDraw.draw_date, PrizeDraw.draw_time)
        )
        return [draw for draw in result.scalars().all() if draw.is_due(now, tz_name)]

    @log_database_operation()
    async def try_lock_for_execution(
        self, draw_id: str, now: Optional[datetime] = None
    ) -> bool:
        """Compare-and-swap active -> executing. False means another worker
        already owns the draw."""
        now = now or datetime.now(timezone.utc)

        result = await self.db.execute(
            update(PrizeDraw)
            .where(
                PrizeDraw.id == draw_id,
                PrizeDraw.status == DrawStatus.ACTIVE,
                PrizeDraw.executed_at.is_(None),
            )
            .values(status=DrawStatus.EXECUTING, execution_started_at=now)
        )
        await self.db.commit()

        return result.rowcount == 1

    @log_database_operation()
    async def mark_completed(
        self,
        draw_id: str,
        now: Optional[datetime] = None,
        details: Optional[dict] = None,
    ) -> bool:
        now = now or datetime.now(timezone.utc)

        result = await self.db.execute(
            update(PrizeDraw)
            .where(
                PrizeDraw.id == draw_id,
                PrizeDraw.status == DrawStatus.EXECUTING,
                PrizeDraw.executed_at.is_(None),
            )
            .values(status=DrawStatus.COMPLETED, executed_at=now)
        )
        if result.rowcount != 1:
            await self.db.rollback()
            logger.error(f"Draw {draw_id} was not executing, can not mark completed")
            return False

        self.audit_service.append(
            AuditAction.DRAW_EXECUTED, None, "prize_draw", draw_id, details
        )
        await self.db.commit()
        return True

    @log_database_operation()
    async def mark_failed(self, draw_id: str, error: str) -> bool:
        """executing -> failed. Failed draws are left for an admin to review."""
        result = await self.db.execute(
            update(PrizeDraw)
            .where(PrizeDraw.id == draw_id, PrizeDraw.status == DrawStatus.EXECUTING)
            .values(status=DrawStatus.FAILED)
        )
        if result.rowcount != 1:
            await self.db.rollback()
            logger.error(f"Draw {draw_id} was not executing, can not mark failed")
            return False

        self.audit_service.append(
            AuditAction.DRAW_FAILED, None, "prize_draw", draw_id, {"error": error}
        )
        await self.db.commit()
        return True

    async def get_stuck_draws(
        self, now: Optional[datetime] = None, threshold_minutes: Optional[int] = None
    ) -> list[PrizeDraw]:
        now = now or datetime.now(timezone.utc)
        minutes = threshold_minutes or CONFIG.STUCK_DRAW_THRESHOLD_MINUTES

        result = await self.db.execute(
            select(PrizeDraw).where(
                PrizeDraw.status == DrawStatus.EXECUTING,
                PrizeDraw.execution_started_at < now - timedelta(minutes=minutes),
            )
        )
        return list(result.scalars().all())

    async def get_draw_execution_status(self, draw_id: str) -> DrawExecutionStatus:
        draw = await self.get_draw(draw_id)
        if not draw:
            return DrawExecutionStatus(status="unknown")

        result = await self.db.execute(
            select(
                func.count(PrizeDrawWinner.id),
                func.coalesce(func.sum(Prize.prize_value_amount), 0),
            )
            .join(Prize, Prize.id == PrizeDrawWinner.prize_id)
            .where(
                PrizeDrawWinner.draw_id == draw_id,
                PrizeDrawWinner.claim_status != ClaimStatus.EXPIRED,
            )
        )
        winners_selected, total_awarded = result.one()

        return DrawExecutionStatus(
            status=str(draw.status),
            executed_at=draw.executed_at,
            winners_selected=winners_selected or 0,
            total_awarded=total_awarded or 0,
        )
