import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from prizedraw.common.helpers import calculate_claim_deadline
from prizedraw.common.logging_utils import log_service_execution
from prizedraw.common.random_selection import (
    prefer_new_winners,
    sample_without_replacement,
    secure_random_index,
)
from prizedraw.exceptions.draw_exceptions import DrawExecutionError
from prizedraw.models.audit_log import AuditAction
from prizedraw.models.entry import PrizeDrawEntry
from prizedraw.models.member import Membership, Profile
from prizedraw.models.prize_draw import Prize
from prizedraw.models.types import (
    AwardType,
    ClaimStatus,
    MembershipStatus,
    PayoutStatus,
    PrizeStatus,
    ProfileRole,
)
from prizedraw.models.winner import PrizeDrawWinner
from prizedraw.services.audit_service import AuditService

logger = logging.getLogger(__name__)

FETCH_ENTRIES_FAILED = "Failed to fetch entries"
NO_ELIGIBLE_ENTRIES = "No eligible entries found"
NO_ACTIVE_PRIZES = "No active prizes found for this draw"


@dataclass
class EligibleEntry:
    user_id: str
    entry_id: str
    membership_id: Optional[str]


@dataclass
class EligibleEntriesResponse:
    status: bool
    message: str
    entries: list[EligibleEntry] = field(default_factory=list)


@dataclass
class WinnerSelectionResponse:
    status: bool
    message: str
    user_ids: list[str] = field(default_factory=list)


@dataclass
class SaveWinnersResponse:
    status: bool
    message: str
    count: int = 0
    winners: list[PrizeDrawWinner] = field(default_factory=list)


@dataclass
class DrawSelectionResponse:
    status: bool
    message: str
    prizes_processed: int = 0
    winners_created: int = 0
    winner_ids: list[str] = field(default_factory=list)


@dataclass
class ExpireAndRedrawResponse:
    status: bool
    message: str
    number_expired: int = 0
    number_redrawn: int = 0
    replacements: list[PrizeDrawWinner] = field(default_factory=list)


class PrizeDrawWinnerService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit_service = AuditService(db)

    async def close(self):
        await self.db.close()

    def _eligible_entries_query(
        self, draw_id: str, now: datetime, exclude_user_ids: Iterable[str] = ()
    ):
        query = (
            select(
                PrizeDrawEntry.user_id,
                PrizeDrawEntry.id,
                PrizeDrawEntry.membership_id,
            )
            .join(Membership, Membership.id == PrizeDrawEntry.membership_id)
            .join(Profile, Profile.id == PrizeDrawEntry.user_id)
            .where(
                PrizeDrawEntry.prize_draw_id == draw_id,
                Membership.status == MembershipStatus.ACTIVE,
                Membership.end_date >= now,
                Profile.role.not_in(ProfileRole.excluded_from_draws()),
            )
        )

        excluded = list(exclude_user_ids)
        if excluded:
            query = query.where(PrizeDrawEntry.user_id.not_in(excluded))

        return query

    async def list_eligible_entries(
        self,
        draw_id: str,
        now: Optional[datetime] = None,
        exclude_user_ids: Iterable[str] = (),
    ) -> EligibleEntriesResponse:
        """Entries whose membership is active and unexpired and whose profile
        is in good standing. An empty pool is a successful result, a failed
        query is not."""
        now = now or datetime.now(timezone.utc)

        try:
            result = await self.db.execute(
                self._eligible_entries_query(draw_id, now, exclude_user_ids)
            )
            rows = result.all()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching entries for draw {draw_id}: {e}")
            return EligibleEntriesResponse(False, FETCH_ENTRIES_FAILED)

        entries = [
            EligibleEntry(user_id=user_id, entry_id=entry_id, membership_id=membership_id)
            for user_id, entry_id, membership_id in rows
        ]
        return EligibleEntriesResponse(True, f"{len(entries)} eligible entries", entries)

    async def _get_winner_user_ids(
        self, draw_id: str, prize_id: Optional[str] = None
    ) -> set[str]:
        query = select(PrizeDrawWinner.winner_user_id).where(
            PrizeDrawWinner.draw_id == draw_id
        )
        if prize_id is not None:
            query = query.where(PrizeDrawWinner.prize_id == prize_id)

        result = await self.db.execute(query)
        return set(result.scalars().all())

    @log_service_execution()
    async def select_random_winners(
        self,
        draw_id: str,
        prize_id: str,
        number_of_winners: int,
        now: Optional[datetime] = None,
    ) -> WinnerSelectionResponse:
        eligible = await self.list_eligible_entries(draw_id, now)
        if not eligible.status:
            return WinnerSelectionResponse(False, eligible.message)

        if not eligible.entries:
            return WinnerSelectionResponse(False, NO_ELIGIBLE_ENTRIES)

        previous_winners = await self._get_winner_user_ids(draw_id)
        pool = prefer_new_winners(
            [entry.user_id for entry in eligible.entries], previous_winners
        )

        selected = sample_without_replacement(pool, number_of_winners)

        logger.info(
            f"Selected {len(selected)} of {number_of_winners} requested winners "
            f"for prize {prize_id} from a pool of {len(pool)}"
        )
        return WinnerSelectionResponse(
            True, f"{len(selected)} winners selected", selected
        )

    @log_service_execution()
    async def save_winners(
        self,
        draw_id: str,
        prize_id: str,
        user_ids: list[str],
        award_type: AwardType,
        selected_by_admin_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> SaveWinnersResponse:
        """Insert one PENDING winner row per user in a single commit."""
        if not user_ids:
            return SaveWinnersResponse(True, "No winners to save", 0)

        now = now or datetime.now(timezone.utc)
        deadline = calculate_claim_deadline(now)

        membership_result = await self.db.execute(
            select(PrizeDrawEntry.user_id, PrizeDrawEntry.membership_id).where(
                PrizeDrawEntry.prize_draw_id == draw_id,
                PrizeDrawEntry.user_id.in_(user_ids),
            )
        )
        memberships = dict(membership_result.all())

        winners = [
            PrizeDrawWinner(
                draw_id=draw_id,
                prize_id=prize_id,
                winner_user_id=user_id,
                membership_id=memberships.get(user_id),
                award_type=award_type,
                selected_at=now,
                selected_by_admin_id=selected_by_admin_id,
                claim_status=ClaimStatus.PENDING,
                claim_deadline_at=deadline,
                payout_status=PayoutStatus.PENDING,
            )
            for user_id in user_ids
        ]

        self.db.add_all(winners)
        self.audit_service.append(
            AuditAction.WINNERS_SELECTED,
            selected_by_admin_id,
            "prize",
            prize_id,
            {"draw_id": draw_id, "winner_user_ids": list(user_ids)},
        )
        await self.db.commit()

        return SaveWinnersResponse(
            True, f"{len(winners)} winners saved", len(winners), winners
        )

    async def _get_active_prizes(self, draw_id: str) -> list[Prize]:
        result = await self.db.execute(
            select(Prize)
            .where(Prize.draw_id == draw_id, Prize.status == PrizeStatus.ACTIVE)
            .order_by(Prize.created_at)
        )
        return list(result.scalars().all())

    @log_service_execution()
    async def run_winner_selection_for_draw(
        self,
        draw_id: str,
        admin_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> DrawSelectionResponse:
        """Select and persist winners for every active RANDOM_DRAW prize.

        Each prize is committed on its own. A prize with nobody eligible is
        logged and skipped; a failure to read the pool raises
        DrawExecutionError.
        """
        now = now or datetime.now(timezone.utc)

        prizes = await self._get_active_prizes(draw_id)
        if not prizes:
            return DrawSelectionResponse(False, NO_ACTIVE_PRIZES)

        random_prizes = [p for p in prizes if p.award_type == AwardType.RANDOM_DRAW]
        if not random_prizes:
            return DrawSelectionResponse(True, "No RANDOM_DRAW prizes in this draw")

        winners_created = 0
        winner_ids: list[str] = []

        for prize in random_prizes:
            selection = await self.select_random_winners(
                draw_id, prize.id, prize.number_of_winners, now
            )

            if not selection.status:
                if selection.message == NO_ELIGIBLE_ENTRIES:
                    logger.warning(
                        f"No eligible entries for prize {prize.id} in draw {draw_id}"
                    )
                    continue
                raise DrawExecutionError(
                    f"Winner selection failed for prize {prize.id}: {selection.message}"
                )

            saved = await self.save_winners(
                draw_id, prize.id, selection.user_ids, prize.award_type, admin_id, now
            )
            winners_created += saved.count
            winner_ids.extend(winner.id for winner in saved.winners)

        return DrawSelectionResponse(
            True,
            f"{winners_created} winners created across {len(random_prizes)} prizes",
            prizes_processed=len(random_prizes),
            winners_created=winners_created,
            winner_ids=winner_ids,
        )

    async def _redraw_replacement(
        self, expired: PrizeDrawWinner, now: datetime
    ) -> PrizeDrawWinner | None:
        prize_winners = await self._get_winner_user_ids(
            expired.draw_id, expired.prize_id
        )
        eligible = await self.list_eligible_entries(
            expired.draw_id, now, exclude_user_ids=prize_winners
        )

        if not eligible.status:
            logger.error(
                f"Could not load redraw pool for prize {expired.prize_id}: {eligible.message}"
            )
            return None

        if not eligible.entries:
            logger.info(f"No eligible entries for redraw for prize {expired.prize_id}")
            return None

        entry = eligible.entries[secure_random_index(len(eligible.entries))]

        replacement = PrizeDrawWinner(
            draw_id=expired.draw_id,
            prize_id=expired.prize_id,
            winner_user_id=entry.user_id,
            membership_id=entry.membership_id,
            award_type=expired.award_type,
            selected_at=now,
            replaced_winner_id=expired.id,
            claim_status=ClaimStatus.PENDING,
            claim_deadline_at=calculate_claim_deadline(now),
            payout_status=PayoutStatus.PENDING,
        )
        self.db.add(replacement)
        self.audit_service.append(
            AuditAction.WINNER_REDRAWN,
            None,
            "prize_draw_winner",
            expired.id,
            {"prize_id": expired.prize_id, "replacement_user_id": entry.user_id},
        )
        await self.db.commit()

        return replacement

    async def _get_overdue_winners(
        self, draw_id: str, now: datetime
    ) -> list[PrizeDrawWinner]:
        result = await self.db.execute(
            select(PrizeDrawWinner).where(
                PrizeDrawWinner.draw_id == draw_id,
                PrizeDrawWinner.claim_status == ClaimStatus.PENDING,
                PrizeDrawWinner.claim_deadline_at < now,
            )
        )
        return list(result.scalars().all())

    async def _expire_winners(
        self, overdue: list[PrizeDrawWinner], now: datetime
    ) -> list[PrizeDrawWinner]:
        """PENDING -> EXPIRED row by row, committed together.

        Returns only the rows this call moved. A row another worker expired
        first is left to that worker, so each expiry gets at most one redraw.
        """
        expired: list[PrizeDrawWinner] = []
        for winner in overdue:
            result = await self.db.execute(
                update(PrizeDrawWinner)
                .where(
                    PrizeDrawWinner.id == winner.id,
                    PrizeDrawWinner.claim_status == ClaimStatus.PENDING,
                )
                .values(claim_status=ClaimStatus.EXPIRED, expired_at=now)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 1:
                expired.append(winner)

        await self.db.commit()
        return expired

    @log_service_execution()
    async def expire_and_redraw(
        self, draw_id: str, now: Optional[datetime] = None
    ) -> ExpireAndRedrawResponse:
        now = now or datetime.now(timezone.utc)

        overdue = await self._get_overdue_winners(draw_id, now)
        if not overdue:
            return ExpireAndRedrawResponse(True, "No expired winners")

        expired_winners = await self._expire_winners(overdue, now)
        number_expired = len(expired_winners)
        logger.info(f"Expired {number_expired} unclaimed winners in draw {draw_id}")

        replacements: list[PrizeDrawWinner] = []
        for expired in expired_winners:
            if not expired.award_type.is_redrawable:
                continue

            replacement = await self._redraw_replacement(expired, now)
            if replacement is not None:
                replacements.append(replacement)

        return ExpireAndRedrawResponse(
            True,
            f"{number_expired} expired, {len(replacements)} redrawn",
            number_expired=number_expired,
            number_redrawn=len(replacements),
            replacements=replacements,
        )

    async def get_draws_with_expired_winners(self, now: datetime) -> list[str]:
        result = await self.db.execute(
            select(PrizeDrawWinner.draw_id)
            .where(
                PrizeDrawWinner.claim_status == ClaimStatus.PENDING,
                PrizeDrawWinner.claim_deadline_at < now,
            )
            .distinct()
        )
        return list(result.scalars().all())

    @log_service_execution()
    async def process_expired_prizes(
        self, now: Optional[datetime] = None
    ) -> tuple[ExpireAndRedrawResponse, dict[str, ExpireAndRedrawResponse]]:
        """Run the expiry cascade over every draw with overdue winners.

        Returns the totals and the per-draw results."""
        now = now or datetime.now(timezone.utc)

        per_draw: dict[str, ExpireAndRedrawResponse] = {}
        for draw_id in await self.get_draws_with_expired_winners(now):
            per_draw[draw_id] = await self.expire_and_redraw(draw_id, now)

        total_expired = sum(r.number_expired for r in per_draw.values())
        total_redrawn = sum(r.number_redrawn for r in per_draw.values())

        if per_draw:
            self.audit_service.append(
                AuditAction.PRIZES_EXPIRED,
                None,
                "prize_draw_winner",
                None,
                {
                    "draws_affected": list(per_draw.keys()),
                    "total_expired": total_expired,
                    "total_redrawn": total_redrawn,
                },
            )
            await self.db.commit()

        totals = ExpireAndRedrawResponse(
            True,
            f"{total_expired} expired, {total_redrawn} redrawn across {len(per_draw)} draws",
            number_expired=total_expired,
            number_redrawn=total_redrawn,
            replacements=[w for r in per_draw.values() for w in r.replacements],
        )
        return totals, per_draw
