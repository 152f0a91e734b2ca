import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from prizedraw.common.helpers import days_remaining
from prizedraw.common.logging_utils import log_service_execution
from prizedraw.exceptions.draw_exceptions import InvalidPayoutTransition
from prizedraw.models.audit_log import AuditAction
from prizedraw.models.member import Profile
from prizedraw.models.prize_draw import Prize, PrizeDraw
from prizedraw.models.types import AwardType, ClaimMethod, ClaimStatus, PayoutStatus
from prizedraw.models.winner import PrizeDrawWinner
from prizedraw.services.audit_service import AuditService
from prizedraw.services.verification_service import (
    VerificationService,
    VerificationStatus,
)

logger = logging.getLogger(__name__)

CLAIM_PERIOD_EXPIRED = "Claim period expired"
VERIFICATION_NOT_MET = "Verification requirements not met"
PRIZE_ALREADY_CLAIMED = "Prize already claimed"
PRIZE_CLAIM_EXPIRED = "Prize claim has expired"


@dataclass
class ClaimEligibility:
    can_claim: bool
    reason: Optional[str] = None


@dataclass
class ClaimablePrize:
    winner_id: str
    draw_id: str
    draw_name: str
    prize_title: str
    prize_amount: int
    currency_code: str
    claim_deadline: datetime
    days_remaining: int
    can_claim: bool
    reason: Optional[str]
    award_type: AwardType = AwardType.RANDOM_DRAW


@dataclass
class MemberPrizes:
    random_prizes: list[ClaimablePrize]
    community_prizes: list[ClaimablePrize]

    @property
    def total_prizes(self) -> int:
        return len(self.random_prizes) + len(self.community_prizes)


@dataclass
class DrawWinnerClaimStatus:
    winner_id: str
    winner_user_id: str
    full_name: Optional[str]
    email: str
    prize_title: str
    award_type: AwardType
    claim_status: ClaimStatus
    payout_status: PayoutStatus
    selected_at: datetime
    claim_deadline: datetime
    claimed_at: Optional[datetime]
    replaced_winner_id: Optional[str]


@dataclass
class PrizeClaimResponse:
    status: bool
    message: str
    prize_amount: int = 0
    claim_method: Optional[ClaimMethod] = None
    claimed_at: Optional[datetime] = None
    blocked_reasons: list[str] = field(default_factory=list)


def can_claim_prize(
    winner: PrizeDrawWinner, verification: VerificationStatus, now: datetime
) -> ClaimEligibility:
    """Single most relevant reason a winner can not claim.

    Checked in order: verification gaps, then the claim deadline, then an
    admin set blocked reason.
    """
    if not verification.ready_to_claim:
        return ClaimEligibility(
            False,
            ", ".join(verification.missing_requirements) or VERIFICATION_NOT_MET,
        )

    if now > winner.claim_deadline_at:
        return ClaimEligibility(False, CLAIM_PERIOD_EXPIRED)

    if winner.blocked_reason:
        return ClaimEligibility(False, winner.blocked_reason)

    return ClaimEligibility(True)


class PrizeClaimService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.verification_service = VerificationService(db)
        self.audit_service = AuditService(db)

    async def close(self):
        await self.db.close()

    async def get_winner(self, winner_id: str) -> PrizeDrawWinner | None:
        result = await self.db.execute(
            select(PrizeDrawWinner).where(PrizeDrawWinner.id == winner_id)
        )
        return result.scalars().first()

    async def get_member_claimable_prizes(
        self, user_id: str, now: Optional[datetime] = None
    ) -> list[ClaimablePrize]:
        now = now or datetime.now(timezone.utc)

        result = await self.db.execute(
            select(PrizeDrawWinner, Prize, PrizeDraw)
            .join(Prize, Prize.id == PrizeDrawWinner.prize_id)
            .join(PrizeDraw, PrizeDraw.id == PrizeDrawWinner.draw_id)
            .where(
                PrizeDrawWinner.winner_user_id == user_id,
                PrizeDrawWinner.claim_status == ClaimStatus.PENDING,
            )
            .order_by(PrizeDrawWinner.claim_deadline_at)
        )
        rows = result.all()
        if not rows:
            return []

        verification = await self.verification_service.check_member_verification_status(
            user_id
        )

        prizes = []
        for winner, prize, draw in rows:
            eligibility = can_claim_prize(winner, verification, now)
            prizes.append(
                ClaimablePrize(
                    winner_id=winner.id,
                    draw_id=draw.id,
                    draw_name=draw.draw_name,
                    prize_title=prize.title,
                    prize_amount=prize.prize_value_amount,
                    currency_code=prize.currency_code,
                    claim_deadline=winner.claim_deadline_at,
                    days_remaining=days_remaining(winner.claim_deadline_at, now),
                    can_claim=eligibility.can_claim,
                    reason=eligibility.reason,
                    award_type=winner.award_type,
                )
            )
        return prizes

    async def get_all_member_prizes(
        self, user_id: str, now: Optional[datetime] = None
    ) -> MemberPrizes:
        """Pending prizes split into random draw wins and admin awarded ones."""
        prizes = await self.get_member_claimable_prizes(user_id, now)
        return MemberPrizes(
            random_prizes=[p for p in prizes if p.award_type == AwardType.RANDOM_DRAW],
            community_prizes=[p for p in prizes if p.award_type != AwardType.RANDOM_DRAW],
        )

    async def get_draw_winners_with_claim_status(
        self, draw_id: str
    ) -> list[DrawWinnerClaimStatus]:
        result = await self.db.execute(
            select(PrizeDrawWinner, Prize, Profile)
            .join(Prize, Prize.id == PrizeDrawWinner.prize_id)
            .join(Profile, Profile.id == PrizeDrawWinner.winner_user_id)
            .where(PrizeDrawWinner.draw_id == draw_id)
            .order_by(PrizeDrawWinner.selected_at, PrizeDrawWinner.id)
        )

        return [
            DrawWinnerClaimStatus(
                winner_id=winner.id,
                winner_user_id=winner.winner_user_id,
                full_name=profile.full_name,
                email=profile.email,
                prize_title=prize.title,
                award_type=winner.award_type,
                claim_status=winner.claim_status,
                payout_status=winner.payout_status,
                selected_at=winner.selected_at,
                claim_deadline=winner.claim_deadline_at,
                claimed_at=winner.claimed_at,
                replaced_winner_id=winner.replaced_winner_id,
            )
            for winner, prize, profile in result.all()
        ]

    @log_service_execution()
    async def process_prize_claim(
        self,
        winner_id: str,
        user_id: str,
        claim_method: ClaimMethod = ClaimMethod.WALLET_CREDIT,
        now: Optional[datetime] = None,
    ) -> PrizeClaimResponse:
        """PENDING -> CLAIMED for the owning member, starting the payout."""
        now = now or datetime.now(timezone.utc)

        winner = await self.get_winner(winner_id)
        if not winner:
            return PrizeClaimResponse(False, "Prize not found")

        if winner.winner_user_id != user_id:
            return PrizeClaimResponse(False, "This prize does not belong to you")

        if winner.claim_status == ClaimStatus.CLAIMED:
            return PrizeClaimResponse(False, PRIZE_ALREADY_CLAIMED)

        if winner.claim_status == ClaimStatus.EXPIRED:
            return PrizeClaimResponse(False, PRIZE_CLAIM_EXPIRED)

        verification = await self.verification_service.check_member_verification_status(
            user_id
        )
        eligibility = can_claim_prize(winner, verification, now)
        if not eligibility.can_claim:
            return PrizeClaimResponse(
                False,
                eligibility.reason or "You are not eligible to claim this prize",
                blocked_reasons=list(verification.missing_requirements),
            )

        result = await self.db.execute(
            update(PrizeDrawWinner)
            .where(
                PrizeDrawWinner.id == winner_id,
                PrizeDrawWinner.claim_status == ClaimStatus.PENDING,
                PrizeDrawWinner.payout_status == PayoutStatus.PENDING,
                PrizeDrawWinner.claim_deadline_at >= now,
            )
            .values(
                claim_status=ClaimStatus.CLAIMED,
                claimed_at=now,
                claim_method=claim_method,
                payout_status=PayoutStatus.PROCESSING,
            )
        )
        if result.rowcount != 1:
            await self.db.rollback()
            logger.warning(f"Claim of winner {winner_id} lost a concurrent update")
            return PrizeClaimResponse(False, "Prize could not be claimed")

        prize_result = await self.db.execute(
            select(Prize.prize_value_amount).where(Prize.id == winner.prize_id)
        )
        prize_amount = prize_result.scalars().first() or 0

        self.audit_service.append(
            AuditAction.PRIZE_CLAIMED,
            user_id,
            "prize_draw_winner",
            winner_id,
            {"claim_method": str(claim_method), "prize_amount": prize_amount},
        )
        await self.db.commit()

        logger.info(f"Winner {winner_id} claimed {prize_amount} via {claim_method}")
        return PrizeClaimResponse(
            True,
            "Prize claimed successfully",
            prize_amount=prize_amount,
            claim_method=claim_method,
            claimed_at=now,
        )

    async def mark_payout_paid(
        self, winner_id: str, admin_id: str, now: Optional[datetime] = None
    ) -> None:
        """PROCESSING -> PAID."""
        now = now or datetime.now(timezone.utc)

        result = await self.db.execute(
            update(PrizeDrawWinner)
            .where(
                PrizeDrawWinner.id == winner_id,
                PrizeDrawWinner.payout_status == PayoutStatus.PROCESSING,
            )
            .values(payout_status=PayoutStatus.PAID, paid_at=now)
        )
        if result.rowcount != 1:
            await self.db.rollback()
            raise InvalidPayoutTransition(
                f"Payout for winner {winner_id} is not processing"
            )

        self.audit_service.append(
            AuditAction.PAYOUT_PAID, admin_id, "prize_draw_winner", winner_id
        )
        await self.db.commit()

    async def block_payout(self, winner_id: str, reason: str, admin_id: str) -> None:
        """PENDING or PROCESSING -> BLOCKED, keeping the reason for the member."""
        if not reason.strip():
            raise InvalidPayoutTransition("A reason is required to block a payout")

        result = await self.db.execute(
            update(PrizeDrawWinner)
            .where(
                PrizeDrawWinner.id == winner_id,
                PrizeDrawWinner.payout_status.in_(
                    [PayoutStatus.PENDING, PayoutStatus.PROCESSING]
                ),
            )
            .values(payout_status=PayoutStatus.BLOCKED, blocked_reason=reason.strip())
        )
        if result.rowcount != 1:
            await self.db.rollback()
            raise InvalidPayoutTransition(
                f"Payout for winner {winner_id} can not be blocked"
            )

        self.audit_service.append(
            AuditAction.PAYOUT_BLOCKED,
            admin_id,
            "prize_draw_winner",
            winner_id,
            {"reason": reason.strip()},
        )
        await self.db.commit()
