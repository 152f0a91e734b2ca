import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from prizedraw.config import CONFIG
from prizedraw.decorators.with_timeout import with_timeout
from prizedraw.models.member import Profile
from prizedraw.models.notification import PrizeNotification
from prizedraw.models.prize_draw import Prize, PrizeDraw
from prizedraw.models.types import ClaimStatus, NotificationStatus, NotificationType
from prizedraw.models.winner import PrizeDrawWinner

logger = logging.getLogger(__name__)


@dataclass
class NotificationTemplate:
    subject: str
    body: str
    category: str
    priority: str


def get_notification_template(
    notification_type: NotificationType, data: dict[str, Any]
) -> NotificationTemplate:
    """Render the member or admin facing message for a queued notification."""
    draw_name = data.get("draw_name") or "prize draw"
    amount = f"{data.get('prize_amount', 0)} {data.get('currency_code', 'BDT')}"

    match notification_type:
        case NotificationType.WINNER_ANNOUNCEMENT:
            return NotificationTemplate(
                subject=f"Congratulations! You won {data.get('prize_title')}",
                body=(
                    f"Congratulations {data.get('winner_name', 'member')}!\n\n"
                    f"You are a winner of {data.get('prize_title')} ({amount}) "
                    f"in the {draw_name}.\n\n"
                    f"Claim your prize before {data.get('claim_deadline')}."
                ),
                category="PRIZE_DRAW",
                priority="HIGH",
            )
        case NotificationType.REDRAW_WINNER:
            return NotificationTemplate(
                subject=f"You have been selected for {data.get('prize_title')}",
                body=(
                    f"Good news {data.get('winner_name', 'member')}!\n\n"
                    f"An unclaimed prize from the {draw_name} was redrawn and you "
                    f"have been selected for {data.get('prize_title')} ({amount}).\n\n"
                    f"Claim your prize before {data.get('claim_deadline')}."
                ),
                category="PRIZE_DRAW",
                priority="HIGH",
            )
        case NotificationType.NON_WINNER:
            return NotificationTemplate(
                subject=f"Prize Draw Results: {draw_name}",
                body=(
                    f"Thank you for participating in the {draw_name}!\n\n"
                    "You were not selected this time. Keep your membership current "
                    "to be entered into the next draw."
                ),
                category="PRIZE_DRAW",
                priority="NORMAL",
            )
        case NotificationType.ADMIN_SUMMARY:
            if data.get("error"):
                return NotificationTemplate(
                    subject=f"Prize Draw Failed: {draw_name}",
                    body=(
                        f'Draw "{draw_name}" ({data.get("draw_id")}) failed during '
                        f"execution and needs review.\n\nError: {data['error']}"
                    ),
                    category="ADMIN",
                    priority="HIGH",
                )
            return NotificationTemplate(
                subject=f"Prize Draw Completed: {draw_name}",
                body=(
                    f'Draw "{draw_name}" has been executed successfully.\n\n'
                    f"Winners Selected: {data.get('total_winners', 0)}"
                ),
                category="ADMIN",
                priority="NORMAL",
            )
        case NotificationType.NEXT_DRAW_TEASER:
            return NotificationTemplate(
                subject="Next Prize Draw Coming Soon!",
                body=(
                    "A new prize draw is scheduled!\n\n"
                    "Stay active and keep your membership current to be entered."
                ),
                category="PRIZE_DRAW",
                priority="LOW",
            )

    return NotificationTemplate(
        subject="Prize Draw Notification",
        body="You have a new notification from the prize draw system.",
        category="PRIZE_DRAW",
        priority="NORMAL",
    )


class NotificationService:
    """Persists notification requests. Delivery happens elsewhere."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def close(self):
        await self.db.close()

    async def queue_notification(
        self,
        draw_id: str,
        recipient_user_id: Optional[str],
        notification_type: NotificationType,
        template_data: dict[str, Any],
        commit: bool = True,
    ) -> PrizeNotification:
        notification = PrizeNotification(
            draw_id=draw_id,
            recipient_user_id=recipient_user_id,
            notification_type=notification_type,
            template_data=template_data,
            status=NotificationStatus.PENDING,
            created_at=datetime.now(timezone.utc),
        )
        self.db.add(notification)

        if commit:
            await self.db.commit()

        return notification

    async def _already_notified_winner_ids(
        self, draw_id: str, notification_type: NotificationType
    ) -> set[str]:
        result = await self.db.execute(
            select(PrizeNotification.template_data).where(
                PrizeNotification.draw_id == draw_id,
                PrizeNotification.notification_type == notification_type,
            )
        )
        return {
            data["winner_id"]
            for data in result.scalars().all()
            if data and data.get("winner_id")
        }

    @with_timeout(CONFIG.EXTERNAL_CALL_TIMEOUT_SECONDS)
    async def queue_winner_notifications(
        self,
        draw_id: str,
        notification_type: NotificationType = NotificationType.WINNER_ANNOUNCEMENT,
    ) -> int:
        """Queue one notification per PENDING winner of the draw not yet notified.

        Redraw notifications go to replacement winners only, announcements to
        the originally selected ones.
        """
        query = (
            select(PrizeDrawWinner, Prize, PrizeDraw, Profile)
            .join(Prize, Prize.id == PrizeDrawWinner.prize_id)
            .join(PrizeDraw, PrizeDraw.id == PrizeDrawWinner.draw_id)
            .join(Profile, Profile.id == PrizeDrawWinner.winner_user_id)
            .where(
                PrizeDrawWinner.draw_id == draw_id,
                PrizeDrawWinner.claim_status == ClaimStatus.PENDING,
            )
        )
        if notification_type == NotificationType.REDRAW_WINNER:
            query = query.where(PrizeDrawWinner.replaced_winner_id.is_not(None))
        else:
            query = query.where(PrizeDrawWinner.replaced_winner_id.is_(None))

        result = await self.db.execute(query)
        rows = result.all()

        notified = await self._already_notified_winner_ids(draw_id, notification_type)

        queued = 0
        for winner, prize, draw, profile in rows:
            if winner.id in notified:
                continue

            await self.queue_notification(
                draw_id,
                winner.winner_user_id,
                notification_type,
                {
                    "winner_id": winner.id,
                    "winner_name": profile.full_name or profile.email,
                    "prize_title": prize.title,
                    "prize_amount": prize.prize_value_amount,
                    "currency_code": prize.currency_code,
                    "draw_name": draw.draw_name,
                    "claim_deadline": winner.claim_deadline_at.isoformat(),
                },
                commit=False,
            )
            queued += 1

        if queued:
            await self.db.commit()

        logger.info(f"Queued {queued} {notification_type} notifications for draw {draw_id}")
        return queued

    async def queue_admin_failure_notification(
        self, draw: PrizeDraw, error: str
    ) -> PrizeNotification:
        return await self.queue_notification(
            draw.id,
            draw.created_by,
            NotificationType.ADMIN_SUMMARY,
            {
                "draw_id": draw.id,
                "draw_name": draw.draw_name,
                "error": error,
                "status": "FAILED",
            },
        )

    async def get_pending_notifications(self, limit: int = 100) -> list[PrizeNotification]:
        result = await self.db.execute(
            select(PrizeNotification)
            .where(PrizeNotification.status == NotificationStatus.PENDING)
            .order_by(PrizeNotification.created_at)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def mark_notification_sent(
        self, notification_id: str, success: bool = True
    ) -> bool:
        now = datetime.now(timezone.utc)
        result = await self.db.execute(
            update(PrizeNotification)
            .where(
                PrizeNotification.id == notification_id,
                PrizeNotification.status == NotificationStatus.PENDING,
            )
            .values(
                status=NotificationStatus.SENT if success else NotificationStatus.FAILED,
                sent_at=now if success else None,
            )
        )
        await self.db.commit()
        return result.rowcount == 1
