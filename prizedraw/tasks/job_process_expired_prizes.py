import logging
from datetime import datetime, timezone
from typing import Optional

from prizedraw.common.logging_utils import LogContext, log_task_execution
from prizedraw.database.database import db
from prizedraw.models.types import NotificationType
from prizedraw.services.prize_draw_winner_service import ExpireAndRedrawResponse
from prizedraw.services.service_factory import create_winner_service
from prizedraw.tasks.notifications import queue_notifications_best_effort

logger = logging.getLogger(__name__)


@log_task_execution(logger)
async def job_process_expired_prizes(
    now: Optional[datetime] = None,
) -> ExpireAndRedrawResponse:
    """Expires overdue PENDING winners and redraws RANDOM_DRAW replacements.

    Running it twice in a row is harmless, rows already expired no longer
    match the PENDING filter.
    """
    now = now or datetime.now(timezone.utc)

    async with db.get_session() as session:
        winner_service = create_winner_service(session)

        with LogContext(logger, "expire and redraw", run_at=now.isoformat()):
            totals, per_draw = await winner_service.process_expired_prizes(now)

    for draw_id, result in per_draw.items():
        logger.info(
            f"Draw {draw_id}: {result.number_expired} expired, "
            f"{result.number_redrawn} redrawn"
        )
        if result.number_redrawn:
            await queue_notifications_best_effort(
                draw_id, NotificationType.REDRAW_WINNER
            )

    logger.info(totals.message)
    return totals
