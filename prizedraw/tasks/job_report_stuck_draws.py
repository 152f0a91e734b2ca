import logging
from datetime import datetime, timezone
from typing import Optional

from prizedraw.common.logging_utils import log_task_execution
from prizedraw.config import CONFIG
from prizedraw.database.database import db
from prizedraw.models.prize_draw import PrizeDraw
from prizedraw.services.service_factory import create_prize_draw_service

logger = logging.getLogger(__name__)


@log_task_execution(logger)
async def job_report_stuck_draws(now: Optional[datetime] = None) -> list[PrizeDraw]:
    """Warns about draws left in executing past the threshold.

    Monitoring only, the draw status is never changed here.
    """
    now = now or datetime.now(timezone.utc)

    async with db.get_session() as session:
        draw_service = create_prize_draw_service(session)
        stuck = await draw_service.get_stuck_draws(
            now, CONFIG.STUCK_DRAW_THRESHOLD_MINUTES
        )

    for draw in stuck:
        logger.warning(
            f"Draw {draw.id} ({draw.draw_name}) has been executing since "
            f"{draw.execution_started_at.isoformat()} and needs review"
        )

    return stuck
