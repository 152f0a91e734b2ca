import logging

from prizedraw.database.database import db
from prizedraw.models.types import NotificationType
from prizedraw.services.service_factory import create_notification_service

logger = logging.getLogger(__name__)


async def queue_notifications_best_effort(
    draw_id: str,
    notification_type: NotificationType = NotificationType.WINNER_ANNOUNCEMENT,
) -> int:
    """Queue winner notifications in a session of their own.

    Winners are already committed when this runs, so any failure, including a
    timeout that interrupts the commit, is logged and reported as 0 queued.
    """
    try:
        async with db.get_session() as session:
            notification_service = create_notification_service(session)
            return await notification_service.queue_winner_notifications(
                draw_id, notification_type
            )
    except Exception as e:
        logger.error(
            f"Could not queue {notification_type} notifications for draw {draw_id}: "
            f"{type(e).__name__}: {e}"
        )
        return 0
