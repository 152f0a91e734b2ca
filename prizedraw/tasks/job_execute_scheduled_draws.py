import enum
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from prizedraw.common.logging_utils import bind_log_context, log_task_execution
from prizedraw.database.database import db
from prizedraw.exceptions.draw_exceptions import DrawExecutionError
from prizedraw.models.prize_draw import PrizeDraw
from prizedraw.services.service_factory import (
    create_notification_service,
    create_prize_draw_service,
    create_report_service,
    create_winner_service,
)
from prizedraw.tasks.notifications import queue_notifications_best_effort

logger = logging.getLogger(__name__)


class DrawOutcome(enum.StrEnum):
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class DrawExecutionResult:
    draw_id: str
    draw_name: str
    outcome: DrawOutcome
    winners_created: int = 0
    error: Optional[str] = None


async def _select_and_report(draw: PrizeDraw, now: datetime) -> int:
    async with db.get_session() as session:
        winner_service = create_winner_service(session)
        report_service = create_report_service(session)

        selection = await winner_service.run_winner_selection_for_draw(
            draw.id, None, now
        )
        if not selection.status:
            raise DrawExecutionError(selection.message)

        await report_service.generate_draw_report(
            draw.id, auto_executed=True, now=now
        )
        return selection.winners_created


async def _mark_completed(draw: PrizeDraw, winners_created: int) -> None:
    async with db.get_session() as session:
        draw_service = create_prize_draw_service(session)
        completed = await draw_service.mark_completed(
            draw.id,
            datetime.now(timezone.utc),
            {"winners_created": winners_created},
        )
        if not completed:
            raise DrawExecutionError(
                f"Draw {draw.id} left the executing state during execution"
            )


async def _report_failure(draw: PrizeDraw, error: str) -> None:
    # a fresh session, the one that failed may have been cut off mid commit
    async with db.get_session() as session:
        draw_service = create_prize_draw_service(session)
        notification_service = create_notification_service(session)

        await draw_service.mark_failed(draw.id, error)

        try:
            await notification_service.queue_admin_failure_notification(draw, error)
        except Exception as e:
            logger.error(f"Could not queue failure notification for draw {draw.id}: {e}")


async def execute_draw(draw: PrizeDraw, now: datetime) -> DrawExecutionResult:
    """Lock, select, report, notify and complete a single draw.

    Each step runs in its own session, so a step that fails or times out can
    not leave the next one with a broken transaction.
    """
    with bind_log_context(draw_id=draw.id):
        async with db.get_session() as session:
            locked = await create_prize_draw_service(session).try_lock_for_execution(
                draw.id, now
            )

        if not locked:
            logger.info(f"Draw {draw.id} already locked by another worker, skipping")
            return DrawExecutionResult(draw.id, draw.draw_name, DrawOutcome.SKIPPED)

        logger.info(f"Executing draw {draw.id} ({draw.draw_name})")

        try:
            winners_created = await _select_and_report(draw, now)
            await queue_notifications_best_effort(draw.id)
            await _mark_completed(draw, winners_created)
        except Exception as e:
            error = f"{type(e).__name__}: {e}"
            logger.error(f"Error executing draw {draw.id}: {error}", exc_info=True)
            await _report_failure(draw, error)
            return DrawExecutionResult(
                draw.id, draw.draw_name, DrawOutcome.FAILED, error=error
            )

        logger.info(f"Draw {draw.id} completed with {winners_created} winners")
        return DrawExecutionResult(
            draw.id,
            draw.draw_name,
            DrawOutcome.COMPLETED,
            winners_created=winners_created,
        )


@log_task_execution(logger)
async def execute_draw_by_id(
    draw_id: str, now: Optional[datetime] = None
) -> DrawExecutionResult:
    """Admin fallback: run one named draw through the normal pipeline.

    The schedule is not checked, but the draw must still be active and never
    executed, otherwise the lock is refused and the result is skipped.
    """
    now = now or datetime.now(timezone.utc)

    async with db.get_session() as session:
        draw = await create_prize_draw_service(session).get_draw(draw_id)

    if not draw:
        logger.warning(f"Manual execution requested for unknown draw {draw_id}")
        return DrawExecutionResult(
            draw_id, "", DrawOutcome.FAILED, error=f"Prize draw {draw_id} not found"
        )

    return await execute_draw(draw, now)


@log_task_execution(logger)
async def job_execute_scheduled_draws(
    now: Optional[datetime] = None,
) -> list[DrawExecutionResult]:
    """Executes every active draw whose scheduled time has passed.

    Safe to run concurrently from several workers, each draw is claimed
    through a compare-and-swap on its status before any work happens.
    """
    now = now or datetime.now(timezone.utc)

    async with db.get_session() as session:
        draw_service = create_prize_draw_service(session)
        due_draws = await draw_service.get_due_draws(now)

    if not due_draws:
        logger.debug("No draws due for execution")
        return []

    logger.info(f"Found {len(due_draws)} draw(s) due for execution")

    results: list[DrawExecutionResult] = []
    for draw in due_draws:
        try:
            results.append(await execute_draw(draw, now))
        except Exception as e:
            logger.error(f"Unhandled error executing draw {draw.id}: {e}", exc_info=True)
            results.append(
                DrawExecutionResult(
                    draw.id, draw.draw_name, DrawOutcome.FAILED, error=str(e)
                )
            )

    return results
