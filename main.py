import prizedraw.logging_config  # pyright: ignore  # noqa: F401 # isort:skip
import argparse
import asyncio
import logging
import signal
import sys

from prizedraw.automations import PrizeDrawAutomations
from prizedraw.config import CONFIG, ENVIRONMENT
from prizedraw.database.database import db
from prizedraw.logging_config import shutdown_logging
from prizedraw.tasks.job_execute_scheduled_draws import (
    DrawOutcome,
    execute_draw_by_id,
    job_execute_scheduled_draws,
)
from prizedraw.tasks.job_process_expired_prizes import job_process_expired_prizes

logger = logging.getLogger(__name__)

RUN_ONCE_JOBS = {
    "draws": job_execute_scheduled_draws,
    "expiry": job_process_expired_prizes,
}


def parse_cli_arguments(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Prize draw worker: executes scheduled draws and redraws expired prizes."
    )
    parser.add_argument(
        "--run-once",
        choices=sorted(RUN_ONCE_JOBS.keys()),
        default=None,
        help="Runs a single job and exits instead of starting the scheduler.",
    )
    parser.add_argument(
        "--execute-draw",
        metavar="DRAW_ID",
        default=None,
        help="Executes one active draw now, ignoring its schedule, and exits.",
    )
    parser.add_argument(
        "--create-tables",
        action="store_true",
        default=False,
        help="Creates missing tables before starting (development only).",
    )

    return parser.parse_args(argv)


async def run_worker() -> None:
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    automations = PrizeDrawAutomations()
    logger.info(f"Starting prize draw worker v{CONFIG.SERVICE_VERSION}")

    await stop_event.wait()

    logger.info("Shutdown signal received")
    await automations.stop()


async def run(args: argparse.Namespace) -> int:
    try:
        if args.create_tables:
            if CONFIG.ENVIRONMENT == ENVIRONMENT.PRODUCTION:
                logger.critical("--create-tables is not allowed in production, use alembic")
                return 1
            await db.create_all()

        if args.execute_draw:
            result = await execute_draw_by_id(args.execute_draw)
            if result.outcome != DrawOutcome.COMPLETED:
                logger.error(
                    f"Draw {args.execute_draw} was not executed: "
                    f"{result.error or result.outcome}"
                )
                return 1
            logger.info(
                f"Draw {args.execute_draw} executed, "
                f"{result.winners_created} winners selected"
            )
        elif args.run_once:
            await RUN_ONCE_JOBS[args.run_once]()
        else:
            await run_worker()
    finally:
        await db.dispose()

    return 0


def main(argv=None) -> int:
    args = parse_cli_arguments(argv)

    try:
        return asyncio.run(run(args))
    finally:
        shutdown_logging()


if __name__ == "__main__":
    sys.exit(main())
