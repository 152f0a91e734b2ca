import asyncio
import logging
import random
from typing import Set

from apscheduler.executors.asyncio import AsyncIOExecutor
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from prizedraw.config import CONFIG, ENVIRONMENT
from prizedraw.tasks.job_execute_scheduled_draws import job_execute_scheduled_draws
from prizedraw.tasks.job_process_expired_prizes import job_process_expired_prizes
from prizedraw.tasks.job_report_stuck_draws import job_report_stuck_draws

logger = logging.getLogger(__name__)


class PrizeDrawAutomations:
    def __init__(self):
        self._running_jobs: Set[asyncio.Task] = set()
        self._job_lock = asyncio.Lock()
        self._shutdown_timeout = 30.0
        self._setup_done = False

        executors = {
            "default": AsyncIOExecutor(),
        }
        self.scheduler = AsyncIOScheduler(executors=executors)
        self.scheduler.start()
        logger.debug("Scheduler started successfully")

        asyncio.create_task(self.setup_automations())

    async def stop(self):
        """Initiates shutdown and cleanup of scheduled jobs."""
        logger.info("Initiating shutdown of automations...")

        try:
            self.scheduler.pause()

            await self.wait_for_jobs_to_complete()

            self.scheduler.remove_all_jobs()
            self.scheduler.shutdown(wait=False)

            logger.info(f"Prize draw worker v{CONFIG.SERVICE_VERSION} now offline")
        except Exception as e:
            logger.error(f"Error during automation shutdown: {e}")
            raise

    async def wait_for_jobs_to_complete(self):
        """Waits for all active jobs to complete before completing."""
        async with self._job_lock:
            active_jobs = len(self._running_jobs)

            if active_jobs < 1:
                logger.info("No active jobs to wait for...")
                return

            logger.info(f"Waiting for {active_jobs} job(s) to finish...")

            try:
                await asyncio.wait_for(
                    asyncio.gather(*self._running_jobs, return_exceptions=True),
                    timeout=self._shutdown_timeout,
                )
            except asyncio.TimeoutError:
                logger.warning(
                    f"Timeout waiting for jobs to complete after {self._shutdown_timeout}s, forcing shutdown"
                )
                for job in self._running_jobs:
                    if not job.done():
                        job.cancel()
                        logger.warning(f"Cancelled job: {job}")

    async def track_job(self, job_func, *args, **kwargs):
        """Track a running job by wrapping it in a task and storing the reference."""
        task = asyncio.create_task(self._safe_job_wrapper(job_func, *args, **kwargs))

        async with self._job_lock:
            self._running_jobs.add(task)

        task.add_done_callback(self._job_done_callback)

        logger.debug(f"Started job: {job_func.__name__}")
        return task

    def _job_done_callback(self, task: asyncio.Task):
        """Remove the job from the running_jobs set once it is finished."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as e:
            logger.warning(f"Could not schedule job cleanup: {e}")
            return

        async def cleanup():
            async with self._job_lock:
                self._running_jobs.discard(task)
                active_count = len(self._running_jobs)

            if not task.cancelled() and task.exception():
                logger.error(f"Job completed with exception: {task.exception()}")

            logger.debug(f"Job completed. {active_count} job(s) active.")

        loop.create_task(cleanup())

    def _job_wrapper(self, job_func, *args, **kwargs):
        """Wrapper for tracking active jobs."""

        async def async_wrapper():
            try:
                await self.track_job(job_func, *args, **kwargs)
            except Exception as e:
                logger.error(
                    f"Failed to execute job {job_func.__name__}: {type(e).__name__}: {e}"
                )

        async_wrapper.__name__ = f"{job_func.__name__}_wrapper"
        async_wrapper.__qualname__ = (
            f"PrizeDrawAutomations.{job_func.__name__}_wrapper"
        )
        return async_wrapper

    async def _safe_job_wrapper(self, job_func, *args, **kwargs):
        job_name = getattr(job_func, "__name__", str(job_func))

        try:
            logger.debug(f"Starting job: {job_name}")
            result = await job_func(*args, **kwargs)
            logger.debug(f"Job completed successfully: {job_name}")
            return result
        except asyncio.CancelledError:
            logger.warning(f"Job was cancelled: {job_name}")
            raise
        except Exception as e:
            logger.error(
                f"Job failed with exception: {job_name} - {type(e).__name__}: {e}"
            )
            raise

    async def setup_automations(self):
        """Add jobs to scheduler."""
        if self._setup_done:
            logger.warning("Automation setup already completed, skipping...")
            return

        # staggers non-production workers sharing a database
        offset = (
            0
            if ENVIRONMENT.PRODUCTION in CONFIG.ENVIRONMENT
            else random.randint(10, 50)
        )

        self.scheduler.remove_all_jobs()

        self.scheduler.add_job(
            self._job_wrapper(job_execute_scheduled_draws),
            IntervalTrigger(minutes=CONFIG.DRAW_EXECUTION_INTERVAL_MINUTES),
            id="execute_scheduled_draws",
            name="Scheduled Draw Execution Job",
            max_instances=1,
            coalesce=True,
        )

        self.scheduler.add_job(
            self._job_wrapper(job_process_expired_prizes),
            CronTrigger(
                hour=CONFIG.EXPIRY_CHECK_HOUR, minute=0, second=offset, timezone="UTC"
            ),
            id="process_expired_prizes",
            name="Expiry And Redraw Job",
            max_instances=1,
            coalesce=True,
        )

        self.scheduler.add_job(
            self._job_wrapper(job_report_stuck_draws),
            CronTrigger(minute="*/15", second=offset, timezone="UTC"),
            id="report_stuck_draws",
            name="Stuck Draw Report Job",
        )

        logger.info(f"Prize draw worker v{CONFIG.SERVICE_VERSION} now online")

        await self.track_job(job_execute_scheduled_draws)

        self._setup_done = True
        logger.info("Automation setup completed successfully")
