import hashlib
import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from tabulate import tabulate

from prizedraw.config import CONFIG
from prizedraw.decorators.with_timeout import with_timeout
from prizedraw.exceptions.draw_exceptions import (
    DrawNotFoundException,
    PrizeDrawServiceException,
)
from prizedraw.models.entry import PrizeDrawEntry
from prizedraw.models.prize_draw import Prize, PrizeDraw
from prizedraw.models.report import PrizeDrawReport
from prizedraw.models.types import PrizeStatus
from prizedraw.models.winner import PrizeDrawWinner
from prizedraw.services.prize_draw_winner_service import PrizeDrawWinnerService

logger = logging.getLogger(__name__)


def sign_report_payload(payload: dict[str, Any]) -> str:
    """SHA-256 over the canonical JSON form of the payload."""
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def format_report_table(report: PrizeDrawReport, draw_name: Optional[str] = None) -> str:
    rows = [
        ["Draw", draw_name or report.draw_id],
        ["Entries", report.total_entries],
        ["Eligible", report.total_eligible],
        ["Prizes", report.total_prizes],
        ["Winners", report.total_winners],
        ["Total prize value", report.total_prize_value],
        ["Auto executed", "yes" if report.auto_executed else "no"],
        ["Executed at", report.execution_timestamp.isoformat()],
        ["Signature", report.report_signature[:16]],
    ]
    return tabulate(rows, headers=["Field", "Value"], tablefmt="github")


class DrawReportService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.winner_service = PrizeDrawWinnerService(db)

    async def close(self):
        await self.db.close()

    async def get_report(self, draw_id: str) -> PrizeDrawReport | None:
        result = await self.db.execute(
            select(PrizeDrawReport).where(PrizeDrawReport.draw_id == draw_id)
        )
        return result.scalars().first()

    async def get_all_draw_reports(
        self, country_code: str = "BD", limit: int = 50
    ) -> list[PrizeDrawReport]:
        """Newest reports first for the country's draws."""
        result = await self.db.execute(
            select(PrizeDrawReport)
            .join(PrizeDraw, PrizeDraw.id == PrizeDrawReport.draw_id)
            .where(PrizeDraw.country_code == country_code)
            .order_by(PrizeDrawReport.execution_timestamp.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    @with_timeout(CONFIG.EXTERNAL_CALL_TIMEOUT_SECONDS)
    async def generate_draw_report(
        self,
        draw_id: str,
        auto_executed: bool,
        executed_by: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> PrizeDrawReport:
        """Create or refresh the one report row of a draw."""
        now = now or datetime.now(timezone.utc)

        draw_result = await self.db.execute(
            select(PrizeDraw).where(PrizeDraw.id == draw_id)
        )
        if not draw_result.scalars().first():
            raise DrawNotFoundException(f"Prize draw {draw_id} not found")

        entries_result = await self.db.execute(
            select(func.count(PrizeDrawEntry.id)).where(
                PrizeDrawEntry.prize_draw_id == draw_id
            )
        )
        total_entries = entries_result.scalar_one() or 0

        eligible = await self.winner_service.list_eligible_entries(draw_id, now)
        if not eligible.status:
            raise PrizeDrawServiceException(eligible.message)

        prizes_result = await self.db.execute(
            select(func.count(Prize.id)).where(
                Prize.draw_id == draw_id, Prize.status == PrizeStatus.ACTIVE
            )
        )
        total_prizes = prizes_result.scalar_one() or 0

        winners_result = await self.db.execute(
            select(PrizeDrawWinner.id, Prize.prize_value_amount)
            .join(Prize, Prize.id == PrizeDrawWinner.prize_id)
            .where(PrizeDrawWinner.draw_id == draw_id)
        )
        winners = winners_result.all()
        winner_ids = sorted(winner_id for winner_id, _ in winners)
        total_prize_value = sum(amount or 0 for _, amount in winners)

        payload = {
            "draw_id": draw_id,
            "total_entries": total_entries,
            "total_eligible": len(eligible.entries),
            "total_prizes": total_prizes,
            "total_winners": len(winner_ids),
            "total_prize_value": total_prize_value,
            "winner_ids": winner_ids,
            "auto_executed": auto_executed,
            "executed_by": executed_by,
            "execution_timestamp": now.isoformat(),
        }
        signature = sign_report_payload(payload)

        report = await self.get_report(draw_id)
        if report is None:
            report = PrizeDrawReport(draw_id=draw_id)
            self.db.add(report)

        report.total_entries = total_entries
        report.total_eligible = len(eligible.entries)
        report.total_prizes = total_prizes
        report.total_winners = len(winner_ids)
        report.total_prize_value = total_prize_value
        report.winner_ids = winner_ids
        report.auto_executed = auto_executed
        report.executed_by = executed_by
        report.execution_timestamp = now
        report.report_signature = signature

        await self.db.commit()

        logger.info(
            f"Report for draw {draw_id}: {len(winner_ids)} winners, "
            f"{total_entries} entries, signature {signature[:12]}"
        )
        return report
