import unittest
from unittest.mock import AsyncMock, MagicMock

from prizedraw.exceptions.draw_exceptions import (
    DrawNotFoundException,
    PrizeDrawServiceException,
)
from prizedraw.models.report import PrizeDrawReport
from prizedraw.services.draw_report_service import (
    DrawReportService,
    format_report_table,
    sign_report_payload,
)
from prizedraw.services.prize_draw_winner_service import (
    EligibleEntriesResponse,
    EligibleEntry,
)
from tests.helpers import (
    FIXED_NOW,
    create_mock_session,
    create_test_draw,
    mock_rows_result,
    mock_scalars_result,
)


def count_result(value: int) -> MagicMock:
    result = MagicMock()
    result.scalar_one.return_value = value
    return result


class TestReportSignature(unittest.TestCase):
    def test_signature_is_stable_across_key_order(self):
        first = sign_report_payload({"a": 1, "b": [1, 2], "c": None})
        second = sign_report_payload({"c": None, "b": [1, 2], "a": 1})

        self.assertEqual(first, second)
        self.assertEqual(len(first), 64)

    def test_signature_changes_with_content(self):
        self.assertNotEqual(
            sign_report_payload({"total_winners": 3}),
            sign_report_payload({"total_winners": 4}),
        )

    def test_signature_handles_datetimes(self):
        signature = sign_report_payload({"execution_timestamp": FIXED_NOW})

        self.assertEqual(
            signature, sign_report_payload({"execution_timestamp": str(FIXED_NOW)})
        )

    def test_format_report_table(self):
        report = PrizeDrawReport(
            draw_id="draw-1",
            total_entries=10,
            total_eligible=8,
            total_prizes=2,
            total_winners=3,
            total_prize_value=12000,
            winner_ids=[],
            auto_executed=True,
            execution_timestamp=FIXED_NOW,
            report_signature="f" * 64,
        )

        table = format_report_table(report, "June Draw")

        self.assertIn("| Field", table)
        self.assertIn("June Draw", table)
        self.assertIn("12000", table)
        self.assertIn("yes", table)


class TestDrawReportService(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.mock_db = create_mock_session()
        self.service = DrawReportService(self.mock_db)
        self.service.winner_service = AsyncMock()
        self.service.winner_service.list_eligible_entries.return_value = (
            EligibleEntriesResponse(
                True,
                "2 eligible entries",
                [EligibleEntry("u-1", "e-1", "m-1"), EligibleEntry("u-2", "e-2", "m-2")],
            )
        )

    async def test_missing_draw_raises(self):
        self.mock_db.execute.return_value = mock_scalars_result([])

        with self.assertRaises(DrawNotFoundException):
            await self.service.generate_draw_report("missing", auto_executed=True)

    async def test_failed_pool_read_raises(self):
        self.service.winner_service.list_eligible_entries.return_value = (
            EligibleEntriesResponse(False, "Failed to fetch entries")
        )
        self.mock_db.execute.side_effect = [
            mock_scalars_result([create_test_draw(id="draw-1")]),
            count_result(5),
        ]

        with self.assertRaises(PrizeDrawServiceException):
            await self.service.generate_draw_report("draw-1", auto_executed=True)

        self.mock_db.commit.assert_not_called()

    async def test_creates_signed_report(self):
        self.mock_db.execute.side_effect = [
            mock_scalars_result([create_test_draw(id="draw-1")]),
            count_result(5),
            count_result(2),
            mock_rows_result([("w-2", 3000), ("w-1", 5000)]),
            mock_scalars_result([]),
        ]

        report = await self.service.generate_draw_report(
            "draw-1", auto_executed=True, now=FIXED_NOW
        )

        self.assertEqual(report.total_entries, 5)
        self.assertEqual(report.total_eligible, 2)
        self.assertEqual(report.total_prizes, 2)
        self.assertEqual(report.total_winners, 2)
        self.assertEqual(report.total_prize_value, 8000)
        self.assertEqual(report.winner_ids, ["w-1", "w-2"])
        self.assertTrue(report.auto_executed)
        self.assertEqual(len(report.report_signature), 64)
        self.mock_db.add.assert_called_once_with(report)
        self.mock_db.commit.assert_called_once()

    async def test_regenerating_updates_existing_report(self):
        existing = PrizeDrawReport(draw_id="draw-1", report_signature="0" * 64)
        self.mock_db.execute.side_effect = [
            mock_scalars_result([create_test_draw(id="draw-1")]),
            count_result(1),
            count_result(1),
            mock_rows_result([]),
            mock_scalars_result([existing]),
        ]

        report = await self.service.generate_draw_report(
            "draw-1", auto_executed=False, executed_by="admin-1", now=FIXED_NOW
        )

        self.assertIs(report, existing)
        self.assertEqual(report.executed_by, "admin-1")
        self.assertNotEqual(report.report_signature, "0" * 64)
        self.mock_db.add.assert_not_called()

    async def test_get_all_draw_reports_filters_by_country(self):
        reports = [PrizeDrawReport(draw_id="draw-2"), PrizeDrawReport(draw_id="draw-1")]
        self.mock_db.execute.return_value = mock_scalars_result(reports)

        result = await self.service.get_all_draw_reports("AE", limit=10)

        self.assertEqual(result, reports)
        statement = self.mock_db.execute.call_args[0][0]
        compiled = statement.compile(compile_kwargs={"literal_binds": True})
        self.assertIn("prize_draws.country_code = 'AE'", str(compiled))
        self.assertIn("execution_timestamp DESC", str(compiled))
        self.assertIn("LIMIT 10", str(compiled))
