import unittest
from datetime import date, datetime, time, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

from parameterized import parameterized
from sqlalchemy.exc import IntegrityError

from prizedraw.exceptions.draw_exceptions import (
    DrawNotFoundException,
    PrizeDrawServiceException,
)
from prizedraw.models.audit_log import AuditAction
from prizedraw.models.entry import PrizeDrawEntry
from prizedraw.models.member import CountrySetting, Membership
from prizedraw.models.types import DrawStatus, MembershipStatus
from prizedraw.services.prize_draw_service import ForecastResult, PrizeDrawService
from tests.helpers import (
    FIXED_NOW,
    create_mock_session,
    create_test_draw,
    create_test_prize,
    mock_rowcount_result,
    mock_scalars_result,
)


class TestPrizeDrawService(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.mock_db = create_mock_session()
        self.service = PrizeDrawService(self.mock_db)
        self.service.membership_service = AsyncMock()
        self.service.audit_service = MagicMock()

        self.membership = Membership(
            id="membership-1",
            user_id="user-1",
            status=MembershipStatus.ACTIVE,
            start_date=FIXED_NOW - timedelta(days=30),
            end_date=FIXED_NOW + timedelta(days=300),
        )

    async def test_require_draw_raises_when_missing(self):
        self.mock_db.execute.return_value = mock_scalars_result([])

        with self.assertRaises(DrawNotFoundException):
            await self.service.require_draw("missing")

    async def test_create_draw(self):
        draw = await self.service.create_draw(
            "  July Draw ", "BD", date(2025, 7, 1), time(20, 0), "admin-1"
        )

        self.assertEqual(draw.draw_name, "July Draw")
        self.assertEqual(draw.status, DrawStatus.DRAFT)
        self.mock_db.add.assert_called_once_with(draw)
        self.mock_db.flush.assert_called_once()
        self.mock_db.commit.assert_called_once()
        self.assertEqual(
            self.service.audit_service.append.call_args[0][0], AuditAction.DRAW_CREATED
        )

    async def test_create_draw_requires_name(self):
        with self.assertRaises(PrizeDrawServiceException):
            await self.service.create_draw("   ", "BD", date(2025, 7, 1), time(20, 0))

        self.mock_db.add.assert_not_called()

    async def test_create_prize_rejects_zero_winners(self):
        with self.assertRaises(PrizeDrawServiceException):
            await self.service.create_prize("draw-1", "Cash", 1000, number_of_winners=0)

    async def test_create_prize_rejects_negative_value(self):
        with self.assertRaises(PrizeDrawServiceException):
            await self.service.create_prize("draw-1", "Cash", -5)

    async def test_create_prize_for_missing_draw(self):
        self.mock_db.execute.return_value = mock_scalars_result([])

        with self.assertRaises(DrawNotFoundException):
            await self.service.create_prize("missing", "Cash", 1000)

    # =============================================================================
    # forecast tests
    # =============================================================================

    async def test_forecast_member_count(self):
        self.service.membership_service.count_active_members.return_value = 100
        self.service.membership_service.count_new_members_since.return_value = 30

        result = await self.service.calculate_forecast_member_count(
            "BD", date(2025, 6, 11), FIXED_NOW
        )

        # 9.5 days until midnight of the draw date rounds up to 10 days of growth
        self.assertEqual(result.forecast_member_count, 110)
        self.assertEqual(result.current_member_count, 100)
        self.assertEqual(result.growth_rate, 1.0)

    async def test_forecast_member_count_for_past_draw_date(self):
        self.service.membership_service.count_active_members.return_value = 40
        self.service.membership_service.count_new_members_since.return_value = 60

        result = await self.service.calculate_forecast_member_count(
            "BD", date(2025, 5, 1), FIXED_NOW
        )

        self.assertEqual(result.forecast_member_count, 40)

    async def test_estimated_prize_pool(self):
        self.mock_db.execute.return_value = mock_scalars_result(
            [CountrySetting(country_code="BD", membership_fee_amount=500, currency_code="BDT")]
        )

        with patch.object(
            self.service,
            "calculate_forecast_member_count",
            AsyncMock(return_value=ForecastResult(200, 180, 0.67)),
        ):
            result = await self.service.calculate_estimated_prize_pool(
                "BD", date(2025, 7, 1), 30, FIXED_NOW
            )

        self.assertEqual(result.amount, 30000)
        self.assertEqual(result.currency_code, "BDT")
        self.assertEqual(result.forecast_member_count, 200)

    async def test_estimated_prize_pool_without_country_settings(self):
        self.mock_db.execute.return_value = mock_scalars_result([])

        result = await self.service.calculate_estimated_prize_pool(
            "XX", date(2025, 7, 1), now=FIXED_NOW
        )

        self.assertIsNone(result)

    # =============================================================================
    # lifecycle tests
    # =============================================================================

    async def test_announce_draw_requires_draft(self):
        draw = create_test_draw(status=DrawStatus.ACTIVE)
        self.mock_db.execute.return_value = mock_scalars_result([draw])

        result = await self.service.announce_draw(draw.id, "admin-1", FIXED_NOW)

        self.assertFalse(result.status)
        self.mock_db.commit.assert_not_called()

    async def test_activate_draw_requires_announced(self):
        self.mock_db.execute.return_value = mock_rowcount_result(0)

        result = await self.service.activate_draw("draw-1", "admin-1")

        self.assertFalse(result.status)
        self.mock_db.rollback.assert_called_once()

    async def test_try_lock_for_execution_wins(self):
        self.mock_db.execute.return_value = mock_rowcount_result(1)

        result = await self.service.try_lock_for_execution("draw-1", FIXED_NOW)

        self.assertTrue(result)
        self.mock_db.commit.assert_called_once()

    async def test_try_lock_for_execution_loses(self):
        self.mock_db.execute.return_value = mock_rowcount_result(0)

        result = await self.service.try_lock_for_execution("draw-1", FIXED_NOW)

        self.assertFalse(result)

    async def test_mark_completed_requires_executing(self):
        self.mock_db.execute.return_value = mock_rowcount_result(0)

        result = await self.service.mark_completed("draw-1", FIXED_NOW)

        self.assertFalse(result)
        self.mock_db.rollback.assert_called_once()
        self.service.audit_service.append.assert_not_called()

    async def test_mark_failed_records_error(self):
        self.mock_db.execute.return_value = mock_rowcount_result(1)

        result = await self.service.mark_failed("draw-1", "DrawExecutionError: boom")

        self.assertTrue(result)
        audit_args = self.service.audit_service.append.call_args[0]
        self.assertEqual(audit_args[0], AuditAction.DRAW_FAILED)
        self.assertEqual(audit_args[4], {"error": "DrawExecutionError: boom"})

    async def test_get_due_draws_filters_in_draw_timezone(self):
        # 18:00 in Dhaka is 12:00 UTC, exactly FIXED_NOW
        due = create_test_draw(draw_date=date(2025, 6, 1), draw_time=time(18, 0))
        not_yet = create_test_draw(draw_date=date(2025, 6, 1), draw_time=time(18, 30))
        self.mock_db.execute.return_value = mock_scalars_result([due, not_yet])

        result = await self.service.get_due_draws(FIXED_NOW, "Asia/Dhaka")

        self.assertEqual(result, [due])

    async def test_get_due_draws_skips_executed(self):
        executed = create_test_draw(executed_at=FIXED_NOW - timedelta(hours=1))
        self.mock_db.execute.return_value = mock_scalars_result([executed])

        result = await self.service.get_due_draws(FIXED_NOW, "UTC")

        self.assertEqual(result, [])

    # =============================================================================
    # entry tests
    # =============================================================================

    def open_draw(self, **kwargs):
        return create_test_draw(draw_date=FIXED_NOW.date() + timedelta(days=7), **kwargs)

    async def test_entry_without_active_draw(self):
        with patch.object(self.service, "get_active_draw", AsyncMock(return_value=None)):
            result = await self.service.ensure_entry_for_current_draw(
                "user-1", "BD", FIXED_NOW
            )

        self.assertFalse(result.status)
        self.assertEqual(result.message, "No active draw found")

    async def test_entry_requires_active_membership(self):
        self.mock_db.execute.return_value = mock_scalars_result([])

        with patch.object(
            self.service, "get_active_draw", AsyncMock(return_value=create_test_draw())
        ):
            result = await self.service.ensure_entry_for_current_draw(
                "user-1", "BD", FIXED_NOW
            )

        self.assertFalse(result.status)
        self.assertEqual(result.message, "Active membership required")

    async def test_entry_is_idempotent(self):
        existing = PrizeDrawEntry(
            prize_draw_id="draw-1", user_id="user-1", created_at=FIXED_NOW - timedelta(days=2)
        )
        self.mock_db.execute.side_effect = [
            mock_scalars_result([self.membership]),
            mock_scalars_result([existing]),
        ]

        with patch.object(
            self.service, "get_active_draw", AsyncMock(return_value=create_test_draw())
        ):
            result = await self.service.ensure_entry_for_current_draw(
                "user-1", "BD", FIXED_NOW
            )

        self.assertTrue(result.entered)
        self.assertEqual(result.message, "Already entered")
        self.assertEqual(result.entered_at, existing.created_at)
        self.mock_db.add.assert_not_called()

    async def test_entry_created_with_membership_snapshot(self):
        self.mock_db.execute.side_effect = [
            mock_scalars_result([self.membership]),
            mock_scalars_result([]),
        ]

        with patch.object(
            self.service, "get_active_draw", AsyncMock(return_value=self.open_draw(id="draw-9"))
        ):
            result = await self.service.ensure_entry_for_current_draw(
                "user-1", "BD", FIXED_NOW
            )

        self.assertTrue(result.entered)
        self.assertEqual(result.entered_at, FIXED_NOW)
        entry = self.mock_db.add.call_args[0][0]
        self.assertEqual(entry.prize_draw_id, "draw-9")
        self.assertEqual(entry.membership_id, "membership-1")
        self.mock_db.commit.assert_called_once()

    async def test_entry_race_returns_existing_entry(self):
        existing = PrizeDrawEntry(
            prize_draw_id="draw-1", user_id="user-1", created_at=FIXED_NOW
        )
        self.mock_db.execute.side_effect = [
            mock_scalars_result([self.membership]),
            mock_scalars_result([]),
            mock_scalars_result([existing]),
        ]
        self.mock_db.commit.side_effect = IntegrityError("insert", {}, Exception("dup"))

        with patch.object(
            self.service, "get_active_draw", AsyncMock(return_value=self.open_draw())
        ):
            result = await self.service.ensure_entry_for_current_draw(
                "user-1", "BD", FIXED_NOW
            )

        self.assertTrue(result.entered)
        self.assertEqual(result.message, "Already entered")
        self.mock_db.rollback.assert_called_once()

    async def test_get_draw_execution_status_unknown(self):
        self.mock_db.execute.return_value = mock_scalars_result([])

        result = await self.service.get_draw_execution_status("missing")

        self.assertEqual(result.status, "unknown")

    async def test_get_draw_execution_status(self):
        draw = create_test_draw(
            status=DrawStatus.COMPLETED,
            executed_at=datetime(2025, 6, 1, 10, 1, tzinfo=timezone.utc),
        )
        totals = MagicMock()
        totals.one.return_value = (3, 15000)
        self.mock_db.execute.side_effect = [mock_scalars_result([draw]), totals]

        result = await self.service.get_draw_execution_status(draw.id)

        self.assertEqual(result.status, "completed")
        self.assertEqual(result.winners_selected, 3)
        self.assertEqual(result.total_awarded, 15000)

    async def test_get_draw_execution_status_leaves_out_expired_winners(self):
        draw = create_test_draw(status=DrawStatus.COMPLETED)
        totals = MagicMock()
        totals.one.return_value = (1, 5000)
        self.mock_db.execute.side_effect = [mock_scalars_result([draw]), totals]

        await self.service.get_draw_execution_status(draw.id)

        statement = str(self.mock_db.execute.call_args_list[1][0][0])
        self.assertIn("prize_draw_winners.claim_status !=", statement)

    # =============================================================================
    # fairness lock tests
    # =============================================================================

    async def test_entry_rejected_after_cutoff(self):
        closing = create_test_draw(draw_date=FIXED_NOW.date(), draw_time=time(12, 30))
        self.mock_db.execute.side_effect = [
            mock_scalars_result([self.membership]),
            mock_scalars_result([]),
        ]

        with patch.object(self.service, "get_active_draw", AsyncMock(return_value=closing)):
            result = await self.service.ensure_entry_for_current_draw(
                "user-1", "BD", FIXED_NOW
            )

        self.assertFalse(result.status)
        self.assertEqual(result.message, "Entries are closed for this draw")
        self.mock_db.add.assert_not_called()

    async def test_existing_entry_still_returned_after_cutoff(self):
        closing = create_test_draw(fairness_locked=True, draw_date=date(2025, 7, 1))
        existing = PrizeDrawEntry(
            prize_draw_id=closing.id, user_id="user-1", created_at=FIXED_NOW
        )
        self.mock_db.execute.side_effect = [
            mock_scalars_result([self.membership]),
            mock_scalars_result([existing]),
        ]

        with patch.object(self.service, "get_active_draw", AsyncMock(return_value=closing)):
            result = await self.service.ensure_entry_for_current_draw(
                "user-1", "BD", FIXED_NOW
            )

        self.assertTrue(result.entered)
        self.assertEqual(result.message, "Already entered")

    @parameterized.expand(
        [
            ("open", time(14, 0), None, False, False, True),
            ("inside_cutoff_window", time(12, 45), None, False, True, False),
            ("admin_locked", time(18, 0), None, True, True, False),
            (
                "explicit_cutoff_passed",
                time(18, 0),
                datetime(2025, 6, 1, 11, 0, tzinfo=timezone.utc),
                False,
                True,
                False,
            ),
        ]
    )
    async def test_check_draw_fairness_lock(
        self, _, draw_time, explicit_cutoff, admin_locked, is_locked, can_enter
    ):
        draw = create_test_draw(
            draw_date=FIXED_NOW.date(),
            draw_time=draw_time,
            entry_cutoff_time=explicit_cutoff,
            fairness_locked=admin_locked,
        )
        self.mock_db.execute.return_value = mock_scalars_result([draw])

        result = await self.service.check_draw_fairness_lock(draw.id, FIXED_NOW)

        self.assertEqual(result.is_locked, is_locked)
        self.assertEqual(result.can_enter, can_enter)
        self.assertEqual(result.status, DrawStatus.ACTIVE)

    async def test_fairness_cutoff_defaults_to_an_hour_before_draw(self):
        draw = create_test_draw(draw_date=FIXED_NOW.date(), draw_time=time(18, 0))
        self.mock_db.execute.return_value = mock_scalars_result([draw])

        result = await self.service.check_draw_fairness_lock(draw.id, FIXED_NOW)

        self.assertEqual(
            result.cutoff_time, datetime(2025, 6, 1, 17, 0, tzinfo=timezone.utc)
        )

    async def test_announced_draw_can_not_be_entered_yet(self):
        draw = create_test_draw(
            status=DrawStatus.ANNOUNCED, draw_date=date(2025, 7, 1)
        )
        self.mock_db.execute.return_value = mock_scalars_result([draw])

        result = await self.service.check_draw_fairness_lock(draw.id, FIXED_NOW)

        self.assertFalse(result.is_locked)
        self.assertFalse(result.can_enter)

    async def test_check_draw_fairness_lock_for_missing_draw(self):
        self.mock_db.execute.return_value = mock_scalars_result([])

        with self.assertRaises(DrawNotFoundException):
            await self.service.check_draw_fairness_lock("missing", FIXED_NOW)

    # =============================================================================
    # member prize listing
    # =============================================================================

    async def test_list_active_prizes_for_member_draw(self):
        draw = create_test_draw(id="draw-5")
        prizes = [
            create_test_prize(draw_id="draw-5", prize_value_amount=10000),
            create_test_prize(draw_id="draw-5", prize_value_amount=2000),
        ]
        self.mock_db.execute.return_value = mock_scalars_result(prizes)

        with patch.object(self.service, "get_active_draw", AsyncMock(return_value=draw)):
            result = await self.service.list_active_prizes_for_member_draw("BD")

        self.assertEqual(result, prizes)
        statement = str(self.mock_db.execute.call_args[0][0])
        self.assertIn("ORDER BY prize_draw_prizes.prize_value_amount DESC", statement)

    async def test_list_active_prizes_without_active_draw(self):
        with patch.object(self.service, "get_active_draw", AsyncMock(return_value=None)):
            result = await self.service.list_active_prizes_for_member_draw("AE")

        self.assertEqual(result, [])
        self.mock_db.execute.assert_not_called()
