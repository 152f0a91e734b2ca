import unittest
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

from parameterized import parameterized

from prizedraw.common.helpers import calculate_claim_deadline, days_remaining

NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


class TestHelpers(unittest.TestCase):
    def test_claim_deadline_uses_configured_window(self):
        with patch("prizedraw.common.helpers.CONFIG") as mock_config:
            mock_config.CLAIM_WINDOW_DAYS = 14

            result = calculate_claim_deadline(NOW)

        self.assertEqual(result, NOW + timedelta(days=14))

    def test_claim_deadline_with_explicit_window(self):
        result = calculate_claim_deadline(NOW, window_days=3)

        self.assertEqual(result, datetime(2025, 6, 4, 12, 0, 0, tzinfo=timezone.utc))

    @parameterized.expand(
        [
            ("two_weeks", NOW + timedelta(days=14), 14),
            ("partial_day_rounds_down", NOW + timedelta(days=2, hours=23), 2),
            ("less_than_a_day", NOW + timedelta(hours=5), 0),
            ("exactly_now", NOW, 0),
            ("past_deadline", NOW - timedelta(days=3), 0),
        ]
    )
    def test_days_remaining(self, _name, deadline, expected):
        self.assertEqual(days_remaining(deadline, NOW), expected)
