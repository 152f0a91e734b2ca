from datetime import datetime, timedelta
from typing import Optional

from prizedraw.config import CONFIG


def calculate_claim_deadline(
    selected_at: datetime, window_days: Optional[int] = None
) -> datetime:
    """Deadline for a winner selected at ``selected_at``."""
    days = window_days if window_days is not None else CONFIG.CLAIM_WINDOW_DAYS
    return selected_at + timedelta(days=days)


def days_remaining(deadline: datetime, now: datetime) -> int:
    """Whole days left before ``deadline``, never negative."""
    remaining = deadline - now
    if remaining.total_seconds() <= 0:
        return 0
    return remaining.days
