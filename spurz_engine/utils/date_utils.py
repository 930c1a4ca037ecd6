"""Date manipulation utilities"""

import math
from datetime import datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """Current UTC time as a naive datetime (all stored timestamps are naive UTC)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(moment: datetime) -> datetime:
    """Normalize a client-supplied datetime; naive values are taken as UTC"""
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc).replace(tzinfo=None)


def expires_in(days: int, now: Optional[datetime] = None) -> datetime:
    return (now or utcnow()) + timedelta(days=days)


def days_until(moment: Optional[datetime], now: Optional[datetime] = None) -> Optional[int]:
    """Whole days left until a moment (rounded up), 0 once it has passed, None without a moment"""
    if moment is None:
        return None
    remaining = (moment - (now or utcnow())).total_seconds()
    if remaining <= 0:
        return 0
    return math.ceil(remaining / 86400)
