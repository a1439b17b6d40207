# backend/utils/dates.py
from datetime import date, datetime, time
from typing import Optional, Tuple

def day_range(date_from: Optional[date], date_to: Optional[date]) -> Tuple[Optional[datetime], Optional[datetime]]:
    """Inclusive datetime bounds covering whole days (end of day for ``date_to``)."""
    start = datetime.combine(date_from, time.min) if date_from else None
    end = datetime.combine(date_to, time.max) if date_to else None
    return start, end
