# backend/utils/numbering.py
import re
from sqlalchemy.orm import Session

def next_number(db: Session, column, prefix: str, width: int) -> str:
    """Next ``<prefix><zero padded sequence>`` after the highest one stored in ``column``.

    CAR001, PAY-2025-00001 and EB-2025-03-001 are all produced this way.
    """
    pattern = re.compile(re.escape(prefix) + r"(\d+)$")
    highest = 0
    for (value,) in db.query(column).filter(column.like(f"{prefix}%")).all():
        match = pattern.match(value or "")
        if match:
            highest = max(highest, int(match.group(1)))
    return f"{prefix}{highest + 1:0{width}d}"
