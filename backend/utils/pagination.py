# backend/utils/pagination.py
import math

def paginate(query, page: int, page_size: int):
    """Returns (items, pagination dict) for a SQLAlchemy query."""
    total = query.count()
    items = query.offset((page - 1) * page_size).limit(page_size).all()
    return items, {
        "total": total,
        "page": page,
        "page_size": page_size,
        "pages": math.ceil(total / page_size) if page_size else 0,
    }
