# backend/utils/lookups.py
from fastapi import HTTPException
from sqlalchemy.orm import Session

def get_or_404(db: Session, model, entity_id: int, label: str = None):
    obj = db.get(model, entity_id)
    if obj is None:
        raise HTTPException(status_code=404, detail=f"{label or model.__name__} not found")
    return obj

def ensure_exists(db: Session, model, entity_id: int, label: str = None):
    """Like get_or_404 but for ids referenced from a request body (400)."""
    obj = db.get(model, entity_id)
    if obj is None:
        raise HTTPException(status_code=400, detail=f"{label or model.__name__} {entity_id} does not exist")
    return obj
