# backend/routes/logs.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional, Any
from datetime import datetime, date
from pydantic import BaseModel, ConfigDict

from database import get_db
from models.log import Log
from models.users import User
from schemas.common import ApiResponse
from utils.tokenJWT import role_required, ADMIN
from utils.dates import day_range
from utils.pagination import paginate

router = APIRouter(prefix="/logs", tags=["Logs"])

# --- SCHEMAS ---
class LogResponse(BaseModel):
    id: int
    user_id: Optional[int] = None
    action: str
    resource: str
    entity_id: Optional[int] = None
    status: str
    ip: Optional[str] = None
    ts: datetime
    meta: Optional[Any] = None

    model_config = ConfigDict(from_attributes=True)

# --- ENDPOINT ---
@router.get("", response_model=ApiResponse[List[LogResponse]])
def get_logs(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    action: Optional[str] = Query(None, description="Filter by action"),
    user_id: Optional[int] = Query(None, description="Filter by user ID"),
    resource: Optional[str] = Query(None, description="Filter by resource"),
    entity_id: Optional[int] = Query(None, description="Filter by record ID"),
    status: Optional[str] = Query(None, description="Filter by status (SUCCESS/FAIL)"),
    date_from: Optional[date] = Query(None, description="From date (YYYY-MM-DD)"),
    date_to: Optional[date] = Query(None, description="To date (YYYY-MM-DD)"),
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN)),
):
    query = db.query(Log)

    # 1. Action filter
    if action:
        query = query.filter(Log.action.ilike(f"%{action}%"))

    # 2. User filter
    if user_id is not None:
        query = query.filter(Log.user_id == user_id)

    # 3. Resource filter
    if resource:
        query = query.filter(Log.resource.ilike(f"%{resource}%"))
    if entity_id is not None:
        query = query.filter(Log.entity_id == entity_id)

    # 4. Status filter
    if status:
        query = query.filter(Log.status == status)

    # 5. Date filters (whole days)
    start, end = day_range(date_from, date_to)
    if start:
        query = query.filter(Log.ts >= start)
    if end:
        query = query.filter(Log.ts <= end)

    # Newest first
    query = query.order_by(Log.ts.desc(), Log.id.desc())

    logs, pagination = paginate(query, page, page_size)
    return {"success": True, "data": logs, "pagination": pagination}
