# routes/reports.py
from datetime import date, datetime, time
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from database import get_db
from models.material import Material
from models.users import User
from schemas.common import ApiResponse
from schemas.reports import LowStockItem, StockExtractReport, ProfitLossReport
from utils.pdf import generate_stock_extract_pdf
from utils.profit_loss import build_profit_loss
from utils.stock_extract import build_stock_extract
from utils.tokenJWT import get_current_user, role_required, ADMIN, MANAGER

router = APIRouter(prefix="/reports", tags=["Reports"])


def _parse_ids(values: Optional[List[str]], name: str) -> Optional[List[int]]:
    """Accepts ?ids=1&ids=2 as well as ?ids=1,2."""
    if not values:
        return None
    ids = []
    for value in values:
        for part in value.split(","):
            part = part.strip()
            if not part:
                continue
            try:
                ids.append(int(part))
            except ValueError:
                raise HTTPException(status_code=400, detail=f"Bad {name} value: {part}")
    return ids or None


def _period(start_date: date, end_date: date):
    if start_date > end_date:
        raise HTTPException(status_code=400, detail="start_date must not be after end_date")
    return datetime.combine(start_date, time.min), datetime.combine(end_date, time.max)


# -----------------------------
# 1) Low stock
# -----------------------------
@router.get("/low-stock", response_model=ApiResponse[List[LowStockItem]])
def report_low_stock(
    q: Optional[str] = Query(None, description="Search by name or code"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    query = db.query(Material).filter(
        Material.is_active.is_(True),
        Material.current_stock <= Material.min_stock_level,
    )
    if q:
        like = f"%{q}%"
        query = query.filter((Material.name.ilike(like)) | (Material.code.ilike(like)))

    rows = query.order_by(Material.current_stock.asc(), Material.name.asc()).all()
    items = [
        LowStockItem(
            material_id=m.id,
            name=m.name,
            code=m.code,
            unit=m.unit,
            current_stock=m.current_stock or 0,
            min_stock_level=m.min_stock_level or 0,
        )
        for m in rows
    ]
    return {"success": True, "data": items}


# -----------------------------
# 2) Stock extract
# -----------------------------
@router.get("/stock-extract", response_model=ApiResponse[StockExtractReport])
def report_stock_extract(
    start_date: date = Query(...),
    end_date: date = Query(...),
    warehouse_ids: Optional[List[str]] = Query(None),
    category_ids: Optional[List[str]] = Query(None),
    report_type: Literal["quantity", "amount"] = Query("quantity"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    start, end = _period(start_date, end_date)
    report = build_stock_extract(
        db, start, end,
        warehouse_ids=_parse_ids(warehouse_ids, "warehouse_ids"),
        category_ids=_parse_ids(category_ids, "category_ids"),
        report_type=report_type,
    )
    return {"success": True, "data": report}


@router.get("/stock-extract/pdf")
def report_stock_extract_pdf(
    start_date: date = Query(...),
    end_date: date = Query(...),
    warehouse_ids: Optional[List[str]] = Query(None),
    category_ids: Optional[List[str]] = Query(None),
    report_type: Literal["quantity", "amount"] = Query("quantity"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    start, end = _period(start_date, end_date)
    report = build_stock_extract(
        db, start, end,
        warehouse_ids=_parse_ids(warehouse_ids, "warehouse_ids"),
        category_ids=_parse_ids(category_ids, "category_ids"),
        report_type=report_type,
    )
    pdf_bytes = generate_stock_extract_pdf(report)
    filename = f"stock_extract_{start_date.isoformat()}_{end_date.isoformat()}.pdf"
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# -----------------------------
# 3) Profit and loss
# -----------------------------
@router.get("/profit-loss", response_model=ApiResponse[ProfitLossReport])
def report_profit_loss(
    start_date: date = Query(...),
    end_date: date = Query(...),
    warehouse_ids: Optional[List[str]] = Query(None),
    report_type: Literal["summary", "detailed"] = Query("summary"),
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    start, end = _period(start_date, end_date)
    report = build_profit_loss(
        db, start, end,
        warehouse_ids=_parse_ids(warehouse_ids, "warehouse_ids"),
        report_type=report_type,
    )
    return {"success": True, "data": report}
