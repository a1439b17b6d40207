# backend/utils/stock_extract.py
"""Stock extract: opening stock, classified period movements and closing stock
per (material, warehouse), rebuilt from the movement ledger alone."""
import logging
from collections import defaultdict
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from sqlalchemy.orm import Session, joinedload

from models.category import Category
from models.material import Material
from models.stock import StockMovement
from models.warehouse import Warehouse

logger = logging.getLogger(__name__)

IN_BUCKETS = ("purchase_in", "transfer_in", "production_in", "adjustment_in")
OUT_BUCKETS = ("return_out", "transfer_out", "consumption_out", "adjustment_out")
BUCKETS = IN_BUCKETS + OUT_BUCKETS

NO_CATEGORY = "No Category"
NO_MAIN_CATEGORY = "No Main Category"


def classify_movement(movement_type: str, invoice_id: Optional[int], quantity: float) -> Optional[str]:
    """Report bucket of a ledger row, or None for zero quantities.

    IN rows are purchases when they carry an invoice and production otherwise.
    OUT is always consumption and WASTE always an adjustment out. TRANSFER and
    ADJUSTMENT split on the sign of the quantity. Unknown types count as
    adjustment in. Nothing is ever classified as return_out.
    """
    if not quantity:
        return None
    movement_type = (movement_type or "").upper()
    if movement_type == "IN":
        return "purchase_in" if invoice_id else "production_in"
    if movement_type == "OUT":
        return "consumption_out"
    if movement_type == "TRANSFER":
        return "transfer_in" if quantity > 0 else "transfer_out"
    if movement_type == "ADJUSTMENT":
        return "adjustment_in" if quantity > 0 else "adjustment_out"
    if movement_type == "WASTE":
        return "adjustment_out"
    return "adjustment_in"


def empty_row() -> Dict[str, float]:
    row = {"opening_stock": 0.0, "opening_stock_amount": 0.0}
    for bucket in BUCKETS:
        row[bucket] = 0.0
        row[f"{bucket}_amount"] = 0.0
    return row


def add_movement(row: Dict[str, float], movement_type, invoice_id, quantity, unit_cost) -> None:
    bucket = classify_movement(movement_type, invoice_id, quantity)
    if bucket is None:
        return
    row[bucket] += abs(quantity)
    row[f"{bucket}_amount"] += abs(quantity * (unit_cost or 0.0))


def close_row(row: Dict[str, float]) -> Dict[str, float]:
    total_in = sum(row[b] for b in IN_BUCKETS)
    total_out = sum(row[b] for b in OUT_BUCKETS)
    row["total_in"] = total_in
    row["total_out"] = total_out
    row["closing_stock"] = row["opening_stock"] + total_in - total_out
    row["closing_stock_amount"] = (
        row["opening_stock_amount"]
        + sum(row[f"{b}_amount"] for b in IN_BUCKETS)
        - sum(row[f"{b}_amount"] for b in OUT_BUCKETS)
    )
    return row


def has_activity(row: Dict[str, float]) -> bool:
    return any(row[k] for k in ("opening_stock", "total_in", "total_out", "closing_stock"))


def _category_ids_with_children(db: Session, category_ids: Sequence[int]) -> List[int]:
    children = db.query(Category.id).filter(Category.parent_id.in_(category_ids)).all()
    return sorted(set(category_ids) | {c.id for c in children})


def build_stock_extract(
    db: Session,
    start: datetime,
    end: datetime,
    warehouse_ids: Optional[Sequence[int]] = None,
    category_ids: Optional[Sequence[int]] = None,
    report_type: str = "quantity",
) -> dict:
    """Aggregate the ledger for [start, end]; rows without any activity are dropped."""
    material_query = db.query(Material).options(joinedload(Material.category).joinedload(Category.parent))
    if category_ids:
        material_query = material_query.filter(
            Material.category_id.in_(_category_ids_with_children(db, category_ids))
        )
    materials = {m.id: m for m in material_query.all()}

    warehouse_query = db.query(Warehouse)
    if warehouse_ids:
        warehouse_query = warehouse_query.filter(Warehouse.id.in_(warehouse_ids))
    warehouses = {w.id: w for w in warehouse_query.all()}

    rows = defaultdict(empty_row)
    if materials and warehouses:
        base = db.query(StockMovement).filter(
            StockMovement.material_id.in_(list(materials)),
            StockMovement.warehouse_id.in_(list(warehouses)),
        )
        for m in base.filter(StockMovement.date < start).all():
            row = rows[(m.material_id, m.warehouse_id)]
            row["opening_stock"] += m.quantity or 0.0
            row["opening_stock_amount"] += (m.quantity or 0.0) * (m.unit_cost or 0.0)

        period = base.filter(StockMovement.date >= start, StockMovement.date <= end).all()
        for m in period:
            add_movement(rows[(m.material_id, m.warehouse_id)], m.type, m.invoice_id, m.quantity, m.unit_cost)

    records = []
    for (material_id, warehouse_id), row in rows.items():
        close_row(row)
        if not has_activity(row):
            continue
        material = materials[material_id]
        warehouse = warehouses[warehouse_id]
        category = material.category
        main_category = category.main_category if category else None

        record = {
            "material_id": material.id,
            "material_name": material.name,
            "material_code": material.code,
            "unit": material.unit,
            "category_id": category.id if category else None,
            "category_name": category.name if category else NO_CATEGORY,
            "main_category_id": main_category.id if main_category else None,
            "main_category_name": main_category.name if main_category else NO_MAIN_CATEGORY,
            "warehouse_id": warehouse.id,
            "warehouse_name": warehouse.name,
            "opening_stock": row["opening_stock"],
            "closing_stock": row["closing_stock"],
            "total_in": row["total_in"],
            "total_out": row["total_out"],
        }
        for bucket in BUCKETS:
            record[bucket] = row[bucket]
        if report_type == "amount":
            record["opening_stock_amount"] = row["opening_stock_amount"]
            record["closing_stock_amount"] = row["closing_stock_amount"]
            for bucket in BUCKETS:
                record[f"{bucket}_amount"] = row[f"{bucket}_amount"]
        records.append(record)

    records.sort(key=lambda r: (r["warehouse_name"], r["main_category_name"], r["category_name"], r["material_name"]))

    logger.info(
        "Stock extract %s..%s (%s): %d records from %d materials / %d warehouses",
        start.date(), end.date(), report_type, len(records), len(materials), len(warehouses),
    )
    return {
        "period": {"start_date": start.date().isoformat(), "end_date": end.date().isoformat()},
        "report_type": report_type,
        "records": records,
        "summary": {
            "total_materials": len({r["material_id"] for r in records}),
            "total_warehouses": len({r["warehouse_id"] for r in records}),
            "total_records": len(records),
        },
    }
