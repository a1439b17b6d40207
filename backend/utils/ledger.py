# backend/utils/ledger.py
"""Stock ledger: the only code path that changes stock quantities.

Every change goes through :func:`adjust_stock`, which keeps the
``MaterialStock`` row of the (material, warehouse) pair and the denormalized
``Material`` totals in step. :func:`apply_movement` additionally appends the
immutable ``StockMovement`` row. Nothing here commits: callers run a whole
create/update/delete inside the request session and commit once, so a failure
anywhere rolls back both the stock and the ledger rows.
"""
import logging
from collections import OrderedDict
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from config import settings
from models.material import Material, MaterialStock
from models.stock import StockMovement, MovementType

logger = logging.getLogger(__name__)

# Quantities closer to zero than this are treated as zero
EPSILON = 1e-9


class StockError(Exception):
    """Raised when a movement cannot be applied (unknown material, zero quantity, blocked negative stock)."""


def weighted_average(existing_qty: float, existing_avg: float, quantity: float, unit_cost: float) -> float:
    """Average unit cost after receiving ``quantity`` at ``unit_cost``.

    Negative stock carries no cost basis, so it counts as zero. When the pool
    would still be empty or negative the previous average is kept.
    """
    base = max(existing_qty or 0.0, 0.0)
    total_qty = base + quantity
    if total_qty <= EPSILON:
        return existing_avg or 0.0
    return (base * (existing_avg or 0.0) + quantity * unit_cost) / total_qty


def get_stock_row(db: Session, material_id: int, warehouse_id: int) -> Optional[MaterialStock]:
    return db.query(MaterialStock).filter(
        MaterialStock.material_id == material_id,
        MaterialStock.warehouse_id == warehouse_id,
    ).first()


def current_unit_cost(db: Session, material: Material, warehouse_id: int) -> float:
    # Warehouse average first, material-wide average when the pair has no history yet
    stock = get_stock_row(db, material.id, warehouse_id)
    if stock is not None and stock.average_cost:
        return stock.average_cost
    return material.average_cost or 0.0


def adjust_stock(
    db: Session,
    material_id: int,
    warehouse_id: int,
    quantity: float,
    unit_cost: Optional[float] = None,
) -> Tuple[float, float, MaterialStock]:
    """Apply a signed quantity to MaterialStock and Material without writing a movement.

    Returns ``(stock_before, stock_after, stock_row)``. Inbound quantities with a
    unit cost re-weight the averages; outbound quantities leave them unchanged.
    """
    material = db.get(Material, material_id)
    if material is None:
        raise StockError(f"Material {material_id} not found")

    stock = get_stock_row(db, material_id, warehouse_id)
    if stock is None:
        stock = MaterialStock(
            material_id=material_id,
            warehouse_id=warehouse_id,
            current_stock=0.0,
            available_stock=0.0,
            average_cost=material.average_cost or 0.0,
        )
        db.add(stock)

    before = stock.current_stock or 0.0
    after = before + quantity

    if after < -EPSILON and quantity < 0:
        if not settings.ALLOW_NEGATIVE_STOCK:
            raise StockError(
                f"Insufficient stock for '{material.name}' in warehouse {warehouse_id}: "
                f"available {before:g}, requested {-quantity:g}"
            )
        logger.warning(
            "Stock of material %s (%s) in warehouse %s goes negative: %s -> %s",
            material.id, material.name, warehouse_id, before, after,
        )

    if quantity > 0 and unit_cost is not None:
        stock.average_cost = weighted_average(before, stock.average_cost or 0.0, quantity, unit_cost)
        material.average_cost = weighted_average(
            material.current_stock or 0.0, material.average_cost or 0.0, quantity, unit_cost
        )

    stock.current_stock = after
    stock.available_stock = (stock.available_stock or 0.0) + quantity
    stock.last_updated = datetime.now()
    material.current_stock = (material.current_stock or 0.0) + quantity

    db.flush()
    return before, after, stock


def apply_movement(
    db: Session,
    *,
    material_id: int,
    warehouse_id: int,
    quantity: float,
    movement_type: str,
    unit_cost: Optional[float] = None,
    reason: Optional[str] = None,
    user_id: Optional[int] = None,
    date: Optional[datetime] = None,
    invoice_id: Optional[int] = None,
    open_production_id: Optional[int] = None,
    sale_id: Optional[int] = None,
    transfer_id: Optional[int] = None,
    stock_count_id: Optional[int] = None,
) -> StockMovement:
    """Change stock by a signed quantity and append the matching ledger row."""
    if abs(quantity) <= EPSILON:
        raise StockError("Movement quantity cannot be zero")

    before, after, stock = adjust_stock(db, material_id, warehouse_id, quantity, unit_cost)

    # Outbound movements are valued at the pool average when no cost is given
    cost = unit_cost if unit_cost is not None else (stock.average_cost or 0.0)
    movement = StockMovement(
        material_id=material_id,
        warehouse_id=warehouse_id,
        user_id=user_id,
        quantity=quantity,
        type=MovementType(movement_type).value,
        unit_cost=cost,
        total_cost=quantity * cost,
        stock_before=before,
        stock_after=after,
        reason=reason,
        date=date or datetime.now(),
        invoice_id=invoice_id,
        open_production_id=open_production_id,
        sale_id=sale_id,
        transfer_id=transfer_id,
        stock_count_id=stock_count_id,
    )
    db.add(movement)
    db.flush()

    logger.info(
        "Ledger %s material=%s warehouse=%s qty=%s cost=%s stock %s -> %s (%s)",
        movement.type, material_id, warehouse_id, quantity, cost, before, after, reason,
    )
    return movement


def net_effect(movements: Iterable[StockMovement]) -> "OrderedDict[Tuple[int, int], Tuple[float, float]]":
    """Net (quantity, total_cost) per (material, warehouse) for a set of movements."""
    totals: "OrderedDict[Tuple[int, int], Tuple[float, float]]" = OrderedDict()
    for m in movements:
        key = (m.material_id, m.warehouse_id)
        qty, cost = totals.get(key, (0.0, 0.0))
        totals[key] = (qty + (m.quantity or 0.0), cost + (m.total_cost or 0.0))
    return totals


def reverse_movements(
    db: Session,
    movements: Iterable[StockMovement],
    *,
    reason: str,
    user_id: Optional[int] = None,
    date: Optional[datetime] = None,
    **refs,
) -> List[StockMovement]:
    """Undo the net stock effect of ``movements`` with compensating ledger rows.

    Earlier edits leave original, reversal and re-applied rows side by side, so
    the rows are netted per (material, warehouse) first; only the effect still
    in place is reversed. The original rows stay untouched.
    """
    compensating = []
    for (material_id, warehouse_id), (qty, total_cost) in net_effect(list(movements)).items():
        if abs(qty) <= EPSILON:
            continue
        unit_cost = total_cost / qty
        compensating.append(apply_movement(
            db,
            material_id=material_id,
            warehouse_id=warehouse_id,
            quantity=-qty,
            movement_type=MovementType.IN if -qty > 0 else MovementType.OUT,
            unit_cost=unit_cost,
            reason=reason,
            user_id=user_id,
            date=date,
            **refs,
        ))
    return compensating


def purge_movements(db: Session, movements: Iterable[StockMovement]) -> int:
    """Restore the stock effect of ``movements`` and delete the rows (DELETE flows only)."""
    rows = list(movements)
    for (material_id, warehouse_id), (qty, _cost) in net_effect(rows).items():
        if abs(qty) <= EPSILON:
            continue
        adjust_stock(db, material_id, warehouse_id, -qty)
    for row in rows:
        db.delete(row)
    db.flush()
    logger.info("Purged %d stock movements", len(rows))
    return len(rows)


def stock_at(db: Session, warehouse_id: int, cutoff: datetime, material_ids: Optional[Iterable[int]] = None) -> dict:
    """Ledger quantity per material in a warehouse, counting movements dated up to ``cutoff``."""
    query = db.query(StockMovement.material_id, func.sum(StockMovement.quantity)).filter(
        StockMovement.warehouse_id == warehouse_id,
        StockMovement.date <= cutoff,
    )
    if material_ids is not None:
        query = query.filter(StockMovement.material_id.in_(list(material_ids)))
    return {material_id: total or 0.0 for material_id, total in query.group_by(StockMovement.material_id).all()}


def replay_average(movements: Iterable[StockMovement]) -> Tuple[float, float]:
    """Quantity and weighted average after replaying ``movements`` in order, starting from empty."""
    qty, avg = 0.0, 0.0
    for m in movements:
        quantity = m.quantity or 0.0
        if quantity > 0 and m.unit_cost is not None:
            avg = weighted_average(qty, avg, quantity, m.unit_cost)
        qty += quantity
    return qty, avg


def rebuild_average_costs(db: Session) -> List[dict]:
    """Recompute every average cost by replaying the ledger in date order.

    Live writes re-weight in entry order; a backdated document therefore leaves
    averages that differ from the dated history. Quantities are not touched and
    materials without movements keep their cost.
    """
    ordered = db.query(StockMovement).order_by(StockMovement.date, StockMovement.id).all()
    per_material = {}
    per_pair = {}
    for m in ordered:
        per_material.setdefault(m.material_id, []).append(m)
        per_pair.setdefault((m.material_id, m.warehouse_id), []).append(m)

    for (material_id, warehouse_id), rows in per_pair.items():
        stock = get_stock_row(db, material_id, warehouse_id)
        if stock is not None:
            stock.average_cost = replay_average(rows)[1]

    results = []
    for material in db.query(Material).order_by(Material.name).all():
        rows = per_material.get(material.id, [])
        old_cost = material.average_cost or 0.0
        new_cost = replay_average(rows)[1] if rows else old_cost
        material.average_cost = new_cost
        results.append({
            "material_id": material.id,
            "material_name": material.name,
            "material_code": material.code,
            "old_cost": old_cost,
            "new_cost": new_cost,
            "movement_count": len(rows),
            "updated": abs(new_cost - old_cost) > EPSILON,
        })
    db.flush()
    logger.info("Average costs rebuilt for %d materials (%d changed)",
                len(results), sum(1 for r in results if r["updated"]))
    return results
