# backend/utils/profit_loss.py
"""Profit and loss aggregation over invoices, sales, consumption movements and expenses."""
import logging
from collections import OrderedDict
from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy.orm import Session, joinedload

from models.expense import Expense, ExpenseBatch, ExpenseBatchItem, ExpenseItem, ExpenseSubCategory
from models.invoice import Invoice, InvoiceItem, InvoiceType
from models.material import Material
from models.recipe import Recipe
from models.sale import Sale
from models.stock import StockMovement, MovementType
from models.warehouse import Warehouse

logger = logging.getLogger(__name__)

# Main expense category name -> named bucket in the summary
EXPENSE_BUCKETS = {
    "Personnel Expenses": "salaries",
    "Fixed Expenses": "rent",
    "Variable Expenses": "utilities",
    "Marketing": "marketing",
}


def percentage(part: float, whole: float) -> float:
    return (part / whole) * 100 if whole else 0.0


def calculate_revenue(db: Session, start: datetime, end: datetime, warehouse_ids: Optional[Sequence[int]] = None) -> dict:
    invoice_query = db.query(Invoice).filter(
        Invoice.type == InvoiceType.SALE,
        Invoice.date >= start,
        Invoice.date <= end,
    )
    sale_query = db.query(Sale).filter(Sale.date >= start, Sale.date <= end)
    if warehouse_ids:
        invoice_query = invoice_query.filter(
            Invoice.items.any(InvoiceItem.warehouse_id.in_(warehouse_ids))
        )
        # Sales belong to the warehouse their recipe consumes from
        sale_query = sale_query.join(Recipe, Sale.recipe_id == Recipe.id).filter(
            Recipe.warehouse_id.in_(warehouse_ids)
        )

    invoices = invoice_query.order_by(Invoice.date).all()
    sales = sale_query.order_by(Sale.date).all()

    invoice_revenue = sum(i.total_amount or 0.0 for i in invoices)
    sales_revenue = sum(s.total_price or 0.0 for s in sales)

    breakdown = [
        {"id": i.id, "number": i.invoice_number, "amount": i.total_amount, "date": i.date, "type": "INVOICE"}
        for i in invoices
    ] + [
        {"id": s.id, "number": f"SALE-{s.id:06d}", "amount": s.total_price, "date": s.date, "type": "PRODUCT_SALE"}
        for s in sales
    ]

    return {
        "total_revenue": invoice_revenue + sales_revenue,
        "sales_invoices": invoice_revenue,
        "product_sales": sales_revenue,
        "other_revenue": 0.0,
        "breakdown": breakdown,
    }


def calculate_cogs(db: Session, start: datetime, end: datetime, warehouse_ids: Optional[Sequence[int]] = None) -> dict:
    """Cost of goods sold: every OUT movement with a negative quantity, at its unit cost."""
    query = db.query(StockMovement).options(
        joinedload(StockMovement.material).joinedload(Material.category)
    ).filter(
        StockMovement.type == MovementType.OUT.value,
        StockMovement.quantity < 0,
        StockMovement.date >= start,
        StockMovement.date <= end,
    )
    if warehouse_ids:
        query = query.filter(StockMovement.warehouse_id.in_(warehouse_ids))

    per_material = OrderedDict()
    for m in query.order_by(StockMovement.date).all():
        entry = per_material.get(m.material_id)
        if entry is None:
            category = m.material.category
            entry = per_material[m.material_id] = {
                "material_id": m.material_id,
                "material_name": m.material.name,
                "category_name": category.main_category.name if category else "No Category",
                "quantity": 0.0,
                "total_cost": 0.0,
            }
        qty = abs(m.quantity)
        entry["quantity"] += qty
        entry["total_cost"] += qty * (m.unit_cost or 0.0)

    breakdown = list(per_material.values())
    for entry in breakdown:
        entry["unit_cost"] = entry["total_cost"] / entry["quantity"] if entry["quantity"] else 0.0

    total = sum(e["total_cost"] for e in breakdown)
    return {"total_cogs": total, "material_consumption": total, "breakdown": breakdown}


def _expense_lines(db: Session, start: datetime, end: datetime):
    """(main category, sub category, item, amount) for single expenses and batch items."""
    hierarchy = joinedload(ExpenseItem.sub_category).joinedload(ExpenseSubCategory.main_category)

    expenses = db.query(Expense).options(joinedload(Expense.expense_item).options(hierarchy)).filter(
        Expense.date >= start, Expense.date <= end
    ).all()
    # Batch items count on the batch entry date
    batch_items = db.query(ExpenseBatchItem).join(ExpenseBatch).options(
        joinedload(ExpenseBatchItem.expense_item).options(hierarchy)
    ).filter(ExpenseBatch.entry_date >= start, ExpenseBatch.entry_date <= end).all()

    for row in list(expenses) + list(batch_items):
        item = row.expense_item
        sub = item.sub_category
        yield sub.main_category.name, sub.name, item.name, row.amount or 0.0


def calculate_operating_expenses(db: Session, start: datetime, end: datetime, report_type: str = "summary") -> dict:
    tree = OrderedDict()
    for main, sub, item, amount in _expense_lines(db, start, end):
        items = tree.setdefault(main, OrderedDict()).setdefault(sub, OrderedDict())
        items[item] = items.get(item, 0.0) + amount

    main_totals = {
        main: sum(sum(items.values()) for items in subs.values()) for main, subs in tree.items()
    }
    total = sum(main_totals.values())

    result = {
        "total_expenses": total,
        "breakdown": [
            {"category": main, "amount": amount, "percentage": percentage(amount, total)}
            for main, amount in main_totals.items()
        ],
    }
    for bucket in EXPENSE_BUCKETS.values():
        result[bucket] = 0.0
    for main, amount in main_totals.items():
        bucket = EXPENSE_BUCKETS.get(main)
        if bucket:
            result[bucket] += amount
    result["other"] = total - sum(result[b] for b in EXPENSE_BUCKETS.values())

    if report_type == "detailed":
        detailed = []
        for main, subs in tree.items():
            main_total = main_totals[main]
            sub_rows = []
            for sub, items in subs.items():
                sub_total = sum(items.values())
                sub_rows.append({
                    "name": sub,
                    "amount": sub_total,
                    "percentage": percentage(sub_total, main_total),
                    "items": [
                        {"name": name, "amount": amount, "percentage": percentage(amount, sub_total)}
                        for name, amount in items.items()
                    ],
                })
            detailed.append({
                "main_category": main,
                "amount": main_total,
                "percentage": percentage(main_total, total),
                "sub_categories": sub_rows,
            })
        result["detailed_breakdown"] = detailed

    return result


def build_profit_loss(
    db: Session,
    start: datetime,
    end: datetime,
    warehouse_ids: Optional[Sequence[int]] = None,
    report_type: str = "summary",
) -> dict:
    revenue = calculate_revenue(db, start, end, warehouse_ids)
    cogs = calculate_cogs(db, start, end, warehouse_ids)
    expenses = calculate_operating_expenses(db, start, end, report_type)

    gross = revenue["total_revenue"] - cogs["total_cogs"]
    net = gross - expenses["total_expenses"]

    report = {
        "period": {"start_date": start.date().isoformat(), "end_date": end.date().isoformat()},
        "revenue": revenue,
        "cogs": cogs,
        "gross_profit": {"amount": gross, "percentage": percentage(gross, revenue["total_revenue"])},
        "operating_expenses": expenses,
        "net_profit": {"amount": net, "percentage": percentage(net, revenue["total_revenue"])},
    }

    if warehouse_ids and len(warehouse_ids) > 1:
        names = dict(db.query(Warehouse.id, Warehouse.name).filter(Warehouse.id.in_(warehouse_ids)).all())
        rows = []
        for warehouse_id in warehouse_ids:
            wh_revenue = calculate_revenue(db, start, end, [warehouse_id])["total_revenue"]
            wh_cogs = calculate_cogs(db, start, end, [warehouse_id])["total_cogs"]
            rows.append({
                "warehouse_id": warehouse_id,
                "warehouse_name": names.get(warehouse_id, "Unknown Warehouse"),
                "revenue": wh_revenue,
                "cogs": wh_cogs,
                "gross_profit": wh_revenue - wh_cogs,
                "gross_profit_percentage": percentage(wh_revenue - wh_cogs, wh_revenue),
            })
        report["warehouse_breakdown"] = rows

    logger.info(
        "P&L %s..%s: revenue=%.2f cogs=%.2f expenses=%.2f net=%.2f",
        start.date(), end.date(), revenue["total_revenue"], cogs["total_cogs"], expenses["total_expenses"], net,
    )
    return report
