import os
import sys
from datetime import datetime

# Add 'backend' folder to Python path
sys.path.append(os.path.abspath(os.path.dirname(__file__)))

from database import SessionLocal, init_db
from models.category import Category
from models.expense import ExpenseMainCategory, ExpenseSubCategory, ExpenseItem
from models.material import Material
from models.stock import MovementType
from models.users import User
from models.warehouse import Warehouse
from utils.hashing import get_password_hash
from utils.ledger import apply_movement

# Configuration
ADMIN_EMAIL = os.getenv("SEED_ADMIN_EMAIL", "admin@restaurant.io")
ADMIN_PASSWORD = os.getenv("SEED_ADMIN_PASSWORD", "admin123")

WAREHOUSES = [
    ("Main Store", "GENERAL", "Back of house"),
    ("Kitchen", "GENERAL", "Hot line"),
    ("Cold Room", "COLD", "Walk-in cooler"),
    ("Bar", "BAR", "Front of house"),
]

# main category -> sub categories
CATEGORIES = {
    "Dry Goods": ["Flour & Grains", "Sugar & Sweeteners", "Spices"],
    "Dairy": ["Cheese", "Milk & Cream"],
    "Produce": ["Vegetables", "Fruit"],
    "Beverages": ["Soft Drinks", "Coffee & Tea"],
    "Semi-Finished": ["Doughs", "Sauces"],
}

# (name, code, unit, sub category, default warehouse, min level, opening qty, opening unit cost)
MATERIALS = [
    ("Flour", "FLR-001", "kg", "Flour & Grains", "Main Store", 20, 50, 1.20),
    ("Sugar", "SUG-001", "kg", "Sugar & Sweeteners", "Main Store", 10, 25, 1.50),
    ("Salt", "SLT-001", "kg", "Spices", "Main Store", 2, 10, 0.60),
    ("Mozzarella", "CHS-001", "kg", "Cheese", "Cold Room", 5, 12, 8.90),
    ("Milk", "MLK-001", "l", "Milk & Cream", "Cold Room", 10, 30, 0.95),
    ("Tomatoes", "VEG-001", "kg", "Vegetables", "Cold Room", 8, 20, 2.10),
    ("Coffee Beans", "COF-001", "kg", "Coffee & Tea", "Bar", 2, 5, 18.00),
    ("Pizza Dough", "DGH-001", "kg", "Doughs", "Kitchen", 5, 0, 0.0),
    ("Tomato Sauce", "SAU-001", "l", "Sauces", "Kitchen", 3, 0, 0.0),
]

# Main category names drive the P&L buckets (salaries, rent, utilities, marketing)
EXPENSES = {
    "Personnel Expenses": {
        "Salaries": ["Kitchen Staff", "Service Staff"],
        "Social Security": ["Employer Contributions"],
    },
    "Fixed Expenses": {
        "Rent": ["Restaurant Rent"],
        "Insurance": ["Property Insurance"],
    },
    "Variable Expenses": {
        "Utilities": ["Electricity", "Water", "Natural Gas"],
        "Cleaning": ["Cleaning Supplies"],
    },
    "Marketing": {
        "Advertising": ["Social Media Ads", "Printed Menus"],
    },
    "Other Expenses": {
        "Maintenance": ["Equipment Repair"],
        "Bank": ["Card Commissions"],
    },
}
# End Configuration


def seed_admin(session):
    user = session.query(User).filter(User.email == ADMIN_EMAIL).first()
    if user:
        print(f"Admin {ADMIN_EMAIL} already exists.")
        return user
    user = User(email=ADMIN_EMAIL, password_hash=get_password_hash(ADMIN_PASSWORD), role="ADMIN", first_name="Admin")
    session.add(user)
    session.flush()
    print(f"Created admin {ADMIN_EMAIL}.")
    return user


def seed_warehouses(session):
    result = {}
    for name, wh_type, location in WAREHOUSES:
        warehouse = session.query(Warehouse).filter(Warehouse.name == name).first()
        if not warehouse:
            warehouse = Warehouse(name=name, type=wh_type, location=location)
            session.add(warehouse)
            session.flush()
        result[name] = warehouse
    print(f"Warehouses: {len(result)}")
    return result


def seed_categories(session):
    result = {}
    for main_name, subs in CATEGORIES.items():
        main = session.query(Category).filter(Category.name == main_name, Category.parent_id.is_(None)).first()
        if not main:
            main = Category(name=main_name)
            session.add(main)
            session.flush()
        for sub_name in subs:
            sub = session.query(Category).filter(Category.name == sub_name, Category.parent_id == main.id).first()
            if not sub:
                sub = Category(name=sub_name, parent_id=main.id)
                session.add(sub)
                session.flush()
            result[sub_name] = sub
    print(f"Sub categories: {len(result)}")
    return result


def seed_materials(session, warehouses, categories, admin):
    created = 0
    for name, code, unit, sub, warehouse_name, min_level, qty, cost in MATERIALS:
        if session.query(Material).filter(Material.code == code).first():
            continue
        warehouse = warehouses[warehouse_name]
        material = Material(
            name=name,
            code=code,
            unit=unit,
            category_id=categories[sub].id,
            default_warehouse_id=warehouse.id,
            min_stock_level=min_level,
        )
        session.add(material)
        session.flush()
        if qty:
            apply_movement(
                session,
                material_id=material.id,
                warehouse_id=warehouse.id,
                quantity=qty,
                movement_type=MovementType.ADJUSTMENT,
                unit_cost=cost,
                reason="Opening stock",
                user_id=admin.id,
                date=datetime.now(),
            )
        created += 1
    print(f"Materials created: {created}")


def seed_expense_hierarchy(session):
    items = 0
    for main_name, subs in EXPENSES.items():
        main = session.query(ExpenseMainCategory).filter(ExpenseMainCategory.name == main_name).first()
        if not main:
            main = ExpenseMainCategory(name=main_name)
            session.add(main)
            session.flush()
        for sub_name, item_names in subs.items():
            sub = session.query(ExpenseSubCategory).filter(
                ExpenseSubCategory.main_category_id == main.id, ExpenseSubCategory.name == sub_name
            ).first()
            if not sub:
                sub = ExpenseSubCategory(main_category_id=main.id, name=sub_name)
                session.add(sub)
                session.flush()
            for item_name in item_names:
                exists = session.query(ExpenseItem).filter(
                    ExpenseItem.sub_category_id == sub.id, ExpenseItem.name == item_name
                ).first()
                if not exists:
                    session.add(ExpenseItem(sub_category_id=sub.id, name=item_name, is_recurring=True))
                    items += 1
    session.flush()
    print(f"Expense items created: {items}")


def seed_all():
    """Creates tables and loads reference data; safe to run more than once."""
    init_db()
    session = SessionLocal()
    try:
        admin = seed_admin(session)
        warehouses = seed_warehouses(session)
        categories = seed_categories(session)
        seed_materials(session, warehouses, categories, admin)
        seed_expense_hierarchy(session)
        session.commit()
        print("Seed finished.")
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


if __name__ == "__main__":
    seed_all()
