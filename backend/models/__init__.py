# Importing the package registers every table on Base.metadata
from models.users import User
from models.log import Log
from models.warehouse import Warehouse
from models.category import Category
from models.material import Material, MaterialStock
from models.supplier import Supplier
from models.invoice import Invoice, InvoiceItem, InvoiceType, InvoiceStatus
from models.production import OpenProduction, OpenProductionItem, OpenProductionStatus
from models.recipe import Recipe, RecipeIngredient, SalesItem, RecipeMapping
from models.sale import Sale
from models.stock import StockMovement, MovementType, WarehouseTransfer, TransferStatus
from models.expense import (
    ExpenseMainCategory, ExpenseSubCategory, ExpenseItem, Expense,
    ExpenseBatch, ExpenseBatchItem, ExpenseBatchStatus, PaymentStatus,
)
from models.current_account import (
    CurrentAccount, CurrentAccountTransaction, Payment,
    AccountType, TransactionType, PaymentMethod, PaymentState,
)
from models.stock_count import StockCount, StockCountItem, StockCountStatus
