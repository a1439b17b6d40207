# backend/main.py
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from dotenv import load_dotenv

from config import settings
from database import init_db
from utils.ledger import StockError

load_dotenv()

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("backoffice")

# Router imports
from routes.auth import router as auth_router
from routes.admin import router as admin_router
from routes.logs import router as logs_router
from routes.warehouse import router as warehouse_router
from routes.categories import router as categories_router
from routes.materials import router as materials_router
from routes.suppliers import router as suppliers_router
from routes.stock import router as stock_router
from routes.stock_counts import router as stock_counts_router
from routes.production import router as production_router
from routes.recipes import router as recipes_router
from routes.sales import router as sales_router
from routes.invoice import router as invoice_router
from routes.expenses import router as expenses_router
from routes.current_accounts import router as current_accounts_router
from routes.payments import router as payments_router
from routes.reports import router as reports_router

# Initialisation
init_db()

app = FastAPI(title="Restaurant Back-Office API", version="1.0.0")

# CORS: local frontends plus the configured one
origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
]
if settings.FRONTEND_URL and settings.FRONTEND_URL not in origins:
    origins.append(settings.FRONTEND_URL)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Every error leaves the API as {"success": false, "error": ...}
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", []) if p != "body")
    message = f"{field}: {first.get('msg')}" if field else str(first.get("msg", "Invalid request"))
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": message, "details": jsonable_errors(errors)},
    )


@app.exception_handler(StockError)
async def stock_exception_handler(request: Request, exc: StockError):
    logger.warning("Stock operation rejected on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=400, content={"success": False, "error": str(exc)})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"success": False, "error": str(exc) or "Internal server error"})


def jsonable_errors(errors):
    return [{"loc": list(e.get("loc", [])), "msg": e.get("msg"), "type": e.get("type")} for e in errors]


# Router registration
app.include_router(auth_router)
app.include_router(admin_router)
app.include_router(logs_router)
app.include_router(warehouse_router)
app.include_router(categories_router)
app.include_router(materials_router)
app.include_router(suppliers_router)
app.include_router(stock_router)
app.include_router(stock_counts_router)
app.include_router(production_router)
app.include_router(recipes_router)
app.include_router(sales_router)
app.include_router(invoice_router)
app.include_router(expenses_router)
app.include_router(current_accounts_router)
app.include_router(payments_router)
app.include_router(reports_router)


@app.get("/")
def read_root():
    return {"success": True, "message": "Restaurant Back-Office API is running"}


@app.get("/health")
def health():
    return {"success": True, "data": {"status": "ok"}}
