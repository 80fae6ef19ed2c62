import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.middleware.exceptions import register_exception_handlers
from app.middleware.session import SessionMiddleware
from app.routers import customers, guard, health, payments, rice_prices, statistics, transactions
from app.services.lifespan import lifespan

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="RiceWeigh",
    description="Rice weighing station: trucks, bag weights, invoices and payment collection",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Exception Handlers ───────────────────────────────────────
register_exception_handlers(app)

# ── Middleware (outermost first) ─────────────────────────────
# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Session context (innermost - processes request data)
app.add_middleware(SessionMiddleware)

# ── Routers ──────────────────────────────────────────────────
app.include_router(health.router)
app.include_router(transactions.router, prefix="/api/transactions", tags=["transactions"])
app.include_router(customers.router, prefix="/api/customers", tags=["customers"])
app.include_router(rice_prices.router, prefix="/api/rice-prices", tags=["rice-prices"])
app.include_router(payments.router, prefix="/api/payments", tags=["payments"])
app.include_router(statistics.router, prefix="/api/statistics", tags=["statistics"])
app.include_router(guard.router, prefix="/api/guard", tags=["guard"])
