"""Aggregate model imports for Alembic auto-detection."""

from app.models.customer import Customer  # noqa: F401
from app.models.rice_price import RicePrice  # noqa: F401
from app.models.transaction import RiceBatch, Transaction, WeighingDetail  # noqa: F401
from app.models.activity_log import ActivityLog  # noqa: F401
