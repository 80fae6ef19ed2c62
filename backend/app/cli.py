"""Management CLI.

Usage:
    python -m app.cli create-tables   # Create all tables (development bootstrap)
    python -m app.cli seed-prices     # Default prices for the suggested rice types
    python -m app.cli list-pending    # Show trucks still being weighed
"""

import sys

from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session, selectinload

from app.config import settings
from app.database import Base
from app.models.rice_price import RicePrice, build_default_prices
from app.models.transaction import STATUS_PENDING, Transaction


def get_engine():
    return create_engine(settings.database_url_sync)


def create_tables():
    import app.models  # noqa: F401  register every model on Base.metadata

    Base.metadata.create_all(get_engine())
    print(f"  Created {len(Base.metadata.tables)} table(s)")


def seed_prices():
    with Session(get_engine()) as db:
        existing = set(db.execute(select(RicePrice.rice_type)).scalars().all())
        rows = build_default_prices(
            settings.rice_type_suggestions, existing, settings.default_rice_price
        )
        for row in rows:
            print(f"  {row.rice_type}: {row.default_price:g}")
        db.add_all(rows)
        db.commit()
    print(f"\n{len(rows)} price(s) seeded")


def list_pending():
    with Session(get_engine()) as db:
        result = db.execute(
            select(Transaction)
            .options(selectinload(Transaction.weights))
            .where(Transaction.status == STATUS_PENDING)
            .order_by(Transaction.created_at)
        )
        transactions = list(result.scalars().all())
        for tx in transactions:
            print(
                f"  {tx.id}  {tx.created_at:%d/%m/%Y %H:%M}  {tx.license_plate:<12} "
                f"{tx.customer_name}  ({len(tx.weights)} bags)"
            )
    print(f"\n{len(transactions)} pending transaction(s)")


if __name__ == "__main__":
    cmd = sys.argv[1] if len(sys.argv) > 1 else ""
    if cmd == "create-tables":
        create_tables()
    elif cmd == "seed-prices":
        seed_prices()
    elif cmd == "list-pending":
        list_pending()
    else:
        print("Usage: python -m app.cli [create-tables|seed-prices|list-pending]")
