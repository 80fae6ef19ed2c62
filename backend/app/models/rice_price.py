"""RicePrice — default unit price per rice type.

Only used to pre-fill a batch price when the type is first picked; the
batch keeps its own price afterwards.
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Float, String
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class RicePrice(Base):
    __tablename__ = "rice_prices"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    rice_type: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    default_price: Mapped[float] = mapped_column(Float, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )


def build_default_prices(
    suggestions: list[str],
    existing: set[str],
    price: float,
) -> list[RicePrice]:
    """RicePrice rows for every suggested type that has no stored price yet."""
    return [
        RicePrice(rice_type=rice_type, default_price=price)
        for rice_type in suggestions
        if rice_type not in existing
    ]
