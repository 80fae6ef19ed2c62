"""Transaction — one truck visit at the weighing station.

A Transaction owns its RiceBatches (one lot of a rice type at a unit
price) and its WeighingDetails (one row per weighed bag).  Deleting a
transaction deletes both.

Older rows carry a single implicit batch in the deprecated
``rice_type`` / ``unit_price`` columns and have no RiceBatch rows; both
shapes stay readable.

Lifecycle:  pending → completed        (payment: unpaid → paid)
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base

STATUS_PENDING = "pending"
STATUS_COMPLETED = "completed"

PAYMENT_UNPAID = "unpaid"
PAYMENT_PAID = "paid"


class Transaction(Base):
    __tablename__ = "transactions"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, index=True
    )

    # ── Truck / customer ─────────────────────────────────────
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    license_plate: Mapped[str] = mapped_column(String(30), nullable=False)
    customer_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("customers.id", ondelete="SET NULL"), index=True
    )

    # ── Legacy single-batch pricing (deprecated) ─────────────
    rice_type: Mapped[str | None] = mapped_column(String(100))
    unit_price: Mapped[float | None] = mapped_column(Float)

    # ── Status ───────────────────────────────────────────────
    # pending | completed
    status: Mapped[str] = mapped_column(String(20), default=STATUS_PENDING, index=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime)

    # unpaid | paid
    payment_status: Mapped[str] = mapped_column(
        String(20), default=PAYMENT_UNPAID, index=True
    )
    payment_date: Mapped[datetime | None] = mapped_column(DateTime)

    # ── Relationships ────────────────────────────────────────
    # Always load with selectinload() in async code; never rely on lazy loads.
    rice_batches: Mapped[list["RiceBatch"]] = relationship(
        back_populates="transaction",
        cascade="all, delete-orphan",
        order_by="RiceBatch.batch_order",
        passive_deletes=True,
    )
    weights: Mapped[list["WeighingDetail"]] = relationship(
        back_populates="transaction",
        cascade="all, delete-orphan",
        order_by="WeighingDetail.order_index",
        passive_deletes=True,
    )

    @property
    def is_pending(self) -> bool:
        return self.status == STATUS_PENDING


class RiceBatch(Base):
    __tablename__ = "rice_batches"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    transaction_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("transactions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    rice_type: Mapped[str] = mapped_column(String(100), nullable=False)
    # Currency per kilogram
    unit_price: Mapped[float] = mapped_column(Float, nullable=False)
    batch_order: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    transaction: Mapped[Transaction] = relationship(back_populates="rice_batches")


class WeighingDetail(Base):
    __tablename__ = "weighing_details"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    transaction_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("transactions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Lookup only; NULL means "priced by the legacy transaction columns"
    rice_batch_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("rice_batches.id", ondelete="SET NULL")
    )
    weight: Mapped[float] = mapped_column(Float, nullable=False)  # kg
    # Zero-based, contiguous within a transaction
    order_index: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    transaction: Mapped[Transaction] = relationship(back_populates="weights")
