"""Customer directory router.

Endpoints:
    GET    /api/customers/               List customers (search, inactive)
    GET    /api/customers/{id}           Single customer
    POST   /api/customers/               Create customer
    PATCH  /api/customers/{id}           Update customer
    DELETE /api/customers/{id}           Soft-delete (deactivate)
    POST   /api/customers/{id}/restore   Reactivate
    DELETE /api/customers/{id}/purge     Permanently delete (delete guard)
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.middleware.exceptions import ResourceNotFoundError
from app.models.customer import Customer
from app.schemas.customer import CustomerCreate, CustomerOut, CustomerUpdate
from app.services.confirmation import (
    ConfirmationPolicy,
    DeleteGuard,
    get_confirmation_policy,
)
from app.utils.activity import log_activity

router = APIRouter()


async def _get_customer(db: AsyncSession, customer_id: str) -> Customer:
    result = await db.execute(select(Customer).where(Customer.id == customer_id))
    customer = result.scalar_one_or_none()
    if not customer:
        raise ResourceNotFoundError("Customer", customer_id)
    return customer


@router.get("/", response_model=list[CustomerOut])
async def list_customers(
    include_inactive: bool = False,
    search: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """List customers (active by default), optionally filtered by name/phone/email."""
    query = select(Customer)
    if not include_inactive:
        query = query.where(Customer.is_active == True)  # noqa: E712
    if search and search.strip():
        q = f"%{search.strip()}%"
        query = query.where(
            or_(
                Customer.name.ilike(q),
                Customer.phone.ilike(q),
                Customer.email.ilike(q),
            )
        )
    query = query.order_by(Customer.name)
    result = await db.execute(query)
    return [CustomerOut.model_validate(c) for c in result.scalars().all()]


@router.get("/{customer_id}", response_model=CustomerOut)
async def get_customer(
    customer_id: str,
    db: AsyncSession = Depends(get_db),
):
    return CustomerOut.model_validate(await _get_customer(db, customer_id))


@router.post("/", response_model=CustomerOut, status_code=status.HTTP_201_CREATED)
async def create_customer(
    body: CustomerCreate,
    db: AsyncSession = Depends(get_db),
):
    """Create a customer.  Names need not be unique."""
    customer = Customer(**body.model_dump(), is_active=True)
    db.add(customer)
    await db.flush()

    await log_activity(
        db,
        action="created",
        entity_type="customer",
        entity_id=customer.id,
        entity_code=customer.name,
        summary=f"Added customer {customer.name}",
    )
    return CustomerOut.model_validate(customer)


@router.patch("/{customer_id}", response_model=CustomerOut)
async def update_customer(
    customer_id: str,
    body: CustomerUpdate,
    db: AsyncSession = Depends(get_db),
):
    customer = await _get_customer(db, customer_id)

    updates = body.model_dump(exclude_unset=True)
    # name and type cannot be cleared
    for key in ("name", "type"):
        if key in updates and updates[key] is None:
            updates.pop(key)
    for key, value in updates.items():
        setattr(customer, key, value)
    await db.flush()

    if updates:
        await log_activity(
            db,
            action="updated",
            entity_type="customer",
            entity_id=customer.id,
            entity_code=customer.name,
            summary=f"Updated customer {customer.name}",
            details={"fields": sorted(updates)},
        )
    return CustomerOut.model_validate(customer)


@router.delete("/{customer_id}", response_model=CustomerOut)
async def deactivate_customer(
    customer_id: str,
    db: AsyncSession = Depends(get_db),
):
    """Soft-delete (deactivate) a customer."""
    customer = await _get_customer(db, customer_id)
    customer.is_active = False
    await db.flush()

    await log_activity(
        db,
        action="deactivated",
        entity_type="customer",
        entity_id=customer.id,
        entity_code=customer.name,
        summary=f"Deactivated customer {customer.name}",
    )
    return CustomerOut.model_validate(customer)


@router.post("/{customer_id}/restore", response_model=CustomerOut)
async def restore_customer(
    customer_id: str,
    db: AsyncSession = Depends(get_db),
):
    customer = await _get_customer(db, customer_id)
    customer.is_active = True
    await db.flush()

    await log_activity(
        db,
        action="restored",
        entity_type="customer",
        entity_id=customer.id,
        entity_code=customer.name,
        summary=f"Restored customer {customer.name}",
    )
    return CustomerOut.model_validate(customer)


@router.delete("/{customer_id}/purge", status_code=status.HTTP_204_NO_CONTENT)
async def purge_customer(
    customer_id: str,
    guard: DeleteGuard = Depends(),
    policy: ConfirmationPolicy = Depends(get_confirmation_policy),
    db: AsyncSession = Depends(get_db),
):
    """Permanently delete a customer.  Their transactions keep the typed name."""
    guard.check(policy)
    customer = await _get_customer(db, customer_id)
    name = customer.name

    await db.delete(customer)
    await db.flush()

    await log_activity(
        db,
        action="purged",
        entity_type="customer",
        entity_id=customer_id,
        entity_code=name,
        summary=f"Permanently deleted customer {name}",
    )
