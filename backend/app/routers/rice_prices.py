"""Default rice prices.

Endpoints:
    GET    /api/rice-prices/                List stored defaults
    GET    /api/rice-prices/suggestions     Rice types for the picker
    GET    /api/rice-prices/lookup          Default price for one type
    PUT    /api/rice-prices/{rice_type}     Create or change a default
    DELETE /api/rice-prices/{rice_type}     Remove a default
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import get_db
from app.middleware.exceptions import ResourceNotFoundError, ValidationError
from app.models.rice_price import RicePrice
from app.schemas.rice_price import RicePriceLookup, RicePriceOut, RicePriceUpsert
from app.utils.activity import log_activity

router = APIRouter()


async def _find_price(db: AsyncSession, rice_type: str) -> RicePrice | None:
    result = await db.execute(select(RicePrice).where(RicePrice.rice_type == rice_type))
    return result.scalar_one_or_none()


def _clean_type(rice_type: str) -> str:
    cleaned = (rice_type or "").strip()
    if not cleaned:
        raise ValidationError("Rice type is required", field="rice_type")
    return cleaned


@router.get("/", response_model=list[RicePriceOut])
async def list_prices(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(RicePrice).order_by(RicePrice.rice_type))
    return [RicePriceOut.model_validate(p) for p in result.scalars().all()]


@router.get("/suggestions", response_model=list[str])
async def rice_type_suggestions(db: AsyncSession = Depends(get_db)):
    """Configured suggestions first, then any other type with a stored price."""
    result = await db.execute(select(RicePrice.rice_type).order_by(RicePrice.rice_type))
    suggestions = list(settings.rice_type_suggestions)
    for rice_type in result.scalars().all():
        if rice_type not in suggestions:
            suggestions.append(rice_type)
    return suggestions


@router.get("/lookup", response_model=RicePriceLookup)
async def lookup_price(
    rice_type: str = Query(...),
    db: AsyncSession = Depends(get_db),
):
    """Price to pre-fill for a freshly picked rice type."""
    rice_type = _clean_type(rice_type)
    price = await _find_price(db, rice_type)
    if price is None:
        return RicePriceLookup(
            rice_type=rice_type,
            default_price=settings.default_rice_price,
            is_stored=False,
        )
    return RicePriceLookup(
        rice_type=rice_type, default_price=price.default_price, is_stored=True
    )


@router.put("/{rice_type}", response_model=RicePriceOut)
async def upsert_price(
    rice_type: str,
    body: RicePriceUpsert,
    db: AsyncSession = Depends(get_db),
):
    rice_type = _clean_type(rice_type)
    price = await _find_price(db, rice_type)
    previous = price.default_price if price else None

    if price is None:
        price = RicePrice(rice_type=rice_type, default_price=body.default_price)
        db.add(price)
    else:
        price.default_price = body.default_price
    await db.flush()

    await log_activity(
        db,
        action="price_set",
        entity_type="rice_price",
        entity_id=price.id,
        entity_code=rice_type,
        summary=f"Default price for {rice_type} set to {body.default_price:g}",
        details={"previous": previous, "current": body.default_price},
    )
    return RicePriceOut.model_validate(price)


@router.delete("/{rice_type}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_price(
    rice_type: str,
    db: AsyncSession = Depends(get_db),
):
    rice_type = _clean_type(rice_type)
    price = await _find_price(db, rice_type)
    if price is None:
        raise ResourceNotFoundError("Rice price", rice_type)

    await db.delete(price)
    await db.flush()

    await log_activity(
        db,
        action="price_removed",
        entity_type="rice_price",
        entity_id=price.id,
        entity_code=rice_type,
        summary=f"Removed default price for {rice_type}",
    )
