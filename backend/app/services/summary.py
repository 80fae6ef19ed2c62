"""Transaction summary — bags, weight and amount derived from weights.

Pure functions only: no I/O, no mutation.  The same transaction always
produces the same summary, so summaries are never stored.

Pricing comes in two shapes:

  - BatchPricing   one or more RiceBatch rows; each weight is priced by
                   the batch its ``rice_batch_id`` points at.
  - LegacyPricing  no batches; every weight is priced by the deprecated
                   transaction-level ``unit_price``.

A weight whose ``rice_batch_id`` names no batch of the transaction still
counts toward bags and total weight but earns nothing under batch
pricing.  Older rows depend on this; keep it.

Works on ORM objects and on any object exposing the same attributes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Protocol, Sequence, Union


class WeightLike(Protocol):
    weight: float
    rice_batch_id: str | None


class BatchLike(Protocol):
    id: str
    rice_type: str
    unit_price: float


# ── Pricing union ───────────────────────────────────────────


@dataclass(frozen=True)
class LegacyPricing:
    rice_type: str | None
    unit_price: float


@dataclass(frozen=True)
class BatchPricing:
    batches: tuple[BatchLike, ...]


Pricing = Union[LegacyPricing, BatchPricing]


def pricing_for(transaction) -> Pricing:
    """Pick the pricing shape a transaction uses."""
    batches = tuple(getattr(transaction, "rice_batches", None) or ())
    if batches:
        return BatchPricing(batches=batches)
    return LegacyPricing(
        rice_type=getattr(transaction, "rice_type", None),
        unit_price=getattr(transaction, "unit_price", None) or 0.0,
    )


# ── Summary types ───────────────────────────────────────────


@dataclass
class BatchSummary:
    batch_id: str
    rice_type: str
    unit_price: float
    bags: int = 0
    weight: float = 0.0
    amount: float = 0.0


@dataclass
class TransactionSummary:
    total_bags: int = 0
    total_weight: float = 0.0
    total_amount: float = 0.0
    # None for legacy-priced transactions
    batch_summaries: list[BatchSummary] | None = None


@dataclass
class RiceTypeSummary:
    rice_type: str
    bags: int = 0
    weight: float = 0.0
    amount: float = 0.0


@dataclass
class CombinedSummary:
    """Totals over several transactions, grouped by rice type."""
    total_bags: int = 0
    total_weight: float = 0.0
    total_amount: float = 0.0
    by_rice_type: list[RiceTypeSummary] = field(default_factory=list)


# ── Computation ─────────────────────────────────────────────


def _sum_weights(weights: Iterable[WeightLike]) -> float:
    return sum((w.weight for w in weights), 0.0)


def compute_summary(transaction) -> TransactionSummary:
    """Summarise one transaction.

    total_bags    number of weights
    total_weight  sum of all weights
    total_amount  sum of batch amounts (batch pricing), or
                  total_weight × unit_price (legacy pricing)
    """
    weights: Sequence[WeightLike] = list(getattr(transaction, "weights", None) or ())
    total_weight = _sum_weights(weights)
    pricing = pricing_for(transaction)

    if isinstance(pricing, LegacyPricing):
        return TransactionSummary(
            total_bags=len(weights),
            total_weight=total_weight,
            total_amount=total_weight * pricing.unit_price,
        )

    batch_summaries = []
    for batch in pricing.batches:
        batch_weights = [w for w in weights if w.rice_batch_id == batch.id]
        batch_weight = _sum_weights(batch_weights)
        batch_summaries.append(
            BatchSummary(
                batch_id=batch.id,
                rice_type=batch.rice_type,
                unit_price=batch.unit_price,
                bags=len(batch_weights),
                weight=batch_weight,
                amount=batch_weight * batch.unit_price,
            )
        )

    return TransactionSummary(
        total_bags=len(weights),
        total_weight=total_weight,
        total_amount=sum((b.amount for b in batch_summaries), 0.0),
        batch_summaries=batch_summaries,
    )


def rice_type_label(transaction) -> str:
    """Display label: batch rice types joined, or the legacy type."""
    pricing = pricing_for(transaction)
    if isinstance(pricing, BatchPricing):
        return ", ".join(b.rice_type for b in pricing.batches)
    return pricing.rice_type or ""


def combine_by_rice_type(transactions: Iterable) -> CombinedSummary:
    """Aggregate several transactions per rice type (collection invoices, statistics).

    Batches of the same rice type merge across transactions; legacy
    transactions aggregate under their legacy rice type.
    """
    combined = CombinedSummary()
    groups: dict[str, RiceTypeSummary] = {}

    for tx in transactions:
        summary = compute_summary(tx)
        combined.total_bags += summary.total_bags
        combined.total_weight += summary.total_weight
        combined.total_amount += summary.total_amount

        if summary.batch_summaries is not None:
            parts = [
                (b.rice_type, b.bags, b.weight, b.amount)
                for b in summary.batch_summaries
            ]
        else:
            parts = [(
                getattr(tx, "rice_type", None) or "",
                summary.total_bags,
                summary.total_weight,
                summary.total_amount,
            )]

        for rice_type, bags, weight, amount in parts:
            group = groups.get(rice_type)
            if group is None:
                group = groups[rice_type] = RiceTypeSummary(rice_type=rice_type)
            group.bags += bags
            group.weight += weight
            group.amount += amount

    combined.by_rice_type = list(groups.values())
    return combined
