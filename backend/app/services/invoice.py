"""Invoice documents — the data behind the printable / shareable slips.

Two documents:
  - the weighing slip for one truck (``build_transaction_invoice``)
  - the collection invoice for one customer over several completed
    trucks (``build_collection_invoice``)

Rendering to an image and the platform share sheet happen on the
client; these builders return everything it needs (lines, totals,
share title/text and a file name).
"""

from datetime import datetime

from app.config import settings
from app.schemas.invoice import (
    CollectionInvoiceOut,
    InvoiceBatchLine,
    InvoiceWeightCell,
    RiceTypeLine,
    ShareInfo,
    TransactionInvoiceOut,
)
from app.services.summary import combine_by_rice_type, compute_summary
from app.utils.formatting import (
    epoch_millis,
    format_date,
    format_datetime,
    format_vnd,
    format_weight,
)


def build_transaction_invoice(tx) -> TransactionInvoiceOut:
    summary = compute_summary(tx)
    batch_by_id = {b.id: b for b in tx.rice_batches}
    show_batch_labels = len(tx.rice_batches) > 1

    if summary.batch_summaries is not None:
        lines = [
            InvoiceBatchLine(
                rice_type=b.rice_type,
                unit_price=b.unit_price,
                unit_price_text=f"{format_vnd(b.unit_price)}/kg",
                bags=b.bags,
                weight=b.weight,
                amount=b.amount,
                amount_text=format_vnd(b.amount),
            )
            for b in summary.batch_summaries
        ]
    else:
        unit_price = tx.unit_price or 0.0
        lines = [
            InvoiceBatchLine(
                rice_type=tx.rice_type or "",
                unit_price=unit_price,
                unit_price_text=f"{format_vnd(unit_price)}/kg",
                bags=summary.total_bags,
                weight=summary.total_weight,
                amount=summary.total_amount,
                amount_text=format_vnd(summary.total_amount),
            )
        ]

    cells = []
    for w in tx.weights:
        batch = batch_by_id.get(w.rice_batch_id)
        cells.append(
            InvoiceWeightCell(
                order_index=w.order_index,
                weight=w.weight,
                rice_type=batch.rice_type if (batch and show_batch_labels) else None,
            )
        )

    plate = tx.license_plate
    return TransactionInvoiceOut(
        business_name=settings.business_name,
        currency=settings.currency_code,
        transaction_id=tx.id,
        created_at=tx.created_at,
        created_at_text=format_datetime(tx.created_at),
        customer_name=tx.customer_name,
        license_plate=plate,
        lines=lines,
        weights=cells,
        total_bags=summary.total_bags,
        total_weight=summary.total_weight,
        total_weight_text=format_weight(summary.total_weight),
        total_amount=summary.total_amount,
        total_amount_text=format_vnd(summary.total_amount),
        share=ShareInfo(
            title=f"Phiếu cân - {plate}",
            text=(
                f"Phiếu cân gạo xe {plate}\n"
                f"Tổng: {summary.total_bags} bao - {summary.total_weight:.1f} kg"
            ),
            file_name=f"phieu-can-{plate}.png",
        ),
    )


def build_collection_invoice(
    customer_name: str,
    transactions: list,
    printed_at: datetime | None = None,
) -> CollectionInvoiceOut:
    """Aggregate several completed transactions of one customer per rice type."""
    printed_at = printed_at or datetime.utcnow()
    combined = combine_by_rice_type(transactions)

    dates = sorted(tx.created_at for tx in transactions)
    date_from, date_to = dates[0], dates[-1]
    if format_date(date_from) == format_date(date_to):
        period_text = format_date(date_from)
    else:
        period_text = f"{format_date(date_from)} - {format_date(date_to)}"

    total_text = format_vnd(combined.total_amount)
    return CollectionInvoiceOut(
        business_name=settings.business_name,
        currency=settings.currency_code,
        customer_name=customer_name,
        transaction_ids=[tx.id for tx in transactions],
        trip_count=len(transactions),
        date_from=date_from,
        date_to=date_to,
        period_text=period_text,
        rice_types=[
            RiceTypeLine(
                rice_type=r.rice_type,
                bags=r.bags,
                weight=r.weight,
                amount=r.amount,
                amount_text=format_vnd(r.amount),
            )
            for r in combined.by_rice_type
        ],
        total_bags=combined.total_bags,
        total_weight=combined.total_weight,
        total_weight_text=format_weight(combined.total_weight),
        total_amount=combined.total_amount,
        total_amount_text=total_text,
        printed_at=printed_at,
        printed_at_text=format_datetime(printed_at),
        share=ShareInfo(
            title="Hóa đơn thu tiền",
            text=f"Hóa đơn thu tiền - {customer_name}\nTổng: {total_text}",
            file_name=f"hoa-don-{customer_name}-{epoch_millis(printed_at)}.png",
        ),
    )
