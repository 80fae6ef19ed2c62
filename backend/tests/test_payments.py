"""Payment collection endpoint tests."""

from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from httpx import AsyncClient

from app.services.invoice import build_collection_invoice

from conftest import completed_truck, start_truck


@pytest.mark.unit
class TestCollectionInvoiceDocument:

    def _tx(self, tx_id, created_at, weights, unit_price=6000):
        return SimpleNamespace(
            id=tx_id,
            created_at=created_at,
            rice_batches=[],
            weights=[SimpleNamespace(weight=w, rice_batch_id=None) for w in weights],
            rice_type="Gạo tẻ",
            unit_price=unit_price,
        )

    def test_single_day_period(self):
        # stored times are UTC; the station is seven hours ahead
        day = datetime(2026, 5, 4, 1, 30)
        invoice = build_collection_invoice(
            "Anh Ba",
            [self._tx("a", day, [40, 35]), self._tx("b", day.replace(hour=15), [10])],
            printed_at=datetime(2026, 5, 4, 10, 0),
        )

        assert invoice.period_text == "04/05/2026"
        assert invoice.trip_count == 2
        assert invoice.total_bags == 3
        assert invoice.total_amount == 85 * 6000
        assert [line.rice_type for line in invoice.rice_types] == ["Gạo tẻ"]
        assert invoice.share.text == "Hóa đơn thu tiền - Anh Ba\nTổng: 510.000 ₫"
        assert invoice.share.file_name.startswith("hoa-don-Anh Ba-")
        assert invoice.printed_at_text == "04/05/2026 17:00"

    def test_file_name_stamp_is_utc_epoch(self):
        printed_at = datetime(2026, 5, 4, 10, 0)
        invoice = build_collection_invoice(
            "Anh Ba", [self._tx("a", datetime(2026, 5, 4, 2, 0), [10])], printed_at=printed_at
        )

        millis = int(printed_at.replace(tzinfo=timezone.utc).timestamp() * 1000)
        assert invoice.share.file_name == f"hoa-don-Anh Ba-{millis}.png"

    def test_truck_after_local_midnight_uses_local_date(self):
        # 18:30 UTC on the 4th is 01:30 on the 5th at the station
        invoice = build_collection_invoice(
            "Anh Ba",
            [self._tx("a", datetime(2026, 5, 4, 18, 30), [10])],
            printed_at=datetime(2026, 5, 4, 18, 45),
        )

        assert invoice.period_text == "05/05/2026"
        assert invoice.printed_at_text == "05/05/2026 01:45"

    def test_period_spans_days(self):
        invoice = build_collection_invoice(
            "Anh Ba",
            [
                self._tx("b", datetime(2026, 5, 6), [10]),
                self._tx("a", datetime(2026, 5, 4), [10]),
            ],
        )
        assert invoice.period_text == "04/05/2026 - 06/05/2026"


@pytest.mark.api
@pytest.mark.asyncio
class TestPayments:

    async def test_unpaid_lists_completed_trucks_of_customer(self, client: AsyncClient):
        first = await completed_truck(client, 40, 35, customer_name="Anh Ba")
        await completed_truck(client, 50, customer_name="Chị Tư", license_plate="60A-2")
        await start_truck(client, customer_name="Anh Ba", license_plate="60A-3")

        resp = await client.get("/api/payments/unpaid", params={"customer_name": "Anh Ba"})

        assert resp.status_code == 200
        items = resp.json()
        assert [item["id"] for item in items] == [first["transaction"]["id"]]
        assert items[0]["total_amount"] == 75 * 12000

    async def test_collection_invoice(self, client: AsyncClient):
        a = await completed_truck(client, 40, 35)
        b = await completed_truck(
            client, 20,
            license_plate="60A-2",
            batches=[
                {"rice_type": "ST25", "unit_price": 11000},
                {"rice_type": "Jasmine", "unit_price": 15000},
            ],
        )

        resp = await client.post("/api/payments/invoice", json={
            "customer_name": "Anh Ba",
            "transaction_ids": [a["transaction"]["id"], b["transaction"]["id"]],
        })

        assert resp.status_code == 200
        invoice = resp.json()
        assert invoice["trip_count"] == 2
        assert invoice["total_bags"] == 3
        assert invoice["total_weight"] == 95
        by_type = {line["rice_type"]: line for line in invoice["rice_types"]}
        assert by_type["Gạo ST25"]["amount"] == 75 * 12000
        assert by_type["ST25"]["amount"] == 20 * 11000
        assert by_type["Jasmine"]["bags"] == 0
        assert invoice["total_amount"] == 75 * 12000 + 20 * 11000

    async def test_invoice_needs_a_selection(self, client: AsyncClient):
        resp = await client.post("/api/payments/invoice", json={
            "customer_name": "Anh Ba",
            "transaction_ids": [],
        })
        assert resp.status_code == 422
        assert resp.json()["error"]["details"] == {"field": "transaction_ids"}

    async def test_invoice_rejects_other_customers_truck(self, client: AsyncClient):
        other = await completed_truck(client, 40, customer_name="Chị Tư")

        resp = await client.post("/api/payments/invoice", json={
            "customer_name": "Anh Ba",
            "transaction_ids": [other["transaction"]["id"]],
        })
        assert resp.status_code == 422

    async def test_mark_paid(self, client: AsyncClient):
        a = await completed_truck(client, 40)
        b = await completed_truck(client, 50, license_plate="60A-2")
        ids = [a["transaction"]["id"], b["transaction"]["id"]]

        resp = await client.post("/api/payments/mark-paid", json={"transaction_ids": ids})

        assert resp.status_code == 200
        assert resp.json() == {"requested": 2, "updated": 2}
        for tid in ids:
            tx = (await client.get(f"/api/transactions/{tid}")).json()["transaction"]
            assert tx["payment_status"] == "paid"
            assert tx["payment_date"] is not None

        unpaid = await client.get("/api/payments/unpaid", params={"customer_name": "Anh Ba"})
        assert unpaid.json() == []

    async def test_paid_rows_keep_their_payment_date(self, client: AsyncClient):
        a = await completed_truck(client, 40)
        tid = a["transaction"]["id"]
        await client.post("/api/payments/mark-paid", json={"transaction_ids": [tid]})
        first_date = (await client.get(f"/api/transactions/{tid}")).json()["transaction"]["payment_date"]

        resp = await client.post("/api/payments/mark-paid", json={"transaction_ids": [tid]})

        assert resp.json()["updated"] == 0
        again = (await client.get(f"/api/transactions/{tid}")).json()["transaction"]["payment_date"]
        assert again == first_date

    async def test_pending_truck_rejects_whole_request(self, client: AsyncClient):
        done = await completed_truck(client, 40)
        pending = await start_truck(client, license_plate="60A-2")

        resp = await client.post("/api/payments/mark-paid", json={
            "transaction_ids": [done["transaction"]["id"], pending["transaction"]["id"]],
        })

        assert resp.status_code == 409
        tx = (await client.get(f"/api/transactions/{done['transaction']['id']}")).json()
        assert tx["transaction"]["payment_status"] == "unpaid"

    async def test_unknown_id(self, client: AsyncClient):
        resp = await client.post("/api/payments/mark-paid", json={"transaction_ids": ["nope"]})
        assert resp.status_code == 404

    async def test_empty_selection(self, client: AsyncClient):
        resp = await client.post("/api/payments/mark-paid", json={"transaction_ids": []})
        assert resp.status_code == 422
