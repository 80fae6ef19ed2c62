"""Transaction endpoint tests."""

import pytest
from httpx import AsyncClient

from conftest import OTHER_SESSION_ID, SESSION_ID, completed_truck, start_truck, weigh


TWO_BATCHES = [
    {"rice_type": "ST25", "unit_price": 12000},
    {"rice_type": "Jasmine", "unit_price": 15000},
]

JSON_HEADERS = {"Content-Type": "application/json"}


@pytest.mark.api
@pytest.mark.asyncio
class TestCreateTransaction:

    async def test_create(self, client: AsyncClient, session_store):
        detail = await start_truck(client, batches=TWO_BATCHES)

        tx = detail["transaction"]
        assert tx["status"] == "pending"
        assert tx["payment_status"] == "unpaid"
        assert tx["license_plate"] == "51F-123.45"
        assert [b["rice_type"] for b in tx["rice_batches"]] == ["ST25", "Jasmine"]
        assert detail["summary"]["total_bags"] == 0
        assert len(detail["summary"]["batch_summaries"]) == 2
        assert session_store.pointers[SESSION_ID] == tx["id"]

    async def test_blank_plate_reports_field(self, client: AsyncClient):
        resp = await client.post("/api/transactions/", json={
            "customer_name": "Anh Ba",
            "license_plate": "  ",
            "batches": TWO_BATCHES,
        })

        assert resp.status_code == 422
        error = resp.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["details"] == {"field": "license_plate"}

    async def test_requires_a_batch(self, client: AsyncClient):
        resp = await client.post("/api/transactions/", json={
            "customer_name": "Anh Ba",
            "license_plate": "51F-1",
            "batches": [],
        })
        assert resp.status_code == 422
        assert resp.json()["error"]["details"] == {"field": "batches"}

    async def test_non_positive_price(self, client: AsyncClient):
        resp = await client.post("/api/transactions/", json={
            "customer_name": "Anh Ba",
            "license_plate": "51F-1",
            "batches": [{"rice_type": "ST25", "unit_price": -1}],
        })
        assert resp.status_code == 422
        assert resp.json()["error"]["details"] == {"field": "batches.0.unit_price"}

    @pytest.mark.parametrize("literal", ["NaN", "Infinity"])
    async def test_non_finite_price(self, client: AsyncClient, literal):
        resp = await client.post(
            "/api/transactions/",
            content=(
                '{"customer_name": "Anh Ba", "license_plate": "51F-1", '
                '"batches": [{"rice_type": "ST25", "unit_price": ' + literal + '}]}'
            ),
            headers=JSON_HEADERS,
        )

        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "VALIDATION_ERROR"
        assert resp.json()["error"]["details"] == {"field": "batches.0.unit_price"}

        current = await client.get("/api/transactions/current")
        assert current.json() is None

    async def test_second_pending_truck_in_same_session(self, client: AsyncClient):
        await start_truck(client)

        resp = await client.post("/api/transactions/", json={
            "customer_name": "Anh Ba",
            "license_plate": "60A-2",
            "batches": TWO_BATCHES,
        })

        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "ACTIVE_TRANSACTION_EXISTS"

    async def test_sessions_are_independent(self, client: AsyncClient, session_store):
        first = await start_truck(client)
        second = await start_truck(client, session_id=OTHER_SESSION_ID, license_plate="60A-2")

        assert session_store.pointers[SESSION_ID] == first["transaction"]["id"]
        assert session_store.pointers[OTHER_SESSION_ID] == second["transaction"]["id"]

    async def test_malformed_session_header(self, client: AsyncClient):
        resp = await client.get("/api/transactions/current", headers={"X-Session-ID": "bad id!"})
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "INVALID_SESSION"


@pytest.mark.api
@pytest.mark.asyncio
class TestWeighing:

    async def test_round_trip(self, client: AsyncClient):
        detail = await start_truck(client, batches=TWO_BATCHES)
        tid = detail["transaction"]["id"]
        st25, jasmine = (b["id"] for b in detail["transaction"]["rice_batches"])

        await weigh(client, tid, 50, 30, batch_id=st25)
        data = await weigh(client, tid, 20, batch_id=jasmine)

        summary = data["summary"]
        assert summary["total_bags"] == 3
        assert summary["total_weight"] == 100
        assert [b["amount"] for b in summary["batch_summaries"]] == [960000, 300000]
        assert summary["total_amount"] == 1260000
        assert data["feedback"] == [50]

    async def test_ignored_weight_has_no_feedback(self, client: AsyncClient):
        detail = await start_truck(client)
        tid = detail["transaction"]["id"]

        resp = await client.post(f"/api/transactions/{tid}/weights", json={"weight": 0})

        assert resp.status_code == 200
        assert resp.json()["feedback"] == []
        assert resp.json()["transaction"]["weights"] == []

    @pytest.mark.parametrize("literal", ["NaN", "Infinity", "-Infinity"])
    async def test_non_finite_weight_is_rejected(self, client: AsyncClient, literal):
        detail = await start_truck(client)
        tid = detail["transaction"]["id"]

        resp = await client.post(
            f"/api/transactions/{tid}/weights",
            content='{"weight": ' + literal + '}',
            headers=JSON_HEADERS,
        )

        assert resp.status_code == 422
        problems = resp.json()["error"]["details"]["errors"]
        assert [p["field"] for p in problems] == ["weight"]

        after = (await client.get(f"/api/transactions/{tid}")).json()
        assert after["transaction"]["weights"] == []
        assert after["summary"]["total_weight"] == 0
        assert after["summary"]["total_amount"] == 0

    async def test_non_finite_correction_is_rejected(self, client: AsyncClient):
        detail = await start_truck(client)
        tid = detail["transaction"]["id"]
        data = await weigh(client, tid, 48.5)
        weight_id = data["transaction"]["weights"][0]["id"]

        resp = await client.patch(
            f"/api/transactions/{tid}/weights/{weight_id}",
            content='{"weight": Infinity}',
            headers=JSON_HEADERS,
        )

        assert resp.status_code == 422
        after = (await client.get(f"/api/transactions/{tid}")).json()
        assert after["summary"]["total_weight"] == 48.5

    async def test_correct_weight(self, client: AsyncClient):
        detail = await start_truck(client)
        tid = detail["transaction"]["id"]
        data = await weigh(client, tid, 48.5)
        weight_id = data["transaction"]["weights"][0]["id"]

        resp = await client.patch(
            f"/api/transactions/{tid}/weights/{weight_id}", json={"weight": 49.5}
        )

        assert resp.status_code == 200
        assert resp.json()["transaction"]["weights"][0]["weight"] == 49.5
        assert resp.json()["summary"]["total_weight"] == 49.5

    async def test_delete_weight_renumbers(self, client: AsyncClient):
        detail = await start_truck(client)
        tid = detail["transaction"]["id"]
        data = await weigh(client, tid, 10, 20, 30)
        first_id = data["transaction"]["weights"][0]["id"]

        resp = await client.delete(f"/api/transactions/{tid}/weights/{first_id}")

        assert resp.status_code == 200
        body = resp.json()
        assert [(w["order_index"], w["weight"]) for w in body["transaction"]["weights"]] == [
            (0, 20), (1, 30),
        ]
        assert body["feedback"] == [30, 20, 30]

    async def test_unknown_transaction(self, client: AsyncClient):
        resp = await client.post("/api/transactions/nope/weights", json={"weight": 40})
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "RESOURCE_NOT_FOUND"


@pytest.mark.api
@pytest.mark.asyncio
class TestCurrentAndLifecycle:

    async def test_current_transaction(self, client: AsyncClient):
        resp = await client.get("/api/transactions/current")
        assert resp.status_code == 200
        assert resp.json() is None

        detail = await start_truck(client)
        resp = await client.get("/api/transactions/current")
        assert resp.json()["transaction"]["id"] == detail["transaction"]["id"]

    async def test_current_needs_session(self, client: AsyncClient):
        resp = await client.get("/api/transactions/current", headers={"X-Session-ID": ""})
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "SESSION_REQUIRED"

    async def test_complete(self, client: AsyncClient):
        data = await completed_truck(client, 40, 35)

        assert data["transaction"]["status"] == "completed"
        assert data["transaction"]["completed_at"] is not None
        resp = await client.get("/api/transactions/current")
        assert resp.json() is None

    async def test_complete_empty_truck(self, client: AsyncClient):
        detail = await start_truck(client)
        tid = detail["transaction"]["id"]

        resp = await client.post(f"/api/transactions/{tid}/complete")

        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "EMPTY_TRANSACTION"
        check = await client.get(f"/api/transactions/{tid}")
        assert check.json()["transaction"]["status"] == "pending"

    async def test_cancel_empty_truck_needs_no_confirmation(self, client: AsyncClient):
        detail = await start_truck(client)
        tid = detail["transaction"]["id"]

        resp = await client.post(f"/api/transactions/{tid}/cancel")

        assert resp.status_code == 204
        assert (await client.get(f"/api/transactions/{tid}")).status_code == 404

    async def test_cancel_weighed_truck_needs_confirmation(self, client: AsyncClient, session_store):
        detail = await start_truck(client)
        tid = detail["transaction"]["id"]
        await weigh(client, tid, 40)

        resp = await client.post(f"/api/transactions/{tid}/cancel")
        assert resp.status_code == 428
        assert resp.json()["error"]["code"] == "CONFIRMATION_REQUIRED"

        resp = await client.post(f"/api/transactions/{tid}/cancel", params={"confirm": "true"})
        assert resp.status_code == 204
        assert SESSION_ID not in session_store.pointers

    async def test_cancel_completed_truck(self, client: AsyncClient):
        data = await completed_truck(client, 40)
        tid = data["transaction"]["id"]

        resp = await client.post(f"/api/transactions/{tid}/cancel", params={"confirm": "true"})
        assert resp.status_code == 409

    async def test_delete_completed_needs_code_and_confirm(self, client: AsyncClient, delete_code):
        data = await completed_truck(client, 40)
        tid = data["transaction"]["id"]

        resp = await client.delete(f"/api/transactions/{tid}", params={"confirm": "true"})
        assert resp.status_code == 403

        resp = await client.delete(
            f"/api/transactions/{tid}", headers={"X-Delete-Code": delete_code}
        )
        assert resp.status_code == 428

        resp = await client.delete(
            f"/api/transactions/{tid}",
            params={"confirm": "true"},
            headers={"X-Delete-Code": delete_code},
        )
        assert resp.status_code == 204
        assert (await client.get(f"/api/transactions/{tid}")).status_code == 404

    async def test_delete_pending_is_rejected(self, client: AsyncClient, delete_code):
        detail = await start_truck(client)
        tid = detail["transaction"]["id"]

        resp = await client.delete(
            f"/api/transactions/{tid}",
            params={"confirm": "true"},
            headers={"X-Delete-Code": delete_code},
        )
        assert resp.status_code == 409


@pytest.mark.api
@pytest.mark.asyncio
class TestHistory:

    async def test_list_with_filters(self, client: AsyncClient):
        await completed_truck(client, 40, 35, customer_name="Anh Ba")
        await completed_truck(client, 50, customer_name="Chị Tư", license_plate="60A-2")
        await start_truck(client, customer_name="Anh Ba", license_plate="60A-3")

        resp = await client.get("/api/transactions/", params={"status": "completed"})
        body = resp.json()
        assert body["total"] == 2
        assert {item["customer_name"] for item in body["items"]} == {"Anh Ba", "Chị Tư"}

        resp = await client.get("/api/transactions/", params={"customer_name": "Anh Ba"})
        assert resp.json()["total"] == 2

        resp = await client.get("/api/transactions/", params={"limit": 1})
        body = resp.json()
        assert body["total"] == 3
        assert len(body["items"]) == 1
        # newest first
        assert body["items"][0]["license_plate"] == "60A-3"

    async def test_list_item_totals(self, client: AsyncClient):
        await completed_truck(client, 50, 30, batches=TWO_BATCHES)

        item = (await client.get("/api/transactions/")).json()["items"][0]

        assert item["rice_type_label"] == "ST25, Jasmine"
        assert item["total_bags"] == 2
        assert item["total_weight"] == 80
        assert item["total_amount"] == 80 * 12000

    async def test_recent(self, client: AsyncClient):
        for plate in ("60A-1", "60A-2", "60A-3"):
            await completed_truck(client, 40, license_plate=plate)

        resp = await client.get("/api/transactions/recent", params={"limit": 2})

        assert [item["license_plate"] for item in resp.json()] == ["60A-3", "60A-2"]


@pytest.mark.api
@pytest.mark.asyncio
class TestTransactionInvoice:

    async def test_invoice_with_two_batches(self, client: AsyncClient):
        detail = await start_truck(client, batches=TWO_BATCHES)
        tid = detail["transaction"]["id"]
        st25, jasmine = (b["id"] for b in detail["transaction"]["rice_batches"])
        await weigh(client, tid, 50, 30, batch_id=st25)
        await weigh(client, tid, 20, batch_id=jasmine)

        resp = await client.get(f"/api/transactions/{tid}/invoice")

        assert resp.status_code == 200
        invoice = resp.json()
        assert invoice["total_amount_text"] == "1.260.000 ₫"
        assert [line["amount"] for line in invoice["lines"]] == [960000, 300000]
        assert [cell["rice_type"] for cell in invoice["weights"]] == ["ST25", "ST25", "Jasmine"]
        assert invoice["share"]["file_name"] == "phieu-can-51F-123.45.png"
        assert invoice["share"]["text"] == "Phiếu cân gạo xe 51F-123.45\nTổng: 3 bao - 100.0 kg"

    async def test_single_batch_has_no_weight_labels(self, client: AsyncClient):
        detail = await start_truck(client)
        tid = detail["transaction"]["id"]
        await weigh(client, tid, 50)

        invoice = (await client.get(f"/api/transactions/{tid}/invoice")).json()

        assert invoice["weights"][0]["rice_type"] is None
        assert invoice["lines"][0]["unit_price_text"] == "12.000 ₫/kg"
