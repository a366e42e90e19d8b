"""API tests for buildings, billing and payments endpoints."""

from uuid import uuid4

import pytest

from condoledger.models.idempotency_record import IdempotencyRecord

ADMIN_HEADERS = {"X-Acting-User": "admin@torre-norte.test"}
RESIDENT_HEADERS = {"X-Acting-User": "resident-3b@torre-norte.test"}


@pytest.fixture
def api_unit(client):
    building = client.post(
        "/v1/buildings/",
        json={"name": "Residencias Parque Central", "address": "Av. Bolívar, Caracas"},
        headers=ADMIN_HEADERS,
    ).json()
    return client.post(
        f"/v1/buildings/{building['id']}/units",
        json={"name": "12C", "floor": "12"},
        headers=ADMIN_HEADERS,
    ).json()


def _debt(client, unit, period, amount):
    response = client.post(
        "/v1/billing/debt",
        json={"unit_id": unit["id"], "amount": amount, "period": period},
        headers=ADMIN_HEADERS,
    )
    assert response.status_code == 201, response.text
    return response.json()


def _submit(client, unit, amount, **extra):
    response = client.post(
        "/v1/payments/",
        json={"unit_id": unit["id"], "amount": amount, **extra},
        headers=RESIDENT_HEADERS,
    )
    assert response.status_code == 201, response.text
    return response.json()


class TestBuildingsApi:
    def test_create_and_list(self, client, api_unit):
        buildings = client.get("/v1/buildings/").json()
        assert len(buildings) == 1
        assert buildings[0]["total_units"] == 1

        detail = client.get(f"/v1/buildings/{api_unit['building_id']}").json()
        assert detail["total_units"] == 1

    def test_create_requires_acting_user(self, client):
        response = client.post("/v1/buildings/", json={"name": "Sin usuario", "address": "x"})
        assert response.status_code == 401

    def test_batch_units(self, client, api_unit):
        response = client.post(
            f"/v1/buildings/{api_unit['building_id']}/units/batch",
            json={"floors": ["1", "2"], "unitsPerFloor": ["A"]},
            headers=ADMIN_HEADERS,
        )
        assert response.status_code == 201
        assert [u["name"] for u in response.json()] == ["1A", "2A"]

        units = client.get(f"/v1/buildings/{api_unit['building_id']}/units").json()
        assert len(units) == 3

    def test_summary(self, client, api_unit):
        _debt(client, api_unit, "2024-01", "40")

        summary = client.get(f"/v1/buildings/{api_unit['building_id']}/summary").json()

        assert summary["units_with_debt"] == 1
        assert summary["solvency_rate"] == "0.00"

    def test_unknown_building(self, client):
        response = client.get(f"/v1/buildings/{uuid4()}")
        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"


class TestBillingApi:
    def test_load_debt_and_query(self, client, api_unit):
        invoice = _debt(client, api_unit, "2024-01", "45.50")
        assert invoice["status"] == "PENDING"
        assert invoice["number"] == "INV-202401-0001"
        assert invoice["balance"] == "45.5000"

        assert client.get(f"/v1/billing/invoices/{invoice['id']}").json()["id"] == invoice["id"]
        listed = client.get("/v1/billing/invoices", params={"year": 2024, "month": 1}).json()
        assert [i["id"] for i in listed] == [invoice["id"]]
        unit_invoices = client.get(f"/v1/billing/units/{api_unit['id']}/invoices").json()
        assert len(unit_invoices) == 1

    def test_invalid_debt(self, client, api_unit):
        response = client.post(
            "/v1/billing/debt",
            json={"unit_id": api_unit["id"], "amount": "-3", "period": "2024-01"},
            headers=ADMIN_HEADERS,
        )
        assert response.status_code == 400
        assert response.json() == {
            "detail": "Amount must be positive, got -3.00",
            "code": "VALIDATION_ERROR",
            "field": "amount",
        }

    @pytest.mark.parametrize("amount", ["1e30", "123456789012345678.37", "10.005"])
    def test_unstorable_debt_amount(self, client, api_unit, amount):
        response = client.post(
            "/v1/billing/debt",
            json={"unit_id": api_unit["id"], "amount": amount, "period": "2024-01"},
            headers=ADMIN_HEADERS,
        )
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"
        assert response.json()["field"] == "amount"
        assert client.get("/v1/billing/invoices").json() == []

    def test_list_month_without_year(self, client, api_unit):
        _debt(client, api_unit, "2024-01", "50")

        response = client.get("/v1/billing/invoices", params={"month": 1})

        assert response.status_code == 400
        assert response.json()["field"] == "month"

    def test_debt_for_unknown_unit(self, client):
        response = client.post(
            "/v1/billing/debt",
            json={"unit_id": str(uuid4()), "amount": "10", "period": "2024-01"},
            headers=ADMIN_HEADERS,
        )
        assert response.status_code == 404
        assert response.json()["resource_type"] == "unit"

    def test_batch_debt(self, client, api_unit):
        response = client.post(
            "/v1/billing/debt/batch",
            json={
                "items": [
                    {"unit_id": api_unit["id"], "amount": "30", "period": "2024-01"},
                    {"unit_id": api_unit["id"], "amount": "30", "period": "2024-02"},
                ]
            },
            headers=ADMIN_HEADERS,
        )
        assert response.status_code == 201
        assert len(response.json()) == 2

    def test_balance_uses_camel_case(self, client, api_unit):
        _debt(client, api_unit, "2024-01", "50")
        _debt(client, api_unit, "2024-02", "30")

        balance = client.get(f"/v1/billing/units/{api_unit['id']}/balance").json()

        assert balance["unitId"] == api_unit["id"]
        assert balance["totalDebt"] == "80.0000"
        assert balance["outstandingCount"] == 2
        assert [line["period"] for line in balance["invoiceBreakdown"]] == ["2024-01", "2024-02"]

    def test_outstanding_and_cancel(self, client, api_unit):
        jan = _debt(client, api_unit, "2024-01", "50")
        _debt(client, api_unit, "2024-02", "30")

        response = client.post(
            f"/v1/billing/invoices/{jan['id']}/cancel", headers=ADMIN_HEADERS
        )
        assert response.status_code == 200
        assert response.json()["status"] == "CANCELLED"

        again = client.post(f"/v1/billing/invoices/{jan['id']}/cancel", headers=ADMIN_HEADERS)
        assert again.status_code == 409
        assert again.json()["code"] == "INVALID_STATE"

        outstanding = client.get(f"/v1/billing/units/{api_unit['id']}/outstanding").json()
        assert [i["period"] for i in outstanding] == ["2024-02"]

    def test_unknown_unit_balance(self, client):
        assert client.get(f"/v1/billing/units/{uuid4()}/balance").status_code == 404


class TestPaymentsApi:
    def test_submit_and_approve(self, client, api_unit):
        jan = _debt(client, api_unit, "2024-01", "50")
        feb = _debt(client, api_unit, "2024-02", "30")
        _debt(client, api_unit, "2024-03", "100")

        payment = _submit(client, api_unit, "70", reference="PM-0001", method="PAGO_MOVIL")
        assert payment["status"] == "PENDING"
        assert payment["periods"] == ["2024-01", "2024-02"]
        assert [a["status"] for a in payment["allocations"]] == ["PROPOSED", "PROPOSED"]

        response = client.post(f"/v1/payments/{payment['id']}/approve", headers=ADMIN_HEADERS)

        assert response.status_code == 200, response.text
        approved = response.json()
        assert approved["status"] == "APPROVED"
        assert approved["reviewed_by"] == ADMIN_HEADERS["X-Acting-User"]
        assert approved["allocated_amount"] == "70.0000"
        assert approved["unallocated_amount"] == "0.0000"
        assert client.get(f"/v1/billing/invoices/{jan['id']}").json()["status"] == "PAID"
        assert client.get(f"/v1/billing/invoices/{feb['id']}").json()["balance"] == "10.0000"

        invoice_payments = client.get(f"/v1/billing/invoices/{feb['id']}/payments").json()
        assert invoice_payments[0]["payment_id"] == payment["id"]
        assert invoice_payments[0]["allocated_amount"] == "20.0000"

    def test_double_approve_conflicts(self, client, api_unit):
        _debt(client, api_unit, "2024-01", "50")
        payment = _submit(client, api_unit, "50")
        client.post(f"/v1/payments/{payment['id']}/approve", headers=ADMIN_HEADERS)

        response = client.post(f"/v1/payments/{payment['id']}/approve", headers=ADMIN_HEADERS)

        assert response.status_code == 409
        body = response.json()
        assert body["code"] == "INVALID_STATE"
        assert body["current_status"] == "APPROVED"

    def test_approve_selected_periods(self, client, api_unit):
        _debt(client, api_unit, "2024-01", "40")
        b = _debt(client, api_unit, "2024-02", "60")
        payment = _submit(client, api_unit, "100")

        response = client.post(
            f"/v1/payments/{payment['id']}/approve",
            json={"selected_periods": ["2024-01"]},
            headers=ADMIN_HEADERS,
        )

        assert response.status_code == 200
        assert response.json()["unallocated_amount"] == "60.0000"
        assert client.get(f"/v1/billing/invoices/{b['id']}").json()["paid_amount"] == "0.0000"

    def test_explicit_allocation_mismatch(self, client, api_unit):
        jan = _debt(client, api_unit, "2024-01", "40")

        response = client.post(
            "/v1/payments/",
            json={
                "unit_id": api_unit["id"],
                "amount": "50",
                "allocations": [{"invoice_id": jan["id"], "amount": "45"}],
            },
            headers=RESIDENT_HEADERS,
        )

        assert response.status_code == 409
        body = response.json()
        assert body["code"] == "ALLOCATION_MISMATCH"
        assert body["invoice_id"] == jan["id"]
        assert body["requested"] == "45.00"
        assert body["available"] == "40.0000"

    def test_empty_allocation_list_conflicts(self, client, api_unit):
        _debt(client, api_unit, "2024-01", "50")

        response = client.post(
            "/v1/payments/",
            json={"unit_id": api_unit["id"], "amount": "50", "allocations": []},
            headers=RESIDENT_HEADERS,
        )

        assert response.status_code == 409
        assert response.json()["code"] == "ALLOCATION_MISMATCH"
        assert client.get("/v1/payments/").json() == []

    def test_explicit_allocations_with_malformed_period(self, client, api_unit):
        jan = _debt(client, api_unit, "2024-01", "50")

        response = client.post(
            "/v1/payments/",
            json={
                "unit_id": api_unit["id"],
                "amount": "50",
                "periods": ["enero"],
                "allocations": [{"invoice_id": jan["id"], "amount": "50"}],
            },
            headers=RESIDENT_HEADERS,
        )

        assert response.status_code == 400
        assert response.json()["field"] == "period"

    @pytest.mark.parametrize("amount", ["1e30", "10.005"])
    def test_unstorable_payment_amount(self, client, api_unit, amount):
        response = client.post(
            "/v1/payments/",
            json={"unit_id": api_unit["id"], "amount": amount},
            headers=RESIDENT_HEADERS,
        )
        assert response.status_code == 400
        assert response.json()["field"] == "amount"

    def test_unknown_allocation_field_is_422(self, client, api_unit):
        jan = _debt(client, api_unit, "2024-01", "40")
        response = client.post(
            "/v1/payments/",
            json={
                "unit_id": api_unit["id"],
                "amount": "40",
                "allocations": [{"invoice_id": jan["id"], "amount": "40", "note": "x"}],
            },
            headers=RESIDENT_HEADERS,
        )
        assert response.status_code == 422

    def test_reject(self, client, api_unit):
        jan = _debt(client, api_unit, "2024-01", "40")
        payment = _submit(client, api_unit, "40")

        missing = client.post(
            f"/v1/payments/{payment['id']}/reject", json={"reason": " "}, headers=ADMIN_HEADERS
        )
        assert missing.status_code == 400

        response = client.post(
            f"/v1/payments/{payment['id']}/reject",
            json={"reason": "Comprobante ilegible"},
            headers=ADMIN_HEADERS,
        )
        assert response.status_code == 200
        assert response.json()["rejection_reason"] == "Comprobante ilegible"
        assert response.json()["allocations"] == []
        assert client.get(f"/v1/billing/invoices/{jan['id']}").json()["paid_amount"] == "0.0000"

    def test_legacy_patch(self, client, api_unit):
        _debt(client, api_unit, "2024-01", "40")
        _debt(client, api_unit, "2024-02", "60")
        approved = _submit(client, api_unit, "100", period="2024-01", periods=["2024-02"])
        rejected = _submit(client, api_unit, "10")

        response = client.patch(
            f"/v1/payments/{approved['id']}",
            json={"status": "APPROVED", "notes": "ok", "approved_periods": ["2024-02"]},
            headers=ADMIN_HEADERS,
        )
        assert response.status_code == 200
        assert response.json()["allocated_amount"] == "60.0000"

        response = client.patch(
            f"/v1/payments/{rejected['id']}",
            json={"status": "REJECTED", "notes": "Duplicado"},
            headers=ADMIN_HEADERS,
        )
        assert response.status_code == 200
        assert response.json()["status"] == "REJECTED"

    def test_legacy_patch_to_pending_is_invalid(self, client, api_unit):
        payment = _submit(client, api_unit, "10")
        response = client.patch(
            f"/v1/payments/{payment['id']}", json={"status": "PENDING"}, headers=ADMIN_HEADERS
        )
        assert response.status_code == 400

    def test_review_requires_acting_user(self, client, api_unit):
        payment = _submit(client, api_unit, "10")
        response = client.post(f"/v1/payments/{payment['id']}/approve")
        assert response.status_code == 401

    def test_reallocate(self, client, api_unit):
        jan = _debt(client, api_unit, "2024-01", "40")
        feb = _debt(client, api_unit, "2024-02", "60")
        payment = _submit(client, api_unit, "40")

        response = client.put(
            f"/v1/payments/{payment['id']}/allocations",
            json={"allocations": [{"invoice_id": feb["id"], "amount": "40"}]},
            headers=ADMIN_HEADERS,
        )

        assert response.status_code == 200
        assert [a["invoice_id"] for a in response.json()["allocations"]] == [feb["id"]]
        allocations = client.get(f"/v1/payments/{payment['id']}/allocations").json()
        assert jan["id"] not in {a["invoice_id"] for a in allocations}

    def test_list_and_history(self, client, api_unit):
        _debt(client, api_unit, "2024-01", "40")
        first = _submit(client, api_unit, "10", payment_date="2024-02-01T10:00:00Z")
        second = _submit(client, api_unit, "10", payment_date="2024-02-05T10:00:00Z")

        listed = client.get("/v1/payments/", params={"status": "PENDING"}).json()
        assert [p["id"] for p in listed] == [second["id"], first["id"]]
        history = client.get(f"/v1/billing/units/{api_unit['id']}/payments").json()
        assert [p["id"] for p in history] == [second["id"], first["id"]]

    def test_unknown_payment(self, client):
        assert client.get(f"/v1/payments/{uuid4()}").status_code == 404


class TestIdempotentReview:
    def test_replayed_approval_returns_first_result(self, client, api_unit, db_session):
        _debt(client, api_unit, "2024-01", "50")
        payment = _submit(client, api_unit, "50")
        headers = {**ADMIN_HEADERS, "Idempotency-Key": "approve-1"}

        first = client.post(f"/v1/payments/{payment['id']}/approve", headers=headers)
        replay = client.post(f"/v1/payments/{payment['id']}/approve", headers=headers)

        assert first.status_code == 200
        assert replay.status_code == 200
        assert replay.headers["Idempotency-Replayed"] == "true"
        assert replay.json() == first.json()
        record = (
            db_session.query(IdempotencyRecord)
            .filter(IdempotencyRecord.idempotency_key == "approve-1")
            .one()
        )
        assert record.response_status == 200

    def test_key_reused_on_another_payment_is_rejected(self, client, api_unit):
        _debt(client, api_unit, "2024-01", "50")
        one = _submit(client, api_unit, "20")
        two = _submit(client, api_unit, "20")
        headers = {**ADMIN_HEADERS, "Idempotency-Key": "shared-key"}

        client.post(f"/v1/payments/{one['id']}/approve", headers=headers)
        response = client.post(f"/v1/payments/{two['id']}/approve", headers=headers)

        assert response.status_code == 400
        assert response.json()["field"] == "Idempotency-Key"
        assert client.get(f"/v1/payments/{two['id']}").json()["status"] == "PENDING"

    def test_keys_are_scoped_to_the_acting_user(self, client, api_unit):
        _debt(client, api_unit, "2024-01", "50")
        payment = _submit(client, api_unit, "50")
        path = f"/v1/payments/{payment['id']}/approve"

        client.post(path, headers={**ADMIN_HEADERS, "Idempotency-Key": "k1"})
        response = client.post(
            path, headers={"X-Acting-User": "treasurer@torre-norte.test", "Idempotency-Key": "k1"}
        )

        assert response.status_code == 409
        assert "Idempotency-Replayed" not in response.headers

    def test_failed_attempt_is_not_cached(self, client, api_unit):
        _debt(client, api_unit, "2024-01", "50")
        payment = _submit(client, api_unit, "50")
        path = f"/v1/payments/{payment['id']}/approve"
        headers = {**ADMIN_HEADERS, "Idempotency-Key": "retry-me"}

        failed = client.post(path, json={"selected_periods": ["2023-12"]}, headers=headers)
        retried = client.post(path, headers=headers)

        assert failed.status_code == 400
        assert retried.status_code == 200
        assert "Idempotency-Replayed" not in retried.headers
        assert retried.json()["status"] == "APPROVED"

    def test_without_key_second_call_conflicts(self, client, api_unit):
        _debt(client, api_unit, "2024-01", "50")
        payment = _submit(client, api_unit, "50")
        client.post(
            f"/v1/payments/{payment['id']}/reject", json={"reason": "x"}, headers=ADMIN_HEADERS
        )
        response = client.post(
            f"/v1/payments/{payment['id']}/reject", json={"reason": "x"}, headers=ADMIN_HEADERS
        )
        assert response.status_code == 409


class TestAuditLogsApi:
    def test_trail_of_a_payment(self, client, api_unit):
        _debt(client, api_unit, "2024-01", "50")
        payment = _submit(client, api_unit, "50")
        client.post(f"/v1/payments/{payment['id']}/approve", headers=ADMIN_HEADERS)

        trail = client.get(f"/v1/audit_logs/payment/{payment['id']}").json()

        assert {entry["action"] for entry in trail} == {"created", "status_changed"}
        filtered = client.get(
            "/v1/audit_logs/", params={"resource_type": "payment", "action": "status_changed"}
        ).json()
        assert [entry["resource_id"] for entry in filtered] == [payment["id"]]

    def test_unknown_resource_type(self, client):
        assert client.get(f"/v1/audit_logs/wallet/{uuid4()}").status_code == 422


def test_root(client):
    assert client.get("/").json()["status"] == "running"
    assert client.get("/health").json() == {"status": "ok"}
