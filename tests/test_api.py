"""
Office Nexus Ledger - API Tests

HTTP surface: routing under /api/v1/companies/{company_id}, JSON shapes
and the error body format.
"""

from uuid import uuid4

import pytest

from app.utils.error_handling import ErrorCode


class TestRoot:

    @pytest.mark.asyncio
    async def test_api_info(self, client):
        response = await client.get("/api")
        assert response.status_code == 200
        body = response.json()
        assert body["currency"] == "RWF"

    @pytest.mark.asyncio
    async def test_unknown_route(self, client):
        response = await client.get("/api/v1/nowhere")
        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "NOT_FOUND"


class TestErrorCodes:

    def test_published_error_codes(self):
        assert {code.value for code in ErrorCode} == {
            "VALIDATION_ERROR", "INVALID_INPUT", "INVALID_AMOUNT", "INVALID_TAX_PERIOD", "UNKNOWN_ACCOUNT",
            "NOT_FOUND", "TRANSACTION_NOT_FOUND",
            "RESOURCE_CONFLICT", "DUPLICATE_ENTRY", "LEDGER_IMMUTABLE",
            "BUSINESS_RULE_VIOLATION", "UNBALANCED_TRANSACTION", "CAPITAL_LIMIT_EXCEEDED",
            "OWNERSHIP_CEILING_EXCEEDED", "DECLARATION_NOT_CONFIRMED",
            "DATABASE_ERROR", "CONNECTION_ERROR", "DATA_INTEGRITY_ERROR", "INTERNAL_ERROR",
        }


class TestLedgerAPI:

    @pytest.mark.asyncio
    async def test_post_and_replay(self, client, api_base):
        payload = {
            "date": "2026-03-05",
            "reference": "JV-001",
            "description": "Opening cash",
            "source_id": "JV-001",
            "source_type": "manual",
            "entries": [
                {"account_code": "1002", "debit": "250000"},
                {"account_code": "3001", "credit": "250000"},
            ],
        }
        first = await client.post(f"{api_base}/ledger/transactions", json=payload)
        replay = await client.post(f"{api_base}/ledger/transactions", json=payload)

        assert first.status_code == 200
        assert first.json()["status"] == "posted"
        assert first.json()["total_debit"] == "250000"
        assert replay.json()["status"] == "duplicate_skipped"
        assert replay.json()["transaction_id"] == first.json()["transaction_id"]

    @pytest.mark.asyncio
    async def test_unbalanced_posting(self, client, api_base):
        response = await client.post(f"{api_base}/ledger/transactions", json={
            "date": "2026-03-05",
            "reference": "JV-002",
            "description": "Broken",
            "source_id": "JV-002",
            "source_type": "manual",
            "entries": [
                {"account_code": "1002", "debit": "100"},
                {"account_code": "3001", "credit": "90"},
            ],
        })
        assert response.status_code == 422
        detail = response.json()["detail"]
        assert detail["code"] == "UNBALANCED_TRANSACTION"
        assert detail["details"]["difference"] == "10"

    @pytest.mark.asyncio
    async def test_reversal_type_refused_on_plain_post(self, client, api_base):
        response = await client.post(f"{api_base}/ledger/transactions", json={
            "date": "2026-03-05",
            "reference": "REV-X",
            "description": "Hand-made reversal",
            "source_id": "not-a-uuid",
            "source_type": "reversal",
            "entries": [
                {"account_code": "2101", "debit": "10"},
                {"account_code": "1001", "credit": "10"},
            ],
        })
        assert response.status_code == 422
        assert response.json()["detail"]["code"] == "VALIDATION_ERROR"
        assert response.json()["detail"]["field"] == "source_type"

        vat = await client.get(f"{api_base}/tax/vat", params={"start": "2026-03-01", "end": "2026-03-31"})
        assert vat.status_code == 200

    @pytest.mark.asyncio
    async def test_event_then_reports(self, client, api_base, sale_event):
        posted = await client.post(f"{api_base}/ledger/events", json=sale_event)
        assert posted.status_code == 200
        assert posted.json()["source_type"] == "invoice"

        trial_balance = await client.get(f"{api_base}/ledger/trial-balance", params={"as_of": "2026-03-31"})
        assert trial_balance.status_code == 200
        assert trial_balance.json()["is_balanced"] is True
        assert trial_balance.json()["total_debits"] == "118000.00"

        balance = await client.get(f"{api_base}/ledger/accounts/2101/balance", params={"as_of": "2026-03-31"})
        assert balance.json()["balance"] == "-18000.00"

        trail = await client.get(
            f"{api_base}/ledger/audit-trail", params={"source_type": "invoice", "source_id": "INV-0001"},
        )
        assert len(trail.json()) == 1
        assert len(trail.json()[0]["entries"]) == 3

    @pytest.mark.asyncio
    async def test_encode_does_not_post(self, client, api_base, sale_event):
        encoded = await client.post(f"{api_base}/ledger/events/encode", json=sale_event)
        assert encoded.status_code == 200

        lines = await client.get(f"{api_base}/ledger/general-ledger")
        assert lines.json() == []

    @pytest.mark.asyncio
    async def test_reverse(self, client, api_base, sale_event):
        posted = await client.post(f"{api_base}/ledger/events", json=sale_event)
        tx_id = posted.json()["transaction_id"]

        response = await client.post(
            f"{api_base}/ledger/transactions/{tx_id}/reverse",
            json={"reversal_date": "2026-03-20", "reason": "Customer returned goods"},
        )
        assert response.status_code == 200
        assert response.json()["source_type"] == "reversal"
        assert response.json()["source_id"] == tx_id

    @pytest.mark.asyncio
    async def test_reverse_unknown(self, client, api_base):
        response = await client.post(
            f"{api_base}/ledger/transactions/{uuid4()}/reverse",
            json={"reversal_date": "2026-03-20", "reason": "x"},
        )
        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "TRANSACTION_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_unknown_account_balance(self, client, api_base):
        response = await client.get(f"{api_base}/ledger/accounts/9999/balance")
        assert response.status_code == 422
        assert response.json()["detail"]["code"] == "UNKNOWN_ACCOUNT"

    @pytest.mark.asyncio
    async def test_malformed_event(self, client, api_base):
        response = await client.post(f"{api_base}/ledger/events", json={"type": "teleport", "date": "2026-03-01"})
        assert response.status_code == 422
        assert response.json()["detail"]["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_chart_of_accounts(self, client, api_base):
        response = await client.get(f"{api_base}/ledger/chart-of-accounts")
        assert response.status_code == 200
        assert len(response.json()) == 31

    @pytest.mark.asyncio
    async def test_company_id_must_be_uuid(self, client):
        response = await client.get("/api/v1/companies/not-a-uuid/ledger/trial-balance")
        assert response.status_code == 422


class TestTaxAPI:

    @pytest.mark.asyncio
    async def test_vat_return(self, client, api_base, sale_event):
        await client.post(f"{api_base}/ledger/events", json=sale_event)

        response = await client.get(f"{api_base}/tax/vat", params={"start": "2026-03-01", "end": "2026-03-31"})
        assert response.status_code == 200
        body = response.json()
        assert body["sales_vat"] == "18000.00"
        assert body["due_date"] == "2026-04-15"

    @pytest.mark.asyncio
    async def test_qit_roundtrip(self, client, api_base):
        missing = await client.get(f"{api_base}/tax/qit", params={"quarter": "Q3", "year": 2026})
        assert missing.json()["is_stored"] is False

        stored = await client.put(f"{api_base}/tax/qit", json={
            "quarter": "Q3", "year": 2026, "estimated_income": "2000000",
        })
        assert stored.status_code == 200
        assert stored.json()["tax_amount"] == "600000.00"
        assert stored.json()["due_date"] == "2026-09-30"

    @pytest.mark.asyncio
    async def test_bad_quarter(self, client, api_base):
        response = await client.get(f"{api_base}/tax/qit", params={"quarter": "Q9", "year": 2026})
        assert response.status_code == 422
        assert response.json()["detail"]["code"] == "INVALID_TAX_PERIOD"

    @pytest.mark.asyncio
    async def test_summary(self, client, api_base):
        response = await client.get(f"{api_base}/tax/summary", params={"as_of": "2026-05-10"})
        assert response.status_code == 200
        assert response.json()["total_due"] == "0"
        assert len(response.json()["obligations"]) == 4


class TestPayrollAPI:

    @pytest.mark.asyncio
    async def test_calculate(self, client, api_base):
        response = await client.post(f"{api_base}/payroll/calculate", json={"gross_salary": "500000"})
        assert response.status_code == 200
        assert response.json()["net_salary"] == "392000"

    @pytest.mark.asyncio
    async def test_run_and_summary(self, client, api_base):
        run = await client.post(f"{api_base}/payroll/runs", json={
            "period": "2026-03",
            "payment_date": "2026-03-28",
            "employees": [{"employee_id": "E001", "name": "Aline Uwase", "gross_salary": "500000"}],
        })
        assert run.status_code == 200
        assert run.json()["posted_count"] == 1

        summary = await client.get(f"{api_base}/payroll/2026-03/summary")
        assert summary.status_code == 200
        assert summary.json()["employee_count"] == 1

    @pytest.mark.asyncio
    async def test_summary_for_empty_period(self, client, api_base):
        response = await client.get(f"{api_base}/payroll/2026-01/summary")
        assert response.status_code == 404


class TestCapitalAPI:

    @pytest.mark.asyncio
    async def test_capital_lifecycle(self, client, api_base):
        created = await client.post(f"{api_base}/capital", json={"authorized_shares": 10000, "share_price": "1000"})
        assert created.status_code == 201
        assert created.json()["remaining_shares"] == 10000

        duplicate = await client.post(f"{api_base}/capital", json={"authorized_shares": 10, "share_price": "1"})
        assert duplicate.status_code == 409

        allocated = await client.post(f"{api_base}/capital/allocations", json={
            "shares": 3000, "shareholder_ref": "SH-1", "shareholder_name": "Aline Uwase",
        })
        assert allocated.json()["issued_shares"] == 3000

        rejected = await client.post(f"{api_base}/capital/allocations", json={"shares": 8000})
        assert rejected.status_code == 422
        assert rejected.json()["detail"]["code"] == "CAPITAL_LIMIT_EXCEEDED"

        current = await client.get(f"{api_base}/capital")
        assert current.json()["issued_shares"] == 3000

    @pytest.mark.asyncio
    async def test_capital_not_initialized(self, client, api_base):
        response = await client.get(f"{api_base}/capital")
        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "NOT_FOUND"

    @pytest.mark.asyncio
    async def test_beneficial_owner_ceiling(self, client, api_base):
        owner = {
            "full_name": "Aline Uwase",
            "nationality": "Rwandan",
            "id_number": "1199080012345678",
            "relationship_to_company": "Director",
            "ownership_percentage": "80",
        }
        first = await client.put(f"{api_base}/capital/beneficial-owners", json=owner)
        assert first.status_code == 201
        assert first.json()["has_significant_control"] is True

        second = await client.put(
            f"{api_base}/capital/beneficial-owners", json={**owner, "full_name": "Eric Mugisha", "ownership_percentage": "30"},
        )
        assert second.status_code == 422
        assert second.json()["detail"]["code"] == "OWNERSHIP_CEILING_EXCEEDED"


class TestDividendAPI:

    @pytest.mark.asyncio
    async def test_declare_confirm_distribute_pay(self, client, api_base):
        await client.post(f"{api_base}/capital", json={"authorized_shares": 10000, "share_price": "1000"})
        await client.post(f"{api_base}/capital/allocations", json={
            "shares": 1000, "shareholder_ref": "SH-1", "shareholder_name": "Aline Uwase",
        })

        declared = await client.post(f"{api_base}/dividends", json={
            "profit_amount": "500000",
            "dividend_percentage": "20",
            "approved_by": "Board of Directors",
            "declaration_date": "2026-04-10",
        })
        assert declared.status_code == 201
        declaration_id = declared.json()["id"]
        assert declared.json()["dividend_pool"] == "100000.00"

        early = await client.post(f"{api_base}/dividends/{declaration_id}/distributions")
        assert early.status_code == 422
        assert early.json()["detail"]["code"] == "DECLARATION_NOT_CONFIRMED"

        confirmed = await client.post(f"{api_base}/dividends/{declaration_id}/confirm")
        assert confirmed.json()["status"] == "confirmed"

        distributed = await client.post(f"{api_base}/dividends/{declaration_id}/distributions")
        assert distributed.status_code == 200
        distribution = distributed.json()["distributions"][0]
        assert distribution["amount"] == "100000.00"

        paid = await client.post(
            f"{api_base}/dividends/distributions/{distribution['id']}/pay", json={"paid_on": "2026-04-30"},
        )
        assert paid.status_code == 200
        assert paid.json()["is_paid"] is True

        summary = await client.get(f"{api_base}/dividends/summary")
        assert summary.json()["by_status"]["paid"] == 1
