"""
Tests for the HTTP API.

Status mapping, identity handling and camelCase bodies. Business rules
are covered in depth by the service-level tests.
"""

import pytest


def create_debt(client, headers, balance="500.00"):
    response = client.post(
        "/debts",
        json={"name": "Card", "type": "CREDIT_CARD", "balance": balance, "minPayment": "20.00"},
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()


class TestIdentity:

    def test_missing_user_header_is_401(self, client):
        response = client.get("/accounts")
        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}

    def test_me_creates_user_once(self, client, alice_headers):
        first = client.get("/me", headers=alice_headers).json()
        second = client.get("/me", headers=alice_headers).json()

        assert first["id"] == second["id"]
        assert first["email"] == "alice@example.com"
        assert first["currency"] == "GBP"
        assert first["timezone"] == "Europe/London"

    @pytest.mark.parametrize("country, currency", [
        ("US", "USD"),
        ("de", "EUR"),
        ("CA", "CAD"),
        ("AU", "AUD"),
        ("JP", "GBP"),
    ])
    def test_currency_follows_country(self, client, country, currency):
        headers = {"X-User-Id": f"user_{country}", "X-User-Country": country}
        assert client.get("/me", headers=headers).json()["currency"] == currency


class TestHealth:

    def test_health_reports_checks(self, client):
        response = client.get("/health")
        body = response.json()

        assert response.status_code == 200
        assert body["status"] == "healthy"
        assert body["service"] == "syphon-app"
        assert body["checks"] == {"database": "healthy", "telemetry": "healthy"}

    def test_head_health(self, client):
        assert client.head("/health").status_code == 200

    def test_unreachable_database_is_503(self, client, monkeypatch):
        services = client.app.state.services
        monkeypatch.setattr(services.database, "ping", lambda: False)

        response = client.get("/health")
        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"


class TestSetup:

    def test_setup_seeds_once(self, client, alice_headers):
        first = client.post("/setup", headers=alice_headers).json()
        assert first == {"categoriesCreated": 10, "sourcesCreated": 3, "skipped": False}

        second = client.post("/setup", headers=alice_headers).json()
        assert second["skipped"] is True
        assert second["categoriesCreated"] == 0

        names = {c["name"] for c in client.get("/categories", headers=alice_headers).json()}
        assert {"Salary", "Food & Dining", "Entertainment"} <= names
        sources = client.get("/income-sources", headers=alice_headers).json()
        assert [s["name"] for s in sources] == ["Investment Returns", "Primary Employer", "Side Hustle"]


class TestErrors:

    def test_schema_error_is_400(self, client, alice_headers):
        response = client.post(
            "/transactions",
            json={"type": "EXPENSE", "amount": "-1", "occurredAt": "2024-01-01"},
            headers=alice_headers,
        )
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Validation failed"
        assert body["details"]

    def test_bad_enum_is_400(self, client, alice_headers):
        response = client.get("/transactions?type=REFUND", headers=alice_headers)
        assert response.status_code == 400

    def test_duplicate_account_is_409(self, client, alice_headers):
        body = {"name": "Monzo", "type": "CURRENT"}
        assert client.post("/accounts", json=body, headers=alice_headers).status_code == 201
        assert client.post("/accounts", json=body, headers=alice_headers).status_code == 409

    def test_duplicate_category_is_409(self, client, alice_headers):
        body = {"name": "Food", "kind": "EXPENSE"}
        assert client.post("/categories", json=body, headers=alice_headers).status_code == 201
        assert client.post("/categories", json=body, headers=alice_headers).status_code == 409
        # Same name, other kind is fine
        body["kind"] = "INCOME"
        assert client.post("/categories", json=body, headers=alice_headers).status_code == 201

    def test_other_users_debt_is_404(self, client, alice_headers, bob_headers):
        debt = create_debt(client, alice_headers)
        assert client.get(f"/debts/{debt['id']}", headers=bob_headers).status_code == 404
        assert client.delete(f"/debts/{debt['id']}", headers=bob_headers).status_code == 404

    def test_foreign_category_on_transaction_is_400(self, client, alice_headers, bob_headers):
        category = client.post(
            "/categories", json={"name": "Food", "kind": "EXPENSE"}, headers=alice_headers
        ).json()
        response = client.post(
            "/transactions",
            json={
                "type": "EXPENSE",
                "amount": "5.00",
                "occurredAt": "2024-01-01T00:00:00",
                "categoryId": category["id"],
            },
            headers=bob_headers,
        )
        assert response.status_code == 400


class TestTransactions:

    def test_create_list_delete(self, client, alice_headers):
        created = client.post(
            "/transactions",
            json={"type": "INCOME", "amount": "1500.00", "occurredAt": "2024-01-01T09:00:00Z"},
            headers=alice_headers,
        )
        assert created.status_code == 201
        tx = created.json()
        assert tx["currency"] == "GBP"
        assert tx["occurredAt"].startswith("2024-01-01T09:00:00")

        listed = client.get("/transactions?type=INCOME", headers=alice_headers).json()
        assert [t["id"] for t in listed] == [tx["id"]]
        assert client.get("/transactions?type=EXPENSE", headers=alice_headers).json() == []

        assert client.delete(f"/transactions?id={tx['id']}", headers=alice_headers).json() == {
            "success": True
        }
        assert client.get("/transactions", headers=alice_headers).json() == []

    def test_delete_requires_id(self, client, alice_headers):
        assert client.delete("/transactions", headers=alice_headers).status_code == 400


class TestDebtsAndPayments:

    def test_payment_lifecycle_moves_balance(self, client, alice_headers):
        debt = create_debt(client, alice_headers)

        payment = client.post(
            "/debts/payments",
            json={"debtId": debt["id"], "amount": "100.00", "occurredAt": "2024-01-01T00:00:00"},
            headers=alice_headers,
        )
        assert payment.status_code == 201
        payment_id = payment.json()["id"]

        fetched = client.get(f"/debts/{debt['id']}", headers=alice_headers).json()
        assert float(fetched["balance"]) == 400.0
        assert len(fetched["payments"]) == 1

        client.put(f"/debts/payments/{payment_id}", json={"amount": "150.00"}, headers=alice_headers)
        assert float(client.get(f"/debts/{debt['id']}", headers=alice_headers).json()["balance"]) == 350.0

        listed = client.get("/debts/payments", headers=alice_headers).json()
        assert listed[0]["debt"]["name"] == "Card"
        assert "payments" not in listed[0]["debt"]

        client.delete(f"/debts/payments/{payment_id}", headers=alice_headers)
        assert float(client.get(f"/debts/{debt['id']}", headers=alice_headers).json()["balance"]) == 500.0

    def test_closed_debts_drop_out_of_list(self, client, alice_headers):
        debt = create_debt(client, alice_headers)
        response = client.put(f"/debts/{debt['id']}", json={"isClosed": True}, headers=alice_headers)

        assert response.json()["isClosed"] is True
        assert client.get("/debts", headers=alice_headers).json() == []

    def test_delete_debt_removes_payments(self, client, alice_headers):
        debt = create_debt(client, alice_headers)
        client.post(
            "/debts/payments",
            json={"debtId": debt["id"], "amount": "10.00", "occurredAt": "2024-01-01T00:00:00"},
            headers=alice_headers,
        )
        assert client.delete(f"/debts/{debt['id']}", headers=alice_headers).status_code == 200
        assert client.get("/debts/payments", headers=alice_headers).json() == []


class TestGoals:

    def test_contributions_and_soft_delete(self, client, alice_headers):
        goal = client.post(
            "/goals", json={"name": "Holiday", "targetAmount": "1000.00"}, headers=alice_headers
        ).json()
        assert float(goal["currentAmount"]) == 0.0

        contribution = client.post(
            "/goals/contributions",
            json={"goalId": goal["id"], "amount": "50.00", "occurredAt": "2024-01-01T00:00:00"},
            headers=alice_headers,
        ).json()
        [listed] = client.get("/goals", headers=alice_headers).json()
        assert float(listed["currentAmount"]) == 50.0

        client.delete(f"/goals/contributions/{contribution['id']}", headers=alice_headers)
        [listed] = client.get("/goals", headers=alice_headers).json()
        assert float(listed["currentAmount"]) == 0.0

        assert client.delete(f"/goals/{goal['id']}", headers=alice_headers).status_code == 200
        assert client.get("/goals", headers=alice_headers).json() == []


class TestBulkDelete:

    def test_wipes_only_the_callers_rows(self, client, alice_headers, bob_headers):
        create_debt(client, alice_headers)
        create_debt(client, alice_headers)
        create_debt(client, bob_headers)

        response = client.delete("/debts/bulk-delete", headers=alice_headers)
        assert response.json() == {
            "success": True,
            "deleted": 2,
            "message": "Successfully deleted 2 debt records",
        }
        assert client.get("/debts", headers=alice_headers).json() == []
        assert len(client.get("/debts", headers=bob_headers).json()) == 1

    def test_deleting_accounts_keeps_transactions(self, client, alice_headers):
        account = client.post(
            "/accounts", json={"name": "Monzo", "type": "CURRENT"}, headers=alice_headers
        ).json()
        client.post(
            "/transactions",
            json={
                "type": "EXPENSE",
                "amount": "5.00",
                "occurredAt": "2024-01-01T00:00:00",
                "accountId": account["id"],
            },
            headers=alice_headers,
        )

        assert client.delete("/accounts/bulk-delete", headers=alice_headers).json()["deleted"] == 1
        [tx] = client.get("/transactions", headers=alice_headers).json()
        assert tx["accountId"] is None


class TestImport:

    @pytest.mark.parametrize("path", ["/expenses/import", "/expense/import"])
    def test_both_paths_import(self, client, alice_headers, path):
        response = client.post(
            path,
            json={
                "csvData": "Date,Amount,Category\n2024-01-01,12.50,Food\nnot-a-date,5,Food",
                "dateColumn": "Date",
                "amountColumn": "Amount",
                "categoryColumn": "Category",
            },
            headers=alice_headers,
        )
        assert response.status_code == 200
        body = response.json()
        assert body["imported"] == 1
        assert body["skippedReasons"] == ["Row 3: Invalid date format: not-a-date"]
        assert body["categoriesCreated"] == 1

    def test_missing_column_is_400(self, client, alice_headers):
        response = client.post(
            "/expenses/import",
            json={
                "csvData": "Date,Amount\n2024-01-01,12.50",
                "dateColumn": "Date",
                "amountColumn": "Amount",
                "categoryColumn": "Category",
            },
            headers=alice_headers,
        )
        assert response.status_code == 400
        assert response.json()["details"]["missing"]["category"] is True
