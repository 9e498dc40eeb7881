from datetime import date, timedelta


def create_account(client, headers, name="Checking", balance=1000.00):
    response = client.post(
        "/api/accounts", headers=headers, json={"name": name, "initial_balance": balance}
    )
    return response.json()["id"]


def get_balance(client, headers, account_id):
    return client.get(f"/api/accounts/{account_id}", headers=headers).json()["balance"]


def post_expense(client, headers, account_id, amount, **extra):
    data = {"type": "expense", "amount": amount, "title": "Groceries", "from_account_id": account_id}
    data.update(extra)
    return client.post("/api/transactions", headers=headers, json=data)


class TestTransactionCreation:
    """Tests for creating transactions"""

    def test_create_expense(self, client, auth_headers):
        account_id = create_account(client, auth_headers)

        response = post_expense(
            client, auth_headers, account_id, 120.00, description="Weekly shopping", category_id=3
        )

        assert response.status_code == 201
        transaction = response.json()
        assert transaction["type"] == "expense"
        assert transaction["amount"] == 120.00
        assert transaction["currency"] == "CHF"
        assert transaction["category_id"] == 3
        assert transaction["transaction_date"] == str(date.today())
        assert get_balance(client, auth_headers, account_id) == 880.00

    def test_create_income(self, client, auth_headers):
        account_id = create_account(client, auth_headers, balance=0)

        response = client.post(
            "/api/transactions",
            headers=auth_headers,
            json={"type": "income", "amount": 3200.00, "title": "Salary", "to_account_id": account_id},
        )

        assert response.status_code == 201
        assert get_balance(client, auth_headers, account_id) == 3200.00

    def test_expense_without_source_rejected(self, client, auth_headers):
        response = client.post(
            "/api/transactions",
            headers=auth_headers,
            json={"type": "expense", "amount": 10, "title": "Nowhere"},
        )

        assert response.status_code == 422

    def test_non_positive_amount_rejected(self, client, auth_headers):
        account_id = create_account(client, auth_headers)

        assert post_expense(client, auth_headers, account_id, 0).status_code == 422
        assert post_expense(client, auth_headers, account_id, -5).status_code == 422

    def test_cannot_use_other_users_account(self, client, user_a_headers, user_b_headers):
        account_id = create_account(client, user_a_headers)

        response = post_expense(client, user_b_headers, account_id, 10)

        assert response.status_code == 404
        assert get_balance(client, user_a_headers, account_id) == 1000.00


class TestTransactionRetrieval:
    """Tests for listing and filtering transactions"""

    def test_list_newest_first(self, client, auth_headers):
        account_id = create_account(client, auth_headers)
        today = date.today()
        for offset, title in ((2, "Oldest"), (0, "Newest"), (1, "Middle")):
            post_expense(
                client,
                auth_headers,
                account_id,
                5,
                title=title,
                transaction_date=str(today - timedelta(days=offset)),
            )

        data = client.get("/api/transactions", headers=auth_headers).json()

        assert data["total"] == 3
        assert [t["title"] for t in data["transactions"]] == ["Newest", "Middle", "Oldest"]

    def test_filter_by_type_and_date(self, client, auth_headers):
        account_id = create_account(client, auth_headers)
        post_expense(client, auth_headers, account_id, 10, transaction_date="2025-01-15")
        post_expense(client, auth_headers, account_id, 20, transaction_date="2025-02-15")
        client.post(
            "/api/transactions",
            headers=auth_headers,
            json={
                "type": "income",
                "amount": 30,
                "title": "Gift",
                "to_account_id": account_id,
                "transaction_date": "2025-02-16",
            },
        )

        response = client.get(
            "/api/transactions",
            headers=auth_headers,
            params={"type": "expense", "start_date": "2025-02-01", "end_date": "2025-02-28"},
        )

        data = response.json()
        assert data["total"] == 1
        assert data["transactions"][0]["amount"] == 20.00

    def test_search_title_and_description(self, client, auth_headers):
        account_id = create_account(client, auth_headers)
        post_expense(client, auth_headers, account_id, 10, title="Migros")
        post_expense(client, auth_headers, account_id, 10, title="Lunch", description="migros takeaway")
        post_expense(client, auth_headers, account_id, 10, title="Coop")

        data = client.get("/api/transactions", headers=auth_headers, params={"search": "MIGROS"}).json()

        assert data["total"] == 2

    def test_amount_range_and_pagination(self, client, auth_headers):
        account_id = create_account(client, auth_headers)
        for amount in (5, 15, 25, 35, 45):
            post_expense(client, auth_headers, account_id, amount)

        data = client.get(
            "/api/transactions",
            headers=auth_headers,
            params={"min_amount": 10, "max_amount": 40, "limit": 2, "offset": 0},
        ).json()

        assert data["total"] == 3
        assert len(data["transactions"]) == 2

    def test_get_other_users_transaction(self, client, user_a_headers, user_b_headers):
        account_id = create_account(client, user_a_headers)
        transaction = post_expense(client, user_a_headers, account_id, 10).json()

        response = client.get(f"/api/transactions/{transaction['id']}", headers=user_b_headers)

        assert response.status_code == 404


class TestTransactionUpdate:
    """Editing a transaction moves its balance effects"""

    def test_update_amount(self, client, auth_headers):
        account_id = create_account(client, auth_headers)
        transaction = post_expense(client, auth_headers, account_id, 120.00).json()

        response = client.patch(
            f"/api/transactions/{transaction['id']}", headers=auth_headers, json={"amount": 200.00}
        )

        assert response.status_code == 200
        assert response.json()["amount"] == 200.00
        assert get_balance(client, auth_headers, account_id) == 800.00

    def test_move_to_another_account(self, client, auth_headers):
        first = create_account(client, auth_headers, "First")
        second = create_account(client, auth_headers, "Second")
        transaction = post_expense(client, auth_headers, first, 50.00).json()

        client.patch(
            f"/api/transactions/{transaction['id']}",
            headers=auth_headers,
            json={"from_account_id": second},
        )

        assert get_balance(client, auth_headers, first) == 1000.00
        assert get_balance(client, auth_headers, second) == 950.00

    def test_title_only_change_keeps_balance(self, client, auth_headers):
        account_id = create_account(client, auth_headers)
        transaction = post_expense(client, auth_headers, account_id, 75.00).json()

        client.patch(
            f"/api/transactions/{transaction['id']}", headers=auth_headers, json={"title": "Renamed"}
        )

        assert get_balance(client, auth_headers, account_id) == 925.00

    def test_clearing_only_source_rejected(self, client, auth_headers):
        account_id = create_account(client, auth_headers)
        transaction = post_expense(client, auth_headers, account_id, 75.00).json()

        response = client.patch(
            f"/api/transactions/{transaction['id']}",
            headers=auth_headers,
            json={"from_account_id": None},
        )

        assert response.status_code == 400
        assert get_balance(client, auth_headers, account_id) == 925.00


class TestTransactionDeletion:
    def test_create_then_delete_restores_balance(self, client, auth_headers):
        """Expense 120 on 1000 leaves 880; deleting it restores 1000"""
        account_id = create_account(client, auth_headers)
        transaction = post_expense(client, auth_headers, account_id, 120.00).json()
        assert get_balance(client, auth_headers, account_id) == 880.00

        response = client.delete(f"/api/transactions/{transaction['id']}", headers=auth_headers)

        assert response.status_code == 204
        assert get_balance(client, auth_headers, account_id) == 1000.00
        assert client.get(f"/api/transactions/{transaction['id']}", headers=auth_headers).status_code == 404

    def test_delete_after_account_removed(self, client, auth_headers):
        """Reversal skips a holder that no longer exists"""
        doomed = create_account(client, auth_headers, "Doomed")
        survivor = create_account(client, auth_headers, "Survivor")
        transaction = client.post(
            "/api/transfers",
            headers=auth_headers,
            json={"from_account_id": doomed, "to_account_id": survivor, "amount": 100},
        ).json()
        client.delete(f"/api/accounts/{doomed}", headers=auth_headers)

        response = client.delete(f"/api/transactions/{transaction['id']}", headers=auth_headers)

        assert response.status_code == 204
        assert get_balance(client, auth_headers, survivor) == 1000.00


class TestTransfers:
    """Transfers between the user's own accounts"""

    def test_transfer_conserves_total(self, client, auth_headers):
        source = create_account(client, auth_headers, "Source", 1000.00)
        target = create_account(client, auth_headers, "Target", 200.00)

        response = client.post(
            "/api/transfers",
            headers=auth_headers,
            json={"from_account_id": source, "to_account_id": target, "amount": 300.00},
        )

        assert response.status_code == 201
        transaction = response.json()
        assert transaction["type"] == "transfer"
        assert transaction["title"] == "Transfer: Source → Target"
        assert get_balance(client, auth_headers, source) == 700.00
        assert get_balance(client, auth_headers, target) == 500.00

    def test_insufficient_funds(self, client, auth_headers):
        source = create_account(client, auth_headers, "Source", 100.00)
        target = create_account(client, auth_headers, "Target", 0)

        response = client.post(
            "/api/transfers",
            headers=auth_headers,
            json={"from_account_id": source, "to_account_id": target, "amount": 150.00},
        )

        assert response.status_code == 422
        body = response.json()
        assert body["balance"] == 100.00
        assert body["requested"] == 150.00
        assert body["shortfall"] == 50.00
        assert "Insufficient balance" in body["detail"]
        assert get_balance(client, auth_headers, source) == 100.00
        assert get_balance(client, auth_headers, target) == 0.00

    def test_same_account_rejected(self, client, auth_headers):
        source = create_account(client, auth_headers)

        response = client.post(
            "/api/transfers",
            headers=auth_headers,
            json={"from_account_id": source, "to_account_id": source, "amount": 10},
        )

        assert response.status_code == 422

    def test_transfer_to_other_users_account(self, client, user_a_headers, user_b_headers):
        source = create_account(client, user_a_headers)
        foreign = create_account(client, user_b_headers)

        response = client.post(
            "/api/transfers",
            headers=user_a_headers,
            json={"from_account_id": source, "to_account_id": foreign, "amount": 10},
        )

        assert response.status_code == 404
