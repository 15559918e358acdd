from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from app.api.deps import get_current_admin, get_current_user
from app.main import app

USER = {"uid": "u1", "email": "amina@example.com", "id_token": "user-token"}
ADMIN = {"uid": "admin-1", "email": "staff@example.com", "id_token": "admin-token"}


@pytest.fixture
def client():
    app.dependency_overrides[get_current_user] = lambda: USER
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def admin_client():
    app.dependency_overrides[get_current_admin] = lambda: ADMIN
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_foreign_wallet_is_forbidden(client, db):
    db.get("wallets").find_one.return_value = {"_id": "w9", "userId": "someone-else"}

    response = client.get("/api/v1/me/wallets/w9")

    assert response.status_code == 403
    assert response.json()["code"] == "FORBIDDEN"


def test_send_money_without_wallet(client, db, functions):
    response = client.post("/api/v1/me/transactions/send", json={"recipient_email": "b@example.com", "amount": 5})

    assert response.status_code == 422
    assert response.json()["error"] == "Please select a wallet"
    functions.call.assert_not_called()


def test_send_money_passes_caller_token(client, db, functions):
    db.get("wallets").find_one.return_value = {"_id": "w1", "userId": "u1"}
    db.get("users").find_one.return_value = {"_id": "u2", "email": "b@example.com"}

    response = client.post("/api/v1/me/transactions/send", json={
        "wallet_id": "w1", "recipient_email": "b@example.com", "amount": "20", "description": "Taxi"
    })

    assert response.status_code == 200
    assert functions.call.call_args.kwargs["id_token"] == "user-token"


def test_transaction_history_filters_by_direction(client, db):
    db.get("transactions").responder = lambda query: (
        [{"_id": "t1", "createdAt": datetime(2024, 3, 2), "status": "completed"}]
        if "senderUserId" in query
        else [{"_id": "t2", "createdAt": datetime(2024, 3, 1), "status": "completed"}]
    )

    response = client.get("/api/v1/me/transactions", params={"direction": "received"})

    assert response.status_code == 200
    assert [t["id"] for t in response.json()["transactions"]] == ["t2"]


def test_transaction_of_other_users_is_forbidden(client, db):
    db.get("transactions").find_one.return_value = {"_id": "t1", "senderUserId": "x", "recipientUserId": "y"}

    assert client.get("/api/v1/me/transactions/t1").status_code == 403


def test_non_admin_cannot_open_dashboard(client, db):
    response = client.get("/api/v1/admin/dashboard")

    assert response.status_code == 403
    assert response.json()["error"] == "User is not an admin"


def test_admin_search(admin_client, db):
    db.get("users").documents = [{"_id": "u1", "email": "amina@example.com", "displayName": "Amina"}]

    response = admin_client.get("/api/v1/admin/users/search", params={"term": "amina@example.com"})

    assert response.status_code == 200
    assert response.json()["users"][0]["id"] == "u1"


def test_admin_reject_requires_reason(admin_client, functions):
    response = admin_client.post("/api/v1/admin/kyc/d1/reject", json={"rejection_reason": ""})

    assert response.status_code == 422
    functions.call.assert_not_called()


def test_admin_adjust_uses_admin_identity(admin_client, functions):
    response = admin_client.post("/api/v1/admin/wallets/w1/adjust", json={"amount": 12.5, "reason": "Goodwill"})

    assert response.status_code == 200
    functions.call.assert_awaited_once_with(
        "adjustWalletBalance",
        {"walletId": "w1", "amount": 12.5, "reason": "Goodwill", "adminId": "admin-1"},
        id_token="admin-token"
    )


def test_oversized_upload_rejected_before_storage(client, db, storage, monkeypatch):
    from app.core.config import settings
    monkeypatch.setattr(settings, "MAX_UPLOAD_SIZE_MB", 0)

    response = client.post(
        "/api/v1/me/profile/image",
        files={"image": ("avatar.png", b"\x89PNG", "image/png")},
    )

    assert response.status_code == 422
    assert response.json()["error"] == "File exceeds the 0 MB upload limit"
    storage.upload_bytes.assert_not_called()
