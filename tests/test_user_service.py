from datetime import datetime
from types import SimpleNamespace

import pytest

from app.core.exceptions import AuthorizationError, ResourceNotFoundError, ValidationError
from app.services import user_service


def _tx(tx_id, day, **fields):
    return {"_id": tx_id, "createdAt": datetime(2024, 3, day), "amount": 10.0, "status": "completed", **fields}


# ============================================================
# PROFILE / KYC
# ============================================================

@pytest.mark.asyncio
async def test_update_profile_stamps_updated_at(db):
    await user_service.update_user_profile("u1", {"firstName": "Amina"})

    users = db.get("users")
    query, update = users.update_one.call_args.args
    assert query == {"_id": "u1"}
    assert update["$set"]["firstName"] == "Amina"
    assert isinstance(update["$set"]["updatedAt"], datetime)


@pytest.mark.asyncio
async def test_update_profile_of_missing_user(db):
    db.get("users").update_one.return_value = SimpleNamespace(matched_count=0, modified_count=0)

    with pytest.raises(ResourceNotFoundError):
        await user_service.update_user_profile("ghost", {"firstName": "X"})


@pytest.mark.asyncio
async def test_profile_image_path_and_url(db, storage):
    url = await user_service.upload_profile_image("u1", b"png-bytes", "me photo.png", "image/png")

    path = storage.upload_bytes.call_args.args[0]
    assert path.startswith("profile_images/u1/")
    assert path.endswith("_me_photo.png")
    assert url == "http://files.test/object?token=abc"
    update = db.get("users").update_one.call_args.args[1]
    assert update["$set"]["profileImageUrl"] == url


@pytest.mark.asyncio
async def test_kyc_upload_creates_pending_record(db, storage):
    result = await user_service.upload_kyc_document(
        "u1", "passport", b"scan", "passport.jpg", "image/jpeg",
        {"documentNumber": "A123", "issuingCountry": "KE", "note": "front page"}
    )

    path = storage.upload_bytes.call_args.args[0]
    assert path.startswith("kyc_documents/u1/passport_")

    record = db.get("kyc_documents").insert_one.call_args.args[0]
    assert record["_id"] == record["documentId"] == result["document_id"]
    assert record["status"] == "pending"
    assert record["type"] == "passport"
    assert record["documentNumber"] == "A123"
    assert record["issuingCountry"] == "KE"
    assert record["note"] == "front page"
    assert result["document_url"] == record["documentUrl"]


@pytest.mark.asyncio
async def test_kyc_upload_rejects_unknown_type(db, storage):
    with pytest.raises(ValidationError):
        await user_service.upload_kyc_document("u1", "library_card", b"scan")
    storage.upload_bytes.assert_not_called()


@pytest.mark.asyncio
async def test_kyc_status_defaults_to_pending(db):
    db.get("users").find_one.return_value = {"_id": "u1", "email": "a@example.com"}

    assert await user_service.get_kyc_status("u1") == {"kyc_status": "pending", "kyc_verified_at": None}


# ============================================================
# WALLET FUNCTIONS
# ============================================================

@pytest.mark.asyncio
async def test_add_funds_calls_function(functions):
    await user_service.add_funds_to_wallet("w1", "25.50", id_token="tok")

    functions.call.assert_awaited_once_with("addFundsToWallet", {"walletId": "w1", "amount": 25.5}, id_token="tok")


@pytest.mark.asyncio
async def test_withdraw_calls_function(functions):
    bank = {"accountName": "Amina", "accountNumber": "0123456", "bankName": "KCB"}
    await user_service.withdraw_funds_from_wallet("w1", 40, bank, id_token="tok")

    functions.call.assert_awaited_once_with(
        "withdrawFundsFromWallet", {"walletId": "w1", "amount": 40.0, "bankDetails": bank}, id_token="tok"
    )


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", [0, -5, "abc", None])
async def test_invalid_amounts_never_reach_functions(functions, amount):
    with pytest.raises(ValidationError):
        await user_service.add_funds_to_wallet("w1", amount)
    functions.call.assert_not_called()


# ============================================================
# TRANSACTIONS
# ============================================================

@pytest.mark.asyncio
async def test_transactions_merge_both_directions(db):
    transactions = db.get("transactions")
    transactions.responder = lambda query: (
        [_tx("t1", 3), _tx("t3", 1)] if "senderUserId" in query else [_tx("t2", 2)]
    )

    result = await user_service.get_user_transactions("u1")

    assert [t["id"] for t in result] == ["t1", "t2", "t3"]
    assert [t["direction"] for t in result] == ["sent", "received", "sent"]
    assert transactions.find_calls == [{"senderUserId": "u1"}, {"recipientUserId": "u1"}]


@pytest.mark.asyncio
async def test_transaction_limit_applies_after_merge(db):
    db.get("transactions").responder = lambda query: (
        [_tx("s1", 9), _tx("s2", 5)] if "senderUserId" in query else [_tx("r1", 8), _tx("r2", 7)]
    )

    result = await user_service.get_user_transactions("u1", status="completed", limit=2)

    assert [t["id"] for t in result] == ["s1", "r1"]
    assert db.get("transactions").find_calls[0] == {"senderUserId": "u1", "status": "completed"}


def test_self_transfer_listed_once():
    tx = {"id": "t1", "createdAt": datetime(2024, 3, 1)}
    merged = user_service.merge_transactions([tx], [dict(tx)])
    assert len(merged) == 1
    assert merged[0]["direction"] == "sent"


def test_filter_transactions():
    now = datetime(2024, 3, 15, 12, 0)
    transactions = [
        {"id": "a1", "direction": "sent", "status": "completed", "description": "Rent March", "createdAt": datetime(2024, 3, 15, 9)},
        {"id": "b2", "direction": "received", "status": "pending", "description": "Refund", "createdAt": datetime(2024, 3, 10)},
        {"id": "c3", "direction": "sent", "status": "failed", "description": None, "createdAt": datetime(2024, 1, 2)},
    ]

    def ids(**filters):
        return [t["id"] for t in user_service.filter_transactions(transactions, now=now, **filters)]

    assert ids() == ["a1", "b2", "c3"]
    assert ids(direction="sent") == ["a1", "c3"]
    assert ids(status="pending") == ["b2"]
    assert ids(date_range="today") == ["a1"]
    assert ids(date_range="month") == ["a1", "b2"]
    assert ids(search="rent") == ["a1"]
    assert ids(search="C3") == ["c3"]


def test_filter_transactions_rejects_unknown_range():
    with pytest.raises(ValidationError):
        user_service.filter_transactions([], date_range="decade")


@pytest.mark.asyncio
async def test_send_money_resolves_recipient_by_email(db, functions):
    db.get("wallets").find_one.return_value = {"_id": "w1", "userId": "u1", "balance": 100}
    db.get("users").find_one.return_value = {"_id": "u2", "email": "baraka@example.com"}

    await user_service.send_money("u1", "w1", " baraka@example.com ", "12.5", "Lunch", id_token="tok")

    assert db.get("users").find_one.call_args.args[0] == {"email": "baraka@example.com"}
    functions.call.assert_awaited_once_with(
        "createTransaction",
        {"recipientUserId": "u2", "amount": 12.5, "description": "Lunch"},
        id_token="tok"
    )


@pytest.mark.asyncio
@pytest.mark.parametrize("wallet_id,email,amount,message", [
    (None, "b@example.com", 10, "Please select a wallet"),
    ("w1", "", 10, "Please enter recipient email"),
    ("w1", "b@example.com", "0", "Please enter a valid amount"),
])
async def test_send_money_validation(db, functions, wallet_id, email, amount, message):
    with pytest.raises(ValidationError) as exc:
        await user_service.send_money("u1", wallet_id, email, amount)

    assert exc.value.message == message
    functions.call.assert_not_called()


@pytest.mark.asyncio
async def test_send_money_from_someone_elses_wallet(db, functions):
    db.get("wallets").find_one.return_value = {"_id": "w9", "userId": "u9"}

    with pytest.raises(AuthorizationError):
        await user_service.send_money("u1", "w9", "b@example.com", 10)
    functions.call.assert_not_called()


@pytest.mark.asyncio
async def test_send_money_to_unknown_recipient(db, functions):
    db.get("wallets").find_one.return_value = {"_id": "w1", "userId": "u1"}

    with pytest.raises(ResourceNotFoundError):
        await user_service.send_money("u1", "w1", "nobody@example.com", 10)
    functions.call.assert_not_called()


@pytest.mark.asyncio
async def test_request_money(functions):
    await user_service.request_money("u1", "u2", 30, "Tickets", id_token="tok")

    functions.call.assert_awaited_once_with(
        "requestMoney", {"requesteeId": "u2", "amount": 30.0, "description": "Tickets"}, id_token="tok"
    )


# ============================================================
# NOTIFICATIONS
# ============================================================

@pytest.mark.asyncio
async def test_unread_notifications_query(db):
    await user_service.get_user_notifications("u1", unread_only=True)

    assert db.get("notifications").find_calls == [{"userId": "u1", "isRead": False}]


@pytest.mark.asyncio
async def test_mark_notification_as_read_is_scoped_to_owner(db):
    await user_service.mark_notification_as_read("n1", "u1")

    query, update = db.get("notifications").update_one.call_args.args
    assert query == {"_id": "n1", "userId": "u1"}
    assert update["$set"]["isRead"] is True


@pytest.mark.asyncio
async def test_mark_all_notifications_calls_function(functions):
    await user_service.mark_all_notifications_as_read("u1", id_token="tok")

    functions.call.assert_awaited_once_with("markAllNotificationsAsRead", {"userId": "u1"}, id_token="tok")


@pytest.mark.asyncio
async def test_two_factor_preference(db):
    await user_service.enroll_two_factor("u1", "sms")
    update = db.get("users").update_one.call_args.args[1]
    assert update["$set"]["twoFactor"]["method"] == "sms"
    assert update["$set"]["twoFactor"]["enabled"] is True

    with pytest.raises(ValidationError):
        await user_service.enroll_two_factor("u1", "carrier-pigeon")
