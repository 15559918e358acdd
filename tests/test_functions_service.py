import json

import httpx
import pytest

from app.core.exceptions import ExternalServiceError
from app.services.functions_service import FunctionsService

BASE_URL = "http://functions.test/sawapay/us-central1"


def _service(handler):
    return FunctionsService(base_url=BASE_URL, timeout=5, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_call_posts_data_envelope_and_returns_result():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("Authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"result": {"transactionId": "tx123"}})

    service = _service(handler)
    result = await service.call(
        "createTransaction",
        {"recipientUserId": "u2", "amount": 50.0, "description": "Lunch"},
        id_token="token-abc"
    )
    await service.close()

    assert result == {"transactionId": "tx123"}
    assert seen["url"] == f"{BASE_URL}/createTransaction"
    assert seen["auth"] == "Bearer token-abc"
    assert seen["body"] == {"data": {"recipientUserId": "u2", "amount": 50.0, "description": "Lunch"}}


@pytest.mark.asyncio
async def test_call_without_token_sends_no_authorization():
    def handler(request):
        assert "Authorization" not in request.headers
        return httpx.Response(200, json={"result": None})

    assert await _service(handler).call("markAllNotificationsAsRead", {"userId": "u1"}) is None


@pytest.mark.asyncio
async def test_function_error_body_is_external_service_error():
    def handler(request):
        return httpx.Response(400, json={
            "error": {"status": "FAILED_PRECONDITION", "message": "Insufficient funds", "details": {"balance": 10}}
        })

    with pytest.raises(ExternalServiceError) as exc:
        await _service(handler).call("withdrawFundsFromWallet", {"walletId": "w1", "amount": 500})

    assert exc.value.message == "Insufficient funds"
    assert exc.value.status == "FAILED_PRECONDITION"
    assert exc.value.status_code == 502
    assert exc.value.details == {
        "function": "withdrawFundsFromWallet",
        "status": "FAILED_PRECONDITION",
        "details": {"balance": 10},
    }


@pytest.mark.asyncio
async def test_non_json_server_error():
    def handler(request):
        return httpx.Response(500, text="upstream exploded")

    with pytest.raises(ExternalServiceError) as exc:
        await _service(handler).call("approveKycDocument", {"documentId": "d1", "notes": ""})

    assert "status 500" in exc.value.message


@pytest.mark.asyncio
async def test_transport_failure():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ExternalServiceError) as exc:
        await _service(handler).call("addFundsToWallet", {"walletId": "w1", "amount": 5})

    assert exc.value.details == {"function": "addFundsToWallet"}
