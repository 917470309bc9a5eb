import json
from decimal import Decimal

import httpx

from canteen.services.messaging.airtel import AirtelWhatsAppService
from canteen.services.payment.cashfree import CashfreePaymentGateway


def recording_transport(responder):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        request.read()
        calls.append(request)
        return responder(request)

    return httpx.MockTransport(handler), calls


# =============================================================================
# CASHFREE
# =============================================================================

async def test_cashfree_creates_payment_link():
    transport, calls = recording_transport(lambda request: httpx.Response(200, json={
        "link_id": "canteen_link_7",
        "link_url": "https://payments.cashfree.com/links/abc",
        "link_status": "ACTIVE",
        "link_amount": 130,
        "link_currency": "INR",
    }))
    gateway = CashfreePaymentGateway(app_id="app", secret_key="secret", transport=transport)

    result = await gateway.create_payment_link("canteen_link_7", Decimal("130"), "Asha Rao", "9876543210")

    assert result.success
    assert result.link_url == "https://payments.cashfree.com/links/abc"
    assert result.amount == Decimal("130")

    request = calls[0]
    assert request.method == "POST"
    assert request.url.path.endswith("/links")
    assert request.headers["x-client-id"] == "app"
    assert request.headers["x-client-secret"] == "secret"
    assert "x-api-version" in request.headers
    body = json.loads(request.content)
    assert body["link_id"] == "canteen_link_7"
    assert body["link_amount"] == 130.0
    assert body["customer_details"] == {"customer_name": "Asha Rao", "customer_phone": "9876543210"}
    assert body["link_meta"]["return_url"].endswith("/api/order/cashfreecallback")
    await gateway.aclose()


async def test_cashfree_rejects_zero_amount_without_calling():
    transport, calls = recording_transport(lambda request: httpx.Response(200, json={}))
    gateway = CashfreePaymentGateway(app_id="app", secret_key="secret", transport=transport)

    result = await gateway.create_payment_link("canteen_link_1", Decimal("0"), "A", "9876543210")

    assert not result.success
    assert result.error_code == "invalid_amount"
    assert calls == []
    await gateway.aclose()


async def test_cashfree_error_body_becomes_result():
    transport, _ = recording_transport(lambda request: httpx.Response(
        409, json={"message": "link_id already exists", "code": "link_post_failed"}
    ))
    gateway = CashfreePaymentGateway(app_id="app", secret_key="secret", transport=transport)

    result = await gateway.create_payment_link("canteen_link_1", Decimal("10"), "A", "9876543210")

    assert not result.success
    assert result.error_message == "link_id already exists"
    assert result.error_code == "link_post_failed"
    await gateway.aclose()


async def test_cashfree_connection_error():
    def refuse(request):
        raise httpx.ConnectError("refused", request=request)

    gateway = CashfreePaymentGateway(app_id="app", secret_key="secret", transport=httpx.MockTransport(refuse))

    result = await gateway.get_payment_link("canteen_link_1")

    assert not result.success
    assert result.error_code == "connection_error"
    assert await gateway.health_check() is False
    await gateway.aclose()


async def test_cashfree_get_payment_link_reads_status():
    transport, calls = recording_transport(lambda request: httpx.Response(200, json={
        "link_id": "canteen_link_9",
        "link_status": "PAID",
        "link_amount": 60,
        "link_amount_paid": 60,
    }))
    gateway = CashfreePaymentGateway(app_id="app", secret_key="secret", transport=transport)

    result = await gateway.get_payment_link("canteen_link_9")

    assert result.link_status == "PAID"
    assert result.amount_paid == Decimal("60")
    assert calls[0].method == "GET"
    assert calls[0].url.path.endswith("/links/canteen_link_9")
    await gateway.aclose()


async def test_cashfree_create_order_sends_return_url():
    transport, calls = recording_transport(lambda request: httpx.Response(200, json={
        "order_id": "order_1",
        "cf_order_id": 555,
        "payment_session_id": "session_1",
        "order_status": "ACTIVE",
    }))
    gateway = CashfreePaymentGateway(app_id="app", secret_key="secret", transport=transport)

    result = await gateway.create_order(
        amount=Decimal("99.50"),
        customer_id="42",
        customer_phone="9876543210",
        customer_email="asha@example.com",
        return_url="https://app.example.com/return",
        note="lunch",
    )

    assert result.success
    assert result.cf_order_id == "555"
    assert result.payment_session_id == "session_1"
    body = json.loads(calls[0].content)
    assert body["order_amount"] == 99.5
    assert body["order_meta"] == {"return_url": "https://app.example.com/return?order_id=42"}
    assert body["order_note"] == "lunch"
    await gateway.aclose()


async def test_cashfree_health_check_accepts_not_found():
    transport, _ = recording_transport(lambda request: httpx.Response(404, json={}))
    gateway = CashfreePaymentGateway(app_id="app", secret_key="secret", transport=transport)

    assert await gateway.health_check() is True
    await gateway.aclose()


# =============================================================================
# AIRTEL
# =============================================================================

async def test_airtel_send_text():
    transport, calls = recording_transport(
        lambda request: httpx.Response(200, json={"messageRequestId": "req-1"})
    )
    service = AirtelWhatsAppService(username="user", password="pass", transport=transport)

    result = await service.send_text("919812345678", "Hello", from_number="918686078782")

    assert result.success
    assert result.message_id == "req-1"
    request = calls[0]
    assert request.url.path.endswith("/session/send/text")
    assert request.headers["authorization"].startswith("Basic ")
    body = json.loads(request.content)
    assert body["to"] == "919812345678"
    assert body["from"] == "918686078782"
    assert body["message"] == {"type": "text", "text": "Hello"}
    await service.aclose()


async def test_airtel_send_text_failure():
    transport, _ = recording_transport(lambda request: httpx.Response(503, text="unavailable"))
    service = AirtelWhatsAppService(username="user", password="pass", transport=transport)

    result = await service.send_text("919812345678", "Hello")

    assert not result.success
    assert result.error_message == "WhatsApp API returned 503"
    await service.aclose()


async def test_airtel_template_with_media():
    transport, calls = recording_transport(lambda request: httpx.Response(200, json={"id": "tmpl-1"}))
    service = AirtelWhatsAppService(username="user", password="pass", transport=transport)

    result = await service.send_template("919812345678", "T100", ["Asha", "NV1"], media_id="m-9")

    assert result.message_id == "tmpl-1"
    body = json.loads(calls[0].content)
    assert calls[0].url.path.endswith("/template/send")
    assert body["templateId"] == "T100"
    assert body["message"]["variables"] == ["Asha", "NV1"]
    assert body["mediaAttachment"] == {"type": "IMAGE", "id": "m-9"}
    await service.aclose()


async def test_airtel_upload_media(tmp_path):
    image = tmp_path / "qr.png"
    image.write_bytes(b"\x89PNG fake")
    transport, calls = recording_transport(lambda request: httpx.Response(200, json={"id": 321}))
    service = AirtelWhatsAppService(username="user", password="pass", transport=transport)

    result = await service.upload_media(str(image))

    assert result.success
    assert result.media_id == "321"
    assert b"qr.png" in calls[0].content
    await service.aclose()


async def test_airtel_upload_missing_file(tmp_path):
    transport, calls = recording_transport(lambda request: httpx.Response(200, json={}))
    service = AirtelWhatsAppService(username="user", password="pass", transport=transport)

    result = await service.upload_media(str(tmp_path / "missing.png"))

    assert not result.success
    assert calls == []
    await service.aclose()
