import hashlib
import hmac
import json
import uuid
from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import httpx
import pytest

from guesthouse.errors import UpstreamUnavailable
from guesthouse.services import payment_client as payment_module
from guesthouse.services.email_client import EmailClient, render_confirmation
from guesthouse.services.payment_client import PaymentClient, verify_signature


@pytest.fixture(autouse=True)
def no_backoff(monkeypatch):
    async def _no_sleep(seconds):
        return None

    monkeypatch.setattr(payment_module.asyncio, "sleep", _no_sleep)


def _booking(**overrides):
    values = dict(
        id=uuid.uuid4(),
        room_type="deluxe-double",
        check_in=date(2027, 5, 1),
        check_out=date(2027, 5, 4),
        nights=3,
        guests=2,
        breakfast=True,
        total_price=Decimal("165.00"),
        currency="EUR",
        customer_name="Ana Petrova",
        customer_email="ana@example.com",
    )
    values.update(overrides)
    return SimpleNamespace(**values)


async def test_mock_mode_without_api_key():
    client = PaymentClient(api_key="")
    booking_id = uuid.uuid4()

    session = await client.initiate_payment(Decimal("165"), booking_id)

    assert session.reference == f"mock_{booking_id.hex}"
    assert str(booking_id) in session.url
    assert await client.get_payment_status(session.reference) == "pending"


async def test_initiate_payment_posts_amount_in_cents():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"id": "cs_123", "url": "https://pay.example/cs_123"})

    client = PaymentClient(api_key="sk_test", base_url="https://pay.example", transport=httpx.MockTransport(handler))
    booking_id = uuid.uuid4()
    session = await client.initiate_payment(Decimal("165.00"), booking_id, customer_email="ana@example.com")

    assert session.reference == "cs_123"
    assert session.url == "https://pay.example/cs_123"
    assert seen["auth"] == "Bearer sk_test"
    assert seen["body"]["amount"] == 16500
    assert seen["body"]["client_reference_id"] == str(booking_id)
    await client.close()


@pytest.mark.parametrize("provider_state,expected", [
    ("paid", "paid"),
    ("complete", "paid"),
    ("open", "pending"),
    ("unpaid", "pending"),
])
async def test_payment_status_mapping(provider_state, expected):
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"status": provider_state}))
    client = PaymentClient(api_key="sk_test", base_url="https://pay.example", transport=transport)
    assert await client.get_payment_status("cs_123") == expected


async def test_retries_server_errors_then_succeeds():
    calls = []

    def handler(request):
        calls.append(request)
        if len(calls) < 3:
            return httpx.Response(503)
        return httpx.Response(200, json={"status": "paid"})

    client = PaymentClient(api_key="sk_test", base_url="https://pay.example", transport=httpx.MockTransport(handler))
    assert await client.get_payment_status("cs_123") == "paid"
    assert len(calls) == 3


async def test_gives_up_after_repeated_network_errors():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = PaymentClient(api_key="sk_test", base_url="https://pay.example", transport=httpx.MockTransport(handler))
    with pytest.raises(UpstreamUnavailable):
        await client.get_payment_status("cs_123")


async def test_client_errors_are_not_retried():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(401, json={"error": "bad key"})

    client = PaymentClient(api_key="sk_bad", base_url="https://pay.example", transport=httpx.MockTransport(handler))
    with pytest.raises(UpstreamUnavailable):
        await client.get_payment_status("cs_123")
    assert len(calls) == 1


def test_verify_signature():
    body = b'{"bookingId": "x", "status": "paid"}'
    good = hmac.new(b"whsec", body, hashlib.sha256).hexdigest()

    assert verify_signature(body, good, secret="whsec")
    assert not verify_signature(body, "0" * 64, secret="whsec")
    assert not verify_signature(body, None, secret="whsec")
    assert verify_signature(body, None, secret="")


def test_confirmation_email_content():
    subject, body = render_confirmation(_booking())
    assert "confirmed" in subject
    assert "Ana Petrova" in body
    assert "Nights: 3" in body
    assert "165.00 EUR" in body
    assert "Breakfast: included" in body


async def test_email_delivery():
    sent = []

    def handler(request):
        sent.append(json.loads(request.content))
        return httpx.Response(202, json={"id": "msg_1"})

    mailer = EmailClient(api_key="key", base_url="https://mail.example", transport=httpx.MockTransport(handler))
    assert await mailer.send_booking_confirmation(_booking()) is True
    assert sent[0]["to"] == ["ana@example.com"]


async def test_email_failure_returns_false():
    transport = httpx.MockTransport(lambda request: httpx.Response(500))
    mailer = EmailClient(api_key="key", base_url="https://mail.example", transport=transport)
    assert await mailer.send_booking_confirmation(_booking()) is False


async def test_email_log_only_mode():
    assert await EmailClient(api_key="").send_booking_confirmation(_booking()) is True
