from urllib.parse import parse_qs

import httpx
import pytest

from services.sms_provider import INVALID_PHONE, NOT_CONFIGURED, TwilioSmsClient, normalize_phone


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("5551234567", "+15551234567"),
        ("(555) 123-4567", "+15551234567"),
        ("15551234567", "+15551234567"),
        ("+1 555 123 4567", "+15551234567"),
        ("447911123456", "+447911123456"),
        (5551234567, "+15551234567"),
        ("555123", None),
        ("", None),
    ],
)
def test_normalize_phone(raw, expected):
    assert normalize_phone(raw) == expected


def make_client(handler, **overrides):
    params = {
        "account_sid": "AC123",
        "auth_token": "token",
        "from_number": "+15550000000",
        "transport": httpx.MockTransport(handler),
    }
    params.update(overrides)
    return TwilioSmsClient(**params)


async def test_send_posts_to_messages_endpoint():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201, json={"sid": "SM42", "status": "queued"})

    client = make_client(handler)
    outcome = await client.send(to="5551234567", body="Hello")

    assert outcome.success is True
    assert outcome.message_id == "SM42"
    assert len(seen) == 1
    request = seen[0]
    assert request.method == "POST"
    assert request.url.path == "/2010-04-01/Accounts/AC123/Messages.json"
    assert request.headers["Authorization"].startswith("Basic ")
    form = parse_qs(request.content.decode())
    assert form["To"] == ["+15551234567"]
    assert form["From"] == ["+15550000000"]
    assert form["Body"] == ["Hello"]


async def test_send_reports_twilio_error_message():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"code": 21211, "message": "The 'To' number is not valid."})

    outcome = await make_client(handler).send(to="5551234567", body="Hello")

    assert outcome.success is False
    assert outcome.error == "The 'To' number is not valid."
    assert outcome.message_id is None


async def test_send_converts_transport_errors_to_outcome():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    outcome = await make_client(handler).send(to="5551234567", body="Hello")

    assert outcome.success is False
    assert "timed out" in outcome.error


async def test_invalid_phone_makes_no_call():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(201, json={"sid": "SM1"})

    outcome = await make_client(handler).send(to="555123", body="Hello")

    assert outcome.success is False
    assert outcome.error == INVALID_PHONE
    assert calls == []


async def test_not_configured_short_circuits():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(201, json={"sid": "SM1"})

    client = make_client(handler, auth_token=None)
    outcome = await client.send(to="5551234567", body="Hello")

    assert client.is_configured is False
    assert outcome.success is False
    assert outcome.error == NOT_CONFIGURED
    assert calls == []
