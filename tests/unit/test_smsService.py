"""
Unit tests for the Twilio SMS sender.

HTTP traffic is served by ``httpx.MockTransport`` so request shape, retry
and error mapping are exercised without network access.
"""

from urllib.parse import parse_qs

import httpx
import pytest

from workwave.integrations.sms import SmsDispatchError, TwilioSmsSender


def _sender(handler) -> TwilioSmsSender:
    return TwilioSmsSender(
        account_sid="AC123",
        auth_token="secret",
        from_number="+15005550006",
        base_url="https://sms.test/2010-04-01",
        transport=httpx.MockTransport(handler),
        backoff_seconds=0,
    )


@pytest.mark.asyncio
async def test_posts_form_to_messages_endpoint():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201, json={"sid": "SM42", "status": "queued"})

    sid = await _sender(handler).send("+919876543210", "Your WorkWave verification code is 123456")

    assert sid == "SM42"
    request = seen[0]
    assert request.method == "POST"
    assert str(request.url) == "https://sms.test/2010-04-01/Accounts/AC123/Messages.json"
    assert request.headers["authorization"].startswith("Basic ")
    form = parse_qs(request.content.decode())
    assert form == {
        "To": ["+919876543210"],
        "From": ["+15005550006"],
        "Body": ["Your WorkWave verification code is 123456"],
    }


@pytest.mark.asyncio
async def test_retries_server_errors():
    responses = iter([httpx.Response(503), httpx.Response(201, json={"sid": "SM7"})])
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return next(responses)

    assert await _sender(handler).send("+1", "hi") == "SM7"
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_client_error_is_not_retried():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(400, json={"message": "invalid To number"})

    with pytest.raises(SmsDispatchError) as exc_info:
        await _sender(handler).send("+1", "hi")

    assert exc_info.value.status == "400"
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_gives_up_after_repeated_connection_errors():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(SmsDispatchError, match="after 3 attempts"):
        await _sender(handler).send("+1", "hi")
    assert len(calls) == 3


@pytest.mark.asyncio
async def test_unconfigured_sender_fails_fast():
    sender = TwilioSmsSender(account_sid="", auth_token="", from_number="")
    with pytest.raises(SmsDispatchError, match="not configured"):
        await sender.send("+1", "hi")
