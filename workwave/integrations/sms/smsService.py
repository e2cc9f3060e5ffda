"""
Twilio SMS Service
====================

Async wrapper around the Twilio Programmable Messaging REST API, used to
deliver one-time passwords.

All HTTP calls use httpx with retry logic (3 attempts, exponential backoff).
Credentials and the sender number come from TWILIO_ACCOUNT_SID,
TWILIO_AUTH_TOKEN and TWILIO_FROM_NUMBER.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

import httpx

from workwave.core.config import settings

logger = logging.getLogger(__name__)

_MAX_RETRIES = 3
_INITIAL_BACKOFF_SECONDS = 0.5  # doubles each retry: 0.5, 1.0, 2.0
_REQUEST_TIMEOUT_SECONDS = 10.0


# ---------------------------------------------------------------------------
# Custom exception
# ---------------------------------------------------------------------------


class SmsDispatchError(Exception):
    """Raised when an SMS could not be handed to the provider."""

    def __init__(self, message: str, status: str | None = None, raw: Any = None) -> None:
        super().__init__(message)
        self.status = status
        self.raw = raw


class SmsSender(Protocol):
    async def send(self, to: str, body: str) -> str: ...


# ---------------------------------------------------------------------------
# Twilio REST client
# ---------------------------------------------------------------------------


class TwilioSmsSender:
    """Sends messages through ``POST /Accounts/{sid}/Messages.json``.

    ``transport`` lets tests plug in an ``httpx.MockTransport``.
    """

    def __init__(
        self,
        account_sid: str | None = None,
        auth_token: str | None = None,
        from_number: str | None = None,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        backoff_seconds: float = _INITIAL_BACKOFF_SECONDS,
    ) -> None:
        self.account_sid = account_sid if account_sid is not None else settings.twilio_account_sid
        self.auth_token = auth_token if auth_token is not None else settings.twilio_auth_token
        self.from_number = from_number if from_number is not None else settings.twilio_from_number
        self.base_url = (base_url or settings.twilio_base_url).rstrip("/")
        self._transport = transport
        self._backoff_seconds = backoff_seconds

    def _ensure_configured(self) -> None:
        if not (self.account_sid and self.auth_token and self.from_number):
            raise SmsDispatchError(
                "Twilio is not configured. Set TWILIO_ACCOUNT_SID, "
                "TWILIO_AUTH_TOKEN and TWILIO_FROM_NUMBER."
            )

    async def send(self, to: str, body: str) -> str:
        """Send ``body`` to ``to`` and return the provider message SID.

        Retries on 5xx, timeouts and connection errors.  4xx responses are
        raised immediately.

        Raises:
            SmsDispatchError: After all retries are exhausted or on a
                non-retryable error.
        """
        self._ensure_configured()
        url = f"{self.base_url}/Accounts/{self.account_sid}/Messages.json"
        data = {"To": to, "From": self.from_number, "Body": body}

        last_exception: Exception | None = None
        backoff = self._backoff_seconds

        async with httpx.AsyncClient(
            auth=(self.account_sid, self.auth_token),
            timeout=_REQUEST_TIMEOUT_SECONDS,
            transport=self._transport,
        ) as client:
            for attempt in range(1, _MAX_RETRIES + 1):
                try:
                    response = await client.post(url, data=data)
                except (httpx.TimeoutException, httpx.ConnectError) as exc:
                    last_exception = exc
                    logger.warning(
                        "SMS dispatch transport error on attempt %d/%d: %s",
                        attempt,
                        _MAX_RETRIES,
                        exc,
                    )
                else:
                    if 400 <= response.status_code < 500:
                        raise SmsDispatchError(
                            f"SMS provider rejected message: HTTP {response.status_code}",
                            status=str(response.status_code),
                            raw=response.text,
                        )
                    if response.status_code < 400:
                        sid = response.json().get("sid", "")
                        logger.info("SMS sent to %s sid=%s", to, sid)
                        return sid
                    last_exception = SmsDispatchError(
                        f"SMS provider server error: HTTP {response.status_code}",
                        status=str(response.status_code),
                        raw=response.text,
                    )
                    logger.warning(
                        "SMS provider server error on attempt %d/%d: HTTP %d",
                        attempt,
                        _MAX_RETRIES,
                        response.status_code,
                    )

                if attempt < _MAX_RETRIES:
                    await asyncio.sleep(backoff)
                    backoff *= 2

        raise SmsDispatchError(
            f"SMS dispatch failed after {_MAX_RETRIES} attempts",
            raw=str(last_exception),
        )
