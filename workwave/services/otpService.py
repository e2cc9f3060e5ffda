"""
OTP Verification Service
==========================

Phone ownership check by one-time code:

  {no pending code} --generate--> {pending} --verify(correct)--> {no pending code}
  verify(incorrect) leaves the pending code in place so the user can retry.

Pending codes are kept in an injected ``KeyValueStore`` keyed by the
normalized phone number.  Generating again overwrites the previous code
once the new one has been sent.
Codes never expire unless ``OTP_TTL_SECONDS`` is set.
"""

from __future__ import annotations

import logging
import secrets
from typing import Callable, Optional

from workwave.core.kvstore import KeyValueStore
from workwave.core.phone import normalize_phone
from workwave.integrations.sms import SmsDispatchError, SmsSender

logger = logging.getLogger(__name__)

OTP_LENGTH: int = 6

_KEY_PREFIX = "otp:"


class OtpInvalidError(Exception):
    """Raised when no code is pending or the submitted code does not match."""

    def __init__(self, message: str = "Invalid OTP.") -> None:
        super().__init__(message)


def generate_code() -> str:
    """Uniform 6-digit decimal code; leading zeros allowed."""
    return f"{secrets.randbelow(10 ** OTP_LENGTH):0{OTP_LENGTH}d}"


class OtpVerifier:
    def __init__(
        self,
        store: KeyValueStore,
        sms_sender: SmsSender,
        default_country_code: Optional[str] = None,
        ttl_seconds: Optional[int] = None,
        code_factory: Callable[[], str] = generate_code,
    ) -> None:
        self._store = store
        self._sms = sms_sender
        self._country_code = default_country_code
        self._ttl = ttl_seconds or None
        self._code_factory = code_factory

    def normalize(self, phone: str) -> str:
        return normalize_phone(phone, self._country_code)

    async def generate(self, phone: str) -> str:
        """Store a fresh code for ``phone`` and send it by SMS.

        If the SMS fails, the code that was pending before this call is
        put back (or the entry removed when there was none) and the error
        propagates.

        Raises:
            SmsDispatchError: The SMS collaborator failed.
        """
        normalized = self.normalize(phone)
        key = f"{_KEY_PREFIX}{normalized}"
        previous = await self.pending_code(normalized)
        code = self._code_factory()
        await self._store.set(key, code, ttl_seconds=self._ttl)
        try:
            await self._sms.send(normalized, f"Your WorkWave verification code is {code}")
        except SmsDispatchError:
            if previous is None:
                await self._store.delete(key)
            else:
                await self._store.set(key, previous, ttl_seconds=self._ttl)
            logger.warning("OTP dispatch to %s failed; previous code restored", normalized)
            raise
        logger.info("OTP generated for %s", normalized)
        return code

    async def verify(self, phone: str, code: str) -> None:
        """Consume the pending code for ``phone`` if ``code`` matches.

        Raises:
            OtpInvalidError: No code is pending, or the code is wrong.
        """
        normalized = self.normalize(phone)
        key = f"{_KEY_PREFIX}{normalized}"
        submitted = (code or "").strip()
        if await self._store.compare_and_delete(key, submitted):
            logger.info("OTP verified for %s", normalized)
            return
        if await self._store.get(key) is None:
            logger.info("OTP verify for %s with no pending code", normalized)
        else:
            logger.info("OTP mismatch for %s", normalized)
        raise OtpInvalidError()

    async def pending_code(self, phone: str) -> Optional[str]:
        """The code currently pending for ``phone``, or None.

        Read-only; support tooling and tests use it to inspect state
        without consuming the code.
        """
        return await self._store.get(f"{_KEY_PREFIX}{self.normalize(phone)}")
