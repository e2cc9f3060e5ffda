"""Phone number normalization shared by the worker store and OTP verifier."""

from __future__ import annotations

import re

from workwave.core.config import settings

# E.164 allows at most 15 digits after the country-code plus sign
_PHONE_RE = re.compile(r"\+?\d{6,15}")


def normalize_phone(phone: str, default_country_code: str | None = None) -> str:
    """Return ``phone`` in country-coded form.

    Whitespace is stripped.  A number that already starts with ``+`` is
    returned as-is; anything else is prefixed with the default country code.
    """
    cleaned = "".join(phone.split())
    if not cleaned:
        return cleaned
    if cleaned.startswith("+"):
        return cleaned
    code = default_country_code if default_country_code is not None else settings.default_country_code
    return f"{code}{cleaned}"


def is_valid_phone(phone: str) -> bool:
    """True when a normalized number is an optional ``+`` and 6-15 digits."""
    return _PHONE_RE.fullmatch(phone) is not None
