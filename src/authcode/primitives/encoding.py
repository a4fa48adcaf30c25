"""Wire encoding helpers shared by URL building, token requests and JWT decoding."""

from __future__ import annotations

import base64
import binascii
import re
from urllib.parse import quote


def percent_encode(value: str) -> str:
    """Percent-encode a value, keeping only letters, digits and ``-_.~``.

    Everything else, including spaces and ``/``, is escaped as uppercase
    ``%XX`` over its UTF-8 bytes.
    """
    return quote(value, safe="")


def form_encode(params: list[tuple[str, str]]) -> str:
    """Join ordered key/value pairs into ``k=v&k=v`` with percent-encoded values."""
    return "&".join(f"{key}={percent_encode(value)}" for key, value in params)


_BASE64URL_PATTERN = re.compile(r"[A-Za-z0-9_-]*")


def base64url_decode(value: str) -> bytes:
    """Decode unpadded base64url.

    Raises:
        ValueError: If the value is not valid base64url
    """
    if not _BASE64URL_PATTERN.fullmatch(value):
        raise ValueError("Invalid base64url value: unexpected characters")
    padded = value + "=" * (-len(value) % 4)
    try:
        return base64.urlsafe_b64decode(padded)
    except binascii.Error as e:
        raise ValueError(f"Invalid base64url value: {e}") from e


def base64url_encode(data: bytes) -> str:
    """Encode bytes as base64url without padding."""
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")
