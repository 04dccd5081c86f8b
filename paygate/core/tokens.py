"""Opaque order payload codec and integrity tags.

The storefront hands customers over to the gateway with two query parameters:
``data`` (base64 encoded JSON order fields) and ``token`` (an integrity tag over
a fixed subset of those fields). The payload is not confidential, anyone can
decode it. Only the tag protects it against tampering.

Two tag algorithms are supported:

``hmac-sha256``
    HMAC-SHA256 keyed with the shared secret over a canonical JSON array of the
    covered values followed by the destination address.

``legacy-hash``
    The 32-bit multiply-and-add accumulator used by the existing storefront.
    It is not a MAC, anyone who knows the secret layout can forge tags, so it is
    only meant for storefronts that have not been migrated yet. Its tags do
    not cover the destination address, so a payload address is ignored.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
from decimal import Decimal
from typing import Any, Literal, Mapping

TokenAlgorithm = Literal["hmac-sha256", "legacy-hash"]

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"
_URLSAFE = str.maketrans("-_", "+/")


class DecodeError(ValueError):
    """Raised when an encoded order payload cannot be decoded."""


def first_present(fields: Mapping[str, Any], *paths: str) -> Any:
    """Return the first non-empty value among dotted ``paths``."""
    for path in paths:
        value: Any = fields
        for part in path.split("."):
            if not isinstance(value, Mapping):
                value = None
                break
            value = value.get(part)
        if value is not None and value != "":
            return value
    return None


def amount_field(fields: Mapping[str, Any]) -> Any:
    return first_present(fields, "usdAmount", "finalTotal", "amount")


def currency_field(fields: Mapping[str, Any]) -> Any:
    return first_present(fields, "currency", "paymentMethod.ticker")


def telegram_field(fields: Mapping[str, Any]) -> Any:
    return first_present(fields, "telegramHandle", "telegram")


def address_field(fields: Mapping[str, Any]) -> Any:
    return first_present(fields, "paymentAddress", "paymentMethod.address")


def stringify(value: Any) -> str:
    """Render a field value the way the storefront joins it into a string."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float, Decimal)):
        number = Decimal(str(value))
        if not number.is_finite():
            return str(value)
        if number == number.to_integral_value():
            return str(int(number))
        return format(number.normalize(), "f")
    return str(value)


def covered_values(fields: Mapping[str, Any]) -> list[str]:
    """Values protected by the integrity tag, in tag order."""
    return [
        stringify(fields.get("orderId")),
        stringify(amount_field(fields)),
        stringify(currency_field(fields)),
        stringify(telegram_field(fields)),
        stringify(fields.get("timestamp")),
    ]


def legacy_hash(text: str) -> str:
    value = 0
    data = text.encode("utf-16-le")
    for index in range(0, len(data), 2):
        code_unit = data[index] | (data[index + 1] << 8)
        value = _to_int32(value * 31 + code_unit)
    return _to_base36(abs(value))


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits))


class TokenCodec:
    """Encodes order payloads and computes/verifies their integrity tags."""

    def __init__(self, secret: str, algorithm: TokenAlgorithm = "hmac-sha256") -> None:
        if not secret:
            raise ValueError("token secret must not be empty")
        if algorithm not in ("hmac-sha256", "legacy-hash"):
            raise ValueError(f"unsupported token algorithm: {algorithm}")
        self._secret = secret
        self.algorithm = algorithm

    @staticmethod
    def encode(fields: Mapping[str, Any]) -> str:
        raw = json.dumps(dict(fields), separators=(",", ":"), ensure_ascii=False, default=str)
        return base64.b64encode(raw.encode("utf-8")).decode("ascii")

    @staticmethod
    def decode(token: str) -> dict[str, Any]:
        if not token or not token.strip():
            raise DecodeError("empty payload")
        cleaned = token.strip().replace(" ", "+").translate(_URLSAFE)
        cleaned += "=" * (-len(cleaned) % 4)
        try:
            raw = base64.b64decode(cleaned, validate=True)
            fields = json.loads(raw.decode("utf-8"))
        except (binascii.Error, UnicodeDecodeError, ValueError) as exc:
            raise DecodeError(f"malformed payload: {exc}") from exc
        if not isinstance(fields, dict):
            raise DecodeError("payload is not an object")
        return fields

    @property
    def covers_address(self) -> bool:
        return self.algorithm != "legacy-hash"

    def compute(self, fields: Mapping[str, Any]) -> str:
        values = covered_values(fields)
        if not self.covers_address:
            return legacy_hash("|".join([*values, self._secret]))
        values.append(stringify(address_field(fields)))
        message = json.dumps(values, separators=(",", ":"), ensure_ascii=False)
        return hmac.new(self._secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).hexdigest()

    def verify(self, fields: Mapping[str, Any], tag: str | None) -> bool:
        if not tag:
            return False
        return hmac.compare_digest(self.compute(fields).encode("utf-8"), tag.strip().encode("utf-8"))

    def issue(self, fields: Mapping[str, Any]) -> tuple[str, str]:
        """Return the ``(data, token)`` pair a storefront puts into the checkout URL."""
        return self.encode(fields), self.compute(fields)


__all__ = [
    "DecodeError",
    "TokenAlgorithm",
    "TokenCodec",
    "address_field",
    "amount_field",
    "covered_values",
    "currency_field",
    "first_present",
    "legacy_hash",
    "stringify",
    "telegram_field",
]
