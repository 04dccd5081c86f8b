from decimal import Decimal

import pytest

from paygate.core.tokens import DecodeError, TokenCodec, covered_values, legacy_hash, stringify

FIELDS = {
    "orderId": "CRY-20240101-000000-AB12",
    "usdAmount": 50,
    "currency": "SOL",
    "telegramHandle": "@buyer",
    "timestamp": "2024-01-01T00:00:00Z",
    "email": "buyer@example.com",
}


def test_decode_reads_what_encode_wrote(codec):
    assert codec.decode(codec.encode(FIELDS)) == FIELDS


def test_decode_accepts_urlsafe_and_space_mangled_input(codec):
    encoded = TokenCodec.encode({"orderId": "a?b>c", "note": "~~~"})
    mangled = encoded.replace("+", " ").rstrip("=")
    assert codec.decode(mangled)["orderId"] == "a?b>c"
    urlsafe = encoded.replace("+", "-").replace("/", "_")
    assert codec.decode(urlsafe)["note"] == "~~~"


@pytest.mark.parametrize("payload", ["", "   ", "!!!not-base64!!!", "bm90IGpzb24=", "WzEsMiwzXQ=="])
def test_decode_rejects_malformed_payloads(codec, payload):
    with pytest.raises(DecodeError):
        codec.decode(payload)


def test_hmac_tag_verifies(codec):
    data, token = codec.issue(FIELDS)
    assert len(token) == 64
    assert codec.verify(codec.decode(data), token)


@pytest.mark.parametrize(
    "field, value",
    [
        ("orderId", "CRY-20240101-000000-ZZZZ"),
        ("usdAmount", 5),
        ("currency", "BTC"),
        ("telegramHandle", "@attacker"),
        ("timestamp", "2024-01-02T00:00:00Z"),
        ("paymentAddress", "attacker-wallet"),
    ],
)
def test_changing_a_covered_field_breaks_the_tag(codec, field, value):
    token = codec.compute(FIELDS)
    assert not codec.verify({**FIELDS, field: value}, token)


def test_email_is_not_covered_by_the_tag(codec):
    token = codec.compute(FIELDS)
    assert codec.verify({**FIELDS, "email": "other@example.com"}, token)


def test_tag_depends_on_the_secret(codec):
    other = TokenCodec("another-secret")
    assert not other.verify(FIELDS, codec.compute(FIELDS))


def test_verify_rejects_missing_tag(codec):
    assert not codec.verify(FIELDS, None)
    assert not codec.verify(FIELDS, "")


def test_amount_variants_share_a_tag(codec):
    assert codec.compute(FIELDS) == codec.compute({**FIELDS, "usdAmount": "50"})
    assert codec.compute(FIELDS) == codec.compute({**FIELDS, "usdAmount": 50.0})


def test_covered_values_follow_field_fallbacks():
    fields = {
        "orderId": "X",
        "finalTotal": 12.5,
        "paymentMethod": {"ticker": "ETH"},
        "telegram": "@t",
    }
    assert covered_values(fields) == ["X", "12.5", "ETH", "@t", ""]


@pytest.mark.parametrize(
    "value, expected",
    [(None, ""), (50, "50"), (50.0, "50"), (Decimal("12.50"), "12.5"), (True, "true"), ("SOL", "SOL")],
)
def test_stringify(value, expected):
    assert stringify(value) == expected


def test_legacy_hash_matches_known_values():
    assert legacy_hash("") == "0"
    assert legacy_hash("a") == "2p"
    assert legacy_hash("ab") == "2e9"


def test_legacy_codec_verifies_its_own_tags():
    codec = TokenCodec("legacy-secret", "legacy-hash")
    token = codec.compute(FIELDS)
    assert codec.verify(FIELDS, token)
    assert not codec.verify({**FIELDS, "usdAmount": 1}, token)


def test_address_is_covered_only_by_hmac_tags(codec):
    signed = {**FIELDS, "paymentMethod": {"address": "sol-shop-wallet"}}
    token = codec.compute(signed)
    assert not codec.verify({**signed, "paymentMethod": {"address": "attacker-wallet"}}, token)

    legacy = TokenCodec("legacy-secret", "legacy-hash")
    assert not legacy.covers_address
    assert legacy.compute(signed) == legacy.compute(FIELDS)


def test_codec_rejects_bad_configuration():
    with pytest.raises(ValueError):
        TokenCodec("")
    with pytest.raises(ValueError):
        TokenCodec("secret-value", "md5")
