import random
from decimal import Decimal

import httpx
import pytest

from conftest import make_record
from paygate.domain.orders import OrderStatus
from paygate.domain.payments import PaymentEvent, ProbeStatus
from paygate.infrastructure.integrations import (
    BinancePriceOracle,
    ConfiguredAddressBook,
    DiscordWebhookNotifier,
    IpApiGeoLocator,
    RandomConfirmationProbe,
    build_embed,
    generate_mock_address,
)

pytestmark = pytest.mark.anyio

PRICE_URL = "https://prices.test/api/v3/ticker/price"
FALLBACK = {"SOL": Decimal("100"), "BTC": Decimal("45000")}


def oracle(handler):
    return BinancePriceOracle(PRICE_URL, FALLBACK, transport=httpx.MockTransport(handler))


async def test_price_comes_from_the_ticker():
    seen = []

    def handler(request):
        seen.append(request.url.params["symbol"])
        return httpx.Response(200, json={"symbol": "SOLUSDT", "price": "142.50000000"})

    assert await oracle(handler).get_price("sol") == Decimal("142.5")
    assert seen == ["SOLUSDT"]


async def test_price_falls_back_when_the_ticker_fails():
    def handler(request):
        return httpx.Response(503)

    assert await oracle(handler).get_price("BTC") == Decimal("45000")


async def test_price_without_fallback_is_unknown():
    def handler(request):
        return httpx.Response(200, json={"code": -1121, "msg": "Invalid symbol."})

    with pytest.raises(KeyError):
        await oracle(handler).get_price("ETH")


async def test_stablecoin_is_pegged():
    def handler(request):
        raise AssertionError("no request expected")

    assert await oracle(handler).get_price("USDT") == Decimal("1")


def event(kind="status", status=OrderStatus.CONFIRMED, tx_reference="tx-1"):
    record = make_record()
    return PaymentEvent(kind=kind, record=record, status=status, tx_reference=tx_reference)


async def test_webhook_posts_an_embed():
    bodies = []

    def handler(request):
        bodies.append(request.read())
        return httpx.Response(204)

    notifier = DiscordWebhookNotifier("https://discord.test/hook", transport=httpx.MockTransport(handler))
    assert await notifier.send(event())
    assert b"Payment Confirmed" in bodies[0]


async def test_webhook_errors_are_reported_not_raised():
    def handler(request):
        return httpx.Response(500)

    notifier = DiscordWebhookNotifier("https://discord.test/hook", transport=httpx.MockTransport(handler))
    assert not await notifier.send(event())


async def test_webhook_disabled_without_url():
    notifier = DiscordWebhookNotifier(None)
    assert not notifier.enabled
    assert not await notifier.send(event())


async def test_embed_fields():
    embed = build_embed(event(kind="created", status=OrderStatus.PENDING, tx_reference=None))
    names = [field["name"] for field in embed["fields"]]

    assert embed["title"] == "💳 Payment Processing Started"
    assert "📋 Order ID" in names
    assert not any("Transaction" in name for name in names)
    assert embed["fields"][1]["value"] == "$50 USD"


async def test_geolocation_reads_country_name():
    def handler(request):
        assert request.url.path == "/203.0.113.7/json/"
        return httpx.Response(200, json={"country_name": "Netherlands"})

    locator = IpApiGeoLocator("https://geo.test/{ip}/json/", transport=httpx.MockTransport(handler))
    assert await locator.country_for("203.0.113.7") == "Netherlands"


async def test_mock_probe_outcomes():
    always = RandomConfirmationProbe(confirm_rate=1.0, pending_rate=0.0, delay=0, rng=random.Random(1))
    result = await always.probe("addr", Decimal("0.5"), "SOL")
    assert result.status is ProbeStatus.CONFIRMED
    assert len(result.tx_reference) == 64
    assert result.amount == Decimal("0.5")

    never = RandomConfirmationProbe(confirm_rate=0.0, pending_rate=0.0, delay=0)
    assert (await never.probe("addr", Decimal("0.5"), "SOL")).status is ProbeStatus.NOT_FOUND

    waiting = RandomConfirmationProbe(confirm_rate=0.0, pending_rate=1.0, delay=0)
    assert (await waiting.probe("addr", Decimal("0.5"), "SOL")).status is ProbeStatus.PENDING


async def test_mock_probe_rejects_bad_rates():
    with pytest.raises(ValueError):
        RandomConfirmationProbe(confirm_rate=0.8, pending_rate=0.5)


async def test_address_book():
    book = ConfiguredAddressBook({"sol": "SolConfigured"}, generate_missing=True)
    assert book.address_for("SOL") == "SolConfigured"
    assert book.address_for("ETH").startswith("0xCryonerEth")

    strict = ConfiguredAddressBook({}, generate_missing=False)
    with pytest.raises(KeyError):
        strict.address_for("SOL")


async def test_mock_addresses():
    address = generate_mock_address("btc")
    assert address.startswith("1CryonerBtc")
    assert len(address) == len("1CryonerBtc") + 13
    with pytest.raises(KeyError):
        generate_mock_address("DOGE")
