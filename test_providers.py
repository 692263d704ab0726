"""Tests for the HTTP rate providers, with requests mocked out."""

from unittest.mock import Mock, patch

import pytest
import requests

from numcalc.providers import (
    CryptoRateProvider,
    FiatRateProvider,
    RateProvider,
    refresh_rates,
)
from numcalc.rates import RateCache


def fake_response(payload):
    response = Mock()
    response.json.return_value = payload
    response.raise_for_status.return_value = None
    return response


class StaticProvider(RateProvider):
    def __init__(self, name, rates):
        self.name = name
        self.rates = rates

    def fetch(self):
        return self.rates


def test_fiat_provider_parses_rates():
    payload = {
        "result": "success",
        "rates": {"USD": 1, "EUR": 0.9, "jpy": 150, "BTC": 0.00001, "XAU": 0.0004, "BAD": -1},
    }
    with patch("numcalc.providers.requests.get", return_value=fake_response(payload)) as get:
        rates = FiatRateProvider(api_key=None).fetch()
    assert get.call_args[0][0] == "https://open.er-api.com/v6/latest/USD"
    assert rates["EUR"] == 0.9
    assert rates["JPY"] == 150.0
    assert "BTC" not in rates
    assert "XAU" not in rates
    assert "BAD" not in rates


def test_fiat_provider_uses_key_url():
    provider = FiatRateProvider(api_key="secret")
    assert provider.url() == "https://v6.exchangerate-api.com/v6/secret/latest/USD"
    payload = {"result": "success", "conversion_rates": {"GBP": 0.8}}
    with patch("numcalc.providers.requests.get", return_value=fake_response(payload)):
        assert provider.fetch() == {"GBP": 0.8}


def test_fiat_provider_api_error():
    payload = {"result": "error", "error-type": "invalid-key"}
    with patch("numcalc.providers.requests.get", return_value=fake_response(payload)):
        assert FiatRateProvider().fetch() is None


def test_fiat_provider_network_failure():
    with patch("numcalc.providers.requests.get", side_effect=requests.ConnectionError("down")):
        assert FiatRateProvider().fetch() is None


def test_fiat_provider_http_error():
    response = fake_response({})
    response.raise_for_status.side_effect = requests.HTTPError("503")
    with patch("numcalc.providers.requests.get", return_value=response):
        assert FiatRateProvider().fetch() is None


def test_crypto_provider_maps_ids_to_codes():
    payload = {"bitcoin": {"usd": 60000}, "ethereum": {"usd": 3000}, "unknown-coin": {"usd": 1}}
    with patch("numcalc.providers.requests.get", return_value=fake_response(payload)) as get:
        rates = CryptoRateProvider(api_key="demo").fetch()
    assert rates == {"BTC": 60000.0, "ETH": 3000.0}
    kwargs = get.call_args[1]
    assert kwargs["params"]["vs_currencies"] == "usd"
    assert "bitcoin" in kwargs["params"]["ids"].split(",")
    assert kwargs["headers"] == {"x-cg-demo-api-key": "demo"}


def test_crypto_provider_empty_payload():
    with patch("numcalc.providers.requests.get", return_value=fake_response({})):
        assert CryptoRateProvider().fetch() is None


def test_refresh_merges_over_existing_rates():
    cache = RateCache(with_defaults=False)
    cache.apply_raw_rates({"JPY": 150, "EUR": 0.8, "BTC": 50000})
    providers = [StaticProvider("fiat", {"EUR": 0.9}), StaticProvider("crypto", None)]

    assert refresh_rates(cache, providers)
    raw = cache.raw_rates()
    assert raw["EUR"] == 0.9
    assert raw["JPY"] == 150
    assert raw["BTC"] == 50000
    assert cache.get_rate("USD", "EUR") == pytest.approx(0.9)
    assert cache.get_rate("BTC", "USD") == pytest.approx(50000)


def test_refresh_all_failing_keeps_cache():
    cache = RateCache(with_defaults=False)
    cache.apply_raw_rates({"EUR": 0.8}, timestamp=1000.0)
    providers = [StaticProvider("fiat", None), StaticProvider("crypto", {})]

    assert not refresh_rates(cache, providers)
    assert cache.raw_rates() == {"EUR": 0.8}
    assert cache.last_update == 1000.0
