"""Tests for the exchange-rate cache."""

import datetime
import json
import threading

import pytest

from numcalc.crypto import lookup_crypto
from numcalc.currency import lookup_currency
from numcalc.rates import RateCache, RateLookup, fallback_rates
from numcalc.value import Value, ValueKind


def empty_cache(**kwargs):
    return RateCache(with_defaults=False, **kwargs)


def test_identity_rate():
    cache = empty_cache()
    assert cache.get_rate("USD", "USD") == 1.0
    assert cache.get_rate("abc", "ABC") == 1.0


def test_set_rate_stores_inverse():
    cache = empty_cache()
    cache.set_rate("eur", "usd", 1.25)
    assert cache.get_rate("EUR", "USD") == 1.25
    assert cache.get_rate("USD", "EUR") == pytest.approx(0.8)


def test_zero_rate_has_no_inverse():
    cache = empty_cache()
    cache.set_rate("AAA", "BBB", 0)
    assert cache.get_rate("AAA", "BBB") == 0
    assert cache.get_rate("BBB", "AAA") is None


def test_invalid_rate_rejected():
    cache = empty_cache()
    with pytest.raises(ValueError):
        cache.set_rate("AAA", "BBB", float("nan"))
    with pytest.raises(ValueError):
        cache.set_rate("AAA", "BBB", -1)


def test_multi_hop_lookup():
    cache = empty_cache()
    cache.set_rate("AAA", "BBB", 2.0)
    cache.set_rate("BBB", "CCC", 3.0)
    assert cache.get_rate("AAA", "CCC") == pytest.approx(6.0)
    assert cache.get_rate("CCC", "AAA") == pytest.approx(1 / 6)


def test_fewest_hops_win():
    cache = empty_cache()
    cache.set_rate("AAA", "BBB", 2.0)
    cache.set_rate("BBB", "CCC", 2.0)
    cache.set_rate("CCC", "DDD", 2.0)
    cache.set_rate("AAA", "EEE", 10.0)
    cache.set_rate("EEE", "DDD", 10.0)
    assert cache.get_rate("AAA", "DDD") == pytest.approx(100.0)


def test_unreachable_is_not_found():
    cache = empty_cache()
    cache.set_rate("AAA", "BBB", 2.0)
    cache.set_rate("CCC", "DDD", 2.0)
    assert cache.get_rate("AAA", "DDD") is None
    assert cache.get_rate("ZZZ", "AAA") is None
    assert cache.convert(5, "AAA", "DDD") is None
    assert not cache.has_rate("AAA", "DDD")


def test_fallback_seed():
    cache = RateCache()
    assert cache.get_rate("USD", "EUR") == pytest.approx(0.92)
    assert cache.get_rate("BTC", "USD") == pytest.approx(95000)
    assert cache.get_rate("XAU", "USD") == pytest.approx(2650)
    assert cache.get_rate("EUR", "GBP") == pytest.approx(0.79 / 0.92)
    assert cache.is_expired()
    assert set(cache.raw_rates()) == set(fallback_rates())


def test_apply_raw_rates_anchors_on_usd():
    cache = empty_cache()
    cache.apply_raw_rates({"EUR": 0.9, "btc": 50000, "XAU": 2000, "USD": 1, "BAD": -3})
    assert cache.get_rate("USD", "EUR") == pytest.approx(0.9)
    assert cache.get_rate("BTC", "USD") == pytest.approx(50000)
    assert cache.get_rate("XAU", "USD") == pytest.approx(2000)
    assert cache.get_rate("BTC", "EUR") == pytest.approx(45000)
    assert "BAD" not in cache.raw_rates()
    assert not cache.is_expired()


def test_apply_raw_rates_replaces_table():
    cache = RateCache()
    assert cache.get_rate("USD", "JPY") is not None
    cache.set_rate("AAA", "USD", 3)
    cache.apply_raw_rates({"EUR": 0.9})
    assert cache.get_rate("USD", "JPY") is None
    assert cache.get_rate("AAA", "USD") is None
    assert cache.raw_rates() == {"EUR": 0.9}


def test_ttl():
    cache = empty_cache(ttl=60)
    assert cache.is_expired()
    cache.apply_raw_rates({"EUR": 0.9})
    assert cache.is_valid()
    cache.apply_raw_rates({"EUR": 0.9}, timestamp=0)
    assert cache.is_expired()


def test_convert_value():
    cache = empty_cache()
    cache.set_rate("USD", "EUR", 0.5)
    usd = lookup_currency("USD")
    converted = cache.convert_value(Value.of_currency(10, usd), "EUR")
    assert converted.kind == ValueKind.CURRENCY
    assert converted.currency.code == "EUR"
    assert converted.number == pytest.approx(5)

    cache.set_rate("BTC", "USD", 100)
    crypto = cache.convert_value(Value.of_currency(50, usd), "BTC")
    assert crypto.kind == ValueKind.CRYPTO
    assert crypto.number == pytest.approx(0.5)

    assert cache.convert_value(Value.of_number(5), "EUR") is None
    assert cache.convert_value(Value.of_crypto(1, lookup_crypto("eth")), "EUR") is None


def test_rate_cache_is_a_rate_lookup():
    assert isinstance(empty_cache(), RateLookup)


def test_persistence_round_trip(tmp_path):
    path = tmp_path / "cache" / "rates.json"
    cache = empty_cache()
    cache.apply_raw_rates({"EUR": 0.9, "BTC": 50000})
    cache.save_to_file(path)

    data = json.loads(path.read_text())
    assert data["baseCurrency"] == "USD"
    assert data["rates"] == {"EUR": 0.9, "BTC": 50000}

    restored = empty_cache()
    assert restored.is_cache_file_valid(path)
    assert restored.load_from_file(path)
    assert restored.get_rate("EUR", "USD") == pytest.approx(1 / 0.9)
    assert restored.get_rate("BTC", "EUR") == pytest.approx(45000)
    assert restored.last_update == pytest.approx(cache.last_update, abs=1)


def test_stale_file_is_ignored(tmp_path):
    path = tmp_path / "rates.json"
    path.write_text(
        json.dumps({"timestamp": "2000-01-01T00:00:00+00:00", "rates": {"EUR": 0.5}, "base_currency": "USD"})
    )
    cache = empty_cache()
    assert not cache.is_cache_file_valid(path)
    assert not cache.load_from_file(path)
    assert cache.get_rate("USD", "EUR") is None


def test_missing_or_corrupt_file(tmp_path):
    cache = empty_cache()
    assert not cache.load_from_file(tmp_path / "nope.json")
    bad = tmp_path / "bad.json"
    bad.write_text("{not json")
    assert not cache.load_from_file(bad)


def test_wrongly_shaped_file_keeps_current_rates(tmp_path):
    cache = RateCache()
    before = cache.raw_rates()
    path = tmp_path / "rates.json"
    now = datetime.datetime.now(datetime.timezone.utc).isoformat()
    for rates in ([1], "EUR", None):
        path.write_text(json.dumps({"timestamp": now, "rates": rates, "baseCurrency": "USD"}))
        assert not cache.load_from_file(path)
    assert cache.raw_rates() == before
    assert cache.get_rate("USD", "EUR") == pytest.approx(0.92)


def test_ingest_skips_non_string_codes():
    cache = empty_cache()
    cache.apply_raw_rates({1: 2.0, "EUR": 0.9})
    assert cache.raw_rates() == {"EUR": 0.9}
    assert cache.get_rate("EUR", "USD") == pytest.approx(1 / 0.9)


def test_stats():
    cache = empty_cache()
    cache.set_rate("EUR", "USD", 1.1)
    stats = cache.stats()
    assert stats["pairs"] == 2
    assert stats["codes"] == 2
    assert stats["last_update"] is None
    assert stats["expired"] is True


def test_concurrent_reads_and_writes():
    cache = RateCache()
    errors = []

    def reader():
        for _ in range(200):
            if cache.get_rate("EUR", "JPY") is None:
                errors.append("missing")

    def writer():
        for i in range(50):
            cache.set_rate("EUR", "USD", 1 + i / 100)

    threads = [threading.Thread(target=reader) for _ in range(4)] + [threading.Thread(target=writer)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert errors == []
