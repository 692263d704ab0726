"""Tests for value rendering and registries."""

import pytest

from numcalc.crypto import lookup_crypto
from numcalc.currency import currency_from_code, lookup_currency
from numcalc.metal import lookup_metal
from numcalc.units import UnitType, convert, lookup_unit
from numcalc.value import Value, ValueKind, format_number

USD = lookup_currency("USD")
TRY = lookup_currency("TRY")


@pytest.mark.parametrize(
    "n, expected",
    [
        (10, "10"),
        (-3, "-3"),
        (1234.5, "1234.5"),
        (2.345678, "2.35"),
        (0.5, "0.5"),
        (1 / 3, "0.3333"),
        (0.001234, "0.001234"),
        (-0.0, "0"),
    ],
)
def test_format_number(n, expected):
    assert format_number(n) == expected


def test_format_number_precision():
    assert format_number(3.14159, 4) == "3.1416"
    assert format_number(3.14159, 0) == "3"


def test_currency_format():
    assert Value.of_currency(115, USD).format() == "$115.00"
    assert Value.of_currency(-5, USD).format() == "-$5.00"
    assert Value.of_currency(100, TRY).format() == "100.00₺"


def test_percentage_format():
    assert Value.of_percentage(0.15).format() == "15%"
    assert Value.of_percentage(0.125).format() == "12.5%"


def test_unit_and_metal_format():
    assert Value.of_unit(10, lookup_unit("km")).format() == "10 km"
    assert Value.of_metal(2, lookup_metal("gold")).format() == "2 XAU"


def test_crypto_format():
    assert Value.of_crypto(0.5, lookup_crypto("btc")).format() == "₿0.5"
    assert Value.of_crypto(3, lookup_crypto("bnb")).format() == "3 BNB"


def test_error_and_empty_format():
    assert Value.of_error("division by zero").format() == "Error: division by zero"
    assert Value.empty().format() == ""


def test_with_amount_keeps_type():
    v = Value.of_currency(5, USD).with_amount(7)
    assert v.kind == ValueKind.CURRENCY
    assert v.currency is USD
    assert v.number == 7
    assert Value.of_unit(5, lookup_unit("km")).negate().number == -5


def test_error_ignores_with_amount():
    err = Value.of_error("boom")
    assert err.with_amount(5) is err


def test_priority_order():
    kinds = [
        Value.of_number(1),
        Value.of_percentage(1),
        Value.of_unit(1, lookup_unit("m")),
        Value.of_metal(1, lookup_metal("gold")),
        Value.of_crypto(1, lookup_crypto("btc")),
        Value.of_currency(1, USD),
    ]
    priorities = [v.priority for v in kinds]
    assert priorities == sorted(priorities)
    assert len(set(priorities)) == len(priorities)


def test_to_dict():
    data = Value.of_currency(3, USD).to_dict()
    assert data == {"kind": "currency", "display": "$3.00", "value": 3.0, "code": "USD"}
    err = Value.of_error("nope").to_dict()
    assert err["error"] == "nope"
    assert "value" not in err


def test_currency_lookup():
    assert lookup_currency("usd") is USD
    assert lookup_currency("bucks") is USD
    assert lookup_currency("Turkish  Lira") is TRY
    assert lookup_currency("kr").code == "SEK"
    assert lookup_currency("¥").code == "JPY"
    assert lookup_currency("apples") is None


def test_currency_from_code():
    assert currency_from_code("eur").code == "EUR"
    synthetic = currency_from_code("XYZ")
    assert synthetic.code == "XYZ"
    assert currency_from_code("TOOLONG") is None


def test_crypto_lookup_leaves_unit_words_alone():
    assert lookup_crypto("TON").code == "TON"
    assert lookup_crypto("ton") is None
    assert lookup_unit("ton").code == "t"


def test_unit_lookup():
    assert lookup_unit("km").type == UnitType.LENGTH
    assert lookup_unit("kilometres").code == "km"
    assert lookup_unit("kb").code == "KB"
    assert lookup_unit("C").type == UnitType.TEMPERATURE
    assert lookup_unit("fl oz").code == "floz"
    assert lookup_unit("parsecs") is None


def test_unit_convert():
    assert convert(5, lookup_unit("km"), lookup_unit("m")) == pytest.approx(5000)
    assert convert(1, lookup_unit("mi"), lookup_unit("km")) == pytest.approx(1.609344)
    assert convert(100, lookup_unit("C"), lookup_unit("F")) == pytest.approx(212)
    assert convert(1, lookup_unit("GB"), lookup_unit("MB")) == pytest.approx(1024)
    assert convert(1, lookup_unit("ha"), lookup_unit("sqm")) == pytest.approx(10000)
    assert convert(1, lookup_unit("km"), lookup_unit("kg")) is None
