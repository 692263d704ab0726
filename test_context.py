"""Tests for session state."""

import pytest

from numcalc.context import Context, LineResult
from numcalc.currency import lookup_currency
from numcalc.rates import RateCache
from numcalc.units import lookup_unit
from numcalc.value import Value, ValueKind


@pytest.fixture
def ctx():
    return Context(RateCache(with_defaults=False))


def test_variables_exact_then_case_insensitive(ctx):
    ctx.set_variable("Price", Value.of_number(5))
    assert ctx.get_variable("Price").number == 5
    assert ctx.get_variable("price").number == 5
    ctx.set_variable("price", Value.of_number(7))
    assert ctx.get_variable("price").number == 7
    assert ctx.get_variable("Price").number == 5
    assert ctx.variable_names() == ["Price", "price"]


def test_reserved_names_refused(ctx):
    assert not ctx.set_variable("total", Value.of_number(1))
    assert not ctx.set_variable("_", Value.of_number(1))
    assert not ctx.set_variable("ANS", Value.of_number(1))
    assert not ctx.set_variable("x", Value.of_error("bad"))
    assert ctx.variables() == {}


def test_delete_variable(ctx):
    ctx.set_variable("x", Value.of_number(1))
    assert ctx.has_variable("x")
    assert ctx.delete_variable("x")
    assert not ctx.delete_variable("x")


def test_previous_ignores_empty_and_errors(ctx):
    assert ctx.get_variable("_") is None
    ctx.set_previous(Value.of_number(3))
    ctx.set_previous(Value.of_error("nope"))
    ctx.set_previous(Value.empty())
    assert ctx.previous.number == 3
    assert ctx.get_variable("ans").number == 3


def test_mark_last_consumed_skips_invalid_lines(ctx):
    ctx.add_line_result(LineResult("1", Value.of_number(1)))
    ctx.add_line_result(LineResult("oops", Value.of_error("bad")))
    ctx.add_line_result(LineResult("", Value.empty()))
    assert ctx.mark_last_consumed()
    lines = ctx.lines()
    assert lines[0].consumed
    assert not lines[1].consumed


def test_total_skips_consumed_and_errors(ctx):
    ctx.add_line_result(LineResult("1", Value.of_number(10), consumed=True))
    ctx.add_line_result(LineResult("2", Value.of_number(5)))
    ctx.add_line_result(LineResult("3", Value.of_error("bad")))
    ctx.add_line_result(LineResult("4", Value.of_percentage(0.5)))
    ctx.add_line_result(LineResult("5", Value.of_currency(2, lookup_currency("USD"))))
    assert ctx.total().number == pytest.approx(7.5)
    assert ctx.get_variable("total").number == pytest.approx(7.5)


def test_grouped_totals():
    rates = RateCache(with_defaults=False)
    rates.set_rate("EUR", "USD", 2.0)
    ctx = Context(rates)
    for value in (
        Value.of_currency(10, lookup_currency("USD")),
        Value.of_currency(5, lookup_currency("EUR")),
        Value.of_unit(3, lookup_unit("km")),
        Value.of_unit(500, lookup_unit("m")),
        Value.of_number(7),
    ):
        ctx.add_line_result(LineResult(value.format(), value))

    money, distance, plain = ctx.grouped_totals()
    assert money.currency.code == "EUR"
    assert money.number == pytest.approx(10)
    assert distance.unit.code == "m"
    assert distance.number == pytest.approx(3500)
    assert plain.kind == ValueKind.NUMBER
    assert plain.number == 7


def test_grouped_totals_keeps_unconvertible_codes(ctx):
    ctx.add_line_result(LineResult("a", Value.of_currency(4, lookup_currency("GBP"))))
    ctx.add_line_result(LineResult("b", Value.of_currency(6, lookup_currency("GBP"))))
    totals = ctx.grouped_totals()
    assert len(totals) == 1
    assert totals[0].currency.code == "GBP"
    assert totals[0].number == 10


def test_precision_validation(ctx):
    ctx.set_precision(0)
    ctx.set_precision(15)
    assert ctx.precision == 15
    with pytest.raises(ValueError):
        ctx.set_precision(16)
    with pytest.raises(ValueError):
        ctx.set_precision(-1)


def test_clear_keeps_rates(ctx):
    ctx.rates.set_rate("EUR", "USD", 1.1)
    ctx.set_variable("x", Value.of_number(1))
    ctx.set_previous(Value.of_number(1))
    ctx.add_line_result(LineResult("x", Value.of_number(1)))
    ctx.clear()
    assert ctx.variables() == {}
    assert ctx.previous.is_empty()
    assert ctx.lines() == []
    assert ctx.rates.get_rate("EUR", "USD") == 1.1


def test_clone_is_independent_but_shares_rates(ctx):
    ctx.set_variable("x", Value.of_number(1))
    ctx.add_line_result(LineResult("x", Value.of_number(1)))
    other = ctx.clone()
    other.set_variable("x", Value.of_number(2))
    other.mark_last_consumed()
    assert ctx.get_variable("x").number == 1
    assert not ctx.lines()[0].consumed
    assert other.rates is ctx.rates


def test_snapshot(ctx):
    ctx.set_variable("x", Value.of_number(1))
    ctx.add_line_result(LineResult("1", Value.of_number(4)))
    snap = ctx.snapshot()
    ctx.set_variable("y", Value.of_number(2))
    assert list(snap.variables) == ["x"]
    assert len(snap.lines) == 1
    assert snap.total.number == 4
    assert snap.precision == 2
