"""
Money parsing and arithmetic.

Amounts are whole FCFA; user input is rounded half-up.
"""

import pytest

from factures.services.money import Money, InvalidAmount, parse_money, format_fcfa


class TestParseMoney:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            (1500, 1500),
            ("1500", 1500),
            ("1500,5", 1501),
            ("1500.4", 1500),
            (1499.6, 1500),
            ("12 500", 12500),
            ("0", 0),
            (0.5, 1),
        ],
    )
    def test_accepted_input(self, raw, expected):
        assert parse_money(raw) == Money(expected)

    @pytest.mark.parametrize("raw", ["abc", "", "   ", None, True, "nan", "inf", [], {}])
    def test_rejects_non_numbers(self, raw):
        with pytest.raises(InvalidAmount):
            parse_money(raw)

    def test_rejects_negative(self):
        with pytest.raises(InvalidAmount) as exc:
            parse_money("-100", field="price")
        assert exc.value.details == {"field": "price"}

    def test_rejects_above_maximum(self):
        with pytest.raises(InvalidAmount):
            parse_money(1_000_000_000)

    def test_positive_rejects_zero_after_rounding(self):
        with pytest.raises(InvalidAmount):
            parse_money("0,4", positive=True)
        assert parse_money("0,5", positive=True) == Money(1)


class TestMoney:
    def test_only_ints(self):
        with pytest.raises(TypeError):
            Money(1.5)
        with pytest.raises(TypeError):
            Money(True)

    def test_arithmetic_may_go_negative_until_clamped(self):
        result = Money(1000) + Money(500) - Money(3000)
        assert result == Money(-1500)
        assert result.is_negative
        assert result.clamp() == Money(0)

    def test_multiply_requires_positive_quantity(self):
        assert Money(4000).multiply(3) == Money(12000)
        with pytest.raises(ValueError):
            Money(4000).multiply(0)

    def test_sum(self):
        assert Money.sum([Money(1), Money(2), Money(3)]) == Money(6)
        assert Money.sum([]) == Money.zero()


def test_format_fcfa():
    assert format_fcfa(12500) == "12 500 FCFA"
    assert format_fcfa(Money(0)) == "0 FCFA"
    assert format_fcfa(1234567) == "1 234 567 FCFA"
    assert str(Money(700)) == "700 FCFA"
