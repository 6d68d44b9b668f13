"""
Test money rounding and tolerance helpers
"""
from decimal import Decimal

import pytest

from microlend.errors import InvalidAmount
from microlend.utils.money import amounts_match, is_settled, round_money, to_decimal

def test_round_money_half_up():
    assert round_money('1707.765') == Decimal('1707.77')
    assert round_money(Decimal('246.575')) == Decimal('246.58')
    assert round_money(2.5) == Decimal('2.50')
    assert round_money(None) == Decimal('0.00')

def test_to_decimal_rejects_non_numeric():
    for bad in ('abc', 'NaN', 'Infinity', True, ''):
        with pytest.raises(InvalidAmount):
            to_decimal(bad)

def test_to_decimal_accepts_strings_and_floats():
    assert to_decimal(' 100.50 ') == Decimal('100.50')
    assert to_decimal(0.1) == Decimal('0.1')

def test_amounts_match_within_a_cent():
    assert amounts_match('1000.00', '1000.009')
    assert not amounts_match('1000.00', '1000.01')

def test_is_settled():
    assert is_settled('0.01')
    assert is_settled('0')
    assert not is_settled('0.02')
