"""
Test credit score and loan limit adjustments
"""
from decimal import Decimal
from types import SimpleNamespace

from microlend.loans.credit import (adjust_loan_limit, clamp_credit_score, completion_adjustment,
                                    origination_adjustment)

def _borrower(credit_score=50.0, loan_limit='50000'):
    return SimpleNamespace(credit_score=credit_score, loan_limit=Decimal(loan_limit))

def _loan(principal='10000'):
    return SimpleNamespace(principal_amount=Decimal(principal))

def test_clamp_credit_score():
    assert clamp_credit_score(-5) == 0.0
    assert clamp_credit_score(104.5) == 100.0
    assert clamp_credit_score(None) == 0.0
    assert clamp_credit_score(42.5) == 42.5

def test_loan_limit_never_negative():
    assert adjust_loan_limit(Decimal('100'), Decimal('-250')) == Decimal('0.00')
    assert adjust_loan_limit(None, 10) == Decimal('10.00')

def test_origination_reserves_principal():
    assert origination_adjustment(_borrower(), _loan()) == Decimal('40000.00')
    assert origination_adjustment(_borrower(loan_limit='5000'), _loan()) == Decimal('0.00')

def test_completion_restores_principal_with_bonus():
    loan_type = SimpleNamespace(credit_score_on_completion=5.0, limit_increase_on_completion=Decimal('1000'))
    score, limit = completion_adjustment(_borrower(loan_limit='40000'), loan_type, _loan())
    assert score == 55.0
    assert limit == Decimal('51000.00')

def test_completion_defaults_and_caps():
    unset = SimpleNamespace(credit_score_on_completion=None, limit_increase_on_completion=None)
    score, limit = completion_adjustment(_borrower(credit_score=98.0, loan_limit='0'), unset, _loan('500'))
    assert score == 100.0
    assert limit == Decimal('500.00')

    no_bonus = SimpleNamespace(credit_score_on_completion=0.0, limit_increase_on_completion=Decimal('0'))
    score, _ = completion_adjustment(_borrower(credit_score=60.0), no_bonus, _loan())
    assert score == 60.0
