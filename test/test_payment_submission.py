"""
Test borrower payment submission and late penalties
"""
from datetime import date
from decimal import Decimal

import pytest

from microlend import db
from microlend.errors import AmountExceeded, InvalidAmount, NotFound, TermAlreadyPaid, Unauthorized, ValidationError
from microlend.models import Payment
from microlend.payments.services import effective_penalty, late_penalty, submit_payment

# First term of a loan started 2026-01-01 is due 2026-02-01
THREE_DAYS_LATE = date(2026, 2, 4)

def test_late_payment_includes_penalty(borrower, make_loan, notifier):
    """Overdue by 3 days at 10 per day: 1030 is due, 1031 is too much"""
    loan = make_loan()
    term = loan.terms[0]

    with pytest.raises(AmountExceeded) as exc:
        submit_payment(loan.id, borrower, Decimal('1031'), 'full', term_id=term.id, today=THREE_DAYS_LATE)
    assert exc.value.details['amount_due'] == Decimal('1030.00')
    assert Payment.query.count() == 0

    payment = submit_payment(loan.id, borrower, Decimal('1030'), 'full', term_id=term.id,
                             today=THREE_DAYS_LATE)

    assert payment.status == 'pending'
    assert payment.term_id == term.id
    db.session.refresh(term)
    db.session.refresh(loan)
    assert term.days_late == 3
    assert term.penalty_amount == Decimal('30.00')
    assert term.status == 'pending'
    assert term.amount_paid == Decimal('0.00')
    assert loan.total_amount == Decimal('3030.00')
    assert loan.remaining_amount == Decimal('3030.00')
    assert loan.amount_paid == Decimal('0.00')
    assert 'PAYMENT_PENDING' in notifier.types()

def test_resubmission_does_not_add_penalty_twice(borrower, make_loan):
    loan = make_loan()
    term = loan.terms[0]

    submit_payment(loan.id, borrower, Decimal('500'), 'partial', term_id=term.id, today=THREE_DAYS_LATE)
    submit_payment(loan.id, borrower, Decimal('530'), 'partial', term_id=term.id, today=THREE_DAYS_LATE)

    db.session.refresh(loan)
    assert loan.total_amount == Decimal('3030.00')
    assert Payment.query.filter_by(loan_id=loan.id).count() == 2

def test_payment_within_tolerance(borrower, make_loan):
    loan = make_loan()
    payment = submit_payment(loan.id, borrower, Decimal('1000.99'), 'full', term_id=loan.terms[0].id,
                             today=date(2026, 1, 20))
    assert payment.amount == Decimal('1000.99')
    db.session.refresh(loan)
    assert loan.total_amount == Decimal('3000.00')

def test_invalid_submissions(borrower, other_borrower, make_loan):
    loan = make_loan()
    term = loan.terms[0]

    with pytest.raises(InvalidAmount):
        submit_payment(loan.id, borrower, Decimal('0'), 'full', term_id=term.id, today=THREE_DAYS_LATE)
    with pytest.raises(ValidationError):
        submit_payment(loan.id, borrower, Decimal('100'), 'bogus', term_id=term.id, today=THREE_DAYS_LATE)
    with pytest.raises(Unauthorized):
        submit_payment(loan.id, other_borrower, Decimal('100'), 'partial', term_id=term.id,
                       today=THREE_DAYS_LATE)
    with pytest.raises(NotFound):
        submit_payment(loan.id, borrower, Decimal('100'), 'partial', term_id=9999, today=THREE_DAYS_LATE)
    with pytest.raises(NotFound):
        submit_payment(9999, borrower, Decimal('100'), 'partial', today=THREE_DAYS_LATE)

    db.session.refresh(loan)
    assert loan.total_amount == Decimal('3000.00')
    assert Payment.query.count() == 0

def test_paid_term_rejects_payment(borrower, make_loan):
    loan = make_loan()
    term = loan.terms[0]
    term.amount_paid = term.amount
    term.status = 'paid'
    db.session.commit()

    with pytest.raises(TermAlreadyPaid):
        submit_payment(loan.id, borrower, Decimal('100'), 'partial', term_id=term.id, today=THREE_DAYS_LATE)

def test_legacy_payment_limited_to_remaining_balance(borrower, make_loan):
    loan = make_loan()

    with pytest.raises(AmountExceeded):
        submit_payment(loan.id, borrower, Decimal('3000.01'), 'full', today=THREE_DAYS_LATE)

    payment = submit_payment(loan.id, borrower, Decimal('3000'), 'full', today=THREE_DAYS_LATE)
    assert payment.term_id is None

def test_penalty_precedence():
    assert effective_penalty(Decimal('50'), Decimal('30'), Decimal('40')) == Decimal('50.00')
    assert effective_penalty(None, Decimal('30'), Decimal('40')) == Decimal('30.00')
    assert effective_penalty(0, 0, Decimal('40')) == Decimal('40.00')

def test_late_penalty_ignores_early_payment(make_loan):
    term = make_loan().terms[0]
    assert late_penalty(term, Decimal('10'), date(2026, 1, 20)) == (0, Decimal('0.00'))
    assert late_penalty(term, None, THREE_DAYS_LATE) == (3, Decimal('0.00'))
