"""
Test balance reconciliation, status derivation and schedule backfill
"""
from datetime import date, datetime
from decimal import Decimal
from types import SimpleNamespace

import pytest
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from microlend import db
from microlend.errors import NotFound, Unauthorized
from microlend.loans import services
from microlend.loans.services import (delete_all_loans, derive_loan_status, evaluate_application,
                                      get_loan_with_recalculated_balances, recalculate_balances,
                                      reconcile_loan, schedule_terms)
from microlend.models import Loan, LoanTerm, Payment
from microlend.payments.services import submit_payment

TODAY = date(2026, 1, 20)

def _term(amount_paid='0', status='pending', due=date(2026, 2, 1)):
    return SimpleNamespace(amount_paid=Decimal(amount_paid), status=status, due_date=due)

def _mark_paid(term):
    term.amount_paid = term.amount
    term.status = 'paid'

def test_recalculate_balances_is_idempotent():
    terms = [_term('1000', 'paid'), _term('500'), _term()]
    first = recalculate_balances(Decimal('3000'), terms)
    assert first == (Decimal('1500.00'), Decimal('1500.00'))
    assert recalculate_balances(Decimal('3000'), terms) == first

    overpaid = [_term('3000.50', 'paid')]
    assert recalculate_balances(Decimal('3000'), overpaid) == (Decimal('3000.50'), Decimal('0.00'))

def test_derive_loan_status():
    due = date(2026, 4, 1)
    paid = [_term('1000', 'paid'), _term('1000', 'paid')]
    assert derive_loan_status(paid, Decimal('0'), due, TODAY) == 'paid'
    assert derive_loan_status(paid, Decimal('0.01'), due, TODAY) == 'paid'
    # Every term paid but the ledger still short
    assert derive_loan_status(paid, Decimal('5.00'), due, TODAY) == 'active'
    assert derive_loan_status([], Decimal('0'), due, TODAY) == 'active'

    open_terms = [_term('1000', 'paid'), _term(due=date(2026, 3, 1))]
    assert derive_loan_status(open_terms, Decimal('1000'), due, TODAY) == 'active'
    assert derive_loan_status(open_terms, Decimal('1000'), due, date(2026, 3, 2)) == 'overdue'
    assert derive_loan_status(open_terms, Decimal('1000'), date(2026, 1, 1), TODAY) == 'overdue'

def test_reconcile_persists_balances_from_terms(borrower, make_loan):
    loan = make_loan()
    _mark_paid(loan.terms[0])
    db.session.commit()

    reconcile_loan(loan.id, today=TODAY)

    db.session.refresh(loan)
    assert loan.amount_paid == Decimal('1000.00')
    assert loan.remaining_amount == Decimal('2000.00')
    assert loan.status == 'active'

def test_reconcile_completion_rewards_once(borrower, make_loan, notifier):
    loan = make_loan()
    for term in loan.terms:
        _mark_paid(term)
    db.session.commit()

    reconcile_loan(loan.id, today=TODAY)
    reconcile_loan(loan.id, today=TODAY)

    db.session.refresh(loan)
    db.session.refresh(borrower)
    assert loan.status == 'paid'
    assert borrower.credit_score == 55.0
    assert borrower.loan_limit == Decimal('54000.00')
    assert notifier.types().count('LOAN_COMPLETED') == 1

def test_backfill_matches_original_schedule(staff, make_application):
    now = datetime(2026, 1, 15, 10, 0)
    _, loan = evaluate_application(make_application('10000', '6 months').id, 'approved', staff, now=now)
    expected = [(term.term_number, term.amount, term.due_date) for term in loan.terms]

    LoanTerm.query.filter_by(loan_id=loan.id).delete()
    db.session.commit()
    assert LoanTerm.query.filter_by(loan_id=loan.id).count() == 0

    loan = reconcile_loan(loan.id, today=TODAY)

    assert [(term.term_number, term.amount, term.due_date) for term in loan.terms] == expected
    assert loan.remaining_amount == Decimal('10246.58')
    assert LoanTerm.query.filter_by(loan_id=loan.id).count() == 6

def test_schedule_without_duration_is_one_term(app):
    loan = SimpleNamespace(id=None, created_at=datetime(2026, 1, 1), total_amount=Decimal('1500'),
                           payment_duration=None)
    terms = schedule_terms(loan)
    assert len(terms) == 1
    assert terms[0].amount == Decimal('1500.00')
    assert terms[0].due_date == date(2026, 2, 1)

def test_detail_view_access(borrower, other_borrower, staff, make_loan):
    loan = make_loan()

    with pytest.raises(Unauthorized):
        get_loan_with_recalculated_balances(loan.id, other_borrower, today=TODAY)
    with pytest.raises(NotFound):
        get_loan_with_recalculated_balances(9999, staff, today=TODAY)

    data = get_loan_with_recalculated_balances(loan.id, borrower, today=TODAY)
    assert data['id'] == loan.id
    assert len(data['terms']) == 3
    assert data['payments'] == []

def test_detail_view_falls_back_when_persisting_fails(borrower, make_loan, monkeypatch):
    loan = make_loan()
    _mark_paid(loan.terms[0])
    db.session.commit()

    def broken_commit():
        raise SQLAlchemyError('database is locked')

    monkeypatch.setattr(services, 'commit_ledger', broken_commit)
    data = get_loan_with_recalculated_balances(loan.id, borrower, today=TODAY)

    assert data['amount_paid'] == Decimal('1000.00')
    assert data['remaining_amount'] == Decimal('2000.00')
    assert data['status'] == 'active'
    assert [term['status'] for term in data['terms']] == ['paid', 'pending', 'pending']

    # Nothing was saved
    assert db.session.get(Loan, loan.id).amount_paid == Decimal('0.00')

def test_delete_all_loans(borrower, make_loan):
    loan = make_loan()
    make_loan(term_amounts=('500',), user=borrower)
    submit_payment(loan.id, borrower, Decimal('1000'), 'full', term_id=loan.terms[0].id, today=TODAY)

    counts = delete_all_loans()

    assert counts == {'payments': 1, 'terms': 4, 'loans': 2}
    assert Loan.query.count() == 0
    assert LoanTerm.query.count() == 0
    assert Payment.query.count() == 0

def test_completion_reward_applies_to_current_borrower_row(borrower, make_loan):
    loan = make_loan()
    for term in loan.terms:
        _mark_paid(term)
    db.session.commit()
    assert borrower.loan_limit == Decimal('50000.00')

    # The borrower's limit moved after it was read into this session
    db.session.execute(text('UPDATE users SET loan_limit = 60000 WHERE id = :id'), {'id': borrower.id})
    reconcile_loan(loan.id, today=TODAY)

    db.session.refresh(borrower)
    assert borrower.loan_limit == Decimal('64000.00')
