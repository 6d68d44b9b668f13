"""Periodic due-date poller: payment reminders, overdue marking and overdue notices"""
import logging
import time
from datetime import date, timedelta

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from microlend import db
from microlend.errors import LendingError
from microlend.models import Loan, LoanTerm
from microlend.notifications import get_notifier, messages
from microlend.utils.money import round_money, to_decimal

logger = logging.getLogger(__name__)

def _send(notifier, borrower, message):
    try:
        return bool(notifier.send_sms(borrower.phone, message, borrower.id))
    except Exception:
        logger.exception('SMS to user %s failed', borrower.id)
        db.session.rollback()
        return False

def send_due_reminders(notifier, today, days_before):
    """One reminder per pending term due within ``days_before`` days"""
    terms = LoanTerm.query.join(Loan).filter(
        LoanTerm.status == 'pending',
        LoanTerm.reminder_sms_sent.is_(False),
        LoanTerm.due_date >= today,
        LoanTerm.due_date <= today + timedelta(days=days_before),
        Loan.status.in_(('active', 'overdue'))
    ).order_by(LoanTerm.due_date).all()

    sent = 0
    for term in terms:
        borrower = term.loan.user
        days_until_due = (term.due_date - today).days
        if _send(notifier, borrower, messages.payment_reminder(borrower, term, days_until_due)):
            term.reminder_sms_sent = True
            db.session.commit()
            sent += 1
    return sent

def mark_overdue_loans(today):
    """Reconcile active loans that have fallen behind; returns the ids now overdue"""
    from microlend.loans.services import reconcile_loan

    candidates = Loan.query.filter(
        Loan.status == 'active',
        db.or_(
            Loan.due_date < today,
            Loan.terms.any(db.and_(LoanTerm.status == 'pending', LoanTerm.due_date < today))
        )
    ).all()

    overdue = []
    for loan_id in [loan.id for loan in candidates]:
        try:
            loan = reconcile_loan(loan_id, today)
        except (LendingError, SQLAlchemyError):
            db.session.rollback()
            logger.exception('Could not reconcile loan %s', loan_id)
            continue
        if loan.status == 'overdue':
            overdue.append(loan.id)
    if overdue:
        logger.info('Marked %d loans overdue: %s', len(overdue), overdue)
    return overdue

def send_overdue_notices(notifier, today):
    """One notice per past-due pending term, with the late fee owed so far"""
    terms = LoanTerm.query.join(Loan).filter(
        LoanTerm.status == 'pending',
        LoanTerm.overdue_sms_sent.is_(False),
        LoanTerm.due_date < today,
        Loan.status.in_(('active', 'overdue'))
    ).order_by(LoanTerm.due_date).all()

    sent = 0
    for term in terms:
        loan = term.loan
        borrower = loan.user
        days_overdue = (today - term.due_date).days
        per_day = to_decimal(loan.loan_type.late_payment_penalty_per_day if loan.loan_type else None)
        late_fee = to_decimal(term.penalty_amount)
        if late_fee <= 0:
            late_fee = round_money(per_day * days_overdue)
        if _send(notifier, borrower, messages.payment_overdue(borrower, term, days_overdue, late_fee)):
            term.overdue_sms_sent = True
            db.session.commit()
            sent += 1
    return sent

def check_and_send_notifications(today=None, notifier=None):
    """Run one poller pass; returns what was done"""
    today = today or date.today()
    notifier = notifier or get_notifier()
    days_before = current_app.config.get('REMINDER_DAYS_BEFORE_DUE', 7)

    result = {
        'reminders_sent': send_due_reminders(notifier, today, days_before),
        'loans_marked_overdue': len(mark_overdue_loans(today)),
        'overdue_notices_sent': send_overdue_notices(notifier, today),
    }
    logger.info('Notification pass for %s: %s', today.isoformat(), result)
    return result

def run_worker(app, interval=None):
    """Poll forever, one pass every ``interval`` seconds"""
    interval = interval or app.config.get('SMS_WORKER_INTERVAL', 60)
    logger.info('SMS worker started, polling every %s seconds', interval)
    while True:
        with app.app_context():
            try:
                check_and_send_notifications()
            except Exception:
                logger.exception('Notification pass failed')
                db.session.rollback()
            finally:
                db.session.remove()
        time.sleep(interval)
