"""Payment submission and the staff approval that moves money into the ledger"""
import logging
from datetime import date, datetime

from microlend import db
from microlend.errors import (AlreadyProcessed, AmountExceeded, InvalidAmount, NotFound,
                              TermAlreadyPaid, Unauthorized, ValidationError)
from microlend.loans.services import (backfill_terms, commit_ledger, lock_loan, notify_loan_completed,
                                     reconcile_loan_state)
from microlend.models import LoanTerm, Payment
from microlend.notifications import dispatch, messages
from microlend.utils.helpers import get_client_ip, get_user_agent
from microlend.utils.money import PAYMENT_TOLERANCE, amounts_match, round_money, to_decimal

logger = logging.getLogger(__name__)

PAYMENT_TYPES = ('full', 'partial')

def _log_activity(actor, action, payment, description, extra_data=None):
    dispatch('log_activity', actor.id, action, entity_type='payment', entity_id=payment.id,
             description=description, extra_data=extra_data,
             ip_address=get_client_ip(), user_agent=get_user_agent())

def late_penalty(term, penalty_per_day, today):
    """(days late, penalty) for paying ``term`` on ``today``"""
    days_late = max(0, (today - term.due_date).days)
    return days_late, round_money(to_decimal(penalty_per_day) * days_late)

def effective_penalty(explicit, stored, calculated):
    """An explicit penalty wins, then the one already on the term, then the calculated one"""
    explicit = to_decimal(explicit)
    stored = to_decimal(stored)
    if explicit > 0:
        return round_money(explicit)
    if stored > 0:
        return round_money(stored)
    return round_money(calculated)

def submit_payment(loan_id, borrower, amount, payment_type, term_id=None, penalty_amount=None,
                   receipt_url=None, payment_method=None, today=None):
    """Record a pending payment against one of the borrower's loan terms"""
    today = today or date.today()
    if payment_type not in PAYMENT_TYPES:
        raise ValidationError('Payment type must be full or partial', payment_type=payment_type)
    amount = round_money(amount)
    if amount <= 0:
        raise InvalidAmount(amount=amount)

    loan = lock_loan(loan_id)
    try:
        if loan.user_id != borrower.id:
            raise Unauthorized('You can only pay your own loans')

        term = None
        if term_id is not None:
            term = LoanTerm.query.filter_by(id=term_id, loan_id=loan.id).first()
            if term is None:
                raise NotFound('Term not found', term_id=term_id, loan_id=loan.id)
            if term.status == 'paid':
                raise TermAlreadyPaid(term_id=term.id, term_number=term.term_number)

            per_day = loan.loan_type.late_payment_penalty_per_day if loan.loan_type else None
            days_late, calculated = late_penalty(term, per_day, today)
            stored = to_decimal(term.penalty_amount)
            penalty = effective_penalty(penalty_amount, stored, calculated)

            amount_due = round_money(term.outstanding_amount + penalty)
            if amount - amount_due >= PAYMENT_TOLERANCE:
                raise AmountExceeded('Amount exceeds the amount due for this term',
                                     amount=amount, amount_due=amount_due)

            increment = penalty - stored
            if increment > 0:
                # The penalty is owed from now on, whether or not this payment is approved
                term.days_late = days_late
                term.penalty_amount = penalty
                loan.total_amount = round_money(to_decimal(loan.total_amount) + increment)
                loan.remaining_amount = round_money(to_decimal(loan.remaining_amount) + increment)
                logger.info('Late penalty of %s added to loan %s term %s', increment, loan.id,
                            term.term_number)
        elif amount > to_decimal(loan.remaining_amount):
            raise AmountExceeded('Amount exceeds the remaining balance',
                                 amount=amount, remaining_amount=loan.remaining_amount)

        payment = Payment(
            loan_id=loan.id,
            user_id=borrower.id,
            term_id=term.id if term else None,
            amount=amount,
            payment_type=payment_type,
            receipt_url=receipt_url,
            payment_method=payment_method,
            status='pending'
        )
        db.session.add(payment)
    except Exception:
        db.session.rollback()
        raise

    commit_ledger()
    logger.info('Payment %s of %s submitted for loan %s', payment.id, amount, loan.id)

    term_text = f' (term {term.term_number})' if term else ''
    dispatch('notify_staff', 'PAYMENT_PENDING', 'Payment Pending Approval',
             f'{borrower.name} submitted a payment of {amount} for loan {loan.id}{term_text}.',
             link=f'/payments/{payment.id}', entity_type='payment', entity_id=payment.id)
    _log_activity(borrower, 'submit_payment', payment, f'Submitted payment of {amount} for loan {loan.id}')
    return payment

def match_term_by_amount(terms, amount):
    """Deprecated: guess the term of a payment without a term reference.

    Only an unpaid term whose outstanding amount is within a cent of the payment
    qualifies. Several candidates cannot be told apart and are refused.
    """
    candidates = [
        term for term in terms
        if term.status != 'paid' and amounts_match(term.outstanding_amount, amount)
    ]
    if len(candidates) > 1:
        raise ValidationError('Payment matches more than one term, cannot resolve it by amount',
                              term_ids=[term.id for term in candidates])
    return candidates[0] if candidates else None

def resolve_term(payment, loan):
    if payment.term_id is None:
        term = match_term_by_amount(loan.terms, payment.amount)
        if term is None:
            raise NotFound('No term matches this payment', payment_id=payment.id, amount=payment.amount)
        return term
    term = payment.term
    if term is None or term.loan_id != loan.id:
        raise NotFound('Term not found', term_id=payment.term_id, loan_id=loan.id)
    return term

def _claim_pending(payment, values):
    """Move a pending payment to its final state; False when someone else already did"""
    claimed = Payment.query.filter_by(id=payment.id, status='pending').update(
        values, synchronize_session='fetch'
    )
    return claimed == 1

def approve_payment(payment_id, approver, now=None):
    """Approve a pending payment, apply it to its term and reconcile the loan"""
    if not approver.is_staff:
        raise Unauthorized(role=approver.role)
    now = now or datetime.utcnow()

    payment = db.session.get(Payment, payment_id)
    if payment is None:
        raise NotFound('Payment not found', payment_id=payment_id)
    if payment.status != 'pending':
        raise AlreadyProcessed(payment_id=payment.id, status=payment.status)

    loan = lock_loan(payment.loan_id)
    try:
        # Loans created before schedules existed get theirs before any matching
        backfill_terms(loan)
        amount = to_decimal(payment.amount)
        term = resolve_term(payment, loan)
        if term.status == 'paid':
            raise TermAlreadyPaid(term_id=term.id, term_number=term.term_number)
        owed = round_money(term.outstanding_amount + to_decimal(term.penalty_amount))
        if amount - owed >= PAYMENT_TOLERANCE:
            raise AmountExceeded('Payment exceeds what is left on this term',
                                 amount=amount, amount_due=owed)

        if not _claim_pending(payment, {'status': 'completed', 'approved_by': approver.id,
                                        'approved_at': now}):
            raise AlreadyProcessed(payment_id=payment.id)

        term.amount_paid = round_money(to_decimal(term.amount_paid) + amount)
        if term.amount_paid >= to_decimal(term.amount):
            term.status = 'paid'
            term.paid_at = now

        completed = reconcile_loan_state(loan, now.date())
    except Exception:
        db.session.rollback()
        raise

    commit_ledger()
    logger.info('Payment %s approved, loan %s remaining %s (%s)', payment.id, loan.id,
                loan.remaining_amount, loan.status)

    borrower = loan.user
    dispatch('send_sms', borrower.phone,
             messages.payment_approved(borrower, payment, term, loan.remaining_amount), borrower.id)
    dispatch('notify_users', [borrower.id], 'PAYMENT_APPROVED', 'Payment Approved',
             f'Your payment of {payment.amount} for loan {loan.id} has been approved.',
             link=f'/loans/{loan.id}', entity_type='payment', entity_id=payment.id)
    if completed:
        notify_loan_completed(loan)
    _log_activity(approver, 'approve_payment', payment,
                  f'Approved payment of {payment.amount} for loan {loan.id}',
                  extra_data={'term_id': term.id,
                              'remaining_amount': loan.remaining_amount})
    return payment

def reject_payment(payment_id, rejecter, reason, now=None):
    """Mark a pending payment failed; the ledger is left untouched"""
    if not rejecter.is_staff:
        raise Unauthorized(role=rejecter.role)
    reason = (reason or '').strip()
    if not reason:
        raise ValidationError('Rejection reason is required')
    now = now or datetime.utcnow()

    payment = db.session.get(Payment, payment_id)
    if payment is None:
        raise NotFound('Payment not found', payment_id=payment_id)
    if payment.status != 'pending':
        raise AlreadyProcessed(payment_id=payment.id, status=payment.status)

    if not _claim_pending(payment, {'status': 'failed', 'rejected_by': rejecter.id,
                                    'rejected_at': now, 'rejection_reason': reason}):
        db.session.rollback()
        raise AlreadyProcessed(payment_id=payment.id)
    db.session.commit()
    logger.info('Payment %s rejected: %s', payment.id, reason)

    borrower = payment.user
    dispatch('send_sms', borrower.phone,
             messages.payment_rejected(borrower, payment, payment.term, reason), borrower.id)
    dispatch('notify_users', [borrower.id], 'PAYMENT_REJECTED', 'Payment Rejected',
             f'Your payment of {payment.amount} was rejected: {reason}',
             link=f'/loans/{payment.loan_id}', entity_type='payment', entity_id=payment.id)
    _log_activity(rejecter, 'reject_payment', payment, f'Rejected payment {payment.id}',
                  extra_data={'reason': reason})
    return payment
