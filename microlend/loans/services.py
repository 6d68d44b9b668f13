"""Loan lifecycle: application intake, evaluation, origination and reconciliation"""
import logging
from datetime import date, datetime

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from microlend import db
from microlend.errors import (AlreadyProcessed, AmountExceeded, ConcurrentUpdate, InvalidAmount,
                              InvalidDuration, LoanAlreadyExists, NotFound, Unauthorized,
                              ValidationError)
from microlend.loans.credit import apply_completion, apply_origination
from microlend.loans.schedule import build_term_schedule, duration_months, quote_loan
from microlend.models import Loan, LoanApplication, LoanTerm, LoanType, Payment, PaymentDuration, User
from microlend.notifications import dispatch, messages
from microlend.utils.helpers import get_client_ip, get_user_agent
from microlend.utils.money import ZERO, is_settled, round_money, to_decimal

logger = logging.getLogger(__name__)

OPEN_LOAN_STATUSES = ('active', 'overdue')

def commit_ledger():
    """Commit the session, turning a lost optimistic-lock race into ConcurrentUpdate"""
    try:
        db.session.commit()
    except StaleDataError:
        db.session.rollback()
        logger.warning('Concurrent update detected on a loan, transaction rolled back')
        raise ConcurrentUpdate()

def lock_loan(loan_id):
    """Load a loan with its row locked for the rest of the transaction"""
    loan = Loan.query.filter_by(id=loan_id).with_for_update().populate_existing().first()
    if loan is None:
        raise NotFound('Loan not found', loan_id=loan_id)
    return loan

def lock_user(user_id):
    """Load a borrower with the row locked and its columns refreshed from the database"""
    with db.session.no_autoflush:
        return User.query.filter_by(id=user_id).with_for_update().populate_existing().one()

def _log_activity(actor, action, entity_type, entity_id, description, extra_data=None):
    dispatch('log_activity', actor.id if actor else None, action,
             entity_type=entity_type, entity_id=entity_id, description=description,
             extra_data=extra_data, ip_address=get_client_ip(), user_agent=get_user_agent())

def _require_staff(actor):
    if actor is None or not actor.is_staff:
        raise Unauthorized(role=getattr(actor, 'role', None))

# Borrower application intake

def get_borrower_credit(borrower):
    """Credit standing shown to a borrower before applying"""
    if not borrower.is_borrower:
        raise Unauthorized(role=borrower.role)

    open_loans = Loan.query.filter(
        Loan.user_id == borrower.id,
        Loan.status.in_(OPEN_LOAN_STATUSES)
    ).all()
    pending_applications = LoanApplication.query.filter_by(user_id=borrower.id, status='pending').count()

    loan_limit = round_money(borrower.loan_limit)
    used_credit = round_money(sum((to_decimal(loan.remaining_amount) for loan in open_loans), ZERO))

    return {
        'loan_limit': loan_limit,
        'credit_score': borrower.credit_score,
        'used_credit': used_credit,
        # Principal is already taken off the limit at origination
        'available_credit': max(ZERO, loan_limit),
        'has_pending_application': pending_applications > 0,
        'has_active_loan': len(open_loans) > 0,
        'can_apply': pending_applications == 0 and not open_loans,
    }

def submit_application(borrower, loan_type_id, payment_duration_id, requested_amount,
                       purpose_description=None):
    """Create a pending loan application for an approved borrower"""
    if not borrower.is_borrower or borrower.status != 'approved' or not borrower.is_active:
        raise Unauthorized('Only approved, active borrowers can apply for a loan')

    amount = round_money(requested_amount)
    if amount <= 0:
        raise InvalidAmount(requested_amount=requested_amount)

    loan_type = db.session.get(LoanType, loan_type_id)
    if loan_type is None or not loan_type.is_active:
        raise NotFound('Loan type not found', loan_type_id=loan_type_id)
    duration = db.session.get(PaymentDuration, payment_duration_id)
    if duration is None:
        raise NotFound('Payment duration not found', payment_duration_id=payment_duration_id)

    if amount < to_decimal(loan_type.min_amount):
        raise ValidationError('Requested amount is below the minimum for this loan type',
                              min_amount=loan_type.min_amount)
    if amount > to_decimal(loan_type.max_amount):
        raise ValidationError('Requested amount is above the maximum for this loan type',
                              max_amount=loan_type.max_amount)

    credit = get_borrower_credit(borrower)
    if amount > credit['available_credit']:
        raise AmountExceeded('Requested amount exceeds your available credit',
                             requested_amount=amount, available_credit=credit['available_credit'])

    application = LoanApplication(
        user_id=borrower.id,
        loan_type_id=loan_type.id,
        payment_duration_id=duration.id,
        requested_amount=amount,
        purpose_description=purpose_description,
        status='pending'
    )
    db.session.add(application)
    db.session.commit()
    logger.info('Loan application %s submitted by user %s for %s', application.id, borrower.id, amount)

    dispatch('notify_staff', 'APPLICATION_PENDING', 'New Loan Application',
             f'{borrower.name} applied for a {loan_type.name} loan of {amount} ({duration.label}).',
             link=f'/loans/applications/{application.id}', entity_type='application',
             entity_id=application.id)
    _log_activity(borrower, 'submit_application', 'application', application.id,
                  f'Submitted loan application for {amount}')
    return application

def delete_application(application_id, actor):
    """Delete a pending application; borrowers only their own"""
    application = db.session.get(LoanApplication, application_id)
    if application is None:
        raise NotFound('Application not found', application_id=application_id)

    if actor.is_borrower:
        if application.user_id != actor.id:
            raise Unauthorized('You can only delete your own applications')
    elif not actor.is_staff:
        raise Unauthorized(role=actor.role)

    if application.status != 'pending':
        raise AlreadyProcessed('Only pending applications can be deleted', status=application.status)

    borrower_id = application.user_id
    db.session.delete(application)
    db.session.commit()
    logger.info('Loan application %s deleted by user %s', application_id, actor.id)

    if actor.is_staff:
        _log_activity(actor, 'delete_application', 'application', application_id,
                      f'Deleted pending loan application {application_id}',
                      extra_data={'borrower_id': borrower_id})

# Evaluation and origination

def _quote_application(application, principal, now):
    duration = application.payment_duration
    return quote_loan(principal, application.loan_type.interest_rates,
                      duration.label, duration.days, now)

def _originate(application, quote, now):
    """Stage the loan, its terms and the limit reservation in the session"""
    loan = Loan(
        application_id=application.id,
        user_id=application.user_id,
        loan_type_id=application.loan_type_id,
        payment_duration_id=application.payment_duration_id,
        principal_amount=quote['principal_amount'],
        interest_rate=quote['interest_rate'],
        total_amount=quote['total_amount'],
        amount_paid=ZERO,
        remaining_amount=quote['total_amount'],
        due_date=quote['due_date'],
        status='active',
        created_at=now
    )
    for term in quote['terms']:
        loan.terms.append(LoanTerm(
            term_number=term['term_number'],
            amount=term['amount'],
            amount_paid=ZERO,
            due_date=term['due_date'],
            status='pending',
            days_late=0,
            penalty_amount=ZERO
        ))
    db.session.add(loan)
    apply_origination(lock_user(application.user_id), loan)
    return loan

def _commit_origination(application):
    try:
        commit_ledger()
    except IntegrityError:
        db.session.rollback()
        raise LoanAlreadyExists(application_id=application.id)

def _lock_application(application_id):
    application = LoanApplication.query.filter_by(id=application_id).with_for_update().first()
    if application is None:
        raise NotFound('Application not found', application_id=application_id)
    if Loan.query.filter_by(application_id=application.id).first() is not None:
        raise LoanAlreadyExists(application_id=application.id)
    return application

def evaluate_application(application_id, status, evaluator, credit_score=None, loan_limit=None,
                         rejection_reason=None, now=None):
    """Approve (and originate) or reject a pending application, exactly once"""
    _require_staff(evaluator)
    if status not in ('approved', 'rejected'):
        raise ValidationError('Status must be approved or rejected', status=status)
    now = now or datetime.utcnow()

    application = _lock_application(application_id)
    if application.status != 'pending':
        raise AlreadyProcessed('Application has already been evaluated', status=application.status)

    loan = None
    try:
        if status == 'approved':
            # Pricing fails before anything is written
            quote = _quote_application(application, application.requested_amount, now)

        application.status = status
        application.evaluated_by = evaluator.id
        application.evaluated_at = now
        if credit_score is not None:
            application.credit_score = credit_score
        if loan_limit is not None:
            application.loan_limit = round_money(loan_limit)
        if status == 'rejected':
            application.rejection_reason = rejection_reason

        if status == 'approved':
            loan = _originate(application, quote, now)
    except Exception:
        db.session.rollback()
        raise

    _commit_origination(application)
    borrower = application.user

    if loan is not None:
        logger.info('Application %s approved, loan %s originated for %s', application.id, loan.id,
                    loan.total_amount)
        dispatch('send_sms', borrower.phone,
                 messages.loan_approved(borrower, loan, application.payment_duration.label),
                 borrower.id)
        dispatch('notify_users', [borrower.id], 'LOAN_APPROVED', 'Loan Approved',
                 f'Your loan application for {loan.principal_amount} has been approved.',
                 link=f'/loans/{loan.id}', entity_type='loan', entity_id=loan.id)
        _log_activity(evaluator, 'approve_application', 'application', application.id,
                      f'Approved loan application {application.id}, created loan {loan.id}')
    else:
        logger.info('Application %s rejected', application.id)
        dispatch('send_sms', borrower.phone, messages.loan_rejected(borrower, rejection_reason),
                 borrower.id)
        dispatch('notify_users', [borrower.id], 'LOAN_REJECTED', 'Loan Application Rejected',
                 rejection_reason or 'Your loan application has been rejected.',
                 link=f'/loans/applications/{application.id}', entity_type='application',
                 entity_id=application.id)
        _log_activity(evaluator, 'reject_application', 'application', application.id,
                      f'Rejected loan application {application.id}',
                      extra_data={'reason': rejection_reason})

    return application, loan

def create_loan_from_approved_application(application_id, principal_amount, actor, now=None):
    """Originate a loan for an already approved application that has none"""
    _require_staff(actor)
    now = now or datetime.utcnow()

    application = _lock_application(application_id)
    if application.status != 'approved':
        raise ValidationError('Application is not approved', status=application.status)

    principal = round_money(principal_amount)
    if principal <= 0:
        raise InvalidAmount(principal_amount=principal_amount)
    if principal > to_decimal(application.loan_limit):
        raise AmountExceeded('Principal amount exceeds loan limit',
                             principal_amount=principal, loan_limit=application.loan_limit)

    quote = _quote_application(application, principal, now)
    try:
        loan = _originate(application, quote, now)
    except Exception:
        db.session.rollback()
        raise
    _commit_origination(application)
    logger.info('Loan %s created from approved application %s', loan.id, application.id)

    borrower = application.user
    dispatch('send_sms', borrower.phone,
             messages.loan_approved(borrower, loan, application.payment_duration.label), borrower.id)
    _log_activity(actor, 'create_loan', 'loan', loan.id,
                  f'Created loan {loan.id} from application {application.id}')
    return loan

# Reconciliation

def _schedule_months(loan):
    duration = loan.payment_duration
    if duration is None:
        return 1
    try:
        return duration_months(duration.label, duration.days)
    except InvalidDuration:
        return 1

def schedule_terms(loan):
    """Unattached terms regenerated from the loan's stored total and creation date"""
    created = loan.created_at or datetime.utcnow()
    return [
        LoanTerm(
            loan_id=loan.id,
            term_number=term['term_number'],
            amount=term['amount'],
            amount_paid=ZERO,
            due_date=term['due_date'],
            status='pending',
            days_late=0,
            penalty_amount=ZERO
        )
        for term in build_term_schedule(loan.total_amount, _schedule_months(loan), created)
    ]

def backfill_terms(loan):
    """Attach a schedule to a loan that has none; returns the created terms"""
    if loan.terms:
        return []
    terms = schedule_terms(loan)
    loan.terms.extend(terms)
    logger.warning('Loan %s had no terms, backfilled %d', loan.id, len(terms))
    return terms

def recalculate_balances(total_amount, terms):
    """(amount_paid, remaining_amount) from the terms' paid amounts"""
    paid = sum((to_decimal(term.amount_paid) for term in terms), ZERO)
    remaining = round_money(to_decimal(total_amount) - paid)
    return round_money(paid), max(ZERO, remaining)

def derive_loan_status(terms, remaining_amount, due_date, today):
    all_paid = bool(terms) and all(term.status == 'paid' for term in terms)
    if all_paid and is_settled(remaining_amount):
        return 'paid'
    past_due_term = any(term.status != 'paid' and term.due_date < today for term in terms)
    if past_due_term or (due_date is not None and today > due_date):
        return 'overdue'
    return 'active'

def reconcile_loan_state(loan, today):
    """Recompute aggregates and status in place; True when the loan just became paid"""
    backfill_terms(loan)
    terms = list(loan.terms)
    previous_status = loan.status

    loan.amount_paid, loan.remaining_amount = recalculate_balances(loan.total_amount, terms)
    loan.status = derive_loan_status(terms, loan.remaining_amount, loan.due_date, today)

    if loan.status == 'paid' and previous_status != 'paid':
        apply_completion(lock_user(loan.user_id), loan.loan_type, loan)
        logger.info('Loan %s fully paid, credit rewards applied to user %s', loan.id, loan.user_id)
        return True
    return False

def notify_loan_completed(loan):
    dispatch('notify_users', [loan.user_id], 'LOAN_COMPLETED', 'Loan Fully Paid',
             f'Congratulations! Loan {loan.id} is fully paid.',
             link=f'/loans/{loan.id}', entity_type='loan', entity_id=loan.id)

def reconcile_loan(loan_id, today=None):
    """Lock, backfill, recompute and commit one loan"""
    today = today or date.today()
    loan = lock_loan(loan_id)
    completed = reconcile_loan_state(loan, today)
    commit_ledger()
    if completed:
        notify_loan_completed(loan)
    return loan

def _recalculated_view(loan, today):
    terms = list(loan.terms) or schedule_terms(loan)
    amount_paid, remaining_amount = recalculate_balances(loan.total_amount, terms)
    data = loan.to_dict(include_payments=True)
    data.update({
        'amount_paid': amount_paid,
        'remaining_amount': remaining_amount,
        'status': derive_loan_status(terms, remaining_amount, loan.due_date, today),
        'terms': [term.to_dict() for term in terms],
    })
    return data

def get_loan_with_recalculated_balances(loan_id, viewer, today=None):
    """Loan detail with reconciled balances; falls back to an unsaved recalculation"""
    today = today or date.today()
    loan = db.session.get(Loan, loan_id)
    if loan is None:
        raise NotFound('Loan not found', loan_id=loan_id)
    if viewer.is_borrower and loan.user_id != viewer.id:
        raise Unauthorized('You can only view your own loans')
    if not viewer.is_borrower and not viewer.is_staff:
        raise Unauthorized(role=viewer.role)

    try:
        loan = reconcile_loan(loan_id, today)
    except (SQLAlchemyError, ConcurrentUpdate):
        db.session.rollback()
        logger.exception('Could not persist reconciliation of loan %s', loan_id)
        return _recalculated_view(db.session.get(Loan, loan_id), today)

    return loan.to_dict(include_terms=True, include_payments=True)

def delete_all_loans():
    """Remove every payment, term and loan; returns the deleted counts"""
    try:
        counts = {
            'payments': Payment.query.delete(),
            'terms': LoanTerm.query.delete(),
            'loans': Loan.query.delete(),
        }
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise
    logger.warning('Deleted all loans: %s', counts)
    return counts
