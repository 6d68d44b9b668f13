"""Pytest configuration and fixtures."""
from datetime import date, datetime, time
from decimal import Decimal

import pytest
from dateutil.relativedelta import relativedelta
from flask import g

from microlend import create_app, db
from microlend.models import Loan, LoanApplication, LoanTerm, LoanType, PaymentDuration, User
from microlend.notifications import Notifier

PASSWORD = 'password123'

class RecordingNotifier(Notifier):
    """Keeps every side effect in memory"""

    def __init__(self):
        self.sms = []
        self.notifications = []
        self.activities = []
        self.sms_result = True

    def send_sms(self, phone, message, user_id=None):
        self.sms.append({'phone': phone, 'message': message, 'user_id': user_id})
        return self.sms_result

    def notify_users(self, user_ids, type, title, message, link=None, entity_type=None, entity_id=None):
        self.notifications.append({'user_ids': list(user_ids), 'type': type, 'title': title,
                                   'message': message, 'entity_id': entity_id})

    def notify_staff(self, type, title, message, link=None, entity_type=None, entity_id=None):
        self.notifications.append({'user_ids': 'staff', 'type': type, 'title': title,
                                   'message': message, 'entity_id': entity_id})

    def log_activity(self, user_id, action, entity_type=None, entity_id=None, description=None,
                     extra_data=None, ip_address=None, user_agent=None):
        self.activities.append({'user_id': user_id, 'action': action, 'entity_type': entity_type,
                                'entity_id': entity_id, 'extra_data': extra_data})

    def types(self):
        return [notification['type'] for notification in self.notifications]

@pytest.fixture
def notifier():
    return RecordingNotifier()

@pytest.fixture
def app(notifier):
    """App on in-memory SQLite with an active app context"""
    app = create_app('testing', notifier=notifier)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()

@pytest.fixture
def client(app):
    return app.test_client()

def _user(email, name, role, **kwargs):
    user = User(email=email, name=name, role=role, **kwargs)
    user.set_password(PASSWORD)
    db.session.add(user)
    db.session.commit()
    return user

@pytest.fixture
def staff(app):
    return _user('officer@example.com', 'Loan Officer', 'loan_officer',
                 credit_score=0.0, loan_limit=Decimal('0'))

@pytest.fixture
def borrower(app):
    return _user('juan@example.com', 'Juan Dela Cruz', 'borrower', status='approved',
                 phone='09171234567', credit_score=50.0, loan_limit=Decimal('50000.00'))

@pytest.fixture
def other_borrower(app):
    return _user('maria@example.com', 'Maria Santos', 'borrower', status='approved',
                 phone='09179876543', credit_score=40.0, loan_limit=Decimal('20000.00'))

@pytest.fixture
def durations(app):
    """Payment durations keyed by label"""
    rows = {}
    for label, days in (('15 days', 15), ('3 months', 90), ('6 months', 180), ('12 months', 365)):
        rows[label] = PaymentDuration(label=label, days=days)
        db.session.add(rows[label])
    db.session.commit()
    return rows

@pytest.fixture
def loan_type(app):
    loan_type = LoanType(
        name='Personal Loan',
        min_amount=Decimal('1000'),
        max_amount=Decimal('100000'),
        credit_score_on_completion=5.0,
        limit_increase_on_completion=Decimal('1000'),
        late_payment_penalty_per_day=Decimal('10')
    )
    loan_type.interest_rates = {1: 12, 3: 10, 6: 5, 12: 8}
    db.session.add(loan_type)
    db.session.commit()
    return loan_type

@pytest.fixture
def make_application(borrower, loan_type, durations):
    def _make(amount='10000', duration='6 months', status='pending', user=None, loan_limit=None):
        application = LoanApplication(
            user_id=(user or borrower).id,
            loan_type_id=loan_type.id,
            payment_duration_id=durations[duration].id,
            requested_amount=Decimal(amount),
            status=status,
            loan_limit=loan_limit
        )
        db.session.add(application)
        db.session.commit()
        return application
    return _make

@pytest.fixture
def make_loan(borrower, loan_type, durations):
    """Loan with an explicit schedule, terms due monthly after ``start``"""
    def _make(term_amounts=('1000', '1000', '1000'), start=date(2026, 1, 1), principal=None,
              duration='3 months', user=None):
        user = user or borrower
        total = sum(Decimal(amount) for amount in term_amounts)
        application = LoanApplication(
            user_id=user.id,
            loan_type_id=loan_type.id,
            payment_duration_id=durations[duration].id,
            requested_amount=Decimal(principal or total),
            status='approved'
        )
        db.session.add(application)
        db.session.flush()

        loan = Loan(
            application_id=application.id,
            user_id=user.id,
            loan_type_id=loan_type.id,
            payment_duration_id=durations[duration].id,
            principal_amount=Decimal(principal or total),
            interest_rate=Decimal('0'),
            total_amount=total,
            amount_paid=Decimal('0'),
            remaining_amount=total,
            due_date=start + relativedelta(months=len(term_amounts)),
            status='active',
            created_at=datetime.combine(start, time())
        )
        for number, amount in enumerate(term_amounts, start=1):
            loan.terms.append(LoanTerm(
                term_number=number,
                amount=Decimal(amount),
                amount_paid=Decimal('0'),
                due_date=start + relativedelta(months=number),
                status='pending',
                days_late=0,
                penalty_amount=Decimal('0')
            ))
        db.session.add(loan)
        db.session.commit()
        return loan
    return _make

def login(client, user, password=PASSWORD):
    """Log ``client`` in as ``user``; the shared app context keeps the last loaded user in g"""
    g.pop('_login_user', None)
    return client.post('/auth/login', json={'email': user.email, 'password': password})
