"""Database models for microlend"""
from datetime import datetime
from decimal import Decimal
from microlend import db, login_manager
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash
import json

STAFF_ROLES = ('admin', 'loan_officer')

@login_manager.user_loader
def load_user(user_id):
    return db.session.get(User, int(user_id))

def _iso(value):
    return value.isoformat() if value else None

# User and Authentication Models
class User(UserMixin, db.Model):
    """Staff members and borrowers"""
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    phone = db.Column(db.String(20))
    role = db.Column(db.String(30), nullable=False, default='borrower')  # admin, loan_officer, borrower
    status = db.Column(db.String(20))  # pending, approved, rejected; None for staff
    is_active = db.Column(db.Boolean, default=True)

    # Credit standing (borrowers only)
    credit_score = db.Column(db.Float, nullable=False, default=0.0)  # 0-100
    loan_limit = db.Column(db.Numeric(15, 2), nullable=False, default=0)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    last_login = db.Column(db.DateTime)

    # Relationships
    applications = db.relationship('LoanApplication', foreign_keys='LoanApplication.user_id', backref='user', lazy='dynamic')
    loans = db.relationship('Loan', backref='user', lazy='dynamic')

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    @property
    def is_staff(self):
        return self.role in STAFF_ROLES

    @property
    def is_borrower(self):
        return self.role == 'borrower'

    def has_role(self, *roles):
        return self.role in roles

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'name': self.name,
            'phone': self.phone,
            'role': self.role,
            'status': self.status,
            'is_active': self.is_active,
            'credit_score': self.credit_score,
            'loan_limit': self.loan_limit,
        }

    def __repr__(self):
        return f'<User {self.email}>'

# Reference data
class LoanType(db.Model):
    """Loan product with its month-keyed interest rate table and completion rewards"""
    __tablename__ = 'loan_types'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), unique=True, nullable=False)
    description = db.Column(db.Text)
    min_amount = db.Column(db.Numeric(15, 2), nullable=False, default=0)
    max_amount = db.Column(db.Numeric(15, 2), nullable=False)
    interest_rates_by_month = db.Column(db.Text)  # JSON object, e.g. {"1": 12.0, "6": 9.0}
    credit_score_on_completion = db.Column(db.Float, default=5.0)
    limit_increase_on_completion = db.Column(db.Numeric(15, 2), default=0)
    late_payment_penalty_per_day = db.Column(db.Numeric(15, 2), default=0)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    @property
    def interest_rates(self):
        """Parsed rate table; raises InterestRateNotFound when the stored JSON is unusable"""
        from microlend.loans.schedule import InterestRateTable
        return InterestRateTable.from_json(self.interest_rates_by_month)

    @interest_rates.setter
    def interest_rates(self, table):
        from microlend.loans.schedule import InterestRateTable
        if not isinstance(table, InterestRateTable):
            table = InterestRateTable(table)
        self.interest_rates_by_month = table.to_json()

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'min_amount': self.min_amount,
            'max_amount': self.max_amount,
            'interest_rates_by_month': json.loads(self.interest_rates_by_month) if self.interest_rates_by_month else {},
            'credit_score_on_completion': self.credit_score_on_completion,
            'limit_increase_on_completion': self.limit_increase_on_completion,
            'late_payment_penalty_per_day': self.late_payment_penalty_per_day,
        }

    def __repr__(self):
        return f'<LoanType {self.name}>'

class PaymentDuration(db.Model):
    """Selectable repayment duration, e.g. '6 months' / 180 days"""
    __tablename__ = 'payment_durations'

    id = db.Column(db.Integer, primary_key=True)
    label = db.Column(db.String(50), unique=True, nullable=False)
    days = db.Column(db.Integer, nullable=False)

    def to_dict(self):
        return {'id': self.id, 'label': self.label, 'days': self.days}

    def __repr__(self):
        return f'<PaymentDuration {self.label}>'

# Loan lifecycle
class LoanApplication(db.Model):
    """Borrower request for a loan, evaluated once by staff"""
    __tablename__ = 'loan_applications'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    loan_type_id = db.Column(db.Integer, db.ForeignKey('loan_types.id'), nullable=False)
    payment_duration_id = db.Column(db.Integer, db.ForeignKey('payment_durations.id'), nullable=False)
    requested_amount = db.Column(db.Numeric(15, 2), nullable=False)
    purpose_description = db.Column(db.Text)

    status = db.Column(db.String(20), nullable=False, default='pending')  # pending, approved, rejected

    # Evaluation
    evaluated_by = db.Column(db.Integer, db.ForeignKey('users.id'))
    evaluated_at = db.Column(db.DateTime)
    credit_score = db.Column(db.Float)  # snapshot entered by the evaluator
    loan_limit = db.Column(db.Numeric(15, 2))
    rejection_reason = db.Column(db.Text)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    # Relationships
    loan_type = db.relationship('LoanType')
    payment_duration = db.relationship('PaymentDuration')
    evaluator = db.relationship('User', foreign_keys=[evaluated_by])
    loan = db.relationship('Loan', backref='application', uselist=False)

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'loan_type_id': self.loan_type_id,
            'payment_duration_id': self.payment_duration_id,
            'requested_amount': self.requested_amount,
            'purpose_description': self.purpose_description,
            'status': self.status,
            'evaluated_by': self.evaluated_by,
            'evaluated_at': _iso(self.evaluated_at),
            'credit_score': self.credit_score,
            'loan_limit': self.loan_limit,
            'rejection_reason': self.rejection_reason,
            'loan_id': self.loan.id if self.loan else None,
            'created_at': _iso(self.created_at),
        }

    def __repr__(self):
        return f'<LoanApplication {self.id}>'

class Loan(db.Model):
    """Originated loan; amount_paid, remaining_amount and status are derived from its terms"""
    __tablename__ = 'loans'

    id = db.Column(db.Integer, primary_key=True)
    application_id = db.Column(db.Integer, db.ForeignKey('loan_applications.id'), unique=True, nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    loan_type_id = db.Column(db.Integer, db.ForeignKey('loan_types.id'), nullable=False)
    payment_duration_id = db.Column(db.Integer, db.ForeignKey('payment_durations.id'))

    # Amounts
    principal_amount = db.Column(db.Numeric(15, 2), nullable=False)
    interest_rate = db.Column(db.Numeric(7, 2), nullable=False)  # Percentage actually applied
    total_amount = db.Column(db.Numeric(15, 2), nullable=False)  # Grows when late penalties accrue
    amount_paid = db.Column(db.Numeric(15, 2), nullable=False, default=0)
    remaining_amount = db.Column(db.Numeric(15, 2), nullable=False)

    due_date = db.Column(db.Date, nullable=False)
    status = db.Column(db.String(20), nullable=False, default='active')  # active, overdue, paid

    # Optimistic lock, bumped on every UPDATE of the row
    version = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    loan_type = db.relationship('LoanType')
    payment_duration = db.relationship('PaymentDuration')
    terms = db.relationship('LoanTerm', backref='loan', order_by='LoanTerm.term_number', cascade='all, delete-orphan')
    payments = db.relationship('Payment', backref='loan', lazy='dynamic', cascade='all, delete-orphan')

    __mapper_args__ = {'version_id_col': version}

    def to_dict(self, include_terms=False, include_payments=False):
        data = {
            'id': self.id,
            'application_id': self.application_id,
            'user_id': self.user_id,
            'loan_type_id': self.loan_type_id,
            'loan_type': self.loan_type.name if self.loan_type else None,
            'payment_duration': self.payment_duration.label if self.payment_duration else None,
            'principal_amount': self.principal_amount,
            'interest_rate': self.interest_rate,
            'total_amount': self.total_amount,
            'amount_paid': self.amount_paid,
            'remaining_amount': self.remaining_amount,
            'due_date': _iso(self.due_date),
            'status': self.status,
            'created_at': _iso(self.created_at),
        }
        if include_terms:
            data['terms'] = [term.to_dict() for term in self.terms]
        if include_payments:
            data['payments'] = [payment.to_dict() for payment in self.payments.order_by(Payment.created_at.desc())]
        return data

    def __repr__(self):
        return f'<Loan {self.id}>'

class LoanTerm(db.Model):
    """One monthly installment of a loan"""
    __tablename__ = 'loan_terms'
    __table_args__ = (
        db.UniqueConstraint('loan_id', 'term_number', name='unique_loan_term_number'),
    )

    id = db.Column(db.Integer, primary_key=True)
    loan_id = db.Column(db.Integer, db.ForeignKey('loans.id'), nullable=False, index=True)
    term_number = db.Column(db.Integer, nullable=False)  # 1-based
    amount = db.Column(db.Numeric(15, 2), nullable=False)  # Originally due
    amount_paid = db.Column(db.Numeric(15, 2), nullable=False, default=0)  # Approved payments only
    due_date = db.Column(db.Date, nullable=False, index=True)
    status = db.Column(db.String(20), nullable=False, default='pending')  # pending, paid
    days_late = db.Column(db.Integer, nullable=False, default=0)
    penalty_amount = db.Column(db.Numeric(15, 2), nullable=False, default=0)
    paid_at = db.Column(db.DateTime)

    # Due-date poller bookkeeping
    reminder_sms_sent = db.Column(db.Boolean, nullable=False, default=False)
    overdue_sms_sent = db.Column(db.Boolean, nullable=False, default=False)

    @property
    def outstanding_amount(self):
        """Principal+interest still owed on this term, excluding penalty"""
        return Decimal(str(self.amount or 0)) - Decimal(str(self.amount_paid or 0))

    def to_dict(self):
        return {
            'id': self.id,
            'loan_id': self.loan_id,
            'term_number': self.term_number,
            'amount': self.amount,
            'amount_paid': self.amount_paid,
            'due_date': _iso(self.due_date),
            'status': self.status,
            'days_late': self.days_late,
            'penalty_amount': self.penalty_amount,
            'paid_at': _iso(self.paid_at),
        }

    def __repr__(self):
        return f'<LoanTerm {self.loan_id}#{self.term_number}>'

class Payment(db.Model):
    """Borrower-submitted payment; counts toward the ledger only once approved"""
    __tablename__ = 'payments'

    id = db.Column(db.Integer, primary_key=True)
    loan_id = db.Column(db.Integer, db.ForeignKey('loans.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    term_id = db.Column(db.Integer, db.ForeignKey('loan_terms.id'), nullable=True)  # None on legacy payments

    amount = db.Column(db.Numeric(15, 2), nullable=False)
    payment_type = db.Column(db.String(20), nullable=False)  # full, partial
    receipt_url = db.Column(db.String(255))
    payment_method = db.Column(db.String(100))

    status = db.Column(db.String(20), nullable=False, default='pending')  # pending, completed, failed

    approved_by = db.Column(db.Integer, db.ForeignKey('users.id'))
    approved_at = db.Column(db.DateTime)
    rejected_by = db.Column(db.Integer, db.ForeignKey('users.id'))
    rejected_at = db.Column(db.DateTime)
    rejection_reason = db.Column(db.Text)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    # Relationships
    term = db.relationship('LoanTerm')
    user = db.relationship('User', foreign_keys=[user_id])

    def to_dict(self):
        return {
            'id': self.id,
            'loan_id': self.loan_id,
            'user_id': self.user_id,
            'term_id': self.term_id,
            'term_number': self.term.term_number if self.term else None,
            'amount': self.amount,
            'payment_type': self.payment_type,
            'receipt_url': self.receipt_url,
            'payment_method': self.payment_method,
            'status': self.status,
            'approved_by': self.approved_by,
            'approved_at': _iso(self.approved_at),
            'rejected_by': self.rejected_by,
            'rejected_at': _iso(self.rejected_at),
            'rejection_reason': self.rejection_reason,
            'created_at': _iso(self.created_at),
        }

    def __repr__(self):
        return f'<Payment {self.id}>'

# Side channels
class Notification(db.Model):
    """In-app notification"""
    __tablename__ = 'notifications'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    type = db.Column(db.String(50), nullable=False)  # PAYMENT_PENDING, PAYMENT_APPROVED, LOAN_APPROVED, ...
    title = db.Column(db.String(200), nullable=False)
    message = db.Column(db.Text, nullable=False)
    link = db.Column(db.String(255))
    entity_type = db.Column(db.String(50))
    entity_id = db.Column(db.Integer)
    is_read = db.Column(db.Boolean, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    def __repr__(self):
        return f'<Notification {self.type}>'

class SmsSettings(db.Model):
    """SMS gateway connection settings"""
    __tablename__ = 'sms_settings'

    id = db.Column(db.Integer, primary_key=True)
    mode = db.Column(db.String(10), default='cloud')  # local, cloud
    local_server_url = db.Column(db.String(255))
    cloud_server_url = db.Column(db.String(255), default='https://api.sms-gate.app/3rdparty/v1')
    username = db.Column(db.String(100))
    password = db.Column(db.String(255))
    is_active = db.Column(db.Boolean, default=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @staticmethod
    def get_settings():
        """Most recent settings row, or None when the gateway was never configured"""
        return SmsSettings.query.order_by(SmsSettings.id.desc()).first()

    @property
    def server_url(self):
        return self.local_server_url if self.mode == 'local' else self.cloud_server_url

    def __repr__(self):
        return f'<SmsSettings {self.mode}>'

class SmsLog(db.Model):
    """Outcome of every SMS attempt"""
    __tablename__ = 'sms_logs'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), index=True)
    phone = db.Column(db.String(20), nullable=False)
    message = db.Column(db.Text, nullable=False)
    status = db.Column(db.String(20), nullable=False)  # sent, failed, skipped
    error = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    def __repr__(self):
        return f'<SmsLog {self.status}>'

# Activity Log Model
class ActivityLog(db.Model):
    """Activity log for audit trail"""
    __tablename__ = 'activity_logs'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), index=True)
    action = db.Column(db.String(100), nullable=False)
    entity_type = db.Column(db.String(50))  # application, loan, payment
    entity_id = db.Column(db.Integer)
    description = db.Column(db.Text)
    extra_data = db.Column(db.Text)  # JSON
    ip_address = db.Column(db.String(50))
    user_agent = db.Column(db.String(255))
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    def __repr__(self):
        return f'<ActivityLog {self.action}>'
