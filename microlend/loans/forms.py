"""Loan forms"""
from wtforms import IntegerField, DecimalField, FloatField, SelectField, TextAreaField
from wtforms.validators import InputRequired, Optional, NumberRange, Length
from microlend.utils.forms import ApiForm, lowercase

class LoanApplicationForm(ApiForm):
    """Borrower loan application"""
    loan_type_id = IntegerField('Loan Type', validators=[InputRequired()])
    payment_duration_id = IntegerField('Payment Duration', validators=[InputRequired()])
    requested_amount = DecimalField('Requested Amount', validators=[InputRequired()], places=2)
    purpose_description = TextAreaField('Purpose', validators=[Optional(), Length(max=2000)])

    amount_fields = ('requested_amount',)

class EvaluationForm(ApiForm):
    """Application evaluation form"""
    application_id = IntegerField('Application', validators=[InputRequired()])
    status = SelectField('Decision', choices=[
        ('approved', 'Approve'),
        ('rejected', 'Reject')
    ], validators=[InputRequired()], filters=[lowercase])
    credit_score = FloatField('Credit Score', validators=[Optional(), NumberRange(min=0, max=100)])
    loan_limit = DecimalField('Loan Limit', validators=[Optional(), NumberRange(min=0)], places=2)
    rejection_reason = TextAreaField('Rejection Reason', validators=[Optional(), Length(max=2000)])

    amount_fields = ('loan_limit',)

class CreateLoanForm(ApiForm):
    """Originate a loan for an approved application"""
    application_id = IntegerField('Application', validators=[InputRequired()])
    principal_amount = DecimalField('Principal Amount', validators=[InputRequired()], places=2)

    amount_fields = ('principal_amount',)
