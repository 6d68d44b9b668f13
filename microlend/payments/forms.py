"""Payment forms"""
from wtforms import IntegerField, DecimalField, SelectField, StringField, TextAreaField
from wtforms.validators import InputRequired, Optional, Length
from microlend.utils.forms import ApiForm, lowercase

class PaymentForm(ApiForm):
    """Borrower payment submission"""
    loan_id = IntegerField('Loan', validators=[InputRequired()])
    term_id = IntegerField('Term', validators=[Optional()])
    amount = DecimalField('Amount', validators=[InputRequired()], places=2)
    payment_type = SelectField('Payment Type', choices=[
        ('full', 'Full'),
        ('partial', 'Partial')
    ], validators=[InputRequired()], filters=[lowercase])
    penalty_amount = DecimalField('Penalty Amount', validators=[Optional()], places=2)
    receipt_url = StringField('Receipt', validators=[Optional(), Length(max=255)])
    payment_method = StringField('Payment Method', validators=[Optional(), Length(max=100)])

    amount_fields = ('amount', 'penalty_amount')

class PaymentRejectionForm(ApiForm):
    """Payment rejection form"""
    rejection_reason = TextAreaField('Rejection Reason', validators=[InputRequired(), Length(max=2000)])
