"""Authentication forms"""
from wtforms import StringField, PasswordField, BooleanField
from wtforms.validators import InputRequired, Length
from microlend.utils.forms import ApiForm

class LoginForm(ApiForm):
    """Login form"""
    email = StringField('Email', validators=[InputRequired(), Length(max=120)])
    password = PasswordField('Password', validators=[InputRequired()])
    remember_me = BooleanField('Remember Me', false_values=('false', 'False', '0', ''))
