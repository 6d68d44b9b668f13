"""Base form for JSON request bodies"""
from flask_wtf import FlaskForm

from microlend.errors import InvalidAmount, ValidationError
from microlend.utils.helpers import json_formdata

def lowercase(value):
    return value.lower() if isinstance(value, str) else value

class ApiForm(FlaskForm):
    """Form fed from the request's JSON body, raising lending errors when invalid"""

    class Meta:
        csrf = False

    # Fields whose errors mean a bad monetary value rather than a missing one
    amount_fields = ()

    def __init__(self, *args, **kwargs):
        kwargs.setdefault('formdata', json_formdata())
        super().__init__(*args, **kwargs)

    def validate_or_raise(self):
        if self.validate():
            return self
        for name in self.amount_fields:
            field = self[name]
            if field.errors and field.raw_data:
                raise InvalidAmount(f'{field.label.text}: {field.errors[0]}', field=name)
        raise ValidationError(errors=self.errors)
