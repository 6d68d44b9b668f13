"""Lending error taxonomy and JSON error handlers"""
from flask import jsonify

class LendingError(Exception):
    """Base class for every business-rule failure raised by the lending core.

    Each subclass carries a stable machine-readable ``kind`` and the HTTP status
    the API layer answers with. ``details`` holds whatever identifiers help the
    caller act on the failure (loan id, amount due, ...).
    """
    kind = 'Error'
    status_code = 400
    default_message = 'Request could not be processed'

    def __init__(self, message=None, **details):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def __str__(self):
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message

    def to_dict(self):
        return {
            'error': self.kind,
            'message': self.message,
            'details': {key: _json_safe(value) for key, value in self.details.items()}
        }

class Unauthorized(LendingError):
    kind = 'Unauthorized'
    status_code = 403
    default_message = 'You do not have permission to perform this action'

class NotFound(LendingError):
    kind = 'NotFound'
    status_code = 404
    default_message = 'Resource not found'

class InvalidAmount(LendingError):
    kind = 'InvalidAmount'
    default_message = 'Amount must be a number greater than 0'

class AmountExceeded(LendingError):
    kind = 'AmountExceeded'
    default_message = 'Amount exceeds what is owed'

class TermAlreadyPaid(LendingError):
    kind = 'TermAlreadyPaid'
    status_code = 409
    default_message = 'This term has already been paid'

class AlreadyProcessed(LendingError):
    kind = 'AlreadyProcessed'
    status_code = 409
    default_message = 'This record has already been processed'

class LoanAlreadyExists(LendingError):
    kind = 'LoanAlreadyExists'
    status_code = 409
    default_message = 'Loan already exists for this application'

class InterestRateNotFound(LendingError):
    kind = 'InterestRateNotFound'
    default_message = 'Interest rate not found for the selected payment duration'

class InvalidDuration(LendingError):
    kind = 'InvalidDuration'
    default_message = 'Payment duration has no usable month or day count'

class ValidationError(LendingError):
    kind = 'ValidationError'
    default_message = 'Missing required fields'

class ConcurrentUpdate(LendingError):
    kind = 'ConcurrentUpdate'
    status_code = 409
    default_message = 'Loan was modified by another request, please retry'

def _json_safe(value):
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, (list, tuple)):
        return [_json_safe(item) for item in value]
    if isinstance(value, dict):
        return {key: _json_safe(item) for key, item in value.items()}
    return str(value)

def register_error_handlers(app):
    """Render lending errors and unauthenticated access as JSON"""
    from microlend import login_manager

    @app.errorhandler(LendingError)
    def handle_lending_error(error):
        return jsonify(error.to_dict()), error.status_code

    @login_manager.unauthorized_handler
    def handle_unauthenticated():
        return jsonify({
            'error': 'Unauthenticated',
            'message': 'Please log in to access this resource.',
            'details': {}
        }), 401
