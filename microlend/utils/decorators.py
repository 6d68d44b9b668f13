"""Utility decorators"""
from functools import wraps
from flask_login import current_user
from microlend import login_manager
from microlend.errors import Unauthorized
from microlend.models import STAFF_ROLES

def role_required(*roles):
    """Decorator to require one of the given roles"""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not current_user.is_authenticated:
                return login_manager.unauthorized()

            if current_user.role not in roles:
                raise Unauthorized(role=current_user.role)

            return f(*args, **kwargs)
        return decorated_function
    return decorator

def staff_required(f):
    """Decorator to require admin or loan officer role"""
    return role_required(*STAFF_ROLES)(f)

def borrower_required(f):
    """Decorator to require borrower role"""
    return role_required('borrower')(f)
