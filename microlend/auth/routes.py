"""Authentication routes"""
from datetime import datetime
from flask import jsonify
from flask_login import login_user, logout_user, current_user, login_required
from microlend import db
from microlend.auth import auth_bp
from microlend.auth.forms import LoginForm
from microlend.models import User
from microlend.notifications import dispatch
from microlend.utils.helpers import get_client_ip, get_user_agent

@auth_bp.route('/login', methods=['POST'])
def login():
    """User login"""
    form = LoginForm().validate_or_raise()
    user = User.query.filter_by(email=form.email.data.strip().lower()).first()

    if user is None or not user.check_password(form.password.data):
        return jsonify({
            'error': 'InvalidCredentials',
            'message': 'Invalid email or password',
            'details': {}
        }), 401

    if not user.is_active:
        return jsonify({
            'error': 'Unauthorized',
            'message': 'Your account has been deactivated. Please contact administrator.',
            'details': {}
        }), 403

    login_user(user, remember=form.remember_me.data)
    user.last_login = datetime.utcnow()
    db.session.commit()

    dispatch('log_activity', user.id, 'login', description=f'User {user.email} logged in',
             ip_address=get_client_ip(), user_agent=get_user_agent())
    return jsonify({'user': user.to_dict()})

@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    """User logout"""
    dispatch('log_activity', current_user.id, 'logout', description=f'User {current_user.email} logged out',
             ip_address=get_client_ip(), user_agent=get_user_agent())
    logout_user()
    return jsonify({'message': 'You have been logged out.'})

@auth_bp.route('/me')
@login_required
def me():
    """Current user"""
    return jsonify({'user': current_user.to_dict()})
