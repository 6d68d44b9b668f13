"""Side channels of the lending core: SMS, in-app notifications and the activity log"""
import json
import logging

from flask import current_app

from microlend import db

logger = logging.getLogger(__name__)

class Notifier:
    """Interface every notifier implements"""

    def send_sms(self, phone, message, user_id=None):
        raise NotImplementedError

    def notify_users(self, user_ids, type, title, message, link=None, entity_type=None, entity_id=None):
        raise NotImplementedError

    def notify_staff(self, type, title, message, link=None, entity_type=None, entity_id=None):
        raise NotImplementedError

    def log_activity(self, user_id, action, entity_type=None, entity_id=None, description=None,
                     extra_data=None, ip_address=None, user_agent=None):
        raise NotImplementedError

class NullNotifier(Notifier):
    """Drops everything"""

    def send_sms(self, phone, message, user_id=None):
        return False

    def notify_users(self, user_ids, type, title, message, link=None, entity_type=None, entity_id=None):
        pass

    def notify_staff(self, type, title, message, link=None, entity_type=None, entity_id=None):
        pass

    def log_activity(self, user_id, action, entity_type=None, entity_id=None, description=None,
                     extra_data=None, ip_address=None, user_agent=None):
        pass

class DatabaseNotifier(Notifier):
    """Notification and ActivityLog rows, SMS through the configured gateway"""

    def __init__(self, gateway=None):
        if gateway is None:
            from microlend.notifications.sms import SmsGateway
            gateway = SmsGateway()
        self.gateway = gateway

    def send_sms(self, phone, message, user_id=None):
        if not phone:
            logger.info('No phone number for user %s, SMS not sent', user_id)
            return False
        return self.gateway.send(phone, message, user_id)

    def notify_users(self, user_ids, type, title, message, link=None, entity_type=None, entity_id=None):
        from microlend.models import Notification

        for user_id in user_ids:
            db.session.add(Notification(
                user_id=user_id,
                type=type,
                title=title,
                message=message,
                link=link,
                entity_type=entity_type,
                entity_id=entity_id
            ))
        db.session.commit()
        logger.debug('Created %d %s notifications', len(user_ids), type)

    def notify_staff(self, type, title, message, link=None, entity_type=None, entity_id=None):
        from microlend.models import User, STAFF_ROLES

        staff = User.query.filter(User.role.in_(STAFF_ROLES), User.is_active.is_(True)).all()
        if not staff:
            logger.warning('No staff users to notify about %s', type)
            return
        self.notify_users([user.id for user in staff], type, title, message,
                          link=link, entity_type=entity_type, entity_id=entity_id)

    def log_activity(self, user_id, action, entity_type=None, entity_id=None, description=None,
                     extra_data=None, ip_address=None, user_agent=None):
        from microlend.models import ActivityLog

        log = ActivityLog(
            user_id=user_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            description=description,
            extra_data=json.dumps(extra_data, default=str) if extra_data else None,
            ip_address=ip_address,
            user_agent=user_agent
        )
        db.session.add(log)
        db.session.commit()

def init_notifier(app, notifier=None):
    """Install the notifier used by the lending services of ``app``"""
    app.extensions['notifier'] = notifier if notifier is not None else DatabaseNotifier()

def get_notifier():
    return current_app.extensions.get('notifier') or NullNotifier()

def dispatch(method, *args, **kwargs):
    """Call a notifier method by name; failures are logged, never raised"""
    try:
        return getattr(get_notifier(), method)(*args, **kwargs)
    except Exception:
        logger.exception('Side effect %s failed', method)
        db.session.rollback()
        return None
