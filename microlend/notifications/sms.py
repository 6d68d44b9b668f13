"""SMS delivery through an Android SMS gateway (local device or cloud relay)"""
import logging

import requests
from flask import current_app

from microlend import db
from microlend.models import SmsLog, SmsSettings

logger = logging.getLogger(__name__)

class SmsGateway:
    """Send text messages with the most recent SmsSettings row"""

    def __init__(self, timeout=None):
        self.timeout = timeout

    def _timeout(self):
        if self.timeout is not None:
            return self.timeout
        return current_app.config.get('SMS_TIMEOUT', 15)

    def send(self, phone, message, user_id=None):
        """Send one SMS; True only when the gateway accepted it"""
        settings = SmsSettings.get_settings()
        if not settings or not settings.is_active:
            logger.info('SMS settings not configured or inactive, skipping SMS to %s', phone)
            self._log(user_id, phone, message, 'skipped', 'SMS settings not configured or inactive')
            return False

        url = f"{(settings.server_url or '').rstrip('/')}/message"
        payload = {
            'textMessage': {'text': message},
            'phoneNumbers': [phone]
        }

        try:
            response = requests.post(
                url,
                json=payload,
                auth=(settings.username or '', settings.password or ''),
                timeout=self._timeout()
            )
        except requests.RequestException as exc:
            logger.error('SMS gateway unreachable: %s', exc)
            self._log(user_id, phone, message, 'failed', str(exc))
            return False

        if not response.ok:
            logger.error('SMS gateway error: %s - %s', response.status_code, response.text)
            self._log(user_id, phone, message, 'failed', f'HTTP {response.status_code}: {response.text}')
            return False

        logger.info('SMS sent to %s', phone)
        self._log(user_id, phone, message, 'sent')
        return True

    def _log(self, user_id, phone, message, status, error=None):
        db.session.add(SmsLog(
            user_id=user_id,
            phone=phone,
            message=message,
            status=status,
            error=error
        ))
        db.session.commit()
