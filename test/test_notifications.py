"""
Test SMS delivery, notification dispatch and the due-date poller
"""
import json
from datetime import date
from unittest import mock

import requests

from microlend import db
from microlend.models import ActivityLog, Loan, LoanType, Notification, PaymentDuration, SmsLog, SmsSettings
from microlend.notifications import DatabaseNotifier, dispatch
from microlend.notifications.sms import SmsGateway
from microlend.notifications.worker import check_and_send_notifications, send_due_reminders

def _settings(is_active=True):
    settings = SmsSettings(mode='cloud', cloud_server_url='https://sms.example.com/api/',
                           username='gateway', password='secret', is_active=is_active)
    db.session.add(settings)
    db.session.commit()
    return settings

@mock.patch('microlend.notifications.sms.requests.post')
def test_gateway_sends_message(post, app, borrower):
    _settings()
    post.return_value.ok = True

    assert SmsGateway().send(borrower.phone, 'Hello', borrower.id) is True

    post.assert_called_once_with(
        'https://sms.example.com/api/message',
        json={'textMessage': {'text': 'Hello'}, 'phoneNumbers': [borrower.phone]},
        auth=('gateway', 'secret'),
        timeout=1
    )
    log = SmsLog.query.one()
    assert log.status == 'sent'
    assert log.user_id == borrower.id

@mock.patch('microlend.notifications.sms.requests.post')
def test_gateway_failures_are_logged(post, app, borrower):
    _settings()
    post.return_value.ok = False
    post.return_value.status_code = 500
    post.return_value.text = 'gateway down'

    assert SmsGateway().send(borrower.phone, 'Hello') is False

    post.side_effect = requests.ConnectionError('unreachable')
    assert SmsGateway(timeout=5).send(borrower.phone, 'Hello') is False

    logs = SmsLog.query.order_by(SmsLog.id).all()
    assert [log.status for log in logs] == ['failed', 'failed']
    assert logs[0].error == 'HTTP 500: gateway down'
    assert 'unreachable' in logs[1].error

@mock.patch('microlend.notifications.sms.requests.post')
def test_gateway_skips_without_active_settings(post, app, borrower):
    assert SmsGateway().send(borrower.phone, 'Hello') is False
    _settings(is_active=False)
    assert SmsGateway().send(borrower.phone, 'Hello') is False

    post.assert_not_called()
    assert [log.status for log in SmsLog.query.all()] == ['skipped', 'skipped']

def test_database_notifier_writes_rows(staff, borrower):
    gateway = mock.Mock()
    notifier = DatabaseNotifier(gateway=gateway)

    notifier.notify_staff('APPLICATION_PENDING', 'New Loan Application', 'Juan applied',
                          entity_type='application', entity_id=7)
    notifier.notify_users([borrower.id], 'LOAN_APPROVED', 'Loan Approved', 'Approved')
    notifier.log_activity(staff.id, 'approve_application', entity_type='application', entity_id=7,
                          extra_data={'reason': None, 'amount': 10})

    assert [(row.user_id, row.type) for row in Notification.query.order_by(Notification.id)] == [
        (staff.id, 'APPLICATION_PENDING'), (borrower.id, 'LOAN_APPROVED')
    ]
    activity = ActivityLog.query.one()
    assert activity.action == 'approve_application'
    assert json.loads(activity.extra_data) == {'reason': None, 'amount': 10}

    assert notifier.send_sms(None, 'Hello', borrower.id) is False
    gateway.send.assert_not_called()
    notifier.send_sms(borrower.phone, 'Hello', borrower.id)
    gateway.send.assert_called_once_with(borrower.phone, 'Hello', borrower.id)

def test_dispatch_swallows_side_effect_failures(app, monkeypatch):
    broken = mock.Mock()
    broken.send_sms.side_effect = RuntimeError('modem on fire')
    monkeypatch.setitem(app.extensions, 'notifier', broken)

    assert dispatch('send_sms', '09171234567', 'Hello') is None
    broken.send_sms.assert_called_once_with('09171234567', 'Hello')

def test_reminder_flag_set_only_after_delivery(app, make_loan, notifier):
    loan = make_loan()
    today = date(2026, 1, 28)

    notifier.sms_result = False
    assert send_due_reminders(notifier, today, 7) == 0
    assert loan.terms[0].reminder_sms_sent is False

    notifier.sms_result = True
    assert send_due_reminders(notifier, today, 7) == 1
    assert send_due_reminders(notifier, today, 7) == 0

    db.session.refresh(loan)
    assert [term.reminder_sms_sent for term in loan.terms] == [True, False, False]
    assert 'due in 4 days' in notifier.sms[-1]['message']

def test_poller_marks_overdue_and_sends_notice(app, make_loan, notifier):
    loan = make_loan()

    result = check_and_send_notifications(today=date(2026, 2, 5), notifier=notifier)

    assert result == {'reminders_sent': 0, 'loans_marked_overdue': 1, 'overdue_notices_sent': 1}
    loan = db.session.get(Loan, loan.id)
    assert loan.status == 'overdue'
    assert loan.terms[0].overdue_sms_sent is True
    message = notifier.sms[-1]['message']
    assert 'OVERDUE' in message
    assert 'Days Overdue: 4' in message
    assert 'Late Fee: ₱40.00' in message

    again = check_and_send_notifications(today=date(2026, 2, 6), notifier=notifier)
    assert again == {'reminders_sent': 0, 'loans_marked_overdue': 0, 'overdue_notices_sent': 0}

def test_seed_reference_data_is_idempotent(app):
    from run import LOAN_TYPES, PAYMENT_DURATIONS, seed_reference_data

    assert seed_reference_data() == len(PAYMENT_DURATIONS) + len(LOAN_TYPES)
    assert seed_reference_data() == 0
    personal = LoanType.query.filter_by(name='Personal Loan').one()
    assert personal.interest_rates.rate_for(6) == 9
    assert PaymentDuration.query.count() == len(PAYMENT_DURATIONS)
