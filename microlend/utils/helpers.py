"""Helper functions"""
from flask import current_app, has_request_context, request
from werkzeug.datastructures import MultiDict

def json_formdata():
    """Request JSON body as form data for WTForms; empty values are dropped"""
    payload = request.get_json(silent=True) or {}
    data = MultiDict()
    for key, value in payload.items():
        if value is None or value == '':
            continue
        data.add(key, str(value))
    return data

def get_client_ip():
    """Client address, honouring a reverse proxy"""
    if not has_request_context():
        return None
    forwarded = request.headers.get('X-Forwarded-For')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.remote_addr

def get_user_agent():
    if not has_request_context():
        return None
    agent = request.headers.get('User-Agent')
    return agent[:255] if agent else None

def format_currency(amount, currency_symbol=None):
    """Format amount as currency"""
    if currency_symbol is None:
        currency_symbol = current_app.config.get('CURRENCY_SYMBOL', '₱')
    return f"{currency_symbol}{float(amount or 0):,.2f}"

def month_label(value):
    """Calendar month a term covers, e.g. 'March 2026'"""
    return value.strftime('%B %Y')
