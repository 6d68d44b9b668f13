"""Interest and installment schedule calculation

A loan's total payable is simple interest on the principal, pro-rated by the
duration's day count against a 365-day year, at the rate the loan type lists
for the duration's month count. The total is then split into equal monthly
terms, the last term absorbing the rounding remainder so the schedule sums to
the total exactly.
"""
import json
import math
import re
from datetime import datetime, timedelta
from decimal import Decimal

from dateutil.relativedelta import relativedelta

from microlend.errors import InterestRateNotFound, InvalidAmount, InvalidDuration, ValidationError
from microlend.utils.money import round_money, to_decimal

MONTH_COUNT_PATTERN = re.compile(r'(\d+)')

class InterestRateTable:
    """Annual percentage rates keyed by month count.

    Keys are non-negative integers and rates non-negative Decimals. Insertion
    order is kept because it decides the fallback rate for durations the table
    does not list.
    """

    def __init__(self, rates=None):
        self._rates = {}
        for months, rate in (rates or {}).items():
            try:
                months_key = int(str(months).strip())
                rate_value = to_decimal(rate)
            except (ValueError, InvalidAmount):
                raise ValidationError(f'Invalid interest rate entry {months!r}: {rate!r}')
            if months_key < 0 or rate_value < 0:
                raise ValidationError(f'Invalid interest rate entry {months!r}: {rate!r}')
            self._rates[months_key] = rate_value

    @classmethod
    def from_json(cls, raw):
        """Parse the stored JSON object; unusable data means no rate can be found"""
        if raw is None or str(raw).strip() == '':
            return cls()
        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            raise InterestRateNotFound('Interest rate table could not be parsed')
        if not isinstance(data, dict):
            raise InterestRateNotFound('Interest rate table could not be parsed')
        try:
            return cls(data)
        except ValidationError as exc:
            raise InterestRateNotFound(exc.message)

    def to_json(self):
        return json.dumps({str(months): float(rate) for months, rate in self._rates.items()})

    def rate_for(self, months):
        """Rate for the month count, else the first rate listed"""
        if not self._rates:
            raise InterestRateNotFound(months=months)
        if months in self._rates:
            return self._rates[months]
        return next(iter(self._rates.values()))

    def items(self):
        return self._rates.items()

    def __len__(self):
        return len(self._rates)

    def __contains__(self, months):
        return months in self._rates

    def __eq__(self, other):
        return isinstance(other, InterestRateTable) and list(self._rates.items()) == list(other._rates.items())

    def __repr__(self):
        return f'<InterestRateTable {dict(self._rates)}>'

def duration_months(label, days):
    """Month count of a payment duration.

    The first run of digits in the label wins ("6 months" -> 6); otherwise the
    day count is rounded up to 30-day months.
    """
    match = MONTH_COUNT_PATTERN.search(label or '')
    if match and int(match.group(1)) >= 1:
        return int(match.group(1))
    if not days or days <= 0:
        raise InvalidDuration(label=label, days=days)
    return math.ceil(days / 30)

def calculate_interest(principal, rate, days):
    """Simple interest for ``days`` at an annual percentage ``rate``"""
    principal = to_decimal(principal)
    rate = to_decimal(rate)
    return round_money(principal * rate / Decimal('100') * Decimal(days) / Decimal('365'))

def build_term_schedule(total_amount, months, start):
    """Split ``total_amount`` into ``months`` monthly terms starting one month after ``start``"""
    if months < 1:
        raise InvalidDuration(months=months)
    if isinstance(start, datetime):
        start = start.date()

    total = round_money(total_amount)
    installment = round_money(total / Decimal(months))

    terms = []
    for i in range(1, months + 1):
        if i == months:
            # Last term takes whatever the rounded installments left over
            amount = total - installment * (months - 1)
        else:
            amount = installment
        terms.append({
            'term_number': i,
            'due_date': start + relativedelta(months=i),
            'amount': amount,
        })
    return terms

def quote_loan(principal, rate_table, duration_label, duration_days, start):
    """Full pricing of a loan: rate, interest, total, final due date and terms"""
    principal = round_money(principal)
    if principal <= 0:
        raise InvalidAmount(principal=principal)
    if duration_days is not None and duration_days < 0:
        raise InvalidDuration(label=duration_label, days=duration_days)

    months = duration_months(duration_label, duration_days)
    rate = rate_table.rate_for(months)
    days = duration_days or 0
    interest = calculate_interest(principal, rate, days)
    total_amount = principal + interest

    if isinstance(start, datetime):
        start_date = start.date()
    else:
        start_date = start

    terms = build_term_schedule(total_amount, months, start_date)
    return {
        'principal_amount': principal,
        'interest_rate': rate,
        'months': months,
        'interest': interest,
        'total_amount': total_amount,
        'monthly_payment': terms[0]['amount'],
        'due_date': start_date + timedelta(days=days),
        'terms': terms,
    }
