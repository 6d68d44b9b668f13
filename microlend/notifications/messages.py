"""SMS bodies sent to borrowers"""
from flask import current_app

from microlend.utils.helpers import format_currency, month_label

def _signature():
    return f"\n\nBest regards,\n{current_app.config['COMPANY_NAME']}"

def loan_approved(borrower, loan, duration_label):
    return (
        f"Dear {borrower.name},\n\nYour loan application has been APPROVED!\n\n"
        f"Loan Details:\n"
        f"- Amount: {format_currency(loan.principal_amount)}\n"
        f"- Total Amount: {format_currency(loan.total_amount)}\n"
        f"- Payment Duration: {duration_label}\n"
        f"- Due Date: {loan.due_date.strftime('%m/%d/%Y')}"
        f"{_signature()}"
    )

def loan_rejected(borrower, reason=None):
    reason_text = f"\n\nReason: {reason}" if reason else ''
    return (
        f"Dear {borrower.name},\n\nYour loan application has been REJECTED.{reason_text}\n\n"
        f"If you have questions, please contact us."
        f"{_signature()}"
    )

def _month_text(term):
    return f" for the month of {month_label(term.due_date)}" if term else ''

def payment_approved(borrower, payment, term, remaining_amount):
    return (
        f"Dear {borrower.name},\n\nYour {payment.payment_type} payment of "
        f"{format_currency(payment.amount)}{_month_text(term)} has been APPROVED.\n\n"
        f"Loan ID: {payment.loan_id}\n"
        f"Remaining Balance: {format_currency(remaining_amount)}\n\n"
        f"Thank you for your timely payment."
        f"{_signature()}"
    )

def payment_rejected(borrower, payment, term, reason):
    return (
        f"Dear {borrower.name},\n\nYour payment of "
        f"{format_currency(payment.amount)}{_month_text(term)} has been REJECTED.\n\n"
        f"Reason: {reason}\n\n"
        f"Loan ID: {payment.loan_id}\n\n"
        f"Please contact us for assistance in resolving this matter."
        f"{_signature()}"
    )

def payment_reminder(borrower, term, days_until_due):
    plural = '' if days_until_due == 1 else 's'
    return (
        f"Dear {borrower.name},\n\nREMINDER: Your payment for Term {term.term_number} "
        f"({month_label(term.due_date)}) is due in {days_until_due} day{plural}.\n\n"
        f"Payment Details:\n"
        f"- Loan ID: {term.loan_id}\n"
        f"- Term Number: {term.term_number}\n"
        f"- Amount Due: {format_currency(term.outstanding_amount)}\n"
        f"- Due Date: {term.due_date.strftime('%m/%d/%Y')}\n\n"
        f"Please make your payment before the due date to avoid late fees."
        f"{_signature()}"
    )

def payment_overdue(borrower, term, days_overdue, late_fee):
    amount_due = term.outstanding_amount
    fee_lines = ''
    if late_fee > 0:
        fee_lines = (
            f"- Late Fee: {format_currency(late_fee)}\n"
            f"- Total Amount Due: {format_currency(amount_due + late_fee)}\n"
        )
    return (
        f"Dear {borrower.name},\n\nURGENT: Your payment for Term {term.term_number} "
        f"({month_label(term.due_date)}) is OVERDUE!\n\n"
        f"Payment Details:\n"
        f"- Loan ID: {term.loan_id}\n"
        f"- Term Number: {term.term_number}\n"
        f"- Amount Due: {format_currency(amount_due)}\n"
        f"- Days Overdue: {days_overdue}\n"
        f"{fee_lines}"
        f"- Due Date: {term.due_date.strftime('%m/%d/%Y')}\n\n"
        f"Please make your payment immediately to avoid additional penalties."
        f"{_signature()}"
    )
