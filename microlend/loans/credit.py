"""Credit score and loan limit adjustments"""
from microlend.utils.money import ZERO, round_money, to_decimal

CREDIT_SCORE_MIN = 0.0
CREDIT_SCORE_MAX = 100.0
DEFAULT_CREDIT_SCORE_BONUS = 5.0

def clamp_credit_score(score):
    return min(CREDIT_SCORE_MAX, max(CREDIT_SCORE_MIN, float(score or 0)))

def adjust_loan_limit(loan_limit, delta):
    return max(ZERO, round_money(to_decimal(loan_limit) + to_decimal(delta)))

def origination_adjustment(borrower, loan):
    """New loan limit once ``loan``'s principal is reserved"""
    return adjust_loan_limit(borrower.loan_limit, -to_decimal(loan.principal_amount))

def completion_adjustment(borrower, loan_type, loan):
    """(credit score, loan limit) after ``loan`` is fully repaid"""
    bonus = loan_type.credit_score_on_completion if loan_type else None
    if bonus is None:
        bonus = DEFAULT_CREDIT_SCORE_BONUS
    limit_bonus = loan_type.limit_increase_on_completion if loan_type else None

    credit_score = clamp_credit_score((borrower.credit_score or 0) + bonus)
    loan_limit = adjust_loan_limit(
        borrower.loan_limit,
        to_decimal(loan.principal_amount) + to_decimal(limit_bonus)
    )
    return credit_score, loan_limit

def apply_origination(borrower, loan):
    borrower.loan_limit = origination_adjustment(borrower, loan)

def apply_completion(borrower, loan_type, loan):
    borrower.credit_score, borrower.loan_limit = completion_adjustment(borrower, loan_type, loan)
