"""Loan management routes"""
from flask import request, current_app, jsonify
from flask_login import login_required, current_user
from microlend.loans import loans_bp
from microlend.loans import services
from microlend.loans.forms import LoanApplicationForm, EvaluationForm, CreateLoanForm
from microlend.models import Loan, LoanApplication, STAFF_ROLES
from microlend.utils.decorators import role_required, staff_required, borrower_required

def _page(query):
    page = request.args.get('page', 1, type=int)
    return query.paginate(page=page, per_page=current_app.config['ITEMS_PER_PAGE'], error_out=False)

@loans_bp.route('/')
@login_required
@role_required('borrower', *STAFF_ROLES)
def list_loans():
    """List loans; borrowers see only their own"""
    status = request.args.get('status', '')

    query = Loan.query
    if current_user.is_borrower:
        query = query.filter_by(user_id=current_user.id)
    else:
        user_id = request.args.get('user_id', type=int)
        if user_id:
            query = query.filter_by(user_id=user_id)

    if status:
        query = query.filter_by(status=status.lower())

    loans = _page(query.order_by(Loan.created_at.desc()))
    return jsonify({
        'loans': [loan.to_dict() for loan in loans.items],
        'page': loans.page,
        'pages': loans.pages,
        'total': loans.total
    })

@loans_bp.route('/<int:loan_id>')
@login_required
def view_loan(loan_id):
    """Loan detail with balances reconciled from its terms"""
    return jsonify({'loan': services.get_loan_with_recalculated_balances(loan_id, current_user)})

@loans_bp.route('/<int:loan_id>/reconcile', methods=['POST'])
@login_required
@staff_required
def reconcile_loan(loan_id):
    """Force a reconciliation of one loan"""
    loan = services.reconcile_loan(loan_id)
    return jsonify({'loan': loan.to_dict(include_terms=True)})

@loans_bp.route('/applications')
@login_required
@role_required('borrower', *STAFF_ROLES)
def list_applications():
    """List loan applications; borrowers see only their own"""
    status = request.args.get('status', '')

    query = LoanApplication.query
    if current_user.is_borrower:
        query = query.filter_by(user_id=current_user.id)
    if status:
        query = query.filter_by(status=status.lower())

    applications = _page(query.order_by(LoanApplication.created_at.desc()))
    return jsonify({
        'applications': [application.to_dict() for application in applications.items],
        'page': applications.page,
        'pages': applications.pages,
        'total': applications.total
    })

@loans_bp.route('/applications', methods=['POST'])
@login_required
@borrower_required
def submit_application():
    """Submit a loan application"""
    form = LoanApplicationForm().validate_or_raise()
    application = services.submit_application(
        current_user,
        form.loan_type_id.data,
        form.payment_duration_id.data,
        form.requested_amount.data,
        form.purpose_description.data
    )
    return jsonify({'application': application.to_dict()}), 201

@loans_bp.route('/applications/<int:application_id>', methods=['DELETE'])
@login_required
def delete_application(application_id):
    """Delete a pending loan application"""
    services.delete_application(application_id, current_user)
    return jsonify({'message': 'Application deleted successfully'})

@loans_bp.route('/evaluate', methods=['POST'])
@login_required
@staff_required
def evaluate_application():
    """Approve or reject a pending application"""
    form = EvaluationForm().validate_or_raise()
    application, loan = services.evaluate_application(
        form.application_id.data,
        form.status.data,
        current_user,
        credit_score=form.credit_score.data,
        loan_limit=form.loan_limit.data,
        rejection_reason=form.rejection_reason.data
    )
    return jsonify({
        'application': application.to_dict(),
        'loan': loan.to_dict(include_terms=True) if loan else None
    })

@loans_bp.route('/create', methods=['POST'])
@login_required
@staff_required
def create_loan():
    """Originate a loan for an approved application"""
    form = CreateLoanForm().validate_or_raise()
    loan = services.create_loan_from_approved_application(
        form.application_id.data,
        form.principal_amount.data,
        current_user
    )
    return jsonify({'loan': loan.to_dict(include_terms=True)}), 201

@loans_bp.route('/credit')
@login_required
@borrower_required
def borrower_credit():
    """Credit standing of the current borrower"""
    return jsonify(services.get_borrower_credit(current_user))
