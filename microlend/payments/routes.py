"""Payment routes"""
from flask import request, current_app, jsonify
from flask_login import login_required, current_user
from microlend.payments import payments_bp
from microlend.payments import services
from microlend.payments.forms import PaymentForm, PaymentRejectionForm
from microlend.models import Payment, STAFF_ROLES
from microlend.utils.decorators import role_required, staff_required, borrower_required

@payments_bp.route('/')
@login_required
@role_required('borrower', *STAFF_ROLES)
def list_payments():
    """List payments; borrowers see only their own"""
    page = request.args.get('page', 1, type=int)
    status = request.args.get('status', '')
    loan_id = request.args.get('loan_id', type=int)

    query = Payment.query
    if current_user.is_borrower:
        query = query.filter_by(user_id=current_user.id)
    if status:
        query = query.filter_by(status=status.lower())
    if loan_id:
        query = query.filter_by(loan_id=loan_id)

    payments = query.order_by(Payment.created_at.desc()).paginate(
        page=page, per_page=current_app.config['ITEMS_PER_PAGE'], error_out=False
    )
    return jsonify({
        'payments': [payment.to_dict() for payment in payments.items],
        'page': payments.page,
        'pages': payments.pages,
        'total': payments.total
    })

@payments_bp.route('/', methods=['POST'])
@login_required
@borrower_required
def submit_payment():
    """Submit a payment for staff approval"""
    form = PaymentForm().validate_or_raise()
    payment = services.submit_payment(
        form.loan_id.data,
        current_user,
        form.amount.data,
        form.payment_type.data,
        term_id=form.term_id.data,
        penalty_amount=form.penalty_amount.data,
        receipt_url=form.receipt_url.data or None,
        payment_method=form.payment_method.data or None
    )
    return jsonify({'payment': payment.to_dict()}), 201

@payments_bp.route('/<int:payment_id>/approve', methods=['POST'])
@login_required
@staff_required
def approve_payment(payment_id):
    """Approve a pending payment"""
    payment = services.approve_payment(payment_id, current_user)
    return jsonify({
        'message': 'Payment approved successfully',
        'payment': payment.to_dict(),
        'loan': payment.loan.to_dict()
    })

@payments_bp.route('/<int:payment_id>/reject', methods=['POST'])
@login_required
@staff_required
def reject_payment(payment_id):
    """Reject a pending payment"""
    form = PaymentRejectionForm().validate_or_raise()
    payment = services.reject_payment(payment_id, current_user, form.rejection_reason.data)
    return jsonify({
        'message': 'Payment rejected successfully',
        'payment': payment.to_dict()
    })
