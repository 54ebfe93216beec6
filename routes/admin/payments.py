"""
Admin payment verification routes
"""
from flask import Blueprint, jsonify, request, current_app
from models import db
from models.payment import Payment
from utils.auth_utils import admin_required, get_current_identity
from utils.errors import Conflict, ResourceNotFound, ValidationFailed
from utils.payment_status_helper import sync_order_payment_status

admin_payments_bp = Blueprint('admin_payments', __name__, url_prefix='/api/admin')

REVIEW_STATUSES = ('VERIFIED', 'REJECTED')


@admin_payments_bp.route('/payments')
@admin_required
def payments():
    """Payments newest first, optionally filtered by status or order"""
    query = Payment.query
    status_filter = request.args.get('status', '').strip().upper()
    order_id = request.args.get('order_id', type=int)
    if status_filter:
        query = query.filter_by(status=status_filter)
    if order_id:
        query = query.filter_by(order_id=order_id)
    payments_list = query.order_by(Payment.created_at.desc(), Payment.id.desc()).all()
    return jsonify({'success': True, 'payments': [p.to_dict() for p in payments_list]})


@admin_payments_bp.route('/payments/<int:payment_id>/verify', methods=['POST'])
@admin_required
def verify_payment(payment_id):
    """
    Mark a submitted payment VERIFIED or REJECTED and resync the order's payment status.
    Input: status, optional note (stored on the order notes when given).
    """
    payment = Payment.query.get(payment_id)
    if payment is None:
        raise ResourceNotFound('Payment not found.')

    data = request.get_json(silent=True) or request.form
    status = data.get('status')
    status = status.strip().upper() if isinstance(status, str) else ''
    if status not in REVIEW_STATUSES:
        raise ValidationFailed(f"status must be one of {', '.join(REVIEW_STATUSES)}.")
    if payment.status == status:
        raise Conflict(f'Payment is already {status}.')

    order = payment.order
    payment.status = status
    note = data.get('note')
    if isinstance(note, str) and note.strip():
        order.notes = ((order.notes or '') + f"\n[payment #{payment.id} {status}] {note.strip()}").strip()[:1000]

    try:
        db.session.flush()
        sync_order_payment_status(order)
        if order.payment_status == 'PAID' and order.order_status == 'Processing':
            order.order_status = 'Confirmed'
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error reviewing payment #{payment_id}: {str(e)}", exc_info=True)
        return jsonify({'success': False, 'error': 'INTERNAL_ERROR', 'message': 'Failed to update payment.'}), 500

    identity = get_current_identity()
    current_app.logger.info(f"Payment #{payment.id} for order #{order.id} marked {status} by {identity.email or identity.id}")

    try:
        from utils.mail import send_payment_status_email
        send_payment_status_email(payment, order)
    except Exception as e:
        current_app.logger.error(f"Failed to email payment status for order #{order.id}: {str(e)}", exc_info=True)

    return jsonify({
        'success': True,
        'payment': payment.to_dict(),
        'order_payment_status': order.payment_status,
        'order_status': order.order_status,
    })
