"""
Customer payment routes (manual UPI: customer submits the reference, staff verify)
"""
from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required
from models import db
from models.payment import Payment
from routes.user.orders import get_owned_order
from utils.errors import Conflict, ValidationFailed
from utils.payment_gateway import validate_payment_reference
from utils.payment_status_helper import sync_order_payment_status

payment_bp = Blueprint('user_payment', __name__, url_prefix='/api/orders')

GENERIC_ERROR = "Failed to record payment. Please try again."
MAX_FEEDBACK_LENGTH = 1000


def _parse_payment(data, order):
    errors = []
    payment_ref = data.get('payment_ref')
    payment_ref = payment_ref.strip() if isinstance(payment_ref, str) else ''
    if not validate_payment_reference(payment_ref):
        errors.append('Transaction reference must be 6 to 64 letters, digits or dashes.')

    amount = data.get('amount', order.totalprice)
    if isinstance(amount, bool) or not isinstance(amount, (int, float)) or amount <= 0:
        errors.append('Amount must be a positive number.')

    rating = data.get('rating', 0)
    if isinstance(rating, bool) or not isinstance(rating, int) or not 0 <= rating <= 5:
        errors.append('Rating must be between 0 and 5.')

    receipt_url = data.get('receipt_url') or ''
    if not isinstance(receipt_url, str) or len(receipt_url) > 500:
        errors.append('Receipt URL is too long.')

    feedback = data.get('feedback') or ''
    if not isinstance(feedback, str) or len(feedback) > MAX_FEEDBACK_LENGTH:
        errors.append(f'Feedback must be at most {MAX_FEEDBACK_LENGTH} characters.')

    if errors:
        raise ValidationFailed(errors=errors)
    return {
        'payment_ref': payment_ref,
        'amount': float(amount),
        'rating': rating,
        'receipt_path': receipt_url.strip(),
        'feedback': feedback.strip(),
    }


@payment_bp.route('/<int:order_id>/payments', methods=['POST'])
@login_required
def submit_payment(order_id):
    """
    Record a UPI payment for staff verification.
    Input: payment_ref (UTR), optional amount (defaults to order total), receipt_url, rating, feedback.
    """
    order = get_owned_order(order_id)
    if order.payment_status == 'PAID':
        raise Conflict('This order has already been paid.')
    if order.order_status == 'Cancelled':
        raise Conflict('This order has been cancelled.')

    data = request.get_json(silent=True) or request.form
    fields = _parse_payment(data, order)

    duplicate = Payment.query.filter_by(order_id=order.id, payment_ref=fields['payment_ref']).first()
    if duplicate:
        raise Conflict('This transaction reference was already submitted for this order.')

    try:
        payment = Payment(
            order_id=order.id,
            provider='UPI',
            currency='INR',
            status='PENDING',  # Admin will verify and update to VERIFIED or REJECTED
            customername=order.customername,
            email=order.email,
            phone=order.phone,
            **fields,
        )
        db.session.add(payment)
        db.session.flush()
        order.paymentmode = 'UPI'
        sync_order_payment_status(order)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Failed to record payment for order #{order.id}: {str(e)}", exc_info=True)
        return jsonify({"success": False, "error": "INTERNAL_ERROR", "message": GENERIC_ERROR}), 500

    # Notify admins of new payment
    try:
        from utils.mail import send_payment_notification
        send_payment_notification(payment, order)
    except Exception as e:
        current_app.logger.error(f"Failed to send admin notification for payment: {str(e)}", exc_info=True)
        # Don't fail payment if notification fails

    try:
        from utils.notifications import notify_payment_submitted
        notify_payment_submitted(payment, order)
    except Exception as e:
        current_app.logger.error(f"Failed to create admin notification for payment: {str(e)}", exc_info=True)

    return jsonify({
        "success": True,
        "message": "Payment submitted. Your order will be confirmed after verification.",
        "payment": payment.to_dict(),
        "payment_status": order.payment_status,
    }), 201
