"""
Centralized payment status logic for orders.
Keeps order.payment_status in sync with its payment records.
"""
from models.payment import Payment


def derive_order_payment_status(order):
    """
    Any verified payment makes the order PAID. Otherwise the latest payment decides:
    PENDING -> UNDER_REVIEW, REJECTED -> REJECTED. No payments -> PENDING.
    """
    verified = Payment.query.filter_by(order_id=order.id, status='VERIFIED').first()
    if verified:
        return 'PAID'
    latest = Payment.query.filter_by(order_id=order.id).order_by(
        Payment.created_at.desc(), Payment.id.desc()
    ).first()
    if latest is None:
        return 'PENDING'
    if latest.status == 'REJECTED':
        return 'REJECTED'
    return 'UNDER_REVIEW'


def sync_order_payment_status(order):
    """
    Set order.payment_status from its payments and return it.
    Caller should commit. A manual REFUNDED status set by staff is left alone.
    """
    if order.payment_status == 'REFUNDED':
        return order.payment_status
    status = derive_order_payment_status(order)
    if order.payment_status != status:
        order.payment_status = status
    return status
