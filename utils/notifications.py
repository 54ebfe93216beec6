"""
Admin notification utility functions
"""
from models import db
from models.admin_notification import AdminNotification
from flask import current_app


def create_notification(notification_type, title, message, order_id=None):
    """
    Create a new admin notification

    Args:
        notification_type: 'order', 'payment', 'message' or 'system'
        title: Notification title
        message: Notification message
        order_id: Optional order the notification is about

    Returns:
        AdminNotification object or None if creation failed
    """
    try:
        notification = AdminNotification(
            type=notification_type,
            title=title,
            message=message,
            order_id=order_id,
            is_read=False
        )
        db.session.add(notification)
        db.session.commit()
        return notification
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Failed to create notification: {str(e)}", exc_info=True)
        return None


def notify_new_order(order):
    title = "New Order Placed"
    message = f"{order.customername} ({order.email}) placed order #{order.id} for ₹{order.totalprice:.2f}"
    return create_notification('order', title, message, order_id=order.id)


def notify_payment_submitted(payment, order):
    title = "Payment Submitted"
    message = f"{order.customername} submitted a {payment.provider} payment of ₹{payment.amount:.2f} (ref {payment.payment_ref}) for order #{order.id}"
    return create_notification('payment', title, message, order_id=order.id)


def notify_customer_message(order, message):
    title = "New Customer Message"
    preview = message.message if len(message.message) <= 120 else message.message[:117] + "..."
    return create_notification('message', title, f"Order #{order.id}: {preview}", order_id=order.id)
