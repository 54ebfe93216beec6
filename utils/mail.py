"""
Email utility functions
"""
from flask_mail import Mail, Message
from flask import current_app

mail = Mail()


def mail_configured():
    """True when Flask-Mail is initialised and an SMTP server and account are set."""
    if 'mail' not in current_app.extensions:
        return False
    return bool(current_app.config.get('MAIL_SERVER') and current_app.config.get('MAIL_USERNAME'))


def send_email(subject, recipients, body, html=None):
    """
    Send an email

    Args:
        subject: Email subject
        recipients: List of recipient email addresses
        body: Plain text body
        html: HTML body (optional)
    """
    msg = Message(
        subject=subject,
        recipients=recipients,
        body=body,
        html=html
    )
    mail.send(msg)


def send_checkout_otp_email(email: str, otp: str, ttl_seconds: int) -> bool:
    """
    Send the checkout verification code. Returns False when mail is not configured
    so the caller can fall back; SMTP errors are logged and re-raised.
    """
    if not mail_configured():
        return False

    minutes = max(1, ttl_seconds // 60)
    subject = "Your ChemSus order verification code"
    body = f"Your verification code is: {otp}. It expires in {minutes} minutes. Do not share this code."
    html = _otp_email_html(otp, minutes)
    msg = Message(
        subject=subject,
        recipients=[email],
        body=body,
        html=html,
    )
    try:
        mail.send(msg)
    except Exception as e:
        current_app.logger.error(f"SMTP error sending OTP email to {email}: {str(e)}", exc_info=True)
        raise
    return True


def _otp_email_html(otp: str, minutes: int) -> str:
    """Clean HTML template for OTP email."""
    return f"""
    <!DOCTYPE html>
    <html>
    <head><meta charset="utf-8"><title>Confirm Your Order</title></head>
    <body style="font-family: system-ui, sans-serif; max-width: 480px; margin: 0 auto; padding: 24px;">
        <h2 style="color: #1b4332;">Confirm Your Order</h2>
        <p>Use the code below to verify your email and place your order:</p>
        <p style="font-size: 28px; font-weight: bold; letter-spacing: 6px; color: #2d6a4f;">{otp}</p>
        <p style="color: #666;">This code expires in {minutes} minutes. Do not share it with anyone.</p>
        <hr style="border: none; border-top: 1px solid #eee; margin: 24px 0;">
        <p style="font-size: 12px; color: #999;">If you did not try to place an order, you can ignore this email.</p>
    </body>
    </html>
    """


def get_admin_emails():
    """Staff addresses for notifications (ADMIN_EMAILS)."""
    return list(current_app.config.get('ADMIN_EMAILS') or [])


def send_admin_notification(subject, body, html=None):
    """
    Send notification email to all configured admins.
    Silently skipped if mail is not configured.
    """
    if not mail_configured():
        return

    admin_emails = get_admin_emails()
    if not admin_emails:
        return

    try:
        send_email(subject, admin_emails, body, html)
    except Exception as e:
        current_app.logger.error(f"Error sending admin notification: {str(e)}", exc_info=True)
        # Don't raise - admin notifications are non-critical


def send_customer_email(order, subject, body, html=None):
    """Best-effort email to the customer of an order."""
    if not mail_configured() or not order.email:
        return
    try:
        send_email(subject, [order.email], body, html)
    except Exception as e:
        current_app.logger.error(f"Error emailing customer for order #{order.id}: {str(e)}", exc_info=True)


def send_new_order_notification(order):
    """Notify admins of a newly placed order"""
    subject = f"New Order #{order.id} - ₹{order.totalprice:.2f}"
    lines = "\n".join(
        f"  - {item.product_name} ({item.pack_size}) x {item.quantity:g} = ₹{item.total_price:.2f}"
        for item in order.items
    )
    body = f"""
A new order has been placed:

Order: #{order.id}
Customer: {order.customername} ({order.email})
Phone: {order.phone}
Ship to: {order.address}, {order.city}, {order.region} {order.pincode}, {order.country}
Items:
{lines}
Total: ₹{order.totalprice:.2f}

View the order in the admin panel.
"""
    html = _order_table_html("New Order", "A new order has been placed:", [
        ("Order", f"#{order.id}"),
        ("Customer", f"{order.customername} ({order.email})"),
        ("Phone", order.phone),
        ("Products", order.productname),
        ("Total", f"₹{order.totalprice:.2f}"),
    ])
    send_admin_notification(subject, body, html)


def send_payment_notification(payment, order):
    """Notify admins that a customer submitted a UPI payment for review"""
    subject = f"Payment Submitted - Order #{order.id} - ₹{payment.amount:.2f}"
    body = f"""
A payment has been submitted for verification:

Order: #{order.id}
Customer: {order.customername} ({order.email})
Amount: ₹{payment.amount:.2f}
Provider: {payment.provider}
Reference: {payment.payment_ref}

Verify the payment in the admin panel.
"""
    html = _order_table_html("Payment Submitted", "A payment has been submitted for verification:", [
        ("Order", f"#{order.id}"),
        ("Customer", f"{order.customername} ({order.email})"),
        ("Amount", f"₹{payment.amount:.2f}"),
        ("Provider", payment.provider),
        ("Reference", payment.payment_ref),
    ])
    send_admin_notification(subject, body, html)


def send_payment_status_email(payment, order):
    """Tell the customer whether their payment was verified or rejected"""
    if payment.status == 'VERIFIED':
        subject = f"Payment received for order #{order.id}"
        text = f"We have verified your payment of ₹{payment.amount:.2f} (ref {payment.payment_ref}). Your order is being processed."
    else:
        subject = f"Payment for order #{order.id} could not be verified"
        text = (f"We could not verify your payment of ₹{payment.amount:.2f} (ref {payment.payment_ref}). "
                "Please check the reference number or reply to this order from your account.")
    body = f"Hello {order.customername},\n\n{text}\n\nChemSus Team\n"
    send_customer_email(order, subject, body)


def send_order_reply_email(order, message):
    """Forward a staff reply to the customer"""
    subject = f"Update on your order #{order.id}"
    body = f"Hello {order.customername},\n\nOur team replied to your order #{order.id}:\n\n{message.message}\n\nChemSus Team\n"
    send_customer_email(order, subject, body)


def send_customer_message_notification(order, message):
    """Notify admins of a new customer query on an order"""
    subject = f"New message on order #{order.id}"
    body = f"{order.customername} ({order.email}) wrote on order #{order.id}:\n\n{message.message}\n"
    send_admin_notification(subject, body)


def _order_table_html(title, intro, rows) -> str:
    """HTML template for admin notifications (label/value table)"""
    cells = "".join(
        f'<tr><td style="padding: 8px; border-bottom: 1px solid #eee;"><strong>{label}:</strong></td>'
        f'<td style="padding: 8px; border-bottom: 1px solid #eee;">{value}</td></tr>'
        for label, value in rows
    )
    return f"""
    <!DOCTYPE html>
    <html>
    <head><meta charset="utf-8"><title>{title}</title></head>
    <body style="font-family: system-ui, sans-serif; max-width: 600px; margin: 0 auto; padding: 24px;">
        <h2 style="color: #1b4332;">{title}</h2>
        <p>{intro}</p>
        <table style="width: 100%; border-collapse: collapse; margin: 20px 0;">{cells}</table>
    </body>
    </html>
    """
