"""
Routes package for the ChemSus order backend
"""
from routes.public import public_bp
from routes.otp import otp_bp
from routes.user.orders import orders_bp as user_orders_bp
from routes.user.payment import payment_bp as user_payment_bp
from routes.admin.orders import admin_orders_bp
from routes.admin.payments import admin_payments_bp
from routes.admin.notifications import admin_notifications_bp

__all__ = [
    'public_bp',
    'otp_bp',
    'user_orders_bp',
    'user_payment_bp',
    'admin_orders_bp',
    'admin_payments_bp',
    'admin_notifications_bp',
]
