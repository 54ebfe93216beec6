"""
Models package for the ChemSus order backend
"""
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

# Import all models here to ensure they're registered
from models.product_page import ProductPage
from models.shop_item import ShopItem
from models.pack_pricing import PackPricing
from models.settings import SiteSetting
from models.order import Order, OrderItem
from models.email_otp import EmailOtpSession
from models.payment import Payment
from models.order_message import OrderMessage
from models.admin_notification import AdminNotification

__all__ = [
    'db',
    'ProductPage',
    'ShopItem',
    'PackPricing',
    'SiteSetting',
    'Order',
    'OrderItem',
    'EmailOtpSession',
    'Payment',
    'OrderMessage',
    'AdminNotification',
]
