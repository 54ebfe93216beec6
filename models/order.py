"""
Order and order line item models
"""
from models import db
from datetime import datetime

ORDER_STATUSES = ('Processing', 'Confirmed', 'Shipped', 'Delivered', 'Cancelled')
PAYMENT_STATUSES = ('PENDING', 'UNDER_REVIEW', 'PAID', 'REJECTED', 'REFUNDED')


class Order(db.Model):
    """Customer order placed through the OTP-gated checkout"""
    __tablename__ = 'orders'

    id = db.Column(db.Integer, primary_key=True)
    customername = db.Column(db.Text, nullable=False, default='')
    email = db.Column(db.String(254), nullable=False, default='', index=True)
    phone = db.Column(db.String(20), nullable=False, default='')
    company_name = db.Column(db.Text, default='')
    address = db.Column(db.Text, nullable=False, default='')
    city = db.Column(db.Text, nullable=False, default='')
    region = db.Column(db.Text, nullable=False, default='')
    pincode = db.Column(db.String(12), nullable=False, default='')
    country = db.Column(db.Text, nullable=False, default='India')
    productname = db.Column(db.Text, nullable=False, default='')  # summary of the line items
    quantity = db.Column(db.Float, nullable=False, default=1)
    unitprice = db.Column(db.Float, nullable=False, default=0)
    totalprice = db.Column(db.Float, nullable=False, default=0)
    payment_status = db.Column(db.String(20), nullable=False, default='PENDING', index=True)
    paymentmode = db.Column(db.String(20), nullable=False, default='PENDING')
    notes = db.Column(db.Text, default='')
    user_id = db.Column(db.String(64), nullable=True, index=True)  # subject of the customer's bearer token
    order_status = db.Column(db.String(20), nullable=False, default='Processing')
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    items = db.relationship('OrderItem', backref='order', lazy=True,
                            cascade='all, delete-orphan', passive_deletes=True)
    payments = db.relationship('Payment', backref='order', lazy=True,
                               cascade='all, delete-orphan', passive_deletes=True,
                               order_by='Payment.created_at')
    messages = db.relationship('OrderMessage', backref='order', lazy=True,
                               cascade='all, delete-orphan', passive_deletes=True,
                               order_by='OrderMessage.created_at')

    def is_owned_by(self, identity):
        """True when the bearer identity placed this order (same user id or same email)."""
        if identity is None:
            return False
        if self.user_id and identity.id and self.user_id == identity.id:
            return True
        return bool(identity.email) and self.email == identity.email

    def to_dict(self, detail=False):
        data = {
            'id': self.id,
            'customername': self.customername,
            'email': self.email,
            'phone': self.phone,
            'company_name': self.company_name,
            'address': self.address,
            'city': self.city,
            'region': self.region,
            'pincode': self.pincode,
            'country': self.country,
            'productname': self.productname,
            'quantity': self.quantity,
            'unitprice': self.unitprice,
            'totalprice': self.totalprice,
            'payment_status': self.payment_status,
            'paymentmode': self.paymentmode,
            'notes': self.notes,
            'order_status': self.order_status,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
        if detail:
            data['items'] = [item.to_dict() for item in self.items]
            data['payments'] = [payment.to_dict() for payment in self.payments]
            data['messages'] = [message.to_dict() for message in self.messages]
        return data

    def __repr__(self):
        return f'<Order {self.id}>'


class OrderItem(db.Model):
    """Line item within an order (cart purchase)"""
    __tablename__ = 'order_items'

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False, index=True)
    shop_item_id = db.Column(db.Integer, db.ForeignKey('shop_items.id', ondelete='RESTRICT'), nullable=False)
    product_name = db.Column(db.Text, nullable=False, default='')
    pack_size = db.Column(db.String(64), nullable=False, default='')
    unit_price = db.Column(db.Float, nullable=False, default=0)
    quantity = db.Column(db.Float, nullable=False, default=1)
    total_price = db.Column(db.Float, nullable=False, default=0)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def to_dict(self):
        return {
            'shop_item_id': self.shop_item_id,
            'product_name': self.product_name,
            'pack_size': self.pack_size,
            'unit_price': self.unit_price,
            'quantity': self.quantity,
            'total_price': self.total_price,
        }

    def __repr__(self):
        return f'<OrderItem {self.order_id} {self.product_name}>'
