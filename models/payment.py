"""
Payment model definition
"""
from models import db
from datetime import datetime


class Payment(db.Model):
    """Manual UPI payment record submitted by the customer and verified by an admin"""
    __tablename__ = 'payments'

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False, index=True)
    provider = db.Column(db.String(20), nullable=False, default='UPI')
    payment_ref = db.Column(db.String(64), nullable=False, default='')  # UPI transaction reference (UTR)
    amount = db.Column(db.Float, nullable=False, default=0)
    currency = db.Column(db.String(3), nullable=False, default='INR')
    status = db.Column(db.String(20), nullable=False, default='PENDING', index=True)  # PENDING, VERIFIED, REJECTED
    receipt_path = db.Column(db.Text, nullable=False, default='')
    rating = db.Column(db.Integer, nullable=False, default=0)
    feedback = db.Column(db.Text, nullable=False, default='')
    customername = db.Column(db.Text, nullable=False, default='')
    email = db.Column(db.String(254), nullable=False, default='')
    phone = db.Column(db.String(20), nullable=False, default='')
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'order_id': self.order_id,
            'provider': self.provider,
            'payment_ref': self.payment_ref,
            'amount': self.amount,
            'currency': self.currency,
            'status': self.status,
            'receipt_path': self.receipt_path,
            'rating': self.rating,
            'feedback': self.feedback,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<Payment {self.id}>'
