"""
Admin notification feed
"""
from models import db
from datetime import datetime

NOTIFICATION_TYPES = ('order', 'payment', 'message', 'system')


class AdminNotification(db.Model):
    """Feed entry shown to staff for new orders, payment submissions and customer messages"""
    __tablename__ = 'admin_notifications'

    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.String(20), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    message = db.Column(db.Text, nullable=False)
    order_id = db.Column(db.Integer, db.ForeignKey('orders.id', ondelete='CASCADE'), nullable=True)
    is_read = db.Column(db.Boolean, nullable=False, default=False, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def mark_read(self):
        self.is_read = True

    def to_dict(self):
        return {
            'id': self.id,
            'type': self.type,
            'title': self.title,
            'message': self.message,
            'order_id': self.order_id,
            'is_read': self.is_read,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<AdminNotification {self.id}: {self.type}>'
