"""
Order message model: customer queries and staff replies
"""
from models import db
from datetime import datetime


class OrderMessage(db.Model):
    __tablename__ = 'order_messages'

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False, index=True)
    sender = db.Column(db.String(10), nullable=False, default='user')  # user or admin
    message = db.Column(db.Text, nullable=False, default='')
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'order_id': self.order_id,
            'sender': self.sender,
            'message': self.message,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<OrderMessage {self.id} from {self.sender}>'
