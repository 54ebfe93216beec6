"""
Pack size pricing model definition
"""
from models import db
from datetime import datetime


class PackPricing(db.Model):
    """Pack sizes and tiered pricing per shop item"""
    __tablename__ = 'pack_pricing'
    __table_args__ = (
        db.UniqueConstraint('shop_item_id', 'pack_size', name='uq_pack_pricing_item_size'),
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_item_id = db.Column(db.Integer, db.ForeignKey('shop_items.id', ondelete='CASCADE'), nullable=False, index=True)
    pack_size = db.Column(db.String(64), nullable=False)
    biofm_usd = db.Column(db.Float, nullable=False, default=0)
    biofm_inr = db.Column(db.Float, nullable=False, default=0)
    our_price = db.Column(db.Float, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            'pack_size': self.pack_size,
            'biofm_usd': self.biofm_usd,
            'biofm_inr': self.biofm_inr,
            'our_price': self.our_price,
        }

    def __repr__(self):
        return f'<PackPricing {self.shop_item_id} {self.pack_size}>'
