"""
Shop item model definition
"""
import json

from models import db
from datetime import datetime


class ShopItem(db.Model):
    """Buyable product shown in the shop"""
    __tablename__ = 'shop_items'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.Text, nullable=False)
    subtitle = db.Column(db.Text, nullable=False, default='')
    features_json = db.Column(db.Text, nullable=False, default='[]')
    price = db.Column(db.Float, nullable=False, default=0)
    stock_status = db.Column(db.String(32), nullable=False, default='in-stock')  # in-stock, out-of-stock, pre-order
    show_badge = db.Column(db.Boolean, nullable=False, default=False)
    badge = db.Column(db.Text, nullable=False, default='')
    more_link = db.Column(db.Text, nullable=False, default='')
    image = db.Column(db.Text, nullable=False, default='')
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    packs = db.relationship('PackPricing', backref='shop_item', lazy=True,
                            cascade='all, delete-orphan', passive_deletes=True,
                            order_by='PackPricing.sort_order')

    @property
    def features(self):
        try:
            value = json.loads(self.features_json or '[]')
        except ValueError:
            return []
        return value if isinstance(value, list) else []

    def to_dict(self, include_packs=True):
        data = {
            'id': self.id,
            'name': self.name,
            'subtitle': self.subtitle,
            'features': self.features,
            'price': self.price,
            'stock_status': self.stock_status,
            'badge': self.badge if self.show_badge else '',
            'more_link': self.more_link,
            'image': self.image,
        }
        if include_packs:
            data['packs'] = [p.to_dict() for p in self.packs if p.is_active]
        return data

    def __repr__(self):
        return f'<ShopItem {self.name}>'
