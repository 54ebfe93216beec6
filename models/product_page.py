"""
Showcase products listed on the public products page (not purchasable)
"""
from models import db
from datetime import datetime


class ProductPage(db.Model):
    __tablename__ = 'products_page'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.Text, nullable=False)
    description = db.Column(db.Text, nullable=False, default='')
    image = db.Column(db.Text, nullable=False, default='')
    link = db.Column(db.Text, nullable=False, default='')
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'image': self.image,
            'link': self.link,
            'sort_order': self.sort_order,
        }

    def __repr__(self):
        return f'<ProductPage {self.name}>'
