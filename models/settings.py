"""
Site settings model (key/value)
"""
from models import db


class SiteSetting(db.Model):
    """Key-value store for site configuration"""
    __tablename__ = 'site_settings'

    key = db.Column(db.String(100), primary_key=True)
    value = db.Column(db.Text, nullable=False, default='')

    def __repr__(self):
        return f'<SiteSetting {self.key}>'
