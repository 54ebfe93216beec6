"""
Public routes: products page, shop catalog, public site settings, health check
"""
from datetime import datetime

from flask import Blueprint, jsonify
from models.product_page import ProductPage
from models.shop_item import ShopItem
from utils.settings_helper import get_public_settings

public_bp = Blueprint('public', __name__, url_prefix='/api')


@public_bp.route('/products')
def products_page():
    """Showcase products for the products page"""
    products = ProductPage.query.filter_by(is_active=True).order_by(ProductPage.sort_order, ProductPage.id).all()
    return jsonify([product.to_dict() for product in products])


@public_bp.route('/shop-items')
def shop_items():
    """Active shop items with their active pack sizes, in display order"""
    items = ShopItem.query.filter_by(is_active=True).order_by(ShopItem.sort_order, ShopItem.id).all()
    return jsonify([item.to_dict() for item in items])


@public_bp.route('/shop-items/<int:item_id>')
def shop_item_detail(item_id):
    item = ShopItem.query.get_or_404(item_id)
    if not item.is_active:
        return jsonify({"success": False, "error": "NOT_FOUND", "message": "Product not found."}), 404
    return jsonify(item.to_dict())


@public_bp.route('/settings/public')
def public_settings():
    return jsonify(get_public_settings())


@public_bp.route('/test')
def health():
    return jsonify({"status": "Backend running", "time": datetime.utcnow().isoformat()})
