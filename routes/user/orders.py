"""
Customer order routes: OTP-gated checkout, order history, order messages
"""
from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required
from models import db
from models.order import Order, OrderItem
from models.order_message import OrderMessage
from models.pack_pricing import PackPricing
from models.shop_item import ShopItem
from utils.auth_utils import get_current_identity
from utils.errors import ApiError, Forbidden, ResourceNotFound, ValidationFailed
from utils.otp_engine import get_otp_engine
from utils.payment_gateway import build_upi_uri
from utils.validators import normalize_email, validate_email, validate_phone, validate_pincode

orders_bp = Blueprint('user_orders', __name__, url_prefix='/api/orders')

GENERIC_ERROR = "Something went wrong. Please try again later."
MAX_ITEMS_PER_ORDER = 50
MAX_QUANTITY = 10000
MAX_MESSAGE_LENGTH = 2000
PAYMENT_MODES = ('UPI', 'BANK_TRANSFER', 'PENDING')


def _text(data, key, limit=500):
    value = data.get(key)
    if not isinstance(value, str):
        return ''
    return value.strip()[:limit]


def _parse_order_fields(data):
    """Validate customer and shipping fields. Raises ValidationFailed with every problem found."""
    fields = {
        'customername': _text(data, 'customername', 120),
        'email': normalize_email(data.get('email')),
        'phone': _text(data, 'phone', 20),
        'company_name': _text(data, 'company_name', 200),
        'address': _text(data, 'address', 500),
        'city': _text(data, 'city', 100),
        'region': _text(data, 'region', 100),
        'pincode': _text(data, 'pincode', 12),
        'country': _text(data, 'country', 100) or 'India',
        'notes': _text(data, 'notes', 1000),
        'paymentmode': (_text(data, 'paymentmode', 20) or 'UPI').upper(),
    }

    errors = []
    if not fields['customername']:
        errors.append('Customer name is required.')
    if not validate_email(fields['email']):
        errors.append('Please enter a valid email address.')
    if not validate_phone(fields['phone']):
        errors.append('Please enter a valid phone number (10 to 15 digits).')
    if not fields['address']:
        errors.append('Address is required.')
    if not fields['city']:
        errors.append('City is required.')
    if not fields['region']:
        errors.append('State/region is required.')
    if not validate_pincode(fields['pincode']):
        errors.append('Please enter a valid pincode.')
    if fields['paymentmode'] not in PAYMENT_MODES:
        errors.append('Unsupported payment mode.')
    if errors:
        raise ValidationFailed(errors=errors)
    return fields


def _price_cart(raw_items):
    """
    Price every cart line from the active pack pricing; client-sent prices are ignored.
    Returns a list of OrderItem (not yet attached to an order).
    """
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationFailed('Your cart is empty.')
    if len(raw_items) > MAX_ITEMS_PER_ORDER:
        raise ValidationFailed(f'An order can contain at most {MAX_ITEMS_PER_ORDER} items.')

    lines = []
    errors = []
    for index, raw in enumerate(raw_items, start=1):
        if not isinstance(raw, dict):
            errors.append(f'Item {index}: invalid item.')
            continue
        shop_item_id = raw.get('shop_item_id')
        pack_size = raw.get('pack_size')
        quantity = raw.get('quantity', 1)
        if isinstance(shop_item_id, bool) or not isinstance(shop_item_id, int):
            errors.append(f'Item {index}: shop_item_id is required.')
            continue
        if not isinstance(pack_size, str) or not pack_size.strip():
            errors.append(f'Item {index}: pack size is required.')
            continue
        # Whole packs only; 2.0 is accepted as 2
        if isinstance(quantity, float) and quantity.is_integer():
            quantity = int(quantity)
        if isinstance(quantity, bool) or not isinstance(quantity, int) or not 1 <= quantity <= MAX_QUANTITY:
            errors.append(f'Item {index}: quantity must be a whole number between 1 and {MAX_QUANTITY}.')
            continue

        row = (
            db.session.query(PackPricing, ShopItem)
            .join(ShopItem, PackPricing.shop_item_id == ShopItem.id)
            .filter(
                PackPricing.shop_item_id == shop_item_id,
                PackPricing.pack_size == pack_size.strip(),
                PackPricing.is_active.is_(True),
                ShopItem.is_active.is_(True),
            )
            .first()
        )
        if row is None:
            errors.append(f'Item {index}: product or pack size is not available.')
            continue
        pack, shop_item = row
        if shop_item.stock_status == 'out-of-stock':
            errors.append(f'Item {index}: {shop_item.name} is out of stock.')
            continue

        unit_price = float(pack.our_price)
        lines.append(OrderItem(
            shop_item_id=shop_item.id,
            product_name=shop_item.name,
            pack_size=pack.pack_size,
            unit_price=unit_price,
            quantity=float(quantity),
            total_price=round(unit_price * quantity, 2),
        ))

    if errors:
        raise ValidationFailed(errors=errors)
    return lines


def _summarize(lines):
    return ", ".join(f"{line.product_name} ({line.pack_size}) x {line.quantity:g}" for line in lines)


def get_owned_order(order_id):
    """Order visible to the signed-in customer; 404 when missing, 403 when not theirs."""
    order = Order.query.get(order_id)
    if order is None:
        raise ResourceNotFound('Order not found.')
    if not order.is_owned_by(get_current_identity()):
        raise Forbidden()
    return order


@orders_bp.route('', methods=['POST'])
def create_order():
    """
    Place an order. Requires the verification_token from /api/otp/verify for the same email.
    The token is marked used in the same transaction as the order insert.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationFailed('Expected a JSON object.')
    fields = _parse_order_fields(data)
    lines = _price_cart(data.get('items'))
    engine = get_otp_engine()
    otp_session = engine.find_redeemable(fields['email'], data.get('verification_token'))

    identity = get_current_identity()
    try:
        order = Order(
            **fields,
            productname=_summarize(lines),
            quantity=sum(line.quantity for line in lines),
            unitprice=lines[0].unit_price if len(lines) == 1 else 0,
            totalprice=round(sum(line.total_price for line in lines), 2),
            payment_status='PENDING',
            order_status='Processing',
            user_id=identity.id if identity else None,
        )
        order.items = lines
        db.session.add(order)
        db.session.flush()

        engine.mark_consumed(otp_session, order.id)
        db.session.commit()
    except ApiError:
        db.session.rollback()
        raise
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Failed to create order for {fields['email']}: {str(e)}", exc_info=True)
        return jsonify({"success": False, "error": "INTERNAL_ERROR", "message": GENERIC_ERROR}), 500

    current_app.logger.info(f"Order #{order.id} created for {order.email} (₹{order.totalprice:.2f})")

    # Notify admins of new order
    try:
        from utils.mail import send_new_order_notification
        send_new_order_notification(order)
    except Exception as e:
        current_app.logger.error(f"Failed to send admin email for order #{order.id}: {str(e)}", exc_info=True)
        # Don't fail the order if notification fails

    try:
        from utils.notifications import notify_new_order
        notify_new_order(order)
    except Exception as e:
        current_app.logger.error(f"Failed to create admin notification for order #{order.id}: {str(e)}", exc_info=True)

    return jsonify({
        "success": True,
        "order_id": order.id,
        "totalprice": order.totalprice,
        "upi_uri": build_upi_uri(order),
    }), 201


@orders_bp.route('/mine')
@login_required
def my_orders():
    identity = get_current_identity()
    conditions = [Order.email == identity.email] if identity.email else []
    if identity.id:
        conditions.append(Order.user_id == identity.id)
    orders = Order.query.filter(db.or_(*conditions)).order_by(Order.created_at.desc(), Order.id.desc()).all()
    return jsonify([order.to_dict() for order in orders])


@orders_bp.route('/<int:order_id>')
@login_required
def order_detail(order_id):
    order = get_owned_order(order_id)
    return jsonify(order.to_dict(detail=True))


@orders_bp.route('/<int:order_id>/upi')
@login_required
def order_upi_link(order_id):
    order = get_owned_order(order_id)
    uri = build_upi_uri(order)
    if uri is None:
        return jsonify({"success": False, "error": "UPI_UNAVAILABLE", "message": "UPI payments are not configured."}), 503
    return jsonify({"success": True, "upi_uri": uri, "amount": order.totalprice})


@orders_bp.route('/<int:order_id>/messages', methods=['GET'])
@login_required
def list_messages(order_id):
    order = get_owned_order(order_id)
    return jsonify([message.to_dict() for message in order.messages])


@orders_bp.route('/<int:order_id>/messages', methods=['POST'])
@login_required
def post_message(order_id):
    """Customer query on their order"""
    order = get_owned_order(order_id)
    data = request.get_json(silent=True) or request.form
    text = _text(data, 'message', MAX_MESSAGE_LENGTH + 1)
    if not text:
        raise ValidationFailed('Message cannot be empty.')
    if len(text) > MAX_MESSAGE_LENGTH:
        raise ValidationFailed(f'Message must be at most {MAX_MESSAGE_LENGTH} characters.')

    message = OrderMessage(order_id=order.id, sender='user', message=text)
    try:
        db.session.add(message)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Failed to save message on order #{order.id}: {str(e)}", exc_info=True)
        return jsonify({"success": False, "error": "INTERNAL_ERROR", "message": GENERIC_ERROR}), 500

    try:
        from utils.mail import send_customer_message_notification
        from utils.notifications import notify_customer_message
        send_customer_message_notification(order, message)
        notify_customer_message(order, message)
    except Exception as e:
        current_app.logger.error(f"Failed to notify admins of message on order #{order.id}: {str(e)}", exc_info=True)

    return jsonify({"success": True, "data": message.to_dict()}), 201
