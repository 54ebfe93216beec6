"""
Admin order management routes
"""
from flask import Blueprint, jsonify, request, make_response, current_app
from models import db
from models.order import Order, ORDER_STATUSES, PAYMENT_STATUSES
from models.order_message import OrderMessage
from utils.auth_utils import admin_required, get_current_identity
from utils.errors import ResourceNotFound, ValidationFailed
from datetime import datetime
from sqlalchemy import func, or_
import csv
import io

admin_orders_bp = Blueprint('admin_orders', __name__, url_prefix='/api/admin')

MAX_REPLY_LENGTH = 2000


def _filtered_orders_query():
    """Orders query with the same filters for the list view and CSV export"""
    start_date = request.args.get('start_date', '').strip()
    end_date = request.args.get('end_date', '').strip()
    status_filter = request.args.get('status', '').strip()
    payment_filter = request.args.get('payment_status', '').strip().upper()
    search_query = request.args.get('search', '').strip()

    query = Order.query

    # Compare the date part of created_at (UTC) with the selected dates
    if start_date:
        try:
            datetime.strptime(start_date, '%Y-%m-%d')  # validate
            query = query.filter(func.date(Order.created_at) >= start_date)
        except ValueError:
            pass

    if end_date:
        try:
            datetime.strptime(end_date, '%Y-%m-%d')  # validate
            query = query.filter(func.date(Order.created_at) <= end_date)
        except ValueError:
            pass

    if status_filter:
        query = query.filter(Order.order_status == status_filter)

    if payment_filter:
        query = query.filter(Order.payment_status == payment_filter)

    if search_query:
        search_conditions = [
            Order.customername.ilike(f'%{search_query}%'),
            Order.email.ilike(f'%{search_query}%'),
            Order.phone.ilike(f'%{search_query}%'),
            Order.productname.ilike(f'%{search_query}%'),
        ]
        if search_query.isdigit():
            search_conditions.append(Order.id == int(search_query))
        query = query.filter(or_(*search_conditions))

    return query.order_by(Order.created_at.desc(), Order.id.desc())


def _get_order(order_id):
    order = Order.query.get(order_id)
    if order is None:
        raise ResourceNotFound('Order not found.')
    return order


@admin_orders_bp.route('/orders')
@admin_required
def orders():
    """Order list with filters and summary totals"""
    orders_list = _filtered_orders_query().all()

    # Summary statistics are global (ignore filters)
    total_orders = Order.query.count()
    total_revenue = db.session.query(func.sum(Order.totalprice)).filter(
        Order.payment_status == 'PAID'
    ).scalar() or 0
    awaiting_review = Order.query.filter_by(payment_status='UNDER_REVIEW').count()

    return jsonify({
        'success': True,
        'orders': [order.to_dict() for order in orders_list],
        'total_orders': total_orders,
        'total_revenue': float(total_revenue),
        'awaiting_payment_review': awaiting_review,
    })


@admin_orders_bp.route('/orders/<int:order_id>')
@admin_required
def view_order(order_id):
    return jsonify(_get_order(order_id).to_dict(detail=True))


@admin_orders_bp.route('/orders/<int:order_id>', methods=['PATCH'])
@admin_required
def update_order(order_id):
    """Update order_status, payment_status, paymentmode and/or notes"""
    order = _get_order(order_id)
    data = request.get_json(silent=True) or {}

    errors = []
    updates = {}
    if 'order_status' in data:
        if data['order_status'] not in ORDER_STATUSES:
            errors.append(f"order_status must be one of {', '.join(ORDER_STATUSES)}.")
        else:
            updates['order_status'] = data['order_status']
    if 'payment_status' in data:
        if data['payment_status'] not in PAYMENT_STATUSES:
            errors.append(f"payment_status must be one of {', '.join(PAYMENT_STATUSES)}.")
        else:
            updates['payment_status'] = data['payment_status']
    if 'paymentmode' in data:
        if not isinstance(data['paymentmode'], str) or not data['paymentmode'].strip():
            errors.append('paymentmode must be a non-empty string.')
        else:
            updates['paymentmode'] = data['paymentmode'].strip()[:20]
    if 'notes' in data:
        if not isinstance(data['notes'], str):
            errors.append('notes must be a string.')
        else:
            updates['notes'] = data['notes'].strip()[:1000]

    if errors:
        raise ValidationFailed(errors=errors)
    if not updates:
        raise ValidationFailed('No fields to update.')

    for key, value in updates.items():
        setattr(order, key, value)
    order.updated_at = datetime.utcnow()

    try:
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error updating order #{order_id}: {str(e)}", exc_info=True)
        return jsonify({'success': False, 'error': 'INTERNAL_ERROR', 'message': 'Failed to update order.'}), 500

    identity = get_current_identity()
    current_app.logger.info(f"Order #{order_id} updated by {identity.email or identity.id}: {sorted(updates)}")
    return jsonify({'success': True, 'order': order.to_dict()})


@admin_orders_bp.route('/orders/<int:order_id>', methods=['DELETE'])
@admin_required
def delete_order(order_id):
    """Delete order with its items, payments and messages"""
    order = _get_order(order_id)
    try:
        db.session.delete(order)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error deleting order #{order_id}: {str(e)}", exc_info=True)
        return jsonify({'success': False, 'error': 'INTERNAL_ERROR', 'message': 'Failed to delete order.'}), 500
    return jsonify({'success': True})


@admin_orders_bp.route('/orders/export/csv')
@admin_required
def export_csv():
    """Export orders to CSV (same filters as the list)"""
    output = io.StringIO()
    writer = csv.writer(output)

    writer.writerow([
        'Order ID', 'Date', 'Customer', 'Email', 'Phone', 'Products',
        'Total', 'Payment Mode', 'Payment Status', 'Order Status', 'City', 'Pincode'
    ])

    for order in _filtered_orders_query().all():
        writer.writerow([
            order.id,
            order.created_at.strftime('%d-%m-%Y %H:%M') if order.created_at else 'N/A',
            order.customername,
            order.email,
            order.phone,
            order.productname,
            f"{float(order.totalprice):.2f}",
            order.paymentmode or 'N/A',
            order.payment_status,
            order.order_status,
            order.city,
            order.pincode,
        ])

    response = make_response(output.getvalue())
    response.headers['Content-Type'] = 'text/csv'
    response.headers['Content-Disposition'] = f'attachment; filename=orders_{datetime.now().strftime("%Y%m%d_%H%M%S")}.csv'
    return response


@admin_orders_bp.route('/orders/<int:order_id>/messages', methods=['GET'])
@admin_required
def order_messages(order_id):
    order = _get_order(order_id)
    return jsonify([message.to_dict() for message in order.messages])


@admin_orders_bp.route('/orders/<int:order_id>/messages', methods=['POST'])
@admin_required
def reply_to_order(order_id):
    """Staff reply on an order; the customer is emailed a copy"""
    order = _get_order(order_id)
    data = request.get_json(silent=True) or request.form
    text = data.get('message')
    text = text.strip() if isinstance(text, str) else ''
    if not text:
        raise ValidationFailed('Message cannot be empty.')
    if len(text) > MAX_REPLY_LENGTH:
        raise ValidationFailed(f'Message must be at most {MAX_REPLY_LENGTH} characters.')

    message = OrderMessage(order_id=order.id, sender='admin', message=text)
    try:
        db.session.add(message)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error saving reply on order #{order_id}: {str(e)}", exc_info=True)
        return jsonify({'success': False, 'error': 'INTERNAL_ERROR', 'message': 'Failed to send reply.'}), 500

    try:
        from utils.mail import send_order_reply_email
        send_order_reply_email(order, message)
    except Exception as e:
        current_app.logger.error(f"Failed to email reply for order #{order_id}: {str(e)}", exc_info=True)

    return jsonify({'success': True, 'data': message.to_dict()}), 201
