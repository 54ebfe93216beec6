"""
Admin notification routes
"""
from flask import Blueprint, jsonify, request
from models import db
from models.admin_notification import AdminNotification
from utils.auth_utils import admin_required
from utils.errors import ResourceNotFound

admin_notifications_bp = Blueprint('admin_notifications', __name__, url_prefix='/api/admin')


@admin_notifications_bp.route('/notifications')
@admin_required
def get_notifications():
    """Newest notifications first"""
    limit = min(max(request.args.get('limit', 50, type=int), 1), 200)
    unread_only = request.args.get('unread_only', 'false').lower() == 'true'

    query = AdminNotification.query
    if unread_only:
        query = query.filter_by(is_read=False)
    notifications = query.order_by(AdminNotification.created_at.desc(), AdminNotification.id.desc()).limit(limit).all()

    return jsonify({
        'success': True,
        'notifications': [n.to_dict() for n in notifications],
        'unread_count': AdminNotification.query.filter_by(is_read=False).count(),
    })


@admin_notifications_bp.route('/notifications/<int:notification_id>/read', methods=['POST'])
@admin_required
def mark_as_read(notification_id):
    notification = AdminNotification.query.get(notification_id)
    if notification is None:
        raise ResourceNotFound('Notification not found.')
    notification.mark_read()
    try:
        db.session.commit()
        return jsonify({'success': True, 'message': 'Notification marked as read'})
    except Exception:
        db.session.rollback()
        raise


@admin_notifications_bp.route('/notifications/read-all', methods=['POST'])
@admin_required
def mark_all_as_read():
    try:
        updated = AdminNotification.query.filter_by(is_read=False).update(
            {AdminNotification.is_read: True}, synchronize_session=False
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return jsonify({'success': True, 'message': f'{updated} notifications marked as read'})
