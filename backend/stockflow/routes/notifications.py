# Overview: Flask API routes for stock notifications; owner-scoped list and mark-read.

from flask import Blueprint, request, g

from ..services import notification_service
from ..services.notification_service import NotificationError
from ..decorators import require_auth


notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


@notifications_bp.get("")
@require_auth
def list_notifications_route():
    """
    Query params:
    - unread: "true" to return unread alerts only
    """
    unread_only = request.args.get("unread", "").lower() in {"1", "true", "yes"}
    alerts = notification_service.list_notifications(g.current_user.id, unread_only=unread_only)
    return {
        "notifications": [a.to_dict() for a in alerts],
        "unread_count": sum(1 for a in alerts if not a.is_read),
    }, 200


@notifications_bp.post("/<int:notification_id>/read")
@require_auth
def mark_read_route(notification_id: int):
    try:
        alert = notification_service.mark_read(notification_id, g.current_user.id)
    except NotificationError as e:
        return {"error": str(e)}, 404
    return {"notification": alert.to_dict()}, 200
