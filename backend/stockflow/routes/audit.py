# Overview: Flask API route exposing the caller's own audit trail.

from flask import Blueprint, request, g

from ..services.audit_service import list_audit_events
from ..decorators import require_auth


audit_bp = Blueprint("audit", __name__, url_prefix="/api/audit")


@audit_bp.get("")
@require_auth
def list_audit_route():
    """
    Query params:
    - action: filter by action code (e.g. CREATE_SALE)
    - limit: max entries (default 100, max 500)
    """
    action = request.args.get("action")
    limit = request.args.get("limit", default=100, type=int)
    entries = list_audit_events(g.current_user.id, action=action, limit=limit)
    return {"events": [e.to_dict() for e in entries], "count": len(entries)}, 200
