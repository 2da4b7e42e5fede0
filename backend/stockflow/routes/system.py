# backend/stockflow/routes/system.py
"""
System health endpoint.

Reports database reachability plus whether the bill pipeline's external
collaborators (document store, mailer) are configured. Configuration is
checked, not connectivity: a health probe must not upload or send mail.
"""

import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import SaleRecord, SessionToken, User
from ..models.sales import BILL_FAILED, BILL_PENDING
from ..services.mail_service import TRANSPORT_BREVO
from stockflow.time_utils import utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        user_count = db.session.query(User).count()
        active_sessions = db.session.query(SessionToken).filter_by(is_revoked=False).count()
        pending_bills = db.session.query(SaleRecord).filter_by(bill_status=BILL_PENDING).count()
        failed_bills = db.session.query(SaleRecord).filter_by(bill_status=BILL_FAILED).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "users": user_count,
                "active_sessions": active_sessions,
                "pending_bills": pending_bills,
                "failed_bills": failed_bills,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_billing_health() -> dict:
    """Degraded (not unhealthy) when storage or mail is unconfigured: sales still commit."""
    cfg = current_app.config
    missing = []
    if not cfg.get("CLOUDINARY_CLOUD_NAME"):
        missing.append("CLOUDINARY_CLOUD_NAME")
    if cfg.get("MAIL_TRANSPORT") == TRANSPORT_BREVO and not cfg.get("BREVO_API_KEY"):
        missing.append("BREVO_API_KEY")

    details = {
        "dispatch_mode": cfg.get("BILL_DISPATCH_MODE"),
        "mail_transport": cfg.get("MAIL_TRANSPORT"),
        "velocity_mode": cfg.get("SALES_VELOCITY_MODE"),
    }
    if missing:
        return {
            "status": "degraded",
            "warning": f"Missing configuration: {', '.join(missing)}",
            "details": details,
        }
    return {"status": "healthy", "details": details}


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy or degraded
    - 503: database unreachable
    """
    start_time = time.time()

    database_health = check_database_health()
    billing_health = check_billing_health()

    all_checks = [database_health, billing_health]
    if any(check["status"] == "unhealthy" for check in all_checks):
        overall_status, http_status = "unhealthy", 503
    elif any(check["status"] == "degraded" for check in all_checks):
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    response = {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "checks": {
            "database": database_health,
            "billing": billing_health,
        }
    }

    return response, http_status
