# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/stockflow/routes/auth.py
"""
Authentication API routes

SECURITY FEATURES:
- Password strength validation on registration and reset
- Session management with token-based auth
- Forgot-password answers identically whether or not the account exists
- A successful password reset revokes every session of the account
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import session_service
from ..services import password_reset_service
from ..services.auth_service import PasswordValidationError
from ..services.password_reset_service import PasswordResetError
from ..decorators import require_auth, bearer_token


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")

FORGOT_PASSWORD_MESSAGE = (
    "If that email exists, a password recovery link has been sent. Please check your email."
)


@auth_bp.post("/register")
def register_route():
    """Create an owner account. Returns 201 with the user (no token)."""
    try:
        data = request.get_json(silent=True) or {}
        username = data.get("username")
        email = data.get("email")
        password = data.get("password")

        if not all([username, email, password]):
            return jsonify({"error": "username, email and password required"}), 400

        user = auth_service.create_user(username, email, password)
        return jsonify({"user": user.to_dict(), "message": "Registration successful"}), 201

    except PasswordValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to register user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Token must be included in Authorization header for protected routes.
    """
    try:
        data = request.get_json(silent=True) or {}
        identifier = data.get("username") or data.get("email") or data.get("identifier")
        password = data.get("password")

        if not all([identifier, password]):
            return jsonify({"error": "username/email and password required"}), 400

        user = auth_service.authenticate(identifier, password)
        if not user:
            current_app.logger.info("Failed login for %r from %s", identifier, request.remote_addr)
            return jsonify({"error": "Invalid credentials"}), 401

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )

        return jsonify({
            "user": user.to_dict(),
            "token": token,
            "session": session.to_dict(),
            "message": "Login successful",
        }), 200

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
def logout_route():
    """Revoke the bearer token."""
    try:
        token = bearer_token()
        if not token:
            return jsonify({"error": "Authorization header required"}), 401

        if not session_service.revoke_session(token, reason="User logout"):
            return jsonify({"error": "Invalid or expired token"}), 401

        return jsonify({"message": "Logout successful"}), 200

    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({"user": g.current_user.to_dict()}), 200


@auth_bp.post("/forgot-password")
def forgot_password_route():
    """
    Email a password reset link.

    The 200 answer is the same for unknown, passwordless and real accounts.
    """
    try:
        data = request.get_json(silent=True) or {}
        email = data.get("email")
        if not email:
            return jsonify({"error": "email required"}), 400

        password_reset_service.request_password_reset(email)
        return jsonify({"message": FORGOT_PASSWORD_MESSAGE}), 200

    except Exception:
        current_app.logger.exception("Failed to process forgot-password request")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/reset-password")
def reset_password_route():
    """Body: {token, id, newPassword}"""
    try:
        data = request.get_json(silent=True) or {}
        token = data.get("token")
        user_id = data.get("id")
        new_password = data.get("newPassword") or data.get("new_password")

        try:
            user_id = int(user_id) if user_id is not None else None
        except (TypeError, ValueError):
            return jsonify({"error": password_reset_service.INVALID_LINK_MESSAGE}), 400

        password_reset_service.reset_password(token, user_id, new_password)
        return jsonify({"message": "Password reset successful. Redirecting to login page..."}), 200

    except (PasswordResetError, PasswordValidationError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to reset password")
        return jsonify({"error": "An error occurred. Please try again."}), 500
