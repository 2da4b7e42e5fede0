# Overview: Forgot-password / reset-password flows.

"""
Password Reset Service

FLOW:
1. request_password_reset(email): if the account exists and has a password,
   replace any pending reset token with a fresh one and email a link
   <FRONTEND_URL>/reset?token=<token>&id=<user id>.
2. reset_password(token, user_id, new_password): verify the token against the
   stored bcrypt hash, replace the password, delete the token and revoke all
   sessions.

SECURITY NOTES:
- Callers always answer the forgot-password request the same way, so account
  existence is never revealed.
- Only a bcrypt hash of the token is stored.
- Tokens expire after PASSWORD_RESET_TTL_MINUTES.
"""

from __future__ import annotations

import secrets
from datetime import timedelta
from urllib.parse import urlencode

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import User, PasswordResetToken
from .auth_service import hash_password, normalize_email
from .session_service import revoke_all_user_sessions
from . import mail_service
from stockflow.time_utils import utcnow


RESET_TOKEN_BCRYPT_ROUNDS = 10
INVALID_LINK_MESSAGE = "Invalid or expired reset link"


class PasswordResetError(Exception):
    """Raised when a reset request cannot be honoured (400-level)."""
    pass


def _hash_reset_token(token: str) -> str:
    salt = bcrypt.gensalt(rounds=RESET_TOKEN_BCRYPT_ROUNDS)
    return bcrypt.hashpw(token.encode("utf-8"), salt).decode("utf-8")


def build_reset_link(token: str, user_id: int) -> str:
    base = current_app.config["FRONTEND_URL"].rstrip("/")
    return f"{base}/reset?{urlencode({'token': token, 'id': user_id})}"


def request_password_reset(email: str) -> bool:
    """
    Issue a reset token and email it.

    Returns True when an email was sent, False when the address is unknown or
    belongs to a passwordless account. Mail failures propagate.
    """
    user = db.session.query(User).filter_by(email=normalize_email(email)).first()
    if not user or not user.is_active:
        return False

    if not user.password_hash:
        return False

    db.session.query(PasswordResetToken).filter_by(user_id=user.id).delete(synchronize_session=False)

    token = secrets.token_hex(32)
    db.session.add(PasswordResetToken(
        user_id=user.id,
        token_hash=_hash_reset_token(token),
        created_at=utcnow(),
    ))
    db.session.commit()

    mail_service.send_password_reset_email(user.email, build_reset_link(token, user.id))
    return True


def _token_expired(record: PasswordResetToken) -> bool:
    ttl = timedelta(minutes=current_app.config["PASSWORD_RESET_TTL_MINUTES"])
    return record.created_at + ttl < utcnow()


def reset_password(token: str, user_id: int, new_password: str) -> User:
    """
    Replace the user's password if `token` matches their pending reset.

    Raises PasswordResetError or PasswordValidationError.
    """
    if not token or not user_id or not new_password:
        raise PasswordResetError("Missing required fields")

    user = db.session.query(User).filter_by(id=user_id).first()
    if not user:
        raise PasswordResetError(INVALID_LINK_MESSAGE)

    if not user.password_hash:
        raise PasswordResetError(
            "This account uses external sign-in. Please use it to login."
        )

    record = db.session.query(PasswordResetToken).filter_by(user_id=user.id).first()
    if not record:
        raise PasswordResetError(INVALID_LINK_MESSAGE)

    if _token_expired(record):
        db.session.delete(record)
        db.session.commit()
        raise PasswordResetError(INVALID_LINK_MESSAGE)

    if not bcrypt.checkpw(token.encode("utf-8"), record.token_hash.encode("utf-8")):
        raise PasswordResetError(INVALID_LINK_MESSAGE)

    user.password_hash = hash_password(new_password)
    db.session.delete(record)
    revoke_all_user_sessions(user.id, reason="Password reset", commit=False)
    db.session.commit()
    return user


def cleanup_expired_reset_tokens() -> int:
    """Delete reset tokens past their TTL."""
    cutoff = utcnow() - timedelta(minutes=current_app.config["PASSWORD_RESET_TTL_MINUTES"])
    deleted = db.session.query(PasswordResetToken).filter(
        PasswordResetToken.created_at < cutoff
    ).delete(synchronize_session=False)
    db.session.commit()
    return deleted
