# Overview: Service-layer operations for auth; password hashing and user accounts.

"""
Authentication Service

Uses bcrypt for password hashing and validates password strength.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters required
- Must contain uppercase, lowercase, digit, and special char
- Session tokens managed separately (see session_service.py)
- Accounts without a password (external sign-in) never authenticate here
"""

import bcrypt
import re
from ..extensions import db
from ..models import User
from stockflow.time_utils import utcnow


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Raises PasswordValidationError if requirements not met.
    """
    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt with cost factor 12.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str | None) -> bool:
    """Verify password against bcrypt hash. Passwordless accounts never match."""
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def create_user(username: str, email: str, password: str | None) -> User:
    """
    Create a new owner account.

    password=None creates an account that can only sign in externally.
    Raises ValueError on duplicate email, PasswordValidationError on weak password.
    """
    email = normalize_email(email)
    if not username or not email:
        raise ValueError("username and email are required")

    existing = db.session.query(User).filter_by(email=email).first()
    if existing:
        raise ValueError(f"Email '{email}' already registered")

    password_hash = hash_password(password) if password is not None else None

    user = User(
        username=username.strip(),
        email=email,
        password_hash=password_hash,
        is_active=True,
    )
    db.session.add(user)
    db.session.commit()
    return user


def authenticate(identifier: str, password: str) -> User | None:
    """
    Authenticate by email or username.

    Returns the User on success, None otherwise.
    """
    identifier = (identifier or "").strip()
    user = db.session.query(User).filter_by(email=identifier.lower()).first()
    if user is None:
        user = db.session.query(User).filter_by(username=identifier).first()

    if not user or not user.is_active:
        return None

    if not verify_password(password, user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user
