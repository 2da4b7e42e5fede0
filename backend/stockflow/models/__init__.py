from .auth import User, SessionToken, PasswordResetToken
from .inventory import Product
from .sales import SaleRecord, DocumentSequence
from .communications import Notification
from .audit import AuditLog

__all__ = [
    'User', 'SessionToken', 'PasswordResetToken',
    'Product',
    'SaleRecord', 'DocumentSequence',
    'Notification',
    'AuditLog',
]
