"""Admin authentication: login guard and server-side sessions."""
from .guard import LoginGuard, normalize_username, provision_admin_credentials, username_key_segment
from .sessions import AdminSession, SessionManager, SessionMiddleware

__all__ = [
    "AdminSession",
    "LoginGuard",
    "SessionManager",
    "SessionMiddleware",
    "normalize_username",
    "provision_admin_credentials",
    "username_key_segment",
]
