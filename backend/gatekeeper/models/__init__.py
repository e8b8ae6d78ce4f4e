from gatekeeper.models.email_history import UserEmailHistory
from gatekeeper.models.refresh_token import RefreshToken
from gatekeeper.models.role import Role, UserRole
from gatekeeper.models.user import User

__all__ = [
    "RefreshToken",
    "Role",
    "User",
    "UserEmailHistory",
    "UserRole",
]
