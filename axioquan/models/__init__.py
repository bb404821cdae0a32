from axioquan.models.role import Role
from axioquan.models.session import UserSession
from axioquan.models.user import User
from axioquan.models.user_profile import UserProfile
from axioquan.models.user_role import UserRole

__all__ = ["User", "Role", "UserRole", "UserProfile", "UserSession"]
