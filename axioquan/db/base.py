"""SQLAlchemy declarative base and model imports for Alembic."""
from axioquan.db.session import Base

# Import all models so Alembic can see them
from axioquan.models.role import Role  # noqa: F401
from axioquan.models.session import UserSession  # noqa: F401
from axioquan.models.user import User  # noqa: F401
from axioquan.models.user_profile import UserProfile  # noqa: F401
from axioquan.models.user_role import UserRole  # noqa: F401

__all__ = ["Base", "User", "Role", "UserRole", "UserProfile", "UserSession"]
