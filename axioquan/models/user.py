"""User model: identity record, soft-deactivated via is_active."""
import uuid

from sqlalchemy import Boolean, Column, DateTime, String, Text
from sqlalchemy.sql import func

from axioquan.db.session import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_new_id)
    username = Column(String(50), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)  # stored lower-cased
    name = Column(String(200), nullable=False)
    hashed_password = Column(String(255), nullable=True)
    bio = Column(Text, nullable=True)
    image = Column(String(512), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    locale = Column(String(16), nullable=False, default="en")
    timezone = Column(String(64), nullable=False, default="UTC")

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=True)
    last_login = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<User {self.username}>"
