"""Role model: fixed reference set of capability tags, looked up by name."""
from sqlalchemy import Column, Integer, String

from axioquan.db.session import Base

DEFAULT_ROLES = {
    "student": "Learner enrolled in courses",
    "instructor": "Creates and teaches courses",
    "teaching_assistant": "Assists instructors with their courses",
    "admin": "Full platform access",
}


class Role(Base):
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(50), unique=True, nullable=False, index=True)
    description = Column(String(255), nullable=True)
