"""UserProfile model: one per user, created empty at signup."""
from sqlalchemy import JSON, Column, ForeignKey, String

from axioquan.db.session import Base


class UserProfile(Base):
    __tablename__ = "user_profiles"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)

    # lists of strings
    skills = Column(JSON, nullable=False, default=list)
    portfolio_urls = Column(JSON, nullable=False, default=list)
    learning_goals = Column(JSON, nullable=False, default=list)
    preferred_topics = Column(JSON, nullable=False, default=list)
    # free-form objects
    expertise_levels = Column(JSON, nullable=False, default=dict)
    achievements = Column(JSON, nullable=False, default=dict)
    social_links = Column(JSON, nullable=False, default=dict)
