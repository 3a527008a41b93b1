"""
SQLAlchemy ORM model for the learner display profile.
"""
import datetime

from sqlalchemy import Column, DateTime, String

from backend.common.db.base import ModelBase


class User(ModelBase):
    """
    Learner profile fields read by the leaderboard.
    """
    __tablename__ = 'users'

    id = Column(String(255), primary_key=True)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    profile_photo = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=datetime.datetime.now, nullable=False)

    def __repr__(self):
        return f"<User(id='{self.id}', name='{self.first_name} {self.last_name}')>"
