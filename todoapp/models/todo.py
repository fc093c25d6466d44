"""Todo model"""

from sqlalchemy import Column, Integer, String, DateTime, Date, Boolean, ForeignKey
from datetime import datetime
from uuid import uuid4
from todoapp.core.database import Base


def new_todo_id() -> str:
    return uuid4().hex


class Todo(Base):
    __tablename__ = "todos"

    id = Column(String(64), primary_key=True, index=True, default=new_todo_id)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    title = Column(String, nullable=False)
    notes = Column(String, nullable=True)
    completed = Column(Boolean, default=False, nullable=False)
    priority = Column(String, default="medium", nullable=False)
    due_date = Column(Date, nullable=True, index=True)

    # ordre manuel de la liste (les nouvelles tâches passent devant)
    position = Column(Integer, default=0, nullable=False, index=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
