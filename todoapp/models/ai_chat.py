from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship
from datetime import datetime
from todoapp.core.database import Base
from todoapp.core.config import settings


class AIChat(Base):
    __tablename__ = "ai_chats"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String, default="New Chat")
    context = Column(Text, default=lambda: settings.CHAT_PERSONA)  # persona / system prompt
    last_message_at = Column(DateTime, default=datetime.utcnow)
    created_at = Column(DateTime, default=datetime.utcnow)

    messages = relationship(
        "AIChatMessage",
        order_by="AIChatMessage.id",
        cascade="all, delete-orphan",
        back_populates="chat",
    )


class AIChatMessage(Base):
    __tablename__ = "ai_chat_messages"

    id = Column(Integer, primary_key=True, index=True)
    chat_id = Column(Integer, ForeignKey("ai_chats.id"), nullable=False, index=True)
    role = Column(String, nullable=False)  # "user" ou "assistant"
    content = Column(Text, nullable=False, default="")
    created_at = Column(DateTime, default=datetime.utcnow)

    chat = relationship("AIChat", back_populates="messages")
