"""Historique des conversations IA (variante avec historique)"""

from datetime import datetime
from typing import List, Optional
from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from todoapp.core import database
from todoapp.models.ai_chat import AIChat, AIChatMessage
from todoapp.models.user import User


def get_owned_chat(db: Session, user: Optional[User], chat_id: int) -> AIChat:
    # un chat d'un autre utilisateur est traité comme inexistant
    chat = None
    if user is not None:
        chat = db.query(AIChat).filter(AIChat.id == chat_id, AIChat.user_id == user.id).first()
    if not chat:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Chat not found")
    return chat


def history_of(chat: AIChat) -> List[dict]:
    return [{"role": m.role, "content": m.content} for m in chat.messages]


def save_exchange(chat_id: int, prompt: str, reply: str) -> None:
    """Ajoute le tour user/assistant une fois le stream terminé.

    Ouvre sa propre session: la session de la requête est déjà fermée
    quand la réponse streamée se termine.
    """
    db = database.SessionLocal()
    try:
        chat = db.query(AIChat).filter(AIChat.id == chat_id).first()
        if chat is None:
            return
        db.add_all([
            AIChatMessage(chat_id=chat.id, role="user", content=prompt),
            AIChatMessage(chat_id=chat.id, role="assistant", content=reply),
        ])
        chat.last_message_at = datetime.utcnow()
        db.commit()
    finally:
        db.close()
