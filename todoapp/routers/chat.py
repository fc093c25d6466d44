"""
Router du chat IA (Gemini).

Endpoints:
- POST /ai-chat/stream (alias /chat/stream) - réponse streamée en SSE
- POST /ai-chat - réponse complète en JSON
- /ai-chat/chats - conversations sauvegardées
"""

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse
from functools import partial
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from todoapp.core.database import get_db
from todoapp.core.deps import get_current_user, get_optional_user
from todoapp.models.ai_chat import AIChat
from todoapp.models.user import User
from todoapp.schemas.chat import ChatRequest, ChatReply, AIChatCreate, AIChatSummary, AIChatResponse
from todoapp.schemas.user import MessageResponse
from todoapp.services import gemini_service
from todoapp.services.chat_history import get_owned_chat, history_of, save_exchange
from todoapp.services.chat_relay import ChatRelay, SSE_HEADERS

logger = logging.getLogger(__name__)

router = APIRouter(tags=["ai-chat"])


def _conversation(request: ChatRequest, db: Session, user: Optional[User]):
    """Construit l'historique Gemini; retourne (contents, chat ou None)"""
    if not request.message.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Message is required")

    if request.chat_id is None:
        return gemini_service.build_contents(request.message), None

    chat = get_owned_chat(db, user, request.chat_id)
    contents = gemini_service.build_contents(request.message, chat.context, history_of(chat))
    return contents, chat


@router.post("/ai-chat/stream")
@router.post("/chat/stream")
def stream_chat(
    request: ChatRequest,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user)
):
    contents, chat = _conversation(request, db, current_user)

    on_complete = None
    if chat is not None:
        on_complete = partial(save_exchange, chat.id, request.message)

    relay = ChatRelay(contents, on_complete=on_complete)
    return StreamingResponse(relay.events(), media_type="text/event-stream", headers=SSE_HEADERS)


@router.post("/ai-chat", response_model=ChatReply)
def chat_once(
    request: ChatRequest,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user)
):
    contents, chat = _conversation(request, db, current_user)

    try:
        reply = gemini_service.generate_reply(contents)
    except gemini_service.GeminiError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    if chat is not None:
        save_exchange(chat.id, request.message, reply)
    return {"response": reply}


@router.post("/ai-chat/chats", response_model=AIChatResponse, status_code=status.HTTP_201_CREATED)
def create_chat(
    data: AIChatCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    chat = AIChat(user_id=current_user.id)
    if data.title:
        chat.title = data.title
    if data.context:
        chat.context = data.context

    db.add(chat)
    db.commit()
    db.refresh(chat)
    return chat


@router.get("/ai-chat/chats", response_model=List[AIChatSummary])
def list_chats(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return db.query(AIChat).filter(AIChat.user_id == current_user.id).order_by(AIChat.last_message_at.desc()).all()


@router.get("/ai-chat/chats/{chat_id}", response_model=AIChatResponse)
def get_chat(
    chat_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return get_owned_chat(db, current_user, chat_id)


@router.delete("/ai-chat/chats/{chat_id}", response_model=MessageResponse)
def delete_chat(
    chat_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    chat = get_owned_chat(db, current_user, chat_id)
    db.delete(chat)
    db.commit()
    return {"message": "Chat removed"}
