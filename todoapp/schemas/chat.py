from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Optional, List, Literal


class ChatRequest(BaseModel):
    message: str = ""
    chat_id: Optional[int] = None


class ChatReply(BaseModel):
    response: str


class AIChatCreate(BaseModel):
    title: Optional[str] = None
    context: Optional[str] = None


class AIChatMessageResponse(BaseModel):
    id: int
    role: Literal["user", "assistant"]
    content: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AIChatSummary(BaseModel):
    id: int
    title: str
    last_message_at: datetime
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AIChatResponse(AIChatSummary):
    context: str
    messages: List[AIChatMessageResponse]
