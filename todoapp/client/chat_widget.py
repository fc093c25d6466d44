"""
ChatWidget: transcript côté client + lecture du flux SSE du relais.

Les fragments `message` sont concaténés dans UN seul message assistant
(même objet, texte qui grandit). Une erreur (événement `error` ou coupure
réseau) remplace ce message par un message d'erreur avec possibilité de
retry manuel. Pas de retry automatique.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional
from uuid import uuid4

import requests

from todoapp.core.sse import iter_events, split_lines

logger = logging.getLogger(__name__)

WELCOME_TEXT = "Hello! How can I help you today?"
ERROR_TEXT = "Sorry, I encountered an error. Please try again."


class ChatStreamError(Exception):
    pass


@dataclass
class ChatMessage:
    role: str  # "user" ou "assistant"
    text: str = ""
    error: bool = False
    final: bool = False
    detail: Optional[str] = None
    id: str = field(default_factory=lambda: uuid4().hex)

    def append(self, fragment: str) -> None:
        if self.final:
            raise RuntimeError("Cannot modify a finished message")
        self.text += fragment


class HttpChatStream:
    """Ouvre POST /ai-chat/stream et retourne les lignes de la réponse"""

    def __init__(self, base_url: str, path: str = "/ai-chat/stream", token: Optional[str] = None,
                 session=None, timeout=(5, 60), chat_id: Optional[int] = None):
        self.url = base_url.rstrip("/") + path
        self.token = token
        self.session = session or requests.Session()
        self.timeout = timeout
        self.chat_id = chat_id
        self._response = None
        self._cancelled = threading.Event()

    def __call__(self, prompt: str) -> Iterable[str]:
        headers = {"Accept": "text/event-stream"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        body = {"message": prompt}
        if self.chat_id is not None:
            body["chat_id"] = self.chat_id

        self._cancelled.clear()
        response = self.session.post(self.url, json=body, headers=headers, stream=True, timeout=self.timeout)
        if response.status_code >= 400:
            detail = response.text
            response.close()
            raise ChatStreamError(f"{response.status_code}: {detail}")

        self._response = response
        return self._lines(response)

    def _lines(self, response):
        try:
            yield from split_lines(response.iter_content(chunk_size=None))
        except Exception as e:
            if self._cancelled.is_set():
                return
            raise ChatStreamError(str(e)) from e
        finally:
            response.close()

    def close(self) -> None:
        self._cancelled.set()
        if self._response is not None:
            self._response.close()


class ChatWidget:
    def __init__(self, open_stream: Callable[[str], Iterable[str]],
                 on_update: Optional[Callable[[List[ChatMessage]], None]] = None,
                 welcome: str = WELCOME_TEXT):
        self.open_stream = open_stream
        self.on_update = on_update
        self.messages: List[ChatMessage] = [ChatMessage("assistant", welcome, final=True)]
        self.last_prompt: Optional[str] = None
        self.busy = False
        self._closed = False

    @property
    def can_retry(self) -> bool:
        return bool(self.messages) and self.messages[-1].error and self.last_prompt is not None

    def _render(self) -> None:
        if self.on_update is not None:
            self.on_update(self.messages)

    def submit(self, text: str) -> Optional[ChatMessage]:
        """Envoie un prompt; retourne le message assistant final (ou d'erreur)"""
        if not text or not text.strip() or self.busy:
            return None

        self.messages.append(ChatMessage("user", text, final=True))
        self.last_prompt = text
        self._render()
        return self._stream(text)

    def retry(self) -> Optional[ChatMessage]:
        """Renvoie le dernier prompt tel quel, sans dupliquer le message user"""
        if not self.can_retry or self.busy:
            return None
        self.messages.pop()
        self._render()
        return self._stream(self.last_prompt)

    def close(self) -> None:
        self._closed = True
        close = getattr(self.open_stream, "close", None)
        if close is not None:
            close()

    def _stream(self, prompt: str) -> ChatMessage:
        reply = ChatMessage("assistant")
        self.messages.append(reply)
        self.busy = True
        self._closed = False
        lines = None
        try:
            lines = self.open_stream(prompt)
            finished = False
            for event in iter_events(lines):
                if event.event == "message":
                    data = event.data
                    reply.append((data.get("text") or "") if isinstance(data, dict) else str(data))
                    self._render()
                elif event.event == "done":
                    finished = True
                    break
                elif event.event == "error":
                    data = event.data if isinstance(event.data, dict) else {"error": event.data}
                    raise ChatStreamError(data.get("error") or "stream error")
                # "ping": keep-alive, rien à afficher

            if not finished and not self._closed:
                raise ChatStreamError("Stream ended unexpectedly")
            reply.final = True

        except (ChatStreamError, OSError) as e:
            logger.warning(f"Chat stream failed: {e}")
            reply = self._fail(reply, str(e))

        finally:
            self.busy = False
            close = getattr(lines, "close", None)
            if close is not None:
                close()

        self._render()
        return reply

    def _fail(self, reply: ChatMessage, detail: str) -> ChatMessage:
        error = ChatMessage("assistant", ERROR_TEXT, error=True, final=True, detail=detail)
        self.messages[self.messages.index(reply)] = error
        return error
