"""
Relais SSE entre le client et Gemini.

Une instance de ChatRelay par requête:
    idle -> awaiting_first_chunk -> streaming -> completed | errored

Le flux amont (requests, bloquant) est lu dans un thread; chaque fragment est
réémis tel quel et dans l'ordre. Toutes les `heartbeat_seconds` on envoie un
événement `ping`, tant que la réponse est ouverte.
"""

import asyncio
import logging
import threading
from enum import Enum
from typing import AsyncIterator, Callable, Iterator, List, Optional

from todoapp.core.config import settings
from todoapp.core.sse import format_event
from todoapp.services import gemini_service

logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}

_END = object()


class RelayState(str, Enum):
    IDLE = "idle"
    AWAITING_FIRST_CHUNK = "awaiting_first_chunk"
    STREAMING = "streaming"
    COMPLETED = "completed"
    ERRORED = "errored"


TRANSITIONS = {
    RelayState.IDLE: {RelayState.AWAITING_FIRST_CHUNK, RelayState.ERRORED},
    RelayState.AWAITING_FIRST_CHUNK: {RelayState.STREAMING, RelayState.COMPLETED, RelayState.ERRORED},
    RelayState.STREAMING: {RelayState.COMPLETED, RelayState.ERRORED},
    RelayState.COMPLETED: set(),
    RelayState.ERRORED: set(),
}


class InvalidTransition(RuntimeError):
    pass


def _close_iterator(iterator) -> None:
    close = getattr(iterator, "close", None)
    if close is not None:
        close()


class ChatRelay:
    def __init__(
        self,
        contents: List[dict],
        stream_fn: Optional[Callable[[List[dict], threading.Event], Iterator[str]]] = None,
        heartbeat_seconds: Optional[float] = None,
        on_complete: Optional[Callable[[str], None]] = None,
    ):
        self.contents = contents
        self.stream_fn = stream_fn
        self.heartbeat_seconds = heartbeat_seconds if heartbeat_seconds is not None else settings.CHAT_HEARTBEAT_SECONDS
        self.on_complete = on_complete
        self.state = RelayState.IDLE
        self.cancel = threading.Event()
        self.parts: List[str] = []
        self.error: Optional[str] = None

    @property
    def reply(self) -> str:
        return "".join(self.parts)

    def _move(self, new_state: RelayState) -> None:
        if new_state not in TRANSITIONS[self.state]:
            raise InvalidTransition(f"{self.state.value} -> {new_state.value}")
        self.state = new_state

    def _open_upstream(self) -> Iterator[str]:
        stream_fn = self.stream_fn or gemini_service.stream_reply
        return stream_fn(self.contents, self.cancel)

    async def events(self) -> AsyncIterator[str]:
        """Générateur SSE passé à StreamingResponse"""
        self._move(RelayState.AWAITING_FIRST_CHUNK)
        iterator = None
        pending: Optional[asyncio.Future] = None

        try:
            iterator = self._open_upstream()
            loop = asyncio.get_running_loop()
            next_ping = loop.time() + self.heartbeat_seconds
            while True:
                if pending is None:
                    pending = asyncio.ensure_future(asyncio.to_thread(next, iterator, _END))

                done, _ = await asyncio.wait({pending}, timeout=max(0, next_ping - loop.time()))
                # intervalle fixe, que des fragments arrivent ou non
                if loop.time() >= next_ping:
                    next_ping = loop.time() + self.heartbeat_seconds
                    yield format_event({}, "ping")
                if not done:
                    continue

                chunk = pending.result()
                pending = None
                if chunk is _END:
                    break

                if self.state is RelayState.AWAITING_FIRST_CHUNK:
                    self._move(RelayState.STREAMING)
                self.parts.append(chunk)
                yield format_event({"text": chunk, "done": False})

            if self.on_complete is not None:
                try:
                    await asyncio.to_thread(self.on_complete, self.reply)
                except Exception as e:
                    # la réponse est déjà livrée: on termine quand même par `done`
                    logger.error(f"Saving chat reply failed: {e}")
            self._move(RelayState.COMPLETED)
            yield format_event({"text": "", "done": True}, "done")

        except Exception as e:
            logger.error(f"Streaming error: {e}")
            self.error = str(e) or e.__class__.__name__
            self._move(RelayState.ERRORED)
            yield format_event({"error": self.error}, "error")

        finally:
            # fin de réponse (normale, erreur ou client parti): on coupe l'amont
            self.cancel.set()
            if self.state not in (RelayState.COMPLETED, RelayState.ERRORED):
                logger.info("Chat stream closed before completion")
                self.state = RelayState.ERRORED
            if pending is not None and not pending.done():
                pending.add_done_callback(lambda fut: self._finish_pending(fut, iterator))
            elif iterator is not None:
                _close_iterator(iterator)

    @staticmethod
    def _finish_pending(fut: asyncio.Future, iterator) -> None:
        if not fut.cancelled() and fut.exception() is not None:
            logger.warning(f"Upstream failed after client left: {fut.exception()}")
        _close_iterator(iterator)
