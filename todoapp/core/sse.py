"""Server-Sent Events helpers.

Côté serveur on formate chaque événement en `event: <nom>\\ndata: <json>\\n\\n`.
Côté client, SSEParser reconstruit les événements à partir des lignes reçues
(les lignes vides terminent un événement, les commentaires `:` sont ignorés).
"""

import codecs
import json
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, List, Optional


@dataclass
class SSEEvent:
    event: str
    data: Any


def format_event(data: Any, event: str = "message") -> str:
    return f"event: {event}\ndata: {json.dumps(data)}\n\n"


class SSEParser:
    def __init__(self):
        self._event: Optional[str] = None
        self._data: List[str] = []

    def feed_line(self, line: str) -> Optional[SSEEvent]:
        """Ajoute une ligne; retourne l'événement quand il est complet"""
        line = line.rstrip("\r")
        if line == "":
            return self._dispatch()
        if line.startswith(":"):
            return None

        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]

        if field == "event":
            self._event = value
        elif field == "data":
            self._data.append(value)
        return None

    def flush(self) -> Optional[SSEEvent]:
        return self._dispatch()

    def _dispatch(self) -> Optional[SSEEvent]:
        if not self._data:
            self._event = None
            return None

        raw = "\n".join(self._data)
        event = self._event or "message"
        self._event = None
        self._data = []

        try:
            data = json.loads(raw)
        except ValueError:
            data = raw
        return SSEEvent(event=event, data=data)


def split_lines(chunks: Iterable) -> Iterator[str]:
    """Découpe un flux de chunks (bytes ou str) en lignes, sur "\\n" uniquement.

    str.splitlines() coupe aussi sur U+2028, U+2029 et U+0085, que JSON
    laisse passer tels quels dans une chaîne.
    """
    decoder = codecs.getincrementaldecoder("utf-8")()
    buffer = ""
    for chunk in chunks:
        buffer += decoder.decode(chunk) if isinstance(chunk, bytes) else chunk
        *lines, buffer = buffer.split("\n")
        yield from lines
    buffer += decoder.decode(b"", final=True)
    if buffer:
        yield buffer


def iter_events(lines: Iterable[str]) -> Iterator[SSEEvent]:
    parser = SSEParser()
    for line in lines:
        if isinstance(line, bytes):
            line = line.decode("utf-8")
        # un chunk réseau peut contenir plusieurs lignes
        for part in line.split("\n"):
            event = parser.feed_line(part)
            if event is not None:
                yield event
    last = parser.flush()
    if last is not None:
        yield last
