"""
Service Gemini - appels HTTP à l'API Generative Language de Google
"""

import requests
import logging
import threading
from typing import Iterator, List, Optional

from todoapp.core.config import settings
from todoapp.core.sse import iter_events, split_lines

logger = logging.getLogger(__name__)

PERSONA_ACK = "Understood. I'll stay in character."


class GeminiError(Exception):
    pass


def build_contents(message: str, persona: Optional[str] = None, history: Optional[List[dict]] = None) -> List[dict]:
    """Historique Gemini: persona en préambule, puis les tours précédents, puis le message.

    history: liste de {"role": "user"|"assistant", "content": str}
    """
    contents = [
        {"role": "user", "parts": [{"text": persona or settings.CHAT_PERSONA}]},
        {"role": "model", "parts": [{"text": PERSONA_ACK}]},
    ]
    for turn in history or []:
        role = "model" if turn["role"] == "assistant" else "user"
        contents.append({"role": role, "parts": [{"text": turn["content"]}]})
    contents.append({"role": "user", "parts": [{"text": message}]})
    return contents


def extract_text(data: dict) -> str:
    candidates = data.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(part.get("text", "") for part in parts)


def _payload(contents: List[dict]) -> dict:
    return {
        "contents": contents,
        "generationConfig": {"maxOutputTokens": settings.GEMINI_MAX_OUTPUT_TOKENS},
    }


def _post(action: str, contents: List[dict], stream: bool = False) -> requests.Response:
    if not settings.GEMINI_API_KEY:
        raise GeminiError("GEMINI_API_KEY is not set")

    url = f"{settings.GEMINI_BASE_URL}/models/{settings.GEMINI_MODEL}:{action}"
    try:
        response = requests.post(
            url,
            params={"alt": "sse"} if stream else None,
            headers={"x-goog-api-key": settings.GEMINI_API_KEY},
            json=_payload(contents),
            stream=stream,
            timeout=settings.GEMINI_TIMEOUT,
        )
    except requests.RequestException as e:
        logger.error(f"Gemini unreachable: {e}")
        raise GeminiError(str(e)) from e

    if response.status_code >= 400:
        try:
            detail = response.json().get("error", {}).get("message") or response.text
        except ValueError:
            detail = response.text
        response.close()
        logger.error(f"Gemini error {response.status_code}: {detail}")
        raise GeminiError(f"{response.status_code}: {detail}")

    return response


def generate_reply(contents: List[dict]) -> str:
    response = _post("generateContent", contents)
    return extract_text(response.json()).strip()


def stream_reply(contents: List[dict], cancel: Optional[threading.Event] = None) -> Iterator[str]:
    """Yield les fragments de texte dans l'ordre où Gemini les envoie.

    Si `cancel` est levé (client déconnecté), on ferme la réponse amont.
    """
    response = _post("streamGenerateContent", contents, stream=True)
    try:
        for event in iter_events(split_lines(response.iter_content(chunk_size=None))):
            if cancel is not None and cancel.is_set():
                logger.info("Gemini stream cancelled by client")
                return
            if not isinstance(event.data, dict):
                continue
            if "error" in event.data:
                error = event.data["error"]
                raise GeminiError(error.get("message", "upstream error") if isinstance(error, dict) else str(error))
            text = extract_text(event.data)
            if text:
                yield text
    except requests.RequestException as e:
        logger.error(f"Gemini stream interrupted: {e}")
        raise GeminiError(str(e)) from e
    finally:
        response.close()
