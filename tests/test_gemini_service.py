"""
Tests du client Gemini: on MOCK requests.post
"""

import io
import json
import threading
from unittest.mock import patch, MagicMock

import pytest
import requests

from todoapp.core.config import settings
from todoapp.services import gemini_service
from todoapp.services.gemini_service import GeminiError, build_contents, extract_text


def _chunk(text):
    return "data: " + json.dumps({"candidates": [{"content": {"parts": [{"text": text}], "role": "model"}}]})


def _sse_response(*texts, status_code=200):
    response = MagicMock()
    response.status_code = status_code
    lines = []
    for text in texts:
        lines += [_chunk(text), ""]
    response.iter_content.return_value = iter([("\n".join(lines) + "\n").encode()])
    return response


@pytest.fixture(autouse=True)
def api_key(monkeypatch):
    monkeypatch.setattr(settings, "GEMINI_API_KEY", "test-key")


def test_build_contents_maps_roles():
    contents = build_contents(
        "Et ensuite ?",
        persona="Tu es un coach.",
        history=[{"role": "user", "content": "Salut"}, {"role": "assistant", "content": "Bonjour"}],
    )
    assert [c["role"] for c in contents] == ["user", "model", "user", "model", "user"]
    assert contents[0]["parts"][0]["text"] == "Tu es un coach."
    assert contents[-1]["parts"][0]["text"] == "Et ensuite ?"


def test_extract_text_joins_parts():
    data = {"candidates": [{"content": {"parts": [{"text": "Hel"}, {"text": "lo"}]}}]}
    assert extract_text(data) == "Hello"
    assert extract_text({}) == ""


def test_stream_reply_yields_fragments():
    response = _sse_response("Hel", "lo")
    with patch("todoapp.services.gemini_service.requests.post", return_value=response) as post:
        chunks = list(gemini_service.stream_reply(build_contents("Salut")))

    assert chunks == ["Hel", "lo"]
    url = post.call_args.args[0]
    assert url.endswith(f"/models/{settings.GEMINI_MODEL}:streamGenerateContent")
    assert post.call_args.kwargs["params"] == {"alt": "sse"}
    assert post.call_args.kwargs["headers"]["x-goog-api-key"] == "test-key"
    assert post.call_args.kwargs["stream"] == True
    response.close.assert_called()


def test_stream_reply_stops_when_cancelled():
    response = _sse_response("a", "b", "c")
    cancel = threading.Event()
    with patch("todoapp.services.gemini_service.requests.post", return_value=response):
        stream = gemini_service.stream_reply([], cancel)
        assert next(stream) == "a"
        cancel.set()
        assert list(stream) == []
    response.close.assert_called()


def test_stream_reply_keeps_unicode_line_separators():
    """U+2028 et U+2029 restent dans le texte au lieu de couper la ligne"""
    text = "ligne un\u2028ligne deux\u2029fin"
    response = requests.models.Response()
    response.status_code = 200
    payload = {"candidates": [{"content": {"parts": [{"text": text}]}}]}
    # Gemini peut envoyer ces caractères sans les échapper
    response.raw = io.BytesIO(("data: " + json.dumps(payload, ensure_ascii=False) + "\n\n").encode())
    with patch("todoapp.services.gemini_service.requests.post", return_value=response):
        chunks = list(gemini_service.stream_reply([]))

    assert chunks == [text]


def test_stream_reply_http_error():
    response = MagicMock()
    response.status_code = 429
    response.json.return_value = {"error": {"message": "Resource exhausted"}}
    with patch("todoapp.services.gemini_service.requests.post", return_value=response):
        with pytest.raises(GeminiError) as exc:
            list(gemini_service.stream_reply([]))
    assert "Resource exhausted" in str(exc.value)


def test_stream_reply_connection_error():
    with patch("todoapp.services.gemini_service.requests.post", side_effect=requests.ConnectionError("refused")):
        with pytest.raises(GeminiError):
            list(gemini_service.stream_reply([]))


def test_stream_reply_requires_api_key(monkeypatch):
    monkeypatch.setattr(settings, "GEMINI_API_KEY", "")
    with patch("todoapp.services.gemini_service.requests.post") as post:
        with pytest.raises(GeminiError):
            list(gemini_service.stream_reply([]))
    post.assert_not_called()


def test_generate_reply():
    response = MagicMock()
    response.status_code = 200
    response.json.return_value = {"candidates": [{"content": {"parts": [{"text": " Bonjour "}]}}]}
    with patch("todoapp.services.gemini_service.requests.post", return_value=response) as post:
        assert gemini_service.generate_reply([]) == "Bonjour"
    assert post.call_args.args[0].endswith(":generateContent")
    assert post.call_args.kwargs["stream"] == False
