from unittest.mock import patch

from todoapp.client.chat_widget import ChatWidget, ChatMessage, HttpChatStream, ERROR_TEXT, WELCOME_TEXT
from todoapp.core.sse import format_event

import pytest


def sse_lines(*events):
    """Transforme des événements formatés en lignes, comme split_lines()"""
    return "".join(events).split("\n")


def message(text):
    return format_event({"text": text, "done": False})


DONE = format_event({"text": "", "done": True}, "done")
PING = format_event({}, "ping")


class ScriptedStream:
    """Faux open_stream: une réponse scriptée par appel"""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.prompts = []

    def __call__(self, prompt):
        self.prompts.append(prompt)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def broken_after(lines, error):
    yield from lines
    raise error


# ============ STREAMING ============

def test_chunks_grow_one_assistant_message():
    renders = []
    stream = ScriptedStream(sse_lines(message("Hel"), PING, message("lo"), DONE))
    widget = ChatWidget(stream, on_update=lambda msgs: renders.append(msgs[-1].text))

    reply = widget.submit("Salut")

    assert reply.text == "Hello"
    assert reply.final
    assert [m.role for m in widget.messages] == ["assistant", "user", "assistant"]
    assert [m.text for m in widget.messages] == [WELCOME_TEXT, "Salut", "Hello"]
    # le même message est re-rendu à chaque fragment
    assert "Hel" in renders
    assert renders[-1] == "Hello"
    assert sum(1 for m in widget.messages if m.text == "Hello") == 1


def test_message_with_null_text():
    stream = ScriptedStream(sse_lines(format_event({"text": None, "done": False}), message("ok"), DONE))
    reply = ChatWidget(stream).submit("Salut")
    assert reply.text == "ok"
    assert not reply.error


def test_finished_message_is_immutable():
    widget = ChatWidget(ScriptedStream(sse_lines(message("ok"), DONE)))
    reply = widget.submit("Salut")
    with pytest.raises(RuntimeError):
        reply.append("more")


def test_empty_input_ignored():
    stream = ScriptedStream()
    widget = ChatWidget(stream)
    assert widget.submit("   ") is None
    assert stream.prompts == []
    assert len(widget.messages) == 1


# ============ ERREURS / RETRY ============

def test_error_event_then_retry():
    stream = ScriptedStream(
        sse_lines(message("Hel"), format_event({"error": "quota exceeded"}, "error")),
        sse_lines(message("Hello"), DONE),
    )
    widget = ChatWidget(stream)

    failed = widget.submit("Raconte une blague")

    assert failed.error
    assert failed.text == ERROR_TEXT
    assert failed.detail == "quota exceeded"
    assert sum(1 for m in widget.messages if m.error) == 1
    # le fragment partiel a disparu
    assert all(m.text != "Hel" for m in widget.messages)
    assert widget.can_retry

    reply = widget.retry()

    assert stream.prompts == ["Raconte une blague", "Raconte une blague"]
    assert reply.text == "Hello"
    assert not any(m.error for m in widget.messages)
    assert [m.role for m in widget.messages] == ["assistant", "user", "assistant"]


def test_transport_failure_shows_error():
    stream = ScriptedStream(broken_after(sse_lines(message("Hel")), ConnectionError("reset by peer")))
    widget = ChatWidget(stream)

    reply = widget.submit("Salut")

    assert reply.error
    assert "reset by peer" in reply.detail
    assert widget.messages[-1] is reply


def test_connection_refused_shows_error():
    widget = ChatWidget(ScriptedStream(ConnectionError("refused")))
    reply = widget.submit("Salut")
    assert reply.error
    assert widget.can_retry


def test_stream_ending_without_done_is_an_error():
    widget = ChatWidget(ScriptedStream(sse_lines(message("Hel"))))
    assert widget.submit("Salut").error


def test_no_automatic_retry():
    stream = ScriptedStream(ConnectionError("refused"), sse_lines(DONE))
    widget = ChatWidget(stream)
    widget.submit("Salut")
    assert stream.prompts == ["Salut"]


def test_retry_without_error_does_nothing():
    stream = ScriptedStream(sse_lines(message("ok"), DONE))
    widget = ChatWidget(stream)
    widget.submit("Salut")
    assert widget.retry() is None
    assert stream.prompts == ["Salut"]


# ============ HTTP ============

def test_http_stream_against_relay(client):
    """HttpChatStream + le vrai endpoint (Gemini mocké)"""
    def fake_reply(contents, cancel):
        yield "Hel"
        yield "lo"

    class StreamingClient:
        # adapte TestClient à l'API requests (stream=True + iter_content)
        def post(self, url, json=None, headers=None, stream=False, timeout=None):
            response = client.post(url, json=json, headers=headers)
            response.iter_content = lambda chunk_size=None: iter([response.content])
            return response

    with patch("todoapp.services.gemini_service.stream_reply", fake_reply):
        widget = ChatWidget(HttpChatStream("http://testserver", session=StreamingClient()))
        reply = widget.submit("Salut")

    assert reply.text == "Hello"
    assert not reply.error


def test_http_stream_bad_request(client):
    class PlainClient:
        def post(self, url, json=None, headers=None, stream=False, timeout=None):
            return client.post(url, json=json, headers=headers)

    widget = ChatWidget(HttpChatStream("http://testserver", session=PlainClient()))
    # contourne la validation locale pour voir l'erreur serveur
    widget.messages.append(ChatMessage("user", " ", final=True))
    widget.last_prompt = " "
    reply = widget._stream(" ")
    assert reply.error
    assert "400" in reply.detail
