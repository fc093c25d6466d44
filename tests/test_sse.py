from todoapp.core.sse import SSEParser, format_event, iter_events, split_lines


def test_format_event():
    assert format_event({"text": "hi", "done": False}) == 'event: message\ndata: {"text": "hi", "done": false}\n\n'
    assert format_event({}, "ping") == "event: ping\ndata: {}\n\n"


def test_iter_events_from_lines():
    lines = [
        "event: message",
        'data: {"text": "Hel"}',
        "",
        ": commentaire ignoré",
        "event: done",
        'data: {"done": true}',
        "",
    ]
    events = list(iter_events(lines))
    assert [(e.event, e.data) for e in events] == [("message", {"text": "Hel"}), ("done", {"done": True})]


def test_iter_events_from_raw_chunks():
    """Un chunk réseau peut contenir plusieurs événements"""
    raw = format_event({"text": "a"}) + format_event({"text": "b"})
    events = list(iter_events([raw.encode()]))
    assert [e.data["text"] for e in events] == ["a", "b"]


def test_default_event_name_and_plain_data():
    parser = SSEParser()
    assert parser.feed_line("data: [DONE]") is None
    event = parser.feed_line("")
    assert event.event == "message"
    assert event.data == "[DONE]"


def test_trailing_event_without_blank_line():
    events = list(iter_events(["event: done", 'data: {"done": true}']))
    assert events[0].event == "done"


def test_blank_lines_alone_produce_nothing():
    assert list(iter_events(["", "", "\n"])) == []


def test_split_lines_only_on_newline():
    chunks = ["data: a b\u0085c\r\n", "\ndata: d"]
    assert list(split_lines(chunks)) == ["data: a b\u0085c\r", "", "data: d"]


def test_split_lines_multibyte_across_chunks():
    raw = "data: é\n".encode()
    chunks = [raw[:7], raw[7:]]
    assert list(split_lines(chunks)) == ["data: é"]
