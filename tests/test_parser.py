"""Tests for the text/event-stream line splitter and field parser."""

from conftest import RecordingHandler

from eventsource_academy.client.parser import EventParser, LineSplitter

ORIGIN = "http://example.test/stream"


class FakeSource:
    def __init__(self):
        self.last_event_id = None
        self.reconnection_time_ms = 1000

    def set_last_event_id(self, last_event_id):
        self.last_event_id = last_event_id

    def set_reconnection_time_ms(self, reconnection_time_ms):
        self.reconnection_time_ms = reconnection_time_ms


def feed(*lines, last_event_id=None):
    handler = RecordingHandler()
    source = FakeSource()
    parser = EventParser(ORIGIN, handler, source, last_event_id=last_event_id)
    for line in lines:
        parser.line(line)
    return handler, source


def messages(handler):
    return [(event_type, event.data) for _, event_type, event in handler.of_kind("message")]


class TestDispatch:
    def test_named_event(self):
        handler, _ = feed("event: foo", "data: bar", "")
        assert messages(handler) == [("foo", "bar")]

    def test_default_type_and_multiline_data(self):
        handler, _ = feed("data: a", "data: b", "")
        assert messages(handler) == [("message", "a\nb")]

    def test_no_space_after_colon(self):
        handler, _ = feed("event:foo", "data:bar", "")
        assert messages(handler) == [("foo", "bar")]

    def test_only_one_leading_space_is_stripped(self):
        handler, _ = feed("data:   indented", "")
        assert messages(handler) == [("message", "  indented")]

    def test_nothing_dispatched_without_blank_line(self):
        handler, _ = feed("event: foo", "data: bar")
        assert messages(handler) == []

    def test_blank_line_without_data_dispatches_nothing_and_resets_type(self):
        handler, _ = feed("event: foo", "", "data: x", "")
        assert messages(handler) == [("message", "x")]

    def test_field_without_colon_has_empty_value(self):
        handler, _ = feed("data", "data", "")
        assert messages(handler) == [("message", "\n")]

    def test_type_and_data_reset_between_events(self):
        handler, _ = feed("event: a", "data: 1", "", "data: 2", "")
        assert messages(handler) == [("a", "1"), ("message", "2")]

    def test_unknown_fields_are_ignored(self):
        handler, _ = feed("foo: bar", "data: x", "")
        assert messages(handler) == [("message", "x")]

    def test_event_carries_origin(self):
        handler, _ = feed("data: x", "")
        event = handler.of_kind("message")[0][2]
        assert event.origin == ORIGIN


class TestComments:
    def test_comment_is_forwarded_and_not_dispatched(self):
        handler, _ = feed(": keep-alive", "")
        assert handler.of_kind("comment") == [("comment", "keep-alive")]
        assert messages(handler) == []


class TestLastEventId:
    def test_id_updates_source_and_event(self):
        handler, source = feed("id: 42", "data: x", "")
        assert source.last_event_id == "42"
        assert handler.of_kind("message")[0][2].last_event_id == "42"

    def test_id_is_retained_across_events(self):
        handler, _ = feed("id: 1", "data: a", "", "data: b", "")
        ids = [event.last_event_id for _, _, event in handler.of_kind("message")]
        assert ids == ["1", "1"]

    def test_id_with_nul_is_ignored(self):
        _, source = feed("id: a\x00b", "data: x", "")
        assert source.last_event_id is None

    def test_initial_id_is_reported_until_replaced(self):
        handler, _ = feed("data: x", "", last_event_id="7")
        assert handler.of_kind("message")[0][2].last_event_id == "7"


class TestRetry:
    def test_retry_updates_reconnect_interval_without_dispatch(self):
        handler, source = feed("retry: 5000", "")
        assert source.reconnection_time_ms == 5000
        assert handler.calls == []

    def test_invalid_retry_is_ignored(self):
        _, source = feed("retry: soon", "retry: -5", "retry: 1.5")
        assert source.reconnection_time_ms == 1000


class TestLineSplitter:
    def test_lf_cr_and_crlf(self):
        splitter = LineSplitter()
        assert splitter.feed("a\nb\rc\r\nd") == ["a", "b", "c"]
        assert splitter.feed("\n") == ["d"]

    def test_partial_line_is_buffered(self):
        splitter = LineSplitter()
        assert splitter.feed("data: hel") == []
        assert splitter.feed("lo\n\n") == ["data: hello", ""]

    def test_crlf_split_across_chunks(self):
        splitter = LineSplitter()
        assert splitter.feed("data: x\r") == ["data: x"]
        assert splitter.feed("\n\r\n") == [""]

    def test_unicode_line_separators_are_data(self):
        splitter = LineSplitter()
        assert splitter.feed("data: a\u2028b\n") == ["data: a\u2028b"]
