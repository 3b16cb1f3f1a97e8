"""Unit tests for the server-sent-events stream endpoint."""

import threading

from chatrelay.models import END_OF_TURN, Fragment
from chatrelay.relay import FragmentRelay
from chatrelay.stream import KEEPALIVE_FRAME, format_event, listen


class TestFormatEvent:
    def test_text_fragment(self):
        assert format_event(Fragment(text="Hi")) == "event: message\ndata: Hi\n\n"

    def test_leading_space_kept_after_field_separator(self):
        assert format_event(Fragment(text=" there")) == (
            "event: message\ndata:  there\n\n"
        )

    def test_multiline_text_uses_one_data_line_per_line(self):
        assert format_event(Fragment(text="a\nb")) == (
            "event: message\ndata: a\ndata: b\n\n"
        )

    def test_bare_carriage_return_starts_new_data_line(self):
        assert format_event(Fragment(text="a\rb")) == (
            "event: message\ndata: a\ndata: b\n\n"
        )

    def test_crlf_and_trailing_break(self):
        assert format_event(Fragment(text="a\r\nb\n")) == (
            "event: message\ndata: a\ndata: b\ndata: \n\n"
        )

    def test_end_of_turn(self):
        assert format_event(END_OF_TURN) == "event: end\ndata: \n\n"


class TestListen:
    def test_forwards_in_order_until_closed(self, relay):
        for item in (Fragment(text="Hi"), Fragment(text=" there"), END_OF_TURN):
            relay.publish(item)
        relay.close()

        frames = list(listen(relay, keepalive=0.05))

        assert frames == [
            "event: message\ndata: Hi\n\n",
            "event: message\ndata:  there\n\n",
            "event: end\ndata: \n\n",
        ]

    def test_keepalive_while_idle(self, relay):
        frames = listen(relay, keepalive=0.01)
        assert next(frames) == KEEPALIVE_FRAME
        frames.close()

    def test_disconnect_leaves_remaining_fragments_queued(self, relay):
        relay.publish(Fragment(text="a"))
        relay.publish(Fragment(text="b"))

        frames = listen(relay, keepalive=0.05)
        assert next(frames) == "event: message\ndata: a\n\n"
        frames.close()

        assert relay.take_next() == Fragment(text="b")

    def test_first_waiting_listener_wins(self):
        relay = FragmentRelay(capacity=1)
        first = listen(relay, keepalive=5.0)
        received = []
        thread = threading.Thread(target=lambda: received.append(next(first)))
        thread.start()

        relay.publish(Fragment(text="only"))
        thread.join(2.0)

        assert received == ["event: message\ndata: only\n\n"]
        assert len(relay) == 0
        relay.close()
        assert list(first) == []
