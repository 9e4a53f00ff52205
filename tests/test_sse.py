"""Tests for tools/sse.py: frame encoding and decoding."""

from __future__ import annotations

from proposal_builder.tools.sse import (
    DONE_FRAME,
    StreamEvent,
    encode_error,
    encode_text,
    frames_from_deltas,
    parse_sse_lines,
)


class TestEncoding:
    def test_text_frame(self):
        assert encode_text("Hi") == 'data: {"text": "Hi"}'

    def test_error_frame(self):
        assert encode_error("boom") == 'data: {"error": "boom"}'

    def test_done_frame(self):
        assert DONE_FRAME == "data: [DONE]"


class TestFramesFromDeltas:
    def test_wraps_and_terminates(self):
        frames = list(frames_from_deltas(["a", "", "b"]))
        assert frames == [encode_text("a"), encode_text("b"), DONE_FRAME]

    def test_empty_stream_is_just_done(self):
        assert list(frames_from_deltas([])) == [DONE_FRAME]

    def test_exception_becomes_error_frame(self):
        def deltas():
            yield "partial"
            raise RuntimeError("connection reset")

        frames = list(frames_from_deltas(deltas()))
        assert frames == [encode_text("partial"), encode_error("connection reset")]


class TestParseSseLines:
    def test_text_then_done(self):
        lines = [encode_text("Hel"), encode_text("lo"), DONE_FRAME]
        assert list(parse_sse_lines(lines)) == [
            StreamEvent("text", "Hel"),
            StreamEvent("text", "lo"),
            StreamEvent("done"),
        ]

    def test_stops_at_done(self):
        events = list(parse_sse_lines([DONE_FRAME, encode_text("late")]))
        assert events == [StreamEvent("done")]

    def test_error_aborts(self):
        lines = [encode_text("a"), encode_error("rate limited"), encode_text("b")]
        events = list(parse_sse_lines(lines))
        assert events[-1] == StreamEvent("error", "rate limited")
        assert len(events) == 2

    def test_skips_noise(self):
        lines = [": keep-alive", "event: message", "data: {not json", "data: [1, 2]", encode_text("ok")]
        assert list(parse_sse_lines(lines)) == [StreamEvent("text", "ok")]

    def test_multi_line_frame(self):
        frame = encode_text("a") + "\n" + encode_text("b")
        assert [e.value for e in parse_sse_lines([frame])] == ["a", "b"]

    def test_stream_without_done_just_ends(self):
        assert list(parse_sse_lines([encode_text("x")])) == [StreamEvent("text", "x")]
