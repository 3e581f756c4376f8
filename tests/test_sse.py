"""Incremental SSE framing and delta accumulation."""

import json

import pytest

from studyai.client.sse import (
    DeltaAccumulator,
    ErrorFrame,
    FrameKind,
    LineFramer,
    extract_delta,
    parse_line,
)


def frame(content):
    return f"data: {json.dumps({'choices': [{'delta': {'content': content}}]}, ensure_ascii=False)}\n\n"


STREAM = (
    ": keep-alive\n\n"
    + frame("Photo")
    + frame("synthesis ")
    + "event: ping\n"
    + frame("converts light ✨ into energy.")
    + "data: [DONE]\n\n"
).encode()


def accumulate(chunks):
    acc = DeltaAccumulator()
    for chunk in chunks:
        if acc.feed(chunk):
            break
    acc.finish()
    return acc


def test_whole_stream_in_one_chunk():
    acc = accumulate([STREAM])
    assert acc.text == "Photosynthesis converts light ✨ into energy."
    assert acc.done is True


@pytest.mark.parametrize("offset", range(1, len(STREAM)))
def test_single_split_anywhere_gives_same_text(offset):
    acc = accumulate([STREAM[:offset], STREAM[offset:]])
    assert acc.text == "Photosynthesis converts light ✨ into energy."


def test_byte_by_byte_delivery():
    acc = accumulate([STREAM[i:i + 1] for i in range(len(STREAM))])
    assert acc.text == "Photosynthesis converts light ✨ into energy."
    assert acc.skipped_lines == 0


def test_frame_split_mid_json():
    acc = DeltaAccumulator()
    acc.feed(b'data: {"choices":[{"delta":')
    assert acc.text == ""
    acc.feed(b'{"content":"Hello"}}]}\n')
    assert acc.text == "Hello"


def test_sentinel_stops_processing():
    acc = DeltaAccumulator()
    done = acc.feed((frame("kept") + "data: [DONE]\n" + frame("dropped")).encode())
    assert done is True
    assert acc.feed(frame("also dropped").encode()) is True
    acc.finish()
    assert acc.text == "kept"


def test_sentinel_followed_by_garbage_in_same_chunk():
    acc = accumulate([(frame("ok") + "data: [DONE]\n{{{garbage").encode()])
    assert acc.text == "ok"
    assert acc.done is True


def test_crlf_line_endings():
    acc = accumulate([frame("a").replace("\n", "\r\n").encode(), b"data: [DONE]\r\n"])
    assert acc.text == "a"
    assert acc.done is True


def test_crlf_split_between_chunks():
    framer = LineFramer()
    assert framer.feed(b"data: x\r") == []
    assert framer.feed(b"\n") == ["data: x"]


def test_multibyte_character_split_across_chunks():
    encoded = frame("naïve ✨").encode()
    split = encoded.index("✨".encode()) + 1
    acc = accumulate([encoded[:split], encoded[split:]])
    assert acc.text == "naïve ✨"


def test_malformed_complete_line_is_skipped():
    acc = accumulate([b"data: {not json}\n", frame("after").encode()])
    assert acc.text == "after"
    assert acc.skipped_lines == 1


def test_unterminated_tail_is_parsed_at_end():
    acc = DeltaAccumulator()
    acc.feed(frame("first").encode() + frame("tail").rstrip("\n").encode())
    assert acc.text == "first"
    acc.finish()
    assert acc.text == "firsttail"


def test_broken_tail_is_tolerated():
    acc = accumulate([frame("first").encode(), b'data: {"choices":[{"del'])
    assert acc.text == "first"
    assert acc.done is False


def test_error_frame_is_recorded():
    acc = accumulate([b'data: {"error": "Stream interrupted, please retry"}\n\n'])
    assert acc.error == "Stream interrupted, please retry"
    assert acc.text == ""


def test_on_text_sees_growing_text():
    seen = []
    acc = DeltaAccumulator(on_text=seen.append)
    acc.feed((frame("a") + frame("b") + frame("c")).encode())
    assert seen == ["a", "ab", "abc"]


@pytest.mark.parametrize(
    ("line", "kind"),
    [
        ("", FrameKind.BLANK),
        ("   ", FrameKind.BLANK),
        (": ping", FrameKind.COMMENT),
        ("event: message", FrameKind.OTHER),
        ("data:[DONE]", FrameKind.OTHER),
        ("data: [DONE]", FrameKind.DONE),
        ("data: [DONE]  ", FrameKind.DONE),
        ('data: {"x": 1}', FrameKind.DATA),
    ],
)
def test_parse_line_kinds(line, kind):
    assert parse_line(line).kind is kind


def test_extract_delta():
    assert extract_delta('{"choices":[{"delta":{"content":"hi"}}]}') == "hi"
    assert extract_delta('{"choices":[{"delta":{"role":"assistant"}}]}') is None
    assert extract_delta('{"choices":[]}') is None
    with pytest.raises(ValueError):
        extract_delta('{"choices":')


def test_extract_delta_raises_on_error_frame():
    with pytest.raises(ErrorFrame) as exc_info:
        extract_delta('{"error": "Stream interrupted, please retry"}')
    assert exc_info.value.message == "Stream interrupted, please retry"
    # A chunk that carries choices is never treated as an error frame
    assert extract_delta('{"error": "x", "choices":[{"delta":{"content":"ok"}}]}') == "ok"
