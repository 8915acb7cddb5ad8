# tests/test_sse.py
from relay.services.sse import (
    EventKind,
    SSEDecoder,
    SSEEvent,
    classify,
    comment,
    encode_event,
    extract_delta_text,
    padding,
)

def test_decoder_reassembles_split_frames():
    # a frame cut in the middle of its JSON only comes out once the blank line arrives
    dec = SSEDecoder()
    assert dec.feed('event: thread.message.delta\ndata: {"delta": "Hel') == []
    events = dec.feed('lo"}\n\nevent: done\ndata: [DONE]\n\n')
    assert [e.event for e in events] == ["thread.message.delta", "done"]
    assert events[0].data == {"delta": "Hello"}
    assert events[1].data is None

def test_decoder_handles_crlf_split_across_chunks():
    dec = SSEDecoder()
    events = dec.feed('event: delta\r\ndata: {"delta": "a"}\r')
    events += dec.feed('\n\r\n')
    assert len(events) == 1
    assert events[0].data == {"delta": "a"}

def test_decoder_skips_malformed_and_comment_frames():
    dec = SSEDecoder()
    events = dec.feed(': keepalive\n\nevent: delta\ndata: {not json\n\nevent: delta\ndata: {"delta": "ok"}\n\n')
    assert [e.data for e in events] == [{"delta": "ok"}]

def test_decoder_joins_multiline_data_and_flushes_tail():
    dec = SSEDecoder()
    assert dec.feed('event: error\ndata: {"message":\ndata:  "boom"}') == []
    events = dec.flush()
    assert events[0].event == "error"
    assert events[0].data == {"message": "boom"}
    assert dec.flush() == []

def test_classify_event_names():
    assert classify(SSEEvent("thread.message.delta", {})) is EventKind.DELTA
    assert classify(SSEEvent("response.output_text.delta", {})) is EventKind.DELTA
    assert classify(SSEEvent("thread.run.completed", {})) is EventKind.COMPLETED
    assert classify(SSEEvent("done", None)) is EventKind.COMPLETED
    assert classify(SSEEvent("thread.run.failed", {})) is EventKind.FAILED
    assert classify(SSEEvent("thread.run.expired", {})) is EventKind.FAILED
    assert classify(SSEEvent("error", {})) is EventKind.ERROR
    assert classify(SSEEvent("thread.run.step.created", {})) is EventKind.OTHER

def test_extract_delta_text_shapes():
    # plain delta string
    assert extract_delta_text({"delta": "Hi"}) == "Hi"
    # content-part array, text parts only
    parts = {"delta": {"content": [
        {"type": "text", "text": {"value": "Hel"}},
        {"type": "image_file", "image_file": {}},
        {"type": "text", "text": {"value": "lo"}},
    ]}}
    assert extract_delta_text(parts) == "Hello"
    # output-text value
    assert extract_delta_text({"text": {"value": "there"}}) == "there"
    assert extract_delta_text({"output_text": "x"}) == "x"
    # nothing usable
    assert extract_delta_text({"delta": {"content": []}}) is None
    assert extract_delta_text(None) is None

def test_first_matching_shape_wins():
    payload = {"delta": "plain", "text": {"value": "ignored"}}
    assert extract_delta_text(payload) == "plain"

def test_encoders():
    assert encode_event("delta", {"text": "é"}) == 'event: delta\ndata: {"text": "é"}\n\n'.encode("utf-8")
    assert comment("ping") == b": ping\n\n"
    assert padding(4) == b":     \n\n"
