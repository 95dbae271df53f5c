"""Unit tests for ResponseCollector - per-request decode state."""

from __future__ import annotations

import pytest

from clj_nrepl.errors import DecodeError
from clj_nrepl.protocol.bencode import encode
from clj_nrepl.protocol.responses import Response
from clj_nrepl.transport import ResponseCollector

DONE = encode({"status": ["done"]})


class TestCompletion:
    """Completion is reached when the last collected response is done."""

    def test_single_done_response(self):
        collector = ResponseCollector()

        assert collector.feed(DONE) is True
        assert collector.done
        assert collector.responses == [Response.from_wire({"status": ["done"]})]

    def test_not_done_until_marker(self):
        collector = ResponseCollector()

        assert collector.feed(encode({"out": "hi"})) is False
        assert collector.feed(encode({"value": "nil"})) is False
        assert collector.feed(DONE) is True
        assert [r.get("out") for r in collector.responses] == ["hi", None, None]

    def test_trailing_object_in_same_buffer_is_dropped(self):
        collector = ResponseCollector()

        collector.feed(DONE + encode({"garbage": "x"}))

        assert collector.responses == [Response.from_wire({"status": ["done"]})]
        assert collector.dropped == 1

    def test_feed_after_done_is_ignored(self):
        collector = ResponseCollector()
        collector.feed(DONE)

        assert collector.feed(encode({"value": "late"})) is True
        assert len(collector.responses) == 1

    def test_other_status_is_not_completion(self):
        collector = ResponseCollector()

        collector.feed(encode({"status": ["eval-error"], "ex": "class E"}))

        assert not collector.done


class TestPartialData:
    """Partial objects are kept until the rest arrives."""

    def test_split_response(self):
        data = encode({"value": "3"}) + DONE
        collector = ResponseCollector()

        assert collector.feed(data[:5]) is False
        assert collector.responses == []
        assert collector.pending_bytes == 5

        assert collector.feed(data[5:]) is True
        assert [r.value for r in collector.responses] == ["3", None]
        assert collector.pending_bytes == 0

    def test_byte_at_a_time(self):
        data = encode({"out": "a"}) + encode({"out": "b"}) + DONE
        collector = ResponseCollector()

        results = [collector.feed(data[i : i + 1]) for i in range(len(data))]

        assert results[-1] is True
        assert not any(results[:-1])
        assert [r.out for r in collector.responses] == ["a", "b", None]


class TestBadData:
    def test_non_mapping_response_raises(self):
        with pytest.raises(DecodeError):
            ResponseCollector().feed(b"i42e")

    def test_malformed_bytes_raise(self):
        with pytest.raises(DecodeError):
            ResponseCollector().feed(b"?")

    def test_responses_is_a_copy(self):
        collector = ResponseCollector()
        collector.feed(DONE)

        collector.responses.clear()

        assert len(collector.responses) == 1


class TestAfterCompletion:
    """Bytes following the completion marker are never validated."""

    def test_malformed_bytes_after_done_are_dropped(self):
        collector = ResponseCollector()

        assert collector.feed(encode({"value": "1"}) + DONE + b"\r\n") is True

        assert [r.value for r in collector.responses] == ["1", None]
        assert collector.pending_bytes == 0

    def test_whole_objects_then_junk_after_done(self):
        collector = ResponseCollector()

        collector.feed(DONE + encode({"late": "x"}) + b"junk")

        assert len(collector.responses) == 1
        assert collector.dropped == 1

    def test_malformed_bytes_before_done_still_raise(self):
        collector = ResponseCollector()

        with pytest.raises(DecodeError):
            collector.feed(encode({"value": "1"}) + b"junk" + DONE)


class TestImmutability:
    def test_collected_responses_cannot_be_mutated(self):
        collector = ResponseCollector()
        collector.feed(encode({"status": ["done"], "info": {"k": "v"}}))
        response = collector.responses[0]

        with pytest.raises(AttributeError):
            response["status"].append("mutated")
        with pytest.raises(TypeError):
            response["info"]["k"] = "changed"

        assert collector.responses[0].status == ["done"]
