"""
Tests for assembling objects from a character stream
"""

import io

from pnmptrace.core.capture import FrameCapture, ObjectFramer


def frames(raw):
    return list(ObjectFramer().frames(raw))


class TestObjectFramer:
    """Test the brace-counting state machine"""

    def test_quoted_brace(self):
        """A closing brace inside a string doesn't end the object"""
        assert frames('{"a":"x}y"}') == ['"a":"x}y"']

    def test_nested_object(self):
        """Nested objects stay inside the one top-level object"""
        assert frames('{"a":{"b":1}}') == ['"a":{"b":1}']

    def test_several_objects(self):
        raw = 'noise {"a":1}\n[1,2] {"b":2}"stray"'
        assert frames(raw) == ['"a":1', '"b":2']

    def test_partial_object_discarded(self):
        assert frames('{"a":1} {"b":') == ['"a":1']

    def test_escaped_quote(self):
        """An escaped quote doesn't open or close a string"""
        assert frames(r'{"a":"x\"}"}') == [r'"a":"x\"}"']

    def test_escape_outside_string(self):
        """The escape applies even outside a string"""
        assert frames(r'{"a":1\}}') == [r'"a":1\}']

    def test_chunked_input(self):
        """Objects split across chunks are reassembled"""
        assert frames(['{"a":', '"1"', '}{"b"', ':2}']) == ['"a":"1"', '"b":2']

    def test_feed_returns_on_close(self):
        framer = ObjectFramer()
        results = [framer.feed(ch) for ch in '{"a":1}']
        assert results[:-1] == [None] * 6
        assert results[-1] == '"a":1'
        assert framer.idle

    def test_lazy(self):
        """Objects are produced before the input is exhausted"""
        def source():
            yield '{"a":1}'
            raise AssertionError("read too far")

        assert next(ObjectFramer().frames(source())) == '"a":1'


class TestFrameCapture:
    """Test reading objects from a stream"""

    def test_start_capture(self):
        seen = []
        capture = FrameCapture(io.StringIO('{"a":1}{"b":2}{"c":'))
        assert capture.start_capture(seen.append) == 2
        assert seen == ['"a":1', '"b":2']

    def test_empty_stream(self):
        assert list(FrameCapture(io.StringIO("")).objects()) == []
