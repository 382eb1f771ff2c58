"""
Tests for frame filtering
"""

import pytest

from pnmptrace.core import FrameFilter, TraceConfig, TraceContext, TraceFlags
from pnmptrace.core.config import DEFAULT_FLAGS
from pnmptrace.core.filters import atoi


def context(**kwargs):
    fields = dict(text="", reporter="G8PZT", port="2", source="G8PZT-1",
                  destination="G8PZT-2", frame_type="I", protocol="NET/ROM")
    fields.update(kwargs)
    return TraceContext(**fields)


class TestFrameFilter:
    """Test each criterion and how they combine"""

    def test_unset_filters_accept(self):
        assert FrameFilter(TraceConfig()).apply(context())

    def test_reporter_and_port(self):
        """Both criteria must match"""
        ff = FrameFilter(TraceConfig(reporter="G8PZT", port=2))
        assert ff.apply(context())
        assert not ff.apply(context(port="3"))

    def test_case_insensitive_calls(self):
        ff = FrameFilter(TraceConfig(reporter="g8pzt", source="g8pzt-1", destination="G8pzt-2"))
        assert ff.apply(context())

    def test_port_non_numeric(self):
        """Non-numeric ports count as zero and never match"""
        assert not FrameFilter(TraceConfig(port=2)).apply(context(port="vhf"))

    def test_frame_type(self):
        ff = FrameFilter(TraceConfig(frame_type="ui"))
        assert ff.apply(context(frame_type="UI"))
        assert not ff.apply(context(frame_type="I"))

    def test_either_call(self):
        ff = FrameFilter(TraceConfig(either="G8PZT-2"))
        assert ff.apply(context())
        assert ff.apply(context(source="G8PZT-2", destination="M0XYZ"))
        assert not ff.apply(context(source="M0ABC", destination="M0XYZ"))

    def test_protocol(self):
        ff = FrameFilter(TraceConfig(protocol="net/rom"))
        assert ff.apply(context())
        assert not ff.apply(context(protocol="DATA"))

    def test_protocol_missing(self):
        """A protocol filter rejects frames with no protocol id"""
        assert not FrameFilter(TraceConfig(protocol="DATA")).apply(context(protocol=""))

    def test_ui_disabled(self):
        ff = FrameFilter(TraceConfig(flags=DEFAULT_FLAGS & ~TraceFlags.UI))
        assert not ff.apply(context(frame_type="UI"))
        assert ff.apply(context(frame_type="I"))

    def test_filters_are_truncated(self):
        config = TraceConfig(reporter="ABCDEFGHIJKLMNOPQRS")
        assert config.reporter == "ABCDEFGHIJKLMNO"


@pytest.mark.parametrize("text,expected", [
    ("2", 2), (" 12abc", 12), ("-3", -3), ("abc", 0), ("", 0), (None, 0),
])
def test_atoi(text, expected):
    assert atoi(text) == expected
