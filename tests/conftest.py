import io

import pytest

from pnmptrace.core import TraceConfig, TraceDecoder, TraceFlags, TraceWriter
from pnmptrace.core.capture import ObjectFramer

# Colour, timestamps and separators make exact comparisons noisy
PLAIN_FLAGS = (
    TraceFlags.UI | TraceFlags.NETROM | TraceFlags.L3RTT | TraceFlags.NODES
    | TraceFlags.INP3 | TraceFlags.L4 | TraceFlags.IP | TraceFlags.ARP
)


@pytest.fixture
def make_config():
    def _make(flags=PLAIN_FLAGS, **kwargs):
        return TraceConfig(flags=flags, **kwargs)
    return _make


@pytest.fixture
def trace(make_config):
    """Run raw input text through framer and decoder, returning the display output."""
    def _trace(raw, config=None, **kwargs):
        config = config or make_config(**kwargs)
        display = io.StringIO()
        decoder = TraceDecoder(config, TraceWriter(display=display, width=config.width))
        for text in ObjectFramer().frames(raw):
            decoder.process(text)
        return display.getvalue()
    return _trace
