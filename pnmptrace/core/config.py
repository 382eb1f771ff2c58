from dataclasses import dataclass, fields
from enum import IntFlag
from typing import Iterator

# Filters longer than this are cut, matching the field widths of the reports
FILTER_MAX_LEN = 15
DEFAULT_WIDTH = 80


class TraceFlags(IntFlag):
    """Display options and layer switches."""
    UI = 0x01            # Unnumbered information frames
    NETROM = 0x02        # NetRom layer 3 and above
    L3RTT = 0x04         # L3RTT info field
    NODES = 0x08         # Contents of NODES broadcasts
    INP3 = 0x10          # Contents of INP3 unicasts
    L4 = 0x20            # NetRom layer 4 headers
    IP = 0x40            # IP headers
    ARP = 0x80           # ARP packets
    COLOR = 0x100        # Colourise traces
    STAMP = 0x200        # Timestamp each trace
    LBRK = 0x400         # Blank line between traces
    HDRLIN = 0x800       # Metadata on its own line
    JSON = 0x1000        # Echo the raw object first
    QUIET = 0x2000       # Capture file only, no display
    COLOR2FILE = 0x4000  # Colour codes go to the capture file too
    WARNINGS = 0x8000    # Report missing or bad fields


DEFAULT_FLAGS = (
    TraceFlags.UI | TraceFlags.NETROM | TraceFlags.L3RTT | TraceFlags.NODES
    | TraceFlags.INP3 | TraceFlags.L4 | TraceFlags.IP | TraceFlags.ARP
    | TraceFlags.COLOR | TraceFlags.STAMP | TraceFlags.LBRK
)


@dataclass(frozen=True)
class TraceConfig:
    """
    Filters and display options for one run.

    Empty string filters and a zero port are wildcards. The record is
    built once before streaming and shared read-only by the filter,
    decoder and writer.
    """
    reporter: str = ""
    source: str = ""
    destination: str = ""
    either: str = ""
    protocol: str = ""
    frame_type: str = ""
    port: int = 0
    flags: TraceFlags = DEFAULT_FLAGS
    width: int = DEFAULT_WIDTH
    capture_file: str = ""

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if f.type is str and f.name != "capture_file" and len(value) > FILTER_MAX_LEN:
                object.__setattr__(self, f.name, value[:FILTER_MAX_LEN])

    def enabled(self, flag: TraceFlags) -> bool:
        return bool(self.flags & flag)

    def describe(self) -> Iterator[str]:
        """Yield one note per active filter or disabled option."""
        if self.reporter:
            yield f"Showing reports from node '{self.reporter}' only"
        if self.port:
            yield f"Showing frames to/from port ({self.port}) only"
        if self.source:
            yield f"Showing frames with L2 source call '{self.source}' only"
        if self.destination:
            yield f"Showing frames with L2 destination call '{self.destination}' only"
        if self.either:
            yield f"Showing frames to/from L2 call '{self.either}' only"
        if self.frame_type:
            yield f"Showing '{self.frame_type}' frames only"
        if self.protocol:
            yield f"Showing frames with L3 protocol '{self.protocol}' only"
        if not self.enabled(TraceFlags.UI):
            yield "Not showing UI frames"
        if not self.enabled(TraceFlags.NODES):
            yield "Not decoding NODES broadcasts"
        if not self.enabled(TraceFlags.INP3):
            yield "Not decoding INP3 unicasts"
        if not self.enabled(TraceFlags.NETROM):
            yield "Not decoding NetRom Layer 3 or above"
        if not self.enabled(TraceFlags.L4):
            yield "Not decoding NetRom Layer 4 or above"
        if not self.enabled(TraceFlags.L3RTT):
            yield "Not showing L3RTT frame contents"
        if self.enabled(TraceFlags.JSON):
            yield "Including JSON data"
        if not self.enabled(TraceFlags.STAMP):
            yield "Time stamp disabled"
