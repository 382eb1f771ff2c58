import logging
import sys
from typing import Optional, TextIO

from colorama import Fore, Style

logger = logging.getLogger(__name__)

MARGIN = "\n    "            # Left margin for L3/L4 layers
CONTINUATION = "\n        "  # Soft-wrapped INP3 decorations

# Indexed by RF flag then direction, using the first letter of each
TRACE_COLORS = {
    "t": {"s": Fore.LIGHTRED_EX, "r": Fore.LIGHTGREEN_EX, "": Fore.LIGHTYELLOW_EX},
    "f": {"s": "\x1b[38;2;255;150;150m", "r": "\x1b[38;2;50;255;150m", "": Fore.LIGHTBLUE_EX},
}


def select_color(is_rf: str, direction: str) -> str:
    """Pick the trace colour for a frame's RF flag and direction."""
    row = TRACE_COLORS.get(is_rf[:1])
    if row is None:
        return Style.RESET_ALL
    return row.get(direction[:1], row[""])


class CaptureFileError(OSError):
    """The requested capture file could not be opened."""


class TraceWriter:
    """
    Writes trace text to the display and an optional capture file.

    Keeps the column of the current line so that long INP3 entries can
    be wrapped at the display width.
    """

    def __init__(
        self,
        display: Optional[TextIO] = None,
        capture: Optional[TextIO] = None,
        quiet: bool = False,
        width: int = 80
    ):
        self.display = display if display is not None else sys.stdout
        self.capture = capture
        self.quiet = quiet
        self.width = width
        self.column = 0

    @classmethod
    def open(
        cls,
        capture_path: str,
        display: Optional[TextIO] = None,
        quiet: bool = False,
        width: int = 80
    ) -> "TraceWriter":
        """
        Create a writer mirroring output to a freshly truncated file.

        Raises:
            CaptureFileError: If the file can't be opened for writing
        """
        try:
            capture = open(capture_path, "w", encoding="utf-8")
        except OSError as e:
            logger.error(f"Can't open capture file '{capture_path}': {e}")
            raise CaptureFileError(f"Can't open capture file '{capture_path}'") from e

        logger.info(f"Capturing traces to {capture_path}")
        return cls(display=display, capture=capture, quiet=quiet, width=width)

    def __enter__(self) -> "TraceWriter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        if self.capture is not None:
            self.capture.close()
            self.capture = None
        if not self.quiet:
            self.display.flush()

    def write(self, text: str) -> int:
        """Send text to both sinks and return the number of characters."""
        if self.capture is not None:
            self.capture.write(text)
            self.capture.flush()

        if not self.quiet:
            self.display.write(text)

        self._advance(text)
        return len(text)

    def write_display(self, text: str) -> None:
        """Write to the display only, leaving the capture file untouched."""
        if not self.quiet:
            self.display.write(text)

    def write_notice(self, text: str) -> None:
        """Write to the display even in quiet mode, never to the capture file."""
        self.display.write(text)

    def _advance(self, text: str) -> None:
        newline = text.rfind("\n")
        if newline < 0:
            self.column += len(text)
        else:
            self.column = len(text) - newline - 1

    def begin_frame(self) -> None:
        self.column = 0

    def end_frame(self) -> None:
        self.write("\n")
        if not self.quiet:
            self.display.flush()

    def margin(self, text: str = "") -> int:
        """Start an indented line for an upper layer."""
        return self.write(MARGIN + text)

    def wrap_if_needed(self, piece: str) -> None:
        """Break to a continuation line if piece would reach the display width."""
        if self.column + len(piece) >= self.width:
            self.write(CONTINUATION)

    def write_wrapped(self, piece: str) -> int:
        self.wrap_if_needed(piece)
        return self.write(piece)
