import logging
from typing import Callable, Iterable, Iterator, List, Optional, TextIO

logger = logging.getLogger(__name__)


class ObjectFramer:
    """
    Assembles brace-balanced top-level objects from a character stream.

    The outer braces are not part of the emitted text. A backslash
    escapes the next character whether or not it is inside a string.
    Anything outside a top-level object is ignored.
    """

    def __init__(self):
        self._buffer: List[str] = []
        self.depth = 0
        self.in_string = False
        self.escape_next = False

    @property
    def idle(self) -> bool:
        return self.depth == 0

    def reset(self) -> None:
        """Drop any partially assembled object."""
        self._buffer = []
        self.depth = 0
        self.in_string = False
        self.escape_next = False

    def feed(self, ch: str) -> Optional[str]:
        """Consume one character, returning an object's text when it closes."""
        if self.depth == 0:
            if ch == "{":
                self.depth = 1
                self._buffer = []
            return None

        if self.escape_next:
            self.escape_next = False
            self._buffer.append(ch)
            return None

        if ch == "\\":
            self.escape_next = True
        elif ch == '"':
            self.in_string = not self.in_string
        elif not self.in_string and ch == "{":
            self.depth += 1
        elif not self.in_string and ch == "}":
            self.depth -= 1
            if self.depth == 0:
                text = "".join(self._buffer)
                self._buffer = []
                return text

        self._buffer.append(ch)
        return None

    def frames(self, chunks: Iterable[str]) -> Iterator[str]:
        """Lazily yield every completed object from an iterable of text."""
        for chunk in chunks:
            for ch in chunk:
                text = self.feed(ch)
                if text is not None:
                    yield text

        if not self.idle:
            logger.debug(f"Discarding unterminated object ({len(self._buffer)} chars)")
            self.reset()


class FrameCapture:
    def __init__(self, source: TextIO):
        self.source = source
        self.framer = ObjectFramer()
        self.objects_captured = 0

    def _read_units(self) -> Iterator[str]:
        # One character per read so a live pipe is decoded as it arrives
        return iter(lambda: self.source.read(1), "")

    def objects(self) -> Iterator[str]:
        """Yield each complete object read from the source."""
        for text in self.framer.frames(self._read_units()):
            self.objects_captured += 1
            yield text

    def start_capture(self, callback: Callable[[str], object]) -> int:
        """
        Read the source to the end, passing each object to callback.

        Args:
            callback: Function to process each object's text

        Returns:
            Number of objects captured
        """
        logger.info(f"Reading objects from {getattr(self.source, 'name', 'stream')}")

        for text in self.objects():
            callback(text)

        logger.info(f"End of input after {self.objects_captured} objects")
        return self.objects_captured
