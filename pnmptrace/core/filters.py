import logging
import re
from dataclasses import dataclass
from typing import Optional

from .config import TraceConfig, TraceFlags

logger = logging.getLogger(__name__)

_LEADING_INT = re.compile(r"\s*([-+]?\d+)")


def atoi(text: Optional[str]) -> int:
    """Leading integer of text, or 0 if there is none."""
    match = _LEADING_INT.match(text or "")
    return int(match.group(1)) if match else 0


@dataclass
class TraceContext:
    """Fields pulled out of one frame before it is filtered and traced."""
    text: str
    reporter: str
    port: str
    source: str
    destination: str
    frame_type: str
    direction: str = ""
    is_rf: str = ""
    protocol: str = ""


def _same(a: str, b: str) -> bool:
    return a.lower() == b.lower()


class FrameFilter:
    """Accepts or rejects frames against the configured match criteria."""

    def __init__(self, config: TraceConfig):
        self.config = config

    def apply(self, ctx: TraceContext) -> bool:
        """
        Check a frame against every criterion in turn.

        Unset criteria never reject. The first failing criterion stops
        the checks.

        Args:
            ctx: Fields extracted from the frame

        Returns:
            True if the frame should be traced, False otherwise
        """
        cfg = self.config

        if ctx.frame_type == "UI" and not cfg.enabled(TraceFlags.UI):
            return self._reject(ctx, "UI frames disabled")

        if cfg.reporter and not _same(ctx.reporter, cfg.reporter):
            return self._reject(ctx, "reporter")

        if cfg.port and atoi(ctx.port) != cfg.port:
            return self._reject(ctx, "port")

        if cfg.frame_type and not _same(ctx.frame_type, cfg.frame_type):
            return self._reject(ctx, "frame type")

        if cfg.source and not _same(ctx.source, cfg.source):
            return self._reject(ctx, "source call")

        if cfg.destination and not _same(ctx.destination, cfg.destination):
            return self._reject(ctx, "destination call")

        if cfg.either and not (_same(ctx.source, cfg.either)
                               or _same(ctx.destination, cfg.either)):
            return self._reject(ctx, "either call")

        if cfg.protocol and (not ctx.protocol or not _same(ctx.protocol, cfg.protocol)):
            return self._reject(ctx, "protocol")

        return True

    @staticmethod
    def _reject(ctx: TraceContext, criterion: str) -> bool:
        logger.debug(f"Filtered {ctx.source}>{ctx.destination} on {criterion}")
        return False
