# stream/interpreter.py
from __future__ import annotations
import re

from livecontext.core.constants import MAX_DIRECTIVE_CHARS
from livecontext.core.logging import get_logger
from livecontext.schemas.directives import EditImage, GenerateImages, ScanResult

logger = get_logger("livecontext.stream.interpreter")

GENERATE_RE = re.compile(r"\[generate_images\(([1-9][0-9]*)\):\s*'([^']+)'\]")
EDIT_RE = re.compile(r"\[edit_image:\s*'([^']+)'\]")
DIRECTIVE_RE = re.compile(f"{GENERATE_RE.pattern}|{EDIT_RE.pattern}")


class CommandInterpreter:
    """Scans one assistant turn for the first inline image directive.

    The accumulated buffer only grows. Each ``feed`` re-tests the tail of the
    buffer that a directive ending in the new fragment could occupy; once a
    directive fires, scanning is disabled for the rest of the turn.
    """

    def __init__(self, max_directive_chars: int = MAX_DIRECTIVE_CHARS):
        self.max_directive_chars = max_directive_chars
        self.text = ""
        self.dispatched = False

    def feed(self, fragment: str) -> ScanResult:
        prev_len = len(self.text)
        self.text += fragment or ""
        if self.dispatched or not fragment:
            return ScanResult(text=self.text)

        start = max(0, prev_len - self.max_directive_chars)
        m = DIRECTIVE_RE.search(self.text, start)
        if not m:
            return ScanResult(text=self.text)

        self.dispatched = True
        if m.group(1) is not None:
            directive = GenerateImages(count=int(m.group(1)), prompt=m.group(2))
        else:
            directive = EditImage(prompt=m.group(3))
        self.text = (self.text[: m.start()] + self.text[m.end() :]).strip()
        logger.info("DIRECTIVE_MATCH kind=%s at=%s", directive.kind, m.start())
        return ScanResult(text=self.text, directive=directive)
