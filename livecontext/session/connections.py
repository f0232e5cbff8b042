# session/connections.py
from __future__ import annotations
import asyncio
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, Optional, Sequence, TypeVar

from livecontext.core.constants import TOOL_CAPABILITIES
from livecontext.core.errors import ConnectionOpenError
from livecontext.core.logging import get_logger
from livecontext.schemas.state import ChatMessage
from livecontext.schemas.transports import ChatSession, TextTransport, VoiceConnection, VoiceEvents, VoiceTransport

logger = get_logger("livecontext.session.connections")

H = TypeVar("H")


class ConnectionState(str, Enum):
    closed = "closed"
    opening = "opening"
    open = "open"


class ManagedConnection(Generic[H]):
    """Closed -> Opening -> Open -> Closed state machine around one remote handle."""

    def __init__(
        self,
        channel: str,
        opener: Callable[[str], Awaitable[H]],
        on_error: Callable[[ConnectionOpenError], None],
    ):
        self.channel = channel
        self._opener = opener
        self._on_error = on_error
        self._lock = asyncio.Lock()
        self.state = ConnectionState.closed
        self.handle: Optional[H] = None
        self.instruction: Optional[str] = None
        self.opens = 0

    @property
    def is_open(self) -> bool:
        return self.state == ConnectionState.open and self.handle is not None

    def is_current(self, instruction: str) -> bool:
        return self.is_open and self.instruction == instruction

    async def ensure_open(self, instruction: str) -> bool:
        async with self._lock:
            return await self._ensure_open(instruction)

    async def _ensure_open(self, instruction: str) -> bool:
        if self.is_open:
            return True
        self.state = ConnectionState.opening
        logger.info("CONNECTION_OPENING channel=%s instruction_len=%s", self.channel, len(instruction))
        try:
            handle = await self._opener(instruction)
        except Exception as e:
            self.state, self.handle, self.instruction = ConnectionState.closed, None, None
            logger.exception("CONNECTION_OPEN_FAILED channel=%s error=%s", self.channel, e)
            self._on_error(ConnectionOpenError(self.channel, str(e) or type(e).__name__))
            return False
        self.state, self.handle, self.instruction = ConnectionState.open, handle, instruction
        self.opens += 1
        logger.info("CONNECTION_OPEN channel=%s opens=%s", self.channel, self.opens)
        return True

    async def close(self) -> None:
        async with self._lock:
            await self._close()

    async def _close(self) -> None:
        handle, self.handle = self.handle, None
        self.state, self.instruction = ConnectionState.closed, None
        if handle is None:
            return
        try:
            await handle.close()  # type: ignore[attr-defined]
        except Exception as e:
            logger.warning("CONNECTION_CLOSE_ERROR channel=%s error=%s", self.channel, e)
        logger.info("CONNECTION_CLOSED channel=%s", self.channel)

    async def rebuild(self, instruction: str) -> bool:
        async with self._lock:
            await self._close()
            return await self._ensure_open(instruction)

    def mark_closed(self, handle: Optional[Any] = None) -> None:
        """Remote side went away; forget the handle without reconnecting."""
        if handle is not None and handle is not self.handle:
            return
        self.state, self.handle, self.instruction = ConnectionState.closed, None, None
        logger.info("CONNECTION_LOST channel=%s", self.channel)


def seed_history(history: Sequence[ChatMessage]) -> tuple[ChatMessage, ...]:
    """Replayable turns: text-only messages, image-carrying ones excluded."""
    return tuple(m for m in history if m.text and not m.image_urls and not m.is_loading_images)


class DualSessionManager:
    """Exactly one voice connection and one text session, each rebuilt on context change."""

    def __init__(
        self,
        voice_transport: VoiceTransport,
        text_transport: TextTransport,
        voice_events: VoiceEvents,
        on_error: Callable[[ConnectionOpenError], None],
        tools: Sequence[str] = TOOL_CAPABILITIES,
    ):
        self.tools = tuple(tools)
        self._seed: tuple[ChatMessage, ...] = ()
        self.voice: ManagedConnection[VoiceConnection] = ManagedConnection(
            "voice", lambda instr: voice_transport.open(instr, self.tools, voice_events), on_error
        )
        self.text: ManagedConnection[ChatSession] = ManagedConnection(
            "text", lambda instr: text_transport.open(instr, self.tools, self._seed), on_error
        )

    async def rebuild_voice(self, instruction: str, before_close: Optional[Callable[[], None]] = None) -> bool:
        if before_close is not None:
            before_close()
        return await self.voice.rebuild(instruction)

    async def rebuild_text(self, instruction: str, history: Sequence[ChatMessage] = ()) -> bool:
        self._seed = seed_history(history)
        return await self.text.rebuild(instruction)

    async def ensure_text(self, instruction: str, history: Sequence[ChatMessage] = ()) -> bool:
        """Open the text session, rebuilding it first when its instruction is stale."""
        if self.text.is_current(instruction):
            return True
        if self.text.is_open:
            logger.info("TEXT_SESSION_STALE rebuilding")
            return await self.rebuild_text(instruction, history)
        self._seed = seed_history(history)
        return await self.text.ensure_open(instruction)

    async def ensure_voice(self, instruction: str) -> bool:
        if self.voice.is_current(instruction):
            return True
        if self.voice.is_open:
            return await self.voice.rebuild(instruction)
        return await self.voice.ensure_open(instruction)

    async def aclose(self) -> None:
        await self.voice.close()
        await self.text.close()
