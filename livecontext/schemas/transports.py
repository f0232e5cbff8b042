# schemas/transports.py
from __future__ import annotations
from typing import Any, AsyncIterator, Awaitable, Callable, List, Optional, Protocol, Sequence, Tuple

from pydantic import BaseModel, ConfigDict

from livecontext.schemas.analysis import Analysis
from livecontext.schemas.state import ChatMessage, ImagePayload, SearchResult, TimelineType


class TextChunk(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str = ""
    sources: Tuple[SearchResult, ...] = ()


class EditResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: Optional[str] = None
    image: Optional[ImagePayload] = None


class AnalysisCallbacks(Protocol):
    def set_processing_state(self, active: bool, step: str = "", progress: int = 0) -> None: ...

    def log_event(self, message: str, type_: TimelineType = "info") -> None: ...


class AnalysisEngine(Protocol):
    async def analyze(
        self,
        source_or_topic: str,
        file: Optional[Any],
        mode: str,
        callbacks: AnalysisCallbacks,
    ) -> Analysis: ...


class VoiceEvents(Protocol):
    def on_opened(self) -> None: ...

    def on_audio_chunk(self, chunk: bytes) -> None: ...

    def on_interrupted(self) -> None: ...

    def on_search_results(self, results: Sequence[SearchResult]) -> None: ...

    def on_error(self, error: BaseException) -> None: ...

    def on_closed(self, reason: str) -> None: ...


class VoiceConnection(Protocol):
    async def send_audio_frame(self, frame: bytes) -> None: ...

    async def close(self) -> None: ...


class VoiceTransport(Protocol):
    async def open(self, instruction: str, tools: Sequence[str], events: VoiceEvents) -> VoiceConnection: ...


class ChatSession(Protocol):
    def send_streaming(self, message: str) -> AsyncIterator[TextChunk]: ...

    async def close(self) -> None: ...


class TextTransport(Protocol):
    async def open(
        self,
        instruction: str,
        tools: Sequence[str],
        seed_history: Sequence[ChatMessage],
    ) -> ChatSession: ...


class ImageTransport(Protocol):
    async def generate(self, prompt: str, count: int) -> List[ImagePayload]: ...

    async def edit(self, image: ImagePayload, prompt: str) -> EditResult: ...


class KeyValueStore(Protocol):
    def load(self, key: str) -> Optional[bytes]: ...

    def save(self, key: str, blob: bytes) -> None: ...


class AudioCapture(Protocol):
    def start(self, on_frame: Callable[[bytes], Awaitable[None]]) -> None: ...

    def stop(self) -> None: ...


class AudioPlayback(Protocol):
    def play(self, chunk: bytes) -> None: ...

    def interrupt(self) -> None: ...
