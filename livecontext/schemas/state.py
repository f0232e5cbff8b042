# schemas/state.py
from __future__ import annotations
from typing import Literal, Optional, Tuple
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from livecontext.schemas.analysis import Analysis

Role = Literal["user", "assistant"]
TimelineType = Literal["info", "success", "error", "record", "process", "connect", "disconnect", "history"]


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class ImagePayload(_Frozen):
    data: bytes
    mime: str = "image/png"


class ChatMessage(_Frozen):
    id: str = Field(default_factory=lambda: uuid4().hex[:12])
    role: Role
    text: str = ""
    image_urls: Optional[Tuple[str, ...]] = None
    is_loading_images: bool = False
    image_count: Optional[int] = None


class TimelineEvent(_Frozen):
    timestamp: str
    message: str
    type: TimelineType = "info"


class ProcessingState(_Frozen):
    active: bool = False
    step: str = ""
    progress: int = Field(default=0, ge=0, le=100)


class SearchResult(_Frozen):
    uri: str
    title: str


class SearchHistoryItem(_Frozen):
    id: str
    term: str


class SavedSession(_Frozen):
    id: str
    title: str
    analyses: Tuple[Analysis, ...] = ()
    timeline_events: Tuple[TimelineEvent, ...] = ()
    system_instruction: str = ""
    search_results: Tuple[SearchResult, ...] = ()
    active_persona: Optional[str] = None


class SessionState(_Frozen):
    """Single source of truth. Replaced wholesale on every transition."""

    analyses: Tuple[Analysis, ...] = ()
    selected_analysis_id: Optional[str] = None
    active_persona: Optional[str] = None
    system_instruction: str = ""
    chat_history: Tuple[ChatMessage, ...] = ()
    is_recording: bool = False
    is_chatting: bool = False
    last_generated_images: Tuple[ImagePayload, ...] = ()
    timeline_events: Tuple[TimelineEvent, ...] = ()
    processing_state: ProcessingState = ProcessingState()
    status: str = ""
    error: str = ""
    search_results: Tuple[SearchResult, ...] = ()
    saved_sessions: Tuple[SavedSession, ...] = ()
    search_history: Tuple[SearchHistoryItem, ...] = ()

    def find_analysis(self, analysis_id: Optional[str]) -> Optional[Analysis]:
        if not analysis_id:
            return None
        return next((a for a in self.analyses if a.id == analysis_id), None)

    @property
    def selected_analysis(self) -> Optional[Analysis]:
        return self.find_analysis(self.selected_analysis_id)
