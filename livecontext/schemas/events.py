# schemas/events.py
from __future__ import annotations
from typing import Any, Dict, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field

from livecontext.schemas.state import SessionState


EventType = Literal["state", "audio_chunk", "interrupted"]


class StateEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: EventType
    reason: str
    ts_ms: int
    state: Optional[SessionState] = None
    data: Dict[str, Any] = Field(default_factory=dict)
