# schemas/effects.py
from __future__ import annotations
from typing import Annotated, Literal, Tuple, Union
from pydantic import BaseModel, ConfigDict, Field

from livecontext.schemas.directives import Directive
from livecontext.schemas.state import ChatMessage


class BaseEffect(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: str = Field(..., description="effect discriminator")


class StopRecording(BaseEffect):
    kind: Literal["stop_recording"] = "stop_recording"


class RebuildVoice(BaseEffect):
    kind: Literal["rebuild_voice"] = "rebuild_voice"
    instruction: str


class RebuildText(BaseEffect):
    kind: Literal["rebuild_text"] = "rebuild_text"
    instruction: str
    seed_history: Tuple[ChatMessage, ...] = ()


class RunImageJob(BaseEffect):
    kind: Literal["run_image_job"] = "run_image_job"
    directive: Directive
    message_index: int
    message_id: str


class PersistSessions(BaseEffect):
    kind: Literal["persist_sessions"] = "persist_sessions"


class PersistSearchHistory(BaseEffect):
    kind: Literal["persist_search_history"] = "persist_search_history"


Effect = Annotated[
    Union[
        StopRecording,
        RebuildVoice,
        RebuildText,
        RunImageJob,
        PersistSessions,
        PersistSearchHistory,
    ],
    Field(discriminator="kind"),
]
