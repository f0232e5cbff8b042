# schemas/analysis.py
from __future__ import annotations
from enum import Enum
from typing import FrozenSet, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


class AnalysisType(str, Enum):
    video = "video"
    repository = "repository"
    spreadsheet = "spreadsheet"
    document = "document"
    search = "search"
    webpage = "webpage"
    clip = "clip"
    workflow = "workflow"


class AnalysisPersona(str, Enum):
    generalist = "generalist"
    data_analyst = "data_analyst"


class Analysis(BaseModel):
    """One ingested knowledge source and its generated summary."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid4().hex)
    title: str
    source: str
    summary: str
    type: AnalysisType
    persona: AnalysisPersona = AnalysisPersona.generalist
    preview_payload: Optional[str] = None
    tags: FrozenSet[str] = frozenset()
