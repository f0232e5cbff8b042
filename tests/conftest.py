"""Pytest configuration and fixtures."""
from __future__ import annotations
import os

import pytest
import pytest_asyncio

os.environ.setdefault("LOG_LEVEL", "WARNING")

from fakes import (  # noqa: E402
    FakeAnalysisEngine,
    FakeCapture,
    FakeImageTransport,
    FakePlayback,
    FakeTextTransport,
    FakeVoiceTransport,
)
from livecontext.orchestrator.session_orchestrator import SessionOrchestrator  # noqa: E402
from livecontext.session.store import MemoryStore  # noqa: E402


@pytest.fixture
def voice() -> FakeVoiceTransport:
    return FakeVoiceTransport()


@pytest.fixture
def text() -> FakeTextTransport:
    return FakeTextTransport()


@pytest.fixture
def images() -> FakeImageTransport:
    return FakeImageTransport()


@pytest.fixture
def capture() -> FakeCapture:
    return FakeCapture()


@pytest.fixture
def playback() -> FakePlayback:
    return FakePlayback()


@pytest.fixture
def engine() -> FakeAnalysisEngine:
    return FakeAnalysisEngine()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest_asyncio.fixture
async def orch(engine, voice, text, images, store, capture, playback):
    o = SessionOrchestrator(
        analysis_engine=engine,
        voice_transport=voice,
        text_transport=text,
        image_transport=images,
        store=store,
        capture=capture,
        playback=playback,
        language="English",
    )
    await o.start()
    yield o
    await o.aclose()
