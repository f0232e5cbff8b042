from __future__ import annotations
from typing import List

import pytest

from livecontext.core.errors import ConnectionOpenError
from livecontext.schemas.state import ChatMessage
from livecontext.session.connections import ConnectionState, DualSessionManager, seed_history

from fakes import FakeTextTransport, FakeVoiceTransport


class Events:
    def __init__(self) -> None:
        self.opened = 0

    def on_opened(self) -> None:
        self.opened += 1


@pytest.fixture
def errors() -> List[ConnectionOpenError]:
    return []


@pytest.fixture
def manager(voice: FakeVoiceTransport, text: FakeTextTransport, errors) -> DualSessionManager:
    return DualSessionManager(voice, text, Events(), errors.append)


async def test_ensure_open_is_a_no_op_when_open(manager, voice):
    assert await manager.voice.ensure_open("A")
    assert await manager.voice.ensure_open("A")
    assert voice.opened == ["A"]
    assert manager.voice.state == ConnectionState.open


async def test_rebuild_closes_previous_handle_first(manager, voice):
    await manager.rebuild_voice("A")
    first = voice.current
    await manager.rebuild_voice("B")
    assert first.closed
    assert voice.opened == ["A", "B"]
    assert manager.voice.instruction == "B"
    assert manager.voice.opens == 2


async def test_rebuild_voice_runs_before_close_hook(manager):
    calls = []
    await manager.rebuild_voice("A", before_close=lambda: calls.append("stop"))
    assert calls == ["stop"]


async def test_open_failure_reports_and_falls_back_to_closed(manager, voice, errors):
    voice.fail_with = RuntimeError("quota exceeded")
    assert not await manager.voice.ensure_open("A")
    assert manager.voice.state == ConnectionState.closed
    assert manager.voice.handle is None
    assert errors[0].channel == "voice"
    assert errors[0].reason == "quota exceeded"

    voice.fail_with = None
    assert await manager.ensure_voice("A")
    assert manager.voice.is_open


async def test_close_is_idempotent(manager, voice):
    await manager.voice.ensure_open("A")
    await manager.voice.close()
    await manager.voice.close()
    assert voice.current.closed
    assert manager.voice.state == ConnectionState.closed


async def test_mark_closed_ignores_stale_handles(manager, voice):
    await manager.voice.ensure_open("A")
    old = voice.current
    await manager.voice.rebuild("B")
    manager.voice.mark_closed(old)
    assert manager.voice.is_open
    manager.voice.mark_closed(voice.current)
    assert not manager.voice.is_open


async def test_text_rebuild_seeds_replayable_history(manager, text):
    history = (
        ChatMessage(role="user", text="hi"),
        ChatMessage(role="assistant", text="hello"),
        ChatMessage(role="assistant", text="here", image_urls=("data:image/png;base64,AA",)),
        ChatMessage(role="assistant", text=""),
    )
    await manager.rebuild_text("A", history)
    assert [m.text for m in text.current.seed] == ["hi", "hello"]


async def test_ensure_text_rebuilds_stale_session(manager, text):
    await manager.ensure_text("A")
    assert await manager.ensure_text("A")
    assert text.opened == ["A"]
    await manager.ensure_text("B")
    assert text.opened == ["A", "B"]
    assert text.sessions[0].closed


async def test_aclose_closes_both(manager, voice, text):
    await manager.rebuild_voice("A")
    await manager.rebuild_text("A")
    await manager.aclose()
    assert voice.current.closed
    assert text.current.closed


def test_seed_history_skips_loading_messages():
    msgs = (ChatMessage(role="assistant", text="wait", is_loading_images=True),)
    assert seed_history(msgs) == ()
