# voice/live_transport.py
from __future__ import annotations
import asyncio
import contextlib
import os
from typing import Any, List, Optional, Sequence

from google import genai
from google.genai import types

from livecontext.core.constants import (
    DEFAULT_VOICE_LANGUAGE,
    DEFAULT_VOICE_MODEL,
    DEFAULT_VOICE_NAME,
    INPUT_SAMPLE_RATE,
)
from livecontext.core.logging import get_logger
from livecontext.llm.base import require_env
from livecontext.schemas.state import SearchResult
from livecontext.schemas.transports import VoiceEvents

logger = get_logger("livecontext.voice.live")


def live_tools(tools: Sequence[str]) -> List[types.Tool]:
    out: List[types.Tool] = []
    if "search" in tools:
        out.append(types.Tool(google_search=types.GoogleSearch()))
    return out


def grounding_results(server_content: Any) -> List[SearchResult]:
    meta = getattr(server_content, "grounding_metadata", None)
    out: List[SearchResult] = []
    for chunk in getattr(meta, "grounding_chunks", None) or []:
        web = getattr(chunk, "web", None)
        uri = getattr(web, "uri", None)
        if uri:
            out.append(SearchResult(uri=uri, title=getattr(web, "title", None) or uri))
    return out


class LiveVoiceConnection:
    """An open Live API session plus the task draining its server messages."""

    def __init__(self, session: Any, stack: contextlib.AsyncExitStack, events: VoiceEvents):
        self.session = session
        self.events = events
        self._stack = stack
        self._closing = False
        self._receiver: Optional[asyncio.Task] = None

    def start(self) -> None:
        self._receiver = asyncio.create_task(self._receive_loop())

    async def send_audio_frame(self, frame: bytes) -> None:
        await self.session.send_realtime_input(
            audio=types.Blob(data=frame, mime_type=f"audio/pcm;rate={INPUT_SAMPLE_RATE}")
        )

    async def _receive_loop(self) -> None:
        reason = "server closed the session"
        try:
            while not self._closing:
                async for msg in self.session.receive():
                    self._dispatch(msg)
        except asyncio.CancelledError:
            reason = "closed locally"
            raise
        except Exception as e:
            reason = str(e)
            logger.exception("VOICE_RECEIVE_ERROR error=%s", e)
            self.events.on_error(e)
        finally:
            if not self._closing:
                self.events.on_closed(reason)

    def _dispatch(self, msg: Any) -> None:
        sc = getattr(msg, "server_content", None)
        if sc is None:
            return
        turn = getattr(sc, "model_turn", None)
        for part in getattr(turn, "parts", None) or []:
            blob = getattr(part, "inline_data", None)
            if blob is not None and blob.data:
                self.events.on_audio_chunk(blob.data)
        if getattr(sc, "interrupted", False):
            self.events.on_interrupted()
        results = grounding_results(sc)
        if results:
            self.events.on_search_results(results)

    async def close(self) -> None:
        if self._closing:
            return
        self._closing = True
        if self._receiver is not None:
            self._receiver.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._receiver
        await self._stack.aclose()
        logger.info("VOICE_SESSION_CLOSED")


class LiveVoiceTransport:
    def __init__(self, client: Optional[genai.Client] = None, model: Optional[str] = None):
        self._client = client
        self.model = model or os.getenv("VOICE_MODEL", DEFAULT_VOICE_MODEL)

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            self._client = genai.Client(api_key=require_env("GOOGLE_API_KEY"))
        return self._client

    def connect_config(self, instruction: str, tools: Sequence[str]) -> types.LiveConnectConfig:
        return types.LiveConnectConfig(
            response_modalities=[types.Modality.AUDIO],
            speech_config=types.SpeechConfig(
                voice_config=types.VoiceConfig(
                    prebuilt_voice_config=types.PrebuiltVoiceConfig(
                        voice_name=os.getenv("VOICE_NAME", DEFAULT_VOICE_NAME)
                    )
                ),
                language_code=os.getenv("VOICE_LANGUAGE", DEFAULT_VOICE_LANGUAGE),
            ),
            system_instruction=instruction,
            tools=live_tools(tools),
        )

    async def open(self, instruction: str, tools: Sequence[str], events: VoiceEvents) -> LiveVoiceConnection:
        logger.info("VOICE_SESSION_OPEN model=%s instruction_len=%s tools=%s", self.model, len(instruction), ",".join(tools))
        stack = contextlib.AsyncExitStack()
        try:
            session = await stack.enter_async_context(
                self.client.aio.live.connect(model=self.model, config=self.connect_config(instruction, tools))
            )
        except BaseException:
            await stack.aclose()
            raise
        conn = LiveVoiceConnection(session, stack, events)
        conn.start()
        events.on_opened()
        return conn
