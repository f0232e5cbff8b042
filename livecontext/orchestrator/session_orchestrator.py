# orchestrator/session_orchestrator.py
from __future__ import annotations
import asyncio
import os
import time
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Sequence, Set
from urllib.parse import urlparse
from uuid import uuid4

from livecontext.core.config import env_float
from livecontext.core.constants import (
    DEFAULT_RESPONSE_LANGUAGE,
    ERROR_CLEAR_SEC,
    LISTENING_STATUS,
    STATUS_CLEAR_SEC,
)
from livecontext.core.errors import ConnectionOpenError, LiveContextError
from livecontext.core.logging import get_logger
from livecontext.orchestrator import transitions as tr
from livecontext.schemas.analysis import Analysis
from livecontext.schemas.effects import (
    Effect,
    PersistSearchHistory,
    PersistSessions,
    RebuildText,
    RebuildVoice,
    RunImageJob,
    StopRecording,
)
from livecontext.schemas.events import StateEvent
from livecontext.schemas.state import (
    ChatMessage,
    ImagePayload,
    SavedSession,
    SearchResult,
    SessionState,
    TimelineType,
)
from livecontext.schemas.transports import (
    AnalysisEngine,
    AudioCapture,
    AudioPlayback,
    ImageTransport,
    KeyValueStore,
    TextTransport,
    VoiceTransport,
)
from livecontext.session.archive import SessionArchive
from livecontext.session.connections import DualSessionManager
from livecontext.stream.bus import EventBus
from livecontext.stream.interpreter import CommandInterpreter
from livecontext.tools.media.image_jobs import ImageJobRunner, MessageHandle

logger = get_logger("livecontext.orchestrator")


def is_valid_url(text: str) -> bool:
    u = urlparse((text or "").strip())
    return u.scheme in ("http", "https") and bool(u.netloc)


def now_stamp() -> str:
    return datetime.now().strftime("%H:%M:%S")


class _VoiceEventSink:
    """Routes Live API events back into the orchestrator."""

    def __init__(self, owner: "SessionOrchestrator"):
        self.owner = owner

    def on_opened(self) -> None:
        self.owner.update_status("Connected.")

    def on_audio_chunk(self, chunk: bytes) -> None:
        if self.owner.playback is not None:
            self.owner.playback.play(chunk)
        self.owner.bus.publish("audio_chunk", "voice", data={"chunk": chunk})

    def on_interrupted(self) -> None:
        if self.owner.playback is not None:
            self.owner.playback.interrupt()
        self.owner.bus.publish("interrupted", "voice")

    def on_search_results(self, results: Sequence[SearchResult]) -> None:
        self.owner._commit(tr.set_search_results(self.owner.get_state(), results))

    def on_error(self, error: BaseException) -> None:
        self.owner.update_error(f"Error: {error}")

    def on_closed(self, reason: str) -> None:
        self.owner.sessions.voice.mark_closed()
        self.owner.stop_recording()
        self.owner.update_status("Connection closed.")
        self.owner.log_event(f"Voice session closed: {reason}", "disconnect")


class SessionOrchestrator:
    """Owns the session state and is the only code that replaces it.

    Intent methods compute a pure transition, commit the new snapshot (which
    notifies subscribers) and then await the resulting effects, so by the time
    an intent returns both connections already carry the current instruction.
    """

    def __init__(
        self,
        analysis_engine: AnalysisEngine,
        voice_transport: VoiceTransport,
        text_transport: TextTransport,
        image_transport: ImageTransport,
        store: KeyValueStore,
        capture: Optional[AudioCapture] = None,
        playback: Optional[AudioPlayback] = None,
        language: Optional[str] = None,
    ):
        self.analysis_engine = analysis_engine
        self.capture = capture
        self.playback = playback
        self.language = language or os.getenv("RESPONSE_LANGUAGE", DEFAULT_RESPONSE_LANGUAGE)
        self.bus = EventBus()
        self.archive = SessionArchive(store)
        self.sessions = DualSessionManager(
            voice_transport, text_transport, _VoiceEventSink(self), self._on_connection_error
        )
        self.images = ImageJobRunner(
            image_transport,
            get_last_generated=lambda: self._state.last_generated_images,
            set_last_generated=self._set_last_generated,
            report_error=self.handle_error,
        )
        self._state = SessionState()
        self._jobs: Set[asyncio.Task] = set()
        self._suffixes: Dict[str, str] = {}
        self._banner_timers: Dict[str, asyncio.TimerHandle] = {}

    # --- core -----------------------------------------------------------

    def get_state(self) -> SessionState:
        return self._state

    def subscribe(self, listener: Callable[[StateEvent], None]) -> Callable[[], None]:
        return self.bus.subscribe(listener)

    def _commit(self, t: tr.Transition) -> SessionState:
        self._state = t.state
        self.bus.publish("state", t.reason, state=t.state)
        return t.state

    async def _apply(self, t: tr.Transition) -> SessionState:
        self._commit(t)
        for effect in t.effects:
            await self._execute(effect)
        return self._state

    async def _execute(self, effect: Effect) -> None:
        if isinstance(effect, StopRecording):
            self._stop_capture()
        elif isinstance(effect, RebuildVoice):
            self.log_event("Starting new audio session...", "connect")
            if await self.sessions.rebuild_voice(effect.instruction, before_close=self._stop_capture):
                self.log_event("Audio session established.", "success")
        elif isinstance(effect, RebuildText):
            await self.sessions.rebuild_text(effect.instruction, effect.seed_history)
        elif isinstance(effect, RunImageJob):
            self._spawn_image_job(effect)
        elif isinstance(effect, PersistSessions):
            self._persist(lambda: self.archive.save_sessions(self._state.saved_sessions), "sessions")
        elif isinstance(effect, PersistSearchHistory):
            self._persist(lambda: self.archive.save_search_history(self._state.search_history), "search history")

    def _persist(self, save: Callable[[], None], what: str) -> None:
        try:
            save()
        except Exception as e:
            logger.exception("PERSIST_FAILED what=%s error=%s", what, e)
            self.handle_error(e, f"Failed to save {what}")

    # --- status, errors, timeline --------------------------------------

    def _schedule_clear(self, field: str, expected: str, delay: float) -> None:
        prev = self._banner_timers.pop(field, None)
        if prev is not None:
            prev.cancel()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._banner_timers[field] = loop.call_later(
            delay, lambda: self._commit(tr.clear_banner(self._state, field, expected))
        )

    def update_status(self, message: str) -> None:
        self._commit(tr.set_status(self._state, message))
        if message and message != LISTENING_STATUS:
            self._schedule_clear("status", message, env_float("STATUS_CLEAR_SEC", STATUS_CLEAR_SEC))

    def update_error(self, message: str) -> None:
        logger.warning("SESSION_ERROR message=%s", message)
        self._commit(tr.set_error(self._state, message, now_stamp()))
        self._schedule_clear("error", message, env_float("ERROR_CLEAR_SEC", ERROR_CLEAR_SEC))

    def handle_error(self, err: BaseException, context: str) -> None:
        self.update_error(f"{context}: {err}")

    def log_event(self, message: str, type_: TimelineType = "info") -> None:
        logger.info("TIMELINE type=%s message=%s", type_, message)
        self._commit(tr.log_event(self._state, message, type_, now_stamp()))

    def set_processing_state(self, active: bool, step: str = "", progress: int = 0) -> None:
        self._commit(tr.set_processing(self._state, active, step, progress))

    def _on_connection_error(self, err: ConnectionOpenError) -> None:
        self.update_error(f"Failed to start the {err.channel} session: {err.reason}")

    # --- lifecycle ------------------------------------------------------

    async def start(self) -> SessionState:
        """Load persisted history and open both connections with the initial instruction."""
        state = self._state.model_copy(
            update={
                "saved_sessions": self.archive.load_sessions(),
                "search_history": self.archive.load_search_history(),
            }
        )
        self._commit(tr.Transition(state=state, reason="load_archive"))
        for key in self.archive.load_errors:
            self.log_event(f"Stored data under '{key}' could not be read and was ignored.", "error")
        return await self._apply(tr.initialize(self._state, self.language))

    async def aclose(self) -> None:
        if self._jobs:
            await asyncio.gather(*list(self._jobs), return_exceptions=True)
        self._stop_capture()
        for timer in self._banner_timers.values():
            timer.cancel()
        self._banner_timers.clear()
        await self.sessions.aclose()
        close_playback = getattr(self.playback, "close", None)
        if close_playback is not None:
            close_playback()

    # --- knowledge store ------------------------------------------------

    async def analyze_content(self, source_or_topic: str, file: Optional[Any] = None, mode: str = "default") -> Optional[Analysis]:
        term = (source_or_topic or "").strip()
        if file is None and term and not is_valid_url(term):
            await self._apply(tr.record_search_term(self._state, term, uuid4().hex[:12]))
        try:
            analysis = await self.analysis_engine.analyze(term, file, mode, self)
        except Exception as e:
            logger.exception("ANALYSIS_FAILED source=%s mode=%s", term, mode)
            self.handle_error(e, "Analysis failed")
            return None
        finally:
            self.set_processing_state(False)
        self.log_event(f'Analysis "{analysis.title}" completed and added to the context.', "success")
        await self._apply(tr.add_analysis(self._state, analysis, self.language))
        return analysis

    async def remove_analysis(self, analysis_id: str) -> None:
        try:
            t = tr.remove_analysis(self._state, analysis_id, self.language)
        except LiveContextError as e:
            self.update_error(str(e))
            return
        self.log_event("Context removed.", "info")
        await self._apply(t)

    async def update_analysis_summary(self, analysis_id: str, summary: str) -> None:
        try:
            t = tr.update_summary(self._state, analysis_id, summary, self.language)
        except LiveContextError as e:
            self.update_error(str(e))
            return
        title = t.state.find_analysis(analysis_id).title  # type: ignore[union-attr]
        self.log_event(f'Analysis "{title}" updated.', "info")
        await self._apply(t)

    async def set_selected_analysis_id(self, analysis_id: Optional[str]) -> None:
        try:
            t = tr.select_analysis(self._state, analysis_id, self.language)
        except LiveContextError as e:
            self.update_error(str(e))
            return
        await self._apply(t)

    async def set_persona(self, persona: Optional[str]) -> None:
        self.log_event(f"Persona changed to: {persona or 'Default'}", "info")
        await self._apply(tr.set_persona(self._state, persona, self.language))

    async def insert_image_into_analysis(self, image_url: str) -> None:
        try:
            t = tr.insert_image(self._state, image_url, self.language)
        except LiveContextError as e:
            self.update_error(str(e))
            return
        title = t.state.selected_analysis.title  # type: ignore[union-attr]
        self.log_event(f'Image inserted into analysis "{title}".', "info")
        await self._apply(t)
        self.update_status("Image inserted into the analysis!")

    async def reset_session(self, clear_analyses: bool = True) -> None:
        if clear_analyses:
            self.log_event("All contexts were cleared.", "info")
        await self._apply(tr.reset_session(self._state, clear_analyses, self.language))
        self.update_status("Session reset.")

    # --- voice ----------------------------------------------------------

    async def start_recording(self) -> bool:
        if self._state.is_recording:
            return True
        if not self.sessions.voice.is_current(self._state.system_instruction):
            self.update_status("Starting session...")
            if not await self.sessions.ensure_voice(self._state.system_instruction):
                return False
        self._commit(tr.set_search_results(self._state, ()))
        if self.capture is None:
            self.update_error("Error starting recording: no audio capture device is configured.")
            return False
        try:
            self.update_status("Requesting microphone access...")
            self.capture.start(self.push_audio_frame)
        except Exception as e:
            logger.exception("CAPTURE_START_FAILED error=%s", e)
            self.handle_error(e, "Error starting recording")
            self._stop_capture()
            return False
        self._commit(tr.set_recording(self._state, True))
        self.update_status(LISTENING_STATUS)
        self.log_event("Recording started.", "record")
        return True

    def _stop_capture(self) -> None:
        if self.capture is None:
            return
        try:
            self.capture.stop()
        except Exception as e:
            logger.warning("CAPTURE_STOP_ERROR error=%s", e)

    def stop_recording(self) -> None:
        if not self._state.is_recording:
            return
        self._stop_capture()
        self._commit(tr.set_recording(self._state, False))
        self.update_status("Recording stopped.")
        self.log_event("Recording stopped.", "record")

    async def push_audio_frame(self, frame: bytes) -> None:
        conn = self.sessions.voice.handle
        if not self._state.is_recording or conn is None:
            return
        try:
            await conn.send_audio_frame(frame)
        except Exception as e:
            logger.exception("VOICE_SEND_FAILED error=%s", e)
            self.sessions.voice.mark_closed(conn)
            self.stop_recording()
            self.handle_error(e, "Audio stream error")

    # --- text chat ------------------------------------------------------

    async def send_text_message(self, message: str) -> None:
        if self._state.is_chatting or not (message or "").strip():
            return
        if not await self.sessions.ensure_text(self._state.system_instruction, self._state.chat_history):
            return
        if self._state.is_chatting:
            # Another turn started while the text session was opening.
            logger.info("TURN_REJECTED reason=turn_in_progress")
            return
        self._suffixes.clear()
        session = self.sessions.text.handle
        state = self._commit(tr.begin_turn(self._state, message))
        index = len(state.chat_history) - 1
        msg_id = state.chat_history[index].id
        interpreter = CommandInterpreter()
        sources: Dict[str, SearchResult] = {}
        try:
            async for chunk in session.send_streaming(message):  # type: ignore[union-attr]
                for s in chunk.sources:
                    sources.setdefault(s.uri, s)
                if not chunk.text:
                    continue
                result = interpreter.feed(chunk.text)
                text = result.text + self._suffixes.get(msg_id, "")
                patched = tr.patch_message(self._state, index, msg_id, {"text": text})
                if patched is None:
                    logger.info("TURN_ORPHANED message_id=%s", msg_id)
                    break
                self._commit(patched)
                if result.directive is not None:
                    await self._apply(tr.dispatch_directive(self._state, index, msg_id, result.directive))
        except Exception as e:
            logger.exception("TEXT_TURN_FAILED message_id=%s error=%s", msg_id, e)
            self.handle_error(e, "Chat message failed")
            self._commit(tr.fail_turn(self._state, index, msg_id, str(e) or type(e).__name__))
            return
        self._commit(tr.end_turn(self._state, list(sources.values())))

    # --- image jobs -----------------------------------------------------

    def _patch_message(self, index: int, message_id: str, partial: Dict[str, Any]) -> bool:
        t = tr.patch_message(self._state, index, message_id, partial)
        if t is None:
            return False
        self._commit(t)
        return True

    def _read_message(self, index: int, message_id: str) -> Optional[ChatMessage]:
        return tr.message_at(self._state, index, message_id)

    def _record_suffix(self, message_id: str, suffix: str) -> None:
        self._suffixes[message_id] = self._suffixes.get(message_id, "") + suffix

    def _set_last_generated(self, images: Sequence[ImagePayload]) -> None:
        self._commit(tr.set_last_generated(self._state, images))

    def _spawn_image_job(self, effect: RunImageJob) -> None:
        handle = MessageHandle(
            effect.message_index, effect.message_id, self._patch_message, self._read_message, self._record_suffix
        )
        task = asyncio.create_task(self.images.run(handle, effect.directive))
        self._jobs.add(task)
        task.add_done_callback(self._jobs.discard)

    async def wait_for_image_jobs(self) -> None:
        while self._jobs:
            await asyncio.gather(*list(self._jobs), return_exceptions=True)

    # --- history --------------------------------------------------------

    async def save_current_session(self, title: Optional[str] = None) -> SavedSession:
        first = self._state.analyses[0].title if self._state.analyses else None
        title = (title or "").strip() or first or f"Session of {datetime.now():%Y-%m-%d}"
        t = tr.save_session(self._state, str(int(time.time() * 1000)), title)
        await self._apply(t)
        self.log_event(f'Session "{title}" saved.', "history")
        return t.state.saved_sessions[0]

    async def load_session(self, session_id: str) -> bool:
        saved = next((s for s in self._state.saved_sessions if s.id == session_id), None)
        if saved is None:
            self.update_error(f"Saved session not found: {session_id}")
            return False
        await self._apply(tr.load_saved_session(self._state, saved, self.language))
        self.log_event(f'Session "{saved.title}" loaded.', "history")
        return True

    async def delete_session(self, session_id: str) -> None:
        await self._apply(tr.delete_session(self._state, session_id))
        self.log_event("Session deleted.", "history")

    async def select_search_history(self, term: str) -> Optional[Analysis]:
        return await self.analyze_content(term, None, "default")

    async def delete_search_history_item(self, item_id: str) -> None:
        await self._apply(tr.delete_search_history_item(self._state, item_id))
        self.log_event("Search removed from history.", "history")
