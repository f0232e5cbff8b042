# orchestrator/transitions.py
"""Pure state transitions.

Every function takes the current ``SessionState`` snapshot and returns a
``Transition``: the next snapshot plus the side-effect commands the
orchestrator must execute. Nothing here awaits, reads the clock or touches a
transport.
"""
from __future__ import annotations
from typing import Any, Dict, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict

from livecontext.core.constants import DEFAULT_RESPONSE_LANGUAGE
from livecontext.core.errors import NoSelectionError, UnknownAnalysisError
from livecontext.instructions.composer import compose
from livecontext.schemas.analysis import Analysis
from livecontext.schemas.directives import Directive
from livecontext.schemas.effects import (
    Effect,
    PersistSearchHistory,
    PersistSessions,
    RebuildText,
    RebuildVoice,
    RunImageJob,
    StopRecording,
)
from livecontext.schemas.state import (
    ChatMessage,
    ImagePayload,
    ProcessingState,
    SavedSession,
    SearchHistoryItem,
    SearchResult,
    SessionState,
    TimelineEvent,
    TimelineType,
)

INSERTED_IMAGE_MARKDOWN = "\n\n![Image generated by the assistant]({url})\n"
TURN_ERROR_SUFFIX = "\n\n**Sorry, an error occurred:** {reason}"


class Transition(BaseModel):
    model_config = ConfigDict(frozen=True)

    state: SessionState
    reason: str
    effects: Tuple[Effect, ...] = ()


def derive_instruction(state: SessionState, language: str = DEFAULT_RESPONSE_LANGUAGE) -> str:
    """Selected analysis only; no selection means the context-free instruction."""
    selected = state.selected_analysis
    return compose([selected] if selected else [], state.active_persona, language)


def _rebuild(state: SessionState, reason: str, language: str) -> Transition:
    """Recompute the instruction and rebuild both connections against it."""
    effects: list = []
    if state.is_recording:
        effects.append(StopRecording())
        state = state.model_copy(update={"is_recording": False})
    state = state.model_copy(update={"system_instruction": derive_instruction(state, language)})
    effects.append(RebuildVoice(instruction=state.system_instruction))
    effects.append(RebuildText(instruction=state.system_instruction, seed_history=state.chat_history))
    return Transition(state=state, reason=reason, effects=tuple(effects))


def initialize(state: SessionState, language: str = DEFAULT_RESPONSE_LANGUAGE) -> Transition:
    return _rebuild(state, "initialize", language)


def select_analysis(
    state: SessionState,
    analysis_id: Optional[str],
    language: str = DEFAULT_RESPONSE_LANGUAGE,
    force: bool = False,
) -> Transition:
    if state.selected_analysis_id == analysis_id and not force:
        return Transition(state=state, reason="select_analysis:unchanged")
    if analysis_id is not None and state.find_analysis(analysis_id) is None:
        raise UnknownAnalysisError(analysis_id)
    state = state.model_copy(
        update={"selected_analysis_id": analysis_id, "chat_history": (), "last_generated_images": ()}
    )
    return _rebuild(state, "select_analysis", language)


def add_analysis(state: SessionState, analysis: Analysis, language: str = DEFAULT_RESPONSE_LANGUAGE) -> Transition:
    state = state.model_copy(update={"analyses": state.analyses + (analysis,)})
    return select_analysis(state, analysis.id, language, force=True)


def remove_analysis(state: SessionState, analysis_id: str, language: str = DEFAULT_RESPONSE_LANGUAGE) -> Transition:
    remaining = tuple(a for a in state.analyses if a.id != analysis_id)
    if len(remaining) == len(state.analyses):
        raise UnknownAnalysisError(analysis_id)
    state = state.model_copy(update={"analyses": remaining})
    if state.selected_analysis_id != analysis_id:
        return Transition(state=state, reason="remove_analysis")
    next_id = remaining[0].id if remaining else None
    return select_analysis(state, next_id, language, force=True)


def _replace_analysis(state: SessionState, updated: Analysis) -> SessionState:
    return state.model_copy(
        update={"analyses": tuple(updated if a.id == updated.id else a for a in state.analyses)}
    )


def update_summary(
    state: SessionState,
    analysis_id: str,
    summary: str,
    language: str = DEFAULT_RESPONSE_LANGUAGE,
) -> Transition:
    current = state.find_analysis(analysis_id)
    if current is None:
        raise UnknownAnalysisError(analysis_id)
    state = _replace_analysis(state, current.model_copy(update={"summary": summary}))
    if derive_instruction(state, language) == state.system_instruction:
        return Transition(state=state, reason="update_summary")
    state = state.model_copy(update={"chat_history": ()})
    return _rebuild(state, "update_summary", language)


def insert_image(state: SessionState, image_url: str, language: str = DEFAULT_RESPONSE_LANGUAGE) -> Transition:
    current = state.selected_analysis
    if current is None:
        raise NoSelectionError("insert the image")
    summary = current.summary + INSERTED_IMAGE_MARKDOWN.format(url=image_url)
    state = _replace_analysis(state, current.model_copy(update={"summary": summary}))
    return _rebuild(state, "insert_image", language)


def set_persona(state: SessionState, persona: Optional[str], language: str = DEFAULT_RESPONSE_LANGUAGE) -> Transition:
    state = state.model_copy(update={"active_persona": persona, "chat_history": ()})
    return _rebuild(state, "set_persona", language)


def reset_session(state: SessionState, clear_analyses: bool = True, language: str = DEFAULT_RESPONSE_LANGUAGE) -> Transition:
    update: Dict[str, Any] = {"search_results": ()}
    if clear_analyses:
        update.update(
            analyses=(),
            active_persona=None,
            selected_analysis_id=None,
            chat_history=(),
            last_generated_images=(),
        )
    return _rebuild(state.model_copy(update=update), "reset_session", language)


def load_saved_session(state: SessionState, saved: SavedSession, language: str = DEFAULT_RESPONSE_LANGUAGE) -> Transition:
    state = state.model_copy(
        update={
            "analyses": saved.analyses,
            "timeline_events": saved.timeline_events,
            "search_results": saved.search_results,
            "active_persona": saved.active_persona,
        }
    )
    first = saved.analyses[0].id if saved.analyses else None
    return select_analysis(state, first, language, force=True)


def save_session(state: SessionState, session_id: str, title: str) -> Transition:
    saved = SavedSession(
        id=session_id,
        title=title,
        analyses=state.analyses,
        timeline_events=state.timeline_events,
        system_instruction=state.system_instruction,
        search_results=state.search_results,
        active_persona=state.active_persona,
    )
    state = state.model_copy(update={"saved_sessions": (saved,) + state.saved_sessions})
    return Transition(state=state, reason="save_session", effects=(PersistSessions(),))


def delete_session(state: SessionState, session_id: str) -> Transition:
    kept = tuple(s for s in state.saved_sessions if s.id != session_id)
    return Transition(state=state.model_copy(update={"saved_sessions": kept}), reason="delete_session", effects=(PersistSessions(),))


def record_search_term(state: SessionState, term: str, item_id: str) -> Transition:
    term = term.strip()
    if not term or any(i.term.lower() == term.lower() for i in state.search_history):
        return Transition(state=state, reason="record_search_term:unchanged")
    history = (SearchHistoryItem(id=item_id, term=term),) + state.search_history
    return Transition(
        state=state.model_copy(update={"search_history": history}),
        reason="record_search_term",
        effects=(PersistSearchHistory(),),
    )


def delete_search_history_item(state: SessionState, item_id: str) -> Transition:
    kept = tuple(i for i in state.search_history if i.id != item_id)
    return Transition(
        state=state.model_copy(update={"search_history": kept}),
        reason="delete_search_history_item",
        effects=(PersistSearchHistory(),),
    )


def log_event(state: SessionState, message: str, type_: TimelineType, timestamp: str) -> Transition:
    ev = TimelineEvent(timestamp=timestamp, message=message, type=type_)
    return Transition(state=state.model_copy(update={"timeline_events": state.timeline_events + (ev,)}), reason="log_event")


def set_status(state: SessionState, message: str) -> Transition:
    return Transition(state=state.model_copy(update={"status": message, "error": ""}), reason="set_status")


def set_error(state: SessionState, message: str, timestamp: str) -> Transition:
    state = state.model_copy(update={"error": message, "status": ""})
    return log_event(state, message, "error", timestamp).model_copy(update={"reason": "set_error"})


def clear_banner(state: SessionState, field: str, expected: str) -> Transition:
    """Clear ``status``/``error`` only if it still shows ``expected``."""
    if getattr(state, field) != expected:
        return Transition(state=state, reason=f"clear_{field}:unchanged")
    return Transition(state=state.model_copy(update={field: ""}), reason=f"clear_{field}")


def set_processing(state: SessionState, active: bool, step: str = "", progress: int = 0) -> Transition:
    ps = ProcessingState(active=active, step=step, progress=max(0, min(100, int(progress))))
    return Transition(state=state.model_copy(update={"processing_state": ps}), reason="set_processing")


def set_recording(state: SessionState, recording: bool) -> Transition:
    return Transition(state=state.model_copy(update={"is_recording": recording}), reason="set_recording")


def set_search_results(state: SessionState, results: Sequence[SearchResult]) -> Transition:
    seen: Dict[str, SearchResult] = {}
    for r in results:
        seen.setdefault(r.uri, r)
    return Transition(state=state.model_copy(update={"search_results": tuple(seen.values())}), reason="set_search_results")


def set_last_generated(state: SessionState, images: Sequence[ImagePayload]) -> Transition:
    return Transition(state=state.model_copy(update={"last_generated_images": tuple(images)}), reason="set_last_generated")


def begin_turn(state: SessionState, text: str) -> Transition:
    """Append the user message and the empty assistant message the turn will stream into."""
    history = state.chat_history + (ChatMessage(role="user", text=text), ChatMessage(role="assistant", text=""))
    return Transition(
        state=state.model_copy(update={"chat_history": history, "is_chatting": True, "search_results": ()}),
        reason="begin_turn",
    )


def message_at(state: SessionState, index: int, message_id: str) -> Optional[ChatMessage]:
    if 0 <= index < len(state.chat_history) and state.chat_history[index].id == message_id:
        return state.chat_history[index]
    return None


def patch_message(state: SessionState, index: int, message_id: str, partial: Dict[str, Any]) -> Optional[Transition]:
    """Replace fields of one message; ``None`` when that message is no longer in the history."""
    current = message_at(state, index, message_id)
    if current is None:
        return None
    patched = current.model_copy(update=dict(partial))
    history = state.chat_history[:index] + (patched,) + state.chat_history[index + 1 :]
    return Transition(state=state.model_copy(update={"chat_history": history}), reason="patch_message")


def dispatch_directive(state: SessionState, index: int, message_id: str, directive: Directive) -> Transition:
    return Transition(
        state=state,
        reason=f"dispatch_directive:{directive.kind}",
        effects=(RunImageJob(directive=directive, message_index=index, message_id=message_id),),
    )


def end_turn(state: SessionState, sources: Sequence[SearchResult]) -> Transition:
    t = set_search_results(state, sources)
    return Transition(state=t.state.model_copy(update={"is_chatting": False}), reason="end_turn")


def fail_turn(state: SessionState, index: int, message_id: str, reason: str) -> Transition:
    current = message_at(state, index, message_id)
    if current is not None:
        suffix = TURN_ERROR_SUFFIX.format(reason=reason)
        state = patch_message(state, index, message_id, {"text": current.text + suffix}).state  # type: ignore[union-attr]
    return Transition(state=state.model_copy(update={"is_chatting": False}), reason="fail_turn")
