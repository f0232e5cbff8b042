# stream/bus.py
from __future__ import annotations
import time
from typing import Any, Callable, Dict, List, Optional

from livecontext.core.config import env_flag
from livecontext.core.logging import get_logger
from livecontext.schemas.events import EventType, StateEvent
from livecontext.schemas.state import SessionState

logger = get_logger("livecontext.stream.bus")

Listener = Callable[[StateEvent], None]


class EventBus:
    """Typed publish/subscribe channel for state snapshots and voice output."""

    def __init__(self) -> None:
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(
        self,
        type_: EventType,
        reason: str,
        state: Optional[SessionState] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> StateEvent:
        ev = StateEvent(type=type_, reason=reason, ts_ms=int(time.time() * 1000), state=state, data=data or {})
        # Audio chunks arrive many times a second; only log them on request.
        if type_ != "audio_chunk" or env_flag("LOG_STATE_EVENTS"):
            logger.debug("BUS_PUBLISH type=%s reason=%s listeners=%s", type_, reason, len(self._listeners))
        for listener in list(self._listeners):
            try:
                listener(ev)
            except Exception:
                logger.exception("BUS_LISTENER_ERROR type=%s reason=%s", type_, reason)
        return ev
