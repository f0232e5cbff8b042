# orchestrator/factory.py
from __future__ import annotations
from typing import Optional

from livecontext.core.config import bootstrap_env, env_flag
from livecontext.core.logging import get_logger
from livecontext.llm.text_transport import LangChainTextTransport
from livecontext.orchestrator.session_orchestrator import SessionOrchestrator
from livecontext.schemas.transports import AnalysisEngine
from livecontext.session.store import JsonFileStore
from livecontext.tools.media.image_tool import get_image_transport
from livecontext.voice.audio_io import MicrophoneCapture, SpeakerPlayback
from livecontext.voice.live_transport import LiveVoiceTransport

logger = get_logger("livecontext.orchestrator.factory")


def build_orchestrator(
    analysis_engine: AnalysisEngine,
    store_dir: Optional[str] = None,
    text_provider: Optional[str] = None,
    text_model: Optional[str] = None,
    image_provider: Optional[str] = None,
) -> SessionOrchestrator:
    """Wire the concrete transports from the environment."""
    bootstrap_env()
    audio = not env_flag("DISABLE_AUDIO")
    orch = SessionOrchestrator(
        analysis_engine=analysis_engine,
        voice_transport=LiveVoiceTransport(),
        text_transport=LangChainTextTransport(provider=text_provider, model=text_model),
        image_transport=get_image_transport(image_provider),
        store=JsonFileStore(store_dir),
        capture=MicrophoneCapture() if audio else None,
        playback=SpeakerPlayback() if audio else None,
    )
    logger.info("ORCHESTRATOR_BUILT store=%s audio=%s", orch.archive.store.base, audio)
    return orch
