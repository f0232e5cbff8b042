# llm/factory.py
from __future__ import annotations
from typing import List, Optional, Sequence

from livecontext.core.constants import DEFAULT_TEMPERATURE, PROVIDER_MODELS
from livecontext.core.logging import get_logger
from livecontext.llm.base import normalize
from livecontext.llm.anthropic_llm import build_anthropic
from livecontext.llm.gemini_llm import build_gemini
from livecontext.llm.openai_llm import build_openai

logger = get_logger("livecontext.llm.factory")

_BUILDERS = {
    "openai": build_openai,
    "anthropic": build_anthropic,
    "gemini": build_gemini,
}


def is_not_found_error(e: Exception) -> bool:
    s = str(e).lower()
    return "not_found" in s or "not found" in s or "404" in s


def model_candidates(provider: str, selected_model: str) -> List[str]:
    out: List[str] = []
    for m in (selected_model, *PROVIDER_MODELS.get(provider, ())):
        if m and m not in out:
            out.append(m)
    return out


def get_chat_model(
    provider: Optional[str],
    model: Optional[str],
    tools: Sequence[str] = (),
    temperature: float = DEFAULT_TEMPERATURE,
):
    """Streaming chat model for ``provider``, with its native search tool bound when requested."""
    p, m = normalize(provider, model)
    search = "search" in tools
    try:
        return _BUILDERS[p](m, temperature, search)
    except (NotImplementedError, ValueError, TypeError) as e:
        if not search:
            raise
        # Some provider/model pairs reject the search tool binding.
        logger.warning("SEARCH_TOOL_UNAVAILABLE provider=%s model=%s error=%s", p, m, e)
        return _BUILDERS[p](m, temperature, False)
