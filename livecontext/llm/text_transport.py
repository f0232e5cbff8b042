# llm/text_transport.py
from __future__ import annotations
import os
from typing import Any, AsyncIterator, Dict, Iterable, List, Optional, Sequence

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from livecontext.core.config import env_float
from livecontext.core.constants import DEFAULT_TEMPERATURE
from livecontext.core.logging import get_logger
from livecontext.llm.base import normalize
from livecontext.llm.factory import get_chat_model, is_not_found_error, model_candidates
from livecontext.schemas.state import ChatMessage, SearchResult
from livecontext.schemas.transports import TextChunk

logger = get_logger("livecontext.llm.text")


def seed_messages(instruction: str, history: Sequence[ChatMessage]) -> List[BaseMessage]:
    msgs: List[BaseMessage] = [SystemMessage(content=instruction)]
    for m in history:
        msgs.append(HumanMessage(content=m.text) if m.role == "user" else AIMessage(content=m.text))
    return msgs


def chunk_text(content: Any) -> str:
    """Flatten a LangChain chunk ``content`` (str or list of content blocks)."""
    if isinstance(content, str):
        return content
    out = ""
    for block in content or []:
        if isinstance(block, str):
            out += block
        elif isinstance(block, dict) and block.get("type", "text") == "text":
            out += block.get("text") or ""
    return out


def _web_results(items: Iterable[Any]) -> List[SearchResult]:
    out: List[SearchResult] = []
    for it in items or []:
        if not isinstance(it, dict):
            continue
        web = it.get("web") if isinstance(it.get("web"), dict) else it
        uri = web.get("uri") or web.get("url")
        if uri:
            out.append(SearchResult(uri=uri, title=web.get("title") or uri))
    return out


def chunk_sources(chunk: Any) -> List[SearchResult]:
    """Grounding sources carried by one streamed chunk, for any supported provider."""
    out: List[SearchResult] = []
    meta: Dict[str, Any] = getattr(chunk, "response_metadata", None) or {}
    grounding = meta.get("grounding_metadata") or {}
    if isinstance(grounding, dict):
        out += _web_results(grounding.get("grounding_chunks") or [])
    content = getattr(chunk, "content", None)
    if isinstance(content, list):
        for block in content:
            if not isinstance(block, dict):
                continue
            if block.get("type") == "web_search_tool_result":
                out += _web_results(block.get("content") or [])
            out += _web_results(a for a in block.get("annotations") or [] if isinstance(a, dict))
    return out


class LangChainChatSession:
    def __init__(self, provider: str, model: str, tools: Sequence[str], messages: List[BaseMessage], temperature: float):
        self.provider, self.model, self.tools = provider, model, tuple(tools)
        self.messages = messages
        self.temperature = temperature
        self.closed = False

    async def send_streaming(self, message: str) -> AsyncIterator[TextChunk]:
        if self.closed:
            raise RuntimeError("Chat session is closed")
        self.messages.append(HumanMessage(content=message))
        candidates = model_candidates(self.provider, self.model)
        acc = ""
        for idx, candidate in enumerate(candidates):
            llm = get_chat_model(self.provider, candidate, self.tools, self.temperature)
            try:
                async for chunk in llm.astream(self.messages):
                    text = chunk_text(getattr(chunk, "content", ""))
                    sources = chunk_sources(chunk)
                    if text or sources:
                        acc += text
                        yield TextChunk(text=text, sources=tuple(sources))
                break
            except Exception as e:
                # Only fall back to another model id before anything was streamed.
                if not acc and idx < len(candidates) - 1 and is_not_found_error(e):
                    logger.warning("TEXT_MODEL_NOT_FOUND provider=%s model=%s next=%s", self.provider, candidate, candidates[idx + 1])
                    continue
                self.messages.pop()
                raise
        self.messages.append(AIMessage(content=acc))

    async def close(self) -> None:
        self.closed = True


class LangChainTextTransport:
    def __init__(self, provider: Optional[str] = None, model: Optional[str] = None, temperature: Optional[float] = None):
        self.provider, self.model = normalize(provider or os.getenv("TEXT_PROVIDER"), model or os.getenv("TEXT_MODEL"))
        self.temperature = temperature if temperature is not None else env_float("TEXT_TEMPERATURE", DEFAULT_TEMPERATURE)

    async def open(self, instruction: str, tools: Sequence[str], seed_history: Sequence[ChatMessage]) -> LangChainChatSession:
        # Fails fast on missing keys or bad provider config.
        get_chat_model(self.provider, self.model, tools, self.temperature)
        logger.info(
            "TEXT_SESSION_OPEN provider=%s model=%s instruction_len=%s seed=%s",
            self.provider,
            self.model,
            len(instruction),
            len(seed_history),
        )
        return LangChainChatSession(
            self.provider, self.model, tools, seed_messages(instruction, seed_history), self.temperature
        )
