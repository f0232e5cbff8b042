# llm/openai_llm.py
from __future__ import annotations
from langchain_openai import ChatOpenAI

from livecontext.llm.base import common_kwargs, require_env


def build_openai(model: str, temperature: float, search: bool):
    require_env("OPENAI_API_KEY")
    if not search:
        return ChatOpenAI(model=model, **common_kwargs(temperature))
    # web search is a built-in tool of the Responses API
    llm = ChatOpenAI(model=model, use_responses_api=True, **common_kwargs(temperature))
    return llm.bind_tools([{"type": "web_search_preview"}])
