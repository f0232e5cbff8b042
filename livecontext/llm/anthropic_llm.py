# llm/anthropic_llm.py
from __future__ import annotations
from langchain_anthropic import ChatAnthropic

from livecontext.llm.base import common_kwargs, require_env

WEB_SEARCH_TOOL = {"type": "web_search_20250305", "name": "web_search", "max_uses": 5}


def build_anthropic(model: str, temperature: float, search: bool):
    require_env("ANTHROPIC_API_KEY")
    llm = ChatAnthropic(model=model, **common_kwargs(temperature))
    return llm.bind_tools([WEB_SEARCH_TOOL]) if search else llm
