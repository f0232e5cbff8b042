# llm/gemini_llm.py
from __future__ import annotations
from langchain_google_genai import ChatGoogleGenerativeAI

from livecontext.llm.base import common_kwargs, require_env


def build_gemini(model: str, temperature: float, search: bool):
    # LangChain reads GOOGLE_API_KEY from the environment
    require_env("GOOGLE_API_KEY")
    llm = ChatGoogleGenerativeAI(model=model, **common_kwargs(temperature))
    return llm.bind_tools([{"google_search": {}}]) if search else llm
