# llm/base.py
from __future__ import annotations
import os
from typing import Any, Dict, Optional

from livecontext.core.constants import DEFAULT_MODEL, DEFAULT_PROVIDER, PROVIDER_MODELS, SUPPORTED_PROVIDERS


def require_env(name: str) -> str:
    val = os.getenv(name)
    if not val:
        raise RuntimeError(f"Missing env var: {name}")
    return val


def normalize(provider: Optional[str], model: Optional[str]) -> tuple[str, str]:
    p = (provider or DEFAULT_PROVIDER).lower()
    if p not in SUPPORTED_PROVIDERS:
        raise ValueError(f"Unsupported provider: {p}")
    m = (model or (DEFAULT_MODEL if p == DEFAULT_PROVIDER else PROVIDER_MODELS[p][0])).strip()
    if not m:
        raise ValueError("Model cannot be empty")
    return p, m


def common_kwargs(temperature: float) -> Dict[str, Any]:
    return {"streaming": True, "temperature": temperature}
