# core/config.py
from __future__ import annotations
import os
from dotenv import load_dotenv


def bootstrap_env() -> None:
    """Load .env into environment variables."""
    load_dotenv()


def env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}
