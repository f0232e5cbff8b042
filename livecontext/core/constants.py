# core/constants.py
from __future__ import annotations

SUPPORTED_PROVIDERS = ("openai", "anthropic", "gemini")
IMAGE_PROVIDERS = ("gemini", "openai")

PROVIDER_MODELS = {
    "openai": ("gpt-4o-mini", "gpt-4.1-mini", "gpt-4o"),
    "anthropic": (
        "claude-3-5-sonnet-20241022",
        "claude-3-5-haiku-20241022",
        "claude-3-7-sonnet-latest",
    ),
    "gemini": (
        "gemini-2.5-flash",
        "gemini-2.5-pro",
        "gemini-2.0-flash",
    ),
}

DEFAULT_PROVIDER = "gemini"
DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_TEMPERATURE = 0.2

# voice (google-genai Live API)
DEFAULT_VOICE_MODEL = "gemini-2.5-flash-preview-native-audio-dialog"
DEFAULT_VOICE_NAME = "Orus"
DEFAULT_VOICE_LANGUAGE = "pt-BR"
INPUT_SAMPLE_RATE = 16_000
OUTPUT_SAMPLE_RATE = 24_000
AUDIO_CHUNK_FRAMES = 1024

# images
DEFAULT_IMAGE_PROVIDER = "gemini"
IMAGE_MODELS = {
    "gemini": ("imagen-4.0-generate-001", "gemini-2.5-flash-image-preview"),
    "openai": ("gpt-image-1", "gpt-image-1"),
}
IMAGE_API_TIMEOUT_SEC = 90.0
MAX_IMAGES_PER_REQUEST = 4

# instruction
DEFAULT_RESPONSE_LANGUAGE = "Brazilian Portuguese"
TOOL_CAPABILITIES = ("search",)

# stream scanning
MAX_DIRECTIVE_CHARS = 1_000

# banners
STATUS_CLEAR_SEC = 3.0
ERROR_CLEAR_SEC = 5.0
LISTENING_STATUS = "Listening..."

# persistence
SESSIONS_STORAGE_KEY = "livecontext-sessions"
SEARCH_HISTORY_STORAGE_KEY = "livecontext-search-history"
DEFAULT_STORE_DIR = ".livecontext"
