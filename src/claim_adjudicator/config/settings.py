"""Centralized configuration from environment variables with defaults."""

import os
from typing import Any

from dotenv import load_dotenv

load_dotenv()


def _float(key: str, default: float) -> float:
    raw = os.environ.get(key)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _int(key: str, default: int) -> int:
    raw = os.environ.get(key)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _str(key: str, default: str) -> str:
    raw = os.environ.get(key, "").strip()
    return raw or default


# ---------------------------------------------------------------------------
# Retrieval
# ---------------------------------------------------------------------------

CHUNK_SIZE = _int("ADJUDICATOR_CHUNK_SIZE", 512)
TOP_K = _int("ADJUDICATOR_TOP_K", 5)


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

STAGE_TIMEOUT_SECONDS = _float("ADJUDICATOR_STAGE_TIMEOUT_SECONDS", 120.0)
MAX_QUERY_LENGTH = _int("ADJUDICATOR_MAX_QUERY_LENGTH", 2000)


# ---------------------------------------------------------------------------
# Capabilities
# ---------------------------------------------------------------------------

def get_llm_config() -> dict[str, Any]:
    """Completion model settings for the language-model capability."""
    return {
        "model": _str("OPENAI_MODEL_NAME", "gpt-4o-mini"),
        "api_base": os.environ.get("OPENAI_API_BASE", "").strip() or None,
        "timeout_seconds": _float("ADJUDICATOR_LLM_TIMEOUT_SECONDS", 60.0),
        "max_attempts": _int("ADJUDICATOR_LLM_MAX_ATTEMPTS", 3),
    }


def get_embedding_config() -> dict[str, Any]:
    """Embedding provider selection."""
    return {
        "provider": _str("ADJUDICATOR_EMBEDDING_PROVIDER", "openai").lower(),
        "model_name": os.environ.get("ADJUDICATOR_EMBEDDING_MODEL", "").strip() or None,
    }
