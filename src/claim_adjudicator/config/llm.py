"""Language-model capability for query extraction and decision synthesis.

The pipeline only depends on the ``LanguageModel.complete`` contract; the
default implementation routes completions through LiteLLM so any provider it
supports (OpenAI, OpenRouter, ...) can be configured from the environment.
"""

import logging
import os
from abc import ABC, abstractmethod
from typing import Optional

import litellm

from claim_adjudicator.config.settings import get_llm_config
from claim_adjudicator.utils.retry import with_capability_retry

logger = logging.getLogger(__name__)

# Transient LiteLLM failures re-raised as builtin errors so the retry policy
# and the pipeline's timeout mapping can recognise them.
_CONNECTION_ERRORS = (
    litellm.APIConnectionError,
    litellm.RateLimitError,
    litellm.ServiceUnavailableError,
    litellm.InternalServerError,
)


class LanguageModel(ABC):
    """Abstract completion capability: prompt in, JSON-formatted text out."""

    @abstractmethod
    def complete(self, prompt: str) -> str:
        """Return the model's response text for a single user prompt."""


class LiteLLMLanguageModel(LanguageModel):
    """LanguageModel backed by ``litellm.completion``."""

    def __init__(
        self,
        model: str,
        api_key: Optional[str] = None,
        api_base: Optional[str] = None,
        timeout_seconds: float = 60.0,
        max_attempts: int = 3,
        temperature: float = 0.0,
    ):
        self.model = model
        self.api_key = api_key
        self.api_base = api_base
        self.timeout_seconds = timeout_seconds
        self.temperature = temperature
        retrying = with_capability_retry("llm", max_attempts=max_attempts)
        self._complete_with_retry = retrying(self._call)

    def _call(self, prompt: str) -> str:
        kwargs = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.temperature,
            "timeout": self.timeout_seconds,
            "response_format": {"type": "json_object"},
            "api_key": self.api_key,
        }
        if self.api_base:
            kwargs["api_base"] = self.api_base
        try:
            response = litellm.completion(**kwargs)
        except litellm.Timeout as e:
            raise TimeoutError(f"LLM request timed out after {self.timeout_seconds}s") from e
        except _CONNECTION_ERRORS as e:
            raise ConnectionError(str(e)) from e
        content = response.choices[0].message.content
        return content or ""

    def complete(self, prompt: str) -> str:
        logger.debug("LLM completion: model=%s, prompt_chars=%d", self.model, len(prompt))
        return self._complete_with_retry(prompt)


def get_llm() -> LiteLLMLanguageModel:
    """Return the configured language model. Requires OPENAI_API_KEY.

    Raises:
        ValueError: If OPENAI_API_KEY is not set.
    """
    api_key = os.environ.get("OPENAI_API_KEY", "").strip()
    if not api_key:
        raise ValueError("OPENAI_API_KEY environment variable is required")

    config = get_llm_config()
    logger.debug(
        "Configuring LLM: model=%s, base_url=%s, timeout=%ss",
        config["model"],
        config["api_base"] or "default",
        config["timeout_seconds"],
    )
    return LiteLLMLanguageModel(
        model=config["model"],
        api_key=api_key,
        api_base=config["api_base"],
        timeout_seconds=config["timeout_seconds"],
        max_attempts=config["max_attempts"],
    )


def get_model_name() -> str:
    """Get the configured model name."""
    return get_llm_config()["model"]
