"""
Language Model Client
Synchronous text-in/text-out access to a chat-completion backend.
"""

import logging
from typing import Optional

from openai import APITimeoutError, OpenAI, OpenAIError

from ...config import Settings, get_settings
from ..errors import MalformedResponse, ProviderTimeout, ProviderUnavailable

logger = logging.getLogger(__name__)


class LanguageModel:
    """
    Text-in/text-out language model capability.

    Implementations raise ProviderUnavailable, ProviderTimeout or
    MalformedResponse; callers decide how to degrade.
    """

    name: str = "language-model"

    def complete(self, prompt: str) -> str:
        raise NotImplementedError


class OpenAIChatModel(LanguageModel):
    """
    Language model backed by an OpenAI-compatible chat completions endpoint.

    The client enforces a per-call timeout so one slow request cannot stall
    an indexing pass or a request handler.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: Optional[str] = None,
        temperature: float = 0.2,
        timeout: float = 30.0,
        max_retries: int = 1,
        client: Optional[OpenAI] = None,
    ):
        self.model = model
        self.temperature = temperature
        self.name = f"chat:{model}"
        self.client = client or OpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=max_retries,
        )

        logger.info(f"Language model client initialized: model={model}")

    def complete(self, prompt: str) -> str:
        """
        Send a single-turn prompt and return the response text.

        Raises:
            ProviderTimeout: If the call timed out
            ProviderUnavailable: On any other backend error
            MalformedResponse: If the backend returned no text
        """
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=self.temperature,
            )
        except APITimeoutError as e:
            raise ProviderTimeout(f"Language model call timed out: {e}", details={"model": self.model})
        except OpenAIError as e:
            raise ProviderUnavailable(f"Language model call failed: {e}", details={"model": self.model})

        if not response.choices:
            raise MalformedResponse("Language model returned no choices", details={"model": self.model})

        content = response.choices[0].message.content
        if not content or not content.strip():
            raise MalformedResponse("Language model returned an empty response", details={"model": self.model})

        return content


def create_language_model(settings: Optional[Settings] = None) -> Optional[LanguageModel]:
    """
    Build the configured language model.

    Returns:
        OpenAIChatModel, or None when no language-model backend is configured
    """
    settings = settings or get_settings()

    if not settings.llm_backend_configured:
        logger.warning("No language-model backend configured; LLM features will use fallbacks")
        return None

    return OpenAIChatModel(
        api_key=settings.llm_api_key,
        model=settings.llm_model,
        base_url=settings.llm_base_url,
        temperature=settings.llm_temperature,
        timeout=settings.provider_timeout_seconds,
        max_retries=settings.provider_max_retries,
    )


# Process-wide instance, resolved once at startup
_language_model: Optional[LanguageModel] = None
_resolved = False


def get_language_model() -> Optional[LanguageModel]:
    """Get the process-wide language model (None when not configured)."""
    global _language_model, _resolved
    if not _resolved:
        _language_model = create_language_model()
        _resolved = True
    return _language_model


def set_language_model(language_model: Optional[LanguageModel]) -> None:
    """Install the process-wide language model."""
    global _language_model, _resolved
    _language_model = language_model
    _resolved = True
