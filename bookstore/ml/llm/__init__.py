"""
Language Model Module
Chat-completion client used for query understanding, re-ranking and explanations.
"""

from .client import (
    LanguageModel,
    OpenAIChatModel,
    create_language_model,
    get_language_model,
    set_language_model,
)

__all__ = [
    "LanguageModel",
    "OpenAIChatModel",
    "create_language_model",
    "get_language_model",
    "set_language_model",
]
