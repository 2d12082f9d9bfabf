"""
LLM provider layer.
"""
from src.core.llm.base import LLMProvider, LLMResponse
from src.core.llm.exceptions import (
    LLMError,
    LLMConnectionError,
    LLMClientError,
    LLMResponseError,
    TranslationCancelledError,
)
from src.core.llm.providers.openai import OpenAICompatibleProvider

__all__ = [
    'LLMProvider',
    'LLMResponse',
    'LLMError',
    'LLMConnectionError',
    'LLMClientError',
    'LLMResponseError',
    'TranslationCancelledError',
    'OpenAICompatibleProvider',
]
