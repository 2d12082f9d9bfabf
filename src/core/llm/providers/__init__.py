"""
LLM Provider Implementations

Providers:
    - openai: OpenAI-compatible chat completions APIs
"""
from src.core.llm.providers.openai import OpenAICompatibleProvider

__all__ = ['OpenAICompatibleProvider']
