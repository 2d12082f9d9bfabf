"""
Provider interface for chat completion endpoints.

A provider sends one prompt and returns an LLMResponse. Retries, status code
handling and response parsing live in the concrete providers; prompt building
and cancellation live in LLMClient.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional
import httpx

from src.config import REQUEST_TIMEOUT


@dataclass
class LLMResponse:
    """Content of one completion and what it cost"""
    content: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    context_used: int = 0  # prompt + completion
    was_truncated: bool = False  # finish_reason was "length"


class LLMProvider(ABC):
    """Base class holding the shared HTTP client of a provider"""

    def __init__(self, model: str, timeout: float = REQUEST_TIMEOUT,
                 client: Optional[httpx.AsyncClient] = None):
        """
        Args:
            model: Model name sent with each request
            timeout: Request timeout in seconds
            client: HTTP client to reuse (tests pass one with a mock transport)
        """
        self.model = model
        self.timeout = timeout
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        # One pooled client per provider, created on first use
        if self._client is None:
            self._client = httpx.AsyncClient(
                limits=httpx.Limits(max_keepalive_connections=5, max_connections=10),
                timeout=httpx.Timeout(self.timeout)
            )
        return self._client

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> 'LLMProvider':
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    @abstractmethod
    async def generate(self, prompt: str, system_prompt: Optional[str] = None) -> LLMResponse:
        """
        Send one chat completion request.

        Args:
            prompt: User message (the text to translate)
            system_prompt: Optional system message

        Returns:
            LLMResponse with content and token usage

        Raises:
            LLMError: If the request failed
        """
