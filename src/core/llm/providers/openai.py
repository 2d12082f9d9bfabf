"""
OpenAI-compatible provider implementation.

This module provides the OpenAICompatibleProvider class for interacting with
OpenAI API and compatible endpoints (llama.cpp, LM Studio, vLLM, OpenAI, etc.).
"""

from typing import Optional
import asyncio
import json
import logging
import httpx

from ..base import LLMProvider, LLMResponse
from ..exceptions import LLMConnectionError, LLMClientError, LLMResponseError

from src.config import (
    REQUEST_TIMEOUT,
    MAX_TRANSLATION_ATTEMPTS,
    RETRY_DELAY_SECONDS,
    TEMPERATURE,
    MAX_RESPONSE_TOKENS
)


logger = logging.getLogger(__name__)

# Status codes that mean the request itself is wrong
NON_RETRYABLE_STATUS_CODES = (400, 401, 403)
ERROR_BODY_PREVIEW = 500


class OpenAICompatibleProvider(LLMProvider):
    """OpenAI-compatible API provider (works with llama.cpp, LM Studio, vLLM, OpenAI, etc.)"""

    def __init__(self, api_endpoint: str, model: str, api_key: Optional[str] = None,
                 timeout: float = REQUEST_TIMEOUT,
                 max_attempts: int = MAX_TRANSLATION_ATTEMPTS,
                 retry_delay: float = RETRY_DELAY_SECONDS,
                 temperature: float = TEMPERATURE,
                 max_tokens: int = MAX_RESPONSE_TOKENS,
                 client: Optional[httpx.AsyncClient] = None):
        super().__init__(model, timeout=timeout, client=client)
        self.api_endpoint = api_endpoint
        self.api_key = api_key
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self.temperature = temperature
        self.max_tokens = max_tokens

    def build_payload(self, prompt: str, system_prompt: Optional[str] = None) -> dict:
        """Build the chat completions request body."""
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        return {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "stream": False,
        }

    async def generate(self, prompt: str, system_prompt: Optional[str] = None) -> LLMResponse:
        """
        Generate text using an OpenAI compatible API.

        Timeouts, connection errors and 5xx responses are retried with
        exponential backoff. 400/401/403 responses fail immediately.

        Args:
            prompt: The user prompt (content to translate)
            system_prompt: Optional system prompt (role/instructions)

        Returns:
            LLMResponse with content and token usage info

        Raises:
            LLMClientError: On a non-retryable status code
            LLMResponseError: If the response body is malformed
            LLMConnectionError: If every attempt failed
        """
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        payload = self.build_payload(prompt, system_prompt)
        client = await self._get_client()
        last_error: Optional[Exception] = None

        for attempt in range(self.max_attempts):
            try:
                response = await client.post(
                    self.api_endpoint,
                    json=payload,
                    headers=headers,
                    timeout=self.timeout
                )
                response.raise_for_status()
                return self._parse_response(response)

            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                body = e.response.text[:ERROR_BODY_PREVIEW]
                if status in NON_RETRYABLE_STATUS_CODES:
                    raise LLMClientError(f"API request rejected with status {status}: {body}", status) from e
                logger.warning("OpenAI-compatible API HTTP Error (attempt %d/%d): status %d, body: %s",
                               attempt + 1, self.max_attempts, status, body)
                last_error = e
            except httpx.TimeoutException as e:
                logger.warning("OpenAI-compatible API Timeout (attempt %d/%d): %s",
                               attempt + 1, self.max_attempts, e)
                last_error = e
            except httpx.TransportError as e:
                logger.warning("OpenAI-compatible API Connection Error (attempt %d/%d): %s",
                               attempt + 1, self.max_attempts, e)
                last_error = e

            if attempt < self.max_attempts - 1:
                await asyncio.sleep(self.retry_delay * (2 ** attempt))

        raise LLMConnectionError(
            f"API request failed after {self.max_attempts} attempts: {last_error}"
        ) from last_error

    def _parse_response(self, response: httpx.Response) -> LLMResponse:
        try:
            response_json = response.json()
        except json.JSONDecodeError as e:
            raise LLMResponseError(f"Response is not valid JSON: {e}") from e

        choices = response_json.get("choices") if isinstance(response_json, dict) else None
        if not choices or not isinstance(choices, list):
            raise LLMResponseError("Invalid API response: no choices returned")

        message = choices[0].get("message") if isinstance(choices[0], dict) else None
        if not isinstance(message, dict) or not isinstance(message.get("content"), str):
            raise LLMResponseError("Invalid API response: message content missing")

        usage = response_json.get("usage") or {}
        prompt_tokens = usage.get("prompt_tokens", 0)
        completion_tokens = usage.get("completion_tokens", 0)

        return LLMResponse(
            content=message["content"],
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            context_used=prompt_tokens + completion_tokens,
            was_truncated=choices[0].get("finish_reason") == "length"
        )
