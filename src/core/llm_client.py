"""
LLM client used as the translate collaborator of the orchestrator
"""
import asyncio
import logging
from typing import Optional

from prompts.prompts import generate_translation_prompt
from src.core.llm.base import LLMProvider
from src.core.llm.exceptions import TranslationCancelledError, LLMResponseError
from src.core.llm.providers.openai import OpenAICompatibleProvider
from src.core.protection.pattern_protector import PLACEHOLDER_PATTERN
from src.core.translation_state import CancellationToken


logger = logging.getLogger(__name__)


class LLMClient:
    """
    Builds translation prompts and sends them through a provider.

    A request races the cancellation token, so cancel() abandons the
    in-flight HTTP call instead of waiting for the model to answer.
    """

    def __init__(self, provider: LLMProvider, source_language: str = ""):
        self.provider = provider
        self.source_language = source_language

    async def translate(self, text: str, target_language: str,
                        cancellation: Optional[CancellationToken] = None) -> str:
        """
        Translate one chunk.

        Args:
            text: Chunk text (may contain protected placeholders)
            target_language: Target language name
            cancellation: Token that aborts the request when set

        Returns:
            Raw model response content

        Raises:
            TranslationCancelledError: If the token was set before or during the request
            LLMError: On provider failure
        """
        if cancellation is not None and cancellation.is_cancelled:
            raise TranslationCancelledError("Translation cancelled before request")

        prompt = generate_translation_prompt(
            text,
            target_language,
            source_language=self.source_language,
            has_placeholders=bool(PLACEHOLDER_PATTERN.search(text))
        )
        request = self.provider.generate(prompt.user, system_prompt=prompt.system)

        if cancellation is None:
            response = await request
        else:
            response = await self._race(request, cancellation)

        if response.was_truncated:
            logger.warning("Response was truncated by the max_tokens limit (%d completion tokens)",
                           response.completion_tokens)
        if response.content is None:
            raise LLMResponseError("Provider returned no content")
        return response.content

    @staticmethod
    async def _race(request, cancellation: CancellationToken):
        request_task = asyncio.ensure_future(request)
        cancel_task = asyncio.ensure_future(cancellation.wait())
        try:
            done, _ = await asyncio.wait({request_task, cancel_task},
                                         return_when=asyncio.FIRST_COMPLETED)
        finally:
            cancel_task.cancel()
            if not request_task.done():
                request_task.cancel()

        if request_task in done:
            return request_task.result()

        try:
            await request_task
        except asyncio.CancelledError:
            pass
        raise TranslationCancelledError("Translation cancelled during request")

    async def close(self):
        await self.provider.close()


def create_llm_client(config) -> LLMClient:
    """
    Create an LLMClient for an OpenAI-compatible endpoint from a TranslationConfig.

    Args:
        config: TranslationConfig instance

    Returns:
        LLMClient
    """
    provider = OpenAICompatibleProvider(
        api_endpoint=config.api_endpoint,
        model=config.model,
        api_key=config.api_key or None,
        timeout=config.timeout,
        max_attempts=config.max_attempts,
        retry_delay=config.retry_delay,
        temperature=config.temperature,
        max_tokens=config.max_response_tokens
    )
    return LLMClient(provider, source_language=config.source_language)
