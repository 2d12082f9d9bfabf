"""
Pytest configuration and fixtures for all tests.

This file is automatically loaded by pytest and provides common fixtures
and configuration for all test modules.
"""

import sys
from pathlib import Path
from typing import List, Optional

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Import pytest for fixtures
import pytest

from src.config import TranslationConfig


class FakeTranslator:
    """
    Scripted translate collaborator.

    Each call records the chunk and returns the next scripted response. A
    response that is an exception instance is raised instead. Without a
    script, the chunk is echoed back prefixed with the target language.
    """

    def __init__(self, responses: Optional[List] = None):
        self.responses = list(responses or [])
        self.calls: List[str] = []

    async def translate(self, text, target_language, cancellation=None):
        self.calls.append(text)
        if self.responses:
            response = self.responses.pop(0)
            if isinstance(response, BaseException):
                raise response
            return response
        return f"[{target_language}] {text}"


@pytest.fixture
def sample_markdown():
    """Markdown document with a heading, prose, a code block, a table and a list."""
    return (
        "# Guide\n"
        "\n"
        "Intro paragraph.\n"
        "\n"
        "```python\n"
        "print('hi')\n"
        "```\n"
        "\n"
        "| Name | Value |\n"
        "| --- | --- |\n"
        "| a | 1 |\n"
        "\n"
        "- first\n"
        "- second\n"
        "\n"
        "Closing paragraph."
    )


@pytest.fixture
def fake_translator():
    """Echoing fake translator."""
    return FakeTranslator()


@pytest.fixture
def make_translator():
    """Factory for scripted fake translators."""
    return FakeTranslator


@pytest.fixture
def default_config():
    """Config with pattern protection and the default budget."""
    return TranslationConfig(max_tokens_per_chunk=5000, protect_patterns=True)
