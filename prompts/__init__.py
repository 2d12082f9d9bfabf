"""
Prompts module for the Markdown translator
"""
from prompts.prompts import (
    PromptPair,
    generate_translation_prompt,
)

__all__ = [
    "PromptPair",
    "generate_translation_prompt",
]
