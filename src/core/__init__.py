"""
Core translation modules

Import the orchestrator directly from its module to keep package import light:

    from src.core.translator import TranslationOrchestrator
"""
from .exceptions import (
    TranslationError,
    ValidationFailure,
    DocumentParseError,
    CancellationFailure,
    ChunkTranslationFailure,
    RestorationMismatch,
)
from .text_processor import split_text_into_chunks, validate_input, sanitize_text

__all__ = [
    'TranslationError',
    'ValidationFailure',
    'DocumentParseError',
    'CancellationFailure',
    'ChunkTranslationFailure',
    'RestorationMismatch',
    'split_text_into_chunks',
    'validate_input',
    'sanitize_text',
]
