"""
Text processing module for validation, sanitizing and chunking
"""
import re
from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional, TYPE_CHECKING

from src.core.chunking.token_estimator import TokenEstimator, count_cjk_chars, ENGLISH_WORD_PATTERN

if TYPE_CHECKING:
    from src.config import TranslationConfig


# Control characters except \t and \n (\r is normalized separately)
CONTROL_CHAR_PATTERN = re.compile(r'[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]')

CJK_SCRIPT_RATIO = 0.3
ENGLISH_SCRIPT_RATIO = 0.5


@dataclass
class ValidationResult:
    """Outcome of validate_input()"""
    valid: bool = True
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            'valid': self.valid,
            'errors': list(self.errors),
            'warnings': list(self.warnings),
            'metadata': dict(self.metadata),
        }


def validate_input(
    text: str,
    min_length: int = 0,
    max_length: Optional[int] = None,
    allow_empty: bool = False,
    max_tokens: Optional[int] = None,
    estimator: Optional[TokenEstimator] = None
) -> ValidationResult:
    """
    Validate input text before translation.

    Args:
        text: Text to validate
        min_length: Minimum length in characters
        max_length: Maximum length in characters (None for no limit)
        allow_empty: Whether empty or whitespace-only text is accepted
        max_tokens: Token budget; exceeding it only produces a warning
        estimator: Token estimator (a default one is created if omitted)

    Returns:
        ValidationResult with errors, warnings and metadata
    """
    text = text or ""
    result = ValidationResult(metadata={
        'length': len(text),
        'estimated_tokens': 0,
        'has_content': False,
    })

    if not text.strip():
        if not allow_empty:
            result.valid = False
            result.errors.append("Text is empty")
        return result

    if len(text) < min_length:
        result.valid = False
        result.errors.append(f"Text is too short (minimum: {min_length} characters)")

    if max_length is not None and len(text) > max_length:
        result.valid = False
        result.errors.append(f"Text is too long (maximum: {max_length} characters)")

    estimated_tokens = (estimator or TokenEstimator()).estimate(text)
    result.metadata['estimated_tokens'] = estimated_tokens
    result.metadata['has_content'] = True

    if max_tokens is not None and estimated_tokens > max_tokens:
        result.warnings.append(
            f"Estimated tokens exceed the limit ({estimated_tokens} > {max_tokens}), text will be split into chunks"
        )

    return result


def sanitize_text(text: str) -> str:
    """
    Remove control characters and normalize line endings.

    Args:
        text: Text to sanitize

    Returns:
        Text with \\t and \\n kept, other control characters removed, CRLF/CR as LF
    """
    if not text:
        return ""
    sanitized = CONTROL_CHAR_PATTERN.sub('', text)
    return sanitized.replace('\r\n', '\n').replace('\r', '\n')


def detect_script(text: str) -> str:
    """
    Classify the dominant script of a text by character ratios.

    Returns:
        'cjk', 'english', 'other', or 'unknown' for empty input
    """
    if not text:
        return 'unknown'
    total = len(text)
    if count_cjk_chars(text) / total > CJK_SCRIPT_RATIO:
        return 'cjk'
    latin_chars = sum(len(word) for word in ENGLISH_WORD_PATTERN.findall(text))
    if latin_chars / total > ENGLISH_SCRIPT_RATIO:
        return 'english'
    return 'other'


def split_text_into_chunks(
    text: str,
    config: Optional['TranslationConfig'] = None,
    max_tokens_per_chunk: Optional[int] = None,
    target_language: Optional[str] = None
) -> List[str]:
    """
    Split text into token-bounded chunks along semantic boundaries.

    Args:
        text: Input text to split
        config: TranslationConfig object (optional, for default values)
        max_tokens_per_chunk: Override for max tokens per chunk
        target_language: Target language used to scale estimates

    Returns:
        List of chunk strings in document order
    """
    from src.config import MAX_TOKENS_PER_CHUNK
    from src.core.chunking.chunk_packer import ChunkPacker

    if config is not None:
        _max_tokens = max_tokens_per_chunk if max_tokens_per_chunk is not None else config.max_tokens_per_chunk
        estimator = TokenEstimator.from_config(config)
    else:
        _max_tokens = max_tokens_per_chunk if max_tokens_per_chunk is not None else MAX_TOKENS_PER_CHUNK
        estimator = TokenEstimator()

    packer = ChunkPacker(estimator=estimator)
    return packer.pack_text(text, _max_tokens, target_language)
