"""
Heuristic translation-cost estimation.

The estimate is a proxy for how much model budget a piece of text will use
once translated. It is not a tokenizer count: CJK characters, English words
and all remaining characters are weighted separately, then optionally scaled
by the direction of translation.
"""
import math
import re
from typing import Optional

from src.core.chunking.models import TokenWeights, CompressionRatios


# Hiragana, Katakana, CJK Extension A, CJK Unified Ideographs, CJK Compatibility Ideographs
CJK_CHAR_PATTERN = re.compile(r"[\u3040-\u309f\u30a0-\u30ff\u3400-\u4dbf\u4e00-\u9fff\uf900-\ufaff]")
ENGLISH_WORD_PATTERN = re.compile(r'[A-Za-z]+')

CJK_SOURCE_RATIO = 0.3

# Target language spellings, compared case-insensitively
ENGLISH_TARGETS = frozenset({'english', 'en', 'en-us', 'en-gb', '英語'})
CJK_TARGETS = frozenset({
    'japanese', 'ja', 'jp', '日本語',
    'chinese', 'zh', 'zh-cn', 'zh-tw', '中文', '中国語', '简体中文', '繁體中文',
    'korean', 'ko', '한국어', '韓国語',
})


def count_cjk_chars(text: str) -> int:
    """Count CJK ideographic and kana characters."""
    return len(CJK_CHAR_PATTERN.findall(text)) if text else 0


def is_english_target(language: str) -> bool:
    return language.strip().lower() in ENGLISH_TARGETS


def is_cjk_target(language: str) -> bool:
    return language.strip().lower() in CJK_TARGETS


class TokenEstimator:
    """
    Estimates a translation-cost score for a string.

    Example:
        >>> TokenEstimator().estimate("こんにちは world")
        6
    """

    def __init__(self, weights: Optional[TokenWeights] = None,
                 ratios: Optional[CompressionRatios] = None,
                 cjk_source_ratio: float = CJK_SOURCE_RATIO):
        """
        Initialize the estimator.

        Args:
            weights: Weights per character class (defaults: 1.0 / 0.25 / 0.5)
            ratios: Translation-direction compression ratios
            cjk_source_ratio: CJK share above which the source counts as CJK
        """
        self.weights = weights or TokenWeights()
        self.ratios = ratios or CompressionRatios()
        self.cjk_source_ratio = cjk_source_ratio

    @classmethod
    def from_config(cls, config) -> 'TokenEstimator':
        """Create an estimator using the ratios of a TranslationConfig."""
        return cls(ratios=CompressionRatios(
            cjk_to_english=config.cjk_to_english_ratio,
            english_to_cjk=config.english_to_cjk_ratio,
            default=config.default_compression_ratio
        ))

    def estimate(self, text: str, target_language: Optional[str] = None) -> int:
        """
        Estimate the translation cost of a text.

        Args:
            text: Text to analyze
            target_language: If given, scale the cost by the translation
                direction (source inferred from the CJK share of the text)

        Returns:
            Non-negative integer estimate (0 for empty input)
        """
        if not text:
            return 0

        cjk_chars = count_cjk_chars(text)
        english_words = ENGLISH_WORD_PATTERN.findall(text)
        english_char_count = sum(len(word) for word in english_words)
        other_chars = len(text) - cjk_chars - english_char_count

        tokens = math.ceil(
            cjk_chars * self.weights.cjk_char +
            len(english_words) * self.weights.english_word +
            other_chars * self.weights.other_char
        )

        if target_language:
            tokens = math.ceil(tokens * self.compression_ratio(text, target_language))

        return tokens

    def cjk_ratio(self, text: str) -> float:
        """Share of CJK characters in the text (0.0 for empty input)."""
        if not text:
            return 0.0
        return count_cjk_chars(text) / len(text)

    def is_cjk_source(self, text: str) -> bool:
        return self.cjk_ratio(text) > self.cjk_source_ratio

    def compression_ratio(self, text: str, target_language: str) -> float:
        """
        Get the translation-direction ratio for a text and target language.

        Args:
            text: Source text
            target_language: Target language name or code

        Returns:
            CJK->English ratio, English->CJK ratio, or the default ratio
        """
        cjk_source = self.is_cjk_source(text)
        if cjk_source and is_english_target(target_language):
            return self.ratios.cjk_to_english
        if not cjk_source and is_cjk_target(target_language):
            return self.ratios.english_to_cjk
        return self.ratios.default
