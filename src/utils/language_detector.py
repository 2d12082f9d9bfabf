"""
Language detection utility for automatic source language identification

Uses langdetect library (based on Google's language-detection library)
for language identification, with a script heuristic for text too short
for a statistical guess.
"""
import logging
import re
from typing import Optional, Tuple

from langdetect import DetectorFactory, detect_langs, LangDetectException

from src.core.chunking.token_estimator import count_cjk_chars
from src.core.text_processor import detect_script


logger = logging.getLogger(__name__)

# langdetect is non-deterministic unless seeded
DetectorFactory.seed = 0

# Mapping from ISO 639-1 codes (langdetect output) to full language names
LANGUAGE_CODE_MAP = {
    'en': 'English',
    'zh-cn': 'Chinese',
    'zh-tw': 'Chinese',
    'ja': 'Japanese',
    'ko': 'Korean',
    'es': 'Spanish',
    'fr': 'French',
    'de': 'German',
    'pt': 'Portuguese',
    'it': 'Italian',
    'ru': 'Russian',
    'nl': 'Dutch',
    'pl': 'Polish',
    'tr': 'Turkish',
    'sv': 'Swedish',
    'uk': 'Ukrainian',
    'vi': 'Vietnamese',
    'id': 'Indonesian',
}

HIRAGANA_KATAKANA_PATTERN = re.compile(r'[぀-ヿ]')
HANGUL_PATTERN = re.compile(r'[가-힯]')
FENCED_CODE_PATTERN = re.compile(r'```[\s\S]*?```')


class LanguageDetector:
    """Detects the language of Markdown text"""

    # Minimum text length for a langdetect guess (characters)
    MIN_TEXT_LENGTH = 50

    # Maximum text to analyze (to avoid performance issues with large files)
    MAX_SAMPLE_LENGTH = 10000

    @staticmethod
    def _clean_text_for_detection(text: str) -> str:
        """
        Clean text to improve detection accuracy

        Code blocks, markup, URLs and e-mail addresses are removed because
        they are mostly English regardless of the document language.
        """
        text = FENCED_CODE_PATTERN.sub(' ', text)
        text = re.sub(r'<[^>]+>', '', text)
        text = re.sub(r'http[s]?://\S+', '', text)
        text = re.sub(r'\S+@\S+', '', text)
        text = re.sub(r'\s+', ' ', text)
        return text.strip()

    @staticmethod
    def detect_by_script(text: str) -> Optional[str]:
        """
        Guess the language from the writing system alone.

        Returns:
            Language name, or None if the script does not decide it
        """
        script = detect_script(text)
        if script == 'cjk':
            if HIRAGANA_KATAKANA_PATTERN.search(text):
                return 'Japanese'
            return 'Chinese'
        if HANGUL_PATTERN.search(text) and count_cjk_chars(text) == 0:
            return 'Korean'
        if script == 'english':
            return 'English'
        return None

    @staticmethod
    def detect_language_from_text(
        text: str,
        confidence_threshold: float = 0.7
    ) -> Tuple[Optional[str], float]:
        """
        Detect language from text

        Args:
            text: Text to analyze
            confidence_threshold: Minimum confidence level (0.0-1.0)

        Returns:
            Tuple of (language_name, confidence) or (None, 0.0) if detection fails
        """
        text = LanguageDetector._clean_text_for_detection(text or "")
        if not text:
            return None, 0.0

        if len(text) < LanguageDetector.MIN_TEXT_LENGTH:
            language = LanguageDetector.detect_by_script(text)
            return (language, 0.5) if language else (None, 0.0)

        if len(text) > LanguageDetector.MAX_SAMPLE_LENGTH:
            # Sample beginning, middle and end
            chunk_size = LanguageDetector.MAX_SAMPLE_LENGTH // 3
            middle = len(text) // 2
            text = ' '.join((
                text[:chunk_size],
                text[middle - chunk_size // 2:middle + chunk_size // 2],
                text[-chunk_size:]
            ))

        try:
            detected_langs = detect_langs(text)
        except LangDetectException as e:
            logger.debug("langdetect failed: %s", e)
            language = LanguageDetector.detect_by_script(text)
            return (language, 0.5) if language else (None, 0.0)

        if not detected_langs:
            return None, 0.0

        best_match = detected_langs[0]
        language_name = LANGUAGE_CODE_MAP.get(best_match.lang)
        if language_name and best_match.prob >= confidence_threshold:
            return language_name, best_match.prob

        return None, 0.0

    @staticmethod
    def detect_language(text: str, default: Optional[str] = None) -> Optional[str]:
        """
        Detect the full language name of a text.

        Args:
            text: Text to analyze
            default: Value returned when detection is inconclusive

        Returns:
            Language name such as 'English' or 'Japanese', or default
        """
        language, _ = LanguageDetector.detect_language_from_text(text)
        return language or default
