"""
Greedy packing of semantic units into token-bounded chunks.

Paragraphs that do not fit the budget on their own are split by sentence and
then by line. Code blocks, tables and lists are never split: when one of them
exceeds the budget it becomes an oversized chunk of its own.
"""
import re
from typing import List, Optional

from src.core.chunking.models import SemanticUnit, ChunkStatistics
from src.core.chunking.semantic_segmenter import SemanticSegmenter
from src.core.chunking.token_estimator import TokenEstimator
from src.core.exceptions import ValidationFailure


# Latin terminators need trailing whitespace, CJK terminators do not
SENTENCE_BOUNDARY_PATTERN = re.compile(r'(?<=[.!?])\s+|(?<=[。！？])\s*')


def split_sentences(text: str) -> List[str]:
    """
    Split a paragraph into sentences, keeping each terminator with its sentence.

    Args:
        text: Paragraph text

    Returns:
        List of non-empty sentence strings
    """
    sentences = []
    start = 0
    for match in SENTENCE_BOUNDARY_PATTERN.finditer(text):
        end = match.end()
        if end <= start:
            continue
        piece = text[start:end]
        if piece.strip():
            sentences.append(piece)
        start = end
    tail = text[start:]
    if tail.strip():
        sentences.append(tail)
    return sentences


class ChunkPacker:
    """
    Packs SemanticUnits into chunks whose estimate stays within a budget.

    Example:
        >>> packer = ChunkPacker()
        >>> units = SemanticSegmenter().segment("One.\\n\\nTwo.")
        >>> packer.pack(units, max_tokens=100)
        ['One.\\nTwo.']
    """

    def __init__(self, estimator: Optional[TokenEstimator] = None,
                 segmenter: Optional[SemanticSegmenter] = None):
        """
        Initialize the packer.

        Args:
            estimator: Token estimator (a default one is created if omitted)
            segmenter: Segmenter used by pack_text
        """
        self.estimator = estimator or TokenEstimator()
        self.segmenter = segmenter or SemanticSegmenter()
        self._last_statistics = ChunkStatistics()

    @property
    def last_statistics(self) -> ChunkStatistics:
        """Statistics of the most recent packing run."""
        return self._last_statistics

    def pack(self, units: List[SemanticUnit], max_tokens: int,
             target_language: Optional[str] = None) -> List[str]:
        """
        Pack units into chunks.

        Args:
            units: Semantic units in document order
            max_tokens: Budget per chunk in estimated tokens
            target_language: Optional target language for direction scaling

        Returns:
            List of chunk strings in document order

        Raises:
            ValidationFailure: If there is nothing to pack or the budget is invalid
        """
        self.validate_budget(max_tokens)
        if not units:
            raise ValidationFailure("No content to pack into chunks")

        chunks: List[str] = []
        current = ""

        for unit in units:
            candidate = f"{current}\n{unit.content}" if current else unit.content
            if self._estimate(candidate, target_language) <= max_tokens:
                current = candidate
                continue

            if current:
                chunks.append(current)
                current = ""

            if self._estimate(unit.content, target_language) <= max_tokens:
                current = unit.content
            elif unit.is_atomic:
                chunks.append(unit.content)
            else:
                chunks.extend(self._split_oversized(unit.content, max_tokens, target_language))

        if current:
            chunks.append(current)

        self._last_statistics = ChunkStatistics.from_sizes(
            [self._estimate(chunk, target_language) for chunk in chunks],
            max_tokens
        )
        return chunks

    def pack_text(self, text: str, max_tokens: int,
                  target_language: Optional[str] = None) -> List[str]:
        """
        Validate, segment and pack raw text.

        Raises:
            ValidationFailure: If the text is empty or the budget is invalid
        """
        self.validate_budget(max_tokens)
        if not text or not text.strip():
            raise ValidationFailure("Text is empty")
        return self.pack(self.segmenter.segment(text), max_tokens, target_language)

    def _split_oversized(self, content: str, max_tokens: int,
                         target_language: Optional[str]) -> List[str]:
        """Split an oversized paragraph by sentence, falling back to lines."""
        pieces: List[str] = []
        current = ""

        for sentence in split_sentences(content):
            if self._estimate(sentence, target_language) > max_tokens:
                if current.strip():
                    pieces.append(current.strip())
                current = ""
                pieces.extend(self._split_by_line(sentence, max_tokens, target_language))
                continue

            candidate = current + sentence
            if current and self._estimate(candidate.strip(), target_language) > max_tokens:
                pieces.append(current.strip())
                current = sentence
            else:
                current = candidate

        if current.strip():
            pieces.append(current.strip())
        return pieces

    def _split_by_line(self, sentence: str, max_tokens: int,
                       target_language: Optional[str]) -> List[str]:
        # A single line over budget is emitted as is
        pieces: List[str] = []
        current = ""
        for line in sentence.split("\n"):
            if not line.strip():
                continue
            candidate = f"{current}\n{line}" if current else line
            if current and self._estimate(candidate, target_language) > max_tokens:
                pieces.append(current.strip())
                current = line
            else:
                current = candidate
        if current.strip():
            pieces.append(current.strip())
        return pieces

    def _estimate(self, text: str, target_language: Optional[str]) -> int:
        return self.estimator.estimate(text, target_language)

    @staticmethod
    def validate_budget(max_tokens) -> None:
        """Raise ValidationFailure unless the budget is a positive integer."""
        if isinstance(max_tokens, bool) or not isinstance(max_tokens, int) or max_tokens <= 0:
            raise ValidationFailure(
                f"Token budget must be a positive integer, got {max_tokens!r}",
                context={'max_tokens': max_tokens}
            )
