"""
Data models for semantic chunking.

Provides enums and dataclasses shared by the segmenter, the packer and
the token estimator.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List
import statistics as stats_module


# === Enums ===

class UnitType(Enum):
    """Kind of semantic unit found in a Markdown document."""
    PARAGRAPH = "paragraph"
    CODE_BLOCK = "code_block"
    TABLE = "table"
    LIST = "list"
    HEADER = "header"
    HR = "hr"

    @property
    def is_atomic(self) -> bool:
        """Atomic units are never split, even when they exceed the budget."""
        return self in (UnitType.CODE_BLOCK, UnitType.TABLE, UnitType.LIST)


# === Estimation parameters ===

@dataclass(frozen=True)
class TokenWeights:
    """Per-class weights used by the token estimator."""

    cjk_char: float = 1.0
    english_word: float = 0.25
    other_char: float = 0.5


@dataclass(frozen=True)
class CompressionRatios:
    """Translation-direction multipliers applied to a token estimate."""

    cjk_to_english: float = 0.8
    english_to_cjk: float = 1.2
    default: float = 1.0


# === Semantic Unit ===

@dataclass(frozen=True)
class SemanticUnit:
    """A classified, indivisible-by-default span of document text."""

    type: UnitType
    content: str

    @property
    def is_atomic(self) -> bool:
        return self.type.is_atomic


# === Chunk Statistics ===

@dataclass
class ChunkStatistics:
    """Aggregated metrics about a packing run."""

    total_chunks: int = 0
    total_tokens: int = 0
    max_tokens: int = 0
    min_size: int = 0
    max_size: int = 0
    average_size: float = 0.0
    median_size: float = 0.0
    oversized_count: int = 0
    chunk_sizes: List[int] = field(default_factory=list)

    @classmethod
    def from_sizes(cls, sizes: List[int], max_tokens: int) -> 'ChunkStatistics':
        """
        Build statistics from per-chunk token estimates.

        Args:
            sizes: Estimated tokens of each chunk, in order
            max_tokens: Budget the chunks were packed against

        Returns:
            ChunkStatistics instance
        """
        if not sizes:
            return cls(max_tokens=max_tokens)

        return cls(
            total_chunks=len(sizes),
            total_tokens=sum(sizes),
            max_tokens=max_tokens,
            min_size=min(sizes),
            max_size=max(sizes),
            average_size=stats_module.mean(sizes),
            median_size=stats_module.median(sizes),
            oversized_count=sum(1 for size in sizes if size > max_tokens),
            chunk_sizes=list(sizes)
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "total_chunks": self.total_chunks,
            "total_tokens": self.total_tokens,
            "max_tokens": self.max_tokens,
            "min_size": self.min_size,
            "max_size": self.max_size,
            "average_size": round(self.average_size, 2),
            "median_size": round(self.median_size, 2),
            "oversized_count": self.oversized_count,
        }

    def summary(self) -> str:
        """Human-readable summary string."""
        return (
            f"Chunks: {self.total_chunks}, "
            f"Avg Size: {self.average_size:.0f} tokens, "
            f"Max: {self.max_size}/{self.max_tokens}, "
            f"Oversized: {self.oversized_count}"
        )
