"""
Chunking module for text processing.

Splits Markdown into semantic units and packs them into token-bounded chunks.
"""
from src.core.chunking.models import (
    UnitType,
    SemanticUnit,
    TokenWeights,
    CompressionRatios,
    ChunkStatistics,
)
from src.core.chunking.token_estimator import TokenEstimator
from src.core.chunking.semantic_segmenter import SemanticSegmenter
from src.core.chunking.chunk_packer import ChunkPacker

__all__ = [
    'UnitType',
    'SemanticUnit',
    'TokenWeights',
    'CompressionRatios',
    'ChunkStatistics',
    'TokenEstimator',
    'SemanticSegmenter',
    'ChunkPacker',
]
