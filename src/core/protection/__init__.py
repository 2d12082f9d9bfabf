"""
Placeholder protection of code blocks, tables and indented numbers.
"""
from src.core.protection.pattern_protector import (
    PatternProtector,
    ProtectedPattern,
    ProtectionResult,
    RestoreResult,
    CODE_BLOCK,
    SIMPLE_TABLE,
    INDENTED_NUMBER,
)

__all__ = [
    'PatternProtector',
    'ProtectedPattern',
    'ProtectionResult',
    'RestoreResult',
    'CODE_BLOCK',
    'SIMPLE_TABLE',
    'INDENTED_NUMBER',
]
