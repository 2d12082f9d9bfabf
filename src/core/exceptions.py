"""
Exception hierarchy for the translation engine.

Every failure surfaced by the engine derives from TranslationError so callers
can catch one type, and the failures tied to a chunk carry its index so a UI
can offer a resume action from that point.
"""

from typing import Optional, Dict, Any, List


class TranslationError(Exception):
    """Base exception for all translation-related errors.

    Attributes:
        message: Human-readable error message
        context: Additional context about the error
        recoverable: Whether the error can potentially be recovered from
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        recoverable: bool = False
    ):
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.recoverable = recoverable

    def __str__(self) -> str:
        base = f"{self.__class__.__name__}: {self.message}"
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base += f" (context: {context_str})"
        return base


# ============================================================================
# Input errors
# ============================================================================

class ValidationFailure(TranslationError):
    """Raised when input text is rejected before any translation work.

    Never retried.

    Attributes:
        errors: Individual validation messages
    """

    def __init__(
        self,
        message: str,
        errors: Optional[List[str]] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, context, recoverable=False)
        self.errors = list(errors) if errors else [message]


class DocumentParseError(TranslationError):
    """Raised when a document-to-Markdown parser fails."""
    pass


# ============================================================================
# Chunk loop errors
# ============================================================================

class ChunkLoopError(TranslationError):
    """Base exception for failures inside the chunk translation loop.

    Attributes:
        index: Index of the chunk being processed when the loop stopped
        total: Total number of chunks in the session
    """

    def __init__(
        self,
        message: str,
        index: int,
        total: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        ctx = dict(context or {})
        ctx.setdefault('index', index)
        if total is not None:
            ctx.setdefault('total', total)
        super().__init__(message, ctx, recoverable=True)
        self.index = index
        self.total = total


class CancellationFailure(ChunkLoopError):
    """Raised when the cancellation handle was observed set.

    Partial results are preserved and the index is recorded as the resume point.
    """
    pass


class ChunkTranslationFailure(ChunkLoopError):
    """Raised when the translate collaborator fails for a chunk.

    The original error is chained as __cause__.
    """
    pass


# ============================================================================
# Non-fatal reports
# ============================================================================

class RestorationMismatch(TranslationError):
    """Describes placeholders that could not be found in translated output.

    This is reported through logging only and is never raised by the engine,
    since placeholder restoration is best-effort.

    Attributes:
        missing: Placeholders absent from the translated text
        expected: Number of placeholders that were expected
    """

    def __init__(self, missing: List[str], expected: int):
        super().__init__(
            f"{len(missing)} of {expected} protected placeholders missing from translated text",
            context={'missing': ", ".join(missing)},
            recoverable=True
        )
        self.missing = list(missing)
        self.expected = expected

    @property
    def missing_count(self) -> int:
        return len(self.missing)
