"""
Translation session state and cancellation.

A TranslationSession holds everything needed to resume a chunked translation
after a failure or a cancellation: the chunk list, the results gathered so
far and the index to restart from.
"""
import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Protocol, Set

from src.core.exceptions import CancellationFailure
from src.core.protection.pattern_protector import ProtectedPattern


ProgressCallback = Callable[[float, str], None]
ChunkCallback = Callable[[int, int, str], None]


class Translator(Protocol):
    """Translate collaborator used by the orchestrator."""

    async def translate(self, text: str, target_language: str,
                        cancellation: Optional['CancellationToken'] = None) -> str:
        ...


class CancellationToken:
    """
    Externally settable cancellation flag.

    The orchestrator checks it before each chunk, and the translate
    collaborator can await wait() to abandon an in-flight request.
    """

    def __init__(self):
        self._cancelled = False
        self._event: Optional[asyncio.Event] = None

    def cancel(self) -> None:
        self._cancelled = True
        if self._event is not None:
            self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    def raise_if_cancelled(self, index: int, total: Optional[int] = None) -> None:
        """
        Raise CancellationFailure tagged with the chunk index if cancelled.

        Raises:
            CancellationFailure: If cancel() was called
        """
        if self._cancelled:
            raise CancellationFailure("Translation was cancelled", index=index, total=total)

    async def wait(self) -> None:
        """Block until cancel() is called."""
        if self._event is None:
            # Created lazily so the event binds to the running loop
            self._event = asyncio.Event()
            if self._cancelled:
                self._event.set()
        await self._event.wait()


class SessionStatus(Enum):
    """Lifecycle of a translation session."""
    IDLE = "idle"
    RUNNING = "running"
    ABORTED = "aborted"
    FAILED = "failed"
    COMPLETED = "completed"


@dataclass
class TranslationSession:
    """
    State of one translation request.

    translated_chunks has the same length as chunks; entries stay None until
    the matching chunk has been translated.
    """
    chunks: List[str] = field(default_factory=list)
    translated_chunks: List[Optional[str]] = field(default_factory=list)
    current_index: int = 0
    failed_index: int = -1
    status: SessionStatus = SessionStatus.IDLE
    max_tokens: int = 0
    target_language: str = ""
    source_text: str = ""
    patterns: List[ProtectedPattern] = field(default_factory=list)
    single_call: bool = False
    seen_placeholders: Set[str] = field(default_factory=set)

    @classmethod
    def start(cls, chunks: List[str], **kwargs) -> 'TranslationSession':
        """Create a running session for a chunk list."""
        return cls(
            chunks=list(chunks),
            translated_chunks=[None] * len(chunks),
            status=SessionStatus.RUNNING,
            **kwargs
        )

    @property
    def total(self) -> int:
        return len(self.chunks)

    @property
    def completed_count(self) -> int:
        return sum(1 for chunk in self.translated_chunks if chunk is not None)

    def partial_translation(self) -> str:
        """Translated chunks gathered so far, in order, joined by blank lines."""
        return "\n\n".join(chunk for chunk in self.translated_chunks if chunk is not None)

    def is_resumable(self) -> bool:
        return self.status in (SessionStatus.ABORTED, SessionStatus.FAILED) and self.failed_index >= 0

    def to_dict(self) -> dict:
        return {
            'status': self.status.value,
            'total_chunks': self.total,
            'completed_chunks': self.completed_count,
            'current_index': self.current_index,
            'failed_index': self.failed_index,
            'max_tokens': self.max_tokens,
            'target_language': self.target_language,
            'single_call': self.single_call,
        }


@dataclass
class TranslationOptions:
    """Per-call options for TranslationOrchestrator.run()"""
    translator: Optional[Translator] = None
    max_tokens: Optional[int] = None
    progress_callback: Optional[ProgressCallback] = None
    chunk_callback: Optional[ChunkCallback] = None
    cancellation: Optional[CancellationToken] = None
    resume: bool = False
