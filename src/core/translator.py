"""
Translation orchestration: validation, protection, chunking, the sequential
chunk loop, normalization and resume.
"""
import asyncio
import inspect
import logging
from typing import List, Optional, Callable

from tqdm.auto import tqdm

from src.config import TranslationConfig
from src.core.chunking import ChunkPacker, SemanticSegmenter, TokenEstimator
from src.core.exceptions import (
    ValidationFailure,
    DocumentParseError,
    CancellationFailure,
    ChunkTranslationFailure,
    RestorationMismatch,
)
from src.core.llm.exceptions import TranslationCancelledError
from src.core.post_processing.response_normalizer import ResponseNormalizer
from src.core.protection.pattern_protector import PatternProtector, PLACEHOLDER_PATTERN
from src.core.text_processor import validate_input, sanitize_text
from src.core.translation_state import (
    CancellationToken,
    SessionStatus,
    TranslationOptions,
    TranslationSession,
    Translator,
)


logger = logging.getLogger(__name__)

LogCallback = Callable[..., None]


class TranslationOrchestrator:
    """
    Drives one translation at a time through the chunk pipeline.

    The orchestrator keeps the last session so a failed or cancelled run can
    be resumed with ``TranslationOptions(resume=True)``. Chunks are translated
    strictly in order, one request in flight at a time.
    """

    def __init__(self, translator: Optional[Translator] = None,
                 config: Optional[TranslationConfig] = None,
                 estimator: Optional[TokenEstimator] = None,
                 segmenter: Optional[SemanticSegmenter] = None,
                 packer: Optional[ChunkPacker] = None,
                 protector: Optional[PatternProtector] = None,
                 normalizer: Optional[ResponseNormalizer] = None,
                 log_callback: Optional[LogCallback] = None,
                 show_progress_bar: bool = True):
        """
        Initialize the orchestrator.

        Args:
            translator: Default translate collaborator (options may override it)
            config: Translation configuration
            estimator: Token estimator (built from config if omitted)
            segmenter: Semantic segmenter
            packer: Chunk packer (built from estimator and segmenter if omitted)
            protector: Pattern protector
            normalizer: Response normalizer (built from config if omitted)
            log_callback: Callback(event_key, message, data=None) for progress logging
            show_progress_bar: Show a tqdm bar when no log_callback is given
        """
        self.translator = translator
        self.config = config or TranslationConfig()
        self.estimator = estimator or TokenEstimator.from_config(self.config)
        self.segmenter = segmenter or SemanticSegmenter()
        self.packer = packer or ChunkPacker(self.estimator, self.segmenter)
        self.protector = protector or PatternProtector()
        self.normalizer = normalizer or ResponseNormalizer.from_config(self.config, protector=self.protector)
        self.log_callback = log_callback
        self.show_progress_bar = show_progress_bar

        self._session = TranslationSession()
        self._cancellation: Optional[CancellationToken] = None

    @property
    def session(self) -> TranslationSession:
        """The current (or last) translation session."""
        return self._session

    def is_translating(self) -> bool:
        return self._session.status == SessionStatus.RUNNING

    def abort(self) -> bool:
        """
        Cancel the running translation.

        Returns:
            True if a translation was running when abort() was called
        """
        was_running = self.is_translating()
        if self._cancellation is not None:
            self._cancellation.cancel()
        if was_running:
            self._log("translation_abort_requested", "Abort requested, stopping before the next chunk")
        return was_running

    async def run(self, text: str, target_language: str,
                  options: Optional[TranslationOptions] = None) -> str:
        """
        Translate a text.

        Args:
            text: Source text (Markdown)
            target_language: Target language name
            options: Per-call options (collaborator, budget, callbacks, cancellation, resume)

        Returns:
            Merged, normalized translation

        Raises:
            ValidationFailure: If the text or the budget is rejected
            CancellationFailure: If the cancellation token was observed set
            ChunkTranslationFailure: If the translate collaborator failed for a chunk
        """
        options = options or TranslationOptions()
        translator = options.translator or self.translator
        if translator is None:
            raise ValidationFailure("No translator configured")

        max_tokens = options.max_tokens if options.max_tokens is not None else self.config.max_tokens_per_chunk
        cancellation = options.cancellation or CancellationToken()
        self._cancellation = cancellation

        if options.resume and self._can_resume(text, target_language, max_tokens):
            session = self._session
            start_index = session.failed_index
            session.status = SessionStatus.RUNNING
            self._log("checkpoint_resumed",
                      f"Resuming translation at chunk {start_index + 1}/{session.total}",
                      data={'resume_from': start_index, 'total_chunks': session.total})
        else:
            session = self._prepare_session(text, target_language, max_tokens)
            start_index = 0
        self._session = session

        await self._translate_chunks(session, start_index, translator, cancellation, options)
        return self._finish(session)

    # === Session preparation ===

    def _can_resume(self, text: str, target_language: str, max_tokens: int) -> bool:
        session = self._session
        if not session.is_resumable():
            self._log("resume_unavailable", "No interrupted translation to resume, starting from chunk 1")
            return False

        reasons = []
        if session.max_tokens != max_tokens:
            reasons.append(f"token budget changed ({session.max_tokens} -> {max_tokens})")
        if session.source_text != text:
            reasons.append("source text changed")
        if session.target_language != target_language:
            reasons.append("target language changed")

        if reasons:
            self._log("resume_invalidated",
                      f"Previous session discarded: {', '.join(reasons)}. Re-segmenting from chunk 1",
                      data={'reasons': reasons})
            return False
        return True

    def _prepare_session(self, text: str, target_language: str, max_tokens: int) -> TranslationSession:
        self.packer.validate_budget(max_tokens)

        validation = validate_input(text, max_tokens=max_tokens, estimator=self.estimator)
        if not validation.valid:
            raise ValidationFailure("; ".join(validation.errors), errors=validation.errors)
        for warning in validation.warnings:
            self._log("validation_warning", warning)

        patterns = []
        working_text = text
        if self.config.protect_patterns:
            protection = self.protector.protect(text)
            working_text = protection.protected_text
            patterns = protection.patterns
            if patterns:
                self._log("patterns_protected",
                          f"Protected {len(patterns)} patterns before translation",
                          data=self.protector.get_protection_stats(patterns))

        sanitized = sanitize_text(working_text)
        estimated = self.estimator.estimate(sanitized, target_language)

        if estimated <= max_tokens:
            chunks = [sanitized]
            single_call = True
            self._log("single_call_translation",
                      f"Text fits the budget ({estimated}/{max_tokens} tokens), translating in one request")
        else:
            units = self.segmenter.segment(sanitized)
            chunks = self.packer.pack(units, max_tokens, target_language)
            single_call = False
            self._log("chunking_complete",
                      f"Split into {len(chunks)} chunks from {len(units)} semantic units",
                      data=self.packer.last_statistics.to_dict())
            logger.debug(self.packer.last_statistics.summary())

        return TranslationSession.start(
            chunks,
            max_tokens=max_tokens,
            target_language=target_language,
            source_text=text,
            patterns=patterns,
            single_call=single_call,
        )

    # === Chunk loop ===

    async def _translate_chunks(self, session: TranslationSession, start_index: int,
                                translator: Translator, cancellation: CancellationToken,
                                options: TranslationOptions) -> None:
        total = session.total
        progress_bar = None
        if self.log_callback is None and self.show_progress_bar:
            progress_bar = tqdm(total=total, initial=start_index,
                                desc=f"Translating to {session.target_language}", unit="chunk")

        self._log("translation_loop_start", f"Translating {total - start_index} of {total} chunks")

        try:
            for i in range(start_index, total):
                session.current_index = i
                chunk = session.chunks[i]

                try:
                    cancellation.raise_if_cancelled(i, total)
                    raw = await translator.translate(chunk, session.target_language, cancellation)
                except (CancellationFailure, TranslationCancelledError) as e:
                    session.status = SessionStatus.ABORTED
                    session.failed_index = i
                    self._log("translation_interrupted",
                              f"Translation cancelled at chunk {i + 1}/{total}",
                              data={'index': i, 'completed_chunks': session.completed_count})
                    if isinstance(e, CancellationFailure):
                        raise
                    raise CancellationFailure("Translation was cancelled", index=i, total=total) from e
                except asyncio.CancelledError:
                    # Task cancellation (Ctrl-C under asyncio.run) bypasses except Exception
                    session.status = SessionStatus.ABORTED
                    session.failed_index = i
                    self._log("translation_interrupted",
                              f"Translation task cancelled at chunk {i + 1}/{total}",
                              data={'index': i, 'completed_chunks': session.completed_count})
                    raise
                except Exception as e:
                    session.status = SessionStatus.FAILED
                    session.failed_index = i
                    self._log("chunk_translation_error",
                              f"ERROR translating chunk {i + 1}/{total}: {e}",
                              data={'index': i, 'error': str(e)})
                    raise ChunkTranslationFailure(
                        f"Chunk {i + 1}/{total} failed: {e}", index=i, total=total
                    ) from e

                session.seen_placeholders.update(PLACEHOLDER_PATTERN.findall(raw or ""))
                translated = self.normalizer.normalize(raw, session.patterns)
                session.translated_chunks[i] = translated

                if options.chunk_callback:
                    options.chunk_callback(i, total, translated)
                if options.progress_callback:
                    options.progress_callback((i + 1) / total * 100,
                                              f"Translated chunk {i + 1}/{total}")
                if progress_bar is not None:
                    progress_bar.update(1)
        finally:
            if progress_bar is not None:
                progress_bar.close()

    def _finish(self, session: TranslationSession) -> str:
        merged = "\n\n".join(chunk for chunk in session.translated_chunks if chunk)

        if session.patterns and PLACEHOLDER_PATTERN.search(merged):
            merged = self.protector.restore(merged, session.patterns).restored_text

        missing = [p.placeholder for p in session.patterns if p.placeholder not in session.seen_placeholders]
        if missing:
            mismatch = RestorationMismatch(missing, expected=len(session.patterns))
            self._log("restoration_mismatch", str(mismatch),
                      data={'missing_count': mismatch.missing_count, 'expected': mismatch.expected})

        session.status = SessionStatus.COMPLETED
        session.failed_index = -1
        self._log("translation_complete",
                  f"Translation complete: {session.total} chunks",
                  data=session.to_dict())
        return merged

    def _log(self, event: str, message: str, data: Optional[dict] = None) -> None:
        if self.log_callback:
            self.log_callback(event, message, data=data)
        elif event in ("chunk_translation_error", "restoration_mismatch"):
            tqdm.write(f"\n{message}")
        else:
            logger.debug(message)


async def translate_document(orchestrator: TranslationOrchestrator, parser, content: bytes,
                             target_language: str,
                             options: Optional[TranslationOptions] = None) -> str:
    """
    Convert a document to Markdown with a parser, then translate it.

    Args:
        orchestrator: Orchestrator that runs the translation
        parser: Object with parse(bytes) -> str (sync or async)
        content: Raw document bytes
        target_language: Target language name
        options: Options forwarded to orchestrator.run()

    Returns:
        Translated Markdown

    Raises:
        DocumentParseError: If the parser fails
    """
    try:
        markdown = parser.parse(content)
        if inspect.isawaitable(markdown):
            markdown = await markdown
    except DocumentParseError:
        raise
    except Exception as e:
        raise DocumentParseError(f"Failed to parse document: {e}",
                                 context={'parser': type(parser).__name__}) from e

    return await orchestrator.run(markdown, target_language, options)
