"""
Unit tests for the translation orchestrator: chunk loop, cancellation,
resume and document translation.
"""

import asyncio

import pytest

from src.config import TranslationConfig
from src.core.exceptions import (
    CancellationFailure,
    ChunkTranslationFailure,
    DocumentParseError,
    ValidationFailure,
)
from src.core.llm.exceptions import TranslationCancelledError
from src.core.translation_state import CancellationToken, SessionStatus, TranslationOptions
from src.core.translator import TranslationOrchestrator, translate_document


PARAGRAPHS = [f"Paragraph number {i} is here." for i in range(5)]
TEXT = "\n\n".join(PARAGRAPHS)
# With a budget of 10 the five paragraphs pack two by two
CHUNKS = [
    f"{PARAGRAPHS[0]}\n{PARAGRAPHS[1]}",
    f"{PARAGRAPHS[2]}\n{PARAGRAPHS[3]}",
    PARAGRAPHS[4],
]


class LogCollector:
    """Collects log_callback events."""

    def __init__(self):
        self.events = []

    def __call__(self, event, message, data=None):
        self.events.append((event, message, data))

    @property
    def keys(self):
        return [event for event, _, _ in self.events]


@pytest.fixture
def logs():
    return LogCollector()


@pytest.fixture
def orchestrator(logs):
    return TranslationOrchestrator(config=TranslationConfig(protect_patterns=True), log_callback=logs)


class TestSingleCall:
    """Test texts that fit the budget."""

    @pytest.mark.asyncio
    async def test_fits_budget_single_request(self, orchestrator, fake_translator, logs):
        """Text under the budget is sent in one request."""
        result = await orchestrator.run("Hello world.", "French", TranslationOptions(translator=fake_translator))

        assert result == "[French] Hello world."
        assert fake_translator.calls == ["Hello world."]
        assert orchestrator.session.single_call
        assert "single_call_translation" in logs.keys

    @pytest.mark.asyncio
    async def test_default_translator(self, fake_translator, logs):
        """The constructor translator is used when options name none."""
        orchestrator = TranslationOrchestrator(translator=fake_translator, log_callback=logs)
        assert await orchestrator.run("Hi.", "German") == "[German] Hi."

    @pytest.mark.asyncio
    async def test_response_is_normalized(self, orchestrator, make_translator):
        """Preambles in responses are removed."""
        translator = make_translator(["Translation: Bonjour."])
        result = await orchestrator.run("Hello.", "French", TranslationOptions(translator=translator))
        assert result == "Bonjour."


class TestChunkedTranslation:
    """Test the sequential chunk loop."""

    @pytest.mark.asyncio
    async def test_chunks_in_order(self, orchestrator, fake_translator, logs):
        """Chunks are translated in order and merged with blank lines."""
        result = await orchestrator.run(
            TEXT, "French", TranslationOptions(translator=fake_translator, max_tokens=10)
        )

        assert fake_translator.calls == CHUNKS
        assert result == "\n\n".join(f"[French] {chunk}" for chunk in CHUNKS)
        assert "chunking_complete" in logs.keys
        assert orchestrator.session.status == SessionStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_callbacks(self, orchestrator, fake_translator):
        """chunk_callback gets 0-based indexes and progress reaches 100."""
        chunk_events = []
        progress = []
        options = TranslationOptions(
            translator=fake_translator,
            max_tokens=10,
            chunk_callback=lambda i, total, text: chunk_events.append((i, total, text)),
            progress_callback=lambda percent, message: progress.append(percent),
        )

        await orchestrator.run(TEXT, "French", options)

        assert [(i, total) for i, total, _ in chunk_events] == [(0, 3), (1, 3), (2, 3)]
        assert chunk_events[0][2] == f"[French] {CHUNKS[0]}"
        assert progress[-1] == pytest.approx(100.0)
        assert progress == sorted(progress)

    @pytest.mark.asyncio
    async def test_is_translating_during_run(self, orchestrator):
        """is_translating() is true only while chunks are being sent."""
        seen = []

        class Probe:
            async def translate(self, text, target_language, cancellation=None):
                seen.append(orchestrator.is_translating())
                return text

        assert not orchestrator.is_translating()
        await orchestrator.run("Hello.", "French", TranslationOptions(translator=Probe()))
        assert seen == [True]
        assert not orchestrator.is_translating()


class TestProtection:
    """Test placeholder protection around the model call."""

    CODE_TEXT = "Intro paragraph.\n\n```python\nprint('hi')\n```\n\nOutro."

    @pytest.mark.asyncio
    async def test_code_block_is_hidden_and_restored(self, orchestrator, fake_translator, logs):
        """The model sees a placeholder, the output has the original block."""
        result = await orchestrator.run(self.CODE_TEXT, "French", TranslationOptions(translator=fake_translator))

        assert "[CODEBLOCK1]" in fake_translator.calls[0]
        assert "print('hi')" not in fake_translator.calls[0]
        assert result == "[French] Intro paragraph.\n\n```python\nprint('hi')\n```\n\nOutro."
        assert "patterns_protected" in logs.keys
        assert "restoration_mismatch" not in logs.keys

    @pytest.mark.asyncio
    async def test_protection_disabled(self, fake_translator, logs):
        """With protection off the model sees the code as is."""
        orchestrator = TranslationOrchestrator(config=TranslationConfig(protect_patterns=False),
                                               log_callback=logs)
        await orchestrator.run(self.CODE_TEXT, "French", TranslationOptions(translator=fake_translator))
        assert "print('hi')" in fake_translator.calls[0]

    @pytest.mark.asyncio
    async def test_dropped_placeholder_is_logged(self, orchestrator, make_translator, logs):
        """A placeholder the model dropped is logged, not raised."""
        translator = make_translator(["Texte sans le bloc."])
        result = await orchestrator.run(self.CODE_TEXT, "French", TranslationOptions(translator=translator))

        assert result == "Texte sans le bloc."
        mismatch = [data for event, _, data in logs.events if event == "restoration_mismatch"]
        assert mismatch == [{'missing_count': 1, 'expected': 1}]


class TestValidation:
    """Test rejection before any request."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "   \n  "])
    async def test_empty_text(self, orchestrator, fake_translator, text):
        """Blank text is rejected without calling the model."""
        with pytest.raises(ValidationFailure):
            await orchestrator.run(text, "French", TranslationOptions(translator=fake_translator))
        assert fake_translator.calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("budget", [0, -1])
    async def test_invalid_budget(self, orchestrator, fake_translator, budget):
        """Non-positive budgets are rejected."""
        with pytest.raises(ValidationFailure):
            await orchestrator.run(TEXT, "French", TranslationOptions(translator=fake_translator, max_tokens=budget))

    @pytest.mark.asyncio
    async def test_no_translator(self, orchestrator):
        """Running without any translator is a validation failure."""
        with pytest.raises(ValidationFailure):
            await orchestrator.run(TEXT, "French")


class TestFailureAndResume:
    """Test chunk failures and resuming from the failed chunk."""

    @pytest.mark.asyncio
    async def test_failure_carries_index_and_cause(self, orchestrator, make_translator):
        """A failing chunk raises ChunkTranslationFailure chained to the cause."""
        translator = make_translator(["Premier", RuntimeError("boom")])

        with pytest.raises(ChunkTranslationFailure) as exc_info:
            await orchestrator.run(TEXT, "French", TranslationOptions(translator=translator, max_tokens=10))

        error = exc_info.value
        assert error.index == 1
        assert error.total == 3
        assert isinstance(error.__cause__, RuntimeError)
        assert orchestrator.session.status == SessionStatus.FAILED
        assert orchestrator.session.partial_translation() == "Premier"

    @pytest.mark.asyncio
    async def test_resume_skips_finished_chunks(self, orchestrator, make_translator, logs):
        """Resuming starts at the failed chunk and keeps earlier results."""
        failing = make_translator(["Premier", RuntimeError("boom")])
        with pytest.raises(ChunkTranslationFailure):
            await orchestrator.run(TEXT, "French", TranslationOptions(translator=failing, max_tokens=10))

        retry = make_translator()
        result = await orchestrator.run(
            TEXT, "French", TranslationOptions(translator=retry, max_tokens=10, resume=True)
        )

        assert retry.calls == CHUNKS[1:]
        assert result == "\n\n".join(["Premier", f"[French] {CHUNKS[1]}", f"[French] {CHUNKS[2]}"])
        assert "checkpoint_resumed" in logs.keys

    @pytest.mark.asyncio
    async def test_budget_change_invalidates_resume(self, orchestrator, make_translator, logs):
        """A different budget discards the old session and re-segments."""
        failing = make_translator(["Premier", RuntimeError("boom")])
        with pytest.raises(ChunkTranslationFailure):
            await orchestrator.run(TEXT, "French", TranslationOptions(translator=failing, max_tokens=10))

        retry = make_translator()
        await orchestrator.run(TEXT, "French", TranslationOptions(translator=retry, max_tokens=1000, resume=True))

        assert "resume_invalidated" in logs.keys
        assert retry.calls == [TEXT]

    @pytest.mark.asyncio
    async def test_resume_without_session(self, orchestrator, fake_translator, logs):
        """resume=True with nothing to resume runs from the start."""
        await orchestrator.run("Hello.", "French", TranslationOptions(translator=fake_translator, resume=True))

        assert "resume_unavailable" in logs.keys
        assert fake_translator.calls == ["Hello."]


class TestCancellation:
    """Test cooperative cancellation."""

    @pytest.mark.asyncio
    async def test_cancelled_before_start(self, orchestrator, fake_translator):
        """A token cancelled up front stops at chunk 0 with no request."""
        token = CancellationToken()
        token.cancel()

        with pytest.raises(CancellationFailure) as exc_info:
            await orchestrator.run(TEXT, "French",
                                   TranslationOptions(translator=fake_translator, max_tokens=10, cancellation=token))

        assert exc_info.value.index == 0
        assert fake_translator.calls == []
        assert orchestrator.session.status == SessionStatus.ABORTED

    @pytest.mark.asyncio
    async def test_cancel_between_chunks_then_resume(self, orchestrator, fake_translator, logs):
        """Cancelling after chunk 0 stops at chunk 1, and resume finishes the job."""
        token = CancellationToken()

        def cancel_after_first(index, total, text):
            if index == 0:
                token.cancel()

        options = TranslationOptions(translator=fake_translator, max_tokens=10,
                                     cancellation=token, chunk_callback=cancel_after_first)
        with pytest.raises(CancellationFailure) as exc_info:
            await orchestrator.run(TEXT, "French", options)

        assert exc_info.value.index == 1
        assert orchestrator.session.partial_translation() == f"[French] {CHUNKS[0]}"
        assert "translation_interrupted" in logs.keys

        result = await orchestrator.run(
            TEXT, "French", TranslationOptions(translator=fake_translator, max_tokens=10, resume=True)
        )
        assert fake_translator.calls == CHUNKS
        assert result == "\n\n".join(f"[French] {chunk}" for chunk in CHUNKS)

    @pytest.mark.asyncio
    async def test_translator_cancellation_is_wrapped(self, orchestrator, make_translator):
        """A cancelled request surfaces as CancellationFailure."""
        translator = make_translator([TranslationCancelledError("cancelled during request")])

        with pytest.raises(CancellationFailure) as exc_info:
            await orchestrator.run(TEXT, "French", TranslationOptions(translator=translator, max_tokens=10))

        assert exc_info.value.index == 0
        assert isinstance(exc_info.value.__cause__, TranslationCancelledError)

    @pytest.mark.asyncio
    async def test_task_cancellation_is_resumable(self, orchestrator, make_translator, logs):
        """Cancelling the asyncio task marks the session aborted at the current chunk."""
        translator = make_translator(["Premier", asyncio.CancelledError()])

        with pytest.raises(asyncio.CancelledError):
            await orchestrator.run(TEXT, "French", TranslationOptions(translator=translator, max_tokens=10))

        assert orchestrator.session.status == SessionStatus.ABORTED
        assert orchestrator.session.failed_index == 1
        assert not orchestrator.is_translating()
        assert "translation_interrupted" in logs.keys

        retry = make_translator()
        result = await orchestrator.run(
            TEXT, "French", TranslationOptions(translator=retry, max_tokens=10, resume=True)
        )
        assert retry.calls == CHUNKS[1:]
        assert result.startswith("Premier\n\n")

    @pytest.mark.asyncio
    async def test_abort(self, orchestrator):
        """abort() during a run stops before the next chunk."""
        results = []

        class AbortingTranslator:
            async def translate(self, text, target_language, cancellation=None):
                results.append(orchestrator.abort())
                return text

        assert orchestrator.abort() is False

        with pytest.raises(CancellationFailure) as exc_info:
            await orchestrator.run(TEXT, "French",
                                   TranslationOptions(translator=AbortingTranslator(), max_tokens=10))

        assert results == [True]
        assert exc_info.value.index == 1


class TestTranslateDocument:
    """Test parsing a document before translation."""

    @pytest.mark.asyncio
    async def test_sync_parser(self, orchestrator, fake_translator):
        """A synchronous parser's Markdown is translated."""
        class Parser:
            def parse(self, content):
                return content.decode("utf-8")

        result = await translate_document(orchestrator, Parser(), b"Hello.", "French",
                                          TranslationOptions(translator=fake_translator))
        assert result == "[French] Hello."

    @pytest.mark.asyncio
    async def test_async_parser(self, orchestrator, fake_translator):
        """An async parser is awaited."""
        class Parser:
            async def parse(self, content):
                return content.decode("utf-8").upper()

        result = await translate_document(orchestrator, Parser(), b"hello.", "French",
                                          TranslationOptions(translator=fake_translator))
        assert result == "[French] HELLO."

    @pytest.mark.asyncio
    async def test_parser_failure(self, orchestrator, fake_translator):
        """Parser errors become DocumentParseError and nothing is translated."""
        class Parser:
            def parse(self, content):
                raise ValueError("corrupt file")

        with pytest.raises(DocumentParseError) as exc_info:
            await translate_document(orchestrator, Parser(), b"\x00", "French",
                                     TranslationOptions(translator=fake_translator))

        assert isinstance(exc_info.value.__cause__, ValueError)
        assert fake_translator.calls == []
