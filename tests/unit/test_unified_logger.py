"""
Unit tests for the unified logger and its orchestrator callbacks.
"""

from src.utils.unified_logger import LogLevel, LogType, UnifiedLogger, setup_cli_logger


def make_logger(**kwargs):
    entries = []
    kwargs.setdefault("console_output", False)
    logger = UnifiedLogger(enable_colors=False, storage_callback=entries.append, **kwargs)
    return logger, entries


class TestLevels:
    """Test level filtering and structured entries."""

    def test_below_min_level_is_dropped(self):
        """DEBUG entries are skipped at the default INFO level."""
        logger, entries = make_logger()
        logger.debug("hidden")
        assert entries == []

    def test_entry_shape(self):
        """Entries carry level, type, message and data."""
        logger, entries = make_logger()
        logger.warning("careful", data={'k': 1})

        entry = entries[0]
        assert entry['level'] == 'WARNING'
        assert entry['type'] == 'general'
        assert entry['message'] == 'careful'
        assert entry['data'] == {'k': 1}

    def test_web_callback(self):
        """The web callback receives the same entries."""
        received = []
        logger = UnifiedLogger(console_output=False, web_callback=received.append)
        logger.info("hello")
        assert received[0]['message'] == "hello"


class TestLogCallback:
    """Test the orchestrator event callback."""

    def test_known_event_mapping(self):
        """Known events get their own level and type."""
        logger, entries = make_logger()
        callback = logger.create_log_callback()

        callback("chunk_translation_error", "boom", data={'index': 2, 'error': 'timeout'})
        callback("resume_invalidated", "discarded")

        assert (entries[0]['level'], entries[0]['type']) == ('ERROR', LogType.ERROR_DETAIL.value)
        assert entries[1]['level'] == 'WARNING'

    def test_unknown_event_is_info(self):
        """Unknown events are logged at INFO."""
        logger, entries = make_logger()
        logger.create_log_callback()("something_new", "msg")
        assert entries[0]['level'] == 'INFO'

    def test_debug_events_hidden_by_default(self):
        """Debug-level events need a DEBUG logger."""
        logger, entries = make_logger()
        logger.create_log_callback()("single_call_translation", "one request")
        assert entries == []

        logger, entries = make_logger(min_level=LogLevel.DEBUG)
        logger.create_log_callback()("single_call_translation", "one request")
        assert len(entries) == 1


class TestConsoleFormat:
    """Test console rendering."""

    def test_chunk_info(self, capsys):
        """Chunking stats are printed under the message."""
        logger = UnifiedLogger(enable_colors=False)
        logger.create_log_callback()("chunking_complete", "Split into 3 chunks", data={
            'total_chunks': 3, 'average_size': 4.0, 'min_size': 1, 'max_size': 9,
            'max_tokens': 10, 'oversized_count': 0,
        })

        out = capsys.readouterr().out
        assert "Split into 3 chunks" in out
        assert "Tokens per chunk: avg=4, min=1, max=9 (budget 10, oversized 0)" in out

    def test_error_detail(self, capsys):
        """Chunk errors show the resume point."""
        logger = UnifiedLogger(enable_colors=False)
        logger.create_log_callback()("chunk_translation_error", "failed", data={'index': 2, 'error': 'timeout'})

        out = capsys.readouterr().out
        assert "ERROR: failed" in out
        assert "Chunk index: 2 (resume point)" in out
        assert "Details: timeout" in out

    def test_progress(self, capsys):
        """The progress callback prints a bar with the percentage."""
        logger = UnifiedLogger(enable_colors=False)
        logger.create_progress_callback()(50.0, "half way")
        assert "50.0%" in capsys.readouterr().out

    def test_colors_disabled(self, capsys):
        """No escape codes are printed with colors off."""
        logger = UnifiedLogger(enable_colors=False)
        logger.error("plain")
        assert "\033[" not in capsys.readouterr().out


def test_setup_cli_logger():
    """The CLI logger prints to the console."""
    logger = setup_cli_logger(enable_colors=False)
    assert isinstance(logger, UnifiedLogger)
    assert logger.console_output
