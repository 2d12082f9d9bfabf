"""
Unit tests for the command-line entry point.
"""

import pytest

import translate
from src.core.exceptions import ChunkTranslationFailure


@pytest.fixture
def source_file(tmp_path):
    path = tmp_path / "guide.md"
    path.write_text("# Guide\n\nThis guide explains how the tool works.\n", encoding="utf-8")
    return path


@pytest.fixture
def recorded(monkeypatch):
    """Replace translate_file with a recorder."""
    calls = []

    async def fake_translate_file(input_path, output_path, **kwargs):
        calls.append((input_path, output_path, kwargs))
        return "translated"

    monkeypatch.setattr(translate, "translate_file", fake_translate_file)
    return calls


class TestArguments:
    """Test argument parsing."""

    def test_defaults(self):
        """Only the input is required."""
        args = translate.build_parser().parse_args(["-i", "doc.md"])

        assert args.source_lang is None
        assert args.output is None
        assert not args.no_protect
        assert not args.repair_fences

    def test_input_required(self):
        """Missing -i exits with a usage error."""
        with pytest.raises(SystemExit):
            translate.build_parser().parse_args([])


class TestMain:
    """Test main() exit codes and wiring."""

    def test_success(self, source_file, recorded):
        """A successful run returns 0 and writes next to the input."""
        code = translate.main(["-i", str(source_file), "-sl", "English", "-tl", "French",
                               "--no-color", "--max_tokens", "800", "--repair-fences"])

        assert code == 0
        input_path, output_path, kwargs = recorded[0]
        assert input_path == str(source_file)
        assert output_path == str(source_file.parent / "guide_translated_french.md")
        assert kwargs['config'].max_tokens_per_chunk == 800
        assert kwargs['config'].source_language == "English"
        assert kwargs['repair_code_fences'] is True

    def test_source_language_is_detected(self, source_file, recorded, monkeypatch):
        """Without -sl the source language comes from the file."""
        monkeypatch.setattr(translate, "detect_source_language", lambda path: "English")
        translate.main(["-i", str(source_file), "-tl", "French", "--no-color"])

        assert recorded[0][2]['config'].source_language == "English"

    def test_chunk_failure_exit_code(self, source_file, monkeypatch):
        """A chunk failure returns 1."""
        async def failing(*args, **kwargs):
            raise ChunkTranslationFailure("Chunk 2/3 failed", index=1, total=3)

        monkeypatch.setattr(translate, "translate_file", failing)
        assert translate.main(["-i", str(source_file), "-sl", "English", "--no-color"]) == 1

    def test_unreadable_input(self, tmp_path):
        """A missing input with language detection returns 1."""
        assert translate.main(["-i", str(tmp_path / "missing.md"), "--no-color"]) == 1
