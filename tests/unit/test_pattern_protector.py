"""
Unit tests for placeholder protection and restoration.
"""

import pytest

from src.core.exceptions import RestorationMismatch
from src.core.protection import (
    PatternProtector,
    CODE_BLOCK,
    SIMPLE_TABLE,
    INDENTED_NUMBER,
)


@pytest.fixture
def protector():
    return PatternProtector()


class TestProtect:
    """Test each protection pass."""

    def test_code_block(self, protector):
        """A fenced block should be replaced by [CODEBLOCK1]."""
        text = "Intro\n\n```python\nprint('hi')\n```\n\nMore"
        result = protector.protect(text)

        assert result.protected_text == "Intro\n\n[CODEBLOCK1]\n\nMore"
        assert result.patterns[0].type == CODE_BLOCK
        assert result.patterns[0].original_text == "```python\nprint('hi')\n```"

    def test_indented_numbers(self, protector):
        """Indented number lines should get one placeholder each."""
        result = protector.protect("Result:\n    1\n    2\n    3")

        assert result.protected_text == "Result:\n[INDENTNUM1]\n[INDENTNUM2]\n[INDENTNUM3]"
        assert [p.type for p in result.patterns] == [INDENTED_NUMBER] * 3

    def test_simple_table(self, protector):
        """A header, a dash line and number rows form a simple table."""
        result = protector.protect("Output\n count\n-------\n     5\n")

        assert result.protected_text == "Output\n[SIMPLETABLE1000]\n"
        pattern = result.patterns[0]
        assert pattern.type == SIMPLE_TABLE
        assert pattern.original_text == " count\n-------\n     5"
        assert pattern.metadata['header'] == "count"

    def test_conflicting_indentation_is_disambiguated(self, protector):
        """The same number with different indentation needs a second placeholder."""
        result = protector.protect("    1\ntext\n        1")

        placeholders = [p.placeholder for p in result.patterns]
        assert placeholders == ["[INDENTNUM1]", "[INDENTNUM1_2]"]

    def test_identical_lines_share_a_placeholder(self, protector):
        """Identical number lines should map to one pattern."""
        result = protector.protect("    7\ntext\n    7")

        assert len(result.patterns) == 1
        assert result.protected_text == "[INDENTNUM7]\ntext\n[INDENTNUM7]"

    def test_nothing_to_protect(self, protector):
        """Plain prose should come back unchanged."""
        result = protector.protect("Just words.")

        assert result.protected_text == "Just words."
        assert not result.has_protected_content

    def test_empty_text(self, protector):
        """Empty input should give an empty result."""
        assert protector.protect("").protected_text == ""

    def test_protect_selected_types(self, protector):
        """Only the requested pattern types should be protected."""
        text = "```\ncode\n```\nValue:\n    42"
        result = protector.protect_types(text, [INDENTED_NUMBER])

        assert "```\ncode\n```" in result.protected_text
        assert "[INDENTNUM42]" in result.protected_text

    def test_unknown_type_rejected(self, protector):
        """Unknown pattern type names should raise ValueError."""
        with pytest.raises(ValueError):
            protector.protect_types("text", ["bogus"])


class TestRestore:
    """Test placeholder restoration."""

    def test_round_trip(self, protector, sample_markdown):
        """restore(protect(text)) should give back the original."""
        text = sample_markdown + "\n\nCounts:\n    10\n    20"
        result = protector.protect(text)
        restored = protector.restore(result.protected_text, result.patterns)

        assert restored.restored_text == text
        assert restored.restored_count == len(result.patterns)
        assert restored.mismatch is None

    def test_missing_placeholder_is_reported(self, protector):
        """A placeholder dropped by the model is reported, not raised."""
        result = protector.protect("```\nx\n```\n\n```\ny\n```")
        restored = protector.restore("Only [CODEBLOCK2] survived", result.patterns)

        assert restored.restored_text == "Only ```\ny\n``` survived"
        assert restored.missing_placeholders == ["[CODEBLOCK1]"]
        assert isinstance(restored.mismatch, RestorationMismatch)
        assert restored.mismatch.missing_count == 1
        assert restored.mismatch.expected == 2

    def test_longest_placeholder_first(self, protector):
        """[INDENTNUM1_2] must not be clobbered by [INDENTNUM1]."""
        result = protector.protect("    1\n        1")
        restored = protector.restore(result.protected_text, result.patterns)
        assert restored.restored_text == "    1\n        1"

    def test_restore_without_patterns(self, protector):
        """No patterns means nothing to do."""
        assert protector.restore("text", []).restored_text == "text"


class TestDiagnostics:
    """Test stats and debug output."""

    def test_protection_stats(self, protector):
        """Patterns should be counted per type."""
        result = protector.protect("```\nx\n```\nRows:\n    1\n    2")
        stats = protector.get_protection_stats(result.patterns)
        assert stats == {CODE_BLOCK: 1, INDENTED_NUMBER: 2}

    def test_debug_patterns_truncates(self, protector):
        """Long originals should be cut at 100 characters."""
        code = "```\n" + "x" * 300 + "\n```"
        result = protector.protect(code)
        listing = protector.debug_patterns(result.patterns)

        assert "[CODEBLOCK1]" in listing
        assert "..." in listing
        assert "x" * 150 not in listing
