"""
Unit tests for Markdown semantic segmentation.
"""

from src.core.chunking.models import UnitType
from src.core.chunking.semantic_segmenter import (
    SemanticSegmenter,
    is_list_item,
    is_table_line,
    list_indent,
)


def segment(text):
    return SemanticSegmenter().segment(text)


class TestBasicUnits:
    """Test classification of simple documents."""

    def test_blank_input(self):
        """Blank input should produce no units."""
        assert segment("") == []
        assert segment("  \n\n ") == []

    def test_paragraph_code_paragraph(self):
        """Prose around a fenced block should give three units."""
        units = segment("Intro\n\n```python\nprint('hi')\n```\n\nMore")

        assert [u.type for u in units] == [UnitType.PARAGRAPH, UnitType.CODE_BLOCK, UnitType.PARAGRAPH]
        assert units[1].content == "```python\nprint('hi')\n```"

    def test_heading_is_single_line_unit(self):
        """Headings should be emitted on their own."""
        units = segment("# Title\nBody text")

        assert units[0].type == UnitType.HEADER
        assert units[0].content == "# Title"
        assert units[1].type == UnitType.PARAGRAPH

    def test_horizontal_rule(self):
        """A line of dashes between paragraphs should be an HR unit."""
        units = segment("Before\n\n---\n\nAfter")
        assert [u.type for u in units] == [UnitType.PARAGRAPH, UnitType.HR, UnitType.PARAGRAPH]

    def test_blank_line_separates_paragraphs(self):
        """Consecutive lines form one paragraph, blank lines split them."""
        units = segment("Line one\nline two\n\nLine three")

        assert len(units) == 2
        assert units[0].content == "Line one\nline two"


class TestAtomicUnits:
    """Test tables, lists and code blocks."""

    def test_table_is_one_unit(self):
        """All table rows should stay in one unit."""
        units = segment("| a | b |\n| --- | --- |\n| 1 | 2 |")

        assert len(units) == 1
        assert units[0].type == UnitType.TABLE

    def test_nested_list_is_one_unit(self):
        """Nested items should stay in the enclosing list."""
        units = segment("- a\n  - b\n- c")

        assert len(units) == 1
        assert units[0].type == UnitType.LIST
        assert units[0].content == "- a\n  - b\n- c"

    def test_pipes_inside_code_are_not_tables(self):
        """Code block detection wins over table detection."""
        units = segment("```\na | b\n```")

        assert len(units) == 1
        assert units[0].type == UnitType.CODE_BLOCK

    def test_fence_inside_list_stays_in_list(self):
        """A fence right after a list item belongs to the list."""
        units = segment("- step one\n```bash\nls\n```\n- step two")

        assert len(units) == 1
        assert units[0].type == UnitType.LIST

    def test_unclosed_fence_absorbs_rest(self):
        """An unclosed fence should keep everything until the end."""
        units = segment("```\ncode line\n# not a heading")

        assert len(units) == 1
        assert units[0].type == UnitType.CODE_BLOCK
        assert "# not a heading" in units[0].content

    def test_list_ends_at_unindented_text(self):
        """An unindented non-list line after a list starts a paragraph."""
        units = segment("- item\nPlain text")
        assert [u.type for u in units] == [UnitType.LIST, UnitType.PARAGRAPH]

    def test_atomic_flags(self):
        """Code, tables and lists are atomic, paragraphs are not."""
        units = segment("Para\n\n- item")
        assert not units[0].is_atomic
        assert units[1].is_atomic


class TestCompleteness:
    """Test that segmentation does not lose content."""

    def test_every_line_is_kept(self, sample_markdown):
        """Every non-blank input line should appear in some unit."""
        units = segment(sample_markdown)
        joined = "\n".join(u.content for u in units)

        for line in sample_markdown.splitlines():
            if line.strip():
                assert line in joined

    def test_unit_order_matches_document(self, sample_markdown):
        """Units should come out in document order."""
        types = [u.type for u in segment(sample_markdown)]
        assert types == [
            UnitType.HEADER,
            UnitType.PARAGRAPH,
            UnitType.CODE_BLOCK,
            UnitType.TABLE,
            UnitType.LIST,
            UnitType.PARAGRAPH,
        ]


class TestLinePredicates:
    """Test line classification helpers."""

    def test_list_markers(self):
        """Bullets, numbers, letters and checkboxes are list items."""
        for line in ("- a", "* a", "+ a", "1. a", "2) a", "b. a", "- [x] done"):
            assert is_list_item(line), line
        assert not is_list_item("---")
        assert not is_list_item("plain")

    def test_table_lines(self):
        """Piped rows and separators are table lines, comments are not."""
        assert is_table_line("| a | b |")
        assert is_table_line("a | b")
        assert not is_table_line("// a | b")
        assert not is_table_line("no pipes here")

    def test_list_indent_expands_tabs(self):
        """A tab counts as four columns."""
        assert list_indent("\t- a") == 4
        assert list_indent("  - a") == 2
