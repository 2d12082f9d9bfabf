"""
Semantic segmentation of Markdown text.

Splits raw text into typed units (paragraphs, fenced code blocks, tables,
lists, headers, horizontal rules) with a single-pass line scanner. Code block
detection always wins over table and list detection, so nothing inside a
fence is ever reinterpreted.
"""
import re
from enum import Enum
from typing import List, Optional

from src.core.chunking.models import SemanticUnit, UnitType


# === Line classification rules ===

FENCE_OPEN_PATTERN = re.compile(r'^```\w*')
FENCE_CLOSE_PATTERN = re.compile(r'^```\s*$')
HEADING_PATTERN = re.compile(r'^#{1,6}\s+')
HORIZONTAL_RULE_PATTERN = re.compile(r'^[-*_]{3,}$')

TABLE_SEPARATOR_PATTERN = re.compile(r'^\s*\|?\s*:?-+:?\s*\|')
TABLE_ROW_PATTERN = re.compile(r'^\s*\|.*\|')

LIST_ITEM_PATTERNS = (
    re.compile(r'^\s*[-*+]\s+'),                   # - item, * item, + item
    re.compile(r'^\s*\d+[.)]\s+'),                 # 1. item, 1) item
    re.compile(r'^\s*[a-zA-Z][.)]\s+'),            # a. item, a) item
    re.compile(r'^\s*[-*+]\s*\[[xX\s]\]'),         # - [ ] task, - [x] task
)

# A drop of more than this many columns between list items starts a new list
OUTER_LIST_INDENT_DROP = 4
# Minimum indentation for a non-marker line to continue an open list
LIST_CONTINUATION_INDENT = 2


def is_fence(stripped_line: str) -> bool:
    return bool(FENCE_OPEN_PATTERN.match(stripped_line))


def is_fence_close(stripped_line: str) -> bool:
    return bool(FENCE_CLOSE_PATTERN.match(stripped_line))


def is_heading(stripped_line: str) -> bool:
    return bool(HEADING_PATTERN.match(stripped_line))


def is_horizontal_rule(stripped_line: str) -> bool:
    return bool(HORIZONTAL_RULE_PATTERN.match(stripped_line))


def is_table_line(line: str) -> bool:
    """
    Check if a line belongs to a Markdown table.

    Matches separator rows (| --- | --- |), piped rows (| a | b |) and rows
    without outer pipes (a | b). Lines that start like comments or headings
    are excluded.
    """
    if not line:
        return False
    if TABLE_SEPARATOR_PATTERN.match(line) or TABLE_ROW_PATTERN.match(line):
        return True
    stripped = line.strip()
    return '|' in line and not stripped.startswith('//') and not stripped.startswith('#')


def is_list_item(line: str) -> bool:
    """Check for bulleted, numbered, lettered or checkbox list markers."""
    return bool(line) and any(pattern.match(line) for pattern in LIST_ITEM_PATTERNS)


def list_indent(line: str) -> int:
    """Indentation width of a line in columns (tabs count as 4)."""
    expanded = line.expandtabs(4)
    return len(expanded) - len(expanded.lstrip())


class ScanState(Enum):
    """Open state of the line scanner."""
    PLAIN = "plain"
    CODE = "in_code_block"
    TABLE = "in_table"
    LIST = "in_list"


class _UnitBuilder:
    """Collects lines of the unit being scanned and returns finished units."""

    def __init__(self):
        self._units: List[SemanticUnit] = []
        self._lines: List[str] = []
        self.unit_type: Optional[UnitType] = None

    def start(self, unit_type: UnitType) -> None:
        self.flush()
        self.unit_type = unit_type

    def add(self, line: str) -> None:
        self._lines.append(line)

    def flush(self) -> None:
        content = _join_unit_lines(self._lines)
        if content:
            self._units.append(SemanticUnit(self.unit_type or UnitType.PARAGRAPH, content))
        self._lines = []
        self.unit_type = None

    def emit(self, unit_type: UnitType, line: str) -> None:
        """Emit a single-line unit, flushing whatever was pending first."""
        self.flush()
        self._units.append(SemanticUnit(unit_type, line.rstrip()))

    def build(self) -> List[SemanticUnit]:
        self.flush()
        return list(self._units)


def _join_unit_lines(lines: List[str]) -> str:
    start, end = 0, len(lines)
    while start < end and not lines[start].strip():
        start += 1
    while end > start and not lines[end - 1].strip():
        end -= 1
    return "\n".join(lines[start:end]).rstrip()


class SemanticSegmenter:
    """
    Splits text into SemanticUnits in document order.

    Rules, in priority order:
        1. A fence line opens or closes a code block. Everything inside is
           absorbed verbatim. A fence inside an open list stays in the list.
        2. A line with a column separator opens or continues a table.
        3. A list marker opens or continues a list. Indented lines, blank
           lines and embedded fences continue it.
        4. Headings and horizontal rules are emitted as single-line units.
        5. A blank line closes a paragraph.
        6. Anything else accumulates into a paragraph.
    """

    def segment(self, text: str) -> List[SemanticUnit]:
        """
        Split text into semantic units.

        Args:
            text: Raw document text

        Returns:
            List of SemanticUnit (empty only for blank input)
        """
        if not text or not text.strip():
            return []

        lines = text.splitlines()
        builder = _UnitBuilder()
        state = ScanState.PLAIN
        current_list_indent = 0
        list_fence_open = False

        for index, line in enumerate(lines):
            stripped = line.strip()

            if state is ScanState.CODE:
                builder.add(line)
                if is_fence_close(stripped):
                    builder.flush()
                    state = ScanState.PLAIN
                continue

            if state is ScanState.LIST and list_fence_open:
                builder.add(line)
                if is_fence_close(stripped):
                    list_fence_open = False
                continue

            if state is ScanState.TABLE and not is_table_line(line):
                builder.flush()
                state = ScanState.PLAIN

            if is_fence(stripped):
                if state is ScanState.LIST and self._fence_belongs_to_list(lines, index):
                    builder.add(line)
                    list_fence_open = True
                    continue
                builder.start(UnitType.CODE_BLOCK)
                builder.add(line)
                state = ScanState.CODE
                continue

            if is_table_line(line):
                if state is not ScanState.TABLE:
                    builder.start(UnitType.TABLE)
                    state = ScanState.TABLE
                builder.add(line)
                continue

            if is_list_item(line):
                indent = list_indent(line)
                if state is not ScanState.LIST or indent < current_list_indent - OUTER_LIST_INDENT_DROP:
                    builder.start(UnitType.LIST)
                    state = ScanState.LIST
                builder.add(line)
                current_list_indent = indent
                continue

            if state is ScanState.LIST:
                if not stripped or list_indent(line) >= LIST_CONTINUATION_INDENT:
                    builder.add(line)
                    continue
                builder.flush()
                state = ScanState.PLAIN

            if is_heading(stripped):
                builder.emit(UnitType.HEADER, line)
                continue

            if is_horizontal_rule(stripped):
                builder.emit(UnitType.HR, line)
                continue

            if not stripped:
                builder.flush()
                continue

            if builder.unit_type is not UnitType.PARAGRAPH:
                builder.start(UnitType.PARAGRAPH)
            builder.add(line)

        return builder.build()

    @staticmethod
    def _fence_belongs_to_list(lines: List[str], index: int) -> bool:
        """
        Decide whether a fence met inside an open list is part of a list item.

        It does when it is indented, when it directly follows a list line, or
        when list content resumes right after its closing fence.
        """
        line = lines[index]
        if list_indent(line) >= LIST_CONTINUATION_INDENT:
            return True
        if index > 0 and lines[index - 1].strip():
            return True

        for j in range(index + 1, len(lines)):
            if is_fence_close(lines[j].strip()):
                if j + 1 < len(lines):
                    following = lines[j + 1]
                    return is_list_item(following) or list_indent(following) >= LIST_CONTINUATION_INDENT
                return False
        return False
