"""
Placeholder protection for translation-unsafe content.

Fenced code blocks, simple ASCII result tables and indented number lines are
swapped for inert placeholders before text is sent to the model, then swapped
back once the translation returns.
"""
import logging
import re
from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional, Iterable

from src.core.exceptions import RestorationMismatch


logger = logging.getLogger(__name__)


# === Pattern types ===

CODE_BLOCK = 'code_block'
SIMPLE_TABLE = 'simple_table'
INDENTED_NUMBER = 'indented_number'

PROTECTION_ORDER = (CODE_BLOCK, SIMPLE_TABLE, INDENTED_NUMBER)

# === Detection rules ===

CODE_BLOCK_PATTERN = re.compile(r'```[\w]*\n[\s\S]*?\n```')
SIMPLE_TABLE_PATTERN = re.compile(
    r'(\n|^)([ \t]*)(Count|generate_series|[\w_]+)\n([ \t]*-{3,})\n([ \t]*\d+(?:\n[ \t]*\d+)*)',
    re.IGNORECASE
)
INDENTED_NUMBER_PATTERN = re.compile(r'^([ \t]{4,})(\d+)[ \t]*$', re.MULTILINE)
PLACEHOLDER_PATTERN = re.compile(r'\[(?:CODEBLOCK|SIMPLETABLE|INDENTNUM)[\d_]+\]')

TABLE_ID_OFFSET = 1000
DEBUG_PREVIEW_LENGTH = 100


@dataclass
class ProtectedPattern:
    """A span of text replaced by a placeholder."""
    type: str
    original_text: str
    placeholder: str
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ProtectionResult:
    protected_text: str
    patterns: List[ProtectedPattern] = field(default_factory=list)

    @property
    def has_protected_content(self) -> bool:
        return bool(self.patterns)


@dataclass
class RestoreResult:
    restored_text: str
    restored_count: int = 0
    missing_placeholders: List[str] = field(default_factory=list)

    @property
    def mismatch(self) -> Optional[RestorationMismatch]:
        """Report of placeholders that were not found, or None if all were restored."""
        if not self.missing_placeholders:
            return None
        return RestorationMismatch(
            self.missing_placeholders,
            expected=self.restored_count + len(self.missing_placeholders)
        )


class PatternProtector:
    """
    Replaces translation-unsafe substrings with placeholders and restores them.

    Protection runs in a fixed order: code blocks, then simple tables, then
    indented numbers. Placeholders are unique within one protect() call, and
    restore(protect(text)) gives back the original text for any input that
    does not already contain placeholder-shaped strings.
    """

    def protect(self, text: str) -> ProtectionResult:
        """
        Protect all supported pattern types.

        Args:
            text: Text to protect

        Returns:
            ProtectionResult with the protected text and the pattern records
        """
        return self.protect_types(text, PROTECTION_ORDER)

    def protect_types(self, text: str, types: Iterable[str]) -> ProtectionResult:
        """
        Protect only the listed pattern types (still applied in the fixed order).

        Args:
            text: Text to protect
            types: Pattern type names to protect

        Returns:
            ProtectionResult
        """
        if not text:
            return ProtectionResult(protected_text='')

        wanted = set(types)
        unknown = wanted.difference(PROTECTION_ORDER)
        if unknown:
            raise ValueError(f"Unknown pattern types: {', '.join(sorted(unknown))}")

        patterns: List[ProtectedPattern] = []
        protected_text = text

        if CODE_BLOCK in wanted:
            protected_text = self._protect_code_blocks(protected_text, patterns)
        if SIMPLE_TABLE in wanted:
            protected_text = self._protect_simple_tables(protected_text, patterns)
        if INDENTED_NUMBER in wanted:
            protected_text = self._protect_indented_numbers(protected_text, patterns)

        if patterns:
            logger.debug("Protected %d patterns: %s", len(patterns), self.get_protection_stats(patterns))

        return ProtectionResult(protected_text=protected_text, patterns=patterns)

    def restore(self, text: str, patterns: List[ProtectedPattern]) -> RestoreResult:
        """
        Put the original text back in place of every placeholder found.

        Placeholders are processed longest first. Placeholders missing from the
        text are skipped and reported, never raised.

        Args:
            text: Translated text containing placeholders
            patterns: Patterns returned by protect()

        Returns:
            RestoreResult with the restored text and counts
        """
        if not text or not patterns:
            return RestoreResult(restored_text=text or '')

        restored_text = text
        restored_count = 0
        missing: List[str] = []

        for pattern in sorted(patterns, key=lambda p: len(p.placeholder), reverse=True):
            if pattern.placeholder in restored_text:
                restored_text = restored_text.replace(pattern.placeholder, pattern.original_text)
                restored_count += 1
            else:
                missing.append(pattern.placeholder)

        result = RestoreResult(
            restored_text=restored_text,
            restored_count=restored_count,
            missing_placeholders=missing
        )
        if missing:
            logger.debug("%s", result.mismatch)
        return result

    @staticmethod
    def get_protection_stats(patterns: List[ProtectedPattern]) -> Dict[str, int]:
        """Count protected patterns by type."""
        stats: Dict[str, int] = {}
        for pattern in patterns:
            stats[pattern.type] = stats.get(pattern.type, 0) + 1
        return stats

    @staticmethod
    def debug_patterns(patterns: List[ProtectedPattern]) -> str:
        """Readable listing of protected patterns (originals truncated)."""
        lines = []
        for index, pattern in enumerate(patterns, 1):
            preview = pattern.original_text
            if len(preview) > DEBUG_PREVIEW_LENGTH:
                preview = preview[:DEBUG_PREVIEW_LENGTH] + "..."
            lines.append(f"{index}. [{pattern.type}] {pattern.placeholder}: {preview!r}")
        return "\n".join(lines)

    # === Protection passes ===

    @staticmethod
    def _protect_code_blocks(text: str, patterns: List[ProtectedPattern]) -> str:
        next_id = 1

        def replace(match):
            nonlocal next_id
            placeholder = f"[CODEBLOCK{next_id}]"
            next_id += 1
            patterns.append(ProtectedPattern(CODE_BLOCK, match.group(0), placeholder))
            return placeholder

        return CODE_BLOCK_PATTERN.sub(replace, text)

    @staticmethod
    def _protect_simple_tables(text: str, patterns: List[ProtectedPattern]) -> str:
        next_id = TABLE_ID_OFFSET

        def replace(match):
            nonlocal next_id
            leading = match.group(1)
            placeholder = f"[SIMPLETABLE{next_id}]"
            next_id += 1
            patterns.append(ProtectedPattern(
                SIMPLE_TABLE,
                match.group(0)[len(leading):],
                placeholder,
                metadata={
                    'header': match.group(3),
                    'separator': match.group(4),
                    'data': match.group(5),
                }
            ))
            return leading + placeholder

        return SIMPLE_TABLE_PATTERN.sub(replace, text)

    @staticmethod
    def _protect_indented_numbers(text: str, patterns: List[ProtectedPattern]) -> str:
        by_line: Dict[str, str] = {}
        used_placeholders = set()

        def replace(match):
            line = match.group(0)
            if line in by_line:
                return by_line[line]

            number = match.group(2)
            placeholder = f"[INDENTNUM{number}]"
            suffix = 2
            while placeholder in used_placeholders:
                placeholder = f"[INDENTNUM{number}_{suffix}]"
                suffix += 1

            used_placeholders.add(placeholder)
            by_line[line] = placeholder
            patterns.append(ProtectedPattern(
                INDENTED_NUMBER,
                line,
                placeholder,
                metadata={'indent': match.group(1), 'number': number}
            ))
            return placeholder

        return INDENTED_NUMBER_PATTERN.sub(replace, text)
