"""
Cleanup of raw model responses.

Each translated chunk goes through an ordered list of rules that remove
echoed prompt text and preambles, repair code fences, collapse blank lines
and normalize list indentation. Protected placeholders are restored last so
they are never mistaken for code during fence repair.
"""
import logging
import re
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from src.core.chunking.semantic_segmenter import is_list_item
from src.core.post_processing.code_detection import CodeLikelihoodClassifier, DEFAULT_CODE_THRESHOLD
from src.core.protection.pattern_protector import PatternProtector, ProtectedPattern, PLACEHOLDER_PATTERN


logger = logging.getLogger(__name__)


FENCE_OPEN_PATTERN = re.compile(r'^```\w*')
FENCE_CLOSE_PATTERN = re.compile(r'^```$')
CODE_LIKE_LINE_PATTERN = re.compile(
    r'^\s*(if|for|while|function|def|class|import|export|const|let|var|return)\s|^[\s]{4,}[\w]'
)
INDENTED_LINE_PATTERN = re.compile(r'^[ ]{4,}\S|^\t\S')
LIST_LINE_PATTERN = re.compile(r'^([ \t]*)([-*+]|\d+[.)]|[a-zA-Z][.)])\s+(.*)$')


class PostProcessingRule(ABC):
    """Abstract base class for response cleanup rules"""

    @abstractmethod
    def apply(self, text: str) -> str:
        """Apply the cleaning rule to the text"""
        pass

    @abstractmethod
    def description(self) -> str:
        """Return a description of what this rule does"""
        pass


class PromptLeakRule(PostProcessingRule):
    """Remove instruction text that the model echoed before its translation"""

    ANCHORS = (
        re.compile(r'^あなたは[^。]*翻訳者です[。\s]*[\s\S]*?(?:原文[:：]|\n\n)'),
        re.compile(r'^[^に\n]*に翻訳してください[。\s]*[\s\S]*?(?:原文[:：]|\n\n)'),
        re.compile(r'^Markdown形式を保持したまま翻訳[\s\S]*?(?:原文[:：]|\n\n)'),
        re.compile(
            r'^[\s\S]*?以下の規則を厳守してください[:：]\s*\n+(?:[0-9]+\.|・|\*|-)[^\n]+'
            r'(?:\n+(?:[0-9]+\.|・|\*|-)[^\n]+)*\s*\n+'
        ),
        re.compile(r'^あなたは[\s\S]*?翻訳してください[\s\S]*?\n\n'),
        re.compile(r'^Translate to [^\n]+?\. MAINTAIN EXACT MARKDOWN FORMAT\.[\s\S]*?'
                   r'(?:Preserve ALL formatting EXACTLY\.[^\n]*(?:\n+|$)|Original text:)'),
        re.compile(r'^You are (?:a|an) [^\n]*?translator[^\n]*\n[\s\S]*?(?:Original text:|\n\n)',
                   re.IGNORECASE),
        re.compile(r'^Translate (?:the following (?:text )?)?(?:in)?to [^\n]+\n[\s\S]*?(?:Original text:|\n\n)',
                   re.IGNORECASE),
    )
    BOUNDARY = re.compile(r'(?:原文|Original text|Source text)[:：][ \t]*\n?', re.IGNORECASE)

    RULE_LIST_MARKERS = ('以下の規則を厳守してください', 'のような前置きは絶対に付けない')
    LAST_RULE_MARKERS = ('前置きは絶対に付けない', '翻訳結果のみを出力')

    def apply(self, text: str) -> str:
        for anchor in self.ANCHORS:
            match = anchor.match(text)
            if match:
                cut = self._echo_end(text, match.end())
                logger.debug("Stripped %d characters of echoed prompt", cut)
                text = text[cut:].strip()
                break

        if any(marker in text for marker in self.RULE_LIST_MARKERS):
            text = self._strip_rule_list(text)

        return text

    def _echo_end(self, text: str, end: int) -> int:
        # The echo is the anchor match plus a source marker directly after it
        following = self.BOUNDARY.match(text, len(text) - len(text[end:].lstrip()))
        if following:
            return following.end()
        inside = list(self.BOUNDARY.finditer(text, 0, end))
        return inside[-1].end() if inside else end

    def _strip_rule_list(self, text: str) -> str:
        lines = text.split('\n')
        for index, line in enumerate(lines):
            if any(marker in line for marker in self.LAST_RULE_MARKERS):
                start = index + 1
                while start < len(lines) and not lines[start].strip():
                    start += 1
                if start < len(lines):
                    return '\n'.join(lines[start:])
                break
        return text

    def description(self) -> str:
        return "Remove echoed instruction text"


class PrefixStripRule(PostProcessingRule):
    """Remove preambles like 'Translation:' and leading language labels"""

    def __init__(self, prefixes: Sequence[str] = (), labels: Sequence[str] = ()):
        self.prefixes = tuple(prefixes)
        self.labels = tuple(labels)

    def apply(self, text: str) -> str:
        for prefix in self.prefixes:
            if text[:len(prefix)].lower() == prefix.lower():
                text = text[len(prefix):].lstrip()

        for label in self.labels:
            if text.startswith(label):
                text = text[len(label):].strip()
                break

        return text

    def description(self) -> str:
        return "Remove unwanted prefixes and language labels"


class FenceRepairRule(PostProcessingRule):
    """
    Repair code fences in a response.

    Existing fences get blank lines around them. Runs of code-like lines left
    outside any fence are wrapped in a new fence, and a fence still open at
    the end of the text is closed.
    """

    def __init__(self, classifier: Optional[CodeLikelihoodClassifier] = None,
                 threshold: float = DEFAULT_CODE_THRESHOLD):
        self.classifier = classifier or CodeLikelihoodClassifier(threshold)
        self.threshold = threshold

    def is_code_like(self, line: str) -> bool:
        """Check whether a line outside a fence should be treated as code."""
        if not line.strip():
            return False
        if line.startswith('#') or line.startswith('//'):
            return False
        if is_list_item(line) or PLACEHOLDER_PATTERN.search(line):
            return False
        if not CODE_LIKE_LINE_PATTERN.search(line):
            return False
        score = self.classifier.score(line)
        if INDENTED_LINE_PATTERN.match(line):
            # Indented statements are short and carry little symbol evidence
            return score >= self.threshold / 2
        return score >= self.threshold

    def apply(self, text: str) -> str:
        lines = text.split('\n')
        result: List[str] = []
        in_fence = False
        synthesized = False

        for index, line in enumerate(lines):
            trimmed = line.strip()

            if in_fence and synthesized:
                # A stray closing fence belongs to the synthesized opening
                if not FENCE_CLOSE_PATTERN.match(trimmed):
                    if self.is_code_like(line) or (trimmed and line[:1].isspace()):
                        result.append(line)
                        continue
                    result.append('```')
                    if trimmed:
                        result.append('')
                    in_fence = False
                synthesized = False

            if in_fence:
                if FENCE_CLOSE_PATTERN.match(trimmed):
                    result.append('```')
                    in_fence = False
                    if index + 1 < len(lines) and lines[index + 1].strip():
                        result.append('')
                else:
                    result.append(line)
                continue

            if FENCE_OPEN_PATTERN.match(trimmed):
                self._separate(result)
                result.append(trimmed)
                in_fence = True
                continue

            if self.is_code_like(line):
                self._separate(result)
                result.append('```')
                result.append(line)
                in_fence = True
                synthesized = True
                continue

            result.append(line)

        if in_fence:
            logger.debug("Closing unterminated code fence")
            result.append('```')

        return '\n'.join(result)

    @staticmethod
    def _separate(result: List[str]) -> None:
        if result and result[-1].strip():
            result.append('')

    def description(self) -> str:
        return "Repair and synthesize code fences"


class BlankLineCollapseRule(PostProcessingRule):
    """Collapse consecutive blank lines outside code fences"""

    def apply(self, text: str) -> str:
        result: List[str] = []
        in_fence = False
        previous_blank = False

        for line in text.split('\n'):
            if line.strip().startswith('```'):
                in_fence = not in_fence
                result.append(line)
                previous_blank = False
            elif in_fence:
                result.append(line)
            else:
                blank = not line.strip()
                if not (blank and previous_blank):
                    result.append(line)
                previous_blank = blank

        return '\n'.join(result)

    def description(self) -> str:
        return "Collapse blank lines outside code fences"


class ListIndentRule(PostProcessingRule):
    """Re-indent list items to two spaces per nesting level"""

    INDENT = '  '

    def apply(self, text: str) -> str:
        lines = text.split('\n')
        in_fence = False
        list_lines = {}

        for index, line in enumerate(lines):
            if line.strip().startswith('```'):
                in_fence = not in_fence
                continue
            if in_fence:
                continue
            match = LIST_LINE_PATTERN.match(line)
            if match:
                list_lines[index] = match

        indents = [len(m.group(1).expandtabs(4)) for m in list_lines.values()]
        unit = min((indent for indent in indents if indent > 0), default=0)

        for index, match in list_lines.items():
            width = len(match.group(1).expandtabs(4))
            level = width // unit if unit else 0
            lines[index] = f"{self.INDENT * level}{match.group(2)} {match.group(3)}"

        return '\n'.join(lines)

    def description(self) -> str:
        return "Normalize list indentation"


class ResponseNormalizer:
    """
    Cleans a raw model response and restores protected patterns.

    Example:
        >>> normalizer = ResponseNormalizer()
        >>> normalizer.normalize("Translation: Bonjour")
        'Bonjour'
    """

    def __init__(self, rules: Optional[List[PostProcessingRule]] = None,
                 protector: Optional[PatternProtector] = None):
        """
        Initialize the normalizer.

        Args:
            rules: Ordered cleanup rules (defaults to the standard pipeline)
            protector: Protector used to restore placeholders
        """
        self.protector = protector or PatternProtector()
        self.rules: List[PostProcessingRule] = list(rules) if rules is not None else self.default_rules()

    @classmethod
    def from_config(cls, config, classifier: Optional[CodeLikelihoodClassifier] = None,
                    protector: Optional[PatternProtector] = None) -> 'ResponseNormalizer':
        """Create a normalizer using the prefixes, labels and threshold of a TranslationConfig."""
        rules = cls.default_rules(
            prefixes=config.unwanted_prefixes,
            labels=config.language_labels,
            threshold=config.code_threshold,
            classifier=classifier
        )
        return cls(rules=rules, protector=protector)

    @staticmethod
    def default_rules(prefixes: Optional[Sequence[str]] = None,
                      labels: Optional[Sequence[str]] = None,
                      threshold: float = DEFAULT_CODE_THRESHOLD,
                      classifier: Optional[CodeLikelihoodClassifier] = None) -> List[PostProcessingRule]:
        if prefixes is None or labels is None:
            from src.config import UNWANTED_PREFIXES, LANGUAGE_LABELS
            prefixes = UNWANTED_PREFIXES if prefixes is None else prefixes
            labels = LANGUAGE_LABELS if labels is None else labels
        return [
            PromptLeakRule(),
            PrefixStripRule(prefixes, labels),
            FenceRepairRule(classifier, threshold),
            BlankLineCollapseRule(),
            ListIndentRule(),
        ]

    def add_rule(self, rule: PostProcessingRule):
        """Append a rule to the pipeline"""
        self.rules.append(rule)

    def remove_rule(self, rule_type: type):
        """Remove a rule by its type"""
        self.rules = [r for r in self.rules if not isinstance(r, rule_type)]

    def normalize(self, raw: str, patterns: Optional[List[ProtectedPattern]] = None) -> str:
        """
        Clean a raw response.

        Args:
            raw: Text returned by the model
            patterns: Protected patterns to restore after cleanup

        Returns:
            Cleaned text (empty if the response had no content)
        """
        if not raw or not raw.strip():
            return ""

        result = raw.strip()
        for rule in self.rules:
            result = rule.apply(result)
        result = result.strip()

        if patterns:
            result = self.protector.restore(result, patterns).restored_text

        return result
