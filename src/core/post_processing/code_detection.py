"""
Code likelihood scoring.

Scores a piece of text between 0 (prose) and 1 (source code) from weighted
evidence: programming keywords and code symbols count for code, sentence
punctuation and common connectives count against it. Every piece of evidence
is a row in a rule table so rules can be tested and tuned one at a time.
"""
import re
from dataclasses import dataclass, field
from typing import Pattern, Tuple, List, Dict, Any


DEFAULT_CODE_THRESHOLD = 0.4


@dataclass(frozen=True)
class EvidenceRule:
    """A single regex rule contributing weight to one evidence category."""
    name: str
    pattern: Pattern
    weight: float

    def matches(self, text: str) -> bool:
        return bool(self.pattern.search(text))


@dataclass(frozen=True)
class EvidenceCategory:
    """A group of rules whose combined contribution is capped."""
    name: str
    rules: Tuple[EvidenceRule, ...]
    cap: float

    def matched(self, text: str) -> List[EvidenceRule]:
        return [rule for rule in self.rules if rule.matches(text)]

    def contribution(self, text: str) -> float:
        return min(sum(rule.weight for rule in self.matched(text)), self.cap)


# ============================================================================
# Rule tables
# ============================================================================

PROGRAMMING_KEYWORDS = frozenset({
    # JavaScript / TypeScript
    'function', 'const', 'let', 'var', 'class', 'extends', 'import', 'export', 'async', 'await',
    'return', 'if', 'else', 'for', 'while', 'switch', 'case', 'break', 'continue', 'try', 'catch',
    # Python
    'def', 'from', 'elif', 'yield', 'lambda', 'with', 'as', 'except', 'finally', 'raise',
    'assert', 'global', 'nonlocal',
    # Java
    'public', 'private', 'protected', 'static', 'final', 'abstract', 'interface', 'implements',
    'package', 'void', 'int', 'boolean', 'String', 'ArrayList',
    # C / C++
    'char', 'float', 'double', 'struct', 'union', 'enum', 'typedef', 'sizeof',
    'malloc', 'free', 'printf', 'scanf', 'include', 'define', 'ifdef', 'ifndef', 'endif',
    # C#
    'namespace', 'using', 'internal', 'readonly', 'override', 'virtual', 'sealed', 'partial',
    'string', 'bool',
    # Ruby
    'module', 'require', 'extend', 'attr_accessor', 'attr_reader', 'attr_writer', 'initialize',
    'super', 'self', 'nil', 'true', 'false', 'unless', 'until',
    # Go
    'func', 'type', 'map', 'chan', 'go', 'defer', 'select', 'range', 'make', 'new',
    # Rust
    'fn', 'mut', 'impl', 'trait', 'use', 'mod', 'pub', 'crate', 'Self', 'match', 'loop',
    # PHP
    'array',
    # SQL
    'SELECT', 'FROM', 'WHERE', 'JOIN', 'INSERT', 'UPDATE', 'DELETE', 'CREATE', 'ALTER', 'DROP',
    'TABLE', 'INDEX', 'VIEW', 'PROCEDURE', 'FUNCTION', 'TRIGGER', 'DATABASE', 'SCHEMA',
    # HTML tag names
    'html', 'head', 'body', 'div', 'span', 'p', 'h1', 'h2', 'h3', 'img', 'a', 'ul', 'li',
    # CSS properties
    'display', 'position', 'width', 'height', 'margin', 'padding', 'border', 'color', 'background',
    'font-size', 'font-weight', 'text-align', 'flex', 'grid',
})

KEYWORD_WEIGHT = 0.3
KEYWORD_CAP = 0.6

CODE_SYMBOLS = EvidenceCategory('code_symbols', (
    EvidenceRule('punctuation', re.compile(r'[{}();,]'), 0.15),
    EvidenceRule('assignment', re.compile(r'\w+\s*=\s*\w+'), 0.15),
    EvidenceRule('call', re.compile(r'\w+\s*\(\s*.*?\s*\)'), 0.15),
    EvidenceRule('line_comment', re.compile(r'^\s*//.*$'), 0.15),
    EvidenceRule('block_comment', re.compile(r'^\s*/\*.*?\*/$'), 0.15),
    EvidenceRule('hash_comment', re.compile(r'^\s*#.*$'), 0.15),
    EvidenceRule('html_comment', re.compile(r'^\s*<!--.*?-->$'), 0.15),
    EvidenceRule('comparison', re.compile(r'[<>]=?|[!=]==?|\|\||&&'), 0.15),
    EvidenceRule('increment', re.compile(r'\+\+|--|\+=|-=|\*=|/='), 0.15),
    EvidenceRule('sigil_variable', re.compile(r'\$\w+'), 0.15),
    EvidenceRule('scope_resolution', re.compile(r'\w+::\w+'), 0.15),
    EvidenceRule('attribute_access', re.compile(r'\w+\.\w+'), 0.15),
    EvidenceRule('index', re.compile(r'\[\s*\d+\s*\]'), 0.15),
    EvidenceRule('string_literal', re.compile(r'["`\']\w*["`\']'), 0.15),
    EvidenceRule('tag', re.compile(r'^\s*</?\w+[^>]*>'), 0.15),
    EvidenceRule('json_object', re.compile(r'^\s*\{[^}]*\}'), 0.15),
    EvidenceRule('json_array', re.compile(r'^\s*\[[^\]]*\]'), 0.15),
), cap=0.4)

NATURAL_LANGUAGE = EvidenceCategory('natural_language', (
    EvidenceRule('cjk_sentence_end', re.compile(r'[。！？]'), 0.2),
    EvidenceRule('latin_sentence_end', re.compile(r'[.!?]\s*$'), 0.2),
    EvidenceRule('cjk_comma', re.compile(r'、'), 0.2),
    EvidenceRule('comma_capital', re.compile(r',\s+[A-Z]'), 0.2),
    EvidenceRule('sentence_start', re.compile(r'^\s*[A-Z][a-z]'), 0.2),
    EvidenceRule('polite_ending', re.compile(r'です$|である$|します$|ます$'), 0.2),
    EvidenceRule('japanese_connective', re.compile(r'という|について|において|に関して'), 0.2),
    EvidenceRule('english_function_word',
                 re.compile(r'\b(the|a|an|and|or|but|in|on|at|to|for|of|with|by)\b', re.IGNORECASE), 0.2),
    EvidenceRule('english_determiner',
                 re.compile(r'\b(this|that|these|those|such|which|what|where|when|why|how)\b', re.IGNORECASE), 0.2),
), cap=0.6)

# Scores are rounded so sums of weights compare exactly against thresholds
SCORE_PRECISION = 6

# Shape adjustments
INDENT_BONUS = 0.1
SHORT_TEXT_LENGTH = 10
SHORT_TEXT_PENALTY = 0.2
SINGLE_CASE_MIN_LENGTH = 3
SINGLE_CASE_BONUS = 0.15
FILE_OR_SETTING_PATTERN = re.compile(r'\.\w{2,4}$|^\w+[:=]\w+')
FILE_OR_SETTING_BONUS = 0.2

# Indented prose detection
INDENTED_MIN_SCORE = 0.3
PROSE_MIN_WORDS = 10
PROSE_PUNCTUATION_RATIO = 0.15
PROSE_PUNCTUATION_PATTERN = re.compile(r'[。！？.!?、,]')

HTML_TAG_ONLY_PATTERN = re.compile(r'^<[^>]+>$')
HTML_SHORT_TEXT_LENGTH = 50
HTML_CODE_THRESHOLD = 0.5


def is_keyword(word: str) -> bool:
    return word.lower() in PROGRAMMING_KEYWORDS or word in PROGRAMMING_KEYWORDS


@dataclass
class CodeDetectionDetails:
    """Breakdown of a code likelihood score."""
    score: float
    is_code: bool
    keywords: List[str] = field(default_factory=list)
    symbol_matches: List[str] = field(default_factory=list)
    natural_matches: List[str] = field(default_factory=list)
    has_indent: bool = False
    text_length: int = 0
    word_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'score': round(self.score, 3),
            'is_code': self.is_code,
            'keywords': list(self.keywords),
            'symbol_matches': list(self.symbol_matches),
            'natural_matches': list(self.natural_matches),
            'has_indent': self.has_indent,
            'text_length': self.text_length,
            'word_count': self.word_count,
        }


class CodeLikelihoodClassifier:
    """
    Decides whether a string looks like source code or prose.

    Example:
        >>> classifier = CodeLikelihoodClassifier()
        >>> classifier.is_likely_code("const x = foo(1);")
        True
        >>> classifier.is_likely_code("This is a normal sentence.")
        False
    """

    def __init__(self, threshold: float = DEFAULT_CODE_THRESHOLD):
        self.threshold = threshold

    def score(self, text: str) -> float:
        """
        Score text between 0 (prose) and 1 (code).

        Args:
            text: Line or block to score

        Returns:
            max(0, min(1, code_evidence - natural_evidence))
        """
        if not text or not text.strip():
            return 0.0

        trimmed = text.strip()
        code_score = 0.0
        natural_score = 0.0

        keyword_count = sum(1 for word in trimmed.split() if is_keyword(word))
        code_score += min(keyword_count * KEYWORD_WEIGHT, KEYWORD_CAP)
        code_score += CODE_SYMBOLS.contribution(trimmed)
        natural_score += NATURAL_LANGUAGE.contribution(trimmed)

        if trimmed != text:
            code_score += INDENT_BONUS

        if len(trimmed) < SHORT_TEXT_LENGTH:
            natural_score += SHORT_TEXT_PENALTY

        single_case = trimmed == trimmed.upper() or trimmed == trimmed.lower()
        if single_case and len(trimmed) > SINGLE_CASE_MIN_LENGTH and not re.search(r'\s', trimmed):
            code_score += SINGLE_CASE_BONUS

        if FILE_OR_SETTING_PATTERN.search(trimmed):
            code_score += FILE_OR_SETTING_BONUS

        return round(max(0.0, min(1.0, code_score - natural_score)), SCORE_PRECISION)

    def is_likely_code(self, text: str, threshold: float = None) -> bool:
        """Check the score against a threshold (the classifier's own by default)."""
        return self.score(text) >= (self.threshold if threshold is None else threshold)

    def is_indented_code(self, text: str) -> bool:
        """
        Stricter check for indented text, which is often just indented prose.

        Long punctuated text is treated as prose even if it scores as code.
        """
        if text.strip() == text:
            return False

        score = self.score(text)
        if score < INDENTED_MIN_SCORE:
            return False

        punctuation_count = len(PROSE_PUNCTUATION_PATTERN.findall(text))
        word_count = len(text.split())
        if word_count > PROSE_MIN_WORDS and punctuation_count >= word_count * PROSE_PUNCTUATION_RATIO:
            return False

        return score >= DEFAULT_CODE_THRESHOLD

    def is_html_content_code(self, content: str) -> bool:
        """Check whether text extracted from an HTML element is code."""
        trimmed = content.strip()
        if not trimmed or HTML_TAG_ONLY_PATTERN.match(trimmed):
            return False

        if len(trimmed) < HTML_SHORT_TEXT_LENGTH and NATURAL_LANGUAGE.matched(trimmed):
            return False

        return self.score(trimmed) >= HTML_CODE_THRESHOLD

    def explain(self, text: str) -> CodeDetectionDetails:
        """Per-category details behind a score, for debugging rule tables."""
        score = self.score(text)
        trimmed = (text or "").strip()
        words = trimmed.split()
        return CodeDetectionDetails(
            score=score,
            is_code=score >= self.threshold,
            keywords=[word for word in words if is_keyword(word)],
            symbol_matches=[rule.name for rule in CODE_SYMBOLS.matched(text or "")],
            natural_matches=[rule.name for rule in NATURAL_LANGUAGE.matched(text or "")],
            has_indent=bool(text) and trimmed != text,
            text_length=len(text or ""),
            word_count=len(words)
        )
