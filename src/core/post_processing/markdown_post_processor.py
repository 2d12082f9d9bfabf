"""
Markdown post-processing for converted documents.

Document converters often lose or invent code fences: code ends up as plain
paragraphs, prose ends up fenced, and empty fences are left behind. This
module repairs those cases using the code likelihood classifier and a table
of programming language signatures.
"""
import logging
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Pattern, Tuple, Any

from src.core.post_processing.code_detection import CodeLikelihoodClassifier, DEFAULT_CODE_THRESHOLD


logger = logging.getLogger(__name__)


# ============================================================================
# Language signatures
# ============================================================================

Predicate = Callable[[str], bool]


def _has(pattern: str, flags: int = 0) -> Predicate:
    compiled = re.compile(pattern, flags)
    return lambda content: bool(compiled.search(content))


def _contains(*needles: str) -> Predicate:
    return lambda content: any(needle in content for needle in needles)


@dataclass(frozen=True)
class LanguageSignature:
    """
    Patterns that identify a programming language.

    Each matching pattern adds one point. When at least one pattern matched,
    every satisfied bonus adds its points on top.
    """
    lang: str
    patterns: Tuple[Pattern, ...]
    bonuses: Tuple[Tuple[Predicate, int], ...] = ()

    def score(self, content: str) -> int:
        points = sum(1 for pattern in self.patterns if pattern.search(content))
        if points:
            points += sum(bonus for predicate, bonus in self.bonuses if predicate(content))
        return points


def _patterns(*sources: str, flags: int = re.MULTILINE) -> Tuple[Pattern, ...]:
    return tuple(re.compile(source, flags) for source in sources)


LANGUAGE_SIGNATURES: Tuple[LanguageSignature, ...] = (
    LanguageSignature('python', _patterns(
        r'^\s*from\s+[\w.]+\s+import\s+',
        r'^\s*@\w+(\([^)]*\))?$',
        r'^\s*def\s+\w+\s*\([^)]*\)\s*:',
        r'^\s*class\s+\w+(\([^)]*\))?\s*:',
        r'^\s*if\s+__name__\s*==\s*[\'"]__main__[\'"]\s*:',
        r'^\s*(elif|except|finally|yield|lambda|with\s+.+\s+as)\s+',
        r'print\s*\([^)]*\)',
        r'^\s*"""[\s\S]*?"""',
    ), bonuses=(
        (_has(r'from\s+\w+\s+import'), 3),
        (_has(r'def\s+\w+\s*\([^)]*\)\s*:'), 3),
        (lambda content: bool(re.search(r'^\s+', content, re.MULTILINE)) and '{' not in content, 1),
        (_contains('self'), 2),
        (_contains('__'), 1),
    )),
    LanguageSignature('javascript', _patterns(
        r'^\s*(const|let|var)\s+\w+\s*=',
        r'^\s*function\s+\w+\s*\([^)]*\)\s*\{',
        r'^\s*async\s+(function|\w+)',
        r'=>\s*\{?',
        r'^\s*class\s+\w+(\s+extends\s+\w+)?\s*\{',
        r'^\s*(import|export)\s+(\{[^}]*\}|\*|default)',
        r'console\.(log|error|warn)',
        r'\.(then|catch|finally)\s*\(',
    ), bonuses=(
        (_has(r'=>\s*\{?'), 3),
        (_has(r'(const|let|var)\s+\w+\s*='), 2),
        (_has(r'function\s*\([^)]*\)\s*\{'), 2),
        (_contains('console.'), 2),
        (_contains('async', 'await'), 2),
    )),
    LanguageSignature('typescript', _patterns(
        r'^\s*interface\s+\w+\s*\{',
        r'^\s*type\s+\w+\s*=',
        r':\s*(string|number|boolean|void|any|unknown|never)',
        r'^\s*enum\s+\w+\s*\{',
        r'<[A-Z]\w*>',
    ), bonuses=(
        (_has(r'interface\s+\w+'), 3),
        (_has(r':\s*(string|number|boolean)'), 3),
        (_has(r'type\s+\w+\s*='), 2),
    )),
    LanguageSignature('java', _patterns(
        r'^\s*(public|private|protected)\s+(static\s+)?class\s+',
        r'^\s*package\s+[\w.]+;',
        r'^\s*import\s+[\w.]+;',
        r'^\s*(public|private|protected)\s+\w+\s+\w+\s*\([^)]*\)',
        r'System\.out\.print',
        r'^\s*@\w+(\([^)]*\))?$',
        r'\bnew\s+\w+\s*\([^)]*\)',
    ), bonuses=(
        (_has(r'public\s+class'), 3),
        (_has(r'System\.out'), 3),
        (_has(r'import\s+[\w.]+;'), 2),
        (lambda content: ';' in content and '{' in content, 1),
    )),
    LanguageSignature('go', _patterns(
        r'^\s*package\s+\w+$',
        r'^\s*import\s+\(',
        r'^\s*func\s+(\(\w+\s+\*?\w+\)\s+)?\w+\s*\([^)]*\)',
        r'^\s*type\s+\w+\s+(struct|interface)\s*\{',
        r'fmt\.Print',
        r':=\s*',
        r'^\s*go\s+\w+',
    ), bonuses=(
        (_has(r'func\s+'), 3),
        (_has(r':='), 3),
        (_has(r'package\s+\w+$'), 2),
        (_contains('fmt.'), 2),
    )),
    LanguageSignature('ruby', _patterns(
        r'^\s*def\s+\w+(\([^)]*\))?$',
        r'^\s*class\s+\w+(\s*<\s*\w+)?$',
        r'^\s*require\s+[\'"][\w/]+[\'"]',
        r'^\s*attr_(reader|writer|accessor)',
        r'^\s*module\s+\w+',
        r'puts\s+',
        r'^\s*end$',
    ), bonuses=(
        (lambda content: bool(re.search(r'def\s+\w+', content)) and content.endswith('end'), 3),
        (_has(r'require\s+[\'"]'), 2),
        (_contains('puts'), 2),
    )),
    LanguageSignature('c', _patterns(r'^\s*#include\s*<\w+>', r'int\s+main\s*\(')),
    LanguageSignature('cpp', _patterns(r'^\s*using\s+namespace', r'std::', r'cout\s*<<')),
    LanguageSignature('csharp', _patterns(r'^\s*namespace\s+\w+', r'^\s*using\s+System')),
    LanguageSignature('rust', _patterns(r'^\s*fn\s+\w+', r'let\s+mut\s+', r'impl\s+\w+')),
    LanguageSignature('php', _patterns(r'^\s*<\?php', r'\$\w+\s*=', r'echo\s+')),
    LanguageSignature('sql', _patterns(
        r'^\s*(SELECT|INSERT|UPDATE|DELETE|CREATE|ALTER|DROP)\s+',
        flags=re.MULTILINE | re.IGNORECASE
    )),
    LanguageSignature('html', (
        re.compile(r'^\s*<(!DOCTYPE|html|head|body)', re.MULTILINE | re.IGNORECASE),
        re.compile(r'</\w+>', re.MULTILINE),
    )),
    LanguageSignature('json', _patterns(r'^\s*\{[\s\S]*"[\w-]+"\s*:', r'^\s*\[[\s\S]*\]$')),
)

PYTHON_IMPORT_PATTERN = re.compile(r'from\s+[\w.]+\s+import\s+', re.MULTILINE)


def detect_language(content: str) -> str:
    """
    Guess the programming language of a code snippet.

    Args:
        content: Code text

    Returns:
        Language name, or an empty string if nothing matched
    """
    # "from x import y" is decisive
    if PYTHON_IMPORT_PATTERN.search(content):
        return 'python'

    best_lang, best_score = '', 0
    for signature in LANGUAGE_SIGNATURES:
        score = signature.score(content)
        if score > best_score:
            best_lang, best_score = signature.lang, score
    return best_lang


# ============================================================================
# Line rules for unfenced code runs
# ============================================================================

CODE_RUN_START_PATTERN = re.compile(r'^(from\s+[\w.]+\s+import|import\s+[\w.,\s]+|@\w+|def\s+|class\s+)')
CODE_RUN_LINE_PATTERN = re.compile(
    r'^(from\s+|import\s+|def\s+|class\s+|@|#|\s+|\w+\s*=|\w+\(|if\s+|for\s+|while\s+|return\s+|print\(|\)\s*$)'
)
MIN_CODE_RUN_LINES = 3
FALLBACK_LANGUAGE = 'python'

FENCED_BLOCK_PATTERN = re.compile(r'```([\w-]*)\n([\s\S]*?)\n```')
SINGLE_LINE_BLOCK_PATTERN = re.compile(r'```[\w-]*\n([^\n]+)\n```')
CONSECUTIVE_BLOCKS_PATTERN = re.compile(r'```([\w-]*)\n([\s\S]*?)\n```\s*\n\s*```\1\n([\s\S]*?)\n```')
EXCESS_BLANK_LINES_PATTERN = re.compile(r'\n\s*\n\s*\n+')
TRAILING_SPACES_PATTERN = re.compile(r' +$', re.MULTILINE)

INLINE_MAX_LENGTH = 100
INLINE_MAX_SCORE = 0.3
SHORT_BLOCK_LENGTH = 10
CODE_CHAR_PATTERN = re.compile(r'[{}();,=]')


def _is_code_run_continuation(trimmed: str) -> bool:
    return (
        not trimmed
        or bool(CODE_RUN_LINE_PATTERN.match(trimmed))
        or ('(' in trimmed and ')' in trimmed)
        or any(char in trimmed for char in '={}')
    )


@dataclass
class MarkdownPostProcessOptions:
    code_threshold: float = DEFAULT_CODE_THRESHOLD
    auto_detect_language: bool = True
    remove_empty_code_blocks: bool = True
    merge_consecutive_code_blocks: bool = False


class MarkdownPostProcessor:
    """
    Cleans up code fences in Markdown produced by document converters.

    Steps, in order:
        1. Wrap runs of unfenced code lines in a fence with a detected language
        2. Remove empty fences
        3. Demote fences whose content scores as prose, label unlabeled fences
        4. Optionally merge consecutive fences of the same language
        5. Collapse runs of blank lines
        6. Inline short single-line fences that score as prose
        7. Strip trailing spaces and surrounding blank lines
    """

    def __init__(self, options: Optional[MarkdownPostProcessOptions] = None,
                 classifier: Optional[CodeLikelihoodClassifier] = None):
        self.options = options or MarkdownPostProcessOptions()
        self.classifier = classifier or CodeLikelihoodClassifier(self.options.code_threshold)

    def process(self, markdown: str) -> str:
        """
        Post-process converted Markdown.

        Args:
            markdown: Markdown text

        Returns:
            Cleaned Markdown text
        """
        if not markdown:
            return ""

        threshold = self.options.code_threshold
        processed = self.wrap_unfenced_code(markdown)

        if self.options.remove_empty_code_blocks:
            processed = self.remove_empty_code_blocks(processed)

        processed = FENCED_BLOCK_PATTERN.sub(self._repair_block, processed)

        if self.options.merge_consecutive_code_blocks:
            processed = CONSECUTIVE_BLOCKS_PATTERN.sub(
                lambda m: f"```{m.group(1)}\n{m.group(2)}\n\n{m.group(3)}\n```",
                processed
            )

        processed = EXCESS_BLANK_LINES_PATTERN.sub('\n\n', processed)
        processed = SINGLE_LINE_BLOCK_PATTERN.sub(self._inline_single_line_block, processed)
        processed = TRAILING_SPACES_PATTERN.sub('', processed)

        result = processed.strip()
        logger.debug("Markdown post-processing: %d -> %d chars (threshold %.2f)",
                     len(markdown), len(result), threshold)
        return result

    def wrap_unfenced_code(self, markdown: str) -> str:
        """Fence runs of at least three code lines found outside existing fences."""
        result: List[str] = []
        run: List[str] = []
        in_run = False
        in_fence = False

        for line in markdown.split('\n'):
            trimmed = line.strip()

            if trimmed.startswith('```'):
                in_fence = not in_fence
                result.append(line)
                continue

            if in_fence:
                result.append(line)
                continue

            if not in_run:
                if CODE_RUN_START_PATTERN.match(trimmed):
                    in_run = True
                    run = [line]
                else:
                    result.append(line)
                continue

            if _is_code_run_continuation(trimmed):
                run.append(line)
                continue

            result.extend(self._emit_run(run))
            result.append(line)
            in_run = False
            run = []

        if run:
            result.extend(self._emit_run(run))

        return '\n'.join(result)

    def _emit_run(self, run: List[str]) -> List[str]:
        if len(run) < MIN_CODE_RUN_LINES:
            return run
        content = '\n'.join(run)
        if self.classifier.score(content) < self.options.code_threshold:
            return run
        lang = detect_language(content) or FALLBACK_LANGUAGE
        return [f"```{lang}", *run, "```"]

    @staticmethod
    def remove_empty_code_blocks(markdown: str) -> str:
        """Drop fence pairs that enclose only whitespace."""
        lines = markdown.split('\n')
        result: List[str] = []
        index = 0

        while index < len(lines):
            line = lines[index]
            if line.strip().startswith('```'):
                close = index + 1
                while close < len(lines) and not lines[close].strip().startswith('```'):
                    close += 1
                if close < len(lines):
                    body = lines[index + 1:close]
                    if not any(body_line.strip() for body_line in body):
                        index = close + 1
                        continue
                    result.extend(lines[index:close + 1])
                    index = close + 1
                    continue
            result.append(line)
            index += 1

        return '\n'.join(result)

    def _repair_block(self, match) -> str:
        lang, content = match.group(1), match.group(2)

        lines = content.split('\n')
        while lines and not lines[0].strip():
            lines.pop(0)
        while lines and not lines[-1].strip():
            lines.pop()
        cleaned = '\n'.join(lines)
        trimmed = cleaned.strip()

        if not trimmed:
            return ''

        if self.classifier.score(trimmed) < self.options.code_threshold:
            return f"\n\n{trimmed}\n\n"

        if self.options.auto_detect_language and not lang:
            lang = detect_language(trimmed)

        return f"```{lang}\n{cleaned}\n```"

    def _inline_single_line_block(self, match) -> str:
        trimmed = match.group(1).strip()
        if len(trimmed) < INLINE_MAX_LENGTH and self.classifier.score(trimmed) < INLINE_MAX_SCORE:
            return f"`{trimmed}`"
        return match.group(0)

    # === Diagnostics ===

    def get_code_block_stats(self, markdown: str) -> Dict[str, Any]:
        """Score every fenced block in a document."""
        blocks = []
        for match in FENCED_BLOCK_PATTERN.finditer(markdown or ""):
            content = match.group(2).strip()
            blocks.append({
                'content': content,
                'language': match.group(1) or 'unknown',
                'score': self.classifier.score(content),
                'line_count': len(content.split('\n')),
                'char_count': len(content),
            })

        likely_code = sum(1 for block in blocks if block['score'] >= self.options.code_threshold)
        avg_score = sum(block['score'] for block in blocks) / len(blocks) if blocks else 0.0
        return {
            'total_blocks': len(blocks),
            'likely_code': likely_code,
            'likely_text': len(blocks) - likely_code,
            'avg_score': round(avg_score, 2),
            'blocks': blocks,
        }

    def find_problematic_code_blocks(self, markdown: str,
                                     threshold: Optional[float] = None) -> List[Dict[str, Any]]:
        """List fenced blocks that are empty, too short, or score as prose."""
        threshold = self.options.code_threshold if threshold is None else threshold
        problems = []

        for match in FENCED_BLOCK_PATTERN.finditer(markdown or ""):
            content = match.group(2).strip()
            score = self.classifier.score(content)

            if not content:
                reason = "Empty code block"
            elif score < threshold:
                reason = f"Code score ({score:.2f}) is below the threshold ({threshold})"
            elif len(content) < SHORT_BLOCK_LENGTH and not CODE_CHAR_PATTERN.search(content):
                reason = "Content is too short and has no code elements"
            else:
                continue

            problems.append({
                'content': content,
                'language': match.group(1) or 'unknown',
                'score': score,
                'reason': reason,
                'start_index': match.start(),
                'end_index': match.end(),
            })

        return problems
