"""
Document-to-Markdown parsers for plain text and Markdown files.

A parser turns raw document bytes into the Markdown string the orchestrator
translates. EPUB, PDF and office formats are not handled here.
"""
import logging
from typing import Optional, Tuple

from src.core.exceptions import DocumentParseError
from src.core.post_processing.markdown_post_processor import MarkdownPostProcessor
from src.core.text_processor import sanitize_text


logger = logging.getLogger(__name__)

# Tried in order; latin-1 decodes any byte sequence
FALLBACK_ENCODINGS = ('utf-8', 'utf-8-sig', 'cp1252', 'latin-1')


def decode_bytes(content: bytes) -> Tuple[str, str]:
    """
    Decode raw bytes with the encoding fallback chain.

    Args:
        content: Raw file content

    Returns:
        Tuple of (decoded text, encoding used)

    Raises:
        DocumentParseError: If content is not bytes
    """
    if isinstance(content, str):
        return content, 'str'
    if not isinstance(content, (bytes, bytearray)):
        raise DocumentParseError(f"Expected bytes, got {type(content).__name__}")

    for encoding in FALLBACK_ENCODINGS:
        try:
            text = bytes(content).decode(encoding)
        except UnicodeDecodeError:
            continue
        # utf-8 keeps the BOM as U+FEFF
        if encoding == 'utf-8' and text.startswith('\ufeff'):
            return text[1:], 'utf-8-sig'
        return text, encoding

    raise DocumentParseError("Could not decode document with any supported encoding")


class _DecodingParser:
    """Decode and sanitize, then optionally repair code fences."""

    extensions: Tuple[str, ...] = ()

    def __init__(self, repair_code_fences: bool = False,
                 post_processor: Optional[MarkdownPostProcessor] = None):
        """
        Args:
            repair_code_fences: Run the Markdown post-processor on the decoded text
            post_processor: Post-processor to use (a default one is created if omitted)
        """
        self.repair_code_fences = repair_code_fences
        self.post_processor = post_processor or MarkdownPostProcessor()

    def parse(self, content: bytes) -> str:
        text, encoding = decode_bytes(content)
        logger.debug("Decoded %d bytes as %s", len(content), encoding)
        text = sanitize_text(text)
        if self.repair_code_fences:
            text = self.post_processor.process(text)
        return text


class MarkdownParser(_DecodingParser):
    """Markdown files are already in the target format."""

    extensions = ('.md', '.markdown', '.mdown', '.mkd')


class PlainTextParser(_DecodingParser):
    """Plain text is valid Markdown, so it goes through the same decoding."""

    extensions = ('.txt', '.text')
