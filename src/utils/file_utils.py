"""
File utilities for translation operations
"""
import os
from pathlib import Path
from typing import Optional, Callable

import aiofiles

from src.config import TranslationConfig
from src.core.document_parsers import MarkdownParser, PlainTextParser
from src.core.llm_client import create_llm_client
from src.core.translation_state import CancellationToken, TranslationOptions
from src.core.translator import TranslationOrchestrator, translate_document


PARSERS = (MarkdownParser, PlainTextParser)


def get_unique_output_path(output_path):
    """
    Generate a unique output path by adding a number suffix if the file already exists.

    Args:
        output_path (str): Desired output path

    Returns:
        str: Unique output path (original or with numeric suffix)

    Examples:
        guide.md -> guide.md (if doesn't exist)
        guide.md -> guide (1).md (if guide.md exists)
        guide.md -> guide (2).md (if guide.md and guide (1).md exist)
    """
    path = Path(output_path)
    if not path.exists():
        return output_path

    parent = path.parent
    stem = path.stem
    suffix = path.suffix

    counter = 1
    while True:
        new_path = parent / f"{stem} ({counter}){suffix}"
        if not new_path.exists():
            return str(new_path)
        counter += 1
        if counter > 9999:
            raise RuntimeError(f"Could not find unique filename after 9999 attempts for: {output_path}")


def default_output_path(input_path: str, target_language: str) -> str:
    """Build '<base>_translated_<lang><ext>' next to the input file."""
    base, ext = os.path.splitext(input_path)
    language = target_language.lower().replace(' ', '_')
    return f"{base}_translated_{language}{ext or '.md'}"


def get_parser_for_path(path: str, repair_code_fences: bool = False):
    """
    Pick a document parser by file extension.

    Unknown extensions are read as plain text.
    """
    ext = os.path.splitext(path)[1].lower()
    for parser_class in PARSERS:
        if ext in parser_class.extensions:
            return parser_class(repair_code_fences=repair_code_fences)
    return PlainTextParser(repair_code_fences=repair_code_fences)


async def read_file_bytes(path: str) -> bytes:
    async with aiofiles.open(path, 'rb') as f:
        return await f.read()


async def write_text_file(path: str, text: str) -> None:
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    async with aiofiles.open(path, 'w', encoding='utf-8') as f:
        await f.write(text)


async def translate_file(input_filepath: str, output_filepath: str,
                         config: Optional[TranslationConfig] = None,
                         log_callback: Optional[Callable] = None,
                         progress_callback: Optional[Callable] = None,
                         chunk_callback: Optional[Callable] = None,
                         cancellation: Optional[CancellationToken] = None,
                         orchestrator: Optional[TranslationOrchestrator] = None,
                         translator=None,
                         repair_code_fences: bool = False) -> str:
    """
    Translate a Markdown or text file and write the result.

    Args:
        input_filepath: Path to input file
        output_filepath: Path to output file
        config: Translation configuration
        log_callback: Callback(event_key, message, data=None)
        progress_callback: Callback(percent, message)
        chunk_callback: Callback(index, total, text)
        cancellation: Cancellation token
        orchestrator: Orchestrator to use (one is built from config if omitted)
        translator: Translate collaborator (an LLMClient is built from config if omitted)
        repair_code_fences: Fix code fences lost or invented by converters before translating

    Returns:
        The translated text

    Raises:
        FileNotFoundError: If the input file does not exist
        TranslationError: On validation, parse or chunk failures
    """
    config = config or TranslationConfig()

    if not os.path.exists(input_filepath):
        err_msg = f"ERROR: Input file '{input_filepath}' not found."
        if log_callback:
            log_callback("file_not_found_error", err_msg)
        raise FileNotFoundError(err_msg)

    content = await read_file_bytes(input_filepath)
    if log_callback:
        log_callback("file_read", f"Read {len(content)} bytes from '{input_filepath}'",
                     data={'input_file': input_filepath})

    owns_client = translator is None
    if owns_client:
        translator = create_llm_client(config)
    orchestrator = orchestrator or TranslationOrchestrator(config=config, log_callback=log_callback)

    options = TranslationOptions(
        translator=translator,
        max_tokens=config.max_tokens_per_chunk,
        progress_callback=progress_callback,
        chunk_callback=chunk_callback,
        cancellation=cancellation
    )

    try:
        translated = await translate_document(
            orchestrator,
            get_parser_for_path(input_filepath, repair_code_fences),
            content,
            config.target_language,
            options
        )
    finally:
        if owns_client:
            await translator.close()

    await write_text_file(output_filepath, translated)
    if log_callback:
        log_callback("file_written", f"Output saved to: {output_filepath}",
                     data={'output_file': output_filepath})
    return translated
