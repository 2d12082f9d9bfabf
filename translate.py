"""
Command-line interface for Markdown translation
"""
import sys
import argparse
import asyncio

from src.config import (
    DEFAULT_MODEL, API_ENDPOINT, OPENAI_API_KEY, MAX_TOKENS_PER_CHUNK,
    DEFAULT_TARGET_LANGUAGE, TranslationConfig, ConfigurationError
)
from src.core.document_parsers import decode_bytes
from src.core.exceptions import TranslationError, ChunkLoopError
from src.utils.file_utils import translate_file, get_unique_output_path, default_output_path
from src.utils.language_detector import LanguageDetector
from src.utils.unified_logger import setup_cli_logger, LogType


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Translate a Markdown or text file using an LLM.")
    parser.add_argument("-i", "--input", required=True, help="Path to the input file (Markdown or text).")
    parser.add_argument("-o", "--output", default=None, help="Path to the output file. If not specified, uses input filename with suffix.")
    parser.add_argument("-sl", "--source_lang", default=None, help="Source language (default: detected from the file).")
    parser.add_argument("-tl", "--target_lang", default=DEFAULT_TARGET_LANGUAGE, help=f"Target language (default: {DEFAULT_TARGET_LANGUAGE}).")
    parser.add_argument("-m", "--model", default=DEFAULT_MODEL, help=f"LLM model (default: {DEFAULT_MODEL}).")
    parser.add_argument("--api_endpoint", default=API_ENDPOINT, help=f"OpenAI-compatible chat completions endpoint (default: {API_ENDPOINT}).")
    parser.add_argument("--api_key", default=OPENAI_API_KEY, help="API key sent as a Bearer token (optional for local servers).")
    parser.add_argument("--max_tokens", type=int, default=MAX_TOKENS_PER_CHUNK, help=f"Estimated tokens per chunk (default: {MAX_TOKENS_PER_CHUNK}).")
    parser.add_argument("--no-color", action="store_true", help="Disable colored output.")
    parser.add_argument("--no-protect", action="store_true", help="Send code blocks and number tables to the model unprotected.")
    parser.add_argument("--repair-fences", action="store_true", help="Fix unfenced code and prose-only code fences before translating.")
    return parser


def detect_source_language(path: str):
    with open(path, 'rb') as f:
        text, _ = decode_bytes(f.read())
    return LanguageDetector.detect_language(text)


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.output is None:
        args.output = default_output_path(args.input, args.target_lang)

    # Ensure output path is unique (add number suffix if file exists)
    args.output = get_unique_output_path(args.output)

    logger = setup_cli_logger(enable_colors=not args.no_color)

    if args.source_lang is None:
        try:
            args.source_lang = detect_source_language(args.input)
        except OSError as e:
            logger.error(f"Cannot read input file: {e}", LogType.ERROR_DETAIL, {'error': str(e)})
            return 1

    try:
        config = TranslationConfig.from_cli_args(args)
    except ConfigurationError as e:
        parser.error(str(e))

    logger.info("Translation Started", LogType.TRANSLATION_START, {
        'source_lang': config.source_language,
        'target_lang': args.target_lang,
        'model': args.model,
        'input_file': args.input,
        'output_file': args.output,
        'max_tokens': args.max_tokens,
        'api_endpoint': args.api_endpoint
    })

    try:
        asyncio.run(translate_file(
            args.input,
            args.output,
            config=config,
            log_callback=logger.create_log_callback(),
            progress_callback=logger.create_progress_callback(),
            repair_code_fences=args.repair_fences
        ))
    except ChunkLoopError as e:
        logger.error(f"Translation stopped at chunk {e.index + 1}: {e.message}", LogType.ERROR_DETAIL, {
            'index': e.index,
            'error': str(e.__cause__ or e)
        })
        return 1
    except (TranslationError, FileNotFoundError) as e:
        logger.error(f"Translation failed: {e}", LogType.ERROR_DETAIL, {
            'error': str(e)
        })
        return 1
    except KeyboardInterrupt:
        logger.warning("Translation interrupted by user")
        return 130

    return 0


if __name__ == "__main__":
    sys.exit(main())
