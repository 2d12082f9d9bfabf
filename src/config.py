"""
Centralized configuration class
"""
import os
import logging
from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional, Tuple
from dotenv import load_dotenv

# Setup debug logger for configuration
_config_logger = logging.getLogger('config')

# Check for DEBUG_MODE early (before .env is loaded, check environment)
_debug_mode = os.getenv('DEBUG_MODE', 'false').lower() == 'true'
if _debug_mode:
    logging.basicConfig(level=logging.DEBUG, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    _config_logger.setLevel(logging.DEBUG)
    _config_logger.debug("DEBUG_MODE enabled - verbose logging active")

# .env is looked up in the current working directory
_env_file = Path.cwd() / '.env'
_env_exists = _env_file.exists()

if not _env_exists:
    _config_logger.warning(
        ".env configuration file not found in %s, running with default settings "
        "(copy .env.example to .env to configure the API endpoint and model)",
        Path.cwd()
    )

# Load .env file if it exists
_dotenv_result = load_dotenv(_env_file)
if _debug_mode:
    _config_logger.debug(f"load_dotenv() returned: {_dotenv_result}")
    _config_logger.debug(f"Loaded .env from: {_env_file.absolute()}")

# LLM endpoint (any OpenAI-compatible chat completions server: LM Studio, llama.cpp, vLLM, OpenAI...)
API_ENDPOINT = os.getenv('API_ENDPOINT', 'http://127.0.0.1:1234/v1/chat/completions')
DEFAULT_MODEL = os.getenv('DEFAULT_MODEL', 'local-model')
OPENAI_API_KEY = os.getenv('OPENAI_API_KEY', '')
REQUEST_TIMEOUT = int(os.getenv('REQUEST_TIMEOUT', '600'))
MAX_TRANSLATION_ATTEMPTS = int(os.getenv('MAX_TRANSLATION_ATTEMPTS', '3'))
RETRY_DELAY_SECONDS = float(os.getenv('RETRY_DELAY_SECONDS', '1'))
TEMPERATURE = float(os.getenv('TEMPERATURE', '0.3'))
MAX_RESPONSE_TOKENS = int(os.getenv('MAX_RESPONSE_TOKENS', '10000'))

# Chunking configuration
# Budget is expressed in estimated tokens (see TokenEstimator), not model tokens
MAX_TOKENS_PER_CHUNK = int(os.getenv('MAX_TOKENS_PER_CHUNK', '5000'))
MIN_RECOMMENDED_TOKENS_PER_CHUNK = 100
MAX_RECOMMENDED_TOKENS_PER_CHUNK = 10000

# Token estimation weights
CJK_CHAR_WEIGHT = 1.0
ENGLISH_WORD_WEIGHT = 0.25
OTHER_CHAR_WEIGHT = 0.5
CJK_SOURCE_RATIO = 0.3  # share of CJK characters above which the source counts as CJK

# Translation-direction compression ratios
CJK_TO_ENGLISH_RATIO = float(os.getenv('CJK_TO_ENGLISH_RATIO', '0.8'))
ENGLISH_TO_CJK_RATIO = float(os.getenv('ENGLISH_TO_CJK_RATIO', '1.2'))
DEFAULT_COMPRESSION_RATIO = float(os.getenv('DEFAULT_COMPRESSION_RATIO', '1.0'))

# Code likelihood threshold (0-1) used by fence repair and Markdown post-processing
CODE_LIKELIHOOD_THRESHOLD = float(os.getenv('CODE_LIKELIHOOD_THRESHOLD', '0.4'))

# Pattern protection (code blocks, simple tables, indented numbers) before translation
PROTECT_PATTERNS = os.getenv('PROTECT_PATTERNS', 'true').lower() == 'true'

# Default languages from environment
DEFAULT_SOURCE_LANGUAGE = os.getenv('DEFAULT_SOURCE_LANGUAGE', 'English')
DEFAULT_TARGET_LANGUAGE = os.getenv('DEFAULT_TARGET_LANGUAGE', 'Japanese')

# Output
OUTPUT_DIR = os.getenv('OUTPUT_DIR', 'translated_files')

# Debug mode (reload after .env is loaded)
DEBUG_MODE = os.getenv('DEBUG_MODE', 'false').lower() == 'true'

# Log loaded configuration in debug mode
if DEBUG_MODE or _debug_mode:
    _config_logger.setLevel(logging.DEBUG)
    _config_logger.debug("=" * 60)
    _config_logger.debug("LOADED CONFIGURATION VALUES:")
    _config_logger.debug("=" * 60)
    _config_logger.debug(f"   API_ENDPOINT: {API_ENDPOINT}")
    _config_logger.debug(f"   DEFAULT_MODEL: {DEFAULT_MODEL}")
    _config_logger.debug(f"   REQUEST_TIMEOUT: {REQUEST_TIMEOUT}")
    _config_logger.debug(f"   MAX_TOKENS_PER_CHUNK: {MAX_TOKENS_PER_CHUNK}")
    _config_logger.debug(f"   CODE_LIKELIHOOD_THRESHOLD: {CODE_LIKELIHOOD_THRESHOLD}")
    _config_logger.debug(f"   DEFAULT_TARGET_LANGUAGE: {DEFAULT_TARGET_LANGUAGE}")
    _config_logger.debug(f"   OPENAI_API_KEY: {'***' + OPENAI_API_KEY[-4:] if OPENAI_API_KEY else '(not set)'}")
    _config_logger.debug("=" * 60)

# ============================================================================
# RESPONSE CLEANUP CONFIGURATION
# ============================================================================
# Literal preambles some models put in front of the translation.

UNWANTED_PREFIXES = (
    '翻訳後の日本語テキスト:',
    '翻訳後のテキスト:',
    '日本語翻訳:',
    '以下が翻訳結果です:',
    '翻訳結果:',
    'Here is the translation:',
    "Here's the translation:",
    'Translated text:',
    'Translation:',
)

# Language labels stripped when they open the response
LANGUAGE_LABELS = (
    '日本語:', '日本語：', '英語:', '英語：',
    '中国語:', '中国語：', '韓国語:', '韓国語：',
    'Japanese:', 'English:', 'Chinese:', 'Korean:',
    'Translation:', '翻訳:',
)


class ConfigurationError(ValueError):
    """Invalid configuration value."""
    pass


@dataclass
class TranslationConfig:
    """Unified configuration for the CLI and library callers"""

    # Core settings
    source_language: str = DEFAULT_SOURCE_LANGUAGE
    target_language: str = DEFAULT_TARGET_LANGUAGE
    model: str = DEFAULT_MODEL
    api_endpoint: str = API_ENDPOINT
    api_key: str = OPENAI_API_KEY

    # LLM parameters
    timeout: int = REQUEST_TIMEOUT
    max_attempts: int = MAX_TRANSLATION_ATTEMPTS
    retry_delay: float = RETRY_DELAY_SECONDS
    temperature: float = TEMPERATURE
    max_response_tokens: int = MAX_RESPONSE_TOKENS

    # Chunking
    max_tokens_per_chunk: int = MAX_TOKENS_PER_CHUNK
    protect_patterns: bool = PROTECT_PATTERNS

    # Estimation
    cjk_to_english_ratio: float = CJK_TO_ENGLISH_RATIO
    english_to_cjk_ratio: float = ENGLISH_TO_CJK_RATIO
    default_compression_ratio: float = DEFAULT_COMPRESSION_RATIO

    # Response cleanup
    code_threshold: float = CODE_LIKELIHOOD_THRESHOLD
    unwanted_prefixes: Tuple[str, ...] = field(default_factory=lambda: UNWANTED_PREFIXES)
    language_labels: Tuple[str, ...] = field(default_factory=lambda: LANGUAGE_LABELS)

    # Interface-specific
    interface_type: str = "cli"
    enable_colors: bool = True

    def __post_init__(self):
        """Validate configuration after initialization."""
        self.validate()

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ConfigurationError: If a value is out of range
        """
        if not isinstance(self.max_tokens_per_chunk, int) or self.max_tokens_per_chunk <= 0:
            raise ConfigurationError(
                f"max_tokens_per_chunk must be a positive integer, got {self.max_tokens_per_chunk!r}"
            )
        if not (MIN_RECOMMENDED_TOKENS_PER_CHUNK <= self.max_tokens_per_chunk <= MAX_RECOMMENDED_TOKENS_PER_CHUNK):
            _config_logger.warning(
                "max_tokens_per_chunk=%d is outside the usual range %d-%d",
                self.max_tokens_per_chunk,
                MIN_RECOMMENDED_TOKENS_PER_CHUNK,
                MAX_RECOMMENDED_TOKENS_PER_CHUNK
            )
        if not 0.0 <= self.code_threshold <= 1.0:
            raise ConfigurationError(f"code_threshold must be in [0, 1], got {self.code_threshold}")
        for name in ('cjk_to_english_ratio', 'english_to_cjk_ratio', 'default_compression_ratio'):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} must be positive, got {getattr(self, name)}")
        if self.max_attempts < 1:
            raise ConfigurationError(f"max_attempts must be at least 1, got {self.max_attempts}")
        self.unwanted_prefixes = tuple(self.unwanted_prefixes)
        self.language_labels = tuple(self.language_labels)

    @classmethod
    def from_cli_args(cls, args) -> 'TranslationConfig':
        """Create config from CLI arguments"""
        return cls(
            source_language=getattr(args, 'source_lang', None) or DEFAULT_SOURCE_LANGUAGE,
            target_language=args.target_lang,
            model=args.model,
            api_endpoint=args.api_endpoint,
            api_key=getattr(args, 'api_key', OPENAI_API_KEY) or '',
            max_tokens_per_chunk=getattr(args, 'max_tokens', MAX_TOKENS_PER_CHUNK),
            protect_patterns=not getattr(args, 'no_protect', False),
            interface_type="cli",
            enable_colors=not args.no_color
        )

    @classmethod
    def from_dict(cls, data: dict) -> 'TranslationConfig':
        """Create config from a plain dictionary (unknown keys are ignored)"""
        known = {name for name in cls.__dataclass_fields__}
        return cls(**{key: value for key, value in data.items() if key in known})

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization (API key is masked)"""
        return {
            'source_language': self.source_language,
            'target_language': self.target_language,
            'model': self.model,
            'api_endpoint': self.api_endpoint,
            'api_key': '***' + self.api_key[-4:] if self.api_key else '',
            'timeout': self.timeout,
            'max_attempts': self.max_attempts,
            'retry_delay': self.retry_delay,
            'temperature': self.temperature,
            'max_response_tokens': self.max_response_tokens,
            'max_tokens_per_chunk': self.max_tokens_per_chunk,
            'protect_patterns': self.protect_patterns,
            'cjk_to_english_ratio': self.cjk_to_english_ratio,
            'english_to_cjk_ratio': self.english_to_cjk_ratio,
            'default_compression_ratio': self.default_compression_ratio,
            'code_threshold': self.code_threshold,
            'unwanted_prefixes': list(self.unwanted_prefixes),
            'language_labels': list(self.language_labels),
            'interface_type': self.interface_type,
        }
