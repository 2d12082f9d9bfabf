"""
Unified logging system for the Markdown translator
Provides consistent console output and structured log entries for the CLI
and for library callers that pass a log callback to the orchestrator
"""
import sys
import os
from datetime import datetime
from typing import Optional, Dict, Any, Callable
from enum import Enum


class LogLevel(Enum):
    """Log levels with priority values"""
    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50


class LogType(Enum):
    """Types of log messages for special handling"""
    GENERAL = "general"
    PROGRESS = "progress"
    CHUNK_INFO = "chunk_info"
    FILE_OPERATION = "file_operation"
    TRANSLATION_START = "translation_start"
    TRANSLATION_END = "translation_end"
    ERROR_DETAIL = "error_detail"


# Orchestrator event keys with a dedicated level or format
EVENT_TYPES = {
    'translation_start': (LogLevel.INFO, LogType.TRANSLATION_START),
    'translation_complete': (LogLevel.INFO, LogType.TRANSLATION_END),
    'chunking_complete': (LogLevel.INFO, LogType.CHUNK_INFO),
    'chunk_translation_error': (LogLevel.ERROR, LogType.ERROR_DETAIL),
    'file_read': (LogLevel.INFO, LogType.FILE_OPERATION),
    'file_written': (LogLevel.INFO, LogType.FILE_OPERATION),
    'restoration_mismatch': (LogLevel.WARNING, LogType.GENERAL),
    'validation_warning': (LogLevel.WARNING, LogType.GENERAL),
    'resume_invalidated': (LogLevel.WARNING, LogType.GENERAL),
    'translation_interrupted': (LogLevel.WARNING, LogType.GENERAL),
    'patterns_protected': (LogLevel.DEBUG, LogType.GENERAL),
    'single_call_translation': (LogLevel.DEBUG, LogType.GENERAL),
}


class Colors:
    """ANSI color codes for terminal output"""
    # Check if colors should be disabled
    NO_COLOR = os.environ.get('NO_COLOR') is not None or not sys.stdout.isatty()

    CODES = {
        'yellow': '\033[93m',   # headers
        'white': '\033[97m',    # main text
        'gray': '\033[90m',     # technical details
        'green': '\033[92m',    # completion
        'red': '\033[91m',      # errors
        'endc': '\033[0m',      # reset
    }

    def __init__(self, enabled: bool = True):
        active = enabled and not self.NO_COLOR
        for name, code in self.CODES.items():
            setattr(self, name.upper(), code if active else '')


class UnifiedLogger:
    """
    Logger with console formatting and structured callbacks.

    Every entry is printed (if console_output) and also handed as a dict to
    web_callback and storage_callback, so a UI can display the same stream.
    """

    def __init__(self,
                 name: str = "MarkdownTranslator",
                 console_output: bool = True,
                 enable_colors: bool = True,
                 min_level: LogLevel = LogLevel.INFO,
                 web_callback: Optional[Callable] = None,
                 storage_callback: Optional[Callable] = None):
        """
        Initialize the unified logger

        Args:
            name: Logger name/identifier
            console_output: Whether to output to console
            enable_colors: Whether to use colored output
            min_level: Minimum log level to display
            web_callback: Callback receiving every structured entry
            storage_callback: Callback for storing logs (e.g., in memory)
        """
        self.name = name
        self.console_output = console_output
        self.colors = Colors(enable_colors)
        self.min_level = min_level
        self.web_callback = web_callback
        self.storage_callback = storage_callback

        self.translation_state = {
            'total_chunks': 0,
            'completed_chunks': 0,
            'target_lang': '',
            'model': '',
            'start_time': None,
            'in_progress': False
        }

    def _format_timestamp(self) -> str:
        return datetime.now().strftime("%H:%M:%S")

    def _format_console_message(self, level: LogLevel, message: str,
                                log_type: LogType = LogType.GENERAL,
                                data: Optional[Dict[str, Any]] = None) -> str:
        """Format message for console output"""
        c = self.colors
        data = data or {}

        if log_type == LogType.PROGRESS:
            return self._format_progress(data)
        elif log_type == LogType.TRANSLATION_START:
            return self._format_translation_start(message, data)
        elif log_type == LogType.TRANSLATION_END:
            return self._format_translation_end(message, data)
        elif log_type == LogType.ERROR_DETAIL:
            return self._format_error_detail(message, data)
        elif log_type == LogType.CHUNK_INFO:
            return self._format_chunk_info(message, data)

        level_colors = {
            LogLevel.DEBUG: c.GRAY,
            LogLevel.INFO: c.WHITE,
            LogLevel.WARNING: c.YELLOW,
            LogLevel.ERROR: c.RED,
            LogLevel.CRITICAL: c.RED
        }
        color = level_colors.get(level, c.WHITE)
        level_str = f"[{level.name}] " if level != LogLevel.INFO else ""
        return f"{color}[{self._format_timestamp()}] {level_str}{message}{c.ENDC}"

    def _format_progress(self, data: Dict[str, Any]) -> str:
        """Format progress bar line"""
        c = self.colors
        percentage = data.get('percentage', 0)
        current = data.get('current', self.translation_state['completed_chunks'])
        total = data.get('total', self.translation_state['total_chunks'])

        bar_length = 30
        filled = int(bar_length * percentage / 100)
        bar = '█' * filled + '░' * (bar_length - filled)
        return f"{c.WHITE}[{bar}] {percentage:.1f}% ({current}/{total} chunks){c.ENDC}"

    def _format_translation_start(self, message: str, data: Dict[str, Any]) -> str:
        c = self.colors
        self.translation_state.update({
            'target_lang': data.get('target_lang', 'Unknown'),
            'model': data.get('model', 'Unknown'),
            'total_chunks': data.get('total_chunks', 0),
            'completed_chunks': 0,
            'start_time': datetime.now(),
            'in_progress': True
        })

        output = [f"{c.YELLOW}TRANSLATION STARTED{c.ENDC}"]
        if 'input_file' in data:
            output.append(f"{c.WHITE}Input: {data['input_file']}{c.ENDC}")
        source = data.get('source_lang', 'auto')
        output.append(f"{c.WHITE}Languages: {source} → {self.translation_state['target_lang']}{c.ENDC}")
        output.append(f"{c.GRAY}Model: {self.translation_state['model']}{c.ENDC}")
        return '\n'.join(output)

    def _format_translation_end(self, message: str, data: Dict[str, Any]) -> str:
        c = self.colors
        output = [f"\n{c.GREEN}TRANSLATION COMPLETE{c.ENDC}"]

        if self.translation_state['start_time']:
            duration = datetime.now() - self.translation_state['start_time']
            output.append(f"{c.GRAY}Duration: {duration}{c.ENDC}")
        if 'total_chunks' in data:
            output.append(f"{c.WHITE}Chunks: {data.get('completed_chunks', 0)}/{data['total_chunks']}{c.ENDC}")
        if 'output_file' in data:
            output.append(f"{c.WHITE}Output saved to: {data['output_file']}{c.ENDC}")

        self.translation_state['in_progress'] = False
        return '\n'.join(output)

    def _format_error_detail(self, message: str, data: Dict[str, Any]) -> str:
        c = self.colors
        output = [f"{c.RED}[{self._format_timestamp()}] ERROR: {message}{c.ENDC}"]
        if 'index' in data:
            output.append(f"{c.RED}Chunk index: {data['index']} (resume point){c.ENDC}")
        if 'error' in data:
            output.append(f"{c.RED}Details: {data['error']}{c.ENDC}")
        return '\n'.join(output)

    def _format_chunk_info(self, message: str, data: Dict[str, Any]) -> str:
        c = self.colors
        if 'total_chunks' in data:
            self.translation_state['total_chunks'] = data['total_chunks']
        line = f"{c.WHITE}[{self._format_timestamp()}] {message}{c.ENDC}"
        if 'average_size' in data:
            line += (f"\n{c.GRAY}Tokens per chunk: avg={data['average_size']:.0f}, "
                     f"min={data.get('min_size', 0)}, max={data.get('max_size', 0)} "
                     f"(budget {data.get('max_tokens', 0)}, oversized {data.get('oversized_count', 0)}){c.ENDC}")
        return line

    def log(self, level: LogLevel, message: str,
            log_type: LogType = LogType.GENERAL,
            data: Optional[Dict[str, Any]] = None):
        """
        Main logging method

        Args:
            level: Log level
            message: Log message
            log_type: Type of log for special formatting
            data: Additional data for the log entry
        """
        if level.value < self.min_level.value:
            return

        if self.console_output:
            try:
                console_msg = self._format_console_message(level, message, log_type, data)
            except (KeyError, TypeError, ValueError):
                console_msg = f"[{self._format_timestamp()}] {message}"
            if console_msg:
                try:
                    print(console_msg, flush=True)
                except UnicodeEncodeError:
                    # Windows consoles with a legacy code page
                    safe_message = console_msg.encode('ascii', 'replace').decode('ascii')
                    print(safe_message, flush=True)

        log_entry = {
            'timestamp': datetime.now().isoformat(),
            'level': level.name,
            'type': log_type.value,
            'message': message,
            'data': data or {}
        }

        if self.web_callback:
            self.web_callback(log_entry)
        if self.storage_callback:
            self.storage_callback(log_entry)

    # Convenience methods
    def debug(self, message: str, log_type: LogType = LogType.GENERAL, data: Optional[Dict[str, Any]] = None):
        self.log(LogLevel.DEBUG, message, log_type, data)

    def info(self, message: str, log_type: LogType = LogType.GENERAL, data: Optional[Dict[str, Any]] = None):
        self.log(LogLevel.INFO, message, log_type, data)

    def warning(self, message: str, log_type: LogType = LogType.GENERAL, data: Optional[Dict[str, Any]] = None):
        self.log(LogLevel.WARNING, message, log_type, data)

    def error(self, message: str, log_type: LogType = LogType.GENERAL, data: Optional[Dict[str, Any]] = None):
        self.log(LogLevel.ERROR, message, log_type, data)

    def critical(self, message: str, log_type: LogType = LogType.GENERAL, data: Optional[Dict[str, Any]] = None):
        self.log(LogLevel.CRITICAL, message, log_type, data)

    def create_log_callback(self) -> Callable:
        """
        Create the (event_key, message, data=None) callback used by the
        orchestrator and the file utilities.

        Known event keys get their own level and format, anything else is
        logged at INFO.
        """
        def log_callback(event_key: str, message: str, data: Optional[Dict[str, Any]] = None):
            level, log_type = EVENT_TYPES.get(event_key, (LogLevel.INFO, LogType.GENERAL))
            if event_key == 'translation_complete':
                self.translation_state['completed_chunks'] = (data or {}).get('completed_chunks', 0)
            self.log(level, message, log_type, data)

        return log_callback

    def create_progress_callback(self) -> Callable:
        """Create a (percent, message) callback that prints a progress bar line."""
        def progress_callback(percent: float, message: str = ""):
            self.translation_state['completed_chunks'] += 1
            self.log(LogLevel.INFO, message, LogType.PROGRESS, {'percentage': percent})

        return progress_callback


def setup_cli_logger(enable_colors: bool = True, **kwargs) -> UnifiedLogger:
    """Create a console logger for CLI usage"""
    # Import here to avoid circular dependencies
    from src.config import DEBUG_MODE

    return UnifiedLogger(
        console_output=True,
        enable_colors=enable_colors,
        min_level=LogLevel.DEBUG if DEBUG_MODE else LogLevel.INFO,
        **kwargs
    )
