"""
Logging configuration for California local regression analysis.
"""
import json
import logging
import datetime
from pathlib import Path
from typing import Dict, Optional

from .config import get_config


class JsonFormatter(logging.Formatter):
    """Formatter for JSON-structured log records."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': datetime.datetime.fromtimestamp(record.created).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        if record.exc_info:
            log_data['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': self.formatException(record.exc_info)
            }

        if hasattr(record, 'data'):
            log_data['data'] = record.data

        return json.dumps(log_data, default=str)


def ensure_log_directory(log_dir: str) -> str:
    """Ensure log directory exists."""
    path = Path(log_dir)
    path.mkdir(parents=True, exist_ok=True)
    return str(path)


def setup_logging(
    log_level: str = "INFO",
    log_dir: Optional[str] = None,
    json_format: bool = False,
    verbose_libraries: Optional[Dict[str, str]] = None,
    log_to_file: bool = True
) -> None:
    """Set up logging configuration."""
    level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if json_format:
        formatter = JsonFormatter()
    else:
        formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_to_file:
        if log_dir is None:
            log_dir = get_config().get('directories.logs_dir', 'logs')
        log_dir = ensure_log_directory(log_dir)

        timestamp = datetime.datetime.now().strftime("%Y%m%d")
        log_file = Path(log_dir) / f"california_gwr_{timestamp}.log"
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    if verbose_libraries:
        for lib, lib_level in verbose_libraries.items():
            lib_logger = logging.getLogger(lib)
            lib_logger.setLevel(getattr(logging, lib_level.upper(), logging.WARNING))

    logging.getLogger(__name__).info(f"Logging initialized at level {log_level}")


def setup_logging_from_config(json_format: bool = False) -> None:
    """Initialize logging from application configuration."""
    cfg = get_config()
    setup_logging(
        log_level=cfg.get('logging.log_level', 'INFO'),
        log_dir=cfg.get('directories.logs_dir'),
        json_format=json_format,
        verbose_libraries=cfg.get('logging.verbose_libraries', {})
    )
