"""
Logging configuration for the TreeBot agent using structlog
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

import structlog
from structlog.processors import (
    TimeStamper,
    add_log_level,
    dict_tracebacks,
)
from structlog.stdlib import (
    BoundLogger,
    LoggerFactory,
    add_logger_name,
    filter_by_level,
)


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    log_dir: str = "logs",
    console_output: bool = True,
    json_format: bool = False,
    google_log_level: str = "WARNING",
) -> Path:
    """
    Configure structlog for both console and file output

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional specific log file name. If None, generates timestamp-based name
        log_dir: Directory for log files (default: "logs")
        console_output: Whether to output to console (default: True)
        json_format: Whether to use JSON format for console logs
        google_log_level: Logging level for the Gemini client and its HTTP stack

    Returns:
        Path of the log file being written
    """
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    if log_file is None:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = f"treebot_{timestamp}.log"

    full_log_path = log_path / log_file
    level = getattr(logging, log_level.upper())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = None
    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        root_logger.addHandler(console_handler)

    # File handler - always JSON for easier parsing
    file_handler = logging.FileHandler(full_log_path, encoding="utf-8")
    file_handler.setLevel(level)
    root_logger.addHandler(file_handler)

    shared_processors = [
        add_log_level,
        add_logger_name,
        TimeStamper(fmt="iso"),
        structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.FILENAME,
                structlog.processors.CallsiteParameter.LINENO,
                structlog.processors.CallsiteParameter.FUNC_NAME,
            ]
        ),
        dict_tracebacks,
    ]

    if json_format or not console_output:
        console_renderer = structlog.processors.JSONRenderer()
    else:
        console_renderer = structlog.dev.ConsoleRenderer(colors=True, pad_event=30)

    structlog.configure(
        processors=[
            filter_by_level,
            *shared_processors,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=BoundLogger,
        cache_logger_on_first_use=True,
    )

    if console_handler is not None:
        console_handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processor=console_renderer,
                foreign_pre_chain=shared_processors,
            )
        )

    file_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.processors.JSONRenderer(),
            foreign_pre_chain=shared_processors,
        )
    )

    # Gemini client and its transport are chatty at INFO
    google_level = getattr(logging, google_log_level.upper())
    logging.getLogger("google_genai").setLevel(google_level)
    logging.getLogger("google.genai").setLevel(google_level)
    logging.getLogger("google.auth").setLevel(google_level)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    logger: BoundLogger = structlog.get_logger(__name__)
    logger.debug(
        "Logging initialized",
        log_level=log_level,
        log_file=str(full_log_path),
        console_output=console_output,
        json_format=json_format,
        google_log_level=logging.getLevelName(google_level),
    )
    return full_log_path


def get_logger(name: str) -> BoundLogger:
    """
    Get a configured structlog logger

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured structlog BoundLogger
    """
    return structlog.get_logger(name)
