"""Logging utilities for the alert pipeline."""

from __future__ import annotations

import atexit
import importlib
import importlib.util
import logging
import logging.handlers
from pathlib import Path
import queue
from typing import Any, Iterable, Mapping


LOGGER_NAME = "blindgate"
DEFAULT_LOG_FILE = "logs/blindgate.log"


def _rich_available() -> bool:
    return importlib.util.find_spec("rich") is not None


if _rich_available():
    rich_logging = importlib.import_module("rich.logging")
    rich_console = importlib.import_module("rich.console")
    rich_text = importlib.import_module("rich.text")
    RichHandler = rich_logging.RichHandler
    Console = rich_console.Console
    Text = rich_text.Text
    console = Console(stderr=True)
else:
    RichHandler = None
    Console = None
    Text = None
    console = None


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Attach a single console handler to the pipeline logger."""

    pipeline_logger = logging.getLogger(LOGGER_NAME)
    pipeline_logger.setLevel(level)

    if RichHandler is not None:
        if not any(isinstance(h, RichHandler) for h in pipeline_logger.handlers):
            handler = RichHandler(rich_tracebacks=True, console=console, show_path=False)
            handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
            pipeline_logger.addHandler(handler)
    elif not pipeline_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s: %(message)s"))
        pipeline_logger.addHandler(handler)

    pipeline_logger.propagate = False
    return pipeline_logger


logger = setup_logging()

_queue_listener: logging.handlers.QueueListener | None = None
_queue_handler: logging.Handler | None = None
_file_log_path: Path | None = None
_atexit_registered = False


def set_level(level_name: str) -> None:
    """Set the pipeline logger level from a name such as ``"DEBUG"``."""

    level = logging.getLevelName(str(level_name).upper())
    if not isinstance(level, int):
        logger.warning("Unknown logging level %r; using INFO", level_name)
        level = logging.INFO
    logger.setLevel(level)


def configure_logging(config: Mapping[str, Any]) -> Path | None:
    """Apply the ``logging_level`` and file logging keys of ``config``.

    Returns the log file path when file logging was enabled.
    """

    set_level(config.get("logging_level", "INFO"))
    if not config.get("file_logging_enabled"):
        return None
    log_path = Path(config.get("log_file") or DEFAULT_LOG_FILE)
    enable_file_logging(log_path)
    return log_path


def _shutdown_file_logging() -> None:
    global _queue_listener

    if _queue_listener is not None:
        _queue_listener.stop()
        _queue_listener = None


def enable_file_logging(log_path: Path) -> None:
    """Mirror pipeline records to ``log_path`` from a background thread.

    Capture and processing threads only enqueue records; the file write
    happens on the queue listener thread.
    """

    global _queue_listener, _queue_handler, _file_log_path, _atexit_registered

    log_path = log_path.expanduser()
    if _file_log_path == log_path and _queue_listener is not None:
        return

    _shutdown_file_logging()
    if _queue_handler is not None:
        logger.removeHandler(_queue_handler)
        _queue_handler = None

    log_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(threadName)s: %(message)s")
    )

    log_queue: queue.SimpleQueue[logging.LogRecord] = queue.SimpleQueue()
    _queue_handler = logging.handlers.QueueHandler(log_queue)
    logger.addHandler(_queue_handler)

    _queue_listener = logging.handlers.QueueListener(log_queue, file_handler)
    _queue_listener.start()
    if getattr(_queue_listener, "_thread", None) is not None:
        _queue_listener._thread.daemon = True

    _file_log_path = log_path
    if not _atexit_registered:
        atexit.register(_shutdown_file_logging)
        _atexit_registered = True


def _format_text(message: str, style: str) -> Any:
    if Text is None:
        return message
    return Text(message, style=style)


def log_error(message: str) -> None:
    logger.error(_format_text(message, style="bold red"))


def log_info(message: str, style: str = "bold white") -> None:
    logger.info(_format_text(message, style=style))


def log_warning(message: str) -> None:
    logger.warning(_format_text(message, style="bold yellow"))


def log_alert(labels: Iterable[str], haptic: bool, speak_proximity: bool) -> None:
    """Log one frame's issued alerts as a single highlighted line."""

    parts = [f"announce {label}" for label in labels]
    if haptic:
        parts.append("haptic pulse")
    if speak_proximity:
        parts.append("proximity warning")
    if not parts:
        return
    log_info("[ALERT] " + ", ".join(parts), style="bold cyan")
