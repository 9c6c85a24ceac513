"""
Logging utilities for the command line and interactive front ends.
"""
from __future__ import annotations

import logging
from pathlib import Path
from queue import Empty, Queue
from typing import List, Optional, Tuple


class QueueLogHandler(logging.Handler):
    """
    A logging handler that sends log records to a queue.

    Used to show log messages inside an interactive front end instead of
    writing over the screen.
    """

    def __init__(self, log_queue: Queue, level: int = logging.INFO):
        super().__init__(level)
        self.log_queue = log_queue
        self.setFormatter(logging.Formatter("%(message)s"))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = self.format(record)
            level = record.levelname
            # Front ends only distinguish INFO / WARNING / ERROR
            if level == "DEBUG":
                level = "INFO"
            self.log_queue.put((message, level))
        except Exception:
            self.handleError(record)


def attach_queue_handler(log_queue: Queue, logger_name: Optional[str] = "termquiz") -> QueueLogHandler:
    """
    Attach a QueueLogHandler to the specified logger.

    Args:
        log_queue: Queue to send log messages to.
        logger_name: Name of logger to attach to. None = root logger.

    Returns:
        The attached handler (for later removal).
    """
    logger = logging.getLogger(logger_name)
    handler = QueueLogHandler(log_queue)
    logger.addHandler(handler)
    return handler


def detach_queue_handler(handler: QueueLogHandler, logger_name: Optional[str] = "termquiz") -> None:
    """Remove a QueueLogHandler from the specified logger."""
    logging.getLogger(logger_name).removeHandler(handler)


def drain_log_queue(log_queue: Queue) -> List[Tuple[str, str]]:
    """Pop every pending (message, level) pair without blocking."""
    messages: List[Tuple[str, str]] = []
    while True:
        try:
            messages.append(log_queue.get_nowait())
        except Empty:
            return messages


def configure_logging(verbose: bool = False, log_file: Optional[Path] = None) -> None:
    """
    Configure logging for the command line.

    Messages go to stderr as bare text. With ``log_file`` a second handler
    records timestamped DEBUG output for later inspection.

    Args:
        verbose: Show DEBUG messages on stderr
        log_file: Optional path of a detailed log file
    """
    console_level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=console_level, format="%(message)s", force=True)
    root = logging.getLogger()
    for handler in root.handlers:
        handler.setLevel(console_level)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        root.addHandler(file_handler)
        root.setLevel(logging.DEBUG)
