from __future__ import annotations

import logging
import threading
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Callable, ClassVar, TypeVar, override

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(title_tag)s%(message)s"

_R = TypeVar("_R")

_thread_state = threading.local()


def set_title_label(folder_name: str) -> None:
    _thread_state.title_label = folder_name


def clear_title_label() -> None:
    if hasattr(_thread_state, "title_label"):
        delattr(_thread_state, "title_label")


def current_title_label() -> str | None:
    return getattr(_thread_state, "title_label", None)


def with_title_label(func: Callable[[str], _R]) -> Callable[[str], _R]:
    """Tag every record logged while ``func(folder_name)`` runs with that folder."""

    def run(folder_name: str) -> _R:
        set_title_label(folder_name)
        try:
            return func(folder_name)
        finally:
            clear_title_label()

    return run


class _TitleLabelFilter(logging.Filter):
    @override
    def filter(self, record: logging.LogRecord) -> bool:
        label = current_title_label()
        record.title_tag = f"<{label}> " if label else ""
        return True


class _DemoteSchedulerInfoFilter(logging.Filter):
    LOGGER_NAMES: ClassVar[tuple[str, ...]] = (
        "apscheduler.scheduler",
        "apscheduler.executors.default",
    )

    @override
    def filter(self, record: logging.LogRecord) -> bool:
        if record.name in self.LOGGER_NAMES and record.levelno == logging.INFO:
            record.levelno = logging.DEBUG
            record.levelname = logging.getLevelName(logging.DEBUG)
        return True


def resolve_level(level: str | None) -> int:
    value = getattr(logging, str(level or "info").upper(), None)
    return value if isinstance(value, int) else logging.INFO


def configure_logging(level: str | None, error_log_path: Path) -> None:
    error_log_path.parent.mkdir(parents=True, exist_ok=True)
    resolved = resolve_level(level)

    root = logging.getLogger()
    root.setLevel(resolved)
    root.handlers.clear()

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    title_filter = _TitleLabelFilter()

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    console.setLevel(resolved)
    console.addFilter(title_filter)

    error_file = RotatingFileHandler(
        error_log_path,
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    error_file.setFormatter(formatter)
    error_file.setLevel(logging.WARNING)
    error_file.addFilter(title_filter)

    root.addHandler(console)
    root.addHandler(error_file)

    # The filter must run on the emitting logger, before handler levels apply.
    for logger_name in _DemoteSchedulerInfoFilter.LOGGER_NAMES:
        logger = logging.getLogger(logger_name)
        logger.filters.clear()
        logger.addFilter(_DemoteSchedulerInfoFilter())
