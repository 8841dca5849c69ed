# Copyright 2025 GlyphyAI
#
# Use of this source code is governed by an MIT-style
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.

import logging
import os
import re
import sys
from collections.abc import Callable, Generator
from contextlib import contextmanager
from datetime import datetime
from functools import lru_cache
from typing import Any, Literal

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

verbose_logger = logging.getLogger("stepswarm")


ANSI_COLORS = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[35m",
    "RESET": "\033[0m",
    "BOLD": "\033[1m",
    "DIM": "\033[2m",
}

LEVEL_MAP: dict[LogLevel, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


HIGHLIGHT_PATTERN = re.compile(r"\[[^\[\]\s]+\]|\b[Ss]tep \d+\b")
"""Pattern matching bracketed agent names and step markers in log lines."""


class FancyFormatter(logging.Formatter):
    """Formatter that colors levels and highlights agents and steps.

    Agent names written as `[name]` and markers such as `step 2` are set in
    bold so hand-offs and step transitions stand out in a run's log.

    Format: [TIME] LEVEL | MESSAGE
    Example: [14:23:15] INFO | Switching from agent [writer] to [critic]
    """

    def __init__(self, use_colors: bool = True) -> None:
        """Initialize the formatter.

        Args:
            use_colors: Whether to emit ANSI escape codes.
        """
        super().__init__()
        self.use_colors = use_colors

    def paint(self, text: str, *styles: str) -> str:
        """Wrap text in the given ANSI styles, or return it as is without colors."""
        if not self.use_colors:
            return text

        codes = "".join(ANSI_COLORS.get(style, "") for style in styles)
        return f"{codes}{text}{ANSI_COLORS['RESET']}"

    def highlight(self, line: str, level: str) -> str:
        """Set agent names and step markers in bold within a line."""
        if not self.use_colors:
            return line

        # Each bold span resets, so the level color is restored after it
        color = ANSI_COLORS.get(level, "")
        return HIGHLIGHT_PATTERN.sub(
            lambda match: f"{ANSI_COLORS['BOLD']}{match.group(0)}{ANSI_COLORS['RESET']}{color}",
            line,
        )

    def format(self, record: logging.LogRecord) -> str:
        level = record.levelname
        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")

        first_line, *continuation = record.getMessage().split("\n")
        lines = [self.paint(self.highlight(first_line, level), level)]
        lines.extend(self.paint(f"│ {line}", "DIM") for line in continuation)

        time_label = self.paint(f"[{timestamp}]", "DIM")
        level_label = self.paint(f"{level:<8}", level, "BOLD")
        prefix = f"{time_label} {level_label}"
        return f"{prefix} │ " + "\n".join(lines)


@lru_cache(maxsize=1)
def get_log_level(default: LogLevel = "INFO") -> int:
    """Get the log level from environment or default.

    Args:
        default: Default log level if not set in environment

    Returns:
        The logging level as an int
    """
    level_name = os.getenv("STEPSWARM_LOG_LEVEL", default).upper()
    if level_name in LEVEL_MAP:
        return LEVEL_MAP[level_name]

    return LEVEL_MAP[default]


@lru_cache(maxsize=1)
def get_verbose_level(default: LogLevel = "INFO") -> LogLevel | None:
    """Get the verbose printing level from environment.

    Args:
        default: Default level if not set in environment

    Returns:
        LogLevel if specific level set, or None if disabled
    """
    verbose = os.getenv("STEPSWARM_VERBOSE", "").upper()

    if verbose.lower() in ("1", "true", "yes", "on"):
        return default

    if verbose in LEVEL_MAP:
        return verbose

    return None


@lru_cache(maxsize=len(LEVEL_MAP))
def should_print(level: LogLevel) -> bool:
    """Check if verbose printing is enabled for given level.

    Args:
        level: Log level to check

    Returns:
        True if verbose printing is enabled for this level
    """
    verbose_level = get_verbose_level()
    if verbose_level is None:
        return False

    return LEVEL_MAP[level] >= LEVEL_MAP[verbose_level]


def enable_logging(default_level: LogLevel = "INFO", use_colors: bool | None = None) -> None:
    """Configure logging for stepswarm.

    Args:
        default_level: Default log level if not set in environment
        use_colors: Whether to color the output. By default colors are used
            when stderr is a terminal and `NO_COLOR` is not set.
    """
    verbose_logger.setLevel(get_log_level(default_level))
    verbose_logger.handlers.clear()

    if use_colors is None:
        use_colors = sys.stderr.isatty() and not os.getenv("NO_COLOR")

    handler = logging.StreamHandler()
    handler.setFormatter(FancyFormatter(use_colors=use_colors))
    verbose_logger.addHandler(handler)


@contextmanager
def disable_logging() -> Generator[None, None, None]:
    """Temporarily silence all logging.

    Used around third-party calls that log noisily on recoverable problems.
    """
    previous_level = logging.root.manager.disable
    logging.disable(logging.CRITICAL)
    try:
        yield
    finally:
        logging.disable(previous_level)


def log_verbose(
    message: str,
    *args: Any,
    level: LogLevel = "INFO",
    print_fn: Callable[[str], None] | None = print,
    **kwargs: Any,
) -> None:
    """Log a message with optional printing.

    Args:
        message: The message to log (supports %-style args and multiline)
        *args: Additional args passed to the message (formatting)
        level: Log level to use
        print_fn: Optional function to print the message
        **kwargs: Additional kwargs passed to logger

    Environment Variables:
        STEPSWARM_LOG_LEVEL: Set logging level (default: "INFO")
        STEPSWARM_VERBOSE: Enable printing for specified level and above.
                           Use level name or "1"/"true"/"yes"/"on" for INFO
    """
    log_fn = getattr(verbose_logger, level.lower())
    log_fn(message, *args, **kwargs)

    if print_fn and should_print(level):
        formatted_message = message % args if args else message
        print_fn(formatted_message)
