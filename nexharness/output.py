"""Colour choice, log formatting and styled test-name output."""

from __future__ import annotations

import enum
import logging
import os
import sys
from dataclasses import dataclass
from typing import IO, Optional, TextIO

NO_HEADING_TARGET = "cargo_nextest.no_heading"
LOG_ENV_VAR = "NEXTEST_LOG"

_LOGGER_NAME = "cargo_nextest"
_OFF_LEVEL = logging.CRITICAL + 10
_LEVELS = {
    "off": _OFF_LEVEL,
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
    "trace": logging.DEBUG - 5,
}

_color_override: Optional[bool] = None
_installed_handler: Optional[logging.Handler] = None


def _supports_color(stream: Optional[IO]) -> bool:
    """Guess whether ``stream`` understands ANSI colours."""
    force = os.environ.get("FORCE_COLOR") or os.environ.get("CLICOLOR_FORCE")
    if force is not None and force != "0":
        return True
    if os.environ.get("NO_COLOR"):
        return False
    if stream is None:
        return False
    isatty = getattr(stream, "isatty", None)
    if isatty is None or not isatty():
        return False
    return os.environ.get("TERM") != "dumb"


def _paint(text: str, style: Optional[str]) -> str:
    if not style:
        return text
    return f"\x1b[{style}m{text}\x1b[0m"


def _level_from_env(value: Optional[str]) -> int:
    """Read a log level from a spec such as ``warn`` or ``cargo_nextest=debug``."""
    level = logging.ERROR
    if not value:
        return level
    for entry in value.split(","):
        entry = entry.strip().lower()
        if not entry:
            continue
        target, sep, name = entry.partition("=")
        if not sep:
            name, target = target, ""
        if target and not _LOGGER_NAME.startswith(target.replace("::", ".")):
            continue
        if name in _LEVELS:
            level = _LEVELS[name]
    return level


class Color(enum.Enum):
    """When to produce coloured output."""

    AUTO = "auto"
    ALWAYS = "always"
    NEVER = "never"

    @classmethod
    def parse(cls, s: str) -> "Color":
        """Parse ``auto``, ``always`` or ``never``; raise ValueError otherwise."""
        try:
            return cls(s)
        except ValueError:
            raise ValueError(
                f"{s} is not a valid option, expected `auto`, `always` or `never`"
            ) from None

    def init(self) -> None:
        """Apply the colour override and set up logging to stderr."""
        global _color_override, _installed_handler
        _color_override = {Color.AUTO: None, Color.ALWAYS: True, Color.NEVER: False}[self]

        logger = logging.getLogger(_LOGGER_NAME)
        if _installed_handler is not None:
            logger.removeHandler(_installed_handler)
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(NextestLogFormatter())
        handler.addFilter(
            lambda record: record.name == NO_HEADING_TARGET
            or record.levelno >= logging.DEBUG
        )
        logger.addHandler(handler)
        logger.setLevel(_level_from_env(os.environ.get(LOG_ENV_VAR)))
        logger.propagate = False
        _installed_handler = handler

    def should_colorize(self, stream: Optional[TextIO]) -> bool:
        """Return True if output to ``stream`` should be coloured."""
        if self is Color.ALWAYS:
            return True
        if self is Color.NEVER:
            return False
        return _supports_color(stream)

    def to_arg(self) -> str:
        """Return the matching ``--color`` argument for cargo."""
        return f"--color={self.value}"


@dataclass(frozen=True)
class OutputContext:
    """Output settings shared by the commands that are run."""

    color: Color = Color.AUTO


_HEADINGS = (
    (logging.ERROR, "error", "1;31"),
    (logging.WARNING, "warning", "1;33"),
    (logging.INFO, "info", "1"),
    (logging.DEBUG, "debug", "1"),
)


class NextestLogFormatter(logging.Formatter):
    """Formats records as ``<level>: <message>``, with a coloured level."""

    def __init__(self, colorize: Optional[bool] = None) -> None:
        super().__init__()
        self._colorize = colorize

    def _should_colorize(self) -> bool:
        if self._colorize is not None:
            return self._colorize
        if _color_override is not None:
            return _color_override
        return _supports_color(sys.stderr)

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if record.name == NO_HEADING_TARGET:
            return message
        for level, heading, style in _HEADINGS:
            if record.levelno >= level:
                if self._should_colorize():
                    heading = _paint(heading, style)
                return f"{heading}: {message}"
        return ""


def write_test_name(name: str, style: Optional[str], writer: TextIO) -> None:
    """Write a test name, styling the part after the last ``::`` with an SGR code."""
    rest, sep, trailing = name.rpartition("::")
    if sep:
        writer.write(f"{rest}::")
    writer.write(_paint(trailing, style))