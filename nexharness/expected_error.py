"""Errors that nextest expects and reports with a specific exit code."""

from __future__ import annotations

import enum
import logging
import os
import re
import sys
from typing import Iterable, Optional

from .errors import ConfigParseError, ProfileNotFound
from .metadata import NextestExitCode

_LOG = logging.getLogger("cargo_nextest")
_NO_HEADING_LOG = logging.getLogger("cargo_nextest.no_heading")

_ESCAPE_PATTERN = re.compile(r"([^A-Za-z0-9_\-.,:/@\n])")


def _shell_escape(arg: str) -> str:
    if not arg:
        return "''"
    escaped = _ESCAPE_PATTERN.sub(r"\\\1", arg)
    return escaped.replace("\n", "'\n'")


def _bold(text: str) -> str:
    stream = sys.stderr
    if "NO_COLOR" not in os.environ and stream is not None and stream.isatty():
        return f"\x1b[1m{text}\x1b[0m"
    return text


class ExpectedErrorKind(enum.Enum):
    """The kinds of expected failure."""

    CARGO_METADATA_FAILED = "cargo metadata failed"
    PROFILE_NOT_FOUND = "profile not found"
    CONFIG_PARSE_ERROR = "config read error"
    BUILD_FAILED = "build failed"
    TEST_RUN_FAILED = "test run failed"


_EXIT_CODES = {
    ExpectedErrorKind.CARGO_METADATA_FAILED: NextestExitCode.CARGO_METADATA_FAILED,
    ExpectedErrorKind.PROFILE_NOT_FOUND: NextestExitCode.SETUP_ERROR,
    ExpectedErrorKind.CONFIG_PARSE_ERROR: NextestExitCode.SETUP_ERROR,
    ExpectedErrorKind.BUILD_FAILED: NextestExitCode.BUILD_FAILED,
    ExpectedErrorKind.TEST_RUN_FAILED: NextestExitCode.TEST_RUN_FAILED,
}


class ExpectedError(Exception):
    """A failure in a program nextest ran, or in the user's setup, not in nextest itself."""

    def __init__(
        self,
        kind: ExpectedErrorKind,
        *,
        err: Optional[BaseException] = None,
        escaped_command: Iterable[str] = (),
        exit_code: Optional[int] = None,
    ) -> None:
        self.kind = kind
        self.err = err
        self.escaped_command = list(escaped_command)
        self.exit_code = exit_code
        super().__init__(f"{kind.value}\n")
        if err is not None:
            self.__cause__ = err

    @classmethod
    def cargo_metadata_failed(cls) -> "ExpectedError":
        return cls(ExpectedErrorKind.CARGO_METADATA_FAILED)

    @classmethod
    def profile_not_found(cls, err: ProfileNotFound) -> "ExpectedError":
        return cls(ExpectedErrorKind.PROFILE_NOT_FOUND, err=err)

    @classmethod
    def config_parse_error(cls, err: ConfigParseError) -> "ExpectedError":
        return cls(ExpectedErrorKind.CONFIG_PARSE_ERROR, err=err)

    @classmethod
    def build_failed(cls, command: Iterable[str], exit_code: Optional[int]) -> "ExpectedError":
        """The build command failed; its arguments are shell-escaped for display."""
        return cls(
            ExpectedErrorKind.BUILD_FAILED,
            escaped_command=(_shell_escape(str(arg)) for arg in command),
            exit_code=exit_code,
        )

    @classmethod
    def test_run_failed(cls) -> "ExpectedError":
        return cls(ExpectedErrorKind.TEST_RUN_FAILED)

    def process_exit_code(self) -> int:
        """Return the exit code for the process."""
        return int(_EXIT_CODES[self.kind])

    def display_to_stderr(self) -> None:
        """Log this error, followed by its chain of causes."""
        next_error: Optional[BaseException] = None
        if self.kind is ExpectedErrorKind.CARGO_METADATA_FAILED:
            # The error printed by `cargo metadata` is enough.
            pass
        elif self.kind in (
            ExpectedErrorKind.PROFILE_NOT_FOUND,
            ExpectedErrorKind.CONFIG_PARSE_ERROR,
        ):
            _LOG.error("%s", self.err)
            next_error = getattr(self.err, "__cause__", None)
        elif self.kind is ExpectedErrorKind.BUILD_FAILED:
            if self.exit_code is None:
                with_code = ""
            else:
                with_code = f" with code {_bold(str(self.exit_code))}"
            _LOG.error(
                "command %s exited%s", _bold(" ".join(self.escaped_command)), with_code
            )
        else:
            _LOG.error("test run failed")

        while next_error is not None:
            _NO_HEADING_LOG.error("\nCaused by:\n  %s", next_error)
            next_error = next_error.__cause__