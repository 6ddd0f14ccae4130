"""Errors raised while configuring, listing and running tests."""

from __future__ import annotations

import enum
import os
from typing import Iterable, Optional


class ConfigParseError(Exception):
    """The nextest configuration could not be parsed."""

    def __init__(self, config_file: str | os.PathLike, err: BaseException) -> None:
        self.config_file = os.fspath(config_file)
        self.err = err
        super().__init__(f"failed to parse nextest config at `{self.config_file}`")
        self.__cause__ = err


class ProfileNotFound(Exception):
    """A profile was requested that the configuration does not define."""

    def __init__(self, profile: str, all_profiles: Iterable[str]) -> None:
        self.profile = str(profile)
        self.all_profiles = sorted(str(name) for name in all_profiles)
        super().__init__(
            f"profile '{self.profile}' not found "
            f"(known profiles: {', '.join(self.all_profiles)})"
        )


class PartitionerBuilderParseError(ValueError):
    """A partition specification such as ``hash:1/2`` could not be parsed."""

    def __init__(self, expected_format: Optional[str], message: str) -> None:
        self.expected_format = expected_format
        self.message = message
        if expected_format is None:
            text = message
        else:
            text = f'partition must be in the format "{expected_format}":\n{message}'
        super().__init__(text)


class FromMessagesError(Exception):
    """Reading Cargo's JSON messages or querying the package graph failed."""

    class Kind(enum.Enum):
        READ_MESSAGES = "error reading Cargo JSON messages"
        PACKAGE_GRAPH = "error querying package graph"

    def __init__(self, kind: "FromMessagesError.Kind", error: BaseException) -> None:
        self.kind = kind
        self.error = error
        super().__init__(kind.value)
        self.__cause__ = error

    @classmethod
    def read_messages(cls, error: BaseException) -> "FromMessagesError":
        return cls(cls.Kind.READ_MESSAGES, error)

    @classmethod
    def package_graph(cls, error: BaseException) -> "FromMessagesError":
        return cls(cls.Kind.PACKAGE_GRAPH, error)


class ParseTestListError(Exception):
    """Gathering or parsing the list of tests from a test binary failed."""

    class Kind(enum.Enum):
        COMMAND = "command"
        PARSE_LINE = "parse-line"

    def __init__(
        self,
        kind: "ParseTestListError.Kind",
        text: str,
        *,
        command: Optional[str] = None,
        error: Optional[BaseException] = None,
        message: Optional[str] = None,
        full_output: Optional[str] = None,
    ) -> None:
        self.kind = kind
        self.command_line = command
        self.error = error
        self.message = message
        self.full_output = full_output
        super().__init__(text)
        if error is not None:
            self.__cause__ = error

    @classmethod
    def command(cls, command: str, error: BaseException) -> "ParseTestListError":
        """Running the command that lists tests failed."""
        return cls(
            cls.Kind.COMMAND,
            f"running '{command}' failed",
            command=command,
            error=error,
        )

    @classmethod
    def parse_line(cls, message: str, full_output: str) -> "ParseTestListError":
        """A line of the listing output could not be parsed."""
        return cls(
            cls.Kind.PARSE_LINE,
            f"{message}\nfull output:\n{full_output}",
            message=message,
            full_output=full_output,
        )


class WriteTestListError(Exception):
    """Writing the test list to its output failed."""

    class Kind(enum.Enum):
        IO = "error writing to output"
        JSON = "error serializing to JSON"

    def __init__(self, kind: "WriteTestListError.Kind", error: BaseException) -> None:
        self.kind = kind
        self.error = error
        super().__init__(kind.value)
        self.__cause__ = error

    @classmethod
    def io(cls, error: BaseException) -> "WriteTestListError":
        return cls(cls.Kind.IO, error)

    @classmethod
    def json(cls, error: BaseException) -> "WriteTestListError":
        return cls(cls.Kind.JSON, error)


class JunitError(Exception):
    """Producing JUnit XML failed; the cause carries the details."""

    def __init__(self, err: BaseException) -> None:
        self.err = err
        super().__init__("")
        self.__cause__ = err


class WriteEventError(Exception):
    """Writing a test event to its output, the file system or a JUnit report failed."""

    class Kind(enum.Enum):
        IO = "io"
        FS = "fs"
        JUNIT = "junit"

    def __init__(
        self,
        kind: "WriteEventError.Kind",
        error: BaseException,
        file: Optional[str | os.PathLike] = None,
    ) -> None:
        self.kind = kind
        self.error = error
        self.file = None if file is None else os.fspath(file)
        if kind is self.Kind.IO:
            text = "error writing to output"
        elif kind is self.Kind.FS:
            text = f"error operating on path {self.file}"
        else:
            text = f"error writing JUnit output to {self.file}"
        super().__init__(text)
        self.__cause__ = error

    @classmethod
    def io(cls, error: BaseException) -> "WriteEventError":
        return cls(cls.Kind.IO, error)

    @classmethod
    def fs(cls, file: str | os.PathLike, error: BaseException) -> "WriteEventError":
        return cls(cls.Kind.FS, error, file)

    @classmethod
    def junit(cls, file: str | os.PathLike, error: JunitError) -> "WriteEventError":
        return cls(cls.Kind.JUNIT, error, file)