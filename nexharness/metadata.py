"""Machine-readable test lists, semantic exit codes and the ``cargo nextest list`` command."""

from __future__ import annotations

import enum
import json
import os
import subprocess
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional


class NextestExitCode(enum.IntEnum):
    """Documented exit codes for expected ``cargo nextest`` failures.

    Unknown or unexpected failures always exit with code 1.
    """

    SETUP_ERROR = 96
    TEST_RUN_FAILED = 100
    BUILD_FAILED = 101
    CARGO_METADATA_FAILED = 102


class CommandError(Exception):
    """Running a ``cargo nextest`` command failed."""

    class Kind(enum.Enum):
        EXEC = "exec"
        COMMAND_FAILED = "command-failed"
        JSON = "json"

    def __init__(
        self,
        kind: "CommandError.Kind",
        text: str,
        *,
        error: Optional[BaseException] = None,
        exit_code: Optional[int] = None,
        stderr: bytes = b"",
    ) -> None:
        self.kind = kind
        self.error = error
        self.exit_code = exit_code
        self.stderr = stderr
        super().__init__(text)
        if error is not None:
            self.__cause__ = error

    @classmethod
    def exec_failed(cls, error: BaseException) -> "CommandError":
        """The process could not be executed."""
        return cls(cls.Kind.EXEC, "`cargo nextest` process execution failed", error=error)

    @classmethod
    def command_failed(cls, exit_code: Optional[int], stderr: bytes) -> "CommandError":
        """The process exited with a non-zero code."""
        code_text = "" if exit_code is None else f" with exit code {exit_code}"
        stderr_text = stderr.decode("utf-8", errors="replace")
        return cls(
            cls.Kind.COMMAND_FAILED,
            f"`cargo nextest` failed{code_text}, stderr:\n{stderr_text}\n",
            exit_code=exit_code,
            stderr=stderr,
        )

    @classmethod
    def json(cls, error: BaseException) -> "CommandError":
        """The JSON output could not be parsed."""
        return cls(cls.Kind.JSON, "parsing `cargo nextest` JSON output failed", error=error)


def _require_mapping(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ValueError(f"expected a JSON object for {what}")
    return data


def _get(data: Mapping[str, Any], key: str) -> Any:
    try:
        return data[key]
    except KeyError:
        raise ValueError(f"missing field `{key}`") from None


def _get_str(data: Mapping[str, Any], key: str) -> str:
    value = _get(data, key)
    if not isinstance(value, str):
        raise ValueError(f"field `{key}` must be a string")
    return value


def _get_bool(data: Mapping[str, Any], key: str) -> bool:
    value = _get(data, key)
    if not isinstance(value, bool):
        raise ValueError(f"field `{key}` must be a boolean")
    return value


def _get_count(data: Mapping[str, Any], key: str) -> int:
    value = _get(data, key)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"field `{key}` must be a non-negative integer")
    return value


def _get_mapping(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    return _require_mapping(_get(data, key), f"field `{key}`")


_MISMATCH_TEXT = {
    "ignored": "does not match the run-ignored option",
    "string": "does not match the provided string filters",
    "partition": "is in a different partition",
}


class MismatchReason(enum.Enum):
    """Why a test does not match a filter."""

    IGNORED = "ignored"
    STRING = "string"
    PARTITION = "partition"

    def __str__(self) -> str:
        return _MISMATCH_TEXT[self.value]


@dataclass(frozen=True)
class FilterMatch:
    """Whether a test matches the filter; ``reason`` is set when it does not."""

    reason: Optional[MismatchReason] = None

    @classmethod
    def matches(cls) -> "FilterMatch":
        return cls(None)

    @classmethod
    def mismatch(cls, reason: MismatchReason) -> "FilterMatch":
        return cls(MismatchReason(reason))

    def is_match(self) -> bool:
        """Return True if the test matches the filter."""
        return self.reason is None

    @classmethod
    def from_dict(cls, data: Any) -> "FilterMatch":
        data = _require_mapping(data, "filter-match")
        status = _get_str(data, "status")
        if status == "matches":
            return cls.matches()
        if status == "mismatch":
            reason = _get_str(data, "reason")
            try:
                return cls.mismatch(MismatchReason(reason))
            except ValueError:
                raise ValueError(f"unknown variant `{reason}` for mismatch reason") from None
        raise ValueError(f"unknown variant `{status}` for filter-match status")

    def to_dict(self) -> dict[str, Any]:
        if self.reason is None:
            return {"status": "matches"}
        return {"status": "mismatch", "reason": self.reason.value}


@dataclass(frozen=True)
class RustTestCaseSummary:
    """Information about one test case within a test binary."""

    ignored: bool
    filter_match: FilterMatch

    @classmethod
    def from_dict(cls, data: Any) -> "RustTestCaseSummary":
        data = _require_mapping(data, "test case")
        return cls(
            ignored=_get_bool(data, "ignored"),
            filter_match=FilterMatch.from_dict(_get(data, "filter-match")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"ignored": self.ignored, "filter-match": self.filter_match.to_dict()}


@dataclass
class RustTestSuiteSummary:
    """The tests within one test binary of a package."""

    package_name: str
    binary_name: str
    package_id: str
    binary_path: str
    cwd: str
    testcases: dict[str, RustTestCaseSummary] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> "RustTestSuiteSummary":
        data = _require_mapping(data, "test suite")
        testcases = {
            str(name): RustTestCaseSummary.from_dict(case)
            for name, case in _get_mapping(data, "testcases").items()
        }
        return cls(
            package_name=_get_str(data, "package-name"),
            binary_name=_get_str(data, "binary-name"),
            package_id=_get_str(data, "package-id"),
            binary_path=_get_str(data, "binary-path"),
            cwd=_get_str(data, "cwd"),
            testcases=testcases,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "package-name": self.package_name,
            "binary-name": self.binary_name,
            "package-id": self.package_id,
            "binary-path": self.binary_path,
            "cwd": self.cwd,
            "testcases": {
                name: self.testcases[name].to_dict() for name in sorted(self.testcases)
            },
        }


@dataclass
class TestListSummary:
    """The root of a serializable list of tests across all test binaries."""

    __test__ = False

    test_count: int = 0
    rust_suites: dict[str, RustTestSuiteSummary] = field(default_factory=dict)

    @classmethod
    def parse_json(cls, json_text: str | bytes) -> "TestListSummary":
        """Parse the output of ``cargo nextest list --format json``; raise ValueError if invalid."""
        return cls.from_dict(json.loads(json_text))

    @classmethod
    def from_dict(cls, data: Any) -> "TestListSummary":
        data = _require_mapping(data, "test list")
        suites = {
            str(key): RustTestSuiteSummary.from_dict(suite)
            for key, suite in _get_mapping(data, "rust-suites").items()
        }
        return cls(test_count=_get_count(data, "test-count"), rust_suites=suites)

    def to_dict(self) -> dict[str, Any]:
        return {
            "test-count": self.test_count,
            "rust-suites": {
                key: self.rust_suites[key].to_dict() for key in sorted(self.rust_suites)
            },
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"))


class ListCommand:
    """Builds and runs ``cargo nextest list --format=json``."""

    def __init__(self) -> None:
        self._cargo_path: Optional[str] = None
        self._manifest_path: Optional[str] = None
        self._current_dir: Optional[str] = None
        self._args: list[str] = []

    def cargo_path(self, path: str | os.PathLike) -> "ListCommand":
        """Set the cargo executable; defaults to ``$CARGO`` or ``cargo``."""
        self._cargo_path = os.fspath(path)
        return self

    def manifest_path(self, path: str | os.PathLike) -> "ListCommand":
        """Set the path to ``Cargo.toml``."""
        self._manifest_path = os.fspath(path)
        return self

    def current_dir(self, path: str | os.PathLike) -> "ListCommand":
        """Set the working directory of the process."""
        self._current_dir = os.fspath(path)
        return self

    def add_arg(self, arg: str) -> "ListCommand":
        self._args.append(str(arg))
        return self

    def add_args(self, args: Iterable[str]) -> "ListCommand":
        for arg in args:
            self.add_arg(arg)
        return self

    def cargo_command(self) -> list[str]:
        """Return the argument vector that ``exec`` runs."""
        if self._cargo_path is not None:
            cargo = self._cargo_path
        else:
            cargo = os.environ.get("CARGO", "cargo")
        argv = [cargo]
        if self._manifest_path is not None:
            argv += ["--manifest-path", self._manifest_path]
        argv += ["nextest", "list", "--format=json"]
        argv += self._args
        return argv

    def exec(self) -> TestListSummary:
        """Run the command and parse its output; raise CommandError on failure."""
        try:
            completed = subprocess.run(
                self.cargo_command(),
                cwd=self._current_dir,
                capture_output=True,
                check=False,
            )
        except OSError as exc:
            raise CommandError.exec_failed(exc) from exc

        if completed.returncode != 0:
            code = completed.returncode if completed.returncode >= 0 else None
            raise CommandError.command_failed(code, completed.stderr)

        try:
            return TestListSummary.parse_json(completed.stdout)
        except ValueError as exc:
            raise CommandError.json(exc) from exc