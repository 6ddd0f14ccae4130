"""A small harness for data-driven tests: one test case per matching fixture file."""

from __future__ import annotations

import argparse
import enum
import os
import queue
import re
import sys
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterator, Optional, Sequence, TextIO

TestFn = Callable[[Path], object]

_DEFAULT_TEST_THREADS = 32
_THREADS_ENV_VAR = "RUST_TEST_THREADS"
_GREEN = "32"
_RED = "31"


class Format(enum.Enum):
    """How output is formatted."""

    PRETTY = "pretty"
    TERSE = "terse"
    JSON = "json"


def _parse_format(text: str) -> Format:
    try:
        return Format(text.lower())
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"invalid value '{text}' (possible values: Pretty, Terse, Json)"
        ) from None


def _parse_threads(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number of threads: '{text}'") from None
    if value <= 0:
        raise argparse.ArgumentTypeError("number of threads must be greater than zero")
    return value


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Datatest-harness for running data-driven tests", allow_abbrev=False
    )
    parser.add_argument(
        "filter",
        nargs="?",
        default=None,
        help="only run tests whose names contain this string",
    )
    parser.add_argument(
        "--exact", dest="filter_exact", action="store_true",
        help="exactly match filters rather than by substring",
    )
    parser.add_argument(
        "--test-threads", type=_parse_threads, default=None,
        help="number of threads used for running tests in parallel",
    )
    parser.add_argument("-q", "--quiet", action="store_true", help="output minimal information")
    parser.add_argument("--nocapture", action="store_true", help="no-op")
    parser.add_argument("--list", dest="list_tests", action="store_true", help="list all tests")
    parser.add_argument(
        "--ignored", action="store_true",
        help="list or run ignored tests (always empty)",
    )
    parser.add_argument("--include-ignored", action="store_true", help="no-op")
    parser.add_argument("--force-run-in-process", action="store_true", help="no-op")
    parser.add_argument("--exclude-should-panic", action="store_true", help="no-op")
    parser.add_argument("--test", action="store_true", help="no-op")
    parser.add_argument("--bench", action="store_true", help="no-op")
    parser.add_argument("--logfile", default=None, help="no-op")
    parser.add_argument("--skip", action="append", default=[], help="no-op")
    parser.add_argument("--show-output", action="store_true", help="no-op")
    parser.add_argument("--color", default=None, help="no-op")
    parser.add_argument(
        "--format", type=_parse_format, default=Format.PRETTY,
        help="pretty = verbose output; terse = one character per test; json is unsupported",
    )
    parser.add_argument("--report-time", default=None, help="no-op")
    parser.add_argument("--ensure-time", action="store_true", help="no-op")
    return parser


@dataclass
class TestOpts:
    """Command-line options understood by the harness."""

    __test__ = False

    filter: Optional[str] = None
    filter_exact: bool = False
    test_threads: int = _DEFAULT_TEST_THREADS
    quiet: bool = False
    nocapture: bool = False
    list_tests: bool = False
    ignored: bool = False
    include_ignored: bool = False
    force_run_in_process: bool = False
    exclude_should_panic: bool = False
    test: bool = False
    bench: bool = False
    logfile: Optional[str] = None
    skip: list[str] = field(default_factory=list)
    show_output: bool = False
    color: Optional[str] = None
    format: Format = Format.PRETTY
    report_time: Optional[str] = None
    ensure_time: bool = False

    @classmethod
    def parse(cls, argv: Optional[Sequence[str]] = None) -> "TestOpts":
        """Parse command-line arguments; exits with a usage message when they are invalid."""
        parser = _build_parser()
        namespace = parser.parse_args(list(sys.argv[1:] if argv is None else argv))
        values = vars(namespace)
        if values["test_threads"] is None:
            env_value = os.environ.get(_THREADS_ENV_VAR)
            if env_value is None:
                values["test_threads"] = _DEFAULT_TEST_THREADS
            else:
                try:
                    values["test_threads"] = _parse_threads(env_value)
                except argparse.ArgumentTypeError as exc:
                    parser.error(f"{_THREADS_ENV_VAR}: {exc}")
        return cls(**values)


class TestResult(enum.Enum):
    """The outcome of one test."""

    __test__ = False

    OK = "ok"
    FAILED = "failed"
    FAILED_WITH_MSG = "failed-with-msg"


def _use_color(stream: TextIO) -> bool:
    if os.environ.get("NO_COLOR") or os.environ.get("TERM") == "dumb":
        return False
    isatty = getattr(stream, "isatty", None)
    return bool(isatty is not None and isatty())


class TestSummary:
    """Writes per-test results and the final summary, and counts outcomes."""

    __test__ = False

    def __init__(
        self,
        total: int,
        filtered_out: int,
        stream: Optional[TextIO] = None,
        colorize: Optional[bool] = None,
    ) -> None:
        self.stream = sys.stdout if stream is None else stream
        self.colorize = _use_color(self.stream) if colorize is None else colorize
        self.total = total
        self.filtered_out = filtered_out
        self.passed = 0
        self.failed: list[str] = []

    def _write_colored(self, text: str, color: str) -> None:
        if self.colorize:
            self.stream.write(f"\x1b[{color}m{text}\x1b[0m")
        else:
            self.stream.write(text)

    def _write_ok(self) -> None:
        self._write_colored("ok", _GREEN)

    def _write_failed(self) -> None:
        self._write_colored("FAILED", _RED)

    def handle_result(
        self, name: str, result: TestResult, message: Optional[str] = None
    ) -> None:
        """Record and print the outcome of one test."""
        self.stream.write(f"test {name} ... ")
        if result is TestResult.OK:
            self.passed += 1
            self._write_ok()
        else:
            self.failed.append(name)
            self._write_failed()
            if result is TestResult.FAILED_WITH_MSG:
                self.stream.write("\n")
                self.stream.write(f"Error: {message}")
        self.stream.write("\n")

    def write_starting_msg(self) -> None:
        self.stream.write("\n")
        self.stream.write(f"running {self.total - self.filtered_out} tests\n")

    def write_summary(self) -> None:
        """Print the failing tests, if any, and the overall counts."""
        if self.failed:
            self.stream.write("\nfailures:\n")
            for name in self.failed:
                self.stream.write(f"    {name}\n")
        self.stream.write("\ntest result: ")
        if self.failed:
            self._write_failed()
        else:
            self._write_ok()
        self.stream.write(
            f". {self.passed} passed; {len(self.failed)} failed; "
            f"{self.filtered_out} filtered out\n"
        )
        self.stream.write("\n")

    def success(self) -> bool:
        return not self.failed


@dataclass
class _DataTest:
    name: str
    testfn: Callable[[], object]


def _walk_files(directory: Path) -> Iterator[Path]:
    with os.scandir(directory) as scanner:
        entries = sorted(scanner, key=lambda entry: entry.name)
    subdirs = []
    for entry in entries:
        if entry.is_dir(follow_symlinks=False):
            subdirs.append(entry)
        elif entry.is_file(follow_symlinks=False) and not entry.name.startswith("."):
            yield Path(entry.path)
    for entry in subdirs:
        yield from _walk_files(Path(entry.path))


def iterate_directory(path: str | os.PathLike) -> Iterator[Path]:
    """Yield every regular file under ``path``, recursively, skipping hidden files."""
    root = Path(path)
    if root.is_file() and not root.is_symlink():
        if not root.name.startswith("."):
            yield root
        return
    yield from _walk_files(root)


def derive_test_name(
    root: str | os.PathLike, path: str | os.PathLike, test_name: str
) -> str:
    """Return ``<test_name>::<path relative to root>``."""
    try:
        relative = Path(path).relative_to(Path(root))
    except ValueError:
        raise ValueError(
            f"failed to strip prefix '{os.fspath(root)}' from path '{os.fspath(path)}'"
        ) from None
    return f"{test_name}::{relative}"


@dataclass
class Requirements:
    """A test function, its name, a fixture directory and a pattern selecting files."""

    test: TestFn
    test_name: str
    root: str
    pattern: str

    def expand(self) -> list[_DataTest]:
        """Create one test per file under ``root`` whose path matches ``pattern``."""
        try:
            regex = re.compile(self.pattern)
        except re.error:
            raise ValueError(f"invalid regular expression: '{self.pattern}'") from None

        testfn = self.test
        tests = [
            _DataTest(
                name=derive_test_name(self.root, path, self.test_name),
                testfn=lambda path=path: testfn(path),
            )
            for path in iterate_directory(self.root)
            if regex.search(str(path))
        ]
        # Catch typos in the pattern instead of silently running nothing.
        if not tests:
            raise RuntimeError(
                f"no test cases found for test '{self.test_name}'. "
                f"Scanned directory: '{self.root}' with pattern '{self.pattern}'"
            )
        return tests


def _run_test(test: _DataTest, results: "queue.Queue[tuple[str, TestResult, Optional[str]]]") -> None:
    def work() -> None:
        try:
            test.testfn()
        except AssertionError:
            results.put((test.name, TestResult.FAILED, None))
        except Exception as exc:
            results.put((test.name, TestResult.FAILED_WITH_MSG, repr(exc)))
        except BaseException:
            results.put((test.name, TestResult.FAILED, None))
        else:
            results.put((test.name, TestResult.OK, None))

    threading.Thread(target=work, name=test.name, daemon=True).start()


def run_tests(
    options: TestOpts, tests: Sequence[_DataTest], stream: Optional[TextIO] = None
) -> bool:
    """Run the tests that pass the filter in parallel; return True if all passed."""
    total = len(tests)
    if options.filter is None:
        remaining = list(tests)
    else:
        if options.filter_exact:
            selected = [t for t in tests if t.name == options.filter]
        else:
            selected = [t for t in tests if options.filter in t.name]
        remaining = selected[::-1]

    summary = TestSummary(total, total - len(remaining), stream)
    if not options.quiet:
        summary.write_starting_msg()

    results: "queue.Queue[tuple[str, TestResult, Optional[str]]]" = queue.Queue()
    pending = 0
    while pending > 0 or remaining:
        while pending < options.test_threads and remaining:
            _run_test(remaining.pop(), results)
            pending += 1
        name, result, message = results.get()
        summary.handle_result(name, result, message)
        pending -= 1

    if not options.quiet:
        summary.write_summary()
    return summary.success()


def runner(reqs: Sequence[Requirements], argv: Optional[Sequence[str]] = None) -> None:
    """List or run the tests from ``reqs``; raises SystemExit(101) if any test fails."""
    options = TestOpts.parse(argv)

    if options.ignored:
        # There is no way to mark tests as ignored.
        tests: list[_DataTest] = []
    else:
        tests = [test for req in reqs for test in req.expand()]
    tests.sort(key=lambda test: test.name)

    if options.list_tests:
        for test in tests:
            print(f"{test.name}: test")
        if options.format is Format.PRETTY:
            print()
            print(f"{len(tests)} tests, 0 benchmarks")
        return

    try:
        succeeded = run_tests(options, tests, sys.stdout)
    except OSError as exc:
        print(f"error: io error when running tests: {exc!r}", file=sys.stderr)
        raise SystemExit(101) from exc
    if not succeeded:
        raise SystemExit(101)


def harness(*args: object) -> Callable[..., None]:
    """Build a ``main(argv=None)`` from repeated ``testfn, root, pattern`` triples."""
    if not args or len(args) % 3 != 0:
        raise ValueError("harness expects one or more (testfn, root, pattern) triples")

    requirements = []
    for start in range(0, len(args), 3):
        testfn, root, pattern = args[start:start + 3]
        if not callable(testfn):
            raise TypeError(f"test function {testfn!r} is not callable")
        name = getattr(testfn, "__name__", repr(testfn))
        requirements.append(Requirements(testfn, name, os.fspath(root), str(pattern)))

    def main(argv: Optional[Sequence[str]] = None) -> None:
        runner(requirements, argv)

    return main