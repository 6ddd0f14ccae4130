"""Building blocks for test runners: partitioning, test-list metadata, exit codes, cargo command lines, output helpers and a data-driven test harness."""

__version__ = "0.1.0"

__all__ = [
    "cargo_cli",
    "datatest",
    "errors",
    "expected_error",
    "metadata",
    "output",
    "partition",
]