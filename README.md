# nexharness

Building blocks for test runners, using only the standard library.

* `nexharness.partition`: split a test run across several machines by
  counting or by hashing test names (`hash:M/N`, `count:M/N`).
* `nexharness.metadata`: read and write the machine-readable JSON test
  list (`TestListSummary`), run the `cargo nextest list` command that
  produces it (`ListCommand`), and the documented exit codes
  (`NextestExitCode`).
* `nexharness.errors` and `nexharness.expected_error`: the errors a
  runner raises, and `ExpectedError`, which maps expected failures to
  exit codes and logs them with their chain of causes.
* `nexharness.cargo_cli`: turn build options into a cargo command line
  (`CargoOptions`, `CargoCli`).
* `nexharness.output`: `Color` (`auto`, `always`, `never`), a logging
  formatter that prints `error:` / `warning:` headings, and
  `write_test_name`.
* `nexharness.datatest`: a small harness that runs one test function per
  matching file in a directory.

## Partitioning tests

```python
from nexharness.partition import PartitionerBuilder

builder = PartitionerBuilder.parse("hash:1/2")
partitioner = builder.build()

selected = [name for name in test_names if partitioner.test_matches(name)]
```

Hash partitions (`HashPartitioner`) are stateless: a test name always
lands in the same shard, decided by `hash_test_name`, a 64-bit xxHash
(`xxhash64`) of the name. Count partitions (`CountPartitioner`) hand out
tests in turn, so the order in which names are offered matters; call
`build()` again for each new list. Malformed inputs such as `"hash:0/2"`,
`"hash:1/n"` or `"count:1"` raise `PartitionerBuilderParseError`, a
`ValueError`.

## Reading a test list

```python
from nexharness.metadata import TestListSummary

summary = TestListSummary.parse_json(json_text)
for suite_id, suite in summary.rust_suites.items():
    for name, case in suite.testcases.items():
        if case.filter_match.is_match():
            print(suite.binary_name, name)
```

Invalid input raises `ValueError`. `to_dict()` and `to_json()` write the
same kebab-case format back out, with keys sorted. A non-matching test
carries a `MismatchReason` (`IGNORED`, `STRING`, `PARTITION`).

To run the list command, build a `ListCommand`, optionally call
`cargo_path`, `manifest_path`, `current_dir`, `add_arg` or `add_args`
(each returns the command, so calls chain), and call `exec()`.
`cargo_command()` shows the argument vector that will run; the cargo
executable defaults to `$CARGO`, else `cargo`. Failures raise
`CommandError`, whose `kind` says whether the process could not start,
exited non-zero (with `exit_code` and `stderr`), or printed invalid JSON.

## Exit codes and expected errors

`NextestExitCode` is an `IntEnum`: `SETUP_ERROR` (96), `TEST_RUN_FAILED`
(100), `BUILD_FAILED` (101), `CARGO_METADATA_FAILED` (102).

```python
from nexharness.expected_error import ExpectedError

err = ExpectedError.build_failed(["cargo", "test", "my arg"], 1)
err.display_to_stderr()          # logs: command cargo test my\ arg exited with code 1
raise SystemExit(err.process_exit_code())   # 101
```

`display_to_stderr()` logs to the `cargo_nextest` logger; call
`Color.init()` first to have those records printed to stderr with
headings.

## Building cargo commands

```python
from nexharness.cargo_cli import CargoCli, CargoOptions
from nexharness.output import Color, OutputContext

options = CargoOptions(release=True, packages=["my-crate"])
cli = CargoCli("test", None, OutputContext(Color.parse("never")))
cli.add_args(["--no-run"])
cli.add_options(options)
print(cli.all_args())    # [cargo, "test", "--no-run", "--package", "my-crate", "--release"]
print(cli.to_command())  # adds "--color=never" and any --manifest-path
result = cli.run()       # subprocess.CompletedProcess with captured stdout
```

The cargo executable comes from the `CARGO` environment variable when
set, and is otherwise `cargo` on `PATH`. `run()` does not check the exit
status.

## Colour and logging

`Color.parse` accepts `auto`, `always` or `never`. `Color.init()` sets
the colour override and installs a `NextestLogFormatter` handler on the
`cargo_nextest` logger; its level is read from `NEXTEST_LOG` (for
example `warn` or `cargo_nextest=debug`) and defaults to `error`.
`should_colorize(stream)` decides for a given stream, and `to_arg()`
gives the matching `--color=...` argument. `write_test_name(name,
style, writer)` writes a name, styling the part after the last `::`
with an SGR code such as `"1;32"`.

## Data-driven tests

Write a function that takes a path and raises on failure, then pass it
to `harness` with a directory and a regular expression that selects
files. `harness` returns a `main(argv=None)` function:

```python
from pathlib import Path

from nexharness.datatest import harness


def check_artifact(path: Path) -> None:
    path.read_text()


main = harness(check_artifact, "tests/files", r"^.*/*")

if __name__ == "__main__":
    main()
```

Several `testfn, root, pattern` triples may be passed at once. Each
matching, non-hidden file becomes a test named
`<function>::<relative path>`. `main` accepts a name filter, `--exact`,
`--list`, `-q`/`--quiet`, `--test-threads` (default 32, or
`RUST_TEST_THREADS`) and `--format pretty|terse|json`; other common
test-runner flags are accepted and ignored, and `--ignored` selects no
tests. Tests run in parallel threads; a raised `AssertionError` is
reported as `FAILED`, any other exception as `FAILED` followed by
`Error: <repr>`. A summary is printed, and `SystemExit(101)` is raised
if any test failed. A pattern that matches no files raises
`RuntimeError`, so typos in the expression do not pass silently.

## What this package does not do

There is no test-runner command: the package does not build test
binaries, list or run the tests inside them, retry them, or report
their results. It has no reader for runner configuration files or
profiles, and it does not write JUnit reports; the errors in
`nexharness.errors` that mention these are provided for code that does.