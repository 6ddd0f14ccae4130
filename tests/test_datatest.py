import argparse
import io
from pathlib import Path

import pytest

from nexharness import datatest


@pytest.fixture
def fixtures(tmp_path):
    root = tmp_path / "files"
    (root / "sub").mkdir(parents=True)
    (root / ".hidden_dir").mkdir()
    (root / "a.txt").write_text("alpha")
    (root / "b.json").write_text("{}")
    (root / ".hidden").write_text("secret stuff")
    (root / "sub" / "c.txt").write_text("gamma")
    (root / ".hidden_dir" / "d.txt").write_text("delta")
    return root


def read_artifact(path):
    with open(path) as handle:
        handle.read()


def failing_artifact(path):
    if path.name == "a.txt":
        raise OSError("cannot read")


def test_derive_test_name():
    name = datatest.derive_test_name("tests/files", Path("tests/files") / "a" / "b.txt", "my_test")
    assert name == "my_test::" + str(Path("a") / "b.txt")


def test_derive_test_name_outside_root():
    with pytest.raises(ValueError, match="failed to strip prefix"):
        datatest.derive_test_name("tests/files", "other/a.txt", "my_test")


def test_iterate_directory_skips_hidden_files(fixtures):
    found = sorted(p.relative_to(fixtures).as_posix() for p in datatest.iterate_directory(fixtures))
    assert found == [".hidden_dir/d.txt", "a.txt", "b.json", "sub/c.txt"]


def test_iterate_directory_missing_root(tmp_path):
    with pytest.raises(OSError):
        list(datatest.iterate_directory(tmp_path / "missing"))


def test_expand_matches_pattern(fixtures):
    req = datatest.Requirements(read_artifact, "read_artifact", str(fixtures), r"\.txt$")
    names = sorted(t.name for t in req.expand())
    assert names == sorted(
        "read_artifact::" + str(Path(rel))
        for rel in [".hidden_dir/d.txt", "a.txt", "sub/c.txt"]
    )


def test_expand_no_match_raises(fixtures):
    req = datatest.Requirements(read_artifact, "t", str(fixtures), r"\.nothing$")
    with pytest.raises(RuntimeError, match="no test cases found for test 't'"):
        req.expand()


def test_expand_bad_regex(fixtures):
    req = datatest.Requirements(read_artifact, "t", str(fixtures), "(")
    with pytest.raises(ValueError, match="invalid regular expression"):
        req.expand()


def test_expand_tests_call_function_with_path(fixtures):
    seen = []
    req = datatest.Requirements(seen.append, "t", str(fixtures), r"b\.json$")
    (case,) = req.expand()
    case.testfn()
    assert seen == [fixtures / "b.json"]


def test_opts_defaults(monkeypatch):
    monkeypatch.delenv("RUST_TEST_THREADS", raising=False)
    opts = datatest.TestOpts.parse([])
    assert opts.test_threads == 32
    assert opts.format is datatest.Format.PRETTY
    assert opts.filter is None
    assert opts.skip == []


def test_opts_env_threads(monkeypatch):
    monkeypatch.setenv("RUST_TEST_THREADS", "4")
    assert datatest.TestOpts.parse([]).test_threads == 4
    assert datatest.TestOpts.parse(["--test-threads", "7"]).test_threads == 7


def test_opts_parse_flags(monkeypatch):
    monkeypatch.delenv("RUST_TEST_THREADS", raising=False)
    opts = datatest.TestOpts.parse(
        ["foo", "--exact", "-q", "--list", "--format", "TERSE", "--skip", "x", "--skip", "y"]
    )
    assert opts.filter == "foo"
    assert opts.filter_exact is True
    assert opts.quiet is True
    assert opts.list_tests is True
    assert opts.format is datatest.Format.TERSE
    assert opts.skip == ["x", "y"]


def test_opts_zero_threads_rejected():
    with pytest.raises(SystemExit):
        datatest.TestOpts.parse(["--test-threads", "0"])


def test_summary_output():
    out = io.StringIO()
    summary = datatest.TestSummary(3, 1, out, colorize=False)
    summary.write_starting_msg()
    summary.handle_result("a", datatest.TestResult.OK)
    summary.handle_result("b", datatest.TestResult.FAILED_WITH_MSG, "boom")
    summary.write_summary()
    assert summary.success() is False
    assert out.getvalue() == (
        "\nrunning 2 tests\n"
        "test a ... ok\n"
        "test b ... FAILED\nError: boom\n"
        "\nfailures:\n    b\n"
        "\ntest result: FAILED. 1 passed; 1 failed; 1 filtered out\n\n"
    )


def test_summary_colored_ok():
    out = io.StringIO()
    summary = datatest.TestSummary(1, 0, out, colorize=True)
    summary.handle_result("a", datatest.TestResult.OK)
    assert out.getvalue() == "test a ... \x1b[32mok\x1b[0m\n"
    assert summary.success() is True


def test_run_tests_with_filter(fixtures):
    reqs = datatest.Requirements(failing_artifact, "f", str(fixtures), r"\.txt$")
    opts = datatest.TestOpts(filter="c.txt")
    out = io.StringIO()
    assert datatest.run_tests(opts, reqs.expand(), out) is True
    assert "running 1 tests" in out.getvalue()
    assert "1 passed; 0 failed; 2 filtered out" in out.getvalue()


def test_run_tests_failure_reports_error(fixtures):
    reqs = datatest.Requirements(failing_artifact, "f", str(fixtures), r"\.txt$")
    out = io.StringIO()
    assert datatest.run_tests(datatest.TestOpts(test_threads=1), reqs.expand(), out) is False
    text = out.getvalue()
    assert "Error: OSError('cannot read')" in text
    assert "2 passed; 1 failed; 0 filtered out" in text


def test_run_tests_exact_filter(fixtures):
    reqs = datatest.Requirements(read_artifact, "t", str(fixtures), r"\.txt$")
    opts = datatest.TestOpts(filter="a.txt", filter_exact=True, quiet=True)
    out = io.StringIO()
    assert datatest.run_tests(opts, reqs.expand(), out) is True
    assert out.getvalue() == ""


def test_harness_example(fixtures, capsys):
    main = datatest.harness(read_artifact, str(fixtures), r"^.*/*")
    main([])
    text = capsys.readouterr().out
    assert "running 4 tests" in text
    assert "test result: ok. 4 passed; 0 failed; 0 filtered out" in text


def test_harness_failure_exits_101(fixtures, capsys):
    main = datatest.harness(failing_artifact, str(fixtures), r"\.txt$")
    with pytest.raises(SystemExit) as info:
        main([])
    assert info.value.code == 101
    assert "failures:" in capsys.readouterr().out


def test_harness_list(fixtures, capsys):
    main = datatest.harness(read_artifact, str(fixtures), r"b\.json$")
    main(["--list"])
    assert capsys.readouterr().out == "read_artifact::b.json: test\n\n1 tests, 0 benchmarks\n"


def test_harness_list_terse(fixtures, capsys):
    main = datatest.harness(read_artifact, str(fixtures), r"b\.json$")
    main(["--list", "--format", "terse"])
    assert capsys.readouterr().out == "read_artifact::b.json: test\n"


def test_harness_ignored_runs_nothing(fixtures, capsys):
    main = datatest.harness(read_artifact, str(fixtures), r"\.nothing$")
    main(["--ignored"])
    assert "test result: ok. 0 passed; 0 failed; 0 filtered out" in capsys.readouterr().out


def test_harness_bad_arguments():
    with pytest.raises(ValueError):
        datatest.harness(read_artifact, "root")


def test_parse_format_rejects_unknown():
    with pytest.raises(argparse.ArgumentTypeError):
        datatest._parse_format("fancy")