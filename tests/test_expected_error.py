import logging

import pytest

from nexharness.errors import ConfigParseError, ProfileNotFound
from nexharness.expected_error import ExpectedError, ExpectedErrorKind
from nexharness.metadata import NextestExitCode


@pytest.mark.parametrize(
    "error, code",
    [
        (ExpectedError.cargo_metadata_failed(), NextestExitCode.CARGO_METADATA_FAILED),
        (
            ExpectedError.profile_not_found(ProfileNotFound("ci", ["default"])),
            NextestExitCode.SETUP_ERROR,
        ),
        (
            ExpectedError.config_parse_error(ConfigParseError("a.toml", ValueError("x"))),
            NextestExitCode.SETUP_ERROR,
        ),
        (ExpectedError.build_failed(["cargo"], 101), NextestExitCode.BUILD_FAILED),
        (ExpectedError.test_run_failed(), NextestExitCode.TEST_RUN_FAILED),
    ],
)
def test_process_exit_code(error, code):
    assert error.process_exit_code() == int(code)


def test_display_strings():
    assert str(ExpectedError.cargo_metadata_failed()) == "cargo metadata failed\n"
    assert str(ExpectedError.test_run_failed()) == "test run failed\n"
    assert str(ExpectedError.build_failed([], None)) == "build failed\n"
    assert ExpectedError.test_run_failed().kind is ExpectedErrorKind.TEST_RUN_FAILED


def test_build_failed_escapes_arguments():
    err = ExpectedError.build_failed(["cargo", "test", "a b", ""], 101)
    assert err.escaped_command == ["cargo", "test", "a\\ b", "''"]
    assert err.exit_code == 101


def test_build_failed_keeps_safe_characters():
    arg = "--message-format=json-render-diagnostics"
    err = ExpectedError.build_failed([arg, "/path/to/Cargo.toml"], None)
    assert err.escaped_command[1] == "/path/to/Cargo.toml"
    assert err.escaped_command[0] == arg.replace("=", "\\=")


def test_display_build_failed_with_code(caplog):
    err = ExpectedError.build_failed(["cargo", "test"], 101)
    with caplog.at_level(logging.ERROR):
        err.display_to_stderr()
    messages = [r.getMessage() for r in caplog.records]
    assert messages == [f"command {' '.join(err.escaped_command)} exited with code 101"]


def test_display_build_failed_without_code(caplog):
    err = ExpectedError.build_failed(["cargo"], None)
    with caplog.at_level(logging.ERROR):
        err.display_to_stderr()
    assert [r.getMessage() for r in caplog.records] == ["command cargo exited"]


def test_display_test_run_failed(caplog):
    with caplog.at_level(logging.ERROR):
        ExpectedError.test_run_failed().display_to_stderr()
    assert [r.getMessage() for r in caplog.records] == ["test run failed"]


def test_display_cargo_metadata_failed_logs_nothing(caplog):
    with caplog.at_level(logging.DEBUG):
        ExpectedError.cargo_metadata_failed().display_to_stderr()
    assert caplog.records == []


def test_display_config_parse_error_with_causes(caplog):
    root = OSError("disk gone")
    inner = ValueError("bad toml")
    inner.__cause__ = root
    cfg_err = ConfigParseError("nextest.toml", inner)
    with caplog.at_level(logging.ERROR):
        ExpectedError.config_parse_error(cfg_err).display_to_stderr()
    messages = [r.getMessage() for r in caplog.records]
    assert messages == [
        str(cfg_err),
        f"\nCaused by:\n  {inner}",
        f"\nCaused by:\n  {root}",
    ]
    assert caplog.records[1].name == "cargo_nextest.no_heading"


def test_display_profile_not_found(caplog):
    pnf = ProfileNotFound("ci", ["default", "local"])
    with caplog.at_level(logging.ERROR):
        ExpectedError.profile_not_found(pnf).display_to_stderr()
    assert [r.getMessage() for r in caplog.records] == [str(pnf)]


def test_cause_is_attached():
    pnf = ProfileNotFound("ci", [])
    err = ExpectedError.profile_not_found(pnf)
    assert err.__cause__ is pnf
    assert err.err is pnf