from pathlib import Path

from nexharness.errors import (
    ConfigParseError,
    FromMessagesError,
    JunitError,
    ParseTestListError,
    PartitionerBuilderParseError,
    ProfileNotFound,
    WriteEventError,
    WriteTestListError,
)


def test_config_parse_error_message_and_cause():
    cause = ValueError("bad toml")
    err = ConfigParseError(Path("ws") / "nextest.toml", cause)
    assert err.config_file == str(Path("ws") / "nextest.toml")
    assert str(err).startswith("failed to parse nextest config at `")
    assert err.config_file in str(err)
    assert err.__cause__ is cause


def test_profile_not_found_sorts_profiles():
    err = ProfileNotFound("missing", ["zeta", "default", "alpha"])
    assert err.all_profiles == ["alpha", "default", "zeta"]
    assert err.profile == "missing"
    assert str(err).startswith("profile 'missing' not found")
    assert str(err).endswith("alpha, default, zeta)")


def test_profile_not_found_single_profile_message():
    err = ProfileNotFound("ci", ("default",))
    assert str(err) == "profile 'ci' not found (known profiles: default)"
    assert err.all_profiles == ["default"]


def test_partition_parse_error_without_format():
    err = PartitionerBuilderParseError(None, "plain message")
    assert str(err) == "plain message"
    assert err.expected_format is None


def test_partition_parse_error_with_format():
    err = PartitionerBuilderParseError("hash:M/N", "detail")
    assert str(err) == 'partition must be in the format "hash:M/N":\ndetail'
    assert err.message == "detail"


def test_from_messages_error_variants():
    cause = OSError("read failed")
    read = FromMessagesError.read_messages(cause)
    graph = FromMessagesError.package_graph(cause)
    assert str(read) == "error reading Cargo JSON messages"
    assert str(graph) == "error querying package graph"
    assert read.kind is FromMessagesError.Kind.READ_MESSAGES
    assert graph.__cause__ is cause


def test_parse_test_list_error_command():
    cause = OSError("not found")
    err = ParseTestListError.command("bin --list", cause)
    assert err.kind is ParseTestListError.Kind.COMMAND
    assert str(err) == "running 'bin --list' failed"
    assert err.__cause__ is cause


def test_parse_test_list_error_parse_line():
    err = ParseTestListError.parse_line("line did not end", "a: test\nb")
    assert err.kind is ParseTestListError.Kind.PARSE_LINE
    assert str(err) == "line did not end\nfull output:\na: test\nb"
    assert err.__cause__ is None
    assert err.full_output == "a: test\nb"


def test_write_test_list_error_variants():
    cause = OSError("broken pipe")
    assert str(WriteTestListError.io(cause)) == "error writing to output"
    json_err = WriteTestListError.json(cause)
    assert str(json_err) == "error serializing to JSON"
    assert json_err.__cause__ is cause


def test_write_event_error_variants():
    cause = OSError("disk full")
    io_err = WriteEventError.io(cause)
    fs_err = WriteEventError.fs("store/out", cause)
    assert str(io_err) == "error writing to output"
    assert str(fs_err) == "error operating on path store/out"
    assert fs_err.file == "store/out"
    assert fs_err.__cause__ is cause


def test_write_event_error_junit_wraps_junit_error():
    inner = ValueError("xml")
    junit = JunitError(inner)
    err = WriteEventError.junit("report.xml", junit)
    assert str(junit) == ""
    assert junit.__cause__ is inner
    assert str(err) == "error writing JUnit output to report.xml"
    assert err.kind is WriteEventError.Kind.JUNIT
    assert err.__cause__ is junit