"""Building and running cargo command lines."""

from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Optional

from .output import OutputContext


def cargo_path() -> str:
    """Return the cargo executable: ``$CARGO`` if set, else ``cargo`` from PATH."""
    return os.environ.get("CARGO", "cargo")


@dataclass
class CargoOptions:
    """Options passed down to cargo."""

    lib: bool = False
    bin: list[str] = field(default_factory=list)
    bins: bool = False
    test: list[str] = field(default_factory=list)
    tests: bool = False
    bench: list[str] = field(default_factory=list)
    benches: bool = False
    all_targets: bool = False
    packages: list[str] = field(default_factory=list)
    workspace: bool = False
    exclude: list[str] = field(default_factory=list)
    all: bool = False
    release: bool = False
    cargo_profile: Optional[str] = None
    build_jobs: Optional[str] = None
    features: list[str] = field(default_factory=list)
    all_features: bool = False
    no_default_features: bool = False
    target: Optional[str] = None
    target_dir: Optional[str] = None
    ignore_rust_version: bool = False
    unit_graph: bool = False
    future_incompat_report: bool = False
    frozen: bool = False
    locked: bool = False
    offline: bool = False
    config: list[str] = field(default_factory=list)
    unstable_flags: list[str] = field(default_factory=list)

    def to_args(self) -> Iterator[str]:
        """Yield the cargo arguments these options stand for."""

        def flag(enabled: bool, name: str) -> Iterator[str]:
            if enabled:
                yield name

        def each(name: str, values: Iterable[str]) -> Iterator[str]:
            for value in values:
                yield name
                yield value

        def opt(name: str, value: Optional[str]) -> Iterator[str]:
            if value is not None:
                yield name
                yield value

        yield from flag(self.lib, "--lib")
        yield from each("--bin", self.bin)
        yield from flag(self.bins, "--bins")
        yield from each("--test", self.test)
        yield from flag(self.tests, "--tests")
        yield from each("--bench", self.bench)
        yield from flag(self.benches, "--benches")
        yield from flag(self.all_targets, "--all-targets")
        yield from each("--package", self.packages)
        yield from flag(self.workspace, "--workspace")
        yield from each("--exclude", self.exclude)
        yield from flag(self.all, "--all")
        yield from flag(self.release, "--release")
        yield from opt("--profile", self.cargo_profile)
        yield from opt("--jobs", self.build_jobs)
        yield from each("--features", self.features)
        yield from flag(self.all_features, "--all-features")
        yield from flag(self.no_default_features, "--no-default-features")
        yield from opt("--target", self.target)
        yield from opt("--target-dir", self.target_dir)
        yield from flag(self.ignore_rust_version, "--ignore-rust-version")
        yield from flag(self.unit_graph, "--unit-graph")
        yield from flag(self.future_incompat_report, "--future-incompat-report")
        yield from flag(self.frozen, "--frozen")
        yield from flag(self.locked, "--locked")
        yield from flag(self.offline, "--offline")
        yield from each("--config", self.config)
        yield from each("-Z", self.unstable_flags)


class CargoCli:
    """A cargo invocation: a subcommand plus its arguments."""

    def __init__(
        self,
        command: str,
        manifest_path: Optional[str | os.PathLike] = None,
        output: Optional[OutputContext] = None,
    ) -> None:
        self.cargo_path = cargo_path()
        self.command = command
        self.manifest_path = None if manifest_path is None else os.fspath(manifest_path)
        self.output = output if output is not None else OutputContext()
        self.args: list[str] = []

    def add_arg(self, arg: str) -> "CargoCli":
        self.args.append(arg)
        return self

    def add_args(self, args: Iterable[str]) -> "CargoCli":
        self.args.extend(args)
        return self

    def add_options(self, options: CargoOptions) -> "CargoCli":
        """Append the arguments for ``options``."""
        self.args.extend(options.to_args())
        return self

    def all_args(self) -> list[str]:
        """Return the cargo path, the subcommand and the added arguments."""
        return [self.cargo_path, self.command, *self.args]

    def to_command(self) -> list[str]:
        """Return the full argument vector, including colour and manifest options."""
        argv = [self.cargo_path, self.output.color.to_arg(), self.command]
        if self.manifest_path is not None:
            argv += ["--manifest-path", self.manifest_path]
        argv += self.args
        return argv

    def run(self) -> subprocess.CompletedProcess:
        """Run the command, capturing stdout; the exit status is not checked."""
        return subprocess.run(self.to_command(), stdout=subprocess.PIPE, check=False)