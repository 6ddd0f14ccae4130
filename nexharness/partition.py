"""Partitioning test runs across several machines by count or by hash."""

from __future__ import annotations

import abc
import enum
import re
from dataclasses import dataclass, field

from .errors import PartitionerBuilderParseError

_MASK64 = (1 << 64) - 1
_U64_MAX = _MASK64

_P1 = 11400714785074694791
_P2 = 14029467366897019727
_P3 = 1609587929392839161
_P4 = 9650029242287828579
_P5 = 2870177450012600261

_U64_TEXT = re.compile(r"\+?[0-9]+")


def _rotl(value: int, bits: int) -> int:
    return ((value << bits) | (value >> (64 - bits))) & _MASK64


def _round(acc: int, lane: int) -> int:
    acc = (acc + lane * _P2) & _MASK64
    return (_rotl(acc, 31) * _P1) & _MASK64


def _merge(acc: int, value: int) -> int:
    acc ^= _round(0, value)
    return (acc * _P1 + _P4) & _MASK64


def xxhash64(data: bytes, seed: int = 0) -> int:
    """Return the 64-bit xxHash of ``data`` with the given seed."""
    seed &= _MASK64
    length = len(data)
    pos = 0

    if length >= 32:
        v1 = (seed + _P1 + _P2) & _MASK64
        v2 = (seed + _P2) & _MASK64
        v3 = seed
        v4 = (seed - _P1) & _MASK64
        limit = length - 32
        while pos <= limit:
            v1 = _round(v1, int.from_bytes(data[pos:pos + 8], "little"))
            v2 = _round(v2, int.from_bytes(data[pos + 8:pos + 16], "little"))
            v3 = _round(v3, int.from_bytes(data[pos + 16:pos + 24], "little"))
            v4 = _round(v4, int.from_bytes(data[pos + 24:pos + 32], "little"))
            pos += 32
        h = (_rotl(v1, 1) + _rotl(v2, 7) + _rotl(v3, 12) + _rotl(v4, 18)) & _MASK64
        for v in (v1, v2, v3, v4):
            h = _merge(h, v)
    else:
        h = (seed + _P5) & _MASK64

    h = (h + length) & _MASK64

    while pos + 8 <= length:
        h ^= _round(0, int.from_bytes(data[pos:pos + 8], "little"))
        h = (_rotl(h, 27) * _P1 + _P4) & _MASK64
        pos += 8

    if pos + 4 <= length:
        h ^= (int.from_bytes(data[pos:pos + 4], "little") * _P1) & _MASK64
        h = (_rotl(h, 23) * _P2 + _P3) & _MASK64
        pos += 4

    for byte in data[pos:]:
        h ^= (byte * _P5) & _MASK64
        h = (_rotl(h, 11) * _P1) & _MASK64

    h ^= h >> 33
    h = (h * _P2) & _MASK64
    h ^= h >> 29
    h = (h * _P3) & _MASK64
    h ^= h >> 32
    return h


def hash_test_name(test_name: str) -> int:
    """Hash a test name the way string keys are hashed: its UTF-8 bytes then 0xff."""
    return xxhash64(test_name.encode("utf-8") + b"\xff", 0)


class PartitionKind(enum.Enum):
    """How tests are shared out between partitions."""

    COUNT = "count"
    HASH = "hash"


class Partitioner(abc.ABC):
    """Decides whether individual tests belong to one partition."""

    @abc.abstractmethod
    def test_matches(self, test_name: str) -> bool:
        """Return True if the named test is in this partition."""


@dataclass
class CountPartitioner(Partitioner):
    """Takes every ``total_shards``-th test, starting at ``shard``."""

    shard: int
    total_shards: int
    _curr: int = field(default=0, init=False, repr=False)

    def test_matches(self, test_name: str) -> bool:
        matches = self._curr == self.shard - 1
        self._curr = (self._curr + 1) % self.total_shards
        return matches


@dataclass
class HashPartitioner(Partitioner):
    """Takes the tests whose name hashes into ``shard``; holds no state."""

    shard: int
    total_shards: int

    def test_matches(self, test_name: str) -> bool:
        return hash_test_name(test_name) % self.total_shards == self.shard - 1


def _parse_u64(text: str) -> int:
    if not text:
        raise ValueError("cannot parse integer from empty string")
    if not _U64_TEXT.fullmatch(text):
        raise ValueError("invalid digit found in string")
    value = int(text)
    if value > _U64_MAX:
        raise ValueError("number too large to fit in target type")
    return value


def _parse_shards(text: str, expected_format: str) -> tuple[int, int]:
    shard_str, sep, total_str = text.partition("/")
    if not sep:
        raise PartitionerBuilderParseError(
            expected_format, f"expected input '{text}' to be in the format M/N"
        )
    try:
        shard = _parse_u64(shard_str)
    except ValueError as exc:
        raise PartitionerBuilderParseError(
            expected_format, f"failed to parse shard '{shard_str}' as u64: {exc}"
        ) from exc
    try:
        total_shards = _parse_u64(total_str)
    except ValueError as exc:
        raise PartitionerBuilderParseError(
            expected_format,
            f"failed to parse total_shards '{total_str}' as u64: {exc}",
        ) from exc
    if not 1 <= shard <= total_shards:
        raise PartitionerBuilderParseError(
            expected_format,
            f"shard {shard} must be a number between 1 and total shards "
            f"{total_shards}, inclusive",
        )
    return shard, total_shards


@dataclass(frozen=True)
class PartitionerBuilder:
    """A partition specification that creates a fresh partitioner per test binary."""

    kind: PartitionKind
    shard: int
    total_shards: int

    @classmethod
    def parse(cls, s: str) -> "PartitionerBuilder":
        """Parse ``hash:M/N`` or ``count:M/N``."""
        for kind in PartitionKind:
            prefix = f"{kind.value}:"
            if s.startswith(prefix):
                shard, total = _parse_shards(s[len(prefix):], f"{kind.value}:M/N")
                return cls(kind, shard, total)
        raise PartitionerBuilderParseError(
            None, f"partition input '{s}' must begin with \"hash:\" or \"count:\""
        )

    def build(self) -> Partitioner:
        """Create a new partitioner for this specification."""
        if self.kind is PartitionKind.COUNT:
            return CountPartitioner(self.shard, self.total_shards)
        return HashPartitioner(self.shard, self.total_shards)

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.shard}/{self.total_shards}"