"""Input helpers for reading bit streams from ASCII or binary files."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path, PureWindowsPath
from typing import Iterator, Literal

import numpy as np

from .errors import (
    EmptyInputFileError,
    InsufficientBitsError,
    InvalidInputError,
    MissingFileError,
)

BitFormat = Literal["ascii", "binary"]

_WHITESPACE = re.compile(rb"\s+")


@dataclass(frozen=True)
class BitSource:
    """Bits loaded from a file, readable one fixed-length stream at a time."""

    bits: np.ndarray
    path: Path

    @property
    def bit_count(self) -> int:
        return int(self.bits.size)

    def stream_count(self, stream_length: int) -> int:
        """Return how many complete streams of ``stream_length`` bits are available."""

        if stream_length <= 0:
            raise ValueError("Stream length must be positive.")
        return self.bit_count // stream_length

    def stream(self, index: int, stream_length: int) -> np.ndarray:
        """Return a read-only view of stream ``index``."""

        start = index * stream_length
        end = start + stream_length
        if index < 0 or end > self.bit_count:
            raise InsufficientBitsError(
                f"Stream {index} needs bits [{start}, {end}) but only {self.bit_count} are available."
            )
        view = self.bits[start:end]
        view.flags.writeable = False
        return view

    def streams(self, count: int, stream_length: int) -> Iterator[np.ndarray]:
        """Yield the first ``count`` streams, failing early when bits run out."""

        available = self.stream_count(stream_length)
        if count > available:
            raise InsufficientBitsError(
                f"Input '{self.path}' holds {self.bit_count} bits, enough for {available} "
                f"streams of {stream_length} bits but {count} were requested."
            )
        for index in range(count):
            yield self.stream(index, stream_length)


def read_bit_source(path: Path | str, *, fmt: BitFormat = "ascii") -> BitSource:
    """Read every bit stored in ``path``.

    ``ascii`` files hold the characters ``0`` and ``1`` with optional
    whitespace; ``binary`` files are unpacked most significant bit first.
    """

    candidate = _normalise_path(path)
    if not candidate.exists():
        raise MissingFileError(f"Input file not found: {candidate}")
    try:
        raw = candidate.read_bytes()
    except OSError as exc:  # pragma: no cover - filesystem guard
        raise MissingFileError(f"Could not read input file: {candidate}") from exc

    if fmt == "ascii":
        bits = parse_ascii_bits(raw, source=candidate)
    elif fmt == "binary":
        bits = np.unpackbits(np.frombuffer(raw, dtype=np.uint8)) if raw else np.zeros(0, dtype=np.uint8)
    else:
        raise InvalidInputError(f"Unsupported input format: {fmt}")

    if bits.size == 0:
        raise EmptyInputFileError(f"Input file '{candidate}' does not contain any bits.")
    return BitSource(bits=bits, path=candidate)


def parse_ascii_bits(raw: bytes, *, source: Path | str = "<memory>") -> np.ndarray:
    """Convert ASCII ``0``/``1`` characters into a ``uint8`` bit array."""

    compact = _WHITESPACE.sub(b"", raw)
    if not compact:
        return np.zeros(0, dtype=np.uint8)
    codes = np.frombuffer(compact, dtype=np.uint8)
    bits = codes - ord("0")
    invalid = np.flatnonzero(bits > 1)
    if invalid.size:
        offending = chr(codes[invalid[0]])
        raise InvalidInputError(
            f"Input '{source}' contains {offending!r}; only '0' and '1' are allowed in ascii format."
        )
    return bits.astype(np.uint8)


def _normalise_path(path: Path | str) -> Path:
    if isinstance(path, Path):
        candidate = path
    else:
        candidate = Path(path)
    if isinstance(path, str) and re.match(r"^[A-Za-z]:\\", path):
        return Path(PureWindowsPath(path))
    return candidate.expanduser().resolve()


__all__ = [
    "BitFormat",
    "BitSource",
    "parse_ascii_bits",
    "read_bit_source",
]
