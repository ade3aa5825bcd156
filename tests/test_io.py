from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest

from overlapcheck.errors import (
    EmptyInputFileError,
    InsufficientBitsError,
    InvalidInputError,
    MissingFileError,
)
from overlapcheck.io import parse_ascii_bits, read_bit_source


def test_ascii_parsing_ignores_whitespace() -> None:
    bits = parse_ascii_bits(b"0101\n 11\t00\r\n")

    assert bits.tolist() == [0, 1, 0, 1, 1, 1, 0, 0]
    assert bits.dtype == np.uint8


def test_ascii_parsing_rejects_other_characters() -> None:
    with pytest.raises(InvalidInputError, match="'2'"):
        parse_ascii_bits(b"01012")


def test_binary_input_is_unpacked_msb_first(tmp_path: Path) -> None:
    path = tmp_path / "data.bin"
    path.write_bytes(bytes([0b10000001, 0xFF]))

    source = read_bit_source(path, fmt="binary")

    assert source.bit_count == 16
    assert source.bits[:8].tolist() == [1, 0, 0, 0, 0, 0, 0, 1]


def test_streams_are_consecutive_slices(tmp_path: Path) -> None:
    path = tmp_path / "data.txt"
    path.write_text("000111" + "010101", encoding="utf-8")
    source = read_bit_source(path)

    streams = list(source.streams(2, 6))

    assert [stream.tolist() for stream in streams] == [[0, 0, 0, 1, 1, 1], [0, 1, 0, 1, 0, 1]]
    assert not streams[0].flags.writeable
    assert source.stream_count(4) == 3


def test_streams_fail_when_bits_run_out(tmp_path: Path) -> None:
    path = tmp_path / "data.txt"
    path.write_text("0101", encoding="utf-8")
    source = read_bit_source(path)

    with pytest.raises(InsufficientBitsError):
        list(source.streams(2, 3))


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(MissingFileError):
        read_bit_source(tmp_path / "absent.txt")


@pytest.mark.parametrize("fmt", ["ascii", "binary"])
def test_empty_file(tmp_path: Path, fmt: str) -> None:
    path = tmp_path / "empty.txt"
    path.write_text("  \n", encoding="utf-8") if fmt == "ascii" else path.write_bytes(b"")

    with pytest.raises(EmptyInputFileError):
        read_bit_source(path, fmt=fmt)


def test_unknown_format(tmp_path: Path) -> None:
    path = tmp_path / "data.txt"
    path.write_text("01", encoding="utf-8")

    with pytest.raises(InvalidInputError):
        read_bit_source(path, fmt="hex")  # type: ignore[arg-type]
