"""Tests for the Milo multi-part container."""

import struct

import pytest

from rawktool.common import LITTLE_ENDIAN, FormatError
from rawktool.milo import Milo


PARTS = [b"first part", b"", b"\x00\x01\x02" * 700, b"last"]


def _roundtrip(compressed, parts, endianness=">"):
    data = Milo(compressed, parts=list(parts)).save(endianness)
    return Milo.create(data, endianness)


@pytest.mark.parametrize("compressed", [True, False])
@pytest.mark.parametrize("parts", [[], [b"only one"], PARTS])
def test_roundtrip(compressed, parts):
    """Encoding then decoding should reproduce every part exactly."""
    milo = _roundtrip(compressed, parts)
    assert milo.compressed == compressed
    assert [bytes(part) for part in milo.parts] == parts


def test_roundtrip_little_endian_body():
    """The header body follows the platform endianness, the magic stays big-endian."""
    data = Milo(False, parts=[b"abc"]).save(LITTLE_ENDIAN)
    assert struct.unpack(">I", data[:4])[0] == Milo.MAGIC_UNCOMPRESSED
    assert struct.unpack("<I", data[4:8])[0] == Milo.DEFAULT_DATA_OFFSET

    milo = Milo.create(data, LITTLE_ENDIAN)
    assert [bytes(part) for part in milo.parts] == [b"abc"]


def test_header_fields_are_backfilled():
    """Total size and the size table should describe the written parts."""
    parts = [b"a" * 10, b"b" * 20]
    data = Milo(False, data_offset=0x20, parts=parts).save()

    data_offset, count, total = struct.unpack(">III", data[4:16])
    sizes = struct.unpack(">II", data[16:24])

    assert data_offset == 0x20
    assert count == 2
    assert total == 30
    assert sizes == (10, 20)
    assert len(data) == 0x20 + 30


def test_compressed_size_table_has_no_gaps():
    """Compressed part sizes should cover the data region exactly."""
    data = Milo(True, parts=PARTS).save()
    count = struct.unpack(">I", data[8:12])[0]
    sizes = struct.unpack(">%dI" % count, data[16:16 + count * 4])

    assert Milo.DEFAULT_DATA_OFFSET + sum(sizes) == len(data)
    assert struct.unpack(">I", data[12:16])[0] == sum(len(part) for part in PARTS)


def test_decode_handmade_uncompressed():
    """Parts are carved consecutively from the data offset."""
    header = struct.pack(">IIII", Milo.MAGIC_UNCOMPRESSED, 0x18, 2, 7)
    header += struct.pack(">II", 3, 4)
    data = header + b"abcdefg"

    milo = Milo.create(data)
    assert milo.data_offset == 0x18
    assert [bytes(part) for part in milo.parts] == [b"abc", b"defg"]


def test_uncompressed_parts_are_views():
    """Uncompressed parts should not copy the source buffer."""
    data = Milo(False, parts=[b"xyz"]).save()
    milo = Milo.create(data)
    assert isinstance(milo.parts[0], memoryview)


def test_unknown_magic():
    """An unknown magic should raise a FormatError."""
    with pytest.raises(FormatError):
        Milo.create(struct.pack(">IIII", 0x12345678, 0x10, 0, 0))


def test_size_table_beyond_source():
    """Declared sizes larger than the source should fail on read."""
    header = struct.pack(">IIII", Milo.MAGIC_UNCOMPRESSED, 0x14, 1, 100)
    header += struct.pack(">I", 100)

    with pytest.raises(FormatError):
        Milo.create(header + b"short")


def test_corrupt_compressed_part():
    """Garbage in a compressed part should raise a FormatError."""
    header = struct.pack(">IIII", Milo.MAGIC_COMPRESSED, 0x14, 1, 4)
    header += struct.pack(">I", 4)

    with pytest.raises(FormatError):
        Milo.create(header + b"\xff\xff\xff\xff")


def test_data_offset_too_small():
    """A data offset overlapping the size table is a programmer error."""
    with pytest.raises(ValueError):
        Milo(False, data_offset=0x10, parts=[b"a", b"b"]).save()
