import io
import struct

LITTLE_ENDIAN = "<"
BIG_ENDIAN = ">"

DEFAULT_TICKS_PER_BEAT = 480
MAX_NESTING_DEPTH = 8


class FormatError(ValueError):
    pass


class UnsupportedOperationError(Exception):
    pass


def get_sanitized_filename(filename, invalid_chars='<>:;\"\\/|?*'):
    if not filename:
        return filename

    for c in invalid_chars:
        filename = filename.replace(c, "_")

    return filename


def substream(data, offset, size):
    # Zero-copy view into the parent buffer
    view = memoryview(data)

    if offset < 0 or size < 0 or offset + size > len(view):
        raise FormatError("Range %08x+%08x is outside of the source (%08x bytes)" % (offset, size, len(view)))

    return view[offset:offset + size]


def read_string(data, offset, length=None, encoding='ascii'):
    view = bytes(data[offset:offset + length]) if length is not None else bytes(data[offset:])
    end = view.find(b'\0')

    if end != -1:
        view = view[:end]

    try:
        return view.decode(encoding)

    except UnicodeDecodeError as e:
        raise FormatError("Invalid %s string @ %08x: %s" % (encoding, offset, e))


class EndianReader:
    def __init__(self, base=None, endianness=LITTLE_ENDIAN):
        if base is None:
            base = io.BytesIO()

        elif isinstance(base, (bytes, bytearray, memoryview)):
            base = io.BytesIO(bytes(base))

        self.base = base
        self.endianness = endianness

    @property
    def position(self):
        return self.base.tell()

    @position.setter
    def position(self, value):
        self.base.seek(value)

    def with_endianness(self, endianness):
        return EndianReader(self.base, endianness)

    def _unpack(self, fmt, size):
        data = self.base.read(size)

        if len(data) != size:
            raise FormatError("Unexpected end of data at %08x" % (self.position - len(data)))

        return struct.unpack(self.endianness + fmt, data)[0]

    def read_bytes(self, size):
        data = self.base.read(size)

        if len(data) != size:
            raise FormatError("Unexpected end of data at %08x" % (self.position - len(data)))

        return data

    def read_u8(self):
        return self._unpack("B", 1)

    def read_u16(self):
        return self._unpack("H", 2)

    def read_u32(self):
        return self._unpack("I", 4)

    def read_s32(self):
        return self._unpack("i", 4)

    def read_u64(self):
        return self._unpack("Q", 8)

    def read_f32(self):
        return self._unpack("f", 4)

    def write_bytes(self, data):
        self.base.write(data)

    def write_u16(self, value):
        self.base.write(struct.pack(self.endianness + "H", value))

    def write_u32(self, value):
        self.base.write(struct.pack(self.endianness + "I", value & 0xffffffff))

    def write_s32(self, value):
        self.base.write(struct.pack(self.endianness + "i", value))

    def write_u64(self, value):
        self.base.write(struct.pack(self.endianness + "Q", value))

    def write_f32(self, value):
        self.base.write(struct.pack(self.endianness + "f", value))

    def pad_to(self, offset):
        # Zero-fill forward; seeking past the end alone would not extend a BytesIO
        self.base.seek(0, 2)
        end = self.base.tell()

        if end < offset:
            self.base.write(b"\0" * (offset - end))

        self.base.seek(offset)

    def align(self, alignment):
        remainder = self.position % alignment

        if remainder:
            self.pad_to(self.position + alignment - remainder)

    def getvalue(self):
        return self.base.getvalue()
