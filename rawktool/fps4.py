import logging

from rawktool.common import BIG_ENDIAN, MAX_NESTING_DEPTH, EndianReader, FormatError, read_string, substream

logger = logging.getLogger(__name__)

MAGIC = b"FPS4"
HEADER_SIZE = 0x1c
ENTRY_SIZE = 0x2c
NAME_SIZE = 0x20
CONTENT_BITMASK = 0x0047
DATA_ALIGNMENT = 0x10


class Fps4Entry:
    def __init__(self, name, data):
        self.name = name
        self.data = data

    @property
    def is_nested_archive(self):
        return bytes(self.data[0:4]) == MAGIC

    def __repr__(self):
        return "Fps4Entry(%r, %d bytes)" % (self.name, len(self.data))


class Fps4:
    def __init__(self, data, depth=0):
        if depth > MAX_NESTING_DEPTH:
            raise FormatError("FPS4 archives nested deeper than %d levels" % MAX_NESTING_DEPTH)

        self.depth = depth
        self.data = memoryview(data)

        reader = EndianReader(data, BIG_ENDIAN)

        magic = reader.read_bytes(4)
        if magic != MAGIC:
            raise FormatError("Unknown archive magic %r" % magic)

        entry_count = reader.read_u32()
        header_size = reader.read_u32()
        self.data_offset = reader.read_u32()
        entry_size = reader.read_u16()
        bitmask = reader.read_u16()
        reader.read_u32()
        self.type = reader.read_bytes(4).decode('ascii', 'replace')

        if entry_size != ENTRY_SIZE or bitmask != CONTENT_BITMASK:
            raise FormatError("Unsupported FPS4 directory layout (entry size %04x, bitmask %04x)" % (entry_size, bitmask))

        if entry_count == 0:
            raise FormatError("FPS4 directory is missing its terminator entry")

        self.entries = []

        # The last entry only terminates the directory
        for i in range(entry_count - 1):
            reader.position = header_size + i * entry_size

            offset = reader.read_u32()
            reader.read_u32()
            size = reader.read_u32()
            name = read_string(reader.read_bytes(NAME_SIZE), 0)

            self.entries.append(Fps4Entry(name, substream(self.data, offset, size)))

        logger.debug("Opened FPS4 %r with %d entries at depth %d", self.type, len(self.entries), depth)

    @property
    def root(self):
        return self.entries

    @property
    def child_count(self):
        return len(self.entries)

    def __getitem__(self, index):
        return self.entries[index]

    def __len__(self):
        return len(self.entries)

    def find(self, name):
        for entry in self.entries:
            if entry.name.upper() == name.upper():
                return entry

        return None

    def open_child(self, entry):
        if isinstance(entry, int):
            entry = self.entries[entry]

        return Fps4(entry.data, self.depth + 1)

    def save(self):
        return Fps4.build(self.type, [(entry.name, entry.data) for entry in self.entries])

    @staticmethod
    def create(archive_type, files):
        return Fps4(Fps4.build(archive_type, files))

    @staticmethod
    def build(archive_type, files):
        archive_type = archive_type.encode('ascii') if isinstance(archive_type, str) else archive_type

        if len(archive_type) != 4:
            raise ValueError("FPS4 type tag must be 4 bytes: %r" % archive_type)

        entry_count = len(files) + 1
        data_offset = HEADER_SIZE + entry_count * ENTRY_SIZE
        data_offset += -data_offset % DATA_ALIGNMENT

        writer = EndianReader(None, BIG_ENDIAN)
        writer.write_bytes(MAGIC)
        writer.write_u32(entry_count)
        writer.write_u32(HEADER_SIZE)
        writer.write_u32(data_offset)
        writer.write_u16(ENTRY_SIZE)
        writer.write_u16(CONTENT_BITMASK)
        writer.write_u32(0)
        writer.write_bytes(archive_type)

        # Directory is backfilled once the file offsets are known
        writer.pad_to(data_offset)

        directory = []
        for name, data in files:
            offset = writer.position
            writer.write_bytes(bytes(data))
            writer.align(DATA_ALIGNMENT)
            directory.append((offset, writer.position - offset, len(data), name))

        file_size = writer.position

        writer.position = HEADER_SIZE
        for offset, padded_size, size, name in directory:
            encoded_name = name.encode('ascii')

            if len(encoded_name) > NAME_SIZE:
                raise ValueError("FPS4 entry name too long: %r" % name)

            writer.write_u32(offset)
            writer.write_u32(padded_size)
            writer.write_u32(size)
            writer.write_bytes(encoded_name.ljust(NAME_SIZE, b"\0"))

        writer.write_u32(file_size)
        writer.write_bytes(b"\0" * (ENTRY_SIZE - 4))

        return writer.getvalue()
