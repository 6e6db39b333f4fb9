import enum
import logging
import zlib

from rawktool.common import BIG_ENDIAN, LITTLE_ENDIAN, EndianReader, FormatError

logger = logging.getLogger(__name__)

MAX_ITEM_DEPTH = 64

ITEM_INTEGER = 0x01
ITEM_FLOAT = 0x02
ITEM_STRING = 0x03
ITEM_STRUCT = 0x0a
ITEM_ARRAY = 0x0c
ITEM_QBKEY = 0x0d


def qbkey_crc(name):
    # Neversoft keys are a CRC-32 over the normalized name; undo zlib's final inversion
    name = name.lower().replace("/", "\\")
    return zlib.crc32(name.encode('ascii')) ^ 0xffffffff


class QbKey:
    def __init__(self, crc, name=None):
        self.crc = crc & 0xffffffff
        self.name = name

    @staticmethod
    def create(value, key_hasher=qbkey_crc):
        if isinstance(value, QbKey):
            return value

        if isinstance(value, str):
            return QbKey(key_hasher(value), value)

        return QbKey(value)

    def __eq__(self, other):
        if not isinstance(other, QbKey):
            return NotImplemented

        return self.crc == other.crc

    def __hash__(self):
        return hash(self.crc)

    def __repr__(self):
        if self.name:
            return "QbKey(%08X, %r)" % (self.crc, self.name)

        return "QbKey(%08X)" % self.crc


class PakFormatType(enum.IntEnum):
    PC = 0
    XBOX = 1
    PS2 = 2
    WII = 3
    PS3 = 4


PAK_FORMAT_EXTENSIONS = {
    '.xen': PakFormatType.XBOX,
    '.ps3': PakFormatType.PS3,
    '.ps2': PakFormatType.PS2,
    '.ngc': PakFormatType.WII,
}


class PakFormat:
    def __init__(self, format_type=PakFormatType.PC, key_hasher=qbkey_crc):
        self.format_type = PakFormatType(format_type)
        self.key_hasher = key_hasher

        if self.format_type in (PakFormatType.PC, PakFormatType.PS2):
            self.endianness = LITTLE_ENDIAN

        else:
            self.endianness = BIG_ENDIAN

        self.pointer_size = 4

    @staticmethod
    def from_filename(filename):
        filename = filename.lower()

        for extension, format_type in PAK_FORMAT_EXTENSIONS.items():
            if filename.endswith(".qb" + extension):
                return PakFormat(format_type)

        return PakFormat(PakFormatType.PC)

    def create_key(self, value):
        return QbKey.create(value, self.key_hasher)

    def read_pointer(self, reader):
        return reader.read_u64() if self.pointer_size == 8 else reader.read_u32()

    def write_pointer(self, writer, value):
        if self.pointer_size == 8:
            writer.write_u64(value)

        else:
            writer.write_u32(value)

    def __repr__(self):
        return "PakFormat(%s)" % self.format_type.name


def find_item(items, key, recursive):
    key = QbKey.create(key)

    for item in items:
        if item.item_qbkey == key:
            return item

    if recursive:
        for item in items:
            found = item.find_item(key, True)

            if found is not None:
                return found

    return None


class QbItemBase:
    type_id = None

    def __init__(self, item_qbkey=None, values=None):
        self.item_qbkey = QbKey.create(item_qbkey) if item_qbkey is not None else None
        self.values = list(values) if values is not None else []
        self.items = []
        self.parent = None

    @property
    def root(self):
        node = self.parent

        while node is not None and not isinstance(node, QbFile):
            node = node.parent

        return node

    @property
    def pak_format(self):
        root = self.root
        return root.pak_format if root is not None else None

    def add_item(self, item):
        item.parent = self
        self.items.append(item)
        return item

    def find_item(self, key, recursive=False):
        return find_item(self.items, key, recursive)

    def clone(self):
        pak_format = self.pak_format or PakFormat()

        writer = EndianReader(None, pak_format.endianness)
        write_item(writer, self, pak_format)

        reader = EndianReader(writer.getvalue(), pak_format.endianness)
        return read_item(reader, pak_format)

    def _read_values(self, reader, count, pak_format):
        pass

    def _write_values(self, writer, pak_format):
        pass

    def __repr__(self):
        return "%s(%r, %r)" % (type(self).__name__, self.item_qbkey, self.values or self.items)


class QbItemInteger(QbItemBase):
    type_id = ITEM_INTEGER

    def _read_values(self, reader, count, pak_format):
        self.values = [reader.read_s32() for _ in range(count)]

    def _write_values(self, writer, pak_format):
        for value in self.values:
            writer.write_s32(value)


class QbItemFloat(QbItemBase):
    type_id = ITEM_FLOAT

    def _read_values(self, reader, count, pak_format):
        self.values = [reader.read_f32() for _ in range(count)]

    def _write_values(self, writer, pak_format):
        for value in self.values:
            writer.write_f32(value)


class QbItemQbKey(QbItemBase):
    type_id = ITEM_QBKEY

    def __init__(self, item_qbkey=None, values=None):
        super().__init__(item_qbkey, [QbKey.create(v) for v in values] if values is not None else None)

    def _read_values(self, reader, count, pak_format):
        self.values = [QbKey(reader.read_u32()) for _ in range(count)]

    def _write_values(self, writer, pak_format):
        for value in self.values:
            writer.write_u32(value.crc)


class QbItemString(QbItemBase):
    type_id = ITEM_STRING

    @property
    def strings(self):
        return self.values

    def _read_values(self, reader, count, pak_format):
        self.values = []

        for _ in range(count):
            length = reader.read_u32()
            value = reader.read_bytes(length)

            try:
                self.values.append(value.decode('utf-8'))

            except UnicodeDecodeError as e:
                raise FormatError("Invalid QB string @ %08x: %s" % (reader.position - length, e))

            reader.position += -length % 4

    def _write_values(self, writer, pak_format):
        for value in self.values:
            encoded = value.encode('utf-8')
            writer.write_u32(len(encoded))
            writer.write_bytes(encoded)
            writer.write_bytes(b"\0" * (-len(encoded) % 4))


class QbItemStruct(QbItemBase):
    type_id = ITEM_STRUCT


class QbItemArray(QbItemBase):
    type_id = ITEM_ARRAY


ITEM_TYPES = {cls.type_id: cls for cls in [QbItemInteger, QbItemFloat, QbItemString, QbItemStruct, QbItemArray, QbItemQbKey]}


def read_item(reader, pak_format, depth=0):
    if depth > MAX_ITEM_DEPTH:
        raise FormatError("QB items nested deeper than %d levels" % MAX_ITEM_DEPTH)

    item_offset = reader.position
    type_id = reader.read_u32()
    crc = reader.read_u32()
    count = pak_format.read_pointer(reader)

    if type_id not in ITEM_TYPES:
        raise FormatError("Unknown QB item type %08x @ %08x" % (type_id, item_offset))

    item = ITEM_TYPES[type_id](QbKey(crc) if crc != 0 else None)

    if type_id in (ITEM_STRUCT, ITEM_ARRAY):
        for _ in range(count):
            item.add_item(read_item(reader, pak_format, depth + 1))

    else:
        item._read_values(reader, count, pak_format)

    return item


def write_item(writer, item, pak_format):
    writer.write_u32(item.type_id)
    writer.write_u32(item.item_qbkey.crc if item.item_qbkey is not None else 0)

    if isinstance(item, (QbItemStruct, QbItemArray)):
        pak_format.write_pointer(writer, len(item.items))

        for child in item.items:
            write_item(writer, child, pak_format)

    else:
        pak_format.write_pointer(writer, len(item.values))
        item._write_values(writer, pak_format)


class QbFile:
    def __init__(self, pak_format=None, flags=0):
        self.pak_format = pak_format if pak_format is not None else PakFormat()
        self.flags = flags
        self.items = []
        self.parent = None

    @staticmethod
    def parse(data, pak_format=None):
        qbfile = QbFile(pak_format)

        reader = EndianReader(data, qbfile.pak_format.endianness)
        qbfile.flags = reader.read_u32()
        file_size = reader.read_u32()

        if file_size > len(data):
            raise FormatError("QB file claims %d bytes but only %d are available" % (file_size, len(data)))

        while reader.position < file_size:
            qbfile.add_item(read_item(reader, qbfile.pak_format))

        logger.debug("Parsed QB file with %d root items (%r)", len(qbfile.items), qbfile.pak_format)

        return qbfile

    def add_item(self, item):
        item.parent = self
        self.items.append(item)
        return item

    def find_item(self, key, recursive=False):
        return find_item(self.items, key, recursive)

    def write(self):
        writer = EndianReader(None, self.pak_format.endianness)
        writer.write_u32(self.flags)
        writer.write_u32(0)

        for item in self.items:
            write_item(writer, item, self.pak_format)

        file_size = writer.position
        writer.position = 4
        writer.write_u32(file_size)

        return writer.getvalue()


class StringList:
    def __init__(self, items=None):
        self.items = []

        if items:
            self.add_range(items)

    @staticmethod
    def parse(data):
        data = bytes(data)

        try:
            if data.startswith(b"\xff\xfe") or data.startswith(b"\xfe\xff"):
                text = data.decode('utf-16')

            else:
                text = data.decode('utf-16-le')

        except UnicodeDecodeError as e:
            raise FormatError("Invalid string table: %s" % e)

        strings = StringList()
        for line in text.splitlines():
            line = line.strip()

            if not line:
                continue

            crc, _, value = line.partition(" ")
            value = value.strip()

            if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
                value = value[1:-1]

            try:
                strings.add(QbKey(int(crc, 16)), value)

            except ValueError:
                logger.warning("Skipping malformed string table line %r", line)

        return strings

    def save(self):
        lines = ['%08x "%s"\n' % (key.crc, value) for key, value in self.items]
        return b"\xff\xfe" + "".join(lines).encode('utf-16-le')

    def add(self, key, value):
        self.items.append((QbKey.create(key), value))

    def add_range(self, items):
        for key, value in items:
            self.add(key, value)

    def find_item(self, key):
        key = QbKey.create(key)

        for item_key, value in self.items:
            if item_key == key:
                return value

        return None

    def __contains__(self, key):
        return self.find_item(key) is not None

    def __len__(self):
        return len(self.items)
