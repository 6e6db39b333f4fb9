import logging
import zlib

from rawktool.common import BIG_ENDIAN, EndianReader, FormatError, substream

logger = logging.getLogger(__name__)

HEADER_SIZE_TABLE_OFFSET = 0x10


def inflate(data):
    # Raw deflate stream, no zlib/gzip wrapper
    decompressor = zlib.decompressobj(-zlib.MAX_WBITS)

    try:
        output = decompressor.decompress(bytes(data))
        output += decompressor.flush()

    except zlib.error as e:
        raise FormatError("Unable to inflate Milo part: %s" % e)

    return output


def deflate(data):
    compressor = zlib.compressobj(9, zlib.DEFLATED, -zlib.MAX_WBITS)
    return compressor.compress(bytes(data)) + compressor.flush()


class Milo:
    MAGIC_COMPRESSED = 0xAFDEBECB
    MAGIC_UNCOMPRESSED = 0xAFDEBECA
    DEFAULT_DATA_OFFSET = 0x810

    def __init__(self, compressed=True, data_offset=DEFAULT_DATA_OFFSET, parts=None):
        self.compressed = compressed
        self.data_offset = data_offset
        self.parts = parts if parts is not None else []

    @staticmethod
    def create(data, endianness=BIG_ENDIAN):
        reader = EndianReader(data, BIG_ENDIAN)

        magic = reader.read_u32()
        if magic == Milo.MAGIC_COMPRESSED:
            compressed = True

        elif magic == Milo.MAGIC_UNCOMPRESSED:
            compressed = False

        else:
            raise FormatError("Unknown Milo magic %08x" % magic)

        reader = reader.with_endianness(endianness)

        data_offset = reader.read_u32()
        part_count = reader.read_u32()
        uncompressed_size = reader.read_u32()

        milo = Milo(compressed, data_offset)

        offset = data_offset
        for i in range(part_count):
            reader.position = HEADER_SIZE_TABLE_OFFSET + i * 4
            size = reader.read_u32()

            part = substream(data, offset, size)
            offset += size

            if compressed:
                part = inflate(part)

            milo.parts.append(part)

        logger.debug("Read Milo with %d parts (%d bytes uncompressed, compressed: %s)", part_count, uncompressed_size, compressed)

        return milo

    def save(self, endianness=BIG_ENDIAN):
        if self.data_offset < HEADER_SIZE_TABLE_OFFSET + len(self.parts) * 4:
            raise ValueError("Data offset %08x cannot hold a size table for %d parts" % (self.data_offset, len(self.parts)))

        writer = EndianReader(None, BIG_ENDIAN)
        writer.write_u32(Milo.MAGIC_COMPRESSED if self.compressed else Milo.MAGIC_UNCOMPRESSED)

        writer = writer.with_endianness(endianness)
        writer.write_u32(self.data_offset)
        writer.write_u32(len(self.parts))

        size_position = writer.position

        writer.pad_to(self.data_offset)

        size_table = []
        total_size = 0

        for part in self.parts:
            before_position = writer.position

            if self.compressed:
                writer.write_bytes(deflate(part))

            else:
                writer.write_bytes(bytes(part))

            size_table.append(writer.position - before_position)
            total_size += len(part)

        writer.position = size_position
        writer.write_u32(total_size)

        for size in size_table:
            writer.write_u32(size)

        return writer.getvalue()
