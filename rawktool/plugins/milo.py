from rawktool.framework import Format, FormatType
from rawktool.milo import Milo

FILENAME = "milo"


class MiloFormat(Format):
    id = 0x2001
    name = "Harmonix Milo"
    type = FormatType.CONTAINER
    readable = True
    writable = True
    filename = FILENAME

    def decode(self, data, progress=None):
        stream = data.get_stream(FILENAME)

        if stream is None:
            return None

        return Milo.create(stream)

    def encode(self, obj, destination, progress=None):
        destination.set_stream(FILENAME, obj.save())

    def can_transfer(self, data):
        return True

    def remux(self, format, data, destination, progress=None):
        if not self.can_remux(format):
            return super().remux(format, data, destination, progress)

        milo = format.decode(data, progress)
        if milo is None:
            return

        milo.compressed = True
        self.encode(milo, destination, progress)


def get_class():
    return MiloFormat
