from rawktool.framework import Format, FormatType
from rawktool.tex import create_txm

FILENAME = "texture"


class TextureFormat(Format):
    id = 0x3001
    name = "FPS4 Texture"
    type = FormatType.TEXTURE
    readable = True
    writable = False
    filename = FILENAME

    def decode(self, data, progress=None):
        stream = data.get_stream(FILENAME)

        if stream is None:
            return None

        return create_txm(stream)

    def can_transfer(self, data):
        return True


def get_class():
    return TextureFormat
