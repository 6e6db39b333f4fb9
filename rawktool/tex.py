from rawktool.common import FormatError
from rawktool.fps4 import Fps4

SECONDARY_EXTENSION = ".TTX"
TEXTURE_TYPES = ["txmv", "pktx"]


class Txm:
    def __init__(self, header, data):
        self.header = header
        self.data = data


def create_txm(data, depth=0):
    fps = data if isinstance(data, Fps4) else Fps4(data, depth)

    if fps.type == "txmv":
        if fps.child_count != 2:
            entry = next((e for e in fps.root if e.name.upper().endswith(SECONDARY_EXTENSION)), None)

            if entry is None:
                raise FormatError("Texture archive has %d children and no %s part" % (fps.child_count, SECONDARY_EXTENSION))

            child = fps.open_child(entry)

            # Secondary parts only need the header/data pair, whatever their tag
            if child.type not in TEXTURE_TYPES:
                if child.child_count != 2:
                    raise FormatError("Secondary texture part %r has %d children" % (entry.name, child.child_count))

                return Txm(child[0].data, child[1].data)

            return create_txm(child)

        return Txm(fps[0].data, fps[1].data)

    elif fps.type == "pktx":
        if fps.child_count == 0:
            raise FormatError("Texture package is empty")

        return create_txm(fps.open_child(0))

    raise FormatError("Unknown texture archive type %r" % fps.type)
