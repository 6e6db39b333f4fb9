import enum
import logging
import os

from rawktool.common import UnsupportedOperationError
from rawktool.filesystem import DirectoryNode

logger = logging.getLogger(__name__)


class FormatType(enum.Enum):
    METADATA = "metadata"
    AUDIO = "audio"
    CHART = "chart"
    TEXTURE = "texture"
    CONTAINER = "container"


class Format:
    id = None
    name = None
    type = None
    readable = False
    writable = False
    filename = None

    def initialise(self, registry):
        registry.add_format(self)

    def decode(self, data, progress=None):
        raise UnsupportedOperationError("%s cannot be decoded" % self.name)

    def encode(self, obj, destination, progress=None):
        raise UnsupportedOperationError("%s cannot be encoded" % self.name)

    def can_remux(self, format):
        return format is self

    def remux(self, format, data, destination, progress=None):
        if not self.can_remux(format):
            raise UnsupportedOperationError("%s cannot be remuxed from %s" % (self.name, format.name))

        for name in self.get_stream_names(data):
            destination.set_stream(name, data.get_stream(name))

    def can_transfer(self, data):
        return False

    def has_format(self, data):
        return self.filename is not None and data.has_stream(self.filename)

    def get_stream_names(self, data):
        return [name for name in data.stream_names if name == self.filename or name.startswith(self.filename + ".")]

    def __repr__(self):
        return "<%s %04x %r>" % (type(self).__name__, self.id or 0, self.name)


class FormatData:
    def __init__(self, song=None, platform_data=None):
        self.song = song
        self.platform_data = platform_data
        self.streams = {}

    def set_stream(self, name, data):
        self.streams[name] = bytes(data)

    def get_stream(self, name):
        return self.streams.get(name)

    def has_stream(self, name):
        return name in self.streams

    def remove_stream(self, name):
        self.streams.pop(name, None)

    @property
    def stream_names(self):
        return list(self.streams)

    def get_formats(self, registry):
        return [format for format in registry.formats if format.has_format(self)]


class PlatformData:
    def __init__(self, engine, game):
        self.engine = engine
        self.game = game
        self.songs = []
        self.session = {}

    def add_song(self, formatdata):
        formatdata.platform_data = self
        self.songs.append(formatdata)

    def get_directory_structure(self, path):
        if not os.path.isdir(path):
            raise FileNotFoundError("Not a directory: %s" % path)

        return DirectoryNode.from_path(path)


class Engine:
    id = None
    name = None

    def initialise(self, registry):
        registry.add_engine(self)

    def create(self, path, game, progress):
        raise UnsupportedOperationError("%s cannot import songs" % self.name)

    def create_song(self, data, song):
        return FormatData(song, data)

    def add_song(self, data, song, progress):
        raise UnsupportedOperationError("%s cannot add songs" % self.name)

    def save_song(self, data, formatdata, progress):
        raise UnsupportedOperationError("%s cannot save songs" % self.name)

    def __repr__(self):
        return "<%s %r>" % (type(self).__name__, self.name)


class ProgressIndicator:
    def __init__(self):
        self.tasks = []

    def new_task(self, count):
        self.tasks.append([0, count])
        logger.debug("Started task with %d steps", count)

    def progress(self):
        if self.tasks:
            self.tasks[-1][0] += 1
            logger.debug("Progress %d/%d", self.tasks[-1][0], self.tasks[-1][1])

    def end_task(self):
        if self.tasks:
            done, count = self.tasks.pop()
            logger.debug("Finished task (%d/%d)", done, count)


class Registry:
    def __init__(self):
        self.formats = []
        self.engines = []
        self.detectors = []
        self.initialised = False

    def add_format(self, format):
        if self.find_format(format.id) is not None:
            raise ValueError("A format with id %04x is already registered" % format.id)

        self.formats.append(format)

    def add_engine(self, engine):
        if self.find_engine(engine.id) is not None:
            raise ValueError("An engine with id %r is already registered" % engine.id)

        self.engines.append(engine)

    def add_detector(self, detector):
        if detector in self.detectors:
            logger.debug("Detector %r is already registered", detector)
            return

        self.detectors.append(detector)

    def find_format(self, key):
        for format in self.formats:
            if format.id == key or (isinstance(key, str) and format.name.lower() == key.lower()):
                return format

        return None

    def find_engine(self, key):
        for engine in self.engines:
            if engine.id == key or (isinstance(key, str) and engine.name.lower() == key.lower()):
                return engine

        return None

    def detect(self, path, root=None):
        # Every proposal is returned; choosing between them is up to the caller
        if root is None:
            root = DirectoryNode.from_path(path)

        platforms = []
        for detector in self.detectors:
            detector(path, root, platforms)

        return platforms


def find_remux_target(registry, format):
    # The format itself goes first, then any writable format declaring compatibility
    candidates = [format] + [other for other in registry.formats if other is not format]

    for candidate in candidates:
        if candidate.writable and candidate.can_remux(format):
            return candidate

    return None


def transfer_song(registry, source, destination, progress=None):
    for format in source.get_formats(registry):
        if format.can_transfer(source):
            for name in format.get_stream_names(source):
                destination.set_stream(name, source.get_stream(name))

        else:
            target = find_remux_target(registry, format)

            if target is None:
                logger.warning("Unable to carry %s data for %r", format.name, source.song)
                continue

            target.remux(format, source, destination, progress)


REGISTRY = Registry()
