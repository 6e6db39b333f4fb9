import base64
import enum
import json


class Instrument(enum.Enum):
    AMBIENT = "ambient"
    GUITAR = "guitar"
    BASS = "bass"
    DRUMS = "drums"
    VOCALS = "vocals"
    PREVIEW = "preview"


class Game(enum.Enum):
    UNKNOWN = "unknown"
    GUITAR_HERO_3 = "gh3"
    GUITAR_HERO_AEROSMITH = "gha"
    GUITAR_HERO_WORLD_TOUR = "ghwt"
    GUITAR_HERO_METALLICA = "ghm"
    GUITAR_HERO_SMASH_HITS = "ghsh"
    GUITAR_HERO_VAN_HALEN = "ghvh"
    GUITAR_HERO_5 = "gh5"
    BAND_HERO = "bh"
    ROCK_BAND = "rb"
    ROCK_BAND_2 = "rb2"


class SongDataBag:
    """Opaque per-song values carried through a conversion untouched."""

    def __init__(self):
        self.values = {}

    def get_value(self, key, default=None):
        return self.values.get(key, default)

    def set_value(self, key, value):
        if isinstance(value, (bytearray, memoryview)):
            value = bytes(value)

        if not isinstance(value, (bytes, int, str)):
            raise TypeError("Unsupported song data value for %r: %r" % (key, type(value).__name__))

        self.values[key] = value

    def remove_value(self, key):
        self.values.pop(key, None)

    def __contains__(self, key):
        return key in self.values

    def to_json(self):
        output = {}

        for key, value in self.values.items():
            if isinstance(value, bytes):
                output[key] = {'type': 'bytes', 'value': base64.b64encode(value).decode('ascii')}

            elif isinstance(value, bool):
                output[key] = {'type': 'bool', 'value': value}

            elif isinstance(value, int):
                output[key] = {'type': 'int', 'value': value}

            else:
                output[key] = {'type': 'str', 'value': value}

        return output

    @staticmethod
    def from_json(data):
        bag = SongDataBag()

        for key, entry in data.items():
            if entry['type'] == 'bytes':
                bag.set_value(key, base64.b64decode(entry['value']))

            elif entry['type'] == 'bool':
                bag.set_value(key, bool(entry['value']))

            elif entry['type'] == 'int':
                bag.set_value(key, int(entry['value']))

            else:
                bag.set_value(key, str(entry['value']))

        return bag


class SongData:
    def __init__(self, platform_data=None):
        self.id = ""
        self.name = ""
        self.artist = ""
        self.album = ""
        self.genre = ""
        self.year = 0
        self.master = False
        self.difficulty = {}
        self.vocalist = ""
        self.hopo_threshold = 0
        self.version = 1
        self.album_art = None
        self.data = SongDataBag()

        if platform_data is not None:
            self.game = platform_data.game

        else:
            self.game = Game.UNKNOWN

    def save(self):
        output = {
            'id': self.id,
            'name': self.name,
            'artist': self.artist,
            'album': self.album,
            'genre': self.genre,
            'year': self.year,
            'master': self.master,
            'difficulty': {instrument.value: rank for instrument, rank in self.difficulty.items()},
            'vocalist': self.vocalist,
            'hopo_threshold': self.hopo_threshold,
            'game': self.game.value,
            'version': self.version,
            'data': self.data.to_json(),
        }

        return json.dumps(output, indent=4, ensure_ascii=False).encode('utf-8')

    @staticmethod
    def create(data, platform_data=None):
        metadata = json.loads(bytes(data).decode('utf-8'))

        song = SongData(platform_data)
        song.id = metadata.get('id', "")
        song.name = metadata.get('name', "")
        song.artist = metadata.get('artist', "")
        song.album = metadata.get('album', "")
        song.genre = metadata.get('genre', "")
        song.year = metadata.get('year', 0)
        song.master = metadata.get('master', False)
        song.difficulty = {Instrument(k): v for k, v in metadata.get('difficulty', {}).items()}
        song.vocalist = metadata.get('vocalist', "")
        song.hopo_threshold = metadata.get('hopo_threshold', 0)
        song.version = metadata.get('version', 1)
        song.data = SongDataBag.from_json(metadata.get('data', {}))

        if 'game' in metadata:
            song.game = Game(metadata['game'])

        return song

    def __repr__(self):
        return "SongData(%r, %r by %r)" % (self.id, self.name, self.artist)


class AudioFormat:
    class Mapping:
        def __init__(self, volume, balance, instrument):
            self.volume = volume
            self.balance = balance
            self.instrument = instrument

        def __eq__(self, other):
            if not isinstance(other, AudioFormat.Mapping):
                return NotImplemented

            return (self.volume, self.balance, self.instrument) == (other.volume, other.balance, other.instrument)

        def __repr__(self):
            return "Mapping(%r, %r, %s)" % (self.volume, self.balance, self.instrument.name)

    def __init__(self, mappings=None):
        self.mappings = list(mappings) if mappings is not None else []

    def get_mappings(self, instrument):
        return [mapping for mapping in self.mappings if mapping.instrument == instrument]

    @property
    def channels(self):
        return len(self.mappings)
