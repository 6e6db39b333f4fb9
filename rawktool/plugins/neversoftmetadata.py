import logging

from rawktool.common import DEFAULT_TICKS_PER_BEAT
from rawktool.framework import Format, FormatType
from rawktool.qb import PakFormat, QbFile, QbItemArray, QbItemFloat, QbItemInteger, QbItemQbKey, QbItemString, QbItemStruct, QbKey, StringList
from rawktool.songdata import AudioFormat, Game, Instrument, SongData

logger = logging.getLogger(__name__)

FORMAT_ID = 0x1001
FILENAME = "neversoftdata"

QBKEYS_ID = [0xA1DC81F9]
QBKEYS_NAME = [0xD4C98794]
QBKEYS_ARTIST = [0xFEA66978]
QBKEYS_ALBUM = [0xA271CDB2]
QBKEYS_YEAR = [0x447D8CC8]
QBKEYS_MASTER = [0xADDA4AA8]
QBKEYS_GENRE = [0x7CAFCC07]
QBKEYS_VOCALIST = [0x6749E668]
QBKEYS_HOPO = [0xDEB26ABF]
QBKEYS_BAND_VOLUME = [0xD8F335CF] # band_playback_volume
QBKEYS_GUITAR_VOLUME = [0xA449CAD3] # guitar_playback_volume
QBKEYS_OVERALL_VOLUME = [0x46507438] # overall_song_volume

QBKEYS_DIFFICULTY = {
    Instrument.AMBIENT: [0xD163AD32],
    Instrument.DRUMS: [0x0AA62D30],
    Instrument.BASS: [0xDE88B0FB],
    Instrument.GUITAR: [0x1A166358],
    Instrument.VOCALS: [0x3862937D],
}

DIFFICULTY_SCALE = {
    Instrument.AMBIENT: 60,
    Instrument.DRUMS: 50,
    Instrument.VOCALS: 45,
    Instrument.BASS: 55,
    Instrument.GUITAR: 60,
}

QBKEYS_GENRES = [
    # GH5
    ([0xC8B6445D], "Rock"),
    ([0x28955034], "Modern Rock"),
    ([0xF51BFB59], "Speed Metal"),
    ([0xE0006B71], "Nu Metal"),
    ([0xDD52AF3C], "Hard Rock"),
    ([0x46FEED4A], "Surf Rock"),
    ([0x1474F917], "Blues Rock"),
    ([0xF100A205], "Alternative"),
    ([0x137EBAC2], "Classic Rock"),
    ([0x979DCB71], "Pop Rock"),
    ([0x605C9021], "Indie Rock"),
    ([0x6B291F66], "Hip Hop"),
    ([0x3CD1E8EC], "Southern Rock"),
    ([0xD1120C22], "Grunge"),
    ([0xAA9491B5], "New Wave"),
    ([0x990C6A70], "Death Metal"),
    ([0x998B5B11], "Pop Punk"),
    ([0x70E16585], "Industrial"),
    ([0x3F9D0B36], "Metal"),
    ([0xC6A0D43D], "Punk"),
    ([0xB3D2DC7E], "Funk"),
    ([0xAC8C3699], "Country"),
    ([0xB8E3F63D], "Progressive"),
    ([0xE8D7A2A7], "Glam"),

    # GHWT
    ([0xE62F48E9], "Pop"),
    ([0x109A68B0], "Heavy Metal"),
    ([0xCA3AA956], "Black Metal"),
    ([0x33FB36DC], "Goth"),
]

QBKEY_VOCALIST_MALE = 0xAA721F56

SONGLIST_KEYS = [
    0x5A93AE17, # GH3 + GH4, GHVH
    0x3CC2A6C9, # GH5
    0x1254A0AA, # Band Hero
    0x0AA26E1F, # GH5.0
    0x5C00078F, # GH5 DLC
    0x92AA3758, # GH4
    0x39673CC9, # GH4 DLC
    0x4B98496F, # GH4.1
    0x6250FD9D, # GH4.2
    0xCC386C0C, # GH4.3
    0x8D024B7C, # GH5.2
    0x236ADAED, # GH5.3
    0xDE932298, # GH5.4
    0x150A123B, # GH6
    0xF3A94A45, # GH6 DLC
    0x5C04EE27, # GHWT DLC
]


def get_qb_item(item, keys, item_type=None):
    # First candidate key present wins; older titles hashed some fields differently
    for key in keys:
        key = QbKey.create(key)

        if item_type is None:
            subitem = item.find_item(key, False)

        else:
            subitem = next((i for i in item.items if i.item_qbkey == key and isinstance(i, item_type)), None)

        if subitem is not None:
            return subitem

    return None


def get_song_data_string(item, keys, strings):
    data = get_qb_item(item, keys)

    if isinstance(data, QbItemString) and data.values:
        return data.values[0]

    if isinstance(data, QbItemQbKey) and data.values:
        return strings.find_item(data.values[0]) or ""

    return ""


def merge_genres(strings):
    if strings.find_item(QBKEYS_GENRES[0][0][0]) is not None:
        return

    # Only the first key of each genre is seeded
    for keys, name in QBKEYS_GENRES:
        strings.add(keys[0], name)


def get_song_data(platform_data, item, strings=None):
    if strings is None:
        strings = StringList()

    song = SongData(platform_data)

    song.id = get_song_data_string(item, QBKEYS_ID, strings)
    song.name = get_song_data_string(item, QBKEYS_NAME, strings)
    song.artist = get_song_data_string(item, QBKEYS_ARTIST, strings)
    song.album = get_song_data_string(item, QBKEYS_ALBUM, strings)

    merge_genres(strings)
    song.genre = get_song_data_string(item, QBKEYS_GENRE, strings)

    year = get_qb_item(item, QBKEYS_YEAR, QbItemInteger)
    if isinstance(year, QbItemInteger) and year.values:
        song.year = year.values[0]

    else:
        # ", 2009"
        try:
            song.year = int(get_song_data_string(item, QBKEYS_YEAR, strings).lstrip(", "))

        except ValueError:
            pass

    master = get_qb_item(item, QBKEYS_MASTER, QbItemInteger)
    if isinstance(master, QbItemInteger) and master.values:
        song.master = master.values[0] == 1

    for instrument, keys in QBKEYS_DIFFICULTY.items():
        rank = get_qb_item(item, keys, QbItemInteger)

        if isinstance(rank, QbItemInteger) and rank.values:
            song.difficulty[instrument] = rank.values[0] * DIFFICULTY_SCALE[instrument]

    vocal_male = QbKey.create(QBKEY_VOCALIST_MALE)
    vocal_female = QbKey.create("female")
    if strings.find_item(vocal_male) is None:
        strings.add(vocal_male, "male")

    if strings.find_item(vocal_female) is None:
        strings.add(vocal_female, "female")

    song.vocalist = get_song_data_string(item, QBKEYS_VOCALIST, strings)
    if not song.vocalist:
        song.vocalist = "male"

    hopo = get_qb_item(item, QBKEYS_HOPO, QbItemFloat)
    if isinstance(hopo, QbItemFloat) and hopo.values and hopo.values[0] != 0:
        song.hopo_threshold = int(DEFAULT_TICKS_PER_BEAT / hopo.values[0])

    # Keep the whole item so it can be written back without modelling every field
    pak_format = item.pak_format or PakFormat()
    qbfile = QbFile(pak_format)
    qbfile.add_item(item.clone())

    song.data.set_value("NeversoftSongItem", qbfile.write())
    song.data.set_value("NeversoftSongType", int(pak_format.format_type))
    song.data.set_value("NeversoftSongItemKey", item.item_qbkey.crc if item.item_qbkey is not None else 0)

    return song


def get_song_item_type(song):
    return PakFormat(song.data.get_value("NeversoftSongType", 0))


def is_guitar_hero_4(game):
    return game in (Game.GUITAR_HERO_WORLD_TOUR, Game.GUITAR_HERO_METALLICA, Game.GUITAR_HERO_SMASH_HITS, Game.GUITAR_HERO_VAN_HALEN)


def is_four_channel_drums(game):
    # GH4 engine games released after GHWT; the GH5 engine went back to the GHWT layout
    return is_guitar_hero_4(game) and game != Game.GUITAR_HERO_WORLD_TOUR


def is_stereo_bass(game):
    return game == Game.GUITAR_HERO_VAN_HALEN


def get_volume(item, keys):
    subitem = get_qb_item(item, keys, QbItemFloat)

    if isinstance(subitem, QbItemFloat) and subitem.values:
        return subitem.values[0]

    return None


def create_audio_format(item, game):
    band_volume = 0
    guitar_volume = 0
    bass_volume = 0
    drum_volume = 0

    volume = get_volume(item, QBKEYS_BAND_VOLUME)
    if volume is not None:
        band_volume = volume
        bass_volume = volume

    volume = get_volume(item, QBKEYS_GUITAR_VOLUME)
    if volume is not None:
        guitar_volume = volume

    volume = get_volume(item, QBKEYS_OVERALL_VOLUME)
    if volume is not None:
        band_volume = volume
        guitar_volume = volume
        bass_volume = volume
        drum_volume = volume

    audioformat = AudioFormat()
    mappings = audioformat.mappings

    if is_four_channel_drums(game):
        # Kick
        mappings.append(AudioFormat.Mapping(drum_volume, -1, Instrument.DRUMS))
        mappings.append(AudioFormat.Mapping(drum_volume, 1, Instrument.DRUMS))
        # Snare
        mappings.append(AudioFormat.Mapping(drum_volume, -1, Instrument.DRUMS))
        mappings.append(AudioFormat.Mapping(drum_volume, 1, Instrument.DRUMS))

    else:
        # Kick
        mappings.append(AudioFormat.Mapping(drum_volume, 0, Instrument.DRUMS))
        # Snare
        mappings.append(AudioFormat.Mapping(drum_volume, 0, Instrument.DRUMS))

    # Overhead
    mappings.append(AudioFormat.Mapping(drum_volume, -1, Instrument.DRUMS))
    mappings.append(AudioFormat.Mapping(drum_volume, 1, Instrument.DRUMS))

    mappings.append(AudioFormat.Mapping(guitar_volume, -1, Instrument.GUITAR))
    mappings.append(AudioFormat.Mapping(guitar_volume, 1, Instrument.GUITAR))

    if is_stereo_bass(game):
        mappings.append(AudioFormat.Mapping(bass_volume, -1, Instrument.BASS))
        mappings.append(AudioFormat.Mapping(bass_volume, 1, Instrument.BASS))

    else:
        mappings.append(AudioFormat.Mapping(bass_volume, 0, Instrument.BASS))

    # Everything else, vocals included
    mappings.append(AudioFormat.Mapping(band_volume, -1, Instrument.AMBIENT))
    mappings.append(AudioFormat.Mapping(band_volume, 1, Instrument.AMBIENT))

    mappings.append(AudioFormat.Mapping(band_volume, -1, Instrument.PREVIEW))
    mappings.append(AudioFormat.Mapping(band_volume, 1, Instrument.PREVIEW))

    return audioformat


class NeversoftMetadata(Format):
    id = FORMAT_ID
    name = "Neversoft Song Data"
    type = FormatType.METADATA
    readable = True
    writable = True
    filename = FILENAME

    def decode(self, data, progress=None):
        return None

    def encode(self, obj, destination, progress=None):
        pass

    def can_transfer(self, data):
        return True

    def has_format(self, data):
        if data.has_stream(FILENAME):
            return True

        return data.song is not None and bool(data.song.data.get_value("NeversoftSongItem"))

    def save_song_item(self, formatdata):
        song = formatdata.song
        data = song.data.get_value("NeversoftSongItem")

        if not data:
            return

        formatdata.set_stream(FILENAME, data)
        song.data.set_value("NeversoftSongItem", b"")

    def get_song_item(self, formatdata):
        song = formatdata.song

        data = formatdata.get_stream(FILENAME)
        if not data:
            self.save_song_item(formatdata)
            data = formatdata.get_stream(FILENAME)

        if not data:
            return None

        qbfile = QbFile.parse(data, get_song_item_type(song))

        key = song.data.get_value("NeversoftSongItemKey", 0)
        if key:
            item = qbfile.find_item(QbKey(key), True)

        else:
            item = qbfile.items[0] if qbfile.items else None

        if isinstance(item, QbItemArray) and item.items:
            child = item.items[0]
            child.item_qbkey = item.item_qbkey
            item = child

        if not isinstance(item, QbItemStruct):
            logger.warning("No song item %08x found for %r", key, song)
            return None

        return item

    def get_audio_format(self, formatdata):
        item = self.get_song_item(formatdata)

        if item is None:
            return None

        return create_audio_format(item, formatdata.song.game)


def get_class():
    return NeversoftMetadata
