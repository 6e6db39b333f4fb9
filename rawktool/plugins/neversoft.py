import logging

from rawktool.common import FormatError
from rawktool.filesystem import FileNode
from rawktool.framework import Engine, PlatformData
from rawktool.plugins import neversoftmetadata
from rawktool.qb import PakFormat, QbFile, QbItemArray, QbItemStruct, QbKey, StringList
from rawktool.songdata import Game

logger = logging.getLogger(__name__)


def is_songlist(node):
    return isinstance(node, FileNode) and node.name.lower().startswith("songlist.qb")


def find_songs(qbfile):
    for key in neversoftmetadata.SONGLIST_KEYS:
        songlist = qbfile.find_item(QbKey(key), True)

        if isinstance(songlist, (QbItemStruct, QbItemArray)):
            return [item for item in songlist.items if isinstance(item, (QbItemStruct, QbItemArray))]

    return []


class PlatformNeversoft(Engine):
    id = "neversoft"
    name = "Neversoft Songlist"
    registry = None

    def initialise(self, registry):
        self.registry = registry
        super().initialise(registry)
        registry.add_detector(self.detect)

    def detect(self, path, root, platforms):
        if root.find_all(is_songlist):
            platforms.append((self, Game.UNKNOWN))

    def create(self, path, game, progress):
        data = PlatformData(self, game)
        data.session['path'] = path

        root = data.get_directory_structure(path)

        songlists = root.find_all(is_songlist)
        if not songlists:
            logger.warning("Unable to find a songlist in %s", path)
            return data

        songlist = songlists[0]
        qbfile = QbFile.parse(songlist.data, PakFormat.from_filename(songlist.name))

        strings = StringList()
        stringsfile = (songlist.parent or root).navigate("songlist.qs")
        if stringsfile is not None:
            try:
                strings = StringList.parse(stringsfile.data)

            except FormatError:
                logger.warning("Ignoring unreadable string table %s", stringsfile.filename, exc_info=True)

        items = find_songs(qbfile)

        progress.new_task(len(items))

        for item in items:
            if isinstance(item, QbItemArray) and item.items:
                child = item.items[0]
                child.item_qbkey = item.item_qbkey
                item = child

            try:
                song = neversoftmetadata.get_song_data(data, item, strings)
                self.add_song(data, song, progress)

            except Exception:
                logger.exception("Unable to read song %r from %s", item.item_qbkey, songlist.filename)

            progress.progress()

        progress.end_task()

        return data

    def add_song(self, data, song, progress):
        formatdata = self.create_song(data, song)

        metadata = self.registry.find_format(neversoftmetadata.FORMAT_ID) if self.registry is not None else None
        if metadata is not None:
            metadata.save_song_item(formatdata)

        data.add_song(formatdata)
        return True


def get_class():
    return PlatformNeversoft
