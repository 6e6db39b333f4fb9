import io
import logging
import os

from PIL import Image

from rawktool.common import get_sanitized_filename
from rawktool.framework import Engine, PlatformData
from rawktool.songdata import Game, SongData

logger = logging.getLogger(__name__)

SONGDATA_FILENAME = "songdata"
ALBUM_FILENAMES = ["album.png", "album"]


class PlatformRawkFile(Engine):
    id = "rawkfile"
    name = "RawkSD Song Archive"

    def initialise(self, registry):
        super().initialise(registry)
        registry.add_detector(self.detect)

    def detect(self, path, root, platforms):
        if root.find(SONGDATA_FILENAME, recursive=True) is not None:
            platforms.append((self, Game.UNKNOWN))

    def create(self, path, game, progress):
        data = PlatformData(self, game)
        data.session['path'] = path

        root = data.get_directory_structure(path)

        dirs = [root] + root.directories

        progress.new_task(len(dirs))

        for songdir in dirs:
            data.session['songdir'] = songdir

            datafile = songdir.navigate(SONGDATA_FILENAME, False)
            if datafile is None:
                if songdir is not root:
                    logger.warning("Unable to find a custom in %s", songdir.filename)

                progress.progress()
                continue

            try:
                song = SongData.create(datafile.data, data)
                self.add_song(data, song, progress)

            except Exception:
                logger.exception("Unable to open the custom from %s", songdir.filename)

            progress.progress()

        progress.end_task()

        return data

    def add_song(self, data, song, progress):
        formatdata = self.create_song(data, song)

        songdir = data.session.get('songdir')
        if songdir is not None:
            for file in songdir.files:
                if file.name == SONGDATA_FILENAME:
                    continue

                if file.name.lower() in ALBUM_FILENAMES:
                    song.album_art = Image.open(io.BytesIO(file.data))
                    song.album_art.load()
                    continue

                formatdata.set_stream(file.name, file.data)

        data.add_song(formatdata)

        return True

    def save_song(self, data, formatdata, progress):
        song = formatdata.song

        output_folder = os.path.join(data.session['path'], get_sanitized_filename(song.id or song.name or "song_%04d" % len(data.songs)))

        if not os.path.exists(output_folder):
            os.makedirs(output_folder)

        with open(os.path.join(output_folder, SONGDATA_FILENAME), "wb") as outfile:
            outfile.write(song.save())

        for name in formatdata.stream_names:
            with open(os.path.join(output_folder, get_sanitized_filename(name)), "wb") as outfile:
                outfile.write(formatdata.get_stream(name))

        if song.album_art is not None:
            song.album_art.save(os.path.join(output_folder, ALBUM_FILENAMES[0]), "PNG")

        return output_folder


def get_class():
    return PlatformRawkFile
