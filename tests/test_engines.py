"""Tests for the song engines and the command line tool."""

import json
import logging

import pytest
from PIL import Image

from rawktool import plugins
from rawktool.fps4 import Fps4
from rawktool.framework import PlatformData, ProgressIndicator, Registry
from rawktool.plugins import neversoftmetadata
from rawktool.qb import PakFormat, PakFormatType, QbFile, QbItemArray, QbItemInteger, QbItemQbKey, QbItemString, QbItemStruct, QbKey, StringList
from rawktool.rawktool import main
from rawktool.songdata import Game, SongData

ALBUM_KEY = 0x0000CAFE


def _add_song(parent, song_id, name):
    song = parent.add_item(QbItemStruct(song_id))
    song.add_item(QbItemString(neversoftmetadata.QBKEYS_ID[0], [song_id]))
    song.add_item(QbItemString(neversoftmetadata.QBKEYS_NAME[0], [name]))
    song.add_item(QbItemString(neversoftmetadata.QBKEYS_ARTIST[0], ["The Band"]))
    song.add_item(QbItemQbKey(neversoftmetadata.QBKEYS_ALBUM[0], [ALBUM_KEY]))
    song.add_item(QbItemInteger(neversoftmetadata.QBKEYS_YEAR[0], [2009]))
    return song


def _write_songlist(folder, wrap_in_array=False):
    qbfile = QbFile(PakFormat(PakFormatType.PS3))
    songlist = qbfile.add_item(QbItemStruct(neversoftmetadata.SONGLIST_KEYS[0]))

    _add_song(songlist, "firstsong", "First Song")

    if wrap_in_array:
        _add_song(songlist.add_item(QbItemArray("secondsong")), "secondsong", "Second Song")

    else:
        _add_song(songlist, "secondsong", "Second Song")

    data = folder / "DATA"
    data.mkdir(parents=True)
    (data / "songlist.qb.ps3").write_bytes(qbfile.write())
    (data / "songlist.qs").write_bytes(StringList([(ALBUM_KEY, "The Album")]).save())

    return folder


def _registry():
    return plugins.initialise(Registry())


def test_neversoft_import(tmp_path):
    """Songs in a songlist are read with their strings."""
    registry = _registry()
    engine = registry.find_engine("neversoft")
    _write_songlist(tmp_path)

    progress = ProgressIndicator()
    data = engine.create(str(tmp_path), Game.GUITAR_HERO_5, progress)

    assert progress.tasks == []
    assert [formatdata.song.name for formatdata in data.songs] == ["First Song", "Second Song"]

    song = data.songs[0].song
    assert song.id == "firstsong"
    assert song.artist == "The Band"
    assert song.album == "The Album"
    assert song.year == 2009
    assert song.game == Game.GUITAR_HERO_5

    formatdata = data.songs[0]
    assert formatdata.platform_data is data
    assert formatdata.has_stream(neversoftmetadata.FILENAME)
    assert registry.find_format(neversoftmetadata.FORMAT_ID).get_song_item(formatdata).item_qbkey == QbKey.create("firstsong")


def test_neversoft_import_array_wrapped(tmp_path):
    """Songs wrapped in an array keep the array's key."""
    registry = _registry()
    _write_songlist(tmp_path, wrap_in_array=True)

    data = registry.find_engine("neversoft").create(str(tmp_path), Game.UNKNOWN, ProgressIndicator())
    song = data.songs[1].song

    assert song.name == "Second Song"
    assert song.data.get_value("NeversoftSongItemKey") == QbKey.create("secondsong").crc


def test_neversoft_without_songlist(tmp_path, caplog):
    """A folder without a songlist yields no songs."""
    engine = _registry().find_engine("neversoft")

    with caplog.at_level(logging.WARNING):
        data = engine.create(str(tmp_path), Game.UNKNOWN, ProgressIndicator())

    assert data.songs == []
    assert "Unable to find a songlist" in caplog.text


def _save_custom(registry, folder, song_id, streams):
    engine = registry.find_engine("rawkfile")
    data = PlatformData(engine, Game.UNKNOWN)
    data.session['path'] = str(folder)

    song = SongData(data)
    song.id = song_id
    song.name = song_id.title()
    song.album_art = Image.new("RGB", (4, 4), "red")
    song.data.set_value("Custom", b"\x00\x01")

    formatdata = engine.create_song(data, song)
    for name, stream in streams.items():
        formatdata.set_stream(name, stream)

    return engine.save_song(data, formatdata, ProgressIndicator())


def test_rawkfile_roundtrip(tmp_path):
    """Saved songs load back with their streams and album art."""
    registry = _registry()
    folder = _save_custom(registry, tmp_path, "mysong", {"milo": b"milo data", "neversoftdata": b"qb"})

    assert (tmp_path / "mysong" / "songdata").exists()
    assert (tmp_path / "mysong" / "album.png").exists()
    assert folder.endswith("mysong")

    data = registry.find_engine("rawkfile").create(str(tmp_path), Game.UNKNOWN, ProgressIndicator())
    assert len(data.songs) == 1

    formatdata = data.songs[0]
    assert formatdata.song.name == "Mysong"
    assert formatdata.song.data.get_value("Custom") == b"\x00\x01"
    assert formatdata.song.album_art.size == (4, 4)
    assert formatdata.streams == {"milo": b"milo data", "neversoftdata": b"qb"}


def test_rawkfile_skips_broken_songs(tmp_path, caplog):
    """A broken song is logged and the rest still load."""
    registry = _registry()
    _save_custom(registry, tmp_path, "good", {})

    broken = tmp_path / "broken"
    broken.mkdir()
    (broken / "songdata").write_bytes(b"not json")

    (tmp_path / "empty").mkdir()

    with caplog.at_level(logging.WARNING):
        data = registry.find_engine("rawkfile").create(str(tmp_path), Game.UNKNOWN, ProgressIndicator())

    assert [formatdata.song.id for formatdata in data.songs] == ["good"]
    assert "Unable to open the custom" in caplog.text
    assert "Unable to find a custom" in caplog.text


def test_cli_list(tmp_path, capsys):
    """Listing prints every detected song."""
    _write_songlist(tmp_path)
    main(["--input", str(tmp_path), "--list"])

    output = capsys.readouterr().out
    assert "Using Neversoft Songlist handler" in output
    assert "firstsong: The Band - First Song (2009)" in output
    assert "secondsong: The Band - Second Song (2009)" in output


def test_cli_convert(tmp_path):
    """Songlists convert into song archive folders."""
    source = _write_songlist(tmp_path / "in")
    output = tmp_path / "out"

    main(["--input", str(source), "--output", str(output), "--game", "ghvh"])

    metadata = json.loads((output / "firstsong" / "songdata").read_text(encoding='utf-8'))
    assert metadata['name'] == "First Song"
    assert metadata['game'] == "ghvh"
    assert (output / "secondsong" / neversoftmetadata.FILENAME).exists()

    data = plugins.initialise().find_engine("rawkfile").create(str(output), Game.UNKNOWN, ProgressIndicator())
    metadata_format = plugins.initialise().find_format(neversoftmetadata.FORMAT_ID)
    song_items = [metadata_format.get_song_item(formatdata) for formatdata in data.songs]
    assert [item.item_qbkey for item in song_items] == [QbKey.create("firstsong"), QbKey.create("secondsong")]


def test_cli_no_handler(tmp_path, capsys):
    """An unrecognised folder exits with an error."""
    (tmp_path / "readme.txt").write_text("nothing here")

    with pytest.raises(SystemExit) as error:
        main(["--input", str(tmp_path)])

    assert error.value.code == 1
    assert "Could not find a handler" in capsys.readouterr().out


def test_cli_ambiguous_handler(tmp_path, capsys):
    """A folder matching several engines asks for one to be picked."""
    _write_songlist(tmp_path)
    (tmp_path / "custom").mkdir()
    (tmp_path / "custom" / "songdata").write_bytes(SongData().save())

    with pytest.raises(SystemExit):
        main(["--input", str(tmp_path)])

    output = capsys.readouterr().out
    assert "neversoft" in output
    assert "rawkfile" in output

    main(["--input", str(tmp_path), "--engine", "neversoft", "--list"])
    assert "First Song" in capsys.readouterr().out


def test_cli_dump(tmp_path, capsys):
    """Dumping an archive lists its entries."""
    archive = tmp_path / "archive.bin"
    archive.write_bytes(Fps4.build("test", [("first.bin", b"hello"), ("second.bin", b"world")]))

    main(["--input", str(archive), "--dump"])

    output = capsys.readouterr().out
    assert "FPS4 archive, type test, 2 entries" in output
    assert "first.bin (5 bytes)" in output


def test_neversoft_bad_string_table(tmp_path, caplog):
    """An unreadable string table is skipped and songs still import."""
    _write_songlist(tmp_path)
    (tmp_path / "DATA" / "songlist.qs").write_bytes(b"\xff\xfe\x41")

    with caplog.at_level(logging.WARNING):
        data = _registry().find_engine("neversoft").create(str(tmp_path), Game.UNKNOWN, ProgressIndicator())

    assert [formatdata.song.name for formatdata in data.songs] == ["First Song", "Second Song"]
    assert data.songs[0].song.album == ""
    assert "Ignoring unreadable string table" in caplog.text


def test_cli_corrupt_songlist(tmp_path, capsys):
    """A songlist that cannot be parsed exits with an error."""
    data = tmp_path / "DATA"
    data.mkdir()
    (data / "songlist.qb.ps3").write_bytes(b"\0\0\0\0\0\0\x10\0")

    with pytest.raises(SystemExit) as error:
        main(["--input", str(tmp_path), "--list"])

    assert error.value.code == 1
    assert "Unable to read input folder" in capsys.readouterr().out
