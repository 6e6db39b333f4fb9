import argparse
import logging
import struct
import sys

import hexdump

from rawktool import plugins
from rawktool.common import FormatError
from rawktool.fps4 import MAGIC as FPS4_MAGIC, Fps4
from rawktool.framework import PlatformData, ProgressIndicator, transfer_song
from rawktool.milo import Milo
from rawktool.songdata import Game

logger = logging.getLogger(__name__)

DUMP_LENGTH = 0x100


def find_handler(registry, input_path, engine_name):
    if engine_name is not None:
        engine = registry.find_engine(engine_name)
        return [(engine, Game.UNKNOWN)] if engine is not None else []

    return registry.detect(input_path)


def dump_file(filename):
    with open(filename, "rb") as infile:
        data = infile.read()

    if data[:4] == FPS4_MAGIC:
        archive = Fps4(data)
        print("FPS4 archive, type %s, %d entries" % (archive.type, len(archive)))

        for entry in archive.root:
            print("%s (%d bytes%s)" % (entry.name, len(entry.data), ", archive" if entry.is_nested_archive else ""))
            hexdump.hexdump(bytes(entry.data[:DUMP_LENGTH]))

        return

    if len(data) >= 4 and struct.unpack(">I", data[:4])[0] in (Milo.MAGIC_COMPRESSED, Milo.MAGIC_UNCOMPRESSED):
        milo = Milo.create(data)
        print("Milo, %d parts, compressed: %s" % (len(milo.parts), milo.compressed))

        for index, part in enumerate(milo.parts):
            print("Part %d (%d bytes)" % (index, len(part)))
            hexdump.hexdump(bytes(part[:DUMP_LENGTH]))

        return

    hexdump.hexdump(data[:DUMP_LENGTH])


def process_folder(registry, params):
    platforms = find_handler(registry, params['input'], params['engine'])

    if not platforms:
        print("Could not find a handler for input folder")
        exit(1)

    if len(platforms) > 1:
        print("Multiple handlers match the input folder, pick one with --engine:")

        for engine, game in platforms:
            print("    %s (%s)" % (engine.id, engine.name))

        exit(1)

    input_engine, game = platforms[0]
    if params['game'] is not None:
        game = params['game']

    print("Using {} handler to process this folder...".format(input_engine.name))

    progress = ProgressIndicator()

    try:
        input_data = input_engine.create(params['input'], game, progress)

    except FormatError as e:
        print("Unable to read input folder: %s" % e)
        exit(1)

    if params['list'] or not params['output']:
        for formatdata in input_data.songs:
            song = formatdata.song
            print("%s: %s - %s (%d)" % (song.id, song.artist, song.name, song.year))

        return input_data

    output_engine = registry.find_engine(params['output_engine'])
    if output_engine is None:
        print("Could not find a handler for output folder")
        exit(1)

    output_data = PlatformData(output_engine, game)
    output_data.session['path'] = params['output']

    progress.new_task(len(input_data.songs))

    for formatdata in input_data.songs:
        try:
            destination = output_engine.create_song(output_data, formatdata.song)
            transfer_song(registry, formatdata, destination, progress)
            output_engine.save_song(output_data, destination, progress)
            output_data.add_song(destination)

            print("Converted", formatdata.song.name or formatdata.song.id)

        except (FormatError, OSError):
            logger.exception("Unable to convert %r", formatdata.song)

        progress.progress()

    progress.end_task()

    return output_data


def main(args=None):
    parser = argparse.ArgumentParser()
    parser.add_argument('--input', help='Input folder (or file with --dump)', required=True)
    parser.add_argument('--output', help='Output folder')
    parser.add_argument('--engine', help='Input engine, skips platform detection')
    parser.add_argument('--output-engine', help='Output engine', default='rawkfile')
    parser.add_argument('--game', help='Game the input songs come from', choices=[game.value for game in Game])
    parser.add_argument('--list', help='List songs instead of converting them', action='store_true')
    parser.add_argument('--dump', help='Hex dump an archive or container file', action='store_true')
    parser.add_argument('--verbose', help='Verbose logging', action='store_true')
    args = parser.parse_args(args)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format="%(levelname)s: %(message)s")

    if args.dump:
        dump_file(args.input)
        return

    registry = plugins.initialise()

    params = {
        'input': args.input,
        'output': args.output,
        'engine': args.engine,
        'output_engine': args.output_engine,
        'game': Game(args.game) if args.game else None,
        'list': args.list,
    }

    process_folder(registry, params)


if __name__ == "__main__":
    main(sys.argv[1:])
