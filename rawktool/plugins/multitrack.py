import io
import logging

import pydub

from rawktool.audio import mix_audio
from rawktool.framework import Format, FormatType
from rawktool.plugins import neversoftmetadata

logger = logging.getLogger(__name__)

FORMAT_ID = 0x4001
FILENAME = "audio"
STEM_FORMAT = "wav"


class MultitrackFormat(Format):
    """Multichannel song audio, split into one stereo stem per instrument on remux."""

    id = FORMAT_ID
    name = "Multitrack Audio"
    type = FormatType.AUDIO
    readable = True
    writable = True
    filename = FILENAME
    registry = None

    def initialise(self, registry):
        self.registry = registry
        super().initialise(registry)

    def decode(self, data, progress=None):
        stream = data.get_stream(FILENAME)

        if stream is None:
            return None

        return pydub.AudioSegment.from_file(io.BytesIO(stream), format=STEM_FORMAT)

    def encode(self, mixes, destination, progress=None):
        for instrument, segment in mixes.items():
            output = io.BytesIO()
            segment.export(output, format=STEM_FORMAT)
            destination.set_stream("%s.%s" % (FILENAME, instrument.value), output.getvalue())

    def get_audio_format(self, data):
        if self.registry is None:
            return None

        metadata = self.registry.find_format(neversoftmetadata.FORMAT_ID)
        if metadata is None or not metadata.has_format(data):
            return None

        return metadata.get_audio_format(data)

    def can_transfer(self, data):
        # Only audio with a known channel layout is split
        return self.get_audio_format(data) is None

    def remux(self, format, data, destination, progress=None):
        audioformat = self.get_audio_format(data) if self.can_remux(format) else None

        if audioformat is None:
            return super().remux(format, data, destination, progress)

        segment = format.decode(data, progress)
        if segment is None:
            return

        if segment.channels != audioformat.channels:
            logger.warning("Audio for %r has %d channels, expected %d; copying it unchanged", data.song, segment.channels, audioformat.channels)
            return super().remux(format, data, destination, progress)

        self.encode(mix_audio(audioformat, segment), destination, progress)


def get_class():
    return MultitrackFormat
