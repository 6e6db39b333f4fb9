import pydub

from rawktool.songdata import Instrument


def split_channels(segment):
    if segment.channels == 1:
        return [segment]

    return segment.split_to_mono()


def mix_channels(audioformat, channels):
    # Returns a stereo mix per instrument, in first-mapped order
    if len(channels) != len(audioformat.mappings):
        raise ValueError("Audio format maps %d channels but %d were supplied" % (len(audioformat.mappings), len(channels)))

    mixes = {}

    for mapping, channel in zip(audioformat.mappings, channels):
        if mapping.volume != 0:
            channel = channel + mapping.volume

        channel = channel.pan(max(-1.0, min(1.0, mapping.balance)))

        if mapping.instrument not in mixes:
            mixes[mapping.instrument] = []

        mixes[mapping.instrument].append(channel)

    output = {}
    for instrument, segments in mixes.items():
        length = max(len(segment) for segment in segments)
        mix = pydub.AudioSegment.silent(duration=length, frame_rate=segments[0].frame_rate).set_channels(2)

        for segment in segments:
            mix = mix.overlay(segment)

        output[instrument] = mix

    return output


def mix_audio(audioformat, segment):
    return mix_channels(audioformat, split_channels(segment))


def downmix(mixes):
    # Full song mix; the preview is a separate excerpt
    segments = [segment for instrument, segment in mixes.items() if instrument != Instrument.PREVIEW]

    if not segments:
        return None

    output = segments[0]
    for segment in segments[1:]:
        output = output.overlay(segment)

    return output
