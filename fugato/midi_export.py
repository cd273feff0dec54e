"""
Standard MIDI File export for Fugato parts.

Every Part becomes one track on its own channel. The first track also
carries the tempo and time signature.
"""

import logging
from pathlib import Path
from typing import Optional, Sequence, Union

import mido

from .parts import Part

logger = logging.getLogger(__name__)

DEFAULT_TICKS_PER_BEAT = 480
DEFAULT_VELOCITY = 80
DRUM_CHANNEL = 9


def _channel_for(index: int) -> int:
    """Channels 0-15 in order, skipping the General MIDI drum channel."""
    channel = index % 15
    return channel + 1 if channel >= DRUM_CHANNEL else channel


def part_to_track(
    part: Part,
    channel: int = 0,
    ticks_per_beat: int = DEFAULT_TICKS_PER_BEAT,
    velocity: int = DEFAULT_VELOCITY,
    program: Optional[int] = None,
    name: Optional[str] = None,
) -> mido.MidiTrack:
    """
    Render one Part as a MIDI track.

    Rest markers advance time by one beat; each onset plays the next note
    for its duration.
    """
    track = mido.MidiTrack()
    if name:
        track.append(mido.MetaMessage("track_name", name=name, time=0))
    if program is not None:
        track.append(mido.Message("program_change", program=program, channel=channel, time=0))

    events: list[tuple[int, int, str, int]] = []
    for start, note, duration in part.note_events():
        on_tick = round(start * ticks_per_beat)
        off_tick = on_tick + max(1, round(duration * ticks_per_beat))
        # note_off sorts before note_on at the same tick
        events.append((on_tick, 1, "note_on", note))
        events.append((off_tick, 0, "note_off", note))
    events.sort()

    now = 0
    for tick, _, kind, note in events:
        vel = velocity if kind == "note_on" else 0
        track.append(mido.Message(kind, note=note, velocity=vel, channel=channel, time=tick - now))
        now = tick
    track.append(mido.MetaMessage("end_of_track", time=0))
    return track


def parts_to_midi(
    parts: Sequence[Part],
    tempo: float = 96.0,
    ticks_per_beat: int = DEFAULT_TICKS_PER_BEAT,
    velocity: int = DEFAULT_VELOCITY,
    programs: Optional[Sequence[int]] = None,
    beats_per_measure: int = 4,
) -> mido.MidiFile:
    """
    Build a type 1 MIDI file with one track per Part.

    Args:
        parts: Parts to render, in voice order.
        tempo: Tempo in BPM.
        ticks_per_beat: MIDI resolution.
        velocity: Note-on velocity for every note.
        programs: General MIDI program per part (no program change if None).
        beats_per_measure: Numerator of the time signature.

    Returns:
        A mido.MidiFile.
    """
    midi = mido.MidiFile(type=1, ticks_per_beat=ticks_per_beat)
    for index, part in enumerate(parts):
        program = programs[index] if programs is not None and index < len(programs) else None
        track = part_to_track(
            part,
            channel=_channel_for(index),
            ticks_per_beat=ticks_per_beat,
            velocity=velocity,
            program=program,
            name=f"Voice {index + 1}",
        )
        if index == 0:
            track.insert(0, mido.MetaMessage("set_tempo", tempo=mido.bpm2tempo(tempo), time=0))
            track.insert(1, mido.MetaMessage(
                "time_signature", numerator=beats_per_measure, denominator=4, time=0
            ))
        midi.tracks.append(track)
    return midi


def write_midi(path: Union[str, Path], parts: Sequence[Part], **kwargs) -> Path:
    """Write parts to a .mid file and return its path."""
    path = Path(path)
    midi = parts_to_midi(parts, **kwargs)
    midi.save(str(path))
    logger.info("Wrote %d tracks to %s", len(midi.tracks), path)
    return path
