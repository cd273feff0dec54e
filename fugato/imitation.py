"""
Imitation engine for Fugato.

Two flavours of imitation of a cantus:

- chromatic: every note moves by the same number of semitones, so the
  melodic intervals are preserved exactly;
- diatonic: the start is moved by the requested interval inside the mode
  and the rest of the line follows the cantus degree by degree.

In both cases the entry delay becomes a run of rest markers in front of
the rhythm; the notes themselves are not shifted in time.
"""

import logging
from typing import Sequence

from .diatonic import adapt_theme_to_mode, diatonic_step_pattern, modal_transpose, move_by_degrees
from .modes import Mode
from .parts import EntrySpec, Part
from .pitch import PLAYABLE_HIGH, PLAYABLE_LOW, clamp_to_range

logger = logging.getLogger(__name__)


def imitate(
    cantus: Sequence[int],
    interval: int,
    delay: float = 0,
    low: int = PLAYABLE_LOW,
    high: int = PLAYABLE_HIGH,
) -> Part:
    """
    Imitate a cantus at a fixed chromatic interval.

    Each note becomes ``note + interval`` and is then brought into
    [low, high] by octave shifts if it falls outside.

    Args:
        cantus: MIDI notes to imitate.
        interval: Transposition in semitones (may be negative).
        delay: Beats of rest before the imitation enters.
        low: Lowest playable note.
        high: Highest playable note.

    Returns:
        The imitating Part. An empty cantus gives an empty Part.
    """
    if not cantus:
        return Part()
    melody = []
    for note in cantus:
        target = note + interval
        placed = clamp_to_range(target, low, high)
        if placed != target:
            logger.debug("Imitation note %d out of range, moved to %d", target, placed)
        melody.append(placed)
    return Part.from_melody(melody, delay)


def imitate_entries(cantus: Sequence[int], entries: Sequence[EntrySpec]) -> list[Part]:
    """Build one chromatic imitation per entry, in order."""
    return [imitate(cantus, entry.interval, entry.delay) for entry in entries]


def imitate_diatonic(
    cantus: Sequence[int],
    mode: Mode,
    interval: int,
    delay: float = 0,
) -> Part:
    """
    Imitate a cantus degree by degree inside a mode.

    The cantus is adapted to the mode first. The first note is modally
    transposed by ``interval``; every following note repeats the cantus's
    degree step, so a major third in the cantus can become a minor third
    in the imitation.

    Returns:
        The imitating Part. An empty cantus gives an empty Part.
    """
    if not cantus:
        return Part()
    source = adapt_theme_to_mode(cantus, mode)
    steps = diatonic_step_pattern(source, mode)
    note = modal_transpose(source[0], interval, mode)
    melody = [note]
    for step in steps:
        note = move_by_degrees(note, step, mode)
        melody.append(note)
    return Part.from_melody([clamp_to_range(n) for n in melody], delay)
