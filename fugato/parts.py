"""
Part and entry types for Fugato.

A Part is what every generator hands to playback or export: a melody,
a rhythm of rest/onset markers, and optionally the exact duration of each
note. The rhythm is a beat grid: each REST marker is one silent beat and
each ONSET marker starts the next melody note.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional, Sequence

REST = 0
ONSET = 1


class VoiceRole(Enum):
    """Role a voice plays in a contrapuntal texture."""

    SUBJECT = "subject"
    ANSWER = "answer"
    COUNTERSUBJECT = "countersubject"
    FREE = "free"


def rhythm_with_entry_delay(length: int, delay: float = 0) -> tuple[int, ...]:
    """
    Build a rhythm for ``length`` notes entering after ``delay`` beats.

    Fractional delays are rounded down to whole rest markers.
    """
    rests = max(0, math.floor(delay))
    return (REST,) * rests + (ONSET,) * length


@dataclass(frozen=True)
class EntrySpec:
    """
    A manual imitation or fugue entry.

    Attributes:
        interval: Transposition of the entry in semitones.
        delay: Beats of rest before the entry starts.
    """

    interval: int = 0
    delay: int = 0


@dataclass(frozen=True)
class Part:
    """
    A single voice ready for playback.

    Attributes:
        melody: MIDI notes, one per onset marker.
        rhythm: REST / ONSET markers.
        durations: Optional per-note durations in beats (1 beat each if None).
    """

    melody: tuple[int, ...] = ()
    rhythm: tuple[int, ...] = ()
    durations: Optional[tuple[float, ...]] = None

    def __post_init__(self):
        object.__setattr__(self, "melody", tuple(self.melody))
        object.__setattr__(self, "rhythm", tuple(self.rhythm))
        if self.durations is not None:
            object.__setattr__(self, "durations", tuple(float(d) for d in self.durations))
            if len(self.durations) != len(self.melody):
                raise ValueError(
                    f"Part has {len(self.melody)} notes but {len(self.durations)} durations"
                )
        onsets = sum(1 for marker in self.rhythm if marker == ONSET)
        if onsets != len(self.melody):
            raise ValueError(f"Part has {len(self.melody)} notes but {onsets} onset markers")

    @classmethod
    def from_melody(
        cls,
        melody: Sequence[int],
        delay: float = 0,
        durations: Optional[Sequence[float]] = None,
    ) -> "Part":
        """Build a Part that starts after ``delay`` beats of rest."""
        return cls(
            tuple(melody),
            rhythm_with_entry_delay(len(melody), delay),
            tuple(durations) if durations is not None else None,
        )

    def __len__(self) -> int:
        return len(self.melody)

    @property
    def is_empty(self) -> bool:
        return not self.melody

    @property
    def leading_rests(self) -> int:
        """Number of rest markers before the first onset."""
        count = 0
        for marker in self.rhythm:
            if marker != REST:
                break
            count += 1
        return count

    def duration_of(self, index: int) -> float:
        """Duration in beats of the note at ``index``."""
        if self.durations is None:
            return 1.0
        return self.durations[index]

    def note_events(self) -> Iterator[tuple[float, int, float]]:
        """
        Yield (start_beat, note, duration) for every note in the part.
        """
        beat = 0.0
        index = 0
        for marker in self.rhythm:
            if marker == REST:
                beat += 1.0
                continue
            duration = self.duration_of(index)
            yield beat, self.melody[index], duration
            beat += duration
            index += 1

    def total_beats(self) -> float:
        """Length of the part in beats, rests included."""
        rests = sum(1 for marker in self.rhythm if marker == REST)
        return rests + sum(self.duration_of(i) for i in range(len(self.melody)))
