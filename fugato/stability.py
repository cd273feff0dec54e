"""
Stability bias for Fugato themes.

Scale degrees 1, 3 and 5 (indices 0, 2, 4) are stable; the others are
unstable. A bias sets the probability of choosing a stable degree for each
note: STABLE favours them, UNSTABLE avoids them, and MIX takes the
probability from a ratio.
"""

import logging
import random
from enum import Enum
from typing import Optional, Sequence

from .diatonic import absolute_degree, pitch_at_degree
from .modes import Mode

logger = logging.getLogger(__name__)

STABLE_DEGREES = (0, 2, 4)
UNSTABLE_DEGREES = (1, 3, 5, 6)


class StabilityBias(Enum):
    STABLE = "stable"
    UNSTABLE = "unstable"
    MIX = "mix"


def stable_probability(bias: StabilityBias, ratio: float = 50) -> float:
    """
    Chance of choosing a stable degree.

    ``ratio`` is the percentage of unstable notes and only matters for MIX.
    """
    if bias == StabilityBias.STABLE:
        return 0.8
    if bias == StabilityBias.UNSTABLE:
        return 0.2
    return 1 - max(0.0, min(100.0, ratio)) / 100


def _degree_pool(stable: bool, mode: Mode) -> list[int]:
    pool = STABLE_DEGREES if stable else UNSTABLE_DEGREES
    # Pentatonic and other small modes lose their upper degrees
    available = [d for d in pool if d < mode.degree_count]
    return available or [0]


def _tonic_in_octave(mode: Mode, octave: int) -> int:
    return mode.tonic + 12 * (octave + 1)


def generate_stability_theme(
    length: int,
    mode: Mode,
    bias: StabilityBias,
    ratio: float = 50,
    rng: Optional[random.Random] = None,
    octave: int = 4,
) -> list[int]:
    """
    Generate a theme biased toward stable or unstable degrees.

    Args:
        length: Number of notes.
        mode: Mode to draw degrees from.
        bias: Stability bias.
        ratio: Percentage of unstable notes for StabilityBias.MIX.
        rng: Random source (a fresh unseeded one if None).
        octave: Octave of the tonic (4 puts a C tonic on middle C).

    Returns:
        MIDI notes that start and end on the tonic. A length below 1 gives
        an empty theme.
    """
    if length < 1:
        return []
    rng = rng or random.Random()
    tonic = _tonic_in_octave(mode, octave)
    base = absolute_degree(tonic, mode)
    p = stable_probability(bias, ratio)

    theme = [tonic]
    for _ in range(1, length):
        degree = rng.choice(_degree_pool(rng.random() < p, mode))
        theme.append(pitch_at_degree(base + degree, mode))
    theme[-1] = tonic
    return theme


def apply_stability_bias(
    theme: Sequence[int],
    mode: Mode,
    bias: StabilityBias,
    ratio: float = 50,
    rng: Optional[random.Random] = None,
) -> list[int]:
    """
    Push an existing theme toward the requested stability.

    The first and last notes are kept. Every other note is kept if its
    stability already agrees with a fresh draw; otherwise it is replaced by
    a degree of the drawn kind in the same octave.
    """
    rng = rng or random.Random()
    p = stable_probability(bias, ratio)
    result = list(theme)
    changed = 0
    for index in range(1, len(result) - 1):
        octave, degree = divmod(absolute_degree(result[index], mode), mode.degree_count)
        should_be_stable = rng.random() < p
        if (degree in STABLE_DEGREES) == should_be_stable:
            continue
        target = rng.choice(_degree_pool(should_be_stable, mode))
        result[index] = pitch_at_degree(octave * mode.degree_count + target, mode)
        changed += 1
    logger.debug("Stability bias %s changed %d of %d notes", bias.value, changed, len(result))
    return result
