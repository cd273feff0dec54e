"""
Mode catalog for Fugato.

Provides the Mode type, a catalog of named step patterns drawn from many
musical traditions, and helpers for building hybrid modes, altered modes
and related-mode suggestions. The catalog is built by a pure function; the
only cache is a ModeCatalog instance owned by the caller.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence

from .errors import DegenerateModeError, ModeNotFoundError
from .pitch import PITCH_NAMES

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_LIMIT = 200


@dataclass(frozen=True)
class Mode:
    """
    A named mode rooted on a tonic pitch class.

    Attributes:
        name: Display name, e.g. "Dorian".
        step_pattern: Semitone steps between successive degrees; sums to 12.
        tonic: Pitch class of the final (0-11, 0 = C).
        octave_span: Largest range in semitones an adapted melody may cover.
        index: Position of the mode in the catalog it came from.
    """

    name: str
    step_pattern: tuple[int, ...]
    tonic: int = 0
    octave_span: int = 12
    index: int = 0

    def __post_init__(self):
        object.__setattr__(self, "step_pattern", tuple(self.step_pattern))
        object.__setattr__(self, "tonic", self.tonic % 12)
        if not self.step_pattern:
            raise DegenerateModeError(f"Mode '{self.name}' has no steps")
        if any(step <= 0 for step in self.step_pattern):
            raise DegenerateModeError(
                f"Mode '{self.name}' has a non-positive step: {list(self.step_pattern)}"
            )
        if sum(self.step_pattern) != 12:
            raise DegenerateModeError(
                f"Mode '{self.name}' steps sum to {sum(self.step_pattern)}, not 12"
            )

    @property
    def degree_count(self) -> int:
        """Number of distinct degrees in the mode."""
        return len(self.step_pattern)

    @property
    def intervals(self) -> tuple[int, ...]:
        """Semitone offset of each degree above the tonic."""
        offsets = [0]
        for step in self.step_pattern[:-1]:
            offsets.append(offsets[-1] + step)
        return tuple(offsets)

    @property
    def pitch_classes(self) -> tuple[int, ...]:
        """Pitch classes of the degrees, in degree order."""
        return tuple((self.tonic + offset) % 12 for offset in self.intervals)

    @property
    def full_name(self) -> str:
        return f"{PITCH_NAMES[self.tonic]} {self.name}"

    def contains(self, note: int) -> bool:
        """Return True if the note's pitch class belongs to the mode."""
        return note % 12 in self.pitch_classes

    def transposed(self, tonic: int) -> "Mode":
        """Return the same mode on another tonic."""
        return Mode(self.name, self.step_pattern, tonic, self.octave_span, self.index)


class ModeFamily(Enum):
    """Catalog groups, in display order."""

    WESTERN_TRADITIONAL = "Western Traditional"
    CHINESE = "Chinese Modes"
    JAPANESE = "Japanese Modes"
    MIDDLE_EASTERN = "Middle Eastern"
    INDIAN_CLASSICAL = "Indian Classical"
    EUROPEAN_FOLK = "European Folk"
    AFRICAN = "African Modes"
    NATIVE_AMERICAN = "Native American"
    BLUES_JAZZ = "Blues & Jazz"
    EXOTIC = "Exotic Scales"
    MICROTONAL = "Microtonal Experiments"


# Step patterns per family
MODE_CATALOG: dict[ModeFamily, tuple[tuple[str, tuple[int, ...]], ...]] = {
    ModeFamily.WESTERN_TRADITIONAL: (
        ("Ionian (Major)", (2, 2, 1, 2, 2, 2, 1)),
        ("Dorian", (2, 1, 2, 2, 2, 1, 2)),
        ("Phrygian", (1, 2, 2, 2, 1, 2, 2)),
        ("Lydian", (2, 2, 2, 1, 2, 2, 1)),
        ("Mixolydian", (2, 2, 1, 2, 2, 1, 2)),
        ("Aeolian (Natural Minor)", (2, 1, 2, 2, 1, 2, 2)),
        ("Locrian", (1, 2, 2, 1, 2, 2, 2)),
        ("Harmonic Minor", (2, 1, 2, 2, 1, 3, 1)),
        ("Melodic Minor", (2, 1, 2, 2, 2, 2, 1)),
        ("Double Harmonic", (1, 3, 1, 2, 1, 3, 1)),
        ("Neapolitan Minor", (1, 2, 2, 2, 1, 3, 1)),
        ("Neapolitan Major", (1, 2, 2, 2, 2, 2, 1)),
    ),
    ModeFamily.CHINESE: (
        ("Gong", (2, 2, 3, 2, 3)),
        ("Shang", (2, 3, 2, 2, 3)),
        ("Jiao", (3, 2, 2, 3, 2)),
        ("Zhi", (2, 2, 3, 3, 2)),
        ("Yu", (2, 3, 2, 3, 2)),
        ("Chinese Traditional", (4, 2, 1, 4, 1)),
        ("Chinese Ceremonial", (1, 4, 2, 2, 3)),
        ("Mongolian", (3, 2, 4, 1, 2)),
        ("Pelog (Chinese Style)", (2, 1, 3, 3, 3)),
    ),
    ModeFamily.JAPANESE: (
        ("Hirajoshi", (2, 1, 4, 1, 4)),
        ("Kumoi", (2, 1, 4, 2, 3)),
        ("In", (1, 4, 2, 1, 4)),
        ("Iwato", (1, 4, 1, 4, 2)),
        ("Yo", (2, 2, 2, 2, 4)),
        ("Insen", (1, 2, 4, 1, 2, 2)),
        ("Akebono", (1, 4, 3, 1, 3)),
        ("Sakura", (2, 3, 2, 2, 3)),
        ("Hon-kumoi-joshi", (1, 2, 3, 1, 2, 3)),
        ("Taishikicho", (4, 1, 2, 4, 1)),
    ),
    ModeFamily.MIDDLE_EASTERN: (
        ("Ahava Rabbah", (1, 3, 1, 2, 1, 3, 1)),
        ("Phrygian Dominant", (1, 3, 1, 2, 1, 2, 2)),
        ("Byzantine", (1, 3, 1, 2, 1, 2, 2)),
        ("Hijaz", (2, 1, 3, 1, 2, 1, 2)),
        ("Maqam Kurd", (3, 1, 2, 2, 1, 2, 1)),
        ("Egyptian", (2, 2, 1, 2, 2, 1, 2)),
        ("Hijaz Kar", (1, 3, 1, 2, 2, 1, 2)),
        ("Nikriz", (2, 1, 3, 1, 1, 3, 1)),
        ("Saba", (1, 2, 3, 1, 2, 1, 2)),
        ("Bayati", (2, 1, 2, 2, 1, 3, 1)),
        ("Rast", (1, 3, 1, 2, 1, 1, 3)),
        ("Ajam", (2, 1, 3, 1, 2, 2, 1)),
        ("Ussak", (1, 2, 2, 2, 1, 3, 1)),
        ("Hicaz Humayun", (3, 1, 1, 3, 1, 2, 1)),
    ),
    ModeFamily.INDIAN_CLASSICAL: (
        ("Bilawal", (2, 2, 1, 2, 2, 2, 1)),
        ("Khamaj", (2, 1, 2, 2, 2, 1, 2)),
        ("Bhairav", (1, 2, 2, 2, 1, 2, 2)),
        ("Bhairavi", (1, 3, 1, 2, 1, 2, 2)),
        ("Kalyan", (2, 1, 2, 2, 1, 3, 1)),
        ("Marwa", (1, 2, 2, 1, 2, 2, 2)),
        ("Purvi", (2, 2, 1, 2, 1, 3, 1)),
        ("Todi", (1, 3, 1, 2, 2, 1, 2)),
        ("Ahir Bhairav", (2, 1, 3, 1, 1, 3, 1)),
        ("Basant", (1, 2, 3, 1, 1, 3, 1)),
    ),
    ModeFamily.EUROPEAN_FOLK: (
        ("Irish Traditional", (2, 1, 2, 2, 1, 2, 2)),
        ("Scottish Bagpipe", (1, 2, 2, 2, 1, 2, 2)),
        ("Gypsy Scale", (2, 2, 1, 2, 1, 2, 2)),
        ("Flamenco", (1, 3, 1, 1, 3, 1, 2)),
        ("Romanian Major", (2, 1, 3, 1, 2, 2, 1)),
        ("Hungarian Folk", (1, 2, 3, 1, 1, 2, 2)),
        ("Klezmer", (2, 2, 2, 1, 1, 2, 2)),
        ("Ukrainian Dorian", (1, 2, 1, 3, 1, 2, 2)),
    ),
    ModeFamily.AFRICAN: (
        ("West African Pentatonic", (2, 1, 3, 2, 1, 3)),
        ("Ethiopian Traditional", (3, 2, 2, 2, 3)),
        ("Chromatic African", (1, 2, 2, 2, 2, 2, 1)),
        ("Mbira Scale", (2, 2, 1, 3, 2, 2)),
        ("Kora Tuning", (3, 1, 3, 2, 1, 2)),
        ("Maghreb", (2, 3, 1, 2, 2, 2)),
        ("Moorish", (1, 3, 2, 1, 3, 2)),
    ),
    ModeFamily.NATIVE_AMERICAN: (
        ("Plains Indian", (3, 2, 2, 3, 2)),
        ("Cherokee", (2, 3, 2, 2, 3)),
        ("Navajo Traditional", (1, 4, 1, 3, 3)),
        ("Pueblo Scale", (4, 1, 2, 3, 2)),
        ("Lakota", (2, 1, 4, 2, 3)),
        ("Inuit Traditional", (1, 3, 3, 2, 3)),
    ),
    ModeFamily.BLUES_JAZZ: (
        ("Blues Scale", (3, 2, 1, 1, 3, 2)),
        ("Whole Tone", (2, 2, 2, 2, 2, 2)),
        ("Locrian ♯2", (2, 1, 2, 1, 2, 2, 2)),
        ("Melodic Minor", (2, 1, 2, 2, 2, 2, 1)),
        ("Neapolitan Minor", (1, 2, 2, 2, 1, 3, 1)),
        ("Octatonic (Jazz)", (1, 2, 1, 2, 1, 2, 1, 2)),
        ("Diminished (WH)", (2, 1, 1, 2, 1, 1, 2, 1, 1)),
        ("Diminished (HW)", (1, 1, 2, 1, 1, 2, 1, 1, 2)),
        ("Blues Major", (3, 2, 1, 1, 2, 3)),
        ("Bebop Dominant", (2, 1, 3, 1, 1, 1, 3)),
        ("Bebop Major", (2, 2, 1, 2, 1, 1, 2, 1)),
    ),
    ModeFamily.EXOTIC: (
        ("Hungarian Minor", (2, 1, 3, 1, 2, 1, 2)),
        ("Hungarian Major", (3, 1, 2, 1, 2, 1, 2)),
        ("Prometheus", (2, 2, 2, 1, 2, 1, 2)),
        ("Enigmatic", (1, 2, 1, 1, 2, 1, 2, 2)),
        ("Spanish Eight-Tone", (2, 1, 1, 1, 2, 2, 1, 2)),
        ("Chromatic", (1,) * 12),
        ("Tritone Scale", (6, 6)),
        ("Augmented Scale", (3, 3, 3, 3)),
        ("Diminished Triad", (4, 4, 4)),
        ("Messiaen Mode 2", (1, 3, 2, 1, 2, 3)),
        ("Messiaen Mode 3", (2, 1, 1, 2, 1, 1, 2, 1, 1)),
        ("Messiaen Mode 4", (1, 1, 3, 1, 1, 1, 3, 1)),
    ),
    ModeFamily.MICROTONAL: (
        ("53-TET Approximation", (1, 1, 1, 2, 1, 1, 1, 2, 2)),
        ("19-TET Approximation", (2, 1, 1, 1, 2, 1, 1, 1, 2)),
        ("31-TET Approximation", (1, 2, 1, 1, 2, 1, 2, 1, 1)),
        ("Quarter-tone Scale", (2, 2, 1, 1, 2, 2, 1, 1)),
    ),
}

CHURCH_MODES: tuple[tuple[str, tuple[int, ...]], ...] = (
    ("Dorian", (2, 1, 2, 2, 2, 1, 2)),
    ("Phrygian", (1, 2, 2, 2, 1, 2, 2)),
    ("Lydian", (2, 2, 2, 1, 2, 2, 1)),
    ("Mixolydian", (2, 2, 1, 2, 2, 1, 2)),
    ("Aeolian", (2, 1, 2, 2, 1, 2, 2)),
    ("Locrian", (1, 2, 2, 1, 2, 2, 2)),
)

FALLBACK_CATEGORY = "Western Traditional (Fallback)"
MAJOR_STEPS = (2, 2, 1, 2, 2, 2, 1)
MINOR_STEPS = (2, 1, 2, 2, 1, 2, 2)


@dataclass(frozen=True)
class ModeCategory:
    """A named group of modes sharing one tonic."""

    name: str
    modes: tuple[Mode, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.modes)


def fallback_modes(tonic: int) -> list[ModeCategory]:
    """The minimal major/minor catalog returned when the full build fails."""
    return [
        ModeCategory(
            FALLBACK_CATEGORY,
            (
                Mode("Ionian (Major)", MAJOR_STEPS, tonic, index=0),
                Mode("Aeolian (Natural Minor)", MINOR_STEPS, tonic, index=1),
            ),
        )
    ]


def _build_catalog(tonic: int, limit: int) -> list[ModeCategory]:
    categories = []
    index = 0
    for family, entries in MODE_CATALOG.items():
        modes = []
        for name, steps in entries:
            if index >= limit:
                break
            modes.append(Mode(name, steps, tonic, index=index))
            index += 1
        if modes:
            categories.append(ModeCategory(family.value, tuple(modes)))
        if index >= limit:
            logger.debug("Mode catalog capped at %d modes", limit)
            break
    return categories


def build_world_modes(tonic: int, limit: int = DEFAULT_CATALOG_LIMIT) -> list[ModeCategory]:
    """
    Build the categorized mode catalog for a tonic.

    This is a pure function of its arguments. It never raises: if a catalog
    entry is malformed, the failure is logged and the two-mode fallback
    catalog is returned instead.

    Args:
        tonic: Tonic pitch class (any integer; reduced modulo 12).
        limit: Maximum number of modes across all categories.

    Returns:
        List of ModeCategory objects in display order.
    """
    try:
        tonic %= 12
        categories = _build_catalog(tonic, limit)
    except Exception:
        logger.exception("Mode catalog build failed for tonic %r; using fallback", tonic)
        return fallback_modes(tonic if isinstance(tonic, int) else 0)
    if not categories:
        logger.warning("Mode catalog for tonic %d is empty; using fallback", tonic)
        return fallback_modes(tonic)
    return categories


def church_modes(tonic: int) -> list[Mode]:
    """Return the six non-Ionian church modes on a tonic."""
    return [Mode(name, steps, tonic, index=i) for i, (name, steps) in enumerate(CHURCH_MODES)]


class ModeCatalog:
    """
    Caller-owned cache of mode catalogs keyed by tonic pitch class.

    Entries can be discarded with clear() at any time; they are rebuilt on
    the next lookup.

    Usage:
        >>> catalog = ModeCatalog()
        >>> dorian = catalog.find("Dorian", tonic=2)
    """

    def __init__(self, limit: int = DEFAULT_CATALOG_LIMIT):
        self.limit = limit
        self._cache: dict[int, list[ModeCategory]] = {}

    def categories(self, tonic: int) -> list[ModeCategory]:
        """Return the categorized catalog for a tonic, building it if needed."""
        tonic %= 12
        if tonic not in self._cache:
            self._cache[tonic] = build_world_modes(tonic, self.limit)
        return self._cache[tonic]

    def modes(self, tonic: int) -> list[Mode]:
        """Return every mode for a tonic as a flat list."""
        return [mode for category in self.categories(tonic) for mode in category.modes]

    def find(self, name: str, tonic: int = 0) -> Mode:
        """
        Look up a mode by name (case-insensitive, prefix match allowed).

        Raises:
            ModeNotFoundError: If no mode matches.
        """
        wanted = name.strip().lower().replace("_", " ")
        modes = self.modes(tonic)
        for mode in modes:
            if mode.name.lower() == wanted:
                return mode
        for mode in modes:
            if mode.name.lower().startswith(wanted):
                return mode
        raise ModeNotFoundError(f"Unknown mode: {name}")

    def clear(self) -> None:
        self._cache.clear()

    def __contains__(self, tonic: int) -> bool:
        return tonic % 12 in self._cache


class MixingStrategy(Enum):
    """Ways of combining several modes into one hybrid."""

    BLEND = "blend"
    ALTERNATE = "alternate"
    WEIGHTED = "weighted"
    CHROMATIC_FUSION = "chromatic_fusion"


def _fit_to_octave(steps: list[int]) -> tuple[int, ...]:
    """Adjust a step list so that every step is positive and they sum to 12."""
    steps = [max(1, s) for s in steps] or [12]
    total = sum(steps)
    while total > 12:
        largest = max(range(len(steps)), key=lambda i: (steps[i], i))
        if steps[largest] > 1:
            steps[largest] -= 1
        else:
            steps.pop()
        total = sum(steps)
    if total < 12:
        steps[-1] += 12 - total
    return tuple(steps)


def create_hybrid_mode(
    modes: Sequence[Mode],
    tonic: Optional[int] = None,
    strategy: MixingStrategy = MixingStrategy.BLEND,
    weights: Optional[Sequence[float]] = None,
) -> Mode:
    """
    Combine several modes into one hybrid mode.

    Args:
        modes: Source modes (at least one).
        tonic: Tonic of the result; defaults to the first mode's tonic.
        strategy: How the step patterns are combined.
        weights: Per-mode weights for the weighted strategy (equal if None).

    Returns:
        A new Mode whose steps sum to 12.

    Raises:
        DegenerateModeError: If no source modes are given.
    """
    if not modes:
        raise DegenerateModeError("A hybrid mode needs at least one source mode")
    if tonic is None:
        tonic = modes[0].tonic

    length = max(m.degree_count for m in modes)
    if strategy == MixingStrategy.BLEND:
        steps = []
        for i in range(length):
            values = [m.step_pattern[i] for m in modes if i < m.degree_count]
            steps.append(min(4, max(1, round(sum(values) / len(values)))))
    elif strategy == MixingStrategy.ALTERNATE:
        first = modes[0]
        steps = [
            modes[i % len(modes)].step_pattern[i % modes[i % len(modes)].degree_count]
            for i in range(first.degree_count)
        ]
    elif strategy == MixingStrategy.WEIGHTED:
        if weights is None:
            weights = [1.0] * len(modes)
        if len(weights) != len(modes) or sum(weights) <= 0:
            raise DegenerateModeError("Weights must match the modes and sum to a positive value")
        steps = []
        for i in range(length):
            pairs = [(m.step_pattern[i], w) for m, w in zip(modes, weights) if i < m.degree_count]
            total_weight = sum(w for _, w in pairs) or 1.0
            value = sum(s * w for s, w in pairs) / total_weight
            steps.append(min(4, max(1, round(value))))
    else:
        offsets = sorted({offset for m in modes for offset in m.intervals})
        steps = [b - a for a, b in zip(offsets, offsets[1:])] + [12 - offsets[-1]]

    label = " + ".join(m.name for m in modes)
    return Mode(f"Hybrid {strategy.value} ({label})", _fit_to_octave(steps), tonic)


def alter_mode(mode: Mode, alterations: Sequence[tuple[int, int]]) -> Mode:
    """
    Raise or lower individual degrees of a mode.

    Each alteration is (degree, direction) with degree in 1..n-1 and
    direction +1 (raise) or -1 (lower). A semitone moves between the two
    steps around the degree, so the total still spans one octave.

    Raises:
        DegenerateModeError: If an alteration would collapse a step to zero
            or names the tonic or a missing degree.
    """
    steps = list(mode.step_pattern)
    labels = []
    for degree, direction in alterations:
        if not 1 <= degree < len(steps) or direction not in (1, -1):
            raise DegenerateModeError(f"Invalid alteration ({degree}, {direction}) for {mode.name}")
        steps[degree - 1] += direction
        steps[degree] -= direction
        labels.append(("♯" if direction > 0 else "♭") + str(degree + 1))
    name = f"{mode.name} ({' '.join(labels)})" if labels else mode.name
    return Mode(name, tuple(steps), mode.tonic, mode.octave_span)


def pattern_similarity(a: Sequence[int], b: Sequence[int]) -> float:
    """
    Similarity of two step patterns in [0, 1].

    Equal steps at the same position score 1, steps one semitone apart
    score 0.5; the sum is divided by the longer pattern's length.
    """
    if not a or not b:
        return 0.0
    score = 0.0
    for x, y in zip(a, b):
        if x == y:
            score += 1.0
        elif abs(x - y) == 1:
            score += 0.5
    return score / max(len(a), len(b))


class ModeRelationship(Enum):
    """Relationships used when suggesting related modes."""

    PARALLEL = "parallel"
    RELATIVE = "relative"
    SIMILAR_INTERVALS = "similar_intervals"
    CONTRASTING = "contrasting"


def related_modes(
    mode: Mode,
    candidates: Sequence[Mode],
    relationship: ModeRelationship = ModeRelationship.SIMILAR_INTERVALS,
    limit: int = 5,
) -> list[Mode]:
    """
    Suggest modes related to ``mode`` from a candidate list.

    Args:
        mode: The reference mode.
        candidates: Modes to choose from (typically a catalog's flat list).
        relationship: Which kind of relationship to look for.
        limit: Maximum number of results for ranked relationships.

    Returns:
        Matching modes, best first for the ranked relationships.
    """
    others = [m for m in candidates if m.step_pattern != mode.step_pattern]
    if relationship == ModeRelationship.PARALLEL:
        return [m for m in others if m.tonic == mode.tonic]
    if relationship == ModeRelationship.RELATIVE:
        return [m for m in others if pattern_similarity(mode.step_pattern, m.step_pattern) > 0.6]

    ranked = sorted(
        others,
        key=lambda m: pattern_similarity(mode.step_pattern, m.step_pattern),
        reverse=relationship == ModeRelationship.SIMILAR_INTERVALS,
    )
    return ranked[:limit]
