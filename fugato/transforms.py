"""
Thematic transformations for the fugue builder.

Twelve transformations, each a small pydantic model. Every model declares
a scope (whole texture, subject entries only, or answer entries only)
and, where it makes sense, a numeric factor. apply_transformation()
dispatches on the model class; apply_pipeline() runs an ordered list of
them over one voice's material.
"""

import logging
import math
import random
from dataclasses import dataclass
from enum import Enum
from functools import singledispatch
from typing import Annotated, Literal, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field

from .diatonic import absolute_degree, move_by_degrees
from .modes import Mode
from .parts import VoiceRole

logger = logging.getLogger(__name__)

MIN_DURATION = 0.25
DEFAULT_SEQUENCE_STEPS = (0, 2, 4, 2, 0)


@dataclass(frozen=True)
class Material:
    """
    Notes with their durations in beats.

    Attributes:
        notes: MIDI notes.
        durations: Duration of each note.
    """

    notes: tuple[int, ...] = ()
    durations: tuple[float, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "notes", tuple(self.notes))
        object.__setattr__(self, "durations", tuple(float(d) for d in self.durations))
        if len(self.notes) != len(self.durations):
            raise ValueError(f"{len(self.notes)} notes but {len(self.durations)} durations")

    @classmethod
    def of(cls, notes: Sequence[int], durations: Optional[Sequence[float]] = None) -> "Material":
        if durations is None:
            durations = [1.0] * len(notes)
        return cls(tuple(notes), tuple(durations))

    def __len__(self) -> int:
        return len(self.notes)

    def total_beats(self) -> float:
        return sum(self.durations)


class TransformScope(Enum):
    """Which entries a transformation touches."""

    ALL = "all"
    SUBJECT = "subject"
    ANSWER = "answer"


class OrnamentStyle(Enum):
    TRILL = "trill"
    TURN = "turn"
    MORDENT = "mordent"
    NEIGHBOR = "neighbor"


class _TransformBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    scope: TransformScope = TransformScope.ALL

    def applies_to(self, role: VoiceRole) -> bool:
        if self.scope == TransformScope.ALL:
            return True
        if self.scope == TransformScope.SUBJECT:
            return role == VoiceRole.SUBJECT
        return role == VoiceRole.ANSWER


class Inversion(_TransformBase):
    """Mirror around ``axis`` (the first note if None)."""

    kind: Literal["inversion"] = "inversion"
    axis: Optional[int] = Field(None, ge=0, le=127)


class Retrograde(_TransformBase):
    kind: Literal["retrograde"] = "retrograde"


class Augmentation(_TransformBase):
    kind: Literal["augmentation"] = "augmentation"
    factor: float = Field(2.0, gt=0)


class Diminution(_TransformBase):
    kind: Literal["diminution"] = "diminution"
    factor: float = Field(2.0, gt=0)


class Truncation(_TransformBase):
    """Keep the head of the material (60% of it if ``length`` is None)."""

    kind: Literal["truncation"] = "truncation"
    length: Optional[int] = Field(None, ge=1)


class Elision(_TransformBase):
    """Keep the head and tail, dropping the middle."""

    kind: Literal["elision"] = "elision"
    keep: float = Field(0.3, gt=0, le=0.5)


class Fragmentation(_TransformBase):
    """Keep a fragment of ``size`` notes (a third of the material if None)."""

    kind: Literal["fragmentation"] = "fragmentation"
    size: Optional[int] = Field(None, ge=1)
    start: int = Field(0, ge=0)


class Sequencing(_TransformBase):
    """Restate the material once per step, transposed by that many semitones."""

    kind: Literal["sequence"] = "sequence"
    steps: tuple[int, ...] = DEFAULT_SEQUENCE_STEPS


class Ornamentation(_TransformBase):
    """
    Decorate notes with ornaments.

    ``style=None`` picks an ornament at random for every decorated note;
    ``density`` is the probability that a note is decorated at all.
    """

    kind: Literal["ornamentation"] = "ornamentation"
    style: Optional[OrnamentStyle] = OrnamentStyle.NEIGHBOR
    density: float = Field(1.0, ge=0, le=1)


class Transposition(_TransformBase):
    kind: Literal["transposition"] = "transposition"
    semitones: int = 5


class ModeShift(_TransformBase):
    """Map every note's scale degree onto the same degree of ``target``."""

    kind: Literal["mode_shift"] = "mode_shift"
    target: Mode


class ChromaticPassing(_TransformBase):
    """Insert a chromatic approach note before every leap of ``min_interval`` or more."""

    kind: Literal["chromatic_passing"] = "chromatic_passing"
    min_interval: int = Field(2, ge=2)


FugueTransformation = Annotated[
    Union[
        Inversion,
        Retrograde,
        Augmentation,
        Diminution,
        Truncation,
        Elision,
        Fragmentation,
        Sequencing,
        Ornamentation,
        Transposition,
        ModeShift,
        ChromaticPassing,
    ],
    Field(discriminator="kind"),
]


def apply_transformation(
    material: Material,
    transform: BaseModel,
    mode: Optional[Mode] = None,
    rng: Optional[random.Random] = None,
) -> Material:
    """
    Apply one transformation to some material.

    Args:
        material: Notes and durations to transform.
        transform: One of the FugueTransformation models.
        mode: Mode of the material, used for diatonic neighbours and mode shifts.
        rng: Random source for ornamentation (a fresh unseeded one if None).

    Returns:
        New Material. Empty material is returned unchanged.
    """
    if not material.notes:
        return material
    return _apply(transform, material, mode, rng or random.Random())


def apply_pipeline(
    material: Material,
    role: VoiceRole,
    transforms: Sequence[BaseModel],
    mode: Optional[Mode] = None,
    rng: Optional[random.Random] = None,
) -> Material:
    """Apply, in order, every transformation whose scope covers ``role``."""
    rng = rng or random.Random()
    for transform in transforms:
        if transform.applies_to(role):
            material = apply_transformation(material, transform, mode, rng)
    return material


@singledispatch
def _apply(transform, material: Material, mode: Optional[Mode], rng: random.Random) -> Material:
    raise TypeError(f"Unknown transformation: {type(transform).__name__}")


@_apply.register
def _(transform: Inversion, material, mode, rng):
    axis = transform.axis if transform.axis is not None else material.notes[0]
    return Material(tuple(2 * axis - n for n in material.notes), material.durations)


@_apply.register
def _(transform: Retrograde, material, mode, rng):
    return Material(material.notes[::-1], material.durations[::-1])


@_apply.register
def _(transform: Augmentation, material, mode, rng):
    return Material(material.notes, tuple(d * transform.factor for d in material.durations))


@_apply.register
def _(transform: Diminution, material, mode, rng):
    return Material(
        material.notes,
        tuple(max(MIN_DURATION, d / transform.factor) for d in material.durations),
    )


@_apply.register
def _(transform: Truncation, material, mode, rng):
    length = transform.length or math.ceil(len(material) * 0.6)
    return Material(material.notes[:length], material.durations[:length])


@_apply.register
def _(transform: Elision, material, mode, rng):
    keep = max(1, math.ceil(len(material) * transform.keep))
    if 2 * keep >= len(material):
        return material
    return Material(
        material.notes[:keep] + material.notes[-keep:],
        material.durations[:keep] + material.durations[-keep:],
    )


@_apply.register
def _(transform: Fragmentation, material, mode, rng):
    size = transform.size or max(2, len(material) // 3)
    start = min(transform.start, max(0, len(material) - size))
    return Material(material.notes[start:start + size], material.durations[start:start + size])


@_apply.register
def _(transform: Sequencing, material, mode, rng):
    notes: list[int] = []
    durations: list[float] = []
    for step in transform.steps:
        notes.extend(n + step for n in material.notes)
        durations.extend(material.durations)
    return Material(tuple(notes), tuple(durations))


def _neighbours(note: int, mode: Optional[Mode]) -> tuple[int, int]:
    if mode is not None and mode.contains(note):
        return move_by_degrees(note, 1, mode), move_by_degrees(note, -1, mode)
    return note + 2, note - 1


def _ornament(style: OrnamentStyle, note: int, duration: float, mode: Optional[Mode]):
    upper, lower = _neighbours(note, mode)
    q = duration / 4
    if style == OrnamentStyle.TRILL:
        return [note, upper, note, upper], [q, q, q, q]
    if style == OrnamentStyle.TURN:
        return [upper, note, lower, note], [q, q, q, q]
    if style == OrnamentStyle.MORDENT:
        return [note, lower, note], [q, q, duration / 2]
    return [note, upper, note], [duration / 2, q, q]


@_apply.register
def _(transform: Ornamentation, material, mode, rng):
    styles = list(OrnamentStyle)
    notes: list[int] = []
    durations: list[float] = []
    for note, duration in zip(material.notes, material.durations):
        if rng.random() >= transform.density:
            notes.append(note)
            durations.append(duration)
            continue
        style = transform.style if transform.style is not None else rng.choice(styles)
        ornament_notes, ornament_durations = _ornament(style, note, duration, mode)
        notes.extend(ornament_notes)
        durations.extend(ornament_durations)
    return Material(tuple(notes), tuple(durations))


@_apply.register
def _(transform: Transposition, material, mode, rng):
    return Material(tuple(n + transform.semitones for n in material.notes), material.durations)


@_apply.register
def _(transform: ModeShift, material, mode, rng):
    if mode is None:
        logger.warning("Mode shift to %s skipped: the material has no source mode", transform.target.name)
        return material
    target = transform.target
    shifted = []
    for note in material.notes:
        octave, degree = divmod(absolute_degree(note, mode), mode.degree_count)
        degree = min(degree, target.degree_count - 1)
        shifted.append(target.tonic + 12 * octave + target.intervals[degree])
    return Material(tuple(shifted), material.durations)


@_apply.register
def _(transform: ChromaticPassing, material, mode, rng):
    notes: list[int] = []
    durations: list[float] = []
    pairs = list(zip(material.notes, material.durations))
    for i, (note, duration) in enumerate(pairs):
        following = pairs[i + 1][0] if i + 1 < len(pairs) else None
        if following is not None and abs(following - note) >= transform.min_interval:
            direction = 1 if following > note else -1
            notes.extend([note, following - direction])
            durations.extend([duration * 0.6, duration * 0.4])
        else:
            notes.append(note)
            durations.append(duration)
    return Material(tuple(notes), tuple(durations))
