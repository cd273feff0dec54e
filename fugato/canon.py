"""
Canon engine for Fugato.

Each canon type is a pydantic model carrying only the parameters that
type understands; CanonParams is the discriminated union of all of them.
generate_canon() looks the params class up in a registry of generators,
each of which derives follower voices from a leader.

Randomized types (loose, per_mutative, fragmental) draw from an explicit
random.Random, either passed in or seeded from the params' ``seed``.
"""

import logging
import random
from dataclasses import dataclass, field
from typing import Annotated, Any, Callable, Literal, Optional, Sequence, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, TypeAdapter, field_validator

from .diatonic import invert_diatonic, semitones_to_degrees, snap_to_mode, transpose_diatonic
from .modes import Mode
from .parts import Part, rhythm_with_entry_delay
from .pitch import NOTE_TO_PITCH_CLASS, PLAYABLE_HIGH, PLAYABLE_LOW, clamp_to_range, signed_pitch_class_offset

logger = logging.getLogger(__name__)

FRAGMENTAL_MIN_LENGTH = 7
MAX_PERMUTATIONS = 7


class CanonInterval(BaseModel):
    """
    Transposition between leader and follower.

    Attributes:
        semitones: Chromatic size of the interval.
        degrees: Diatonic size in scale degrees; derived from ``semitones``
            when omitted.
        diatonic: Transpose by scale degrees when a mode is available.
    """

    model_config = ConfigDict(frozen=True)

    semitones: int = 12
    degrees: Optional[int] = None
    diatonic: bool = True

    def degrees_in(self, mode: Mode) -> int:
        if self.degrees is not None:
            return self.degrees
        return semitones_to_degrees(self.semitones, mode.degree_count)

    @property
    def is_unison(self) -> bool:
        return self.semitones == 0 and not self.degrees


def _coerce_interval(value: Any) -> Any:
    if isinstance(value, int) and not isinstance(value, bool):
        return {"semitones": value}
    return value


Interval = Annotated[CanonInterval, BeforeValidator(_coerce_interval)]


def _interval(semitones: int, diatonic: bool = True) -> Any:
    return Field(default_factory=lambda: CanonInterval(semitones=semitones, diatonic=diatonic))


Axis = Optional[Annotated[int, Field(ge=0, le=127)]]
VoiceCount = Annotated[int, Field(ge=2, le=8)]
VoicesPerCanon = Annotated[int, Field(ge=2, le=7)]
Ratio = Annotated[float, Field(gt=0, le=8)]


class _CanonBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    interval: Interval = _interval(12)
    delay: float = Field(4.0, ge=0)


class StrictCanon(_CanonBase):
    """Exact diatonic imitation at a fixed interval and delay."""

    type: Literal["strict"] = "strict"
    voices: VoiceCount = 2


class CanonAdDiapente(_CanonBase):
    """Strict canon at the upper fifth."""

    type: Literal["ad_diapente"] = "ad_diapente"
    interval: Interval = _interval(7)
    voices: VoiceCount = 2


class InversionCanon(_CanonBase):
    """Follower mirrors the leader around an axis pitch."""

    type: Literal["inversion"] = "inversion"
    interval: Interval = _interval(0)
    axis: Axis = None
    voices: VoiceCount = 2


class ContraryMotionCanon(_CanonBase):
    """Inversion measured in scale degrees when a mode is given."""

    type: Literal["per_motum_contrarium"] = "per_motum_contrarium"
    interval: Interval = _interval(0)
    axis: Axis = None
    voices: VoiceCount = 2


class RetrogradeInversionCanon(_CanonBase):
    type: Literal["retrograde_inversion"] = "retrograde_inversion"
    interval: Interval = _interval(0)
    axis: Axis = None


class RhythmicCanon(_CanonBase):
    """Same pitches, every follower's durations scaled by ``ratio``."""

    type: Literal["rhythmic"] = "rhythmic"
    interval: Interval = _interval(0)
    ratio: Ratio = 1.5
    voices: VoiceCount = 2


class MensurabilisCanon(_CanonBase):
    """Follower i runs at ``ratio ** i``, so each voice is slower than the last."""

    type: Literal["mensurabilis"] = "mensurabilis"
    interval: Interval = _interval(0)
    ratio: Ratio = 1.5
    voices: VoiceCount = 3


class AugmentationCanon(_CanonBase):
    type: Literal["per_augmentationem"] = "per_augmentationem"
    interval: Interval = _interval(0)
    ratio: Ratio = 2.0
    voices: VoiceCount = 2


class DoubleCanon(_CanonBase):
    """Two canons on two leaders running at once."""

    type: Literal["double"] = "double"
    second_interval: Interval = _interval(7)
    voices_per_canon: VoicesPerCanon = 2


class CrabCanon(_CanonBase):
    """Follower is the leader played backwards."""

    type: Literal["crab"] = "crab"
    interval: Interval = _interval(0)


class PerpetualCanon(_CanonBase):
    """A round: every voice repeats the leader ``repeats`` times."""

    type: Literal["perpetuus"] = "perpetuus"
    interval: Interval = _interval(0)
    voices: VoiceCount = 3
    repeats: int = Field(2, ge=1, le=8)


class PerTonosCanon(_CanonBase):
    """
    Modulating canon.

    Follower i uses ``voice_intervals[i-1]`` if given, otherwise the key in
    ``modulations[i-1]``, otherwise ``interval`` applied i times. With a
    ``target_mode`` the second half of the followers is snapped into it.
    """

    type: Literal["per_tonos"] = "per_tonos"
    interval: Interval = _interval(2, diatonic=False)
    voices: VoiceCount = 3
    voice_intervals: tuple[Interval, ...] = ()
    modulations: tuple[str, ...] = ()
    target_mode: Optional[Mode] = None

    @field_validator("modulations")
    @classmethod
    def check_modulations(cls, keys: tuple[str, ...]) -> tuple[str, ...]:
        normalized = []
        for key in keys:
            name = key.strip()
            name = name[:1].upper() + name[1:]
            if name not in NOTE_TO_PITCH_CLASS:
                raise ValueError(f"Invalid modulation key: {key}")
            normalized.append(name)
        return tuple(normalized)


class UpbeatCanon(_CanonBase):
    """
    Follower enters half a beat late, on the upbeat.

    The half beat is kept on ``CanonVoice.delay``. Parts and MIDI export
    count rests in whole beats, so there the follower starts on the
    downbeat and its first note is halved instead.
    """

    type: Literal["per_arsin_et_thesin"] = "per_arsin_et_thesin"


class EnigmaCanon(_CanonBase):
    """Transposed follower with every other note inverted and a quicker pulse."""

    type: Literal["enigmaticus"] = "enigmaticus"
    axis: Axis = None


class DoubleInversionCanon(_CanonBase):
    type: Literal["double_by_inversion"] = "double_by_inversion"
    interval: Interval = _interval(0)
    second_interval: Interval = _interval(0)
    axis: Axis = None
    second_axis: Axis = None
    voices_per_canon: VoicesPerCanon = 2


class DoubleRhythmicCanon(_CanonBase):
    type: Literal["double_rhythmic"] = "double_rhythmic"
    second_interval: Interval = _interval(7)
    ratio: Ratio = 2.0
    second_ratio: Ratio = 1.5
    voices_per_canon: VoicesPerCanon = 2


class DoubleCrabInversionCanon(_CanonBase):
    type: Literal["double_crab_inversion"] = "double_crab_inversion"
    interval: Interval = _interval(0)
    second_interval: Interval = _interval(0)
    axis: Axis = None
    second_axis: Axis = None
    voices_per_canon: VoicesPerCanon = 2


class DoubleAugmentationCanon(_CanonBase):
    """Followers alternate between two augmentation ratios."""

    type: Literal["per_duo_augmentationem"] = "per_duo_augmentationem"
    interval: Interval = _interval(0)
    ratio: Ratio = 2.0
    second_ratio: Ratio = 3.0
    voices: int = Field(3, ge=3, le=8)


class InvertedCanonAtFifth(_CanonBase):
    type: Literal["inverted_at_fifth"] = "inverted_at_fifth"
    interval: Interval = _interval(7)
    axis: Axis = None
    voices: VoiceCount = 2


class LooseCanon(_CanonBase):
    """Strict imitation for ``adherence`` percent of the notes, small random deviations elsewhere."""

    type: Literal["loose"] = "loose"
    voices: VoiceCount = 2
    adherence: float = Field(70.0, ge=0, le=100)
    max_deviation: int = Field(3, ge=0, le=12)
    seed: Optional[int] = None


class PerMutativeCanon(_CanonBase):
    """Each follower is a different shuffle of the leader's notes."""

    type: Literal["per_mutative"] = "per_mutative"
    interval: Interval = _interval(0)
    permutations: int = Field(3, ge=1, le=MAX_PERMUTATIONS)
    seed: Optional[int] = None


class FragmentalCanon(_CanonBase):
    """Followers state fragments of the leader of shrinking size."""

    type: Literal["fragmental"] = "fragmental"
    voices: int = Field(4, ge=2, le=7)
    seed: Optional[int] = None


CanonParams = Annotated[
    Union[
        StrictCanon,
        CanonAdDiapente,
        InversionCanon,
        ContraryMotionCanon,
        RetrogradeInversionCanon,
        RhythmicCanon,
        MensurabilisCanon,
        AugmentationCanon,
        DoubleCanon,
        CrabCanon,
        PerpetualCanon,
        PerTonosCanon,
        UpbeatCanon,
        EnigmaCanon,
        DoubleInversionCanon,
        DoubleRhythmicCanon,
        DoubleCrabInversionCanon,
        DoubleAugmentationCanon,
        InvertedCanonAtFifth,
        LooseCanon,
        PerMutativeCanon,
        FragmentalCanon,
    ],
    Field(discriminator="type"),
]

_PARAMS_ADAPTER: TypeAdapter = TypeAdapter(CanonParams)


def parse_canon_params(data: Union[dict, str, bytes]) -> BaseModel:
    """
    Build canon params from a dict or a JSON document.

    Integers are accepted wherever an interval is expected:
    ``{"type": "strict", "interval": 7}``.

    Raises:
        pydantic.ValidationError: On an unknown type or invalid field.
    """
    if isinstance(data, (str, bytes)):
        return _PARAMS_ADAPTER.validate_json(data)
    return _PARAMS_ADAPTER.validate_python(data)


def default_canon_params(canon_type: str) -> BaseModel:
    """Return the default params for a canon type tag."""
    return parse_canon_params({"type": canon_type})


@dataclass(frozen=True)
class CanonTypeInfo:
    name: str
    description: str


CANON_TYPES: dict[str, CanonTypeInfo] = {
    "strict": CanonTypeInfo("Strict Canon", "Exact imitation at a fixed interval and delay"),
    "ad_diapente": CanonTypeInfo("Canon ad Diapente", "Strict canon at the fifth"),
    "inversion": CanonTypeInfo("Canon by Inversion", "Follower mirrors the leader around an axis"),
    "per_motum_contrarium": CanonTypeInfo(
        "Canon per Motum Contrarium", "Contrary motion measured in scale degrees"
    ),
    "retrograde_inversion": CanonTypeInfo(
        "Retrograde Inversion Canon", "Follower is the leader inverted and played backwards"
    ),
    "rhythmic": CanonTypeInfo("Rhythmic Canon", "Same pitches at a proportionally different speed"),
    "mensurabilis": CanonTypeInfo("Canon Mensurabilis", "Each voice moves at its own mensuration"),
    "per_augmentationem": CanonTypeInfo("Canon per Augmentationem", "Follower in longer note values"),
    "double": CanonTypeInfo("Double Canon", "Two simultaneous canons on two themes"),
    "crab": CanonTypeInfo("Crab Canon", "Follower plays the leader backwards"),
    "perpetuus": CanonTypeInfo("Canon Perpetuus", "Endless round that loops back to its start"),
    "per_tonos": CanonTypeInfo("Canon per Tonos", "Each entry rises into a new key"),
    "per_arsin_et_thesin": CanonTypeInfo(
        "Canon per Arsin et Thesin", "Follower displaced onto the upbeat"
    ),
    "enigmaticus": CanonTypeInfo("Canon Enigmaticus", "Follower hides a partial inversion"),
    "double_by_inversion": CanonTypeInfo(
        "Double Canon by Inversion", "Two canons, each inverted around its own axis"
    ),
    "double_rhythmic": CanonTypeInfo(
        "Double Rhythmic Canon", "Two canons, each at its own mensuration"
    ),
    "double_crab_inversion": CanonTypeInfo(
        "Double Crab-Inversion Canon", "Two canons with inverted, reversed followers"
    ),
    "per_duo_augmentationem": CanonTypeInfo(
        "Canon per Duo Augmentationem", "Followers alternate between two augmentations"
    ),
    "inverted_at_fifth": CanonTypeInfo(
        "Inverted Canon at the Fifth", "Inverted follower transposed up a fifth"
    ),
    "loose": CanonTypeInfo("Loose Canon", "Imitation that departs from the leader now and then"),
    "per_mutative": CanonTypeInfo("Per Mutative Canon", "Followers are permutations of the leader"),
    "fragmental": CanonTypeInfo("Fragmental Canon", "Followers quote fragments of the leader"),
}


@dataclass(frozen=True)
class CanonVoice:
    """
    One voice of a canon.

    Attributes:
        label: Display label, e.g. "Follower 1".
        melody: MIDI notes.
        delay: Entry time in beats (may be fractional).
        durations: Duration of each note in beats.
        mensuration: Speed ratio relative to the leader (1.0 for none).
    """

    label: str
    melody: tuple[int, ...]
    delay: float = 0.0
    durations: tuple[float, ...] = ()
    mensuration: float = 1.0

    @property
    def rhythm(self) -> tuple[int, ...]:
        return rhythm_with_entry_delay(len(self.melody), self.delay)

    @property
    def end_beat(self) -> float:
        return self.delay + sum(self.durations)

    def to_part(self) -> Part:
        return Part(self.melody, self.rhythm, self.durations)


@dataclass(frozen=True)
class CanonResult:
    """
    Output of generate_canon().

    Attributes:
        kind: Canon type tag.
        voices: Leader(s) first, then followers.
        description: Human-readable summary.
        entry_pattern: Entry time of every voice.
        total_beats: Beat at which the last voice ends.
        remarks: Extra notes such as modulation targets or fallbacks.
    """

    kind: str
    voices: tuple[CanonVoice, ...]
    description: str
    entry_pattern: str = ""
    total_beats: float = 0.0
    remarks: tuple[str, ...] = ()

    def __len__(self) -> int:
        return len(self.voices)

    @property
    def followers(self) -> tuple[CanonVoice, ...]:
        return tuple(v for v in self.voices if "Leader" not in v.label)

    def to_parts(self) -> list[Part]:
        return canon_voices_to_parts(self)


def canon_voices_to_parts(result: CanonResult) -> list[Part]:
    """Convert every voice of a canon to a Part, keeping voice order."""
    return [voice.to_part() for voice in result.voices]


@dataclass
class _CanonContext:
    leader: tuple[int, ...]
    durations: tuple[float, ...]
    mode: Optional[Mode]
    rng: random.Random
    second_leader: Optional[tuple[int, ...]] = None
    low: int = PLAYABLE_LOW
    high: int = PLAYABLE_HIGH
    remarks: list[str] = field(default_factory=list)

    def leader_voice(self, label: str = "Leader") -> CanonVoice:
        return CanonVoice(label, self.leader, 0.0, self.durations)

    def follower(
        self,
        label: str,
        melody: Sequence[int],
        delay: float,
        durations: Optional[Sequence[float]] = None,
        mensuration: float = 1.0,
    ) -> CanonVoice:
        if durations is None:
            durations = self.durations
        notes = tuple(clamp_to_range(n, self.low, self.high) for n in melody)
        scaled = tuple(d * mensuration for d in durations)
        return CanonVoice(label, notes, delay, scaled, mensuration)

    def second(self) -> tuple[tuple[int, ...], tuple[float, ...]]:
        """Second theme for double canons: given, or the leader a fourth higher."""
        if self.second_leader:
            return self.second_leader, (1.0,) * len(self.second_leader)
        fourth = CanonInterval(semitones=5, degrees=3)
        derived = tuple(clamp_to_range(n, self.low, self.high) for n in transpose(self.leader, fourth, self.mode))
        return derived, self.durations


def transpose(melody: Sequence[int], interval: CanonInterval, mode: Optional[Mode] = None) -> list[int]:
    """Transpose by scale degrees when a mode is given and the interval is diatonic, else by semitones."""
    if interval.is_unison:
        return list(melody)
    if interval.diatonic and mode is not None:
        return transpose_diatonic(melody, interval.degrees_in(mode), mode, interval.semitones)
    return [n + interval.semitones for n in melody]


def invert(melody: Sequence[int], axis: int) -> list[int]:
    """Mirror every note around ``axis``: 2 * axis - note."""
    return [2 * axis - n for n in melody]


_Generator = Callable[[Any, _CanonContext], list[CanonVoice]]
_GENERATORS: dict[type, _Generator] = {}


def _register(params_type: type) -> Callable[[_Generator], _Generator]:
    def decorator(fn: _Generator) -> _Generator:
        _GENERATORS[params_type] = fn
        return fn
    return decorator


@_register(StrictCanon)
@_register(CanonAdDiapente)
def _strict(params, ctx: _CanonContext) -> list[CanonVoice]:
    follower = transpose(ctx.leader, params.interval, ctx.mode)
    voices = [ctx.leader_voice()]
    for i in range(1, params.voices):
        voices.append(ctx.follower(f"Follower {i}", follower, params.delay * i))
    return voices


@_register(InversionCanon)
@_register(ContraryMotionCanon)
def _inversion(params, ctx: _CanonContext) -> list[CanonVoice]:
    axis = params.axis if params.axis is not None else ctx.leader[0]
    if isinstance(params, ContraryMotionCanon) and ctx.mode is not None:
        mirrored = invert_diatonic(ctx.leader, axis, ctx.mode)
    else:
        mirrored = invert(ctx.leader, axis)
    follower = transpose(mirrored, params.interval, ctx.mode)
    voices = [ctx.leader_voice()]
    for i in range(1, params.voices):
        voices.append(ctx.follower(f"Inverted Follower {i}", follower, params.delay * i))
    return voices


@_register(RetrogradeInversionCanon)
def _retrograde_inversion(params, ctx: _CanonContext) -> list[CanonVoice]:
    axis = params.axis if params.axis is not None else ctx.leader[0]
    follower = transpose(invert(ctx.leader, axis)[::-1], params.interval, ctx.mode)
    return [
        ctx.leader_voice(),
        ctx.follower("Retrograde Inversion", follower, params.delay, ctx.durations[::-1]),
    ]


@_register(RhythmicCanon)
@_register(AugmentationCanon)
def _rhythmic(params, ctx: _CanonContext) -> list[CanonVoice]:
    follower = transpose(ctx.leader, params.interval, ctx.mode)
    label = "Augmentation" if params.ratio > 1 else "Diminution" if params.ratio < 1 else "Mensuration"
    voices = [ctx.leader_voice()]
    for i in range(1, params.voices):
        voices.append(
            ctx.follower(f"{label} {i} ({params.ratio:g}x)", follower, params.delay * i, mensuration=params.ratio)
        )
    return voices


@_register(MensurabilisCanon)
def _mensurabilis(params, ctx: _CanonContext) -> list[CanonVoice]:
    follower = transpose(ctx.leader, params.interval, ctx.mode)
    voices = [ctx.leader_voice()]
    for i in range(1, params.voices):
        ratio = params.ratio ** i
        voices.append(ctx.follower(f"Mensuration {i} ({ratio:g}x)", follower, params.delay * i, mensuration=ratio))
    return voices


@_register(CrabCanon)
def _crab(params, ctx: _CanonContext) -> list[CanonVoice]:
    follower = transpose(ctx.leader[::-1], params.interval, ctx.mode)
    return [
        ctx.leader_voice(),
        ctx.follower("Crab Follower", follower, params.delay, ctx.durations[::-1]),
    ]


@_register(PerpetualCanon)
def _perpetual(params, ctx: _CanonContext) -> list[CanonVoice]:
    looped = ctx.leader * params.repeats
    looped_durations = ctx.durations * params.repeats
    follower = transpose(looped, params.interval, ctx.mode)
    voices = [CanonVoice("Leader", looped, 0.0, looped_durations)]
    for i in range(1, params.voices):
        voices.append(ctx.follower(f"Round Voice {i + 1}", follower, params.delay * i, looped_durations))
    return voices


def _key_offset(key: str, reference: int) -> int:
    name = key.strip()
    if name:
        name = name[0].upper() + name[1:]
    if name not in NOTE_TO_PITCH_CLASS:
        raise ValueError(f"Invalid modulation key: {key}")
    return signed_pitch_class_offset(reference, NOTE_TO_PITCH_CLASS[name])


@_register(PerTonosCanon)
def _per_tonos(params, ctx: _CanonContext) -> list[CanonVoice]:
    reference = ctx.mode.tonic if ctx.mode is not None else ctx.leader[0] % 12
    voices = [ctx.leader_voice()]
    for i in range(1, params.voices):
        voice_mode = ctx.mode
        if params.target_mode is not None and i >= params.voices // 2:
            voice_mode = params.target_mode
        if i - 1 < len(params.voice_intervals):
            interval = params.voice_intervals[i - 1]
            label = f"Voice {i + 1} ({interval.semitones:+d})"
        elif i - 1 < len(params.modulations):
            key = params.modulations[i - 1]
            interval = CanonInterval(semitones=_key_offset(key, reference), diatonic=False)
            label = f"Voice {i + 1} (→ {key})"
            ctx.remarks.append(f"Voice {i + 1} modulates to {key}")
        else:
            step = params.interval
            interval = CanonInterval(
                semitones=step.semitones * i,
                degrees=step.degrees * i if step.degrees is not None else None,
                diatonic=step.diatonic,
            )
            label = f"Voice {i + 1} ({interval.semitones:+d})"
        melody = transpose(ctx.leader, interval, voice_mode)
        if voice_mode is not None and voice_mode is params.target_mode:
            melody = [snap_to_mode(n, voice_mode) for n in melody]
        voices.append(ctx.follower(label, melody, params.delay * i))
    return voices


@_register(UpbeatCanon)
def _per_arsin_et_thesin(params, ctx: _CanonContext) -> list[CanonVoice]:
    follower = transpose(ctx.leader, params.interval, ctx.mode)
    durations = (ctx.durations[0] * 0.5,) + ctx.durations[1:]
    return [
        ctx.leader_voice("Leader (Downbeat)"),
        ctx.follower("Follower (Upbeat)", follower, params.delay + 0.5, durations),
    ]


@_register(EnigmaCanon)
def _enigmaticus(params, ctx: _CanonContext) -> list[CanonVoice]:
    axis = params.axis if params.axis is not None else ctx.leader[0]
    transposed = transpose(ctx.leader, params.interval, ctx.mode)
    follower = [2 * axis - n if i % 2 == 0 else n for i, n in enumerate(transposed)]
    return [
        ctx.leader_voice("Leader (Clear)"),
        ctx.follower("Follower (Enigmatic)", follower, params.delay, mensuration=2 / 3),
    ]


def _two_canons(
    params,
    ctx: _CanonContext,
    derive: Callable[[Sequence[int], Sequence[float], CanonInterval, int], tuple[list[int], Sequence[float]]],
    tag: str,
    ratios: tuple[float, float] = (1.0, 1.0),
) -> list[CanonVoice]:
    """Shared layout of the double canons: canon B starts half a delay after canon A."""
    second_leader, second_durations = ctx.second()
    offset = params.delay / 2
    canons = (
        ("A", ctx.leader, ctx.durations, params.interval, getattr(params, "axis", None), 0.0, ratios[0]),
        ("B", second_leader, second_durations, params.second_interval,
         getattr(params, "second_axis", None), offset, ratios[1]),
    )
    voices = []
    for name, leader, durations, interval, axis, start, ratio in canons:
        voices.append(CanonVoice(f"Canon {name} - Leader", tuple(leader), start, tuple(durations)))
        melody, follower_durations = derive(leader, durations, interval, axis if axis is not None else leader[0])
        for i in range(1, params.voices_per_canon):
            voices.append(
                ctx.follower(
                    f"Canon {name} - {tag} {i}",
                    melody,
                    start + params.delay * i,
                    follower_durations,
                    ratio,
                )
            )
    return voices


@_register(DoubleCanon)
def _double(params, ctx: _CanonContext) -> list[CanonVoice]:
    def derive(leader, durations, interval, axis):
        return transpose(leader, interval, ctx.mode), durations
    return _two_canons(params, ctx, derive, "Follower")


@_register(DoubleInversionCanon)
def _double_by_inversion(params, ctx: _CanonContext) -> list[CanonVoice]:
    def derive(leader, durations, interval, axis):
        return transpose(invert(leader, axis), interval, ctx.mode), durations
    return _two_canons(params, ctx, derive, "Inverted Follower")


@_register(DoubleRhythmicCanon)
def _double_rhythmic(params, ctx: _CanonContext) -> list[CanonVoice]:
    def derive(leader, durations, interval, axis):
        return transpose(leader, interval, ctx.mode), durations
    return _two_canons(params, ctx, derive, "Follower", (params.ratio, params.second_ratio))


@_register(DoubleCrabInversionCanon)
def _double_crab_inversion(params, ctx: _CanonContext) -> list[CanonVoice]:
    def derive(leader, durations, interval, axis):
        return transpose(invert(leader, axis)[::-1], interval, ctx.mode), tuple(durations)[::-1]
    return _two_canons(params, ctx, derive, "Crab-Inverted Follower")


@_register(DoubleAugmentationCanon)
def _per_duo_augmentationem(params, ctx: _CanonContext) -> list[CanonVoice]:
    follower = transpose(ctx.leader, params.interval, ctx.mode)
    voices = [ctx.leader_voice()]
    for i in range(1, params.voices):
        ratio = params.ratio if i % 2 == 1 else params.second_ratio
        voices.append(ctx.follower(f"Follower {i} ({ratio:g}x)", follower, params.delay * i, mensuration=ratio))
    return voices


@_register(InvertedCanonAtFifth)
def _inverted_at_fifth(params, ctx: _CanonContext) -> list[CanonVoice]:
    axis = params.axis if params.axis is not None else ctx.leader[0]
    follower = transpose(invert(ctx.leader, axis), params.interval, ctx.mode)
    voices = [ctx.leader_voice()]
    for i in range(1, params.voices):
        voices.append(ctx.follower(f"Inverted Follower {i}", follower, params.delay * i))
    return voices


@_register(LooseCanon)
def _loose(params, ctx: _CanonContext) -> list[CanonVoice]:
    strict = transpose(ctx.leader, params.interval, ctx.mode)
    voices = [ctx.leader_voice()]
    for i in range(1, params.voices):
        melody = []
        for note in strict:
            if ctx.rng.random() * 100 < params.adherence:
                melody.append(note)
            else:
                melody.append(note + ctx.rng.randint(-params.max_deviation, params.max_deviation))
        voices.append(ctx.follower(f"Loose Follower {i}", melody, params.delay * i))
    return voices


@_register(PerMutativeCanon)
def _per_mutative(params, ctx: _CanonContext) -> list[CanonVoice]:
    seen = {ctx.leader}
    voices = [ctx.leader_voice()]
    for i in range(1, params.permutations + 1):
        permutation = list(ctx.leader)
        # Retry a few times for a shuffle not produced yet; short themes may run out
        for _ in range(10):
            ctx.rng.shuffle(permutation)
            if tuple(permutation) not in seen:
                break
        seen.add(tuple(permutation))
        follower = transpose(permutation, params.interval, ctx.mode)
        voices.append(ctx.follower(f"Permutation {i}", follower, params.delay * i))
    return voices


@_register(FragmentalCanon)
def _fragmental(params, ctx: _CanonContext) -> list[CanonVoice]:
    if len(ctx.leader) < FRAGMENTAL_MIN_LENGTH:
        logger.warning(
            "Fragmental canon needs at least %d notes, got %d; using a strict canon",
            FRAGMENTAL_MIN_LENGTH, len(ctx.leader),
        )
        ctx.remarks.append("Theme too short for fragments; strict canon used")
        return _strict(StrictCanon(interval=params.interval, delay=params.delay, voices=params.voices), ctx)

    full = transpose(ctx.leader, params.interval, ctx.mode)
    voices = [ctx.leader_voice("Leader (Full)")]
    for i in range(1, params.voices):
        size = max(3, len(ctx.leader) // (i + 1))
        start = ctx.rng.randint(0, len(ctx.leader) - size)
        voices.append(
            ctx.follower(
                f"Fragment {i} ({size} notes)",
                full[start:start + size],
                params.delay * i,
                ctx.durations[start:start + size],
            )
        )
    return voices


def generate_canon(
    leader: Sequence[int],
    params: BaseModel,
    mode: Optional[Mode] = None,
    leader_durations: Optional[Sequence[float]] = None,
    second_leader: Optional[Sequence[int]] = None,
    rng: Optional[random.Random] = None,
    low: int = PLAYABLE_LOW,
    high: int = PLAYABLE_HIGH,
) -> CanonResult:
    """
    Generate a canon from a leader melody.

    Args:
        leader: MIDI notes of the leader.
        params: One of the CanonParams models.
        mode: Mode used for diatonic transposition (chromatic if None).
        leader_durations: Duration of each leader note in beats (1 each if None).
        second_leader: Second theme for the double canons; derived from the
            leader a fourth higher if omitted.
        rng: Random source for randomized types; defaults to
            random.Random(params.seed).
        low: Lowest playable note for followers.
        high: Highest playable note for followers.

    Returns:
        A CanonResult. An empty leader gives a result with no voices.

    Raises:
        TypeError: If ``params`` is not a canon params model.
        ValueError: If leader_durations does not match the leader.
    """
    generator = _GENERATORS.get(type(params))
    if generator is None:
        raise TypeError(f"Not a canon params model: {type(params).__name__}")
    info = CANON_TYPES[params.type]

    if not leader:
        return CanonResult(params.type, (), f"{info.name}: empty theme, nothing generated")

    if leader_durations is None:
        durations = (1.0,) * len(leader)
    else:
        durations = tuple(float(d) for d in leader_durations)
        if len(durations) != len(leader):
            raise ValueError(f"{len(leader)} leader notes but {len(durations)} durations")

    if rng is None:
        rng = random.Random(getattr(params, "seed", None))

    ctx = _CanonContext(
        leader=tuple(leader),
        durations=durations,
        mode=mode,
        rng=rng,
        second_leader=tuple(second_leader) if second_leader else None,
        low=low,
        high=high,
    )
    voices = tuple(generator(params, ctx))
    logger.debug("Generated %s with %d voices", params.type, len(voices))

    return CanonResult(
        kind=params.type,
        voices=voices,
        description=f"{info.name}: {info.description}",
        entry_pattern=", ".join(f"{v.label} @ {v.delay:g}" for v in voices),
        total_beats=max(v.end_beat for v in voices),
        remarks=tuple(ctx.remarks),
    )
