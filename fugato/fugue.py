"""
Fugue builder engine for Fugato.

Assembles a multi-voice fugue from a subject. FugueParams is a closed
union with one pydantic model per architecture; every architecture lays
out its own sequence of sections (exposition, episodes, development,
stretto, recapitulation, or architecture-specific ones) from a shared set
of section builders. Each voice entry carries a role, and the ordered
transformation pipeline is applied to every entry whose role matches the
transformation's scope.

generate_fugue() returns a FugueResult; fugue_to_parts() flattens it to
one Part per voice on an absolute timeline.
"""

import logging
import math
import random
from dataclasses import dataclass, field, replace
from typing import Annotated, Literal, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from .diatonic import diatonic_step_pattern, invert_diatonic, modal_transpose, move_by_degrees
from .errors import InvalidEntryIntervalError
from .fugue_entry import create_fugue_entry, is_valid_entry_interval, prepare_subject
from .modes import Mode
from .parts import EntrySpec, Part, VoiceRole, rhythm_with_entry_delay
from .pitch import clamp_to_range
from .transforms import (
    ChromaticPassing,
    Diminution,
    FugueTransformation,
    Material,
    Ornamentation,
    Sequencing,
    apply_pipeline,
)

logger = logging.getLogger(__name__)

BEATS_PER_MEASURE = 4
EPISODE_MIN_MEASURES = 12
DEVELOPMENT_MIN_MEASURES = 16
STRETTO_MIN_MEASURES = 20
STRETTO_MIN_DENSITY = 0.3
EPISODE_STEPS = (0, 2, 4, 2, 0)
STRETTO_HEAD = 6

ARCHITECTURES: dict[str, str] = {
    "classic": "Classical fugue: exposition, episode, development, stretto and recapitulation",
    "additive": "Voices enter one at a time and never drop out",
    "subtractive": "Full exposition, then voices drop out one by one",
    "rotational": "Subject, answer and countersubject rotate among the voices",
    "mirror": "Voices in pairs, each pair a subject and its inversion",
    "hocketed": "The subject is handed from voice to voice one note at a time",
    "polyrhythmic": "Each voice states the subject in its own meter",
    "recursive": "Each level's exposition becomes the subject of the next",
    "meta": "Every voice states a complete miniature exposition",
    "adaptive": "Structure and transformations scale with a complexity setting",
}


class _FugueBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    subject: tuple[int, ...]
    voices: int = Field(3, ge=2, le=6)
    entry_interval: int = 7
    entry_spacing: float = Field(4.0, gt=0)
    countersubject: bool = False
    stretto_density: float = Field(0.0, ge=0, le=1)
    total_measures: int = Field(16, ge=4, le=128)
    transformations: tuple[FugueTransformation, ...] = ()
    mode: Optional[Mode] = None
    key: Optional[int] = Field(None, ge=0, le=127)
    seed: Optional[int] = None


class ClassicFugue(_FugueBase):
    architecture: Literal["classic"] = "classic"
    voices: int = Field(3, ge=2, le=5)


class AdditiveFugue(_FugueBase):
    architecture: Literal["additive"] = "additive"


class SubtractiveFugue(_FugueBase):
    architecture: Literal["subtractive"] = "subtractive"


class RotationalFugue(_FugueBase):
    architecture: Literal["rotational"] = "rotational"


class MirrorFugue(_FugueBase):
    architecture: Literal["mirror"] = "mirror"
    voices: int = Field(4, ge=2, le=6)
    axis: Optional[int] = Field(None, ge=0, le=127)


class HocketedFugue(_FugueBase):
    architecture: Literal["hocketed"] = "hocketed"


class PolyrhythmicFugue(_FugueBase):
    architecture: Literal["polyrhythmic"] = "polyrhythmic"
    meters: tuple[Annotated[int, Field(ge=2, le=12)], ...] = (4, 3)


class RecursiveFugue(_FugueBase):
    architecture: Literal["recursive"] = "recursive"
    depth: int = Field(2, ge=1, le=3)


class MetaFugue(_FugueBase):
    architecture: Literal["meta"] = "meta"


class AdaptiveFugue(_FugueBase):
    architecture: Literal["adaptive"] = "adaptive"
    voices: int = Field(3, ge=2, le=5)
    complexity: float = Field(0.5, ge=0, le=1)


FugueParams = Annotated[
    Union[
        ClassicFugue,
        AdditiveFugue,
        SubtractiveFugue,
        RotationalFugue,
        MirrorFugue,
        HocketedFugue,
        PolyrhythmicFugue,
        RecursiveFugue,
        MetaFugue,
        AdaptiveFugue,
    ],
    Field(discriminator="architecture"),
]

_PARAMS_ADAPTER: TypeAdapter = TypeAdapter(FugueParams)


def parse_fugue_params(data: Union[dict, str, bytes]) -> BaseModel:
    """
    Build fugue params from a dict or a JSON document.

    Raises:
        pydantic.ValidationError: On an unknown architecture or invalid field.
    """
    if isinstance(data, (str, bytes)):
        return _PARAMS_ADAPTER.validate_json(data)
    return _PARAMS_ADAPTER.validate_python(data)


@dataclass(frozen=True)
class VoiceEntry:
    """
    One statement of material by one voice within a section.

    Attributes:
        voice: Voice number, starting at 1.
        role: Subject, answer, countersubject or free material.
        material: MIDI notes.
        durations: Duration of each note in beats.
        start_beat: Entry time relative to the start of the section.
        transposition: Semitones between this entry and the subject.
    """

    voice: int
    role: VoiceRole
    material: tuple[int, ...]
    durations: tuple[float, ...]
    start_beat: float = 0.0
    transposition: int = 0

    @property
    def rhythm(self) -> tuple[int, ...]:
        return rhythm_with_entry_delay(len(self.material), self.start_beat)

    @property
    def end_beat(self) -> float:
        return self.start_beat + sum(self.durations)

    def to_part(self) -> Part:
        return Part(self.material, self.rhythm, self.durations)


@dataclass(frozen=True)
class FugueSection:
    name: str
    voices: tuple[VoiceEntry, ...]
    start_measure: int = 0
    measures: int = 1

    @property
    def start_beat(self) -> float:
        return self.start_measure * BEATS_PER_MEASURE


@dataclass(frozen=True)
class FigureEvent:
    """A figured-bass event inside a harmonic station."""

    figure: str
    onset_offset: float = 0.0
    preparation: str = "none"
    resolution: str = "stable"
    accented: bool = False


@dataclass(frozen=True)
class HarmonicStation:
    function: str
    bass_pitch: int
    roman: str
    beats: float
    figures: tuple[FigureEvent, ...] = ()


@dataclass(frozen=True)
class FundamentalBassPlan:
    """
    Harmonic skeleton of a fugue.

    Attributes:
        key: Tonic MIDI note.
        stations: Harmonic stations in order.
        cadences: Indices of the stations that close a cadence.
    """

    key: int
    stations: tuple[HarmonicStation, ...] = ()
    cadences: tuple[int, ...] = ()

    def to_part(self) -> Part:
        """The bass line as a Part, one note per station."""
        return Part(
            tuple(s.bass_pitch for s in self.stations),
            rhythm_with_entry_delay(len(self.stations)),
            tuple(s.beats for s in self.stations),
        )


@dataclass(frozen=True)
class FugueResult:
    """
    Output of generate_fugue().

    Attributes:
        architecture: Architecture tag.
        sections: Sections in playing order.
        bass_plan: Fundamental bass plan.
        voices: Number of voices.
        total_measures: Measures actually covered by the sections.
        key: Tonic MIDI note.
        description: Architecture description.
        stretto_entries: Entries that begin before the previous entry has ended.
    """

    architecture: str
    sections: tuple[FugueSection, ...]
    bass_plan: FundamentalBassPlan
    voices: int
    total_measures: int
    key: int
    description: str
    stretto_entries: int = 0

    def section(self, name: str) -> FugueSection:
        for section in self.sections:
            if section.name == name:
                return section
        raise KeyError(name)

    @property
    def section_names(self) -> list[str]:
        return [s.name for s in self.sections]

    def to_parts(self) -> list[Part]:
        return fugue_to_parts(self)


# Station table: (function, degree, semitones, roman, beats, figures)
_EXPOSITION_STATIONS = (
    ("I", 0, 0, "I", 2, (FigureEvent("5-3"),)),
    ("IV", 3, 5, "IV", 2, (FigureEvent("4-3", 0, "common-tone", "down-by-step", True),)),
    ("V", 4, 7, "V", 2, (FigureEvent("7-6", 0, "step", "down-by-step", True),)),
    ("I", 0, 0, "I", 2, (FigureEvent("Cad64", 0, "leap", "resolve-to-V", True),)),
)
_EPISODE_STATIONS = (
    ("ii", 1, 2, "ii", 1, (FigureEvent("6-5", 0, "step", "down-by-step", True),)),
    ("V", 4, 7, "V", 1, (FigureEvent("4-3", 0, "common-tone", "down-by-step", True),)),
)
_DEVELOPMENT_STATIONS = (
    ("vi", 5, 9, "vi", 2, ()),
    ("ii", 1, 2, "ii", 2, (FigureEvent("7-6", 0, "step", "down-by-step", True),)),
    ("V", 4, 7, "V", 2, (
        FigureEvent("4-3", 0, "common-tone", "down-by-step", True),
        FigureEvent("7-6", 0.5, "step", "down-by-step", False),
    )),
)
_CADENCE_STATIONS = (
    ("I", 0, 0, "I6-4", 1, (FigureEvent("Cad64", 0, "leap", "resolve-to-V", True),)),
    ("V", 4, 7, "V7", 1, (FigureEvent("4-3", 0, "preparation", "down-by-step", True),)),
    ("I", 0, 0, "I", 2, (FigureEvent("3-1", 0, "resolution", "stable", False),)),
)


def plan_fundamental_bass(key: int, total_measures: int, mode: Optional[Mode] = None) -> FundamentalBassPlan:
    """
    Plan the harmonic stations under a fugue.

    The bass sits an octave below ``key``. With a heptatonic mode, station
    roots are scale degrees of the mode; otherwise fixed major-key offsets.
    """
    bass_key = clamp_to_range(key - 12)
    use_degrees = mode is not None and mode.degree_count == 7 and mode.contains(bass_key)

    def station(row) -> HarmonicStation:
        function, degree, semitones, roman, beats, figures = row
        pitch = move_by_degrees(bass_key, degree, mode) if use_degrees else bass_key + semitones
        return HarmonicStation(function, clamp_to_range(pitch), roman, beats, figures)

    stations = [station(row) for row in _EXPOSITION_STATIONS]
    cadences = [len(stations) - 1]
    for _ in range(2):
        stations.extend(station(row) for row in _EPISODE_STATIONS)
    if total_measures >= DEVELOPMENT_MIN_MEASURES:
        stations.extend(station(row) for row in _DEVELOPMENT_STATIONS)
    stations.extend(station(row) for row in _CADENCE_STATIONS)
    cadences.append(len(stations) - 1)
    return FundamentalBassPlan(key, tuple(stations), tuple(cadences))


class _Builder:
    """Section builders shared by all architectures."""

    def __init__(self, params, subject: Sequence[int], rng: random.Random):
        self.params = params
        self.mode: Optional[Mode] = params.mode
        self.rng = rng
        if self.mode is not None:
            self.subject = prepare_subject(subject, self.mode)
        else:
            self.subject = list(subject)
        self.spacing = params.entry_spacing
        self.stretto_entries = 0
        self._answer: Optional[list[int]] = None
        self._countersubject: Optional[list[int]] = None

    # Materials

    @staticmethod
    def material(notes: Sequence[int], durations: Optional[Sequence[float]] = None) -> Material:
        return Material.of(notes, durations)

    @property
    def answer(self) -> list[int]:
        if self._answer is None:
            interval = self.params.entry_interval
            if self.mode is not None:
                self._answer = list(create_fugue_entry(self.subject, self.mode, EntrySpec(interval)).melody)
            else:
                self._answer = [n + interval for n in self.subject]
        return self._answer

    @property
    def countersubject(self) -> list[int]:
        """Contrary motion to the subject, starting a fourth above it."""
        if self._countersubject is None:
            first = self.subject[0]
            if self.mode is not None:
                note = modal_transpose(first, 5, self.mode)
                line = [note]
                for step in diatonic_step_pattern(self.subject, self.mode):
                    note = move_by_degrees(note, -step, self.mode)
                    line.append(note)
            else:
                line = [first + 5 - (n - first) for n in self.subject]
            self._countersubject = line
        return self._countersubject

    def inverted(self, notes: Sequence[int], axis: int) -> list[int]:
        if self.mode is not None:
            return invert_diatonic(notes, axis, self.mode)
        return [2 * axis - n for n in notes]

    def fragment(self) -> list[int]:
        return self.subject[:max(2, len(self.subject) // 3)]

    def episode_motif(self) -> list[int]:
        motif = self.subject[:4]
        return [n + step for step in EPISODE_STEPS for n in motif]

    def for_role(self, role: VoiceRole) -> list[int]:
        if role == VoiceRole.SUBJECT:
            return self.subject
        if role == VoiceRole.ANSWER:
            return self.answer
        if role == VoiceRole.COUNTERSUBJECT:
            return self.countersubject
        return self.episode_motif()

    def entry(
        self,
        voice: int,
        role: VoiceRole,
        notes: Sequence[int],
        start: float,
        durations: Optional[Sequence[float]] = None,
    ) -> VoiceEntry:
        transposition = self.params.entry_interval if role == VoiceRole.ANSWER else 0
        material = self.material(notes, durations)
        return VoiceEntry(voice, role, material.notes, material.durations, start, transposition)

    # Sections

    def section(self, name: str, entries: Sequence[VoiceEntry]) -> FugueSection:
        """Run the transformation pipeline over every entry and size the section."""
        transformed = []
        for entry in entries:
            material = apply_pipeline(
                Material(entry.material, entry.durations),
                entry.role,
                self.params.transformations,
                self.mode,
                self.rng,
            )
            notes = tuple(clamp_to_range(n) for n in material.notes)
            transformed.append(replace(entry, material=notes, durations=material.durations))
        end = max((e.end_beat for e in transformed), default=0.0)
        measures = max(1, math.ceil(end / BEATS_PER_MEASURE))
        return FugueSection(name, tuple(transformed), 0, measures)

    def exposition(self, voices: Sequence[int], name: str = "Exposition") -> FugueSection:
        entries = []
        start = 0.0
        for index, voice in enumerate(voices):
            role = VoiceRole.SUBJECT if index % 2 == 0 else VoiceRole.ANSWER
            statement = self.entry(voice, role, self.for_role(role), start)
            if index > 0 and self.params.countersubject:
                previous = entries[-1]
                cs_start = max(start, previous.end_beat)
                entries.append(self.entry(previous.voice, VoiceRole.COUNTERSUBJECT, self.countersubject, cs_start))
            entries.append(statement)
            start += self.spacing
        return self.section(name, entries)

    def episode(self, voices: Sequence[int], name: str = "Episode 1") -> FugueSection:
        motif = self.episode_motif()
        return self.section(
            name, [self.entry(v, VoiceRole.FREE, motif, 2.0 * i) for i, v in enumerate(voices)]
        )

    def development(self, voices: Sequence[int], name: str = "Development") -> FugueSection:
        entries = []
        for i, voice in enumerate(voices):
            if i % 2 == 0:
                entries.append(
                    self.entry(voice, VoiceRole.SUBJECT, self.inverted(self.subject, self.subject[0]), 1.5 * i)
                )
            else:
                entries.append(self.entry(voice, VoiceRole.FREE, self.fragment(), 1.5 * i))
        return self.section(name, entries)

    def stretto(self, voices: Sequence[int], name: str = "Stretto") -> FugueSection:
        overlap = max(1.0, self.spacing * (1 - self.params.stretto_density))
        entries = []
        for i, voice in enumerate(voices):
            role = VoiceRole.SUBJECT if i % 2 == 0 else VoiceRole.ANSWER
            head = self.for_role(role)[:STRETTO_HEAD]
            entry = self.entry(voice, role, head, i * overlap)
            if entries and entry.start_beat < entries[-1].end_beat:
                self.stretto_entries += 1
            entries.append(entry)
        return self.section(name, entries)

    def recapitulation(self, voices: Sequence[int], name: str = "Recapitulation") -> FugueSection:
        return self.section(
            name, [self.entry(v, VoiceRole.SUBJECT, self.subject, 2.0 * i) for i, v in enumerate(voices)]
        )

    def classic_sections(self, voices: Sequence[int], total_measures: int, density: float) -> list[FugueSection]:
        sections = [self.exposition(voices)]
        if total_measures >= EPISODE_MIN_MEASURES:
            sections.append(self.episode(voices))
        if total_measures >= DEVELOPMENT_MIN_MEASURES:
            sections.append(self.development(voices))
        if density > STRETTO_MIN_DENSITY and total_measures >= STRETTO_MIN_MEASURES:
            sections.append(self.stretto(voices))
        sections.append(self.recapitulation(voices[:3]))
        return sections


def _classic(params: ClassicFugue, builder: _Builder) -> list[FugueSection]:
    voices = list(range(1, params.voices + 1))
    return builder.classic_sections(voices, params.total_measures, params.stretto_density)


def _additive(params: AdditiveFugue, builder: _Builder) -> list[FugueSection]:
    sections = []
    for count in range(1, params.voices + 1):
        entries = []
        for voice in range(1, count):
            role = VoiceRole.COUNTERSUBJECT if params.countersubject else VoiceRole.FREE
            entries.append(builder.entry(voice, role, builder.for_role(role), 0.0))
        role = VoiceRole.SUBJECT if count % 2 == 1 else VoiceRole.ANSWER
        entries.append(builder.entry(count, role, builder.for_role(role), 0.0))
        sections.append(builder.section(f"Entry {count}", entries))
    sections.append(builder.recapitulation(range(1, params.voices + 1)))
    return sections


def _subtractive(params: SubtractiveFugue, builder: _Builder) -> list[FugueSection]:
    voices = list(range(1, params.voices + 1))
    sections = [builder.exposition(voices)]
    for count in range(params.voices - 1, 1, -1):
        sections.append(builder.development(voices[:count], f"Reduction to {count} voices"))
    sections.append(builder.recapitulation(voices[:1], "Coda"))
    return sections


_ROTATION = (VoiceRole.SUBJECT, VoiceRole.ANSWER, VoiceRole.COUNTERSUBJECT, VoiceRole.FREE)


def _rotational(params: RotationalFugue, builder: _Builder) -> list[FugueSection]:
    sections = []
    for turn in range(params.voices):
        entries = []
        for voice in range(1, params.voices + 1):
            slot = (voice - 1 + turn) % params.voices
            role = _ROTATION[min(slot, len(_ROTATION) - 1)]
            entries.append(builder.entry(voice, role, builder.for_role(role), slot * builder.spacing / 2))
        sections.append(builder.section(f"Rotation {turn + 1}", entries))
    return sections


def _mirror(params: MirrorFugue, builder: _Builder) -> list[FugueSection]:
    axis = params.axis if params.axis is not None else builder.subject[0]

    def mirrored(name: str, roles_by_pair) -> FugueSection:
        entries = []
        for pair in range((params.voices + 1) // 2):
            role = roles_by_pair(pair)
            notes = builder.for_role(role)
            start = pair * builder.spacing
            entries.append(builder.entry(2 * pair + 1, role, notes, start))
            if 2 * pair + 2 <= params.voices:
                entries.append(builder.entry(2 * pair + 2, role, builder.inverted(notes, axis), start))
        return builder.section(name, entries)

    sections = [mirrored("Mirror Exposition", lambda p: VoiceRole.SUBJECT if p % 2 == 0 else VoiceRole.ANSWER)]
    if params.total_measures >= EPISODE_MIN_MEASURES:
        sections.append(builder.episode(range(1, params.voices + 1)))
    sections.append(mirrored("Mirror Recapitulation", lambda p: VoiceRole.SUBJECT))
    return sections


def _hocketed(params: HocketedFugue, builder: _Builder) -> list[FugueSection]:
    voices = list(range(1, params.voices + 1))
    sections = [builder.exposition(voices)]
    entries = []
    beat = 0.0
    index = 0
    for role in (VoiceRole.SUBJECT, VoiceRole.ANSWER):
        for note in builder.for_role(role):
            voice = voices[index % len(voices)]
            entries.append(builder.entry(voice, role, [note], beat))
            beat += 1.0
            index += 1
    sections.append(builder.section("Hocket", entries))
    sections.append(builder.recapitulation(voices[:3]))
    return sections


def _polyrhythmic(params: PolyrhythmicFugue, builder: _Builder) -> list[FugueSection]:
    voices = list(range(1, params.voices + 1))
    reference = params.meters[0]
    entries = []
    for i, voice in enumerate(voices):
        meter = params.meters[i % len(params.meters)]
        role = VoiceRole.SUBJECT if i % 2 == 0 else VoiceRole.ANSWER
        notes = builder.for_role(role)
        durations = [reference / meter] * len(notes)
        entries.append(builder.entry(voice, role, notes, 0.0, durations))
    sections = [builder.exposition(voices), builder.section("Polyrhythm", entries)]
    sections.append(builder.recapitulation(voices[:3]))
    return sections


def _recursive(params: RecursiveFugue, builder: _Builder) -> list[FugueSection]:
    voices = list(range(1, params.voices + 1))
    original = builder.subject
    sections = []
    for level in range(1, params.depth + 1):
        exposition = builder.exposition(voices, f"Exposition (level {level})")
        sections.append(exposition)
        first_voice = [n for e in exposition.voices if e.voice == voices[0] for n in e.material]
        builder = _Builder(params, first_voice[:2 * len(original)], builder.rng)
    builder.subject = original
    sections.append(builder.recapitulation(voices[:3]))
    return sections


def _meta(params: MetaFugue, builder: _Builder) -> list[FugueSection]:
    voices = list(range(1, params.voices + 1))
    entries = []
    for i, voice in enumerate(voices):
        start = i * 2 * builder.spacing
        subject_entry = builder.entry(voice, VoiceRole.SUBJECT, builder.subject, start)
        entries.append(subject_entry)
        entries.append(builder.entry(voice, VoiceRole.ANSWER, builder.answer, subject_entry.end_beat))
    return [builder.section("Meta Exposition", entries), builder.recapitulation(voices[:3])]


def _adaptive(params: AdaptiveFugue, builder: _Builder) -> list[FugueSection]:
    complexity = params.complexity
    pool = [
        Ornamentation(scope="subject", density=complexity),
        Diminution(scope="answer"),
        ChromaticPassing(),
        Sequencing(steps=(0, 2)),
    ]
    extra = builder.rng.sample(pool, round(complexity * 3))
    adapted = params.model_copy(update={
        "countersubject": params.countersubject or complexity >= 0.4,
        "stretto_density": max(params.stretto_density, complexity),
        "total_measures": max(params.total_measures, int(12 + 12 * complexity)),
        "transformations": tuple(params.transformations) + tuple(extra),
    })
    logger.debug("Adaptive fugue: %d extra transformations", len(extra))
    builder.params = adapted
    voices = list(range(1, params.voices + 1))
    return builder.classic_sections(voices, adapted.total_measures, adapted.stretto_density)


_ARCHITECTURE_BUILDERS = {
    ClassicFugue: _classic,
    AdditiveFugue: _additive,
    SubtractiveFugue: _subtractive,
    RotationalFugue: _rotational,
    MirrorFugue: _mirror,
    HocketedFugue: _hocketed,
    PolyrhythmicFugue: _polyrhythmic,
    RecursiveFugue: _recursive,
    MetaFugue: _meta,
    AdaptiveFugue: _adaptive,
}


def _fugue_key(params) -> int:
    if params.key is not None:
        return params.key
    first = params.subject[0]
    if params.mode is None:
        return first
    return first - (first - params.mode.tonic) % 12


def generate_fugue(params: BaseModel, rng: Optional[random.Random] = None) -> FugueResult:
    """
    Build a fugue from FugueParams.

    Args:
        params: One of the FugueParams models.
        rng: Random source for ornamentation and adaptive choices;
            defaults to random.Random(params.seed).

    Returns:
        A FugueResult. An empty subject gives a result with no sections.

    Raises:
        InvalidEntryIntervalError: If entry_interval is not 0, ±7 or ±12.
        TypeError: If ``params`` is not a fugue params model.
    """
    build = _ARCHITECTURE_BUILDERS.get(type(params))
    if build is None:
        raise TypeError(f"Not a fugue params model: {type(params).__name__}")
    if not is_valid_entry_interval(params.entry_interval):
        raise InvalidEntryIntervalError(params.entry_interval, 1)

    description = ARCHITECTURES[params.architecture]
    if not params.subject:
        key = params.key if params.key is not None else 60
        return FugueResult(params.architecture, (), FundamentalBassPlan(key), params.voices, 0, key, description)

    rng = rng or random.Random(params.seed)
    builder = _Builder(params, params.subject, rng)
    sections = build(params, builder)

    placed = []
    measure = 0
    for section in sections:
        placed.append(replace(section, start_measure=measure))
        measure += section.measures

    key = _fugue_key(params)
    logger.debug("Built %s fugue: %d sections, %d measures", params.architecture, len(placed), measure)
    return FugueResult(
        architecture=params.architecture,
        sections=tuple(placed),
        bass_plan=plan_fundamental_bass(key, measure, params.mode),
        voices=params.voices,
        total_measures=measure,
        key=key,
        description=description,
        stretto_entries=builder.stretto_entries,
    )


@dataclass
class _VoiceLine:
    melody: list[int] = field(default_factory=list)
    rhythm: list[int] = field(default_factory=list)
    durations: list[float] = field(default_factory=list)
    cursor: float = 0.0


def fugue_to_parts(result: FugueResult) -> list[Part]:
    """
    Flatten a fugue into one Part per voice.

    Entries of a voice are laid out on an absolute timeline; the gap before
    each entry becomes whole-beat rest markers. An entry that would start
    before the voice's previous entry has finished follows it directly.
    """
    events: dict[int, list[tuple[float, VoiceEntry]]] = {}
    for section in result.sections:
        for entry in section.voices:
            events.setdefault(entry.voice, []).append((section.start_beat + entry.start_beat, entry))

    parts = []
    for voice in sorted(events):
        line = _VoiceLine()
        for start, entry in sorted(events[voice], key=lambda item: item[0]):
            gap = start - line.cursor
            if gap >= 1:
                rests = math.floor(gap)
                line.rhythm.extend([0] * rests)
                line.cursor += rests
            line.melody.extend(entry.material)
            line.durations.extend(entry.durations)
            line.rhythm.extend([1] * len(entry.material))
            line.cursor += sum(entry.durations)
        parts.append(Part(tuple(line.melody), tuple(line.rhythm), tuple(line.durations)))
    return parts
