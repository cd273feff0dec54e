"""
Main engine for Fugato.

FugatoEngine is a thin facade over the mode catalog, the imitation, canon
and fugue engines, the stability bias and MIDI export. It owns the mode
catalog cache and an EngineConfig, and hands every randomized call a
random.Random seeded from the config unless the caller supplies one.
"""

import logging
import random
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Union

from pydantic import BaseModel

from .canon import CanonResult, generate_canon, parse_canon_params
from .fugue import FugueResult, fugue_to_parts, generate_fugue, parse_fugue_params
from .fugue_entry import FugueExposition, build_fugue
from .imitation import imitate, imitate_diatonic
from .midi_export import write_midi
from .modes import DEFAULT_CATALOG_LIMIT, Mode, ModeCatalog, ModeCategory
from .parts import EntrySpec, Part
from .pitch import PLAYABLE_HIGH, PLAYABLE_LOW, clamp_to_range, note_name_to_pitch_class
from .stability import StabilityBias, apply_stability_bias, generate_stability_theme

logger = logging.getLogger(__name__)


@dataclass
class EngineConfig:
    """
    Configuration for the Fugato engine.

    Attributes:
        playable_low: Lowest MIDI note any generated voice may use.
        playable_high: Highest MIDI note any generated voice may use.
        beats_per_measure: Time signature numerator used for export.
        catalog_limit: Maximum number of modes per catalog.
        default_octave: Octave of the tonic for generated themes.
        tempo: Export tempo in BPM.
        velocity: Export note velocity.
        seed: Seed for every randomized call (unseeded if None).
    """

    playable_low: int = PLAYABLE_LOW
    playable_high: int = PLAYABLE_HIGH
    beats_per_measure: int = 4
    catalog_limit: int = DEFAULT_CATALOG_LIMIT
    default_octave: int = 4
    tempo: float = 96.0
    velocity: int = 80
    seed: Optional[int] = None


class FugatoEngine:
    """
    Entry point for counterpoint generation.

    Usage:
        >>> engine = FugatoEngine(EngineConfig(seed=7))
        >>> dorian = engine.find_mode("Dorian", "D")
        >>> result = engine.canon([62, 64, 65, 67], {"type": "strict", "interval": 7}, mode=dorian)

    Attributes:
        config: Engine configuration.
        catalog: Mode catalog cache.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()
        self.catalog = ModeCatalog(self.config.catalog_limit)

    def rng(self, seed: Optional[int] = None) -> random.Random:
        """Return a random source seeded with ``seed`` or the configured seed."""
        return random.Random(seed if seed is not None else self.config.seed)

    # Modes

    def mode_categories(self, tonic: int) -> list[ModeCategory]:
        return self.catalog.categories(tonic)

    def modes(self, tonic: int) -> list[Mode]:
        return self.catalog.modes(tonic)

    def find_mode(self, name: str, tonic: Union[int, str] = 0) -> Mode:
        """
        Look up a mode by name on a tonic given as a pitch class or note name.

        Raises:
            ModeNotFoundError: If no mode matches.
            ValueError: If the tonic is not a valid note name.
        """
        if isinstance(tonic, str):
            tonic = note_name_to_pitch_class(tonic)
        return self.catalog.find(name, tonic)

    # Imitation and entries

    def imitate(self, cantus: Sequence[int], interval: int, delay: float = 0) -> Part:
        return imitate(cantus, interval, delay, self.config.playable_low, self.config.playable_high)

    def imitate_diatonic(self, cantus: Sequence[int], mode: Mode, interval: int, delay: float = 0) -> Part:
        part = imitate_diatonic(cantus, mode, interval, delay)
        return self._clamp(part)

    def fugue_entries(self, subject: Sequence[int], mode: Mode, entries: Sequence[EntrySpec]) -> FugueExposition:
        exposition = build_fugue(subject, mode, entries)
        return FugueExposition(
            tuple(self._clamp(part) for part in exposition.parts),
            exposition.first_entry_corrected,
            exposition.requested_first_interval,
        )

    # Canon and fugue

    def canon(
        self,
        leader: Sequence[int],
        params: Union[BaseModel, dict],
        mode: Optional[Mode] = None,
        leader_durations: Optional[Sequence[float]] = None,
        second_leader: Optional[Sequence[int]] = None,
        seed: Optional[int] = None,
    ) -> CanonResult:
        """
        Generate a canon. ``params`` may be a CanonParams model or a plain dict.

        Without an explicit ``seed`` the canon's own seed is used, then the
        configured one.
        """
        if isinstance(params, dict):
            params = parse_canon_params(params)
        if seed is None:
            seed = getattr(params, "seed", None)
        return generate_canon(
            leader,
            params,
            mode=mode,
            leader_durations=leader_durations,
            second_leader=second_leader,
            rng=self.rng(seed),
            low=self.config.playable_low,
            high=self.config.playable_high,
        )

    def fugue(self, params: Union[BaseModel, dict], seed: Optional[int] = None) -> FugueResult:
        """Build a fugue. ``params`` may be a FugueParams model or a plain dict."""
        if isinstance(params, dict):
            params = parse_fugue_params(params)
        if seed is None:
            seed = params.seed
        return generate_fugue(params, rng=self.rng(seed))

    def fugue_parts(self, result: FugueResult) -> list[Part]:
        return [self._clamp(part) for part in fugue_to_parts(result)]

    # Stability

    def stability_theme(
        self,
        length: int,
        mode: Mode,
        bias: StabilityBias = StabilityBias.STABLE,
        ratio: float = 50,
        seed: Optional[int] = None,
    ) -> list[int]:
        return generate_stability_theme(
            length, mode, bias, ratio, rng=self.rng(seed), octave=self.config.default_octave
        )

    def apply_stability(
        self,
        theme: Sequence[int],
        mode: Mode,
        bias: StabilityBias = StabilityBias.STABLE,
        ratio: float = 50,
        seed: Optional[int] = None,
    ) -> list[int]:
        return apply_stability_bias(theme, mode, bias, ratio, rng=self.rng(seed))

    # Export

    def export(self, path: Union[str, Path], parts: Sequence[Part]) -> Path:
        return write_midi(
            path,
            parts,
            tempo=self.config.tempo,
            velocity=self.config.velocity,
            beats_per_measure=self.config.beats_per_measure,
        )

    def _clamp(self, part: Part) -> Part:
        low, high = self.config.playable_low, self.config.playable_high
        return Part(tuple(clamp_to_range(n, low, high) for n in part.melody), part.rhythm, part.durations)
