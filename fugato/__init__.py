"""
Fugato - Modal Counterpoint Generator

Fugato generates imitative counterpoint from a theme: chromatic and modal
imitation, fugal entries with tonal answers, canons of more than twenty
traditional types, and complete fugues built from a choice of
architectures and thematic transformations. A catalog of world modes and
a stability bias for theme generation complete the toolkit.

Every generator is a pure function of its inputs; randomized features take
an explicit random source or seed.
"""

__version__ = "0.1.0"
__author__ = "Fugato Project"

from .canon import CANON_TYPES, CanonResult, CanonVoice, generate_canon, parse_canon_params
from .engine import EngineConfig, FugatoEngine
from .errors import DegenerateModeError, FugatoError, InvalidEntryIntervalError, ModeNotFoundError
from .fugue import ARCHITECTURES, FugueResult, fugue_to_parts, generate_fugue, parse_fugue_params
from .fugue_entry import build_fugue, create_fugue_entry
from .imitation import imitate, imitate_diatonic
from .modes import Mode, ModeCatalog, build_world_modes
from .parts import EntrySpec, Part, VoiceRole
from .stability import StabilityBias, apply_stability_bias, generate_stability_theme

__all__ = [
    "FugatoEngine",
    "EngineConfig",
    "Mode",
    "ModeCatalog",
    "build_world_modes",
    "Part",
    "EntrySpec",
    "VoiceRole",
    "imitate",
    "imitate_diatonic",
    "create_fugue_entry",
    "build_fugue",
    "CANON_TYPES",
    "CanonResult",
    "CanonVoice",
    "generate_canon",
    "parse_canon_params",
    "ARCHITECTURES",
    "FugueResult",
    "generate_fugue",
    "parse_fugue_params",
    "fugue_to_parts",
    "StabilityBias",
    "generate_stability_theme",
    "apply_stability_bias",
    "FugatoError",
    "InvalidEntryIntervalError",
    "DegenerateModeError",
    "ModeNotFoundError",
]
