"""
Error types for Fugato.

Empty themes are not errors: every generator returns an empty result for
them. Notes pushed outside the playable range are octave-shifted back in
rather than reported.
"""


class FugatoError(Exception):
    """Base error for the Fugato engine."""


class InvalidEntryIntervalError(FugatoError):
    """Raised when a non-first fugue entry asks for an interval outside {0, ±7, ±12}."""

    def __init__(self, interval: int, entry_index: int):
        self.interval = interval
        self.entry_index = entry_index
        super().__init__(
            f"Entry {entry_index} requests interval {interval}; "
            "fugue entries must use 0, ±7 or ±12 semitones"
        )


class DegenerateModeError(FugatoError):
    """Raised when a step pattern does not describe exactly one octave."""


class ModeNotFoundError(FugatoError, KeyError):
    """Raised when a mode name is not present in the catalog."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "mode not found"
