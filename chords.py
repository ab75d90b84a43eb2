from typing import Dict, List, Tuple
import logging


class UnknownChordError(KeyError):
    """Raised when a chord name has no entry in the chord table."""


class ChordManager:
    """
    Holds the just-intonation interval ratios and the named chords built from them.
    """
    def __init__(self) -> None:
        self.interval_ratios: Dict[str, float] = {
            "unison": 1.0,
            "minor_third": 5.0 / 4.0,
            "major_third": 4.0 / 3.0,
            "diminished_fifth": 36.0 / 25.0,
            "perfect_fifth": 3.0 / 2.0,
            "augmented_fifth": 8.0 / 5.0,
            "major_sixth": 5.0 / 3.0,
            "minor_seventh": 9.0 / 5.0,
            "major_seventh": 15.0 / 8.0,
        }
        self.chord_intervals: Dict[str, List[str]] = {
            "maj": ["unison", "major_third", "perfect_fifth"],
            "min": ["unison", "minor_third", "perfect_fifth"],
            "aug": ["unison", "major_third", "augmented_fifth"],
            "dim": ["unison", "minor_third", "diminished_fifth"],
            "maj6": ["unison", "major_third", "perfect_fifth", "major_sixth"],
            "min6": ["unison", "minor_third", "perfect_fifth", "major_sixth"],
            "dom7": ["unison", "major_third", "perfect_fifth", "minor_seventh"],
            "maj7": ["unison", "major_third", "perfect_fifth", "major_seventh"],
            "min7": ["unison", "minor_third", "perfect_fifth", "minor_seventh"],
            "aug7": ["unison", "major_third", "augmented_fifth", "minor_seventh"],
        }
        # Index order is the order partials extend the chord across octaves.
        self.chords: Dict[str, Tuple[float, ...]] = {
            name: tuple(self.interval_ratios[interval] for interval in intervals)
            for name, intervals in self.chord_intervals.items()
        }

    @property
    def chord_names(self) -> List[str]:
        return sorted(self.chords)

    def lookup(self, name: str) -> Tuple[Tuple[float, ...], bool]:
        """Return ``(ratios, True)`` for a known chord, ``((), False)`` otherwise."""
        ratios = self.chords.get(name)
        if ratios is None:
            logging.debug(f"Chord lookup missed: {name!r}")
            return (), False
        return ratios, True

    def get_chord(self, name: str) -> Tuple[float, ...]:
        ratios, found = self.lookup(name)
        if not found:
            raise UnknownChordError(name)
        return ratios
