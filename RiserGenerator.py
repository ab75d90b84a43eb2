import math
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple

import numpy as np
from numba import njit

SAMPLE_RATE = 44100
TWO_PI = 2.0 * math.pi

# Audible band; partials must lie strictly inside it to sound.
FLOOR_HZ = 20.0
CEILING_HZ = 20000.0

FADE_SECONDS = 1.0
INT16_MAX = 32767

# Samples are rendered one second at a time between progress reports.
BLOCK_SECONDS = 1
AUDIBLE_OCTAVES = int(math.ceil(math.log2(CEILING_HZ / FLOOR_HZ)))

# ============================================================
# Numba JIT-compiled functions for the per-sample loop
# ============================================================

@njit(cache=True)
def jit_partial_hz(ratios: np.ndarray, octave: int, chord_idx: int,
                   t: float, octaves_per_sec: float) -> float:
    """Frequency of the chord position (octave, chord_idx) at time t."""
    return ratios[chord_idx] * math.pow(2.0, t * octaves_per_sec + octave)

@njit(cache=True)
def jit_bell_curve(hz: float, center_hz: float, stddev_hz: float) -> float:
    exp = (hz - center_hz) / stddev_hz
    exp *= exp
    return math.exp(-0.5 * exp)

@njit(cache=True)
def jit_apply_fade(value: float, t: float, duration: float) -> float:
    """Linear fade in over the first second and out over the last one.

    Both windows apply to clips of two seconds or less.
    """
    if t < FADE_SECONDS:
        value *= t / FADE_SECONDS
    if t > duration - FADE_SECONDS:
        value *= (duration - t) / FADE_SECONDS
    return value

@njit(cache=True)
def jit_quantize(value: float) -> int:
    value = max(-1.0, min(1.0, value))
    return int(value * INT16_MAX)

@njit(cache=True)
def jit_grow_population(angles: np.ndarray, head: int, octave: int, chord_idx: int,
                        ratios: np.ndarray, t: float, octaves_per_sec: float) -> tuple:
    """Prepend phase-zero partials while the next lower position is still audible.

    Returns (head, octave, chord_idx, done); done is False when the buffer ran
    out of front room before growth finished.
    """
    n_chord = ratios.shape[0]
    while True:
        new_octave = octave
        new_chord_idx = chord_idx - 1
        if new_chord_idx < 0:
            new_chord_idx += n_chord
            new_octave -= 1
        if jit_partial_hz(ratios, new_octave, new_chord_idx, t, octaves_per_sec) <= FLOOR_HZ:
            return head, octave, chord_idx, True
        if head == 0:
            return head, octave, chord_idx, False
        head -= 1
        angles[head] = 0.0
        octave = new_octave
        chord_idx = new_chord_idx

@njit(cache=True)
def jit_sample_and_prune(angles: np.ndarray, head: int, tail: int, octave: int, chord_idx: int,
                         ratios: np.ndarray, t: float, octaves_per_sec: float,
                         center_hz: float, stddev_hz: float) -> tuple:
    """Sum the bell-weighted partials and find where the population goes inaudible.

    Returns (sum, tail) where tail is the first partial at or above the ceiling.
    """
    n_chord = ratios.shape[0]
    total = 0.0
    for i in range(head, tail):
        chord_idx += 1
        if chord_idx >= n_chord:
            chord_idx = 0
            octave += 1
        hz = jit_partial_hz(ratios, octave, chord_idx, t, octaves_per_sec)
        if hz >= CEILING_HZ:
            return total, i
        angle = np.fmod(angles[i] + hz / SAMPLE_RATE * TWO_PI, TWO_PI)
        angles[i] = angle
        total += math.sin(angle) * jit_bell_curve(hz, center_hz, stddev_hz)
    return total, tail

@njit(cache=True)
def jit_render_block(samples: np.ndarray, start: int, stop: int, angles: np.ndarray,
                     head: int, tail: int, octave: int, chord_idx: int, ratios: np.ndarray,
                     octaves_per_sec: float, duration: float, center_hz: float,
                     stddev_hz: float, gain: float) -> tuple:
    """Render samples[start:stop] in index order.

    Returns (next_index, head, tail, octave, chord_idx). next_index is below
    stop only when growth needs more front room; the caller re-runs from it.
    """
    for i in range(start, stop):
        t = i / SAMPLE_RATE
        head, octave, chord_idx, done = jit_grow_population(
            angles, head, octave, chord_idx, ratios, t, octaves_per_sec)
        if not done:
            return i, head, tail, octave, chord_idx
        total, tail = jit_sample_and_prune(angles, head, tail, octave, chord_idx, ratios,
                                           t, octaves_per_sec, center_hz, stddev_hz)
        total = jit_apply_fade(total, t, duration) * gain
        samples[i] = jit_quantize(total)
    return stop, head, tail, octave, chord_idx


@dataclass(frozen=True)
class RiserConfig:
    """Riser settings, fixed for the lifetime of an engine."""
    octaves_per_sec: float = 0.1
    duration: float = 60.0
    volume_center_hz: float = 1000.0
    volume_stddev_hz: float = 800.0
    gain: float = 0.05

    def __post_init__(self) -> None:
        for name in ("octaves_per_sec", "duration", "volume_center_hz", "volume_stddev_hz", "gain"):
            if not math.isfinite(getattr(self, name)):
                raise ValueError(f"{name} must be finite.")
        if self.octaves_per_sec < 0:
            raise ValueError("octaves_per_sec must be non-negative.")
        if self.volume_stddev_hz <= 0:
            raise ValueError("volume_stddev_hz must be positive.")

    @property
    def total_samples(self) -> int:
        return max(0, int(round(SAMPLE_RATE * self.duration)))


class RiserEngine:
    """
    Owns the oscillator population and renders the riser sample by sample.

    Live phases are ``_angles[_head:_tail]``, lowest pitch first. Births move
    ``_head`` down and pruning moves ``_tail`` down, so the live region drifts
    toward the front of the buffer and is moved back when room runs out.
    """
    INITIAL_CAPACITY = 256

    def __init__(self, config: RiserConfig, chord: Sequence[float]) -> None:
        ratios = np.asarray(chord, dtype=np.float64)
        if ratios.ndim != 1 or ratios.size == 0:
            raise ValueError("Chord must contain at least one ratio.")
        if not np.all(np.isfinite(ratios)) or np.any(ratios <= 0):
            raise ValueError(f"Chord ratios must be positive: {list(chord)}")
        self.config = config
        self.chord = ratios
        self.reset()

    def reset(self) -> None:
        """Empty the population and seed the base just above the ceiling."""
        self._angles = np.zeros(self.INITIAL_CAPACITY, dtype=np.float64)
        self._head = self._tail = self._angles.size
        self.octave, self.chord_idx = self._seed_position()
        logging.debug(f"Seeded base position at octave {self.octave}, chord index {self.chord_idx}")

    def _seed_position(self) -> Tuple[int, int]:
        # Lowest chord position whose frequency at t=0 is at or above the ceiling.
        n_chord = len(self.chord)
        octave, chord_idx = 0, 0
        while self.frequency_of(octave, chord_idx, 0.0) < CEILING_HZ:
            chord_idx += 1
            if chord_idx >= n_chord:
                chord_idx = 0
                octave += 1
        while True:
            lower_octave, lower_idx = octave, chord_idx - 1
            if lower_idx < 0:
                lower_idx += n_chord
                lower_octave -= 1
            if self.frequency_of(lower_octave, lower_idx, 0.0) < CEILING_HZ:
                return octave, chord_idx
            octave, chord_idx = lower_octave, lower_idx

    def _reserve_front(self, needed: int) -> None:
        if self._head >= needed:
            return
        live = self._tail - self._head
        capacity = max(self._angles.size, 2 * (live + needed))
        angles = np.zeros(capacity, dtype=np.float64)
        angles[capacity - live:] = self._angles[self._head:self._tail]
        self._angles = angles
        self._head, self._tail = capacity - live, capacity

    @property
    def population_size(self) -> int:
        return self._tail - self._head

    @property
    def base_position(self) -> Tuple[int, int]:
        return self.octave, self.chord_idx

    @property
    def phases(self) -> np.ndarray:
        return self._angles[self._head:self._tail].copy()

    def frequency_of(self, octave: int, chord_idx: int, t: float) -> float:
        return float(jit_partial_hz(self.chord, int(octave), int(chord_idx), float(t),
                                    float(self.config.octaves_per_sec)))

    def partial_frequencies(self, t: float) -> np.ndarray:
        """Frequencies of the live partials at time t, lowest first."""
        n_chord = len(self.chord)
        octave, chord_idx = self.octave, self.chord_idx
        frequencies = np.empty(self.population_size, dtype=np.float64)
        for k in range(frequencies.size):
            chord_idx += 1
            if chord_idx >= n_chord:
                chord_idx = 0
                octave += 1
            frequencies[k] = self.frequency_of(octave, chord_idx, t)
        return frequencies

    def grow_population(self, t: float) -> int:
        """Add new low partials for time t. Returns how many were born."""
        births = 0
        while True:
            head = self._head
            self._head, self.octave, self.chord_idx, done = jit_grow_population(
                self._angles, self._head, self.octave, self.chord_idx, self.chord,
                float(t), float(self.config.octaves_per_sec))
            births += head - self._head
            if done:
                return births
            self._reserve_front(self._angles.size)

    def sample_and_prune(self, t: float) -> float:
        """Advance every audible partial by one sample and drop those above the ceiling.

        Returns the bell-weighted sum before fade and gain.
        """
        cfg = self.config
        total, self._tail = jit_sample_and_prune(
            self._angles, self._head, self._tail, self.octave, self.chord_idx, self.chord,
            float(t), float(cfg.octaves_per_sec),
            float(cfg.volume_center_hz), float(cfg.volume_stddev_hz))
        return float(total)

    def generate(self, update_progress: Optional[Callable[[float], None]] = None) -> np.ndarray:
        """Render the whole clip as signed 16-bit mono samples."""
        self.reset()
        cfg = self.config
        total_samples = cfg.total_samples
        samples = np.zeros(total_samples, dtype=np.int16)
        block_samples = SAMPLE_RATE * BLOCK_SECONDS
        block_reserve = (AUDIBLE_OCTAVES + 3 + int(math.ceil(cfg.octaves_per_sec * BLOCK_SECONDS))) * len(self.chord)
        if update_progress:
            update_progress(0.0)

        needed = block_reserve
        start = 0
        while start < total_samples:
            self._reserve_front(needed)
            stop = min(total_samples, start + block_samples)
            start, self._head, self._tail, self.octave, self.chord_idx = jit_render_block(
                samples, start, stop, self._angles, self._head, self._tail,
                self.octave, self.chord_idx, self.chord,
                float(cfg.octaves_per_sec), float(cfg.duration),
                float(cfg.volume_center_hz), float(cfg.volume_stddev_hz), float(cfg.gain))
            if start < stop:
                # Out of front room mid-block; grow the buffer and resume at the same sample.
                needed = self._angles.size
                continue
            needed = block_reserve
            logging.debug(f"Rendered {stop}/{total_samples} samples, {self.population_size} partials live")
            if update_progress:
                update_progress(stop / total_samples)

        if total_samples:
            logging.info(f"Generated {total_samples} samples, peak {np.abs(samples.astype(np.int32)).max()}")
        else:
            logging.info("Duration yields no samples; returning an empty buffer.")
        return samples
