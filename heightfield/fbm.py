# heightfield/fbm.py

"""
================================================================================
FRACTIONAL BROWNIAN MOTION SAMPLER
================================================================================
This module sums several octaves of a NoiseField into a single elevation
value per (x, y).

Data Contract:
---------------
- Inputs (on initialization):
    - noise_field: An immutable NoiseField.
    - octaves: An ordered sequence of Octave values.
    - base_frequency, output_scale: Scalars (32 and 2.5 by default).
- Outputs:
    - Elevation values (float, or an array matching the input shape).
- Side Effects: None. Safe to call from several threads at once.
- Invariants:
    - The running frequency and the sampling cursor are advanced after every
      octave, including zero-weight ones.
    - Cursor offsets accumulate across octaves and are never reset.
================================================================================
"""

import math
from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np
from numba import njit, prange

from . import config as DEFAULTS
from .errors import InvalidConfig
from .noise import PARALLEL_LAUNCH_LOCK, NoiseField, opensimplex_2d, flatten_coordinates


@dataclass(frozen=True)
class Octave:
    """One term of the fbm sum."""
    amplitude_weight: float
    frequency_multiplier: float = 2.0
    coordinate_offset: Tuple[float, float] = (0.0, 0.0)

    def __post_init__(self):
        if not math.isfinite(self.amplitude_weight) or self.amplitude_weight < 0:
            raise InvalidConfig(f"Octave amplitude_weight must be finite and >= 0, got {self.amplitude_weight}.")
        if not math.isfinite(self.frequency_multiplier) or self.frequency_multiplier <= 0:
            raise InvalidConfig(f"Octave frequency_multiplier must be finite and > 0, got {self.frequency_multiplier}.")
        if len(self.coordinate_offset) != 2 or not all(math.isfinite(v) for v in self.coordinate_offset):
            raise InvalidConfig(f"Octave coordinate_offset must be two finite numbers, got {self.coordinate_offset}.")
        # Normalize lists from JSON into a hashable tuple of floats.
        object.__setattr__(self, 'coordinate_offset', (float(self.coordinate_offset[0]), float(self.coordinate_offset[1])))

    @classmethod
    def from_dict(cls, data: dict) -> "Octave":
        try:
            weight = float(data['amplitude_weight'])
            multiplier = float(data.get('frequency_multiplier', 2.0))
            offset = tuple(float(v) for v in data.get('coordinate_offset', (0.0, 0.0)))
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise InvalidConfig(f"Malformed octave definition {data!r}: {e}") from e
        return cls(amplitude_weight=weight, frequency_multiplier=multiplier, coordinate_offset=offset)

    def to_dict(self) -> dict:
        return {
            'amplitude_weight': self.amplitude_weight,
            'frequency_multiplier': self.frequency_multiplier,
            'coordinate_offset': list(self.coordinate_offset),
        }


def reference_octaves() -> Tuple[Octave, ...]:
    """The five-octave stack the terrain was tuned with."""
    return tuple(Octave.from_dict(o) for o in DEFAULTS.REFERENCE_OCTAVES)


@njit
def _fbm_point(perm, x, y, base_frequency, multipliers, weights, offsets_x, offsets_y, output_scale):
    freq = base_frequency
    value = 0.0
    cx = x
    cy = y
    for i in range(weights.shape[0]):
        value += opensimplex_2d(perm, cx * freq, cy * freq) * weights[i]
        freq *= multipliers[i]
        cx += offsets_x[i]
        cy += offsets_y[i]
    return value * output_scale


@njit
def _fbm_grid(perm, xs, ys, base_frequency, multipliers, weights, offsets_x, offsets_y, output_scale):
    out = np.empty(xs.shape[0])
    for i in range(xs.shape[0]):
        out[i] = _fbm_point(perm, xs[i], ys[i], base_frequency, multipliers,
                            weights, offsets_x, offsets_y, output_scale)
    return out


@njit(parallel=True)
def _fbm_grid_parallel(perm, xs, ys, base_frequency, multipliers, weights, offsets_x, offsets_y, output_scale):
    out = np.empty(xs.shape[0])
    for i in prange(xs.shape[0]):
        out[i] = _fbm_point(perm, xs[i], ys[i], base_frequency, multipliers,
                            weights, offsets_x, offsets_y, output_scale)
    return out


class FbmSampler:
    """
    Composes a NoiseField at several frequency/amplitude octaves.
    """
    def __init__(
        self,
        noise_field: NoiseField,
        octaves: Sequence[Octave] = None,
        base_frequency: float = DEFAULTS.BASE_FREQUENCY,
        output_scale: float = DEFAULTS.OUTPUT_SCALE,
    ):
        """
        Args:
            noise_field (NoiseField): The underlying coherent noise.
            octaves (Sequence[Octave], optional): Ordered octave stack. Defaults
                to the reference stack.
            base_frequency (float): Frequency of the first octave.
            output_scale (float): Multiplier applied to the final sum.
        """
        if octaves is None:
            octaves = reference_octaves()
        octaves = tuple(octaves)
        if not octaves:
            raise InvalidConfig("FbmSampler needs at least one octave.")
        if not math.isfinite(base_frequency) or base_frequency <= 0:
            raise InvalidConfig(f"base_frequency must be finite and > 0, got {base_frequency}.")
        if not math.isfinite(output_scale):
            raise InvalidConfig(f"output_scale must be finite, got {output_scale}.")

        self.noise_field = noise_field
        self.octaves = octaves
        self.base_frequency = float(base_frequency)
        self.output_scale = float(output_scale)

        # Flattened, read-only views of the octave table for the kernels.
        self._multipliers = self._frozen([o.frequency_multiplier for o in octaves])
        self._weights = self._frozen([o.amplitude_weight for o in octaves])
        self._offsets_x = self._frozen([o.coordinate_offset[0] for o in octaves])
        self._offsets_y = self._frozen([o.coordinate_offset[1] for o in octaves])

    @staticmethod
    def _frozen(values) -> np.ndarray:
        arr = np.array(values, dtype=np.float64)
        arr.setflags(write=False)
        return arr

    def _kernel_args(self):
        return (self.base_frequency, self._multipliers, self._weights,
                self._offsets_x, self._offsets_y, self.output_scale)

    def sample(self, x: float, y: float) -> float:
        """Returns the elevation at (x, y)."""
        return float(_fbm_point(self.noise_field.permutation_table, float(x), float(y), *self._kernel_args()))

    def sample_array(self, xs, ys, parallel: bool = False) -> np.ndarray:
        """Returns elevations for same-shaped coordinate arrays."""
        flat_x, flat_y, shape = flatten_coordinates(xs, ys)
        perm = self.noise_field.permutation_table
        if parallel:
            with PARALLEL_LAUNCH_LOCK:
                values = _fbm_grid_parallel(perm, flat_x, flat_y, *self._kernel_args())
        else:
            values = _fbm_grid(perm, flat_x, flat_y, *self._kernel_args())
        return values.reshape(shape)
