# heightfield/noise.py

"""
================================================================================
COHERENT NOISE FIELD
================================================================================
This module provides a seedable 2D OpenSimplex noise field. The per-point
kernels are pure functions compiled with Numba; NoiseField only owns the
permutation table derived from the seed.

Data Contract:
---------------
- Inputs:
    - seed: An int (any size) or a bytes-like object.
    - x, y: Real coordinates, as scalars or same-shaped NumPy arrays.
- Outputs:
    - Noise values in roughly [-0.87, 0.87]. Continuous everywhere, including
      across lattice cell boundaries.
- Side Effects: None.
- Invariants: The permutation table is read-only after construction. Same
  seed and coordinates always produce bit-identical output.
================================================================================
"""

import hashlib
import threading

import numpy as np
from numba import njit, prange

from . import config as DEFAULTS

# (1 / sqrt(2 + 1) - 1) / 2 and (sqrt(2 + 1) - 1) / 2
STRETCH_CONSTANT = -0.211324865405187
SQUISH_CONSTANT = 0.366025403784439
NORM_CONSTANT = 47.0

# Gradients for 2D. They approximate the directions to the vertices of an
# octagon from the center. Stored as (gx, gy) pairs.
_GRADIENTS = np.array([
     5,  2,    2,  5,
    -5,  2,   -2,  5,
     5, -2,    2, -5,
    -5, -2,   -2, -5,
], dtype=np.int64)

_MASK = DEFAULTS.PERMUTATION_MASK
_INT64_RANGE = 1 << 64
_INT64_HALF = 1 << 63

# Numba's workqueue threading layer aborts on concurrent prange launches.
PARALLEL_LAUNCH_LOCK = threading.Lock()


def _wrap_int64(value: int) -> int:
    """Wraps an arbitrary Python int to the signed 64-bit range."""
    return ((value + _INT64_HALF) % _INT64_RANGE) - _INT64_HALF


def seed_to_int(seed) -> int:
    """
    Reduces a seed to a signed 64-bit integer.

    Ints are wrapped; bytes-like seeds use the first 8 bytes of their SHA-256
    digest so that long byte strings still influence the result.
    """
    if isinstance(seed, bool):
        raise TypeError("Seed must be an int or bytes, not bool.")
    if isinstance(seed, (int, np.integer)):
        return _wrap_int64(int(seed))
    if isinstance(seed, (bytes, bytearray, memoryview)):
        digest = hashlib.sha256(bytes(seed)).digest()
        return int.from_bytes(digest[:8], "little", signed=True)
    raise TypeError(f"Seed must be an int or bytes, got {type(seed).__name__}.")


def build_permutation_table(seed) -> np.ndarray:
    """Builds the seeded, read-only permutation table."""
    # default_rng only takes non-negative seeds.
    rng = np.random.default_rng(seed_to_int(seed) % _INT64_RANGE)
    perm = np.arange(DEFAULTS.PERMUTATION_SIZE, dtype=np.int64)
    rng.shuffle(perm)
    perm.setflags(write=False)
    return perm


@njit
def _extrapolate(perm, xsb, ysb, dx, dy):
    "Dot product of the lattice point's gradient with the offset vector."
    index = perm[(perm[xsb & _MASK] + ysb) & _MASK] & 0x0E
    return _GRADIENTS[index] * dx + _GRADIENTS[index + 1] * dy


@njit
def opensimplex_2d(perm, x, y):
    """
    Evaluates 2D OpenSimplex noise at a single point.
    """
    # Place input coordinates onto the stretched grid.
    stretch_offset = (x + y) * STRETCH_CONSTANT
    xs = x + stretch_offset
    ys = y + stretch_offset

    # Rhombus (stretched square) super-cell origin.
    xsb = int(np.floor(xs))
    ysb = int(np.floor(ys))

    # Skew back out to get the rhombus origin in input space.
    squish_offset = (xsb + ysb) * SQUISH_CONSTANT
    xb = xsb + squish_offset
    yb = ysb + squish_offset

    xins = xs - xsb
    yins = ys - ysb
    in_sum = xins + yins

    dx0 = x - xb
    dy0 = y - yb

    value = 0.0

    # Contribution (1, 0)
    dx1 = dx0 - 1 - SQUISH_CONSTANT
    dy1 = dy0 - 0 - SQUISH_CONSTANT
    attn1 = 2 - dx1 * dx1 - dy1 * dy1
    if attn1 > 0:
        attn1 *= attn1
        value += attn1 * attn1 * _extrapolate(perm, xsb + 1, ysb + 0, dx1, dy1)

    # Contribution (0, 1)
    dx2 = dx0 - 0 - SQUISH_CONSTANT
    dy2 = dy0 - 1 - SQUISH_CONSTANT
    attn2 = 2 - dx2 * dx2 - dy2 * dy2
    if attn2 > 0:
        attn2 *= attn2
        value += attn2 * attn2 * _extrapolate(perm, xsb + 0, ysb + 1, dx2, dy2)

    if in_sum <= 1:
        # Inside the triangle at (0, 0).
        zins = 1 - in_sum
        if zins > xins or zins > yins:
            if xins > yins:
                xsv_ext = xsb + 1
                ysv_ext = ysb - 1
                dx_ext = dx0 - 1
                dy_ext = dy0 + 1
            else:
                xsv_ext = xsb - 1
                ysv_ext = ysb + 1
                dx_ext = dx0 + 1
                dy_ext = dy0 - 1
        else:
            xsv_ext = xsb + 1
            ysv_ext = ysb + 1
            dx_ext = dx0 - 1 - 2 * SQUISH_CONSTANT
            dy_ext = dy0 - 1 - 2 * SQUISH_CONSTANT
    else:
        # Inside the triangle at (1, 1).
        zins = 2 - in_sum
        if zins < xins or zins < yins:
            if xins > yins:
                xsv_ext = xsb + 2
                ysv_ext = ysb + 0
                dx_ext = dx0 - 2 - 2 * SQUISH_CONSTANT
                dy_ext = dy0 + 0 - 2 * SQUISH_CONSTANT
            else:
                xsv_ext = xsb + 0
                ysv_ext = ysb + 2
                dx_ext = dx0 + 0 - 2 * SQUISH_CONSTANT
                dy_ext = dy0 - 2 - 2 * SQUISH_CONSTANT
        else:
            xsv_ext = xsb
            ysv_ext = ysb
            dx_ext = dx0
            dy_ext = dy0
        xsb += 1
        ysb += 1
        dx0 = dx0 - 1 - 2 * SQUISH_CONSTANT
        dy0 = dy0 - 1 - 2 * SQUISH_CONSTANT

    # Contribution (0, 0) or (1, 1)
    attn0 = 2 - dx0 * dx0 - dy0 * dy0
    if attn0 > 0:
        attn0 *= attn0
        value += attn0 * attn0 * _extrapolate(perm, xsb, ysb, dx0, dy0)

    # Extra vertex
    attn_ext = 2 - dx_ext * dx_ext - dy_ext * dy_ext
    if attn_ext > 0:
        attn_ext *= attn_ext
        value += attn_ext * attn_ext * _extrapolate(perm, xsv_ext, ysv_ext, dx_ext, dy_ext)

    return value / NORM_CONSTANT


@njit
def opensimplex_2d_grid(perm, xs, ys):
    "Evaluates noise for flat coordinate arrays."
    out = np.empty(xs.shape[0])
    for i in range(xs.shape[0]):
        out[i] = opensimplex_2d(perm, xs[i], ys[i])
    return out


@njit(parallel=True)
def opensimplex_2d_grid_parallel(perm, xs, ys):
    out = np.empty(xs.shape[0])
    for i in prange(xs.shape[0]):
        out[i] = opensimplex_2d(perm, xs[i], ys[i])
    return out


def flatten_coordinates(xs, ys):
    xs = np.asarray(xs, dtype=np.float64)
    ys = np.asarray(ys, dtype=np.float64)
    if xs.shape != ys.shape:
        raise ValueError(f"Coordinate arrays differ in shape: {xs.shape} vs {ys.shape}.")
    return np.ascontiguousarray(xs).ravel(), np.ascontiguousarray(ys).ravel(), xs.shape


class NoiseField:
    """
    A deterministic 2D coherent noise generator.
    """
    def __init__(self, seed=DEFAULTS.DEFAULT_SEED):
        """
        Args:
            seed (int | bytes): Initializes the permutation table. The same
                seed always yields the same field.
        """
        self.seed = seed_to_int(seed)
        self._perm = build_permutation_table(self.seed)

    @property
    def permutation_table(self) -> np.ndarray:
        return self._perm

    def sample(self, x: float, y: float) -> float:
        """Returns the noise value at (x, y)."""
        return float(opensimplex_2d(self._perm, float(x), float(y)))

    def sample_array(self, xs, ys, parallel: bool = False) -> np.ndarray:
        """Returns noise values for same-shaped coordinate arrays."""
        flat_x, flat_y, shape = flatten_coordinates(xs, ys)
        if parallel:
            with PARALLEL_LAUNCH_LOCK:
                values = opensimplex_2d_grid_parallel(self._perm, flat_x, flat_y)
        else:
            values = opensimplex_2d_grid(self._perm, flat_x, flat_y)
        return values.reshape(shape)

    def __repr__(self) -> str:
        return f"NoiseField(seed={self.seed})"
