# heightfield/config.py

"""
================================================================================
INTERNAL DEFAULT CONFIGURATION
================================================================================
This module contains the default, fallback internal constants for the
heightfield generator. These values are used if they are not explicitly
provided by the user's configuration.

DO NOT MODIFY THIS FILE FOR A SPECIFIC RUN.
Instead, pass a configuration dictionary to the HeightfieldService instance.
================================================================================
"""

# --- Noise Generation ---
DEFAULT_SEED = 1337

# Size of the OpenSimplex permutation table. Lattice coordinates are masked
# with PERMUTATION_MASK, so this must stay a power of two.
PERMUTATION_SIZE = 256
PERMUTATION_MASK = PERMUTATION_SIZE - 1

# --- Fractional Brownian Motion ---
# Frequency of the first octave. Sampling coordinates are normalised to
# roughly [-0.5, 0.5], so 32 gives ~32 noise features across the plane.
BASE_FREQUENCY = 32.0

# Multiplier applied to the final fbm sum. Controls displacement height.
OUTPUT_SCALE = 2.5

# The reference octave stack. Each entry is applied in order; the offset is
# added to the sampling cursor *after* its octave is sampled and accumulates.
REFERENCE_OCTAVES = [
    {"frequency_multiplier": 2.0, "amplitude_weight": 1.0, "coordinate_offset": (32.0, 0.0)},
    {"frequency_multiplier": 2.0, "amplitude_weight": 0.5, "coordinate_offset": (42.0, 0.0)},
    {"frequency_multiplier": 2.0, "amplitude_weight": 0.35, "coordinate_offset": (9973.0, 0.0)},
    {"frequency_multiplier": 2.0, "amplitude_weight": 0.25, "coordinate_offset": (824.0, 0.0)},
    {"frequency_multiplier": 2.0, "amplitude_weight": 0.065, "coordinate_offset": (0.0, 0.0)},
]

# --- Mesh ---
# Size of the plane in world units (x, z). Vertices span [-extent/2, extent/2].
PLANE_EXTENT = (256.0, 256.0)

# Segment counts of the reference mesh (256 x 256 vertices).
DEFAULT_GRID_WIDTH = 255
DEFAULT_GRID_HEIGHT = 255

# --- Performance ---
# Sample the grid rows on all cores with numba's parallel backend.
PARALLEL_SAMPLING = False
