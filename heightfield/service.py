# heightfield/service.py

"""
================================================================================
HEIGHTFIELD SERVICE
================================================================================
This module contains the HeightfieldService facade, the single entry point the
rendering layer uses to obtain terrain meshes.

Data Contract:
---------------
- Inputs (on initialization):
    - seed (int | bytes): Explicit noise seed.
    - config (dict): Parameters which override the internal defaults.
      Expected keys: 'base_frequency', 'output_scale', 'octaves',
      'plane_extent', 'parallel'.
    - logger: A configured Python logging object for runtime messages.
- Outputs (from methods):
    - MeshDescriptor objects built from a GridConfig.
- Side Effects: Logs messages using the provided logger.
- Invariants: Given the same seed and configuration, the output is
  bit-identical. No state is kept between generate() calls.
================================================================================
"""

import logging
import time

import numpy as np

from . import config as DEFAULTS
from .errors import InvalidConfig, SeedSourceUnavailable
from .fbm import FbmSampler, Octave
from .mesh import GridConfig, GridMeshBuilder, MeshDescriptor
from .noise import NoiseField

KNOWN_SETTINGS = ('base_frequency', 'output_scale', 'octaves', 'plane_extent', 'parallel')


class HeightfieldService:
    """
    Owns a NoiseField and FbmSampler and produces displaced grid meshes.
    """
    def __init__(self, seed, config: dict = None, logger: logging.Logger = None):
        """
        Initializes the service.

        Args:
            seed (int | bytes): Seed for the noise permutation table.
            config (dict, optional): User-defined parameters to override defaults.
            logger (logging.Logger, optional): The logger instance for all output.
        """
        self.logger = logger or logging.getLogger(__name__)
        self.user_config = dict(config or {})
        self.logger.info("HeightfieldService initializing...")

        for key in self.user_config:
            if key not in KNOWN_SETTINGS:
                self.logger.warning(f"Ignoring unknown heightfield setting '{key}'.")

        # --- Consolidate Configuration ---
        raw_octaves = self.user_config.get('octaves', DEFAULTS.REFERENCE_OCTAVES)
        if not isinstance(raw_octaves, (list, tuple)):
            raise InvalidConfig(f"'octaves' must be a list, got {type(raw_octaves).__name__}.")
        octaves = tuple(o if isinstance(o, Octave) else Octave.from_dict(o) for o in raw_octaves)

        self.settings = {
            'base_frequency': self._float_setting('base_frequency', DEFAULTS.BASE_FREQUENCY),
            'output_scale': self._float_setting('output_scale', DEFAULTS.OUTPUT_SCALE),
            'octaves': [o.to_dict() for o in octaves],
            'plane_extent': list(GridMeshBuilder.check_extent(
                self.user_config.get('plane_extent', DEFAULTS.PLANE_EXTENT))),
            'parallel': bool(self.user_config.get('parallel', DEFAULTS.PARALLEL_SAMPLING)),
        }
        self.plane_extent = tuple(self.settings['plane_extent'])

        # --- Initialize Noise ---
        self.noise_field = NoiseField(seed)
        self.seed = self.noise_field.seed
        self.sampler = FbmSampler(
            self.noise_field,
            octaves,
            base_frequency=self.settings['base_frequency'],
            output_scale=self.settings['output_scale'],
        )
        self.builder = GridMeshBuilder(logger=self.logger)

        if self.settings['parallel']:
            # Concurrent first launches of the prange kernel deadlock, so it is
            # compiled and launched once here, before any caller threads exist.
            self.sampler.sample_array(np.zeros(1), np.zeros(1), parallel=True)

        self.logger.info(f"HeightfieldService initialized with seed: {self.seed}")
        self.logger.info(
            f"{len(octaves)} octaves, base frequency {self.settings['base_frequency']}, "
            f"output scale {self.settings['output_scale']}, "
            f"plane {self.plane_extent[0]}x{self.plane_extent[1]}"
        )

    def _float_setting(self, key: str, default: float) -> float:
        value = self.user_config.get(key, default)
        try:
            return float(value)
        except (TypeError, ValueError) as e:
            raise InvalidConfig(f"Setting '{key}' must be a number, got {value!r}.") from e

    @classmethod
    def from_clock(cls, config: dict = None, logger: logging.Logger = None) -> "HeightfieldService":
        """
        Convenience constructor that seeds from the current wall-clock time.
        The result is not reproducible unless the logged seed is recorded.
        """
        try:
            seed = time.time_ns()
        except OSError as e:
            raise SeedSourceUnavailable(f"Could not read the system clock for a seed: {e}") from e
        return cls(seed, config=config, logger=logger)

    def sample(self, x: float, y: float) -> float:
        return self.sampler.sample(x, y)

    def generate(self, grid_config: GridConfig) -> MeshDescriptor:
        """
        Builds a fresh mesh for `grid_config`.
        """
        if not isinstance(grid_config, GridConfig):
            raise InvalidConfig(f"Expected a GridConfig, got {type(grid_config).__name__}.")
        start_time = time.perf_counter()
        mesh = self.builder.build(
            grid_config,
            self.sampler,
            plane_extent=self.plane_extent,
            parallel=self.settings['parallel'],
        )
        elapsed = time.perf_counter() - start_time
        self.logger.debug(f"Generated {grid_config.width}x{grid_config.height} mesh in {elapsed:.3f} seconds.")
        return mesh
