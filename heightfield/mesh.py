# heightfield/mesh.py

"""
================================================================================
GRID MESH BUILDER
================================================================================
This module builds a regular, shared-vertex grid mesh and displaces every
vertex vertically with an FbmSampler.

Data Contract:
---------------
- Inputs:
    - config (GridConfig): Number of cells along x (width) and z (height).
    - sampler (FbmSampler): Any object exposing sample_array(xs, ys).
    - plane_extent (tuple): Size of the plane in world units (x, z).
- Outputs:
    - MeshDescriptor with:
        - vertices: (N, 3) float64 array of (x, elevation, z).
        - triangle_indices: (2*W*H, 3) int64 array.
        - wireframe_edges: (E, 2) int64 array of unique (low, high) pairs.
- Side Effects: None. Every build allocates fresh, read-only arrays.
- Invariants: N == (W+1)*(H+1). Every index is < N. No edge appears twice.
================================================================================
"""

import logging
import math
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from . import config as DEFAULTS
from .errors import InvalidConfig


def _check_dimension(name: str, value) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise InvalidConfig(f"GridConfig.{name} must be an integer, got {value!r}.")
    if value <= 0:
        raise InvalidConfig(f"GridConfig.{name} must be >= 1, got {value}.")
    return int(value)


@dataclass(frozen=True)
class GridConfig:
    """Number of grid cells along each axis."""
    width: int
    height: int

    def __post_init__(self):
        object.__setattr__(self, 'width', _check_dimension('width', self.width))
        object.__setattr__(self, 'height', _check_dimension('height', self.height))

    @classmethod
    def from_vertex_counts(cls, vertices_x: int, vertices_z: int) -> "GridConfig":
        """Builds a config from vertex counts (w x h vertices, w-1 x h-1 cells)."""
        return cls(width=vertices_x - 1, height=vertices_z - 1)

    @property
    def vertex_count(self) -> int:
        return (self.width + 1) * (self.height + 1)

    @property
    def triangle_count(self) -> int:
        return 2 * self.width * self.height


def _read_only(arr: np.ndarray) -> np.ndarray:
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True, eq=False)
class MeshDescriptor:
    """
    The renderable output of one build. Owned by the caller once returned.
    """
    config: GridConfig
    vertices: np.ndarray
    triangle_indices: np.ndarray
    wireframe_edges: np.ndarray

    @property
    def vertex_count(self) -> int:
        return self.vertices.shape[0]

    @property
    def triangle_count(self) -> int:
        return self.triangle_indices.shape[0]

    @property
    def grid_shape(self) -> Tuple[int, int]:
        """(rows, columns) of the vertex lattice."""
        return (self.config.height + 1, self.config.width + 1)

    @property
    def elevations(self) -> np.ndarray:
        return self.vertices[:, 1]

    def heightmap(self) -> np.ndarray:
        """Elevations laid out as a (rows, columns) array, row 0 at the -z edge."""
        return self.elevations.reshape(self.grid_shape)


class GridMeshBuilder:
    """
    Builds displaced grid meshes. Holds no state between builds.
    """
    def __init__(self, logger: logging.Logger = None):
        self.logger = logger or logging.getLogger(__name__)

    def build(self, config: GridConfig, sampler, plane_extent=DEFAULTS.PLANE_EXTENT,
              parallel: bool = DEFAULTS.PARALLEL_SAMPLING) -> MeshDescriptor:
        """
        Builds the mesh for `config`, sampling elevations from `sampler`.

        Args:
            config (GridConfig): Cell counts along x and z.
            sampler (FbmSampler): Elevation source.
            plane_extent (tuple): Plane size (x, z) in world units.
            parallel (bool): Sample rows on all cores.
        """
        if not isinstance(config, GridConfig):
            raise InvalidConfig(f"Expected a GridConfig, got {type(config).__name__}.")
        extent_x, extent_z = self.check_extent(plane_extent)

        # 1. Lay out the flat grid, centred on the origin.
        xs = np.linspace(-extent_x / 2, extent_x / 2, config.width + 1)
        zs = np.linspace(-extent_z / 2, extent_z / 2, config.height + 1)
        px_grid, pz_grid = np.meshgrid(xs, zs)

        # 2. Displace along the up axis using normalized sampling coordinates.
        elevation = sampler.sample_array(px_grid / extent_x, pz_grid / extent_z, parallel=parallel)

        vertices = np.column_stack((px_grid.ravel(), elevation.ravel(), pz_grid.ravel()))

        # 3. & 4. Topology.
        triangles = self.triangulate(config)
        edges = self.unique_edges(triangles)

        self.logger.debug(
            f"Built {config.width}x{config.height} grid: {vertices.shape[0]} vertices, "
            f"{triangles.shape[0]} triangles, {edges.shape[0]} wireframe edges."
        )
        return MeshDescriptor(
            config=config,
            vertices=_read_only(vertices),
            triangle_indices=_read_only(triangles),
            wireframe_edges=_read_only(edges),
        )

    @staticmethod
    def check_extent(plane_extent) -> Tuple[float, float]:
        try:
            extent_x, extent_z = (float(v) for v in plane_extent)
        except (TypeError, ValueError) as e:
            raise InvalidConfig(f"plane_extent must be two numbers, got {plane_extent!r}.") from e
        for value in (extent_x, extent_z):
            if not math.isfinite(value) or value <= 0:
                raise InvalidConfig(f"plane_extent components must be finite and > 0, got {plane_extent!r}.")
        return extent_x, extent_z

    @staticmethod
    def triangulate(config: GridConfig) -> np.ndarray:
        """
        Splits every cell into two triangles with upward-facing normals.
        """
        row = config.width + 1
        ix, iz = np.meshgrid(np.arange(config.width), np.arange(config.height))
        a = (iz * row + ix).ravel()
        b = a + row          # (ix, iz + 1)
        c = b + 1            # (ix + 1, iz + 1)
        d = a + 1            # (ix + 1, iz)

        triangles = np.empty((2 * a.size, 3), dtype=np.int64)
        triangles[0::2] = np.column_stack((a, b, d))
        triangles[1::2] = np.column_stack((b, c, d))
        return triangles

    @staticmethod
    def unique_edges(triangles: np.ndarray) -> np.ndarray:
        """
        Returns every undirected triangle edge once, as sorted (low, high) pairs.
        """
        edges = np.concatenate((
            triangles[:, [0, 1]],
            triangles[:, [1, 2]],
            triangles[:, [2, 0]],
        ))
        edges = np.sort(edges, axis=1)
        return np.unique(edges, axis=0)
