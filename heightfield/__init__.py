# heightfield/__init__.py

# Public API of the terrain core. The rendering layer only needs
# HeightfieldService and GridConfig; the rest is exposed for tooling and tests.

from .errors import HeightfieldError, InvalidConfig, SeedSourceUnavailable
from .noise import NoiseField
from .fbm import FbmSampler, Octave, reference_octaves
from .mesh import GridConfig, GridMeshBuilder, MeshDescriptor
from .service import HeightfieldService

__all__ = [
    "HeightfieldError", "InvalidConfig", "SeedSourceUnavailable",
    "NoiseField", "FbmSampler", "Octave", "reference_octaves",
    "GridConfig", "GridMeshBuilder", "MeshDescriptor",
    "HeightfieldService",
]
