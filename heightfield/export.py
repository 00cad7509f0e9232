# heightfield/export.py

"""
================================================================================
MESH PACKAGE EXPORT
================================================================================
Writes a MeshDescriptor to disk so any renderer can pick it up.

Data Contract:
---------------
- Inputs:
    - mesh (MeshDescriptor): The mesh to export.
    - output_dir (str): Destination directory (created if missing).
    - generation_settings (dict): Settings recorded next to the mesh.
- Outputs (files):
    - mesh.npz: vertices, triangles, wireframe_edges arrays.
    - mesh.obj: Wavefront OBJ with faces and wireframe lines.
    - heightmap.png: 8-bit grayscale elevation image.
    - manifest.json: Counts and the content hash.
    - generation_config.json: The settings that produced the mesh.
- Side Effects: Writes files to output_dir.
================================================================================
"""

import hashlib
import json
import logging
import os

import numpy as np
from PIL import Image

from .mesh import MeshDescriptor

MESH_FILENAME = "mesh.npz"
OBJ_FILENAME = "mesh.obj"
HEIGHTMAP_FILENAME = "heightmap.png"
MANIFEST_FILENAME = "manifest.json"
GENERATION_CONFIG_FILENAME = "generation_config.json"


def mesh_hash(mesh: MeshDescriptor) -> str:
    """SHA-256 over the vertex and index buffers."""
    digest = hashlib.sha256()
    for buffer in (mesh.vertices, mesh.triangle_indices, mesh.wireframe_edges):
        digest.update(np.ascontiguousarray(buffer).tobytes())
    return digest.hexdigest()


def heightmap_image(mesh: MeshDescriptor) -> Image.Image:
    """
    Renders the elevations as a grayscale image, one pixel per vertex.
    Elevations are stretched to the full 0-255 range; a flat mesh is mid-gray.
    """
    heights = mesh.heightmap()
    low, high = float(heights.min()), float(heights.max())
    if high > low:
        normalized = (heights - low) / (high - low)
    else:
        normalized = np.full(heights.shape, 0.5)
    pixels = np.round(normalized * 255).astype(np.uint8)
    return Image.fromarray(pixels, 'L')


def mesh_to_obj(mesh: MeshDescriptor) -> str:
    """
    Serializes the mesh as Wavefront OBJ text. Indices are 1-based. Wireframe
    edges are written as 'l' elements after the faces.
    """
    lines = [f"# {mesh.vertex_count} vertices, {mesh.triangle_count} triangles"]
    lines.extend(f"v {x:.6f} {y:.6f} {z:.6f}" for x, y, z in mesh.vertices)
    lines.extend(f"f {a + 1} {b + 1} {c + 1}" for a, b, c in mesh.triangle_indices)
    lines.extend(f"l {a + 1} {b + 1}" for a, b in mesh.wireframe_edges)
    return "\n".join(lines) + "\n"


def save_mesh_package(mesh: MeshDescriptor, output_dir: str, generation_settings: dict,
                      logger: logging.Logger = None, write_obj: bool = True) -> dict:
    """
    Writes the complete mesh package and returns its manifest.
    """
    logger = logger or logging.getLogger(__name__)
    os.makedirs(output_dir, exist_ok=True)

    # 1. Raw buffers for programmatic consumers.
    np.savez_compressed(
        os.path.join(output_dir, MESH_FILENAME),
        vertices=mesh.vertices,
        triangles=mesh.triangle_indices,
        wireframe_edges=mesh.wireframe_edges,
    )

    # 2. Interchange formats.
    if write_obj:
        with open(os.path.join(output_dir, OBJ_FILENAME), 'w') as f:
            f.write(mesh_to_obj(mesh))
    heightmap_image(mesh).save(os.path.join(output_dir, HEIGHTMAP_FILENAME), optimize=True)

    # 3. Manifest and the settings "birth certificate".
    elevations = mesh.elevations
    manifest = {
        "grid": [mesh.config.width, mesh.config.height],
        "vertex_count": mesh.vertex_count,
        "triangle_count": mesh.triangle_count,
        "wireframe_edge_count": int(mesh.wireframe_edges.shape[0]),
        "elevation_range": [float(elevations.min()), float(elevations.max())],
        "content_hash": mesh_hash(mesh),
        "files": [MESH_FILENAME, HEIGHTMAP_FILENAME] + ([OBJ_FILENAME] if write_obj else []),
    }
    with open(os.path.join(output_dir, MANIFEST_FILENAME), 'w') as f:
        json.dump(manifest, f, indent=2)
    with open(os.path.join(output_dir, GENERATION_CONFIG_FILENAME), 'w') as f:
        json.dump(generation_settings, f, indent=4)

    logger.info(f"Mesh package saved to '{output_dir}' (hash {manifest['content_hash'][:12]}).")
    return manifest


def load_mesh_arrays(output_dir: str) -> dict:
    """Loads the raw buffers written by save_mesh_package."""
    with np.load(os.path.join(output_dir, MESH_FILENAME)) as data:
        return {key: data[key] for key in data.files}
