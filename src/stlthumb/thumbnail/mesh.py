"""
mesh.py

In-memory triangle soup: flat per-corner vertex and normal arrays plus a
running bounding box.

Public objects:
- `BoundingBox` : axis-aligned box seeded from one vertex, grown by `expand`
- `Mesh` : immutable result of ingestion (never empty)
- `MeshBuilder` : accumulates triangles and produces a `Mesh`
- `triangle_normals(corners)` : L1-scaled face normals
"""
from typing import List, Optional
import logging

import numpy as np

from stlthumb.thumbnail.errors import EmptyMeshError

logger = logging.getLogger(__name__)


def triangle_normals(corners) -> np.ndarray:
    """Face normals for an (N, 3, 3) array of triangle corners.

    The cross product of the two edges leaving the first corner is divided by
    the sum of its absolute components, not by its Euclidean length. Shading
    in the model shader renormalizes, so only the direction matters there.
    Zero-area triangles get a zero normal.
    """
    tri = np.asarray(corners, dtype=np.float32).reshape(-1, 3, 3)
    n = np.cross(tri[:, 1] - tri[:, 0], tri[:, 2] - tri[:, 0])
    mag = np.abs(n).sum(axis=1, keepdims=True)
    out = np.zeros_like(n)
    np.divide(n, mag, out=out, where=mag != 0)
    return out.astype(np.float32)


class BoundingBox:
    """Axis-aligned bounds of every vertex absorbed so far.

    Created from the first processed vertex, so `min <= max` holds from the
    start; `expand` only ever grows the box.
    """

    def __init__(self, vertex):
        v = np.asarray(vertex, dtype=np.float32).reshape(3)
        self.min = v.copy()
        self.max = v.copy()

    def expand(self, vertices) -> None:
        """Grow the box to contain one vertex or an (N, 3) array of them."""
        pts = np.asarray(vertices, dtype=np.float32).reshape(-1, 3)
        if pts.shape[0] == 0:
            return
        np.minimum(self.min, pts.min(axis=0), out=self.min)
        np.maximum(self.max, pts.max(axis=0), out=self.max)

    def center(self) -> np.ndarray:
        return (self.min + self.max) / 2.0

    def length(self) -> float:
        return float(self.max[0] - self.min[0])

    def width(self) -> float:
        return float(self.max[1] - self.min[1])

    def height(self) -> float:
        return float(self.max[2] - self.min[2])

    def extents(self) -> np.ndarray:
        return self.max - self.min

    def longest(self) -> float:
        return max(self.length(), self.width(), self.height())

    def __repr__(self):
        return f'BoundingBox(min={self.min.tolist()}, max={self.max.tolist()})'

    def __str__(self):
        return (f'X: {self.min[0]}, {self.max[0]}\n'
                f'Y: {self.min[1]}, {self.max[1]}\n'
                f'Z: {self.min[2]}, {self.max[2]}')


class Mesh:
    """Triangle soup ready for rendering.

    `vertices` and `normals` are (3N, 3) float32 arrays, three rows per
    triangle. `had_normals` is False when at least one triangle needed a
    computed normal because its source did not supply one.
    """

    def __init__(self, vertices: np.ndarray, normals: np.ndarray, bounds: BoundingBox, had_normals: bool = True):
        if vertices.shape != normals.shape:
            raise ValueError(f'vertices {vertices.shape} and normals {normals.shape} must be parallel')
        if vertices.ndim != 2 or vertices.shape[1] != 3:
            raise ValueError(f'vertices must be (3N, 3), got {vertices.shape}')
        if vertices.shape[0] % 3 != 0:
            raise ValueError(f'vertex count must be a multiple of 3, got {vertices.shape[0]}')
        self.vertices = vertices
        self.normals = normals
        self.bounds = bounds
        self.had_normals = had_normals
        self.vertices.setflags(write=False)
        self.normals.setflags(write=False)

    @property
    def triangle_count(self) -> int:
        return self.vertices.shape[0] // 3

    def __str__(self):
        return f'Verts: {self.vertices.shape[0]}\nNorms: {self.normals.shape[0]}\nTriangles: {self.triangle_count}'


class MeshBuilder:
    """Accumulates triangles from a parser and builds a `Mesh`.

    Usage:
        builder = MeshBuilder(recalc_normals=False)
        builder.add_triangles(corners, file_normals)
        mesh = builder.build()
    """

    def __init__(self, recalc_normals: bool = False):
        self.recalc_normals = recalc_normals
        self.bounds: Optional[BoundingBox] = None
        self.had_normals = True
        self._vertices: List[np.ndarray] = []
        self._normals: List[np.ndarray] = []

    def add_triangles(self, corners, normals=None) -> None:
        """Append triangles and decide their normals.

        - corners: (N, 3, 3) corner positions.
        - normals: None when the source carries no normals, (N, 3) face
          normals, or (N, 3, 3) per-corner normals. A triangle whose supplied
          normals are all exactly zero counts as missing.
        """
        tri = np.asarray(corners, dtype=np.float32)
        if tri.shape[-2:] != (3, 3):
            raise ValueError(f'corners must be (N, 3, 3), got {tri.shape}')
        tri = tri.reshape(-1, 3, 3)
        n_tri = tri.shape[0]
        if n_tri == 0:
            return

        flat = tri.reshape(-1, 3)
        if self.bounds is None:
            self.bounds = BoundingBox(flat[0])
        self.bounds.expand(flat)
        self._vertices.append(flat)

        if normals is None:
            per_corner = np.empty_like(tri)
            missing = np.ones(n_tri, dtype=bool)
        else:
            supplied = np.asarray(normals, dtype=np.float32)
            if supplied.ndim == 2:
                supplied = np.repeat(supplied[:, None, :], 3, axis=1)
            per_corner = supplied.reshape(n_tri, 3, 3).copy()
            missing = ~per_corner.reshape(n_tri, 9).any(axis=1)

        replace = missing | self.recalc_normals
        if replace.any():
            computed = triangle_normals(tri[replace])
            per_corner[replace] = computed[:, None, :]
        if normals is None or (missing.any() and not self.recalc_normals):
            self.had_normals = False

        self._normals.append(per_corner.reshape(-1, 3))

    def build(self) -> Mesh:
        if self.bounds is None:
            raise EmptyMeshError('model contains no triangles')
        vertices = np.ascontiguousarray(np.concatenate(self._vertices), dtype=np.float32)
        normals = np.ascontiguousarray(np.concatenate(self._normals), dtype=np.float32)
        return Mesh(vertices, normals, self.bounds, self.had_normals)
