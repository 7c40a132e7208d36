"""
geometry.py

Matrix helpers for placing a model in front of the fixed thumbnail camera.
All matrices are 4x4 numpy arrays in the usual math convention (column
vectors, `M @ v`); `as_uniform` converts one to the column-major bytes GLSL
expects.

Public functions:
- `normalization_transform(mesh)` -> fits the mesh into the [-1, 1] cube
- `translation(offset)`, `uniform_scale(s)`
- `look_at(eye, target, up)` -> right-handed view matrix
- `perspective(fovy_deg, aspect, near, far)` -> OpenGL projection matrix
- `as_uniform(matrix)` -> bytes
"""
import logging
import math

import numpy as np

from stlthumb.thumbnail.utils import log_matrix

logger = logging.getLogger(__name__)


def translation(offset) -> np.ndarray:
    m = np.eye(4)
    m[:3, 3] = np.asarray(offset, dtype=float).reshape(3)
    return m


def uniform_scale(s: float) -> np.ndarray:
    m = np.eye(4)
    m[0, 0] = m[1, 1] = m[2, 2] = float(s)
    return m


def normalization_transform(mesh) -> np.ndarray:
    """Translate the bounds center to the origin, then scale uniformly.

    The scale is `2 / longest_extent`, so the model fits the [-1, 1] cube and
    touches it along its longest axis without changing shape. A mesh whose
    bounds have zero extent on every axis keeps a scale of 1.0.
    """
    bounds = mesh.bounds
    center = np.asarray(bounds.center(), dtype=float)
    longest = float(bounds.longest())
    if longest > 0.0 and math.isfinite(longest):
        scale = 2.0 / longest
    else:
        logger.warning('model bounds have zero extent; skipping normalization scale')
        scale = 1.0
    logger.info('Scale:\t%s', scale)
    m = uniform_scale(scale) @ translation(-center)
    log_matrix('Model', m)
    return m


def look_at(eye, target, up) -> np.ndarray:
    """View matrix for a camera at `eye` looking at `target` (right-handed)."""
    eye = np.asarray(eye, dtype=float)
    f = np.asarray(target, dtype=float) - eye
    f /= np.linalg.norm(f)
    s = np.cross(f, np.asarray(up, dtype=float))
    s /= np.linalg.norm(s)
    u = np.cross(s, f)
    m = np.eye(4)
    m[0, :3] = s
    m[1, :3] = u
    m[2, :3] = -f
    m[0, 3] = -np.dot(s, eye)
    m[1, 3] = -np.dot(u, eye)
    m[2, 3] = np.dot(f, eye)
    return m


def perspective(fovy_deg: float, aspect: float, near: float, far: float) -> np.ndarray:
    """OpenGL-style perspective projection (clip z in [-1, 1])."""
    f = 1.0 / math.tan(math.radians(fovy_deg) / 2.0)
    m = np.zeros((4, 4))
    m[0, 0] = f / aspect
    m[1, 1] = f
    m[2, 2] = (far + near) / (near - far)
    m[2, 3] = (2.0 * far * near) / (near - far)
    m[3, 2] = -1.0
    return m


def as_uniform(matrix) -> bytes:
    """Column-major float32 bytes for a GLSL `mat4` uniform."""
    return np.ascontiguousarray(np.asarray(matrix, dtype='f4').T).tobytes()
