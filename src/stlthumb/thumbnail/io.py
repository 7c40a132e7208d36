"""Model file ingestion for thumbnail rendering.

Reads STL, OBJ and 3MF sources into a single flat triangle soup (`Mesh`).
Format is picked from the file extension; standard input is always treated
as STL. Sources are read fully into memory before parsing because the
decoders need random access. For stdin this means input size is bounded only
by available memory.

Public functions:
- `load(source, recalc_normals=False)` -> Mesh
- `from_stl(stream, recalc_normals=False)` -> Mesh
- `from_obj(stream, recalc_normals=False)` -> Mesh
- `from_3mf(stream, recalc_normals=False)` -> Mesh
"""

from typing import BinaryIO, Callable, Dict, Iterable
import io
import logging
import os
import struct
import sys
import zipfile

import numpy as np
import trimesh
from trimesh.exchange.obj import load_obj
from trimesh.geometry import triangulate_quads
from stl import mesh as stl_mesh

from stlthumb.thumbnail.config import STDIN_SENTINEL
from stlthumb.thumbnail.errors import EmptyMeshError, FormatError, ModelIOError, ParseError
from stlthumb.thumbnail.mesh import Mesh, MeshBuilder

logger = logging.getLogger(__name__)

# Exceptions the third-party decoders raise on malformed input.
_DECODE_ERRORS = (
    ValueError,
    KeyError,
    IndexError,
    TypeError,
    AssertionError,
    RuntimeError,
    SyntaxError,
    EOFError,
    struct.error,
    zipfile.BadZipFile,
)

_STL_HEADER_SIZE = 80
_STL_COUNT_SIZE = 4


def _read_source(source: str) -> bytes:
    """Return all bytes of `source`, or of standard input for the sentinel."""
    try:
        if source == STDIN_SENTINEL:
            stream = getattr(sys.stdin, 'buffer', sys.stdin)
            data = stream.read()
        else:
            with open(source, 'rb') as fh:
                data = fh.read()
    except OSError as exc:
        raise ModelIOError(f'cannot read model {source!r}: {exc}') from exc
    if isinstance(data, str):
        data = data.encode('utf-8')
    return data


def _format_for(source: str) -> str:
    if source == STDIN_SENTINEL:
        return 'stl'
    ext = os.path.splitext(source)[1].lower().lstrip('.')
    if ext not in PARSERS:
        raise FormatError(f'unsupported model format {ext or "(none)"!r} for {source!r}')
    return ext


def load(source: str, recalc_normals: bool = False) -> Mesh:
    """Load a model from a file path or from stdin (`STDIN_SENTINEL`).

    Raises `FormatError` for unknown extensions, `ModelIOError` when the
    source cannot be read, `ParseError` for malformed geometry and
    `EmptyMeshError` when no triangles were found.
    """
    fmt = _format_for(source)
    data = _read_source(source)
    logger.debug('read %d bytes of %s from %s', len(data), fmt.upper(), 'stdin' if source == STDIN_SENTINEL else source)
    return PARSERS[fmt](io.BytesIO(data), recalc_normals)


def _report(mesh: Mesh, fmt: str, expects_normals: bool) -> Mesh:
    if expects_normals and not mesh.had_normals:
        logger.warning('%s file missing surface normals', fmt)
    logger.info('Bounds:\n%s', mesh.bounds)
    logger.info('Center:\t%s', mesh.bounds.center().tolist())
    logger.info('Triangles processed:\t%d', mesh.triangle_count)
    logger.debug('%s', mesh)
    return mesh


def _empty_binary_stl(data: bytes) -> bool:
    """True for a binary STL that is just a header and a zero triangle count."""
    if len(data) != _STL_HEADER_SIZE + _STL_COUNT_SIZE:
        return False
    count, = struct.unpack('<I', data[_STL_HEADER_SIZE:])
    return count == 0


def from_stl(stream: BinaryIO, recalc_normals: bool = False) -> Mesh:
    """Decode an ASCII or binary STL stream.

    Face normals from the file are used as-is unless `recalc_normals` is set
    or a normal is exactly zero.
    """
    data = stream.read()
    if not data or _empty_binary_stl(data):
        raise EmptyMeshError('STL file contains no triangles')
    try:
        decoded = stl_mesh.Mesh.from_file('model.stl', calculate_normals=False, fh=io.BytesIO(data),
                                           speedups=False)
    except _DECODE_ERRORS as exc:
        raise ParseError(f'malformed STL data: {exc}') from exc

    builder = MeshBuilder(recalc_normals)
    builder.add_triangles(decoded.vectors, decoded.normals)
    return _report(builder.build(), 'STL', expects_normals=True)


def _obj_geometries(loaded) -> Iterable[dict]:
    # load_obj returns {'geometry': {name: kwargs}} or, in older releases, a
    # single kwargs dict.
    if isinstance(loaded, dict) and 'geometry' in loaded:
        return list(loaded['geometry'].values())
    if isinstance(loaded, dict):
        return [loaded]
    return list(loaded)


def _triangles(faces) -> np.ndarray:
    """(N, 3) triangle indices from OBJ faces; quads become two triangles."""
    try:
        tris = np.asarray(triangulate_quads(faces), dtype=np.int64)
    except _DECODE_ERRORS as exc:
        raise ParseError(f'unsupported OBJ faces: {exc}') from exc
    if tris.ndim != 2 or tris.shape[1] != 3:
        raise ParseError(f'OBJ faces must be triangles or quads, got shape {tris.shape}')
    return tris


def from_obj(stream: BinaryIO, recalc_normals: bool = False) -> Mesh:
    """Decode a Wavefront OBJ stream.

    trimesh single-indexes positions and normals. Quad faces are split into
    two triangles before the indices are expanded into per-triangle corners.
    Every group in the file is concatenated into one mesh.
    """
    try:
        loaded = load_obj(stream, skip_materials=True, maintain_order=True)
    except _DECODE_ERRORS as exc:
        raise ParseError(f'malformed OBJ data: {exc}') from exc

    builder = MeshBuilder(recalc_normals)
    for geom in _obj_geometries(loaded):
        faces = geom.get('faces')
        if faces is None or len(faces) == 0:
            continue
        vertices = np.asarray(geom['vertices'], dtype=np.float32)
        faces = _triangles(faces)
        try:
            corners = vertices[faces]
        except IndexError as exc:
            raise ParseError(f'OBJ face references a missing vertex: {exc}') from exc
        normals = geom.get('vertex_normals')
        if normals is not None and len(normals) == len(vertices):
            normals = np.asarray(normals, dtype=np.float32)[faces]
        else:
            normals = None
        builder.add_triangles(corners, normals)
    return _report(builder.build(), 'OBJ', expects_normals=True)


def from_3mf(stream: BinaryIO, recalc_normals: bool = False) -> Mesh:
    """Decode a 3MF container, concatenating every mesh object it holds.

    3MF carries positions only, so normals are always computed. Build-item
    transforms are not applied.
    """
    try:
        loaded = trimesh.load(stream, file_type='3mf', process=False)
    except _DECODE_ERRORS as exc:
        raise ParseError(f'malformed 3MF data: {exc}') from exc

    if isinstance(loaded, trimesh.Scene):
        geometries = list(loaded.geometry.values())
    else:
        geometries = [loaded]

    builder = MeshBuilder(recalc_normals=True)
    for geom in geometries:
        faces = getattr(geom, 'faces', None)
        if faces is None or len(faces) == 0:
            continue
        vertices = np.asarray(geom.vertices, dtype=np.float32)
        builder.add_triangles(vertices[np.asarray(faces, dtype=np.int64)])
    return _report(builder.build(), '3MF', expects_normals=False)


PARSERS: Dict[str, Callable[[BinaryIO, bool], Mesh]] = {
    'stl': from_stl,
    'obj': from_obj,
    '3mf': from_3mf,
}
