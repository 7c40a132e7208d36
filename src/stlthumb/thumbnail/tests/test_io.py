import io
import logging
import sys

import numpy as np
import pytest

from stlthumb.thumbnail import io as model_io
from stlthumb.thumbnail.errors import EmptyMeshError, FormatError, ModelIOError, ParseError, ThumbnailError
from stlthumb.thumbnail.tests.fixtures.model_fixture import (CUBE_FACE_NORMALS, CUBE_FACES, CUBE_VERTICES,
                                                             ascii_stl_bytes, binary_stl_bytes, cube_triangles,
                                                             obj_bytes, obj_quad_bytes, threemf_bytes, write_model)


def _assert_unit_cube(mesh, offset=0.0):
    assert mesh.triangle_count == 12
    assert mesh.vertices.shape == (36, 3)
    assert mesh.normals.shape == (36, 3)
    np.testing.assert_allclose(mesh.bounds.min, [offset] * 3, atol=1e-6)
    np.testing.assert_allclose(mesh.bounds.max, [offset + 1.0] * 3, atol=1e-6)


def test_binary_stl_with_normals(tmp_path, caplog):
    path = write_model(tmp_path / 'cube.stl', binary_stl_bytes(cube_triangles(), CUBE_FACE_NORMALS))
    with caplog.at_level(logging.WARNING):
        mesh = model_io.load(path)
    _assert_unit_cube(mesh)
    assert mesh.had_normals
    assert 'missing surface normals' not in caplog.text
    np.testing.assert_allclose(mesh.normals[::3], CUBE_FACE_NORMALS)


def test_binary_stl_zero_normals_warns_and_computes(tmp_path, caplog):
    path = write_model(tmp_path / 'cube.stl', binary_stl_bytes(cube_triangles(offset=(5, 5, 5))))
    with caplog.at_level(logging.WARNING):
        mesh = model_io.load(path)
    _assert_unit_cube(mesh, offset=5.0)
    assert not mesh.had_normals
    assert 'STL file missing surface normals' in caplog.text
    np.testing.assert_allclose(mesh.normals[::3], CUBE_FACE_NORMALS)


def test_ascii_stl(tmp_path):
    path = write_model(tmp_path / 'cube.STL', ascii_stl_bytes(cube_triangles(), CUBE_FACE_NORMALS))
    mesh = model_io.load(path)
    _assert_unit_cube(mesh)
    assert mesh.had_normals


def test_recalc_normals_overrides_file(tmp_path):
    path = write_model(tmp_path / 'cube.stl', binary_stl_bytes(cube_triangles(), -CUBE_FACE_NORMALS))
    kept = model_io.load(path)
    np.testing.assert_allclose(kept.normals[::3], -CUBE_FACE_NORMALS)
    recomputed = model_io.load(path, recalc_normals=True)
    np.testing.assert_allclose(recomputed.normals[::3], CUBE_FACE_NORMALS)


def test_ingestion_is_deterministic(tmp_path):
    path = write_model(tmp_path / 'cube.stl', binary_stl_bytes(cube_triangles()))
    a = model_io.load(path)
    b = model_io.load(path)
    np.testing.assert_array_equal(a.vertices, b.vertices)
    np.testing.assert_array_equal(a.normals, b.normals)


def test_empty_binary_stl_raises(tmp_path):
    path = write_model(tmp_path / 'empty.stl', binary_stl_bytes(np.zeros((0, 3, 3))))
    with pytest.raises(EmptyMeshError):
        model_io.load(path)


def test_stdin_is_stl(monkeypatch):
    data = binary_stl_bytes(cube_triangles(), CUBE_FACE_NORMALS)
    monkeypatch.setattr(sys, 'stdin', io.TextIOWrapper(io.BytesIO(data)))
    mesh = model_io.load('-')
    _assert_unit_cube(mesh)


def test_obj_with_normals(tmp_path):
    mesh = model_io.load(write_model(tmp_path / 'cube.obj', obj_bytes(with_normals=True)))
    _assert_unit_cube(mesh)
    np.testing.assert_allclose(mesh.normals[::3], CUBE_FACE_NORMALS, atol=1e-6)


def test_obj_without_normals_warns(tmp_path, caplog):
    with caplog.at_level(logging.WARNING):
        mesh = model_io.load(write_model(tmp_path / 'cube.obj', obj_bytes(with_normals=False)))
    _assert_unit_cube(mesh)
    assert not mesh.had_normals
    assert 'OBJ file missing surface normals' in caplog.text
    np.testing.assert_allclose(mesh.normals[::3], CUBE_FACE_NORMALS, atol=1e-6)


def test_3mf_normals_always_computed(tmp_path, caplog):
    with caplog.at_level(logging.WARNING):
        mesh = model_io.load(write_model(tmp_path / 'cube.3mf', threemf_bytes()))
    _assert_unit_cube(mesh)
    assert 'missing surface normals' not in caplog.text
    np.testing.assert_allclose(mesh.normals[::3], CUBE_FACE_NORMALS, atol=1e-6)


def test_unknown_extension(tmp_path):
    path = write_model(tmp_path / 'cube.ply', b'ply\n')
    with pytest.raises(FormatError):
        model_io.load(path)


def test_missing_file(tmp_path):
    with pytest.raises(ModelIOError) as info:
        model_io.load(str(tmp_path / 'nope.stl'))
    assert isinstance(info.value, OSError)
    assert isinstance(info.value, ThumbnailError)


def test_corrupt_3mf_is_parse_error(tmp_path):
    path = write_model(tmp_path / 'broken.3mf', b'this is not a zip archive')
    with pytest.raises(ParseError):
        model_io.load(path)


def test_truncated_binary_stl_is_parse_error(tmp_path):
    data = binary_stl_bytes(cube_triangles(), CUBE_FACE_NORMALS)
    path = write_model(tmp_path / 'cut.stl', data[:84 + 50 * 5 + 17])
    with pytest.raises(ParseError):
        model_io.load(path)


def test_non_numeric_ascii_vertex_is_parse_error(tmp_path):
    data = ascii_stl_bytes(cube_triangles(), CUBE_FACE_NORMALS)
    data = data.replace(b'vertex 0.000000e+00', b'vertex not-a-number', 1)
    with pytest.raises(ParseError):
        model_io.load(write_model(tmp_path / 'bad.stl', data))


@pytest.mark.parametrize('data', [
    b'',
    binary_stl_bytes(np.zeros((0, 3, 3))),
    b'solid empty\nendsolid empty\n',
])
def test_every_empty_stl_is_empty_mesh(tmp_path, data):
    with pytest.raises(EmptyMeshError):
        model_io.load(write_model(tmp_path / 'empty.stl', data))


def test_obj_quads_are_split_into_triangles(tmp_path):
    mesh = model_io.load(write_model(tmp_path / 'quads.obj', obj_quad_bytes()))
    _assert_unit_cube(mesh)
    # both halves of every quad keep the outward winding
    np.testing.assert_allclose(np.abs(mesh.normals).sum(axis=1), 1.0, atol=1e-6)
    lo, hi = mesh.bounds.min, mesh.bounds.max
    center = (lo + hi) / 2.0
    corners = mesh.vertices.reshape(-1, 3, 3).mean(axis=1)
    outward = np.einsum('ij,ij->i', mesh.normals[::3], corners - center)
    assert np.all(outward > 0)


def test_single_obj_quad_gives_two_triangles(tmp_path):
    data = b'v 0 0 0\nv 1 0 0\nv 1 1 0\nv 0 1 0\nf 1 2 3 4\n'
    mesh = model_io.load(write_model(tmp_path / 'quad.obj', data))
    assert mesh.triangle_count == 2
    np.testing.assert_allclose(mesh.normals, np.tile([0.0, 0.0, 1.0], (6, 1)), atol=1e-6)


def test_3mf_objects_are_concatenated(tmp_path):
    second = CUBE_VERTICES + np.float32(5.0)
    data = threemf_bytes([(CUBE_VERTICES, CUBE_FACES), (second, CUBE_FACES)])
    mesh = model_io.load(write_model(tmp_path / 'pair.3mf', data))
    assert mesh.triangle_count == 24
    np.testing.assert_allclose(mesh.bounds.min, [0.0, 0.0, 0.0], atol=1e-6)
    np.testing.assert_allclose(mesh.bounds.max, [6.0, 6.0, 6.0], atol=1e-6)
