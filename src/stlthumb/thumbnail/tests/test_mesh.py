import numpy as np
import pytest

from stlthumb.thumbnail.errors import EmptyMeshError
from stlthumb.thumbnail.mesh import BoundingBox, Mesh, MeshBuilder, triangle_normals
from stlthumb.thumbnail.tests.fixtures.model_fixture import CUBE_FACE_NORMALS, cube_triangles


def test_triangle_normals_l1_scaled():
    tri = np.array([[[0, 0, 0], [2, 0, 0], [0, 3, 0]]], dtype='f4')
    n = triangle_normals(tri)
    assert n.dtype == np.float32
    np.testing.assert_allclose(n, [[0.0, 0.0, 1.0]])
    # non axis-aligned: components sum to 1 in absolute value
    tri = np.array([[[0, 0, 0], [1, 0, 0], [0, 1, 1]]], dtype='f4')
    n = triangle_normals(tri)
    assert np.abs(n).sum() == pytest.approx(1.0)
    np.testing.assert_allclose(n, [[0.0, -0.5, 0.5]])


def test_triangle_normals_degenerate_is_zero():
    tri = np.array([[[1, 1, 1], [2, 2, 2], [3, 3, 3]]], dtype='f4')
    n = triangle_normals(tri)
    assert np.all(np.isfinite(n))
    assert np.all(n == 0.0)


def test_cube_normals_point_outward():
    np.testing.assert_allclose(triangle_normals(cube_triangles()), CUBE_FACE_NORMALS)


def test_bounding_box_grows_and_orders():
    bb = BoundingBox([1.0, 2.0, 3.0])
    assert np.all(bb.min <= bb.max)
    bb.expand(np.array([[-1.0, 5.0, 3.0], [4.0, 0.0, -2.0]]))
    np.testing.assert_allclose(bb.min, [-1.0, 0.0, -2.0])
    np.testing.assert_allclose(bb.max, [4.0, 5.0, 3.0])
    assert bb.length() == pytest.approx(5.0)
    assert bb.width() == pytest.approx(5.0)
    assert bb.height() == pytest.approx(5.0)
    np.testing.assert_allclose(bb.center(), [1.5, 2.5, 0.5])
    # never shrinks
    bb.expand([0.0, 1.0, 0.0])
    np.testing.assert_allclose(bb.min, [-1.0, 0.0, -2.0])
    assert 'X: ' in str(bb)


def test_builder_keeps_supplied_normals():
    tri = cube_triangles()
    supplied = -CUBE_FACE_NORMALS  # inward; kept as given
    b = MeshBuilder()
    b.add_triangles(tri, supplied)
    mesh = b.build()
    assert mesh.vertices.shape == (36, 3)
    assert mesh.normals.shape == (36, 3)
    assert mesh.triangle_count == 12
    assert mesh.had_normals
    np.testing.assert_allclose(mesh.normals[0], supplied[0])
    np.testing.assert_allclose(mesh.normals[2], supplied[0])


def test_builder_replaces_zero_normals():
    tri = cube_triangles()
    normals = CUBE_FACE_NORMALS.copy()
    normals[3] = 0.0
    b = MeshBuilder()
    b.add_triangles(tri, normals)
    mesh = b.build()
    assert not mesh.had_normals
    computed = mesh.normals[9:12]
    assert np.all(np.abs(computed).sum(axis=1) > 0)
    np.testing.assert_allclose(computed[0], CUBE_FACE_NORMALS[3])


def test_builder_recalc_forces_computed_normals():
    tri = cube_triangles()
    b = MeshBuilder(recalc_normals=True)
    b.add_triangles(tri, -CUBE_FACE_NORMALS)
    mesh = b.build()
    assert mesh.had_normals
    np.testing.assert_allclose(mesh.normals[::3], CUBE_FACE_NORMALS)


def test_builder_without_normals_computes_them():
    b = MeshBuilder()
    b.add_triangles(cube_triangles())
    mesh = b.build()
    assert not mesh.had_normals
    np.testing.assert_allclose(mesh.normals[::3], CUBE_FACE_NORMALS)


def test_builder_accepts_per_corner_normals_and_multiple_batches():
    tri = cube_triangles()
    per_corner = np.repeat(CUBE_FACE_NORMALS[:, None, :], 3, axis=1)
    b = MeshBuilder()
    b.add_triangles(tri[:6], per_corner[:6])
    b.add_triangles(tri[6:] + 10.0, per_corner[6:])
    mesh = b.build()
    assert mesh.triangle_count == 12
    np.testing.assert_allclose(mesh.bounds.max, [11.0, 11.0, 11.0])
    np.testing.assert_allclose(mesh.bounds.min, [0.0, 0.0, 0.0])


def test_builder_empty_raises():
    b = MeshBuilder()
    b.add_triangles(np.zeros((0, 3, 3)))
    with pytest.raises(EmptyMeshError):
        b.build()


def test_mesh_arrays_are_read_only():
    b = MeshBuilder()
    b.add_triangles(cube_triangles())
    mesh = b.build()
    assert isinstance(mesh, Mesh)
    with pytest.raises(ValueError):
        mesh.vertices[0, 0] = 5.0


def test_builder_rejects_non_triangle_corners():
    with pytest.raises(ValueError):
        MeshBuilder().add_triangles(np.zeros((6, 4, 3), dtype='f4'))


def test_mesh_rejects_mismatched_arrays():
    bounds = BoundingBox([0.0, 0.0, 0.0])
    with pytest.raises(ValueError):
        Mesh(np.zeros((3, 3), dtype='f4'), np.zeros((6, 3), dtype='f4'), bounds)
    with pytest.raises(ValueError):
        Mesh(np.zeros((4, 3), dtype='f4'), np.zeros((4, 3), dtype='f4'), bounds)
