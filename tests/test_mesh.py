import logging

import numpy as np
import pytest

from pyVOLMESH import MalformedMeshError, MeshIndexError
from pyVOLMESH.CPU import GeneralMesh, TriMesh, VolumetricMesh

SQUARE_NODES = [(0, 0), (1, 0), (0, 1), (1, 1)]
SQUARE_TRIS = [[0, 1, 2], [1, 3, 2]]

MIXED_NODES = [(0, 0), (1, 0), (0, 1), (2, 0), (2, 1)]
MIXED_ELEMENTS = [0, 1, 2, 1, 3, 4, 2]
MIXED_ARITIES = [3, 4]


def _square_mesh():
    return TriMesh(4, np.array(SQUARE_NODES, dtype=float).ravel(), 2, np.ravel(SQUARE_TRIS), 3)


def _mixed_mesh():
    return GeneralMesh(5, MIXED_NODES, 2, MIXED_ELEMENTS, MIXED_ARITIES)


def test_uniform_triangle_scenario():
    mesh = _square_mesh()
    assert mesh.is_uniform_element_type()
    np.testing.assert_array_equal(mesh.ele_vert_pos(1, 0), [1, 0])
    np.testing.assert_array_equal(mesh.ele_vert_pos(1, 2), [0, 1])
    assert mesh.ele_vert_num(1) == 3
    np.testing.assert_array_equal(mesh.vert_pos(3), [1, 1])


def test_mixed_scenario():
    mesh = _mixed_mesh()
    assert not mesh.is_uniform_element_type()
    assert mesh.ele_offset(1) == 3
    assert mesh.ele_vert_indices(1)[1] == 3
    np.testing.assert_array_equal(mesh.ele_vert_pos(1, 1), MIXED_NODES[3])
    assert [mesh.ele_vert_num(e) for e in range(2)] == MIXED_ARITIES


def test_vertex_round_trip():
    rng = np.random.default_rng(0)
    coords = rng.random((7, 3))
    mesh = VolumetricMesh(7, coords.ravel(), 0, [], 4, dim=3)
    for i in range(7):
        np.testing.assert_array_equal(mesh.vert_pos(i), coords[i])
    np.testing.assert_array_equal(mesh.nodes, coords)


@pytest.mark.parametrize("arity", [1, 3, 4, 8])
def test_uniform_offset_law(arity):
    ele_num = 6
    refs = np.arange(ele_num * arity) % 10
    mesh = VolumetricMesh(10, np.arange(20.0), ele_num, refs, arity, dim=2)
    for e in range(ele_num):
        assert mesh.ele_offset(e) == e * arity
        assert mesh.ele_vert_num(e) == arity
        for v in range(arity):
            np.testing.assert_array_equal(mesh.ele_vert_pos(e, v), mesh.vert_pos(int(refs[e * arity + v])))


def test_mixed_offset_law():
    rng = np.random.default_rng(1)
    sizes = rng.integers(1, 9, size=12)
    refs = rng.integers(0, 10, size=sizes.sum())
    mesh = VolumetricMesh(10, np.arange(30.0), 12, refs, sizes, dim=3)
    for e in range(12):
        start = int(sizes[:e].sum())
        assert mesh.ele_offset(e) == start
        assert mesh.ele_vert_num(e) == sizes[e]
        np.testing.assert_array_equal(mesh.ele_vert_indices(e), refs[start:start + sizes[e]])
        for v in range(sizes[e]):
            np.testing.assert_array_equal(mesh.ele_vert_pos(e, v), mesh.vert_pos(int(refs[start + v])))
    np.testing.assert_array_equal(mesh.element_sizes(), sizes)


@pytest.mark.parametrize("vert_idx", [-1, 4, 100])
def test_vertex_index_out_of_range(vert_idx):
    with pytest.raises(MeshIndexError):
        _square_mesh().vert_pos(vert_idx)


@pytest.mark.parametrize("ele_idx, vert_idx", [(-1, 0), (2, 0), (0, -1), (0, 3)])
def test_element_vertex_index_out_of_range(ele_idx, vert_idx):
    with pytest.raises(MeshIndexError):
        _square_mesh().ele_vert_pos(ele_idx, vert_idx)


def test_local_index_bound_follows_element_arity():
    mesh = _mixed_mesh()
    mesh.ele_vert_pos(1, 3)
    with pytest.raises(MeshIndexError):
        mesh.ele_vert_pos(0, 3)
    with pytest.raises(MeshIndexError):
        mesh.ele_vert_num(2)


def test_index_error_is_an_index_error():
    with pytest.raises(IndexError):
        _square_mesh().vert_pos(4)


@pytest.mark.parametrize("bad", [1.0, "0", None, True])
def test_non_integer_index(bad):
    with pytest.raises(TypeError):
        _square_mesh().vert_pos(bad)


def test_numpy_integer_index():
    mesh = _square_mesh()
    np.testing.assert_array_equal(mesh.ele_vert_pos(np.int64(1), np.int32(1)), [1, 1])


def test_empty_mesh():
    mesh = TriMesh(0, [], 0, [], 3)
    assert mesh.vert_num == 0
    assert mesh.ele_num == 0
    assert len(mesh) == 0
    assert mesh.volume == 0.0
    assert mesh.centroids.shape == (0, 2)
    with pytest.raises(MeshIndexError):
        mesh.vert_pos(0)
    with pytest.raises(MeshIndexError):
        mesh.ele_vert_pos(0, 0)


def test_vertices_without_elements():
    mesh = VolumetricMesh(2, [0, 0, 1, 1], 0, [], [], dim=2)
    np.testing.assert_array_equal(mesh.vert_pos(1), [1, 1])
    with pytest.raises(MeshIndexError):
        mesh.ele_vert_num(0)


def test_queries_are_repeatable_and_return_copies():
    mesh = _mixed_mesh()
    first = mesh.ele_vert_pos(1, 2)
    first[:] = -1
    np.testing.assert_array_equal(mesh.ele_vert_pos(1, 2), MIXED_NODES[4])
    np.testing.assert_array_equal(mesh.ele_vert_pos(1, 2), mesh.ele_vert_pos(1, 2))


def test_storage_is_read_only():
    mesh = _mixed_mesh()
    with pytest.raises(ValueError):
        mesh.vertices[0] = 5.0
    with pytest.raises(ValueError):
        mesh.elements_flat[0] = 4
    with pytest.raises(ValueError):
        mesh.nodes[0, 0] = 5.0


def test_input_is_copied():
    coords = np.array(SQUARE_NODES, dtype=float)
    elements = np.array(SQUARE_TRIS)
    mesh = TriMesh.from_arrays(coords, elements)
    coords[:] = 9.0
    elements[:] = 0
    np.testing.assert_array_equal(mesh.vert_pos(3), [1, 1])
    assert mesh.ele_vert_indices(1).tolist() == [1, 3, 2]


def test_longer_buffers_are_truncated():
    mesh = VolumetricMesh(2, [0, 0, 1, 1, 7, 7], 1, [0, 1, 5, 5], 2, dim=2)
    assert mesh.vertices.shape == (4,)
    assert mesh.elements_flat.tolist() == [0, 1]


def test_from_arrays_detects_mixed():
    mesh = GeneralMesh.from_arrays(np.array(MIXED_NODES), [[0, 1, 2], [1, 3, 4, 2]])
    assert not mesh.is_uniform
    assert mesh.elements_flat.tolist() == MIXED_ELEMENTS


def test_from_arrays_detects_uniform_list():
    mesh = GeneralMesh.from_arrays(SQUARE_NODES, SQUARE_TRIS)
    assert mesh.is_uniform
    assert mesh.arity.vert_per_ele == 3


def test_centroids():
    mesh = _mixed_mesh()
    np.testing.assert_allclose(mesh.centroids, [[1 / 3, 1 / 3], [1.25, 0.5]])
    np.testing.assert_allclose(mesh.ele_centroid(1), [1.25, 0.5])
    np.testing.assert_allclose(_square_mesh().centroids, [[1 / 3, 1 / 3], [2 / 3, 2 / 3]])


def test_short_vertex_buffer():
    with pytest.raises(MalformedMeshError):
        TriMesh(4, [0, 0, 1, 0, 0, 1], 2, np.ravel(SQUARE_TRIS), 3)


def test_short_element_buffer():
    with pytest.raises(MalformedMeshError):
        TriMesh(4, np.ravel(SQUARE_NODES), 2, [0, 1, 2, 1, 3], 3)


def test_short_element_buffer_mixed():
    with pytest.raises(MalformedMeshError):
        GeneralMesh(5, MIXED_NODES, 2, MIXED_ELEMENTS[:-1], MIXED_ARITIES)


def test_negative_counts():
    with pytest.raises(MalformedMeshError):
        VolumetricMesh(-1, [], 0, [], 3, dim=2)
    with pytest.raises(MalformedMeshError):
        VolumetricMesh(0, [], -1, [], 3, dim=2)


def test_unsupported_dimension():
    with pytest.raises(MalformedMeshError):
        VolumetricMesh(1, [0, 0, 0, 0], 0, [], 1, dim=4)


def test_flat_vertices_need_dim():
    with pytest.raises(MalformedMeshError):
        GeneralMesh(3, [0, 0, 1, 0, 0, 1], 1, [0, 1, 2], 3)


def test_float_element_indices_rejected():
    with pytest.raises(MalformedMeshError):
        TriMesh(3, [0, 0, 1, 0, 0, 1], 1, [0.0, 1.5, 2.0], 3)


def test_index_bounds_not_checked_at_construction():
    mesh = TriMesh(3, [0, 0, 1, 0, 0, 1], 1, [0, 1, 7], 3)
    np.testing.assert_array_equal(mesh.ele_vert_pos(0, 1), [1, 0])
    with pytest.raises(MeshIndexError):
        mesh.ele_vert_pos(0, 2)
    with pytest.raises(MalformedMeshError):
        mesh.validate()


def test_validate_warns_on_unreferenced_vertices(caplog):
    mesh = TriMesh(4, np.ravel(SQUARE_NODES), 1, [0, 1, 2], 3)
    with caplog.at_level(logging.WARNING):
        mesh.validate()
    assert "unreferenced" in caplog.text


def test_print_info_logs_summary(caplog):
    with caplog.at_level(logging.INFO):
        _mixed_mesh().print_info()
    assert "General Mesh: 5 vertices, 2 elements, 2D, mixed element type." in caplog.text


def test_repr():
    assert repr(_square_mesh()) == "TriMesh(vert_num=4, ele_num=2, dim=2, uniform)"


def test_base_geometry_is_abstract():
    mesh = VolumetricMesh(3, [0, 0, 1, 0, 0, 1], 1, [0, 1, 2], 3, dim=2)
    with pytest.raises(NotImplementedError):
        mesh.ele_volume(0)
    with pytest.raises(NotImplementedError):
        mesh.contains_vertex(0, [0.1, 0.1])
    with pytest.raises(NotImplementedError):
        mesh.interpolation_weights(0, [0.1, 0.1])


@pytest.mark.parametrize("dtype", [np.int64, np.int32, bool])
def test_non_floating_dtype_rejected(dtype):
    with pytest.raises(MalformedMeshError):
        TriMesh(4, np.ravel(SQUARE_NODES), 2, np.ravel(SQUARE_TRIS), 3, dtype=dtype)


@pytest.mark.parametrize("vert_per_ele", [3.9, 3.0, True])
def test_non_integer_arity_rejected(vert_per_ele):
    with pytest.raises(MalformedMeshError):
        TriMesh(4, np.ravel(SQUARE_NODES), 2, np.ravel(SQUARE_TRIS), vert_per_ele)


def test_non_integer_counts_rejected():
    with pytest.raises(MalformedMeshError):
        TriMesh(4.5, np.ravel(SQUARE_NODES), 2, np.ravel(SQUARE_TRIS), 3)
    with pytest.raises(MalformedMeshError):
        TriMesh(4, np.ravel(SQUARE_NODES), 2.0, np.ravel(SQUARE_TRIS), 3)
    with pytest.raises(MalformedMeshError):
        VolumetricMesh(1, [0, 0], 0, [], 1, dim=2.5)


def test_numpy_integer_counts():
    mesh = TriMesh(np.int64(4), np.ravel(SQUARE_NODES), np.int32(2), np.ravel(SQUARE_TRIS), np.int8(3))
    assert mesh.vert_num == 4
    assert mesh.ele_vert_num(1) == 3


@pytest.mark.parametrize("big", [2**31, -2**31 - 1])
def test_element_indices_must_fit_int32(big):
    with pytest.raises(MalformedMeshError):
        TriMesh(3, [0, 0, 1, 0, 0, 1], 1, np.array([0, 1, big], dtype=np.int64), 3)


def test_large_indices_past_used_prefix_are_ignored():
    mesh = TriMesh(3, [0, 0, 1, 0, 0, 1], 1, np.array([0, 1, 2, 2**40], dtype=np.int64), 3)
    np.testing.assert_array_equal(mesh.elements_flat, [0, 1, 2])
