"""
Vertex Decimation Tests
=======================

Vertex classification, removal criteria and hole retriangulation.

Run: python -m pytest tests/test_vertex_decimation.py -v
"""

import numpy as np
import pytest

from decimator.mesh_model import MeshModel
from decimator.utils import create_flat_grid, create_hexagon_fan
from decimator.vertex_decimation import VertexDecimationSimplifier, VertexInfo


@pytest.fixture
def decimator():
    return VertexDecimationSimplifier()


# =============================================================================
# Classification
# =============================================================================

def test_hexagon_centre_is_interior(decimator, hexagon_fan):
    info = decimator.classify_vertices(hexagon_fan)[0]

    assert not info.is_feature_vertex
    assert not info.is_boundary_vertex
    assert info.distance_error == pytest.approx(0.0, abs=1e-12)
    assert info.neighbor_vertices == [1, 2, 3, 4, 5, 6]
    assert sorted(info.adjacent_faces) == list(range(6))


def test_hexagon_rim_is_boundary(decimator, hexagon_fan):
    vertex_info = decimator.classify_vertices(hexagon_fan)

    assert all(info.is_boundary_vertex for info in vertex_info[1:])
    # Walk starts at the open end of the fan around vertex 1
    assert vertex_info[1].neighbor_vertices == [2, 0, 6]


def test_lifted_centre_measures_height(decimator):
    mesh = create_hexagon_fan(height=0.2)

    info = decimator.classify_vertices(mesh)[0]

    assert info.distance_error == pytest.approx(0.2)
    assert not info.is_feature_vertex


def test_cube_corners_are_features(decimator, cube):
    vertex_info = decimator.classify_vertices(cube)

    assert all(info.is_feature_vertex for info in vertex_info)
    assert not any(info.is_boundary_vertex for info in vertex_info)


def test_wide_feature_angle_clears_cube_features(cube):
    vertex_info = VertexDecimationSimplifier(feature_angle=100.0).classify_vertices(cube)
    assert not any(info.is_feature_vertex for info in vertex_info)


def test_unreferenced_vertex_has_no_ring(decimator):
    mesh = MeshModel([[0, 0, 0], [1, 0, 0], [0, 1, 0], [4, 4, 4]], [[0, 1, 2]])

    info = decimator.classify_vertices(mesh)[3]

    assert info.neighbor_vertices == []
    assert info.adjacent_faces == []


def test_opposing_normals_give_infinite_error(decimator):
    normals = np.array([[0.0, 0.0, 1.0], [0.0, 0.0, -1.0]])

    error = decimator._compute_distance_error(np.zeros(3), normals, np.ones(3))

    assert error == float('inf')


# =============================================================================
# Removal criteria
# =============================================================================

def triangle_vertices():
    return np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.5, 0.8, 0.0]])


def test_interior_vertex_below_threshold_is_removable(decimator):
    info = VertexInfo(index=3, distance_error=0.06, neighbor_vertices=[0, 1, 2])
    assert decimator.can_remove_vertex(info, triangle_vertices())


def test_boundary_vertex_uses_half_threshold(decimator):
    near = VertexInfo(index=3, is_boundary_vertex=True, distance_error=0.04,
                      neighbor_vertices=[0, 1, 2])
    far = VertexInfo(index=3, is_boundary_vertex=True, distance_error=0.06,
                     neighbor_vertices=[0, 1, 2])

    assert decimator.can_remove_vertex(near, triangle_vertices())
    assert not decimator.can_remove_vertex(far, triangle_vertices())


def test_error_at_threshold_is_rejected(decimator):
    info = VertexInfo(index=3, distance_error=0.1, neighbor_vertices=[0, 1, 2])
    assert not decimator.can_remove_vertex(info, triangle_vertices())


def test_short_ring_is_rejected(decimator):
    info = VertexInfo(index=3, neighbor_vertices=[0, 1, 0])
    assert not decimator.can_remove_vertex(info, triangle_vertices())


def test_feature_vertex_is_rejected(decimator):
    info = VertexInfo(index=3, is_feature_vertex=True, neighbor_vertices=[0, 1, 2])
    assert not decimator.can_remove_vertex(info, triangle_vertices())


def test_fan_triangles_anchor_on_first_vertex(decimator):
    assert decimator.fan_triangles([4, 5, 6, 7]) == [(4, 5, 6), (4, 6, 7)]
    assert decimator.fan_triangles([4, 5]) == []


def test_aspect_ratio(decimator):
    vertices = np.array([[0.0, 0.0, 0.0], [4.0, 0.0, 0.0], [0.0, 1.0, 0.0],
                         [0.0, 0.0, 0.0]])

    assert decimator.compute_aspect_ratio(vertices, (0, 1, 2)) == pytest.approx(np.sqrt(17.0))
    assert decimator.compute_aspect_ratio(vertices, (0, 1, 3)) == float('inf')


# =============================================================================
# Simplification
# =============================================================================

def test_flat_hexagon_loses_centre(decimator, hexagon_fan):
    result = decimator.simplify(hexagon_fan, 6)

    assert result.vertex_count == 6
    assert result.face_count == 4
    assert result.validate()
    # Ring vertices shift down by one and keep their positions
    assert np.allclose(result.vertices, hexagon_fan.vertices[1:])


def test_lifted_hexagon_stops_early(decimator):
    mesh = create_hexagon_fan(height=0.2)

    result = decimator.simplify(mesh, 3)

    assert result.vertex_count == 7
    assert result.face_count == 6


def test_aspect_ratio_limit_blocks_removal(hexagon_fan):
    result = VertexDecimationSimplifier(aspect_ratio=1.5).simplify(hexagon_fan, 6)
    assert result.vertex_count == 7


def test_cube_is_left_alone(decimator, cube):
    result = decimator.simplify(cube, 4)

    assert result.vertex_count == 8
    assert result.face_count == 12


def test_target_not_below_count_is_noop(decimator, cube):
    result = decimator.simplify(cube, 8)

    assert result is not cube
    assert result.vertex_count == 8


def test_flat_grid_reduces_in_plane():
    grid = create_flat_grid(6, 6)

    result = VertexDecimationSimplifier().simplify(grid, 25)

    assert result.vertex_count < grid.vertex_count
    assert result.validate()
    assert np.allclose(result.vertices[:, 2], 0.0)


def test_sphere_factor_keeps_valid_mesh(decimator, sphere):
    result = decimator.simplify_by_factor(sphere, 0.5)

    assert result.vertex_count <= sphere.vertex_count
    assert result.vertex_count >= sphere.vertex_count // 2
    assert result.validate()


def test_input_is_not_modified(decimator, hexagon_fan):
    faces = hexagon_fan.faces.copy()

    decimator.simplify(hexagon_fan, 6)

    assert np.array_equal(hexagon_fan.faces, faces)
    assert hexagon_fan.vertex_count == 7


def test_normals_follow_removal(decimator, hexagon_fan):
    hexagon_fan.compute_normals()

    result = decimator.simplify(hexagon_fan, 6)

    assert result.normals.shape == (6, 3)
    assert np.allclose(result.normals, [0.0, 0.0, 1.0])


def test_setters_update_thresholds(decimator):
    decimator.set_feature_angle(30.0)
    decimator.set_aspect_ratio(4.0)
    decimator.set_max_distance(0.5)

    assert decimator.feature_angle == 30.0
    assert decimator.aspect_ratio == 4.0
    assert decimator.max_distance == 0.5
