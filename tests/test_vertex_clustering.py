"""
Vertex Clustering Tests
=======================

Grid assignment, representative placement, face remapping and the
resolution estimate used for reduction factors.

Run: python -m pytest tests/test_vertex_clustering.py -v
"""

import numpy as np
import pytest

from decimator.mesh_model import MeshModel
from decimator.vertex_clustering import GridCell, VertexClusteringSimplifier


@pytest.fixture
def clustering():
    return VertexClusteringSimplifier()


# =============================================================================
# Grid assignment
# =============================================================================

def test_bounding_box_pads_flat_extent(clustering, flat_grid):
    min_bounds, size = clustering.compute_bounding_box(flat_grid.vertices)

    assert np.allclose(min_bounds, [-1.0, -1.0, 0.0])
    assert np.allclose(size[:2], 2.0)
    assert size[2] > 0.0


def test_upper_boundary_falls_into_last_cell(clustering):
    vertices = np.array([[0.0, 0.0, 0.0], [1.0, 1.0, 1.0], [0.5, 0.25, 0.99]])

    min_bounds, size = clustering.compute_bounding_box(vertices)
    cells = clustering.get_grid_cells(vertices, min_bounds, size, 4)

    assert cells.tolist() == [[0, 0, 0], [3, 3, 3], [2, 1, 3]]


def test_cells_follow_first_occupancy(clustering):
    vertices = np.array([[1.0, 1.0, 1.0], [0.0, 0.0, 0.0], [0.9, 0.9, 0.9]])

    min_bounds, size = clustering.compute_bounding_box(vertices)
    grid = clustering.assign_vertices_to_cells(vertices, min_bounds, size, 2)

    assert list(grid.keys()) == [(1, 1, 1), (0, 0, 0)]
    assert grid[(1, 1, 1)].vertex_indices == [0, 2]


def test_representative_is_cell_mean(clustering):
    vertices = np.array([[0.0, 0.0, 0.0], [2.0, 0.0, 0.0], [1.0, 3.0, 0.0]])
    cell = GridCell(cell_coords=(0, 0, 0), vertex_indices=[0, 1, 2])

    assert np.allclose(clustering.compute_representative(cell, vertices), [1.0, 1.0, 0.0])


# =============================================================================
# Simplification
# =============================================================================

def test_single_cell_collapses_cube(clustering, cube):
    result = clustering.simplify(cube, grid_resolution=1)

    assert result.vertex_count == 1
    assert result.face_count == 0
    assert np.allclose(result.vertices[0], [0.5, 0.5, 0.5])


def test_resolution_below_one_is_single_cell(clustering, cube):
    result = clustering.simplify(cube, grid_resolution=0)
    assert result.vertex_count == 1


def test_fine_grid_keeps_cube(clustering, cube):
    result = clustering.simplify(cube, grid_resolution=2)

    assert result.vertex_count == 8
    assert result.face_count == 12
    assert result.validate()


def test_flat_grid_clusters_in_plane(clustering, flat_grid):
    result = clustering.simplify(flat_grid, grid_resolution=4)

    # 8 samples per axis fall two per cell
    assert result.vertex_count == 16
    assert np.all(np.isfinite(result.vertices))
    assert np.allclose(result.vertices[:, 2], 0.0)


@pytest.mark.parametrize("resolution", [2, 3, 5, 8])
def test_output_bounded_by_grid(clustering, sphere, resolution):
    result = clustering.simplify(sphere, grid_resolution=resolution)

    assert result.vertex_count <= resolution ** 3
    assert result.vertex_count <= sphere.vertex_count
    assert result.normals.shape == (result.vertex_count, 3)


def test_output_is_deterministic(clustering, sphere):
    first = clustering.simplify(sphere, grid_resolution=5)
    second = VertexClusteringSimplifier().simplify(sphere, grid_resolution=5)

    assert np.array_equal(first.vertices, second.vertices)
    assert np.array_equal(first.faces, second.faces)


def test_two_corner_faces_are_kept():
    mesh = MeshModel([[0.0, 0.0, 0.0], [0.1, 0.0, 0.0], [1.0, 1.0, 1.0]], [[0, 1, 2]])

    result = VertexClusteringSimplifier().simplify(mesh, grid_resolution=2)

    assert result.vertex_count == 2
    assert result.face_count == 1
    assert np.allclose(result.vertices[0], [0.05, 0.0, 0.0])
    assert not result.validate()
    assert result.remove_degenerate_faces().face_count == 0


def test_cleaned_output_is_valid(clustering, sphere):
    result = clustering.simplify(sphere, grid_resolution=4).remove_degenerate_faces()
    assert result.validate()


def test_input_is_not_modified(clustering, sphere):
    vertices = sphere.vertices.copy()
    faces = sphere.faces.copy()

    clustering.simplify(sphere, grid_resolution=3)

    assert np.array_equal(sphere.vertices, vertices)
    assert np.array_equal(sphere.faces, faces)


def test_empty_mesh_is_copied(clustering):
    mesh = MeshModel()

    result = clustering.simplify(mesh)

    assert result is not mesh
    assert result.is_empty


def test_instance_default_resolution(cube):
    result = VertexClusteringSimplifier(grid_resolution=1).simplify(cube)
    assert result.vertex_count == 1


# =============================================================================
# Reduction factor
# =============================================================================

def test_factor_estimates_resolution(clustering, sphere):
    # cbrt(162 * 0.5) = 4.3 -> 4 cells per axis
    result = clustering.simplify_by_factor(sphere, 0.5)
    assert result.vertex_count <= 64


def test_small_factor_uses_minimum_resolution(clustering, cube):
    # cbrt(0.8) < 2, so the grid is 2^3 and every corner keeps its cell
    result = clustering.simplify_by_factor(cube, 0.1)
    assert result.vertex_count == 8
