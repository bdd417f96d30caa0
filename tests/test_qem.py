"""
Quadric Error Metric Tests
==========================

Packed quadric algebra, error evaluation and optimal placement.

Run: python -m pytest tests/test_qem.py -v
"""

import numpy as np
import pytest

from decimator.qem import QuadricErrorMetrics


@pytest.fixture
def qem():
    return QuadricErrorMetrics()


def plane_quadric(qem, normal, d):
    return qem.compute_fundamental_quadric(np.array([*normal, d], dtype=np.float64))


def test_fundamental_quadric_has_ten_coefficients(qem):
    plane = np.array([0.0, 0.6, 0.8, -2.0])

    Q = qem.compute_fundamental_quadric(plane)

    assert Q.shape == (10,)
    assert np.allclose(qem.to_matrix(Q), np.outer(plane, plane))


def test_matrix_packing_is_symmetric(qem):
    Q = np.arange(10, dtype=np.float64)

    M = qem.to_matrix(Q)

    assert np.array_equal(M, M.T)
    assert np.array_equal(qem.from_matrix(M), Q)


def test_face_plane_unit_normal(qem):
    plane = qem.compute_face_plane(np.array([0.0, 0.0, 2.0]),
                                   np.array([1.0, 0.0, 2.0]),
                                   np.array([0.0, 1.0, 2.0]))

    assert np.allclose(plane, [0.0, 0.0, 1.0, -2.0])


def test_degenerate_face_has_zero_plane(qem):
    p = np.array([1.0, 1.0, 1.0])
    assert np.allclose(qem.compute_face_plane(p, p, p), 0.0)


def test_error_is_squared_plane_distance(qem):
    Q = plane_quadric(qem, (0.0, 0.0, 1.0), 0.0)

    assert qem.compute_error(Q, np.array([3.0, -1.0, 2.0])) == pytest.approx(4.0)
    assert qem.compute_error(Q, np.array([3.0, -1.0, 0.0])) == pytest.approx(0.0)


def test_error_matches_matrix_form(qem):
    rng = np.random.default_rng(7)
    Q = np.zeros(10)
    for _ in range(4):
        n = rng.normal(size=3)
        n /= np.linalg.norm(n)
        Q += plane_quadric(qem, n, rng.normal())
    v = rng.normal(size=3)

    v_homo = np.append(v, 1.0)
    expected = v_homo @ qem.to_matrix(Q) @ v_homo

    assert qem.compute_error(Q, v) == pytest.approx(expected)


def test_optimal_position_solves_three_planes(qem):
    Q = (plane_quadric(qem, (1.0, 0.0, 0.0), -1.0)
         + plane_quadric(qem, (0.0, 1.0, 0.0), -2.0)
         + plane_quadric(qem, (0.0, 0.0, 1.0), -3.0))

    pos, error = qem.compute_optimal_position(Q, np.zeros(3), np.ones(3))

    assert np.allclose(pos, [1.0, 2.0, 3.0])
    assert error == pytest.approx(0.0, abs=1e-12)


def test_singular_system_falls_back_to_cheapest_candidate(qem):
    # A single plane leaves the system singular
    Q = plane_quadric(qem, (0.0, 0.0, 1.0), 0.0)
    v1 = np.array([0.0, 0.0, 1.0])
    v2 = np.array([0.0, 0.0, 3.0])

    pos, error = qem.compute_optimal_position(Q, v1, v2)

    assert np.allclose(pos, v1)
    assert error == pytest.approx(1.0)


def test_singular_system_can_pick_midpoint(qem):
    Q = plane_quadric(qem, (0.0, 0.0, 1.0), 0.0)
    v1 = np.array([0.0, 0.0, 1.0])
    v2 = np.array([0.0, 0.0, -1.0])

    pos, error = qem.compute_optimal_position(Q, v1, v2)

    assert np.allclose(pos, [0.0, 0.0, 0.0])
    assert error == pytest.approx(0.0)


def test_edge_collapse_error_uses_summed_quadric(qem):
    Q1 = plane_quadric(qem, (1.0, 0.0, 0.0), 0.0)
    Q2 = plane_quadric(qem, (1.0, 0.0, 0.0), -2.0)
    v1 = np.array([0.0, 0.0, 0.0])
    v2 = np.array([2.0, 0.0, 0.0])

    pos, error = qem.compute_edge_collapse_error(Q1, Q2, v1, v2)

    # Parallel planes x=0 and x=2: the midpoint is one unit from each
    assert np.allclose(pos, [1.0, 0.0, 0.0])
    assert error == pytest.approx(2.0)


def test_vertex_quadrics_vanish_on_flat_grid(qem, flat_grid):
    quadrics = qem.compute_vertex_quadrics(flat_grid.vertices, flat_grid.faces)

    assert quadrics.shape == (flat_grid.vertex_count, 10)
    for Q, v in zip(quadrics, flat_grid.vertices):
        assert qem.compute_error(Q, v) == pytest.approx(0.0, abs=1e-12)


def test_vertex_quadric_counts_each_incident_face(qem, hexagon_fan):
    quadrics = qem.compute_vertex_quadrics(hexagon_fan.vertices, hexagon_fan.faces)

    # Centre touches six faces in z=0, so its c² coefficient is 6
    assert quadrics[0][7] == pytest.approx(6.0)
    assert quadrics[1][7] == pytest.approx(2.0)


def test_boundary_quadrics_add_constraint_planes(qem, hexagon_fan):
    boundary = {(1, 2)}
    plain = qem.compute_vertex_quadrics(hexagon_fan.vertices, hexagon_fan.faces)
    weighted = qem.compute_vertex_quadrics(hexagon_fan.vertices, hexagon_fan.faces, boundary)

    # Moving vertex 1 off the boundary line now costs something
    off_line = hexagon_fan.vertices[1] * 0.5
    assert qem.compute_error(plain[1], off_line) == pytest.approx(0.0, abs=1e-12)
    assert qem.compute_error(weighted[1], off_line) > 0.0
    assert np.allclose(weighted[3], plain[3])
