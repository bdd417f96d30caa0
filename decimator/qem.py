"""
Quadric Error Metrics (QEM)
===========================

Quadric algebra for edge-collapse simplification: plane quadrics,
per-vertex accumulation and optimal collapse placement.

A quadric is a symmetric 4x4 matrix stored as its 10 independent
coefficients in upper-triangular row order:

    [a², ab, ac, ad, b², bc, bd, c², cd, d²]

Based on: "Surface Simplification Using Quadric Error Metrics"
by Michael Garland and Paul S. Heckbert (SIGGRAPH 1997)
"""

import numpy as np
from typing import Optional, Set, Tuple
import warnings


# Coefficient slot of each entry of the full 4x4 matrix
_MATRIX_SLOTS = np.array([
    [0, 1, 2, 3],
    [1, 4, 5, 6],
    [2, 5, 7, 8],
    [3, 6, 8, 9],
])

_UPPER_ROWS, _UPPER_COLS = np.triu_indices(4)

QUADRIC_SIZE = 10


class QuadricErrorMetrics:
    """
    Implements Quadric Error Metrics for mesh simplification.

    The fundamental quadric Q for a plane ax + by + cz + d = 0 is
    Q = p * p^T where p = [a, b, c, d]^T. The error of a position
    v = [x, y, z, 1]^T is v^T * Q * v, the sum of squared distances to
    every plane folded into Q. Collapsing an edge (v1, v2) uses Q1 + Q2.
    """

    def __init__(self, boundary_weight: float = 10.0,
                 condition_limit: float = 1e10):
        """
        Initialize QEM calculator.

        Args:
            boundary_weight: Weight multiplier for boundary edge quadrics.
                            Higher values preserve boundaries better.
            condition_limit: Largest condition number accepted when solving
                             for the optimal collapse position
        """
        self.boundary_weight = boundary_weight
        self.condition_limit = condition_limit

    def compute_face_plane(self, v0: np.ndarray, v1: np.ndarray, v2: np.ndarray) -> np.ndarray:
        """
        Compute the plane equation coefficients for a triangle face.

        The plane equation is: ax + by + cz + d = 0
        where [a, b, c] is the unit normal and d = -dot(normal, v0)

        Args:
            v0, v1, v2: Triangle vertices as 3D points

        Returns:
            Plane coefficients [a, b, c, d]; zeros for a degenerate triangle
        """
        normal = np.cross(v1 - v0, v2 - v0)
        norm_length = np.linalg.norm(normal)

        if norm_length < 1e-12:
            return np.zeros(4)

        normal = normal / norm_length
        d = -np.dot(normal, v0)

        return np.array([normal[0], normal[1], normal[2], d])

    def compute_face_planes(self, vertices: np.ndarray, faces: np.ndarray) -> np.ndarray:
        """
        Compute plane coefficients for every face at once.

        Returns:
            (M, 4) array of planes, zero rows for degenerate faces
        """
        if len(faces) == 0:
            return np.zeros((0, 4))

        v0 = vertices[faces[:, 0]]
        v1 = vertices[faces[:, 1]]
        v2 = vertices[faces[:, 2]]

        normals = np.cross(v1 - v0, v2 - v0)
        lengths = np.linalg.norm(normals, axis=1)
        valid = lengths >= 1e-12

        planes = np.zeros((len(faces), 4))
        planes[valid, :3] = normals[valid] / lengths[valid, None]
        planes[valid, 3] = -np.einsum('ij,ij->i', planes[valid, :3], v0[valid])

        return planes

    def compute_fundamental_quadric(self, plane: np.ndarray) -> np.ndarray:
        """
        Compute the packed fundamental error quadric for a plane.

        Args:
            plane: Plane coefficients [a, b, c, d]

        Returns:
            (10,) packed coefficients of p * p^T
        """
        return np.outer(plane, plane)[_UPPER_ROWS, _UPPER_COLS]

    def compute_vertex_quadrics(self, vertices: np.ndarray, faces: np.ndarray,
                                boundary_edges: Optional[Set[Tuple[int, int]]] = None) -> np.ndarray:
        """
        Compute initial error quadrics for all vertices.

        For each vertex, the quadric is the sum of fundamental quadrics
        of all faces incident to that vertex.

        Args:
            vertices: (N, 3) array of vertex positions
            faces: (M, 3) array of face indices
            boundary_edges: Optional set of boundary edge tuples for weighting

        Returns:
            (N, 10) array of packed vertex quadrics
        """
        quadrics = np.zeros((len(vertices), QUADRIC_SIZE))
        if len(faces) == 0:
            return quadrics

        planes = self.compute_face_planes(vertices, faces)
        face_quadrics = (planes[:, _UPPER_ROWS] * planes[:, _UPPER_COLS])

        for corner in range(3):
            np.add.at(quadrics, faces[:, corner], face_quadrics)

        if boundary_edges:
            self._add_boundary_quadrics(vertices, faces, planes, boundary_edges, quadrics)

        return quadrics

    def _add_boundary_quadrics(self, vertices: np.ndarray, faces: np.ndarray,
                               planes: np.ndarray, boundary_edges: Set[Tuple[int, int]],
                               quadrics: np.ndarray):
        """
        Add weighted quadrics for boundary edges to preserve mesh boundaries.

        For each boundary edge, a plane perpendicular to the adjacent face
        and containing the edge is added to both endpoints.
        """
        edge_to_face = {}
        for fi, face in enumerate(faces):
            for i in range(3):
                a, b = int(face[i]), int(face[(i + 1) % 3])
                edge_to_face.setdefault((min(a, b), max(a, b)), fi)

        for v0_idx, v1_idx in boundary_edges:
            v0, v1 = vertices[v0_idx], vertices[v1_idx]

            fi = edge_to_face.get((min(v0_idx, v1_idx), max(v0_idx, v1_idx)))
            if fi is None or not np.any(planes[fi, :3]):
                continue
            face_normal = planes[fi, :3]

            edge_vec = v1 - v0
            edge_len = np.linalg.norm(edge_vec)
            if edge_len < 1e-12:
                continue

            plane_normal = np.cross(edge_vec / edge_len, face_normal)
            norm_len = np.linalg.norm(plane_normal)
            if norm_len < 1e-12:
                continue
            plane_normal = plane_normal / norm_len

            d = -np.dot(plane_normal, (v0 + v1) / 2)
            plane = np.array([plane_normal[0], plane_normal[1], plane_normal[2], d])
            Q = self.compute_fundamental_quadric(plane) * self.boundary_weight

            quadrics[v0_idx] += Q
            quadrics[v1_idx] += Q

    def to_matrix(self, Q: np.ndarray) -> np.ndarray:
        """Expand packed coefficients into the full symmetric 4x4 matrix."""
        return np.asarray(Q)[_MATRIX_SLOTS]

    def from_matrix(self, matrix: np.ndarray) -> np.ndarray:
        """Pack a symmetric 4x4 matrix into its 10 coefficients."""
        return np.asarray(matrix)[_UPPER_ROWS, _UPPER_COLS]

    def compute_error(self, Q: np.ndarray, v: np.ndarray) -> float:
        """
        Compute the quadric error for a vertex position.

        error = v^T * Q * v where v is [x, y, z, 1]

        Args:
            Q: (10,) packed quadric
            v: 3D vertex position

        Returns:
            Quadric error value, clamped to be non-negative
        """
        x, y, z = float(v[0]), float(v[1]), float(v[2])
        error = (Q[0] * x * x + 2.0 * Q[1] * x * y + 2.0 * Q[2] * x * z + 2.0 * Q[3] * x
                 + Q[4] * y * y + 2.0 * Q[5] * y * z + 2.0 * Q[6] * y
                 + Q[7] * z * z + 2.0 * Q[8] * z
                 + Q[9])
        return max(0.0, float(error))

    def compute_optimal_position(self, Q: np.ndarray, v1: np.ndarray,
                                 v2: np.ndarray) -> Tuple[np.ndarray, float]:
        """
        Compute the optimal position for an edge collapse.

        Tries to find position that minimizes v^T * Q * v by solving:
        [Q[0:3, 0:3]  Q[0:3, 3] ] [x]   [0]
        [    0    0    0      1 ] [1] = [1]

        If the matrix is singular or ill-conditioned, falls back to the
        cheapest of the two endpoints and the midpoint.

        Args:
            Q: Combined (10,) packed quadric
            v1, v2: Edge endpoint positions

        Returns:
            Tuple of (optimal_position, error)
        """
        A = self.to_matrix(Q).astype(np.float64)
        A[3, :] = [0, 0, 0, 1]
        b = np.array([0.0, 0.0, 0.0, 1.0])

        try:
            with warnings.catch_warnings():
                warnings.simplefilter("ignore")
                cond = np.linalg.cond(A)
                if np.isfinite(cond) and cond < self.condition_limit:
                    v_opt = np.linalg.solve(A, b)[:3]
                    return v_opt, self.compute_error(Q, v_opt)
        except np.linalg.LinAlgError:
            pass

        candidates = [v1, v2, (v1 + v2) / 2]
        best_pos = v1
        best_error = float('inf')

        for pos in candidates:
            error = self.compute_error(Q, pos)
            if error < best_error:
                best_error = error
                best_pos = pos

        return np.array(best_pos, dtype=np.float64), best_error

    def compute_edge_collapse_error(self, Q1: np.ndarray, Q2: np.ndarray,
                                    v1: np.ndarray, v2: np.ndarray) -> Tuple[np.ndarray, float]:
        """
        Compute the error and optimal position for collapsing edge (v1, v2).

        Args:
            Q1, Q2: Packed quadrics of the two edge vertices
            v1, v2: Positions of the two edge vertices

        Returns:
            Tuple of (optimal_position, error)
        """
        return self.compute_optimal_position(Q1 + Q2, v1, v2)

