"""
Vertex Decimation Simplifier
============================

Schroeder-Zarge-Lorensen simplification: vertices lying close to the
average plane of their neighbourhood are removed one at a time and the
resulting hole is closed with a triangle fan.

Reference: "Decimation of Triangle Meshes" by William J. Schroeder,
Jonathan A. Zarge and William E. Lorensen (SIGGRAPH 1992)
"""

import numpy as np
from typing import Dict, List, Optional, Tuple
from dataclasses import dataclass, field

from .mesh_model import MeshModel, count_edge_faces, edge_key


@dataclass
class VertexInfo:
    """Classification of one vertex for the current decimation pass."""
    index: int
    is_feature_vertex: bool = False
    is_boundary_vertex: bool = False
    distance_error: float = 0.0
    neighbor_vertices: List[int] = field(default_factory=list)  # ordered one-ring
    adjacent_faces: List[int] = field(default_factory=list)


class VertexDecimationSimplifier:
    """
    Mesh simplification by vertex removal and fan retriangulation.

    Every outer iteration classifies all vertices from scratch, then removes
    the lowest-error vertex that passes the removal criteria:

    - not a feature vertex (incident faces bend more than feature_angle)
    - not a boundary vertex, unless its error is below max_distance / 2
    - distance to the average plane below max_distance
    - no triangle of the prospective fan exceeds aspect_ratio

    Decimation stops early, short of the target, once a pass finds no
    removable vertex. Classification is linear in the face count and runs
    once per removal, so large meshes are slow.
    """

    def __init__(self, feature_angle: float = 60.0,
                 aspect_ratio: float = 10.0,
                 max_distance: float = 0.1,
                 verbose: bool = False):
        """
        Initialize the vertex decimation simplifier.

        Args:
            feature_angle: Angle in degrees between incident face normals
                           above which a vertex is treated as a feature
            aspect_ratio: Maximum longest/shortest edge ratio accepted for
                          retriangulated faces
            max_distance: Maximum distance from a vertex to its average plane
            verbose: Print progress messages
        """
        self.feature_angle = feature_angle
        self.aspect_ratio = aspect_ratio
        self.max_distance = max_distance
        self.verbose = verbose

    def set_feature_angle(self, angle: float):
        self.feature_angle = angle

    def set_aspect_ratio(self, ratio: float):
        self.aspect_ratio = ratio

    def set_max_distance(self, distance: float):
        self.max_distance = distance

    def simplify(self, mesh: MeshModel, target_vertex_count: int) -> MeshModel:
        """
        Remove vertices until at most target_vertex_count remain.

        Args:
            mesh: Input mesh (not modified)
            target_vertex_count: Desired number of vertices

        Returns:
            Simplified mesh. A copy of the input when the target is not below
            the current vertex count.
        """
        target_vertex_count = max(0, int(target_vertex_count))

        if target_vertex_count >= mesh.vertex_count:
            return mesh.copy()

        working = mesh.copy()
        removed_total = 0

        if self.verbose:
            print(f"Starting vertex decimation: {mesh.vertex_count} -> "
                  f"{target_vertex_count} vertices")

        while working.vertex_count > target_vertex_count:
            vertex_info = self.classify_vertices(working)

            candidates = sorted(
                (info for info in vertex_info if info.adjacent_faces),
                key=lambda info: (info.distance_error, info.index)
            )

            removed = False
            for info in candidates:
                if self.can_remove_vertex(info, working.vertices):
                    self._remove_vertex(working, info)
                    removed = True
                    removed_total += 1
                    break

            if not removed:
                if self.verbose:
                    print("No removable vertex left")
                break

        if working.has_normals:
            working.compute_normals()

        if self.verbose:
            print(f"Vertex decimation complete: {working.vertex_count} vertices, "
                  f"{working.face_count} faces, {removed_total} removals")

        return working

    def simplify_by_factor(self, mesh: MeshModel, factor: float) -> MeshModel:
        """
        Simplify to floor(vertex_count * factor) vertices.

        The factor is clamped to [0, 1].
        """
        factor = min(1.0, max(0.0, float(factor)))
        return self.simplify(mesh, int(np.floor(mesh.vertex_count * factor)))

    def classify_vertices(self, mesh: MeshModel) -> List[VertexInfo]:
        """
        Classify every vertex of a mesh.

        Args:
            mesh: Mesh to classify

        Returns:
            One VertexInfo per vertex, in index order. Vertices without
            incident faces get an empty ring and no adjacent faces.
        """
        face_normals = mesh.compute_face_normals(normalize=True)
        vertex_faces = self._build_vertex_faces(mesh.faces, mesh.vertex_count)
        edge_count = count_edge_faces(mesh.faces)

        vertex_info = []
        for vi in range(mesh.vertex_count):
            info = VertexInfo(index=vi, adjacent_faces=vertex_faces[vi])
            vertex_info.append(info)

            if not info.adjacent_faces:
                continue

            info.neighbor_vertices = self._order_one_ring(mesh.faces, vi, info.adjacent_faces)
            info.is_boundary_vertex = self._is_boundary_vertex(mesh.faces, vi,
                                                               info.adjacent_faces, edge_count)
            info.is_feature_vertex = self._is_feature_vertex(face_normals[info.adjacent_faces])
            info.distance_error = self._compute_distance_error(
                mesh.vertices[vi],
                face_normals[info.adjacent_faces],
                mesh.vertices[info.neighbor_vertices[0]]
            )

        return vertex_info

    def can_remove_vertex(self, info: VertexInfo, vertices: np.ndarray) -> bool:
        """
        Check the removal criteria for a classified vertex.

        Args:
            info: Classification of the vertex
            vertices: Current vertex positions

        Returns:
            True if the vertex may be removed and its hole fan-triangulated
        """
        if info.is_feature_vertex:
            return False

        if info.is_boundary_vertex and info.distance_error >= 0.5 * self.max_distance:
            return False

        if info.distance_error >= self.max_distance:
            return False

        ring = info.neighbor_vertices
        if len(set(ring)) < 3:
            return False

        for triangle in self.fan_triangles(ring):
            if self.compute_aspect_ratio(vertices, triangle) > self.aspect_ratio:
                return False

        return True

    def fan_triangles(self, ring: List[int]) -> List[Tuple[int, int, int]]:
        """Fan triangulation of a ring anchored at its first vertex."""
        anchor = ring[0]
        return [(anchor, ring[i], ring[i + 1]) for i in range(1, len(ring) - 1)]

    def compute_aspect_ratio(self, vertices: np.ndarray,
                             triangle: Tuple[int, int, int]) -> float:
        """Longest over shortest edge length; infinite for a collapsed edge."""
        p0, p1, p2 = (vertices[i] for i in triangle)
        lengths = (np.linalg.norm(p1 - p0), np.linalg.norm(p2 - p1), np.linalg.norm(p0 - p2))
        shortest = min(lengths)
        if shortest < 1e-12:
            return float('inf')
        return float(max(lengths) / shortest)

    def _build_vertex_faces(self, faces: np.ndarray, n_vertices: int) -> List[List[int]]:
        """Vertex -> incident face index, built once per pass."""
        vertex_faces = [[] for _ in range(n_vertices)]
        for fi, face in enumerate(faces):
            for vi in set(int(v) for v in face):
                vertex_faces[vi].append(fi)
        return vertex_faces

    def _is_boundary_vertex(self, faces: np.ndarray, vertex_index: int,
                            adjacent_faces: List[int],
                            edge_count: Dict[Tuple[int, int], int]) -> bool:
        """True if an incident edge is used by exactly one face."""
        for fi in adjacent_faces:
            for vi in faces[fi]:
                vi = int(vi)
                if vi == vertex_index:
                    continue
                if edge_count.get(edge_key(vertex_index, vi), 0) == 1:
                    return True
        return False

    def _is_feature_vertex(self, normals: np.ndarray) -> bool:
        """
        True if any two incident faces differ by more than the feature angle.

        Cosines are compared directly against cos(feature_angle).
        Degenerate faces (zero normals) are ignored.
        """
        normals = normals[np.linalg.norm(normals, axis=1) > 0.0]
        if len(normals) < 2:
            return False

        cos_threshold = np.cos(np.radians(self.feature_angle))
        cosines = np.clip(normals @ normals.T, -1.0, 1.0)
        return bool(np.any(cosines < cos_threshold))

    def _compute_distance_error(self, position: np.ndarray, normals: np.ndarray,
                                plane_point: np.ndarray) -> float:
        """
        Distance from a vertex to the average plane of its faces.

        The plane normal is the normalized sum of the incident face normals
        and passes through plane_point. Opposing normals that cancel out
        leave the plane undefined; the error is then infinite.
        """
        normal = normals.sum(axis=0)
        length = np.linalg.norm(normal)
        if length < 1e-12:
            return float('inf')
        normal = normal / length
        return float(abs(np.dot(normal, position - plane_point)))

    def _order_one_ring(self, faces: np.ndarray, vertex_index: int,
                        adjacent_faces: List[int]) -> List[int]:
        """
        Order the one-ring of a vertex around it.

        Each incident face (v, x, y) contributes the directed edge x -> y.
        Chaining those edges walks the ring in winding order, starting at
        the open end for boundary vertices. Fans the walk cannot follow
        (non-manifold or multiple open ends) fall back to face order.
        Consecutive duplicate entries are collapsed in both cases.
        """
        opposite = []
        for fi in adjacent_faces:
            face = [int(v) for v in faces[fi]]
            if face.count(vertex_index) != 1:
                continue
            k = face.index(vertex_index)
            opposite.append((face[(k + 1) % 3], face[(k + 2) % 3]))

        ring = self._walk_ring(opposite)
        if ring is None:
            ring = [v for edge in opposite for v in edge]

        return self._collapse_duplicates(ring)

    def _walk_ring(self, opposite: List[Tuple[int, int]]) -> Optional[List[int]]:
        if not opposite:
            return None

        successor = {}
        for x, y in opposite:
            if x in successor:
                return None
            successor[x] = y

        targets = set(successor.values())
        if len(targets) != len(successor):
            return None

        starts = [x for x, _ in opposite if x not in targets]
        if len(starts) > 1:
            return None
        start = starts[0] if starts else opposite[0][0]

        ring = [start]
        current = start
        while current in successor:
            current = successor[current]
            if current == start:
                break
            ring.append(current)

        expected = len(opposite) if not starts else len(opposite) + 1
        if len(ring) != expected:
            return None
        return ring

    def _collapse_duplicates(self, ring: List[int]) -> List[int]:
        collapsed = []
        for v in ring:
            if not collapsed or collapsed[-1] != v:
                collapsed.append(v)
        if len(collapsed) > 1 and collapsed[-1] == collapsed[0]:
            collapsed.pop()
        return collapsed

    def _remove_vertex(self, mesh: MeshModel, info: VertexInfo):
        """
        Remove a vertex from the working mesh in place.

        Deletes every incident face, shifts higher vertex indices down by
        one and closes the hole with a fan over the one-ring.
        """
        vertex_index = info.index

        keep = ~np.any(mesh.faces == vertex_index, axis=1)
        faces = mesh.faces[keep]
        faces[faces > vertex_index] -= 1

        mesh.vertices = np.delete(mesh.vertices, vertex_index, axis=0)
        if mesh.has_normals:
            mesh.normals = np.delete(mesh.normals, vertex_index, axis=0)
        mesh.faces = faces

        ring = [v - 1 if v > vertex_index else v for v in info.neighbor_vertices]
        self._retriangulate_hole(mesh, ring)

    def _retriangulate_hole(self, mesh: MeshModel, boundary_vertices: List[int]):
        """Append a fan over the hole boundary to the mesh faces."""
        fan = self.fan_triangles(self._collapse_duplicates(boundary_vertices))
        if fan:
            mesh.faces = np.vstack([mesh.faces, np.array(fan, dtype=np.int64)])
