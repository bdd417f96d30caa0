"""
Edge Collapse Simplifier
========================

Garland-Heckbert simplification: iterative edge contraction driven by
Quadric Error Metrics and an ascending-error priority queue.
"""

import numpy as np
import heapq
from typing import Dict, Set, Tuple, List, Optional
from dataclasses import dataclass, field

from .mesh_model import MeshModel, edge_key, find_boundary_edges, unique_edges
from .qem import QuadricErrorMetrics


@dataclass(order=True)
class EdgeCollapseCandidate:
    """Priority queue entry for edge collapse candidates."""
    error: float
    edge: Tuple[int, int] = field(compare=False)
    optimal_pos: np.ndarray = field(compare=False)
    version: int = field(compare=False)  # For lazy deletion


@dataclass
class _CollapseState:
    """Working data of a single simplify call."""
    vertices: np.ndarray
    faces: List[List[int]]
    quadrics: np.ndarray
    vertex_versions: List[int]
    vertex_faces: Dict[int, Set[int]]
    boundary_edges: Set[Tuple[int, int]]
    deleted_faces: Set[int]
    deleted_vertices: Set[int] = field(default_factory=set)
    queue: List[EdgeCollapseCandidate] = field(default_factory=list)
    history: List[dict] = field(default_factory=list)

    @property
    def active_vertex_count(self) -> int:
        return len(self.vertices) - len(self.deleted_vertices)


class EdgeCollapseSimplifier:
    """
    Mesh simplification by quadric-error edge collapse.

    Implements iterative edge collapse with:
    - Priority queue ordered by collapse error
    - Lazy invalidation through per-vertex version stamps
    - Optional boundary constraint planes
    - Optional manifold (link condition) validation

    The instance only holds settings. Every call builds its own working
    state, so one simplifier may serve several threads at once.
    """

    def __init__(self, preserve_topology: bool = True,
                 preserve_boundaries: bool = False,
                 boundary_weight: float = 10.0,
                 max_error: Optional[float] = None,
                 verbose: bool = False):
        """
        Initialize the edge collapse simplifier.

        Args:
            preserve_topology: Reject collapses that violate the link condition
            preserve_boundaries: Whether to add boundary constraint quadrics
            boundary_weight: Weight for boundary preservation (higher = stronger)
            max_error: Maximum allowed error per collapse (None = no limit)
            verbose: Print progress messages
        """
        self.preserve_topology = preserve_topology
        self.preserve_boundaries = preserve_boundaries
        self.boundary_weight = boundary_weight
        self.max_error = max_error
        self.verbose = verbose
        self.qem = QuadricErrorMetrics(boundary_weight=boundary_weight)

    def simplify(self, mesh: MeshModel, target_vertex_count: int) -> MeshModel:
        """
        Collapse edges until the mesh has at most target_vertex_count vertices.

        Args:
            mesh: Input mesh (not modified)
            target_vertex_count: Desired number of vertices

        Returns:
            Simplified mesh. A copy of the input when the target is not below
            the current vertex count. Fewer collapses happen when no
            contractible edge remains.
        """
        result, _ = self.simplify_with_history(mesh, target_vertex_count)
        return result

    def simplify_with_history(self, mesh: MeshModel,
                              target_vertex_count: int) -> Tuple[MeshModel, List[dict]]:
        """
        Same as simplify, also returning the collapses performed.

        Returns:
            Tuple of (simplified mesh, collapse records). Each record holds
            the collapsed 'edge', its quadric 'error' and the 'optimal_pos'
            the surviving vertex moved to, in collapse order.
        """
        target_vertex_count = max(0, int(target_vertex_count))

        if target_vertex_count >= mesh.vertex_count:
            return mesh.copy(), []

        state = self._initialize(mesh)

        if self.verbose:
            print(f"Starting edge collapse: {mesh.vertex_count} -> {target_vertex_count} vertices")
            print(f"  Boundary edges: {len(state.boundary_edges)}")

        while state.active_vertex_count > target_vertex_count:
            candidate = self._pop_best_candidate(state)

            if candidate is None:
                if self.verbose:
                    print("No more valid edges to collapse")
                break

            if self.max_error is not None and candidate.error > self.max_error:
                if self.verbose:
                    print(f"Reached max error threshold: {candidate.error:.6f} > {self.max_error}")
                break

            self._collapse_edge(state, candidate)

        result = self._build_output_mesh(state, with_normals=mesh.has_normals)

        if self.verbose:
            print(f"Edge collapse complete: {result.vertex_count} vertices, "
                  f"{result.face_count} faces, {len(state.history)} collapses")

        return result, state.history

    def simplify_by_factor(self, mesh: MeshModel, factor: float) -> MeshModel:
        """
        Simplify to floor(vertex_count * factor) vertices.

        The factor is clamped to [0, 1].
        """
        factor = min(1.0, max(0.0, float(factor)))
        return self.simplify(mesh, int(np.floor(mesh.vertex_count * factor)))

    def _initialize(self, mesh: MeshModel) -> _CollapseState:
        """Build the working state and seed the queue with every edge."""
        vertices = mesh.vertices.copy()
        faces = [[int(vi) for vi in f] for f in mesh.faces]

        deleted_faces = set()
        vertex_faces = {i: set() for i in range(len(vertices))}
        for fi, face in enumerate(faces):
            if len(set(face)) < 3:
                deleted_faces.add(fi)
                continue
            for vi in face:
                vertex_faces[vi].add(fi)

        active_faces = [f for fi, f in enumerate(faces) if fi not in deleted_faces]
        boundary_edges = find_boundary_edges(active_faces)

        faces_array = np.array(active_faces, dtype=np.int64).reshape(-1, 3)
        if self.preserve_boundaries and boundary_edges:
            quadrics = self.qem.compute_vertex_quadrics(vertices, faces_array, boundary_edges)
        else:
            quadrics = self.qem.compute_vertex_quadrics(vertices, faces_array)

        state = _CollapseState(
            vertices=vertices,
            faces=faces,
            quadrics=quadrics,
            vertex_versions=[0] * len(vertices),
            vertex_faces=vertex_faces,
            boundary_edges=boundary_edges,
            deleted_faces=deleted_faces,
        )

        for edge in unique_edges(active_faces):
            self._add_edge_candidate(state, edge)

        return state

    def _add_edge_candidate(self, state: _CollapseState, edge: Tuple[int, int]):
        """Add or refresh an edge collapse candidate."""
        v1_idx, v2_idx = edge

        if v1_idx in state.deleted_vertices or v2_idx in state.deleted_vertices:
            return

        optimal_pos, error = self.qem.compute_edge_collapse_error(
            state.quadrics[v1_idx], state.quadrics[v2_idx],
            state.vertices[v1_idx], state.vertices[v2_idx]
        )

        heapq.heappush(state.queue, EdgeCollapseCandidate(
            error=error,
            edge=edge,
            optimal_pos=optimal_pos,
            version=state.vertex_versions[v1_idx] + state.vertex_versions[v2_idx]
        ))

    def _pop_best_candidate(self, state: _CollapseState) -> Optional[EdgeCollapseCandidate]:
        """Get the cheapest edge collapse that is still current and valid."""
        while state.queue:
            candidate = heapq.heappop(state.queue)
            v1_idx, v2_idx = candidate.edge

            if v1_idx in state.deleted_vertices or v2_idx in state.deleted_vertices:
                continue

            # Stale entry: an endpoint moved after this candidate was queued
            current_version = state.vertex_versions[v1_idx] + state.vertex_versions[v2_idx]
            if candidate.version != current_version:
                continue

            if not self._edge_exists(state, candidate.edge):
                continue

            if self.preserve_topology and not self._is_collapse_valid(state, candidate.edge):
                continue

            return candidate

        return None

    def _edge_exists(self, state: _CollapseState, edge: Tuple[int, int]) -> bool:
        """True if some live face still contains both endpoints."""
        v1_idx, v2_idx = edge
        shared = state.vertex_faces[v1_idx] & state.vertex_faces[v2_idx]
        return any(fi not in state.deleted_faces for fi in shared)

    def _is_collapse_valid(self, state: _CollapseState, edge: Tuple[int, int]) -> bool:
        """
        Check if an edge collapse keeps the surface manifold.

        Uses the link condition: an interior edge needs exactly two common
        neighbours (the apexes of its two faces), a boundary edge at most one.
        """
        v1_idx, v2_idx = edge

        common = self._get_vertex_neighbors(state, v1_idx) & self._get_vertex_neighbors(state, v2_idx)

        if edge in state.boundary_edges:
            return len(common) <= 1
        return len(common) == 2

    def _get_vertex_neighbors(self, state: _CollapseState, v_idx: int) -> Set[int]:
        """Get all vertices connected to v_idx by an edge."""
        neighbors = set()

        for fi in state.vertex_faces.get(v_idx, ()):
            if fi in state.deleted_faces:
                continue
            for vi in state.faces[fi]:
                if vi != v_idx and vi not in state.deleted_vertices:
                    neighbors.add(vi)

        return neighbors

    def _collapse_edge(self, state: _CollapseState, candidate: EdgeCollapseCandidate):
        """
        Perform an edge collapse.

        v1 is kept and moved to the optimal position, v2 is deleted.
        All faces referencing v2 are redirected to v1 and faces that become
        degenerate are discarded.
        """
        v1_idx, v2_idx = candidate.edge
        optimal_pos = candidate.optimal_pos

        state.vertices[v1_idx] = optimal_pos
        state.quadrics[v1_idx] = state.quadrics[v1_idx] + state.quadrics[v2_idx]
        state.vertex_versions[v1_idx] += 1
        state.deleted_vertices.add(v2_idx)

        for fi in state.vertex_faces[v2_idx]:
            if fi in state.deleted_faces:
                continue
            face = state.faces[fi]
            for i in range(3):
                if face[i] == v2_idx:
                    face[i] = v1_idx
            if len(set(face)) < 3:
                state.deleted_faces.add(fi)
            else:
                state.vertex_faces[v1_idx].add(fi)

        state.vertex_faces[v2_idx] = set()
        state.vertex_faces[v1_idx] = {
            fi for fi in state.vertex_faces[v1_idx] if fi not in state.deleted_faces
        }

        self._update_boundary_edges(state, candidate.edge)

        # Bumping v1's version above invalidates every queued edge touching
        # it; re-score them against the merged quadric.
        for neighbor in self._get_vertex_neighbors(state, v1_idx):
            self._add_edge_candidate(state, edge_key(v1_idx, neighbor))

        state.history.append({
            'edge': candidate.edge,
            'error': candidate.error,
            'optimal_pos': np.array(optimal_pos, dtype=np.float64)
        })

    def _update_boundary_edges(self, state: _CollapseState, collapsed_edge: Tuple[int, int]):
        """Update boundary edge set around the surviving vertex."""
        v1_idx, v2_idx = collapsed_edge

        state.boundary_edges = {
            e for e in state.boundary_edges
            if v1_idx not in e and v2_idx not in e
        }

        edge_count = {}
        for fi in state.vertex_faces[v1_idx]:
            face = state.faces[fi]
            for i in range(3):
                edge = edge_key(face[i], face[(i + 1) % 3])
                if v1_idx in edge:
                    edge_count[edge] = edge_count.get(edge, 0) + 1

        state.boundary_edges.update(edge for edge, count in edge_count.items() if count == 1)

    def _build_output_mesh(self, state: _CollapseState, with_normals: bool) -> MeshModel:
        """Build the compacted output mesh from current state."""
        active_vertices = []
        vertex_remap = {}

        for i, v in enumerate(state.vertices):
            if i not in state.deleted_vertices:
                vertex_remap[i] = len(active_vertices)
                active_vertices.append(v)

        active_faces = []
        for fi, face in enumerate(state.faces):
            if fi in state.deleted_faces:
                continue
            new_face = [vertex_remap[vi] for vi in face]
            if len(set(new_face)) == 3:
                active_faces.append(new_face)

        result = MeshModel(np.array(active_vertices).reshape(-1, 3),
                           np.array(active_faces, dtype=np.int64).reshape(-1, 3))
        if with_normals:
            result.compute_normals()
        return result

    def get_vertex_errors(self, mesh: MeshModel) -> np.ndarray:
        """
        Compute the quadric error at each vertex of a mesh.

        Useful for judging where a simplified mesh deviates from its own
        face planes.
        """
        quadrics = self.qem.compute_vertex_quadrics(mesh.vertices, mesh.faces)

        errors = np.zeros(mesh.vertex_count)
        for i, (v, Q) in enumerate(zip(mesh.vertices, quadrics)):
            errors[i] = self.qem.compute_error(Q, v)

        return errors
