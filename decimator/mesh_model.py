"""
Mesh Model
==========

Indexed triangle mesh value type shared by all simplification algorithms,
plus conversion to and from flat renderable buffers and trimesh objects.
"""

import numpy as np
from typing import Iterable, List, Optional, Set, Tuple
import trimesh


def edge_key(a: int, b: int) -> Tuple[int, int]:
    """Return the undirected edge (a, b) with the smaller index first."""
    a, b = int(a), int(b)
    return (a, b) if a < b else (b, a)


def unique_edges(faces: Iterable) -> List[Tuple[int, int]]:
    """
    Enumerate the undirected edges of a face list.

    Edges are returned in first-seen order so repeated calls on the same
    faces produce the same sequence.
    """
    seen = set()
    edges = []
    for face in faces:
        for i in range(3):
            edge = edge_key(face[i], face[(i + 1) % 3])
            if edge not in seen:
                seen.add(edge)
                edges.append(edge)
    return edges


def count_edge_faces(faces: Iterable) -> dict:
    """Map every undirected edge to the number of faces referencing it."""
    edge_count = {}
    for face in faces:
        for i in range(3):
            edge = edge_key(face[i], face[(i + 1) % 3])
            edge_count[edge] = edge_count.get(edge, 0) + 1
    return edge_count


def find_boundary_edges(faces: Iterable) -> Set[Tuple[int, int]]:
    """Find all boundary edges (edges with only one adjacent face)."""
    return {edge for edge, count in count_edge_faces(faces).items() if count == 1}


class MeshModel:
    """
    Canonical triangle mesh used by the simplifiers.

    Holds an (N, 3) array of vertex positions, an (M, 3) array of vertex
    indices and an optional (N, 3) array of vertex normals (empty when the
    mesh carries no normals).

    Meshes are treated as values: simplifiers read them and return new
    instances. The arrays are copied on construction.
    """

    def __init__(self, vertices=None, faces=None, normals=None):
        """
        Initialize a mesh.

        Args:
            vertices: (N, 3) vertex positions
            faces: (M, 3) triangle vertex indices
            normals: Optional (N, 3) vertex normals
        """
        self.vertices = _as_array(vertices, np.float64)
        self.faces = _as_array(faces, np.int64)
        self.normals = _as_array(normals, np.float64)

    @property
    def vertex_count(self) -> int:
        """Number of vertex rows, referenced or not."""
        return len(self.vertices)

    @property
    def face_count(self) -> int:
        """Number of triangles, degenerate ones included."""
        return len(self.faces)

    @property
    def is_empty(self) -> bool:
        """True when the mesh has no vertices or no faces."""
        return self.vertex_count == 0 or self.face_count == 0

    @property
    def has_normals(self) -> bool:
        """True when per-vertex normals are stored."""
        return len(self.normals) > 0

    def copy(self) -> "MeshModel":
        return MeshModel(self.vertices, self.faces, self.normals)

    @classmethod
    def from_buffers(cls, positions, indices, normals=None) -> "MeshModel":
        """
        Build a mesh from flat renderable buffers.

        Args:
            positions: Flat (3N,) or (N, 3) vertex positions
            indices: Flat index list, three entries per triangle
            normals: Optional flat or (N, 3) vertex normals

        Returns:
            New mesh. An index count that is not a multiple of 3 yields an
            empty mesh.
        """
        indices = np.asarray(indices, dtype=np.int64).ravel()
        if len(indices) % 3 != 0:
            return cls()

        vertices = np.asarray(positions, dtype=np.float64).reshape(-1, 3)
        faces = indices.reshape(-1, 3)

        if normals is not None:
            normals = np.asarray(normals, dtype=np.float64).reshape(-1, 3)

        return cls(vertices, faces, normals)

    def to_buffers(self) -> Tuple[np.ndarray, np.ndarray, Optional[np.ndarray]]:
        """
        Export the mesh as flat renderable buffers.

        Returns:
            Tuple of (float32 positions, uint32 indices, float32 normals or
            None when the mesh has no normals)
        """
        positions = self.vertices.astype(np.float32).ravel()
        indices = self.faces.astype(np.uint32).ravel()
        normals = self.normals.astype(np.float32).ravel() if self.has_normals else None
        return positions, indices, normals

    @classmethod
    def from_trimesh(cls, mesh: trimesh.Trimesh) -> "MeshModel":
        """Wrap the vertices and faces of a trimesh object."""
        return cls(np.asarray(mesh.vertices), np.asarray(mesh.faces))

    def to_trimesh(self) -> trimesh.Trimesh:
        """
        Convert to a trimesh object.

        Processing is disabled so vertex order and degenerate faces are
        kept exactly as stored.
        """
        return trimesh.Trimesh(vertices=self.vertices.copy(),
                               faces=self.faces.copy(),
                               process=False)

    def compute_face_normals(self, normalize: bool = True) -> np.ndarray:
        """
        Compute one normal per face from the cross product of two edges.

        Args:
            normalize: Scale non-degenerate normals to unit length

        Returns:
            (M, 3) array of face normals; degenerate faces get zero vectors
        """
        if self.face_count == 0:
            return np.zeros((0, 3))

        v0 = self.vertices[self.faces[:, 0]]
        v1 = self.vertices[self.faces[:, 1]]
        v2 = self.vertices[self.faces[:, 2]]
        normals = np.cross(v1 - v0, v2 - v0)

        if normalize:
            lengths = np.linalg.norm(normals, axis=1)
            nonzero = lengths > 0.0
            normals[nonzero] /= lengths[nonzero, None]

        return normals

    def compute_normals(self):
        """
        Recompute per-vertex normals from the faces.

        Each face adds its un-normalized normal to its three vertices, so
        larger faces weigh more. Vertices whose accumulated normal has zero
        length keep a zero normal. Must be re-run after topology edits.
        """
        normals = np.zeros((self.vertex_count, 3))

        if self.face_count > 0:
            face_normals = self.compute_face_normals(normalize=False)
            for corner in range(3):
                np.add.at(normals, self.faces[:, corner], face_normals)

        lengths = np.linalg.norm(normals, axis=1)
        nonzero = lengths > 0.0
        normals[nonzero] /= lengths[nonzero, None]

        self.normals = normals

    def validate(self) -> bool:
        """
        Check index range and degeneracy of every face.

        Returns:
            False if any face repeats a vertex index or references a vertex
            that does not exist
        """
        if self.face_count == 0:
            return True

        faces = self.faces
        if np.any(faces < 0) or np.any(faces >= self.vertex_count):
            return False

        return not bool(np.any(self.degenerate_face_mask()))

    def degenerate_face_mask(self) -> np.ndarray:
        """Boolean mask of faces with a repeated vertex index."""
        faces = self.faces
        if len(faces) == 0:
            return np.zeros(0, dtype=bool)
        return ((faces[:, 0] == faces[:, 1]) |
                (faces[:, 1] == faces[:, 2]) |
                (faces[:, 2] == faces[:, 0]))

    def remove_degenerate_faces(self) -> "MeshModel":
        """Return a copy without faces that repeat a vertex index."""
        keep = ~self.degenerate_face_mask()
        return MeshModel(self.vertices, self.faces[keep], self.normals)

    def __repr__(self) -> str:
        return (f"MeshModel(vertices={self.vertex_count}, faces={self.face_count}, "
                f"normals={'yes' if self.has_normals else 'no'})")


def _as_array(values, dtype) -> np.ndarray:
    if values is None:
        return np.zeros((0, 3), dtype=dtype)
    array = np.array(values, dtype=dtype)
    if array.size == 0:
        return np.zeros((0, 3), dtype=dtype)
    return array.reshape(-1, 3)
