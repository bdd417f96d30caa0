"""
Vertex Clustering Simplifier
============================

Rossignac-Borrel simplification: vertices falling in the same cell of a
uniform grid over the bounding box are merged into the cell centroid.

Reference: "Multi-resolution 3D approximations for rendering complex
scenes" by Jarek Rossignac and Paul Borrel (1993)
"""

import numpy as np
from typing import Dict, List, Optional, Tuple
from dataclasses import dataclass, field

from .mesh_model import MeshModel


EXTENT_EPSILON = 1e-6


@dataclass
class GridCell:
    """One occupied cell of the clustering grid."""
    cell_coords: Tuple[int, int, int]
    vertex_indices: List[int] = field(default_factory=list)
    representative_pos: np.ndarray = field(default_factory=lambda: np.zeros(3))
    representative_index: int = -1


class VertexClusteringSimplifier:
    """
    Grid-based vertex clustering.

    The output is fully determined by the input mesh and the grid
    resolution. Triangles are dropped only when all three corners land in
    the same cell; triangles with two corners in one cell are kept as
    zero-area faces.
    """

    def __init__(self, grid_resolution: int = 16, verbose: bool = False):
        """
        Args:
            grid_resolution: Default number of cells per axis
            verbose: Print progress messages
        """
        self.grid_resolution = grid_resolution
        self.verbose = verbose

    def simplify(self, mesh: MeshModel, grid_resolution: Optional[int] = None) -> MeshModel:
        """
        Cluster vertices on a grid_resolution^3 grid.

        Args:
            mesh: Input mesh (not modified)
            grid_resolution: Cells per axis; the instance default when None.
                             Values below 1 are treated as 1.

        Returns:
            Simplified mesh with recomputed normals. Empty meshes are
            returned as copies.
        """
        if grid_resolution is None:
            grid_resolution = self.grid_resolution
        grid_resolution = max(1, int(grid_resolution))

        if mesh.is_empty:
            return mesh.copy()

        min_bounds, grid_size = self.compute_bounding_box(mesh.vertices)
        grid = self.assign_vertices_to_cells(mesh.vertices, min_bounds, grid_size,
                                             grid_resolution)

        for cell in grid.values():
            cell.representative_pos = self.compute_representative(cell, mesh.vertices)

        result = self.merge_clusters(mesh, grid)

        if self.verbose:
            print(f"Vertex clustering ({grid_resolution}^3 grid): "
                  f"{mesh.vertex_count} -> {result.vertex_count} vertices, "
                  f"{mesh.face_count} -> {result.face_count} faces")

        return result

    def simplify_by_factor(self, mesh: MeshModel, factor: float) -> MeshModel:
        """
        Simplify with a grid resolution estimated from a reduction factor.

        Uses max(2, cbrt(vertex_count * factor)) cells per axis; higher
        resolution means less reduction. The factor is clamped to [0, 1].
        """
        factor = min(1.0, max(0.0, float(factor)))
        resolution = max(2, int(np.cbrt(mesh.vertex_count * factor)))
        return self.simplify(mesh, resolution)

    def compute_bounding_box(self, vertices: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        Compute the axis-aligned bounding box of all vertices.

        Returns:
            Tuple of (min_bounds, size); extents below EXTENT_EPSILON are
            replaced by EXTENT_EPSILON so cell lookup never divides by zero
        """
        bbox_min = vertices.min(axis=0)
        bbox_max = vertices.max(axis=0)
        size = bbox_max - bbox_min
        size = np.where(size < EXTENT_EPSILON, EXTENT_EPSILON, size)
        return bbox_min, size

    def get_grid_cells(self, vertices: np.ndarray, min_bounds: np.ndarray,
                       grid_size: np.ndarray, grid_resolution: int) -> np.ndarray:
        """
        Map every vertex to integer cell coordinates.

        Positions are normalized to [0, 1] inside the box, scaled by the
        resolution and clamped to [0, resolution - 1] so vertices on the
        upper boundary fall into the last cell.
        """
        normalized = np.clip((vertices - min_bounds) / grid_size, 0.0, 1.0)
        cells = (normalized * grid_resolution).astype(np.int64)
        return np.minimum(cells, grid_resolution - 1)

    def assign_vertices_to_cells(self, vertices: np.ndarray, min_bounds: np.ndarray,
                                 grid_size: np.ndarray,
                                 grid_resolution: int) -> Dict[Tuple[int, int, int], GridCell]:
        """Group vertex indices by cell, in order of first occupancy."""
        cell_indices = self.get_grid_cells(vertices, min_bounds, grid_size, grid_resolution)

        grid = {}
        for vi, cell in enumerate(cell_indices):
            cell_key = (int(cell[0]), int(cell[1]), int(cell[2]))
            if cell_key not in grid:
                grid[cell_key] = GridCell(cell_coords=cell_key)
            grid[cell_key].vertex_indices.append(vi)

        return grid

    def compute_representative(self, cell: GridCell, vertices: np.ndarray) -> np.ndarray:
        """Centroid of the vertices in a cell."""
        if not cell.vertex_indices:
            return np.zeros(3)
        return vertices[cell.vertex_indices].mean(axis=0)

    def merge_clusters(self, mesh: MeshModel,
                       grid: Dict[Tuple[int, int, int], GridCell]) -> MeshModel:
        """
        Emit one vertex per occupied cell and remap the faces onto them.

        A face is discarded only when all three corners map to the same
        representative. Faces with exactly two equal corners are emitted as
        zero-area triangles.
        """
        # Two-equal-corner faces are suspect but kept; callers needing valid
        # output apply MeshModel.remove_degenerate_faces().
        vertex_map = np.full(mesh.vertex_count, -1, dtype=np.int64)
        new_vertices = []

        for cell in grid.values():
            if not cell.vertex_indices:
                continue
            cell.representative_index = len(new_vertices)
            new_vertices.append(cell.representative_pos)
            vertex_map[cell.vertex_indices] = cell.representative_index

        remapped = vertex_map[mesh.faces]
        collapsed = (remapped[:, 0] == remapped[:, 1]) & (remapped[:, 1] == remapped[:, 2])
        unmapped = np.any(remapped < 0, axis=1)
        new_faces = remapped[~collapsed & ~unmapped]

        result = MeshModel(np.array(new_vertices).reshape(-1, 3), new_faces)
        result.compute_normals()
        return result

