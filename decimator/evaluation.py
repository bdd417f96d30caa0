"""
Simplification Quality Metrics
==============================

Measures how far a simplified mesh strays from its source:

- surface distances (Hausdorff, Chamfer) from seeded point samples
- element counts and reduction ratios
- volume and area drift, degenerate faces
- boundary edge counts and length
"""

import numpy as np
from typing import Callable, Dict, List, Tuple
import trimesh
from scipy.spatial import cKDTree
import time

from .mesh_model import MeshModel, find_boundary_edges


# (section title, [(label, metric key, format)]); formats ending in '%'
# print the value scaled by 100
_REPORT_SECTIONS: List[Tuple[str, List[Tuple[str, str, str]]]] = [
    ("Counts", [
        ("Vertices before", 'original_vertices', 'd'),
        ("Vertices after", 'simplified_vertices', 'd'),
        ("Faces before", 'original_faces', 'd'),
        ("Faces after", 'simplified_faces', 'd'),
        ("Vertices kept", 'vertex_reduction_ratio', '.2%'),
    ]),
    ("Surface distance", [
        ("Hausdorff", 'hausdorff_distance', '.6f'),
        ("  original -> simplified", 'hausdorff_forward', '.6f'),
        ("  simplified -> original", 'hausdorff_backward', '.6f'),
        ("Chamfer", 'chamfer_distance', '.6f'),
    ]),
    ("Shape", [
        ("Volume drift", 'volume_error', '.4%'),
        ("Area drift", 'area_error', '.4%'),
        ("Degenerate faces", 'degenerate_faces', 'd'),
        ("Valid indices", 'is_valid', 'bool'),
    ]),
    ("Boundary", [
        ("Edges before", 'original_boundary_edges', 'd'),
        ("Edges after", 'simplified_boundary_edges', 'd'),
        ("Length drift", 'boundary_length_change', '.4%'),
    ]),
]


def _relative_change(before: float, after: float) -> float:
    """|after - before| / |before|, guarded against a zero reference."""
    return abs(after - before) / max(abs(before), 1e-10)


class MeshEvaluator:
    """
    Compares a simplified mesh against the mesh it came from.

    Distances are estimated on uniformly sampled surface points; a fixed
    seed makes repeated evaluations of the same pair agree exactly.
    """

    def __init__(self, sample_points: int = 10000, seed: int = 0):
        """
        Args:
            sample_points: Surface samples drawn per mesh for distance metrics
            seed: Seed for surface sampling
        """
        self.sample_points = sample_points
        self.seed = seed

    def compute_all_metrics(self, original: MeshModel,
                            simplified: MeshModel) -> Dict[str, float]:
        """
        Collect every metric for one original/simplified pair.

        Returns:
            Flat dictionary keyed by metric name. Volume metrics are NaN
            unless both meshes are watertight; distance metrics are NaN when
            either mesh has no vertices.
        """
        metrics = self._count_metrics(original, simplified)
        metrics.update(self._distance_metrics(original, simplified))
        metrics.update(self._shape_metrics(original, simplified))
        metrics.update(self.boundary_preservation_metrics(original, simplified))
        return metrics

    def _count_metrics(self, original: MeshModel, simplified: MeshModel) -> Dict[str, float]:
        return {
            'original_vertices': original.vertex_count,
            'simplified_vertices': simplified.vertex_count,
            'original_faces': original.face_count,
            'simplified_faces': simplified.face_count,
            'vertex_reduction_ratio': simplified.vertex_count / max(1, original.vertex_count),
            'face_reduction_ratio': simplified.face_count / max(1, original.face_count),
        }

    def _distance_metrics(self, original: MeshModel, simplified: MeshModel) -> Dict[str, float]:
        symmetric, forward, backward = self.hausdorff_distance(original, simplified)
        return {
            'hausdorff_distance': symmetric,
            'hausdorff_forward': forward,
            'hausdorff_backward': backward,
            'chamfer_distance': self.chamfer_distance(original, simplified),
        }

    def _shape_metrics(self, original: MeshModel, simplified: MeshModel) -> Dict[str, float]:
        """Volume and area drift plus index validity of the result."""
        before = original.to_trimesh()
        after = simplified.to_trimesh()

        volume_before = float(before.volume) if before.is_watertight else np.nan
        volume_after = float(after.volume) if after.is_watertight else np.nan
        if np.isnan(volume_before) or np.isnan(volume_after):
            volume_error = np.nan
        else:
            volume_error = _relative_change(volume_before, volume_after)

        area_before = float(before.area)
        area_after = float(after.area)

        return {
            'original_volume': volume_before,
            'simplified_volume': volume_after,
            'volume_error': volume_error,
            'original_area': area_before,
            'simplified_area': area_after,
            'area_error': _relative_change(area_before, area_after),
            'degenerate_faces': int(np.count_nonzero(simplified.degenerate_face_mask())),
            'is_valid': int(simplified.validate()),
        }

    def _sample_points(self, mesh: MeshModel) -> np.ndarray:
        """
        Sample points uniformly on the mesh surface.

        Meshes without surface area are represented by their vertices.
        """
        if mesh.face_count == 0:
            return mesh.vertices

        tm = mesh.to_trimesh()
        if tm.area <= 0.0:
            return mesh.vertices

        points, _ = trimesh.sample.sample_surface(tm, self.sample_points, seed=self.seed)
        return points

    def _nearest_distances(self, source: np.ndarray,
                           target: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Distance from each source point to the target set, and back."""
        to_target, _ = cKDTree(target).query(source)
        to_source, _ = cKDTree(source).query(target)
        return to_target, to_source

    def hausdorff_distance(self, mesh1: MeshModel,
                           mesh2: MeshModel) -> Tuple[float, float, float]:
        """
        Symmetric Hausdorff distance estimated from surface samples.

        Returns:
            Tuple of (symmetric, mesh1 -> mesh2, mesh2 -> mesh1); NaN values
            when either mesh has no vertices
        """
        points1 = self._sample_points(mesh1)
        points2 = self._sample_points(mesh2)

        if len(points1) == 0 or len(points2) == 0:
            return np.nan, np.nan, np.nan

        to_second, to_first = self._nearest_distances(points1, points2)
        forward = float(to_second.max())
        backward = float(to_first.max())

        return max(forward, backward), forward, backward

    def chamfer_distance(self, mesh1: MeshModel, mesh2: MeshModel) -> float:
        """
        Sum of the mean squared nearest-neighbour distances in both
        directions; NaN when either mesh has no vertices.
        """
        points1 = self._sample_points(mesh1)
        points2 = self._sample_points(mesh2)

        if len(points1) == 0 or len(points2) == 0:
            return np.nan

        to_second, to_first = self._nearest_distances(points1, points2)

        return float(np.mean(to_second ** 2)) + float(np.mean(to_first ** 2))

    def boundary_preservation_metrics(self, original: MeshModel,
                                      simplified: MeshModel) -> Dict[str, float]:
        """Boundary edge counts and total length before and after."""
        edges_before = find_boundary_edges(original.faces)
        edges_after = find_boundary_edges(simplified.faces)

        length_before = self._compute_boundary_length(original, edges_before)
        length_after = self._compute_boundary_length(simplified, edges_after)

        return {
            'original_boundary_edges': len(edges_before),
            'simplified_boundary_edges': len(edges_after),
            'original_boundary_length': length_before,
            'simplified_boundary_length': length_after,
            'boundary_length_change': (
                abs(length_after - length_before) / length_before if length_before > 0 else 0.0
            ),
        }

    def _compute_boundary_length(self, mesh: MeshModel, boundary_edges: set) -> float:
        if not boundary_edges:
            return 0.0
        edges = np.array(sorted(boundary_edges), dtype=np.int64)
        segments = mesh.vertices[edges[:, 1]] - mesh.vertices[edges[:, 0]]
        return float(np.linalg.norm(segments, axis=1).sum())

    def compare_methods(self, original: MeshModel,
                        factor: float,
                        methods: Dict[str, Callable[[MeshModel, float], MeshModel]]) -> Dict[str, Dict]:
        """
        Run several simplification functions at the same factor.

        Args:
            original: Source mesh, shared by every method
            factor: Reduction factor passed to every method
            methods: Name -> function(mesh, factor) returning a mesh

        Returns:
            Name -> {'mesh': simplified mesh, 'metrics': metrics incl. 'runtime'}
        """
        comparison = {}

        for name, simplify in methods.items():
            started = time.time()
            simplified = simplify(original, factor)
            elapsed = time.time() - started

            metrics = self.compute_all_metrics(original, simplified)
            metrics['runtime'] = elapsed
            comparison[name] = {'mesh': simplified, 'metrics': metrics}

        return comparison

    def generate_report(self, metrics: Dict[str, float],
                        method_name: str = "Edge Collapse") -> str:
        """
        Format a metrics dictionary as a plain-text report.

        Missing metrics print as N/A, as do NaN values (e.g. the volume of
        an open surface).
        """
        width = 56
        lines = ["#" * width, f"  {method_name}", "#" * width]

        for title, rows in _REPORT_SECTIONS:
            lines.append("")
            lines.append(f"[{title}]")
            for label, key, fmt in rows:
                lines.append(f"  {label:<28}{_format_metric(metrics.get(key), fmt):>16}")

        if 'runtime' in metrics:
            lines.append("")
            lines.append(f"  {'Runtime (s)':<28}{metrics['runtime']:>16.4f}")

        lines.append("#" * width)
        return "\n".join(lines)

    def print_report(self, metrics: Dict[str, float], method_name: str = "Edge Collapse"):
        print(self.generate_report(metrics, method_name))


def _format_metric(value, fmt: str) -> str:
    if value is None:
        return "N/A"
    if fmt == 'bool':
        return "yes" if value else "no"
    if isinstance(value, float) and np.isnan(value):
        return "N/A"
    return format(value, fmt)
