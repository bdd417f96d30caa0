"""
Simplification Method Dispatcher
================================

Runs one or all of the three simplification algorithms with a shared
reduction factor.
"""

from enum import Enum
from typing import Dict, Optional

from .mesh_model import MeshModel
from .edge_collapse import EdgeCollapseSimplifier
from .vertex_clustering import VertexClusteringSimplifier
from .vertex_decimation import VertexDecimationSimplifier


class SimplificationMethod(Enum):
    """Available reduction algorithms; values double as CLI names."""

    EDGE_COLLAPSE = "edge_collapse"            # Garland-Heckbert
    VERTEX_DECIMATION = "vertex_decimation"    # Schroeder-Zarge-Lorensen
    VERTEX_CLUSTERING = "vertex_clustering"    # Rossignac-Borrel

    @property
    def display_name(self) -> str:
        """Human-readable name crediting the algorithm's authors."""
        return _DISPLAY_NAMES[self]

    @classmethod
    def from_name(cls, name: str) -> "SimplificationMethod":
        """
        Parse a method from its value, enum name or a short alias.

        Raises:
            ValueError: If the name matches no method
        """
        key = name.strip().lower().replace("-", "_")
        for method in cls:
            if key in (method.value, method.name.lower()):
                return method
        if key in _ALIASES:
            return _ALIASES[key]
        valid = ", ".join(m.value for m in cls)
        raise ValueError(f"Unknown simplification method '{name}' (expected one of: {valid})")


_DISPLAY_NAMES = {
    SimplificationMethod.EDGE_COLLAPSE: "Edge Collapse (Garland-Heckbert)",
    SimplificationMethod.VERTEX_DECIMATION: "Vertex Decimation (Schroeder-Zarge-Lorensen)",
    SimplificationMethod.VERTEX_CLUSTERING: "Vertex Clustering (Rossignac-Borrel)",
}

_ALIASES = {
    "qem": SimplificationMethod.EDGE_COLLAPSE,
    "collapse": SimplificationMethod.EDGE_COLLAPSE,
    "decimation": SimplificationMethod.VERTEX_DECIMATION,
    "clustering": SimplificationMethod.VERTEX_CLUSTERING,
}


class MeshSimplifier:
    """
    Holds one instance of each simplifier and applies them by factor.

    Results are computed independently from the same original mesh, so the
    three outputs can be compared side by side.
    """

    def __init__(self, target_reduction: float = 0.5,
                 edge_collapse: Optional[EdgeCollapseSimplifier] = None,
                 vertex_decimation: Optional[VertexDecimationSimplifier] = None,
                 vertex_clustering: Optional[VertexClusteringSimplifier] = None):
        """
        Args:
            target_reduction: Fraction of vertices to keep, in [0, 1]
            edge_collapse: Configured edge collapse simplifier (default settings if None)
            vertex_decimation: Configured vertex decimation simplifier
            vertex_clustering: Configured vertex clustering simplifier
        """
        self.target_reduction = target_reduction
        self.edge_collapse = edge_collapse or EdgeCollapseSimplifier()
        self.vertex_decimation = vertex_decimation or VertexDecimationSimplifier()
        self.vertex_clustering = vertex_clustering or VertexClusteringSimplifier()

    def get_simplifier(self, method: SimplificationMethod):
        if method is SimplificationMethod.EDGE_COLLAPSE:
            return self.edge_collapse
        if method is SimplificationMethod.VERTEX_DECIMATION:
            return self.vertex_decimation
        return self.vertex_clustering

    def simplify(self, mesh: MeshModel, method=SimplificationMethod.EDGE_COLLAPSE,
                 factor: Optional[float] = None) -> MeshModel:
        """
        Simplify a mesh with one method.

        Args:
            mesh: Input mesh (not modified)
            method: SimplificationMethod or its name
            factor: Reduction factor; target_reduction when None

        Returns:
            Simplified mesh
        """
        if isinstance(method, str):
            method = SimplificationMethod.from_name(method)
        if factor is None:
            factor = self.target_reduction
        return self.get_simplifier(method).simplify_by_factor(mesh, factor)

    def simplify_all(self, mesh: MeshModel,
                     factor: Optional[float] = None) -> Dict[SimplificationMethod, MeshModel]:
        """Simplify a mesh with every method."""
        return {method: self.simplify(mesh, method, factor) for method in SimplificationMethod}
