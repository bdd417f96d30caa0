"""
Triangle Mesh Decimation
========================

Three independent triangle-mesh simplification algorithms:

- Edge collapse with Quadric Error Metrics
  (Garland and Heckbert, "Surface Simplification Using Quadric Error
  Metrics", SIGGRAPH 1997)
- Vertex clustering on a uniform grid
  (Rossignac and Borrel, "Multi-resolution 3D approximations for
  rendering complex scenes", 1993)
- Vertex decimation with fan retriangulation
  (Schroeder, Zarge and Lorensen, "Decimation of Triangle Meshes",
  SIGGRAPH 1992)
"""

from .mesh_model import MeshModel
from .qem import QuadricErrorMetrics
from .edge_collapse import EdgeCollapseSimplifier
from .vertex_clustering import VertexClusteringSimplifier
from .vertex_decimation import VertexDecimationSimplifier, VertexInfo
from .simplifier import MeshSimplifier, SimplificationMethod
from .evaluation import MeshEvaluator

__version__ = "1.0.0"
__author__ = "Mesh Decimation Project"
__all__ = [
    "MeshModel",
    "QuadricErrorMetrics",
    "EdgeCollapseSimplifier",
    "VertexClusteringSimplifier",
    "VertexDecimationSimplifier",
    "VertexInfo",
    "MeshSimplifier",
    "SimplificationMethod",
    "MeshEvaluator",
]
