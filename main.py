"""
Triangle Mesh Decimation - Main Demo
====================================

Demonstrates the three simplification algorithms on a procedural mesh.

This script:
1. Builds a sample mesh (sphere, torus, grid, ...)
2. Simplifies it with one or all methods
3. Computes quantitative metrics
4. Prints a comparison table and a detailed report
"""

import sys
import argparse
import time
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from decimator.edge_collapse import EdgeCollapseSimplifier
from decimator.vertex_clustering import VertexClusteringSimplifier
from decimator.vertex_decimation import VertexDecimationSimplifier
from decimator.simplifier import MeshSimplifier, SimplificationMethod
from decimator.evaluation import MeshEvaluator
from decimator.utils import create_sample_mesh, print_mesh_info


def build_simplifier(args) -> MeshSimplifier:
    """Create the dispatcher from command-line settings."""
    return MeshSimplifier(
        target_reduction=args.factor,
        edge_collapse=EdgeCollapseSimplifier(
            preserve_boundaries=args.boundary_weight > 0,
            boundary_weight=args.boundary_weight,
            verbose=True
        ),
        vertex_decimation=VertexDecimationSimplifier(
            feature_angle=args.feature_angle,
            aspect_ratio=args.aspect_ratio,
            max_distance=args.max_distance,
            verbose=True
        ),
        vertex_clustering=VertexClusteringSimplifier(verbose=True)
    )


def demo_single_method(mesh, simplifier: MeshSimplifier,
                       method: SimplificationMethod, factor: float):
    """
    Simplify with one method and print a detailed report.
    """
    print("\n" + "=" * 60)
    print(method.display_name.upper())
    print("=" * 60)

    evaluator = MeshEvaluator()

    start_time = time.time()
    simplified = simplifier.simplify(mesh, method, factor)
    runtime = time.time() - start_time

    metrics = evaluator.compute_all_metrics(mesh, simplified)
    metrics['runtime'] = runtime

    print("\n" + evaluator.generate_report(metrics, method.display_name))
    return simplified, metrics


def demo_method_comparison(mesh, simplifier: MeshSimplifier, factor: float):
    """
    Compare all three methods at the same reduction factor.
    """
    print("\n" + "=" * 60)
    print("METHOD COMPARISON")
    print("=" * 60)

    evaluator = MeshEvaluator()

    methods = {
        method.display_name: (lambda m, f, method=method: simplifier.simplify(m, method, f))
        for method in SimplificationMethod
    }

    results = evaluator.compare_methods(mesh, factor, methods)

    print("\n" + "-" * 96)
    print(f"{'Method':<46} {'Verts':>7} {'Faces':>7} {'Hausdorff':>12} {'Chamfer':>12} {'Runtime':>8}")
    print("-" * 96)

    for name, result in results.items():
        m = result['metrics']
        print(f"{name:<46} {m['simplified_vertices']:>7} {m['simplified_faces']:>7} "
              f"{m['hausdorff_distance']:>12.6f} {m['chamfer_distance']:>12.6f} "
              f"{m['runtime']:>7.3f}s")

    print("-" * 96)

    return results


def main():
    """Main demo entry point."""
    parser = argparse.ArgumentParser(
        description="Triangle mesh decimation demo"
    )
    parser.add_argument(
        "--mesh", "-m", type=str, default="sphere",
        choices=["sphere", "torus", "box", "cylinder", "spheres", "grid", "cube"],
        help="Sample mesh to simplify (default: sphere)"
    )
    parser.add_argument(
        "--method", type=str, default="all",
        help="Method to run: edge_collapse, vertex_decimation, vertex_clustering or all"
    )
    parser.add_argument(
        "--factor", "-f", type=float, default=0.5,
        help="Fraction of vertices to keep (default: 0.5)"
    )
    parser.add_argument(
        "--boundary-weight", "-b", type=float, default=0.0,
        help="Edge collapse boundary preservation weight, 0 disables (default: 0)"
    )
    parser.add_argument(
        "--feature-angle", type=float, default=60.0,
        help="Vertex decimation feature angle in degrees (default: 60)"
    )
    parser.add_argument(
        "--aspect-ratio", type=float, default=10.0,
        help="Vertex decimation maximum triangle aspect ratio (default: 10)"
    )
    parser.add_argument(
        "--max-distance", type=float, default=0.1,
        help="Vertex decimation maximum distance to average plane (default: 0.1)"
    )

    args = parser.parse_args()

    print("=" * 60)
    print("TRIANGLE MESH DECIMATION")
    print("=" * 60)

    mesh = create_sample_mesh(args.mesh)
    print_mesh_info(mesh, args.mesh)

    simplifier = build_simplifier(args)

    if args.method == "all":
        demo_method_comparison(mesh, simplifier, args.factor)
    else:
        try:
            method = SimplificationMethod.from_name(args.method)
        except ValueError as e:
            parser.error(str(e))
        simplified, _ = demo_single_method(mesh, simplifier, method, args.factor)
        print_mesh_info(simplified, f"{args.mesh} ({method.value})")

    print("\n" + "=" * 60)
    print("DEMO COMPLETE")
    print("=" * 60)


if __name__ == "__main__":
    main()
