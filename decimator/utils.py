"""
Utility Functions
=================

Procedural sample meshes and mesh summary helpers.
"""

from typing import Optional
import numpy as np
import trimesh

from .mesh_model import MeshModel, find_boundary_edges, unique_edges


def create_cube(size: float = 1.0) -> MeshModel:
    """
    Create an 8-vertex, 12-triangle axis-aligned cube with outward faces.

    Args:
        size: Edge length; the cube spans [0, size] on every axis
    """
    vertices = np.array([
        [0, 0, 0], [1, 0, 0], [1, 1, 0], [0, 1, 0],
        [0, 0, 1], [1, 0, 1], [1, 1, 1], [0, 1, 1]
    ], dtype=np.float64) * size

    faces = np.array([
        # bottom
        [0, 2, 1], [0, 3, 2],
        # top
        [4, 5, 6], [4, 6, 7],
        # front
        [0, 1, 5], [0, 5, 4],
        # back
        [2, 3, 7], [2, 7, 6],
        # left
        [0, 4, 7], [0, 7, 3],
        # right
        [1, 2, 6], [1, 6, 5]
    ], dtype=np.int64)

    return MeshModel(vertices, faces)


def create_flat_grid(rows: int = 10, cols: int = 10,
                     amplitude: float = 0.0,
                     noise: float = 0.0,
                     seed: Optional[int] = None) -> MeshModel:
    """
    Create an open rectangular grid surface in the XY plane.

    Args:
        rows: Number of vertex rows
        cols: Number of vertex columns
        amplitude: Height of a sinusoidal wave added to Z (0 keeps it flat)
        noise: Standard deviation of random vertex jitter
        seed: Seed for the jitter

    Returns:
        Open surface mesh with 2 * (rows - 1) * (cols - 1) triangles
    """
    x = np.linspace(-1, 1, cols)
    y = np.linspace(-1, 1, rows)
    X, Y = np.meshgrid(x, y)

    Z = amplitude * np.sin(3 * X) * np.cos(3 * Y)

    vertices = np.column_stack([X.flatten(), Y.flatten(), Z.flatten()])

    faces = []
    for i in range(rows - 1):
        for j in range(cols - 1):
            idx = i * cols + j
            faces.append([idx, idx + 1, idx + cols])
            faces.append([idx + 1, idx + cols + 1, idx + cols])

    if noise > 0.0:
        rng = np.random.default_rng(seed)
        vertices = vertices + rng.normal(scale=noise, size=vertices.shape)

    return MeshModel(vertices, np.array(faces, dtype=np.int64))


def create_hexagon_fan(radius: float = 1.0, height: float = 0.0) -> MeshModel:
    """
    Create a regular hexagon split into six triangles around a centre vertex.

    The centre is vertex 0 (lifted by height), the ring is vertices 1-6
    counter-clockwise.
    """
    angles = np.arange(6) * (np.pi / 3.0)
    ring = np.column_stack([radius * np.cos(angles),
                            radius * np.sin(angles),
                            np.zeros(6)])
    vertices = np.vstack([[0.0, 0.0, height], ring])
    faces = [[0, 1 + k, 1 + (k + 1) % 6] for k in range(6)]
    return MeshModel(vertices, np.array(faces, dtype=np.int64))


def create_sample_mesh(mesh_type: str = "sphere") -> MeshModel:
    """
    Create a sample mesh for testing.

    Args:
        mesh_type: Type of mesh to create:
            - "sphere": Icosphere
            - "torus": Torus
            - "box": Subdivided box
            - "cylinder": Cylinder
            - "spheres": Two disjoint icospheres
            - "grid": Wavy open grid
            - "cube": 8-vertex cube

    Returns:
        Generated mesh
    """
    if mesh_type == "torus":
        mesh = trimesh.creation.torus(major_radius=1.0, minor_radius=0.3,
                                      major_sections=32, minor_sections=16)
    elif mesh_type == "box":
        mesh = trimesh.creation.box(extents=[1, 1, 1])
        for _ in range(3):
            mesh = mesh.subdivide()
    elif mesh_type == "cylinder":
        mesh = trimesh.creation.cylinder(radius=0.5, height=2.0, sections=32)
    elif mesh_type == "spheres":
        left = trimesh.creation.icosphere(subdivisions=2, radius=0.5)
        right = trimesh.creation.icosphere(subdivisions=2, radius=0.5)
        right.apply_translation([2.0, 0.0, 0.0])
        mesh = trimesh.util.concatenate([left, right])
    elif mesh_type == "grid":
        return create_flat_grid(20, 20, amplitude=0.2)
    elif mesh_type == "cube":
        return create_cube()
    else:
        mesh = trimesh.creation.icosphere(subdivisions=3, radius=1.0)

    return MeshModel.from_trimesh(mesh)


def get_mesh_info(mesh: MeshModel) -> dict:
    """
    Get comprehensive information about a mesh.

    Args:
        mesh: Input mesh

    Returns:
        Dictionary of mesh properties
    """
    tm = mesh.to_trimesh()

    info = {
        'vertices': mesh.vertex_count,
        'faces': mesh.face_count,
        'edges': len(unique_edges(mesh.faces)),
        'boundary_edges': len(find_boundary_edges(mesh.faces)),
        'degenerate_faces': int(np.count_nonzero(mesh.degenerate_face_mask())),
        'is_valid': mesh.validate(),
        'is_watertight': tm.is_watertight,
        'euler_number': tm.euler_number,
        'area': float(tm.area),
    }

    if mesh.vertex_count > 0:
        info['bounds'] = [mesh.vertices.min(axis=0).tolist(),
                          mesh.vertices.max(axis=0).tolist()]
    else:
        info['bounds'] = None

    return info


def print_mesh_info(mesh: MeshModel, name: str = "Mesh"):
    """
    Print mesh information to console.

    Args:
        mesh: Input mesh
        name: Name to display
    """
    info = get_mesh_info(mesh)

    print(f"\n{name} Information:")
    print("-" * 40)
    print(f"  Vertices:         {info['vertices']}")
    print(f"  Faces:            {info['faces']}")
    print(f"  Edges:            {info['edges']}")
    print(f"  Boundary Edges:   {info['boundary_edges']}")
    print(f"  Degenerate Faces: {info['degenerate_faces']}")
    print(f"  Valid:            {info['is_valid']}")
    print(f"  Watertight:       {info['is_watertight']}")
    print(f"  Euler Number:     {info['euler_number']}")
    print(f"  Surface Area:     {info['area']:.4f}")
