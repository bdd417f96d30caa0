"""
Pytest Configuration
====================

Adds the project root to sys.path so the decimator package is importable
without installation, and provides the shared sample meshes.
"""

import sys
from pathlib import Path

import pytest
import trimesh

project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from decimator.mesh_model import MeshModel  # noqa: E402
from decimator.utils import create_cube, create_flat_grid, create_hexagon_fan  # noqa: E402


@pytest.fixture
def cube():
    return create_cube()


@pytest.fixture
def flat_grid():
    return create_flat_grid(8, 8)


@pytest.fixture
def hexagon_fan():
    return create_hexagon_fan()


@pytest.fixture
def sphere():
    return MeshModel.from_trimesh(trimesh.creation.icosphere(subdivisions=2, radius=1.0))
