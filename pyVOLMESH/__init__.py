"""pyVOLMESH public package.

This package exposes a volumetric mesh abstraction for finite-element style
simulation: flat vertex and connectivity storage with uniform or per-element
arity, position queries, and per-shape geometry (volume, point containment,
interpolation weights). Meshes live in the CPU backend and element geometry
in :mod:`pyVOLMESH.Shapes`.

Examples
--------
>>> from pyVOLMESH.CPU import TriMesh, GeneralMesh
>>> from pyVOLMESH import Shapes
"""

__version__ = "0.1.0"

from .geom.commons._errors import (
    MeshError,
    MeshIndexError,
    MalformedMeshError,
    GeometryError)
