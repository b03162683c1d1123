"""Element shape families exported by pyVOLMESH.

Each shape family implements the :class:`pyVOLMESH.shapes._shape.Shape`
interface and provides the element-level geometry (volume, containment,
interpolation weights) that meshes delegate to.

Available shapes
- LinearLagrange: 3-node triangles, 4-node quads, 4-node tetrahedra, 8-node hexahedra
"""

from .shapes._shape import Shape
from .shapes.Lagrange import LinearLagrange
