import numpy as np
from ...shapes._shape import Shape
from ...shapes.Lagrange import LinearLagrange
import logging
logger = logging.getLogger(__name__)
from ..commons._mesh import VolumetricMesh, DEFAULT_TOLERANCE
from ..commons._errors import MalformedMeshError


class GeneralMesh(VolumetricMesh):
    """
    General unstructured mesh supporting arbitrary element topologies.

    Handles meshes with heterogeneous element types and sizes. Element geometry
    (volume, containment, interpolation weights) is delegated to a Shape which
    dispatches on the number of vertices of each element, so a single mesh may
    mix triangles with quads, or tetrahedra with hexahedra.

    Parameters
    ----------
    vert_num : int
        Number of vertices
    vertices : array-like
        Vertex coordinates, flat or shape (vert_num, spatial_dim)
    ele_num : int
        Number of elements
    elements : array-like of int
        Flat or nested element connectivity
    vert_per_ele : int or array-like of int
        Shared arity or one arity per element
    dim : int, optional
        Spatial dimension (inferred from a 2D ``vertices`` array if omitted)
    dtype : np.dtype, optional
        Floating data type for the vertex buffer (default: np.float64)
    tol : float, optional
        Containment tolerance (default: 1e-10)
    shape : Shape, optional
        Element shape family (default: LinearLagrange())

    Attributes
    ----------
    shape : Shape
        Element shape family used for geometry queries
    is_uniform : bool
        True if all elements have the same number of vertices
    elements_flat : ndarray
        Flattened element connectivity
    arity : UniformArity or MixedArity
        Arity descriptor; MixedArity carries the pointer array ``ptr``

    Notes
    -----
    - Volumes are reported unsigned; ``ele_signed_volume`` keeps the sign of
      the element's winding.
    - Use TriMesh, QuadMesh, TetMesh or CubicMesh to enforce a single element type.

    Examples
    --------
    >>> from pyVOLMESH.CPU import GeneralMesh
    >>> # One triangle and one quad
    >>> nodes = np.array([[0, 0], [1, 0], [0, 1], [2, 0], [2, 1]])
    >>> mesh = GeneralMesh.from_arrays(nodes, [[0, 1, 2], [1, 3, 4, 2]])
    >>> print(f"Uniform mesh: {mesh.is_uniform}, Elements: {mesh.ele_num}")
    Uniform mesh: False, Elements: 2
    """
    NAME = "General Mesh"

    def __init__(self, vert_num, vertices, ele_num, elements, vert_per_ele, dim=None, dtype=np.float64, tol=DEFAULT_TOLERANCE, shape: Shape = LinearLagrange()):
        super().__init__(vert_num, vertices, ele_num, elements, vert_per_ele, dim=dim, dtype=dtype, tol=tol)
        self.shape = shape
        self.is_uniform = self.arity.is_uniform

        element_types = np.unique(self.arity.sizes())
        logger.debug("Element arities present: %s", element_types)
        for size in element_types:
            if not shape.supports(size, self.dim):
                raise MalformedMeshError(
                    f"{shape.__class__.__name__} does not support {size}-vertex elements in {self.dim}D."
                )

    def ele_signed_volume(self, ele_idx):
        """Signed measure of element ``ele_idx``; the sign follows its winding."""
        return float(self.shape.volume(self.ele_vert_positions(ele_idx)))

    def ele_volume(self, ele_idx):
        return abs(self.ele_signed_volume(ele_idx))

    def contains_vertex(self, ele_idx, pos):
        return self.shape.contains(self.ele_vert_positions(ele_idx), self._as_point(pos), self.tol)

    def interpolation_weights(self, ele_idx, pos):
        """
        Interpolation weights of ``pos`` in element ``ele_idx``.

        Returns
        -------
        ndarray
            One weight per local vertex, shape (ele_vert_num(ele_idx),).
            Weights sum to 1 for points inside the element.
        """
        weights = self.shape.weights(self.ele_vert_positions(ele_idx), self._as_point(pos))
        return np.asarray(weights, dtype=np.float64)

    def ele_volumes(self):
        if self.is_uniform and self.ele_num > 0:
            volumes = self.shape.volume(self.nodes[self.connectivity()])
            return np.abs(np.asarray(volumes)).astype(self.dtype)
        return super().ele_volumes()


class TriMesh(GeneralMesh):
    """
    2D mesh of 3-node triangles.

    Examples
    --------
    >>> from pyVOLMESH.CPU import TriMesh
    >>> mesh = TriMesh.from_arrays([[0, 0], [1, 0], [0, 1]], [[0, 1, 2]])
    >>> mesh.ele_volume(0)
    0.5
    """
    NAME = "Triangle Mesh"
    DIM = 2
    ARITY = 3


class QuadMesh(GeneralMesh):
    """
    2D mesh of 4-node bilinear quadrilaterals.

    Vertices are ordered counter-clockwise. Interpolation weights come from
    inverting the bilinear map, so they are exact for non-rectangular quads too.
    """
    NAME = "Quad Mesh"
    DIM = 2
    ARITY = 4


class TetMesh(GeneralMesh):
    """3D mesh of 4-node tetrahedra."""
    NAME = "Tetrahedral Mesh"
    DIM = 3
    ARITY = 4


class CubicMesh(GeneralMesh):
    """
    3D mesh of 8-node trilinear hexahedra.

    Vertex order: bottom face counter-clockwise, then the top face
    counter-clockwise, with vertex ``i + 4`` above vertex ``i``.
    """
    NAME = "Cubic Mesh"
    DIM = 3
    ARITY = 8
