from ._shape import Shape
import math
import numpy as np
import logging
logger = logging.getLogger(__name__)
from ..geom.commons._errors import GeometryError
from ..core.CPU._geom import (
    triangle_weights,
    tetrahedron_weights,
    quad_natural_coords,
    quad_shape_functions,
    hex_natural_coords,
    hex_shape_functions,
)

# (n_nodes, spatial_dim) -> element kind
ELEMENT_KINDS = {
    (3, 2): 'triangle',
    (4, 2): 'quadrilateral',
    (4, 3): 'tetrahedron',
    (8, 3): 'hexahedron',
}

# Signed simplices tiling each element kind, as rows of local vertex indices.
# Quads fan out from vertex 0; hexes use the six tetrahedra along the 0-6
# diagonal, one per axis ordering.
ELEMENT_SIMPLICES = {
    'triangle': np.array([[0, 1, 2]]),
    'quadrilateral': np.array([[0, 1, 2], [0, 2, 3]]),
    'tetrahedron': np.array([[0, 1, 2, 3]]),
    'hexahedron': np.array([
        [0, 1, 2, 6],
        [0, 5, 1, 6],
        [0, 2, 3, 6],
        [0, 3, 7, 6],
        [0, 4, 5, 6],
        [0, 7, 4, 6],
    ]),
}


class LinearLagrange(Shape):
    """
    First-order Lagrange elements: triangles, quads, tetrahedra and hexahedra.

    Dispatches on the shape of the nodal coordinate array, so one instance
    serves meshes mixing several element kinds.

    Methods
    -------
    supports(n_nodes, dim)
        True for (3, 2), (4, 2), (4, 3) and (8, 3)
    volume(x0s)
        Signed area (2D) or volume (3D)
    contains(x0s, pos, tol)
        Barycentric test for simplices, natural-coordinate test for quads/hexes
    weights(x0s, pos)
        Barycentric (simplices) or bilinear/trilinear (quads/hexes) weights

    Notes
    -----
    **Supported Elements:**
    - 2D: 3-node triangles, 4-node quads (counter-clockwise)
    - 3D: 4-node tetrahedra, 8-node hexahedra (bottom face then top face,
      both counter-clockwise seen from above)

    **Signs:**
    - Counter-clockwise triangles/quads and right-handed tets/hexes have
      positive measure; reversed winding flips the sign.

    **Outside points:**
    - Simplices return the barycentric extrapolation (some weights negative).
    - Quads/hexes return shape functions at the inverse-mapped natural
      coordinates. If the inverse mapping does not converge a
      GeometryError is raised.

    Examples
    --------
    >>> from pyVOLMESH.Shapes import LinearLagrange
    >>> shape = LinearLagrange()
    >>> tri = np.array([[0., 0.], [1., 0.], [0., 1.]])
    >>> shape.weights(tri, np.array([0.25, 0.25]))
    array([0.5 , 0.25, 0.25])
    """
    def __init__(self):
        super().__init__()

    def supports(self, n_nodes, dim):
        return (int(n_nodes), int(dim)) in ELEMENT_KINDS

    def volume(self, x0s):
        kind = _element_kind(x0s)
        return _split_measure(np.asarray(x0s, dtype=np.float64), ELEMENT_SIMPLICES[kind])

    def contains(self, x0s, pos, tol):
        x0s, pos = _as_kernel_input(x0s, pos)
        kind = _element_kind(x0s)
        if kind == 'triangle' or kind == 'tetrahedron':
            kernel = triangle_weights if kind == 'triangle' else tetrahedron_weights
            w, ok = kernel(x0s, pos)
            if not ok:
                logger.debug("Degenerate %s, reporting point as outside", kind)
                return False
            return bool(np.all(w >= -tol))

        solver = quad_natural_coords if kind == 'quadrilateral' else hex_natural_coords
        xi, converged = solver(x0s, pos)
        if not converged:
            return False
        return bool(np.all(np.abs(xi) <= 1.0 + tol))

    def weights(self, x0s, pos):
        x0s, pos = _as_kernel_input(x0s, pos)
        kind = _element_kind(x0s)
        if kind == 'triangle' or kind == 'tetrahedron':
            kernel = triangle_weights if kind == 'triangle' else tetrahedron_weights
            w, ok = kernel(x0s, pos)
            if not ok:
                raise GeometryError(f"Degenerate {kind}, interpolation weights are undefined.")
            return w

        if kind == 'quadrilateral':
            xi, converged = quad_natural_coords(x0s, pos)
            shape_functions = quad_shape_functions
        else:
            xi, converged = hex_natural_coords(x0s, pos)
            shape_functions = hex_shape_functions
        if not converged:
            raise GeometryError(
                f"Could not map point {pos} into the {kind}: inverse mapping did not converge."
            )
        return shape_functions(xi)[0]


def _element_kind(x0s):
    if x0s.ndim not in (2, 3):
        raise ValueError("Invalid input shape")
    kind = ELEMENT_KINDS.get(tuple(x0s.shape[-2:]))
    if kind is None:
        raise ValueError("Invalid input shape")
    return kind


def _as_kernel_input(x0s, pos):
    x0s = np.ascontiguousarray(x0s, dtype=np.float64)
    pos = np.ascontiguousarray(pos, dtype=np.float64).reshape(-1)
    if x0s.ndim != 2:
        raise ValueError("Point queries take a single element, shape (n_nodes, dim)")
    if pos.shape[0] != x0s.shape[1]:
        raise ValueError(f"Point has {pos.shape[0]} coordinates, element is {x0s.shape[1]}D")
    return x0s, pos


def _simplex_measure(x0s):
    """
    Signed measure of simplices, shape (..., d + 1, d) -> (...).

    det of the edge vectors leaving vertex 0, over d!. Counter-clockwise
    triangles and right-handed tetrahedra come out positive.
    """
    edges = x0s[..., 1:, :] - x0s[..., :1, :]
    return np.linalg.det(edges) / math.factorial(x0s.shape[-1])


def _split_measure(x0s, simplices):
    """Sum of the signed measures of the simplices (local index rows) tiling each element."""
    return np.sum(_simplex_measure(x0s[..., simplices, :]), axis=-1)
