import numpy as np
import logging
logger = logging.getLogger(__name__)
from ._arity import UniformArity, MixedArity, as_integer
from ._errors import MeshIndexError, MalformedMeshError

DEFAULT_TOLERANCE = 1e-10


class VolumetricMesh:
    """
    Base class for volumetric meshes.

    Stores a set of vertices in 2D or 3D space and a set of elements, each an
    ordered list of vertex indices, in flat contiguous buffers. Elements either
    all share one arity (uniform mode) or carry one arity each (mixed mode).
    The mesh is immutable once built: every buffer is copied from the caller's
    input and marked read-only.

    Parameters
    ----------
    vert_num : int
        Number of vertices
    vertices : array-like
        Vertex coordinates, flat (vert_num * dim,) or (vert_num, dim). Only the
        first ``vert_num * dim`` values are used.
    ele_num : int
        Number of elements
    elements : array-like of int
        Vertex indices of all elements, flat or nested, in element order. Only
        the first ``sum(arities)`` values are used.
    vert_per_ele : int or array-like of int
        Shared arity (uniform mode) or one arity per element (mixed mode)
    dim : int, optional
        Spatial dimension (2 or 3). Defaults to the class ``DIM`` or, if that is
        None, to the second axis of a 2D ``vertices`` array.
    dtype : np.dtype, optional
        Floating data type of the vertex buffer (default: np.float64)
    tol : float, optional
        Tolerance used by point containment tests (default: 1e-10)

    Attributes
    ----------
    vertices : ndarray
        Flat read-only vertex buffer, shape (vert_num * dim,)
    elements_flat : ndarray
        Flat read-only connectivity buffer, shape (total_slots,)
    arity : UniformArity or MixedArity
        Arity descriptor
    dim : int
        Spatial dimension

    Notes
    -----
    - Vertex indices stored in ``elements`` are not bounds-checked at
      construction; call ``validate()`` to check them explicitly. Queries
      raise MeshIndexError when they reach a bad reference.
    - Subclasses provide ``ele_volume``, ``contains_vertex`` and
      ``interpolation_weights`` for their element shapes.
    - Query methods never wrap negative indices.

    Examples
    --------
    >>> from pyVOLMESH.CPU import TriMesh
    >>> mesh = TriMesh(4, [0, 0, 1, 0, 0, 1, 1, 1], 2, [0, 1, 2, 1, 3, 2], 3)
    >>> mesh.ele_vert_pos(1, 0)
    array([1., 0.])
    """
    NAME = "Volumetric Mesh"
    DIM = None
    ARITY = None

    def __init__(self, vert_num, vertices, ele_num, elements, vert_per_ele, dim=None, dtype=np.float64, tol=DEFAULT_TOLERANCE):
        vert_num = _as_count(vert_num, "vert_num")
        ele_num = _as_count(ele_num, "ele_num")
        dim = self._resolve_dim(dim, vertices)

        if np.ndim(vert_per_ele) == 0:
            self.arity = UniformArity(ele_num, vert_per_ele)
        else:
            self.arity = MixedArity(ele_num, vert_per_ele)

        if self.ARITY is not None and np.any(self.arity.sizes() != self.ARITY):
            raise MalformedMeshError(f"{self.NAME} elements must have {self.ARITY} vertices.")

        if not np.issubdtype(np.dtype(dtype), np.floating):
            raise MalformedMeshError(f"Vertex dtype must be a floating type, got {np.dtype(dtype)}.")

        logger.info("Building %s: %d vertices, %d elements ...", self.NAME, vert_num, ele_num)

        flat_vertices = np.asarray(vertices, dtype=dtype).reshape(-1)
        if flat_vertices.size < vert_num * dim:
            raise MalformedMeshError(
                f"Vertex buffer has {flat_vertices.size} values, {vert_num * dim} required "
                f"for {vert_num} vertices in {dim}D."
            )

        flat_elements = _flatten_indices(elements)
        if flat_elements.size < self.arity.total_slots:
            raise MalformedMeshError(
                f"Element buffer has {flat_elements.size} indices, {self.arity.total_slots} required "
                f"for {ele_num} elements."
            )
        index_range = np.iinfo(np.int32)
        used_elements = flat_elements[:self.arity.total_slots]
        if used_elements.size > 0 and (used_elements.min() < index_range.min or used_elements.max() > index_range.max):
            raise MalformedMeshError(
                f"Element indices must fit in int32, got values in [{used_elements.min()}, {used_elements.max()}]."
            )

        self.dim = dim
        self.dtype = dtype
        self.tol = tol
        self._vert_num = vert_num
        self._ele_num = ele_num

        self.vertices = np.array(flat_vertices[:vert_num * dim], dtype=dtype)
        self.elements_flat = np.array(used_elements, dtype=np.int32)
        self.vertices.flags.writeable = False
        self.elements_flat.flags.writeable = False

        logger.debug("Arity mode: %s", self.arity)
        logger.info("Mesh built.")

    @classmethod
    def from_arrays(cls, nodes, elements, **kwargs):
        """
        Build a mesh from a node array and a connectivity array or list.

        Parameters
        ----------
        nodes : array-like
            Node coordinates, shape (n_nodes, spatial_dim)
        elements : list or ndarray
            Element connectivity. For uniform meshes: array of shape
            (n_elements, nodes_per_element). For heterogeneous meshes: list of
            index sequences with varying lengths.
        **kwargs
            Forwarded to the constructor (dtype, tol, ...)

        Examples
        --------
        >>> from pyVOLMESH.CPU import GeneralMesh
        >>> nodes = np.array([[0, 0], [1, 0], [0, 1], [1, 1]])
        >>> mesh = GeneralMesh.from_arrays(nodes, [[0, 1, 2], [1, 3, 2]])
        >>> mesh.is_uniform_element_type()
        True
        """
        nodes = np.asarray(nodes)
        if nodes.ndim != 2:
            raise MalformedMeshError(f"Nodes must have shape (n_nodes, dim), got {nodes.shape}.")

        if isinstance(elements, np.ndarray) and elements.ndim == 2:
            vert_per_ele = elements.shape[1]
        else:
            sizes = [len(element) for element in elements]
            if sizes and all(size == sizes[0] for size in sizes):
                vert_per_ele = sizes[0]
            elif not sizes and cls.ARITY is not None:
                vert_per_ele = cls.ARITY
            else:
                vert_per_ele = sizes

        return cls(nodes.shape[0], nodes, len(elements), elements, vert_per_ele, dim=nodes.shape[1], **kwargs)

    def _resolve_dim(self, dim, vertices):
        if dim is None:
            dim = self.DIM
        if dim is None:
            if np.ndim(vertices) != 2:
                raise MalformedMeshError("dim must be given when vertices are passed as a flat array.")
            dim = np.shape(vertices)[1]
        dim = as_integer(dim, "dim")
        if dim not in (2, 3):
            raise MalformedMeshError(f"Only 2D and 3D meshes are supported, got dim={dim}.")
        if self.DIM is not None and dim != self.DIM:
            raise MalformedMeshError(f"{self.NAME} is {self.DIM}D, got dim={dim}.")
        return dim

    def __repr__(self):
        mode = "uniform" if self.arity.is_uniform else "mixed"
        return f"{self.__class__.__name__}(vert_num={self._vert_num}, ele_num={self._ele_num}, dim={self.dim}, {mode})"

    def __len__(self):
        return self._ele_num

    @property
    def vert_num(self):
        """Number of vertices."""
        return self._vert_num

    @property
    def ele_num(self):
        """Number of elements."""
        return self._ele_num

    @property
    def nodes(self):
        """Read-only (vert_num, dim) view of the vertex buffer."""
        return self.vertices.reshape(self._vert_num, self.dim)

    def is_uniform_element_type(self):
        return self.arity.is_uniform

    def ele_vert_num(self, ele_idx):
        """Arity of element ``ele_idx``."""
        ele_idx = self._check_ele_idx(ele_idx)
        return self.arity.arity(ele_idx)

    def element_sizes(self):
        """Per-element arity array, shape (ele_num,)."""
        return self.arity.sizes()

    def ele_offset(self, ele_idx):
        """Start of element ``ele_idx`` in ``elements_flat``."""
        ele_idx = self._check_ele_idx(ele_idx)
        return self.arity.offset(ele_idx)

    def vert_pos(self, vert_idx):
        """
        Position of vertex ``vert_idx``.

        Returns
        -------
        ndarray
            Copy of the vertex coordinates, shape (dim,)
        """
        vert_idx = _check_index(vert_idx, self._vert_num, "Vertex")
        start = vert_idx * self.dim
        return self.vertices[start:start + self.dim].copy()

    def ele_vert_pos(self, ele_idx, vert_idx):
        """
        Position of the ``vert_idx``-th vertex of element ``ele_idx``.

        Vertices follow the element's local order as given at construction.
        """
        ele_idx = self._check_ele_idx(ele_idx)
        vert_idx = _check_index(vert_idx, self.arity.arity(ele_idx), "Local vertex")
        global_vert_idx = int(self.elements_flat[self.arity.offset(ele_idx) + vert_idx])
        return self.vert_pos(global_vert_idx)

    def ele_vert_indices(self, ele_idx):
        """Global vertex indices of element ``ele_idx`` (copy)."""
        ele_idx = self._check_ele_idx(ele_idx)
        start = self.arity.offset(ele_idx)
        return self.elements_flat[start:start + self.arity.arity(ele_idx)].copy()

    def ele_vert_positions(self, ele_idx):
        """Vertex positions of element ``ele_idx``, shape (arity, dim)."""
        indices = self.ele_vert_indices(ele_idx)
        if np.any(indices < 0) or np.any(indices >= self._vert_num):
            bad = indices[(indices < 0) | (indices >= self._vert_num)]
            raise MeshIndexError(
                f"Element {ele_idx} references vertex indices {bad} outside [0, {self._vert_num})."
            )
        return self.nodes[indices]

    def ele_centroid(self, ele_idx):
        """Mean of the vertex positions of element ``ele_idx``."""
        return np.mean(self.ele_vert_positions(ele_idx), axis=0)

    def connectivity(self):
        """
        Bounds-checked connectivity for batch queries.

        Returns an (ele_num, arity) index array for uniform meshes and the flat
        buffer for mixed meshes.

        Raises
        ------
        MeshIndexError
            If any element references a vertex index outside [0, vert_num)
        """
        bad_elements = self._bad_elements()
        if bad_elements.size > 0:
            raise MeshIndexError(
                f"Elements reference vertices outside [0, {self._vert_num}): {bad_elements}"
            )
        if self.arity.is_uniform:
            return self.elements_flat.reshape(self._ele_num, self.arity.vert_per_ele)
        return self.elements_flat

    def _bad_elements(self):
        bad_slots = (self.elements_flat < 0) | (self.elements_flat >= self._vert_num)
        owners = np.repeat(np.arange(self._ele_num), self.arity.sizes())
        return np.unique(owners[bad_slots])

    @property
    def centroids(self):
        """Element centroid coordinates, shape (ele_num, dim)."""
        if self._ele_num == 0:
            return np.zeros((0, self.dim), dtype=self.dtype)
        positions = self.nodes[self.connectivity()]
        if self.arity.is_uniform:
            return np.mean(positions, axis=1)
        sums = np.add.reduceat(positions, self.arity.ptr[:-1], axis=0)
        return sums / self.arity.vert_per_ele[:, np.newaxis]

    def ele_volume(self, ele_idx):
        raise NotImplementedError("ele_volume method must be implemented in subclasses.")

    def contains_vertex(self, ele_idx, pos):
        raise NotImplementedError("contains_vertex method must be implemented in subclasses.")

    def interpolation_weights(self, ele_idx, pos):
        raise NotImplementedError("interpolation_weights method must be implemented in subclasses.")

    def ele_volumes(self):
        """Volume of every element, shape (ele_num,)."""
        return np.array([self.ele_volume(i) for i in range(self._ele_num)], dtype=self.dtype)

    @property
    def volume(self):
        """Total mesh volume (sum of element volumes)."""
        return float(np.sum(self.ele_volumes()))

    def locate(self, pos):
        """
        Index of the first element containing ``pos``, or -1.

        Linear scan over all elements.
        """
        for ele_idx in range(self._ele_num):
            if self.contains_vertex(ele_idx, pos):
                return ele_idx
        return -1

    def interpolate(self, ele_idx, pos, nodal_values):
        """
        Interpolate a nodal field at ``pos`` inside element ``ele_idx``.

        Parameters
        ----------
        ele_idx : int
            Element index
        pos : array-like
            Query point, shape (dim,)
        nodal_values : array-like
            Field values per vertex, shape (vert_num,) or (vert_num, n_components)

        Returns
        -------
        float or ndarray
            Weighted sum of the element's nodal values
        """
        nodal_values = np.asarray(nodal_values)
        if nodal_values.shape[:1] != (self._vert_num,):
            raise ValueError(
                f"Nodal values must have {self._vert_num} rows, got shape {nodal_values.shape}."
            )
        weights = self.interpolation_weights(ele_idx, pos)
        return weights @ nodal_values[self.ele_vert_indices(ele_idx)]

    def validate(self):
        """
        Check that every element references existing vertices.

        Raises
        ------
        MalformedMeshError
            If any element references a vertex index outside [0, vert_num)
        """
        logger.info("Checking Mesh ...")
        bad_elements = self._bad_elements()
        if bad_elements.size > 0:
            raise MalformedMeshError(
                f"Elements reference vertices outside [0, {self._vert_num}): {bad_elements}"
            )
        n_used = np.unique(self.elements_flat).shape[0]
        if n_used != self._vert_num:
            logger.warning("Mesh has %d unreferenced vertices.", self._vert_num - n_used)
        logger.info("Mesh Checked!")

    def print_info(self):
        mode = "uniform" if self.arity.is_uniform else "mixed"
        logger.info("%s: %d vertices, %d elements, %dD, %s element type.",
                    self.NAME, self._vert_num, self._ele_num, self.dim, mode)

    def _check_ele_idx(self, ele_idx):
        return _check_index(ele_idx, self._ele_num, "Element")

    def _as_point(self, pos):
        pos = np.asarray(pos, dtype=np.float64).reshape(-1)
        if pos.shape[0] != self.dim:
            raise ValueError(f"Point must have {self.dim} coordinates, got {pos.shape[0]}.")
        return pos


def _check_index(idx, upper, kind):
    if isinstance(idx, (bool, np.bool_)) or not isinstance(idx, (int, np.integer)):
        raise TypeError(f"{kind} index must be an integer, got {type(idx).__name__}.")
    if idx < 0 or idx >= upper:
        raise MeshIndexError(f"{kind} index {idx} out of range [0, {upper}).")
    return int(idx)


def _as_count(value, name):
    value = as_integer(value, name)
    if value < 0:
        raise MalformedMeshError(f"{name} must be non-negative, got {value}.")
    return value


def _flatten_indices(elements):
    if isinstance(elements, np.ndarray):
        flat = elements.reshape(-1)
    else:
        elements = list(elements)
        if any(np.ndim(element) > 0 for element in elements):
            flat = np.concatenate([np.asarray(element).reshape(-1) for element in elements])
        else:
            flat = np.asarray(elements)
    if flat.size > 0 and not np.issubdtype(flat.dtype, np.integer):
        raise MalformedMeshError(f"Element indices must be integers, got dtype {flat.dtype}.")
    return flat
