import numpy as np
import logging
logger = logging.getLogger(__name__)
from ._errors import MalformedMeshError
from ...core.CPU._geom import element_pointers


class ElementArity:
    """
    Base class for the element arity descriptor of a volumetric mesh.

    The descriptor tells how many vertices every element references and where
    the element's slice starts in the flat connectivity buffer. It is selected
    once at construction and never reinterpreted.

    Attributes
    ----------
    ele_num : int
        Number of elements described
    total_slots : int
        Length of the flat connectivity buffer (sum of all arities)
    is_uniform : bool
        True if every element shares one arity

    Methods
    -------
    arity(ele_idx)
        Number of vertices of element ``ele_idx``
    offset(ele_idx)
        Start of element ``ele_idx`` in the flat connectivity buffer
    sizes()
        Per-element arity array, shape (ele_num,)

    Notes
    -----
    Index arguments are assumed to be validated by the owning mesh.
    """
    is_uniform = False

    def __init__(self, ele_num):
        self.ele_num = ele_num
        self.total_slots = 0

    def arity(self, ele_idx):
        raise NotImplementedError("arity method must be implemented in subclasses.")

    def offset(self, ele_idx):
        raise NotImplementedError("offset method must be implemented in subclasses.")

    def sizes(self):
        raise NotImplementedError("sizes method must be implemented in subclasses.")


class UniformArity(ElementArity):
    """
    All elements share ``vert_per_ele`` vertices.

    Element ``i`` starts at ``i * vert_per_ele`` in the flat buffer.

    Examples
    --------
    >>> arity = UniformArity(ele_num=2, vert_per_ele=3)
    >>> arity.offset(1), arity.total_slots
    (3, 6)
    """
    is_uniform = True

    def __init__(self, ele_num, vert_per_ele):
        super().__init__(ele_num)
        vert_per_ele = as_integer(vert_per_ele, "Vertices per element")
        if vert_per_ele < 1:
            raise MalformedMeshError(f"Vertices per element must be at least 1, got {vert_per_ele}.")
        self.vert_per_ele = vert_per_ele
        self.total_slots = ele_num * vert_per_ele

    def __repr__(self):
        return f"UniformArity(ele_num={self.ele_num}, vert_per_ele={self.vert_per_ele})"

    def arity(self, ele_idx):
        return self.vert_per_ele

    def offset(self, ele_idx):
        return ele_idx * self.vert_per_ele

    def sizes(self):
        return np.full(self.ele_num, self.vert_per_ele, dtype=np.int32)


class MixedArity(ElementArity):
    """
    Every element carries its own arity.

    The per-element list is copied and a prefix-offset table ``ptr`` of length
    ``ele_num + 1`` is cached, so ``offset`` is a single lookup instead of a
    prefix sum per query.

    Parameters
    ----------
    ele_num : int
        Number of elements
    vert_per_ele_list : array-like of int
        Arity of each element. Only the first ``ele_num`` entries are used.

    Examples
    --------
    >>> arity = MixedArity(ele_num=2, vert_per_ele_list=[3, 4])
    >>> arity.offset(1), arity.total_slots
    (3, 7)
    """
    def __init__(self, ele_num, vert_per_ele_list):
        super().__init__(ele_num)
        sizes = np.asarray(vert_per_ele_list).reshape(-1)
        if sizes.size < ele_num:
            raise MalformedMeshError(
                f"Arity list has {sizes.size} entries but the mesh declares {ele_num} elements."
            )
        if sizes.size > 0 and not np.issubdtype(sizes.dtype, np.integer):
            raise MalformedMeshError(f"Arity list must hold integers, got dtype {sizes.dtype}.")

        self.vert_per_ele = np.array(sizes[:ele_num], dtype=np.int32)
        if np.any(self.vert_per_ele < 1):
            bad = np.where(self.vert_per_ele < 1)[0]
            raise MalformedMeshError(f"Elements must have at least 1 vertex, offending elements: {bad}")

        self.ptr = element_pointers(self.vert_per_ele)
        self.total_slots = int(self.ptr[-1])

        self.vert_per_ele.flags.writeable = False
        self.ptr.flags.writeable = False
        logger.debug("Mixed arity: %d elements, %d slots", ele_num, self.total_slots)

    def __repr__(self):
        return f"MixedArity(ele_num={self.ele_num}, total_slots={self.total_slots})"

    def arity(self, ele_idx):
        return int(self.vert_per_ele[ele_idx])

    def offset(self, ele_idx):
        return int(self.ptr[ele_idx])

    def sizes(self):
        return self.vert_per_ele.copy()


def as_integer(value, name):
    """Exact integer value of a scalar count; floats and bools are rejected."""
    scalar = np.asarray(value)
    if scalar.ndim != 0 or not np.issubdtype(scalar.dtype, np.integer):
        raise MalformedMeshError(f"{name} must be an integer, got {value!r}.")
    return int(scalar)
