class MeshError(Exception):
    """Base class for every error raised by pyVOLMESH meshes."""


class MeshIndexError(MeshError, IndexError):
    """
    A vertex, element or local-vertex index falls outside its valid interval.

    Raised by query methods before any value is read, so no position or weight
    is ever produced for an invalid index.
    """


class MalformedMeshError(MeshError, ValueError):
    """
    Construction input is inconsistent with the declared counts.

    Examples are a vertex buffer shorter than ``vert_num * dim``, an arity list
    shorter than ``ele_num`` or an element arity smaller than one.
    """


class GeometryError(MeshError, ArithmeticError):
    """Element geometry is degenerate or a point could not be mapped into it."""
