class Shape:
    """
    Base class for element shape families in pyVOLMESH.

    Abstract interface defining the geometric capabilities every concrete
    element shape must provide to a mesh. A shape works purely on the nodal
    coordinates of one element, in the element's local vertex order.

    Methods
    -------
    supports(n_nodes, dim)
        True if an element with ``n_nodes`` vertices in ``dim`` dimensions is handled
    volume(x0s)
        Signed element measure (length, area or volume)
    contains(x0s, pos, tol)
        Point-in-element test
    weights(x0s, pos)
        Interpolation weights, one per element vertex

    Notes
    -----
    ``volume`` accepts:
    - Single element: x0s shape (n_nodes_per_element, spatial_dim)
    - Batch: x0s shape (n_elements, n_nodes_per_element, spatial_dim)

    ``contains`` and ``weights`` accept a single element only.

    Subclasses must implement all abstract methods.
    """
    def __init__(self):
        pass

    def supports(self, n_nodes, dim):
        raise NotImplementedError("supports method must be implemented in subclasses.")

    def volume(self, x0s):
        raise NotImplementedError("volume method must be implemented in subclasses.")

    def contains(self, x0s, pos, tol):
        raise NotImplementedError("contains method must be implemented in subclasses.")

    def weights(self, x0s, pos):
        raise NotImplementedError("weights method must be implemented in subclasses.")
