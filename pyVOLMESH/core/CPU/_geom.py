import numpy as np
from numba import njit

NEWTON_MAX_ITER = 50
NEWTON_TOL = 1e-12

# Natural coordinates of the corner nodes, counter-clockwise
QUAD_NODES = np.array([
    [-1.0, -1.0],
    [+1.0, -1.0],
    [+1.0, +1.0],
    [-1.0, +1.0],
])

# Bottom face counter-clockwise, then top face counter-clockwise
HEX_NODES = np.array([
    [-1.0, -1.0, -1.0],
    [+1.0, -1.0, -1.0],
    [+1.0, +1.0, -1.0],
    [-1.0, +1.0, -1.0],
    [-1.0, -1.0, +1.0],
    [+1.0, -1.0, +1.0],
    [+1.0, +1.0, +1.0],
    [-1.0, +1.0, +1.0],
])


@njit(cache=True)
def element_pointers(sizes):
    """
    Prefix-offset table for flat element storage.

    ptr[0] = 0 and ptr[i + 1] = ptr[i] + sizes[i], so element i occupies
    ptr[i]:ptr[i + 1] in the flat connectivity buffer.
    """
    ptr = np.zeros(sizes.shape[0] + 1, dtype=np.int64)
    for i in range(sizes.shape[0]):
        ptr[i + 1] = ptr[i] + sizes[i]
    return ptr


@njit(cache=True)
def _solve2(a00, a01, a10, a11, b0, b1):
    det = a00 * a11 - a01 * a10
    ok = det != 0.0
    if not ok:
        return 0.0, 0.0, ok
    return (b0 * a11 - a01 * b1) / det, (a00 * b1 - b0 * a10) / det, ok


@njit(cache=True)
def _det3(a):
    return (
        a[0, 0] * (a[1, 1] * a[2, 2] - a[1, 2] * a[2, 1])
        - a[0, 1] * (a[1, 0] * a[2, 2] - a[1, 2] * a[2, 0])
        + a[0, 2] * (a[1, 0] * a[2, 1] - a[1, 1] * a[2, 0])
    )


@njit(cache=True)
def _solve3(a, b):
    """Cramer's rule for a 3x3 system. Returns (x, ok)."""
    x = np.zeros(3)
    det = _det3(a)
    ok = det != 0.0
    if not ok:
        return x, ok
    for k in range(3):
        m = a.copy()
        for i in range(3):
            m[i, k] = b[i]
        x[k] = _det3(m) / det
    return x, ok


@njit(cache=True)
def triangle_weights(x0s, p):
    """
    Barycentric coordinates of point p in the triangle x0s (3, 2).

    Returns the weights and a flag that is False for a degenerate triangle.
    """
    w = np.zeros(3)
    l1, l2, ok = _solve2(
        x0s[1, 0] - x0s[0, 0], x0s[2, 0] - x0s[0, 0],
        x0s[1, 1] - x0s[0, 1], x0s[2, 1] - x0s[0, 1],
        p[0] - x0s[0, 0], p[1] - x0s[0, 1],
    )
    w[0] = 1.0 - l1 - l2
    w[1] = l1
    w[2] = l2
    return w, ok


@njit(cache=True)
def tetrahedron_weights(x0s, p):
    """
    Barycentric coordinates of point p in the tetrahedron x0s (4, 3).

    Returns the weights and a flag that is False for a degenerate tetrahedron.
    """
    a = np.empty((3, 3))
    b = np.empty(3)
    for i in range(3):
        for k in range(3):
            a[i, k] = x0s[k + 1, i] - x0s[0, i]
        b[i] = p[i] - x0s[0, i]
    lam, ok = _solve3(a, b)
    w = np.zeros(4)
    w[0] = 1.0 - lam[0] - lam[1] - lam[2]
    w[1] = lam[0]
    w[2] = lam[1]
    w[3] = lam[2]
    return w, ok


@njit(cache=True)
def quad_shape_functions(xi):
    """Bilinear shape functions N (4,) and derivatives dN/dxi (4, 2) at xi."""
    n = np.empty(4)
    dn = np.empty((4, 2))
    for i in range(4):
        s = QUAD_NODES[i, 0]
        t = QUAD_NODES[i, 1]
        n[i] = 0.25 * (1.0 + s * xi[0]) * (1.0 + t * xi[1])
        dn[i, 0] = 0.25 * s * (1.0 + t * xi[1])
        dn[i, 1] = 0.25 * t * (1.0 + s * xi[0])
    return n, dn


@njit(cache=True)
def hex_shape_functions(xi):
    """Trilinear shape functions N (8,) and derivatives dN/dxi (8, 3) at xi."""
    n = np.empty(8)
    dn = np.empty((8, 3))
    for i in range(8):
        s = HEX_NODES[i, 0]
        t = HEX_NODES[i, 1]
        u = HEX_NODES[i, 2]
        fs = 1.0 + s * xi[0]
        ft = 1.0 + t * xi[1]
        fu = 1.0 + u * xi[2]
        n[i] = 0.125 * fs * ft * fu
        dn[i, 0] = 0.125 * s * ft * fu
        dn[i, 1] = 0.125 * t * fs * fu
        dn[i, 2] = 0.125 * u * fs * ft
    return n, dn


@njit(cache=True)
def quad_natural_coords(x0s, p, max_iter=NEWTON_MAX_ITER, tol=NEWTON_TOL):
    """
    Invert the bilinear map of the quadrilateral x0s (4, 2) at point p.

    Newton iteration from the element center. Returns (xi, converged).
    """
    xi = np.zeros(2)
    converged = False
    for _ in range(max_iter):
        n, dn = quad_shape_functions(xi)
        r0 = -p[0]
        r1 = -p[1]
        j00 = 0.0
        j01 = 0.0
        j10 = 0.0
        j11 = 0.0
        for i in range(4):
            r0 += n[i] * x0s[i, 0]
            r1 += n[i] * x0s[i, 1]
            j00 += x0s[i, 0] * dn[i, 0]
            j01 += x0s[i, 0] * dn[i, 1]
            j10 += x0s[i, 1] * dn[i, 0]
            j11 += x0s[i, 1] * dn[i, 1]
        d0, d1, ok = _solve2(j00, j01, j10, j11, -r0, -r1)
        if not ok:
            break
        xi[0] += d0
        xi[1] += d1
        if abs(d0) + abs(d1) < tol:
            converged = True
            break
    return xi, converged


@njit(cache=True)
def hex_natural_coords(x0s, p, max_iter=NEWTON_MAX_ITER, tol=NEWTON_TOL):
    """
    Invert the trilinear map of the hexahedron x0s (8, 3) at point p.

    Newton iteration from the element center. Returns (xi, converged).
    """
    xi = np.zeros(3)
    converged = False
    for _ in range(max_iter):
        n, dn = hex_shape_functions(xi)
        r = np.empty(3)
        jac = np.zeros((3, 3))
        for a in range(3):
            r[a] = p[a]
            for i in range(8):
                r[a] -= n[i] * x0s[i, a]
                for b in range(3):
                    jac[a, b] += x0s[i, a] * dn[i, b]
        d, ok = _solve3(jac, r)
        if not ok:
            break
        step = 0.0
        for a in range(3):
            xi[a] += d[a]
            step += abs(d[a])
        if step < tol:
            converged = True
            break
    return xi, converged
