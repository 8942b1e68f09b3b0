"""
This module defines functions for solving a discretized three-dimensional Poisson equation
with open boundaries, using the second-order 7-point stencil.

Neighbours outside the domain contribute nothing to the operator. The far-field
contribution of the boundary is folded once into the right-hand side (see electrostatics).
"""

import numpy as np
import numpy.typing as npt
from numba import njit, prange
from mgpoisson import mesh

# Laplacian written as:  m = (Sum_faces u_neighbour - 6 u_ijk) / h^2 = b


@njit(["f4(f4[:,:,::1], i8, i8, i8, i8)"], inline="always", fastmath=False)
def face_sum(x, i, j, k, ncells_1d):
    result = np.float32(0)
    if i > 0:
        result += x[k, j, i - 1]
    if i < ncells_1d - 1:
        result += x[k, j, i + 1]
    if j > 0:
        result += x[k, j - 1, i]
    if j < ncells_1d - 1:
        result += x[k, j + 1, i]
    if k > 0:
        result += x[k - 1, j, i]
    if k < ncells_1d - 1:
        result += x[k + 1, j, i]
    return result


@njit(["f4(f4[::1], i8, i8, i8, i8)"], inline="always", fastmath=False)
def face_sum_half(opposite, i, j, k, ncells_1d):
    # All six face neighbours have the opposite colour
    result = np.float32(0)
    if i > 0:
        result += opposite[mesh.index(ncells_1d, i - 1, j, k) >> 1]
    if i < ncells_1d - 1:
        result += opposite[mesh.index(ncells_1d, i + 1, j, k) >> 1]
    if j > 0:
        result += opposite[mesh.index(ncells_1d, i, j - 1, k) >> 1]
    if j < ncells_1d - 1:
        result += opposite[mesh.index(ncells_1d, i, j + 1, k) >> 1]
    if k > 0:
        result += opposite[mesh.index(ncells_1d, i, j, k - 1) >> 1]
    if k < ncells_1d - 1:
        result += opposite[mesh.index(ncells_1d, i, j, k + 1) >> 1]
    return result


@njit(["f4(f4[:,:,::1], i8, i8, i8, i8, f4, f4)"], inline="always", fastmath=False)
def compute_m(x, i, j, k, ncells_1d, invh2, six):
    return invh2 * (face_sum(x, i, j, k, ncells_1d) - six * x[k, j, i])


@njit(["void(f4[:,:,::1], f4[:,:,::1], f4)"], fastmath=False, cache=True, parallel=True)
def operator(out: npt.NDArray[np.float32], x: npt.NDArray[np.float32], h: np.float32) -> None:
    """Laplacian operator with open boundaries \\
    Lu = (Sum_faces u_neighbour - 6 u_ijk) / h^2, out-of-bounds neighbours are zero

    Parameters
    ----------
    out : npt.NDArray[np.float32]
        Laplacian(x) [N_cells_1d, N_cells_1d, N_cells_1d]
    x : npt.NDArray[np.float32]
        Potential [N_cells_1d, N_cells_1d, N_cells_1d]
    h : np.float32
        Grid spacing

    Example
    -------
    >>> import numpy as np
    >>> from mgpoisson.laplacian import operator
    >>> x = np.random.random((32, 32, 32)).astype(np.float32)
    >>> out = np.empty_like(x)
    >>> operator(out, x, np.float32(1.0 / 32))
    """
    ncells_1d = x.shape[0]
    invh2 = np.float32(1) / (h * h)
    six = np.float32(6)
    if ncells_1d == 1:
        out[0, 0, 0] = -six * invh2 * x[0, 0, 0]
        return
    for k in prange(ncells_1d):
        for j in range(ncells_1d):
            for i in range(ncells_1d):
                out[k, j, i] = compute_m(x, i, j, k, ncells_1d, invh2, six)


@njit(["void(f4[:,:,::1], f4[:,:,::1], f4[:,:,::1], f4)"], fastmath=False, cache=True, parallel=True)
def residual(
    out: npt.NDArray[np.float32],
    x: npt.NDArray[np.float32],
    b: npt.NDArray[np.float32],
    h: np.float32,
) -> None:
    """Residual of Laplacian operator \\
    residual = b - Ax

    Parameters
    ----------
    out : npt.NDArray[np.float32]
        Residual of Laplacian(x) [N_cells_1d, N_cells_1d, N_cells_1d]
    x : npt.NDArray[np.float32]
        Potential [N_cells_1d, N_cells_1d, N_cells_1d]
    b : npt.NDArray[np.float32]
        Right-hand side of Poisson equation [N_cells_1d, N_cells_1d, N_cells_1d]
    h : np.float32
        Grid spacing

    Example
    -------
    >>> import numpy as np
    >>> from mgpoisson.laplacian import residual
    >>> x = np.random.random((32, 32, 32)).astype(np.float32)
    >>> b = np.random.random((32, 32, 32)).astype(np.float32)
    >>> out = np.empty_like(x)
    >>> residual(out, x, b, np.float32(1.0 / 32))
    """
    ncells_1d = x.shape[0]
    invh2 = np.float32(1) / (h * h)
    six = np.float32(6)
    if ncells_1d == 1:
        out[0, 0, 0] = b[0, 0, 0] + six * invh2 * x[0, 0, 0]
        return
    for k in prange(ncells_1d):
        for j in range(ncells_1d):
            for i in range(ncells_1d):
                out[k, j, i] = b[k, j, i] - compute_m(x, i, j, k, ncells_1d, invh2, six)


@njit(["void(f4[:,:,::1], f4[:,:,::1], f4[:,:,::1], f4)"], fastmath=False, cache=True, parallel=True)
def minus_residual(
    out: npt.NDArray[np.float32],
    x: npt.NDArray[np.float32],
    b: npt.NDArray[np.float32],
    h: np.float32,
) -> None:
    """Negative residual of Laplacian operator \\
    minus_residual = Ax - b

    Parameters
    ----------
    out : npt.NDArray[np.float32]
        Negative residual [N_cells_1d, N_cells_1d, N_cells_1d]
    x : npt.NDArray[np.float32]
        Potential [N_cells_1d, N_cells_1d, N_cells_1d]
    b : npt.NDArray[np.float32]
        Right-hand side of Poisson equation [N_cells_1d, N_cells_1d, N_cells_1d]
    h : np.float32
        Grid spacing
    """
    ncells_1d = x.shape[0]
    invh2 = np.float32(1) / (h * h)
    six = np.float32(6)
    if ncells_1d == 1:
        out[0, 0, 0] = -six * invh2 * x[0, 0, 0] - b[0, 0, 0]
        return
    for k in prange(ncells_1d):
        for j in range(ncells_1d):
            for i in range(ncells_1d):
                out[k, j, i] = compute_m(x, i, j, k, ncells_1d, invh2, six) - b[k, j, i]


@njit(["f8(f4[:,:,::1], f4[:,:,::1], f4)"], fastmath=False, cache=True, parallel=True)
def residual_error(
    x: npt.NDArray[np.float32], b: npt.NDArray[np.float32], h: np.float32
) -> np.float64:
    """Error on the residual of Laplacian operator  \\
    residual = b - Ax  \\
    error = sqrt[sum(residual**2)] \\
    The sum is accumulated in double precision

    Parameters
    ----------
    x : npt.NDArray[np.float32]
        Potential [N_cells_1d, N_cells_1d, N_cells_1d]
    b : npt.NDArray[np.float32]
        Right-hand side of Poisson equation [N_cells_1d, N_cells_1d, N_cells_1d]
    h : np.float32
        Grid spacing

    Returns
    -------
    np.float64
        Residual error

    Example
    -------
    >>> import numpy as np
    >>> from mgpoisson.laplacian import residual_error
    >>> x = np.random.random((32, 32, 32)).astype(np.float32)
    >>> b = np.random.random((32, 32, 32)).astype(np.float32)
    >>> result = residual_error(x, b, np.float32(1.0 / 32))
    """
    ncells_1d = x.shape[0]
    invh2 = np.float32(1) / (h * h)
    six = np.float32(6)
    if ncells_1d == 1:
        tmp = np.float64(b[0, 0, 0] + six * invh2 * x[0, 0, 0])
        return np.sqrt(tmp * tmp)
    result = 0.0
    for k in prange(ncells_1d):
        for j in range(ncells_1d):
            for i in range(ncells_1d):
                tmp = np.float64(b[k, j, i] - compute_m(x, i, j, k, ncells_1d, invh2, six))
                result += tmp * tmp
    return np.sqrt(result)


@njit(["void(f4[::1], f4[::1], f4[:,:,::1], i8, f4)"], fastmath=False, cache=True, parallel=True)
def relax(
    own: npt.NDArray[np.float32],
    opposite: npt.NDArray[np.float32],
    b: npt.NDArray[np.float32],
    colour: int,
    h: np.float32,
) -> None:
    """Gauss-Seidel sweep over the cells of one colour \\
    Each cell solves its local 7-point equation with the latest opposite-colour values \\
    u_ijk = (Sum_faces u_neighbour - h^2 b_ijk) / 6

    Cells of the same colour never neighbour each other, so the update order within a sweep is irrelevant.

    Parameters
    ----------
    own : npt.NDArray[np.float32]
        Cells of the swept colour (mutable) [N_cells/2]
    opposite : npt.NDArray[np.float32]
        Cells of the other colour [N_cells/2]
    b : npt.NDArray[np.float32]
        Right-hand side of Poisson equation [N_cells_1d, N_cells_1d, N_cells_1d]
    colour : int
        0 for red, 1 for black
    h : np.float32
        Grid spacing

    Example
    -------
    >>> import numpy as np
    >>> from mgpoisson.laplacian import relax
    >>> red = np.zeros(256, dtype=np.float32)
    >>> black = np.zeros(256, dtype=np.float32)
    >>> b = np.random.random((8, 8, 8)).astype(np.float32)
    >>> relax(red, black, b, 0, np.float32(0.25))
    >>> relax(black, red, b, 1, np.float32(0.25))
    """
    ncells_1d = b.shape[0]
    h2 = h * h
    invsix = np.float32(1.0 / 6)
    for k in prange(ncells_1d):
        for j in range(ncells_1d):
            for i in range((colour + j + k) & 1, ncells_1d, 2):
                address = mesh.index(ncells_1d, i, j, k)
                own[address >> 1] = invsix * (
                    face_sum_half(opposite, i, j, k, ncells_1d) - h2 * b[k, j, i]
                )


def smoothing(
    x: npt.NDArray[np.float32],
    b: npt.NDArray[np.float32],
    n_smoothing: int,
    h: np.float32,
) -> None:
    """Smooth field with several red-black Gauss-Seidel iterations \\
    One iteration is a red sweep followed by a black sweep. \\
    The field is split into colour buffers once and merged back at the end.

    Parameters
    ----------
    x : npt.NDArray[np.float32]
        Potential [N_cells_1d, N_cells_1d, N_cells_1d]
    b : npt.NDArray[np.float32]
        Right-hand side of Poisson equation [N_cells_1d, N_cells_1d, N_cells_1d]
    n_smoothing : int
        Number of smoothing iterations
    h : np.float32
        Grid spacing

    Example
    -------
    >>> import numpy as np
    >>> from mgpoisson.laplacian import smoothing
    >>> x = np.random.random((32, 32, 32)).astype(np.float32)
    >>> b = np.random.random((32, 32, 32)).astype(np.float32)
    >>> smoothing(x, b, 4, np.float32(1.0 / 32))
    """
    ncells_1d = x.shape[0]
    if ncells_1d == 1:
        # No neighbours: the local equation is the whole system
        x[0, 0, 0] = np.float32(-h * h / 6) * b[0, 0, 0]
        return
    n_red, n_black = mesh.half_sizes(ncells_1d)
    red = np.empty(n_red, dtype=np.float32)
    black = np.empty(n_black, dtype=np.float32)
    mesh.split(red, black, x)
    for _ in range(n_smoothing):
        relax(red, black, b, 0, h)
        relax(black, red, b, 1, h)
    mesh.merge(x, red, black)
