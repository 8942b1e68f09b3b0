"""
This module contains the grid addressing and grid transfer functions
such as red-black splitting, restriction and prolongation.
"""

import numpy as np
import numpy.typing as npt
from numba import njit, prange


@njit(["i8(i8, i8, i8, i8)"], inline="always", fastmath=False)
def index(ncells_1d, x, y, z):
    return (z * ncells_1d + y) * ncells_1d + x


@njit(inline="always", fastmath=False)
def coordinates(ncells_1d, address):
    x = address % ncells_1d
    y = (address // ncells_1d) % ncells_1d
    z = address // (ncells_1d * ncells_1d)
    return x, y, z


@njit(["i8(i8, i8, i8)"], inline="always", fastmath=False)
def parity(x, y, z):
    return (x ^ y ^ z) & 1


def half_sizes(ncells_1d: int) -> tuple:
    """Lengths of the red and black halves of a level

    Parameters
    ----------
    ncells_1d : int
        Number of cells along one direction

    Returns
    -------
    tuple
        (red length, black length)

    Examples
    --------
    >>> from mgpoisson.mesh import half_sizes
    >>> half_sizes(8)
    (256, 256)
    >>> half_sizes(1)
    (1, 0)
    """
    ncells = ncells_1d**3
    return (ncells + 1) // 2, ncells // 2


@njit(["void(f4[::1], f4[::1], f4[:,:,::1])"], fastmath=False, cache=True, parallel=True)
def split(
    red: npt.NDArray[np.float32],
    black: npt.NDArray[np.float32],
    x: npt.NDArray[np.float32],
) -> None:
    """Split field into red and black halves \\
    A cell (x,y,z) is red if (x ^ y ^ z) & 1 == 0, black otherwise. \\
    Both halves are addressed by linear_address >> 1

    Parameters
    ----------
    red : npt.NDArray[np.float32]
        Red cells [N_cells/2]
    black : npt.NDArray[np.float32]
        Black cells [N_cells/2]
    x : npt.NDArray[np.float32]
        Field [N_cells_1d, N_cells_1d, N_cells_1d]

    Examples
    --------
    >>> import numpy as np
    >>> from mgpoisson.mesh import split
    >>> x = np.random.rand(8, 8, 8).astype(np.float32)
    >>> red = np.empty(256, dtype=np.float32)
    >>> black = np.empty(256, dtype=np.float32)
    >>> split(red, black, x)
    """
    ncells_1d = x.shape[0]
    for k in prange(ncells_1d):
        for j in range(ncells_1d):
            for i in range(ncells_1d):
                address = index(ncells_1d, i, j, k)
                if parity(i, j, k) == 0:
                    red[address >> 1] = x[k, j, i]
                else:
                    black[address >> 1] = x[k, j, i]


@njit(["void(f4[:,:,::1], f4[::1], f4[::1])"], fastmath=False, cache=True, parallel=True)
def merge(
    x: npt.NDArray[np.float32],
    red: npt.NDArray[np.float32],
    black: npt.NDArray[np.float32],
) -> None:
    """Merge red and black halves back into a field

    Parameters
    ----------
    x : npt.NDArray[np.float32]
        Field [N_cells_1d, N_cells_1d, N_cells_1d]
    red : npt.NDArray[np.float32]
        Red cells [N_cells/2]
    black : npt.NDArray[np.float32]
        Black cells [N_cells/2]

    Examples
    --------
    >>> import numpy as np
    >>> from mgpoisson.mesh import merge
    >>> x = np.empty((8, 8, 8), dtype=np.float32)
    >>> red = np.random.rand(256).astype(np.float32)
    >>> black = np.random.rand(256).astype(np.float32)
    >>> merge(x, red, black)
    """
    ncells_1d = x.shape[0]
    for k in prange(ncells_1d):
        for j in range(ncells_1d):
            for i in range(ncells_1d):
                address = index(ncells_1d, i, j, k)
                if parity(i, j, k) == 0:
                    x[k, j, i] = red[address >> 1]
                else:
                    x[k, j, i] = black[address >> 1]


@njit(["void(f4[:,:,::1], f4[:,:,::1])"], fastmath=False, cache=True, parallel=True)
def restriction(
    out: npt.NDArray[np.float32],
    x: npt.NDArray[np.float32],
) -> None:
    """Restriction operator \\
    Full weighting: every coarse cell is the average of its 8 children.

    Parameters
    ----------
    out : npt.NDArray[np.float32]
        Coarse field [N_cells_1d/2, N_cells_1d/2, N_cells_1d/2]
    x : npt.NDArray[np.float32]
        Field [N_cells_1d, N_cells_1d, N_cells_1d]

    Examples
    --------
    >>> import numpy as np
    >>> from mgpoisson.mesh import restriction
    >>> x = np.random.rand(32, 32, 32).astype(np.float32)
    >>> out = np.empty((16, 16, 16), dtype=np.float32)
    >>> restriction(out, x)
    """
    inveight = np.float32(0.125)
    ncells_1d_coarse = out.shape[0]
    for k in prange(ncells_1d_coarse):
        kk = 2 * k
        kkp1 = kk + 1
        for j in range(ncells_1d_coarse):
            jj = 2 * j
            jjp1 = jj + 1
            for i in range(ncells_1d_coarse):
                ii = 2 * i
                iip1 = ii + 1
                # Pairwise sum, exact for blocks of equal values
                out[k, j, i] = inveight * (
                    ((x[kk, jj, ii] + x[kk, jj, iip1]) + (x[kk, jjp1, ii] + x[kk, jjp1, iip1]))
                    + ((x[kkp1, jj, ii] + x[kkp1, jj, iip1]) + (x[kkp1, jjp1, ii] + x[kkp1, jjp1, iip1]))
                )


@njit(["void(f4[:,:,::1], f4[:,:,::1])"], fastmath=False, cache=True, parallel=True)
def prolongation(
    out: npt.NDArray[np.float32],
    x: npt.NDArray[np.float32],
) -> None:
    """Prolongation operator (zeroth order) \\
    Interpolate field to finer level by straight injection

    Parameters
    ----------
    out : npt.NDArray[np.float32]
        Finer field [2*N_cells_1d, 2*N_cells_1d, 2*N_cells_1d]
    x : npt.NDArray[np.float32]
        Field [N_cells_1d, N_cells_1d, N_cells_1d]

    Examples
    --------
    >>> import numpy as np
    >>> from mgpoisson.mesh import prolongation
    >>> x = np.random.rand(16, 16, 16).astype(np.float32)
    >>> out = np.empty((32, 32, 32), dtype=np.float32)
    >>> prolongation(out, x)
    """
    ncells_1d = x.shape[0]
    for k in prange(ncells_1d):
        kk = 2 * k
        kkp1 = kk + 1
        for j in range(ncells_1d):
            jj = 2 * j
            jjp1 = jj + 1
            for i in range(ncells_1d):
                ii = 2 * i
                iip1 = ii + 1
                out[kk, jj, ii] = out[kk, jj, iip1] = out[kk, jjp1, ii] = (
                    out[kk, jjp1, iip1]
                ) = out[kkp1, jj, ii] = out[kkp1, jj, iip1] = out[
                    kkp1, jjp1, ii
                ] = out[
                    kkp1, jjp1, iip1
                ] = x[
                    k, j, i
                ]


@njit(["void(f4[:,:,::1], f4[:,:,::1])"], fastmath=False, cache=True, parallel=True)
def add_prolongation(
    y: npt.NDArray[np.float32],
    x: npt.NDArray[np.float32],
) -> None:
    """Add prolongation operator \\
    Inject coarse field to finer level and add to array

    y += P(x)

    Parameters
    ----------
    y : npt.NDArray[np.float32]
        Field [N_cells_1d, N_cells_1d, N_cells_1d]
    x : npt.NDArray[np.float32]
        Field at coarser level [N_cells_1d/2, N_cells_1d/2, N_cells_1d/2]

    Examples
    --------
    >>> import numpy as np
    >>> from mgpoisson.mesh import add_prolongation
    >>> y = np.zeros((32, 32, 32), dtype=np.float32)
    >>> x = np.random.rand(16, 16, 16).astype(np.float32)
    >>> add_prolongation(y, x)
    """
    ncells_1d = x.shape[0]
    for k in prange(ncells_1d):
        kk = 2 * k
        kkp1 = kk + 1
        for j in range(ncells_1d):
            jj = 2 * j
            jjp1 = jj + 1
            for i in range(ncells_1d):
                ii = 2 * i
                iip1 = ii + 1
                tmp = x[k, j, i]
                y[kk, jj, ii] += tmp
                y[kk, jj, iip1] += tmp
                y[kk, jjp1, ii] += tmp
                y[kk, jjp1, iip1] += tmp
                y[kkp1, jj, ii] += tmp
                y[kkp1, jj, iip1] += tmp
                y[kkp1, jjp1, ii] += tmp
                y[kkp1, jjp1, iip1] += tmp
