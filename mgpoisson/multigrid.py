"""
Multigrid Solver for Poisson Equation

This module provides a multigrid solver for the Poisson equation with open boundaries.
It includes the Full Approximation Scheme (FAS) V-cycle, a linear (correction scheme) V-cycle,
the discretization dispatch and the outer iteration drivers.
"""

from typing import Callable, List
import logging
import numpy as np
import numpy.typing as npt
import pandas as pd
from mgpoisson import laplacian, mesh, utils
from mgpoisson.errors import NumericalDivergenceError


def check_finite(x: npt.NDArray[np.float32], field: str) -> None:
    """Raise NumericalDivergenceError if x contains NaN or infinity

    Parameters
    ----------
    x : npt.NDArray[np.float32]
        Field [N_cells_1d, N_cells_1d, N_cells_1d]
    field : str
        Name used in the error message

    Examples
    --------
    >>> import numpy as np
    >>> from mgpoisson.multigrid import check_finite
    >>> check_finite(np.zeros((4, 4, 4), dtype=np.float32), "u")
    """
    if not utils.all_finite(x):
        raise NumericalDivergenceError(field, x.shape[0])


def discretization(param: pd.Series) -> str:
    """Selected discretization of the Laplacian

    Parameters
    ----------
    param : pd.Series
        Parameter container

    Returns
    -------
    str
        Discretization name

    Raises
    ------
    NotImplementedError
        If the Mehrstellen discretization is requested

    Examples
    --------
    >>> import pandas as pd
    >>> from mgpoisson.multigrid import discretization
    >>> discretization(pd.Series({"use_mehrstellen": False}))
    '7-point'
    """
    if param.get("use_mehrstellen", False):
        raise NotImplementedError(
            "Mehrstellen discretization is not available, use the 7-point stencil"
        )
    return "7-point"


def operator(
    out: npt.NDArray[np.float32],
    x: npt.NDArray[np.float32],
    h: np.float32,
    param: pd.Series,
) -> None:
    """Apply the selected Laplacian discretization

    Parameters
    ----------
    out : npt.NDArray[np.float32]
        Operator [N_cells_1d, N_cells_1d, N_cells_1d]
    x : npt.NDArray[np.float32]
        Potential [N_cells_1d, N_cells_1d, N_cells_1d]
    h : np.float32
        Grid spacing
    param : pd.Series
        Parameter container
    """
    STENCIL = discretization(param)
    if "7-point" == STENCIL:
        laplacian.operator(out, x, h)
    else:
        raise NotImplementedError(f"{STENCIL=}")


def residual(
    out: npt.NDArray[np.float32],
    x: npt.NDArray[np.float32],
    b: npt.NDArray[np.float32],
    h: np.float32,
    param: pd.Series,
) -> None:
    """Defect of the selected discretization, out = b - Ax

    Parameters
    ----------
    out : npt.NDArray[np.float32]
        Residual [N_cells_1d, N_cells_1d, N_cells_1d]
    x : npt.NDArray[np.float32]
        Potential [N_cells_1d, N_cells_1d, N_cells_1d]
    b : npt.NDArray[np.float32]
        Right-hand side [N_cells_1d, N_cells_1d, N_cells_1d]
    h : np.float32
        Grid spacing
    param : pd.Series
        Parameter container
    """
    STENCIL = discretization(param)
    if "7-point" == STENCIL:
        laplacian.residual(out, x, b, h)
    else:
        raise NotImplementedError(f"{STENCIL=}")


def residual_error(
    x: npt.NDArray[np.float32],
    b: npt.NDArray[np.float32],
    h: np.float32,
    param: pd.Series,
) -> float:
    """Error on the residual \\
    residual = f_h - L(u_h)

    Parameters
    ----------
    x : npt.NDArray[np.float32]
        Potential [N_cells_1d, N_cells_1d, N_cells_1d]
    b : npt.NDArray[np.float32]
        Right-hand side [N_cells_1d, N_cells_1d, N_cells_1d]
    h : np.float32
        Grid spacing
    param : pd.Series
        Parameter container

    Returns
    -------
    float
        Error on residual: sqrt[Sum(residual^2)]
    """
    STENCIL = discretization(param)
    if "7-point" == STENCIL:
        return float(laplacian.residual_error(x, b, h))
    raise NotImplementedError(f"{STENCIL=}")


def smoothing(
    x: npt.NDArray[np.float32],
    b: npt.NDArray[np.float32],
    n_smoothing: int,
    h: np.float32,
    param: pd.Series,
) -> None:
    """Smooth field with several red-black Gauss-Seidel iterations \\
    of the selected discretization

    Parameters
    ----------
    x : npt.NDArray[np.float32]
        Potential [N_cells_1d, N_cells_1d, N_cells_1d]
    b : npt.NDArray[np.float32]
        Right-hand side [N_cells_1d, N_cells_1d, N_cells_1d]
    n_smoothing : int
        Number of smoothing iterations
    h : np.float32
        Grid spacing
    param : pd.Series
        Parameter container
    """
    STENCIL = discretization(param)
    if "7-point" == STENCIL:
        laplacian.smoothing(x, b, n_smoothing, h)
    else:
        raise NotImplementedError(f"{STENCIL=}")


def V_cycle_FAS(
    x: npt.NDArray[np.float32],
    b: npt.NDArray[np.float32],
    h: np.float32,
    param: pd.Series,
    nlevel: int = 0,
) -> None:
    """Multigrid V cycle with Full Approximation Scheme \\
    The coarse level solves for the restricted solution, with right-hand side \\
    tau = L_c(R(x)) + R(b - L(x))

    Parameters
    ----------
    x : npt.NDArray[np.float32]
        Potential (mutable) [N_cells_1d, N_cells_1d, N_cells_1d]
    b : npt.NDArray[np.float32]
        Right-hand side [N_cells_1d, N_cells_1d, N_cells_1d]
    h : np.float32
        Grid spacing at this level
    param : pd.Series
        Parameter container
    nlevel : int, optional
        Grid level (equal to zero at the finest level), by default 0

    Examples
    --------
    >>> import numpy as np
    >>> import pandas as pd
    >>> from mgpoisson.multigrid import V_cycle_FAS
    >>> x = np.zeros((16, 16, 16), dtype=np.float32)
    >>> b = np.random.rand(16, 16, 16).astype(np.float32)
    >>> param = pd.Series({"Npre": 4, "Npost": 4, "use_mehrstellen": False})
    >>> V_cycle_FAS(x, b, np.float32(1.0 / 16), param)
    """
    check_finite(b, "f")
    smoothing(x, b, param["Npre"], h, param)
    check_finite(x, "u")
    ncells_1d = x.shape[0]
    if ncells_1d == 1:
        return

    ncells_1d_coarse = ncells_1d // 2
    h_c = np.float32(2 * h)
    x_c = np.empty((ncells_1d_coarse, ncells_1d_coarse, ncells_1d_coarse), dtype=np.float32)
    x_corr_c = np.empty_like(x_c)
    res_c = np.empty_like(x_c)
    L_c = np.empty_like(x_c)
    res = np.empty_like(x)

    mesh.restriction(x_c, x)
    residual(res, x, b, h, param)
    mesh.restriction(res_c, res)
    operator(L_c, x_c, h_c, param)
    utils.add_vector_scalar_inplace(res_c, L_c, np.float32(1))
    check_finite(res_c, "tau")

    utils.injection(x_corr_c, x_c)
    V_cycle_FAS(x_corr_c, res_c, h_c, param, nlevel + 1)

    utils.add_vector_scalar_inplace(x_corr_c, x_c, np.float32(-1))
    mesh.add_prolongation(x, x_corr_c)
    smoothing(x, b, param["Npost"], h, param)
    check_finite(x, "u")


def V_cycle(
    x: npt.NDArray[np.float32],
    b: npt.NDArray[np.float32],
    h: np.float32,
    param: pd.Series,
    nlevel: int = 0,
) -> None:
    """Multigrid V cycle (linear correction scheme) \\
    The coarse level solves the error equation L_c(e) = R(b - L(x)) from a zero guess

    Parameters
    ----------
    x : npt.NDArray[np.float32]
        Potential (mutable) [N_cells_1d, N_cells_1d, N_cells_1d]
    b : npt.NDArray[np.float32]
        Right-hand side [N_cells_1d, N_cells_1d, N_cells_1d]
    h : np.float32
        Grid spacing at this level
    param : pd.Series
        Parameter container
    nlevel : int, optional
        Grid level (equal to zero at the finest level), by default 0

    Examples
    --------
    >>> import numpy as np
    >>> import pandas as pd
    >>> from mgpoisson.multigrid import V_cycle
    >>> x = np.zeros((16, 16, 16), dtype=np.float32)
    >>> b = np.random.rand(16, 16, 16).astype(np.float32)
    >>> param = pd.Series({"Npre": 4, "Npost": 4, "use_mehrstellen": False})
    >>> V_cycle(x, b, np.float32(1.0 / 16), param)
    """
    check_finite(b, "f")
    smoothing(x, b, param["Npre"], h, param)
    check_finite(x, "u")
    ncells_1d = x.shape[0]
    if ncells_1d == 1:
        return

    ncells_1d_coarse = ncells_1d // 2
    h_c = np.float32(2 * h)
    res_c = np.empty((ncells_1d_coarse, ncells_1d_coarse, ncells_1d_coarse), dtype=np.float32)
    x_corr_c = np.zeros_like(res_c)
    res = np.empty_like(x)

    residual(res, x, b, h, param)
    mesh.restriction(res_c, res)
    V_cycle(x_corr_c, res_c, h_c, param, nlevel + 1)

    mesh.add_prolongation(x, x_corr_c)
    smoothing(x, b, param["Npost"], h, param)
    check_finite(x, "u")


def iterate(
    cycle: Callable,
    x: npt.NDArray[np.float32],
    b: npt.NDArray[np.float32],
    h: np.float32,
    param: pd.Series,
) -> List[float]:
    """Outer iterations of a multigrid cycle at the finest level \\
    Stops after param["ncycles"] cycles, or earlier once the residual error is below param["tolerance"]. \\
    Not reaching the tolerance is not an error, the current solution is kept.

    Parameters
    ----------
    cycle : Callable
        V_cycle_FAS or V_cycle
    x : npt.NDArray[np.float32]
        Potential (mutable) [N_cells_1d, N_cells_1d, N_cells_1d]
    b : npt.NDArray[np.float32]
        Right-hand side [N_cells_1d, N_cells_1d, N_cells_1d]
    h : np.float32
        Finest grid spacing
    param : pd.Series
        Parameter container

    Returns
    -------
    List[float]
        Residual error before the first cycle and after each cycle
    """
    tolerance = param.get("tolerance", None)
    residual_err = residual_error(x, b, h, param)
    history = [residual_err]
    logging.info(f"Initial {residual_err=}")
    for ncycle in range(1, param["ncycles"] + 1):
        cycle(x, b, h, param)
        residual_err = residual_error(x, b, h, param)
        history.append(residual_err)
        logging.info(f"{ncycle=} {residual_err=} {tolerance=}")
        if tolerance is not None and residual_err < tolerance:
            break
    else:
        if tolerance is not None:
            logging.warning(
                f"Residual error {residual_err} above {tolerance=} after {param['ncycles']} cycles"
            )
    return history


@utils.time_me
def FAS(
    x: npt.NDArray[np.float32],
    b: npt.NDArray[np.float32],
    h: np.float32,
    param: pd.Series,
) -> List[float]:
    """Compute Multigrid with Full Approximation Scheme

    Parameters
    ----------
    x : npt.NDArray[np.float32]
        Potential (first guess, mutable) [N_cells_1d, N_cells_1d, N_cells_1d]
    b : npt.NDArray[np.float32]
        Right-hand side, boundary correction included [N_cells_1d, N_cells_1d, N_cells_1d]
    h : np.float32
        Finest grid spacing
    param : pd.Series
        Parameter container

    Returns
    -------
    List[float]
        Residual error history

    Examples
    --------
    >>> import numpy as np
    >>> import pandas as pd
    >>> from mgpoisson.multigrid import FAS
    >>> x = np.zeros((16, 16, 16), dtype=np.float32)
    >>> b = np.random.rand(16, 16, 16).astype(np.float32)
    >>> param = pd.Series({"Npre": 4, "Npost": 4, "ncycles": 10, "tolerance": 1e-3, "use_mehrstellen": False})
    >>> history = FAS(x, b, np.float32(1.0 / 16), param)
    """
    logging.info("Start Full-Approximation Storage Multigrid")
    return iterate(V_cycle_FAS, x, b, h, param)


@utils.time_me
def linear(
    x: npt.NDArray[np.float32],
    b: npt.NDArray[np.float32],
    h: np.float32,
    param: pd.Series,
) -> List[float]:
    """Compute linear Multigrid

    Parameters
    ----------
    x : npt.NDArray[np.float32]
        Potential (first guess, mutable) [N_cells_1d, N_cells_1d, N_cells_1d]
    b : npt.NDArray[np.float32]
        Right-hand side, boundary correction included [N_cells_1d, N_cells_1d, N_cells_1d]
    h : np.float32
        Finest grid spacing
    param : pd.Series
        Parameter container

    Returns
    -------
    List[float]
        Residual error history
    """
    logging.info("Start linear Multigrid")
    return iterate(V_cycle, x, b, h, param)
