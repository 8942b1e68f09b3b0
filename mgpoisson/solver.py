"""
Poisson Equation Solvers

This module defines the entry points of the package: configuration checks,
the multigrid solve of Laplacian(u) = b on a cubic power-of-two grid with open boundaries,
a standalone residual norm and a sparse direct solve used for cross-validation.
"""

from typing import Callable, Dict, Optional, Tuple, Union
import logging
import numpy as np
import numpy.typing as npt
import pandas as pd
import scipy.sparse
import scipy.sparse.linalg
from mgpoisson import electrostatics, laplacian, multigrid, utils
from mgpoisson.errors import ConfigurationError

DEFAULT_PARAM = {
    "Npre": 4,
    "Npost": 4,
    "use_mehrstellen": False,
    "multigrid_scheme": "FAS",
    "ghost_correction": True,
}


def check_grid(b: npt.NDArray, h: float) -> int:
    """Check the grid layout and spacing

    Parameters
    ----------
    b : npt.NDArray
        Field, flat [N_cells_1d^3] or cubic [N_cells_1d, N_cells_1d, N_cells_1d]
    h : float
        Grid spacing

    Returns
    -------
    int
        Number of cells along one direction

    Raises
    ------
    ConfigurationError
        If the grid is not cubic, its side is not a power of two larger than one, or h <= 0

    Examples
    --------
    >>> import numpy as np
    >>> from mgpoisson.solver import check_grid
    >>> check_grid(np.zeros(512), 0.25)
    8
    """
    if b.ndim == 1:
        ncells_1d = int(round(b.size ** (1.0 / 3)))
        if ncells_1d**3 != b.size:
            raise ConfigurationError(f"{b.size=} is not a cube")
    elif b.ndim == 3 and b.shape[0] == b.shape[1] == b.shape[2]:
        ncells_1d = b.shape[0]
    else:
        raise ConfigurationError(f"{b.shape=}, should be [N] or [N, N, N]")
    if ncells_1d < 2 or not utils.is_power_of_two(ncells_1d):
        raise ConfigurationError(f"{ncells_1d=}, should be a power of two >= 2")
    if not np.isfinite(h) or h <= 0:
        raise ConfigurationError(f"{h=}, should be positive")
    return ncells_1d


def check_param(param: Union[Dict, pd.Series, None], ncells_1d: int) -> pd.Series:
    """Fill defaults and check solver parameters

    Parameters
    ----------
    param : Union[Dict, pd.Series, None]
        Parameter container
    ncells_1d : int
        Number of cells along one direction

    Returns
    -------
    pd.Series
        Parameter container with defaults filled in

    Raises
    ------
    ConfigurationError
        If a pass count, the cycle budget or the tolerance is out of range, or the scheme is unknown

    Examples
    --------
    >>> from mgpoisson.solver import check_param
    >>> param = check_param({"tolerance": 1e-3}, 8)
    >>> int(param["ncycles"])
    9
    """
    if param is None:
        param = pd.Series(dtype=object)
    elif isinstance(param, Dict):
        param = pd.Series(param, dtype=object)
    elif isinstance(param, pd.Series):
        param = param.astype(object)
    else:
        raise ConfigurationError(f"{type(param)=}, should be a dictionnary or a Pandas Series")

    for key, value in DEFAULT_PARAM.items():
        if key not in param.index or param[key] is None:
            param[key] = value
    if "ncycles" not in param.index or param["ncycles"] is None:
        # log2(N)^2 cycles are enough for the residual to reach round-off
        nlevels = int(ncells_1d).bit_length() - 1
        param["ncycles"] = nlevels * nlevels

    for key in ("Npre", "Npost", "ncycles"):
        try:
            is_count = int(param[key]) == param[key] and param[key] >= 1
        except (TypeError, ValueError):
            is_count = False
        if not is_count:
            raise ConfigurationError(f"{param[key]=} for {key}, should be an integer >= 1")
        param[key] = int(param[key])
    if "tolerance" in param.index and param["tolerance"] is not None:
        if not param["tolerance"] > 0:
            raise ConfigurationError(f"{param['tolerance']=}, should be positive")
        param["tolerance"] = float(param["tolerance"])
    scheme = str(param["multigrid_scheme"]).casefold()
    if scheme not in ("fas", "linear"):
        raise ConfigurationError(f"{param['multigrid_scheme']=}, should be 'FAS' or 'linear'")
    param["use_mehrstellen"] = bool(param["use_mehrstellen"])
    param["ghost_correction"] = bool(param["ghost_correction"])
    return param


def residual_norm(u: npt.NDArray, f: npt.NDArray, h: float) -> float:
    """Residual norm of a candidate solution \\
    sqrt[Sum((f - Lu)^2)], accumulated in double precision

    Parameters
    ----------
    u : npt.NDArray
        Potential, flat [N_cells_1d^3] or cubic [N_cells_1d, N_cells_1d, N_cells_1d]
    f : npt.NDArray
        Right-hand side, same layout as u
    h : float
        Grid spacing

    Returns
    -------
    float
        Residual norm

    Raises
    ------
    ConfigurationError
        If f is not a valid grid or u does not have the size of f

    Examples
    --------
    >>> import numpy as np
    >>> from mgpoisson.solver import residual_norm
    >>> norm = residual_norm(np.zeros(512), np.ones(512), 0.25)
    """
    f = np.asarray(f)
    ncells_1d = check_grid(f, h)
    if np.size(u) != f.size:
        raise ConfigurationError(f"{np.size(u)=}, should be {f.size}")
    shape = (ncells_1d, ncells_1d, ncells_1d)
    u = np.ascontiguousarray(np.reshape(u, shape), dtype=np.float32)
    f = np.ascontiguousarray(np.reshape(f, shape), dtype=np.float32)
    residual = np.empty_like(f)
    laplacian.residual(residual, u, f, np.float32(h))
    return float(utils.norm(residual))


@utils.time_me
def solve(
    b: npt.NDArray,
    h: float,
    param: Union[Dict, pd.Series, None] = None,
    charge_model: Optional[electrostatics.PointCharge] = None,
    x: Optional[npt.NDArray] = None,
    ghost: Callable = electrostatics.ghost_contribution,
) -> Tuple[npt.NDArray[np.float32], float]:
    """Solve Laplacian(u) = b with multigrid

    Parameters
    ----------
    b : npt.NDArray
        Right-hand side, flat [N_cells_1d^3] or cubic [N_cells_1d, N_cells_1d, N_cells_1d]
    h : float
        Finest grid spacing
    param : Union[Dict, pd.Series, None], optional
        Parameter container, by default None
    charge_model : Optional[electrostatics.PointCharge], optional
        Far-field model for the ghost cells. Without it the boundary potential is zero, by default None
    x : Optional[npt.NDArray], optional
        Initial guess, same layout as b, by default zeros
    ghost : Callable, optional
        Ghost supplier, by default electrostatics.ghost_contribution

    Returns
    -------
    Tuple[npt.NDArray[np.float32], float]
        Potential (same layout as b), residual norm

    Examples
    --------
    >>> import numpy as np
    >>> from mgpoisson.solver import solve
    >>> from mgpoisson.electrostatics import PointCharge, point_charge_density, poisson_rhs
    >>> b = poisson_rhs(point_charge_density(8, 0.25))
    >>> potential, residual = solve(b, 0.25, {"tolerance": 1e-3}, PointCharge(1.0, (1, 1, 1)))
    """
    b = np.asarray(b)
    ncells_1d = check_grid(b, h)
    param = check_param(param, ncells_1d)
    multigrid.discretization(param)
    shape = (ncells_1d, ncells_1d, ncells_1d)
    h = np.float32(h)

    rhs = np.array(np.reshape(b, shape), dtype=np.float32, order="C")
    if x is None:
        solution = np.zeros(shape, dtype=np.float32)
    else:
        if np.size(x) != b.size:
            raise ConfigurationError(f"{np.size(x)=} for the initial guess, should be {b.size}")
        solution = np.array(np.reshape(x, shape), dtype=np.float32, order="C")
    multigrid.check_finite(rhs, "f")
    multigrid.check_finite(solution, "u")

    if charge_model is not None and param["ghost_correction"]:
        electrostatics.apply_boundary_correction(rhs, float(h), charge_model, ghost)
    elif charge_model is None:
        logging.warning("No charge model, ghost cells are set to zero")

    if "linear" == param["multigrid_scheme"].casefold():
        history = multigrid.linear(solution, rhs, h, param)
    else:
        history = multigrid.FAS(solution, rhs, h, param)
    logging.warning(f"Multigrid: {len(history) - 1} cycles, residual error {history[-1]}")
    return solution.reshape(b.shape), history[-1]


def potential(
    density: npt.NDArray,
    h: float,
    param: Union[Dict, pd.Series, None] = None,
    charge_model: Optional[electrostatics.PointCharge] = None,
) -> Tuple[npt.NDArray[np.float32], float]:
    """Electrostatic potential of a charge density, Laplacian(u) = -4 pi rho

    Parameters
    ----------
    density : npt.NDArray
        Charge density, flat [N_cells_1d^3] or cubic [N_cells_1d, N_cells_1d, N_cells_1d]
    h : float
        Grid spacing
    param : Union[Dict, pd.Series, None], optional
        Parameter container, by default None
    charge_model : Optional[electrostatics.PointCharge], optional
        Far-field model, by default the monopole of the density

    Returns
    -------
    Tuple[npt.NDArray[np.float32], float]
        Potential (same layout as density), residual norm
    """
    density = np.asarray(density)
    ncells_1d = check_grid(density, h)
    cube = np.reshape(density, (ncells_1d, ncells_1d, ncells_1d))
    if charge_model is None:
        charge_model = electrostatics.PointCharge.from_density(cube, h)
    b = electrostatics.poisson_rhs(density)
    return solve(b, h, param, charge_model)


def direct(b: npt.NDArray, h: float) -> npt.NDArray[np.float64]:
    """Sparse direct solve of the 7-point system \\
    Same discretization and open boundaries as the multigrid solver, meant for small grids.

    Parameters
    ----------
    b : npt.NDArray
        Right-hand side, boundary correction included, flat [N_cells_1d^3] or cubic [N_cells_1d, N_cells_1d, N_cells_1d]
    h : float
        Grid spacing

    Returns
    -------
    npt.NDArray[np.float64]
        Potential (same layout as b)

    Raises
    ------
    ConfigurationError
        If the grid is not a cube of side a power of two >= 2, or h <= 0

    Examples
    --------
    >>> import numpy as np
    >>> from mgpoisson.solver import direct
    >>> x = direct(np.ones((8, 8, 8)), 0.25)
    """
    b = np.asarray(b)
    ncells_1d = check_grid(b, h)
    second_difference = scipy.sparse.diags(
        [1.0, -2.0, 1.0], [-1, 0, 1], shape=(ncells_1d, ncells_1d)
    )
    identity = scipy.sparse.identity(ncells_1d)
    A = (
        scipy.sparse.kron(scipy.sparse.kron(identity, identity), second_difference)
        + scipy.sparse.kron(scipy.sparse.kron(identity, second_difference), identity)
        + scipy.sparse.kron(scipy.sparse.kron(second_difference, identity), identity)
    ) / h**2
    x = scipy.sparse.linalg.spsolve(A.tocsc(), np.asarray(b, dtype=np.float64).ravel())
    return x.reshape(b.shape)
