"""
This module contains utility functions and decorators for timing,
as well as several numerical operations on fields.
"""

from time import perf_counter
from typing import Callable, Tuple
import logging
import numpy as np
import numpy.typing as npt
from numba import njit, prange


def time_me(func: Callable) -> Callable:
    """Decorator time

    Parameters
    ----------
    func : Callable
        Function to time

    Returns
    -------
    Callable
        Function wrapper which logs time (in seconds)

    Examples
    --------
    >>> from mgpoisson.utils import time_me
    >>> @time_me
    ... def example_function():
    ...     # Code to be timed
    ...     pass
    >>> example_function()
    """

    def time_func(*args, **kw):
        """Wrapper

        Returns
        -------
        _type_
            Result of the wrapped function
        """
        t1 = perf_counter()
        result = func(*args, **kw)
        logging.info(
            f"Function {func.__name__:->40} took {perf_counter() - t1:.12f} seconds{'':{'-'}<{10}}"
        )
        return result

    time_func.__name__ = func.__name__
    time_func.__doc__ = func.__doc__
    return time_func


def is_power_of_two(n: int) -> bool:
    """Check that n is a positive power of two

    Examples
    --------
    >>> from mgpoisson.utils import is_power_of_two
    >>> is_power_of_two(64), is_power_of_two(12), is_power_of_two(0)
    (True, False, False)
    """
    return n > 0 and (n & (n - 1)) == 0


@njit(fastmath=False, cache=True, parallel=True)
def add_vector_scalar_inplace(
    y: npt.NDArray[np.float32], x: npt.NDArray[np.float32], a: np.float32
) -> None:
    """Add vector times scalar inplace \\
    y += a*x

    Parameters
    ----------
    y : npt.NDArray[np.float32]
        Mutable array
    x : npt.NDArray[np.float32]
        Array to add (same shape as y)
    a : np.float32
        Scalar

    Examples
    --------
    >>> import numpy as np
    >>> from mgpoisson.utils import add_vector_scalar_inplace
    >>> y_array = np.array([1.0, 2.0, 3.0], dtype=np.float32)
    >>> x_array = np.array([4.0, 5.0, 6.0], dtype=np.float32)
    >>> add_vector_scalar_inplace(y_array, x_array, np.float32(2))
    """
    y_ravel = y.ravel()
    x_ravel = x.ravel()
    if a == 1:
        for i in prange(y_ravel.shape[0]):
            y_ravel[i] += x_ravel[i]
    elif a == -1:
        for i in prange(y_ravel.shape[0]):
            y_ravel[i] -= x_ravel[i]
    else:
        for i in prange(y_ravel.shape[0]):
            y_ravel[i] += a * x_ravel[i]


@njit(fastmath=False, cache=True, parallel=True)
def injection(a: npt.NDArray, b: npt.NDArray) -> None:
    """Straight injection

    a[:] = b[:]

    Parameters
    ----------
    a : npt.NDArray
        Mutable array
    b : npt.NDArray
        Array to copy

    Examples
    --------
    >>> import numpy as np
    >>> from mgpoisson.utils import injection
    >>> a = np.random.rand(64)
    >>> b = np.random.rand(64)
    >>> injection(a, b)
    """
    ar = a.ravel()
    br = b.ravel()
    for i in prange(len(ar)):
        ar[i] = br[i]


@njit(fastmath=False, cache=True, parallel=True)
def dot(a: npt.NDArray, b: npt.NDArray) -> np.float64:
    """Dot product with double-precision accumulator

    Parameters
    ----------
    a : npt.NDArray
        Array
    b : npt.NDArray
        Array (same size as a)

    Returns
    -------
    np.float64
        Sum(a*b)

    Examples
    --------
    >>> import numpy as np
    >>> from mgpoisson.utils import dot
    >>> a = np.ones(64, dtype=np.float32)
    >>> dot(a, a)
    64.0
    """
    ar = a.ravel()
    br = b.ravel()
    result = 0.0
    for i in prange(len(ar)):
        result += np.float64(ar[i]) * np.float64(br[i])
    return result


def norm(a: npt.NDArray) -> np.float64:
    """2-norm with double-precision accumulator

    Examples
    --------
    >>> import numpy as np
    >>> from mgpoisson.utils import norm
    >>> value = norm(np.full(4, 3, dtype=np.float32))
    """
    return np.sqrt(dot(a, a))


@njit(fastmath=False, cache=True)
def all_finite(x: npt.NDArray) -> bool:
    """Check that every entry of an array is finite

    Parameters
    ----------
    x : npt.NDArray
        Array

    Returns
    -------
    bool
        False as soon as a NaN or infinity is found

    Examples
    --------
    >>> import numpy as np
    >>> from mgpoisson.utils import all_finite
    >>> all_finite(np.array([1.0, np.nan]))
    False
    """
    x_ravel = x.ravel()
    for i in range(len(x_ravel)):
        if not np.isfinite(x_ravel[i]):
            return False
    return True


def error_statistics(
    x: npt.NDArray[np.float32],
    reference: npt.NDArray[np.float32],
    h: float,
) -> Tuple[float, float, float]:
    """Volume-weighted error of a field against a reference

    rms = sqrt(Sum(|x - ref|^2 h^3)) \\
    mad = Sum(|x - ref| h^3) \\
    max = Max(|x - ref|)

    Parameters
    ----------
    x : npt.NDArray[np.float32]
        Field [N_cells_1d, N_cells_1d, N_cells_1d]
    reference : npt.NDArray[np.float32]
        Reference field [N_cells_1d, N_cells_1d, N_cells_1d]
    h : float
        Grid spacing

    Returns
    -------
    Tuple[float, float, float]
        rms, mad, max

    Examples
    --------
    >>> import numpy as np
    >>> from mgpoisson.utils import error_statistics
    >>> x = np.ones((8, 8, 8), dtype=np.float32)
    >>> rms, mad, maximum = error_statistics(x, x, 0.25)
    """
    error = np.abs(x.astype(np.float64) - reference.astype(np.float64))
    volume = float(h) ** 3
    rms = np.sqrt(np.sum(error**2) * volume)
    mad = np.sum(error) * volume
    return float(rms), float(mad), float(np.max(error))
