"""
This module contains various input/output functions.
"""

import ast
import logging
import numpy as np
import numpy.typing as npt
import pandas as pd
from mgpoisson import utils


def read_param_file(name: str) -> pd.Series:
    """Read parameter file into Pandas Series \\
    One "key = value" per line, "#" starts a comment. \\
    Values are parsed as Python literals when possible and kept as strings otherwise.

    Parameters
    ----------
    name : str
        Parameter file name

    Returns
    -------
    pd.Series
        Parameters container

    Examples
    --------
    >>> from mgpoisson.iostream import read_param_file
    >>> params = read_param_file(f"./examples/param.ini")
    """
    param = pd.read_csv(
        name,
        delimiter="=",
        comment="#",
        skipinitialspace=True,
        skip_blank_lines=True,
        header=None,
    ).T
    # First row as header
    param = param.rename(columns=param.iloc[0]).drop(param.index[0])
    # Remove whitespaces from column names and values
    param = param.apply(lambda x: x.str.strip() if x.dtype == "object" else x).rename(
        columns=lambda x: x.strip()
    )
    param = param.astype("string")
    is_null = param.isnull()
    result = {}
    for key in param.columns:
        if is_null[key].item():
            result[key] = None
            continue
        value = param[key].item()
        if "true".casefold() == value.casefold():
            value = "True"
        elif "false".casefold() == value.casefold():
            value = "False"
        try:
            result[key] = ast.literal_eval(value)
        except (ValueError, SyntaxError):
            result[key] = value

    return pd.Series(result, dtype=object)


@utils.time_me
def write_potential(
    filename: str,
    potential: npt.NDArray[np.float32],
    param: pd.Series,
) -> None:
    """Write potential to file \\
    HDF5 (".h5", ".hdf5") with the parameters stored as attributes, NumPy binary otherwise

    Parameters
    ----------
    filename : str
        Output file name
    potential : npt.NDArray[np.float32]
        Potential [N_cells_1d, N_cells_1d, N_cells_1d]
    param : pd.Series
        Parameter container

    Examples
    --------
    >>> import numpy as np
    >>> import pandas as pd
    >>> from mgpoisson.iostream import write_potential
    >>> potential = np.zeros((8, 8, 8), dtype=np.float32)
    >>> write_potential("potential.npy", potential, pd.Series({"h": 0.25}))
    """
    logging.warning(f"Write potential {filename}")
    if filename.endswith((".h5", ".hdf5")):
        import h5py

        with h5py.File(filename, "w") as h5w:
            h5w.create_dataset("potential", data=potential)
            for key, value in param.items():
                if isinstance(value, (bool, int, float, str, np.number)):
                    h5w.attrs[key] = value
    else:
        np.save(filename, potential)


def read_potential(filename: str) -> npt.NDArray[np.float32]:
    """Read potential written by write_potential

    Parameters
    ----------
    filename : str
        File name

    Returns
    -------
    npt.NDArray[np.float32]
        Potential [N_cells_1d, N_cells_1d, N_cells_1d]
    """
    if filename.endswith((".h5", ".hdf5")):
        import h5py

        with h5py.File(filename, "r") as h5r:
            return h5r["potential"][:]
    return np.load(filename)
