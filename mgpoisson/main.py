#!/usr/bin/env python
"""\
Main executable module to compute the electrostatic potential of a point charge
with the multigrid Poisson solver

Usage: python -m mgpoisson.main -c param.ini
"""

__version__ = "1.0.0"
__status__ = "Production"

import logging
from time import perf_counter
from typing import Dict
import numba
import numpy as np
import pandas as pd
from rich.logging import RichHandler
from mgpoisson import electrostatics, iostream, solver, utils


def run(param) -> None:
    """Compute the potential of a point charge at the box centre

    Parameters
    ----------
    param : dict or pd.Series
        Parameter container
    """
    if isinstance(param, Dict):
        param = pd.Series(param, dtype=object)
    elif isinstance(param, pd.Series):
        pass
    else:
        raise ValueError(f"{type(param)=}, should be a dictionnary or a Pandas Series")

    verbose = param.get("verbose", 1)
    # Ideally it would have been error/info/debug, but the latter triggers extensive Numba verbose
    if verbose == 0:
        logging_level = logging.ERROR
    elif verbose == 1:
        logging_level = logging.WARNING
    elif verbose == 2:
        logging_level = logging.INFO
    else:
        raise ValueError(f"{verbose=}, should be 0, 1 or 2")
    logging.basicConfig(
        level=logging_level,
        format="%(message)s",
        datefmt="%d/%m/%Y %I:%M:%S %p",
        handlers=[
            RichHandler(
                show_time=False,
                show_level=False,
                show_path=False,
                enable_link_path=False,
                markup=True,
            )
        ],
        force=True,
    )

    nthreads = param.get("nthreads", 0)
    if nthreads > 0:
        numba.set_num_threads(nthreads)
    param["nthreads"] = numba.get_num_threads()
    logging.warning(f"{param['nthreads']=}")

    ncells_1d = 2 ** int(param["ncoarse"])
    h = float(param["h"])
    charge = float(param.get("charge", 1.0))
    logging.warning(f"\n[bold blue]----- Point charge {charge} on {ncells_1d}^3 cells, {h=} -----[/bold blue]\n")

    density = electrostatics.point_charge_density(ncells_1d, h, charge)
    charge_model = electrostatics.PointCharge(charge, np.full(3, 0.5 * ncells_1d * h))
    potential, residual_err = solver.potential(density, h, param, charge_model)

    rms, mad, max_error = utils.error_statistics(
        potential,
        electrostatics.reference_potential(ncells_1d, h, charge_model),
        h,
    )
    logging.warning(f"{residual_err=} error against q/r: {rms=} {mad=} {max_error=}")

    output = param.get("output", None)
    if output:
        iostream.write_potential(output, potential, param)


def main():
    import argparse

    print("Read configuration file")
    parser = argparse.ArgumentParser()
    parser.add_argument("-c", "--config_file", help="Configuration file", required=True)
    args = parser.parse_args()
    param = iostream.read_param_file(args.config_file)
    print(param)
    t_start = perf_counter()
    run(param)
    t_end = perf_counter()
    print(f"Run time: {t_end - t_start} seconds.")


if __name__ == "__main__":
    from rich import print

    print(f"VERSION: {__version__}")
    print(f"{'':{'-'}<{71}}\n")
    main()
    print("Run Completed!")
