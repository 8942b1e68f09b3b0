"""
Python interface for computing the electrostatic potential of a point charge
with the mgpoisson multigrid solver.
"""

from pathlib import Path
import mgpoisson

path = Path(__file__).parent.absolute()

param = {
    "nthreads": 1,
    "ncoarse": 5,
    "h": 1.0 / 16,
    "charge": 1.0,
    "multigrid_scheme": "FAS",
    "Npre": 4,
    "Npost": 4,
    # "ncycles": 25,
    "tolerance": 1e-3,
    "ghost_correction": True,
    "use_mehrstellen": False,
    "output": f"{path}/potential_n32.h5",
    "verbose": 2,
}

# Run solver
mgpoisson.run(param)

print("Run Completed!")
