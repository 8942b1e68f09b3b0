from mgpoisson.errors import ConfigurationError, NumericalDivergenceError
from mgpoisson.electrostatics import PointCharge
from mgpoisson.solver import direct, potential, residual_norm, solve
from mgpoisson.main import run

__version__ = "1.0.0"
