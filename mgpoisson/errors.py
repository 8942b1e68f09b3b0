"""
Exceptions raised by the solver.
"""


class ConfigurationError(ValueError):
    """Invalid grid or solver parameters, detected before any work is done"""


class NumericalDivergenceError(ArithmeticError):
    """A non-finite value appeared in a solution or right-hand side

    Parameters
    ----------
    field : str
        Name of the offending field
    ncells_1d : int
        Side length of the level where it was detected
    """

    def __init__(self, field: str, ncells_1d: int) -> None:
        self.field = field
        self.ncells_1d = ncells_1d
        super().__init__(f"Non-finite values in {field} at level with {ncells_1d}^3 cells")
