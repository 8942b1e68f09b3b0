"""
Electrostatic sources and open-boundary treatment for the Poisson solver.

The solver works in Gaussian units, Laplacian(u) = -4 pi rho. Charge outside the
simulated box is approximated by a far-field charge model. Its potential at the
ghost cells just outside the domain is folded once into the finest right-hand side,
the multigrid hierarchy never evaluates it again.
"""

from typing import Callable, Sequence
import logging
import numpy as np
import numpy.typing as npt
from mgpoisson import utils

# Face f points along axis f // 2, towards lower coordinates for even f
FACE_SHIFTS = ((-1, 0, 0), (1, 0, 0), (0, -1, 0), (0, 1, 0), (0, 0, -1), (0, 0, 1))


class PointCharge:
    """Far-field model of a charge distribution as a single point charge

    Parameters
    ----------
    charge : float
        Total charge
    centre : Sequence[float]
        Position (x, y, z) of the charge

    Examples
    --------
    >>> from mgpoisson.electrostatics import PointCharge
    >>> model = PointCharge(1.0, (1.0, 1.0, 1.0))
    >>> float(model.potential((1.0, 1.0, 3.0)))
    0.5
    """

    def __init__(self, charge: float, centre: Sequence[float]) -> None:
        self.charge = float(charge)
        self.centre = np.asarray(centre, dtype=np.float64)

    def __repr__(self) -> str:
        return f"PointCharge(charge={self.charge}, centre={tuple(self.centre)})"

    def potential(self, position: npt.ArrayLike) -> npt.NDArray[np.float64]:
        r = np.asarray(position, dtype=np.float64) - self.centre
        return self.charge / np.sqrt(np.sum(r * r, axis=-1))

    @classmethod
    def from_density(cls, density: npt.NDArray[np.float32], h: float) -> "PointCharge":
        """Monopole approximation of a charge density

        Parameters
        ----------
        density : npt.NDArray[np.float32]
            Charge density [N_cells_1d, N_cells_1d, N_cells_1d]
        h : float
            Grid spacing

        Returns
        -------
        PointCharge
            Total charge placed at the centre of charge (box centre if neutral)
        """
        ncells_1d = density.shape[0]
        rho = density.astype(np.float64)
        charge = np.sum(rho) * h**3
        if charge == 0:
            return cls(0.0, np.full(3, 0.5 * ncells_1d * h))
        centres = h * (np.arange(ncells_1d) + 0.5)
        z, y, x = np.meshgrid(centres, centres, centres, indexing="ij")
        centre = [np.sum(rho * c) * h**3 / charge for c in (x, y, z)]
        return cls(charge, centre)


def ghost_contribution(
    neighbour: Sequence[int], face: int, h: float, charge_model: PointCharge
) -> float:
    """Potential at an out-of-domain ghost cell

    Parameters
    ----------
    neighbour : Sequence[int]
        Ghost cell indices (x, y, z), one step outside the domain
    face : int
        Face through which the ghost cell is reached, 0 to 5
    h : float
        Grid spacing
    charge_model : PointCharge
        Far-field charge model

    Returns
    -------
    float
        Potential at the centre of the ghost cell

    Examples
    --------
    >>> from mgpoisson.electrostatics import PointCharge, ghost_contribution
    >>> model = PointCharge(1.0, (1.0, 1.0, 1.0))
    >>> value = ghost_contribution((-1, 3, 3), 0, 0.25, model)
    """
    position = h * (np.asarray(neighbour, dtype=np.float64) + 0.5)
    return float(charge_model.potential(position))


@utils.time_me
def boundary_correction(
    ncells_1d: int,
    h: float,
    charge_model: PointCharge,
    ghost: Callable = ghost_contribution,
) -> npt.NDArray[np.float32]:
    """Right-hand side correction from the ghost cells \\
    For every boundary-adjacent cell: correction = -Sum_{out-of-bounds faces} ghost / h^2 \\
    The ghost supplier is called once per boundary face.

    Parameters
    ----------
    ncells_1d : int
        Number of cells along one direction
    h : float
        Grid spacing
    charge_model : PointCharge
        Far-field charge model
    ghost : Callable, optional
        Ghost supplier ghost(neighbour, face, h, charge_model), by default ghost_contribution

    Returns
    -------
    npt.NDArray[np.float32]
        Correction [N_cells_1d, N_cells_1d, N_cells_1d], zero away from the boundary

    Examples
    --------
    >>> from mgpoisson.electrostatics import PointCharge, boundary_correction
    >>> model = PointCharge(1.0, (1.0, 1.0, 1.0))
    >>> correction = boundary_correction(8, 0.25, model)
    """
    correction = np.zeros((ncells_1d, ncells_1d, ncells_1d), dtype=np.float64)
    invh2 = 1.0 / (h * h)
    last = ncells_1d - 1
    for face, shift in enumerate(FACE_SHIFTS):
        axis = face // 2
        boundary = 0 if face % 2 == 0 else last
        for a in range(ncells_1d):
            for c in range(ncells_1d):
                cell = [a, c]
                cell.insert(axis, boundary)
                neighbour = tuple(cell[d] + shift[d] for d in range(3))
                x, y, z = cell
                correction[z, y, x] -= invh2 * ghost(neighbour, face, h, charge_model)
    return correction.astype(np.float32)


def apply_boundary_correction(
    b: npt.NDArray[np.float32],
    h: float,
    charge_model: PointCharge,
    ghost: Callable = ghost_contribution,
) -> None:
    """Fold the ghost-cell correction into the finest right-hand side, in place

    Parameters
    ----------
    b : npt.NDArray[np.float32]
        Right-hand side of Poisson equation (mutable) [N_cells_1d, N_cells_1d, N_cells_1d]
    h : float
        Grid spacing
    charge_model : PointCharge
        Far-field charge model
    ghost : Callable, optional
        Ghost supplier, by default ghost_contribution
    """
    logging.info(f"Boundary correction from {charge_model}")
    correction = boundary_correction(b.shape[0], h, charge_model, ghost)
    utils.add_vector_scalar_inplace(b, correction, np.float32(1))


def point_charge_density(ncells_1d: int, h: float, charge: float = 1.0) -> npt.NDArray[np.float32]:
    """Charge density of a point charge at the box centre \\
    The charge is split equally between the 8 cells touching the centre.

    Parameters
    ----------
    ncells_1d : int
        Number of cells along one direction (even)
    h : float
        Grid spacing
    charge : float, optional
        Total charge, by default 1.0

    Returns
    -------
    npt.NDArray[np.float32]
        Charge density [N_cells_1d, N_cells_1d, N_cells_1d]

    Examples
    --------
    >>> from mgpoisson.electrostatics import point_charge_density
    >>> rho = point_charge_density(8, 0.25)
    >>> float(rho.sum() * 0.25**3)
    1.0
    """
    density = np.zeros((ncells_1d, ncells_1d, ncells_1d), dtype=np.float32)
    half = ncells_1d // 2
    density[half - 1 : half + 1, half - 1 : half + 1, half - 1 : half + 1] = (
        charge / 8 / h**3
    )
    return density


def poisson_rhs(density: npt.NDArray[np.float32]) -> npt.NDArray[np.float32]:
    """Right-hand side of the Poisson equation, b = -4 pi rho

    Examples
    --------
    >>> import numpy as np
    >>> from mgpoisson.electrostatics import poisson_rhs
    >>> b = poisson_rhs(np.ones((4, 4, 4), dtype=np.float32))
    """
    return np.ascontiguousarray(-4 * np.pi * density, dtype=np.float32)


def reference_potential(
    ncells_1d: int, h: float, charge_model: PointCharge
) -> npt.NDArray[np.float32]:
    """Potential of the charge model at every cell centre

    Parameters
    ----------
    ncells_1d : int
        Number of cells along one direction
    h : float
        Grid spacing
    charge_model : PointCharge
        Charge model

    Returns
    -------
    npt.NDArray[np.float32]
        Potential [N_cells_1d, N_cells_1d, N_cells_1d]
    """
    centres = h * (np.arange(ncells_1d) + 0.5)
    z, y, x = np.meshgrid(centres, centres, centres, indexing="ij")
    position = np.stack((x, y, z), axis=-1)
    return charge_model.potential(position).astype(np.float32)
