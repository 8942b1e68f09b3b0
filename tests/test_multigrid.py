import numpy as np
import pandas as pd
import pytest
from mgpoisson import electrostatics, mesh, multigrid
from mgpoisson.errors import NumericalDivergenceError


@pytest.fixture
def param():
    return pd.Series(
        {"Npre": 4, "Npost": 4, "ncycles": 15, "tolerance": 1e-3, "use_mehrstellen": False},
        dtype=object,
    )


@pytest.fixture
def point_charge_rhs():
    h = 0.25
    b = electrostatics.poisson_rhs(electrostatics.point_charge_density(8, h))
    model = electrostatics.PointCharge(1.0, (1.0, 1.0, 1.0))
    electrostatics.apply_boundary_correction(b, h, model)
    return b, np.float32(h)


def test_fas_reaches_tolerance(param, point_charge_rhs):
    b, h = point_charge_rhs
    x = np.zeros_like(b)
    history = multigrid.FAS(x, b, h, param)
    assert history[0] == pytest.approx(394, abs=1)
    assert history[-1] < 1e-3
    assert len(history) - 1 <= 15


def test_fas_residual_is_non_increasing(param, point_charge_rhs):
    b, h = point_charge_rhs
    x = np.zeros_like(b)
    param["tolerance"] = None
    param["ncycles"] = 9
    history = multigrid.FAS(x, b, h, param)
    assert len(history) == 10
    for before, after in zip(history[:-1], history[1:]):
        assert after <= before + 1e-3


def test_linear_scheme_reaches_tolerance(param, point_charge_rhs):
    b, h = point_charge_rhs
    x = np.zeros_like(b)
    history = multigrid.linear(x, b, h, param)
    assert history[-1] < 1e-3


def test_schemes_agree(param, point_charge_rhs):
    b, h = point_charge_rhs
    x_fas = np.zeros_like(b)
    x_linear = np.zeros_like(b)
    multigrid.FAS(x_fas, b, h, param)
    multigrid.linear(x_linear, b, h, param)
    np.testing.assert_allclose(x_fas, x_linear, atol=1e-3)


def test_budget_exhausted_keeps_solution(param, point_charge_rhs):
    b, h = point_charge_rhs
    x = np.zeros_like(b)
    param["ncycles"] = 1
    param["tolerance"] = 1e-12
    history = multigrid.FAS(x, b, h, param)
    assert len(history) == 2
    assert history[1] < history[0]
    assert np.any(x != 0)


def test_two_cell_grid_cycle_trace(monkeypatch, param):
    calls = []
    smoothing = multigrid.smoothing
    add_prolongation = mesh.add_prolongation

    def record_smoothing(x, b, n_smoothing, h, param):
        calls.append(("smoothing", x.shape[0], n_smoothing))
        smoothing(x, b, n_smoothing, h, param)

    def record_add_prolongation(y, x):
        calls.append(("add_prolongation", y.shape[0], x.shape[0]))
        add_prolongation(y, x)

    monkeypatch.setattr(multigrid, "smoothing", record_smoothing)
    monkeypatch.setattr(mesh, "add_prolongation", record_add_prolongation)
    x = np.zeros((2, 2, 2), dtype=np.float32)
    b = np.ones((2, 2, 2), dtype=np.float32)
    multigrid.V_cycle_FAS(x, b, np.float32(0.5), param)
    assert calls == [
        ("smoothing", 2, 4),
        ("smoothing", 1, 4),
        ("add_prolongation", 2, 1),
        ("smoothing", 2, 4),
    ]


def test_coarse_level_sees_restricted_solution(monkeypatch, param):
    # With an exact fine solution the FAS coarse right-hand side is L_c(R(x))
    rng = np.random.default_rng(5)
    b = rng.standard_normal((4, 4, 4)).astype(np.float32)
    h = np.float32(0.5)
    x = np.zeros_like(b)
    multigrid.smoothing(x, b, 300, h, param)
    x_c = np.empty((2, 2, 2), dtype=np.float32)
    mesh.restriction(x_c, x)
    expected = np.empty_like(x_c)
    multigrid.operator(expected, x_c, np.float32(2 * h), param)

    seen = []
    V_cycle_FAS = multigrid.V_cycle_FAS

    def record(x, b, h, param, nlevel=0):
        seen.append((nlevel, b.copy()))
        V_cycle_FAS(x, b, h, param, nlevel)

    monkeypatch.setattr(multigrid, "V_cycle_FAS", record)
    V_cycle_FAS(x, b, h, param)
    tau = dict(seen)[1]
    np.testing.assert_allclose(tau, expected, rtol=1e-3, atol=1e-3)


def test_non_finite_rhs_raises(param):
    x = np.zeros((4, 4, 4), dtype=np.float32)
    b = np.zeros((4, 4, 4), dtype=np.float32)
    b[1, 2, 3] = np.nan
    with pytest.raises(NumericalDivergenceError) as excinfo:
        multigrid.V_cycle_FAS(x, b, np.float32(0.5), param)
    assert excinfo.value.field == "f"
    assert excinfo.value.ncells_1d == 4


def test_check_finite():
    x = np.zeros((4, 4, 4), dtype=np.float32)
    multigrid.check_finite(x, "u")
    x[0, 0, 0] = np.inf
    with pytest.raises(NumericalDivergenceError, match="u at level with 4"):
        multigrid.check_finite(x, "u")


def test_mehrstellen_not_available(param):
    param["use_mehrstellen"] = True
    with pytest.raises(NotImplementedError):
        multigrid.discretization(param)
    x = np.zeros((2, 2, 2), dtype=np.float32)
    with pytest.raises(NotImplementedError):
        multigrid.V_cycle_FAS(x, x.copy(), np.float32(0.5), param)


def test_overflowing_coarse_rhs_raises(param):
    param["Npre"] = param["Npost"] = 1
    x = np.full((4, 4, 4), 1e37, dtype=np.float32)
    b = np.zeros((4, 4, 4), dtype=np.float32)
    with pytest.raises(NumericalDivergenceError) as excinfo:
        multigrid.V_cycle_FAS(x, b, np.float32(1e-3), param)
    assert excinfo.value.field == "tau"
    assert excinfo.value.ncells_1d == 2


def test_overflowing_smoothed_solution_raises(param):
    x = np.zeros((4, 4, 4), dtype=np.float32)
    b = np.full((4, 4, 4), 3e38, dtype=np.float32)
    with pytest.raises(NumericalDivergenceError) as excinfo:
        multigrid.V_cycle_FAS(x, b, np.float32(1e3), param)
    assert excinfo.value.field == "u"
    assert excinfo.value.ncells_1d == 4


@pytest.mark.parametrize("kernel", ["operator", "residual", "residual_error", "smoothing"])
def test_kernels_follow_selected_stencil(monkeypatch, param, kernel):
    x = np.zeros((2, 2, 2), dtype=np.float32)
    args = {
        "operator": (np.empty_like(x), x),
        "residual": (np.empty_like(x), x, x.copy()),
        "residual_error": (x, x.copy()),
        "smoothing": (x, x.copy(), 1),
    }[kernel]
    getattr(multigrid, kernel)(*args, np.float32(0.5), param)
    monkeypatch.setattr(multigrid, "discretization", lambda param: "27-point")
    with pytest.raises(NotImplementedError, match="27-point"):
        getattr(multigrid, kernel)(*args, np.float32(0.5), param)
