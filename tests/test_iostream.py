import numpy as np
import pandas as pd
import pytest
from mgpoisson import iostream

PARAM_FILE = """\
# Point charge on a 8^3 grid
ncoarse = 3
h = 0.25
charge = 1.0
Npre = 4
tolerance = 1e-3
use_mehrstellen = false
ghost_correction = True
multigrid_scheme = FAS
output = potential.npy
"""


def test_read_param_file(tmp_path):
    path = tmp_path / "param.ini"
    path.write_text(PARAM_FILE)
    param = iostream.read_param_file(str(path))
    assert param["ncoarse"] == 3
    assert param["h"] == pytest.approx(0.25)
    assert param["tolerance"] == pytest.approx(1e-3)
    assert param["use_mehrstellen"] is False
    assert param["ghost_correction"] is True
    assert param["multigrid_scheme"] == "FAS"
    assert param["output"] == "potential.npy"
    assert "# Point charge on a 8^3 grid" not in param.index


def test_write_potential_npy(tmp_path):
    potential = np.random.default_rng(0).random((4, 4, 4)).astype(np.float32)
    filename = str(tmp_path / "potential.npy")
    iostream.write_potential(filename, potential, pd.Series({"h": 0.5}))
    np.testing.assert_array_equal(iostream.read_potential(filename), potential)


def test_write_potential_hdf5(tmp_path):
    h5py = pytest.importorskip("h5py")
    potential = np.random.default_rng(1).random((4, 4, 4)).astype(np.float32)
    filename = str(tmp_path / "potential.h5")
    param = pd.Series({"h": 0.5, "ncoarse": 2, "multigrid_scheme": "FAS", "tolerance": None})
    iostream.write_potential(filename, potential, param)
    np.testing.assert_array_equal(iostream.read_potential(filename), potential)
    with h5py.File(filename, "r") as h5r:
        assert h5r.attrs["h"] == 0.5
        assert h5r.attrs["ncoarse"] == 2
        assert h5r.attrs["multigrid_scheme"] == "FAS"
        assert "tolerance" not in h5r.attrs
