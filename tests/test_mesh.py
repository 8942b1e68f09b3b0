import numpy as np
import pytest
from mgpoisson import mesh


class TestAddressing:
    def test_index_row_major(self):
        assert mesh.index(8, 0, 0, 0) == 0
        assert mesh.index(8, 1, 0, 0) == 1
        assert mesh.index(8, 0, 1, 0) == 8
        assert mesh.index(8, 0, 0, 1) == 64
        assert mesh.index(8, 7, 7, 7) == 511

    def test_coordinates_inverts_index(self):
        for address in (0, 1, 9, 77, 300, 511):
            x, y, z = mesh.coordinates(8, address)
            assert mesh.index(8, x, y, z) == address

    def test_half_sizes(self):
        assert mesh.half_sizes(8) == (256, 256)
        assert mesh.half_sizes(2) == (4, 4)
        assert mesh.half_sizes(1) == (1, 0)


class TestRedBlack:
    def test_split_merge_restores_field(self):
        rng = np.random.default_rng(0)
        x = rng.random((8, 8, 8)).astype(np.float32)
        red = np.empty(256, dtype=np.float32)
        black = np.empty(256, dtype=np.float32)
        mesh.split(red, black, x)
        y = np.empty_like(x)
        mesh.merge(y, red, black)
        np.testing.assert_array_equal(y, x)

    def test_split_addresses_half_buffers(self):
        ncells_1d = 4
        x = np.arange(ncells_1d**3, dtype=np.float32).reshape(4, 4, 4)
        red = np.empty(32, dtype=np.float32)
        black = np.empty(32, dtype=np.float32)
        mesh.split(red, black, x)
        for k in range(ncells_1d):
            for j in range(ncells_1d):
                for i in range(ncells_1d):
                    address = mesh.index(ncells_1d, i, j, k)
                    half = red if (i ^ j ^ k) & 1 == 0 else black
                    assert half[address >> 1] == x[k, j, i]


class TestTransfer:
    def test_restriction_conserves_volume_integral(self):
        rng = np.random.default_rng(1)
        h = 0.25
        fine = rng.standard_normal((8, 8, 8)).astype(np.float32)
        coarse = np.empty((4, 4, 4), dtype=np.float32)
        mesh.restriction(coarse, fine)
        np.testing.assert_allclose(
            np.sum(coarse, dtype=np.float64) * (2 * h) ** 3,
            np.sum(fine, dtype=np.float64) * h**3,
            atol=1e-5,
        )

    def test_restriction_averages_children(self):
        fine = np.zeros((2, 2, 2), dtype=np.float32)
        fine[0, 0, 0] = 8
        coarse = np.empty((1, 1, 1), dtype=np.float32)
        mesh.restriction(coarse, fine)
        assert coarse[0, 0, 0] == 1

    @pytest.mark.parametrize("seed", range(20))
    def test_prolongation_of_restriction_is_identity_on_blocks(self, seed):
        rng = np.random.default_rng(seed)
        blocks = rng.standard_normal((4, 4, 4)).astype(np.float32)
        field = np.repeat(np.repeat(np.repeat(blocks, 2, axis=0), 2, axis=1), 2, axis=2)
        field = np.ascontiguousarray(field)
        coarse = np.empty((4, 4, 4), dtype=np.float32)
        mesh.restriction(coarse, field)
        np.testing.assert_array_equal(coarse, blocks)
        out = np.empty_like(field)
        mesh.prolongation(out, coarse)
        np.testing.assert_array_equal(out, field)

    def test_add_prolongation(self):
        y = np.ones((4, 4, 4), dtype=np.float32)
        x = np.arange(8, dtype=np.float32).reshape(2, 2, 2)
        mesh.add_prolongation(y, x)
        assert y[0, 0, 0] == 1
        assert y[1, 1, 1] == 1
        assert y[3, 3, 3] == 8
        assert y[2, 0, 1] == 5

    @pytest.mark.parametrize("ncells_1d", [2, 4, 16])
    def test_restriction_of_constant(self, ncells_1d):
        fine = np.full((ncells_1d,) * 3, 3.5, dtype=np.float32)
        coarse = np.empty((ncells_1d // 2,) * 3, dtype=np.float32)
        mesh.restriction(coarse, fine)
        np.testing.assert_array_equal(coarse, 3.5)
