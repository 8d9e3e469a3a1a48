import numpy as np
import pytest

from cell_list import CellList
from forces import ForceField, brute_force_forces


def make_field(box_length, n_parts, pot_strength=1.0, backend="numba"):
    return ForceField(box_length, n_parts, pot_strength, CellList(box_length), backend)


@pytest.mark.parametrize("backend", ["numba", "numpy"])
@pytest.mark.parametrize("seed", range(6))
@pytest.mark.parametrize("box_length", [2.5, 3.0, 4.2, 8.0])
def test_cell_list_forces_match_brute_force(backend, seed, box_length):
    rng = np.random.default_rng(seed)
    n_parts = int(3 * box_length ** 2)
    positions = rng.uniform(0.0, box_length, size=(n_parts, 2))

    field = make_field(box_length, n_parts, pot_strength=3.0, backend=backend)
    forces = field.compute(positions)
    expected = brute_force_forces(positions, box_length, 3.0)
    np.testing.assert_allclose(forces, expected, rtol=1e-9, atol=1e-9)


@pytest.mark.parametrize("backend", ["numba", "numpy"])
def test_pairs_straddling_the_boundary(backend):
    box_length = 5.0
    positions = np.array([
        [0.1, 2.5],
        [4.8, 2.5],   # across x
        [2.5, 0.2],
        [2.5, 4.9],   # across y
        [0.05, 0.05],
        [4.95, 4.9],  # across the corner
    ])
    field = make_field(box_length, len(positions), backend=backend)
    forces = field.compute(positions)
    expected = brute_force_forces(positions, box_length, 1.0)
    np.testing.assert_allclose(forces, expected, rtol=1e-12, atol=1e-12)

    # The particle near x = 0 is pushed towards +x by its image neighbor.
    assert forces[0, 0] > 0.0
    assert forces[1, 0] < 0.0


@pytest.mark.parametrize("backend", ["numba", "numpy"])
def test_newton_third_law(backend):
    rng = np.random.default_rng(42)
    box_length = 10.0
    positions = rng.uniform(0.0, box_length, size=(300, 2))
    forces = make_field(box_length, 300, pot_strength=10.0, backend=backend).compute(positions)
    assert np.any(forces != 0.0)
    np.testing.assert_allclose(forces.sum(axis=0), 0.0, atol=1e-9)


@pytest.mark.parametrize("backend", ["numba", "numpy"])
def test_pair_force_is_antisymmetric_and_repulsive(backend):
    positions = np.array([[4.75, 5.0], [5.25, 5.0]])
    forces = make_field(10.0, 2, pot_strength=2.0, backend=backend).compute(positions)
    # u = k (1/0.5 - 1) = k, force on particle 0 is u * dx = -0.5 k
    np.testing.assert_allclose(forces[0], [-1.0, 0.0])
    np.testing.assert_array_equal(forces[1], -forces[0])


@pytest.mark.parametrize("backend", ["numba", "numpy"])
@pytest.mark.parametrize("separation", [1.0, 1.5, 3.0])
def test_no_force_at_or_beyond_cutoff(backend, separation):
    positions = np.array([[1.0, 1.0], [1.0 + separation, 1.0]])
    forces = make_field(10.0, 2, pot_strength=100.0, backend=backend).compute(positions)
    np.testing.assert_array_equal(forces, 0.0)


def test_force_just_inside_cutoff_is_small():
    positions = np.array([[1.0, 1.0], [1.999, 1.0]])
    forces = make_field(10.0, 2).compute(positions)
    # k (1/r - 1) r = k (1 - r)
    assert forces[1, 0] == pytest.approx(1e-3, rel=1e-6)


def test_coincident_particles_do_not_interact():
    positions = np.array([[3.0, 3.0], [3.0, 3.0]])
    forces = make_field(10.0, 2).compute(positions)
    np.testing.assert_array_equal(forces, 0.0)


@pytest.mark.parametrize("backend", ["numba", "numpy"])
def test_buffer_is_overwritten_not_accumulated(backend):
    field = make_field(10.0, 2, backend=backend)
    first = field.compute(np.array([[4.75, 5.0], [5.25, 5.0]])).copy()
    second = field.compute(np.array([[4.75, 5.0], [5.25, 5.0]]))
    np.testing.assert_array_equal(first, second)

    far = field.compute(np.array([[1.0, 1.0], [6.0, 6.0]]))
    np.testing.assert_array_equal(far, 0.0)
    assert far is field.forces


def test_backends_agree():
    rng = np.random.default_rng(7)
    box_length = 12.0
    positions = rng.uniform(0.0, box_length, size=(600, 2))
    scalar = make_field(box_length, 600, backend="numba").compute(positions).copy()
    batched = make_field(box_length, 600, backend="numpy").compute(positions)
    np.testing.assert_allclose(scalar, batched, rtol=1e-10, atol=1e-10)


def test_unknown_backend():
    with pytest.raises(ValueError):
        make_field(10.0, 2, backend="cuda")
