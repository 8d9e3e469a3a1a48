import numpy as np
import pytest

from constants import TWO_PI
from integrator import Integrator
from periodic import pbc, pbc_scalar, pbc_sym, pbc_sym_scalar


def make_integrator(backend="numba", n_parts=1, box_length=10.0, temperature=0.0,
                    rot_dif=0.0, activity=0.0, dt=0.01, seed=0):
    return Integrator(
        box_length, n_parts, temperature, rot_dif, activity, dt,
        np.random.default_rng(seed), backend
    )


def test_pbc_is_canonical():
    values = np.array([-0.5, 0.0, 0.3, 2.0, 4.7, -1e-20, -4.0])
    wrapped = pbc(values, 2.0)
    np.testing.assert_allclose(wrapped, [1.5, 0.0, 0.3, 0.0, 0.7, 0.0, 0.0], atol=1e-15)
    assert np.all((wrapped >= 0.0) & (wrapped < 2.0))


@pytest.mark.parametrize("value", [-0.5, 0.0, 0.3, 2.0, 4.7, -1e-20, -4.0, 1.9999999999])
def test_scalar_pbc_matches(value):
    wrapped = pbc_scalar(value, 2.0)
    assert 0.0 <= wrapped < 2.0
    assert wrapped == pytest.approx(float(pbc(np.array([value]), 2.0)[0]), abs=1e-12)


def test_pbc_sym_is_centered():
    values = np.array([0.75, -0.5, 0.49, -0.51, 3.2])
    wrapped = pbc_sym(values, 1.0)
    np.testing.assert_allclose(wrapped, [-0.25, -0.5, 0.49, 0.49, 0.2], atol=1e-12)
    assert np.all((wrapped >= -0.5) & (wrapped < 0.5))
    for value, expected in zip(values, wrapped):
        assert pbc_sym_scalar(value, 1.0) == pytest.approx(expected, abs=1e-12)


@pytest.mark.parametrize("backend", ["numba", "numpy"])
def test_deterministic_drift(backend):
    integrator = make_integrator(backend, n_parts=2, activity=2.0, dt=0.1)
    positions = np.array([[5.0, 5.0], [5.0, 5.0]])
    orientations = np.array([0.0, np.pi / 2])
    forces = np.array([[1.0, 0.0], [0.0, -3.0]])

    integrator.step(positions, orientations, forces)
    np.testing.assert_allclose(positions, [[5.3, 5.0], [5.0, 4.9]], atol=1e-12)
    np.testing.assert_allclose(orientations, [0.0, np.pi / 2])


@pytest.mark.parametrize("backend", ["numba", "numpy"])
def test_wrap_after_step(backend):
    integrator = make_integrator(backend, n_parts=2, activity=1.0, dt=0.5, rot_dif=50.0)
    positions = np.array([[9.9, 0.1], [0.1, 9.9]])
    orientations = np.array([0.0, np.pi])
    forces = np.zeros((2, 2))

    integrator.step(positions, orientations, forces)
    assert np.all((positions >= 0.0) & (positions < 10.0))
    assert np.all((orientations >= 0.0) & (orientations < TWO_PI))
    np.testing.assert_allclose(positions, [[0.4, 0.1], [9.6, 9.9]], atol=1e-12)


@pytest.mark.parametrize("backend", ["numba", "numpy"])
def test_noise_amplitudes(backend):
    n_parts = 20000
    temperature, rot_dif, dt = 1.5, 0.5, 0.01
    integrator = make_integrator(
        backend, n_parts=n_parts, box_length=100.0, temperature=temperature,
        rot_dif=rot_dif, dt=dt, seed=3
    )
    positions = np.full((n_parts, 2), 50.0)
    orientations = np.full(n_parts, np.pi)

    integrator.step(positions, orientations, np.zeros((n_parts, 2)))
    displacement = positions - 50.0
    rotation = orientations - np.pi

    assert np.std(displacement[:, 0]) == pytest.approx(np.sqrt(2 * temperature * dt), rel=0.05)
    assert np.std(displacement[:, 1]) == pytest.approx(np.sqrt(2 * temperature * dt), rel=0.05)
    assert np.std(rotation) == pytest.approx(np.sqrt(2 * rot_dif * dt), rel=0.05)
    assert abs(np.corrcoef(displacement[:, 0], displacement[:, 1])[0, 1]) < 0.05
    assert abs(np.corrcoef(displacement[:, 0], rotation)[0, 1]) < 0.05


def test_noise_is_fresh_every_step():
    integrator = make_integrator(n_parts=100, temperature=1.0)
    integrator.draw_noise()
    first = integrator.noise_x.copy()
    integrator.draw_noise()
    assert not np.array_equal(first, integrator.noise_x)


def test_backends_consume_the_same_draws():
    rng = np.random.default_rng(11)
    positions = rng.uniform(0.0, 10.0, size=(50, 2))
    orientations = rng.uniform(0.0, TWO_PI, size=50)
    forces = rng.normal(size=(50, 2))

    results = []
    for backend in ("numba", "numpy"):
        integrator = make_integrator(
            backend, n_parts=50, temperature=0.3, rot_dif=2.0, activity=1.0, seed=5
        )
        pos, ang = positions.copy(), orientations.copy()
        integrator.step(pos, ang, forces)
        results.append((pos, ang))

    np.testing.assert_allclose(results[0][0], results[1][0], atol=1e-12)
    np.testing.assert_allclose(results[0][1], results[1][1], atol=1e-12)


def test_unknown_backend():
    with pytest.raises(ValueError):
        make_integrator("fortran")
