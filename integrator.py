# integrator.py
"""
Euler-Maruyama integration of the overdamped Langevin equations of active
Brownian particles:

    dx/dt     = F_x + v0 cos(theta) + sqrt(2 T) xi_x
    dy/dt     = F_y + v0 sin(theta) + sqrt(2 T) xi_y
    dtheta/dt = sqrt(2 D_r) eta

with xi_x, xi_y and eta independent Gaussian white noises.
"""
import logging
import numpy as np
from numba import jit

from constants import BACKENDS, DEFAULT_BACKEND, TWO_PI
from periodic import pbc, pbc_scalar

# --- Data Contracts ---
#
# class Integrator:
#   - __init__(self, box_length, n_parts, temperature, rot_dif, activity,
#              dt, rng, backend):
#     - Inputs: rng is a numpy Generator owned by the caller's state.
#     - Side Effects: Allocates the three noise buffers once.
#
#   - step(self, positions, orientations, forces) -> None:
#     - Side Effects: Draws 3N normals (x, then y, then angle), moves
#       positions and orientations in place.
#     - Invariants: after the call 0 <= x, y < L and 0 <= theta < 2 pi.


@jit(nopython=True)
def _euler_maruyama_numba(
    positions, orientations, forces, noise_x, noise_y, noise_angle,
    activity, dt, box_length
):
    """Numba-jitted per-particle update followed by the periodic wrap."""
    for i in range(positions.shape[0]):
        theta = orientations[i]
        c = np.cos(theta)
        s = np.sin(theta)
        x = positions[i, 0] + dt * (forces[i, 0] + activity * c) + noise_x[i]
        y = positions[i, 1] + dt * (forces[i, 1] + activity * s) + noise_y[i]
        positions[i, 0] = pbc_scalar(x, box_length)
        positions[i, 1] = pbc_scalar(y, box_length)
        orientations[i] = pbc_scalar(theta + noise_angle[i], 2.0 * np.pi)


def _euler_maruyama_numpy(
    positions, orientations, forces, noise_x, noise_y, noise_angle,
    activity, dt, box_length
):
    """Vectorized version of the same update."""
    # Both components come from one evaluation of the angle.
    heading = np.exp(1j * orientations)
    positions[:, 0] += dt * (forces[:, 0] + activity * heading.real) + noise_x
    positions[:, 1] += dt * (forces[:, 1] + activity * heading.imag) + noise_y
    orientations += noise_angle

    positions[:] = pbc(positions, box_length)
    orientations[:] = pbc(orientations, TWO_PI)


class Integrator:
    """
    Advances positions and orientations by one timestep.
    """
    def __init__(
        self,
        box_length: float,
        n_parts: int,
        temperature: float,
        rot_dif: float,
        activity: float,
        dt: float,
        rng: np.random.Generator,
        backend: str = DEFAULT_BACKEND,
    ):
        """
        Args:
            box_length (float): Side of the periodic box.
            n_parts (int): Number of particles.
            temperature (float): Sets the translational noise.
            rot_dif (float): Rotational diffusivity.
            activity (float): Self-propulsion speed v0.
            dt (float): Timestep.
            rng (np.random.Generator): Random stream, used by this state only.
            backend (str): "numba" or "numpy".
        """
        if backend not in BACKENDS:
            raise ValueError(f"Unknown backend '{backend}', expected one of {BACKENDS}.")

        self.box_length = float(box_length)
        self.n_parts = int(n_parts)
        self.activity = float(activity)
        self.dt = float(dt)
        self.rng = rng
        self.backend = backend

        # Standard deviations of the noises over one timestep.
        self.stddev_temp = np.sqrt(2.0 * temperature * self.dt)
        self.stddev_rot = np.sqrt(2.0 * rot_dif * self.dt)

        self.noise_x = np.zeros(self.n_parts, dtype=np.float64)
        self.noise_y = np.zeros(self.n_parts, dtype=np.float64)
        self.noise_angle = np.zeros(self.n_parts, dtype=np.float64)

        logging.debug(
            f"Integrator initialized: stddev_temp={self.stddev_temp:.4g}, "
            f"stddev_rot={self.stddev_rot:.4g}, backend '{backend}'."
        )

    def draw_noise(self) -> None:
        """Fills the noise buffers with fresh independent draws."""
        self.rng.standard_normal(out=self.noise_x)
        self.rng.standard_normal(out=self.noise_y)
        self.rng.standard_normal(out=self.noise_angle)
        self.noise_x *= self.stddev_temp
        self.noise_y *= self.stddev_temp
        self.noise_angle *= self.stddev_rot

    def step(self, positions: np.ndarray, orientations: np.ndarray, forces: np.ndarray) -> None:
        """Moves the particles in place and wraps them back into the box."""
        self.draw_noise()

        kernel = _euler_maruyama_numba if self.backend == "numba" else _euler_maruyama_numpy
        kernel(
            positions, orientations, forces,
            self.noise_x, self.noise_y, self.noise_angle,
            self.activity, self.dt, self.box_length
        )
