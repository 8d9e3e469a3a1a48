# simulation.py
"""
Handles the time evolution of the active Brownian particles.

This module defines the SimulationState class, which owns the particle
arrays, the cell list, the force field and the integrator, and advances
the system by one timestep at each call of evolve().
"""
import logging
import numpy as np
from typing import Dict, Any, Optional

from cell_list import CellList
from constants import DEFAULT_BACKEND
from forces import ForceField
from integrator import Integrator
from particle import ParticleSystem

# --- Data Contracts ---
#
# class SimulationState:
#   - __init__(self, box_length, n_parts, pot_strength, temperature,
#              rot_dif, activity, dt, seed=None, backend="numba"):
#     - Inputs: parameters already validated by the caller
#       (see utils.validate_parameters).
#     - Side Effects: Draws the initial configuration from the seeded
#       random stream.
#
#   - evolve(self) -> None:
#     - Side Effects: Recomputes the forces, then moves every particle.
#     - Invariants: Particle count remains constant. Positions stay in
#       [0, L)^2 and orientations in [0, 2 pi).
#
#   - positions / orientations / forces -> np.ndarray:
#     - Outputs: read-only views on the internal arrays.


def _read_only(array: np.ndarray) -> np.ndarray:
    view = array.view()
    view.flags.writeable = False
    return view


class SimulationState:
    """
    State of the system and its evolution by coupled Langevin equations.
    """
    def __init__(
        self,
        box_length: float,
        n_parts: int,
        pot_strength: float,
        temperature: float,
        rot_dif: float,
        activity: float,
        dt: float,
        seed: Optional[int] = None,
        backend: str = DEFAULT_BACKEND,
    ):
        """
        Initializes the state: particles randomly placed in a 2d box.

        Args:
            box_length (float): Length of the box.
            n_parts (int): Number of particles.
            pot_strength (float): Strength of the interparticle potential.
            temperature (float): Temperature.
            rot_dif (float): Rotational diffusivity.
            activity (float): Activity (self-propulsion speed).
            dt (float): Timestep.
            seed (Optional[int]): Seed of the random stream, time based if None.
            backend (str): "numba" (jitted loops) or "numpy" (vectorized).
        """
        self.box_length = float(box_length)
        self.n_parts = int(n_parts)
        self.pot_strength = float(pot_strength)
        self.temperature = float(temperature)
        self.rot_dif = float(rot_dif)
        self.activity = float(activity)
        self.dt = float(dt)
        self.backend = backend
        self.step_count = 0

        self.particles = ParticleSystem(self.n_parts, self.box_length, seed)
        self.cell_list = CellList(self.box_length)
        self.force_field = ForceField(
            self.box_length, self.n_parts, self.pot_strength, self.cell_list, backend
        )
        self.integrator = Integrator(
            self.box_length, self.n_parts, self.temperature, self.rot_dif,
            self.activity, self.dt, self.particles.rng, backend
        )

        logging.info(
            f"SimulationState initialized: n={self.n_parts}, L={self.box_length:.4g}, "
            f"k={self.pot_strength}, T={self.temperature}, D_r={self.rot_dif}, "
            f"v0={self.activity}, dt={self.dt}, backend '{backend}'."
        )

    @classmethod
    def from_params(cls, params: Dict[str, Any]) -> "SimulationState":
        """Builds a state from a validated parameter dictionary."""
        return cls(
            box_length=params['box_length'],
            n_parts=params['n_parts'],
            pot_strength=params['pot_strength'],
            temperature=params['temperature'],
            rot_dif=params['rot_dif'],
            activity=params['activity'],
            dt=params['dt'],
            seed=params.get('seed'),
            backend=params.get('backend', DEFAULT_BACKEND),
        )

    @property
    def seed(self) -> int:
        return self.particles.seed

    @property
    def positions(self) -> np.ndarray:
        return _read_only(self.particles.positions)

    @property
    def orientations(self) -> np.ndarray:
        return _read_only(self.particles.orientations)

    @property
    def forces(self) -> np.ndarray:
        """Internal forces computed during the last step."""
        return _read_only(self.force_field.forces)

    def evolve(self) -> None:
        """
        Do one time step.

        Evolve the system for one time step according to the coupled
        Langevin equations.
        """
        forces = self.force_field.compute(self.particles.positions)
        self.integrator.step(self.particles.positions, self.particles.orientations, forces)
        self.step_count += 1
