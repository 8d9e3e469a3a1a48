# particle.py
"""
Manages the state of all particles in the simulation.

This module defines the ParticleSystem class, which is responsible for
initializing and storing particle data (position, orientation) in NumPy
arrays, together with the random stream that drives the whole run.
"""
import logging
import time
import numpy as np
from typing import Optional

from constants import TWO_PI

# --- Data Contracts ---
#
# class ParticleSystem:
#   - __init__(self, n_parts: int, box_length: float, seed: Optional[int]):
#     - Inputs:
#       - n_parts: number of particles, fixed for the run.
#       - box_length: side of the periodic box.
#       - seed: seed of the random stream. None means time based.
#     - Side Effects: Draws positions uniformly in [0, L)^2 and orientations
#       uniformly in [0, 2 pi).
#     - Invariants:
#       - self.positions is a NumPy array of shape (N, 2) of dtype float64.
#       - self.orientations is a NumPy array of shape (N,) of dtype float64.
#       - Index i refers to the same particle for the whole run.

class ParticleSystem:
    """
    A container for all particles, managing their state via NumPy arrays.
    """
    def __init__(self, n_parts: int, box_length: float, seed: Optional[int] = None):
        """
        Initializes the particle system.

        Args:
            n_parts (int): Number of particles.
            box_length (float): Side of the periodic box.
            seed (Optional[int]): Seed of the random stream.
        """
        self.particle_count = int(n_parts)
        self.box_length = float(box_length)
        self.seed = int(seed) if seed is not None else time.time_ns()

        # All randomness of a run goes through this single stream. It must
        # not be shared with another state.
        self.rng = np.random.default_rng(self.seed)

        self.positions = self.rng.uniform(
            low=0.0,
            high=self.box_length,
            size=(self.particle_count, 2)
        )
        self.orientations = self.rng.uniform(
            low=0.0,
            high=TWO_PI,
            size=self.particle_count
        )

        logging.info(
            f"ParticleSystem initialized with {self.particle_count} "
            f"particles in a box of side {self.box_length:.4g} (seed {self.seed})."
        )
        logging.debug(
            f"Particle data arrays created. "
            f"Positions shape: {self.positions.shape}, "
            f"Orientations shape: {self.orientations.shape}"
        )

    def place(self, positions: np.ndarray, orientations: np.ndarray) -> None:
        """
        Overwrites the configuration, e.g. to start from a prepared state.

        Values are copied into the existing arrays; they must already be
        inside [0, L) and [0, 2 pi).

        Raises:
            ValueError: On a shape mismatch or a value outside its range.
        """
        positions = np.asarray(positions, dtype=np.float64)
        orientations = np.asarray(orientations, dtype=np.float64)
        if positions.shape != self.positions.shape or orientations.shape != self.orientations.shape:
            raise ValueError(
                f"Expected positions {self.positions.shape} and orientations "
                f"{self.orientations.shape}, got {positions.shape} and {orientations.shape}."
            )
        if not np.all((positions >= 0.0) & (positions < self.box_length)):
            raise ValueError(f"Positions should lie in [0, {self.box_length}).")
        if not np.all((orientations >= 0.0) & (orientations < TWO_PI)):
            raise ValueError("Orientations should lie in [0, 2 pi).")
        self.positions[:] = positions
        self.orientations[:] = orientations
