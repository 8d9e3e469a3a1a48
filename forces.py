# forces.py
"""
Pairwise internal forces between the particles (harmonic spheres).

Two particles i and j at minimum-image separation r < 1 repel each other
with the force k * (1/r - 1) * (r_i - r_j) on i, and its opposite on j.
The force vanishes at contact (r = 1) and diverges as r -> 0. Full overlaps
are not guarded against.
"""
import logging
import numpy as np
from numba import jit

from cell_list import CellList
from constants import BACKENDS, DEFAULT_BACKEND
from periodic import pbc_sym, pbc_sym_scalar

# --- Data Contracts ---
#
# class ForceField:
#   - __init__(self, box_length, n_parts, pot_strength, cell_list, backend):
#     - Side Effects: Allocates the (N, 2) force buffer once.
#
#   - compute(self, positions: np.ndarray) -> np.ndarray:
#     - Inputs: positions of shape (N, 2), inside [0, L).
#     - Outputs: the force buffer, fully overwritten.
#     - Side Effects: Rebuilds the cell list from the positions.
#     - Invariants: every unordered pair closer than the cutoff contributes
#       exactly once, with opposite forces on its two particles.


@jit(nopython=True)
def _harmonic_forces_numba(
    positions, box_length, pot_strength, neighbors, cell_start, cell_particles, forces
):
    """
    Numba-jitted loop over cells and their half-stencil.

    Column 0 of the neighbor table is the cell itself. Inside it, a particle
    is only paired with the particles stored after it.
    """
    forces[:, :] = 0.0
    n_cells = neighbors.shape[0]
    stencil_size = neighbors.shape[1]

    for b1 in range(n_cells):
        start1 = cell_start[b1]
        end1 = cell_start[b1 + 1]
        for k in range(stencil_size):
            b2 = neighbors[b1, k]
            start2 = cell_start[b2]
            end2 = cell_start[b2 + 1]
            for a in range(start1, end1):
                i = cell_particles[a]
                first = a + 1 if k == 0 else start2
                for b in range(first, end2):
                    j = cell_particles[b]
                    dx = pbc_sym_scalar(positions[i, 0] - positions[j, 0], box_length)
                    dy = pbc_sym_scalar(positions[i, 1] - positions[j, 1], box_length)
                    dr2 = dx * dx + dy * dy

                    if 0.0 < dr2 < 1.0:
                        u = pot_strength * (1.0 / np.sqrt(dr2) - 1.0)
                        fx = u * dx
                        fy = u * dy
                        forces[i, 0] += fx
                        forces[j, 0] -= fx
                        forces[i, 1] += fy
                        forces[j, 1] -= fy


def _candidate_pairs_numpy(cell_list: CellList):
    """
    Expands the cell list into arrays (i, j) of candidate pairs.

    Same semantics as the jitted loop: for each particle, every particle of
    each half-stencil cell, and only the later entries of its own cell.
    """
    order = cell_list.cell_particles
    cell_start = cell_list.cell_start
    cell_of = cell_list.cell_of
    n_parts = order.shape[0]

    rank = np.empty(n_parts, dtype=np.int64)
    rank[order] = np.arange(n_parts)
    particles = np.arange(n_parts)

    i_chunks = []
    j_chunks = []
    for k in range(cell_list.neighbors.shape[1]):
        target = cell_list.neighbors[cell_of, k]
        first = rank + 1 if k == 0 else cell_start[target]
        counts = cell_start[target + 1] - first
        total = int(counts.sum())
        if total == 0:
            continue

        run_offsets = np.repeat(np.cumsum(counts) - counts, counts)
        slots = np.repeat(first, counts) + (np.arange(total) - run_offsets)
        i_chunks.append(np.repeat(particles, counts))
        j_chunks.append(order[slots])

    if not i_chunks:
        empty = np.zeros(0, dtype=np.int64)
        return empty, empty
    return np.concatenate(i_chunks), np.concatenate(j_chunks)


def _harmonic_forces_numpy(positions, box_length, pot_strength, cell_list, forces):
    """Vectorized evaluation of the same pair law over batched candidates."""
    forces.fill(0.0)
    i_idx, j_idx = _candidate_pairs_numpy(cell_list)
    if i_idx.size == 0:
        return

    delta = pbc_sym(positions[i_idx] - positions[j_idx], box_length)
    dr2 = np.einsum('ij,ij->i', delta, delta)
    active = (dr2 > 0.0) & (dr2 < 1.0)
    if not np.any(active):
        return

    delta = delta[active]
    u = pot_strength * (1.0 / np.sqrt(dr2[active]) - 1.0)
    pair_forces = u[:, np.newaxis] * delta
    np.add.at(forces, i_idx[active], pair_forces)
    np.subtract.at(forces, j_idx[active], pair_forces)


def brute_force_forces(positions: np.ndarray, box_length: float, pot_strength: float) -> np.ndarray:
    """
    O(N^2) reference computation over all pairs, without any cell list.
    """
    delta = pbc_sym(positions[:, np.newaxis, :] - positions[np.newaxis, :, :], box_length)
    dr2 = np.sum(delta ** 2, axis=-1)
    active = (dr2 > 0.0) & (dr2 < 1.0)

    u = np.zeros_like(dr2)
    u[active] = pot_strength * (1.0 / np.sqrt(dr2[active]) - 1.0)
    return np.sum(u[:, :, np.newaxis] * delta, axis=1)


class ForceField:
    """
    Computes the net internal force on every particle through a cell list.
    """
    def __init__(
        self,
        box_length: float,
        n_parts: int,
        pot_strength: float,
        cell_list: CellList,
        backend: str = DEFAULT_BACKEND,
    ):
        if backend not in BACKENDS:
            raise ValueError(f"Unknown backend '{backend}', expected one of {BACKENDS}.")

        self.box_length = float(box_length)
        self.n_parts = int(n_parts)
        self.pot_strength = float(pot_strength)
        self.cell_list = cell_list
        self.backend = backend

        # Reused at every step, never reallocated.
        self.forces = np.zeros((self.n_parts, 2), dtype=np.float64)

        logging.debug(f"ForceField initialized with the '{backend}' backend.")

    def compute(self, positions: np.ndarray) -> np.ndarray:
        """
        Rebuilds the cell list and overwrites the force buffer.

        Returns:
            np.ndarray: The (N, 2) force buffer.
        """
        self.cell_list.build(positions)

        if self.backend == "numba":
            _harmonic_forces_numba(
                positions, self.box_length, self.pot_strength,
                self.cell_list.neighbors, self.cell_list.cell_start,
                self.cell_list.cell_particles, self.forces
            )
        else:
            _harmonic_forces_numpy(
                positions, self.box_length, self.pot_strength,
                self.cell_list, self.forces
            )
        return self.forces
