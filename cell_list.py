# cell_list.py
"""
Periodic cell list used to find interacting pairs in linear time.

The square box [0, L)^2 is cut into n_div_r x n_div_r cells whose side is
at least the interaction cutoff, so two particles closer than the cutoff
always sit in the same cell or in adjacent cells (through the periodic
boundaries included). Each cell only looks at half of its neighbors, which
makes every unordered pair of cells appear exactly once.
"""
import logging
import numpy as np
from numba import jit

from constants import CUTOFF_RADIUS, HALF_STENCIL, MIN_CELLS_PER_SIDE

# --- Data Contracts ---
#
# class CellList:
#   - __init__(self, box_length: float, cutoff: float = CUTOFF_RADIUS):
#     - Side Effects: Fixes the grid dimension and builds the static
#       neighbor table of shape (n_cells, stencil_size).
#
#   - build(self, positions: np.ndarray) -> None:
#     - Inputs: positions of shape (N, 2).
#     - Side Effects: Rebuilds cell_of, cell_start and cell_particles.
#     - Invariants: particles of a cell are stored in ascending index order.
#       cell_start[c]:cell_start[c + 1] is the slice of cell c in
#       cell_particles.


def build_neighbor_table(n_div_r: int) -> np.ndarray:
    """
    Returns the (n_cells, stencil_size) table of neighbor cells.

    Row c lists c itself first, then the cells of the half-stencil, with
    periodic wrapping. A grid with fewer than MIN_CELLS_PER_SIDE cells per
    side must be a single cell.
    """
    if n_div_r == 1:
        return np.zeros((1, 1), dtype=np.int64)
    if n_div_r < MIN_CELLS_PER_SIDE:
        raise ValueError(
            f"A periodic grid needs 1 or at least {MIN_CELLS_PER_SIDE} "
            f"cells per side, got {n_div_r}."
        )

    n_cells = n_div_r * n_div_r
    table = np.empty((n_cells, len(HALF_STENCIL)), dtype=np.int64)
    for cy in range(n_div_r):
        for cx in range(n_div_r):
            cell = cx + cy * n_div_r
            for k, (ox, oy) in enumerate(HALF_STENCIL):
                nx = (cx + ox) % n_div_r
                ny = (cy + oy) % n_div_r
                table[cell, k] = nx + ny * n_div_r
    return table


@jit(nopython=True)
def _assign_cells_numba(positions, cell_size, n_div_r, cell_of):
    """Writes the raster index of the cell of every particle."""
    for i in range(positions.shape[0]):
        cx = int(np.floor(positions[i, 0] / cell_size)) % n_div_r
        cy = int(np.floor(positions[i, 1] / cell_size)) % n_div_r
        cell_of[i] = cx + cy * n_div_r


@jit(nopython=True)
def _counting_sort_numba(cell_of, n_cells, cell_start, cell_particles, fill):
    """
    Stable counting sort of the particles by cell.

    Particle indices are visited in increasing order, so each cell keeps
    them sorted. fill is scratch space of size n_cells.
    """
    cell_start[:] = 0
    for i in range(cell_of.shape[0]):
        cell_start[cell_of[i] + 1] += 1
    for c in range(n_cells):
        cell_start[c + 1] += cell_start[c]

    fill[:] = cell_start[:n_cells]
    for i in range(cell_of.shape[0]):
        c = cell_of[i]
        cell_particles[fill[c]] = i
        fill[c] += 1


class CellList:
    """
    Uniform periodic grid of cells, rebuilt from scratch at every step.
    """
    def __init__(self, box_length: float, cutoff: float = CUTOFF_RADIUS):
        """
        Fixes the grid geometry.

        Args:
            box_length (float): Side of the periodic box.
            cutoff (float): Interaction range. Cells are at least this wide.
        """
        self.box_length = float(box_length)
        self.cutoff = float(cutoff)

        n_div_r = int(np.floor(self.box_length / self.cutoff))
        if n_div_r < MIN_CELLS_PER_SIDE:
            # Offsets +1 and -1 would be the same cell: fall back to one cell
            # holding every particle.
            n_div_r = 1
        self.n_div_r = n_div_r
        self.n_cells = n_div_r * n_div_r
        self.cell_size = self.box_length / n_div_r

        # The topology never changes: compute it once.
        self.neighbors = build_neighbor_table(n_div_r)

        self.cell_of = np.zeros(0, dtype=np.int64)
        self.cell_particles = np.zeros(0, dtype=np.int64)
        self.cell_start = np.zeros(self.n_cells + 1, dtype=np.int64)
        self.fill = np.zeros(self.n_cells, dtype=np.int64)

        logging.info(
            f"Cell list enabled: {self.n_div_r}x{self.n_div_r} grid, "
            f"cell size {self.cell_size:.3f}."
        )

    def build(self, positions: np.ndarray) -> None:
        """Partitions all particles into cells. O(N)."""
        n_parts = positions.shape[0]
        if self.cell_of.shape[0] != n_parts:
            self.cell_of = np.empty(n_parts, dtype=np.int64)
            self.cell_particles = np.empty(n_parts, dtype=np.int64)

        _assign_cells_numba(positions, self.cell_size, self.n_div_r, self.cell_of)
        _counting_sort_numba(
            self.cell_of, self.n_cells, self.cell_start, self.cell_particles,
            self.fill
        )

    def cell_count(self) -> int:
        return self.n_cells

    def neighbor_cells_of(self, cell: int) -> np.ndarray:
        """Half-stencil of a cell, starting with the cell itself."""
        return self.neighbors[cell]

    def particles_in(self, cell: int) -> np.ndarray:
        """Indices of the particles in a cell, in ascending order."""
        return self.cell_particles[self.cell_start[cell]:self.cell_start[cell + 1]]
