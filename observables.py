# observables.py
"""
Computation and export of the observables.

Pair correlations are accumulated as histograms over ordered pairs (i, j),
expressed in the frame of particle i:
- polar mode: pairs closer than L/2, binned by distance r, angle of the
  separation relative to the orientation of i, and (unless less_obs)
  relative orientation of j;
- cartesian mode: every minimum-image pair whose separation, projected on
  the body axes of i, lands in [-L/2, L/2)^2, and (unless less_obs) the
  relative orientation of j.

In the cartesian mode the rotated square only partly covers the bins away
from the inscribed disc, so each bin is normalised by its area weighted
with the fraction of orientations of i for which it is sampled.

The internal force projected on each particle's orientation is averaged
alongside.
"""
import logging
import numpy as np
from numba import jit
from typing import Dict, Any

from periodic import pbc_scalar, pbc_sym_scalar

# --- Data Contracts ---
#
# class Observables:
#   - compute(self, state: SimulationState) -> None:
#     - Inputs: a state between two calls of evolve().
#     - Side Effects: Adds one sample to the histogram and force moments.
#
#   - export(self, path: str, params: Dict[str, Any]) -> None:
#     - Side Effects: Writes a compressed .npz archive.


@jit(nopython=True)
def _bin(value, scale, n_bins):
    k = int(value * scale)
    if k >= n_bins:
        k = n_bins - 1
    elif k < 0:
        k = 0
    return k


@jit(nopython=True)
def _accumulate_pair(
    dx, dy, theta_i, theta_j, box_length, scal_r, n_div_r, n_div_angle,
    less_obs, cartesian, histogram
):
    """Adds the pair seen from particle i (separation i -> j) to the histogram."""
    scal_angle = n_div_angle / (2.0 * np.pi)
    n_phi = 1 if less_obs else n_div_angle

    if cartesian:
        c = np.cos(theta_i)
        s = np.sin(theta_i)
        along = dx * c + dy * s
        across = -dx * s + dy * c
        half = 0.5 * box_length
        if along < -half or along >= half or across < -half or across >= half:
            return
        first = _bin(along + half, scal_r, n_div_r)
        second = _bin(across + half, scal_r, n_div_r)
        idx = (first * n_div_r + second) * n_phi
    else:
        r = np.sqrt(dx * dx + dy * dy)
        theta = pbc_scalar(np.arctan2(dy, dx) - theta_i, 2.0 * np.pi)
        first = _bin(r, scal_r, n_div_r)
        second = _bin(theta, scal_angle, n_div_angle)
        idx = (first * n_div_angle + second) * n_phi

    if not less_obs:
        phi = pbc_scalar(theta_j - theta_i, 2.0 * np.pi)
        idx += _bin(phi, scal_angle, n_div_angle)
    histogram[idx] += 1


@jit(nopython=True)
def _pair_histogram_numba(
    positions, orientations, box_length, scal_r, n_div_r, n_div_angle,
    less_obs, cartesian, histogram
):
    n_parts = positions.shape[0]
    half_sq = 0.25 * box_length * box_length
    for i in range(n_parts):
        for j in range(i + 1, n_parts):
            dx = pbc_sym_scalar(positions[j, 0] - positions[i, 0], box_length)
            dy = pbc_sym_scalar(positions[j, 1] - positions[i, 1], box_length)
            if not cartesian and dx * dx + dy * dy >= half_sq:
                continue
            _accumulate_pair(
                dx, dy, orientations[i], orientations[j], box_length, scal_r,
                n_div_r, n_div_angle, less_obs, cartesian, histogram
            )
            _accumulate_pair(
                -dx, -dy, orientations[j], orientations[i], box_length, scal_r,
                n_div_r, n_div_angle, less_obs, cartesian, histogram
            )


def rotation_acceptance(rho: np.ndarray, half: float) -> np.ndarray:
    """
    Fraction of directions for which a point at distance rho from the
    origin lies inside the square [-half, half)^2.

    It is 1 inside the inscribed disc, decreases as 1 - (4/pi) acos(half/rho)
    beyond it and vanishes past the corners (rho > half * sqrt(2)).
    """
    ratio = half / np.maximum(rho, half)
    return np.clip(1.0 - 4.0 / np.pi * np.arccos(ratio), 0.0, 1.0)


def cartesian_bin_acceptance(box_length: float, n_div_r: int, n_sub: int = 16) -> np.ndarray:
    """
    Average of rotation_acceptance over each cartesian bin, by midpoint
    quadrature on n_sub x n_sub points per bin. Shape (n_div_r, n_div_r).
    """
    half = 0.5 * box_length
    step = box_length / n_div_r
    offsets = (np.arange(n_sub) + 0.5) / n_sub * step
    coords = -half + np.arange(n_div_r)[:, np.newaxis] * step + offsets[np.newaxis, :]

    acceptance = np.empty((n_div_r, n_div_r))
    for a in range(n_div_r):
        # (n_div_r, n_sub, n_sub): second bin index, along sub-point, across sub-point
        rho = np.hypot(coords[a][np.newaxis, :, np.newaxis], coords[:, np.newaxis, :])
        acceptance[a] = rotation_acceptance(rho, half).mean(axis=(1, 2))
    return acceptance


class Observables:
    """
    Accumulates pair correlations and force statistics over many samples.
    """
    def __init__(
        self,
        box_length: float,
        n_parts: int,
        step_r: float,
        n_div_angle: int,
        less_obs: bool = False,
        cartesian: bool = False,
    ):
        """
        Args:
            box_length (float): Side of the periodic box.
            n_parts (int): Number of particles.
            step_r (float): Requested size of the spatial bins. It is
                adjusted so that the bins tile the sampled range exactly.
            n_div_angle (int): Number of bins for each angle.
            less_obs (bool): Drop the relative orientation of the pair.
            cartesian (bool): Bin the separation in cartesian coordinates.
        """
        if step_r <= 0 or n_div_angle <= 0:
            msg = (
                f"Configuration error: step_r ({step_r}) and n_div_angle "
                f"({n_div_angle}) should be strictly positive."
            )
            logging.critical(msg)
            raise ValueError(msg)

        self.box_length = float(box_length)
        self.n_parts = int(n_parts)
        self.n_div_angle = int(n_div_angle)
        self.less_obs = bool(less_obs)
        self.cartesian = bool(cartesian)

        # Polar bins cover [0, L/2), cartesian bins cover [-L/2, L/2).
        span = self.box_length if self.cartesian else 0.5 * self.box_length
        self.n_div_r = max(1, int(np.floor(span / step_r)))
        self.step_r = span / self.n_div_r
        self.scal_r = 1.0 / self.step_r

        self.shape = (self.n_div_r, self.n_div_r if self.cartesian else self.n_div_angle)
        if not self.less_obs:
            self.shape += (self.n_div_angle,)
        self.histogram = np.zeros(int(np.prod(self.shape)), dtype=np.int64)
        self.acceptance = None
        if self.cartesian:
            self.acceptance = cartesian_bin_acceptance(self.box_length, self.n_div_r)

        self.n_calls = 0
        self.f_along = 0.0
        self.f_along_sq = 0.0

        logging.info(
            f"Observables initialized: histogram shape {self.shape}, "
            f"step_r={self.step_r:.4g}, {'cartesian' if self.cartesian else 'polar'} mode."
        )

    def compute(self, state) -> None:
        """Compute the observables for a given state."""
        positions = state.positions
        orientations = state.orientations
        _pair_histogram_numba(
            positions, orientations, self.box_length, self.scal_r,
            self.n_div_r, self.n_div_angle, self.less_obs, self.cartesian,
            self.histogram
        )

        forces = state.forces
        f_along = forces[:, 0] * np.cos(orientations) + forces[:, 1] * np.sin(orientations)
        self.f_along += np.mean(f_along)
        self.f_along_sq += np.mean(f_along ** 2)
        self.n_calls += 1

    def mean_force_along(self) -> float:
        """Internal force along the orientation, averaged over particles and samples."""
        if self.n_calls == 0:
            return 0.0
        return self.f_along / self.n_calls

    def mean_force_along_sq(self) -> float:
        if self.n_calls == 0:
            return 0.0
        return self.f_along_sq / self.n_calls

    def _bin_weights(self) -> np.ndarray:
        """Expected fraction of an ideal gas pair falling in each bin."""
        if self.cartesian:
            area = self.step_r ** 2 * self.acceptance
        else:
            edges = np.arange(self.n_div_r + 1) * self.step_r
            rings = np.pi * np.diff(edges ** 2) / self.n_div_angle
            area = np.repeat(rings[:, np.newaxis], self.n_div_angle, axis=1)
        weights = area / self.box_length ** 2
        if not self.less_obs:
            weights = weights[..., np.newaxis] / self.n_div_angle * np.ones(self.n_div_angle)
        return weights

    def correlations(self) -> np.ndarray:
        """
        Histogram normalized by its ideal gas value, shaped self.shape.

        A value of 1 means no correlation.
        """
        counts = self.histogram.reshape(self.shape).astype(np.float64)
        if self.n_calls == 0 or self.n_parts < 2:
            return np.zeros(self.shape)
        expected = self.n_calls * self.n_parts * (self.n_parts - 1) * self._bin_weights()
        return counts / expected

    def export(self, path: str, params: Dict[str, Any]) -> None:
        """
        Export to a compressed .npz archive.

        The run parameters are stored as "param_<name>" entries.
        """
        param_arrays = {
            f"param_{name}": np.asarray(value)
            for name, value in params.items()
            if value is not None
        }
        np.savez_compressed(
            path,
            histogram=self.histogram.reshape(self.shape),
            correlations=self.correlations(),
            f_along=self.mean_force_along(),
            f_along_sq=self.mean_force_along_sq(),
            n_calls=self.n_calls,
            step_r=self.step_r,
            n_div_r=self.n_div_r,
            n_div_angle=self.n_div_angle,
            less_obs=self.less_obs,
            cartesian=self.cartesian,
            **param_arrays
        )
        logging.info(f"Observables exported to {path} ({self.n_calls} samples).")
