# force_kernels.py
from __future__ import annotations

import numpy as np
import numpy.typing as npt
import numba as nb

JIGGLE_SCALE = 1e-6


# Jiggle values drawn per force application
JIGGLE_POOL = 64


def jiggle_noise(rng: np.random.Generator, size: int = JIGGLE_POOL) -> npt.NDArray[np.float64]:
    """Tiny random offsets used to separate coincident points."""
    return (rng.random(size) - 0.5) * JIGGLE_SCALE


# ---- JIT'd sequential force kernels (velocities are updated in place) ----

@nb.njit(cache=True, fastmath=True)
def collide_kernel(
    x: npt.NDArray[np.float64],
    y: npt.NDArray[np.float64],
    vx: npt.NDArray[np.float64],
    vy: npt.NDArray[np.float64],
    radii: npt.NDArray[np.float64],
    strength: float,
    iterations: int,
    noise: npt.NDArray[np.float64]
) -> None:
    """
    Pairwise collision relaxation.

    Each node is tested against every later node using its anticipated
    position (x + vx). Overlaps are resolved by pushing both nodes apart,
    weighted by the square of the other node's radius.

    Args:
        x, y:       Positions, shape (n,).
        vx, vy:     Velocities, shape (n,), modified in place.
        radii:      Collision radii, shape (n,).
        strength:   Fraction of the overlap resolved per iteration.
        iterations: Relaxation passes per tick.
        noise:      Jiggle values, consumed cyclically.
    """
    n = x.shape[0]
    n_noise = noise.shape[0]
    k_noise = 0
    for _ in range(iterations):
        for i in range(n):
            ri = radii[i]
            ri2 = ri * ri
            xi = x[i] + vx[i]
            yi = y[i] + vy[i]
            for j in range(i + 1, n):
                rj = radii[j]
                r = ri + rj
                dx = xi - (x[j] + vx[j])
                dy = yi - (y[j] + vy[j])
                l = dx * dx + dy * dy
                if l >= r * r:
                    continue
                if dx == 0.0:
                    dx = noise[k_noise % n_noise]
                    k_noise += 1
                    l += dx * dx
                if dy == 0.0:
                    dy = noise[k_noise % n_noise]
                    k_noise += 1
                    l += dy * dy
                l = np.sqrt(l)
                l = (r - l) / l * strength
                dx *= l
                dy *= l
                rj2 = rj * rj
                w = rj2 / (ri2 + rj2)
                vx[i] += dx * w
                vy[i] += dy * w
                w = 1.0 - w
                vx[j] -= dx * w
                vy[j] -= dy * w


@nb.njit(cache=True, fastmath=True)
def link_kernel(
    x: npt.NDArray[np.float64],
    y: npt.NDArray[np.float64],
    vx: npt.NDArray[np.float64],
    vy: npt.NDArray[np.float64],
    sources: npt.NDArray[np.int64],
    targets: npt.NDArray[np.int64],
    distances: npt.NDArray[np.float64],
    strengths: npt.NDArray[np.float64],
    bias: npt.NDArray[np.float64],
    alpha: float,
    iterations: int,
    noise: npt.NDArray[np.float64]
) -> None:
    """
    Spring force along each link, pulling endpoints toward the rest distance.

    Args:
        sources, targets: Endpoint indices per link, shape (m,).
        distances:        Rest length per link.
        strengths:        Spring stiffness per link.
        bias:             Share of the correction applied to the target.
        alpha:            Current simulation activity.
        iterations:       Passes per tick.
        noise:            Jiggle values, consumed cyclically.
    """
    m = sources.shape[0]
    n_noise = noise.shape[0]
    k_noise = 0
    for _ in range(iterations):
        for k in range(m):
            s = sources[k]
            t = targets[k]
            dx = x[t] + vx[t] - x[s] - vx[s]
            dy = y[t] + vy[t] - y[s] - vy[s]
            if dx == 0.0:
                dx = noise[k_noise % n_noise]
                k_noise += 1
            if dy == 0.0:
                dy = noise[k_noise % n_noise]
                k_noise += 1
            l = np.sqrt(dx * dx + dy * dy)
            l = (l - distances[k]) / l * alpha * strengths[k]
            dx *= l
            dy *= l
            b = bias[k]
            vx[t] -= dx * b
            vy[t] -= dy * b
            b = 1.0 - b
            vx[s] += dx * b
            vy[s] += dy * b


def many_body_batch(
    x: npt.NDArray[np.float64],
    y: npt.NDArray[np.float64],
    strengths: npt.NDArray[np.float64],
    distance_min: float,
    alpha: float,
    rng: np.random.Generator
) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
    """
    Exact pairwise charge force (repulsive for negative strengths).

    Returns:
        (dvx, dvy) velocity increments, shape (n,).
    """
    dx = x[np.newaxis, :] - x[:, np.newaxis]
    dy = y[np.newaxis, :] - y[:, np.newaxis]

    # separate coincident points, keep the diagonal at zero
    off_diag = ~np.eye(x.shape[0], dtype=bool)
    zero_x = (dx == 0.0) & off_diag
    zero_y = (dy == 0.0) & off_diag
    if zero_x.any():
        dx[zero_x] = jiggle_noise(rng, int(zero_x.sum()))
    if zero_y.any():
        dy[zero_y] = jiggle_noise(rng, int(zero_y.sum()))

    l = dx * dx + dy * dy
    d2_min = distance_min * distance_min
    l = np.where(l < d2_min, np.sqrt(d2_min * l), l)
    np.fill_diagonal(l, 1.0)

    w = strengths[np.newaxis, :] * alpha / l
    np.fill_diagonal(w, 0.0)
    return (dx * w).sum(axis=1), (dy * w).sum(axis=1)
