"""
Force Integrator
================
A small velocity-Verlet style force simulation in the manner of d3-force.

Why is this file needed?
------------------------
1. Layout: Unpinned nodes are moved every tick by repulsion, link springs and
   collision avoidance.
2. Decoupling: The integrator knows nothing about Qt. It reads and writes the
   `x`, `y`, `vx`, `vy` fields of the nodes it has been given and never owns
   their identity.

Per tick the node fields are gathered into numpy arrays, every registered
force adds to the velocities, and the result is integrated and scattered
back onto the nodes.

Classes:
    Force: Base class of all forces.
    ManyBodyForce, LinkForce, CollideForce: The three layout forces.
    ForceSimulation: Alpha cooling, force registry and integration.
"""
from __future__ import annotations

import logging
import math
from typing import Optional, Sequence, TYPE_CHECKING

import numpy as np

from topoview.config import DEFAULT_NODE_RADIUS, SimulationSettings
from topoview.model.force_kernels import collide_kernel, link_kernel, many_body_batch, jiggle_noise

if TYPE_CHECKING:
    import numpy.typing as npt
    from topoview.model.graph import TopoNode, LinkEntry

logger = logging.getLogger(__name__)

INITIAL_RADIUS = 10.0
INITIAL_ANGLE = math.pi * (3.0 - math.sqrt(5.0))


class Force:
    """Base class. `initialize` is called whenever the node list changes."""

    def initialize(self, nodes: Sequence[TopoNode], rng: np.random.Generator) -> None:
        self._nodes = nodes
        self._rng = rng

    def apply(
        self,
        alpha: float,
        x: npt.NDArray[np.float64],
        y: npt.NDArray[np.float64],
        vx: npt.NDArray[np.float64],
        vy: npt.NDArray[np.float64]
    ) -> None:
        raise NotImplementedError("`apply` must be implemented in subclass.")


class ManyBodyForce(Force):
    """Pairwise charge between all nodes. Negative strength repels."""

    def __init__(self, strength: float = -30.0, distance_min: float = 1.0) -> None:
        self.strength = strength
        self.distance_min = distance_min
        self._strengths = np.empty(0, dtype=np.float64)

    def initialize(self, nodes: Sequence[TopoNode], rng: np.random.Generator) -> None:
        super().initialize(nodes, rng)
        self._strengths = np.full(len(nodes), self.strength, dtype=np.float64)

    def apply(self, alpha, x, y, vx, vy) -> None:
        if x.shape[0] < 2:
            return
        dvx, dvy = many_body_batch(x, y, self._strengths, self.distance_min, alpha, self._rng)
        vx += dvx
        vy += dvy


class CollideForce(Force):
    """Treats nodes as discs of `radius + margin` and relaxes overlaps."""

    def __init__(self, margin: float = 1.0, strength: float = 1.0, iterations: int = 3) -> None:
        self.margin = margin
        self.strength = strength
        self.iterations = iterations
        self._radii = np.empty(0, dtype=np.float64)

    def initialize(self, nodes: Sequence[TopoNode], rng: np.random.Generator) -> None:
        super().initialize(nodes, rng)
        self._radii = np.array(
            [(node.radius or DEFAULT_NODE_RADIUS) + self.margin for node in nodes],
            dtype=np.float64
        )

    def apply(self, alpha, x, y, vx, vy) -> None:
        if x.shape[0] < 2:
            return
        collide_kernel(x, y, vx, vy, self._radii, self.strength, self.iterations, jiggle_noise(self._rng))


class LinkForce(Force):
    """
    Springs along links.

    Stiffness defaults to 1 / min(degree(source), degree(target)) so that
    hubs are not pulled around by their many neighbours, and the correction
    is split by relative degree.
    """

    def __init__(self, links: Sequence[LinkEntry], distance: float = 30.0, iterations: int = 1) -> None:
        self.links = list(links)
        self.distance = distance
        self.iterations = iterations
        self._sources = np.empty(0, dtype=np.int64)
        self._targets = np.empty(0, dtype=np.int64)
        self._distances = np.empty(0, dtype=np.float64)
        self._strengths = np.empty(0, dtype=np.float64)
        self._bias = np.empty(0, dtype=np.float64)

    def initialize(self, nodes: Sequence[TopoNode], rng: np.random.Generator) -> None:
        super().initialize(nodes, rng)
        index_of = {node.id: i for i, node in enumerate(nodes)}

        m = len(self.links)
        self._sources = np.empty(m, dtype=np.int64)
        self._targets = np.empty(m, dtype=np.int64)
        for k, entry in enumerate(self.links):
            s = index_of.get(entry.source.id)
            t = index_of.get(entry.target.id)
            if s is None or t is None or nodes[s] is not entry.source or nodes[t] is not entry.target:
                raise ValueError(
                    f"Link {entry.source.id!r}-{entry.target.id!r} references a node outside the simulation."
                )
            self._sources[k] = s
            self._targets[k] = t

        count = np.bincount(
            np.concatenate([self._sources, self._targets]), minlength=len(nodes)
        ).astype(np.float64)
        count_s = count[self._sources]
        count_t = count[self._targets]
        self._bias = count_s / (count_s + count_t) if m else np.empty(0, dtype=np.float64)
        self._strengths = 1.0 / np.minimum(count_s, count_t) if m else np.empty(0, dtype=np.float64)
        self._distances = np.full(m, self.distance, dtype=np.float64)

    def apply(self, alpha, x, y, vx, vy) -> None:
        if self._sources.shape[0] == 0:
            return
        link_kernel(
            x, y, vx, vy,
            self._sources, self._targets,
            self._distances, self._strengths, self._bias,
            alpha, self.iterations, jiggle_noise(self._rng)
        )


class ForceSimulation:
    """Alpha-cooled integrator over a list of nodes and named forces."""

    def __init__(self, settings: Optional[SimulationSettings] = None, seed: Optional[int] = None) -> None:
        self.settings = settings or SimulationSettings()
        self.alpha: float = self.settings.alpha
        self.alpha_min: float = self.settings.alpha_min
        self.alpha_decay: float = self.settings.alpha_decay
        self.alpha_target: float = 0.0
        self.velocity_decay: float = self.settings.velocity_decay

        self._rng = np.random.default_rng(seed)
        self._nodes: list[TopoNode] = []
        self._forces: dict[str, Force] = {}

    # ------------------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------------------

    @property
    def node_list(self) -> list[TopoNode]:
        return list(self._nodes)

    def nodes(self, nodes: Sequence[TopoNode]) -> ForceSimulation:
        """Replace the node list and re-initialise every force."""
        self._nodes = list(nodes)
        self._initialize_nodes()
        for force in self._forces.values():
            force.initialize(self._nodes, self._rng)
        return self

    def force(self, name: str, force: Optional[Force]) -> ForceSimulation:
        """Register (or replace) a named force. `None` removes it."""
        if force is None:
            self._forces.pop(name, None)
        else:
            force.initialize(self._nodes, self._rng)
            self._forces[name] = force
        return self

    def get_force(self, name: str) -> Optional[Force]:
        return self._forces.get(name)

    def _initialize_nodes(self) -> None:
        for i, node in enumerate(self._nodes):
            node.index = i
            if node.fx is not None:
                node.x = node.fx
            if node.fy is not None:
                node.y = node.fy
            if node.x is None or node.y is None or math.isnan(node.x) or math.isnan(node.y):
                # phyllotaxis spiral
                radius = INITIAL_RADIUS * math.sqrt(0.5 + i)
                angle = i * INITIAL_ANGLE
                node.x = radius * math.cos(angle)
                node.y = radius * math.sin(angle)
            if node.vx is None or math.isnan(node.vx):
                node.vx = 0.0
            if node.vy is None or math.isnan(node.vy):
                node.vy = 0.0

    # ------------------------------------------------------------------------------
    # Integration
    # ------------------------------------------------------------------------------

    @property
    def cooled(self) -> bool:
        return self.alpha < self.alpha_min

    def tick(self, iterations: int = 1) -> None:
        nodes = self._nodes
        if not nodes:
            for _ in range(iterations):
                self.alpha += (self.alpha_target - self.alpha) * self.alpha_decay
            return

        x = np.array([node.x for node in nodes], dtype=np.float64)
        y = np.array([node.y for node in nodes], dtype=np.float64)
        vx = np.array([node.vx for node in nodes], dtype=np.float64)
        vy = np.array([node.vy for node in nodes], dtype=np.float64)

        for _ in range(iterations):
            self.alpha += (self.alpha_target - self.alpha) * self.alpha_decay

            for force in self._forces.values():
                force.apply(self.alpha, x, y, vx, vy)

            fx = np.array([np.nan if node.fx is None else node.fx for node in nodes], dtype=np.float64)
            fy = np.array([np.nan if node.fy is None else node.fy for node in nodes], dtype=np.float64)
            free_x = np.isnan(fx)
            free_y = np.isnan(fy)

            vx *= 1.0 - self.velocity_decay
            vy *= 1.0 - self.velocity_decay
            x = np.where(free_x, x + vx, fx)
            y = np.where(free_y, y + vy, fy)
            vx = np.where(free_x, vx, 0.0)
            vy = np.where(free_y, vy, 0.0)

        for i, node in enumerate(nodes):
            node.x = float(x[i])
            node.y = float(y[i])
            node.vx = float(vx[i])
            node.vy = float(vy[i])
