"""
Simulation Driver
=================
Runs the force integrator on the Qt event loop.

Why is this file needed?
------------------------
1. Clock: A `QTimer` ticks the integrator on the GUI thread until the layout
   cools down, and the driver restarts it whenever something needs to move.
2. Re-seeding: The integrator does not observe the graph model. After every
   structural change it is handed the full node list and a fresh link force.
3. Pinning: Drag gestures and the global start/stop toggle are expressed as
   pins on the nodes.

Classes:
    SimulationDriver: QObject emitting `ticked` after every integration step.
"""
from __future__ import annotations

import logging
from typing import Optional, Sequence, TYPE_CHECKING

from PySide6.QtCore import QObject, QTimer, Signal

from topoview.config import SimulationSettings
from topoview.model.simulation import ForceSimulation, CollideForce, ManyBodyForce, LinkForce

if TYPE_CHECKING:
    from topoview.model.graph import TopoNode, LinkEntry

logger = logging.getLogger(__name__)


class SimulationDriver(QObject):
    ticked = Signal()
    ended = Signal()
    running_changed = Signal(bool)

    def __init__(
        self,
        settings: Optional[SimulationSettings] = None,
        seed: Optional[int] = None,
        parent: Optional[QObject] = None
    ) -> None:
        super().__init__(parent)
        self.settings = settings or SimulationSettings()
        self._running = True
        self._links: list[LinkEntry] = []

        s = self.settings
        self.integrator = ForceSimulation(s, seed=seed)
        self.integrator.force(
            "collide", CollideForce(margin=s.collide_margin, strength=s.collide_strength, iterations=s.collide_iterations)
        )
        self.integrator.force(
            "charge", ManyBodyForce(strength=s.charge_strength, distance_min=s.charge_distance_min)
        )
        self.integrator.force("link", self._make_link_force([]))

        self._timer = QTimer(self)
        self._timer.setInterval(s.tick_interval_ms)
        self._timer.timeout.connect(self.step)

    # ------------------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------------------

    @property
    def running(self) -> bool:
        """False after `stop()`: every node is held in place."""
        return self._running

    @property
    def active(self) -> bool:
        """True while the tick timer is scheduled."""
        return self._timer.isActive()

    @property
    def nodes(self) -> list[TopoNode]:
        return self.integrator.node_list

    @property
    def links(self) -> list[LinkEntry]:
        return list(self._links)

    @property
    def alpha(self) -> float:
        return self.integrator.alpha

    @property
    def alpha_target(self) -> float:
        return self.integrator.alpha_target

    # ------------------------------------------------------------------------------
    # Clock
    # ------------------------------------------------------------------------------

    def restart(self) -> None:
        if not self._timer.isActive():
            self._timer.start()

    def halt(self) -> None:
        self._timer.stop()

    def step(self) -> None:
        """Advance one tick and notify listeners. Stops the clock once cooled."""
        self.integrator.tick()
        self.ticked.emit()
        if self.integrator.cooled:
            self._timer.stop()
            logger.debug("Simulation cooled down.")
            self.ended.emit()

    def reheat(self, alpha: Optional[float] = None) -> None:
        alpha = self.settings.reheat_alpha if alpha is None else alpha
        self.integrator.alpha = max(self.integrator.alpha, alpha)
        self.restart()

    # ------------------------------------------------------------------------------
    # Seeding
    # ------------------------------------------------------------------------------

    def _make_link_force(self, links: Sequence[LinkEntry]) -> LinkForce:
        return LinkForce(links, distance=self.settings.link_distance, iterations=self.settings.link_iterations)

    def reseed(self, nodes: Sequence[TopoNode], links: Sequence[LinkEntry]) -> None:
        """Replace the node view and link force after a structural change."""
        self._links = list(links)
        # the old link force may reference removed nodes, drop it before re-seeding
        self.integrator.force("link", None)
        self.integrator.nodes(nodes)
        self.integrator.force("link", self._make_link_force(self._links))
        logger.debug(f"Simulation re-seeded with {len(nodes)} node(s) and {len(self._links)} link(s).")
        self.reheat()

    # ------------------------------------------------------------------------------
    # Pinning
    # ------------------------------------------------------------------------------

    def drag_start(self, node: TopoNode) -> None:
        self.integrator.alpha_target = self.settings.drag_alpha_target
        self.restart()
        node.pin(node.x, node.y)

    def drag_to(self, node: TopoNode, x: float, y: float) -> None:
        node.pin(x, y)

    def drag_end(self, node: TopoNode) -> None:
        self.integrator.alpha_target = 0.0
        # a stopped simulation keeps the node where it was dropped
        if self._running:
            node.unpin()

    def start(self) -> None:
        """Release every pin and let the layout move again."""
        self._running = True
        for node in self.integrator.node_list:
            node.unpin()
        self.reheat()
        logger.info("Simulation started.")
        self.running_changed.emit(True)

    def stop(self) -> None:
        """Pin every free node at its current position. Existing pins are kept."""
        self._running = False
        for node in self.integrator.node_list:
            if not node.pinned:
                node.pin(node.x, node.y)
        logger.info("Simulation stopped.")
        self.running_changed.emit(False)

    def shutdown(self) -> None:
        self._timer.stop()
        self._links = []
        self.integrator.force("link", None)
        self.integrator.nodes([])
        self.integrator.force("link", self._make_link_force([]))
