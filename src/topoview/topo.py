"""
Topology Facade
===============
The caller-facing mutation and lifecycle API.

Why is this file needed?
------------------------
1. Single entry point: Every structural change flows through `Topo`, so the
   graph invariants and the model/scene/simulation synchronisation are
   enforced in one place.
2. Ordering: Entities are validated before anything is committed; scene items
   are removed before their entities leave the model; the simulation is
   re-seeded after every structural change.
3. Results: Operations return synchronously. The `data_changed` signal is the
   asynchronous channel for observers such as list views.

Classes:
    GroupNode, GroupLink, GroupData: Snapshot records handed to callers.
    AddDataResult: Snapshot plus per-entity error messages of a batch insert.
    Topo: The engine.
"""
from __future__ import annotations

import functools
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Union

from PySide6.QtCore import QObject, Signal

from topoview.config import TopoConfig, SimulationSettings
from topoview.controller.interaction import InteractionController, Mode
from topoview.controller.simulation import SimulationDriver
from topoview.model.errors import NodeId, TopoError, InvalidRecordError, NotRenderedError
from topoview.model.graph import GraphModel, TopoNode, TopoLink, LinkStyle
from topoview.view.canvas import TopoCanvas
from topoview.view.items import PrimitiveHandle
from topoview.view.scene import SceneSynchronizer, TopoScene

logger = logging.getLogger(__name__)

NodeLike = Union[TopoNode, Mapping[str, Any]]
LinkLike = Union[TopoLink, Mapping[str, Any]]
PairLike = Union[tuple[NodeId, NodeId], TopoLink, Mapping[str, Any]]


# -------------------------------------------------------------------------------
# Snapshot records
# -------------------------------------------------------------------------------

@dataclass(frozen=True)
class GroupNode:
    el: PrimitiveHandle
    data: TopoNode


@dataclass(frozen=True)
class GroupLink:
    el: PrimitiveHandle
    data: TopoLink
    source: TopoNode
    target: TopoNode


@dataclass(frozen=True)
class GroupData:
    nodes: tuple[GroupNode, ...] = ()
    links: tuple[GroupLink, ...] = ()


@dataclass(frozen=True)
class AddDataResult:
    data: GroupData
    errors: list[str] = field(default_factory=list)


# -------------------------------------------------------------------------------
# Input coercion
# -------------------------------------------------------------------------------

def as_node(node: NodeLike) -> TopoNode:
    if isinstance(node, TopoNode):
        return node
    try:
        return TopoNode(**node)
    except TypeError as e:
        raise InvalidRecordError("node", node, str(e)) from e


def as_link(link: LinkLike) -> TopoLink:
    if isinstance(link, TopoLink):
        return link
    try:
        return TopoLink(**link)
    except TypeError as e:
        raise InvalidRecordError("link", link, str(e)) from e


def as_pair(pair: PairLike) -> tuple[NodeId, NodeId]:
    if isinstance(pair, TopoLink):
        return pair.source, pair.target
    try:
        if isinstance(pair, Mapping):
            return pair["source"], pair["target"]
        source, target = pair
    except (KeyError, TypeError, ValueError) as e:
        raise InvalidRecordError("link", pair, str(e)) from e
    return source, target


def _requires_render(method):
    @functools.wraps(method)
    def wrapper(self: Topo, *args, **kwargs):
        if not self._rendered:
            raise NotRenderedError()
        return method(self, *args, **kwargs)
    return wrapper


# -------------------------------------------------------------------------------
# Engine
# -------------------------------------------------------------------------------

class Topo(QObject):
    """
    Interactive force-directed topology.

    Builds the graph model, scene, canvas, simulation driver and interaction
    controller from `config` and mounts the canvas into `config.root`.
    """
    data_changed = Signal(object)  # GroupData

    def __init__(
        self,
        config: TopoConfig,
        settings: Optional[SimulationSettings] = None,
        seed: Optional[int] = None,
        parent: Optional[QObject] = None
    ) -> None:
        super().__init__(parent)
        self._rendered = False
        self.config = config

        self._model = GraphModel()
        self._scene_sync = SceneSynchronizer(config.width, config.height)
        self._canvas: Optional[TopoCanvas] = TopoCanvas.mount(self._scene_sync.scene, config.root)

        self._driver = SimulationDriver(settings, seed=seed, parent=self)
        self._driver.ticked.connect(self._on_tick)

        self._controller = InteractionController(
            config,
            self._model,
            self._scene_sync,
            self._driver,
            add_link=self.add_link,
            snapshot=lambda: self.data,
            parent=self
        )
        self._controller.attach(self._scene_sync.scene)

        self._rendered = True
        logger.info(f"Topology rendered ({config.width}x{config.height}).")

    # ------------------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------------------

    @property
    def rendered(self) -> bool:
        return self._rendered

    @property
    @_requires_render
    def data(self) -> GroupData:
        """Snapshot of the live nodes and links with handles to their primitives."""
        sync = self._scene_sync
        return GroupData(
            nodes=tuple(GroupNode(el=sync.node_handle(node.id), data=node) for node in self._model.nodes),
            links=tuple(
                GroupLink(el=sync.link_handle(entry.key), data=entry.data, source=entry.source, target=entry.target)
                for entry in self._model.links
            ),
        )

    @property
    def mode(self) -> Mode:
        return self._controller.mode

    @property
    def controller(self) -> InteractionController:
        return self._controller

    @property
    @_requires_render
    def canvas(self) -> TopoCanvas:
        return self._canvas

    @property
    @_requires_render
    def scene(self) -> TopoScene:
        return self._scene_sync.scene

    @property
    def simulation(self) -> SimulationDriver:
        return self._driver

    # ------------------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------------------

    @_requires_render
    def add_data(self, nodes: Iterable[NodeLike] = (), links: Iterable[LinkLike] = ()) -> AddDataResult:
        """
        Insert a batch of nodes, then links.

        Entities that violate an invariant, or records that cannot be read as
        an entity, are skipped and reported; the rest of the batch is still
        committed.
        """
        errors: list[str] = []
        try:
            for node in nodes:
                try:
                    self._insert_node(as_node(node))
                except TopoError as e:
                    logger.warning(f"add_data: {e}")
                    errors.append(str(e))
            for link in links:
                try:
                    self._insert_link(as_link(link))
                except TopoError as e:
                    logger.warning(f"add_data: {e}")
                    errors.append(str(e))
        finally:
            data = self._commit()
        return AddDataResult(data=data, errors=errors)

    @_requires_render
    def add_node(self, node: NodeLike) -> GroupData:
        self._insert_node(as_node(node))
        return self._commit()

    @_requires_render
    def add_link(self, link: LinkLike) -> GroupData:
        self._insert_link(as_link(link))
        return self._commit()

    @_requires_render
    def remove_nodes(self, ids: Iterable[NodeId]) -> GroupData:
        """Remove nodes and every link touching them. Unknown ids are skipped."""
        try:
            for node_id in ids:
                if not self._model.has_node(node_id):
                    continue
                for entry in self._model.links_touching(node_id):
                    self._scene_sync.remove_link(entry.key)
                self._scene_sync.remove_node(node_id)
                self._model.remove_nodes([node_id])
        finally:
            data = self._commit()
        return data

    @_requires_render
    def remove_links(self, pairs: Iterable[PairLike]) -> GroupData:
        """Remove links by endpoint pair, in either direction. Unknown pairs are skipped."""
        pairs = [as_pair(pair) for pair in pairs]
        for source, target in pairs:
            entry = self._model.get_link(source, target)
            if entry is None:
                continue
            self._scene_sync.remove_link(entry.key)
            self._model.remove_links([(source, target)])
        return self._commit()

    def _insert_node(self, node: TopoNode) -> None:
        self._model.insert_node(node)
        self._scene_sync.add_node(node)

    def _insert_link(self, link: TopoLink) -> None:
        entry = self._model.insert_link(link)
        self._scene_sync.add_link(entry)

    def _commit(self) -> GroupData:
        nodes, links = self._model.nodes, self._model.links
        self._driver.reseed(nodes, links)
        self._scene_sync.check_consistency((n.id for n in nodes), (e.key for e in links))
        self._scene_sync.update_positions(nodes, links)
        data = self.data
        self.data_changed.emit(data)
        return data

    # ------------------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------------------

    @_requires_render
    def start_simulation(self) -> None:
        self._driver.start()

    @_requires_render
    def stop_simulation(self) -> None:
        self._driver.stop()

    @_requires_render
    def start_add_link(self, node_id: NodeId, style: Optional[LinkStyle] = None) -> None:
        """Enter link drawing mode from `node_id`; the next node click picks the target."""
        self._controller.start_add_link(node_id, style)

    def _on_tick(self) -> None:
        self._scene_sync.update_positions(self._model.nodes, self._model.links)

    def dispose(self) -> None:
        """Tear down the scene and canvas. Later operations raise `NotRenderedError`."""
        if not self._rendered:
            return
        self._controller.cancel_add_link()
        self._driver.shutdown()
        self._scene_sync.clear()
        if self._canvas is not None:
            self._canvas.setParent(None)
            self._canvas.deleteLater()
            self._canvas = None
        self._rendered = False
        logger.info("Topology disposed.")
