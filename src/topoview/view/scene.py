"""
Scene Synchronizer
==================
Keeps the Qt graphics scene in step with the graph model.

Why is this file needed?
------------------------
1. Binding: Every live node and link owns exactly one scene item, created on
   insertion and removed (before the entity itself) on deletion.
2. Per-tick update: After each simulation tick, item positions are re-read
   from the nodes. Rendered node positions are clamped to the canvas, the
   simulated coordinates are not.
3. Events: `TopoScene` turns raw Qt pointer events into a small set of
   signals consumed by the interaction controller.

Classes:
    TopoScene: QGraphicsScene emitting background/node pointer signals.
    SceneSynchronizer: Entity <-> item tables and the tick update.
"""
from __future__ import annotations

import logging
from typing import Iterable, Optional, TYPE_CHECKING

from PySide6.QtCore import Qt, QRectF, Signal, QPointF
from PySide6.QtWidgets import QGraphicsScene

from topoview.config import (
    DEFAULT_NODE_RADIUS, DEFAULT_NODE_COLOR, DEFAULT_NODE_OPACITY,
    DEFAULT_LINK_WIDTH, DEFAULT_LINK_COLOR, DEFAULT_LINK_OPACITY,
    PREVIEW_LINK_WIDTH, PREVIEW_LINK_COLOR, PREVIEW_LINK_DASH,
    LINK_Z, NODE_Z, PREVIEW_Z
)
from topoview.model.errors import TopologyInvariantError
from topoview.view.items import NodeItem, LinkItem, PrimitiveHandle, pointer_event_from

if TYPE_CHECKING:
    from PySide6.QtWidgets import QGraphicsSceneMouseEvent, QGraphicsSceneContextMenuEvent
    from topoview.model.errors import NodeId
    from topoview.model.graph import TopoNode, LinkEntry, LinkKey

logger = logging.getLogger(__name__)


def _pick(value, default):
    return default if value is None else value


class TopoScene(QGraphicsScene):
    """Graphics scene that reports pointer activity as signals."""
    background_clicked = Signal(object)          # PointerEvent
    background_context_menu = Signal(object)     # PointerEvent
    pointer_moved = Signal(float, float)
    node_clicked = Signal(object, object)        # node id, PointerEvent
    node_context_menu = Signal(object, object)   # node id, PointerEvent
    node_drag_started = Signal(object)           # node id
    node_dragged = Signal(object, float, float)  # node id, x, y
    node_drag_finished = Signal(object)          # node id

    def __init__(self, width: float, height: float, parent=None) -> None:
        super().__init__(parent)
        self.setSceneRect(QRectF(0.0, 0.0, float(width), float(height)))
        self.setItemIndexMethod(QGraphicsScene.ItemIndexMethod.NoIndex)
        self._background_press = False

    def node_item_at(self, pos: QPointF) -> Optional[NodeItem]:
        for item in self.items(pos):
            if isinstance(item, NodeItem):
                return item
        return None

    # ---- Qt event overrides ----

    def mousePressEvent(self, event: QGraphicsSceneMouseEvent) -> None:
        self._background_press = (
            event.button() == Qt.MouseButton.LeftButton and self.node_item_at(event.scenePos()) is None
        )
        super().mousePressEvent(event)

    def mouseMoveEvent(self, event: QGraphicsSceneMouseEvent) -> None:
        pos = event.scenePos()
        self.pointer_moved.emit(pos.x(), pos.y())
        super().mouseMoveEvent(event)

    def mouseReleaseEvent(self, event: QGraphicsSceneMouseEvent) -> None:
        super().mouseReleaseEvent(event)
        if self._background_press and event.button() == Qt.MouseButton.LeftButton:
            self._background_press = False
            self.background_clicked.emit(pointer_event_from(event))

    def contextMenuEvent(self, event: QGraphicsSceneContextMenuEvent) -> None:
        # no default menu anywhere on the canvas
        event.accept()
        item = self.node_item_at(event.scenePos())
        if item is not None:
            self.node_context_menu.emit(item.node_id, pointer_event_from(event))
        else:
            self.background_context_menu.emit(pointer_event_from(event))


class SceneSynchronizer:
    """Owns the item tables. The only code that adds or removes scene items."""

    def __init__(self, width: float, height: float, scene: Optional[TopoScene] = None) -> None:
        self.width = float(width)
        self.height = float(height)
        self.scene = scene or TopoScene(width, height)
        self._node_items: dict[NodeId, NodeItem] = {}
        self._link_items: dict[LinkKey, LinkItem] = {}

    # ------------------------------------------------------------------------------
    # Entity binding
    # ------------------------------------------------------------------------------

    def add_node(self, node: TopoNode) -> PrimitiveHandle:
        if node.id in self._node_items:
            raise TopologyInvariantError(f"Node {node.id!r} already has a scene item.")
        item = NodeItem(
            node.id,
            radius=_pick(node.radius, DEFAULT_NODE_RADIUS),
            color=_pick(node.color, DEFAULT_NODE_COLOR),
            opacity=_pick(node.opacity, DEFAULT_NODE_OPACITY),
        )
        item.setZValue(NODE_Z)
        item.setPos(*self.clamp(node.x or 0.0, node.y or 0.0))
        self.scene.addItem(item)
        self._node_items[node.id] = item
        return PrimitiveHandle(item)

    def add_link(self, entry: LinkEntry) -> PrimitiveHandle:
        if entry.key in self._link_items:
            raise TopologyInvariantError(
                f"Link {entry.source.id!r}-{entry.target.id!r} already has a scene item."
            )
        data = entry.data
        item = LinkItem(
            entry.key,
            width=_pick(data.width, DEFAULT_LINK_WIDTH),
            color=_pick(data.color, DEFAULT_LINK_COLOR),
            opacity=_pick(data.opacity, DEFAULT_LINK_OPACITY),
        )
        item.setZValue(LINK_Z)
        self._place_link(item, entry)
        self.scene.addItem(item)
        self._link_items[entry.key] = item
        return PrimitiveHandle(item)

    def remove_node(self, node_id: NodeId) -> None:
        item = self._node_items.pop(node_id, None)
        if item is None:
            raise TopologyInvariantError(f"Node {node_id!r} has no scene item to remove.")
        self.scene.removeItem(item)

    def remove_link(self, key: LinkKey) -> None:
        item = self._link_items.pop(key, None)
        if item is None:
            raise TopologyInvariantError(f"Link {tuple(key)!r} has no scene item to remove.")
        self.scene.removeItem(item)

    def node_handle(self, node_id: NodeId) -> PrimitiveHandle:
        return PrimitiveHandle(self._node_items[node_id])

    def link_handle(self, key: LinkKey) -> PrimitiveHandle:
        return PrimitiveHandle(self._link_items[key])

    def node_item(self, node_id: NodeId) -> Optional[NodeItem]:
        return self._node_items.get(node_id)

    def link_item(self, key: LinkKey) -> Optional[LinkItem]:
        return self._link_items.get(key)

    @property
    def node_ids(self) -> set:
        return set(self._node_items)

    @property
    def link_keys(self) -> set:
        return set(self._link_items)

    def check_consistency(self, node_ids: Iterable[NodeId], link_keys: Iterable[LinkKey]) -> None:
        """Raise if the item tables do not match the given model contents."""
        if set(node_ids) != self.node_ids or set(link_keys) != self.link_keys:
            raise TopologyInvariantError("Scene items and graph model are out of sync.")

    def clear(self) -> None:
        for item in list(self._link_items.values()) + list(self._node_items.values()):
            self.scene.removeItem(item)
        self._link_items.clear()
        self._node_items.clear()

    # ------------------------------------------------------------------------------
    # Per-tick update
    # ------------------------------------------------------------------------------

    def clamp(self, x: float, y: float) -> tuple[float, float]:
        """Clamp a position into [0, width] x [0, height]."""
        return min(max(x, 0.0), self.width), min(max(y, 0.0), self.height)

    def update_positions(self, nodes: Iterable[TopoNode], links: Iterable[LinkEntry]) -> None:
        for node in nodes:
            item = self._node_items.get(node.id)
            if item is not None:
                item.setPos(*self.clamp(node.x, node.y))
        for entry in links:
            item = self._link_items.get(entry.key)
            if item is not None:
                self._place_link(item, entry)

    def _place_link(self, item: LinkItem, entry: LinkEntry) -> None:
        # endpoints follow the simulated positions, only node circles are clamped
        source, target = entry.source, entry.target
        item.set_endpoints(source.x or 0.0, source.y or 0.0, target.x or 0.0, target.y or 0.0)

    # ------------------------------------------------------------------------------
    # In-progress link
    # ------------------------------------------------------------------------------

    def create_preview_link(self, x: float, y: float) -> LinkItem:
        """Dashed line anchored at (x, y) with both ends, until the pointer moves."""
        item = LinkItem(None, width=PREVIEW_LINK_WIDTH, color=PREVIEW_LINK_COLOR, opacity=1.0)
        item.set_attribute("stroke-dasharray", PREVIEW_LINK_DASH)
        item.setZValue(PREVIEW_Z)
        item.set_endpoints(x, y, x, y)
        self.scene.addItem(item)
        return item

    def discard_preview_link(self, item: Optional[LinkItem]) -> None:
        if item is not None and item.scene() is self.scene:
            self.scene.removeItem(item)
