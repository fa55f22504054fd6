"""
Interaction Controller
======================
Interprets pointer events coming from the scene.

Why is this file needed?
------------------------
1. Gestures: Dragging a node pins it under the pointer; drawing a link is a
   two-step gesture (pick source, click target) with a rubber-band preview.
2. Modes: The `Normal` / `DrawingLink` state is a tagged union, so the
   pending link data only exists while a link is actually being drawn.
3. Callbacks: Clicks and context menus that are not part of a gesture are
   passed through to the caller's optional handlers.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Callable, ClassVar, Optional, Union, TYPE_CHECKING

from PySide6.QtCore import QObject, Signal

from topoview.model.errors import TopoError
from topoview.model.graph import LinkStyle

if TYPE_CHECKING:
    from topoview.config import TopoConfig, PointerEvent
    from topoview.controller.simulation import SimulationDriver
    from topoview.model.errors import NodeId
    from topoview.model.graph import GraphModel, TopoLink
    from topoview.topo import GroupData, GroupNode
    from topoview.view.items import LinkItem
    from topoview.view.scene import SceneSynchronizer, TopoScene

logger = logging.getLogger(__name__)


class Mode(StrEnum):
    NORMAL = "normal"
    DRAWING_LINK = "drawingLink"


@dataclass(frozen=True)
class Normal:
    mode: ClassVar[Mode] = Mode.NORMAL


@dataclass(frozen=True)
class DrawingLink:
    """A link gesture in progress: source picked, waiting for a target node."""
    source_id: NodeId
    style: Optional[LinkStyle]
    preview: LinkItem
    mode: ClassVar[Mode] = Mode.DRAWING_LINK


InteractionState = Union[Normal, DrawingLink]


class InteractionController(QObject):
    mode_changed = Signal(str)
    link_rejected = Signal(str)

    def __init__(
        self,
        config: TopoConfig,
        model: GraphModel,
        scene_sync: SceneSynchronizer,
        driver: SimulationDriver,
        add_link: Callable[[TopoLink], Any],
        snapshot: Callable[[], GroupData],
        parent: Optional[QObject] = None
    ) -> None:
        super().__init__(parent)
        self.config = config
        self._model = model
        self._scene_sync = scene_sync
        self._driver = driver
        self._add_link = add_link
        self._snapshot = snapshot
        self._state: InteractionState = Normal()

    def attach(self, scene: TopoScene) -> None:
        """Subscribe to the pointer signals of `scene`."""
        scene.background_clicked.connect(self.background_click)
        scene.background_context_menu.connect(self.background_contextmenu)
        scene.pointer_moved.connect(self.pointer_move)
        scene.node_clicked.connect(self.node_click)
        scene.node_context_menu.connect(self.node_contextmenu)
        scene.node_drag_started.connect(self.drag_start)
        scene.node_dragged.connect(self.drag_move)
        scene.node_drag_finished.connect(self.drag_end)

    # ------------------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------------------

    @property
    def state(self) -> InteractionState:
        return self._state

    @property
    def mode(self) -> Mode:
        return self._state.mode

    def _set_state(self, state: InteractionState) -> None:
        previous = self._state.mode
        self._state = state
        if state.mode != previous:
            logger.debug(f"Interaction mode: {previous} -> {state.mode}")
            self.mode_changed.emit(str(state.mode))

    # ------------------------------------------------------------------------------
    # Link drawing
    # ------------------------------------------------------------------------------

    def start_add_link(self, node_id: NodeId, style: Optional[LinkStyle] = None) -> None:
        """Begin drawing a link from `node_id`. Unknown ids are ignored."""
        node = self._model.get_node(node_id)
        if node is None:
            logger.debug(f"start_add_link ignored, no node {node_id!r}.")
            return
        if isinstance(self._state, DrawingLink):
            self._scene_sync.discard_preview_link(self._state.preview)
        preview = self._scene_sync.create_preview_link(node.x or 0.0, node.y or 0.0)
        self._set_state(DrawingLink(source_id=node_id, style=style, preview=preview))

    def cancel_add_link(self) -> None:
        if isinstance(self._state, DrawingLink):
            self._scene_sync.discard_preview_link(self._state.preview)
            self._set_state(Normal())

    def _complete_add_link(self, state: DrawingLink, target_id: NodeId) -> None:
        self._scene_sync.discard_preview_link(state.preview)
        self._set_state(Normal())

        link = (state.style or LinkStyle()).build(state.source_id, target_id)
        try:
            self._add_link(link)
        except TopoError as e:
            logger.warning(f"Interactive link rejected: {e}")
            self.link_rejected.emit(str(e))

    # ------------------------------------------------------------------------------
    # Background events
    # ------------------------------------------------------------------------------

    def background_click(self, event: PointerEvent) -> None:
        self.cancel_add_link()
        if self.config.on_click is not None:
            self.config.on_click(event, self._snapshot())

    def background_contextmenu(self, event: PointerEvent) -> None:
        self.cancel_add_link()
        if self.config.on_contextmenu is not None:
            self.config.on_contextmenu(event, self._snapshot())

    def pointer_move(self, x: float, y: float) -> None:
        if isinstance(self._state, DrawingLink):
            self._state.preview.set_free_end(x, y)

    # ------------------------------------------------------------------------------
    # Node events
    # ------------------------------------------------------------------------------

    def _group_node(self, data: GroupData, node_id: NodeId) -> Optional[GroupNode]:
        for group_node in data.nodes:
            if group_node.data.id == node_id:
                return group_node
        return None

    def node_click(self, node_id: NodeId, event: PointerEvent) -> None:
        if isinstance(self._state, DrawingLink):
            self._complete_add_link(self._state, node_id)
            return

        node = self._model.get_node(node_id)
        if node is None:
            return
        handler = node.on_click or self.config.node_on_click
        if handler is not None:
            data = self._snapshot()
            handler(event, self._group_node(data, node_id), data)

    def node_contextmenu(self, node_id: NodeId, event: PointerEvent) -> None:
        node = self._model.get_node(node_id)
        if node is None:
            return
        handler = node.on_contextmenu or self.config.node_on_contextmenu
        if handler is not None:
            data = self._snapshot()
            handler(event, self._group_node(data, node_id), data)

    # ------------------------------------------------------------------------------
    # Drag
    # ------------------------------------------------------------------------------

    def drag_start(self, node_id: NodeId) -> None:
        node = self._model.get_node(node_id)
        if node is not None:
            self._driver.drag_start(node)

    def drag_move(self, node_id: NodeId, x: float, y: float) -> None:
        node = self._model.get_node(node_id)
        if node is not None:
            self._driver.drag_to(node, x, y)

    def drag_end(self, node_id: NodeId) -> None:
        node = self._model.get_node(node_id)
        if node is not None:
            self._driver.drag_end(node)
