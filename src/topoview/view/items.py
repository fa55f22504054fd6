"""
Scene Items
===========
The Qt graphics items bound one-to-one to graph entities, and the
`PrimitiveHandle` through which callers may restyle them.

Attribute names follow the SVG vocabulary (`fill`, `stroke`, `stroke-width`,
...) so that styling code reads the same regardless of the primitive.
"""
from __future__ import annotations

from typing import Any, Callable, Optional, Sequence, TYPE_CHECKING

from PySide6.QtCore import Qt, QRectF, QLineF
from PySide6.QtGui import QBrush, QColor, QPen
from PySide6.QtWidgets import (
    QGraphicsEllipseItem, QGraphicsLineItem, QGraphicsItem, QGraphicsSceneContextMenuEvent
)

from topoview.config import PointerEvent

if TYPE_CHECKING:
    from PySide6.QtWidgets import QGraphicsSceneMouseEvent
    from topoview.model.errors import NodeId
    from topoview.model.graph import LinkKey


_BUTTON_NAMES = {
    Qt.MouseButton.LeftButton: "left",
    Qt.MouseButton.RightButton: "right",
    Qt.MouseButton.MiddleButton: "middle",
}


def pointer_event_from(event: QGraphicsSceneMouseEvent | QGraphicsSceneContextMenuEvent) -> PointerEvent:
    """Convert a Qt scene mouse/context-menu event into a plain `PointerEvent`."""
    pos = event.scenePos()
    screen = event.screenPos()
    if isinstance(event, QGraphicsSceneContextMenuEvent):
        button = "right"
    else:
        button = _BUTTON_NAMES.get(event.button(), "none")
    return PointerEvent(x=pos.x(), y=pos.y(), screen_x=screen.x(), screen_y=screen.y(), button=button)


class _AttributeMixin:
    """Maps attribute names to (getter, setter) pairs. A `None` setter marks the attribute read-only."""
    _ATTRIBUTES: dict[str, tuple[str, Optional[str]]] = {}

    def get_attribute(self, name: str) -> Any:
        try:
            getter, _ = self._ATTRIBUTES[name]
        except KeyError:
            raise KeyError(f"Unknown attribute '{name}' for {type(self).__name__}.") from None
        return getattr(self, getter)()

    def set_attribute(self, name: str, value: Any) -> None:
        try:
            _, setter = self._ATTRIBUTES[name]
        except KeyError:
            raise KeyError(f"Unknown attribute '{name}' for {type(self).__name__}.") from None
        if setter is None:
            raise AttributeError(f"Attribute '{name}' is read-only.")
        getattr(self, setter)(value)


class _StrokeMixin(_AttributeMixin):
    """Pen styling shared by lines and node outlines."""
    _dash: Optional[tuple[float, ...]] = None

    def _stroke(self) -> Optional[str]:
        pen = self.pen()
        if pen.style() == Qt.PenStyle.NoPen:
            return None
        return pen.color().name()

    def _set_stroke(self, color: Optional[str]) -> None:
        pen = QPen(self.pen())
        if color is None:
            pen.setStyle(Qt.PenStyle.NoPen)
        else:
            pen.setColor(QColor(color))
            if pen.style() == Qt.PenStyle.NoPen:
                pen.setStyle(Qt.PenStyle.SolidLine)
        self.setPen(pen)
        self._apply_dash()

    def _stroke_width(self) -> float:
        return self.pen().widthF()

    def _set_stroke_width(self, width: float) -> None:
        pen = QPen(self.pen())
        pen.setWidthF(float(width))
        self.setPen(pen)
        self._apply_dash()

    def _stroke_dasharray(self) -> Optional[str]:
        if not self._dash:
            return None
        return ", ".join(f"{v:g}" for v in self._dash)

    def _set_stroke_dasharray(self, value: str | Sequence[float] | None) -> None:
        if isinstance(value, str):
            value = [float(v) for v in value.replace(",", " ").split()]
        self._dash = tuple(float(v) for v in value) if value else None
        self._apply_dash()

    def _apply_dash(self) -> None:
        pen = QPen(self.pen())
        if pen.style() == Qt.PenStyle.NoPen:
            return
        if self._dash:
            # Qt dash patterns are expressed in multiples of the pen width
            width = pen.widthF() or 1.0
            pattern = list(self._dash)
            if len(pattern) % 2:
                pattern *= 2
            pen.setDashPattern([max(v / width, 1e-3) for v in pattern])
        else:
            pen.setStyle(Qt.PenStyle.SolidLine)
        self.setPen(pen)

    def _opacity(self) -> float:
        return self.opacity()

    def _set_opacity(self, value: float) -> None:
        self.setOpacity(float(value))


class NodeItem(_StrokeMixin, QGraphicsEllipseItem):
    """
    Circle centred on the item position.

    Handles its own press/move/release sequence and reports it to the scene
    as drag start / drag / drag end, plus a click when the pointer never moved.
    """
    _ATTRIBUTES = {
        "r": ("_radius", "_set_radius"),
        "fill": ("_fill", "_set_fill"),
        "stroke": ("_stroke", "_set_stroke"),
        "stroke-width": ("_stroke_width", "_set_stroke_width"),
        "stroke-dasharray": ("_stroke_dasharray", "_set_stroke_dasharray"),
        "opacity": ("_opacity", "_set_opacity"),
        "cx": ("_cx", None),
        "cy": ("_cy", None),
    }

    def __init__(self, node_id: NodeId, radius: float, color: str, opacity: float) -> None:
        super().__init__()
        self.node_id = node_id
        self._dragging = False
        self._moved = False

        self._set_radius(radius)
        self.setBrush(QBrush(QColor(color)))
        self.setPen(QPen(Qt.PenStyle.NoPen))
        self.setOpacity(opacity)
        self.setAcceptedMouseButtons(Qt.MouseButton.LeftButton)
        self.setFlag(QGraphicsItem.GraphicsItemFlag.ItemIsSelectable, False)
        self.setCursor(Qt.CursorShape.PointingHandCursor)

    # ---- attributes ----

    def _radius(self) -> float:
        return self.rect().width() / 2.0

    def _set_radius(self, radius: float) -> None:
        r = float(radius)
        self.setRect(QRectF(-r, -r, 2.0 * r, 2.0 * r))

    def _fill(self) -> str:
        return self.brush().color().name()

    def _set_fill(self, color: str) -> None:
        self.setBrush(QBrush(QColor(color)))

    def _cx(self) -> float:
        return self.pos().x()

    def _cy(self) -> float:
        return self.pos().y()

    # ---- pointer ----

    def mousePressEvent(self, event: QGraphicsSceneMouseEvent) -> None:
        if event.button() != Qt.MouseButton.LeftButton:
            event.ignore()
            return
        event.accept()
        self._dragging = True
        self._moved = False
        self._emit("node_drag_started", self.node_id)

    def mouseMoveEvent(self, event: QGraphicsSceneMouseEvent) -> None:
        if not self._dragging:
            return
        pos = event.scenePos()
        if pos != event.buttonDownScenePos(Qt.MouseButton.LeftButton):
            self._moved = True
        self._emit("node_dragged", self.node_id, pos.x(), pos.y())

    def mouseReleaseEvent(self, event: QGraphicsSceneMouseEvent) -> None:
        if not self._dragging:
            return
        self._dragging = False
        self._emit("node_drag_finished", self.node_id)
        if not self._moved:
            self._emit("node_clicked", self.node_id, pointer_event_from(event))

    def _emit(self, signal: str, *args: Any) -> None:
        scene = self.scene()
        if scene is not None:
            getattr(scene, signal).emit(*args)


class LinkItem(_StrokeMixin, QGraphicsLineItem):
    """Straight segment between two node centres. Transparent to the pointer."""
    _ATTRIBUTES = {
        "stroke": ("_stroke", "_set_stroke"),
        "stroke-width": ("_stroke_width", "_set_stroke_width"),
        "stroke-dasharray": ("_stroke_dasharray", "_set_stroke_dasharray"),
        "opacity": ("_opacity", "_set_opacity"),
        "x1": ("_x1", None),
        "y1": ("_y1", None),
        "x2": ("_x2", None),
        "y2": ("_y2", None),
    }

    def __init__(self, key: Optional[LinkKey], width: float, color: str, opacity: float) -> None:
        super().__init__()
        self.key = key
        pen = QPen(QColor(color))
        pen.setWidthF(float(width))
        pen.setCapStyle(Qt.PenCapStyle.FlatCap)
        self.setPen(pen)
        self.setOpacity(opacity)
        self.setAcceptedMouseButtons(Qt.MouseButton.NoButton)
        self.setAcceptHoverEvents(False)

    def set_endpoints(self, x1: float, y1: float, x2: float, y2: float) -> None:
        self.setLine(QLineF(x1, y1, x2, y2))

    def set_free_end(self, x: float, y: float) -> None:
        line = self.line()
        self.setLine(QLineF(line.x1(), line.y1(), x, y))

    def _x1(self) -> float:
        return self.line().x1()

    def _y1(self) -> float:
        return self.line().y1()

    def _x2(self) -> float:
        return self.line().x2()

    def _y2(self) -> float:
        return self.line().y2()


class PrimitiveHandle:
    """
    Attribute-only access to a live scene item.

    Exposes no structural operations, so a caller can restyle a node or link
    (e.g. highlight on hover) but cannot detach or replace its primitive.
    """
    __slots__ = ("_item",)

    def __init__(self, item: _AttributeMixin) -> None:
        self._item = item

    def attr(self, name: str) -> Any:
        return self._item.get_attribute(name)

    def set_attr(self, name: str, value: Any) -> PrimitiveHandle:
        self._item.set_attribute(name, value)
        return self

    def __repr__(self) -> str:
        return f"PrimitiveHandle({type(self._item).__name__})"
