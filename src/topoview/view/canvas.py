"""
Topology Canvas
The fixed-size view that displays a `TopoScene` and is mounted into the
caller's widget tree.
"""
from __future__ import annotations

from PySide6.QtCore import Qt
from PySide6.QtGui import QPainter
from PySide6.QtWidgets import QFrame, QGraphicsView, QWidget

from topoview.view.scene import TopoScene


class TopoCanvas(QGraphicsView):
    """Unscrollable, unzoomed view of the whole scene rect."""

    def __init__(self, scene: TopoScene, parent: QWidget | None = None) -> None:
        super().__init__(scene, parent)
        rect = scene.sceneRect()
        self.setFixedSize(int(rect.width()), int(rect.height()))
        self.setHorizontalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAlwaysOff)
        self.setVerticalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAlwaysOff)
        self.setFrameShape(QFrame.Shape.NoFrame)
        self.setAlignment(Qt.AlignmentFlag.AlignLeft | Qt.AlignmentFlag.AlignTop)
        self.setRenderHint(QPainter.RenderHint.Antialiasing)
        self.setViewportUpdateMode(QGraphicsView.ViewportUpdateMode.SmartViewportUpdate)
        self.setDragMode(QGraphicsView.DragMode.NoDrag)
        self.setContextMenuPolicy(Qt.ContextMenuPolicy.DefaultContextMenu)

        # pointer moves are needed without a pressed button (rubber-band link)
        self.setMouseTracking(True)
        self.viewport().setMouseTracking(True)

    @classmethod
    def mount(cls, scene: TopoScene, root: QWidget | None) -> TopoCanvas:
        """Create a canvas inside `root`, appending it to the root's layout if it has one."""
        canvas = cls(scene, root)
        if root is not None and root.layout() is not None:
            root.layout().addWidget(canvas)
        return canvas
