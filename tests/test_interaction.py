import pytest
from PySide6.QtCore import QPoint, QPointF, Qt
from PySide6.QtGui import QContextMenuEvent
from PySide6.QtWidgets import QApplication

from topoview import Mode, PointerEvent, LinkStyle, TopoNode
from topoview.controller.interaction import DrawingLink, Normal
from topoview.model.graph import link_key


def at(x=0.0, y=0.0, button="left"):
    return PointerEvent(x=x, y=y, button=button)


class TestLinkDrawing:

    def test_start_add_link_enters_drawing_mode(self, triangle):
        triangle.start_add_link(0)

        state = triangle.controller.state
        assert triangle.mode is Mode.DRAWING_LINK
        assert isinstance(state, DrawingLink)
        assert state.source_id == 0
        assert state.preview in triangle.scene.items()

    def test_start_add_link_ignores_unknown_node(self, triangle):
        triangle.start_add_link("ghost")
        assert triangle.mode is Mode.NORMAL
        assert isinstance(triangle.controller.state, Normal)

    def test_clicking_target_creates_link(self, triangle, events):
        triangle.start_add_link(0, LinkStyle(width=6, color="red"))
        preview = triangle.controller.state.preview

        triangle.controller.node_click(2, at(370, 170))

        assert triangle.mode is Mode.NORMAL
        assert preview not in triangle.scene.items()
        links = {link.data.key: link for link in triangle.data.links}
        assert link_key(0, 2) in links
        assert links[link_key(0, 2)].data.width == 6
        assert links[link_key(0, 2)].el.attr("stroke") == "#ff0000"
        # completing a gesture is not a node click for the caller
        assert not [e for e in events if e[0] == "node_click"]

    def test_background_click_afterwards_does_not_mutate(self, triangle, events):
        triangle.start_add_link(0)
        triangle.controller.node_click(2, at())
        before = {link.data.key for link in triangle.data.links}

        triangle.controller.background_click(at(10, 10))

        assert {link.data.key for link in triangle.data.links} == before
        assert [e[0] for e in events] == ["click"]

    def test_background_click_cancels_drawing(self, triangle, events):
        triangle.start_add_link(1)
        preview = triangle.controller.state.preview

        triangle.controller.background_click(at(5, 5))

        assert triangle.mode is Mode.NORMAL
        assert preview not in triangle.scene.items()
        assert len(triangle.data.links) == 1
        assert events[0][0] == "click"
        assert len(events[0][2].nodes) == 3

    def test_background_contextmenu_cancels_drawing(self, triangle, events):
        triangle.start_add_link(1)
        triangle.controller.background_contextmenu(at(5, 5, button="right"))
        assert triangle.mode is Mode.NORMAL
        assert [e[0] for e in events] == ["contextmenu"]

    def test_rejected_link_is_reported_not_raised(self, triangle):
        rejected = []
        triangle.controller.link_rejected.connect(rejected.append)

        triangle.start_add_link(1)
        triangle.controller.node_click(0, at())

        assert triangle.mode is Mode.NORMAL
        assert rejected == ["link(source: 1, target: 0) duplicated"]
        assert len(triangle.data.links) == 1

    def test_clicking_source_again_is_a_self_loop(self, triangle):
        rejected = []
        triangle.controller.link_rejected.connect(rejected.append)

        triangle.start_add_link(2)
        triangle.controller.node_click(2, at())

        assert "source can't equal to target" in rejected[0]

    def test_pointer_move_drags_preview_end(self, triangle):
        triangle.start_add_link(0)
        triangle.controller.pointer_move(420.0, 80.0)
        preview = triangle.controller.state.preview
        assert (preview.line().x2(), preview.line().y2()) == (420.0, 80.0)

    def test_pointer_move_in_normal_mode_is_ignored(self, triangle):
        triangle.controller.pointer_move(420.0, 80.0)
        assert triangle.mode is Mode.NORMAL

    def test_mode_changed_signal(self, triangle):
        modes = []
        triangle.controller.mode_changed.connect(modes.append)
        triangle.start_add_link(0)
        triangle.controller.background_click(at())
        assert modes == ["drawingLink", "normal"]


class TestNodeCallbacks:

    def test_node_click_in_normal_mode(self, triangle, events):
        triangle.controller.node_click(1, at(300, 300))
        name, event, group_node = events[0]
        assert name == "node_click"
        assert group_node.data.id == 1
        assert event.x == 300

    def test_per_node_handler_takes_precedence(self, triangle, events):
        own = []
        triangle.add_node(TopoNode(id="own", x=10, y=10, on_click=lambda e, n, d: own.append(n.data.id)))

        triangle.controller.node_click("own", at())

        assert own == ["own"]
        assert events == []

    def test_node_contextmenu_fires_in_any_mode(self, triangle, events):
        triangle.start_add_link(0)
        triangle.controller.node_contextmenu(2, at(button="right"))
        assert events[0][0] == "node_contextmenu"
        assert triangle.mode is Mode.DRAWING_LINK

    def test_missing_callbacks_are_skipped(self, qapp):
        from topoview import Topo, TopoConfig
        topo = Topo(TopoConfig(width=100, height=100))
        try:
            topo.add_node({"id": 1, "x": 5, "y": 5})
            topo.controller.node_click(1, at())
            topo.controller.background_click(at())
            topo.controller.background_contextmenu(at())
        finally:
            topo.dispose()

    def test_scene_signals_reach_controller(self, triangle, events):
        triangle.scene.node_clicked.emit(2, at())
        triangle.scene.background_clicked.emit(at())
        assert [e[0] for e in events] == ["node_click", "click"]


class TestDrag:

    def test_drag_pins_then_releases(self, triangle):
        node = triangle.data.nodes[0].data
        x0, y0 = node.x, node.y

        triangle.controller.drag_start(0)
        assert (node.fx, node.fy) == (x0, y0)
        assert triangle.simulation.alpha_target == pytest.approx(0.1)

        triangle.controller.drag_move(0, 650.0, 30.0)
        assert (node.fx, node.fy) == (650.0, 30.0)

        triangle.controller.drag_end(0)
        assert not node.pinned
        assert triangle.simulation.alpha_target == 0.0

    def test_dragged_node_follows_pointer_but_renders_inside(self, triangle):
        triangle.controller.drag_start(0)
        triangle.controller.drag_move(0, 650.0, 30.0)
        triangle.simulation.step()

        group_node = triangle.data.nodes[0]
        assert group_node.data.x == 650.0
        assert group_node.el.attr("cx") == 600.0
        assert group_node.el.attr("cy") == 30.0

    def test_drag_works_while_drawing_link(self, triangle):
        triangle.start_add_link(0)
        triangle.controller.drag_start(1)
        triangle.controller.drag_move(1, 100.0, 100.0)
        assert triangle.data.nodes[1].data.fx == 100.0
        assert triangle.mode is Mode.DRAWING_LINK

    def test_stop_mid_drag_keeps_node_pinned(self, triangle):
        triangle.controller.drag_start(2)
        triangle.controller.drag_move(2, 111.0, 222.0)
        triangle.stop_simulation()
        triangle.controller.drag_end(2)

        node = triangle.data.nodes[2].data
        assert (node.fx, node.fy) == (111.0, 222.0)


class TestPointerEvents:
    """Real Qt mouse events delivered to the canvas viewport."""

    @pytest.fixture
    def canvas(self, triangle, qtbot):
        # pinned layout, so item positions stay put while events are processed
        triangle.stop_simulation()
        canvas = triangle.canvas
        canvas.show()
        qtbot.waitExposed(canvas)
        return canvas

    @staticmethod
    def viewport_pos(canvas, topo, node_id):
        for group_node in topo.data.nodes:
            if group_node.data.id == node_id:
                scene_pos = QPointF(group_node.el.attr("cx"), group_node.el.attr("cy"))
                return canvas.mapFromScene(scene_pos)
        raise LookupError(node_id)

    def test_click_on_node(self, triangle, canvas, events, qtbot):
        pos = self.viewport_pos(canvas, triangle, 1)
        qtbot.mouseClick(canvas.viewport(), Qt.MouseButton.LeftButton, pos=pos)

        assert [e[0] for e in events] == ["node_click"]
        assert events[0][2].data.id == 1
        assert events[0][1].button == "left"

    def test_drag_does_not_click(self, triangle, canvas, events, qtbot):
        moves = []
        triangle.scene.node_dragged.connect(lambda node_id, x, y: moves.append((node_id, x, y)))
        pos = self.viewport_pos(canvas, triangle, 2)
        target = pos + QPoint(40, 30)

        qtbot.mousePress(canvas.viewport(), Qt.MouseButton.LeftButton, pos=pos)
        qtbot.mouseMove(canvas.viewport(), target)
        qtbot.mouseRelease(canvas.viewport(), Qt.MouseButton.LeftButton, pos=target)

        assert moves and moves[-1][0] == 2
        assert events == []

    def test_click_on_background(self, triangle, canvas, events, qtbot):
        qtbot.mouseClick(canvas.viewport(), Qt.MouseButton.LeftButton, pos=QPoint(40, 560))

        assert [e[0] for e in events] == ["click"]
        assert (events[0][1].x, events[0][1].y) == (40.0, 560.0)

    def test_context_menu(self, triangle, canvas, events):
        viewport = canvas.viewport()
        for pos in (self.viewport_pos(canvas, triangle, 2), QPoint(40, 560)):
            event = QContextMenuEvent(QContextMenuEvent.Reason.Mouse, pos, viewport.mapToGlobal(pos))
            QApplication.sendEvent(viewport, event)

        assert [e[0] for e in events] == ["node_contextmenu", "contextmenu"]
        assert events[0][2].data.id == 2
        assert events[0][1].button == "right"

    def test_draw_link_with_pointer(self, triangle, canvas, qtbot):
        triangle.start_add_link(0)
        preview = triangle.controller.state.preview

        qtbot.mouseMove(canvas.viewport(), QPoint(500, 80))
        assert (preview.line().x2(), preview.line().y2()) == (500.0, 80.0)

        pos = self.viewport_pos(canvas, triangle, 2)
        qtbot.mouseClick(canvas.viewport(), Qt.MouseButton.LeftButton, pos=pos)

        assert triangle.mode is Mode.NORMAL
        assert link_key(0, 2) in {link.data.key for link in triangle.data.links}
