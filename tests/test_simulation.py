import math

import pytest

from topoview.config import SimulationSettings
from topoview.controller.simulation import SimulationDriver
from topoview.model.graph import GraphModel, TopoNode, TopoLink
from topoview.model.simulation import ForceSimulation, CollideForce, ManyBodyForce, LinkForce


def distance(a: TopoNode, b: TopoNode) -> float:
    return math.hypot(a.x - b.x, a.y - b.y)


class TestForceSimulation:

    def test_pinned_node_does_not_move(self):
        pinned = TopoNode(id=0, x=100.0, y=100.0, fx=100.0, fy=100.0)
        free = TopoNode(id=1, x=102.0, y=101.0)
        sim = ForceSimulation(seed=1).force("charge", ManyBodyForce()).force("collide", CollideForce())
        sim.nodes([pinned, free])

        for _ in range(50):
            sim.tick()

        assert (pinned.x, pinned.y) == (100.0, 100.0)
        assert (pinned.vx, pinned.vy) == (0.0, 0.0)
        assert distance(pinned, free) > 2.0

    def test_collision_separates_overlapping_nodes(self):
        a = TopoNode(id="a", x=0.0, y=0.0, radius=5)
        b = TopoNode(id="b", x=1.0, y=0.0, radius=5)
        sim = ForceSimulation(seed=1).force("collide", CollideForce(margin=1.0, iterations=3))
        sim.nodes([a, b])

        for _ in range(50):
            sim.tick()

        # radius 5 + margin 1 on each side
        assert distance(a, b) > 10.0

    def test_charge_repels(self):
        a = TopoNode(id="a", x=0.0, y=0.0)
        b = TopoNode(id="b", x=10.0, y=0.0)
        sim = ForceSimulation(seed=1).force("charge", ManyBodyForce(strength=-30.0))
        sim.nodes([a, b])

        for _ in range(20):
            sim.tick()

        assert distance(a, b) > 10.0
        assert a.x < 0.0 < 10.0 < b.x

    def test_link_pulls_endpoints_together(self):
        model = GraphModel()
        model.insert_node(TopoNode(id=0, x=0.0, y=0.0))
        model.insert_node(TopoNode(id=1, x=200.0, y=0.0))
        model.insert_link(TopoLink(0, 1))

        sim = ForceSimulation(seed=1)
        sim.nodes(model.nodes).force("link", LinkForce(model.links, distance=30.0))

        for _ in range(100):
            sim.tick()

        assert distance(*model.nodes) < 60.0

    def test_link_force_rejects_nodes_outside_simulation(self):
        model = GraphModel()
        model.insert_node(TopoNode(id=0, x=0.0, y=0.0))
        model.insert_node(TopoNode(id=1, x=10.0, y=0.0))
        model.insert_link(TopoLink(0, 1))

        sim = ForceSimulation(seed=1).nodes([model.get_node(0)])
        with pytest.raises(ValueError, match="outside the simulation"):
            sim.force("link", LinkForce(model.links))

    def test_unplaced_nodes_get_spiral_positions(self):
        nodes = [TopoNode(id=i) for i in range(5)]
        ForceSimulation().nodes(nodes)

        assert nodes[0].x == pytest.approx(10.0 * math.sqrt(0.5))
        assert nodes[0].y == pytest.approx(0.0)
        positions = {(round(n.x, 6), round(n.y, 6)) for n in nodes}
        assert len(positions) == 5
        assert [n.index for n in nodes] == [0, 1, 2, 3, 4]

    def test_pin_overrides_initial_position(self):
        node = TopoNode(id=0, x=1.0, y=2.0, fx=50.0, fy=60.0)
        ForceSimulation().nodes([node])
        assert (node.x, node.y) == (50.0, 60.0)

    def test_seed_makes_coincident_layout_reproducible(self):
        def run(seed):
            model = GraphModel()
            for i in range(4):
                model.insert_node(TopoNode(id=i, x=100.0, y=100.0))
            model.insert_link(TopoLink(0, 1))
            sim = ForceSimulation(seed=seed).force("collide", CollideForce()).force("charge", ManyBodyForce())
            sim.nodes(model.nodes).force("link", LinkForce(model.links))
            for _ in range(30):
                sim.tick()
            return [(n.x, n.y) for n in model.nodes]

        first = run(11)
        assert run(11) == first
        assert len(set(first)) == 4

    def test_alpha_cools_down(self):
        sim = ForceSimulation()
        sim.tick(iterations=299)
        assert not sim.cooled
        sim.tick(iterations=2)
        assert sim.cooled


class TestSimulationDriver:

    @pytest.fixture(autouse=True)
    def _driver(self, qapp):
        self.driver = SimulationDriver(SimulationSettings(), seed=3)
        self.node = TopoNode(id=0, x=40.0, y=50.0)
        self.other = TopoNode(id=1, x=80.0, y=90.0)
        self.driver.reseed([self.node, self.other], [])
        yield
        self.driver.halt()

    def test_step_emits_ticked(self):
        ticks = []
        self.driver.ticked.connect(lambda: ticks.append(1))
        self.driver.step()
        self.driver.step()
        assert len(ticks) == 2

    def test_clock_stops_when_cooled(self):
        ended = []
        self.driver.ended.connect(lambda: ended.append(1))
        self.driver.integrator.alpha = 0.0005
        self.driver.restart()
        self.driver.step()
        assert not self.driver.active
        assert ended == [1]

    def test_reseed_reheats(self):
        self.driver.halt()
        self.driver.integrator.alpha = 0.0
        self.driver.reseed([self.node], [])
        assert self.driver.alpha == pytest.approx(0.3)
        assert self.driver.active
        assert self.driver.nodes == [self.node]

    def test_drag_pins_and_releases(self):
        self.driver.drag_start(self.node)
        assert (self.node.fx, self.node.fy) == (40.0, 50.0)
        assert self.driver.alpha_target == pytest.approx(0.1)

        self.driver.drag_to(self.node, 700.0, -20.0)
        assert (self.node.fx, self.node.fy) == (700.0, -20.0)

        self.driver.drag_end(self.node)
        assert not self.node.pinned
        assert self.driver.alpha_target == 0.0

    def test_drag_end_keeps_pin_when_stopped(self):
        self.driver.drag_start(self.node)
        self.driver.drag_to(self.node, 10.0, 20.0)
        self.driver.stop()
        self.driver.drag_end(self.node)
        assert (self.node.fx, self.node.fy) == (10.0, 20.0)

    def test_stop_and_start_toggle_pins(self):
        self.driver.stop()
        assert not self.driver.running
        assert all(n.pinned for n in (self.node, self.other))
        assert (self.other.fx, self.other.fy) == (80.0, 90.0)

        self.driver.start()
        assert self.driver.running
        assert not any(n.pinned for n in (self.node, self.other))
