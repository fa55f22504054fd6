import random

import pytest

from topoview.model.errors import (
    DuplicateIdError, DuplicateLinkError, SelfLoopError, UnresolvedEndpointError
)
from topoview.model.graph import GraphModel, TopoNode, TopoLink, link_key


class TestGraphModel:

    def setup_method(self):
        self.model = GraphModel()
        for node_id in ("A", "B", "C"):
            self.model.insert_node(TopoNode(id=node_id))
        self.model.insert_link(TopoLink("A", "B"))

    def test_insert_node_rejects_duplicate_id(self):
        with pytest.raises(DuplicateIdError, match=r"node\(id: A\) duplicated"):
            self.model.insert_node(TopoNode(id="A"))
        assert len(self.model) == 3

    def test_insert_link_resolves_endpoints(self):
        entry = self.model.insert_link(TopoLink("B", "C", width=4))
        assert entry.source is self.model.get_node("B")
        assert entry.target is self.model.get_node("C")
        assert entry.data.width == 4

    def test_self_loop_is_rejected(self):
        for node_id in ("A", "B", "Z"):
            with pytest.raises(SelfLoopError, match="source can't equal to target"):
                self.model.insert_link(TopoLink(node_id, node_id))

    def test_reverse_link_is_a_duplicate(self):
        with pytest.raises(DuplicateLinkError, match=r"link\(source: B, target: A\) duplicated"):
            self.model.insert_link(TopoLink("B", "A"))
        assert len(self.model.links) == 1

    def test_link_to_missing_node(self):
        with pytest.raises(UnresolvedEndpointError, match="can not find link's source or target"):
            self.model.insert_link(TopoLink("A", "Q"))
        assert self.model.get_link("A", "Q") is None

    def test_remove_node_cascades_to_links(self):
        self.model.insert_link(TopoLink("C", "A"))
        nodes, links = self.model.remove_nodes(["A"])

        assert [n.id for n in nodes] == ["A"]
        assert {link.key for link in links} == {link_key("A", "B"), link_key("A", "C")}
        assert self.model.links == []
        assert "A" not in self.model

    def test_remove_absent_node_is_noop(self):
        nodes, links = self.model.remove_nodes(["nope"])
        assert nodes == [] and links == []
        assert len(self.model) == 3
        assert len(self.model.links) == 1

    def test_remove_links_either_direction(self):
        removed = self.model.remove_links([("B", "A"), ("B", "C")])
        assert len(removed) == 1
        assert self.model.links == []

    def test_links_touching(self):
        self.model.insert_link(TopoLink("B", "C"))
        assert {e.key for e in self.model.links_touching("B")} == {link_key("A", "B"), link_key("B", "C")}
        assert self.model.links_touching("Z") == []

    def test_insertion_order_is_kept(self):
        assert [n.id for n in self.model.nodes] == ["A", "B", "C"]


def test_random_mutations_keep_invariants():
    rng = random.Random(1234)
    model = GraphModel()
    for _ in range(500):
        op = rng.random()
        a, b = rng.randrange(12), rng.randrange(12)
        try:
            if op < 0.35:
                model.insert_node(TopoNode(id=a))
            elif op < 0.85:
                model.insert_link(TopoLink(a, b))
            elif op < 0.95:
                model.remove_links([(a, b)])
            else:
                model.remove_nodes([a])
        except (DuplicateIdError, DuplicateLinkError, SelfLoopError, UnresolvedEndpointError):
            pass

        ids = [n.id for n in model.nodes]
        assert len(ids) == len(set(ids))
        keys = [e.key for e in model.links]
        assert len(keys) == len(set(keys))
        for entry in model.links:
            assert entry.source.id != entry.target.id
            assert model.get_node(entry.source.id) is entry.source
            assert model.get_node(entry.target.id) is entry.target
