"""
Graph Model
===========
Authoritative storage for the nodes and links of a topology.

Why is this file needed?
------------------------
1. Identity: node ids are unique, links are identified by their unordered
   endpoint pair.
2. Invariants: self loops, duplicate links and dangling endpoints are
   rejected at insertion time, before anything is committed.
3. Resolution: links are stored with direct references to their endpoint
   nodes so the scene and the simulation never have to look them up.

Classes:
    TopoNode: A vertex with position, style and optional pin.
    TopoLink: An undirected edge as supplied by the caller (id based).
    LinkStyle: Style overrides for interactively drawn links.
    LinkEntry: A stored link with resolved endpoint nodes.
    GraphModel: The container enforcing the invariants.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional

from topoview.model.errors import (
    NodeId, DuplicateIdError, DuplicateLinkError, SelfLoopError, UnresolvedEndpointError
)

logger = logging.getLogger(__name__)

LinkKey = frozenset


def link_key(source: NodeId, target: NodeId) -> LinkKey:
    """Unordered identity of the link between `source` and `target`."""
    return frozenset((source, target))


@dataclass(eq=False)
class TopoNode:
    """
    A graph vertex.

    `x`/`y` are owned by the simulation (and by a drag gesture while one is
    active). `fx`/`fy` pin the node; `None` means free.
    """
    id: NodeId
    x: Optional[float] = None
    y: Optional[float] = None
    radius: Optional[float] = None
    color: Optional[str] = None
    opacity: Optional[float] = None

    fx: Optional[float] = None
    fy: Optional[float] = None

    # Per-node handlers take precedence over the config-level ones
    on_click: Optional[Callable[..., Any]] = field(default=None, repr=False)
    on_contextmenu: Optional[Callable[..., Any]] = field(default=None, repr=False)

    # Integrator state
    vx: float = field(default=0.0, repr=False)
    vy: float = field(default=0.0, repr=False)
    index: int = field(default=-1, repr=False)

    @property
    def pinned(self) -> bool:
        return self.fx is not None and self.fy is not None

    def pin(self, x: float, y: float) -> None:
        self.fx = x
        self.fy = y

    def unpin(self) -> None:
        self.fx = None
        self.fy = None


@dataclass
class TopoLink:
    """An undirected link between two node ids, with optional styling."""
    source: NodeId
    target: NodeId
    width: Optional[float] = None
    color: Optional[str] = None
    opacity: Optional[float] = None

    @property
    def key(self) -> LinkKey:
        return link_key(self.source, self.target)


@dataclass(frozen=True)
class LinkStyle:
    """Style overrides applied to a link drawn interactively."""
    width: Optional[float] = None
    color: Optional[str] = None
    opacity: Optional[float] = None

    def build(self, source: NodeId, target: NodeId) -> TopoLink:
        return TopoLink(source=source, target=target, width=self.width, color=self.color, opacity=self.opacity)


@dataclass(eq=False)
class LinkEntry:
    """A stored link. Lives exactly as long as both endpoint nodes."""
    data: TopoLink
    source: TopoNode
    target: TopoNode

    @property
    def key(self) -> LinkKey:
        return self.data.key

    def touches(self, node_id: NodeId) -> bool:
        return self.source.id == node_id or self.target.id == node_id


class GraphModel:
    """Insertion-ordered node and link storage with invariant checks."""

    def __init__(self) -> None:
        self._nodes: dict[NodeId, TopoNode] = {}
        self._links: dict[LinkKey, LinkEntry] = {}

    # ------------------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------------------

    @property
    def nodes(self) -> list[TopoNode]:
        return list(self._nodes.values())

    @property
    def links(self) -> list[LinkEntry]:
        return list(self._links.values())

    def get_node(self, node_id: NodeId) -> Optional[TopoNode]:
        return self._nodes.get(node_id)

    def has_node(self, node_id: NodeId) -> bool:
        return node_id in self._nodes

    def get_link(self, source: NodeId, target: NodeId) -> Optional[LinkEntry]:
        return self._links.get(link_key(source, target))

    def links_touching(self, node_id: NodeId) -> list[LinkEntry]:
        return [entry for entry in self._links.values() if entry.touches(node_id)]

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    # ------------------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------------------

    def validate_node(self, node: TopoNode) -> None:
        if node.id in self._nodes:
            raise DuplicateIdError(node.id)

    def validate_link(self, link: TopoLink) -> None:
        if link.source == link.target:
            raise SelfLoopError(link.source, link.target)
        if link.key in self._links:
            raise DuplicateLinkError(link.source, link.target)
        if link.source not in self._nodes or link.target not in self._nodes:
            raise UnresolvedEndpointError(link.source, link.target)

    def insert_node(self, node: TopoNode) -> None:
        self.validate_node(node)
        self._nodes[node.id] = node
        logger.debug(f"Inserted node {node.id!r}.")

    def insert_link(self, link: TopoLink) -> LinkEntry:
        self.validate_link(link)
        entry = LinkEntry(data=link, source=self._nodes[link.source], target=self._nodes[link.target])
        self._links[link.key] = entry
        logger.debug(f"Inserted link {link.source!r}-{link.target!r}.")
        return entry

    def remove_nodes(self, ids: Iterable[NodeId]) -> tuple[list[TopoNode], list[LinkEntry]]:
        """
        Remove nodes and every link touching them.

        Absent ids are skipped.

        Returns:
            (removed nodes, removed links)
        """
        removed_nodes: list[TopoNode] = []
        removed_links: list[LinkEntry] = []
        for node_id in ids:
            node = self._nodes.pop(node_id, None)
            if node is None:
                continue
            removed_nodes.append(node)
            for entry in self.links_touching(node_id):
                del self._links[entry.key]
                removed_links.append(entry)
        if removed_nodes:
            logger.debug(f"Removed {len(removed_nodes)} node(s) and {len(removed_links)} link(s).")
        return removed_nodes, removed_links

    def remove_links(self, pairs: Iterable[tuple[NodeId, NodeId]]) -> list[LinkEntry]:
        """Remove links matching `(source, target)` in either direction. Unmatched pairs are skipped."""
        removed: list[LinkEntry] = []
        for source, target in pairs:
            entry = self._links.pop(link_key(source, target), None)
            if entry is not None:
                removed.append(entry)
        if removed:
            logger.debug(f"Removed {len(removed)} link(s).")
        return removed
