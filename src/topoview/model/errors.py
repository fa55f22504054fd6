"""
Error Taxonomy
==============
Every error a caller can provoke is a `TopoError`. They are recoverable: the
engine state is unchanged after any of them is raised.

`TopologyInvariantError` is different: it means the graph model and the scene
drifted apart, which is a bug in the engine rather than bad input.
"""
from __future__ import annotations

from typing import Union

NodeId = Union[int, str]


class TopoError(ValueError):
    """Base class for rejected topology operations."""


class DuplicateIdError(TopoError):
    def __init__(self, node_id: NodeId) -> None:
        self.node_id = node_id
        super().__init__(f"node(id: {node_id}) duplicated")


class DuplicateLinkError(TopoError):
    def __init__(self, source: NodeId, target: NodeId) -> None:
        self.source = source
        self.target = target
        super().__init__(f"link(source: {source}, target: {target}) duplicated")


class SelfLoopError(TopoError):
    def __init__(self, source: NodeId, target: NodeId) -> None:
        self.source = source
        self.target = target
        super().__init__(f"link(source: {source}, target: {target}) source can't equal to target")


class UnresolvedEndpointError(TopoError):
    def __init__(self, source: NodeId, target: NodeId) -> None:
        self.source = source
        self.target = target
        super().__init__(f"can not find link's source or target (source: {source}, target: {target})")


class InvalidRecordError(TopoError):
    """A node or link record that cannot be turned into an entity."""
    def __init__(self, kind: str, record: object, reason: str) -> None:
        self.kind = kind
        self.record = record
        super().__init__(f"invalid {kind} record {record!r}: {reason}")


class NotRenderedError(TopoError):
    def __init__(self) -> None:
        super().__init__("topology is not rendered")


class TopologyInvariantError(RuntimeError):
    """The scene's primitive table no longer matches the graph model."""
