"""
topoview: interactive force-directed topology diagrams on a Qt graphics scene.
"""
from topoview.config import TopoConfig, SimulationSettings, PointerEvent
from topoview.controller.interaction import Mode
from topoview.model.errors import (
    TopoError, DuplicateIdError, DuplicateLinkError, SelfLoopError,
    UnresolvedEndpointError, InvalidRecordError, NotRenderedError, TopologyInvariantError
)
from topoview.model.graph import TopoNode, TopoLink, LinkStyle
from topoview.topo import Topo, GroupData, GroupNode, GroupLink, AddDataResult

__all__ = [
    "Topo", "TopoConfig", "SimulationSettings", "PointerEvent", "Mode",
    "TopoNode", "TopoLink", "LinkStyle",
    "GroupData", "GroupNode", "GroupLink", "AddDataResult",
    "TopoError", "DuplicateIdError", "DuplicateLinkError", "SelfLoopError",
    "UnresolvedEndpointError", "InvalidRecordError", "NotRenderedError", "TopologyInvariantError",
]
