"""
Configuration & Global Constants
================================
This module serves as the central registry for default styling values,
simulation tuning and the construction-time configuration of a topology.

Why is this file needed?
------------------------
1. Abstraction: It prevents magic numbers (radii, colours, decay rates)
   scattered throughout the scene and simulation code.
2. Contract: `TopoConfig` is the single object a caller fills in to mount a
   topology, including the optional event callbacks.

Exports:
    TopoConfig: Mount target, canvas bounds and callbacks.
    SimulationSettings: Force integrator tuning.
    PointerEvent: Pointer data handed to every callback.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Callable, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from PySide6.QtWidgets import QWidget

# Node defaults
DEFAULT_NODE_RADIUS: float = 5.0
DEFAULT_NODE_COLOR: str = "#000"
DEFAULT_NODE_OPACITY: float = 1.0

# Link defaults
DEFAULT_LINK_WIDTH: float = 2.0
DEFAULT_LINK_COLOR: str = "#aaa"
DEFAULT_LINK_OPACITY: float = 1.0

# In-progress link drawn while the user picks a target node
PREVIEW_LINK_WIDTH: float = 2.0
PREVIEW_LINK_COLOR: str = "red"
PREVIEW_LINK_DASH: tuple[float, float] = (7.0, 5.0)

# Z-order: links below nodes, the preview on top of links
LINK_Z: float = 0.0
PREVIEW_Z: float = 0.5
NODE_Z: float = 1.0


@dataclass(frozen=True)
class PointerEvent:
    """Pointer position in scene (canvas) and screen coordinates."""
    x: float
    y: float
    screen_x: int = 0
    screen_y: int = 0
    button: str = "left"


# Callback signatures (data is a `GroupData` snapshot, node a `GroupNode`)
BackgroundCallback = Callable[[PointerEvent, Any], None]
NodeCallback = Callable[[PointerEvent, Any, Any], None]


@dataclass
class TopoConfig:
    """
    Supplied once when a topology is constructed.

    `root` is the widget the canvas is mounted into. When it has a layout the
    canvas is appended to it.
    """
    width: int = 600
    height: int = 600
    root: Optional[QWidget] = None

    on_click: Optional[BackgroundCallback] = None
    on_contextmenu: Optional[BackgroundCallback] = None
    node_on_click: Optional[NodeCallback] = None
    node_on_contextmenu: Optional[NodeCallback] = None

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Canvas size must be positive, got {self.width}x{self.height}.")


@dataclass
class SimulationSettings:
    """Force integrator tuning. Defaults follow the usual d3-force values."""
    tick_interval_ms: int = 16

    alpha: float = 1.0
    alpha_min: float = 0.001
    alpha_decay: float = 1.0 - math.pow(0.001, 1.0 / 300.0)
    velocity_decay: float = 0.4

    # Re-heat applied after structural mutations
    reheat_alpha: float = 0.3
    # Activity target while a node is being dragged
    drag_alpha_target: float = 0.1

    charge_strength: float = -30.0
    charge_distance_min: float = 1.0

    link_distance: float = 30.0
    link_iterations: int = 1

    collide_margin: float = 1.0
    collide_iterations: int = 3
    collide_strength: float = 1.0
