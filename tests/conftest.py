import os

# Qt must not try to open a display during tests
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PySide6.QtCore import QCoreApplication, QEvent

from topoview import Topo, TopoConfig


@pytest.fixture
def events():
    """Collects callback invocations as (name, args) tuples."""
    return []


@pytest.fixture
def topo(qapp, events):
    config = TopoConfig(
        width=600,
        height=600,
        on_click=lambda e, data: events.append(("click", e, data)),
        on_contextmenu=lambda e, data: events.append(("contextmenu", e, data)),
        node_on_click=lambda e, node, data: events.append(("node_click", e, node)),
        node_on_contextmenu=lambda e, node, data: events.append(("node_contextmenu", e, node)),
    )
    t = Topo(config, seed=7)
    yield t
    t.dispose()
    # no event loop runs between tests: flush deleteLater() so the old canvas is gone
    QCoreApplication.sendPostedEvents(None, QEvent.Type.DeferredDelete)


@pytest.fixture
def triangle(topo):
    """Nodes 0, 1, 2 and link 0-1."""
    topo.add_data(
        nodes=[
            {"id": 0, "x": 250, "y": 250, "radius": 5},
            {"id": 1, "x": 300, "y": 300, "radius": 10},
            {"id": 2, "x": 370, "y": 170, "radius": 15},
        ],
        links=[{"source": 0, "target": 1}],
    )
    return topo
