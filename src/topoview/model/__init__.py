"""
The MODEL layer contains the graph data structures and the force integrator.
It has NO knowledge of the GUI (Qt). It deals with identity, invariants and
physics.
"""
