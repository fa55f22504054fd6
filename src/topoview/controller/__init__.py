"""
The CONTROLLER layer drives the simulation clock and interprets pointer
gestures. It writes to the model and asks the view to redraw.
"""
