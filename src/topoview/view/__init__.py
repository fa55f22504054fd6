"""
The VIEW layer owns every Qt graphics item. Nothing outside it creates or
removes scene items.
"""
