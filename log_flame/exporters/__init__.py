"""
Renderers for extracted FlameEvents.
"""
