"""MSP Lite — project schedule viewer/editor with dependency integrity checks."""

__version__ = "0.1.0"

from msplite.graph import DependencyGraph, can_propose_edge

__all__ = ["DependencyGraph", "can_propose_edge", "__version__"]
