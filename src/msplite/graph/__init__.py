"""Dependency graph normalization and integrity checks."""

from msplite.graph.normalize import DependencyEdge, LinkType, build
from msplite.graph.engine import (
    DependencyGraph,
    EdgeRejected,
    ProposalResult,
    RejectionReason,
    build_adjacency,
    can_propose_edge,
    index_by_predecessor,
    index_by_successor,
    is_duplicate_edge,
    would_create_cycle,
)

__all__ = [
    "DependencyEdge",
    "DependencyGraph",
    "EdgeRejected",
    "LinkType",
    "ProposalResult",
    "RejectionReason",
    "build",
    "build_adjacency",
    "can_propose_edge",
    "index_by_predecessor",
    "index_by_successor",
    "is_duplicate_edge",
    "would_create_cycle",
]
