"""Dependency graph integrity engine — cycle/duplicate checks, indexes, mutation gate."""

from __future__ import annotations
import logging
from collections import defaultdict, deque
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable

from msplite.graph.normalize import DependencyEdge, build, normalize_task_id

logger = logging.getLogger("msplite.graph")


class RejectionReason(str, Enum):
    MISSING_ENDPOINT = "MissingEndpoint"
    SELF_DEPENDENCY = "SelfDependency"
    DUPLICATE_EDGE = "DuplicateEdge"
    CYCLE_DETECTED = "CycleDetected"


REJECTION_MESSAGES = {
    RejectionReason.MISSING_ENDPOINT: "Both a predecessor and a successor task are required",
    RejectionReason.SELF_DEPENDENCY: "A task cannot depend on itself",
    RejectionReason.DUPLICATE_EDGE: "This dependency already exists",
    RejectionReason.CYCLE_DETECTED: "This dependency would create a cycle",
}


@dataclass(frozen=True)
class ProposalResult:
    """Outcome of the pre-submission check for a new edge."""
    predecessor_id: str | None
    successor_id: str | None
    reason: RejectionReason | None = None

    @property
    def ok(self) -> bool:
        return self.reason is None

    @property
    def message(self) -> str:
        if self.reason is None:
            return "ok"
        return REJECTION_MESSAGES[self.reason]

    def to_dict(self) -> dict:
        return {
            "ok": self.ok,
            "predecessorId": self.predecessor_id,
            "successorId": self.successor_id,
            "reason": self.reason.value if self.reason else None,
            "detail": self.message,
        }


class EdgeRejected(Exception):
    """Raised when a proposed dependency fails the integrity gate."""
    def __init__(self, result: ProposalResult):
        self.result = result
        self.reason = result.reason
        super().__init__(
            f"{result.message}: {result.predecessor_id} → {result.successor_id}"
        )


def _edges(edges: Iterable[Any] | None) -> list[DependencyEdge]:
    # Already-normalized edges pass through build() untouched.
    return build(edges)


def build_adjacency(edges: Iterable[Any] | None) -> dict[str, list[str]]:
    """Predecessor → successors, in edge insertion order."""
    adjacency: dict[str, list[str]] = {}
    for edge in _edges(edges):
        adjacency.setdefault(edge.predecessor_id, []).append(edge.successor_id)
    return adjacency


def is_reachable(adjacency: dict[str, list[str]], start: str, target: str) -> bool:
    """Iterative DFS from ``start`` looking for ``target``."""
    visited: set[str] = set()
    stack = [start]
    while stack:
        node = stack.pop()
        if node == target:
            return True
        if node in visited:
            continue
        visited.add(node)
        stack.extend(adjacency.get(node, ()))
    return False


def would_create_cycle(edges: Iterable[Any] | None, pred_id: Any, succ_id: Any) -> bool:
    """True if adding pred → succ would close a loop (or is not a valid edge)."""
    pred = normalize_task_id(pred_id)
    succ = normalize_task_id(succ_id)
    if pred is None or succ is None:
        return True
    # Self-loop guard: DFS from an isolated successor never steps outward.
    if pred == succ:
        return True

    adjacency = build_adjacency(edges)
    adjacency.setdefault(pred, []).append(succ)
    return is_reachable(adjacency, succ, pred)


def is_duplicate_edge(edges: Iterable[Any] | None, pred_id: Any, succ_id: Any) -> bool:
    pred = normalize_task_id(pred_id)
    succ = normalize_task_id(succ_id)
    return any(
        edge.predecessor_id == pred and edge.successor_id == succ
        for edge in _edges(edges)
    )


def index_by_predecessor(edges: Iterable[Any] | None) -> dict[str, list[DependencyEdge]]:
    """Task → edges where it is the successor (i.e. its predecessors)."""
    index: dict[str, list[DependencyEdge]] = {}
    for edge in _edges(edges):
        index.setdefault(edge.successor_id, []).append(edge)
    return index


def index_by_successor(edges: Iterable[Any] | None) -> dict[str, list[DependencyEdge]]:
    """Task → edges where it is the predecessor (i.e. its successors)."""
    index: dict[str, list[DependencyEdge]] = {}
    for edge in _edges(edges):
        index.setdefault(edge.predecessor_id, []).append(edge)
    return index


def can_propose_edge(edges: Iterable[Any] | None, pred_id: Any, succ_id: Any) -> ProposalResult:
    """Single pre-submission check for any new dependency. Pure; no I/O."""
    pred = normalize_task_id(pred_id)
    succ = normalize_task_id(succ_id)
    current = _edges(edges)

    if pred is None or succ is None:
        reason = RejectionReason.MISSING_ENDPOINT
    elif pred == succ:
        reason = RejectionReason.SELF_DEPENDENCY
    elif is_duplicate_edge(current, pred, succ):
        reason = RejectionReason.DUPLICATE_EDGE
    elif would_create_cycle(current, pred, succ):
        reason = RejectionReason.CYCLE_DETECTED
    else:
        reason = None

    return ProposalResult(predecessor_id=pred, successor_id=succ, reason=reason)


def ensure_can_propose(edges: Iterable[Any] | None, pred_id: Any, succ_id: Any) -> ProposalResult:
    """Like can_propose_edge, but raises EdgeRejected on failure."""
    result = can_propose_edge(edges, pred_id, succ_id)
    if not result.ok:
        raise EdgeRejected(result)
    return result


def find_cycle(adjacency: dict[str, list[str]]) -> list[str] | None:
    """Detect a cycle using DFS. Returns the cycle path or None."""
    WHITE, GRAY, BLACK = 0, 1, 2
    nodes = set(adjacency)
    for children in adjacency.values():
        nodes.update(children)
    color = {n: WHITE for n in nodes}
    parent: dict[str, str] = {}

    for root in sorted(nodes):
        if color[root] != WHITE:
            continue
        color[root] = GRAY
        stack = [(root, iter(adjacency.get(root, ())))]
        while stack:
            node, children = stack[-1]
            child = next(children, None)
            if child is None:
                color[node] = BLACK
                stack.pop()
                continue
            if color[child] == GRAY:
                cycle = [node]
                current = node
                while current != child:
                    current = parent[current]
                    cycle.append(current)
                cycle.reverse()
                cycle.append(child)
                return cycle
            if color[child] == WHITE:
                parent[child] = node
                color[child] = GRAY
                stack.append((child, iter(adjacency.get(child, ()))))
    return None


@dataclass(frozen=True)
class IntegrityIssue:
    kind: str  # self | duplicate | cycle
    tasks: tuple[str, ...]
    edge_ids: tuple[Any, ...] = ()

    def to_dict(self) -> dict:
        return {"kind": self.kind, "tasks": list(self.tasks), "edgeIds": list(self.edge_ids)}


def integrity_issues(edges: Iterable[Any] | None) -> list[IntegrityIssue]:
    """Report self-loops, duplicate pairs and cycles already present in loaded data.

    Backend data is mirrored as-is; this only lets callers warn about it.
    """
    current = _edges(edges)
    issues = []

    by_pair: dict[tuple[str, str], list[DependencyEdge]] = defaultdict(list)
    for edge in current:
        by_pair[edge.key].append(edge)

    for (pred, succ), group in by_pair.items():
        if pred == succ:
            issues.append(IntegrityIssue(
                kind="self",
                tasks=(pred,),
                edge_ids=tuple(e.edge_id for e in group),
            ))

    for pair, group in by_pair.items():
        if len(group) > 1:
            issues.append(IntegrityIssue(
                kind="duplicate",
                tasks=pair,
                edge_ids=tuple(e.edge_id for e in group),
            ))

    # Self-loops are already reported above
    cycle = find_cycle(build_adjacency(e for e in current if e.predecessor_id != e.successor_id))
    if cycle:
        issues.append(IntegrityIssue(kind="cycle", tasks=tuple(cycle)))

    return issues


class DependencyGraph:
    """Immutable snapshot of a project's dependency edges with derived views.

    A new instance is built after every reload; nothing here is patched in place.
    """

    def __init__(self, edges: Iterable[Any] | None = None):
        self._edges = tuple(_edges(edges))
        self._adjacency = build_adjacency(self._edges)
        self._predecessors = index_by_predecessor(self._edges)
        self._successors = index_by_successor(self._edges)

    def __len__(self) -> int:
        return len(self._edges)

    def __iter__(self):
        return iter(self._edges)

    @property
    def edges(self) -> tuple[DependencyEdge, ...]:
        return self._edges

    @property
    def adjacency(self) -> dict[str, list[str]]:
        return {k: list(v) for k, v in self._adjacency.items()}

    @property
    def task_ids(self) -> set[str]:
        ids = set()
        for edge in self._edges:
            ids.update(edge.key)
        return ids

    def predecessors_of(self, task_id: Any) -> list[DependencyEdge]:
        return list(self._predecessors.get(normalize_task_id(task_id), ()))

    def successors_of(self, task_id: Any) -> list[DependencyEdge]:
        return list(self._successors.get(normalize_task_id(task_id), ()))

    def find_edge(self, edge_id: Any) -> DependencyEdge | None:
        for edge in self._edges:
            if edge.edge_id is not None and edge.edge_id == edge_id:
                return edge
        return None

    def get_upstream(self, task_id: Any) -> set[str]:
        """Get all transitive predecessors."""
        return self._walk(normalize_task_id(task_id), self._predecessors, upstream=True)

    def get_downstream(self, task_id: Any) -> set[str]:
        """Get all transitive successors."""
        return self._walk(normalize_task_id(task_id), self._successors, upstream=False)

    def _walk(self, start: str | None, index: dict, upstream: bool) -> set[str]:
        visited = set()
        queue = deque([start])
        while queue:
            node = queue.popleft()
            if node is None or node in visited:
                continue
            visited.add(node)
            for edge in index.get(node, ()):
                queue.append(edge.predecessor_id if upstream else edge.successor_id)
        visited.discard(start)
        return visited

    def would_create_cycle(self, pred_id: Any, succ_id: Any) -> bool:
        return would_create_cycle(self._edges, pred_id, succ_id)

    def is_duplicate(self, pred_id: Any, succ_id: Any) -> bool:
        return is_duplicate_edge(self._edges, pred_id, succ_id)

    def check(self, pred_id: Any, succ_id: Any) -> ProposalResult:
        result = can_propose_edge(self._edges, pred_id, succ_id)
        if not result.ok:
            logger.info(f"Rejected dependency {result.predecessor_id} → {result.successor_id}: {result.reason.value}")
        return result

    def detect_cycle(self) -> list[str] | None:
        return find_cycle(self._adjacency)

    def issues(self) -> list[IntegrityIssue]:
        return integrity_issues(self._edges)

    def to_dict(self) -> dict:
        """Serialize the graph for JSON output."""
        return {
            "tasks": sorted(self.task_ids),
            "edges": [
                {**edge.to_record(), "canEdit": edge.can_edit}
                for edge in self._edges
            ],
            "issues": [issue.to_dict() for issue in self.issues()],
        }
