"""Dependency record normalization — tolerant field aliases → typed edges."""

from __future__ import annotations
import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Mapping

logger = logging.getLogger("msplite.graph")


class LinkType(str, Enum):
    FS = "FS"
    SS = "SS"
    FF = "FF"
    SF = "SF"


# Ordered alias tables: first present, non-null value wins.
PREDECESSOR_FIELDS = (
    "PredecessorTaskId",
    "PredecessorTaskID",
    "predecessorTaskId",
    "predecessorTaskID",
    "PredecessorId",
    "predecessorId",
    "predTaskId",
    "predId",
    "FromTaskId",
    "fromTaskId",
)

SUCCESSOR_FIELDS = (
    "SuccessorTaskId",
    "SuccessorTaskID",
    "successorTaskId",
    "successorTaskID",
    "SuccessorId",
    "successorId",
    "succTaskId",
    "succId",
    "ToTaskId",
    "toTaskId",
)

EDGE_ID_FIELDS = (
    "TaskDependencyId",
    "TaskDependencyID",
    "taskDependencyId",
    "taskDependencyID",
    "DependencyId",
    "dependencyId",
)

LINK_TYPE_FIELDS = (
    "LinkType",
    "linkType",
    "DependencyType",
    "dependencyType",
    "Type",
    "type",
)

LAG_FIELDS = (
    "LagDays",
    "lagDays",
    "Lag",
    "lag",
)


@dataclass(frozen=True)
class DependencyEdge:
    """One directed relationship predecessor → successor."""
    predecessor_id: str
    successor_id: str
    edge_id: int | float | None = None
    link_type: str = LinkType.FS.value
    lag_days: int | float = 0
    raw: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def key(self) -> tuple[str, str]:
        return (self.predecessor_id, self.successor_id)

    @property
    def can_edit(self) -> bool:
        """Update/delete need a backend-assigned id."""
        return self.edge_id is not None

    def to_record(self) -> dict:
        return {
            "taskDependencyId": self.edge_id,
            "predecessorId": self.predecessor_id,
            "successorId": self.successor_id,
            "linkType": self.link_type,
            "lagDays": self.lag_days,
        }


def first_present(record: Mapping[str, Any], aliases: Iterable[str]) -> Any:
    """Return the first non-null value among ``aliases`` in ``record``."""
    for name in aliases:
        value = record.get(name)
        if value is not None:
            return value
    return None


def normalize_task_id(value: Any) -> str | None:
    """Task ids are compared as strings; None and blank strings mean missing.

    Integral floats collapse first, so ``1.0`` and ``1`` are the same task.
    """
    if value is None:
        return None
    if isinstance(value, float):
        number = to_finite_number(value)
        if isinstance(number, int):
            value = number
    text = str(value).strip()
    return text or None


def to_finite_number(value: Any) -> int | float | None:
    """Coerce ``value`` to a finite number, or None.

    Integral values come back as ``int`` so ``"3"`` and ``3.0`` both give ``3``.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return int(number) if number.is_integer() else number


def normalize_link_type(value: Any) -> str:
    if value is None:
        return LinkType.FS.value
    text = str(value).strip().upper()
    if text in LinkType.__members__:
        return text
    return LinkType.FS.value


def normalize_lag(value: Any) -> int | float:
    number = to_finite_number(value)
    return 0 if number is None else number


def normalize_record(record: Mapping[str, Any]) -> DependencyEdge | None:
    """Normalize a single backend record. Returns None for malformed records."""
    if isinstance(record, DependencyEdge):
        return record
    if not isinstance(record, Mapping):
        return None

    pred = normalize_task_id(first_present(record, PREDECESSOR_FIELDS))
    succ = normalize_task_id(first_present(record, SUCCESSOR_FIELDS))
    if pred is None or succ is None:
        return None

    return DependencyEdge(
        predecessor_id=pred,
        successor_id=succ,
        edge_id=to_finite_number(first_present(record, EDGE_ID_FIELDS)),
        link_type=normalize_link_type(first_present(record, LINK_TYPE_FIELDS)),
        lag_days=normalize_lag(first_present(record, LAG_FIELDS)),
        raw=dict(record),
    )


def build(records: Iterable[Any] | None) -> list[DependencyEdge]:
    """Normalize a heterogeneous list of backend records into typed edges.

    Records missing either endpoint are dropped; they never abort the load.
    Self-loops are kept as-is and surface through ``integrity_issues``.
    """
    edges = []
    dropped = 0
    for record in records or []:
        edge = normalize_record(record)
        if edge is None:
            dropped += 1
            continue
        edges.append(edge)

    if dropped:
        logger.debug(f"Dropped {dropped} malformed dependency record(s)")
    return edges
