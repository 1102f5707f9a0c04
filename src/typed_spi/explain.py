"""Decoded query plans."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Iterator

from typed_spi.errors import DecodeError

_REQUIRED_FIELDS = (
    "Node Type",
    "Parallel Aware",
    "Plan Rows",
    "Plan Width",
    "Startup Cost",
    "Total Cost",
)


@dataclass
class PlanNode:
    """One node of the engine's chosen plan.

    Equality is field-by-field over the whole subtree.
    """

    node_type: str
    parallel_aware: bool
    plan_rows: int
    plan_width: int
    startup_cost: float
    total_cost: float
    plans: list[PlanNode] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> PlanNode:
        """Build a node (and its children) from one ``"Plan"`` object."""
        if not isinstance(data, dict):
            raise DecodeError(f"plan node must be an object, got {type(data).__name__}")
        missing = [name for name in _REQUIRED_FIELDS if name not in data]
        if missing:
            raise DecodeError(f"plan node is missing {', '.join(missing)}")
        try:
            node = cls(
                node_type=str(data["Node Type"]),
                parallel_aware=_as_bool(data["Parallel Aware"]),
                plan_rows=int(data["Plan Rows"]),
                plan_width=int(data["Plan Width"]),
                startup_cost=float(data["Startup Cost"]),
                total_cost=float(data["Total Cost"]),
            )
        except (TypeError, ValueError) as e:
            raise DecodeError(f"malformed plan node: {e}") from e
        node.plans = [cls.from_json(child) for child in data.get("Plans", [])]
        node.extra = {
            k: v for k, v in data.items()
            if k not in _REQUIRED_FIELDS and k != "Plans"
        }
        return node

    def walk(self) -> Iterator[PlanNode]:
        """Yield this node and every descendant, depth first."""
        yield self
        for child in self.plans:
            yield from child.walk()


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    raise ValueError(f"expected a boolean, got {value!r}")


@dataclass
class Explain:
    """A plan result: the top-level plans plus the JSON they were decoded from."""

    plans: list[PlanNode]
    raw: Any = field(default=None, compare=False, repr=False)

    @property
    def root(self) -> PlanNode:
        if not self.plans:
            raise DecodeError("plan output is empty")
        return self.plans[0]

    @classmethod
    def parse(cls, text: str) -> Explain:
        """Decode plan text of the form ``[{"Plan": {...}}, ...]``."""
        try:
            document = json.loads(text)
        except ValueError as e:
            raise DecodeError(f"plan output is not valid JSON: {e}") from e
        return cls.from_json(document)

    @classmethod
    def from_json(cls, document: Any) -> Explain:
        if isinstance(document, dict):
            document = [document]
        if not isinstance(document, list):
            raise DecodeError("plan output must be a list of plan objects")
        plans = []
        for entry in document:
            if not isinstance(entry, dict) or "Plan" not in entry:
                raise DecodeError("plan entry has no \"Plan\" object")
            plans.append(PlanNode.from_json(entry["Plan"]))
        return cls(plans=plans, raw=document)
