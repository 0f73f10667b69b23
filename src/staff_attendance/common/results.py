from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, List


@dataclass(frozen=True)
class PerItemFailure:
    """One item of a batch that failed; the batch itself carries on."""

    item_id: int
    reason: str

    def to_dict(self) -> dict:
        return {"id": self.item_id, "reason": self.reason}


@dataclass
class BatchResult:
    total: int = 0
    succeeded: List[Any] = field(default_factory=list)
    errors: List[PerItemFailure] = field(default_factory=list)

    def to_dict(self, render: Callable[[Any], Any] = lambda item: item) -> dict:
        return {
            "total": self.total,
            "success": len(self.succeeded),
            "failed": len(self.errors),
            "records": [render(item) for item in self.succeeded],
            "errors": [e.to_dict() for e in self.errors],
        }
