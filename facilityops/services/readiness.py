"""Readiness guard deciding whether a work order's parts allow assignment."""
from dataclasses import dataclass, field
from typing import Iterable, List

from facilityops.models import Part


@dataclass
class ReadinessResult:
    ready: bool
    blocking_parts: List[Part] = field(default_factory=list)

    def blocking_parts_summary(self) -> List[dict]:
        return [
            {
                'id': part.id,
                'name': part.name,
                'approval_status': part.approval_status.value,
                'procurement_status': part.procurement_status.value,
            }
            for part in self.blocking_parts
        ]


def evaluate_readiness(parts: Iterable[Part]) -> ReadinessResult:
    """Ready iff every required part is approved and arrived (vacuously true with no parts)."""
    blocking = [part for part in parts if part.is_required and not part.is_ready]
    return ReadinessResult(ready=not blocking, blocking_parts=blocking)
