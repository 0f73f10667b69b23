from __future__ import annotations

from ...common.datetime_utils import format_hhmm
from ...core.constants import DUPLICATE_WINDOW_MINUTES
from ...core.enums import Direction
from .base import PASS, CheckOutcome, EntryCheck, EntryContext


class LeaveConflictCheck(EntryCheck):
    """A worker on approved leave cannot also be marked at the gate."""

    name = "leave_conflict"
    critical = True

    def run(self, ctx: EntryContext) -> CheckOutcome:
        candidate = ctx.candidate
        leave = ctx.leaves.find_approved_for_worker_on(worker_id=candidate.worker_id, day=candidate.work_date)
        if leave is None or not leave.covers(candidate.work_date):
            return PASS
        return CheckOutcome(
            errors=(f"Employee is on approved {leave.leave_type.value} leave till {leave.to_date.isoformat()}",),
            leave_conflict=leave,
        )


class SequenceCheck(EntryCheck):
    """Directions alternate starting with IN, and every entry is later than the last one."""

    name = "sequence"
    critical = True

    def run(self, ctx: EntryContext) -> CheckOutcome:
        candidate = ctx.candidate
        direction = candidate.direction
        if not ctx.entries:
            if direction == Direction.OUT:
                return CheckOutcome(errors=("Cannot mark OUT without marking IN first",))
            return PASS

        last = ctx.entries[-1]
        if last.direction == direction:
            return CheckOutcome(
                errors=(
                    f"Last entry was already {last.direction.value}. Next entry must be {direction.opposite.value}",
                )
            )
        # a backdated entry would land inside the sorted sequence and break alternation
        if candidate.timestamp <= last.timestamp:
            return CheckOutcome(
                errors=(f"Entry time must be after the last entry ({format_hhmm(last.timestamp)})",)
            )
        return PASS


class DuplicateCheck(EntryCheck):
    name = "duplicate"
    critical = True

    def run(self, ctx: EntryContext) -> CheckOutcome:
        candidate = ctx.candidate
        window = DUPLICATE_WINDOW_MINUTES * 60
        for entry in ctx.entries:
            if entry.direction != candidate.direction:
                continue
            elapsed = abs((candidate.timestamp - entry.timestamp).total_seconds())
            if elapsed < window:
                return CheckOutcome(
                    errors=(
                        f"Duplicate {candidate.direction.value} entry detected. "
                        f"Same type was marked {int(elapsed // 60)} minutes ago",
                    )
                )
        return PASS
