"""
Weekly shift allocation.

The allocator is a pure, request-scoped planner: it receives the ordered
doctor ids and the week's slots and returns which doctor takes which slot.
Persisting the plan is left to the caller.
"""
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, List, NamedTuple, Set, Tuple
from uuid import UUID

from clinic_roster.core.logger import logger
from clinic_roster.core.utils import iter_days
from clinic_roster.db.models import Shift


class Slot(NamedTuple):
    date: date
    shift: Shift


class PlannedAssignment(NamedTuple):
    doctor_id: UUID
    slot: Slot


def week_bounds(start: date) -> Tuple[date, date]:
    """Return the first and last day of the roster week anchored at ``start``.

    A Sunday anchor moves to the following Monday.
    """
    if start.weekday() == 6:
        start = start + timedelta(days=1)
    return start, start + timedelta(days=6)


def shifts_for_day(day: date) -> List[Shift]:
    weekday = day.weekday()
    if weekday == 6:
        return []
    if weekday == 5:
        return [Shift.MORNING]
    return [Shift.MORNING, Shift.AFTERNOON]


def enumerate_slots(start: date, end: date) -> List[Slot]:
    return [Slot(day, shift) for day in iter_days(start, end) for shift in shifts_for_day(day)]


def understaffed_slots(slots: List[Slot], counts: Dict[Slot, int], doctors_per_shift: int) -> List[Slot]:
    return [slot for slot in slots if counts.get(slot, 0) < doctors_per_shift]


@dataclass
class AllocationResult:
    shifts_per_doctor: int
    total_required: int
    assignments: List[PlannedAssignment] = field(default_factory=list)
    per_doctor: Dict[UUID, int] = field(default_factory=dict)

    @property
    def total_assigned(self) -> int:
        return len(self.assignments)

    @property
    def unassigned(self) -> int:
        return self.total_required - self.total_assigned


class ShiftAllocator:
    """Greedy, deterministic allocator for one roster week.

    Every doctor gets the same quota, ``len(slots) * doctors_per_shift //
    len(doctors)``. The remainder is not handed out and shows up as
    understaffed slots for manual assignment.

    For each doctor, in the given order, whole days (both shifts) are taken
    first, least staffed day first. Any quota left is filled with single
    slots, least staffed slot first. Ties keep the slot enumeration order,
    and a doctor never gets a second assignment on a day already taken.
    """

    def __init__(self, slots: List[Slot], doctors_per_shift: int):
        if doctors_per_shift < 1:
            raise ValueError("doctors_per_shift must be positive")
        self.slots = list(slots)
        self.doctors_per_shift = doctors_per_shift
        self.counts: Dict[Slot, int] = {slot: 0 for slot in self.slots}
        self.slots_by_day: Dict[date, List[Slot]] = {}
        for slot in self.slots:
            self.slots_by_day.setdefault(slot.date, []).append(slot)

    def _has_capacity(self, slot: Slot) -> bool:
        return self.counts[slot] < self.doctors_per_shift

    def _day_load(self, day: date) -> int:
        return sum(self.counts[slot] for slot in self.slots_by_day[day])

    def _take(self, doctor_id: UUID, slot: Slot, result: AllocationResult):
        self.counts[slot] += 1
        result.assignments.append(PlannedAssignment(doctor_id, slot))

    def allocate(self, doctor_ids: List[UUID]) -> AllocationResult:
        if not doctor_ids:
            raise ValueError("at least one doctor is required")

        total_required = len(self.slots) * self.doctors_per_shift
        shifts_per_doctor = total_required // len(doctor_ids)
        result = AllocationResult(shifts_per_doctor=shifts_per_doctor, total_required=total_required)

        for doctor_id in doctor_ids:
            assigned_days: Set[date] = set()
            taken = 0

            full_days = [
                day for day, day_slots in self.slots_by_day.items()
                if len(day_slots) == 2 and all(self._has_capacity(slot) for slot in day_slots)
            ]
            # sorted() is stable, so equal loads keep calendar order
            full_days = sorted(full_days, key=self._day_load)

            for day in full_days:
                if taken + 2 > shifts_per_doctor:
                    break
                for slot in self.slots_by_day[day]:
                    self._take(doctor_id, slot, result)
                taken += 2
                assigned_days.add(day)

            if taken < shifts_per_doctor:
                singles = [
                    slot for slot in self.slots
                    if slot.date not in assigned_days and self._has_capacity(slot)
                ]
                singles = sorted(singles, key=lambda slot: self.counts[slot])
                for slot in singles:
                    if taken >= shifts_per_doctor:
                        break
                    if slot.date in assigned_days:
                        continue
                    self._take(doctor_id, slot, result)
                    taken += 1
                    assigned_days.add(slot.date)

            result.per_doctor[doctor_id] = taken
            logger.debug(f"Allocated {taken}/{shifts_per_doctor} shifts to doctor {doctor_id}")

        return result

    def remaining(self) -> List[Slot]:
        return understaffed_slots(self.slots, self.counts, self.doctors_per_shift)
