# Overview: Service-layer operations for seller schedules; overlap guard plus week and day views.

"""
Schedules

A seller may hold several entries on one day as long as no two active
entries overlap. Two ranges [s1, e1) and [s2, e2) conflict when

    s2 <= s1 < e2        (new start falls inside the existing entry)
    s2 < e1 <= e2        (new end falls inside the existing entry)
    s1 <= s2 and e1 >= e2 (new entry covers the existing one)

An entry without times (leave, sick day) occupies the whole day.
"""
from __future__ import annotations

from datetime import time

from flask import current_app

from ..extensions import db
from ..errors import AuthorizationError, NotFoundError, ScheduleConflict, ValidationError
from ..models import Schedule, User, SCHEDULE_TYPE_WORK
from ..permissions import can_access, can_see
from ..time_utils import iter_days, to_iso_date, today, week_bounds
from ..validation import check_schedule_invariants, enforce_rules_schedule, violation
from .query_filters import apply_date_range, apply_sort, paginate


SCHEDULE_MUTABLE_FIELDS = {"date", "type", "start_time", "end_time", "location", "notes", "is_active"}

SCHEDULE_SORT_FIELDS = {
    "date": Schedule.date,
    "start_time": Schedule.start_time,
    "created_at": Schedule.created_at,
}

_DAY_START = time.min
_DAY_END = time.max


def _range(start: time | None, end: time | None) -> tuple[time, time]:
    if start is None or end is None:
        return _DAY_START, _DAY_END
    return start, end


def ranges_overlap(new: tuple[time, time], existing: tuple[time, time]) -> bool:
    s1, e1 = new
    s2, e2 = existing
    return (
        (s2 <= s1 < e2)
        or (s2 < e1 <= e2)
        or (s1 <= s2 and e1 >= e2)
    )


def find_conflicting_schedule(
    seller_id: int,
    day,
    start_time: time | None,
    end_time: time | None,
    exclude_id: int | None = None,
) -> Schedule | None:
    """First active entry of the seller on `day` overlapping the given range, if any."""
    q = db.session.query(Schedule).filter(
        Schedule.seller_id == seller_id,
        Schedule.date == day,
        Schedule.is_active.is_(True),
    )
    if exclude_id is not None:
        q = q.filter(Schedule.id != exclude_id)

    candidate = _range(start_time, end_time)
    for existing in q.order_by(Schedule.id.asc()).all():
        if ranges_overlap(candidate, _range(existing.start_time, existing.end_time)):
            return existing
    return None


def _load_schedule(actor: User, schedule_id: int, action: str = "read") -> Schedule:
    schedule = db.session.get(Schedule, schedule_id)
    if schedule is None or not can_see(actor, schedule):
        raise NotFoundError("Schedule not found")
    if not can_access(actor, schedule, action):
        current_app.logger.warning(
            "Denied %s on schedule %s for user %s", action, schedule.id, actor.id,
        )
        raise AuthorizationError()
    return schedule


def _resolve_seller_id(actor: User, seller_id) -> int:
    if seller_id is None or seller_id == actor.id:
        return actor.id
    if not can_access(actor, "schedules", "act_for_seller"):
        raise AuthorizationError("You can only manage your own schedule")
    seller = db.session.get(User, seller_id) if isinstance(seller_id, int) else None
    if seller is None or not seller.is_active:
        raise ValidationError("Invalid data", errors=[violation("seller_id", "Seller does not exist or is inactive")])
    return seller.id


def _normalize_times(values: dict) -> None:
    # Only work entries carry a time range
    if values.get("type") != SCHEDULE_TYPE_WORK and (values.get("start_time") is None or values.get("end_time") is None):
        values["start_time"] = None
        values["end_time"] = None


def create_schedule(actor: User, *, patch: dict, seller_id: int | None = None) -> Schedule:
    """
    Create a schedule entry from a validated patch.

    Raises:
        ValidationError: time rules broken
        ScheduleConflict: overlaps another active entry of the seller that day
    """
    if not can_access(actor, "schedules", "create"):
        raise AuthorizationError()
    owner_id = _resolve_seller_id(actor, seller_id)

    values = {"type": SCHEDULE_TYPE_WORK, "is_active": True}
    values.update({k: v for k, v in patch.items() if k in SCHEDULE_MUTABLE_FIELDS})
    enforce_rules_schedule(values)
    _normalize_times(values)

    if values["is_active"] and find_conflicting_schedule(
        owner_id, values["date"], values.get("start_time"), values.get("end_time"),
    ):
        raise ScheduleConflict()

    schedule = Schedule(seller_id=owner_id, created_by_user_id=actor.id)
    for k, v in values.items():
        setattr(schedule, k, v)
    check_schedule_invariants(schedule)

    db.session.add(schedule)
    db.session.flush()
    return schedule


def update_schedule(actor: User, schedule_id: int, *, patch: dict) -> Schedule:
    """
    Apply a validated patch; the overlap check sees the merged state and
    ignores the entry being edited.
    """
    schedule = _load_schedule(actor, schedule_id, "update")

    values = {k: getattr(schedule, k) for k in SCHEDULE_MUTABLE_FIELDS}
    values.update({k: v for k, v in patch.items() if k in SCHEDULE_MUTABLE_FIELDS})
    enforce_rules_schedule(values)
    _normalize_times(values)

    if values["is_active"] and find_conflicting_schedule(
        schedule.seller_id,
        values["date"],
        values.get("start_time"),
        values.get("end_time"),
        exclude_id=schedule.id,
    ):
        raise ScheduleConflict()

    for k, v in values.items():
        setattr(schedule, k, v)
    check_schedule_invariants(schedule)
    db.session.flush()
    return schedule


def delete_schedule(actor: User, schedule_id: int) -> None:
    schedule = _load_schedule(actor, schedule_id, "delete")
    db.session.delete(schedule)
    db.session.flush()


def get_schedule(actor: User, schedule_id: int) -> Schedule:
    return _load_schedule(actor, schedule_id, "read")


def _visible_query(actor: User):
    q = db.session.query(Schedule)
    if not can_access(actor, "schedules", "act_for_seller"):
        q = q.filter(Schedule.seller_id == actor.id)
    return q


def list_schedules(
    actor: User,
    *,
    seller_id: int | None = None,
    start_date=None,
    end_date=None,
    is_active: bool | None = None,
    type: str | None = None,
    sort_by: str = "date",
    sort_order: str = "asc",
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    if not can_access(actor, "schedules", "list"):
        raise AuthorizationError()

    q = _visible_query(actor)
    if seller_id is not None:
        q = q.filter(Schedule.seller_id == seller_id)
    if is_active is not None:
        q = q.filter(Schedule.is_active.is_(is_active))
    if type is not None:
        q = q.filter(Schedule.type == type)
    q = apply_date_range(q, Schedule.date, start_date, end_date)
    q = apply_sort(q, SCHEDULE_SORT_FIELDS, sort_by, sort_order, tiebreaker=Schedule.id)
    return paginate(q, page, per_page, lambda s: s.to_dict())


def week_view(actor: User, day, seller_id: int | None = None) -> dict:
    """
    Active entries of the Monday-Sunday week containing `day`, bucketed by
    ISO date. Every day of the week is present, possibly empty.
    """
    monday, sunday = week_bounds(day)
    q = _visible_query(actor).filter(Schedule.is_active.is_(True))
    if seller_id is not None:
        q = q.filter(Schedule.seller_id == seller_id)
    q = apply_date_range(q, Schedule.date, monday, sunday)
    entries = q.order_by(Schedule.date.asc(), Schedule.start_time.asc(), Schedule.id.asc()).all()

    days = {to_iso_date(d): [] for d in iter_days(monday, sunday)}
    for entry in entries:
        days[to_iso_date(entry.date)].append(entry.to_dict())

    return {
        "week_start": to_iso_date(monday),
        "week_end": to_iso_date(sunday),
        "days": days,
        "count": len(entries),
    }


def today_view(actor: User) -> dict:
    """Active entries for today, every seller for administrators."""
    day = today()
    entries = (
        _visible_query(actor)
        .filter(Schedule.date == day, Schedule.is_active.is_(True))
        .order_by(Schedule.start_time.asc(), Schedule.id.asc())
        .all()
    )
    return {
        "date": to_iso_date(day),
        "items": [e.to_dict() for e in entries],
        "count": len(entries),
    }
