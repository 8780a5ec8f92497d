"""
Schedule overlap guard and calendar views.
"""

from datetime import date, time

import pytest

from painperdu.errors import AuthorizationError, NotFoundError, ScheduleConflict, ValidationError
from painperdu.services import schedule_service
from painperdu.services.schedule_service import ranges_overlap


DAY = date(2024, 1, 10)  # a Wednesday


def _work(start, end, day=DAY, **extra):
    patch = {"date": day, "type": "work", "start_time": time(*start), "end_time": time(*end)}
    patch.update(extra)
    return patch


@pytest.fixture
def morning(db_session, seller_user):
    schedule = schedule_service.create_schedule(seller_user, patch=_work((8, 0), (12, 0)))
    db_session.commit()
    return schedule


class TestRangesOverlap:
    @pytest.mark.parametrize("new", [
        ((9, 0), (10, 0)),   # inside
        ((7, 0), (9, 0)),    # end inside
        ((11, 0), (13, 0)),  # start inside
        ((7, 0), (13, 0)),   # covers
        ((8, 0), (12, 0)),   # identical
    ])
    def test_overlapping(self, new):
        existing = (time(8), time(12))
        assert ranges_overlap((time(*new[0]), time(*new[1])), existing)

    @pytest.mark.parametrize("new", [((12, 0), (16, 0)), ((6, 0), (8, 0))])
    def test_touching_ranges_do_not_overlap(self, new):
        assert not ranges_overlap((time(*new[0]), time(*new[1])), (time(8), time(12)))


class TestOverlapGuard:
    def test_second_shift_same_day_allowed(self, db_session, seller_user, morning):
        afternoon = schedule_service.create_schedule(seller_user, patch=_work((13, 0), (17, 0)))
        assert afternoon.id != morning.id

    def test_overlapping_shift_rejected(self, db_session, seller_user, morning):
        with pytest.raises(ScheduleConflict) as exc:
            schedule_service.create_schedule(seller_user, patch=_work((11, 0), (14, 0)))
        # The conflicting record is not disclosed
        assert str(morning.id) not in exc.value.message

    def test_whole_day_entry_conflicts_with_any_shift(self, db_session, seller_user, morning):
        with pytest.raises(ScheduleConflict):
            schedule_service.create_schedule(seller_user, patch={"date": DAY, "type": "sick"})

    def test_other_seller_not_affected(self, db_session, other_seller, morning):
        schedule_service.create_schedule(other_seller, patch=_work((8, 0), (12, 0)))

    def test_inactive_entries_ignored(self, db_session, seller_user, morning):
        schedule_service.update_schedule(seller_user, morning.id, patch={"is_active": False})
        db_session.commit()
        schedule_service.create_schedule(seller_user, patch=_work((9, 0), (10, 0)))

    def test_editing_entry_does_not_conflict_with_itself(self, db_session, seller_user, morning):
        updated = schedule_service.update_schedule(
            seller_user, morning.id, patch={"end_time": time(12, 30)},
        )
        assert updated.end_time == time(12, 30)

    def test_edit_into_other_entry_rejected(self, db_session, seller_user, morning):
        afternoon = schedule_service.create_schedule(seller_user, patch=_work((13, 0), (17, 0)))
        db_session.commit()
        with pytest.raises(ScheduleConflict):
            schedule_service.update_schedule(seller_user, afternoon.id, patch={"start_time": time(11, 0)})

    def test_work_requires_times(self, db_session, seller_user):
        with pytest.raises(ValidationError):
            schedule_service.create_schedule(seller_user, patch={"date": DAY, "type": "work"})


class TestOwnership:
    def test_seller_cannot_delete(self, db_session, seller_user, morning):
        with pytest.raises(AuthorizationError):
            schedule_service.delete_schedule(seller_user, morning.id)

    def test_admin_deletes(self, db_session, admin_user, morning):
        schedule_service.delete_schedule(admin_user, morning.id)
        db_session.commit()
        with pytest.raises(NotFoundError):
            schedule_service.get_schedule(admin_user, morning.id)

    def test_other_seller_gets_not_found(self, db_session, other_seller, morning):
        with pytest.raises(NotFoundError):
            schedule_service.get_schedule(other_seller, morning.id)

    def test_admin_plans_for_seller(self, db_session, admin_user, seller_user):
        schedule = schedule_service.create_schedule(
            admin_user, patch=_work((6, 0), (14, 0)), seller_id=seller_user.id,
        )
        assert schedule.seller_id == seller_user.id
        assert schedule.created_by_user_id == admin_user.id


class TestViews:
    def test_week_view_buckets_monday_to_sunday(self, db_session, seller_user, morning):
        schedule_service.create_schedule(seller_user, patch=_work((8, 0), (12, 0), day=date(2024, 1, 14)))
        schedule_service.create_schedule(seller_user, patch=_work((8, 0), (12, 0), day=date(2024, 1, 15)))
        db_session.commit()

        week = schedule_service.week_view(seller_user, DAY)
        assert week["week_start"] == "2024-01-08"
        assert week["week_end"] == "2024-01-14"
        assert list(week["days"]) == [
            "2024-01-08", "2024-01-09", "2024-01-10", "2024-01-11",
            "2024-01-12", "2024-01-13", "2024-01-14",
        ]
        assert len(week["days"]["2024-01-10"]) == 1
        assert len(week["days"]["2024-01-14"]) == 1
        assert week["count"] == 2
