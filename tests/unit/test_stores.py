from datetime import date, timedelta

import pytest
from sqlalchemy.exc import OperationalError

from sweatfix.db.models import DailyPlan
from sweatfix.services.stores import PlanStore, ProgressStore, StoreError


def test_upsert_twice_keeps_one_row_with_latest_text(create_user, db_session) -> None:
    user = create_user()
    store = PlanStore(db_session)
    day = date(2026, 10, 19)

    store.upsert_plan(user.id, day, "Pushups", "Chicken")
    store.upsert_plan(user.id, day, "Pullups", "Salmon")

    rows = db_session.query(DailyPlan).filter(DailyPlan.user_id == user.id, DailyPlan.day == day).all()
    assert len(rows) == 1
    assert rows[0].workout_plan == "Pullups"
    assert rows[0].diet_plan == "Salmon"


def test_upsert_does_not_reset_completion(create_user, db_session) -> None:
    user = create_user()
    store = PlanStore(db_session)
    day = date(2026, 10, 19)

    plan = store.upsert_plan(user.id, day, "Pushups", "Chicken")
    store.set_completion(user.id, plan.id, True)
    updated = store.upsert_plan(user.id, day, "Pushups x2", "Chicken")

    assert updated.id == plan.id
    assert updated.completed is True


def test_upsert_with_none_preserves_other_field(create_user, db_session) -> None:
    user = create_user()
    store = PlanStore(db_session)
    day = date(2026, 10, 19)

    store.upsert_plan(user.id, day, "Pushups", "Chicken")
    updated = store.upsert_plan(user.id, day, "Deadlifts", None)

    assert updated.workout_plan == "Deadlifts"
    assert updated.diet_plan == "Chicken"


def test_insert_with_missing_field_stores_empty_string(create_user, db_session) -> None:
    user = create_user()
    plan = PlanStore(db_session).upsert_plan(user.id, date(2026, 10, 19), None, "Oats")
    assert plan.workout_plan == ""
    assert plan.completed is False


def test_set_completion_ignores_other_owner(create_user, db_session) -> None:
    owner = create_user()
    intruder = create_user()
    store = PlanStore(db_session)
    plan = store.upsert_plan(owner.id, date(2026, 10, 19), "Pushups", "Chicken")

    assert store.set_completion(intruder.id, plan.id, True) is None
    db_session.refresh(plan)
    assert plan.completed is False


def test_set_completion_unknown_plan_is_silent(create_user, db_session) -> None:
    user = create_user()
    assert PlanStore(db_session).set_completion(user.id, 987654321, True) is None


def test_list_recent_plans_newest_first_and_bounded(create_user, db_session) -> None:
    user = create_user()
    store = PlanStore(db_session)
    start = date(2026, 9, 1)
    for offset in range(20):
        store.upsert_plan(user.id, start + timedelta(days=offset), f"Workout {offset}", "")

    rows = store.list_recent(user.id, limit=14)
    assert len(rows) == 14
    assert rows[0].day == start + timedelta(days=19)
    assert [row.day for row in rows] == sorted((row.day for row in rows), reverse=True)


def test_progress_append_coerces_missing_numbers(create_user, db_session) -> None:
    user = create_user()
    row = ProgressStore(db_session).append(user.id, date(2026, 10, 19), workout_name=None, calories=None, protein=120)
    assert row.calories == 0
    assert row.protein == 120
    assert row.carbs == 0
    assert row.fats == 0
    assert row.water == 0


def test_progress_append_rejects_unknown_field(create_user, db_session) -> None:
    user = create_user()
    with pytest.raises(ValueError):
        ProgressStore(db_session).append(user.id, date(2026, 10, 19), steps=9000)


def test_progress_list_recent_newest_first_then_insertion_order(create_user, db_session) -> None:
    user = create_user()
    store = ProgressStore(db_session)
    for offset in range(9):
        store.append(user.id, date(2026, 10, 1) + timedelta(days=offset), workout_name=f"Day {offset}")
    store.append(user.id, date(2026, 10, 9), workout_name="Evening")

    rows = store.list_recent(user.id, limit=7)
    assert len(rows) == 7
    assert rows[0].workout_name == "Evening"
    assert rows[1].workout_name == "Day 8"


def test_persistence_fault_raises_store_error(create_user, db_session, monkeypatch) -> None:
    user = create_user()
    store = PlanStore(db_session)

    def broken_commit() -> None:
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(db_session, "commit", broken_commit)
    with pytest.raises(StoreError) as exc_info:
        store.upsert_plan(user.id, date(2026, 10, 19), "Pushups", "Chicken")
    assert exc_info.value.retryable is True
    assert exc_info.value.operation == "upsert_plan"
