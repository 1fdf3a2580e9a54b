from sweatfix.db.models import DailyPlan


def test_plans_unauthorized(client) -> None:
    assert client.get("/api/plans").status_code == 401
    assert client.post("/api/plans", json={"workout_plan": "x"}).status_code == 401
    assert client.put("/api/plans/1/complete", json={"completed": True}).status_code == 401


def test_plan_upsert_same_day_keeps_single_row(client, auth_user, db_session) -> None:
    first = client.post(
        "/api/plans", json={"date": "2026-10-19", "workout_plan": "Pushups", "diet_plan": "Chicken"}
    )
    assert first.status_code == 200
    second = client.post(
        "/api/plans", json={"date": "2026-10-19", "workout_plan": "Pullups", "diet_plan": "Salmon"}
    )
    assert second.status_code == 200
    assert second.json()["id"] == first.json()["id"]

    rows = db_session.query(DailyPlan).filter(DailyPlan.user_id == auth_user.id).all()
    assert len(rows) == 1
    assert rows[0].workout_plan == "Pullups"
    assert rows[0].diet_plan == "Salmon"


def test_plan_toggle_and_text_upsert_keeps_completion(client, auth_user) -> None:
    created = client.post(
        "/api/plans", json={"date": "2026-10-19", "workout_plan": "Pushups", "diet_plan": "Chicken"}
    ).json()
    toggled = client.put(f"/api/plans/{created['id']}/complete", json={"completed": True})
    assert toggled.status_code == 200
    assert toggled.json() == {"success": True}

    client.post("/api/plans", json={"date": "2026-10-19", "workout_plan": "Pushups x3"})
    plans = client.get("/api/plans").json()
    assert plans[0]["completed"] is True
    assert plans[0]["workout_plan"] == "Pushups x3"
    assert plans[0]["diet_plan"] == "Chicken"


def test_plan_toggle_other_owner_is_indistinguishable_no_op(client, create_user, login_as, db_session) -> None:
    owner = create_user()
    intruder = create_user()
    login_as(owner)
    plan = client.post(
        "/api/plans", json={"date": "2026-10-19", "workout_plan": "Pushups", "diet_plan": "Chicken"}
    ).json()

    login_as(intruder)
    foreign = client.put(f"/api/plans/{plan['id']}/complete", json={"completed": True})
    missing = client.put("/api/plans/987654321/complete", json={"completed": True})
    assert foreign.status_code == missing.status_code == 200
    assert foreign.json() == missing.json() == {"success": True}

    row = db_session.query(DailyPlan).filter(DailyPlan.id == plan["id"]).one()
    assert row.completed is False


def test_plan_list_newest_first_limited_to_fourteen(client, auth_user) -> None:
    for day in range(1, 17):
        response = client.post("/api/plans", json={"date": f"2026-09-{day:02d}", "workout_plan": f"W{day}"})
        assert response.status_code == 200

    plans = client.get("/api/plans").json()
    assert len(plans) == 14
    assert plans[0]["date"] == "2026-09-16"
    assert plans[-1]["date"] == "2026-09-03"


def test_plan_completion_requires_boolean(client, auth_user) -> None:
    response = client.put("/api/plans/1/complete", json={"completed": "yes"})
    assert response.status_code == 400
