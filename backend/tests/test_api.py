import pytest
from sqlmodel import select

from app.services.planner.errors import OracleTransportError
from app.storage.models import FamilyProfile, Household, MealPlan, Recipe
from factories import ScriptedOracle, meal

WEEK = "2026-10-12"


def _seed(session):
    household = Household(name="Okafor")
    session.add(household)
    session.commit()
    session.refresh(household)
    recipes = [
        Recipe(household_id=household.id, name="Spaghetti Bolognese", meal_types=["dinner"], cuisine="Italian", calories=800),
        Recipe(household_id=household.id, name="Chicken Tikka", meal_types=["dinner"], cuisine="Indian", calories=750),
        Recipe(household_id=household.id, name="Beef Tacos", meal_types=["dinner"], cuisine="Mexican", calories=700),
        Recipe(household_id=household.id, name="Pad Thai", meal_types=["dinner"], cuisine="Thai", calories=650),
    ]
    session.add_all(recipes)
    session.commit()
    for r in recipes:
        session.refresh(r)
    return household, [str(r.id) for r in recipes]


def _use_oracle(monkeypatch, oracle):
    monkeypatch.setattr("app.api.meal_plans.default_oracle", lambda: oracle)
    return oracle


def _week(ids):
    return [meal(day, ids[i], servings=2) for i, day in enumerate(("Monday", "Tuesday", "Wednesday"))]


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_generate_and_fetch_plan(client, session, monkeypatch):
    household, ids = _seed(session)
    _use_oracle(monkeypatch, ScriptedOracle(_week(ids)))

    response = client.post("/api/meal-plans/generate", json={"household_id": household.id, "week_start_date": WEEK})
    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "Draft"
    assert payload["accepted"] is True
    assert payload["attempts"] == 1
    assert [m["recipe_name"] for m in payload["plan"]] == ["Spaghetti Bolognese", "Chicken Tikka", "Beef Tacos"]
    assert payload["violations"] == []

    fetched = client.get(f"/api/meal-plans/{payload['meal_plan_id']}")
    assert fetched.status_code == 200
    assert fetched.json()["plan"] == payload["plan"]


def test_plan_with_caveats_is_still_returned(client, session, monkeypatch):
    household, ids = _seed(session)
    repeated = [meal("Monday", ids[0]), meal("Tuesday", ids[1]), meal("Wednesday", ids[0])]
    _use_oracle(monkeypatch, ScriptedOracle(repeated, repeated, repeated))

    response = client.post("/api/meal-plans/generate", json={"household_id": household.id, "week_start_date": WEEK})
    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "Draft"
    assert payload["accepted"] is False
    assert payload["attempts"] == 3
    assert "COOLDOWN_REPEAT" in {v["kind"] for v in payload["violations"]}
    assert payload["caveats"]


def test_unknown_recipe_id_is_kept_on_the_stored_plan(client, session, monkeypatch):
    household, ids = _seed(session)
    invented = [meal("Monday", "chef-special"), meal("Tuesday", ids[1]), meal("Wednesday", ids[2])]
    _use_oracle(monkeypatch, ScriptedOracle(invented, invented, invented))

    payload = client.post(
        "/api/meal-plans/generate", json={"household_id": household.id, "week_start_date": WEEK}
    ).json()
    assert payload["accepted"] is False
    monday = payload["plan"][0]
    assert monday["recipe_id"] is None
    assert monday["unresolved_recipe_id"] == "chef-special"
    assert payload["plan"][1]["unresolved_recipe_id"] is None


def test_generate_reports_budget_for_tracked_profile(client, session, monkeypatch):
    household, ids = _seed(session)
    session.add(FamilyProfile(household_id=household.id, name="Ada", macro_tracking_enabled=True, daily_calories=2000))
    session.commit()
    _use_oracle(monkeypatch, ScriptedOracle(_week(ids)))

    settings = {"priority_order": ["ratings", "variety", "shopping", "prep", "time", "macros"]}
    response = client.post(
        "/api/meal-plans/generate",
        json={"household_id": household.id, "week_start_date": WEEK, "settings": settings},
    )
    payload = response.json()
    assert payload["accepted"] is True
    assert payload["budget"]["expected_daily_calories"] == 2000
    assert payload["budget"]["meals"]["dinner"]["calories"] == 800
    assert all(not v["fatal"] for v in payload["violations"])


def test_unknown_household_is_rejected(client):
    response = client.post("/api/meal-plans/generate", json={"household_id": 999, "week_start_date": WEEK})
    assert response.status_code == 400


def test_invalid_setting_marks_plan_failed(client, session, monkeypatch):
    household, ids = _seed(session)
    _use_oracle(monkeypatch, ScriptedOracle(_week(ids)))
    response = client.post(
        "/api/meal-plans/generate",
        json={"household_id": household.id, "week_start_date": WEEK, "settings": {"macro_mode": "keto"}},
    )
    assert response.status_code == 400
    plan = session.exec(select(MealPlan)).one()
    session.refresh(plan)
    assert plan.status == "Failed"


def test_oracle_outage_fails_the_plan(client, session, monkeypatch):
    household, _ = _seed(session)
    _use_oracle(monkeypatch, ScriptedOracle(*(OracleTransportError("connection refused") for _ in range(3))))

    response = client.post("/api/meal-plans/generate", json={"household_id": household.id, "week_start_date": WEEK})
    assert response.status_code == 502
    detail = response.json()["detail"]
    assert detail["attempts"] == 3

    fetched = client.get(f"/api/meal-plans/{detail['meal_plan_id']}").json()
    assert fetched["status"] == "Failed"
    assert "connection refused" in fetched["error"]


def test_unexpected_error_fails_the_plan(client, session, monkeypatch):
    household, ids = _seed(session)
    _use_oracle(monkeypatch, ScriptedOracle(RuntimeError("disk full"), _week(ids)))

    with pytest.raises(RuntimeError):
        client.post("/api/meal-plans/generate", json={"household_id": household.id, "week_start_date": WEEK})

    plan = session.exec(select(MealPlan)).one()
    session.refresh(plan)
    assert plan.status == "Failed"
    assert "disk full" in plan.error

    response = client.post(f"/api/meal-plans/{plan.id}/regenerate", json={})
    assert response.status_code == 200
    assert response.json()["status"] == "Draft"


def test_validate_endpoint(client, session):
    household, ids = _seed(session)
    meals = [
        {"day_of_week": "Monday", "meal_type": "dinner", "recipe_id": int(ids[0]), "servings": 2},
        {"day_of_week": "Tuesday", "meal_type": "dinner", "recipe_id": 999, "servings": 2},
    ]
    response = client.post(
        "/api/meal-plans/validate",
        json={"household_id": household.id, "week_start_date": WEEK, "meals": meals},
    )
    assert response.status_code == 200
    payload = response.json()
    assert payload["passed"] is False
    [violation] = payload["violations"]
    assert violation["kind"] == "UNKNOWN_RECIPE"
    assert violation["error_class"] == "SchemaViolation"
    assert violation["day"] == "Tuesday"


def test_regenerate_keeps_locked_meals(client, session, monkeypatch):
    household, ids = _seed(session)
    locked = {"day_of_week": "Tuesday", "meal_type": "dinner", "recipe_id": int(ids[3]), "servings": 2}
    reshuffled = [meal("Monday", ids[2]), meal("Tuesday", ids[0]), meal("Wednesday", ids[1])]
    oracle = _use_oracle(monkeypatch, ScriptedOracle(_week(ids), reshuffled))

    first = client.post(
        "/api/meal-plans/generate",
        json={"household_id": household.id, "week_start_date": WEEK, "locked_meals": [locked]},
    ).json()
    tuesday = [m for m in first["plan"] if m["day_of_week"] == "Tuesday"]
    assert tuesday[0]["recipe_name"] == "Pad Thai"
    assert tuesday[0]["is_locked"] is True

    second = client.post(f"/api/meal-plans/{first['meal_plan_id']}/regenerate", json={})
    assert second.status_code == 200
    plan = second.json()["plan"]
    assert [m["recipe_name"] for m in plan] == ["Beef Tacos", "Pad Thai", "Chicken Tikka"]
    assert plan[1]["recipe_id"] == int(ids[3])
    assert plan[1]["is_locked"] is True
    assert len(oracle.requests) == 2


def test_regenerate_missing_plan(client):
    response = client.post("/api/meal-plans/42/regenerate", json={})
    assert response.status_code == 404


def test_background_generation_is_enqueued(client, session, monkeypatch):
    household, _ = _seed(session)
    queued = []
    monkeypatch.setattr(
        "app.api.meal_plans.generate_meal_plan_task",
        type("DummyTask", (), {"delay": staticmethod(lambda meal_plan_id: queued.append(meal_plan_id))}),
    )
    response = client.post(
        "/api/meal-plans/generate",
        json={"household_id": household.id, "week_start_date": WEEK, "background": True},
    )
    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "Generating"
    assert queued == [payload["meal_plan_id"]]
