from contextlib import contextmanager

from app.services.llm import dspy_client
from app.services.llm.dspy_client import run_with_logging


def _capture_logs(monkeypatch):
    logged = {}

    @contextmanager
    def fake_session():
        yield None

    monkeypatch.setattr(
        "app.services.llm.dspy_client.log_llm_call",
        lambda session, **kwargs: logged.update(kwargs),
    )
    monkeypatch.setattr("app.services.llm.dspy_client.get_session", fake_session)
    return logged


def test_run_with_logging(monkeypatch):
    logged = _capture_logs(monkeypatch)

    def dummy_fn(schedule):
        return {"plan_json": schedule.upper()}

    result = run_with_logging(
        prompt_name="meal_plan",
        prompt_version="v2",
        fn=dummy_fn,
        schedule="monday dinner",
    )
    assert result == {"plan_json": "MONDAY DINNER"}
    assert logged["prompt_name"] == "meal_plan"
    assert logged["prompt_version"] == "v2"
    assert logged["model"] == dspy_client.settings.llm_model
    assert "monday dinner" in logged["input_payload"]
    assert logged["latency_ms"] >= 0


def test_custom_model_is_scoped_to_the_call(monkeypatch):
    logged = _capture_logs(monkeypatch)
    entered = []

    @contextmanager
    def fake_context(lm):
        entered.append(lm)
        yield

    monkeypatch.setattr(dspy_client, "_make_lm", lambda model, max_tokens=None: f"lm:{model}")
    monkeypatch.setattr(dspy_client.dspy, "context", fake_context)

    run_with_logging(prompt_name="meal_plan", prompt_version="v2", fn=lambda: "ok", model="gpt-4o")
    assert entered == ["lm:gpt-4o"]
    assert logged["model"] == "gpt-4o"
