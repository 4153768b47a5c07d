"""dspy-backed assignment oracle: proposes a weekly meal assignment from a rendered OracleRequest."""

from __future__ import annotations

import json
import re
from typing import Any

import dspy

from app.logging import get_logger
from app.services.llm.dspy_client import run_with_logging
from app.services.llm.plan_prompt import render_request
from app.services.llm.prompts import MEAL_PLAN_PROMPT_VERSION
from app.services.planner.constraints import OracleRequest
from app.services.planner.controller import OracleResponse
from app.services.planner.domain import CandidateMeal
from app.services.planner.errors import OracleResponseError, OracleTransportError

logger = get_logger(__name__)


class MealPlanSignature(dspy.Signature):
    """Assign a recipe to every scheduled meal slot of the week."""

    prompt_template: str = dspy.InputField()
    schedule: str = dspy.InputField(desc="week order, scheduled slots with people counts, locked meals")
    nutrition: str = dspy.InputField(desc="per-meal calorie budgets and tolerance")
    recipes: str = dspy.InputField(desc="available recipes, one per line")
    rules: str = dspy.InputField(desc="variety, required recipes, expiring inventory")
    feedback: str = dspy.InputField(desc="violations of the previous attempt to fix")
    plan_json: str = dspy.OutputField(desc='JSON object {"meals": [...], "summary": "..."}')


def _strip_fences(raw: str) -> str:
    raw = raw.strip()
    if raw.startswith("```"):
        raw = re.sub(r"^```(?:json)?\s*", "", raw)
        raw = re.sub(r"\s*```\s*$", "", raw)
    return raw.strip()


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1")
    return bool(value)


def _as_int(value: Any) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return 0


def _as_id(value: Any) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _as_text(value: Any) -> str | None:
    if value is None or isinstance(value, (bool, dict, list)):
        return None
    return str(value).strip() or None


def parse_oracle_payload(raw: str | dict) -> OracleResponse:
    """
    {meals, summary} -> OracleResponse. A meal without recipeId keeps recipe_id=None so the
    validator reports it; nothing is substituted here.
    """
    if isinstance(raw, dict):
        payload = raw
    else:
        text = _strip_fences(str(raw or ""))
        start, end = text.find("{"), text.rfind("}")
        if start == -1 or end <= start:
            raise OracleResponseError(f"oracle returned no JSON object: {text[:200]!r}")
        try:
            payload = json.loads(text[start : end + 1])
        except json.JSONDecodeError as exc:
            raise OracleResponseError(f"oracle returned invalid JSON: {exc}") from exc
    meals_raw = payload.get("meals") if isinstance(payload, dict) else None
    if not isinstance(meals_raw, list):
        raise OracleResponseError("oracle response has no 'meals' list")

    meals = []
    for item in meals_raw:
        if not isinstance(item, dict):
            continue
        meals.append(
            CandidateMeal(
                day=str(item.get("dayOfWeek") or item.get("day") or ""),
                meal_type=str(item.get("mealType") or ""),
                recipe_id=_as_id(item.get("recipeId")),
                servings=_as_int(item.get("servings")),
                is_leftover=_as_bool(item.get("isLeftover", False)),
                batch_cook_source_day=_as_text(item.get("batchCookSourceDay")),
                note=str(item.get("notes") or ""),
                recipe_name=_as_text(item.get("recipeName")),
            )
        )
    return OracleResponse(meals=meals, summary=str(payload.get("summary") or ""))


class DspyPlanOracle:
    def __init__(self, model: str | None = None) -> None:
        self.model = model
        self.predict = dspy.Predict(MealPlanSignature)

    def propose(self, request: OracleRequest) -> OracleResponse:
        inputs = render_request(request)
        try:
            prediction = run_with_logging(
                prompt_name="meal_plan",
                prompt_version=MEAL_PLAN_PROMPT_VERSION,
                fn=self.predict,
                model=self.model,
                **inputs,
            )
        except Exception as exc:  # noqa: BLE001 - provider/litellm errors have no common base
            raise OracleTransportError(f"{type(exc).__name__}: {exc}") from exc
        raw = str(getattr(prediction, "plan_json", "") or "")
        response = parse_oracle_payload(raw)
        logger.info(
            "meal_plan.oracle.response attempt=%s meals=%s missing_ids=%s",
            request.attempt,
            len(response.meals),
            sum(1 for m in response.meals if m.recipe_id is None),
        )
        return response
