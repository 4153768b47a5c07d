from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Optional

from app.logging import get_logger
from app.services.planner.constraints import ConstraintBundle, PlanningContext, build_constraints
from app.services.planner.controller import PlanningController, PlanOracle, PlanState
from app.services.planner.domain import CandidateMeal, ValidationResult, Violation
from app.services.planner.macros import MacroBudget
from app.utils.timing import time_span

logger = get_logger(__name__)


@dataclass
class GeneratedPlan:
    plan: list[CandidateMeal]
    accepted: bool
    violations: list[Violation]
    summary: str
    state: PlanState
    attempts: int
    caveats: list[str] = field(default_factory=list)
    budget: Optional[MacroBudget] = None


def generate_plan(
    ctx: PlanningContext,
    oracle: PlanOracle,
    max_attempts: Optional[int] = None,
    backoff_s: Optional[float] = None,
    cancel_event: Optional[threading.Event] = None,
) -> GeneratedPlan:
    """Build constraints for the week, then run the regenerate-with-feedback loop."""
    with time_span("planner.generate", week_start=ctx.week_start, recipes=len(ctx.recipes)):
        bundle = build_constraints(ctx)
        controller = PlanningController(
            bundle, oracle, max_attempts=max_attempts, backoff_s=backoff_s, cancel_event=cancel_event
        )
        outcome = controller.run()
    logger.info(
        "planner.generate.done state=%s attempts=%s violations=%s",
        outcome.state.value,
        outcome.attempts,
        len(outcome.result.violations),
    )
    return GeneratedPlan(
        plan=outcome.meals,
        accepted=outcome.accepted,
        violations=outcome.result.violations,
        summary=outcome.summary,
        state=outcome.state,
        attempts=outcome.attempts,
        caveats=outcome.caveats,
        budget=bundle.budget,
    )


def validate_plan(ctx: PlanningContext, meals: list[CandidateMeal]) -> tuple[ValidationResult, ConstraintBundle]:
    """Validate a caller-supplied plan against freshly built constraints; no oracle call."""
    bundle = build_constraints(ctx)
    return bundle.validator().validate(meals), bundle
