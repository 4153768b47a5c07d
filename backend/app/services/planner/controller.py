"""
Bounded regenerate-with-feedback loop around the assignment oracle.

States: DRAFTING -> VALIDATING -> ACCEPTED | RETRYING -> VALIDATING -> ... -> EXHAUSTED.
The controller holds no state beyond a single run; one instance per planning request.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, Optional, Protocol

from app.config import settings as app_settings
from app.logging import get_logger
from app.services.planner.constraints import ConstraintBundle, OracleRequest
from app.services.planner.domain import CandidateMeal, ValidationResult
from app.services.planner.errors import OracleError, PlanGenerationError, PlanningCancelled
from app.services.planner.feedback import render_feedback
from app.services.planner.meal_types import CANONICAL_MEAL_TYPES, canonical_meal_type, normalize_meal_type
from app.services.planner.week import normalize_day
from app.utils.timing import time_span

logger = get_logger(__name__)


class PlanState(str, Enum):
    DRAFTING = "drafting"
    VALIDATING = "validating"
    RETRYING = "retrying"
    ACCEPTED = "accepted"
    EXHAUSTED = "exhausted"
    CANCELLED = "cancelled"


@dataclass
class OracleResponse:
    meals: list[CandidateMeal]
    summary: str = ""


class PlanOracle(Protocol):
    def propose(self, request: OracleRequest) -> OracleResponse:
        ...


@dataclass
class AttemptRecord:
    attempt: int
    meals: list[CandidateMeal] = field(default_factory=list)
    summary: str = ""
    result: Optional[ValidationResult] = None
    error: Optional[str] = None


@dataclass
class PlanOutcome:
    state: PlanState
    meals: list[CandidateMeal]
    result: ValidationResult
    summary: str
    attempts: int
    caveats: list[str] = field(default_factory=list)
    history: list[AttemptRecord] = field(default_factory=list)

    @property
    def accepted(self) -> bool:
        return self.state is PlanState.ACCEPTED


def _slot_key(meal: CandidateMeal) -> tuple[Optional[str], str]:
    return normalize_day(meal.day), canonical_meal_type(meal.meal_type) or normalize_meal_type(meal.meal_type)


def merge_locked_meals(
    proposed: list[CandidateMeal], locked: tuple[CandidateMeal, ...] | list[CandidateMeal], bundle: ConstraintBundle
) -> list[CandidateMeal]:
    """Locked meals replace whatever the oracle put in the same (day, mealType) slot."""
    if not locked:
        return list(proposed)
    locked_keys = {_slot_key(m) for m in locked}
    merged = [m for m in proposed if _slot_key(m) not in locked_keys]
    merged += [replace(m, is_locked=True) for m in locked]

    def order(meal: CandidateMeal) -> tuple[int, int]:
        position = bundle.week.position(meal.day)
        meal_type = canonical_meal_type(meal.meal_type)
        type_index = CANONICAL_MEAL_TYPES.index(meal_type) if meal_type else len(CANONICAL_MEAL_TYPES)
        return (position if position is not None else 7, type_index)

    return sorted(merged, key=order)


class PlanningController:
    def __init__(
        self,
        bundle: ConstraintBundle,
        oracle: PlanOracle,
        max_attempts: Optional[int] = None,
        backoff_s: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.bundle = bundle
        self.oracle = oracle
        self.max_attempts = max(1, max_attempts or app_settings.plan_max_attempts)
        self.backoff_s = app_settings.oracle_backoff_s if backoff_s is None else backoff_s
        self.cancel_event = cancel_event
        self._sleep = sleep
        self.validator = bundle.validator()
        self.state = PlanState.DRAFTING
        self.transitions: list[PlanState] = [PlanState.DRAFTING]

    def _enter(self, state: PlanState) -> None:
        self.state = state
        self.transitions.append(state)

    def _cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    def _wait(self, seconds: float) -> bool:
        """Back off before the next oracle call. Returns True if cancelled meanwhile."""
        if seconds <= 0:
            return self._cancelled()
        if self.cancel_event is not None:
            return self.cancel_event.wait(seconds)
        self._sleep(seconds)
        return False

    def run(self) -> PlanOutcome:
        history: list[AttemptRecord] = []
        best: Optional[AttemptRecord] = None
        last_validated: Optional[AttemptRecord] = None
        feedback: ValidationResult | None = None
        last_error: Optional[Exception] = None
        consecutive_failures = 0

        for attempt in range(1, self.max_attempts + 1):
            if self._cancelled():
                return self._cancel(last_validated, history, attempt - 1)

            request = OracleRequest(
                bundle=self.bundle,
                attempt=attempt,
                max_attempts=self.max_attempts,
                feedback=tuple(feedback.violations) if feedback else (),
                feedback_text=render_feedback(feedback.violations, attempt - 1) if feedback else "",
            )
            logger.info("planner.attempt.start attempt=%s max=%s state=%s", attempt, self.max_attempts, self.state.value)
            try:
                with time_span("planner.oracle.call", attempt=attempt):
                    response = self.oracle.propose(request)
            except OracleError as exc:
                last_error = exc
                consecutive_failures += 1
                history.append(AttemptRecord(attempt=attempt, error=str(exc)))
                logger.warning(
                    "planner.oracle.failed attempt=%s kind=%s error=%s", attempt, type(exc).__name__, exc
                )
                if attempt < self.max_attempts:
                    self._enter(PlanState.RETRYING)
                    if self._wait(self.backoff_s * 2 ** (consecutive_failures - 1)):
                        return self._cancel(last_validated, history, attempt)
                continue
            consecutive_failures = 0

            meals = merge_locked_meals(response.meals, self.bundle.locked_meals, self.bundle)
            self._enter(PlanState.VALIDATING)
            result = self.validator.validate(meals)
            record = AttemptRecord(attempt=attempt, meals=meals, summary=response.summary, result=result)
            history.append(record)
            last_validated = record
            if best is None or result.badness() < best.result.badness():
                best = record

            if result.passed:
                self._enter(PlanState.ACCEPTED)
                logger.info("planner.accepted attempt=%s advisory=%s", attempt, len(result.advisory))
                return self._outcome(PlanState.ACCEPTED, record, history, attempt)

            feedback = result
            if attempt < self.max_attempts:
                self._enter(PlanState.RETRYING)

        if best is None:
            logger.error("planner.failed attempts=%s error=%s", self.max_attempts, last_error)
            raise PlanGenerationError(
                f"No plan could be generated after {self.max_attempts} attempt(s): {last_error}",
                attempts=self.max_attempts,
                last_error=last_error,
            )
        self._enter(PlanState.EXHAUSTED)
        logger.warning(
            "planner.exhausted attempts=%s best_attempt=%s fatal=%s",
            self.max_attempts,
            best.attempt,
            len(best.result.fatal),
        )
        return self._outcome(PlanState.EXHAUSTED, best, history, self.max_attempts)

    def _cancel(self, last: Optional[AttemptRecord], history: list[AttemptRecord], attempts: int) -> PlanOutcome:
        self._enter(PlanState.CANCELLED)
        logger.info("planner.cancelled attempts=%s has_result=%s", attempts, last is not None)
        if last is None:
            raise PlanningCancelled(f"Planning cancelled after {attempts} attempt(s) with no validated plan")
        return self._outcome(PlanState.CANCELLED, last, history, attempts)

    def _outcome(
        self, state: PlanState, record: AttemptRecord, history: list[AttemptRecord], attempts: int
    ) -> PlanOutcome:
        result = record.result
        relaxed = result.advisory if state is PlanState.ACCEPTED else result.violations
        return PlanOutcome(
            state=state,
            meals=record.meals,
            result=result,
            summary=record.summary,
            attempts=attempts,
            caveats=self.bundle.priorities.explain_relaxed(relaxed),
            history=history,
        )
