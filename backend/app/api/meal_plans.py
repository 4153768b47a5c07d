from fastapi import APIRouter, HTTPException

from app.logging import get_logger
from app.schemas.plan import (
    BudgetOut,
    GeneratePlanRequest,
    PlanResponse,
    RegeneratePlanRequest,
    ValidatePlanRequest,
    ValidatePlanResponse,
    ViolationOut,
)
from app.services.meal_plans import (
    budget_payload,
    build_context,
    default_oracle,
    meal_from_request,
    plan_response,
    run_generation,
    violation_payload,
)
from app.services.planner import validate_plan
from app.services.planner.errors import PlanGenerationError, PlanningCancelled, PlanRequestError
from app.storage.db import get_session
from app.storage.repositories import create_meal_plan, get_household, get_meal_plan, mark_plan_status
from app.workers.tasks import generate_meal_plan_task

router = APIRouter(prefix="/meal-plans")
logger = get_logger(__name__)


def _generate(session, plan, background: bool) -> PlanResponse:
    if background:
        generate_meal_plan_task.delay(plan.id)
        logger.info("meal_plan.enqueued id=%s", plan.id)
        return plan_response(session, plan)
    try:
        run_generation(session, plan, oracle=default_oracle())
    except PlanRequestError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except PlanGenerationError as exc:
        raise HTTPException(
            status_code=502,
            detail={"message": str(exc), "meal_plan_id": plan.id, "attempts": exc.attempts},
        )
    except PlanningCancelled as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return plan_response(session, plan)


@router.post("/generate", response_model=PlanResponse)
def generate(request: GeneratePlanRequest):
    """
    Build constraints for the household's week, ask the oracle for an assignment,
    validate and retry with feedback. accepted=false means "plan created with caveats".
    """
    with get_session() as session:
        if get_household(session, request.household_id) is None:
            raise HTTPException(status_code=400, detail=f"household {request.household_id} not found")
        plan = create_meal_plan(
            session,
            household_id=request.household_id,
            week_start=request.week_start_date,
            request_payload=request.model_dump(mode="json"),
        )
        return _generate(session, plan, request.background)


@router.post("/{meal_plan_id}/regenerate", response_model=PlanResponse)
def regenerate(meal_plan_id: int, request: RegeneratePlanRequest | None = None):
    """Re-run generation for an existing plan. Meals locked on the plan are kept as they are."""
    request = request or RegeneratePlanRequest()
    with get_session() as session:
        plan = get_meal_plan(session, meal_plan_id)
        if plan is None:
            raise HTTPException(status_code=404, detail="Meal plan not found")
        if plan.status == "Generating":
            raise HTTPException(status_code=409, detail="Meal plan is still generating")
        payload = dict(plan.request_payload or {})
        if request.settings is not None:
            payload["settings"] = request.settings.model_dump(mode="json")
        if request.quick_options is not None:
            payload["quick_options"] = request.quick_options.model_dump(mode="json")
        plan.request_payload = payload
        mark_plan_status(session, plan, "Generating")
        logger.info("meal_plan.regenerate id=%s", plan.id)
        return _generate(session, plan, request.background)


@router.post("/validate", response_model=ValidatePlanResponse)
def validate(request: ValidatePlanRequest):
    """Validate a caller-supplied plan without calling the oracle."""
    with get_session() as session:
        try:
            ctx = build_context(
                session,
                request.household_id,
                request.week_start_date,
                attendance=request.attendance,
                settings_override=request.settings,
                mandatory_recipe_ids=request.mandatory_recipe_ids,
            )
        except PlanRequestError as exc:
            raise HTTPException(status_code=400, detail=str(exc))
    result, bundle = validate_plan(ctx, [meal_from_request(m) for m in request.meals])
    budget = budget_payload(bundle.budget)
    return ValidatePlanResponse(
        passed=result.passed,
        violations=[ViolationOut(**violation_payload(v)) for v in result.violations],
        budget=BudgetOut(**budget) if budget else None,
    )


@router.get("/{meal_plan_id}", response_model=PlanResponse)
def get_plan(meal_plan_id: int):
    with get_session() as session:
        plan = get_meal_plan(session, meal_plan_id)
        if plan is None:
            raise HTTPException(status_code=404, detail="Meal plan not found")
        return plan_response(session, plan)
