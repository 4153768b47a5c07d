from app.logging import get_logger
from app.services.llm.dspy_client import configure_dspy
from app.services.meal_plans import run_generation
from app.services.planner.errors import PlannerError
from app.storage.db import get_session
from app.storage.repositories import get_meal_plan
from app.utils.timing import time_span
from app.workers.celery_app import celery_app

app_logger = get_logger(__name__)


@celery_app.task(bind=True)
def generate_meal_plan_task(self, meal_plan_id: int):
    task_id = self.request.id
    app_logger.info("meal_plan.task.start task_id=%s meal_plan_id=%s", task_id, meal_plan_id)
    with time_span("meal_plan.task.total", task_id=task_id, meal_plan_id=meal_plan_id):
        with get_session() as session:
            plan = get_meal_plan(session, meal_plan_id)
            if plan is None:
                app_logger.warning("meal_plan.task.skip meal_plan_id=%s not found", meal_plan_id)
                return {"status": "skipped", "meal_plan_id": meal_plan_id, "reason": "not_found"}
            if plan.status != "Generating":
                app_logger.warning("meal_plan.task.skip meal_plan_id=%s status=%s", meal_plan_id, plan.status)
                return {"status": "skipped", "meal_plan_id": meal_plan_id, "reason": plan.status}
            configure_dspy()
            try:
                generated = run_generation(session, plan)
            except PlannerError as exc:
                # run_generation has already marked the plan Failed or Cancelled
                app_logger.error(
                    "meal_plan.task.failure task_id=%s meal_plan_id=%s error=%s", task_id, meal_plan_id, exc
                )
                return {"status": plan.status, "meal_plan_id": meal_plan_id, "error": str(exc)}
    app_logger.info(
        "meal_plan.task.success task_id=%s meal_plan_id=%s accepted=%s attempts=%s",
        task_id,
        meal_plan_id,
        generated.accepted,
        generated.attempts,
    )
    return {"status": "Draft", "meal_plan_id": meal_plan_id, "accepted": generated.accepted}
