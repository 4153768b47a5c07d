from app.services.planner.constraints import PlanningContext, build_constraints
from app.services.planner.controller import OracleResponse, PlanningController, PlanOracle, PlanState
from app.services.planner.service import GeneratedPlan, generate_plan, validate_plan

__all__ = [
    "GeneratedPlan",
    "OracleResponse",
    "PlanOracle",
    "PlanState",
    "PlanningContext",
    "PlanningController",
    "build_constraints",
    "generate_plan",
    "validate_plan",
]
