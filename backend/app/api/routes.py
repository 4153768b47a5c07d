from fastapi import APIRouter

from app.api.health import router as health_router
from app.api.meal_plans import router as meal_plans_router

router = APIRouter(prefix="/api")
router.include_router(health_router)
router.include_router(meal_plans_router)
