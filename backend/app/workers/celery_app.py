from celery import Celery

from app.config import settings
from app.logging import configure_logging, get_logger


celery_app = Celery("hearth", broker=settings.redis_url, backend=settings.redis_url)
celery_app.conf.task_routes = {"app.workers.tasks.*": {"queue": "celery"}}
# One planning run holds an oracle call for up to a minute per attempt
celery_app.conf.task_acks_late = True
celery_app.conf.worker_prefetch_multiplier = 1

# Import tasks so they are registered with the worker
from app.workers import tasks  # noqa: F401,E402

configure_logging(settings.log_level)
logger = get_logger(__name__)
logger.info("celery.configured broker=%s", settings.redis_url)
