from celery import Celery

from donation_gateway.core.config import get_settings

settings = get_settings()

celery = Celery(
    "donation_gateway",
    broker=settings.redis_url,
    backend=settings.redis_url,
)

# Import tasks
celery.conf.imports = ["donation_gateway.tasks"]

# Set task routes
celery.conf.task_routes = {"donation_gateway.tasks.forward_payload": {"queue": "forwarding"}}

# Run inline when no worker is deployed alongside the API
celery.conf.task_always_eager = settings.celery_task_always_eager
