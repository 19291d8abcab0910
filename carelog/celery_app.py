from celery import Celery
from celery.schedules import crontab

from carelog.api.core.config import settings

celery_app = Celery(
    "care_log",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=[
        "carelog.api.modules.v1.tickets.service.tasks",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_acks_late=True,
    worker_max_tasks_per_child=100,
    broker_connection_retry_on_startup=True,
)


celery_app.conf.beat_schedule = {
    "backfill-ticket-summaries-nightly": {
        "task": "tickets.backfill_ticket_summaries",
        "schedule": crontab(hour=3, minute=0),
    },
}
