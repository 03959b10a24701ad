import ssl

from celery import Celery
from celery.schedules import crontab

import chat_engine.db.base  # noqa: F401
from chat_engine.core.config import settings

_uses_tls = settings.REDIS_URL.startswith("rediss://")

celery_app = Celery(
    "chat_engine",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    task_track_started=True,
    result_expires=3600,
    beat_schedule={
        "chat-retention-cleanup-daily": {
            "task": "chat_engine.retention.tasks.run_retention_cleanup_task",
            "schedule": crontab(hour=settings.RETENTION_SCHEDULE_HOUR, minute=0),
        },
    },
)

if _uses_tls:
    celery_app.conf.update(
        broker_use_ssl={"ssl_cert_reqs": ssl.CERT_NONE},
        redis_backend_use_ssl={"ssl_cert_reqs": ssl.CERT_NONE},
    )

celery_app.autodiscover_tasks(["chat_engine.retention"], related_name="tasks")
