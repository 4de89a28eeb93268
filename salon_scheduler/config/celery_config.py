"""Celery application factory"""
from celery import Celery

from salon_scheduler.config.settings import get_settings

settings = get_settings()


def create_celery_app() -> Celery:
    """Create and configure the Celery app used by the worker and the API"""
    app = Celery(
        "salon_scheduler",
        broker=settings.CELERY_BROKER_URL,
        backend=settings.CELERY_RESULT_BACKEND,
        include=["salon_scheduler.tasks.notification_tasks"],
    )

    app.conf.update(
        task_serializer=settings.CELERY_TASK_SERIALIZER,
        result_serializer="json",
        accept_content=["json"],
        timezone="UTC",
        enable_utc=True,
        task_acks_late=True,
        worker_prefetch_multiplier=1,
        task_routes={
            "salon_scheduler.tasks.notification_tasks.*": {"queue": "notifications"},
        },
        # Publishing happens from request handlers; give up quickly when the
        # broker is down instead of stalling the response.
        task_publish_retry=True,
        task_publish_retry_policy={
            "max_retries": 2,
            "interval_start": 0,
            "interval_step": 0.2,
            "interval_max": 0.5,
        },
    )

    return app


celery_app = create_celery_app()
