"""
Celery worker entry point
Delivers booking notifications queued by the API
"""
import logging
from celery.signals import worker_ready, worker_shutdown

from salon_scheduler.config.celery_config import celery_app
from salon_scheduler.utils.my_logging import setup_logging

setup_logging()
logger = logging.getLogger(__name__)


@worker_ready.connect
def worker_ready_handler(sender=None, **kwargs):
    logger.info("🚀 Celery worker ready!")
    logger.info(f"📋 Registered tasks: {[name for name in celery_app.tasks.keys() if not name.startswith('celery.')]}")


@worker_shutdown.connect
def worker_shutdown_handler(sender=None, **kwargs):
    logger.info("🛑 Celery worker shutting down...")


if __name__ == "__main__":
    celery_app.start([
        'worker',
        '--loglevel=info',
        '--queues=notifications,celery',
        '--concurrency=4',
        '--max-tasks-per-child=1000'
    ])
