"""Celery application for background matcher jobs.

Beat runs calibration daily at 03:00 UTC; the job is also safe to
trigger by hand since it is single-flight across workers.
"""

from celery import Celery
from celery.schedules import crontab
from celery.signals import setup_logging

from config import settings
from observability.logging_config import configure_logging

celery_app = Celery(
    "cardmatch",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["workers.calibration_tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
)

celery_app.conf.beat_schedule = {
    "calibration-daily": {
        "task": "calibration.run",
        "schedule": crontab(hour=3, minute=0),
        "options": {
            "expires": 3600,  # Task expires after 1 hour if not picked up
        },
    },
}


@setup_logging.connect
def configure_worker_logging(**kwargs):
    """Use the matcher's JSON logging instead of Celery's default handlers"""
    configure_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)
