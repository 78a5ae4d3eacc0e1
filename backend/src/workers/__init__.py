"""Background workers for the listing matcher.

Celery runs the periodic calibration job; see celery_app for the beat
schedule.
"""

from .celery_app import celery_app

__all__ = [
    "celery_app",
]
