"""Celery tasks for weight calibration.

Tasks:
- calibration_run_task: reviews the corpus and, when it helps, appends
  a new weight set

A Redis lock keeps runs single-flight across workers. Matcher processes
pick up an appended set through their store-backed WeightRegistry
(see dependencies.build_weight_registry).
"""

import logging
from typing import Any, Dict

from celery import shared_task
from redis import Redis
from redis.exceptions import LockError

from config import settings
from database import SessionLocal
from domain.calibration.calibrator import Calibrator
from domain.matching.confidence import WeightRegistry
from infrastructure.repositories.match_record_repository import MatchRecordRepository
from infrastructure.repositories.weight_repository import WeightRepository
from observability.correlation import correlation_scope

logger = logging.getLogger(__name__)

CALIBRATION_LOCK_KEY = "cardmatch:calibration:lock"


def get_redis_client() -> Redis:
    return Redis.from_url(settings.REDIS_URL, decode_responses=True)


def run_calibration(db) -> Dict[str, Any]:
    """Run one calibration pass on a session and commit what it stored"""
    weight_store = WeightRepository(db)
    registry = WeightRegistry()
    registry.load(weight_store)
    calibrator = Calibrator(
        corpus=MatchRecordRepository(db),
        weight_store=weight_store,
        registry=registry,
    )
    report = calibrator.run()
    db.commit()
    return {"status": "completed", **report.as_dict()}


@shared_task(name="calibration.run", bind=True)
def calibration_run_task(self) -> Dict[str, Any]:
    """Execute one calibration run.

    Returns:
        Dict with the calibration report, or status 'skipped' when
        another worker holds the lock

    Raises:
        Exception: Store and broker errors propagate so Celery records
        the failure
    """
    redis_client = get_redis_client()
    lock = redis_client.lock(
        CALIBRATION_LOCK_KEY,
        timeout=settings.CALIBRATION_LOCK_TIMEOUT_SECONDS,
    )
    if not lock.acquire(blocking=False):
        logger.warning("Calibration lock held by another worker, skipping")
        return {"status": "skipped", "applied": False, "reason": "Calibration already in progress"}

    db = SessionLocal()
    try:
        with correlation_scope(f"calibration-{self.request.id or 'local'}"):
            logger.info("Calibration task started")
            result = run_calibration(db)
            logger.info(
                f"Calibration task completed: applied={result['applied']}",
                extra={"weights_version": result.get("new_version")},
            )
            return result
    except Exception:
        db.rollback()
        logger.error("Calibration task failed", exc_info=True)
        raise
    finally:
        db.close()
        try:
            lock.release()
        except LockError:
            # Expired or taken over before the run finished
            logger.warning("Calibration lock was no longer held at release")
