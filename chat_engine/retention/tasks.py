"""Celery tasks for retention cleanup."""

import logging
import time
from typing import Any

from chat_engine.core.celery_app import celery_app
from chat_engine.core.config import settings
from chat_engine.db.session import SessionLocal
from chat_engine.retention.service import RetentionService

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, max_retries=0)
def run_retention_cleanup_task(self: Any) -> dict[str, Any]:
    """Purge expired chat data according to the RETENTION_* settings.

    Returns:
        Dict with per-category counts (messages, deliveries, versions,
        orphaned_deletions) and the execution time.
    """
    start_time = time.time()
    logger.info("Starting retention cleanup")

    db = SessionLocal()
    try:
        results: dict[str, Any] = dict(RetentionService(db, settings).run_cleanup())
        results["execution_time_seconds"] = time.time() - start_time

        logger.info(
            f"Retention cleanup complete: messages={results['messages']}, "
            f"deliveries={results['deliveries']}, versions={results['versions']}, "
            f"orphaned_deletions={results['orphaned_deletions']}"
        )
        return results
    except Exception as exc:
        logger.exception(f"Retention cleanup failed: {exc}")
        db.rollback()
        raise
    finally:
        db.close()
