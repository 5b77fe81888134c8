# projects/tasks.py

import logging

from celery import shared_task  # type: ignore

from projects.services.signature_links import expire_stale_links

logger = logging.getLogger(__name__)


@shared_task(name="projects.tasks.expire_signature_links")
def expire_signature_links():
    """
    Hourly sweep (via CELERY_BEAT_SCHEDULE). The validator already expires links
    lazily; this keeps the stored status honest for links nobody opens again.
    """
    try:
        moved = expire_stale_links()
        if moved:
            logger.info("Expired %d signing link(s)", moved)
        return moved
    except Exception as e:
        logger.error(f"Error in expire_signature_links: {e}")
        raise
