"""Fire-and-forget product view tracking."""

import logging

from marketplace.celery_app import increment_view_task
from marketplace.utils.settings import get_settings

logger = logging.getLogger(__name__)


def track_product_view(product_id: int, viewer_id: int) -> bool:
    """Queue a delayed view increment; never raises.

    Returns:
        True if the task was queued, False if it was dropped
    """
    settings = get_settings()
    try:
        increment_view_task.apply_async(
            args=[product_id, viewer_id],
            countdown=settings.view_track_delay_s,
        )
        return True
    except Exception as e:
        # non-critical for the buyer, just leave a trace
        logger.warning(f"View tracking dropped for product {product_id}: {e}")
        return False
