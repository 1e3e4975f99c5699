"""Celery application for fire-and-forget background tasks."""

import logging

from celery import Celery

from marketplace.utils.db import ProductRepository, get_db
from marketplace.utils.settings import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

celery = Celery(
    'marketplace_tasks',
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
)

celery.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,
    task_time_limit=30,  # a view bump is a single UPDATE
    task_publish_retry=False,  # fail fast when the broker is unreachable
    worker_prefetch_multiplier=4,
    result_expires=3600,  # 1 hour
)


# never retried
@celery.task(name='marketplace_tasks.increment_view')
def increment_view_task(product_id: int, viewer_id: int) -> dict:
    """
    Background task to count a product view.

    Args:
        product_id: Viewed product
        viewer_id: Profile id of the signed-in viewer

    Returns:
        dict: counted / skipped / failed, with the new count when counted
    """
    db = next(get_db())  # next for generator, grab yielded sess
    try:
        repo = ProductRepository(db)
        product = repo.get_listed(product_id)
        if not product:
            return {'status': 'skipped', 'product_id': product_id, 'reason': 'not_available'}

        # vendors browsing their own listing don't count
        if product.vendor_id == viewer_id:
            return {'status': 'skipped', 'product_id': product_id, 'reason': 'own_product'}

        view_count = repo.increment_view(product_id)
        return {'status': 'counted', 'product_id': product_id, 'view_count': view_count}

    except Exception as e:
        logger.error(f"View increment failed for product {product_id}: {e}")
        return {'status': 'failed', 'product_id': product_id, 'error': str(e)}

    finally:
        db.close()
