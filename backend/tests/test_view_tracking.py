"""View tracking: queueing from the API side and the background increment task.

the task runs directly (task.run) against the test database, the broker is
never touched
"""

from unittest.mock import patch

from marketplace.services.tracking_service import track_product_view
from marketplace.utils.db import ProductRepository


def _use_db(session):
    def mock_get_db():
        yield session

    return patch("marketplace.celery_app.get_db", mock_get_db)


class TestTrackProductView:
    """test fire-and-forget queueing."""

    def test_queues_with_delay(self):
        with patch("marketplace.services.tracking_service.increment_view_task") as task:
            assert track_product_view(3, 7) is True

        task.apply_async.assert_called_once_with(args=[3, 7], countdown=0.5)

    def test_broker_failure_is_swallowed(self):
        with patch("marketplace.services.tracking_service.increment_view_task") as task:
            task.apply_async.side_effect = ConnectionError("broker down")

            assert track_product_view(3, 7) is False


class TestIncrementViewTask:
    """test the background task with a real database."""

    def test_counts_buyer_view(self, test_db, buyer, make_product):
        product_id = make_product().id

        with _use_db(test_db):
            from marketplace.celery_app import increment_view_task

            result = increment_view_task.run(product_id, buyer.id)

        assert result == {"status": "counted", "product_id": product_id, "view_count": 1}
        assert ProductRepository(test_db).get_by_id(product_id).view_count == 1

    def test_own_product_not_counted(self, test_db, vendor, make_product):
        product_id = make_product().id

        with _use_db(test_db):
            from marketplace.celery_app import increment_view_task

            result = increment_view_task.run(product_id, vendor.id)

        assert result["status"] == "skipped"
        assert result["reason"] == "own_product"
        assert ProductRepository(test_db).get_by_id(product_id).view_count == 0

    def test_unlisted_product_not_counted(self, test_db, buyer, make_product):
        product_id = make_product(status="pending").id

        with _use_db(test_db):
            from marketplace.celery_app import increment_view_task

            result = increment_view_task.run(product_id, buyer.id)

        assert result["reason"] == "not_available"
        assert ProductRepository(test_db).get_by_id(product_id).view_count == 0

    def test_failure_is_reported_not_raised(self, test_db, buyer, make_product):
        """test that a db error ends the task with a failed status"""
        product_id = make_product().id

        with _use_db(test_db):
            from marketplace.celery_app import increment_view_task

            with patch.object(
                ProductRepository, "increment_view", side_effect=RuntimeError("db locked")
            ):
                result = increment_view_task.run(product_id, buyer.id)

        assert result == {"status": "failed", "product_id": product_id, "error": "db locked"}
