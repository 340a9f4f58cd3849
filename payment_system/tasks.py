"""
Payment System Celery Tasks

Periodic money movement, scheduled from mercato/celery.py:
- Release escrow for sub-orders delivered long enough ago
- Schedule, process and retry seller payouts
- Generate last month's settlements
"""

import logging

from celery import shared_task
from django.utils import timezone


logger = logging.getLogger(__name__)


def _result(result):
    if result.ok:
        return {"success": True, **(result.value if isinstance(result.value, dict) else {})}
    return {"success": False, "error": result.error_detail}


def _retry(task, error):
    try:
        raise task.retry(countdown=60 * (2**task.request.retries))
    except task.MaxRetriesExceededError:
        return {"success": False, "error": f"Max retries exceeded: {error}"}


@shared_task(bind=True, max_retries=3, queue="payment_tasks")
def release_eligible_escrow_task(self):
    from infrastructure.container import container

    try:
        result = container.escrow_service().release_eligible_escrow()
        logger.info(f"Escrow release run finished: {result.value if result.ok else result.error_detail}")
        return _result(result)
    except Exception as e:
        logger.error(f"Error in escrow release task: {e}", exc_info=True)
        return _retry(self, e)


@shared_task(bind=True, max_retries=3, queue="payment_tasks")
def schedule_payouts_task(self, frequency="weekly"):
    from infrastructure.container import container

    try:
        result = container.payout_service().schedule_payouts(scheduled_at=timezone.now(), frequency=frequency)
        if not result.ok:
            return _result(result)
        return {
            "success": True,
            "scheduled": len(result.value["payouts"]),
            "rolled_over": result.value["rolled_over"],
            "total_amount": str(result.value["total_amount"]),
        }
    except Exception as e:
        logger.error(f"Error in payout scheduling task: {e}", exc_info=True)
        return _retry(self, e)


@shared_task(bind=True, max_retries=3, queue="payment_tasks")
def process_scheduled_payouts_task(self, batch_id=None):
    from infrastructure.container import container

    try:
        return _result(container.payout_service().process_scheduled_payouts(batch_id=batch_id))
    except Exception as e:
        logger.error(f"Error in payout processing task: {e}", exc_info=True)
        return _retry(self, e)


@shared_task(bind=True, max_retries=3, queue="payment_tasks")
def retry_failed_payouts_task(self):
    from infrastructure.container import container

    try:
        return _result(container.payout_service().retry_all_failed_payouts())
    except Exception as e:
        logger.error(f"Error in payout retry task: {e}", exc_info=True)
        return _retry(self, e)


@shared_task(bind=True, max_retries=3, queue="payment_tasks")
def generate_monthly_settlements_task(self, year=None, month=None):
    """Settle the given month, or the previous calendar month when none is given."""
    from infrastructure.container import container

    if year is None or month is None:
        today = timezone.now().date()
        year, month = (today.year - 1, 12) if today.month == 1 else (today.year, today.month - 1)

    try:
        result = container.settlement_service().generate_monthly_settlements(int(year), int(month))
        summary = result.value if result.ok else result.error_detail
        logger.info(f"Monthly settlements for {year}-{month:02d}: {summary}")
        return _result(result)
    except Exception as e:
        logger.error(f"Error in monthly settlement task: {e}", exc_info=True)
        return _retry(self, e)
