"""
On-demand inventory warm-up endpoint.
"""

import logging

from fastapi import APIRouter, Depends, status

from ticket_sales_platform.tasks.warmup_tasks import warmup_inventory_task
from ticket_sales_platform.utils.dependencies import get_current_principal

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/warmup", tags=["warmup"])


@router.post("", status_code=status.HTTP_202_ACCEPTED)
async def trigger_warmup(principal_id: str = Depends(get_current_principal)):
    """
    Queue a warm-up run on the Celery workers.

    Useful after new events are published without restarting the API.
    """
    result = warmup_inventory_task.delay()
    logger.info("Warm-up queued by %s as task %s", principal_id, result.id)
    return {"task_id": result.id, "status": "queued"}
