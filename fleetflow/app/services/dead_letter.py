"""
Dead letter capture for best-effort side effects.

Side effects that run after their parent operation has committed cannot
fail that operation. When one does fail, it is logged and parked in the
dead letter queue for later replay.
"""

import logging
from typing import Optional, Dict, Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fleetflow.app.models.dlq import DeadLetterQueue, DLQStatus

logger = logging.getLogger("fleetflow.dlq")


async def capture_failure(
    db: AsyncSession,
    task_name: str,
    error: BaseException,
    reference: Optional[str] = None,
    payload: Optional[Dict[str, Any]] = None
) -> Optional[DeadLetterQueue]:
    """
    Record a failed side effect.

    Never raises: if the queue itself cannot be written, the failure is
    only logged.
    """
    entry = DeadLetterQueue(
        task_name=task_name,
        reference=reference,
        error_message=f"{type(error).__name__}: {error}",
        payload=payload,
        status=DLQStatus.FAILED
    )
    try:
        db.add(entry)
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("Could not dead-letter %s (%s): %s", task_name, reference, exc)
        return None

    logger.info("Dead-lettered %s (%s) as entry %s", task_name, reference, entry.id)
    return entry
