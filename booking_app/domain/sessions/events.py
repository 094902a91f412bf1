"""
Refund event publishing

Cancellations stage a RefundEvent row in the same transaction that frees the
period. Publishing to the payment service's queue happens only after commit,
either right away from the request or later from the outbox relay cron.
"""

import asyncio
import logging

from arq import create_pool
from sqlalchemy.orm import Session

from ...config import REFUND_JOB_NAME, REFUND_QUEUE_NAME
from ...models import RefundEvent
from ...shared.validators import utcnow
from ...worker import get_redis_settings
from .repository import SessionRepository
from .schemas import RefundInitiationMessage

logger = logging.getLogger(__name__)


async def _default_pool():
    return await asyncio.wait_for(create_pool(get_redis_settings()), timeout=20.0)


def refund_job_id(session_id: int) -> str:
    """Job ID used to deduplicate refund messages for a session"""
    return f"initiate_refund:{session_id}"


class RefundEventPublisher:
    """Publishes committed refund events through ARQ"""

    def __init__(self, pool_factory=None):
        self.pool_factory = pool_factory or _default_pool
        self.repo = SessionRepository()

    async def publish(self, db: Session, refund_event: RefundEvent) -> bool:
        """
        Enqueue one refund event and record the outcome on its outbox row.

        A failure leaves the row pending for the relay to retry; it never
        undoes the cancellation that produced it.
        """
        message = RefundInitiationMessage(
            sessionId=refund_event.session_id,
            patientId=refund_event.patient_id,
            doctorId=refund_event.doctor_id,
            refundDirection=refund_event.refund_direction,
        )

        try:
            pool = await self.pool_factory()
            try:
                await pool.enqueue_job(
                    REFUND_JOB_NAME,
                    message.model_dump(),
                    _job_id=refund_job_id(refund_event.session_id),
                    _queue_name=REFUND_QUEUE_NAME,
                )
            finally:
                await pool.close()
        except Exception as e:
            logger.error(
                f"❌ Failed to publish refund for session {refund_event.session_id}: {str(e)}"
            )
            self.repo.mark_refund_event_failed(db, refund_event, str(e))
            return False

        self.repo.mark_refund_event_published(db, refund_event, utcnow())
        logger.info(
            f"💸 Refund initiation published for session {refund_event.session_id} "
            f"({refund_event.refund_direction})"
        )
        return True

    async def publish_pending(self, db: Session, limit: int = 100) -> dict:
        """Retry every refund event still waiting in the outbox"""
        pending = self.repo.get_pending_refund_events(db, limit=limit)
        published = 0
        failed = 0
        for refund_event in pending:
            if await self.publish(db, refund_event):
                published += 1
            else:
                failed += 1
        return {"pending": len(pending), "published": published, "failed": failed}


def get_refund_publisher() -> RefundEventPublisher:
    """Dependency injection for RefundEventPublisher"""
    return RefundEventPublisher()
