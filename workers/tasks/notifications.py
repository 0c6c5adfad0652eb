"""
Notification delivery tasks.

``deliver_notification`` runs once per Notification row published by the API
after commit. Delivery is at-least-once from the broker's side. The email is
claimed with an atomic Redis ``SET NX`` keyed by notification id, so a retried
or redelivered task never mails twice, and stamping ``delivered_at`` only
touches rows that are still undelivered.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any

import redis
from celery import Task
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import NullPool

from core.config import settings
from core.integrations.email import render_notification_email
from core.utils.datetime import now
from database.models.notifications import Notification
from workers.celery_app import celery_app
from workers.tasks.emails import send_email

logger = logging.getLogger(__name__)

DELIVERED_KEY = "notification:delivered:{}"
EMAILED_KEY = "notification:emailed:{}"
DELIVERED_TTL = 7 * 24 * 3600
REDELIVER_BATCH = 500

# Each asyncio.run gets a fresh loop; pooled connections must not outlive it
worker_engine = create_async_engine(str(settings.database_url), poolclass=NullPool)

_redis: redis.Redis | None = None


def get_redis() -> redis.Redis:
    global _redis
    if _redis is None:
        _redis = redis.Redis.from_url(str(settings.redis_url))
    return _redis


def retry_window() -> timedelta:
    """Longest time an original task may still be queued or backing off."""
    return timedelta(
        seconds=settings.notification_retry_countdown * (settings.notification_max_retries + 1)
    )


async def _stamp_delivered(notification_id: int) -> None:
    async with AsyncSession(worker_engine) as session:
        await session.execute(
            update(Notification)
            .where(Notification.id == notification_id)
            .where(Notification.delivered_at.is_(None))
            .values(delivered_at=now())
        )
        await session.commit()


async def _pending_payloads(limit: int, created_before: datetime) -> list[dict[str, Any]]:
    async with AsyncSession(worker_engine) as session:
        result = await session.execute(
            select(Notification)
            .where(Notification.delivered_at.is_(None))
            .where(Notification.created_at < created_before)
            .order_by(Notification.id)
            .limit(limit)
        )
        return [
            {
                "notification_id": n.id,
                "user_id": n.user_id,
                "type": n.type.value,
                "title": n.title,
                "message": n.message,
                "related_entity_type": n.related_entity_type,
                "related_entity_id": n.related_entity_id,
                # Email is only sent on the first publish
                "email": None,
            }
            for n in result.scalars().all()
        ]


def _queue_email_once(cache: redis.Redis, payload: dict[str, Any]) -> bool:
    """Queue the email unless another attempt already claimed it."""
    claim = EMAILED_KEY.format(payload["notification_id"])
    if not cache.set(claim, 1, nx=True, ex=DELIVERED_TTL):
        return False

    mail = render_notification_email(payload)
    try:
        send_email.delay(payload["email"], mail["subject"], mail["body"], html=mail["html"])
    except Exception:
        cache.delete(claim)
        raise
    return True


@celery_app.task(name="workers.tasks.notifications.deliver_notification", bind=True)
def deliver_notification(self: Task, payload: dict[str, Any]) -> dict:
    """
    Deliver one notification and stamp ``delivered_at``.

    Args:
        payload: Delivery payload built by ``Notifier.notify``

    Returns:
        Dictionary with delivery status
    """
    notification_id = payload["notification_id"]
    marker = DELIVERED_KEY.format(notification_id)

    try:
        cache = get_redis()
        if payload.get("email"):
            _queue_email_once(cache, payload)

        if cache.exists(marker):
            logger.info(f"Notification {notification_id} already delivered, skipping")
            return {"status": "duplicate", "notification_id": notification_id}

        asyncio.run(_stamp_delivered(notification_id))
        cache.set(marker, 1, ex=DELIVERED_TTL)

    except Exception as e:
        logger.error(f"Delivery of notification {notification_id} failed: {e}", exc_info=True)
        raise self.retry(
            exc=e,
            countdown=settings.notification_retry_countdown,
            max_retries=settings.notification_max_retries,
        )

    logger.info(f"Delivered notification {notification_id} to user {payload['user_id']}")
    return {"status": "delivered", "notification_id": notification_id}


@celery_app.task(name="workers.tasks.notifications.redeliver_pending")
def redeliver_pending(limit: int = REDELIVER_BATCH) -> dict:
    """
    Re-publish notifications whose original publish never reached the broker.

    Rows younger than the retry window are left alone; their first task may
    still be queued or waiting out a retry.
    """
    payloads = asyncio.run(_pending_payloads(limit, now() - retry_window()))
    for payload in payloads:
        deliver_notification.apply_async(kwargs={"payload": payload}, queue="notifications")

    if payloads:
        logger.info(f"Re-published {len(payloads)} undelivered notifications")
    return {"status": "queued", "total": len(payloads)}
