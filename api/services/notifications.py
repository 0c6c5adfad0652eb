"""
Notification outbox and inbox.

Services call ``Notifier.notify`` inside their transaction, which writes one
``Notification`` row per recipient. Once the transaction has committed they
call ``Notifier.dispatch`` to hand the rows to the Celery delivery task.
A publish failure leaves the row undelivered for ``redeliver_pending``.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional

from sqlalchemy import and_, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.common import PaginationParams
from core.errors import NotFound
from core.utils.datetime import Clock, now
from database.engine import PENDING_OUTBOXES
from database.models.audit import EntityType
from database.models.notifications import Notification, NotificationType
from database.models.organizations import MembershipRole, UserOrganization
from database.models.users import User, UserType

logger = logging.getLogger(__name__)

DELIVER_TASK = "workers.tasks.notifications.deliver_notification"
NOTIFICATIONS_QUEUE = "notifications"


@dataclass
class NotificationEvent:
    """What to tell recipients. ``email`` also sends it by mail."""

    type: NotificationType
    title: str
    message: str
    entity_type: Optional[EntityType] = None
    entity_id: Optional[int] = None
    email: bool = False


def enqueue_delivery(payload: dict[str, Any]) -> None:
    """Publish one delivery task to the broker."""
    from workers.celery_app import celery_app

    celery_app.send_task(
        DELIVER_TASK,
        kwargs={"payload": payload},
        queue=NOTIFICATIONS_QUEUE,
    )


def _unique(user_ids: Iterable[Optional[int]], exclude: Optional[int]) -> list[int]:
    seen: list[int] = []
    for user_id in user_ids:
        if user_id is None or user_id == exclude or user_id in seen:
            continue
        seen.append(user_id)
    return seen


class Notifier:
    """
    Per-request notification outbox.

    Args:
        publisher: Callable that takes a delivery payload; defaults to Celery
    """

    def __init__(self, publisher: Optional[Callable[[dict[str, Any]], None]] = None):
        self._publisher = publisher or enqueue_delivery
        self._outbox: list[dict[str, Any]] = []

    @property
    def pending(self) -> list[dict[str, Any]]:
        return list(self._outbox)

    async def notify(
        self,
        session: AsyncSession,
        user_ids: Iterable[Optional[int]],
        event: NotificationEvent,
        *,
        exclude: Optional[int] = None,
    ) -> list[Notification]:
        """
        Write notification rows for each distinct recipient.

        Args:
            session: Session of the enclosing transaction
            user_ids: Recipients; ``None`` entries and duplicates are skipped
            event: Notification content
            exclude: Usually the caller, who is never notified of their own action

        Returns:
            The flushed Notification rows
        """
        recipients = _unique(user_ids, exclude)
        if not recipients:
            return []

        emails: dict[int, str] = {}
        if event.email:
            result = await session.execute(
                select(User.id, User.email).where(User.id.in_(recipients))
            )
            emails = {row.id: row.email for row in result}

        rows = [
            Notification(
                user_id=user_id,
                type=event.type,
                title=event.title,
                message=event.message,
                related_entity_type=event.entity_type.value if event.entity_type else None,
                related_entity_id=event.entity_id,
            )
            for user_id in recipients
        ]
        session.add_all(rows)
        await session.flush()

        pending = session.info.setdefault(PENDING_OUTBOXES, [])
        if self not in pending:
            pending.append(self)
        for row in rows:
            self._outbox.append(
                {
                    "notification_id": row.id,
                    "user_id": row.user_id,
                    "type": event.type.value,
                    "title": event.title,
                    "message": event.message,
                    "related_entity_type": row.related_entity_type,
                    "related_entity_id": row.related_entity_id,
                    "email": emails.get(row.user_id),
                }
            )
        return rows

    def dispatch(self) -> int:
        """
        Publish everything collected since the last dispatch.

        Call only after commit. Never raises; returns how many were published.
        """
        outbox, self._outbox = self._outbox, []
        published = 0
        for payload in outbox:
            try:
                self._publisher(payload)
                published += 1
            except Exception as e:
                logger.error(
                    f"Failed to publish notification {payload['notification_id']}: {e}",
                    exc_info=True,
                )
        return published

    def discard(self) -> None:
        self._outbox.clear()


# ---------- Recipient lookups ---------- #

async def user_ids_of_type(session: AsyncSession, user_type: UserType) -> list[int]:
    result = await session.execute(
        select(User.id).where(
            and_(User.user_type == user_type, User.is_active.is_(True))
        )
    )
    return list(result.scalars().all())


async def organization_member_ids(
    session: AsyncSession,
    organization_id: int,
    roles: Optional[Iterable[MembershipRole]] = None,
) -> list[int]:
    query = select(UserOrganization.user_id).where(
        UserOrganization.organization_id == organization_id
    )
    if roles is not None:
        query = query.where(UserOrganization.role.in_(list(roles)))
    result = await session.execute(query.order_by(UserOrganization.id))
    return list(result.scalars().all())


# ---------- Inbox ---------- #

async def list_notifications(
    session: AsyncSession,
    user: User,
    pagination: PaginationParams,
    unread_only: bool = False,
) -> tuple[list[Notification], int]:
    query = select(Notification).where(Notification.user_id == user.id)
    if unread_only:
        query = query.where(Notification.read.is_(False))

    total = (
        await session.execute(select(func.count()).select_from(query.subquery()))
    ).scalar() or 0

    result = await session.execute(
        query.order_by(Notification.created_at.desc(), Notification.id.desc())
        .offset(pagination.offset)
        .limit(pagination.limit)
    )
    return list(result.scalars().all()), total


async def unread_count(session: AsyncSession, user: User) -> int:
    result = await session.execute(
        select(func.count(Notification.id)).where(
            and_(Notification.user_id == user.id, Notification.read.is_(False))
        )
    )
    return result.scalar() or 0


async def mark_read(
    session: AsyncSession, user: User, notification_id: int, clock: Clock = now
) -> Notification:
    result = await session.execute(
        select(Notification).where(
            and_(Notification.id == notification_id, Notification.user_id == user.id)
        )
    )
    notification = result.scalar_one_or_none()
    if notification is None:
        raise NotFound("Notification not found")

    if not notification.read:
        notification.read = True
        notification.read_at = clock()
        await session.commit()
    return notification


async def mark_all_read(session: AsyncSession, user: User, clock: Clock = now) -> int:
    result = await session.execute(
        update(Notification)
        .where(and_(Notification.user_id == user.id, Notification.read.is_(False)))
        .values(read=True, read_at=clock())
    )
    await session.commit()
    return result.rowcount or 0
