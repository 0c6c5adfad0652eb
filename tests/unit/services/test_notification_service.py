"""
Tests for the notification outbox and inbox.

Tests:
- Recipient de-duplication and caller exclusion
- Email addresses carried for mail-worthy events
- Dispatch after commit and publisher failures
- Inbox listing and read marking
"""

from unittest.mock import patch

import pytest
from sqlalchemy import select

from api.schemas.common import PaginationParams
from api.services import notifications as service
from api.services.notifications import NotificationEvent, Notifier
from core.errors import NotFound
from database.engine import transactional
from database.models.audit import EntityType
from database.models.notifications import Notification, NotificationType


def _event(**kwargs) -> NotificationEvent:
    fields = dict(
        type=NotificationType.STATUS_UPDATE,
        title="Heads up",
        message="Something changed",
        entity_type=EntityType.JOB_REQUEST,
        entity_id=7,
    )
    fields.update(kwargs)
    return NotificationEvent(**fields)


@pytest.mark.asyncio
class TestNotify:
    async def test_dedupes_and_excludes_caller(self, session, factory, notifier):
        caller = await factory.user()
        other = await factory.user()

        rows = await notifier.notify(
            session, [other.id, None, caller.id, other.id], _event(), exclude=caller.id
        )
        await session.commit()

        assert [r.user_id for r in rows] == [other.id]
        stored = (await session.execute(select(Notification))).scalars().one()
        assert stored.related_entity_type == "job_request"
        assert stored.related_entity_id == 7
        assert stored.read is False

    async def test_nothing_to_send(self, session, factory, notifier):
        caller = await factory.user()
        assert await notifier.notify(session, [caller.id], _event(), exclude=caller.id) == []
        assert notifier.pending == []

    async def test_email_only_for_mail_events(self, session, factory, notifier):
        user = await factory.user()
        await notifier.notify(session, [user.id], _event())
        await notifier.notify(session, [user.id], _event(email=True))

        first, second = notifier.pending
        assert first["email"] is None
        assert second["email"] == user.email
        assert second["notification_id"] is not None


@pytest.mark.asyncio
class TestDispatch:
    async def test_publishes_then_clears(self, session, factory, notifier):
        user = await factory.user()
        await notifier.notify(session, [user.id], _event())
        await session.commit()

        assert notifier.published == []
        assert notifier.dispatch() == 1
        assert notifier.published[0]["user_id"] == user.id
        assert notifier.pending == []
        assert notifier.dispatch() == 0

    async def test_rollback_discards_unpublished_rows(self, session, factory, notifier):
        user = await factory.user()

        with pytest.raises(RuntimeError):
            async with transactional(session):
                await notifier.notify(session, [user.id], _event())
                raise RuntimeError("cascade failed")

        assert notifier.pending == []
        assert notifier.dispatch() == 0
        assert (await session.execute(select(Notification))).scalars().all() == []

    async def test_publisher_errors_are_logged_not_raised(self, session, factory):
        user = await factory.user()

        def broken(payload):
            raise ConnectionError("broker down")

        outbox = Notifier(publisher=broken)
        await outbox.notify(session, [user.id, (await factory.user()).id], _event())
        await session.commit()

        assert outbox.dispatch() == 0
        assert outbox.pending == []


class TestCeleryPublisher:
    def test_default_publisher_sends_celery_task(self):
        payload = {"notification_id": 1}
        with patch("workers.celery_app.celery_app.send_task") as send_task:
            service.enqueue_delivery(payload)
        send_task.assert_called_once_with(
            service.DELIVER_TASK, kwargs={"payload": payload}, queue="notifications"
        )


@pytest.mark.asyncio
class TestInbox:
    async def test_list_unread_and_mark(self, session, factory, notifier, clock):
        user = await factory.user()
        stranger = await factory.user()
        rows = await notifier.notify(session, [user.id], _event())
        await notifier.notify(session, [user.id], _event(title="Second"))
        await session.commit()

        items, total = await service.list_notifications(session, user, PaginationParams())
        assert total == 2
        assert await service.unread_count(session, user) == 2

        marked = await service.mark_read(session, user, rows[0].id, clock=clock)
        assert marked.read
        assert marked.read_at == clock()
        assert await service.unread_count(session, user) == 1

        unread, total = await service.list_notifications(
            session, user, PaginationParams(), unread_only=True
        )
        assert total == 1
        assert unread[0].title == "Second"

        with pytest.raises(NotFound):
            await service.mark_read(session, stranger, rows[0].id)

    async def test_mark_all_read(self, session, factory, notifier):
        user = await factory.user()
        await notifier.notify(session, [user.id], _event())
        await notifier.notify(session, [user.id], _event())
        await session.commit()

        assert await service.mark_all_read(session, user) == 2
        assert await service.unread_count(session, user) == 0
