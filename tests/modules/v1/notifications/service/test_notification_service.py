import uuid
from datetime import datetime, timedelta, timezone

import pytest

from carelog.api.modules.v1.notifications.models.notification_model import (
    Notification,
    NotificationType,
)
from carelog.api.modules.v1.notifications.service.notification_service import NotificationService


async def _seed_notifications(session, user_id, count):
    start = datetime.now(timezone.utc)
    notes = [
        Notification(
            user_id=user_id,
            type=NotificationType.TICKET_COMMENT,
            title=f"Note {i}",
            message="New comment",
            created_at=start + timedelta(seconds=i),
        )
        for i in range(count)
    ]
    session.add_all(notes)
    await session.commit()
    return notes


@pytest.mark.asyncio
async def test_create_notification(test_session, seed):
    notification = await NotificationService.create_notification(
        test_session,
        user_id=seed.submitter.id,
        type=NotificationType.TICKET_STATUS_CHANGED,
        title="Ticket is now in_progress",
        message="Tara Tech changed the status",
        related_user_id=seed.staff.id,
        metadata={"old_status": "open", "new_status": "in_progress"},
    )

    assert notification is not None
    assert notification.is_read is False
    assert notification.notification_metadata == {"old_status": "open", "new_status": "in_progress"}


@pytest.mark.asyncio
async def test_create_notification_failure_returns_none(test_session, seed):
    # The rollback expires seeded rows, so keep the id around.
    user_id = seed.submitter.id
    notification = await NotificationService.create_notification(
        test_session,
        user_id=user_id,
        type=NotificationType.TICKET_COMMENT,
        title="x",
        message=None,
    )

    assert notification is None
    assert await NotificationService.count_user_notifications(test_session, user_id) == 0


@pytest.mark.asyncio
async def test_listing_is_newest_first_and_paged(test_session, seed):
    await _seed_notifications(test_session, seed.submitter.id, 5)

    first_page = await NotificationService.get_user_notifications(
        test_session, seed.submitter.id, limit=2
    )
    second_page = await NotificationService.get_user_notifications(
        test_session, seed.submitter.id, limit=2, skip=2
    )

    assert [n.title for n in first_page] == ["Note 4", "Note 3"]
    assert [n.title for n in second_page] == ["Note 2", "Note 1"]


@pytest.mark.asyncio
async def test_mark_selected_as_read(test_session, seed):
    notes = await _seed_notifications(test_session, seed.submitter.id, 3)
    foreign = await _seed_notifications(test_session, seed.staff.id, 1)

    updated = await NotificationService.mark_as_read(
        test_session, seed.submitter.id, [notes[0].id, foreign[0].id, uuid.uuid4()]
    )

    assert updated == 1
    assert await NotificationService.unread_count(test_session, seed.submitter.id) == 2
    assert await NotificationService.unread_count(test_session, seed.staff.id) == 1

    unread = await NotificationService.get_user_notifications(
        test_session, seed.submitter.id, unread_only=True
    )
    assert notes[0].id not in {n.id for n in unread}


@pytest.mark.asyncio
async def test_mark_all_as_read(test_session, seed):
    await _seed_notifications(test_session, seed.submitter.id, 3)

    assert await NotificationService.mark_as_read(test_session, seed.submitter.id) == 3
    assert await NotificationService.unread_count(test_session, seed.submitter.id) == 0
    assert await NotificationService.mark_as_read(test_session, seed.submitter.id) == 0
