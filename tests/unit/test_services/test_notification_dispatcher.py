"""Tests for notification dispatch and the mailbox queries."""

import pytest
from agencyops.models.activity import NotificationType
from agencyops.services.assignment_writer import PendingNotification
from agencyops.services.notification_dispatcher import (
    count_unread,
    dispatch_notifications,
    list_notifications,
    mark_read,
)
from agencyops.utils.errors import RequestValidationError
from tests.utils.seed_data import AGENT_A, AGENT_B
from tests.utils.factories import create_notification_data


def _seed(db, *rows):
    for i, row in enumerate(rows, start=1):
        db.rows("notifications").append({"id": i, **row})


@pytest.mark.asyncio
@pytest.mark.unit
async def test_dispatch_inserts_unread_rows(fake_db):
    """Test each pending notification becomes an unread row."""
    delivered = await dispatch_notifications([
        PendingNotification(user_id=AGENT_A, task_id="t1", message="A task has been reassigned to you."),
        PendingNotification(user_id=AGENT_B, task_id="t1", message="Moved away", type=NotificationType.GENERAL),
    ])

    rows = fake_db.rows("notifications")
    assert delivered == 2
    assert [r["user_id"] for r in rows] == [AGENT_A, AGENT_B]
    assert all(r["is_read"] is False and r["type"] == "general" for r in rows)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_dispatch_swallows_failures(fake_db):
    """Test failed inserts are counted out, not raised."""
    fake_db.fail_on("insert", "notifications")

    delivered = await dispatch_notifications([
        PendingNotification(user_id=AGENT_A, task_id="t1", message="hello"),
    ])

    assert delivered == 0


@pytest.mark.asyncio
@pytest.mark.unit
async def test_list_notifications_own_only_newest_first(fake_db):
    """Test the mailbox is scoped to the user and sorted newest first."""
    _seed(
        fake_db,
        create_notification_data(AGENT_A, created_at="2024-12-08T10:00:00+00:00"),
        create_notification_data(AGENT_B, created_at="2024-12-08T11:00:00+00:00"),
        create_notification_data(AGENT_A, created_at="2024-12-09T10:00:00+00:00"),
    )

    rows = await list_notifications(AGENT_A, {})

    assert [r["id"] for r in rows] == [3, 1]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_list_notifications_filters(fake_db):
    """Test unread, search, date and cursor filters."""
    _seed(
        fake_db,
        {**create_notification_data(AGENT_A, created_at="2024-12-01T10:00:00+00:00"), "message": "Task moved"},
        {**create_notification_data(AGENT_A, is_read=True, created_at="2024-12-05T10:00:00+00:00"),
         "message": "Task moved again"},
        {**create_notification_data(AGENT_A, created_at="2024-12-09T10:00:00+00:00"), "message": "New task"},
    )

    unread = await list_notifications(AGENT_A, {"onlyUnread": "1"})
    assert [r["id"] for r in unread] == [3, 1]

    read = await list_notifications(AGENT_A, {"isRead": "true"})
    assert [r["id"] for r in read] == [2]

    moved = await list_notifications(AGENT_A, {"q": "moved"})
    assert {r["id"] for r in moved} == {1, 2}

    ranged = await list_notifications(AGENT_A, {"from": "2024-12-02", "to": "2024-12-05"})
    assert [r["id"] for r in ranged] == [2]

    after_cursor = await list_notifications(AGENT_A, {"cursorId": "3", "take": "1"})
    assert [r["id"] for r in after_cursor] == [2]

    ascending = await list_notifications(AGENT_A, {"sort": "asc"})
    assert [r["id"] for r in ascending] == [1, 2, 3]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_list_notifications_bad_params(fake_db):
    """Test malformed paging and dates are 400s."""
    with pytest.raises(RequestValidationError):
        await list_notifications(AGENT_A, {"take": "lots"})
    with pytest.raises(RequestValidationError):
        await list_notifications(AGENT_A, {"from": "yesterday"})


@pytest.mark.asyncio
@pytest.mark.unit
async def test_count_unread_and_mark_read(fake_db):
    """Test marking a notification read drops the unread count."""
    _seed(
        fake_db,
        create_notification_data(AGENT_A),
        create_notification_data(AGENT_A),
        create_notification_data(AGENT_B),
    )

    assert await count_unread(AGENT_A) == 2

    await mark_read(AGENT_A, "1")
    assert await count_unread(AGENT_A) == 1

    # Another user's notification is untouched
    await mark_read(AGENT_A, 3)
    assert await count_unread(AGENT_B) == 1


@pytest.mark.asyncio
@pytest.mark.unit
async def test_mark_read_invalid_id(fake_db):
    """Test a non-numeric id is rejected."""
    with pytest.raises(RequestValidationError):
        await mark_read(AGENT_A, "abc")
    with pytest.raises(RequestValidationError):
        await mark_read(AGENT_A, None)
