"""Tests for the activity feed and reassignment history."""

import pytest
from agencyops.services.activity_feed import list_activity, list_reassignments, parse_paging
from agencyops.utils.errors import RequestValidationError
from tests.utils.seed_data import ADMIN_ID, AGENT_A, AGENT_B, AGENT_C, CLIENT_ID, MANAGER_ID, task_row


def _log(log_id, entity_id, user_id, action="task_reassigned", timestamp="2024-12-09T10:00:00+00:00",
         entity_type="Task", **details):
    return {
        "id": log_id,
        "entity_type": entity_type,
        "entity_id": entity_id,
        "user_id": user_id,
        "action": action,
        "timestamp": timestamp,
        "details": details,
    }


@pytest.fixture
def history(fake_db):
    fake_db.rows("tasks").extend([
        task_row("t1", AGENT_B),
        task_row("t2", AGENT_C),
        task_row("t_other", AGENT_A, client_id="client_other"),
    ])
    fake_db.rows("activity_logs").extend([
        _log("log_1", "t1", AGENT_B, timestamp="2024-12-07T10:00:00+00:00",
             reassignedFrom=AGENT_A, reassignedTo=AGENT_B, reassignedBy=MANAGER_ID, reassignNotes="cover"),
        _log("log_2", "t2", AGENT_C, timestamp="2024-12-08T10:00:00+00:00",
             reassignedFrom=AGENT_A, reassignedTo=AGENT_C, reassignedBy="system"),
        _log("log_3", "t_other", AGENT_A, timestamp="2024-12-09T10:00:00+00:00",
             reassignedFrom=AGENT_B, reassignedTo=AGENT_A, reassignedBy=MANAGER_ID),
        _log("log_4", "t1", AGENT_B, action="task_assigned", timestamp="2024-12-06T10:00:00+00:00"),
        _log("log_5", AGENT_A, ADMIN_ID, action="impersonate_start", entity_type="auth",
             timestamp="2024-12-09T11:00:00+00:00", targetUserId=AGENT_A),
    ])
    return fake_db


@pytest.mark.unit
@pytest.mark.parametrize("params,expected", [
    ({}, (1, 20)),
    ({"page": "3", "limit": "5"}, (3, 5)),
    ({"page": "0", "limit": "1000"}, (1, 100)),
    ({"page": "-2", "limit": "0"}, (1, 1)),
])
def test_parse_paging(params, expected):
    """Test paging is clamped to sane bounds."""
    assert parse_paging(params) == expected


@pytest.mark.unit
def test_parse_paging_rejects_garbage():
    """Test non-numeric paging is a 400."""
    with pytest.raises(RequestValidationError):
        parse_paging({"page": "two"})


@pytest.mark.asyncio
@pytest.mark.unit
async def test_reassignment_history_enriched(history):
    """Test items carry task and user details, newest first."""
    result = await list_reassignments({})

    assert result["total"] == 3
    assert [item["logId"] for item in result["items"]] == ["log_3", "log_2", "log_1"]

    oldest = result["items"][2]
    assert oldest["task"] == {"id": "t1", "name": "Task t1", "clientId": CLIENT_ID, "currentAssignedToId": AGENT_B}
    assert oldest["reassignNotes"] == "cover"
    assert oldest["fromUser"]["name"] == "Alice"
    assert oldest["toUser"]["name"] == "Bob"
    assert oldest["byUser"]["name"] == "Milo Manager"

    by_system = result["items"][1]
    assert by_system["byUser"] is None
    assert by_system["toUser"]["name"] == "Cara Doe"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_reassignment_history_filters(history):
    """Test agent, task, client and date filters."""
    by_agent = await list_reassignments({"agentId": AGENT_C})
    assert [item["logId"] for item in by_agent["items"]] == ["log_2"]

    by_task = await list_reassignments({"taskId": "t1"})
    assert [item["logId"] for item in by_task["items"]] == ["log_1"]

    by_client = await list_reassignments({"clientId": CLIENT_ID})
    assert {item["logId"] for item in by_client["items"]} == {"log_1", "log_2"}

    by_date = await list_reassignments({"from": "2024-12-08T00:00:00+00:00", "to": "2024-12-08T23:59:59+00:00"})
    assert [item["logId"] for item in by_date["items"]] == ["log_2"]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_reassignment_history_client_mismatch(history):
    """Test a task outside the client filter yields nothing."""
    result = await list_reassignments({"clientId": CLIENT_ID, "taskId": "t_other"})
    assert result == {"page": 1, "limit": 20, "total": 0, "items": []}

    empty_client = await list_reassignments({"clientId": "client_none"})
    assert empty_client["items"] == []


@pytest.mark.asyncio
@pytest.mark.unit
async def test_reassignment_history_paging(history):
    """Test page/limit slicing keeps the total."""
    result = await list_reassignments({"page": "2", "limit": "2"})
    assert result["total"] == 3
    assert [item["logId"] for item in result["items"]] == ["log_1"]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_reassignment_history_bad_date(history):
    """Test an unparseable date filter is a 400."""
    with pytest.raises(RequestValidationError):
        await list_reassignments({"from": "last tuesday"})


@pytest.mark.asyncio
@pytest.mark.unit
async def test_activity_feed(history):
    """Test the feed envelope, newest first, with users attached."""
    result = await list_activity({"limit": "2"})

    assert result["success"] is True
    assert [log["id"] for log in result["logs"]] == ["log_5", "log_3"]
    assert result["logs"][0]["user"]["name"] == "Ada Admin"
    assert result["pagination"] == {
        "currentPage": 1,
        "totalPages": 3,
        "totalCount": 5,
        "hasNextPage": True,
        "hasPrevPage": False,
        "limit": 2,
    }


@pytest.mark.asyncio
@pytest.mark.unit
async def test_activity_feed_action_and_search(history):
    """Test action filter and free-text search over users."""
    assigned = await list_activity({"action": "task_assigned"})
    assert [log["id"] for log in assigned["logs"]] == ["log_4"]

    everything = await list_activity({"action": "all"})
    assert everything["pagination"]["totalCount"] == 5

    # "ada" matches no log column directly, only the admin user row
    by_user = await list_activity({"q": "ada"})
    assert [log["id"] for log in by_user["logs"]] == ["log_5"]

    by_entity = await list_activity({"q": "auth"})
    assert [log["id"] for log in by_entity["logs"]] == ["log_5"]
