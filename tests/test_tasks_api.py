from datetime import datetime, timedelta
from types import SimpleNamespace
from unittest.mock import MagicMock

from sqlalchemy.exc import OperationalError

from taskboard.database import get_db
from taskboard.routers.auth import get_current_user
from taskboard.schemas.task import MAX_PAGE

from .helpers import auth_headers, make_task


def _instant(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def test_requires_authentication(client):
    response = client.get("/api/todos")
    assert response.status_code == 401


def test_rejects_bad_token(client):
    response = client.get("/api/todos", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


def test_create_and_fetch_round_trip(client, headers):
    payload = {
        "text": "  File taxes  ",
        "deadline": "2031-04-15T17:30:00Z",
        "priority": "high",
        "category": "admin",
    }
    created = client.post("/api/todos", json=payload, headers=headers)

    assert created.status_code == 201
    body = created.json()
    assert body["success"] is True
    assert body["message"] == "Todo created successfully"
    task_id = body["data"]["id"]

    fetched_body = client.get(f"/api/todos/{task_id}", headers=headers).json()
    assert fetched_body.keys() == {"success", "data"}
    fetched = fetched_body["data"]
    assert fetched["text"] == "File taxes"
    assert fetched["priority"] == "high"
    assert fetched["category"] == "admin"
    assert fetched["completed"] is False
    assert _instant(fetched["deadline"]) == _instant(payload["deadline"])
    assert {"createdAt", "updatedAt", "userId"} <= fetched.keys()


def test_create_defaults(client, headers):
    data = client.post("/api/todos", json={"text": "Buy milk"}, headers=headers).json()["data"]
    assert data["priority"] == "medium"
    assert data["deadline"] is None
    assert data["category"] is None


def test_create_validation_errors(client, headers):
    response = client.post(
        "/api/todos",
        json={"text": "   ", "priority": "urgent", "deadline": "not a date", "category": "c" * 51},
        headers=headers,
    )

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Validation failed"
    fields = {err["field"] for err in body["errors"]}
    assert fields == {"text", "priority", "deadline", "category"}


def test_text_length_limit(client, headers):
    response = client.post("/api/todos", json={"text": "x" * 501}, headers=headers)
    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "text"


def test_fetch_foreign_or_malformed_id_is_not_found(client, session, headers, other_user):
    foreign = make_task(session, other_user, "theirs")

    for task_id in (foreign.id, "missing", "%20not-an-id"):
        response = client.get(f"/api/todos/{task_id}", headers=headers)
        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Todo not found"}


def test_update_only_sent_fields(client, session, user, headers):
    task = make_task(session, user, "Buy milk", category="home")

    response = client.put(f"/api/todos/{task.id}", json={"completed": True}, headers=headers)

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["completed"] is True
    assert data["text"] == "Buy milk"
    assert data["category"] == "home"


def test_update_null_deadline_clears_it(client, session, user, headers, yesterday):
    task = make_task(session, user, "File taxes", deadline=yesterday)

    client.put(f"/api/todos/{task.id}", json={"deadline": None}, headers=headers)

    data = client.get(f"/api/todos/{task.id}", headers=headers).json()["data"]
    assert data["deadline"] is None


def test_update_rejects_empty_text(client, session, user, headers):
    task = make_task(session, user, "Buy milk")

    response = client.put(f"/api/todos/{task.id}", json={"text": " "}, headers=headers)

    assert response.status_code == 400
    assert client.get(f"/api/todos/{task.id}", headers=headers).json()["data"]["text"] == "Buy milk"


def test_update_foreign_task_is_not_found(client, session, headers, other_user):
    foreign = make_task(session, other_user, "theirs")
    response = client.put(f"/api/todos/{foreign.id}", json={"completed": True}, headers=headers)
    assert response.status_code == 404


def test_delete(client, session, user, headers):
    task = make_task(session, user, "Buy milk")

    response = client.delete(f"/api/todos/{task.id}", headers=headers)
    assert response.json() == {"success": True, "message": "Todo deleted successfully"}

    assert client.get(f"/api/todos/{task.id}", headers=headers).status_code == 404
    assert client.delete(f"/api/todos/{task.id}", headers=headers).status_code == 404


def test_list_completed_filter_and_pagination(client, headers):
    a = client.post("/api/todos", json={"text": "Buy milk"}, headers=headers).json()["data"]
    client.post("/api/todos", json={"text": "File taxes"}, headers=headers)
    client.put(f"/api/todos/{a['id']}", json={"completed": True}, headers=headers)

    body = client.get("/api/todos", params={"completed": "true"}, headers=headers).json()

    assert [task["id"] for task in body["data"]] == [a["id"]]
    assert body["pagination"] == {
        "current": 1,
        "total": 1,
        "hasNext": False,
        "hasPrev": False,
        "totalTodos": 1,
    }


def test_list_pagination_metadata(client, session, user, headers):
    for index in range(5):
        make_task(session, user, f"task {index}")

    body = client.get("/api/todos", params={"page": 2, "limit": 2}, headers=headers).json()

    assert len(body["data"]) == 2
    assert body["pagination"] == {
        "current": 2,
        "total": 3,
        "hasNext": True,
        "hasPrev": True,
        "totalTodos": 5,
    }


def test_list_invalid_params(client, headers):
    response = client.get("/api/todos", params={"limit": 500, "sortBy": "owner"}, headers=headers)

    assert response.status_code == 400
    assert {err["field"] for err in response.json()["errors"]} == {"limit", "sortBy"}


def test_stats_summary(client, session, user, headers, yesterday):
    make_task(session, user, "Buy milk")
    make_task(session, user, "File taxes", deadline=yesterday)

    body = client.get("/api/todos/stats/summary", headers=headers).json()

    assert body == {
        "success": True,
        "data": {"total": 2, "completed": 0, "pending": 2, "overdue": 1},
    }


def test_bulk_delete_completed(client, session, user, headers):
    # Capture ids now: the delete leaves these instances pointing at gone rows
    done_id = make_task(session, user, "done", completed=True).id
    keep_id = make_task(session, user, "open").id

    response = client.patch("/api/todos/bulk", json={"action": "delete-completed"}, headers=headers)

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "message": "Bulk delete-completed completed successfully",
        "modifiedCount": 1,
    }
    assert client.get(f"/api/todos/{done_id}", headers=headers).status_code == 404
    remaining = client.get(f"/api/todos/{keep_id}", headers=headers).json()["data"]
    assert remaining["text"] == "open"
    assert remaining["completed"] is False


def test_bulk_invalid_action(client, headers):
    response = client.patch("/api/todos/bulk", json={"action": "explode"}, headers=headers)

    assert response.status_code == 400
    assert response.json()["errors"] == [{"field": "action", "message": "Invalid bulk action"}]


def test_bulk_only_affects_caller(client, session, user, other_user, headers):
    make_task(session, user, "mine")
    make_task(session, other_user, "theirs")

    response = client.patch("/api/todos/bulk", json={"action": "delete-all"}, headers=headers)
    assert response.json()["modifiedCount"] == 1

    other = client.get("/api/todos", headers=auth_headers(other_user)).json()
    assert [task["text"] for task in other["data"]] == ["theirs"]


def test_store_failure_is_reported_generically(app, client):
    db = MagicMock()
    db.exec.side_effect = OperationalError("SELECT", {}, Exception("disk I/O error"))
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_current_user] = lambda: SimpleNamespace(id="user-1")

    response = client.get("/api/todos")

    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "Server error while fetching todos"}
    db.rollback.assert_called_once()


def test_deadline_sent_with_offset_is_stored_as_utc(client, headers):
    data = client.post(
        "/api/todos",
        json={"text": "call", "deadline": "2031-01-01T10:00:00+02:00"},
        headers=headers,
    ).json()["data"]

    assert _instant(data["deadline"]) == _instant("2031-01-01T08:00:00Z")
    assert _instant(data["deadline"]) - _instant("2031-01-01T08:00:00Z") == timedelta(0)


def test_deadline_beyond_supported_range_is_rejected(client, headers):
    response = client.post(
        "/api/todos",
        json={"text": "far future", "deadline": "9999-12-31T23:30:00-05:00"},
        headers=headers,
    )

    assert response.status_code == 400
    assert response.json()["errors"] == [{"field": "deadline", "message": "Deadline must be a valid date"}]


def test_update_deadline_beyond_supported_range_is_rejected(client, session, user, headers):
    task = make_task(session, user, "call")

    response = client.put(
        f"/api/todos/{task.id}",
        json={"deadline": "0001-01-01T00:30:00+05:00"},
        headers=headers,
    )

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "deadline"


def test_huge_page_number_is_a_validation_error(client, headers):
    response = client.get("/api/todos", params={"page": "10000000000000000000"}, headers=headers)

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert [err["field"] for err in body["errors"]] == ["page"]


def test_last_addressable_page_is_empty(client, headers):
    response = client.get("/api/todos", params={"page": MAX_PAGE, "limit": 100}, headers=headers)

    assert response.status_code == 200
    assert response.json()["data"] == []
