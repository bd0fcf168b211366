"""
Events, announcements and the analytics endpoints
"""
from datetime import datetime, timedelta

import pytest


def test_creating_event_announces_it(client, store, login_as):
    login_as("EB", name="Priya")

    response = client.post("/api/events", json={
        "title": "Intro to Rust",
        "description": "Bring a laptop",
        "date": "2026-12-01T16:00:00Z",
        "time": "16:00",
        "venue": "Lab 2",
        "type": "Workshop",
    })

    assert response.status_code == 201
    event = response.json()["event"]
    assert event["createdBy"] == "Priya"
    assert event["date"] == "2026-12-01T16:00:00"

    announcements = client.get("/api/announcements").json()["announcements"]
    assert [a["title"] for a in announcements] == ["New Workshop: Intro to Rust"]
    assert announcements[0]["eventDate"] == "2026-12-01"


def test_members_cannot_create_events(client, login_as):
    login_as("Member")

    response = client.post("/api/events", json={"title": "Party", "date": "2026-12-01T16:00:00"})

    assert response.status_code == 403


def test_events_listed_by_date(client, store, login_as):
    store.seed(
        "events",
        {"id": "late", "title": "Late", "date": datetime(2026, 12, 1)},
        {"id": "early", "title": "Early", "date": datetime(2026, 11, 1)},
    )
    login_as("Member")

    events = client.get("/api/events").json()["events"]

    assert [event["id"] for event in events] == ["early", "late"]


def test_deleting_upcoming_event_removes_its_attendance(client, store, login_as):
    store.seed("events", {"id": "soon", "title": "Soon", "date": datetime.utcnow() + timedelta(days=3)})
    store.seed(
        "attendance",
        {"id": "a1", "eventId": "soon", "userEmail": "mia@society.org", "status": "Present"},
        {"id": "a2", "eventId": "other", "userEmail": "mia@society.org", "status": "Present"},
    )
    login_as("Core")

    response = client.delete("/api/events/soon")

    assert response.status_code == 200
    assert response.json()["attendance_removed"] == 1
    assert [record["id"] for record in store.documents("attendance")] == ["a2"]


def test_deleting_past_event_keeps_attendance(client, store, login_as):
    store.seed("events", {"id": "past", "title": "Past", "date": datetime.utcnow() - timedelta(days=3)})
    store.seed("attendance", {"id": "a1", "eventId": "past", "userEmail": "mia@society.org", "status": "Present"})
    login_as("Core")

    response = client.delete("/api/events/past")

    assert response.status_code == 200
    assert len(store.documents("attendance")) == 1
    assert client.delete("/api/events/past").status_code == 404


def test_announcement_edit_and_delete(client, store, login_as):
    login_as("EC", name="Ravi")
    created = client.post("/api/announcements", json={"title": "Elections", "priority": "High"})
    announcement_id = created.json()["announcement"]["id"]

    updated = client.put(f"/api/announcements/{announcement_id}", json={"content": "Vote on Friday"})
    assert updated.status_code == 200
    assert updated.json()["announcement"]["content"] == "Vote on Friday"
    assert updated.json()["announcement"]["priority"] == "High"
    assert updated.json()["announcement"]["updatedAt"] is not None
    assert "_id" not in updated.json()["announcement"]

    assert client.put(f"/api/announcements/{announcement_id}", json={}).status_code == 400
    assert client.delete(f"/api/announcements/{announcement_id}").status_code == 200
    assert client.put("/api/announcements/gone", json={"title": "x"}).status_code == 404


@pytest.fixture
def society(store, user_factory):
    store.seed(
        "users",
        user_factory("m1", "mia@society.org", name="Mia"),
        user_factory("c1", "cole@society.org", role="Core", name="Cole"),
        user_factory("e1", "eve@society.org", role="EB", name="Eve"),
    )
    store.seed(
        "tasks",
        {"id": "t1", "title": "a", "assignedToEmail": "mia@society.org", "status": "Completed"},
        {"id": "t2", "title": "b", "assignedToEmail": "mia@society.org", "status": "Today"},
        {"id": "t3", "title": "c", "assignedToEmail": "cole@society.org", "status": "Completed"},
    )
    store.seed(
        "attendance",
        {"id": "a1", "eventId": "e1", "userEmail": "mia@society.org", "status": "Present"},
        {"id": "a2", "eventId": "e2", "userEmail": "mia@society.org", "status": "Absent"},
    )
    store.seed(
        "feedback",
        {"id": "f1", "eventId": "e1", "userEmail": "mia@society.org", "rating": 5},
        {"id": "f2", "eventId": "e2", "userEmail": "mia@society.org", "rating": 4},
        {"id": "f3", "eventId": "e3", "userEmail": "mia@society.org", "rating": 3},
    )


def test_my_analytics(client, login_as, society):
    login_as("Member", email="mia@society.org")

    response = client.get("/api/analytics/me")

    assert response.status_code == 200
    report = response.json()
    assert report["user"]["name"] == "Mia"
    assert report["analytics"] == {
        "totalTasks": 2,
        "completedTasks": 1,
        "pendingTasks": 1,
        "taskCompletionRate": 50.0,
        "totalAttendance": 2,
        "attendedEvents": 1,
        "attendanceRate": 50.0,
        "totalFeedbacks": 3,
    }
    assert report["tiers"] == {"task": "Good", "attendance": "Needs Improvement", "feedback": "Moderate"}


def test_my_analytics_fails_loudly_when_store_is_down(client, store, login_as, society):
    login_as("Member", email="mia@society.org")
    store.fail("find")

    response = client.get("/api/analytics/me")

    assert response.status_code == 503
    assert response.json()["error"] == "store_unavailable"


def test_my_analytics_without_user_record(client, login_as, society):
    login_as("Member", email="new@society.org")

    assert client.get("/api/analytics/me").status_code == 404


def test_all_users_analytics_ordered_by_role(client, login_as, society):
    login_as("EB", email="eve@society.org")

    response = client.get("/api/analytics/users")

    assert response.status_code == 200
    users = response.json()["users"]
    assert [row["user"]["id"] for row in users] == ["e1", "c1", "m1"]
    assert users[1]["analytics"]["taskCompletionRate"] == 100.0
    assert users[2]["analytics"]["totalFeedbacks"] == 3

    filtered = client.get("/api/analytics/users", params={"search": "MIA", "role": "Member"}).json()["users"]
    assert [row["user"]["id"] for row in filtered] == ["m1"]


@pytest.mark.parametrize("role", ["Core", "Member"])
def test_all_users_analytics_checks_role_before_fetching(client, store, login_as, society, role):
    login_as(role)
    store.fail("find", "find_one")

    response = client.get("/api/analytics/users")

    assert response.status_code == 403
